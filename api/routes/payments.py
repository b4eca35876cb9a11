"""
Payments API routes.

Checkout and order-status endpoints over the application services.
Keep this thin: no gateway details here.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_checkout_service, get_order_status_service
from application.dtos.payments import DonationIntent
from application.services.order_status_service import OrderStatusService
from application.services.payment_service import DonationCheckoutService
from core.response import success_response


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/sessions", summary="Create donation payment session", response_model=None)
async def create_payment_session(
    payload: DonationIntent,
    service: DonationCheckoutService = Depends(get_checkout_service),
):
    result = await service.checkout(payload)
    return success_response(data=result.model_dump(mode="json"), message="Payment session created")


@router.get("/orders/{order_id}", summary="Verify order status with the gateway")
async def get_order_status(
    order_id: str,
    reconcile: bool = Query(default=False, description="Apply a terminal gateway status to the donation"),
    service: OrderStatusService = Depends(get_order_status_service),
):
    if reconcile:
        view = await service.reconcile(order_id)
        return success_response(data=view.model_dump(mode="json"), message="Order status reconciled")
    details = await service.verify(order_id)
    return success_response(data={"order": details.model_dump(mode="json")}, message="Order status")
