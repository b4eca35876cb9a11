"""In-memory fakes and webhook helpers shared by the test suite."""
import json
import time
from datetime import datetime
from typing import Dict, List, Optional

from application.dtos.payments import GatewayOrderRequest, OrderDetails, PaymentSession
from domain.common.exceptions import PersistenceException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.donation.entity import Donation, DonationStatus
from domain.donation.repository import DonationRepository
from domain.donation.service import DonationAlreadyExistsException
from infrastructure.external.payments.signature import compute_signature


WEBHOOK_SECRET = "test-webhook-secret"


class InMemoryDonationRepository(DonationRepository):
    """Dict-backed repository with the same compare-and-set contract."""

    def __init__(self) -> None:
        self.rows: Dict[str, Donation] = {}
        self.reads = 0
        self.writes = 0
        # number of upcoming transition_status calls that lose the race
        self.lose_next_cas = 0
        self.fail_writes = False

    def _copy(self, d: Donation) -> Donation:
        return Donation(**{f: getattr(d, f) for f in d.__dataclass_fields__})

    async def add(self, donation: Donation) -> Donation:
        if any(r.gateway_order_id == donation.gateway_order_id for r in self.rows.values()):
            raise DonationAlreadyExistsException(donation.gateway_order_id)
        self.writes += 1
        self.rows[donation.id] = self._copy(donation)
        return self._copy(donation)

    async def get_by_id(self, donation_id: str) -> Optional[Donation]:
        self.reads += 1
        row = self.rows.get(donation_id)
        return self._copy(row) if row else None

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Donation]:
        self.reads += 1
        for row in self.rows.values():
            if row.gateway_order_id == gateway_order_id:
                return self._copy(row)
        return None

    async def transition_status(
        self,
        donation_id: str,
        *,
        expected: DonationStatus,
        new_status: DonationStatus,
        verified_at: datetime,
        payment_id: Optional[str] = None,
    ) -> bool:
        if self.fail_writes:
            raise PersistenceException("database unavailable")
        if self.lose_next_cas > 0:
            self.lose_next_cas -= 1
            return False
        row = self.rows.get(donation_id)
        if row is None or row.payment_status != expected:
            return False
        self.writes += 1
        row.payment_status = new_status
        row.last_verified_at = verified_at
        row.updated_at = verified_at
        if payment_id:
            row.payment_id = payment_id
        return True

    async def list_stale_pending(self, older_than: datetime, limit: int = 100) -> List[Donation]:
        self.reads += 1
        stale = [
            r for r in self.rows.values()
            if r.payment_status == DonationStatus.PENDING and r.updated_at is not None and r.updated_at < older_than
        ]
        stale.sort(key=lambda r: r.updated_at)
        return [self._copy(r) for r in stale[:limit]]


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, repository: InMemoryDonationRepository) -> None:
        super().__init__()
        self.donation_repository = repository
        self.commits = 0

    async def commit(self) -> None:
        self.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self._committed = False


class InMemoryStore:
    def __init__(self) -> None:
        self.repository = InMemoryDonationRepository()

    def uow_factory(self) -> FakeUnitOfWork:
        return FakeUnitOfWork(self.repository)

    def seed(self, order_id: str, status: DonationStatus = DonationStatus.PENDING, **kwargs) -> Donation:
        donation = Donation(gateway_order_id=order_id, amount=kwargs.pop("amount", 1000), payment_status=status, **kwargs)
        self.repository.rows[donation.id] = donation
        return donation

    def by_order(self, order_id: str) -> Optional[Donation]:
        for row in self.repository.rows.values():
            if row.gateway_order_id == order_id:
                return row
        return None


class StubGateway:
    provider = "stub"

    def __init__(self, order_details: Optional[OrderDetails] = None) -> None:
        self.requests: List[GatewayOrderRequest] = []
        self.order_details = order_details
        # per-order answers for fetch_order; an Exception value is raised
        self.orders: Dict[str, object] = {}
        self.error: Optional[Exception] = None
        self.closed = False

    async def create_order(self, req: GatewayOrderRequest) -> PaymentSession:
        if self.error is not None:
            raise self.error
        self.requests.append(req)
        return PaymentSession(
            order_id=req.order_id,
            payment_session_id=f"session_{req.order_id}",
            cf_order_id="2149460581",
            order_status="ACTIVE",
        )

    async def fetch_order(self, order_id: str) -> OrderDetails:
        if self.error is not None:
            raise self.error
        answer = self.orders.get(order_id)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, OrderDetails):
            return answer
        if self.order_details is None:
            return OrderDetails(order_id=order_id, order_status="ACTIVE")
        return self.order_details

    async def aclose(self) -> None:
        self.closed = True


def webhook_payload(event_type: str, order_id: str, *, payment_id: str = "5114910428374", **extra) -> dict:
    payload = {
        "data": {
            "order": {"order_id": order_id, "order_amount": 1000.0, "order_currency": "INR", "order_tags": None},
            "payment": {
                "cf_payment_id": payment_id,
                "payment_status": "SUCCESS",
                "payment_amount": 1000.0,
                "payment_currency": "INR",
                "payment_message": "Transaction successful",
                "payment_time": "2025-01-15T12:20:29+05:30",
                "payment_group": "upi",
                "payment_method": {"upi": {"channel": "collect", "upi_id": "donor@upi"}},
            },
            "customer_details": {
                "customer_name": "Test User",
                "customer_id": "test_example_com_1736923229000",
                "customer_email": "test@example.com",
                "customer_phone": "+919876543210",
            },
        },
        "event_time": "2025-01-15T12:20:31+05:30",
        "type": event_type,
    }
    payload.update(extra)
    return payload


def signed_headers(body: bytes, *, secret: str = WEBHOOK_SECRET, timestamp: Optional[str] = None) -> dict:
    ts = timestamp or str(int(time.time()))
    return {
        "x-webhook-timestamp": ts,
        "x-webhook-signature": compute_signature(secret, ts, body),
        "x-webhook-version": "2023-08-01",
        "content-type": "application/json",
    }


def encode(payload: dict) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


