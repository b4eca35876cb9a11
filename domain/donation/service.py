"""
捐赠领域异常
"""
from typing import Optional

from domain.common.exceptions import BusinessException, PersistenceException
from shared.codes import BusinessCode


class DonationAlreadyExistsException(BusinessException):
    """同一网关订单号已存在捐赠记录"""
    def __init__(self, gateway_order_id: str):
        super().__init__(
            code=BusinessCode.DONATION_ALREADY_EXISTS,
            message=f"订单 {gateway_order_id} 已存在捐赠记录",
            error_type="DONATION_ALREADY_EXISTS",
            details={"gateway_order_id": gateway_order_id},
        )


class TransitionConflictException(PersistenceException):
    """条件更新多次失败（并发写入过于频繁）"""
    def __init__(self, gateway_order_id: str, attempts: int, target: Optional[str] = None):
        super().__init__(
            message=f"捐赠 {gateway_order_id} 状态更新冲突",
            code=BusinessCode.CONCURRENT_UPDATE,
            details={"gateway_order_id": gateway_order_id, "attempts": attempts, "target": target},
        )
