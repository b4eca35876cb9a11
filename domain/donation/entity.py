"""
捐赠领域实体 - 捐赠聚合根
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException


class DonationStatus(str, Enum):
    """捐赠支付状态枚举"""
    PENDING = "pending"        # 待支付
    COMPLETED = "completed"    # 支付成功
    FAILED = "failed"          # 支付失败/放弃
    REFUNDED = "refunded"      # 已退款


class TransitionDecision(str, Enum):
    """状态机对一次目标状态的判定结果"""
    APPLY = "apply"
    NOOP = "noop"        # 已处于目标状态或更靠后的终态
    REJECT = "reject"    # 非法迁移（如未完成的捐赠收到退款）


# 状态机合法迁移，其余全部非法
LEGAL_TRANSITIONS = frozenset(
    {
        (DonationStatus.PENDING, DonationStatus.COMPLETED),
        (DonationStatus.PENDING, DonationStatus.FAILED),
        (DonationStatus.COMPLETED, DonationStatus.REFUNDED),
    }
)

PAYMENT_GATEWAY = "cashfree"


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def decide_transition(current: DonationStatus, target: DonationStatus) -> TransitionDecision:
    """
    判定从 current 迁移到 target 的处理方式

    规则：
    1. 合法迁移 -> APPLY
    2. 退款只能来自 completed，否则 REJECT
    3. 其余（重复投递、乱序到达的旧事件、终态之后的事件）-> NOOP
    """
    if (current, target) in LEGAL_TRANSITIONS:
        return TransitionDecision.APPLY
    if target == DonationStatus.REFUNDED and current != DonationStatus.REFUNDED:
        return TransitionDecision.REJECT
    return TransitionDecision.NOOP


@dataclass
class Donation:
    """
    捐赠聚合根 - 记录一次捐赠及其支付状态

    业务规则：
    1. gateway_order_id 创建时分配，之后不可变更
    2. 金额必须大于0
    3. 终态（completed/failed/refunded）不可回到 pending
    4. 每次状态迁移都刷新 last_verified_at
    """

    gateway_order_id: str
    amount: Decimal
    currency: str = "INR"
    user_id: Optional[str] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    donation_type: Optional[str] = None
    payment_status: DonationStatus = DonationStatus.PENDING
    payment_id: Optional[str] = None
    payment_gateway: str = PAYMENT_GATEWAY
    last_verified_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        """初始化后验证"""
        if not self.gateway_order_id:
            raise DomainValidationException("gateway_order_id 不能为空", field="gateway_order_id")
        if not isinstance(self.amount, Decimal):
            self.amount = Decimal(str(self.amount))
        if self.amount <= 0:
            raise DomainValidationException(
                f"捐赠金额必须大于0: {self.amount}",
                field="amount"
            )
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainValidationException(
                f"无效的货币代码: {self.currency}",
                field="currency"
            )
        self.currency = self.currency.upper()
        self.payment_status = DonationStatus(self.payment_status)
        self.last_verified_at = _ensure_utc(self.last_verified_at)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)

    def decide(self, target: DonationStatus) -> TransitionDecision:
        return decide_transition(self.payment_status, target)
