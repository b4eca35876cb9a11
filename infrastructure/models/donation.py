"""
捐赠数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import CheckConstraint, Column, String, Numeric, DateTime, Index
from datetime import datetime, timezone

from .base import Base


class DonationModel(Base):
    """
    捐赠数据库模型

    这是数据库表的映射，不包含业务逻辑
    所有业务规则都在 domain.donation.entity.Donation 中
    """
    __tablename__ = "donations"

    # 主键（uuid 字符串）
    id = Column(String(36), primary_key=True, comment="捐赠ID")

    user_id = Column(String(64), nullable=True, index=True, comment="捐赠用户ID（可匿名）")
    donation_type = Column(String(50), nullable=True, comment="捐赠类型")

    # 金额信息（使用 Numeric 存储精确金额）
    amount = Column(Numeric(precision=15, scale=2), nullable=False, comment="捐赠金额")
    currency = Column(String(3), nullable=False, default="INR", comment="货币代码 ISO-4217")

    # 支付网关信息
    payment_gateway = Column(String(50), nullable=False, default="cashfree", comment="支付网关")
    gateway_order_id = Column(String(100), nullable=False, comment="网关订单号（创建后不可变更）")
    payment_id = Column(String(100), nullable=True, comment="网关支付ID")

    # 状态
    payment_status = Column(
        String(20),
        nullable=False,
        default="pending",
        index=True,
        comment="支付状态: pending/completed/failed/refunded"
    )

    # 时间戳
    last_verified_at = Column(DateTime(timezone=True), nullable=True, comment="最近一次状态迁移时间")
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name="ck_donations_payment_status",
        ),
        CheckConstraint("amount > 0", name="ck_donations_amount_positive"),
        Index("uq_donations_gateway_order_id", "gateway_order_id", unique=True),
        Index("ix_donations_status_updated_at", "payment_status", "updated_at"),
    )

    def __repr__(self):
        return (
            f"<DonationModel(id={self.id}, gateway_order_id={self.gateway_order_id}, "
            f"status={self.payment_status})>"
        )
