"""add_donations_table

Revision ID: 3b1f6c2d8e41
Revises:
Create Date: 2025-10-19 09:30:12.418204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3b1f6c2d8e41'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'donations',
        sa.Column('id', sa.String(length=36), nullable=False, comment='捐赠ID'),
        sa.Column('user_id', sa.String(length=64), nullable=True, comment='捐赠用户ID（可匿名）'),
        sa.Column('donation_type', sa.String(length=50), nullable=True, comment='捐赠类型'),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False, comment='捐赠金额'),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='INR', comment='货币代码 ISO-4217'),
        sa.Column('payment_gateway', sa.String(length=50), nullable=False, server_default='cashfree', comment='支付网关'),
        sa.Column('gateway_order_id', sa.String(length=100), nullable=False, comment='网关订单号（创建后不可变更）'),
        sa.Column('payment_id', sa.String(length=100), nullable=True, comment='网关支付ID'),
        sa.Column('payment_status', sa.String(length=20), nullable=False, server_default='pending', comment='支付状态: pending/completed/failed/refunded'),
        sa.Column('last_verified_at', sa.DateTime(timezone=True), nullable=True, comment='最近一次状态迁移时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'completed', 'failed', 'refunded')",
            name='ck_donations_payment_status',
        ),
        sa.CheckConstraint('amount > 0', name='ck_donations_amount_positive'),
    )
    op.create_index('uq_donations_gateway_order_id', 'donations', ['gateway_order_id'], unique=True)
    op.create_index('ix_donations_status_updated_at', 'donations', ['payment_status', 'updated_at'], unique=False)
    op.create_index(op.f('ix_donations_payment_status'), 'donations', ['payment_status'], unique=False)
    op.create_index(op.f('ix_donations_user_id'), 'donations', ['user_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_donations_user_id'), table_name='donations')
    op.drop_index(op.f('ix_donations_payment_status'), table_name='donations')
    op.drop_index('ix_donations_status_updated_at', table_name='donations')
    op.drop_index('uq_donations_gateway_order_id', table_name='donations')
    op.drop_table('donations')
