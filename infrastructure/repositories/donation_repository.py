"""
捐赠仓储实现 - 使用SQLAlchemy实现数据访问
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import PersistenceException
from domain.donation.entity import Donation, DonationStatus
from domain.donation.repository import DonationRepository
from domain.donation.service import DonationAlreadyExistsException
from infrastructure.models.donation import DonationModel


logger = get_logger(__name__)


class SQLAlchemyDonationRepository(DonationRepository):
    """捐赠仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: DonationModel) -> Donation:
        """将数据库模型转换为领域实体"""
        return Donation(
            id=model.id,
            user_id=model.user_id,
            donation_type=model.donation_type,
            gateway_order_id=model.gateway_order_id,
            amount=Decimal(str(model.amount)),
            currency=model.currency,
            payment_status=DonationStatus(model.payment_status),
            payment_id=model.payment_id,
            payment_gateway=model.payment_gateway,
            last_verified_at=model.last_verified_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Donation) -> DonationModel:
        """将领域实体转换为数据库模型"""
        model = DonationModel(
            id=entity.id,
            user_id=entity.user_id,
            donation_type=entity.donation_type,
            gateway_order_id=entity.gateway_order_id,
            amount=entity.amount,
            currency=entity.currency,
            payment_status=entity.payment_status.value,
            payment_id=entity.payment_id,
            payment_gateway=entity.payment_gateway,
            last_verified_at=entity.last_verified_at,
        )
        # None 时交给列默认值
        if entity.created_at is not None:
            model.created_at = entity.created_at
        if entity.updated_at is not None:
            model.updated_at = entity.updated_at
        return model

    async def add(self, donation: Donation) -> Donation:
        """新增捐赠记录"""
        db_donation = self._to_model(donation)
        self.session.add(db_donation)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning("donation_create_conflict", gateway_order_id=donation.gateway_order_id)
            raise DonationAlreadyExistsException(donation.gateway_order_id) from e
        except SQLAlchemyError as e:
            raise PersistenceException("Failed to insert donation") from e
        await self.session.refresh(db_donation)
        logger.info(
            "donation_created",
            donation_id=db_donation.id,
            gateway_order_id=db_donation.gateway_order_id,
            amount=str(db_donation.amount),
        )
        return self._to_entity(db_donation)

    async def get_by_id(self, donation_id: str) -> Optional[Donation]:
        """根据ID获取捐赠"""
        result = await self.session.execute(
            select(DonationModel).where(DonationModel.id == donation_id)
        )
        db_donation = result.scalar_one_or_none()
        return self._to_entity(db_donation) if db_donation else None

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Donation]:
        """根据网关订单号获取捐赠"""
        result = await self.session.execute(
            select(DonationModel).where(DonationModel.gateway_order_id == gateway_order_id)
        )
        db_donation = result.scalar_one_or_none()
        return self._to_entity(db_donation) if db_donation else None

    async def transition_status(
        self,
        donation_id: str,
        *,
        expected: DonationStatus,
        new_status: DonationStatus,
        verified_at: datetime,
        payment_id: Optional[str] = None,
    ) -> bool:
        """条件更新：WHERE id = :id AND payment_status = :expected"""
        values = {
            "payment_status": new_status.value,
            "last_verified_at": verified_at,
            "updated_at": verified_at,
        }
        if payment_id:
            values["payment_id"] = payment_id
        stmt = (
            update(DonationModel)
            .where(
                DonationModel.id == donation_id,
                DonationModel.payment_status == expected.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceException(
                "Failed to update donation status",
                details={"donation_id": donation_id},
            ) from e
        return result.rowcount == 1

    async def list_stale_pending(self, older_than: datetime, limit: int = 100) -> List[Donation]:
        """获取超时仍为 pending 的捐赠（按 updated_at 升序）"""
        result = await self.session.execute(
            select(DonationModel)
            .where(
                DonationModel.payment_status == DonationStatus.PENDING.value,
                DonationModel.updated_at < older_than,
            )
            .order_by(DonationModel.updated_at.asc())
            .limit(limit)
        )
        return [self._to_entity(m) for m in result.scalars().all()]
