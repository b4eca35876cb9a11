"""
捐赠仓储接口 - 定义捐赠数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .entity import Donation, DonationStatus


class DonationRepository(ABC):
    """捐赠仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def add(self, donation: Donation) -> Donation:
        """新增捐赠记录（pending）"""
        pass

    @abstractmethod
    async def get_by_id(self, donation_id: str) -> Optional[Donation]:
        """根据主键获取捐赠"""
        pass

    @abstractmethod
    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Donation]:
        """根据网关订单号获取捐赠"""
        pass

    @abstractmethod
    async def transition_status(
        self,
        donation_id: str,
        *,
        expected: DonationStatus,
        new_status: DonationStatus,
        verified_at: datetime,
        payment_id: Optional[str] = None,
    ) -> bool:
        """
        条件更新（compare-and-set）：仅当当前状态等于 expected 时写入。

        返回 True 表示本次写入生效；False 表示已被并发请求抢先修改。
        """
        pass

    @abstractmethod
    async def list_stale_pending(self, older_than: datetime, limit: int = 100) -> List[Donation]:
        """获取 updated_at 早于 older_than 仍为 pending 的捐赠"""
        pass
