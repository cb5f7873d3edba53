import logging
from uuid import UUID
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from multicast_store.repositories import MulticastGroupRepository
from multicast_store.models import EUI64, MembershipInDB
from multicast_store.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class MulticastClient:
    """
    Единая точка доступа к членству устройств в мультикаст-группах.
    """

    def __init__(
        self,
        multicast_repo: MulticastGroupRepository,
        engine: Optional[AsyncEngine] = None,
    ):
        self.multicast_repo = multicast_repo
        self._engine = engine

    async def check_connections(self) -> dict[str, str]:
        """
        Проверяет доступность базы данных.
        Возвращает словарь со статусами.
        """
        statuses = {}
        try:
            await self.multicast_repo.check_connection()
            statuses["postgres"] = "ok"
        except DatabaseError as e:
            statuses["postgres"] = f"failed: {e}"
        return statuses

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._engine

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    async def __aenter__(self) -> "MulticastClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    # ――― membership ops ――― #

    async def add_device_to_multicast_group(self, dev_eui: EUI64 | str, multicast_group_id: UUID) -> None:
        await self.multicast_repo.add_device_to_multicast_group(dev_eui, multicast_group_id)

    async def batch_add_devices_to_multicast_group(self, dev_euis: Iterable[EUI64 | str], multicast_group_id: UUID) -> None:
        await self.multicast_repo.batch_add_devices_to_multicast_group(dev_euis, multicast_group_id)

    async def remove_device_from_multicast_group(self, dev_eui: EUI64 | str, multicast_group_id: UUID) -> None:
        await self.multicast_repo.remove_device_from_multicast_group(dev_eui, multicast_group_id)

    async def get_multicast_groups_for_dev_eui(self, dev_eui: EUI64 | str) -> List[UUID]:
        return await self.multicast_repo.get_multicast_groups_for_dev_eui(dev_eui)

    async def get_dev_euis_for_multicast_group(self, multicast_group_id: UUID) -> List[EUI64]:
        return await self.multicast_repo.get_dev_euis_for_multicast_group(multicast_group_id)

    async def get_memberships_for_multicast_group(self, multicast_group_id: UUID) -> List[MembershipInDB]:
        return await self.multicast_repo.get_memberships_for_multicast_group(multicast_group_id)
