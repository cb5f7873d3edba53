# multicast_store/db/__init__.py

from .base import Base, get_session
from .types import EUI64Type, UTCDateTime
from .device_multicast_group_orm import DeviceMulticastGroupORM
from .errors import handle_db_error
from .uow import AsyncUnitOfWork


__all__ = [
    "Base",
    "get_session",
    "EUI64Type",
    "UTCDateTime",
    "DeviceMulticastGroupORM",
    "handle_db_error",
    "AsyncUnitOfWork",
]
