from __future__ import annotations
from uuid import UUID

from sqlalchemy import Index, PrimaryKeyConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAt
from .types import EUI64Type
from multicast_store.models.keys import EUI64


class DeviceMulticastGroupORM(Base):
    """
    Связь устройство <-> мультикаст-группа.
    Сами устройства и группы живут вне этого пакета, поэтому внешних ключей нет.
    """
    __tablename__ = "device_multicast_group"

    dev_eui: Mapped[EUI64] = mapped_column(EUI64Type(), nullable=False)
    multicast_group_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    created_at: Mapped[CreatedAt]

    __table_args__ = (
        # составной PK и есть ограничение уникальности пары (цель ON CONFLICT)
        PrimaryKeyConstraint("dev_eui", "multicast_group_id", name="pk_device_multicast_group"),
        Index("ix_device_multicast_group_dev_eui", "dev_eui"),
        Index("ix_device_multicast_group_multicast_group_id", "multicast_group_id"),
    )
