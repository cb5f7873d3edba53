# Файл: multicast_store/models/membership.py

from __future__ import annotations
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel

from .keys import EUI64


# Схема членства устройства в мультикаст-группе
class MembershipCreate(BaseModel):
    dev_eui: EUI64
    multicast_group_id: UUID


# Схема членства, возвращаемая из БД
class MembershipInDB(MembershipCreate):
    created_at: datetime

    model_config = {"from_attributes": True}
