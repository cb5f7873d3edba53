# Файл: multicast_store/repositories/pg_repositoryMulticast.py

import logging
from uuid import UUID
from typing import Any, Iterable, List
from datetime import datetime, timezone

from sqlalchemy import select, insert, delete, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import CompileError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from multicast_store.context import get_context_id
from multicast_store.db import DeviceMulticastGroupORM, AsyncUnitOfWork
from multicast_store.db.base import get_session
from multicast_store.db.errors import handle_db_error
from multicast_store.db.uow import rollback_quietly
from multicast_store.models import EUI64, MembershipInDB

logger = logging.getLogger(__name__)

membership = DeviceMulticastGroupORM.__table__

# insert() с поддержкой ON CONFLICT для каждого диалекта
UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MulticastGroupRepository:
    """
    Репозиторий членства устройств в мультикаст-группах.

    Каждая ошибка БД проходит через ``handle_db_error`` и превращается в
    ConflictError / NotFoundError / DatabaseError.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _log_fields(dev_eui: EUI64, multicast_group_id: UUID) -> dict[str, Any]:
        return {
            "dev_eui": str(dev_eui),
            "multicast_group_id": str(multicast_group_id),
            "ctx_id": get_context_id(),
        }

    @staticmethod
    def _upsert_statement(dialect_name: str):
        insert_fn = UPSERT_DIALECTS.get(dialect_name)
        if insert_fn is None:
            raise CompileError(f"upsert is not supported for dialect '{dialect_name}'")
        stmt = insert_fn(membership)
        return stmt.on_conflict_do_update(
            index_elements=[membership.c.dev_eui, membership.c.multicast_group_id],
            set_={"created_at": stmt.excluded.created_at},
        )

    async def check_connection(self):
        """Проверяет соединение с базой данных, выполняя простой запрос."""
        logger.debug("Checking database connection...")
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(text("SELECT 1"))
                logger.debug("Database connection successful.")
            except SQLAlchemyError as e:
                raise handle_db_error(e, "connection error") from e

    async def add_device_to_multicast_group(self, dev_eui: EUI64 | str | bytes, multicast_group_id: UUID) -> None:
        """
        Добавляет устройство в мультикаст-группу.
        Повторный вызов для той же пары -> ConflictError.
        """
        dev_eui = EUI64.parse(dev_eui)
        stmt = insert(membership).values(
            dev_eui=dev_eui,
            multicast_group_id=multicast_group_id,
            created_at=_now(),
        )
        async with get_session(self._session_factory) as session:
            try:
                await session.execute(stmt)
                await session.commit()
            except SQLAlchemyError as e:
                await rollback_quietly(session)
                raise handle_db_error(e, "insert error") from e

        logger.info("device added to multicast-group", extra=self._log_fields(dev_eui, multicast_group_id))

    async def batch_add_devices_to_multicast_group(
        self,
        dev_euis: Iterable[EUI64 | str | bytes],
        multicast_group_id: UUID,
    ) -> None:
        """
        Добавляет все устройства в группу одной транзакцией (upsert).
        Уже существующие пары не дают ошибки: у них обновляется created_at.
        Любая ошибка откатывает весь пакет.
        """
        async with AsyncUnitOfWork(self._session_factory) as uow:
            try:
                stmt = self._upsert_statement(uow.session.get_bind().dialect.name)
            except SQLAlchemyError as e:
                raise handle_db_error(e, "prepare error") from e

            for raw in dev_euis:
                dev_eui = EUI64.parse(raw)
                try:
                    await uow.session.execute(
                        stmt,
                        {
                            "dev_eui": dev_eui,
                            "multicast_group_id": multicast_group_id,
                            "created_at": _now(),
                        },
                    )
                except SQLAlchemyError as e:
                    raise handle_db_error(e, "insert or update error") from e

                logger.info("device added to multicast-group", extra=self._log_fields(dev_eui, multicast_group_id))

    async def remove_device_from_multicast_group(self, dev_eui: EUI64 | str | bytes, multicast_group_id: UUID) -> None:
        """
        Удаляет устройство из мультикаст-группы.
        Если такой пары нет -> NotFoundError.
        """
        dev_eui = EUI64.parse(dev_eui)
        stmt = delete(membership).where(
            membership.c.dev_eui == dev_eui,
            membership.c.multicast_group_id == multicast_group_id,
        )
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    raise NoResultFound(
                        f"device {dev_eui} is not a member of multicast-group {multicast_group_id}"
                    )
                await session.commit()
            except SQLAlchemyError as e:
                await rollback_quietly(session)
                raise handle_db_error(e, "delete error") from e

        logger.info("device removed from multicast-group", extra=self._log_fields(dev_eui, multicast_group_id))

    async def get_multicast_groups_for_dev_eui(self, dev_eui: EUI64 | str | bytes) -> List[UUID]:
        """Возвращает ID мультикаст-групп, в которых состоит устройство."""
        dev_eui = EUI64.parse(dev_eui)
        stmt = select(membership.c.multicast_group_id).where(membership.c.dev_eui == dev_eui)
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as e:
                raise handle_db_error(e, "select error") from e

    async def get_dev_euis_for_multicast_group(self, multicast_group_id: UUID) -> List[EUI64]:
        """Возвращает DevEUI всех устройств мультикаст-группы."""
        stmt = select(membership.c.dev_eui).where(membership.c.multicast_group_id == multicast_group_id)
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(stmt)
                return list(result.scalars().all())
            except SQLAlchemyError as e:
                raise handle_db_error(e, "select error") from e

    async def get_memberships_for_multicast_group(self, multicast_group_id: UUID) -> List[MembershipInDB]:
        """То же, что get_dev_euis_for_multicast_group, но вместе с created_at."""
        stmt = (
            select(membership)
            .where(membership.c.multicast_group_id == multicast_group_id)
            .order_by(membership.c.created_at)
        )
        async with get_session(self._session_factory) as session:
            try:
                result = await session.execute(stmt)
                return [MembershipInDB.model_validate(dict(row)) for row in result.mappings().all()]
            except SQLAlchemyError as e:
                raise handle_db_error(e, "select error") from e
