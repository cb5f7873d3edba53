from __future__ import annotations
import logging
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker, AsyncSession

from .errors import handle_db_error

logger = logging.getLogger(__name__)


async def rollback_quietly(session: AsyncSession) -> None:
    """Rollback best-effort: ошибка логируется и не заменяет исходную."""
    try:
        await session.rollback()
    except SQLAlchemyError as e:
        logger.warning(f"rollback failed: {e}")


class AsyncUnitOfWork:
    """
    Одна транзакция на весь блок ``async with``.

    - вход: открывает сессию и транзакцию ("begin error");
    - выход без исключения: commit ("tx commit error");
    - выход с исключением (включая отмену задачи): rollback.
    Rollback выполняется best-effort: его ошибка логируется и не заменяет исходную.
    Сессия закрывается на любом пути выхода.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._sf = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self):
        self.session = self._sf()
        try:
            await self.session.begin()
        except SQLAlchemyError as e:
            await self.session.close()
            raise handle_db_error(e, "begin error") from e
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if exc_type is not None:
                await self.rollback_quietly()
                return False
            try:
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.rollback_quietly()
                raise handle_db_error(e, "tx commit error") from e
        finally:
            await self.session.close()
        return False

    async def rollback_quietly(self) -> None:
        await rollback_quietly(self.session)
