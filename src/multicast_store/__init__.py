# Файл: src/multicast_store/__init__.py

from typing import Optional
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from .client import MulticastClient
from .config import get_settings, DataClientConfig, PostgresConfig
from .context import bind_context_id, get_context_id
from .db.base import Base
from .db.errors import handle_db_error
from .models import EUI64, MembershipInDB
from .repositories.pg_repositoryMulticast import MulticastGroupRepository

from .exceptions import *


def create_engine_from_config(config: PostgresConfig) -> AsyncEngine:
    """
    Создает AsyncEngine. Параметры пула и asyncpg передаются только для PostgreSQL,
    для SQLite (тесты, локальный запуск) используются настройки по умолчанию.
    """
    dsn = config.get_pg_dsn()
    if make_url(dsn).get_backend_name() != "postgresql":
        return create_async_engine(dsn)

    connect_args = {
        "server_settings": {
            "application_name": config.application_name
        }
    }
    if config.command_timeout is not None:
        connect_args["command_timeout"] = config.command_timeout

    return create_async_engine(
        dsn,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=config.pool_pre_ping,
        connect_args=connect_args,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Создает таблицы (миграций нет, только metadata.create_all)."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except SQLAlchemyError as e:
        raise handle_db_error(e, "create tables error") from e



def create_multicast_client(config: Optional[DataClientConfig] = None) -> MulticastClient:
    """
    Фабричная функция для создания и конфигурации MulticastClient.

    :param config: Единый объект с настройками.
                   Если не предоставлен, используются переменные окружения.
    :return: Сконфигурированный экземпляр MulticastClient.
    """
    if config is None:
        s = get_settings()
        config = DataClientConfig(postgres=s.postgres)

    engine = create_engine_from_config(config.postgres)
    session_factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    multicast_repo = MulticastGroupRepository(session_factory)

    return MulticastClient(multicast_repo=multicast_repo, engine=engine)


__all__ = [
    "MulticastClient", "MulticastGroupRepository",
    "create_multicast_client", "create_engine_from_config", "create_tables",
    "DataClientConfig", "PostgresConfig",
    "EUI64", "MembershipInDB",
    "bind_context_id", "get_context_id",
    "DataClientError", "DatabaseError", "ConflictError", "NotFoundError", "InvalidKeyError",
]
