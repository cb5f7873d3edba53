import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Импортируем Base для создания/удаления таблиц
from multicast_store import create_tables, MulticastClient
from multicast_store.db.base import Base
from multicast_store.models import EUI64
from multicast_store.repositories import MulticastGroupRepository


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """
    Движок на in-memory SQLite. StaticPool, чтобы все сессии видели одну и ту же БД.
    После теста все таблицы удаляются для полной изоляции.
    """
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_tables(engine)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def multicast_repo(db_engine) -> MulticastGroupRepository:
    session_factory = async_sessionmaker(bind=db_engine, expire_on_commit=False)
    return MulticastGroupRepository(session_factory)


@pytest_asyncio.fixture(scope="function")
async def multicast_client(db_engine, multicast_repo) -> MulticastClient:
    # движок закрывает фикстура db_engine
    return MulticastClient(multicast_repo=multicast_repo)


@pytest.fixture
def dev_euis() -> list[EUI64]:
    return [
        EUI64.from_hex("0102030405060701"),
        EUI64.from_hex("0102030405060702"),
        EUI64.from_hex("0102030405060703"),
    ]
