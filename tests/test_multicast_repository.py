import logging
import pytest
from uuid import uuid4
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from multicast_store.context import bind_context_id
from multicast_store.exceptions import ConflictError, DatabaseError, InvalidKeyError, NotFoundError
from multicast_store.models import EUI64
from multicast_store.repositories import MulticastGroupRepository, pg_repositoryMulticast

# Помечаем все тесты в этом файле для работы с asyncio
pytestmark = pytest.mark.asyncio

REPO_LOGGER = "multicast_store.repositories.pg_repositoryMulticast"


async def test_add_then_list_both_directions(multicast_repo: MulticastGroupRepository, dev_euis):
    """После добавления связь видна и со стороны устройства, и со стороны группы."""
    # --- ARRANGE ---
    group_id = uuid4()
    dev_eui = dev_euis[0]

    # --- ACT ---
    await multicast_repo.add_device_to_multicast_group(dev_eui, group_id)

    # --- ASSERT ---
    assert await multicast_repo.get_multicast_groups_for_dev_eui(dev_eui) == [group_id]
    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [dev_eui]


async def test_add_accepts_hex_string(multicast_repo: MulticastGroupRepository):
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group("0102030405060708", group_id)

    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [EUI64.from_hex("0102030405060708")]


async def test_double_add_raises_conflict(multicast_repo: MulticastGroupRepository, dev_euis):
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    with pytest.raises(ConflictError) as exc_info:
        await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    # Conflict - это тоже ошибка хранилища
    assert isinstance(exc_info.value, DatabaseError)
    assert exc_info.value.operation == "insert error"
    assert exc_info.value.__cause__ is exc_info.value.original
    # строка осталась одна
    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [dev_euis[0]]


async def test_remove_then_query(multicast_repo: MulticastGroupRepository, dev_euis):
    group_a, group_b = uuid4(), uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_a)
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_b)

    await multicast_repo.remove_device_from_multicast_group(dev_euis[0], group_a)

    assert await multicast_repo.get_multicast_groups_for_dev_eui(dev_euis[0]) == [group_b]
    assert await multicast_repo.get_dev_euis_for_multicast_group(group_a) == []


async def test_double_remove_raises_not_found(multicast_repo: MulticastGroupRepository, dev_euis):
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)
    await multicast_repo.remove_device_from_multicast_group(dev_euis[0], group_id)

    with pytest.raises(NotFoundError):
        await multicast_repo.remove_device_from_multicast_group(dev_euis[0], group_id)


async def test_remove_unknown_pair_keeps_other_rows(multicast_repo: MulticastGroupRepository, dev_euis):
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    with pytest.raises(NotFoundError):
        await multicast_repo.remove_device_from_multicast_group(dev_euis[1], group_id)

    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [dev_euis[0]]


async def test_empty_results_are_not_errors(multicast_repo: MulticastGroupRepository, dev_euis):
    assert await multicast_repo.get_multicast_groups_for_dev_eui(dev_euis[0]) == []
    assert await multicast_repo.get_dev_euis_for_multicast_group(uuid4()) == []


async def test_batch_add_with_duplicates(multicast_repo: MulticastGroupRepository, dev_euis):
    """[D1, D2, D1] -> ровно две строки, без ошибки."""
    group_id = uuid4()
    d1, d2 = dev_euis[0], dev_euis[1]

    await multicast_repo.batch_add_devices_to_multicast_group([d1, d2, d1], group_id)

    members = await multicast_repo.get_dev_euis_for_multicast_group(group_id)
    assert sorted(members) == [d1, d2]


async def test_batch_add_is_idempotent(multicast_repo: MulticastGroupRepository, dev_euis):
    group_id = uuid4()

    await multicast_repo.batch_add_devices_to_multicast_group(dev_euis, group_id)
    first = sorted(await multicast_repo.get_dev_euis_for_multicast_group(group_id))
    await multicast_repo.batch_add_devices_to_multicast_group(dev_euis, group_id)
    second = sorted(await multicast_repo.get_dev_euis_for_multicast_group(group_id))

    assert first == second == sorted(dev_euis)


async def test_batch_add_over_existing_single_add(multicast_repo: MulticastGroupRepository, dev_euis):
    """Пакет поверх уже существующей пары не дает Conflict."""
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    await multicast_repo.batch_add_devices_to_multicast_group(dev_euis[:2], group_id)

    assert sorted(await multicast_repo.get_dev_euis_for_multicast_group(group_id)) == sorted(dev_euis[:2])


async def test_batch_add_refreshes_created_at(multicast_repo: MulticastGroupRepository, dev_euis, monkeypatch):
    """Повторный пакет не дублирует строку, а переписывает created_at временем операции."""
    group_id = uuid4()
    first = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
    second = datetime(2024, 6, 1, 12, 30, tzinfo=timezone.utc)

    monkeypatch.setattr(pg_repositoryMulticast, "_now", lambda: first)
    await multicast_repo.batch_add_devices_to_multicast_group([dev_euis[0]], group_id)
    [before] = await multicast_repo.get_memberships_for_multicast_group(group_id)

    monkeypatch.setattr(pg_repositoryMulticast, "_now", lambda: second)
    await multicast_repo.batch_add_devices_to_multicast_group([dev_euis[0]], group_id)
    [after] = await multicast_repo.get_memberships_for_multicast_group(group_id)

    assert before.created_at == first
    assert after.dev_eui == before.dev_eui
    assert after.created_at == second


async def test_created_at_is_utc_aware(multicast_repo: MulticastGroupRepository, dev_euis):
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    [m] = await multicast_repo.get_memberships_for_multicast_group(group_id)

    assert m.created_at.tzinfo is not None
    assert m.created_at.utcoffset() == timedelta(0)


async def test_batch_add_is_atomic(multicast_repo: MulticastGroupRepository, dev_euis):
    """Невалидный ключ в середине пакета откатывает все изменения пакета."""
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    with pytest.raises(InvalidKeyError):
        await multicast_repo.batch_add_devices_to_multicast_group(
            [dev_euis[1], "not-a-dev-eui", dev_euis[2]], group_id
        )

    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [dev_euis[0]]
    assert await multicast_repo.get_multicast_groups_for_dev_eui(dev_euis[1]) == []


async def test_batch_add_storage_failure_is_wrapped(multicast_repo: MulticastGroupRepository, dev_euis):
    with pytest.raises(DatabaseError) as exc_info:
        await multicast_repo.batch_add_devices_to_multicast_group(dev_euis, "not-a-uuid")

    assert exc_info.value.operation == "insert or update error"
    assert not isinstance(exc_info.value, ConflictError)
    assert exc_info.value.__cause__ is not None


async def test_batch_add_empty_sequence(multicast_repo: MulticastGroupRepository, caplog):
    group_id = uuid4()
    caplog.set_level(logging.INFO, logger=REPO_LOGGER)

    await multicast_repo.batch_add_devices_to_multicast_group([], group_id)

    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == []
    assert [r for r in caplog.records if r.name == REPO_LOGGER] == []


async def test_batch_add_logs_each_device_in_order(multicast_repo: MulticastGroupRepository, dev_euis, caplog):
    group_id = uuid4()
    batch = [dev_euis[2], dev_euis[0], dev_euis[2]]
    caplog.set_level(logging.INFO, logger=REPO_LOGGER)

    await multicast_repo.batch_add_devices_to_multicast_group(batch, group_id)

    records = [r for r in caplog.records if r.name == REPO_LOGGER and r.levelno == logging.INFO]
    assert [r.dev_eui for r in records] == [str(d) for d in batch]
    assert all(r.multicast_group_id == str(group_id) for r in records)
    assert all(r.getMessage() == "device added to multicast-group" for r in records)


async def test_batch_add_accepts_generator(multicast_repo: MulticastGroupRepository, dev_euis):
    """Пакет принимает любой итерируемый объект, в том числе генератор."""
    group_id = uuid4()

    await multicast_repo.batch_add_devices_to_multicast_group((str(d) for d in dev_euis), group_id)

    assert sorted(await multicast_repo.get_dev_euis_for_multicast_group(group_id)) == sorted(dev_euis)


async def test_check_connection(multicast_repo: MulticastGroupRepository):
    await multicast_repo.check_connection()


async def test_log_events_carry_context_id(multicast_repo: MulticastGroupRepository, dev_euis, caplog):
    group_id = uuid4()
    caplog.set_level(logging.INFO, logger=REPO_LOGGER)

    with bind_context_id() as ctx_id:
        await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)
        await multicast_repo.remove_device_from_multicast_group(dev_euis[0], group_id)

    records = [r for r in caplog.records if r.name == REPO_LOGGER and r.levelno == logging.INFO]
    assert [r.getMessage() for r in records] == [
        "device added to multicast-group",
        "device removed from multicast-group",
    ]
    assert all(r.ctx_id == ctx_id for r in records)
    assert all(r.dev_eui == str(dev_euis[0]) for r in records)


async def test_failed_rollback_does_not_mask_original_error(multicast_repo: MulticastGroupRepository, dev_euis, monkeypatch):
    """Ошибка rollback в одиночных операциях не подменяет Conflict / NotFound."""
    group_id = uuid4()
    await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    async def _broken_rollback(self):
        raise OperationalError("rollback", {}, Exception("connection lost"))

    monkeypatch.setattr(AsyncSession, "rollback", _broken_rollback)

    with pytest.raises(ConflictError):
        await multicast_repo.add_device_to_multicast_group(dev_euis[0], group_id)

    with pytest.raises(NotFoundError):
        await multicast_repo.remove_device_from_multicast_group(dev_euis[1], group_id)

    assert await multicast_repo.get_dev_euis_for_multicast_group(group_id) == [dev_euis[0]]
