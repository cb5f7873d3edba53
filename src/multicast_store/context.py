# Файл: multicast_store/context.py

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import UUID, uuid4

# Идентификатор запроса для сквозной трассировки логов
ctx_id_var: ContextVar[Optional[UUID]] = ContextVar("ctx_id", default=None)


def get_context_id() -> Optional[UUID]:
    return ctx_id_var.get()


@contextmanager
def bind_context_id(ctx_id: Optional[UUID] = None) -> Iterator[UUID]:
    """
    Привязывает ctx_id к текущему контексту (задаче asyncio / потоку).
    Если ctx_id не передан, генерируется новый.
    """
    ctx_id = ctx_id or uuid4()
    token = ctx_id_var.set(ctx_id)
    try:
        yield ctx_id
    finally:
        ctx_id_var.reset(token)
