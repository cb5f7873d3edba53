# Файл: multicast_store/db/errors.py
"""
Единая точка преобразования ошибок БД в исключения пакета.

Все операции репозитория передают сюда исходную ошибку вместе с меткой шага
("insert error", "tx commit error", ...) и выбрасывают результат через
``raise handle_db_error(e, "...") from e``, чтобы цепочка причин сохранялась.
"""

import logging

from sqlalchemy.exc import IntegrityError, NoResultFound

from multicast_store.exceptions import ConflictError, DatabaseError, DataClientError, NotFoundError

logger = logging.getLogger(__name__)

# SQLSTATE unique_violation
PG_UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        return code == PG_UNIQUE_VIOLATION
    # sqlite3 / aiosqlite
    if getattr(orig, "sqlite_errorname", None) in ("SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"):
        return True
    return "UNIQUE constraint failed" in str(orig)


def handle_db_error(exc: Exception, description: str) -> DataClientError:
    if isinstance(exc, NoResultFound):
        logger.debug(f"{description}: {exc}", extra={"operation": description})
        return NotFoundError(str(exc))

    if isinstance(exc, IntegrityError) and is_unique_violation(exc):
        logger.warning(f"{description}: already exists", extra={"operation": description})
        return ConflictError(f"{description}: object already exists", operation=description, original=exc)

    logger.error(f"{description}: {exc}", extra={"operation": description})
    return DatabaseError(f"{description}: {exc}", operation=description, original=exc)
