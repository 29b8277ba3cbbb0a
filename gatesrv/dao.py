"""Base data-access helpers: results, error capture and stored-procedure calls."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterator, Mapping, Sequence
from contextlib import closing, contextmanager
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

import pymysql

log = logging.getLogger(__name__)

T = TypeVar("T")
Row = dict[str, Any]


@dataclass
class DAOResult(Generic[T]):
    """Outcome of a data-access call, with optional data."""

    success: bool = False
    message: str = ""
    data: T | None = None


def procedure_sql(name: str, count: int) -> str:
    """Return a CALL statement for ``name`` with ``count`` placeholders."""
    if count < 0:
        raise ValueError("parameter count cannot be negative")
    return f"CALL {name}({', '.join(['%s'] * count)})"


def _sql_error_message(exc: pymysql.MySQLError) -> str:
    args = exc.args
    if len(args) >= 2 and isinstance(args[0], int):
        return f"SQL error [{args[0]}]: {args[1]}"
    return f"SQL error [0]: {exc}"


def dao_guard(func: Callable[..., DAOResult[Any]]) -> Callable[..., DAOResult[Any]]:
    """Turn exceptions raised by ``func`` into failed DAOResults."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> DAOResult[Any]:
        try:
            return func(*args, **kwargs)
        except pymysql.MySQLError as exc:
            return DAOResult(False, _sql_error_message(exc))
        except Exception as exc:
            return DAOResult(False, str(exc) or "unknown error")

    return wrapper


def _rows(cursor: Any) -> list[Row]:
    if cursor.description is None:
        return []
    names = [column[0] for column in cursor.description]
    return [
        dict(row) if isinstance(row, Mapping) else dict(zip(names, row))
        for row in cursor.fetchall()
    ]


class BaseDAO:
    """Runs stored procedures on connections taken from a manager.

    The manager must offer ``acquire(timeout)`` as a context manager that
    yields an object with a ``connection`` attribute.
    """

    def __init__(self, manager: Any) -> None:
        self._manager = manager

    @contextmanager
    def _connection(self, timeout: float | None = None) -> Iterator[Any]:
        with self._manager.acquire(timeout) as wrapper:
            yield wrapper.connection

    def call_procedure(self, conn: Any, name: str, params: Sequence[Any] = ()) -> list[Row]:
        """Call a procedure and return the rows of its first result set."""
        values = tuple(params)
        with closing(conn.cursor()) as cursor:
            cursor.execute(procedure_sql(name, len(values)), values)
            return _rows(cursor)

    def call_procedure_for_update(self, conn: Any, name: str, params: Sequence[Any] = ()) -> int:
        """Call a procedure that changes data and return the affected row count."""
        values = tuple(params)
        with closing(conn.cursor()) as cursor:
            cursor.execute(procedure_sql(name, len(values)), values)
            return cursor.rowcount

    def call_procedure_multi_results(
        self, conn: Any, name: str, params: Sequence[Any] = ()
    ) -> list[list[Row]]:
        """Call a procedure and return the rows of every result set it produces."""
        values = tuple(params)
        results: list[list[Row]] = []
        with closing(conn.cursor()) as cursor:
            cursor.execute(procedure_sql(name, len(values)), values)
            while True:
                if cursor.description is not None:
                    results.append(_rows(cursor))
                if not cursor.nextset():
                    break
        return results

    @contextmanager
    def transaction(self, conn: Any) -> Iterator[Any]:
        """Run the block in a transaction, committing or rolling back.

        The connection's previous autocommit setting is restored afterwards.
        """
        previous = conn.get_autocommit()
        conn.autocommit(False)
        try:
            yield conn
            conn.commit()
        except BaseException:
            try:
                conn.rollback()
            except Exception:
                log.debug("rollback failed", exc_info=True)
            try:
                conn.autocommit(previous)
            except Exception:
                log.debug("restoring autocommit failed", exc_info=True)
            raise
        conn.autocommit(previous)