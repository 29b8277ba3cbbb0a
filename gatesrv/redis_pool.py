"""A fixed-size, blocking pool of authenticated Redis connections."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import redis

log = logging.getLogger(__name__)

ConnectionFactory = Callable[[str, int, str], Any]


class PoolClosedError(RuntimeError):
    """Raised when a connection is requested from a closed pool."""


def _redis_factory(host: str, port: int, password: str) -> Any:
    client = redis.Redis(
        host=host,
        port=port,
        password=password or None,
        decode_responses=True,
        single_connection_client=True,
    )
    try:
        client.ping()
    except Exception:
        client.close()
        raise
    return client


def _close_quietly(conn: Any) -> None:
    close = getattr(conn, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception as exc:
        log.debug("error while closing redis connection: %s", exc)


class RedisConPool:
    """Opens up to ``pool_size`` connections; those that fail are skipped.

    ``factory(host, port, password)`` must return an authenticated
    connection or raise.
    """

    def __init__(
        self,
        pool_size: int,
        host: str,
        port: int,
        password: str,
        factory: ConnectionFactory | None = None,
    ) -> None:
        self.pool_size = pool_size
        self.host = host
        self.port = port
        self._factory = factory or _redis_factory
        self._idle: deque[Any] = deque()
        self._cond = threading.Condition()
        self._closed = False
        for _ in range(pool_size):
            try:
                conn = self._factory(host, port, password)
            except Exception as exc:
                log.warning("redis connection to %s:%s failed: %s", host, port, exc)
                continue
            self._idle.append(conn)
        log.info("redis pool opened %d of %d connections", len(self._idle), pool_size)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def available(self) -> int:
        with self._cond:
            return len(self._idle)

    def get_connection(self) -> Any:
        """Wait for an idle connection; raises PoolClosedError once closed."""
        with self._cond:
            self._cond.wait_for(lambda: self._closed or bool(self._idle))
            if self._closed:
                raise PoolClosedError("redis connection pool is closed")
            return self._idle.popleft()

    def return_connection(self, conn: Any) -> None:
        """Give a connection back; it is closed if the pool has been closed."""
        with self._cond:
            if self._closed:
                _close_quietly(conn)
                return
            self._idle.append(conn)
            self._cond.notify()

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Borrow a connection for the duration of the block."""
        conn = self.get_connection()
        try:
            yield conn
        finally:
            self.return_connection(conn)

    def close(self) -> None:
        """Close the pool, wake every waiter and close idle connections."""
        with self._cond:
            self._closed = True
            idle, self._idle = list(self._idle), deque()
            self._cond.notify_all()
        for conn in idle:
            _close_quietly(conn)

    def __enter__(self) -> "RedisConPool":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()