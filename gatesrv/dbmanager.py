"""Database pool set-up from the gate server configuration."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pymysql

from .config import ConfigMgr
from .dbpool import Connector, ConnectionWrapper, DBConnectionPool, DBPoolConfig, DBPoolError, PoolStats
from .errors import (
    DB_DEFAULT_EVICTION_INTERVAL,
    DB_DEFAULT_INITIAL_SIZE,
    DB_DEFAULT_MAX_IDLE_TIME,
    DB_DEFAULT_MAX_SIZE,
    DB_DEFAULT_MAX_WAIT_QUEUE_SIZE,
    DB_DEFAULT_MIN_SIZE,
    DB_DEFAULT_TIMEOUT,
    DB_DEFAULT_VALIDATION_INTERVAL,
    MYSQL_CONFIG_SECTION,
    MYSQL_HOST_KEY,
    MYSQL_PASSWD_KEY,
    MYSQL_PORT_KEY,
    MYSQL_SCHEMA_KEY,
    MYSQL_USER_KEY,
)

log = logging.getLogger(__name__)

DEFAULT_MYSQL_PORT = "3306"


def build_pool_config(config: ConfigMgr) -> DBPoolConfig:
    """Build pool settings from the Mysql section; host becomes "host:port".

    Raises ValueError if the configured port is not a number.
    """
    section = config[MYSQL_CONFIG_SECTION]
    port = section[MYSQL_PORT_KEY] or DEFAULT_MYSQL_PORT
    try:
        int(port)
    except ValueError:
        raise ValueError(f"invalid database port: {port!r}") from None
    return DBPoolConfig(
        host=f"{section[MYSQL_HOST_KEY]}:{port}",
        user=section[MYSQL_USER_KEY],
        password=section[MYSQL_PASSWD_KEY],
        database=section[MYSQL_SCHEMA_KEY],
        initial_size=DB_DEFAULT_INITIAL_SIZE,
        max_size=DB_DEFAULT_MAX_SIZE,
        min_size=DB_DEFAULT_MIN_SIZE,
        max_idle_time=DB_DEFAULT_MAX_IDLE_TIME,
        connection_timeout=DB_DEFAULT_TIMEOUT,
        validation_interval=DB_DEFAULT_VALIDATION_INTERVAL,
        time_between_eviction_runs=DB_DEFAULT_EVICTION_INTERVAL,
        max_wait_queue_size=DB_DEFAULT_MAX_WAIT_QUEUE_SIZE,
    )


def mysql_connector(config: DBPoolConfig) -> Any:
    """Open a MySQL connection for the pool, splitting "host:port"."""
    host, sep, port = config.host.rpartition(":")
    if not sep:
        host, port = config.host, DEFAULT_MYSQL_PORT
    return pymysql.connect(
        host=host or "localhost",
        port=int(port),
        user=config.user,
        password=config.password,
        database=config.database or None,
        autocommit=True,
    )


class DBManager:
    """Owns the application's database connection pool."""

    def __init__(self, config: ConfigMgr, connect: Connector | None = None) -> None:
        self._config = config
        self._connect = connect or mysql_connector
        self._pool: DBConnectionPool | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        pool = self._pool
        return pool is not None and pool.running

    def init_pool(self) -> None:
        """Create and start the pool; does nothing if it is already running.

        Raises ValueError for a bad port and DBPoolError if the pool
        cannot open its initial connections.
        """
        with self._lock:
            if self.initialized:
                return
            pool_config = build_pool_config(self._config)
            pool = DBConnectionPool(self._connect)
            pool.start(pool_config)
            self._pool = pool
        log.info("database connection pool initialized")

    def _require_pool(self) -> DBConnectionPool:
        pool = self._pool
        if pool is None or not pool.running:
            raise DBPoolError("database connection pool not initialized")
        return pool

    @contextmanager
    def acquire(self, timeout: float | None = None) -> Iterator[ConnectionWrapper]:
        """Check out a pooled connection for the duration of the block."""
        pool = self._require_pool()
        wrapper = pool.acquire(timeout)
        try:
            yield wrapper
        finally:
            pool.release(wrapper)

    def shutdown(self) -> None:
        """Close the pool; errors while closing are logged, not raised."""
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return
        try:
            pool.shutdown()
            log.info("database connection pool has been closed")
        except Exception:
            log.exception("error while closing the database connection pool")

    def stats(self) -> PoolStats:
        """Return the pool's counters; raises DBPoolError if not initialized."""
        return self._require_pool().stats()