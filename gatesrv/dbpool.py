"""Thread-safe pool of database connections with health checks and idle eviction."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import (
    DB_DEFAULT_EVICTION_INTERVAL,
    DB_DEFAULT_INITIAL_SIZE,
    DB_DEFAULT_MAX_IDLE_TIME,
    DB_DEFAULT_MAX_SIZE,
    DB_DEFAULT_MAX_WAIT_QUEUE_SIZE,
    DB_DEFAULT_MIN_SIZE,
    DB_DEFAULT_TIMEOUT,
    DB_DEFAULT_VALIDATION_INTERVAL,
    ConnectionState,
)

log = logging.getLogger(__name__)


class DBPoolError(RuntimeError):
    """Raised when the pool cannot provide or manage a connection."""


@dataclass
class DBPoolConfig:
    """Settings of a connection pool; times are in seconds."""

    host: str = ""
    user: str = ""
    password: str = ""
    database: str = ""
    initial_size: int = DB_DEFAULT_INITIAL_SIZE
    max_size: int = DB_DEFAULT_MAX_SIZE
    min_size: int = DB_DEFAULT_MIN_SIZE
    max_idle_time: float = DB_DEFAULT_MAX_IDLE_TIME
    connection_timeout: float = DB_DEFAULT_TIMEOUT
    validation_interval: float = DB_DEFAULT_VALIDATION_INTERVAL
    time_between_eviction_runs: float = DB_DEFAULT_EVICTION_INTERVAL
    max_wait_queue_size: int = DB_DEFAULT_MAX_WAIT_QUEUE_SIZE


@dataclass(frozen=True)
class PoolStats:
    """A snapshot of the pool's counters."""

    total_connections: int
    active_connections: int
    idle_connections: int
    waiting_threads: int


class ConnectionWrapper:
    """A DB-API connection together with its pool bookkeeping."""

    def __init__(self, connection: Any, conn_id: int) -> None:
        self.connection = connection
        self.id = conn_id
        self._state = ConnectionState.IDLE
        self.last_access = time.monotonic()
        self._closed = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @state.setter
    def state(self, value: ConnectionState) -> None:
        self._state = value
        self.touch()

    @property
    def closed(self) -> bool:
        return self._closed

    def touch(self) -> None:
        """Record that the connection was just used."""
        self.last_access = time.monotonic()

    def ping(self) -> bool:
        """Run a trivial query; True if the connection answers correctly."""
        if self._closed or self.connection is None:
            return False
        if not getattr(self.connection, "open", True):
            return False
        try:
            cursor = self.connection.cursor()
            try:
                cursor.execute("SELECT 1")
                row = cursor.fetchone()
            finally:
                cursor.close()
        except Exception:
            return False
        return row is not None and row[0] == 1

    def close(self) -> None:
        """Close the underlying connection; calling it again does nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self.connection.close()
        except Exception as exc:
            log.debug("error while closing connection %d: %s", self.id, exc)

    def __repr__(self) -> str:
        return f"ConnectionWrapper(id={self.id}, state={self._state.name})"


Connector = Callable[[DBPoolConfig], Any]
ConnectionCallback = Callable[[ConnectionWrapper], None]


class DBConnectionPool:
    """Hands out pooled connections made by ``connect(config)``.

    Optional hooks ``on_create``, ``on_acquire`` and ``on_release`` are
    called with the wrapper at the matching moments.
    """

    def __init__(self, connect: Connector) -> None:
        self._connect = connect
        self._config = DBPoolConfig()
        self._all: list[ConnectionWrapper] = []
        self._idle: deque[ConnectionWrapper] = deque()
        self._active: set[ConnectionWrapper] = set()
        self._cond = threading.Condition(threading.Lock())
        self._running = False
        self._waiting = 0
        self._next_id = 0
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self.on_create: ConnectionCallback | None = None
        self.on_acquire: ConnectionCallback | None = None
        self.on_release: ConnectionCallback | None = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def config(self) -> DBPoolConfig:
        return self._config

    def start(self, config: DBPoolConfig) -> None:
        """Open the initial connections and start the maintenance threads."""
        with self._cond:
            if self._running:
                raise DBPoolError("connection pool is already running")
            self._config = config
            created: list[ConnectionWrapper] = []
            for _ in range(config.initial_size):
                wrapper = self._create()
                if wrapper is None:
                    for done in created:
                        done.close()
                    raise DBPoolError("unable to create the initial connections")
                created.append(wrapper)
            self._all = list(created)
            self._idle = deque(created)
            self._active = set()
            self._running = True
            self._stop = threading.Event()
            self._threads = [
                threading.Thread(
                    target=self._maintain,
                    args=(self._stop, interval, task),
                    name=name,
                    daemon=True,
                )
                for name, interval, task in (
                    ("db-heartbeat", config.validation_interval, self.heartbeat_check),
                    ("db-evictor", config.time_between_eviction_runs, self.evict_idle),
                )
                if interval > 0
            ]
            for thread in self._threads:
                thread.start()

    @staticmethod
    def _maintain(stop: threading.Event, interval: float, task: Callable[[], None]) -> None:
        while not stop.wait(interval):
            try:
                task()
            except Exception:
                log.exception("pool maintenance task failed")

    def _create(self) -> ConnectionWrapper | None:
        try:
            raw = self._connect(self._config)
        except Exception as exc:
            log.error("failed to create connection: %s", exc)
            return None
        wrapper = ConnectionWrapper(raw, self._next_id)
        self._next_id += 1
        if self.on_create is not None:
            self.on_create(wrapper)
        return wrapper

    def _validate(self, wrapper: ConnectionWrapper) -> bool:
        if wrapper.ping():
            return True
        wrapper.state = ConnectionState.BROKEN
        return False

    def _close(self, wrapper: ConnectionWrapper) -> None:
        if wrapper in self._all:
            self._all.remove(wrapper)
        self._active.discard(wrapper)
        wrapper.close()

    def acquire(self, timeout: float | None = None) -> ConnectionWrapper:
        """Check out a connection, waiting up to ``timeout`` seconds.

        Without a positive timeout the configured one is used; if that is
        not positive either, the call waits indefinitely.
        """
        with self._cond:
            self._waiting += 1
            try:
                wrapper = self._take(timeout)
            finally:
                self._waiting -= 1
        if self.on_acquire is not None:
            self.on_acquire(wrapper)
        return wrapper

    def _take(self, timeout: float | None) -> ConnectionWrapper:
        wait = timeout if timeout and timeout > 0 else self._config.connection_timeout
        deadline = time.monotonic() + wait if wait > 0 else None
        while not self._running or (
            not self._idle and len(self._all) >= self._config.max_size
        ):
            if not self._running:
                raise DBPoolError("connection pool is closed")
            if deadline is None:
                self._cond.wait()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DBPoolError("connection acquisition timeout")
            self._cond.wait(remaining)

        if self._idle:
            wrapper: ConnectionWrapper | None = self._idle.popleft()
            if not self._validate(wrapper):
                self._close(wrapper)
                wrapper = self._create()
                if wrapper is None:
                    raise DBPoolError("unable to create database connection")
                self._all.append(wrapper)
        else:
            wrapper = self._create()
            if wrapper is None:
                raise DBPoolError("unable to acquire database connection")
            self._all.append(wrapper)
        wrapper.state = ConnectionState.IN_USE
        self._active.add(wrapper)
        return wrapper

    def release(self, wrapper: ConnectionWrapper) -> None:
        """Return a checked-out connection; broken ones are replaced."""
        if self.on_release is not None:
            self.on_release(wrapper)
        with self._cond:
            if not self._running:
                self._close(wrapper)
                return
            if wrapper not in self._active:
                raise DBPoolError("connection is not checked out from this pool")
            self._active.discard(wrapper)
            if wrapper.state is ConnectionState.BROKEN:
                if wrapper in self._all:
                    index = self._all.index(wrapper)
                    replacement = self._create()
                    if replacement is not None:
                        self._all[index] = replacement
                        self._idle.append(replacement)
                    else:
                        del self._all[index]
                wrapper.close()
            else:
                wrapper.state = ConnectionState.IDLE
                self._idle.append(wrapper)
            self._cond.notify()

    def heartbeat_check(self) -> None:
        """Ping every idle connection and drop those that fail."""
        with self._cond:
            if not self._running:
                return
            kept: deque[ConnectionWrapper] = deque()
            for wrapper in self._idle:
                if self._validate(wrapper):
                    kept.append(wrapper)
                else:
                    self._close(wrapper)
            self._idle = kept
            self._cond.notify_all()

    def evict_idle(self) -> None:
        """Close connections idle too long, then top the idle set up to min_size."""
        with self._cond:
            if not self._running:
                return
            now = time.monotonic()
            idle_count = len(self._idle)
            kept: deque[ConnectionWrapper] = deque()
            for wrapper in self._idle:
                idle_time = now - wrapper.last_access
                if idle_time > self._config.max_idle_time and idle_count > self._config.min_size:
                    self._close(wrapper)
                    idle_count -= 1
                else:
                    kept.append(wrapper)
            self._idle = kept
            while (
                len(self._idle) < self._config.min_size
                and len(self._all) < self._config.max_size
            ):
                wrapper = self._create()
                if wrapper is None:
                    break
                self._idle.append(wrapper)
                self._all.append(wrapper)
            self._cond.notify_all()

    def shutdown(self) -> None:
        """Stop maintenance, wake waiters and close every connection."""
        with self._cond:
            if not self._running:
                return
            self._running = False
            self._stop.set()
            threads, self._threads = self._threads, []
            self._cond.notify_all()
        current = threading.current_thread()
        for thread in threads:
            if thread is not current:
                thread.join()
        with self._cond:
            for wrapper in self._all:
                wrapper.close()
            self._all.clear()
            self._active.clear()
            self._idle.clear()

    def stats(self) -> PoolStats:
        """Return the current connection and waiter counts."""
        with self._cond:
            return PoolStats(
                total_connections=len(self._all),
                active_connections=len(self._active),
                idle_connections=len(self._idle),
                waiting_threads=self._waiting,
            )

    def __enter__(self) -> "DBConnectionPool":
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown()