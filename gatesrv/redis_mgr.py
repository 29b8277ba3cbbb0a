"""Redis commands used by the gate server, run on pooled connections."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import redis

from .config import ConfigMgr
from .redis_pool import PoolClosedError, RedisConPool

log = logging.getLogger(__name__)

POOL_SIZE = 5
REDIS_SECTION = "Redis"

_FAILED = object()


def _as_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "replace")
    return None


class RedisMgr:
    """Runs single Redis commands, reporting failure instead of raising.

    Commands that fail on the server, on the connection, or because the
    pool has been closed yield False, None or "" as each method documents.
    """

    def __init__(self, pool: RedisConPool) -> None:
        self._pool = pool

    @classmethod
    def from_config(cls, config: ConfigMgr) -> "RedisMgr":
        """Open a pool using the Host, Port and Passwd keys of the Redis section."""
        section = config[REDIS_SECTION]
        port_text = section["Port"]
        try:
            port = int(port_text) if port_text else 0
        except ValueError:
            raise ValueError(f"invalid redis port: {port_text!r}") from None
        return cls(RedisConPool(POOL_SIZE, section["Host"], port, section["Passwd"]))

    def _call(self, command: str, operation: Callable[[Any], Any]) -> Any:
        try:
            with self._pool.connection() as conn:
                return operation(conn)
        except PoolClosedError:
            log.warning("[ %s ] failed: pool is closed", command)
        except redis.RedisError as exc:
            log.warning("[ %s ] failed: %s", command, exc)
        return _FAILED

    def get(self, key: str) -> str | None:
        """Return the string stored at key, or None if absent or not a string."""
        reply = self._call(f"GET {key}", lambda conn: conn.get(key))
        value = None if reply is _FAILED else _as_text(reply)
        if value is None:
            log.info("[ GET %s ] failed", key)
        return value

    def set(self, key: str, value: str) -> bool:
        """Store value at key; True when the server answers OK."""
        reply = self._call(f"SET {key} {value}", lambda conn: conn.set(key, value))
        ok = reply is True or _as_text(reply) in ("OK", "ok")
        log.info("[ SET %s %s ] %s", key, value, "success" if ok else "failure")
        return ok

    def auth(self, password: str) -> bool:
        """Authenticate a pooled connection; True if the server accepts it."""
        reply = self._call("AUTH", lambda conn: conn.auth(password))
        ok = reply is not _FAILED
        log.info("authentication %s", "succeeded" if ok else "failed")
        return ok

    def _push(self, name: str, key: str, value: str, method: str) -> bool:
        reply = self._call(f"{name} {key} {value}", lambda conn: getattr(conn, method)(key, value))
        ok = isinstance(reply, int) and not isinstance(reply, bool) and reply > 0
        log.info("[ %s %s %s ] %s", name, key, value, "success" if ok else "failure")
        return ok

    def _pop(self, name: str, key: str, method: str) -> str | None:
        reply = self._call(f"{name} {key}", lambda conn: getattr(conn, method)(key))
        value = None if reply is _FAILED else _as_text(reply)
        log.info("[ %s %s ] %s", name, key, "success" if value is not None else "failure")
        return value

    def lpush(self, key: str, value: str) -> bool:
        """Prepend value to the list at key."""
        return self._push("LPUSH", key, value, "lpush")

    def lpop(self, key: str) -> str | None:
        """Remove and return the first element of the list, or None."""
        return self._pop("LPOP", key, "lpop")

    def rpush(self, key: str, value: str) -> bool:
        """Append value to the list at key."""
        return self._push("RPUSH", key, value, "rpush")

    def rpop(self, key: str) -> str | None:
        """Remove and return the last element of the list, or None."""
        return self._pop("RPOP", key, "rpop")

    def hset(self, key: str, hkey: str, value: str | bytes) -> bool:
        """Set a field of the hash at key; value may be text or raw bytes."""
        reply = self._call(f"HSET {key} {hkey}", lambda conn: conn.hset(key, hkey, value))
        ok = isinstance(reply, int) and not isinstance(reply, bool)
        log.info("[ HSET %s %s ] %s", key, hkey, "success" if ok else "failure")
        return ok

    def hget(self, key: str, hkey: str) -> str:
        """Return a field of the hash at key, or "" if it is missing."""
        reply = self._call(f"HGET {key} {hkey}", lambda conn: conn.hget(key, hkey))
        value = None if reply is _FAILED else _as_text(reply)
        if value is None:
            log.info("[ HGET %s %s ] failure", key, hkey)
            return ""
        return value

    def delete(self, key: str) -> bool:
        """Delete key; True when the server replies with a count."""
        reply = self._call(f"DEL {key}", lambda conn: conn.delete(key))
        ok = isinstance(reply, int) and not isinstance(reply, bool)
        log.info("[ DEL %s ] %s", key, "success" if ok else "failure")
        return ok

    def exists_key(self, key: str) -> bool:
        """True if key exists."""
        reply = self._call(f"EXISTS {key}", lambda conn: conn.exists(key))
        found = isinstance(reply, int) and not isinstance(reply, bool) and reply > 0
        log.info("[ Key %s ] %s", key, "found" if found else "not found")
        return found

    def close(self) -> None:
        """Close the underlying pool."""
        self._pool.close()

    def __enter__(self) -> "RedisMgr":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()