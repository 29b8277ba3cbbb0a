"""Error codes and shared constants of the gate server."""

from __future__ import annotations

from enum import Enum, IntEnum


class ErrorCode(IntEnum):
    """Codes reported to clients in the "error" field of responses."""

    SUCCESS = 0
    ERROR_JSON = 1001
    RPC_FAILED = 1002
    INVALID_PARAMS = 1003
    TOKEN_INVALID = 1004

    DB_ERROR_BASE = 2000
    DB_CONNECTION_FAILED = 2001
    DB_QUERY_FAILED = 2002
    DB_TRANSACTION_FAILED = 2003
    DB_PROCEDURE_FAILED = 2004
    DB_CONNECTION_TIMEOUT = 2005
    DB_POOL_INIT_FAILED = 2006

    USER_ERROR_BASE = 3000
    USER_NOT_FOUND = 3001
    USER_ALREADY_EXISTS = 3002
    USER_INVALID_PASSWORD = 3003
    USER_LOGIN_FAILED = 3004
    USER_REGISTER_FAILED = 3005
    USER_UPDATE_FAILED = 3006

    FRIEND_ERROR_BASE = 4000
    FRIEND_NOT_FOUND = 4001
    FRIEND_ALREADY_EXISTS = 4002
    FRIEND_ADD_FAILED = 4003
    FRIEND_REMOVE_FAILED = 4004
    FRIEND_LIST_FAILED = 4005


class ConnectionState(Enum):
    """Lifecycle state of a pooled database connection."""

    IDLE = "idle"
    IN_USE = "in_use"
    BROKEN = "broken"
    EXPIRED = "expired"


MYSQL_CONFIG_SECTION = "Mysql"

# Key names of the MySQL section of config.ini, in file order.
_MYSQL_KEYS = ("Host", "Port", "User", "Passwd", "Schema")
(
    MYSQL_HOST_KEY,
    MYSQL_PORT_KEY,
    MYSQL_USER_KEY,
    MYSQL_PASSWD_KEY,
    MYSQL_SCHEMA_KEY,
) = _MYSQL_KEYS

DB_DEFAULT_INITIAL_SIZE = 5
DB_DEFAULT_MAX_SIZE = 20
DB_DEFAULT_MIN_SIZE = 5
DB_DEFAULT_MAX_IDLE_TIME = 60
DB_DEFAULT_TIMEOUT = 30
DB_DEFAULT_VALIDATION_INTERVAL = 30
DB_DEFAULT_EVICTION_INTERVAL = 30
DB_DEFAULT_MAX_WAIT_QUEUE_SIZE = 1000