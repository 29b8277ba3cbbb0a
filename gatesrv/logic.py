"""URL routing and the request handlers of the gate server."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .errors import ErrorCode
from .user_dao import UserEntity
from .user_manager import ResultCode

log = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "text/json"
DEFAULT_AVATAR = "default.png"
INITIAL_STATUS = "offline"
CODE_PREFIX = "code:"


@dataclass
class Exchange:
    """One request as seen by a handler, and the response it builds."""

    body: str = ""
    params: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    chunks: list[str] = field(default_factory=list)

    def write(self, text: str) -> None:
        """Append text to the response body."""
        self.chunks.append(text)

    @property
    def response_text(self) -> str:
        return "".join(self.chunks)


Handler = Callable[[Exchange], Any]


def to_styled_json(value: Any) -> str:
    """Render JSON with sorted keys, three-space indent and a final newline."""
    return json.dumps(
        value, indent=3, separators=(",", " : "), sort_keys=True, ensure_ascii=False
    ) + "\n"


def _parse_object(body: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(body)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    raise ValueError("value is not convertible to a string")


class LogicSystem:
    """Maps GET and POST paths to handlers and provides the built-in ones.

    ``verify_code(email)`` asks the verification service to send a code and
    returns its error code.
    """

    def __init__(
        self,
        user_manager: Any,
        user_dao: Any,
        redis: Any,
        verify_code: Callable[[str], int],
    ) -> None:
        self._user_manager = user_manager
        self._user_dao = user_dao
        self._redis = redis
        self._verify_code = verify_code
        self._get_handlers: dict[str, Handler] = {}
        self._post_handlers: dict[str, Handler] = {}

        self.reg_get("/get_test", self._get_test)
        self.reg_post("/get_varifycode", self._get_verify_code)
        self.reg_post("/login", self._login)
        self.reg_post("/register", self._register)

    def reg_get(self, url: str, handler: Handler) -> None:
        """Register a GET handler; an existing registration is kept."""
        self._get_handlers.setdefault(url, handler)

    def reg_post(self, url: str, handler: Handler) -> None:
        """Register a POST handler; an existing registration is kept."""
        self._post_handlers.setdefault(url, handler)

    def handle_get(self, path: str, exchange: Exchange) -> bool:
        """Run the GET handler for path; False if there is none."""
        handler = self._get_handlers.get(path)
        if handler is None:
            return False
        handler(exchange)
        return True

    def handle_post(self, path: str, exchange: Exchange) -> bool:
        """Run the POST handler for path; False if there is none."""
        handler = self._post_handlers.get(path)
        if handler is None:
            return False
        handler(exchange)
        return True

    @staticmethod
    def _reply(exchange: Exchange, root: dict[str, Any]) -> None:
        exchange.write(to_styled_json(root))

    @staticmethod
    def _get_test(exchange: Exchange) -> None:
        exchange.write("receive get_test req \n")
        for index, (key, value) in enumerate(exchange.params.items(), start=1):
            exchange.write(f"param{index} key is {key}")
            exchange.write(f",  value is {value}\n")

    def _read_json(self, exchange: Exchange) -> dict[str, Any] | None:
        log.info("receive body: %s", exchange.body)
        exchange.headers["Content-Type"] = JSON_CONTENT_TYPE
        source = _parse_object(exchange.body)
        if source is None:
            log.warning("failed to parse JSON data")
            self._reply(exchange, {"error": int(ErrorCode.ERROR_JSON)})
        return source

    def _fields(self, exchange: Exchange, source: dict[str, Any], *names: str) -> list[str] | None:
        try:
            return [_as_string(source.get(name)) for name in names]
        except ValueError:
            self._reply(exchange, {"error": int(ErrorCode.ERROR_JSON)})
            return None

    def _get_verify_code(self, exchange: Exchange) -> None:
        source = self._read_json(exchange)
        if source is None:
            return
        values = self._fields(exchange, source, "email")
        if values is None:
            return
        (email,) = values
        error = self._verify_code(email)
        log.info("email is %s", email)
        self._reply(exchange, {"error": int(error), "email": source.get("email")})

    def _login(self, exchange: Exchange) -> None:
        source = self._read_json(exchange)
        if source is None:
            return
        values = self._fields(exchange, source, "username", "password")
        if values is None:
            return
        username, password = values
        if not username or not password:
            self._reply(exchange, {"error": int(ErrorCode.INVALID_PARAMS)})
            return

        result = self._user_manager.login(username, password)
        root: dict[str, Any]
        if result.code is ResultCode.SUCCESS:
            user = result.data
            root = {
                "error": int(ErrorCode.SUCCESS),
                "userInfo": {
                    "userId": int(user.user_id),
                    "username": user.username,
                    "nickname": user.nickname,
                    "avatar": user.avatar,
                    "email": user.email,
                    "status": user.status,
                },
            }
        elif result.code is ResultCode.INVALID_PASSWORD:
            root = {"error": int(ErrorCode.USER_INVALID_PASSWORD)}
        elif result.code is ResultCode.USER_NOT_FOUND:
            root = {"error": int(ErrorCode.USER_NOT_FOUND)}
        else:
            log.warning("login failed: %s", result.message)
            root = {"error": int(ErrorCode.USER_LOGIN_FAILED)}
        self._reply(exchange, root)

    def _register(self, exchange: Exchange) -> None:
        source = self._read_json(exchange)
        if source is None:
            return
        values = self._fields(exchange, source, "username", "email", "password", "verify_code")
        if values is None:
            return
        username, email, password, verify_code = values
        if not (username and email and password and verify_code):
            self._reply(exchange, {"error": int(ErrorCode.INVALID_PARAMS)})
            return

        stored = self._redis.get(CODE_PREFIX + email)
        if stored is None or stored != verify_code:
            self._reply(exchange, {"error": int(ErrorCode.TOKEN_INVALID)})
            return

        user = UserEntity(
            username=username,
            password=password,
            nickname=username,
            email=email,
            status=INITIAL_STATUS,
            avatar=DEFAULT_AVATAR,
        )
        result = self._user_dao.add_user(user)
        if result.success:
            self._redis.delete(CODE_PREFIX + email)
            error = ErrorCode.SUCCESS
        elif "Duplicate entry" in result.message:
            error = ErrorCode.USER_ALREADY_EXISTS
        else:
            log.warning("registration failed: %s", result.message)
            error = ErrorCode.USER_REGISTER_FAILED
        self._reply(exchange, {"error": int(error)})