import json

import pytest

from gatesrv.dao import DAOResult
from gatesrv.errors import ErrorCode
from gatesrv.logic import Exchange, LogicSystem
from gatesrv.user_dao import UserEntity
from gatesrv.user_manager import ManagerResult, ResultCode

PASSWORD = "password"


class FakeUserManager:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def login(self, username, password):
        self.calls.append((username, password))
        return self.result


class FakeUserDAO:
    def __init__(self, result):
        self.result = result
        self.added = []

    def add_user(self, user):
        self.added.append(user)
        return self.result


class FakeRedis:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        return self.data.pop(key, None) is not None


def make_logic(manager_result=None, dao_result=None, codes=None, verify=None):
    manager = FakeUserManager(manager_result or ManagerResult(ResultCode.FAILED, "db down"))
    dao = FakeUserDAO(dao_result or DAOResult(True, "User added successfully"))
    store = FakeRedis(codes)
    sent = []

    def verify_code(email):
        sent.append(email)
        return verify if verify is not None else ErrorCode.SUCCESS

    logic = LogicSystem(manager, dao, store, verify_code)
    return logic, manager, dao, store, sent


def post(logic, path, payload):
    exchange = Exchange(body=payload if isinstance(payload, str) else json.dumps(payload))
    assert logic.handle_post(path, exchange) is True
    return exchange, json.loads(exchange.response_text)


def test_unknown_paths_are_not_handled():
    logic, *_ = make_logic()
    assert logic.handle_get("/nothing", Exchange()) is False
    assert logic.handle_post("/get_test", Exchange()) is False


def test_first_registration_wins():
    logic, *_ = make_logic()
    seen = []
    logic.reg_get("/x", lambda ex: seen.append("first"))
    logic.reg_get("/x", lambda ex: seen.append("second"))
    assert logic.handle_get("/x", Exchange()) is True
    assert seen == ["first"]


def test_get_test_lists_params():
    logic, *_ = make_logic()
    exchange = Exchange(params={"a": "1", "b": "two"})
    assert logic.handle_get("/get_test", exchange) is True
    assert exchange.response_text == (
        "receive get_test req \n"
        "param1 key is a,  value is 1\n"
        "param2 key is b,  value is two\n"
    )


def test_bad_json_gives_styled_error():
    logic, *_ = make_logic()
    exchange = Exchange(body="{not json")
    assert logic.handle_post("/login", exchange) is True
    assert exchange.response_text == '{\n   "error" : 1001\n}\n'
    assert exchange.headers["Content-Type"] == "text/json"


def test_verify_code_request_echoes_email():
    logic, _, _, _, sent = make_logic(verify=ErrorCode.RPC_FAILED)
    _, reply = post(logic, "/get_varifycode", {"email": "someone@example.com"})
    assert sent == ["someone@example.com"]
    assert reply == {"error": 1002, "email": "someone@example.com"}


def test_login_requires_both_fields():
    logic, manager, *_ = make_logic()
    _, reply = post(logic, "/login", {"username": "alice", "password": ""})
    assert reply == {"error": 1003}
    assert manager.calls == []


def test_login_success_returns_user_info():
    user = UserEntity(
        user_id=7, username="alice", nickname="Alice", avatar="default.png",
        email="alice@example.com", status="online",
    )
    logic, manager, *_ = make_logic(manager_result=ManagerResult(ResultCode.SUCCESS, "Login successful", user))
    password = PASSWORD
    _, reply = post(logic, "/login", {"username": "alice", "password": password})
    assert manager.calls == [("alice", password)]
    assert reply["error"] == 0
    assert reply["userInfo"] == {
        "userId": 7, "username": "alice", "nickname": "Alice",
        "avatar": "default.png", "email": "alice@example.com", "status": "online",
    }


@pytest.mark.parametrize(
    "code, expected",
    [
        (ResultCode.INVALID_PASSWORD, ErrorCode.USER_INVALID_PASSWORD),
        (ResultCode.USER_NOT_FOUND, ErrorCode.USER_NOT_FOUND),
        (ResultCode.DATABASE_ERROR, ErrorCode.USER_LOGIN_FAILED),
    ],
)
def test_login_failures_map_to_error_codes(code, expected):
    logic, *_ = make_logic(manager_result=ManagerResult(code, "failed"))
    password = PASSWORD
    _, reply = post(logic, "/login", {"username": "alice", "password": password})
    assert reply == {"error": int(expected)}


def register_payload(code="1234"):
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": PASSWORD,
        "verify_code": code,
    }


def test_register_missing_field():
    logic, _, dao, *_ = make_logic()
    payload = register_payload()
    del payload["email"]
    _, reply = post(logic, "/register", payload)
    assert reply == {"error": 1003}
    assert dao.added == []


def test_register_without_stored_code():
    logic, _, dao, *_ = make_logic()
    _, reply = post(logic, "/register", register_payload())
    assert reply == {"error": 1004}
    assert dao.added == []


def test_register_with_wrong_code():
    logic, _, dao, store, _ = make_logic(codes={"code:alice@example.com": "9999"})
    _, reply = post(logic, "/register", register_payload())
    assert reply == {"error": 1004}
    assert store.data == {"code:alice@example.com": "9999"}


def test_register_success_creates_user_and_drops_code():
    logic, _, dao, store, _ = make_logic(codes={"code:alice@example.com": "1234"})
    _, reply = post(logic, "/register", register_payload())
    assert reply == {"error": 0}
    assert store.data == {}
    (user,) = dao.added
    assert (user.username, user.nickname, user.email) == ("alice", "alice", "alice@example.com")
    assert (user.status, user.avatar) == ("offline", "default.png")


def test_register_duplicate_user():
    logic, _, _, store, _ = make_logic(
        dao_result=DAOResult(False, "SQL error [1062]: Duplicate entry 'alice'"),
        codes={"code:alice@example.com": "1234"},
    )
    _, reply = post(logic, "/register", register_payload())
    assert reply == {"error": 3002}
    assert "code:alice@example.com" in store.data


def test_register_other_failure():
    logic, *_ = make_logic(
        dao_result=DAOResult(False, "connection lost"),
        codes={"code:alice@example.com": "1234"},
    )
    _, reply = post(logic, "/register", register_payload())
    assert reply == {"error": 3005}