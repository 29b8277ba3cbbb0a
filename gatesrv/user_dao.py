"""User records and the stored procedures that manage them."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from .dao import BaseDAO, DAOResult, dao_guard


@dataclass
class UserEntity:
    """A row of the user table."""

    user_id: int = 0
    username: str = ""
    password: str = ""
    nickname: str = ""
    avatar: str = ""
    email: str = ""
    status: str = ""
    create_time: str = ""
    last_login_time: str = ""


def build_user_id_list(user_ids: Iterable[int]) -> str:
    """Join user ids with commas."""
    return ",".join(str(user_id) for user_id in user_ids)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", "replace")
    return str(value)


def user_from_row(row: Mapping[str, Any]) -> UserEntity:
    """Build a UserEntity from a result row keyed by column name."""
    return UserEntity(
        user_id=int(row.get("user_id") or 0),
        username=_text(row.get("username")),
        password=_text(row.get("password")),
        nickname=_text(row.get("nickname")),
        avatar=_text(row.get("avatar")),
        email=_text(row.get("email")),
        status=_text(row.get("status")),
        create_time=_text(row.get("create_time")),
        last_login_time=_text(row.get("last_login_time")),
    )


class UserDAO(BaseDAO):
    """User and friendship operations backed by stored procedures."""

    @dao_guard
    def add_user(self, user: UserEntity) -> DAOResult[None]:
        with self._connection() as conn:
            self.call_procedure_for_update(
                conn,
                "proc_add_user",
                (user.username, user.password, user.nickname, user.avatar, user.email, user.status),
            )
        return DAOResult(True, "User added successfully")

    @dao_guard
    def find_by_username(self, username: str) -> DAOResult[UserEntity]:
        with self._connection() as conn:
            rows = self.call_procedure(conn, "proc_find_user_by_username", (username,))
        if rows:
            return DAOResult(True, "User found", user_from_row(rows[0]))
        return DAOResult(False, "User not found")

    @dao_guard
    def find_by_id(self, user_id: int) -> DAOResult[UserEntity]:
        with self._connection() as conn:
            rows = self.call_procedure(conn, "proc_find_user_by_id", (user_id,))
        if rows:
            return DAOResult(True, "User found", user_from_row(rows[0]))
        return DAOResult(False, "User not found")

    @dao_guard
    def update_user_status(self, user_id: int, status: str) -> DAOResult[None]:
        with self._connection() as conn:
            self.call_procedure_for_update(conn, "proc_update_user_status", (user_id, status))
        return DAOResult(True, "Status updated")

    @dao_guard
    def update_last_login_time(self, user_id: int) -> DAOResult[None]:
        with self._connection() as conn:
            self.call_procedure_for_update(conn, "proc_update_last_login_time", (user_id,))
        return DAOResult(True, "Login time updated")

    @dao_guard
    def get_friend_list(self, user_id: int) -> DAOResult[list[UserEntity]]:
        with self._connection() as conn:
            rows = self.call_procedure(conn, "proc_get_friend_list", (user_id,))
        return DAOResult(True, "Friend list retrieved", [user_from_row(row) for row in rows])

    @dao_guard
    def verify_password(self, username: str, password: str) -> DAOResult[bool]:
        with self._connection() as conn:
            rows = self.call_procedure(conn, "proc_verify_password", (username, password))
        verified = bool(rows) and int(rows[0].get("result") or 0) > 0
        message = "Password verified" if verified else "Password incorrect"
        return DAOResult(True, message, verified)

    @dao_guard
    def add_friend(self, user_id: int, friend_id: int) -> DAOResult[None]:
        with self._connection() as conn, self.transaction(conn):
            self.call_procedure_for_update(conn, "proc_add_friend", (user_id, friend_id))
        return DAOResult(True, "Friend added")

    @dao_guard
    def remove_friend(self, user_id: int, friend_id: int) -> DAOResult[None]:
        with self._connection() as conn:
            self.call_procedure_for_update(conn, "proc_remove_friend", (user_id, friend_id))
        return DAOResult(True, "Friend removed")

    @dao_guard
    def batch_get_user_info(self, user_ids: Iterable[int]) -> DAOResult[list[UserEntity]]:
        ids = list(user_ids)
        if not ids:
            return DAOResult(True, "User ID list is empty", [])
        with self._connection() as conn:
            rows = self.call_procedure(conn, "proc_batch_get_user_info", (build_user_id_list(ids),))
        return DAOResult(True, "Users retrieved", [user_from_row(row) for row in rows])