"""User-level operations built on top of the user data-access layer."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum
from typing import Generic, TypeVar

from .user_dao import UserDAO, UserEntity

T = TypeVar("T")

DEFAULT_AVATAR = "default.png"
STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"


class ResultCode(IntEnum):
    """Outcome codes of user-management operations."""

    SUCCESS = 0
    FAILED = 1
    USER_ALREADY_EXISTS = 2
    USER_NOT_FOUND = 3
    INVALID_PASSWORD = 4
    ALREADY_FRIENDS = 5
    NOT_FRIENDS = 6
    OPERATION_FAILED = 7
    DATABASE_ERROR = 8


@dataclass
class ManagerResult(Generic[T]):
    """Outcome of a user-management call, with optional data."""

    code: ResultCode = ResultCode.FAILED
    message: str = ""
    data: T | None = None

    @property
    def success(self) -> bool:
        return self.code is ResultCode.SUCCESS


class UserManager:
    """Registration, login and friendship logic over a UserDAO."""

    def __init__(self, dao: UserDAO) -> None:
        self._dao = dao

    def register_user(
        self, username: str, password: str, nickname: str = "", avatar: str = ""
    ) -> ManagerResult[UserEntity]:
        """Create a user unless the name is taken; returns the stored record."""
        existing = self._dao.find_by_username(username)
        if existing.success and existing.data is not None:
            return ManagerResult(ResultCode.USER_ALREADY_EXISTS, "Username already exists")

        user = UserEntity(
            username=username,
            password=password,
            nickname=nickname or username,
            avatar=avatar or DEFAULT_AVATAR,
            status=STATUS_OFFLINE,
        )
        added = self._dao.add_user(user)
        if not added.success:
            return ManagerResult(ResultCode.FAILED, added.message)

        created = self._dao.find_by_username(username)
        if not created.success:
            return ManagerResult(
                ResultCode.SUCCESS,
                "User created successfully, but unable to get user details",
            )
        return ManagerResult(ResultCode.SUCCESS, "User registered successfully", created.data)

    def login(self, username: str, password: str) -> ManagerResult[UserEntity]:
        """Check the password, mark the user online and record the login time."""
        verified = self._dao.verify_password(username, password)
        if not verified.success:
            return ManagerResult(ResultCode.DATABASE_ERROR, verified.message)
        if not verified.data:
            return ManagerResult(ResultCode.INVALID_PASSWORD, "Invalid username or password")

        found = self._dao.find_by_username(username)
        if not found.success or found.data is None:
            return ManagerResult(ResultCode.USER_NOT_FOUND, "User not found")

        user = found.data
        self._dao.update_user_status(user.user_id, STATUS_ONLINE)
        self._dao.update_last_login_time(user.user_id)
        user.status = STATUS_ONLINE
        return ManagerResult(ResultCode.SUCCESS, "Login successful", user)

    def logout(self, user_id: int) -> ManagerResult[None]:
        """Mark the user offline."""
        result = self._dao.update_user_status(user_id, STATUS_OFFLINE)
        if not result.success:
            return ManagerResult(ResultCode.FAILED, result.message)
        return ManagerResult(ResultCode.SUCCESS, "Logout successful")

    def _user_lookup(self, result) -> ManagerResult[UserEntity]:
        if not result.success:
            return ManagerResult(ResultCode.DATABASE_ERROR, result.message)
        if result.data is None:
            return ManagerResult(ResultCode.USER_NOT_FOUND, "User not found")
        return ManagerResult(
            ResultCode.SUCCESS, "User information retrieved successfully", result.data
        )

    def get_user_info(self, user_id: int) -> ManagerResult[UserEntity]:
        """Look a user up by id."""
        return self._user_lookup(self._dao.find_by_id(user_id))

    def get_user_info_by_username(self, username: str) -> ManagerResult[UserEntity]:
        """Look a user up by name."""
        return self._user_lookup(self._dao.find_by_username(username))

    def get_friend_list(self, user_id: int) -> ManagerResult[list[UserEntity]]:
        """Return the user's friends."""
        result = self._dao.get_friend_list(user_id)
        if not result.success:
            return ManagerResult(ResultCode.DATABASE_ERROR, result.message)
        return ManagerResult(
            ResultCode.SUCCESS, "Friend list retrieved successfully", result.data
        )

    def update_user_status(self, user_id: int, status: str) -> ManagerResult[None]:
        """Set the user's status text."""
        result = self._dao.update_user_status(user_id, status)
        if not result.success:
            return ManagerResult(ResultCode.FAILED, result.message)
        return ManagerResult(ResultCode.SUCCESS, "User status updated successfully")

    def add_friend(self, user_id: int, friend_id: int) -> ManagerResult[None]:
        """Make two existing users friends."""
        user = self._dao.find_by_id(user_id)
        if not user.success or user.data is None:
            return ManagerResult(ResultCode.USER_NOT_FOUND, "User not found")
        friend = self._dao.find_by_id(friend_id)
        if not friend.success or friend.data is None:
            return ManagerResult(ResultCode.USER_NOT_FOUND, "Friend not found")

        result = self._dao.add_friend(user_id, friend_id)
        if not result.success:
            if result.message == "Already friends":
                return ManagerResult(ResultCode.ALREADY_FRIENDS, result.message)
            return ManagerResult(ResultCode.FAILED, result.message)
        return ManagerResult(ResultCode.SUCCESS, "Friend added successfully")

    def remove_friend(self, user_id: int, friend_id: int) -> ManagerResult[None]:
        """End a friendship."""
        result = self._dao.remove_friend(user_id, friend_id)
        if not result.success:
            return ManagerResult(ResultCode.FAILED, result.message)
        return ManagerResult(ResultCode.SUCCESS, "Friend removed successfully")

    def batch_get_user_info(self, user_ids: Iterable[int]) -> ManagerResult[list[UserEntity]]:
        """Return the records of several users at once."""
        result = self._dao.batch_get_user_info(user_ids)
        if not result.success:
            return ManagerResult(ResultCode.DATABASE_ERROR, result.message)
        return ManagerResult(
            ResultCode.SUCCESS,
            "User information retrieved in batch successfully",
            result.data,
        )