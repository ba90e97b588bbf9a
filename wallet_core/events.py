"""
events.py — Audit events phát ra khi đăng ký / xác thực.

Mỗi store lưu lại event qua append_event(); listener (nếu có) được gọi đồng bộ.
Event không bao giờ chứa seed hay giá trị OTP.
"""

from dataclasses import dataclass, asdict
from typing import Callable, List


@dataclass(frozen=True)
class UserRegistered:
    account_id: str
    username: str
    at: float

    name = "UserRegistered"

    def to_dict(self) -> dict:
        return {"event": self.name, **asdict(self)}


@dataclass(frozen=True)
class UserAuthenticated:
    account_id: str
    success: bool
    at: float

    name = "UserAuthenticated"

    def to_dict(self) -> dict:
        return {"event": self.name, **asdict(self)}


class EventBus:
    """Danh sách listener đơn giản: subscribe(fn), publish(event)."""

    def __init__(self):
        self._listeners: List[Callable] = []

    def subscribe(self, listener: Callable) -> None:
        self._listeners.append(listener)

    def publish(self, event) -> None:
        for listener in list(self._listeners):
            listener(event)
