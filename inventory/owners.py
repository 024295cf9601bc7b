"""Who holds a reservation: a guest session or an authenticated user."""

from dataclasses import dataclass
from typing import Optional

from common.choices import OwnerKind

from .exceptions import InvalidOwner


@dataclass(frozen=True)
class Owner:
    session_id: Optional[str] = None
    user_id: Optional[int] = None

    @classmethod
    def for_session(cls, session_id: str) -> "Owner":
        return cls(session_id=session_id).validated()

    @classmethod
    def for_user(cls, user) -> "Owner":
        return cls(user_id=getattr(user, "id", user)).validated()

    @classmethod
    def of(cls, reservation) -> "Owner":
        return cls(session_id=reservation.session_id, user_id=reservation.user_id)

    def validated(self) -> "Owner":
        has_session = bool(self.session_id)
        has_user = self.user_id is not None
        if has_session == has_user:
            raise InvalidOwner("Exactly one of session_id or user_id must be set")
        return self

    @property
    def kind(self) -> str:
        return OwnerKind.USER if self.user_id is not None else OwnerKind.SESSION

    @property
    def ref(self) -> str:
        return str(self.user_id) if self.user_id is not None else str(self.session_id)

    def field_values(self) -> dict:
        return {"session_id": self.session_id or None, "user_id": self.user_id}

    def filter_kwargs(self) -> dict:
        if self.user_id is not None:
            return {"user_id": self.user_id}
        return {"session_id": self.session_id}
