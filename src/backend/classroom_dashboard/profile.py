from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

DEFAULT_DISPLAY_NAME = "Teacher"


@dataclass(frozen=True)
class UserProfile:
    """
    Display fields of the signed-in user.

    Built once when the session is authenticated so screens never need to
    inspect which kind of account object the identity service returned.
    """

    user_id: str
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    role: str = "teacher"

    @classmethod
    def from_claims(cls, claims: Mapping[str, Any]) -> "UserProfile":
        """
        Accepts both snake_case and camelCase claim names.
        """

        def _pick(*keys: str) -> str:
            for key in keys:
                value = claims.get(key)
                if value:
                    return str(value).strip()
            return ""

        return cls(
            user_id=_pick("user_id", "userId", "id", "sub"),
            first_name=_pick("first_name", "firstName", "given_name"),
            last_name=_pick("last_name", "lastName", "family_name"),
            email=_pick("email"),
            role=_pick("role") or "teacher",
        )

    @property
    def display_first_name(self) -> str:
        return self.first_name or DEFAULT_DISPLAY_NAME

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part) or DEFAULT_DISPLAY_NAME

    @property
    def initials(self) -> str:
        return "".join(part[0] for part in (self.first_name, self.last_name) if part).upper()

    @property
    def greeting(self) -> str:
        return f"Welcome, {self.display_first_name}"
