"""Token models and age/expiry classification."""

from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tokenbook.exceptions import ValidationError

EXPIRY_DAYS = 30
EXPIRING_SOON_DAYS = 25

ONE_DAY = timedelta(days=1)


class Tag(str, Enum):
    BANTI = "banti"
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PERSONAL = "personal"


class TokenStatus(str, Enum):
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


def utcnow() -> datetime:
    return datetime.now(UTC)


def normalize_instant(value: datetime) -> datetime:
    """Return an aware datetime; naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _coerce_tag(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str) and value.strip().lower() in ("", "none"):
        return None
    return value


def status_for_age(age: int) -> TokenStatus:
    if age >= EXPIRY_DAYS:
        return TokenStatus.EXPIRED
    elif age >= EXPIRING_SOON_DAYS:
        return TokenStatus.EXPIRING_SOON
    return TokenStatus.ACTIVE


class Token(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    value: str = ""
    tag: Tag | None = None
    created_at: datetime = Field(default_factory=utcnow, alias="createdAt")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        # Backends may hand out numeric ids
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("name", "value", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("tag", mode="before")
    @classmethod
    def _empty_tag(cls, value: Any) -> Any:
        return _coerce_tag(value)

    @field_validator("created_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return normalize_instant(value)

    def age_days(self, now: datetime | None = None) -> int:
        now = normalize_instant(now) if now else utcnow()
        return (now - self.created_at) // ONE_DAY

    def status_at(self, now: datetime | None = None) -> TokenStatus:
        return status_for_age(self.age_days(now))

    @property
    def status(self) -> TokenStatus:
        return self.status_at()

    def days_left(self, now: datetime | None = None) -> int:
        return EXPIRY_DAYS - self.age_days(now)

    def to_record(self) -> dict[str, Any]:
        """Wire/export representation of the token."""
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "tag": self.tag.value if self.tag else "",
            "createdAt": self.created_at.isoformat(),
        }


class TokenDraft(BaseModel):
    """Fields sent to the gateway on create and update."""

    name: str
    value: str
    tag: Tag | None = None
    created_at: datetime | None = None

    @field_validator("tag", mode="before")
    @classmethod
    def _empty_tag(cls, value: Any) -> Any:
        return _coerce_tag(value)

    @field_validator("created_at")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return normalize_instant(value) if value else None

    @classmethod
    def from_token(cls, token: Token, **changes: Any) -> "TokenDraft":
        """Full-record copy of a token with some fields replaced."""
        fields = {
            "name": token.name,
            "value": token.value,
            "tag": token.tag,
            "created_at": token.created_at,
        }
        fields.update(changes)
        return cls(**fields)

    def validate_required(self, require_date: bool = False) -> "TokenDraft":
        """Trim and check required fields before any network call."""
        name = self.name.strip()
        value = self.value.strip()
        if not name:
            raise ValidationError("Please enter a name")
        if not value:
            raise ValidationError("Please enter a token")
        if require_date and self.created_at is None:
            raise ValidationError("Please fill all required fields")
        return self.model_copy(update={"name": name, "value": value})

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "token": self.value,
            "tag": self.tag.value if self.tag else "",
        }
        if self.created_at is not None:
            payload["createdAt"] = self.created_at.astimezone(UTC).isoformat()
        return payload
