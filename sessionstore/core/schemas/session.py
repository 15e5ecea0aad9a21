"""Session record schema."""
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SessionRecord(BaseModel):
    """A persisted session: opaque payload plus absolute expiry"""

    id: str = Field(..., description="Opaque session token generated by the store")
    data: bytes = Field(..., description="Serialized session state, never inspected")
    expiry: datetime = Field(..., description="UTC instant after which the record is dead")

    model_config = ConfigDict(frozen=True)

    @field_validator("expiry")
    @classmethod
    def expiry_must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("expiry must be timezone-aware")
        return v.astimezone(timezone.utc)

    def is_expired(self, now: datetime) -> bool:
        return self.expiry <= now
