"""
accessboard/models/entry.py
The access-control entry record (one badge/lock swipe). Read-only for this service.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Entry(BaseModel):
    """Single swipe on a lock, as stored by the ingestion side."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str = Field(description="Store identifier, also the tie-break for identical timestamps")
    username: Optional[str] = Field(default=None, description="Username as stored (case preserved)")
    lock_id: Optional[str] = Field(default=None, description="Lock identifier")
    entry_time: datetime = Field(description="When the swipe happened (tz-aware)")
    lock_mac: Optional[str] = Field(default=None)
    record_type: Optional[int] = Field(default=None)
    electric_quantity: Optional[float] = Field(default=None, description="Lock battery level, if reported")

    @field_validator("entry_time")
    @classmethod
    def _ensure_aware(cls, value: datetime) -> datetime:
        # Drivers such as SQLite hand back naive values; stored instants are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
