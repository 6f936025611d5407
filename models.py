"""Pydantic models for PushSession."""

from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ─── Push IDs ────────────────────────────────────────────────

class PushIDObject(BaseModel):
    """A generated or decoded push ID, split into its parts."""
    model_config = ConfigDict(frozen=True)

    id: str
    randomness: str
    timestamp: int = Field(..., description="Milliseconds since the UNIX epoch.")
    stub: Optional[str] = None
    encoded_time: str

    @computed_field
    @property
    def date(self) -> Optional[datetime]:
        # None past year 9999, which 48-bit timestamps can reach
        try:
            return _EPOCH + timedelta(milliseconds=self.timestamp)
        except OverflowError:
            return None


# ─── Session waterfall ───────────────────────────────────────

class SessionState(BaseModel):
    """Identifier state before or after one processed event."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: Optional[str] = Field(None, alias="cID")
    session_id: Optional[str] = Field(None, alias="sID")
    event_id: Optional[str] = Field(None, alias="eID")
    seq_id: Optional[str] = Field(None, alias="seqID")
    client_time: Optional[datetime] = Field(None, alias="clientTime")
    session_time: Optional[datetime] = Field(None, alias="sessionTime")
    event_time: Optional[datetime] = Field(None, alias="eventTime")


class SessionChanges(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_new_client: bool = Field(..., alias="isNewClient")
    is_new_session: bool = Field(..., alias="isNewSession")


class ProcessedSession(BaseModel):
    """Result of one session transition.

    The current identifiers are repeated at the top level for convenience;
    `new_state` and `old_state` hold the full snapshots.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    client_id: str = Field(..., alias="cID")
    session_id: str = Field(..., alias="sID")
    event_id: str = Field(..., alias="eID")
    seq_id: str = Field(..., alias="seqID")
    client_time: Optional[datetime] = Field(None, alias="clientTime")
    session_time: Optional[datetime] = Field(None, alias="sessionTime")
    event_time: datetime = Field(..., alias="eventTime")
    new_state: SessionState = Field(..., alias="newState")
    old_state: SessionState = Field(..., alias="oldState")
    changes: SessionChanges


# ─── Request Models ─────────────────────────────────────────

class NewIDRequest(BaseModel):
    """Input for push ID generation."""
    time: Optional[Union[int, datetime]] = Field(
        None,
        description="Timestamp to embed, as epoch milliseconds or ISO date. Default: now.",
    )
    stub: Optional[str] = Field(
        None,
        description="Type tag. Empty or null produces a legacy (undelimited) ID.",
    )
    length: int = Field(
        12, description="Length of the random part (minimum 12).", le=256,
    )
    randomness: Optional[str] = Field(
        None, description="Explicit random part, bypasses generation.",
    )
    data: Optional[Any] = Field(
        None,
        description="Any JSON value. When present, the random part is its hash.",
    )


class HashRequest(BaseModel):
    """Input for deterministic hashing."""
    data: Any = Field(..., description="Any JSON value to hash.")
    length: int = Field(12, description="Hash length (minimum 12).", le=256)


# ─── Response Models ────────────────────────────────────────

class HashResponse(BaseModel):
    hash: str
    length: int


class ClearResponse(BaseModel):
    cleared: List[str]


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float
    session_timeout_ms: int
    randomness_length: int
    use_stubs: bool
    secure_random: bool
