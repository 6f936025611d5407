"""Session waterfall: client, session and event identifiers.

Each processed event reads the previous identifiers from a storage
handler, decides what has expired, mints what is needed and writes the
new identifiers back:

- cID (client): long-lived, minted once per client.
- sID (session): rotated after `session_timeout` ms of inactivity.
- eID (event): minted on every call, the activity heartbeat.
- seqID: "<session number>-<event number within the session>".

Without stubs, newly minted cID/sID share the string of the new eID. Older
clients rely on that, so it stays.
"""

from datetime import datetime, timedelta
from typing import Optional, Protocol, Tuple

from pydantic import BaseModel, Field, field_validator

from models import ProcessedSession, SessionChanges, SessionState
from utils.hashing import MIN_LENGTH
from utils.logging_ import logger
from utils.push_id import PushIDCodec, TimeLike, from_millis, get_codec, now_ms, to_millis


class StorageRequiredError(ValueError):
    """Raised when a session is processed without a storage handler."""


class StorageHandler(Protocol):
    """What the session manager needs from storage.

    Handlers may also expose a `cookie_options` dict, merged into the
    options of every `set` call.
    """

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str, options: dict) -> None: ...

    def clear(self) -> None: ...


class SessionConfig(BaseModel):
    session_timeout: int = Field(30 * 60 * 1000, gt=0, description="Inactivity timeout in ms.")
    randomness_length: int = Field(MIN_LENGTH, ge=1)
    use_stubs: bool = Field(False, description="Tag minted IDs with 'cID', 'sID', 'eID'.")
    client_id_lifetime_years: int = Field(2, ge=1)

    @field_validator("randomness_length")
    @classmethod
    def _floor_length(cls, value: int) -> int:
        return max(MIN_LENGTH, value)


def parse_seq_id(seq_id: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse "<session>-<event>" into two ints, or None."""
    if not isinstance(seq_id, str):
        return None
    parts = seq_id.split("-")
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def next_seq_id(seq_id: Optional[str], is_new_session: bool) -> str:
    prior = parse_seq_id(seq_id)
    if prior is None:
        session_num, event_num = 1, 1
    elif is_new_session:
        session_num, event_num = prior[0] + 1, 1
    else:
        session_num, event_num = prior[0], prior[1] + 1
    return f"{session_num}-{event_num}"


def _as_date(ms: Optional[int]) -> Optional[datetime]:
    if ms is None:
        return None
    try:
        return from_millis(ms)
    except OverflowError:
        return None


def _add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        # Feb 29 into a non-leap year
        return moment.replace(year=moment.year + years, day=28)


class SessionManager:
    """Derives the next identifier state from storage and the clock."""

    def __init__(self, config: Optional[SessionConfig] = None, codec: Optional[PushIDCodec] = None):
        self.config = config or SessionConfig()
        self.codec = codec or get_codec()

    def _mint(self, stub: str, now: int) -> str:
        return self.codec.new_id(
            time=now,
            stub=stub if self.config.use_stubs else None,
            length=self.config.randomness_length,
        )

    def process(self, storage_handler: StorageHandler, now: Optional[TimeLike] = None) -> ProcessedSession:
        """Process one event against the state held by `storage_handler`.

        Stored values that do not decode as push IDs count as absent.

        Raises:
            StorageRequiredError: if no storage handler is given.
        """
        if storage_handler is None:
            raise StorageRequiredError("A storage handler must be provided.")

        now = now_ms() if now is None else to_millis(now)
        cfg = self.config

        # 1. Read the old state
        c_id = storage_handler.get("cID") or None
        s_id = storage_handler.get("sID") or None
        prev_e_id = storage_handler.get("eID") or None
        seq_id = storage_handler.get("seqID") or None

        c_time = self.codec.decode_time(c_id)
        s_time = self.codec.decode_time(s_id)
        prev_e_time = self.codec.decode_time(prev_e_id)

        old_state = SessionState(
            client_id=c_id,
            session_id=s_id,
            event_id=prev_e_id,
            seq_id=seq_id,
            client_time=_as_date(c_time),
            session_time=_as_date(s_time),
            event_time=_as_date(prev_e_time),
        )

        # 2. Expiry, measured from the most recent activity
        last_activity = next((t for t in (prev_e_time, s_time, c_time) if t is not None), None)
        is_expired = last_activity is None or (now - last_activity) > cfg.session_timeout

        is_new_client = c_time is None
        is_new_session = s_time is None or is_expired

        # 3. Mint
        new_e_id = self._mint("eID", now)
        if is_new_client:
            final_c_id = self._mint("cID", now) if cfg.use_stubs else new_e_id
        else:
            final_c_id = c_id
        if is_new_session:
            final_s_id = self._mint("sID", now) if cfg.use_stubs else new_e_id
        else:
            final_s_id = s_id

        final_seq_id = next_seq_id(seq_id, is_new_session)

        new_state = SessionState(
            client_id=final_c_id,
            session_id=final_s_id,
            event_id=new_e_id,
            seq_id=final_seq_id,
            client_time=_as_date(now if is_new_client else c_time),
            session_time=_as_date(now if is_new_session else s_time),
            event_time=from_millis(now),
        )
        changes = SessionChanges(is_new_client=is_new_client, is_new_session=is_new_session)

        # 4. Persist
        base_options = dict(getattr(storage_handler, "cookie_options", None) or {})
        now_date = from_millis(now)
        client_expiry = _add_years(now_date, cfg.client_id_lifetime_years)
        session_options = {**base_options, "expires": now_date + timedelta(milliseconds=cfg.session_timeout)}

        storage_handler.set("cID", final_c_id, {**base_options, "expires": client_expiry})
        storage_handler.set("sID", final_s_id, session_options)
        storage_handler.set("eID", new_e_id, session_options)
        storage_handler.set("seqID", final_seq_id, session_options)

        if is_new_client:
            logger.info(f"session: new client {final_c_id}")
        if is_new_session:
            logger.info(f"session: new session {final_s_id} (client={final_c_id}, seq={final_seq_id})")
        logger.debug(f"session: event {new_e_id} seq={final_seq_id}")

        return ProcessedSession(
            client_id=new_state.client_id,
            session_id=new_state.session_id,
            event_id=new_state.event_id,
            seq_id=new_state.seq_id,
            client_time=new_state.client_time,
            session_time=new_state.session_time,
            event_time=new_state.event_time,
            new_state=new_state,
            old_state=old_state,
            changes=changes,
        )

    def clear(self, storage_handler: StorageHandler):
        """Forget all identifiers held by `storage_handler`."""
        if storage_handler is None:
            raise StorageRequiredError("A storage handler must be provided.")
        logger.info("session: clearing stored identifiers")
        return storage_handler.clear()


def session_manager(**config) -> SessionManager:
    """Build a SessionManager from keyword configuration."""
    return SessionManager(SessionConfig(**config))
