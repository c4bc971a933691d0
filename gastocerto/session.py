"""
Household Session

A client works in one household at a time. The household id is shared
out of band (told to a family member, typed in on their device); every
member of that household sees the same ledger.

The session is remembered between runs by a SessionStoreInterface:
- FileSessionStore: a small JSON file (default for the app)
- InMemorySessionStore: process lifetime only (tests)
"""

from pathlib import Path
from typing import Optional, Union
from uuid import uuid4

import structlog
from pydantic import ValidationError as PydanticValidationError

from gastocerto.audit import AuditLogger
from gastocerto.config import get_settings
from gastocerto.models.household import HouseholdSession
from gastocerto.services.storage import SessionStoreInterface
from gastocerto.validation import ValidationError


logger = structlog.get_logger("gastocerto.session")

HOUSEHOLD_ID_PREFIX = "familia-"


def generate_household_id() -> str:
    """New shareable household id: "familia-" plus 8 hex chars."""
    return HOUSEHOLD_ID_PREFIX + uuid4().hex[:8]


class NoHouseholdError(Exception):
    """An operation needs a household session and there is none."""
    pass


class FileSessionStore(SessionStoreInterface):
    """
    Session persisted as JSON.

    Args:
        path: File location. Defaults to AppSettings.session_file.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path or get_settings().app.session_file)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[HouseholdSession]:
        if not self._path.exists():
            return None
        try:
            return HouseholdSession.model_validate_json(
                self._path.read_text(encoding="utf-8")
            )
        except PydanticValidationError as e:
            # Unreadable file counts as no session; the next save overwrites it.
            logger.warning("session_file_invalid", path=str(self._path), error=str(e))
            return None

    def save(self, session: HouseholdSession) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(session.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()


class HouseholdSessionManager:
    """
    Join, create and leave households.

    The user id is kept across households so records stay attributable
    to the same client.
    """

    def __init__(
        self,
        store: SessionStoreInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._audit_logger = audit_logger
        self._current = store.load()
        self._user_id = self._current.user_id if self._current else None

    @property
    def current(self) -> Optional[HouseholdSession]:
        return self._current

    def require(self) -> HouseholdSession:
        """The current session, or NoHouseholdError."""
        if self._current is None:
            raise NoHouseholdError("No household selected. Join or create one first.")
        return self._current

    def _user(self) -> str:
        if self._user_id is None:
            self._user_id = uuid4().hex
        return self._user_id

    async def _enter(self, household_id: str, created: bool) -> HouseholdSession:
        session = HouseholdSession(household_id=household_id, user_id=self._user())
        self._store.save(session)
        self._current = session
        if self._audit_logger:
            await self._audit_logger.log_household_joined(household_id, created)
        return session

    async def join(self, household_id: str) -> HouseholdSession:
        """
        Enter an existing household by id.

        Raises:
            ValidationError: If the id is empty after trimming
        """
        household_id = (household_id or "").strip()
        if not household_id:
            raise ValidationError.single(
                field="household_id",
                issue_type="missing",
                message="Household id is required",
                suggested_fix="Type the id shared by your family",
            )
        return await self._enter(household_id, created=False)

    async def create(self) -> HouseholdSession:
        """Start a new household with a freshly generated id."""
        return await self._enter(generate_household_id(), created=True)

    async def leave(self) -> None:
        """Forget the current household. A no-op when there is none."""
        if self._current is None:
            return
        household_id = self._current.household_id
        self._store.clear()
        self._current = None
        if self._audit_logger:
            await self._audit_logger.log_household_left(household_id)
