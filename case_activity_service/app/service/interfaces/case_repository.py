import datetime
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional

from case_activity_service.app.models import CaseDB, CaseEventDB, CaseEventType


class AbstractCaseRepository(ABC):
    """Persistence boundary for cases. Implementations translate storage errors into service exceptions."""

    @abstractmethod
    def transaction(self) -> AsyncContextManager[Any]:
        """
        Async context manager scoping a case mutation and its audit append.

        Yields an opaque session handle (or None) that must be passed to every
        repository call made inside the block.
        """
        pass

    @abstractmethod
    async def get(self, case_id: str) -> Optional[CaseDB]:
        pass

    @abstractmethod
    async def insert(self, case: CaseDB, session: Any = None) -> CaseDB:
        """Raises CaseNumberConflictError when the case number is already taken."""
        pass

    @abstractmethod
    async def update(self, case_id: str, fields: Dict[str, Any], session: Any = None) -> Optional[CaseDB]:
        """Applies a partial update and returns the updated case, or None if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, case_id: str, session: Any = None) -> bool:
        """Removes a case row. Used to revert an insert whose audit append failed outside a transaction."""
        pass

    @abstractmethod
    async def max_sequence(self, year: int, prefix: str) -> int:
        """Highest allocated case-number sequence for year+prefix, 0 when none exists."""
        pass

    @abstractmethod
    async def list_inactive(
        self,
        threshold_days: int,
        throttle_days: int,
        now: datetime.datetime
    ) -> List[CaseDB]:
        """Open cases idle for more than threshold_days and not nudged within throttle_days, oldest activity first."""
        pass

    @abstractmethod
    async def list_for_lawyer(self, lawyer_id: str) -> List[CaseDB]:
        pass


class AbstractCaseEventRepository(ABC):
    @abstractmethod
    async def append(
        self,
        case_id: str,
        event_type: CaseEventType,
        description: str,
        actor_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        session: Any = None
    ) -> CaseEventDB:
        """
        Appends an immutable event to the case timeline.

        Side effect: raises the owning case's last_activity_at to at least the
        event's created_at. It is never lowered.
        """
        pass

    @abstractmethod
    async def list_for_case(self, case_id: str) -> List[CaseEventDB]:
        """Events of a case ordered by created_at ascending."""
        pass
