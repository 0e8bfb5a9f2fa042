from abc import ABC, abstractmethod
from typing import List, Optional

from case_activity_service.app.models import Contact


class AbstractUserDirectory(ABC):
    """Read-only lookups of clients, lawyers and admins, each resolved to a Contact."""

    @abstractmethod
    async def find_user_by_id(self, user_id: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_client_by_id(self, client_id: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_client_by_user_id(self, user_id: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_lawyer_by_id(self, lawyer_id: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_lawyer_by_user_id(self, user_id: str) -> Optional[Contact]:
        pass

    @abstractmethod
    async def find_active_admins(self) -> List[Contact]:
        pass

    @abstractmethod
    async def find_active_available_lawyers(self) -> List[Contact]:
        pass
