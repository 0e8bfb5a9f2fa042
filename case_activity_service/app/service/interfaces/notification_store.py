from abc import ABC, abstractmethod
from typing import List, Optional

from case_activity_service.app.models import NotificationDB, NotificationType


class AbstractNotificationStore(ABC):
    @abstractmethod
    async def create(
        self,
        user_id: str,
        notification_type: NotificationType,
        title: str,
        message: str,
        case_id: Optional[str] = None
    ) -> NotificationDB:
        pass

    @abstractmethod
    async def get(self, notification_id: str) -> Optional[NotificationDB]:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: str, unread_only: bool = False, limit: int = 50) -> List[NotificationDB]:
        """Newest first."""
        pass

    @abstractmethod
    async def list_for_case(self, case_id: str, user_id: str) -> List[NotificationDB]:
        pass

    @abstractmethod
    async def unread_count(self, user_id: str, case_id: Optional[str] = None) -> int:
        pass

    @abstractmethod
    async def mark_read(self, notification_id: str, user_id: str) -> Optional[NotificationDB]:
        """Returns None when the notification does not exist or belongs to someone else."""
        pass

    @abstractmethod
    async def mark_all_read_for_case(self, case_id: str, user_id: str) -> int:
        pass

    @abstractmethod
    async def mark_all_read(self, user_id: str) -> int:
        pass

    @abstractmethod
    async def delete(self, notification_id: str, user_id: str) -> bool:
        pass
