from abc import ABC, abstractmethod
from typing import List, Optional

from case_activity_service.app.models import EmailTemplateDB


class AbstractTemplateStore(ABC):
    """Administrator-editable template overrides keyed by template_key."""

    @abstractmethod
    async def get_by_key(self, template_key: str) -> Optional[EmailTemplateDB]:
        pass

    @abstractmethod
    async def list(self) -> List[EmailTemplateDB]:
        pass

    @abstractmethod
    async def upsert(self, template: EmailTemplateDB) -> EmailTemplateDB:
        pass

    @abstractmethod
    async def delete(self, template_key: str) -> bool:
        pass
