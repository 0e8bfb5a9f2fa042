from abc import ABC, abstractmethod

from case_activity_service.app.models import OutboundEmailDB


class AbstractOutboundEmailLog(ABC):
    @abstractmethod
    async def record(self, entry: OutboundEmailDB) -> None:
        pass
