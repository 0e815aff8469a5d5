from abc import ABC, abstractmethod
from typing import Any, Dict

from kvdash.models import KVOp, KVResponse


class NodeClientInterface(ABC):
    """Base interface for per-node HTTP clients"""

    index: int

    @abstractmethod
    async def get_status(self, timeout: float) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def kv(self, op: KVOp, payload: Dict[str, Any], timeout: float) -> KVResponse:
        pass

    @abstractmethod
    async def aclose(self):
        pass


class StoreRunnerInterface(ABC):
    """Base interface for stores with background work"""

    @abstractmethod
    async def start(self):
        pass

    @abstractmethod
    async def stop(self):
        pass


class StatusPollerInterface(StoreRunnerInterface):
    """Polls node roles and reconciles the cluster view"""


class DispatcherInterface(ABC):
    """Sends key-value operations to the cluster, following the leader"""

    @abstractmethod
    async def get(self, key: str) -> Any:
        pass

    @abstractmethod
    async def put(self, key: str, value: str) -> bool:
        pass

    @abstractmethod
    async def append(self, key: str, value: str) -> bool:
        pass
