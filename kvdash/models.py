from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict

# Roles a node can be shown with. Nodes may report other roles; those are
# kept lower-cased as reported.
NodeRole = Literal["unknown", "leader", "follower", "candidate", "disconnected"]

KVOp = Literal["get", "put", "append"]


class Node(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    ip: str
    port: int

    @property
    def id(self) -> int:
        return self.index + 1


class NodeStatus(BaseModel):
    id: int
    index: int
    ip: str
    port: int
    status: str = "unknown"
    details: Optional[Dict[str, Any]] = None


class SysStatus(BaseModel):
    """Payload of /api/get-sysstatus. Only `role` is required."""

    model_config = ConfigDict(extra="allow")

    role: str


class ProbeResult(BaseModel):
    nodeIndex: int
    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class KVGetRequest(BaseModel):
    key: str


class KVPutRequest(BaseModel):
    key: str
    value: str


class KVResponse(BaseModel):
    success: bool
    value: Any = None
    err: Any = None


class StatusState(BaseModel):
    nodes: List[NodeStatus]
    selectedNode: Optional[int] = None
    loading: bool = False
    error: Optional[str] = None
    lastRefreshTime: Optional[int] = None  # epoch milliseconds


class QueryState(BaseModel):
    loading: bool = False
    error: Optional[str] = None
    lastResult: Any = None
    currentLeader: int = 0
    identifier: int
