import asyncio
from typing import Any, Dict, List

import pytest

from kvdash.errors import TransportError
from kvdash.interfaces import NodeClientInterface
from kvdash.models import KVResponse, Node


class FakeNodeClient(NodeClientInterface):
    """
    Scripted node. Each call pops the next scripted reply; an exception
    instance is raised instead of returned. When the script runs out the
    `default` reply is used.
    """

    def __init__(self, index: int, calls: List[tuple], default: Any = None):
        self.index = index
        self.calls = calls
        self.status_replies: List[Any] = []
        self.kv_replies: List[Any] = []
        self.default = default
        self.gate: asyncio.Event | None = None
        self.closed = False

    def _next(self, replies: List[Any]) -> Any:
        reply = replies.pop(0) if replies else self.default
        if reply is None:
            reply = TransportError(f"node {self.index + 1}: timed out", self.index)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def get_status(self, timeout: float) -> Dict[str, Any]:
        self.calls.append(("status", self.index))
        if self.gate is not None:
            await self.gate.wait()
        return self._next(self.status_replies)

    async def kv(self, op, payload, timeout) -> KVResponse:
        self.calls.append((op, self.index, payload))
        return self._next(self.kv_replies)

    async def aclose(self):
        self.closed = True


def ok(value=None) -> KVResponse:
    return KVResponse(success=True, value=value)


def not_leader() -> KVResponse:
    return KVResponse(success=False, err="ERR_NOT_LEADER")


def timeout(index: int = 0) -> TransportError:
    return TransportError("timed out", index)


@pytest.fixture
def cfg():
    return {
        "api_auth_token": "secret",
        "nodes": [
            {"ip": "10.0.0.1", "port": 5111},
            {"ip": "10.0.0.2", "port": 5111},
            {"ip": "10.0.0.3", "port": 5111},
        ],
    }


@pytest.fixture
def registry(cfg):
    return [Node(index=i, ip=n["ip"], port=n["port"]) for i, n in enumerate(cfg["nodes"])]


@pytest.fixture
def calls():
    return []


@pytest.fixture
def clients(registry, calls):
    return [FakeNodeClient(n.index, calls) for n in registry]
