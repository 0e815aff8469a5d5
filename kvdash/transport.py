import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from kvdash.errors import TransportError
from kvdash.interfaces import NodeClientInterface
from kvdash.models import KVOp, KVResponse, Node, SysStatus

logger = logging.getLogger("TRANSPORT")


class NodeHTTPClient(NodeClientInterface):
    def __init__(
        self,
        node: Node,
        token: str,
        kv_port: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.node = node
        self.index = node.index
        self.base_url = f"http://{node.ip}:{node.port}"
        self.kv_base_url = f"http://{node.ip}:{kv_port or node.port}"
        self._headers = {"Token": token}
        self._client = client or httpx.AsyncClient()

    async def _send(self, method: str, url: str, timeout: float, **kwargs) -> Any:
        try:
            r = await asyncio.wait_for(
                self._client.request(method, url, headers=self._headers, **kwargs),
                timeout,
            )
            r.raise_for_status()
            return r.json()
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"node {self.node.id}: timed out after {timeout}s", self.index
            ) from e
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"node {self.node.id}: HTTP error {e.response.status_code}", self.index
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise TransportError(f"node {self.node.id}: {e!r}", self.index) from e

    async def get_status(self, timeout: float) -> Dict[str, Any]:
        data = await self._send("GET", f"{self.base_url}/api/get-sysstatus", timeout)
        try:
            return SysStatus.model_validate(data).model_dump()
        except ValidationError as e:
            raise TransportError(
                f"node {self.node.id}: malformed status payload", self.index
            ) from e

    async def kv(self, op: KVOp, payload: Dict[str, Any], timeout: float) -> KVResponse:
        # json= sets the JSON content-type header
        data = await self._send(
            "POST", f"{self.kv_base_url}/kv/{op}", timeout, json=payload
        )
        try:
            return KVResponse.model_validate(data)
        except ValidationError as e:
            raise TransportError(
                f"node {self.node.id}: malformed {op} response", self.index
            ) from e

    async def aclose(self):
        await self._client.aclose()


def build_clients(cfg: dict, registry: List[Node]) -> List[NodeHTTPClient]:
    kv_port = cfg.get("kv_port")
    return [
        NodeHTTPClient(node, cfg["api_auth_token"], kv_port=kv_port)
        for node in registry
    ]
