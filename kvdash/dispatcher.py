import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, List

from kvdash.errors import (
    ERR_NOT_LEADER,
    ApplicationError,
    ClusterUnreachableError,
    TransportError,
)
from kvdash.interfaces import DispatcherInterface, NodeClientInterface
from kvdash.models import KVGetRequest, KVOp, KVPutRequest, KVResponse, QueryState
from kvdash.state import StateController

logger = logging.getLogger("DISPATCH")

# Largest integer a browser session id could take (2**53 - 1)
MAX_IDENTIFIER = 2**53 - 1


class OperationDispatcher(DispatcherInterface):
    """
    Sends get/put/append to whichever node is currently the leader.

    The leader is not known in advance. Requests start at the last node that
    answered successfully and walk the registry, trying each node twice, until
    one of them accepts the request or 2 * len(nodes) attempts are spent.
    """

    def __init__(
        self,
        cfg: dict,
        clients: List[NodeClientInterface],
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.cfg = cfg
        self.clients = clients
        self.timeout = cfg.get("request_timeout_ms", 3000) / 1000
        self.backoff = cfg.get("retry_backoff_ms", 50) / 1000
        self._sleep = sleep
        self.state = StateController(
            QueryState(identifier=random.randint(0, MAX_IDENTIFIER))
        )

    def snapshot(self) -> QueryState:
        return self.state.snapshot()

    async def _dispatch(self, op: KVOp, payload: Dict[str, Any]) -> KVResponse:
        n = len(self.clients)
        max_attempts = n * 2
        hint = self.state.currentLeader

        for attempt in range(max_attempts):
            index = (hint + attempt // 2) % n
            logger.debug(
                f"Sending {op} for key {payload['key']!r} to node {index + 1} (attempt {attempt + 1}/{max_attempts})"
            )
            try:
                res = await self.clients[index].kv(op, payload, self.timeout)
            except TransportError as e:
                logger.warning(f"{op} on node {index + 1} failed: {e}")
                if attempt + 1 < max_attempts:
                    await self._sleep(self.backoff)
                continue

            if not res.success:
                if res.err == ERR_NOT_LEADER:
                    logger.debug(f"Node {index + 1} is not the leader, trying next")
                    continue
                raise ApplicationError(str(res.err) if res.err else "unknown error", index)

            self.state.currentLeader = index
            return res

        logger.error(f"{op} for key {payload['key']!r} gave up after {max_attempts} attempts")
        raise ClusterUnreachableError(max_attempts)

    async def get(self, key: str) -> Any:
        self.state.loading = True
        self.state.error = None
        try:
            res = await self._dispatch("get", KVGetRequest(key=key).model_dump())
            self.state.lastResult = res.value
            return res.value
        except Exception as e:
            self.state.error = str(e)
            raise
        finally:
            self.state.loading = False

    async def put_append(self, key: str, value: str, is_append: bool = False) -> bool:
        self.state.loading = True
        self.state.error = None
        try:
            op: KVOp = "append" if is_append else "put"
            await self._dispatch(op, KVPutRequest(key=key, value=value).model_dump())
            return True
        except Exception as e:
            self.state.error = str(e)
            raise
        finally:
            self.state.loading = False

    async def put(self, key: str, value: str) -> bool:
        return await self.put_append(key, value, False)

    async def append(self, key: str, value: str) -> bool:
        return await self.put_append(key, value, True)
