import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from kvdash.errors import TransportError
from kvdash.interfaces import NodeClientInterface, StatusPollerInterface
from kvdash.models import Node, NodeStatus, ProbeResult, StatusState
from kvdash.state import StateController

logger = logging.getLogger("STATUS")


def reconcile(
    nodes: Sequence[NodeStatus], results: Sequence[ProbeResult]
) -> List[NodeStatus]:
    """
    Combine raw probe results into one role assignment.

    Results are applied in registry order. Reachable nodes take the role they
    report, unreachable ones become `disconnected`. If some node reports
    `leader`, every other reachable node is shown as `follower`. A second
    leader report demotes the earlier one, so at most one leader survives.
    """
    new_nodes = list(nodes)
    leader_index: Optional[int] = None

    for result in sorted(results, key=lambda r: r.nodeIndex):
        i = result.nodeIndex
        if result.success:
            status = str(result.data["role"]).lower()
            new_nodes[i] = new_nodes[i].model_copy(
                update={"status": status, "details": result.data}
            )
            if status == "leader":
                if leader_index is not None:
                    logger.warning(
                        f"Nodes {leader_index + 1} and {i + 1} both report leader, keeping {i + 1}"
                    )
                    new_nodes[leader_index] = new_nodes[leader_index].model_copy(
                        update={"status": "follower"}
                    )
                leader_index = i
        else:
            new_nodes[i] = new_nodes[i].model_copy(
                update={"status": "disconnected", "details": None}
            )

    if leader_index is not None:
        for i, node in enumerate(new_nodes):
            if node.status not in ("leader", "disconnected"):
                new_nodes[i] = node.model_copy(update={"status": "follower"})

    return new_nodes


class StatusPoller(StatusPollerInterface):
    def __init__(
        self,
        cfg: dict,
        registry: List[Node],
        clients: List[NodeClientInterface],
    ):
        self.cfg = cfg
        self.registry = registry
        self.clients = clients
        self.timeout = cfg.get("status_timeout_ms", 1000) / 1000
        self.retries = cfg.get("status_retries", 2)
        self.refresh_interval = cfg.get("refresh_interval_ms", 0) / 1000
        self.state = StateController(
            StatusState(
                nodes=[
                    NodeStatus(id=n.id, index=n.index, ip=n.ip, port=n.port)
                    for n in registry
                ]
            )
        )
        self.shutdown = asyncio.Event()
        self._poll_task: asyncio.Task | None = None

    async def start(self):
        if self.refresh_interval > 0:
            self.shutdown.clear()
            self._poll_task = asyncio.create_task(self.poll_loop())
            logger.info(f"StatusPoller started: every {self.refresh_interval}s")

    async def stop(self):
        self.shutdown.set()
        if self._poll_task:
            self._poll_task.cancel()
            self._poll_task = None

    async def poll_loop(self):
        while not self.shutdown.is_set():
            await self.fetch_all_nodes_status()
            await asyncio.sleep(self.refresh_interval)

    def snapshot(self) -> StatusState:
        return self.state.snapshot()

    async def fetch_single_node_status(
        self, index: int, retries: Optional[int] = None
    ) -> ProbeResult:
        """Probe one node, retrying up to `retries` more times. Never raises."""
        retries = self.retries if retries is None else retries
        client = self.clients[index]
        error: Optional[Exception] = None
        for attempt in range(retries + 1):
            try:
                data = await client.get_status(self.timeout)
                return ProbeResult(nodeIndex=index, success=True, data=data)
            except TransportError as e:
                error = e
                logger.debug(
                    f"Status probe of node {index + 1} failed (attempt {attempt + 1}/{retries + 1}): {e}"
                )
        return ProbeResult(nodeIndex=index, success=False, error=str(error))

    async def fetch_all_nodes_status(self):
        if self.state.loading:
            return

        self.state.loading = True
        self.state.error = None
        try:
            results = await asyncio.gather(
                *[self.fetch_single_node_status(i) for i in range(len(self.clients))]
            )
            self.state.nodes = reconcile(self.state.nodes, results)
            self.state.lastRefreshTime = int(time.time() * 1000)
        except Exception as e:
            logger.error(f"Error fetching all nodes status: {e!r}")
            self.state.error = str(e)
        finally:
            self.state.loading = False

    async def fetch_node_status(self, index: int) -> Dict[str, Any]:
        if not 0 <= index < len(self.clients):
            raise IndexError(f"No node with index {index}")

        result = await self.fetch_single_node_status(index)
        self.state.selectedNode = index

        nodes = list(self.state.nodes)
        if not result.success:
            nodes[index] = nodes[index].model_copy(
                update={"status": "disconnected", "details": None}
            )
            self.state.nodes = nodes
            raise TransportError(result.error, index)

        status = str(result.data["role"]).lower()
        nodes[index] = nodes[index].model_copy(
            update={"status": status, "details": result.data}
        )
        if status == "leader":
            # A fresh leader report outranks any older leader label
            for i, node in enumerate(nodes):
                if i != index and node.status == "leader":
                    logger.warning(f"Node {index + 1} reports leader, demoting node {i + 1}")
                    nodes[i] = node.model_copy(update={"status": "follower"})
        self.state.nodes = nodes
        return result.data

    def clear_selected_node(self):
        self.state.selectedNode = None
