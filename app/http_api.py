import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from kvdash.errors import ApplicationError, ClusterUnreachableError, TransportError

logger = logging.getLogger("API")


def _raise_for_kv_error(e: Exception):
    if isinstance(e, ClusterUnreachableError):
        raise HTTPException(503, "CLUSTER_UNREACHABLE") from e
    if isinstance(e, ApplicationError):
        raise HTTPException(409, e.err) from e
    raise e


def mount_dashboard_api(app, poller, dispatcher):
    router = APIRouter()

    class GetReq(BaseModel):
        key: str

    class PutReq(BaseModel):
        key: str
        value: str

    @router.get("/nodes")
    async def nodes():
        return poller.snapshot()

    @router.post("/nodes/refresh")
    async def refresh_nodes():
        await poller.fetch_all_nodes_status()
        return poller.snapshot()

    @router.delete("/nodes/selected")
    async def clear_selected():
        poller.clear_selected_node()
        return {"ok": True}

    @router.get("/nodes/{index}")
    async def node_status(index: int):
        try:
            return await poller.fetch_node_status(index)
        except IndexError as e:
            raise HTTPException(404, str(e)) from e
        except TransportError as e:
            logger.warning(f"Manual refresh of node {index + 1} failed: {e}")
            raise HTTPException(502, str(e)) from e

    @router.get("/kv/state")
    async def kv_state():
        return dispatcher.snapshot()

    @router.post("/kv/get")
    async def get_value(req: GetReq):
        try:
            val = await dispatcher.get(req.key)
        except (ClusterUnreachableError, ApplicationError) as e:
            _raise_for_kv_error(e)
        return {"value": val}

    @router.post("/kv/put")
    async def put_value(req: PutReq):
        try:
            await dispatcher.put(req.key, req.value)
        except (ClusterUnreachableError, ApplicationError) as e:
            _raise_for_kv_error(e)
        return {"ok": True}

    @router.post("/kv/append")
    async def append_value(req: PutReq):
        try:
            await dispatcher.append(req.key, req.value)
        except (ClusterUnreachableError, ApplicationError) as e:
            _raise_for_kv_error(e)
        return {"ok": True}

    app.include_router(router, prefix="/api")
