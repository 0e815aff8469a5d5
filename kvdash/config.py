import yaml
from typing import List

from kvdash.models import Node


def load_config(path: str) -> dict:
    with open(path, "r") as f:
        cfg = yaml.safe_load(f) or {}

    # Accept the dashboard's legacy config.json key as well
    if "api_auth_token" not in cfg and "APIAuthToken" in cfg:
        cfg["api_auth_token"] = cfg.pop("APIAuthToken")

    if not cfg.get("nodes"):
        raise ValueError(f"{path}: 'nodes' must be a non-empty list")
    if not cfg.get("api_auth_token"):
        raise ValueError(f"{path}: 'api_auth_token' must be set")
    for i, node in enumerate(cfg["nodes"]):
        if not isinstance(node, dict) or "ip" not in node or "port" not in node:
            raise ValueError(f"{path}: node #{i} must define 'ip' and 'port'")
    return cfg


def build_registry(cfg: dict) -> List[Node]:
    """Static node registry; a node's identity is its position in the list."""
    return [
        Node(index=i, ip=str(n["ip"]), port=int(n["port"]))
        for i, n in enumerate(cfg["nodes"])
    ]
