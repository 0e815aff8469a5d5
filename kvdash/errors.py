from typing import Optional

# Steering signal returned by a follower; not an error for the caller.
ERR_NOT_LEADER = "ERR_NOT_LEADER"


class KVDashError(Exception):
    """Base class for all dashboard client errors"""


class TransportError(KVDashError):
    """Network failure, timeout, non-2xx status or malformed response body"""

    def __init__(self, message: str, node_index: Optional[int] = None):
        super().__init__(message)
        self.node_index = node_index


class ApplicationError(KVDashError):
    """A node answered with an `err` other than ERR_NOT_LEADER. Never retried."""

    def __init__(self, err: str, node_index: Optional[int] = None):
        super().__init__(err)
        self.err = err
        self.node_index = node_index


class ClusterUnreachableError(KVDashError):
    """Retry budget consumed without a successful response"""

    def __init__(self, attempts: int):
        super().__init__("Unable to reach any cluster node")
        self.attempts = attempts
