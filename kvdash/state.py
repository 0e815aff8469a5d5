from __future__ import annotations
import logging
from typing import Any, Dict, Generic, Iterable, TypeVar
from pydantic import BaseModel

logger = logging.getLogger("STATE UPDATE")

T = TypeVar("T", bound=BaseModel)


def _format_list_summary(value: Iterable[Any]) -> str:
    seq = list(value)
    if not seq:
        return "[]"
    if len(seq) == 1:
        return f"[{_format_value(seq[0])}]"
    # Node lists are short; show every status instead of first..last
    if all(isinstance(v, BaseModel) and hasattr(v, "status") for v in seq):
        return "[" + ", ".join(v.status for v in seq) + "]"
    return f"[{seq[0]!r}..{seq[-1]!r}]"


def _format_value(v: Any) -> str:
    if isinstance(v, (list, tuple)):
        return _format_list_summary(v)
    if isinstance(v, BaseModel):
        return repr(v.model_dump())
    if isinstance(v, dict):
        keys = list(v.keys())
        if len(keys) <= 6:
            return repr(v)
        return f"{{{', '.join(map(repr, keys[:5]))}, ...}}"
    return repr(v)


class StateController(Generic[T]):
    """
    Wraps a store's Pydantic state model and logs every state transition.
    - attribute assignment: ctrl.loading = True goes through set()
    - update(new_data): state = state.model_copy(update=new_data)
    - snapshot(): return a deep copy safe to hand to the UI layer
    """

    def __init__(self, state: T):
        self._state: T = state
        self._logger = logger

    @property
    def state(self) -> T:
        return self._state

    def snapshot(self) -> T:
        return self._state.model_copy(deep=True)

    def __setattr__(self, name, value):
        if name.startswith("_"):
            super().__setattr__(name, value)
        else:
            self.set(name, value)

    def __getattr__(self, name):
        return self._state.__getattribute__(name)

    def set(self, field: str, value: Any) -> None:
        if field not in type(self._state).model_fields:
            raise AttributeError(
                f"Unknown field '{field}' for {type(self._state).__name__}"
            )
        self.update({field: value})

    def update(self, new_data: Dict[str, Any] | BaseModel) -> None:
        """Apply a partial update. Logs per-field prev/new."""
        if isinstance(new_data, BaseModel):
            new_data = new_data.model_dump()

        allowed = set(type(self._state).model_fields)
        clean_update = {k: v for k, v in new_data.items() if k in allowed}

        before_values = {}
        changed = {}
        for field, new_val in clean_update.items():
            current_val = getattr(self._state, field)
            if current_val != new_val:
                before_values[field] = current_val
                changed[field] = new_val

        if changed:
            self._log_change(changed, before_values)
            self._state = self._state.model_copy(update=changed)

    # --- Logging ---
    def _log_change(self, changed: Dict[str, Any], before: Dict[str, Any]) -> None:
        lines = [""]
        for field in changed.keys():
            prev_val = _format_value(before.get(field))
            new_val = _format_value(changed.get(field))
            lines.append(f"#    {field}: {prev_val} -> {new_val}")
        self._logger.debug("\n".join(lines))
