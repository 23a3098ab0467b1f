"""
Status transition tables. Each workflow (mission requests, mission orders,
cautelas, parking requests) declares the statuses reachable from each status;
anything else is rejected with 400.
"""
from enum import Enum
from typing import Dict, Iterable, Union

from fastapi import HTTPException

StatusValue = Union[str, Enum]


def _value(status: StatusValue) -> str:
    return status.value if isinstance(status, Enum) else status


def can_transition(table: Dict[str, Iterable[str]], current: StatusValue, target: StatusValue) -> bool:
    allowed = table.get(_value(current), ())
    return _value(target) in {_value(s) for s in allowed}


def ensure_transition(table: Dict[str, Iterable[str]], current: StatusValue, target: StatusValue) -> None:
    """Raise 400 when target is not reachable from current."""
    if not can_transition(table, current, target):
        raise HTTPException(
            status_code=400,
            detail=f"Transição de status inválida: {_value(current)} -> {_value(target)}"
        )
