"""
availability/standing.py - Trader standing comparisons
"""

from __future__ import annotations
from typing import Any, Callable, Dict, Optional
import math
import operator

from questline.core.constants import MAX_TRADER_LEVEL, MIN_TRADER_LEVEL

_METHOD_ALIASES: Dict[str, str] = {
    ">": ">",
    "greaterthan": ">",
    "gt": ">",
    ">=": ">=",
    "greaterorequal": ">=",
    "ge": ">=",
    "gte": ">=",
    "<": "<",
    "lessthan": "<",
    "lt": "<",
    "<=": "<=",
    "lessorequal": "<=",
    "le": "<=",
    "lte": "<=",
    "=": "=",
    "==": "=",
    "eq": "=",
    "equals": "=",
}

_COMPARATORS: Dict[str, Callable[[float, float], bool]] = {
    ">": operator.gt,
    ">=": operator.ge,
    "<": operator.lt,
    "<=": operator.le,
    "=": operator.eq,
}


def normalize_method(method: Optional[str]) -> str:
    if not method:
        return ">="
    return _METHOD_ALIASES.get(method.lower(), ">=")


def _number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def standing_compare(current: Any, method: Optional[str], target: Any) -> bool:
    """Compare a trader standing using the catalog's compare method (default >=)."""
    return _COMPARATORS[normalize_method(method)](_number(current), _number(target))


def clamp_trader_level(value: Any) -> int:
    """Required trader levels are whole numbers in 0..10."""
    return max(MIN_TRADER_LEVEL, min(MAX_TRADER_LEVEL, math.floor(_number(value))))
