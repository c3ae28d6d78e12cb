import operator
from typing import Callable, Dict, Optional

_COMPARATORS: Dict[str, Callable[[int, int], bool]] = {
    "eq": operator.eq,
    "==": operator.eq,
    "neq": operator.ne,
    "!=": operator.ne,
    "<>": operator.ne,
    "gt": operator.gt,
    ">": operator.gt,
    "gte": operator.ge,
    ">=": operator.ge,
    "lt": operator.lt,
    "<": operator.lt,
    "lte": operator.le,
    "<=": operator.le,
}


def get_comparator(name: str) -> Optional[Callable[[int, int], bool]]:
    return _COMPARATORS.get(str(name).strip().lower())


def is_known_operator(name: str) -> bool:
    return get_comparator(name) is not None


def compare(name: str, observed: int, threshold: int) -> bool:
    """``observed <op> threshold``; an unknown operator never matches."""
    comparator = get_comparator(name)
    if comparator is None:
        return False
    return comparator(observed, threshold)
