"""Shared types and helpers for platform handlers."""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from services.fetcher import FetchResult


@dataclass
class RouteOptions:
    """Per-request options parsed from the query string."""
    no_cache: bool = False
    limit: Optional[int] = None
    params: Dict[str, str] = field(default_factory=dict)


@dataclass
class HotList:
    """Items produced by a handler plus the cache metadata of its fetch."""
    data: List[Dict[str, Any]]
    from_cache: bool
    update_time: str
    type: Optional[str] = None

    @classmethod
    def from_fetch(cls, result: FetchResult, data: List[Dict[str, Any]],
                   type: Optional[str] = None) -> "HotList":
        return cls(data=data, from_cache=result.from_cache,
                   update_time=result.update_time, type=type)


def hot_item(
    id: Any,
    title: str,
    url: str,
    *,
    cover: Optional[str] = None,
    author: Optional[str] = None,
    desc: Optional[str] = None,
    hot: Optional[Union[int, float]] = None,
    timestamp: Optional[int] = None,
    mobile_url: Optional[str] = None,
) -> Dict[str, Any]:
    """Build one list entry in the uniform response shape."""
    return {
        "id": id,
        "title": title,
        "cover": cover,
        "author": author,
        "desc": desc,
        "hot": hot,
        "timestamp": timestamp,
        "url": url,
        "mobileUrl": mobile_url or url,
    }


def to_millis(value: Any) -> Optional[int]:
    """Normalize epoch seconds, epoch millis or ISO strings to epoch millis."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        if value.isdigit():
            value = int(value)
        else:
            try:
                return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp() * 1000)
            except ValueError:
                return None
    if isinstance(value, (int, float)):
        # Anything below 1e11 is a seconds timestamp (year 5138 in millis).
        return int(value * 1000) if value < 1e11 else int(value)
    return None


_HOT_NUMBER = re.compile(r"([\d.]+)\s*(万|亿)?")


def parse_hot(text: Any) -> Optional[float]:
    """Parse popularity strings such as ``"1234"``, ``"356 万热度"`` or ``"1.2亿"``."""
    if isinstance(text, (int, float)):
        return text
    if not text:
        return None
    match = _HOT_NUMBER.search(str(text))
    if not match:
        return None
    number = float(match.group(1))
    unit = match.group(2)
    if unit == "万":
        number *= 10_000
    elif unit == "亿":
        number *= 100_000_000
    return int(number) if number.is_integer() else number


def require(*path: str, **fields: Any) -> Callable[[Any], None]:
    """Validator asserting that ``path`` exists and ``fields`` match at the top level.

    ``require("data", "list", code=0)`` accepts ``{"code": 0, "data": {"list": [...]}}``.
    """
    def validate(payload: Any) -> None:
        if not isinstance(payload, dict):
            raise ValueError(f"expected an object, got {type(payload).__name__}")
        for name, expected in fields.items():
            if payload.get(name) != expected:
                raise ValueError(f"{name}={payload.get(name)!r}")
        node = payload
        for part in path:
            if not isinstance(node, dict) or part not in node:
                raise ValueError(f"missing {'.'.join(path)}")
            node = node[part]
    return validate
