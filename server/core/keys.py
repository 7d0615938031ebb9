"""Cache key derivation for outbound requests.

Keys are built by structured concatenation so that two different logical
requests can never share a key:

    hot:v1:GET:https://example.com/api?a=1&b=2|{"x":1}

The URL is normalized (lower-case scheme and host, fragment dropped, query
merged with the explicit params and sorted). Every parameter sent upstream is
part of the key, pagination included; only the ``_`` cache-buster is dropped.
"""

import json
from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional
from urllib.parse import parse_qsl, quote, urlencode, urlsplit

KEY_PREFIX = "hot"
KEY_VERSION = "v1"

IGNORED_PARAMS: FrozenSet[str] = frozenset({"_"})

# Characters left unescaped in the path; "|" is deliberately absent.
_PATH_SAFE = "/:@!$&'()*+,;=-._~%"


@dataclass(frozen=True)
class RequestDescriptor:
    """Fully resolved description of an outbound request."""

    url: str
    method: str = "GET"
    params: Mapping[str, Any] = field(default_factory=dict)
    body: Optional[Any] = None


def _normalize_params(url_query: str, params: Mapping[str, Any],
                      ignored: FrozenSet[str]) -> str:
    pairs = list(parse_qsl(url_query, keep_blank_values=True))
    for name, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((name, str(item)) for item in value)
        elif isinstance(value, bool):
            pairs.append((name, "true" if value else "false"))
        else:
            pairs.append((name, str(value)))

    relevant = sorted((k, v) for k, v in pairs if k not in ignored)
    return urlencode(relevant)


def _canonical_body(body: Any) -> str:
    if isinstance(body, (bytes, bytearray)):
        return body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        return body
    return json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def derive_key(descriptor: RequestDescriptor,
               ignored: FrozenSet[str] = IGNORED_PARAMS) -> str:
    """Compute the cache key for a request descriptor.

    Args:
        descriptor: The outbound request.
        ignored: Parameter names that do not affect the response.

    Returns:
        Cache key string, stable across process restarts.
    """
    parts = urlsplit(descriptor.url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc.lower()
    path = quote(parts.path or "/", safe=_PATH_SAFE)

    key = f"{KEY_PREFIX}:{KEY_VERSION}:{descriptor.method.upper()}:{scheme}://{netloc}{path}"

    query = _normalize_params(parts.query, descriptor.params, ignored)
    if query:
        key = f"{key}?{query}"

    if descriptor.body is not None:
        key = f"{key}|{_canonical_body(descriptor.body)}"

    return key
