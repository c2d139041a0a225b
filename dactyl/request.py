"""
Request - ASGI request wrapper.

Exposes the accessors the execution pipeline binds from: method, path,
path parameters, query parameters, headers and a parsed body.
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl

from .exceptions import BadRequestException, HttpException, HttpStatus


class Headers(Mapping[str, str]):
    """
    Case-insensitive, read-only header mapping.

    Repeated headers are joined with ", " as permitted by RFC 9110.
    """

    __slots__ = ("_items",)

    def __init__(self, raw: Optional[List[Tuple[bytes, bytes]]] = None):
        items: Dict[str, str] = {}
        for name, value in raw or ():
            key = name.decode("latin-1").lower()
            text = value.decode("latin-1")
            items[key] = f"{items[key]}, {text}" if key in items else text
        self._items = items

    def __getitem__(self, key: str) -> str:
        return self._items[key.lower()]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Headers({self._items!r})"


class Request:
    """
    Request object for one HTTP exchange.

    The body is read from ``receive`` once and cached; ``json()`` and
    ``parsed_body()`` reuse the cached bytes.
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Callable[..., Awaitable[dict]],
        *,
        max_body_size: int = 10_485_760,  # 10 MiB
    ):
        self.scope = scope
        self._receive = receive
        self.max_body_size = max_body_size

        # State shared with middleware
        self.state: Dict[str, Any] = {}
        self.path_params: Dict[str, str] = {}

        # Cached values
        self._body: Optional[bytes] = None
        self._headers: Optional[Headers] = None
        self._query_params: Optional[Dict[str, str]] = None

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        """HTTP method (GET, POST, etc.)."""
        return self.scope.get("method", "GET").upper()

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        return self.scope.get("query_string", b"").decode("latin-1")

    @property
    def query_params(self) -> Dict[str, str]:
        """Query parameters; the first occurrence of a repeated key wins."""
        if self._query_params is None:
            params: Dict[str, str] = {}
            for key, value in parse_qsl(self.query_string, keep_blank_values=True):
                params.setdefault(key, value)
            self._query_params = params
        return self._query_params

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.query_params.get(name, default)

    @property
    def headers(self) -> Headers:
        if self._headers is None:
            self._headers = Headers(self.scope.get("headers"))
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name, default)

    @property
    def content_type(self) -> Optional[str]:
        value = self.header("content-type")
        if value is None:
            return None
        return value.split(";", 1)[0].strip().lower()

    # ========================================================================
    # Body
    # ========================================================================

    async def body(self) -> bytes:
        """Read and cache the full request body."""
        if self._body is None:
            chunks = []
            size = 0
            more_body = True
            while more_body:
                message = await self._receive()
                if message["type"] == "http.disconnect":
                    break
                chunk = message.get("body", b"")
                size += len(chunk)
                if size > self.max_body_size:
                    raise HttpException(status=HttpStatus.REQUEST_ENTITY_TOO_LARGE)
                chunks.append(chunk)
                more_body = message.get("more_body", False)
            self._body = b"".join(chunks)
        return self._body

    async def json(self) -> Any:
        """Parse body as JSON; ``None`` for an empty body."""
        raw = await self.body()
        if not raw:
            return None
        try:
            return stdlib_json.loads(raw)
        except (ValueError, UnicodeDecodeError):
            raise BadRequestException("Invalid JSON body") from None

    async def parsed_body(self) -> Any:
        """
        Body parsed according to its content type.

        - application/json (or no content type): decoded JSON
        - application/x-www-form-urlencoded: dict of fields
        - anything else: decoded text
        """
        raw = await self.body()
        if not raw:
            return None

        content_type = self.content_type
        if content_type is None or content_type == "application/json" or content_type.endswith("+json"):
            return await self.json()
        if content_type == "application/x-www-form-urlencoded":
            return dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
        return raw.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.path}>"
