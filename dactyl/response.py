"""
Response - outgoing HTTP response written by the router.

The router sets ``status`` and ``body``; serialization to JSON happens
only when the response is sent over ASGI.
"""

from __future__ import annotations

import json as stdlib_json
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple


def _json_default_serializer(o: Any) -> Any:
    """Fallback for objects the stdlib encoder does not know."""
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if isinstance(o, (set, frozenset)):
        return list(o)
    if hasattr(o, "__dict__"):
        return vars(o)
    raise TypeError(f"Object of type {type(o).__name__} is not JSON serializable")


class Response:
    """
    Mutable response handed to the pipeline.

    ``status_set`` records whether anything assigned ``status``
    explicitly, which lets an action choose its own status code through
    a ``Res()`` binding.
    """

    __slots__ = ("_status", "status_set", "body", "headers", "encoding")

    DEFAULT_STATUS = 200

    def __init__(
        self,
        body: Any = None,
        status: Optional[int] = None,
        headers: Optional[Mapping[str, str]] = None,
        *,
        encoding: str = "utf-8",
    ):
        self._status = self.DEFAULT_STATUS if status is None else int(status)
        self.status_set = status is not None
        self.body = body
        self.headers: Dict[str, str] = {k.lower(): v for k, v in (headers or {}).items()}
        self.encoding = encoding

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, value: int) -> None:
        self._status = int(value)
        self.status_set = True

    @classmethod
    def json(cls, body: Any, status: int = 200, **kwargs) -> "Response":
        return cls(body=body, status=status, **kwargs)

    def set_header(self, name: str, value: str) -> None:
        self.headers[name.lower()] = value

    # ========================================================================
    # Encoding & ASGI
    # ========================================================================

    def render(self) -> Tuple[bytes, str]:
        """Encode the body; returns ``(bytes, content_type)``."""
        body = self.body
        if body is None:
            return b"", ""
        if isinstance(body, bytes):
            return body, "application/octet-stream"
        if isinstance(body, str):
            return body.encode(self.encoding), f"text/plain; charset={self.encoding}"
        encoded = stdlib_json.dumps(
            body,
            default=_json_default_serializer,
            separators=(",", ":"),
            ensure_ascii=False,
        ).encode(self.encoding)
        return encoded, "application/json"

    def _prepare_headers(self, content: bytes, content_type: str) -> List[Tuple[bytes, bytes]]:
        headers = dict(self.headers)
        if content_type and "content-type" not in headers:
            headers["content-type"] = content_type
        headers["content-length"] = str(len(content))
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in headers.items()
        ]

    async def send_asgi(self, send: Callable[[dict], Awaitable[None]]) -> None:
        """Send status, headers and body as ASGI messages."""
        content, content_type = self.render()
        await send({
            "type": "http.response.start",
            "status": self._status,
            "headers": self._prepare_headers(content, content_type),
        })
        await send({
            "type": "http.response.body",
            "body": content,
            "more_body": False,
        })

    def __repr__(self) -> str:
        return f"<Response {self._status}>"
