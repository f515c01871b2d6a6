from dataclasses import dataclass, field
from typing import Dict, Any, Optional
from urllib.parse import urlparse
import time
import json

import httpx

from .exceptions import URLValidationException

# describe the wire encoding, not the decoded body that gets stored
_WIRE_HEADERS = ("content-encoding", "content-length")

_STATUS_TEXT = {
    200: "OK",
    404: "Not Found",
    503: "Offline",
}


@dataclass
class SWRequest:
    url: str
    method: str = "GET"
    destination: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None

    def __post_init__(self):
        if not self.url or not isinstance(self.url, str):
            raise URLValidationException("Request URL must be a non-empty string")
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise URLValidationException("Request URL must be absolute", field="url", value=self.url)
        self.method = (self.method or "GET").upper()
        self.destination = (self.destination or "").lower()

    @property
    def path(self) -> str:
        return urlparse(self.url).path or "/"

    @classmethod
    def with_json(cls, url: str, method: str, data: Any, headers: Optional[Dict[str, str]] = None) -> "SWRequest":
        hdrs = {"Content-Type": "application/json"}
        hdrs.update(headers or {})
        return cls(url=url, method=method, headers=hdrs, body=json.dumps(data).encode("utf-8"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "method": self.method,
            "destination": self.destination,
            "headers": dict(self.headers),
            "body_size": len(self.body or b""),
        }


@dataclass
class SWResponse:
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    url: str = ""
    captured_at: float = field(default_factory=time.time)
    from_cache: bool = False

    def __post_init__(self):
        if not self.status_text:
            self.status_text = _STATUS_TEXT.get(self.status, "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body or b"null")

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> "SWResponse":
        return cls(
            status=int(response.status_code),
            status_text=response.reason_phrase or "",
            headers={k: v for k, v in response.headers.items() if k.lower() not in _WIRE_HEADERS},
            body=response.content or b"",
            url=str(response.request.url) if response.request else "",
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SWResponse":
        body = data.get("body") or b""
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            status=int(data["status"]),
            status_text=data.get("status_text", ""),
            headers=dict(data.get("headers") or {}),
            body=body,
            url=data.get("url", ""),
            captured_at=float(data.get("captured_at") or time.time()),
            from_cache=bool(data.get("from_cache", False)),
        )

    @classmethod
    def offline(cls) -> "SWResponse":
        return cls(status=503, status_text="Offline", body=b"Offline",
                   headers={"Content-Type": "text/plain"})

    @classmethod
    def not_found(cls) -> "SWResponse":
        return cls(status=404, status_text="Not Found")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "status_text": self.status_text,
            "url": self.url,
            "headers": dict(self.headers),
            "body_size": len(self.body),
            "captured_at": self.captured_at,
            "from_cache": self.from_cache,
        }
