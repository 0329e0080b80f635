# http_types.py
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

Header = Tuple[str, str]
Headers = List[Header]


def header_value(headers: Headers, name: str) -> Optional[str]:
    # case-insensitive, first match wins
    key = name.lower()
    for k, v in headers:
        if k.lower() == key:
            return v
    return None


@dataclass(frozen=True)
class MultipartForm:
    """Form fields plus files, sent as multipart/form-data."""
    fields: Dict[str, str] = field(default_factory=dict)
    # name -> (filename, content, content_type)
    files: Dict[str, Tuple[str, bytes, str]] = field(default_factory=dict)


Body = Union[str, bytes, MultipartForm]


@dataclass(frozen=True)
class Request:
    method: Literal["GET", "POST"]
    url: str
    body: Optional[Body] = None
    headers: Tuple[Header, ...] = ()
    timeout_ms: int = 0

    def validate(self) -> None:
        if self.method not in ("GET", "POST"):
            raise ValueError(f"unsupported method {self.method!r}")
        if not self.url.lower().startswith(("http://", "https://")):
            raise ValueError(f"unsupported url {self.url!r}")
        if self.method == "GET" and self.body is not None:
            raise ValueError("GET request cannot carry a body")
        if self.timeout_ms < 0:
            raise ValueError(f"timeout must be >= 0, got {self.timeout_ms}")

    def transport_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for requests.Session.request()."""
        kw: Dict[str, Any] = {"headers": dict(self.headers) if self.headers else None}
        if isinstance(self.body, MultipartForm):
            kw["data"] = dict(self.body.fields)
            kw["files"] = dict(self.body.files)
        elif isinstance(self.body, str):
            kw["data"] = self.body.encode("utf-8")
        elif self.body is not None:
            kw["data"] = self.body
        return kw


@dataclass(frozen=True)
class Response:
    status: int
    headers: Headers
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> Optional[str]:
        return header_value(self.headers, name)

    @classmethod
    def from_requests(cls, r) -> "Response":
        return cls(status=r.status_code, headers=list(r.headers.items()), body=r.content or b"")
