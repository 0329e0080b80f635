# errors.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    TRANSPORT = "transport"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"


@dataclass(frozen=True)
class HttpError:
    """
    Single failure value handed to callers.
    - TRANSPORT: connection failure or anything raised while issuing the call
    - TIMEOUT: the watchdog fired first
    - HTTP_STATUS: non-2xx status, or a 2xx body that could not be decoded
    status_code is only ever set for HTTP_STATUS.
    """
    kind: ErrorKind
    message: str
    status_code: Optional[int] = None

    def __post_init__(self):
        if (self.kind is ErrorKind.HTTP_STATUS) != (self.status_code is not None):
            raise ValueError(f"status_code={self.status_code} not allowed for kind={self.kind.value}")

    @classmethod
    def transport(cls, message: str) -> "HttpError":
        return cls(ErrorKind.TRANSPORT, message)

    @classmethod
    def timeout(cls, message: str = "operation timed out") -> "HttpError":
        return cls(ErrorKind.TIMEOUT, message)

    @classmethod
    def status(cls, status_code: int, body: str) -> "HttpError":
        return cls(ErrorKind.HTTP_STATUS, body, int(status_code))

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message
