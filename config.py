# config.py
import os
from dataclasses import dataclass
from typing import Optional


def _opt_int(name: str) -> Optional[int]:
    v = os.getenv(name, "").strip()
    return int(v) if v else None


def _opt_float(name: str) -> Optional[float]:
    v = os.getenv(name, "").strip()
    return float(v) if v else None


@dataclass
class Config:
    # runtime
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")  # empty -> console only

    # request layer
    http_timeout_ms: int = int(os.getenv("HTTP_TIMEOUT_MS", "60000"))  # 0 disables the watchdog
    http_max_workers: int = int(os.getenv("HTTP_MAX_WORKERS", "32"))
    http_transport_timeout_sec: Optional[float] = _opt_float("HTTP_TRANSPORT_TIMEOUT_SEC")  # None -> transport default
    http_max_retries: Optional[int] = _opt_int("HTTP_MAX_RETRIES")  # None -> retry 429 for as long as asked
    http_user_agent: str = os.getenv("HTTP_USER_AGENT", "")


CFG = Config()
