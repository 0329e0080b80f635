# decode.py
import json
import logging
from typing import Any, Optional, Tuple

from errors import HttpError
from http_types import Response

log = logging.getLogger(__name__)


def parse_json(resp: Response) -> Any:
    """Parsed body, or None when it is not valid JSON."""
    try:
        return json.loads(resp.text)
    except (ValueError, RecursionError):
        return None


def _shaped(resp: Response, shape: type) -> Tuple[Any, Optional[HttpError]]:
    value = parse_json(resp)
    if isinstance(value, shape):
        return value, None
    log.debug(f"[HTTP] expected JSON {shape.__name__}, got {type(value).__name__}")
    return None, HttpError.status(resp.status, resp.text)


def as_json_object(resp: Response, err: Optional[HttpError]) -> Tuple[Any, Optional[HttpError]]:
    if err is not None:
        return None, err
    return _shaped(resp, dict)


def as_json_array(resp: Response, err: Optional[HttpError]) -> Tuple[Any, Optional[HttpError]]:
    if err is not None:
        return None, err
    return _shaped(resp, list)
