"""Turn unsuccessful responses into :class:`HttpError` instances.

The API reports failures as JSON of the form
``{"code": 4001, "message": "...", "commandId": "..."}``. Bodies that are
not JSON, or JSON of another shape, still classify: the raw text becomes the
message. Classification itself never raises.
"""

import json
from typing import Any, Mapping, Optional

from prcclient.exceptions import HttpError
from prcclient.ratelimit.headers import parse_rate_headers

GENERIC_MESSAGE = "Request failed"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def classify_error(
    status: int,
    headers: Mapping[str, str],
    body: Optional[str],
    reason: str = "",
) -> HttpError:
    """Build the classified error for a failed response.

    Args:
        status: HTTP status code.
        headers: Response headers (any case).
        body: Response body text, or ``None`` when it could not be read.
        reason: HTTP reason phrase, used when the body is empty.
    """
    raw = body or ""
    code: Optional[int] = None
    command_id: Optional[str] = None
    message = raw

    try:
        decoded = json.loads(raw) if raw.strip() else None
    except (ValueError, RecursionError):
        decoded = None

    if isinstance(decoded, dict):
        code = _as_int(decoded.get("code"))
        cmd = decoded.get("commandId")
        if cmd is not None:
            command_id = str(cmd)
        if isinstance(decoded.get("message"), str) and decoded["message"]:
            message = decoded["message"]

    if not message:
        message = reason or GENERIC_MESSAGE

    return HttpError(
        status,
        message,
        code=code,
        retry_after_ms=parse_rate_headers(headers).retry_after_ms,
        command_id=command_id,
        raw_body=raw,
    )
