"""
State token codec: compact JSON, URL-safe base64, no padding.

The token is not signed. Schema validation on decode is the only thing
standing between an adversarial token and the step handlers.
"""
from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Dict

from pydantic import ValidationError

from .schemas import WorkflowStateSchema


class TokenError(ValueError):
    pass


class MalformedTokenError(TokenError):
    """Token is not base64 of a JSON document."""


class SchemaValidationError(TokenError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid state at {path}: {reason}")


def encode(state: Any) -> str:
    data = state.get_data() if hasattr(state, "get_data") else state
    raw = json.dumps(dict(data), separators=(",", ":"), ensure_ascii=False)
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def _b64decode(token: str) -> bytes:
    t = token.strip().replace("+", "-").replace("/", "_")
    t += "=" * (-len(t) % 4)
    return base64.b64decode(t, altchars=b"-_", validate=True)


def _error_path(loc: tuple) -> str:
    if not loc:
        return "<root>"
    return ".".join(str(p) for p in loc)


def validate(data: Any) -> None:
    try:
        WorkflowStateSchema.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        raise SchemaValidationError(_error_path(tuple(first.get("loc") or ())), first.get("msg", "invalid")) from None


def decode(token: str) -> Dict[str, Any]:
    try:
        data = json.loads(_b64decode(token).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedTokenError(f"Malformed state token: {type(e).__name__}") from e

    validate(data)
    return data
