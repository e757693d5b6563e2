"""Error taxonomy shared by the ledger services and the HTTP layer.

Services raise these; the exception handler in ``server`` turns them into
``{"error": code, "message": ..., **context}`` bodies with the matching status.
"""
import math
from typing import Any, Dict, Optional


class GameError(Exception):
    status_code = 400
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context: Dict[str, Any] = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.code, "message": self.message}
        body.update(self.context)
        return body


class Unauthenticated(GameError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"

    def __init__(self, reason: str = "no token"):
        super().__init__(f"Authentication failed: {reason}", reason=reason)


class ValidationError(GameError):
    status_code = 400
    code = "bad_params"
    default_message = "bad params"


class RateLimited(GameError):
    status_code = 429
    code = "cooldown"

    def __init__(self, retry_in_ms: int):
        self.retry_in_ms = retry_in_ms
        seconds = retry_seconds(retry_in_ms)
        super().__init__(f"Try again in {seconds}s", retryInMs=retry_in_ms, retryInSeconds=seconds)


class InsufficientStock(GameError):
    status_code = 400
    code = "not_enough"

    def __init__(self, item: str, have: int):
        self.have = have
        super().__init__(f"Not enough {item}: have {have}", item=item, have=have)


class StorageUnavailable(GameError):
    status_code = 500
    code = "storage_unavailable"
    default_message = "Storage unavailable, retry later"


def retry_seconds(retry_in_ms: int) -> int:
    """Whole seconds to show the player, rounded up."""
    return max(0, math.ceil(retry_in_ms / 1000))
