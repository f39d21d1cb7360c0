"""Exception hierarchy for the edgegram Telegram SDK."""

from typing import Any, Dict, Optional


class APIException(Exception):
    """Raised when the Telegram Bot API reports a call as not-ok.

    Telegram answers failures with ``{"ok": false, "error_code": …,
    "description": …}``; transport-level HTTP errors are folded into the
    same shape by :class:`sdk.client.BotClient`.

    Attributes:
        description: Human-readable reason reported by Telegram.
        error_code: Numeric error code, when one was reported.
        response_body: Raw response body as a dict, when available.
        retry_after: Flood-control hint in seconds from ``parameters``.
    """

    def __init__(
        self,
        description: str,
        error_code: Optional[int] = None,
        response_body: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.description = description
        self.error_code = error_code
        self.response_body = response_body or {}
        parameters = self.response_body.get("parameters") or {}
        self.retry_after: Optional[int] = parameters.get("retry_after")
        prefix = f"Telegram API error {error_code}" if error_code is not None else "Telegram API error"
        super().__init__(f"{prefix}: {description}")

    @classmethod
    def from_response(cls, status_code: int, body: Optional[Dict[str, Any]]) -> "APIException":
        """Build from an HTTP status and (possibly empty) parsed body."""
        body = body or {}
        description = body.get("description") or "Unknown error"
        error_code = body.get("error_code", status_code)
        return cls(description, error_code, body)
