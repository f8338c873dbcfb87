"""
Workboard error taxonomy.

Configuration and store errors abort a sync. Credential errors and
per-conversation Slack errors are recovered by the caller. A sync where
every conversation failed surfaces as one SyncFetchError.
"""

from typing import Iterable, List, Optional


class WorkboardError(Exception):
    """Base exception for workboard errors."""
    pass


class ConfigurationError(WorkboardError):
    """Required configuration is missing or invalid."""
    pass


class CredentialError(WorkboardError):
    """The stored connection cannot produce a usable access token."""

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or f"Slack credential unavailable ({reason})")


# Slack error codes that get their own category; everything else is
# reported as history_unavailable.
ERROR_CATEGORIES = ("missing_scope", "not_in_channel", "not_allowed_token_type", "ratelimited")


class SlackApiError(WorkboardError):
    """A Slack Web API call failed (transport, HTTP status, or ok=false)."""

    def __init__(self, method: str, error: Optional[str] = None, status: Optional[int] = None):
        self.method = method
        self.error = error
        self.status = status
        if error:
            message = f"Slack API {method} error: {error}"
        else:
            message = f"Slack API {method} failed ({status})"
        super().__init__(message)

    @property
    def category(self) -> str:
        return categorize_error(self)


def categorize_error(error: BaseException) -> str:
    """Map an exception to a normalized failure category."""
    if isinstance(error, SlackApiError) and error.status == 429:
        return "ratelimited"
    message = str(error)
    for category in ERROR_CATEGORIES:
        if category in message:
            return category
    return "history_unavailable"


class SyncFetchError(WorkboardError):
    """Every selected conversation failed and no signal was produced."""

    def __init__(self, categories: Iterable[str]):
        ordered: List[str] = []
        for category in categories:
            if category not in ordered:
                ordered.append(category)
        self.categories = ordered
        super().__init__(
            f"Slack messages could not be read ({', '.join(ordered)}). "
            "Reconnect Slack and confirm scopes/channel access."
        )


class StoreError(WorkboardError):
    """A signal store write failed; the transaction was rolled back."""
    pass
