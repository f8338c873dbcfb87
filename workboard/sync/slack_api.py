"""
Slack Web API Client

Thin synchronous wrapper over the Slack Web API GET methods used by the
sync pipeline (auth.test, users.conversations, conversations.list,
conversations.history, users.info).
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..common.errors import SlackApiError

logger = logging.getLogger("workboard.sync.slack_api")

USER_TOKEN_PREFIXES = ("xoxp-", "xwfp-", "xoxs-")
BOT_TOKEN_PREFIX = "xoxb-"


def is_likely_user_token(token: str) -> bool:
    return token.startswith(USER_TOKEN_PREFIXES)


def is_bot_token(token: str) -> bool:
    return token.startswith(BOT_TOKEN_PREFIX)


class SlackWebClient:
    """
    Slack Web API client bound to one access token.

    Every call raises SlackApiError on transport failure, non-2xx status,
    or an ``ok: false`` payload, so callers can tell a missing scope from a
    rate limit from a membership problem.

    Usage:
        with SlackWebClient(token) as client:
            auth = client.call("auth.test")
    """

    def __init__(
        self,
        token: str,
        api_base: str = "https://slack.com/api",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.token = token
        self._http = httpx.Client(
            base_url=api_base.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout),
            headers={"Authorization": f"Bearer {token}"},
            transport=transport,
        )

    def call(self, method: str, **params: Any) -> Dict[str, Any]:
        """Call a Web API method with query parameters."""
        query = {key: str(value) for key, value in params.items() if value is not None}
        try:
            response = self._http.get(method, params=query)
        except httpx.HTTPError as e:
            logger.debug("Slack API %s transport error: %s", method, e)
            raise SlackApiError(method, error=f"transport_error: {e}") from e

        if response.status_code == 429:
            raise SlackApiError(method, error="ratelimited", status=429)
        if response.status_code >= 400:
            raise SlackApiError(method, status=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise SlackApiError(method, error="invalid_json", status=response.status_code) from e

        if not payload.get("ok"):
            raise SlackApiError(method, error=payload.get("error") or "unknown_error", status=response.status_code)

        return payload

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "SlackWebClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
