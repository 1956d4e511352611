"""
Tradier snapshot fetcher: implements SnapshotFetcher over the Tradier REST API.

Maps Tradier JSON to poll_core.contracts records. Collections that come back
as ``null``, ``"null"`` or a single object are normalized to lists.
HTTP and network errors become FetchError; retry is the poll driver's job.
"""

import logging
from typing import Any

import requests

from poll_core.contracts import (
    Balance,
    Clock,
    SnapshotKind,
    parse_orders,
    parse_positions,
    select_quote,
)
from poll_core.errors import FetchError, MalformedSnapshotError, PreconditionError

logger = logging.getLogger("triggers.fetcher")

BASE_URLS = {
    "production": "https://api.tradier.com",
    "sandbox": "https://sandbox.tradier.com",
}


def _error_message(response: requests.Response) -> str:
    """Prefer Tradier's fault string, then its error field, then the HTTP reason."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        fault = body.get("fault")
        if isinstance(fault, dict) and fault.get("faultstring"):
            return str(fault["faultstring"])
        if body.get("error"):
            return str(body["error"])
    return f"HTTP {response.status_code} {response.reason or ''}".strip()


def _dig(body: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(body, dict):
            return None
        body = body.get(key)
    return body


class TradierSnapshotFetcher:
    """
    Fetch account and market snapshots from Tradier.

    Access token via constructor (typically from AppConfig, sourced from env vars).
    """

    def __init__(
        self,
        access_token: str,
        *,
        environment: str = "sandbox",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not access_token:
            raise ValueError(
                "Tradier access token is required. "
                "Set the TRADIER_ACCESS_TOKEN environment variable."
            )
        if environment not in BASE_URLS:
            raise ValueError(
                f"Unknown Tradier environment '{environment}'. Supported: {list(BASE_URLS)}"
            )
        self._base_url = BASE_URLS[environment]
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/json",
            }
        )

    def request(self, endpoint: str, params: dict[str, Any] | None = None) -> Any:
        """GET *endpoint* and return the decoded JSON body."""
        url = f"{self._base_url}{endpoint}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise FetchError(f"Request to {endpoint} failed: {exc}") from exc
        if not response.ok:
            raise FetchError(_error_message(response), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedSnapshotError(f"Response from {endpoint} is not JSON") from exc

    def fetch(self, kind: SnapshotKind, scope: str | None = None) -> Any:
        if kind.account_scoped and not scope:
            raise PreconditionError("Account ID is required")
        if kind is SnapshotKind.ORDERS:
            body = self.request(f"/v1/accounts/{scope}/orders")
            snapshot = parse_orders(_dig(body, "orders", "order"))
        elif kind is SnapshotKind.POSITIONS:
            body = self.request(f"/v1/accounts/{scope}/positions")
            snapshot = parse_positions(_dig(body, "positions", "position"))
        elif kind is SnapshotKind.BALANCES:
            body = self.request(f"/v1/accounts/{scope}/balances")
            snapshot = Balance.from_record(_dig(body, "balances") or {})
        elif kind is SnapshotKind.QUOTE:
            if not scope:
                raise PreconditionError("Symbol is required for quotes")
            body = self.request("/v1/markets/quotes", {"symbols": scope})
            snapshot = select_quote(_dig(body, "quotes", "quote"), scope)
        elif kind is SnapshotKind.CLOCK:
            body = self.request("/v1/markets/clock")
            snapshot = Clock.from_record(_dig(body, "clock") or {})
        else:
            raise ValueError(f"Unsupported snapshot kind: {kind!r}")
        logger.debug("Fetched %s snapshot (scope=%s)", kind.value, scope)
        return snapshot
