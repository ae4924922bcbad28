"""Settlement gateway HTTP client.

Thin async client for the external stablecoin settlement API:
- POST /transfer, /mint, /redeem, /charges: ledger-mutating submissions
- GET /balances/{account_id}: provider-side balance
- GET /transactions/{external_id}: provider-side status

Submissions are never retried here: the provider deduplicates on the
``reference`` we send, but a blind retry of a transfer could still move
funds twice. Reads retry with bounded exponential backoff on timeouts,
connection errors and 5xx responses only.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import httpx

from lzar_wallet.errors.settlement_errors import SettlementError, SettlementTimeout
from lzar_wallet.settlement.models import OperationKind, ProviderBalance, SubmitResult

if TYPE_CHECKING:
    from lzar_wallet.config.settings import SettlementConfig
    from lzar_wallet.metrics.collector import EngineMetrics

logger = logging.getLogger(__name__)


class SettlementGateway:
    """Async HTTP client for the stablecoin settlement API.

    Usage::

        gateway = SettlementGateway(config, currency="LZAR")
        await gateway.connect()
        try:
            result = await gateway.submit(OperationKind.MINT, {"to": uid, "amount": 10}, ref)
        finally:
            await gateway.close()
    """

    def __init__(
        self,
        config: SettlementConfig,
        *,
        currency: str = "LZAR",
        metrics: EngineMetrics | None = None,
    ) -> None:
        self._config = config
        self._currency = currency
        self._metrics = metrics
        self._client: httpx.AsyncClient | None = None

    async def connect(self) -> None:
        """Create the underlying HTTP client."""
        headers: dict[str, str] = {
            "Content-Type": "application/json",
        }
        if self._config.api_key:
            headers["Authorization"] = f"Bearer {self._config.api_key}"

        self._client = httpx.AsyncClient(
            base_url=self._config.url.rstrip("/"),
            headers=headers,
            timeout=self._config.timeout,
        )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    @property
    def is_connected(self) -> bool:
        """Check if the HTTP client is active."""
        return self._client is not None

    # ------------------------------------------------------------------
    # Ledger-mutating submissions
    # ------------------------------------------------------------------

    async def submit(
        self,
        kind: OperationKind,
        payload: dict[str, Any],
        reference: str,
    ) -> SubmitResult:
        """Submit an operation to the settlement provider.

        Args:
            kind: Operation kind (selects the endpoint).
            payload: Operation-specific fields (from/to, amount, ...).
            reference: Local record id, echoed back in webhook events.

        Returns:
            SubmitResult for an accepted (2xx) submission.

        Raises:
            SettlementTimeout: If the provider did not answer in time.
            SettlementError: On connection errors or non-2xx responses.
        """
        client = self._ensure_connected()
        body = {**payload, "currency": self._currency, "reference": reference}

        try:
            if self._metrics:
                with self._metrics.track_settlement(kind.value):
                    response = await client.post(kind.path, json=body)
            else:
                response = await client.post(kind.path, json=body)
        except httpx.TimeoutException as exc:
            logger.warning("Settlement %s timed out for reference %s", kind, reference)
            self._count(kind, "timeout")
            raise SettlementTimeout(f"settlement {kind} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Settlement %s failed for reference %s: %s", kind, reference, exc)
            self._count(kind, "error")
            raise SettlementError(f"settlement {kind} failed: {exc}") from exc

        if not response.is_success:
            self._count(kind, "rejected")
            self._raise_for_status(response, kind.value)

        self._count(kind, "accepted")
        return SubmitResult.from_dict(self._json(response))

    # ------------------------------------------------------------------
    # Idempotent reads
    # ------------------------------------------------------------------

    async def get_balance(self, account_id: str) -> ProviderBalance:
        """Fetch the provider-side balance for *account_id* (retried)."""
        response = await self._get_with_retry(f"/balances/{account_id}", "get_balance")
        return ProviderBalance.from_dict(account_id, self._json(response), self._currency)

    async def get_transaction(self, external_id: str) -> dict[str, Any]:
        """Fetch the provider-side view of a submitted operation (retried)."""
        response = await self._get_with_retry(f"/transactions/{external_id}", "get_transaction")
        return self._json(response)

    async def _get_with_retry(self, path: str, operation: str) -> httpx.Response:
        client = self._ensure_connected()
        attempts = self._config.read_retries
        last_error: SettlementError | None = None

        for attempt in range(attempts):
            try:
                response = await client.get(path)
            except httpx.TimeoutException:
                last_error = SettlementTimeout(f"settlement {operation} timed out")
            except httpx.HTTPError as exc:
                last_error = SettlementError(f"settlement {operation} failed: {exc}")
            else:
                if response.is_success:
                    return response
                if response.status_code < 500:
                    self._raise_for_status(response, operation)
                last_error = SettlementError(
                    f"settlement {operation} failed ({response.status_code})",
                    status_code=response.status_code,
                )

            if attempt < attempts - 1:
                delay = self._config.retry_backoff * (2**attempt)
                logger.info(
                    "Retrying settlement %s in %.2fs (attempt %d/%d)",
                    operation, delay, attempt + 1, attempts,
                )
                await asyncio.sleep(delay)

        assert last_error is not None
        raise last_error

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_connected(self) -> httpx.AsyncClient:
        """Return the HTTP client, raising if not connected."""
        if self._client is None:
            msg = "settlement gateway not connected. Call connect() first."
            raise SettlementError(msg, status_code=500)
        return self._client

    def _count(self, kind: OperationKind, outcome: str) -> None:
        if self._metrics:
            self._metrics.settlement_submitted(kind.value, outcome)

    @staticmethod
    def _json(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _raise_for_status(response: httpx.Response, operation: str) -> None:
        """Raise a SettlementError from a non-2xx response."""
        status = response.status_code
        try:
            body = response.json()
            detail = body.get("error", body.get("message", response.text))
        except Exception:
            detail = response.text

        error_map = {
            401: "settlement authentication failed",
            409: "duplicate settlement reference",
        }
        message = error_map.get(status, f"settlement {operation} failed ({status}): {detail}")
        raise SettlementError(message, status_code=status)
