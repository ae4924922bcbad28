"""Shared test fixtures for the lzar-wallet test suite."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import pytest

from lzar_wallet.config.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    DatabaseEngine,
    SettlementConfig,
    TaskConfig,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from lzar_wallet.engine.client import WalletEngine
    from lzar_wallet.engine.models import Account

SETTLEMENT_URL = "https://settlement.test/v1"
WEBHOOK_SECRET = "whsec_test_secret"
ADMIN_KEY = "admin-test-key"


# ---------------------------------------------------------------------------
# Settlement provider double
# ---------------------------------------------------------------------------


@dataclass
class FakeSettlement:
    """Records submissions and answers them like the settlement API.

    Set ``fail_with`` to a status code to reject submissions, or
    ``timeout`` to raise ``httpx.ReadTimeout``.
    """

    requests: list[httpx.Request] = field(default_factory=list)
    fail_with: int | None = None
    timeout: bool = False
    balances: dict[str, str] = field(default_factory=dict)
    provider_statuses: dict[str, str] = field(default_factory=dict)
    _counter: int = 0

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.timeout:
            raise httpx.ReadTimeout("timed out", request=request)
        if request.method == "GET" and request.url.path.startswith("/v1/balances/"):
            account_id = request.url.path.rsplit("/", 1)[-1]
            return httpx.Response(
                200, json={"balance": self.balances.get(account_id, "0"), "currency": "LZAR"}
            )
        if request.method == "GET" and request.url.path.startswith("/v1/transactions/"):
            external_id = request.url.path.rsplit("/", 1)[-1]
            status = self.provider_statuses.get(external_id, "pending")
            return httpx.Response(200, json={"id": external_id, "status": status})
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"error": "rejected by provider"})
        self._counter += 1
        return httpx.Response(200, json={"id": f"ext_{self._counter}", "status": "accepted"})


def install_transport(
    engine: WalletEngine, handler: Callable[[httpx.Request], httpx.Response]
) -> None:
    """Replace the gateway's internal httpx client with a mock transport."""
    engine.settlement._client = httpx.AsyncClient(
        transport=httpx.MockTransport(handler),
        base_url=SETTLEMENT_URL,
    )


# ---------------------------------------------------------------------------
# Config / engine
# ---------------------------------------------------------------------------


@pytest.fixture
def app_config() -> AppConfig:
    """Provide a test AppConfig with safe defaults."""
    return AppConfig(
        debug=True,
        db=DatabaseConfig(
            engine=DatabaseEngine.SQLITE,
            dsn="sqlite+aiosqlite:///:memory:",
        ),
        settlement=SettlementConfig(
            url=SETTLEMENT_URL,
            api_key="test-api-key",
            webhook_secret=WEBHOOK_SECRET,
            retry_backoff=0,
        ),
        auth=AuthConfig(admin_key=ADMIN_KEY),
        task=TaskConfig(enabled=False),
    )


@pytest.fixture
def fake_settlement() -> FakeSettlement:
    return FakeSettlement()


@pytest.fixture
async def engine(
    app_config: AppConfig, fake_settlement: FakeSettlement
) -> AsyncIterator[WalletEngine]:
    """Provide a fully initialized engine with in-memory SQLite and a fake provider."""
    from lzar_wallet.engine.client import WalletEngine

    eng = WalletEngine(app_config)
    await eng.initialize()
    await eng.settlement.close()
    install_transport(eng, fake_settlement.handler)
    yield eng
    await eng.close()


async def make_account(
    engine: WalletEngine,
    email: str,
    *,
    balance_cents: int = 0,
    phone: str | None = None,
    first_name: str = "",
) -> tuple[Account, str]:
    """Create an account and seed its balance directly in the store."""
    account, token = await engine.account_service.create_account(
        email, first_name=first_name, phone=phone
    )
    if balance_cents:
        async with engine.datastore.session() as session:
            await engine.account_service.apply_delta(session, account.id, balance_cents)
            await session.commit()
    return account, token


async def balance_of(engine: WalletEngine, account_id: str) -> int:
    return await engine.account_service.get_balance(account_id)
