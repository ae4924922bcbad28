"""WalletEngine: wires the datastore, settlement gateway and wallet services."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lzar_wallet.config.settings import AppConfig
    from lzar_wallet.datastore.client import Datastore
    from lzar_wallet.engine.services.account_service import AccountService
    from lzar_wallet.engine.services.ledger_service import LedgerService
    from lzar_wallet.engine.services.reconciliation_service import ReconciliationService
    from lzar_wallet.metrics.collector import EngineMetrics
    from lzar_wallet.settlement.client import SettlementGateway
    from lzar_wallet.taskmanager.manager import TaskManager

logger = logging.getLogger(__name__)

# Error messages
_ERR_NOT_INITIALIZED = "Engine not initialized. Call initialize() first."


class WalletEngine:
    """Owns the wallet services and the infrastructure they share.

    Provides lifecycle management and a service registry: the datastore,
    the settlement gateway, the account / ledger / reconciliation services
    and the background task manager.
    """

    def __init__(self, config: AppConfig, *, metrics: EngineMetrics | None = None) -> None:
        """Initialize engine with configuration.

        Args:
            config: Application configuration.
            metrics: Shared metrics; a private instance is created if omitted.
        """
        self._config = config
        self._initialized = False

        # Infrastructure components
        self._datastore: Datastore | None = None
        self._settlement: SettlementGateway | None = None
        self._metrics: EngineMetrics | None = metrics

        # Services
        self._account_service: AccountService | None = None
        self._ledger_service: LedgerService | None = None
        self._reconciliation_service: ReconciliationService | None = None
        self._task_manager: TaskManager | None = None

    async def initialize(self) -> None:
        """Initialize datastore, create tables, and start services.

        Raises:
            RuntimeError: If already initialized.
        """
        if self._initialized:
            msg = "Engine already initialized"
            raise RuntimeError(msg)

        # Deferred imports keep the models and services out of module import time
        from lzar_wallet.datastore.client import Datastore
        from lzar_wallet.datastore.migrations import run_auto_migrate
        from lzar_wallet.metrics.collector import EngineMetrics
        from lzar_wallet.settlement.client import SettlementGateway

        if self._metrics is None:
            self._metrics = EngineMetrics()

        # Initialize datastore
        self._datastore = Datastore(self._config.db)
        await self._datastore.open()
        await run_auto_migrate(self._datastore.engine)

        # Initialize settlement gateway
        self._settlement = SettlementGateway(
            self._config.settlement,
            currency=self._config.currency,
            metrics=self._metrics,
        )
        await self._settlement.connect()
        if not self._config.settlement.webhook_secret:
            logger.warning("No settlement webhook secret configured; webhooks will be rejected")

        # Initialize services
        from lzar_wallet.engine.services.account_service import AccountService
        from lzar_wallet.engine.services.ledger_service import LedgerService
        from lzar_wallet.engine.services.reconciliation_service import ReconciliationService

        self._account_service = AccountService(self)
        self._ledger_service = LedgerService(self)
        self._reconciliation_service = ReconciliationService(self)

        # Initialize task manager and register cron jobs
        from functools import partial

        from lzar_wallet.taskmanager.manager import CronJob, TaskManager
        from lzar_wallet.taskmanager.tasks import task_expire_charges, task_flag_stale_pending

        if self._config.task.enabled:
            self._task_manager = TaskManager(metrics=self._metrics)
            self._task_manager.register(
                "expire_charges",
                CronJob(
                    handler=partial(task_expire_charges, self),
                    period=self._config.task.expiry_period,
                    run_at_start=True,
                ),
            )
            self._task_manager.register(
                "flag_stale_pending",
                CronJob(
                    handler=partial(task_flag_stale_pending, self),
                    period=self._config.task.stale_pending_period,
                ),
            )
            await self._task_manager.start()

        self._initialized = True
        logger.info("Wallet engine initialized (currency=%s)", self._config.currency)

    async def close(self) -> None:
        """Gracefully shut down all services and connections.

        Can be called multiple times (idempotent).
        """
        if not self._initialized:
            return

        # Stop task manager first (depends on services)
        if self._task_manager is not None:
            await self._task_manager.stop()
            self._task_manager = None

        # Tear down services
        self._reconciliation_service = None
        self._ledger_service = None
        self._account_service = None

        # Close settlement gateway
        if self._settlement is not None:
            await self._settlement.close()
            self._settlement = None

        # Close datastore
        if self._datastore is not None:
            await self._datastore.close()
            self._datastore = None

        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Check if the engine is initialized."""
        return self._initialized

    @property
    def config(self) -> AppConfig:
        """Get the application configuration."""
        return self._config

    @property
    def datastore(self) -> Datastore:
        """Get the datastore instance.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._datastore is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._datastore

    @property
    def settlement(self) -> SettlementGateway:
        """Get the settlement gateway.

        Raises:
            RuntimeError: If engine not initialized.
        """
        if self._settlement is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._settlement

    @property
    def account_service(self) -> AccountService:
        """Get the account service."""
        if self._account_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._account_service

    @property
    def ledger_service(self) -> LedgerService:
        """Get the ledger service."""
        if self._ledger_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._ledger_service

    @property
    def reconciliation_service(self) -> ReconciliationService:
        """Get the reconciliation service."""
        if self._reconciliation_service is None:
            raise RuntimeError(_ERR_NOT_INITIALIZED)
        return self._reconciliation_service

    @property
    def metrics(self) -> EngineMetrics | None:
        """Get the engine metrics (None before initialization)."""
        return self._metrics

    @property
    def task_manager(self) -> TaskManager | None:
        """Get the task manager (None if not enabled)."""
        return self._task_manager

    async def health_check(self) -> dict[str, str]:
        """Check health status of all engine components.

        Returns:
            Dictionary with component statuses ('ok', 'error', 'not_initialized').
        """
        status = {
            "engine": "ok" if self._initialized else "not_initialized",
            "datastore": "unknown",
            "settlement": "unknown",
        }

        if self._initialized:
            if self._datastore and await self._datastore.ping():
                status["datastore"] = "ok"
            else:
                status["datastore"] = "error"

            if self._settlement and self._settlement.is_connected:
                status["settlement"] = "ok"
            else:
                status["settlement"] = "not_connected"

        return status
