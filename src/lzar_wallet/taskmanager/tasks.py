"""Background task definitions: cron job handlers.

- ``expire_charges`` (60 s): move open charges past ``expires_at`` to expired
- ``flag_stale_pending`` (5 min): look up records stuck ``pending`` at the
  provider, settle or fail the ones it has resolved and flag the rest
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lzar_wallet.engine.client import WalletEngine

logger = logging.getLogger(__name__)


async def task_expire_charges(engine: WalletEngine) -> None:
    """Expire every pending or active charge whose TTL has elapsed."""
    try:
        await engine.reconciliation_service.expire_charges()
    except Exception:
        logger.exception("expire_charges failed")


async def task_flag_stale_pending(engine: WalletEngine) -> None:
    """Reconcile long-pending records against the settlement provider."""
    try:
        after = engine.config.task.stale_pending_after
        counts = await engine.reconciliation_service.reconcile_stale_pending(after)
        if counts["completed"] or counts["failed"]:
            logger.info(
                "Stale sweep resolved %d completed, %d failed",
                counts["completed"], counts["failed"],
            )
        if counts["flagged"]:
            logger.warning(
                "Flagged %d transactions pending for over %ds", counts["flagged"], after
            )
    except Exception:
        logger.exception("flag_stale_pending failed")
