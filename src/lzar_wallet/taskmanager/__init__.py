"""Task manager: background job processing and cron scheduling.

Provides ``TaskManager`` for periodic background tasks:
- Charge expiry (open charges past ``expires_at``)
- Stale pending sweep (records stuck ``pending`` awaiting reconciliation)

Uses ``asyncio`` tasks for scheduling.
"""

from __future__ import annotations

from lzar_wallet.taskmanager.manager import CronJob, TaskManager

__all__ = ["CronJob", "TaskManager"]
