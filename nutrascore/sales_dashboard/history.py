# nutrascore/sales_dashboard/history.py
"""
Best-effort audit trail for dashboard writes.

A history entry is written after the primary write has succeeded. Failing
to write it never fails the primary operation: the error is logged and kept
on ``HistoryLog.failures`` so callers and tests can observe it.
"""

import json
import logging
import uuid
from collections import deque
from concurrent.futures import Executor
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Optional, Tuple

from sqlalchemy import text

from ..config import config
from ..db import get_db_engine
from .models import HistoryLogEntry

logger = logging.getLogger(__name__)

MAX_TRACKED_FAILURES = 100


class HistoryLog:
    """
    Writes rows to ``history_log``.

    Usage:
        history = HistoryLog()
        history.record(user_id, email, 'CREATE', 'sale_record', sale_id, {...})

    Pass an ``executor`` to dispatch writes fire-and-forget.
    """

    def __init__(self, engine=None, executor: Optional[Executor] = None, enabled: bool = None):
        self._engine = engine
        self.executor = executor
        self.enabled = config.is_feature_enabled('history_log') if enabled is None else enabled
        self.failures: Deque[Tuple[HistoryLogEntry, str]] = deque(maxlen=MAX_TRACKED_FAILURES)

    @property
    def engine(self):
        if self._engine is None:
            self._engine = get_db_engine()
        return self._engine

    def record(
        self,
        user_id: Optional[str],
        user_email: Optional[str],
        action_type: str,
        record_type: str,
        record_id: Optional[str],
        details: Dict[str, Any] = None
    ) -> None:
        """Queue or write one history entry. Never raises."""
        if not self.enabled:
            return

        entry = HistoryLogEntry(
            user_id=user_id,
            user_email=user_email,
            action_type=action_type,
            record_type=record_type,
            record_id=record_id,
            details=details or {},
        )

        if self.executor is not None:
            try:
                self.executor.submit(self._write, entry)
            except RuntimeError as e:
                self._fail(entry, f"executor rejected entry: {e}")
            return

        self._write(entry)

    def _write(self, entry: HistoryLogEntry) -> bool:
        query = text("""
            INSERT INTO history_log
                (id, user_id, user_email, action_type, record_type, record_id, details, created_at)
            VALUES
                (:id, :user_id, :user_email, :action_type, :record_type, :record_id, :details, :created_at)
        """)
        params = {
            'id': str(uuid.uuid4()),
            'user_id': entry.user_id,
            'user_email': entry.user_email,
            'action_type': entry.action_type,
            'record_type': entry.record_type,
            'record_id': entry.record_id,
            'details': json.dumps(entry.details, default=str),
            'created_at': datetime.now(timezone.utc).isoformat(),
        }

        try:
            with self.engine.begin() as conn:
                conn.execute(query, params)
        except Exception as e:
            self._fail(entry, str(e))
            return False

        logger.debug(f"History: {entry.action_type} {entry.record_type} {entry.record_id}")
        return True

    def _fail(self, entry: HistoryLogEntry, reason: str):
        logger.error(
            f"Failed to write history entry {entry.action_type} {entry.record_type} "
            f"{entry.record_id}: {reason}"
        )
        self.failures.append((entry, reason))
