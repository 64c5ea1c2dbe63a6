# hookwise/insights.py
"""Best-effort side channel for credential test insights."""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from .extensions import db
from .models import CredentialTestInsight

logger = logging.getLogger(__name__)


class InsightRecorder:
    """
    Persists CredentialTestInsight rows without affecting the caller.

    With run_async the write happens on a worker thread inside its own app
    context; otherwise inline. Either way a failed write is only logged.
    """

    def __init__(self, app=None, run_async: bool = True, max_workers: int = 2):
        self.app = app
        self.run_async = run_async
        self._pool: Optional[ThreadPoolExecutor] = (
            ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="insights") if run_async else None
        )

    def submit(self, record: Dict[str, Any]) -> None:
        try:
            if self._pool is not None:
                self._pool.submit(self._write_in_context, record)
            else:
                self._write(record)
        except Exception:
            logger.exception("Could not queue insight for %s", record.get("platform_name"))

    def _write_in_context(self, record: Dict[str, Any]) -> None:
        with self.app.app_context():
            self._write(record)

    def _write(self, record: Dict[str, Any]) -> None:
        try:
            db.session.add(CredentialTestInsight(**record))
            db.session.commit()
        except Exception:
            logger.warning("Insight write failed for %s", record.get("platform_name"), exc_info=True)
            db.session.rollback()

    def shutdown(self, wait: bool = True) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=wait)
