"""Run context: warnings, soft deadline and the run-scoped parse cache.

One RunContext is created per analysis run and handed to every stage, so two
runs in the same process never share mutable state.
"""

import threading
import time
from datetime import datetime
from typing import List, Optional

from contracts import RunWarning, GapforgeError
from config import settings
from logging_config import get_logger
from .cache import ParseCache

logger = get_logger(__name__)


class RunContext:
    """Per-run state shared by the pipeline stages."""

    def __init__(
        self,
        run_id: Optional[str] = None,
        deadline_seconds: Optional[float] = None,
        file_workers: Optional[int] = None,
        provider_workers: Optional[int] = None,
        provider_timeout_seconds: Optional[float] = None,
        cache_size: Optional[int] = None,
    ):
        self.started_at = datetime.now()
        self.run_id = run_id or f"run_{self.started_at.strftime('%Y%m%d_%H%M%S')}"
        self.deadline_seconds = deadline_seconds or settings.run_deadline_seconds
        self.file_workers = file_workers or settings.file_workers
        self.provider_workers = provider_workers or settings.provider_workers
        self.provider_timeout_seconds = provider_timeout_seconds or settings.provider_timeout_seconds
        self.cache = ParseCache(cache_size or settings.parse_cache_size)

        self._started = time.monotonic()
        self._warnings: List[RunWarning] = []
        self._lock = threading.Lock()
        self.partial = False

    # Warnings

    def warn(
        self,
        stage: str,
        message: str,
        path: Optional[str] = None,
        code: Optional[str] = None,
    ) -> RunWarning:
        """Record a recoverable problem."""
        warning = RunWarning(stage=stage, message=message, path=path, code=code)
        with self._lock:
            self._warnings.append(warning)
        logger.warning("%s", warning)
        return warning

    def warn_error(self, stage: str, error: GapforgeError, path: Optional[str] = None) -> RunWarning:
        """Record a caught pipeline error as a warning."""
        return self.warn(stage, error.message, path=path, code=error.code)

    @property
    def warnings(self) -> List[RunWarning]:
        with self._lock:
            return list(self._warnings)

    # Deadline

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self._started

    @property
    def remaining_seconds(self) -> float:
        return max(0.0, self.deadline_seconds - self.elapsed_seconds)

    @property
    def expired(self) -> bool:
        return self.elapsed_seconds >= self.deadline_seconds

    def mark_partial(self, stage: str) -> None:
        """Flag the run as partial; the warning is recorded once per run."""
        with self._lock:
            already = self.partial
            self.partial = True
        if not already:
            self.warn(
                stage,
                f"Soft deadline of {self.deadline_seconds:.0f}s exceeded; "
                "results include only the analysis completed so far",
                code="PARTIAL_RESULT",
            )
