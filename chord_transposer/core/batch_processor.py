"""
Batch Processing Module - Transpose many chord sheets at once.

Provides background batch transposition, per-item status, progress
callbacks, cancellation and optional output files.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Callable, Union
from enum import Enum
import logging

from chord_transposer.config import get_config
from chord_transposer.core.errors import InvalidKeyError
from chord_transposer.core.keys import Key
from chord_transposer.core.operations import DEFAULT_CACHE, TranspositionResult, transpose_text
from chord_transposer.core.quality import NotationStyle
from chord_transposer.core.resolver import EnharmonicPreference
from chord_transposer.core.tokenizer import detect_key

logger = logging.getLogger(__name__)


class BatchJobStatus(Enum):
    """Status of a batch job item."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class BatchJobItem:
    """A single sheet in a batch job."""
    name: str
    text: str
    source_key: Optional[Union[Key, str]] = None
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    status: BatchJobStatus = BatchJobStatus.PENDING
    error_message: Optional[str] = None
    result: Optional[TranspositionResult] = None
    processing_time: float = 0.0


@dataclass
class BatchJobResult:
    """Result of a complete batch job."""
    total_items: int
    completed: int
    failed: int
    cancelled: int
    total_time: float
    items: List[BatchJobItem] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_items == 0:
            return 0.0
        return self.completed / self.total_items

    @property
    def warning_count(self) -> int:
        return sum(len(item.result.warnings) for item in self.items if item.result)


class BatchTransposer:
    """
    Transpose multiple chord sheets in batch.

    Features:
    - Sheets from strings or files
    - Per-item source key, falling back to the sheet's {key:} directive
    - Progress callbacks per item and for the whole job
    - Cancellation support
    - Parallel processing option
    """

    def __init__(self, max_workers: Optional[int] = None):
        """
        Initialize batch transposer.

        Args:
            max_workers: Maximum parallel workers (1 = sequential); defaults to config
        """
        self.max_workers = max_workers or get_config().batch.max_workers

        self._items: List[BatchJobItem] = []
        self._is_running = False
        self._cancel_requested = False
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

        # Callbacks
        self._item_started_callback: Optional[Callable[[int, BatchJobItem], None]] = None
        self._item_completed_callback: Optional[Callable[[int, BatchJobItem], None]] = None
        self._job_completed_callback: Optional[Callable[[BatchJobResult], None]] = None

    def set_callbacks(
        self,
        on_item_started: Optional[Callable[[int, BatchJobItem], None]] = None,
        on_item_completed: Optional[Callable[[int, BatchJobItem], None]] = None,
        on_job_completed: Optional[Callable[[BatchJobResult], None]] = None,
    ) -> None:
        """
        Set progress callbacks.

        Args:
            on_item_started: Called when item starts (index, item)
            on_item_completed: Called when item completes (index, item)
            on_job_completed: Called when entire job completes (result)
        """
        self._item_started_callback = on_item_started
        self._item_completed_callback = on_item_completed
        self._job_completed_callback = on_job_completed

    def add_sheet(self, name: str, text: str, source_key: Optional[Union[Key, str]] = None) -> None:
        """Add a sheet held in memory."""
        self._items.append(BatchJobItem(name=name, text=text, source_key=source_key))

    def add_files(self, files: List[Path], encoding: str = "utf-8") -> None:
        """
        Add chord-sheet files to process.

        Args:
            files: List of file paths
            encoding: Text encoding of the files
        """
        for f in files:
            f = Path(f)
            self._items.append(BatchJobItem(
                name=f.stem,
                text=f.read_text(encoding=encoding),
                input_path=f,
            ))

    def set_output_directory(self, output_dir: Path, suffix: Optional[str] = None) -> None:
        """
        Set output directory for all items.

        Args:
            output_dir: Output directory
            suffix: Output file extension; defaults to config
        """
        suffix = suffix or get_config().batch.output_suffix
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        for item in self._items:
            item.output_path = output_dir / f"{item.name}{suffix}"

    def clear(self) -> None:
        """Clear all items."""
        self._items.clear()

    @property
    def items(self) -> List[BatchJobItem]:
        """Get all items."""
        return self._items.copy()

    @property
    def is_running(self) -> bool:
        """Check if batch is currently running."""
        return self._is_running

    def process(
        self,
        target_key: Union[Key, str],
        preference: Optional[EnharmonicPreference] = None,
        style: Optional[NotationStyle] = None,
        cache=DEFAULT_CACHE,
    ) -> None:
        """
        Start batch transposition in the background.

        Args:
            target_key: Key every sheet is moved to
            preference: Enharmonic preference
            style: Chord suffix notation
            cache: Cache passed through to transpose_text
        """
        if self._is_running:
            logger.warning("Batch transposition already running; ignoring new request")
            return

        self._is_running = True
        self._cancel_requested = False

        def run():
            start_time = time.time()

            try:
                if self.max_workers > 1:
                    with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                        list(pool.map(
                            lambda i: self._process_item(i, target_key, preference, style, cache),
                            range(len(self._items)),
                        ))
                else:
                    for i in range(len(self._items)):
                        self._process_item(i, target_key, preference, style, cache)
            finally:
                statuses = [item.status for item in self._items]
                result = BatchJobResult(
                    total_items=len(self._items),
                    completed=statuses.count(BatchJobStatus.COMPLETED),
                    failed=statuses.count(BatchJobStatus.FAILED),
                    cancelled=statuses.count(BatchJobStatus.CANCELLED),
                    total_time=time.time() - start_time,
                    items=self._items.copy(),
                )
                logger.info(
                    f"Batch transposition finished: {result.completed}/{result.total_items} "
                    f"completed, {result.failed} failed"
                )

                self._is_running = False

            if self._job_completed_callback:
                try:
                    self._job_completed_callback(result)
                except Exception:
                    logger.exception("Batch job-completed callback failed")

        self._thread = threading.Thread(target=run, daemon=True)
        self._thread.start()

    def process_sync(
        self,
        target_key: Union[Key, str],
        preference: Optional[EnharmonicPreference] = None,
        style: Optional[NotationStyle] = None,
        cache=DEFAULT_CACHE,
    ) -> BatchJobResult:
        """
        Run a batch and block until it finishes.

        Raises:
            RuntimeError: If a batch is already running
        """
        if self._is_running:
            raise RuntimeError("Batch transposition already running")

        results: List[BatchJobResult] = []
        job_callback = self._job_completed_callback

        def collect(result: BatchJobResult) -> None:
            results.append(result)
            if job_callback:
                job_callback(result)

        self._job_completed_callback = collect
        try:
            self.process(target_key, preference, style, cache)
            self.wait()
        finally:
            self._job_completed_callback = job_callback

        if not results:
            raise RuntimeError("Batch transposition finished without a result")
        return results[0]

    def _process_item(self, i: int, target_key, preference, style, cache) -> None:
        item = self._items[i]
        if self._cancel_requested:
            item.status = BatchJobStatus.CANCELLED
            return

        item.status = BatchJobStatus.PROCESSING
        item_start = time.time()

        try:
            if self._item_started_callback:
                with self._lock:
                    self._item_started_callback(i, item)

            source_key = item.source_key or detect_key(item.text)
            if source_key is None:
                raise InvalidKeyError(f"No source key for {item.name}")

            item.result = transpose_text(
                item.text, source_key, target_key, preference, style, cache=cache,
            )

            if item.output_path:
                item.output_path.write_text(item.result.text, encoding="utf-8")

            item.status = BatchJobStatus.COMPLETED

        except InvalidKeyError as e:
            item.status = BatchJobStatus.FAILED
            item.error_message = str(e)
            logger.warning(f"Batch transposition skipped {item.name}: {e}")

        except Exception as e:
            item.status = BatchJobStatus.FAILED
            item.error_message = str(e)
            logger.exception(f"Batch transposition failed for {item.name}")

        item.processing_time = time.time() - item_start

        if self._item_completed_callback:
            try:
                with self._lock:
                    self._item_completed_callback(i, item)
            except Exception:
                logger.exception(f"Item-completed callback failed for {item.name}")

    def cancel(self) -> None:
        """Request cancellation of current job."""
        self._cancel_requested = True

    def wait(self, timeout: Optional[float] = None) -> None:
        """Wait for current job to complete."""
        if self._thread:
            self._thread.join(timeout=timeout)
