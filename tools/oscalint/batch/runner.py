"""
Batch runner

Applies a per-file operation across many files. Each file runs inside its own
failure boundary, so one bad file never aborts the batch.
"""

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..formats import OscalFormat

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


@dataclass
class FileContent:
    """One file submitted to a batch"""

    filename: Optional[str]
    content: Union[str, bytes]
    format: OscalFormat = OscalFormat.JSON

    def __post_init__(self):
        self.format = OscalFormat.from_string(self.format)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FileContent":
        return cls(
            filename=payload.get("filename"),
            content=payload.get("content", ""),
            format=payload.get("format", OscalFormat.JSON),
        )


@dataclass
class FileOutcome:
    """What a per-file operation reports back when it completes without raising"""

    success: bool
    result: Any = None
    error: Optional[str] = None


@dataclass(frozen=True)
class FileResult:
    filename: Optional[str]
    success: bool
    error: Optional[str] = None
    result: Any = None
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = self.result.to_dict() if hasattr(self.result, "to_dict") else self.result
        return {
            "filename": self.filename,
            "success": self.success,
            "error": self.error,
            "result": payload,
            "durationMs": self.duration_ms,
        }


@dataclass
class BatchOperationResult:
    """Aggregate outcome of one batch submission"""

    operation_id: str
    results: List[FileResult] = field(default_factory=list)
    total_files: int = 0
    success_count: int = 0
    failure_count: int = 0
    total_duration_ms: int = 0
    success: bool = True

    @classmethod
    def from_results(cls, operation_id: str, results: List[FileResult]) -> "BatchOperationResult":
        success_count = sum(1 for result in results if result.success)
        failure_count = len(results) - success_count
        return cls(
            operation_id=operation_id,
            results=list(results),
            total_files=len(results),
            success_count=success_count,
            failure_count=failure_count,
            total_duration_ms=sum(result.duration_ms for result in results),
            success=failure_count == 0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "operationId": self.operation_id,
            "totalFiles": self.total_files,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "results": [result.to_dict() for result in self.results],
            "totalDurationMs": self.total_duration_ms,
        }


def _elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


class BatchRunner:
    """Runs per-file operations with bounded parallelism

    ``max_workers`` of 1 or less processes files sequentially; ``None`` lets
    the thread pool pick its default size. Results always follow input order.
    """

    def __init__(self, max_workers: Optional[int] = None,
                 progress_callback: Optional[ProgressCallback] = None):
        self.max_workers = max_workers
        self.progress_callback = progress_callback
        self._results: Dict[str, BatchOperationResult] = {}
        self._lock = threading.Lock()

    def run_batch(self, operation_id: Optional[str], files: List[FileContent],
                  operation: Callable[[FileContent], Any]) -> BatchOperationResult:
        """Apply ``operation`` to every file and aggregate the outcomes"""
        operation_id = operation_id or str(uuid.uuid4())
        total = len(files)
        logger.info(f"Starting batch operation {operation_id}: {total} files")

        slots: List[Optional[FileResult]] = [None] * total
        if self.max_workers is not None and self.max_workers <= 1:
            for index, file in enumerate(files):
                slots[index] = self._process(file, operation)
                self._report_progress(index + 1, total)
        elif total:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                future_to_index = {
                    executor.submit(self._process, file, operation): index
                    for index, file in enumerate(files)
                }
                completed = 0
                for future in as_completed(future_to_index):
                    slots[future_to_index[future]] = future.result()
                    completed += 1
                    self._report_progress(completed, total)

        batch = BatchOperationResult.from_results(operation_id, [slot for slot in slots if slot is not None])
        logger.info(
            f"Batch operation {operation_id} completed: {batch.success_count} succeeded, "
            f"{batch.failure_count} failed in {batch.total_duration_ms} ms"
        )
        return batch

    def submit(self, request, validation_run=None) -> BatchOperationResult:
        """Run a batch request and keep its result for later lookup"""
        from .operations import build_operation

        operation = build_operation(request, validation_run)
        batch = self.run_batch(request.operation_id, request.files, operation)
        with self._lock:
            self._results[batch.operation_id] = batch
        return batch

    def get_result(self, operation_id: str) -> Optional[BatchOperationResult]:
        with self._lock:
            return self._results.get(operation_id)

    def all_results(self) -> List[BatchOperationResult]:
        with self._lock:
            return list(self._results.values())

    def clear_results(self) -> None:
        with self._lock:
            self._results.clear()

    def _process(self, file: FileContent, operation: Callable[[FileContent], Any]) -> FileResult:
        start = time.perf_counter()
        try:
            outcome: Union[FileOutcome, Any] = operation(file)
        except Exception as e:
            logger.error(f"Error processing file {file.filename}: {e}")
            return FileResult(
                filename=file.filename,
                success=False,
                error=f"Processing error: {e}",
                result=None,
                duration_ms=_elapsed_ms(start),
            )

        duration = _elapsed_ms(start)
        if isinstance(outcome, FileOutcome):
            return FileResult(file.filename, outcome.success, outcome.error, outcome.result, duration)
        return FileResult(file.filename, True, None, outcome, duration)

    def _report_progress(self, completed: int, total: int) -> None:
        if self.progress_callback:
            self.progress_callback(completed, total)
