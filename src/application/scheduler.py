"""Windowed-concurrency dispatch of input files to batch jobs."""

import asyncio
from pathlib import Path
from typing import List, Optional, Sequence

from domain.models import JobResult, ScheduleBatch, UNKNOWN_JOB_ID
from domain.protocols import IBatchClient, ILogger, IMetricsCollector
from shared.logging import LoggerAdapter, get_logger
from shared.metrics import MetricsCollector

from application.monitor import (
    JobMonitor,
    Sleep,
    DEFAULT_CHECK_INTERVAL,
    DEFAULT_MAX_INTERVAL,
)


def partition(files: Sequence[Path], concurrency_limit: int) -> List[ScheduleBatch]:
    """Split files into consecutive batches of at most ``concurrency_limit``."""
    if concurrency_limit < 1:
        raise ValueError(f"Concurrency limit must be >= 1, got: {concurrency_limit}")

    return [
        ScheduleBatch(index=n, files=list(files[start:start + concurrency_limit]))
        for n, start in enumerate(range(0, len(files), concurrency_limit))
    ]


class ConcurrencyScheduler:
    """
    Runs upload -> create -> monitor for every file, one batch at a time.

    All files of a batch run concurrently; the next batch starts only after
    every job of the current one has a result. Per-file failures become
    failed results and never affect siblings or later batches.
    """

    def __init__(
        self,
        client: IBatchClient,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        max_wait: Optional[float] = None,
        sleep: Optional[Sleep] = None,
        logger: Optional[ILogger] = None,
        metrics: Optional[IMetricsCollector] = None
    ):
        self._client = client
        self._check_interval = check_interval
        self._max_interval = max_interval
        self._max_wait = max_wait
        self._sleep = sleep
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self._metrics = metrics or MetricsCollector()

    async def process(
        self,
        files: Sequence[Path],
        output_dir: Path,
        concurrency_limit: int
    ) -> List[JobResult]:
        """
        Process every file and return one result per file.

        Raises:
            ValueError: If concurrency_limit < 1
            OSError: If output_dir cannot be created
        """
        batches = partition(files, concurrency_limit)

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        results: List[JobResult] = []
        for batch in batches:
            self._logger.info(
                f"Dispatching batch {batch.index + 1}/{len(batches)} ({len(batch)} files)"
            )
            timer = f"batch_{batch.index + 1}"
            self._metrics.start_timer(timer)
            batch_results = await asyncio.gather(
                *(self._process_file(path, output_dir) for path in batch.files)
            )
            self._metrics.stop_timer(timer)
            results.extend(batch_results)

        return results

    async def _process_file(self, path: Path, output_dir: Path) -> JobResult:
        self._metrics.increment_counter('files_dispatched')
        try:
            file_ref = await asyncio.to_thread(self._client.upload_file, path)
            job = await asyncio.to_thread(self._client.create_job, file_ref)
        except Exception as e:
            self._logger.error(f"Error processing file {path}: {e}")
            return self._record(JobResult.failed(UNKNOWN_JOB_ID, error=str(e)))

        if job is None:
            self._logger.error(f"Batch job creation failed for {path}")
            return self._record(JobResult.failed(UNKNOWN_JOB_ID, error="job creation failed"))

        self._metrics.increment_counter('jobs_submitted')
        monitor = JobMonitor(
            self._client,
            job,
            output_dir,
            check_interval=self._check_interval,
            max_interval=self._max_interval,
            max_wait=self._max_wait,
            sleep=self._sleep,
            logger=self._logger,
        )
        try:
            result = await monitor.run()
        except Exception as e:
            self._logger.exception(f"Monitoring {job.id} for {path} failed: {e}")
            result = JobResult.failed(job.id, error=str(e))
        return self._record(result)

    def _record(self, result: JobResult) -> JobResult:
        self._metrics.increment_counter('jobs_succeeded' if result.success else 'jobs_failed')
        return result
