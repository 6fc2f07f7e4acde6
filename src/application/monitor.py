"""Polling state machine driving one batch job to a terminal outcome."""

import asyncio
import time
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Optional

from domain.models import Job, JobResult, JobStatus, result_filename
from domain.protocols import IBatchClient, ILogger
from shared.logging import LoggerAdapter, get_logger
from shared.retry import ExponentialBackoff

Sleep = Callable[[float], Awaitable[None]]

DEFAULT_CHECK_INTERVAL = 5.0
DEFAULT_MAX_INTERVAL = 60.0
BACKOFF_FACTOR = 1.5


class MonitorState(str, Enum):
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class JobMonitor:
    """
    Polls a job until it reaches a terminal status, then materializes it.

    Transitions:
        polling -> succeeded   remote succeeded and results were written
        polling -> failed      remote failure status, unreadable status,
                               failed download, or poll timeout
        polling -> polling     any non-terminal status; sleep with backoff

    Each iteration issues exactly one job lookup, which carries the status
    and, once succeeded, the output reference. A succeeded job gets exactly
    one fetch; a failed one gets none.
    """

    def __init__(
        self,
        client: IBatchClient,
        job: Job,
        output_dir: Path,
        check_interval: float = DEFAULT_CHECK_INTERVAL,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        max_wait: Optional[float] = None,
        sleep: Optional[Sleep] = None,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[ILogger] = None
    ):
        self._client = client
        self._job = job
        self._output_dir = Path(output_dir)
        self._backoff = ExponentialBackoff(
            initial=check_interval,
            factor=BACKOFF_FACTOR,
            maximum=max(max_interval, check_interval),
        )
        self._max_wait = max_wait
        self._sleep = sleep or asyncio.sleep
        self._clock = clock
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self.state = MonitorState.POLLING
        self.polls = 0

    @property
    def job(self) -> Job:
        return self._job

    @property
    def output_path(self) -> Path:
        return self._output_dir / result_filename(self._job.id)

    async def run(self) -> JobResult:
        """Poll until terminal and return the job's result."""
        job = self._job
        started = self._clock()
        self._logger.info(f"Monitoring batch job {job.id}")

        while self.state is MonitorState.POLLING:
            remote = await self._poll()

            if remote is None:
                self._logger.error(f"Failed to retrieve status for batch job {job.id}")
                return self._fail(error="status unavailable")

            status = remote.status
            job.observe(status, remote.output_ref)

            if status is JobStatus.SUCCEEDED:
                return await self._materialize()

            if status.is_failure:
                self._logger.error(f"Batch job {job.id} {status.value}")
                return self._fail(status=status, error=f"job {status.value}")

            if self._max_wait is not None and self._clock() - started >= self._max_wait:
                self._logger.error(
                    f"Batch job {job.id} still {status.value} after {self._max_wait:.0f}s, giving up"
                )
                return self._fail(status=status, error=f"timed out after {self._max_wait:.0f}s")

            interval = self._backoff.next_interval()
            self._logger.debug(f"Batch job {job.id} is {status.value}, next check in {interval:.1f}s")
            await self._sleep(interval)

        raise RuntimeError(f"Monitor for {job.id} already finished in state {self.state.value}")

    async def _poll(self) -> Optional[Job]:
        self.polls += 1
        try:
            return await asyncio.to_thread(self._client.get_job, self._job.id)
        except Exception as e:
            self._logger.error(f"Status check for {self._job.id} raised: {e}")
            return None

    async def _materialize(self) -> JobResult:
        job = self._job
        destination = self.output_path
        try:
            written = await asyncio.to_thread(self._client.fetch_job_output, job.id, destination)
        except Exception as e:
            self._logger.error(f"Downloading results of {job.id} raised: {e}")
            written = False

        if not written:
            self._logger.error(f"Batch job {job.id} succeeded but results could not be saved")
            return self._fail(status=JobStatus.SUCCEEDED, error="results download failed")

        self.state = MonitorState.SUCCEEDED
        self._logger.info(f"Batch job {job.id} completed: {destination}")
        return JobResult.succeeded(job.id, destination)

    def _fail(self, status: Optional[JobStatus] = None, error: Optional[str] = None) -> JobResult:
        self.state = MonitorState.FAILED
        return JobResult.failed(job_id=self._job.id, status=status, error=error)
