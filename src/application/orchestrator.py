"""Entry points for submitting, monitoring and managing batch jobs."""

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional

from domain.models import Job, JobResult, JobStatus, RemoteFile, result_filename
from domain.protocols import IBatchClient, ILogger, IMetricsCollector
from domain.exceptions import InputPathError, JobCreationError
from infrastructure.config import BatchConfig
from shared.logging import LoggerAdapter, get_logger
from shared.metrics import MetricsCollector
from shared.types import PathLike, as_path

from application.expander import InputExpander
from application.monitor import Sleep
from application.scheduler import ConcurrencyScheduler


class BatchOrchestrator:
    """Main orchestrator - coordinates expansion, scheduling and job management."""

    def __init__(
        self,
        client: IBatchClient,
        config: Optional[BatchConfig] = None,
        logger: Optional[ILogger] = None,
        metrics: Optional[IMetricsCollector] = None,
        sleep: Optional[Sleep] = None
    ):
        self._client = client
        self._config = config or BatchConfig()
        self._logger = logger or LoggerAdapter(get_logger(__name__))
        self._metrics = metrics or MetricsCollector()
        self._expander = InputExpander(self._config.input_extension, logger=self._logger)
        self._scheduler = ConcurrencyScheduler(
            client,
            check_interval=self._config.check_interval,
            max_interval=self._config.max_check_interval,
            max_wait=self._config.poll_timeout,
            sleep=sleep,
            logger=self._logger,
            metrics=self._metrics,
        )

    @property
    def metrics(self) -> IMetricsCollector:
        return self._metrics

    def expand_inputs(self, input_paths: Iterable[PathLike]) -> List[Path]:
        return self._expander.expand(input_paths)

    async def process_inputs(
        self,
        input_paths: Iterable[PathLike],
        output_dir: PathLike,
        concurrency_limit: Optional[int] = None
    ) -> List[JobResult]:
        """
        Submit every eligible input file and wait for all results.

        Args:
            input_paths: Files and/or directories
            output_dir: Directory receiving ``{job_id}_results.jsonl`` files
            concurrency_limit: Max jobs in flight (default: config.max_concurrent_jobs)

        Returns:
            One result per eligible file; empty if none were found

        Raises:
            InputPathError: If an input path does not exist
        """
        files = self._expander.expand(input_paths)
        if not files:
            return []

        limit = self._config.max_concurrent_jobs if concurrency_limit is None else concurrency_limit
        self._logger.info(f"Processing {len(files)} files with up to {limit} concurrent jobs")

        self._metrics.start_timer('process_inputs')
        results = await self._scheduler.process(files, as_path(output_dir), limit)
        self._metrics.stop_timer('process_inputs')

        succeeded = sum(1 for r in results if r.success)
        self._logger.info(f"Finished {len(results)} jobs: {succeeded} succeeded, {len(results) - succeeded} failed")
        return results

    async def submit_job(self, input_path: PathLike) -> Job:
        """
        Upload a file and create its job without waiting for completion.

        Raises:
            InputPathError: If the file is missing or has the wrong extension
            UploadError: If the upload fails
            JobCreationError: If the provider does not create the job
        """
        path = as_path(input_path)
        if not path.is_file():
            raise InputPathError(f"Input file does not exist: {path}")
        if not self._expander.matches(path):
            raise InputPathError(f"Not a {self._config.input_extension} file: {path}")

        file_ref = await asyncio.to_thread(self._client.upload_file, path)
        job = await asyncio.to_thread(self._client.create_job, file_ref)
        if job is None:
            raise JobCreationError(f"Failed to create batch job for {path}")

        self._logger.info(f"Submitted {path} as {job.id}")
        return job

    async def download_job(self, job_id: str, output_dir: PathLike) -> JobResult:
        """Fetch results of an already finished job."""
        status = await asyncio.to_thread(self._client.get_job_status, job_id)
        if status is None:
            return JobResult.failed(job_id, error="status unavailable")
        if status is not JobStatus.SUCCEEDED:
            self._logger.warning(f"Batch job {job_id} is {status.value}, nothing to download")
            return JobResult.failed(job_id, status=status, error=f"job {status.value}")

        destination = as_path(output_dir) / result_filename(job_id)
        written = await asyncio.to_thread(self._client.fetch_job_output, job_id, destination)
        if not written:
            return JobResult.failed(job_id, status=status, error="results download failed")
        return JobResult.succeeded(job_id, destination)

    async def get_job(self, job_id: str) -> Optional[Job]:
        return await asyncio.to_thread(self._client.get_job, job_id)

    async def cancel_job(self, job_id: str) -> bool:
        return await asyncio.to_thread(self._client.cancel_job, job_id)

    async def list_jobs(self, limit: Optional[int] = None) -> List[Job]:
        return await asyncio.to_thread(self._client.list_jobs, limit)

    async def list_files(self, limit: Optional[int] = None) -> List[RemoteFile]:
        return await asyncio.to_thread(self._client.list_files, limit)

    async def get_file(self, name: str) -> Optional[RemoteFile]:
        return await asyncio.to_thread(self._client.get_file, name)

    def close(self) -> None:
        """Release the client's connections."""
        close = getattr(self._client, 'close', None)
        if callable(close):
            close()
