"""
Unit tests for the job monitor.
"""

import asyncio
import pytest
from unittest.mock import Mock

from application.monitor import JobMonitor, MonitorState
from domain.models import Job, JobStatus


def remote_job(status):
    """Job as the client reports it for one poll."""
    if status is None:
        return None
    return Job(id="job-1", status=status, output_ref="files/responses-1")


def make_client(statuses, fetch_result=True):
    client = Mock()
    if isinstance(statuses, Exception):
        client.get_job.side_effect = statuses
    else:
        client.get_job.side_effect = [remote_job(s) for s in statuses]
    client.fetch_job_output.return_value = fetch_result
    return client


def run_monitor(client, tmp_path, sleep, **kwargs):
    monitor = JobMonitor(client, Job(id="job-1"), tmp_path, sleep=sleep, logger=Mock(), **kwargs)
    return monitor, asyncio.run(monitor.run())


class TestJobMonitor:

    def test_polls_until_succeeded(self, tmp_path, recording_sleep):
        client = make_client([
            JobStatus.QUEUED,
            JobStatus.RUNNING,
            JobStatus.RUNNING,
            JobStatus.SUCCEEDED,
        ])

        monitor, result = run_monitor(client, tmp_path, recording_sleep)

        assert result.success
        assert result.job_id == "job-1"
        assert result.output_file_path == tmp_path / "job-1_results.jsonl"
        assert monitor.state is MonitorState.SUCCEEDED
        assert monitor.polls == 4
        assert recording_sleep.intervals == pytest.approx([5, 7.5, 11.25])
        client.fetch_job_output.assert_called_once_with("job-1", tmp_path / "job-1_results.jsonl")

    def test_job_records_completion(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.SUCCEEDED])

        monitor, _ = run_monitor(client, tmp_path, recording_sleep)

        assert monitor.job.status is JobStatus.SUCCEEDED
        assert monitor.job.completed_at is not None

    def test_success_records_output_reference(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.RUNNING, JobStatus.SUCCEEDED])

        monitor, result = run_monitor(client, tmp_path, recording_sleep)

        assert result.success
        assert monitor.job.output_ref == "files/responses-1"
        client.get_job.assert_called_with("job-1")

    def test_failure_leaves_no_output_reference(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.RUNNING, JobStatus.FAILED])

        monitor, _ = run_monitor(client, tmp_path, recording_sleep)

        assert monitor.job.status is JobStatus.FAILED
        assert monitor.job.output_ref is None

    @pytest.mark.parametrize("status", [JobStatus.CANCELLED, JobStatus.FAILED, JobStatus.EXPIRED])
    def test_failure_status_never_fetches(self, tmp_path, recording_sleep, status):
        client = make_client([JobStatus.RUNNING, status])

        monitor, result = run_monitor(client, tmp_path, recording_sleep)

        assert not result.success
        assert result.status is status
        assert result.output_file_path is None
        assert monitor.state is MonitorState.FAILED
        client.fetch_job_output.assert_not_called()

    def test_unavailable_status_fails_immediately(self, tmp_path, recording_sleep):
        client = make_client([None, JobStatus.SUCCEEDED])

        monitor, result = run_monitor(client, tmp_path, recording_sleep)

        assert not result.success
        assert result.error == "status unavailable"
        assert monitor.polls == 1
        assert recording_sleep.intervals == []

    def test_status_exception_fails(self, tmp_path, recording_sleep):
        client = make_client(ConnectionError("network down"))

        _, result = run_monitor(client, tmp_path, recording_sleep)

        assert not result.success
        client.fetch_job_output.assert_not_called()

    def test_failed_download_is_failure(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.SUCCEEDED], fetch_result=False)

        monitor, result = run_monitor(client, tmp_path, recording_sleep)

        assert not result.success
        assert result.status is JobStatus.SUCCEEDED
        assert result.error == "results download failed"
        assert monitor.state is MonitorState.FAILED
        assert client.fetch_job_output.call_count == 1

    def test_download_exception_is_failure(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.SUCCEEDED])
        client.fetch_job_output.side_effect = OSError("disk full")

        _, result = run_monitor(client, tmp_path, recording_sleep)

        assert not result.success

    def test_max_wait_gives_up(self, tmp_path, recording_sleep):
        client = Mock()
        client.get_job.return_value = remote_job(JobStatus.RUNNING)
        clock = Mock(side_effect=[0, 4, 8, 12])

        monitor, result = run_monitor(client, tmp_path, recording_sleep, max_wait=10, clock=clock)

        assert not result.success
        assert result.status is JobStatus.RUNNING
        assert "timed out" in result.error
        assert monitor.polls == 3
        assert len(recording_sleep.intervals) == 2

    def test_interval_capped(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.RUNNING] * 6 + [JobStatus.SUCCEEDED])

        run_monitor(client, tmp_path, recording_sleep, check_interval=10, max_interval=20)

        assert recording_sleep.intervals == pytest.approx([10, 15, 20, 20, 20, 20])

    def test_run_twice_raises(self, tmp_path, recording_sleep):
        client = make_client([JobStatus.SUCCEEDED])
        monitor, _ = run_monitor(client, tmp_path, recording_sleep)

        with pytest.raises(RuntimeError):
            asyncio.run(monitor.run())
