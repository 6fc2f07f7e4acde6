import sys
import os
import threading
from pathlib import Path

import pytest

# Ensure src/ is on sys.path so the layer packages are importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from domain.exceptions import UploadError  # noqa: E402
from domain.models import Job, JobStatus  # noqa: E402

ENV_VARS = (
    "GEMINI_API_KEY",
    "GOOGLE_GENERATIVE_AI_API_KEY",
    "GEMINI_MODEL",
    "GEMINI_API_BASE",
    "GEMINI_BATCH_CONFIG",
    "GEMINI_BATCH_MAX_CONCURRENT",
    "GEMINI_BATCH_CHECK_INTERVAL",
    "GEMINI_BATCH_POLL_TIMEOUT",
)


class FakeBatchClient:
    """
    In-memory IBatchClient.

    Jobs are named after the uploaded file's stem. Each job walks through its
    scripted statuses (the last one repeats). Every call is appended to
    ``events`` so tests can check ordering across concurrent jobs.
    """

    def __init__(self, statuses=None, fail_uploads=(), fail_creates=(), fetch_ok=True):
        self.statuses = {k: list(v) for k, v in (statuses or {}).items()}
        self.fail_uploads = set(fail_uploads)
        self.fail_creates = set(fail_creates)
        self.fetch_ok = fetch_ok
        self.events = []
        self.closed = False
        self._lock = threading.Lock()

    def _record(self, *event):
        with self._lock:
            self.events.append(event)

    def calls(self, kind):
        return [e for e in self.events if e[0] == kind]

    def upload_file(self, path):
        path = Path(path)
        self._record("upload", path.name)
        if path.stem in self.fail_uploads:
            raise UploadError(f"Failed to upload {path}")
        return f"files/{path.stem}"

    def create_job(self, file_ref):
        stem = file_ref.split("/", 1)[1]
        self._record("create", stem)
        if stem in self.fail_creates:
            return None
        return Job(id=f"job-{stem}", input_ref=file_ref)

    def get_job(self, job_id):
        status = self.get_job_status(job_id)
        if status is None:
            return None
        return Job(id=job_id, status=status, output_ref=f"files/out-{job_id}")

    def get_job_status(self, job_id):
        stem = job_id[len("job-"):]
        script = self.statuses.get(stem, [JobStatus.SUCCEEDED])
        with self._lock:
            status = script.pop(0) if len(script) > 1 else script[0]
        self._record("status", stem, status)
        return status

    def fetch_job_output(self, job_id, destination):
        self._record("fetch", job_id[len("job-"):])
        if not self.fetch_ok:
            return False
        Path(destination).write_text(f'{{"key": "{job_id}"}}\n', encoding="utf-8")
        return True

    def cancel_job(self, job_id):
        self._record("cancel", job_id)
        return True

    def list_jobs(self, limit=None):
        return []

    def list_files(self, limit=None):
        return []

    def get_file(self, name):
        return None

    def close(self):
        self.closed = True


class RecordingSleep:
    """Async sleep replacement that returns immediately and records delays."""

    def __init__(self):
        self.intervals = []

    async def __call__(self, seconds):
        self.intervals.append(seconds)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration environment variables."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def fake_client():
    return FakeBatchClient()


@pytest.fixture
def make_client():
    """Factory for scripted fake clients."""
    return FakeBatchClient


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_inputs(tmp_path):
    """Create JSONL input files in a fresh directory."""
    def _make(*names, directory="inputs"):
        root = tmp_path / directory
        root.mkdir(parents=True, exist_ok=True)
        paths = []
        for name in names:
            path = root / name
            path.write_text('{"key": "1", "request": {}}\n', encoding="utf-8")
            paths.append(path)
        return paths
    return _make
