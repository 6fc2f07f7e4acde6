"""
Gemini Batch API client implementation.

Infrastructure layer for the Gemini asynchronous batch endpoint.
"""

import mimetypes
import os
import time
from pathlib import Path
from typing import List, Dict, Any, Optional
import logging

import requests
from requests.exceptions import RequestException

from domain.models import Job, JobStatus, RemoteFile
from domain.exceptions import ProviderError, UploadError
from shared.retry import retry_with_backoff

DEFAULT_API_BASE = "https://generativelanguage.googleapis.com"
DEFAULT_MODEL = "gemini-2.5-flash"
API_VERSION = "v1beta"
JSONL_MIME_TYPE = "application/jsonl"

mimetypes.add_type(JSONL_MIME_TYPE, ".jsonl")


class GeminiBatchClient:
    """
    Gemini Batch API client.

    Uses requests library to talk to the Generative Language REST API.
    Implements IBatchClient protocol.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        api_base: Optional[str] = None,
        timeout: float = 60.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize Gemini client.

        Args:
            api_key: Gemini API key (reads from GEMINI_API_KEY env if None)
            model: Model used for new batch jobs
            api_base: API base URL (default: https://generativelanguage.googleapis.com)
            timeout: Per-request timeout in seconds
            logger: Logger instance
        """
        self.api_key = api_key or os.getenv('GEMINI_API_KEY')
        if not self.api_key:
            raise ValueError("GEMINI_API_KEY not set")

        self.model = model
        self.api_base = (api_base or DEFAULT_API_BASE).rstrip('/')
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'x-goog-api-key': self.api_key,
        })

    def close(self) -> None:
        self.session.close()

    def _url(self, path: str, prefix: str = "") -> str:
        base = f"{self.api_base}/{prefix}" if prefix else self.api_base
        return f"{base}/{API_VERSION}/{path.lstrip('/')}"

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        """
        Make API request.

        Raises:
            ProviderError: On transport error or non-2xx response
        """
        kwargs.setdefault('timeout', self.timeout)
        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except RequestException as e:
            status_code = getattr(getattr(e, 'response', None), 'status_code', None)
            detail = _error_detail(getattr(e, 'response', None))
            error_msg = f"Gemini API request failed: {method} {url}: {e}"
            if detail:
                error_msg = f"{error_msg} ({detail})"
            raise ProviderError(error_msg, status_code=status_code) from e

    def _json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        response = self._request(method, url, **kwargs)
        if not response.content:
            return {}
        return response.json()

    # Files

    def upload_file(self, path: Path) -> str:
        """Upload a batch input file using the resumable upload protocol."""
        path = Path(path)
        self.logger.info(f"Uploading batch input file {path}...")

        try:
            size = path.stat().st_size
            mime_type = mimetypes.guess_type(path.name)[0] or JSONL_MIME_TYPE
            display_name = f"batch-input-{int(time.time() * 1000)}{path.suffix.lower()}"

            start = self._request(
                'POST',
                self._url('files', prefix='upload'),
                headers={
                    'X-Goog-Upload-Protocol': 'resumable',
                    'X-Goog-Upload-Command': 'start',
                    'X-Goog-Upload-Header-Content-Length': str(size),
                    'X-Goog-Upload-Header-Content-Type': mime_type,
                    'Content-Type': 'application/json',
                },
                json={'file': {'display_name': display_name}},
            )

            upload_url = start.headers.get('X-Goog-Upload-URL') or start.headers.get('x-goog-upload-url')
            if not upload_url:
                raise UploadError(f"No upload URL returned for {path}")

            with open(path, 'rb') as f:
                response = self._request(
                    'POST',
                    upload_url,
                    headers={
                        'Content-Length': str(size),
                        'X-Goog-Upload-Offset': '0',
                        'X-Goog-Upload-Command': 'upload, finalize',
                    },
                    data=f,
                )
            data = response.json()
        except (OSError, ValueError, ProviderError) as e:
            self.logger.error(f"Error uploading file {path}: {e}")
            raise UploadError(f"Failed to upload {path}: {e}") from e

        name = (data.get('file') or data).get('name')
        if not name:
            raise UploadError(f"No file name in upload response for {path}")

        self.logger.info(f"Uploaded file {name}")
        return name

    def list_files(self, limit: Optional[int] = None) -> List[RemoteFile]:
        """List uploaded files."""
        items = self._paginate('files', 'files', limit, page_size=limit or 10)
        return [_parse_file(item) for item in items]

    def get_file(self, name: str) -> Optional[RemoteFile]:
        """Get uploaded file details."""
        if not name.startswith('files/'):
            name = f"files/{name}"
        try:
            return _parse_file(self._json('GET', self._url(name)))
        except ProviderError as e:
            if e.status_code == 404:
                return None
            raise

    # Batch jobs

    def create_job(self, file_ref: str) -> Optional[Job]:
        """Create a batch job from an uploaded file."""
        self.logger.info(f"Creating batch job for file {file_ref}...")
        display_name = f"batch_job_{int(time.time() * 1000)}"

        try:
            data = self._json(
                'POST',
                self._url(f"models/{self.model}:batchGenerateContent"),
                json={
                    'batch': {
                        'display_name': display_name,
                        'input_config': {'file_name': file_ref},
                    }
                },
            )
            job = _parse_job(data, default_status=JobStatus.CREATED)
        except (ProviderError, ValueError) as e:
            self.logger.error(f"Error creating batch job: {e}")
            return None

        job.input_ref = job.input_ref or file_ref
        job.model = job.model or self.model
        self.logger.info(f"Batch job created successfully: {job.id}")
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        """Get job details."""
        try:
            data = self._json('GET', self._url(_batch_name(job_id)))
            return _parse_job(data)
        except (ProviderError, ValueError) as e:
            self.logger.error(f"Error fetching batch job {job_id}: {e}")
            return None

    def get_job_status(self, job_id: str) -> Optional[JobStatus]:
        """Get the normalized status of a job."""
        job = self.get_job(job_id)
        if job is None:
            return None
        return job.status

    def fetch_job_output(self, job_id: str, destination: Path) -> bool:
        """Download a finished job's responses file to destination."""
        job = self.get_job(job_id)
        if job is None:
            return False

        if job.status is not JobStatus.SUCCEEDED:
            self.logger.warning(f"Batch job not completed. Status: {job.status.value}")
            return False

        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self._download(job.output_ref, destination)
        except (ProviderError, OSError) as e:
            self.logger.error(f"Error downloading batch results for {job_id}: {e}")
            return False

        self.logger.info(f"Saved results of {job_id} to {destination}")
        return True

    @retry_with_backoff(max_attempts=3, backoff_seconds=2, exceptions=(ProviderError,))
    def _download(self, file_name: str, destination: Path) -> None:
        url = self._url(f"{file_name}:download", prefix='download')
        response = self._request('GET', url, params={'alt': 'media'}, stream=True)
        tmp_path = destination.with_name(destination.name + '.part')
        try:
            with open(tmp_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)
            tmp_path.replace(destination)
        finally:
            response.close()
            if tmp_path.exists():
                tmp_path.unlink()

    def cancel_job(self, job_id: str) -> bool:
        """Cancel a batch job."""
        self.logger.info(f"Cancelling batch job {job_id}")
        try:
            self._request('POST', self._url(f"{_batch_name(job_id)}:cancel"))
        except ProviderError as e:
            self.logger.error(f"Error cancelling job {job_id}: {e}")
            return False

        self.logger.info(f"Cancelled batch job {job_id}")
        return True

    def list_jobs(self, limit: Optional[int] = None) -> List[Job]:
        """List batch jobs, newest first as returned by the API."""
        items = self._paginate('batches', 'operations', limit, page_size=limit or 20)
        jobs = []
        for item in items:
            try:
                jobs.append(_parse_job(item))
            except ValueError as e:
                self.logger.warning(f"Failed to parse batch job: {e}")
        return jobs

    def _paginate(
        self,
        path: str,
        key: str,
        limit: Optional[int],
        page_size: int
    ) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        params: Dict[str, Any] = {'pageSize': page_size}

        while True:
            data = self._json('GET', self._url(path), params=params)
            page = data.get(key) or data.get('batches') or []
            for item in page:
                items.append(item)
                if limit and len(items) >= limit:
                    return items

            token = data.get('nextPageToken')
            if not token:
                return items
            params['pageToken'] = token


def _batch_name(job_id: str) -> str:
    return job_id if job_id.startswith('batches/') else f"batches/{job_id}"


def _error_detail(response: Optional[requests.Response]) -> str:
    if response is None:
        return ""
    try:
        body = response.json()
    except ValueError:
        return (response.text or "").strip()[:200]
    if isinstance(body, dict) and isinstance(body.get('error'), dict):
        return body['error'].get('message', '')
    return ""


def _parse_job(data: Dict[str, Any], default_status: JobStatus = JobStatus.UNKNOWN) -> Job:
    """
    Build a Job from a batch resource or the long-running operation wrapping it.

    Operations carry the batch under ``metadata`` (and ``response`` once done);
    the fields are merged so either shape works.
    """
    merged: Dict[str, Any] = {}
    for part in (data.get('response'), data.get('metadata'), data):
        if isinstance(part, dict):
            for k, v in part.items():
                merged.setdefault(k, v)

    name = data.get('name') or merged.get('name')
    if not name:
        raise ValueError("Batch resource has no name")

    raw_state = merged.get('state')
    status = JobStatus.normalize(raw_state) if raw_state else default_status

    output = merged.get('output') or merged.get('dest') or {}
    if not isinstance(output, dict):
        output = {}
    output_ref = output.get('responsesFile') or output.get('fileName') or merged.get('responsesFile')

    input_config = merged.get('inputConfig') or merged.get('src') or {}
    input_ref = input_config.get('fileName') if isinstance(input_config, dict) else input_config

    job = Job(
        id=name,
        status=status,
        input_ref=input_ref or None,
        output_ref=output_ref if status is JobStatus.SUCCEEDED else None,
        display_name=merged.get('displayName'),
        model=merged.get('model'),
    )
    return job


def _parse_file(data: Dict[str, Any]) -> RemoteFile:
    data = data.get('file') or data
    size = data.get('sizeBytes')
    return RemoteFile(
        name=data.get('name', 'unknown'),
        display_name=data.get('displayName'),
        size_bytes=int(size) if size is not None else None,
        mime_type=data.get('mimeType'),
        created_at=data.get('createTime'),
        state=data.get('state'),
        uri=data.get('uri'),
    )
