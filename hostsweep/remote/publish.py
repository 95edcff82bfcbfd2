"""Publication of new findings and ingestion polling."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

import httpx

from ..core.errors import (
    IngestionTimeoutError,
    RemoteQueryError,
    UploadRequestError,
    UploadTransferError,
)
from .queries import REQUEST_UPLOAD, SYSTEM_ACTIVITY
from .session import Session

logger = logging.getLogger(__name__)

STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_SUCCESS = "SUCCESS"


class PublishState(str, Enum):
    REQUESTED = "REQUESTED"
    UPLOADED = "UPLOADED"
    POLLING = "POLLING"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass
class UploadJob:
    """One publish attempt, from upload slot to terminal ingestion status."""

    upload_url: str
    tracking_id: str
    upload_id: str = ""
    state: PublishState = PublishState.REQUESTED
    status: str = ""
    status_info: str = ""
    attempts: int = 0
    result: Mapping[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.state is PublishState.DONE


class Publisher:
    """Requests an upload slot, transfers the payload and waits for ingestion."""

    def __init__(
        self,
        session: Session,
        *,
        max_attempts: int = 5,
        interval: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.session = session
        self.max_attempts = max_attempts
        self.interval = interval
        self._sleep = sleep

    def request_upload_slot(self, filename: str) -> UploadJob:
        try:
            data = self.session.query(REQUEST_UPLOAD, {"filename": filename})
        except RemoteQueryError as exc:
            raise UploadRequestError(f"Failed to request upload URL: {exc}") from exc
        upload = (data.get("requestSecurityScanUpload") or {}).get("upload") or {}
        url = upload.get("url")
        tracking_id = upload.get("systemActivityId")
        if not url:
            raise UploadRequestError("Received empty upload URL")
        if not tracking_id:
            raise UploadRequestError("Upload slot carries no tracking identifier")
        return UploadJob(upload_url=url, tracking_id=str(tracking_id), upload_id=str(upload.get("id") or ""))

    def upload(self, job: UploadJob, payload: bytes) -> None:
        try:
            response = self.session.put_content(job.upload_url, payload)
        except httpx.HTTPError as exc:
            raise UploadTransferError(f"Upload failed: {exc}") from exc
        if not response.is_success:
            raise UploadTransferError(f"Upload failed with status {response.status_code}")
        job.state = PublishState.UPLOADED
        logger.info("Vulnerability information uploaded successfully")

    def poll_ingestion(self, job: UploadJob) -> UploadJob:
        """Poll until a terminal status; raise :class:`IngestionTimeoutError` otherwise.

        Both "not found" query errors (the activity is not visible yet) and
        ``IN_PROGRESS`` are retried.
        """

        job.state = PublishState.POLLING
        for attempt in range(1, self.max_attempts + 1):
            job.attempts = attempt
            activity: Mapping[str, Any] = {}
            try:
                data = self.session.query(SYSTEM_ACTIVITY, {"id": job.tracking_id})
            except RemoteQueryError as exc:
                if not exc.not_found:
                    raise
            else:
                activity = data.get("systemActivity") or {}

            if not activity:
                logger.info("Ingestion status not visible yet (attempt %d/%d)", attempt, self.max_attempts)
            else:
                job.status = str(activity.get("status") or "")
                job.status_info = str(activity.get("statusInfo") or "")
                job.result = activity.get("result") or {}
                if job.status != STATUS_IN_PROGRESS:
                    job.state = PublishState.DONE if job.status == STATUS_SUCCESS else PublishState.FAILED
                    logger.info("System activity status: %s %s", job.status, job.status_info)
                    return job
                logger.info("Processing upload (attempt %d/%d)", attempt, self.max_attempts)

            if attempt < self.max_attempts:
                self._sleep(self.interval)

        raise IngestionTimeoutError(
            f"Ingestion of {job.tracking_id} did not finish after {self.max_attempts} attempts",
            tracking_id=job.tracking_id,
            attempts=job.attempts,
        )

    def publish(self, payload: bytes, filename: str) -> UploadJob:
        job = self.request_upload_slot(filename)
        self.upload(job, payload)
        logger.debug("Payload uploaded, polling activity %s", job.tracking_id)
        return self.poll_ingestion(job)


__all__ = ["Publisher", "UploadJob", "PublishState", "STATUS_IN_PROGRESS", "STATUS_SUCCESS"]
