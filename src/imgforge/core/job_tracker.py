"""
ImgForge Job Lifecycle Tracker
Supervises one remote build or flash job from submission through its streamed log to a terminal status
"""

import logging
from typing import Any, Dict, List, Optional, Union

from PyQt6.QtCore import QMutex, QObject, QThread, pyqtSignal

from .errors import ChannelError, ImgForgeError
from .job_channel import ChannelEventType, JobChannel
from .models import FlashRequest, Job, JobKind, JobStatus
from .service import ProvisioningService


JobRequest = Union[FlashRequest, Dict[str, Any]]

# Status moves forward only; ERROR -> IDLE happens by replacing the job on retry
ALLOWED_TRANSITIONS = {
    JobStatus.IDLE: {JobStatus.FLASHING, JobStatus.BUILDING, JobStatus.ERROR},
    JobStatus.FLASHING: {JobStatus.SUCCESS, JobStatus.ERROR},
    JobStatus.BUILDING: {JobStatus.SUCCESS, JobStatus.ERROR},
    JobStatus.SUCCESS: set(),
    JobStatus.ERROR: set(),
}


def completion_line(kind: JobKind) -> str:
    return f"✅ {kind.noun} completed successfully!"


def stream_failure_line(kind: JobKind, detail: str) -> str:
    return f"❌ {kind.noun} failed: {detail}" if detail else f"❌ {kind.noun} failed"


def submission_failure_line(detail: str) -> str:
    return f"❌ Error: {detail}"


class JobWorker(QThread):
    """Worker thread running a claimed job so the interface stays responsive"""

    def __init__(self, tracker: 'JobLifecycleTracker', request: JobRequest, parent=None):
        super().__init__(parent)
        self.tracker = tracker
        self.request = request

    def run(self):
        self.tracker._execute(self.request)


class JobLifecycleTracker(QObject):
    """
    State machine for a single remote job

    idle -> flashing/building -> success | error, with idle -> error when the
    submission itself fails. The only way out of error is retry(), which
    discards the job and its log. Retries are never automatic.
    """

    status_changed = pyqtSignal(object)  # JobStatus
    log_appended = pyqtSignal(str)
    job_finished = pyqtSignal(object)  # Job

    def __init__(self, service: ProvisioningService, kind: JobKind = JobKind.FLASH, parent=None):
        super().__init__(parent)
        self.logger = logging.getLogger(__name__)
        self.service = service
        self.kind = kind
        self.job = Job(kind=kind)

        self._mutex = QMutex()
        self._claimed = False
        self._abandoned = False
        self._channel: Optional[JobChannel] = None
        self._worker: Optional[JobWorker] = None

    # ---------- queries ----------
    @property
    def status(self) -> JobStatus:
        return self.job.status

    @property
    def job_id(self) -> Optional[str]:
        return self.job.id

    @property
    def log(self) -> List[str]:
        """Snapshot of the current job's log"""
        self._mutex.lock()
        try:
            return list(self.job.log)
        finally:
            self._mutex.unlock()

    @property
    def has_open_channel(self) -> bool:
        return self._channel is not None

    def can_start(self) -> bool:
        """A job may start only from idle and only once per job"""
        return self.job.status is JobStatus.IDLE and not self._claimed and not self._abandoned

    # ---------- commands ----------
    def start(self, request: JobRequest) -> bool:
        """Start the job on a worker thread; False if a job is already under way"""
        if not self._claim():
            return False
        self._worker = JobWorker(self, request)
        self._worker.start()
        return True

    def run(self, request: JobRequest) -> JobStatus:
        """Run the whole lifecycle on the calling thread and return the final status"""
        if not self._claim():
            return self.job.status
        self._execute(request)
        return self.job.status

    def retry(self) -> bool:
        """Discard a failed job and return to idle, ready for a fresh submission"""
        if self.job.status is not JobStatus.ERROR:
            self.logger.warning(f"Retry ignored: job is {self.job.status.value}, not error")
            return False

        # The worker emits its last signals after the status turns to error
        self.wait()

        self._mutex.lock()
        try:
            channel, self._channel = self._channel, None
            self.job = Job(kind=self.kind)
            self._claimed = False
        finally:
            self._mutex.unlock()

        if channel is not None:
            channel.close()
        self.logger.info(f"{self.kind.noun} job reset for retry")
        self.status_changed.emit(JobStatus.IDLE)
        return True

    def abandon(self) -> None:
        """Stop following the job locally; the remote operation keeps running"""
        self._mutex.lock()
        try:
            self._abandoned = True
            channel, self._channel = self._channel, None
        finally:
            self._mutex.unlock()

        if channel is not None:
            channel.close()
            self.logger.info(f"Stopped following {self.kind.value} job {self.job.id}")

    def wait(self, timeout_ms: Optional[int] = None) -> bool:
        """Block until the worker thread, if any, has finished"""
        if self._worker is None:
            return True
        if timeout_ms is None:
            return self._worker.wait()
        return self._worker.wait(timeout_ms)

    # ---------- lifecycle ----------
    def _claim(self) -> bool:
        self._mutex.lock()
        try:
            if not self.can_start():
                self.logger.warning(
                    f"Cannot start {self.kind.value} job: status is {self.job.status.value}"
                )
                return False
            self._claimed = True
            return True
        finally:
            self._mutex.unlock()

    def _execute(self, request: JobRequest) -> None:
        job = self.job

        try:
            handle = self._submit(request)
        except ImgForgeError as e:
            self.logger.error(f"{self.kind.noun} submission failed: {e}")
            self._finish(job, JobStatus.ERROR, submission_failure_line(str(e)))
            return
        except Exception as e:
            self.logger.error(f"Unexpected {self.kind.value} submission error: {e}", exc_info=True)
            self._finish(job, JobStatus.ERROR, submission_failure_line(str(e)))
            return

        job.id = handle.id
        self.logger.info(f"{self.kind.noun} job created: {job.id}")
        self._set_status(job, JobStatus.running_for(self.kind))

        try:
            channel = self.service.open_job_channel(job.id)
        except Exception as e:
            self.logger.error(f"Could not subscribe to job {job.id}: {e}",
                              exc_info=not isinstance(e, ImgForgeError))
            self._finish(job, JobStatus.ERROR, stream_failure_line(self.kind, str(e)))
            return

        self._mutex.lock()
        abandoned = self._abandoned
        if not abandoned:
            self._channel = channel
        self._mutex.unlock()
        if abandoned:
            channel.close()
            return

        terminal = None
        try:
            for event in channel:
                if event.type is ChannelEventType.MESSAGE:
                    self._append(job, event.data)
                    continue
                terminal = event
                break
        except Exception as e:
            self.logger.error(f"Job channel for {job.id} raised: {e}",
                              exc_info=not isinstance(e, ChannelError))
            self._release_channel(channel)
            self._finish(job, JobStatus.ERROR, stream_failure_line(self.kind, str(e)))
            return

        stopped_locally = channel.cancelled or self._abandoned
        self._release_channel(channel)

        if terminal is None:
            if stopped_locally:
                self.logger.info(f"Stopped following job {job.id} before it finished")
                return
            self._finish(job, JobStatus.ERROR, stream_failure_line(self.kind, "channel ended without a close signal"))
        elif terminal.type is ChannelEventType.CLOSED:
            self._finish(job, JobStatus.SUCCESS, completion_line(self.kind))
        else:
            self._finish(job, JobStatus.ERROR, stream_failure_line(self.kind, terminal.data))

    def _submit(self, request: JobRequest):
        if self.kind is JobKind.FLASH:
            if not isinstance(request, FlashRequest):
                request = FlashRequest(image_path=request["image_path"], device=request["device"])
            return self.service.submit_flash(request)
        return self.service.submit_build(dict(request))

    def _release_channel(self, channel: JobChannel) -> None:
        self._mutex.lock()
        if self._channel is channel:
            self._channel = None
        self._mutex.unlock()
        channel.close()

    def _append(self, job: Job, line: str) -> None:
        self._mutex.lock()
        job.append(line)
        self._mutex.unlock()
        self.log_appended.emit(line)

    def _set_status(self, job: Job, status: JobStatus) -> None:
        self._mutex.lock()
        try:
            if status not in ALLOWED_TRANSITIONS[job.status]:
                raise RuntimeError(f"Illegal job transition {job.status.value} -> {status.value}")
            job.status = status
        finally:
            self._mutex.unlock()
        self.logger.debug(f"{self.kind.noun} job status: {status.value}")
        self.status_changed.emit(status)

    def _finish(self, job: Job, status: JobStatus, line: str) -> None:
        self._append(job, line)
        self._set_status(job, status)
        if status is JobStatus.SUCCESS:
            self.logger.info(f"{self.kind.noun} job {job.id} completed successfully")
        else:
            self.logger.error(f"{self.kind.noun} job {job.id or '(not created)'} failed: {line}")
        self.job_finished.emit(job)
