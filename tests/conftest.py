"""
Shared fixtures: an in-memory provisioning service and scripted job channels
"""

from collections import Counter
from pathlib import Path
from typing import Any, Dict, List

import pytest

from imgforge.core.config import Config
from imgforge.core.errors import ServiceError
from imgforge.core.job_channel import ChannelEvent, JobChannel
from imgforge.core.models import Device, FlashRequest, JobHandle, StoredImage
from imgforge.core.service import ProvisioningService


STORED_IMAGE = StoredImage(
    name="raspios-lite.img",
    path="/var/lib/imgforge/images/raspios-lite.img",
    size_mb=1536,
    modified=1700000000,
)
DEVICE = Device(name="SanDisk Ultra", path="/dev/sdb", size="32G")


class ScriptedChannel(JobChannel):
    """Job channel replaying a fixed script

    Script entries are ChannelEvents, exceptions (raised when reached) or
    callables (invoked when reached, then skipped).
    """

    def __init__(self, job_id: str, script: List[Any]):
        super().__init__(job_id)
        self.script = list(script)
        self.close_calls = 0

    def events(self):
        for entry in self.script:
            if self.cancelled:
                return
            if isinstance(entry, Exception):
                raise entry
            if callable(entry):
                entry()
                continue
            yield entry

    def close(self):
        self.close_calls += 1
        super().close()


class FakeService(ProvisioningService):
    """In-memory provisioning service

    Add an operation name to `fail` to make it raise ServiceError.
    Each opened channel replays the next entry of `channel_scripts`,
    or closes cleanly when none is left.
    """

    def __init__(self):
        self.stored_images = [STORED_IMAGE]
        self.devices = [DEVICE]
        self.network_names = ["HomeNetwork", "Workshop"]
        self.fail = set()
        self.calls = Counter()
        self.flash_requests: List[FlashRequest] = []
        self.build_requests: List[Dict[str, Any]] = []
        self.uploads: List[str] = []
        self.channel_scripts: List[List[Any]] = []
        self.channels: List[ScriptedChannel] = []
        self._next_job = 1

    def _check(self, operation: str):
        self.calls[operation] += 1
        if operation in self.fail:
            raise ServiceError(f"{operation} failed", status_code=500)

    def _new_job(self) -> JobHandle:
        handle = JobHandle(id=f"job-{self._next_job}", status="running")
        self._next_job += 1
        return handle

    def health(self):
        self._check("health")
        return {"status": "ok"}

    def list_stored_images(self):
        self._check("list_stored_images")
        return list(self.stored_images)

    def list_devices(self):
        self._check("list_devices")
        return list(self.devices)

    def list_network_names(self):
        self._check("list_network_names")
        return list(self.network_names)

    def submit_flash(self, request):
        self._check("submit_flash")
        self.flash_requests.append(request)
        return self._new_job()

    def submit_build(self, request):
        self._check("submit_build")
        self.build_requests.append(request)
        return self._new_job()

    def upload_image(self, file_path):
        self._check("upload_image")
        self.uploads.append(file_path)
        return f"/var/lib/imgforge/uploads/{Path(file_path).name}"

    def list_jobs(self):
        self._check("list_jobs")
        return [JobHandle(id="job-1", status="completed", created_at="2025-03-04T09:15:00Z")]

    def get_job(self, job_id):
        self._check("get_job")
        return JobHandle(id=job_id, status="running", created_at="2025-03-04T09:15:00Z")

    def open_job_channel(self, job_id):
        self._check("open_job_channel")
        script = self.channel_scripts.pop(0) if self.channel_scripts else [ChannelEvent.closed()]
        channel = ScriptedChannel(job_id, script)
        self.channels.append(channel)
        return channel


def messages(*lines: str) -> List[ChannelEvent]:
    return [ChannelEvent.message(line) for line in lines]


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point the home directory at a temp dir and clear ImgForge env overrides"""
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("IMGFORGE_SERVER_URL", raising=False)
    monkeypatch.delenv("IMGFORGE_LOG_LEVEL", raising=False)
    return tmp_path


@pytest.fixture
def config(isolated_home):
    return Config(str(isolated_home / "config.json"))
