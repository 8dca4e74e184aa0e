"""
ImgForge Provisioning Service Interface
The narrow collaborator surface the wizards and the job tracker depend on
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from .job_channel import JobChannel
from .models import Device, FlashRequest, JobHandle, StoredImage


class ProvisioningService(ABC):
    """Remote service that lists resources and runs build and flash jobs

    Implementations raise ServiceError (or a subclass) on any failure.
    """

    @abstractmethod
    def health(self) -> Dict[str, Any]:
        """Return the service health record"""

    @abstractmethod
    def list_stored_images(self) -> List[StoredImage]:
        """Images kept in the service's image store, newest first"""

    @abstractmethod
    def list_devices(self) -> List[Device]:
        """Removable devices attached to the service host"""

    @abstractmethod
    def list_network_names(self) -> List[str]:
        """Wi-Fi network names known to the service host"""

    @abstractmethod
    def submit_flash(self, request: FlashRequest) -> JobHandle:
        """Start writing an image onto a device"""

    @abstractmethod
    def submit_build(self, request: Dict[str, Any]) -> JobHandle:
        """Start building a customized image"""

    @abstractmethod
    def upload_image(self, file_path: str) -> str:
        """Upload a local image file, returning its path on the service host"""

    @abstractmethod
    def list_jobs(self) -> List[JobHandle]:
        """All jobs the service knows about"""

    @abstractmethod
    def get_job(self, job_id: str) -> JobHandle:
        """Look up one job"""

    @abstractmethod
    def open_job_channel(self, job_id: str) -> JobChannel:
        """Subscribe to the log stream of a job"""
