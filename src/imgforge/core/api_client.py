"""
ImgForge API Client
HTTP implementation of the provisioning service interface
"""

import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from .config import Config
from .errors import ServiceError, ServiceUnavailableError
from .job_channel import JobChannel, WebSocketJobChannel
from .models import Device, FlashRequest, JobHandle, StoredImage
from .service import ProvisioningService


T = TypeVar("T")


class ImgForgeClient(ProvisioningService):
    """Talks to the ImgForge backend over its REST and WebSocket API"""

    def __init__(self, config: Optional[Config] = None, session: Optional[requests.Session] = None):
        self.logger = logging.getLogger(__name__)
        self.config = config or Config()
        self.base_url = self.config.server_url
        self.ws_url = self.config.ws_url
        self.timeout = float(self.config.get("request_timeout", 10.0))
        self.upload_timeout = float(self.config.get("upload_timeout", 300.0))
        self.channel_open_timeout = float(self.config.get("channel_open_timeout", 10.0))

        self.session = session or requests.Session()
        self.session.headers.update({
            'User-Agent': f"ImgForge/{self.config.get('version', '1.0.0')}"
        })

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, timeout: Optional[float] = None, **kwargs) -> Any:
        """Perform a request and decode its JSON body

        Raises ServiceUnavailableError for transport failures and
        ServiceError for non-success responses or undecodable bodies.
        """
        url = self._url(path)
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
        except requests.RequestException as e:
            self.logger.warning(f"{method} {url} failed: {e}")
            raise ServiceUnavailableError(f"Cannot reach ImgForge service at {self.base_url}: {e}") from e

        if not response.ok:
            message = self._error_message(response)
            self.logger.warning(f"{method} {url} returned {response.status_code}: {message}")
            raise ServiceError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise ServiceError(f"Invalid response from {url}: {e}", status_code=response.status_code) from e

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        """Extract the service's error text, falling back to the HTTP reason"""
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return response.reason or f"HTTP {response.status_code}"

    def health(self) -> Dict[str, Any]:
        return self._request("GET", "/api/health")

    def list_stored_images(self) -> List[StoredImage]:
        data = self._request("GET", "/api/images")
        if not isinstance(data, dict):
            raise ServiceError("Image listing is not an object")
        return self._decode_list(data.get("images"), StoredImage.from_dict, "image")

    def list_devices(self) -> List[Device]:
        data = self._request("GET", "/api/devices")
        return self._decode_list(data, Device.from_dict, "device")

    def list_network_names(self) -> List[str]:
        data = self._request("GET", "/api/wifi-devices")
        return self._decode_list(data, str, "network name")

    def submit_flash(self, request: FlashRequest) -> JobHandle:
        self.logger.info(f"Submitting flash of {request.image_path} to {request.device}")
        data = self._request("POST", "/api/flash", json=request.to_dict())
        return self._job_handle(data)

    def submit_build(self, request: Dict[str, Any]) -> JobHandle:
        self.logger.info(f"Submitting image build for host {request.get('hostname')}")
        data = self._request("POST", "/api/build", json=request)
        return self._job_handle(data)

    def upload_image(self, file_path: str) -> str:
        path = Path(file_path)
        self.logger.info(f"Uploading {path.name}")
        try:
            with open(path, "rb") as handle:
                data = self._request(
                    "POST", "/api/upload",
                    timeout=self.upload_timeout,
                    files={"file": (path.name, handle, "application/octet-stream")},
                )
        except OSError as e:
            raise ServiceError(f"Cannot read {path}: {e}") from e
        if not isinstance(data, dict) or not data.get("path"):
            raise ServiceError("Upload response did not include a path")
        return str(data["path"])

    def list_jobs(self) -> List[JobHandle]:
        data = self._request("GET", "/api/jobs")
        return self._decode_list(data, JobHandle.from_dict, "job")

    def get_job(self, job_id: str) -> JobHandle:
        return self._job_handle(self._request("GET", f"/api/jobs/{job_id}"))

    def open_job_channel(self, job_id: str) -> JobChannel:
        return WebSocketJobChannel(job_id, self.ws_url, open_timeout=self.channel_open_timeout)

    @staticmethod
    def _decode_list(data: Any, decode: Callable[[Any], T], what: str) -> List[T]:
        """Decode a JSON array entry by entry; a malformed body is a ServiceError"""
        if data is None:
            return []
        if not isinstance(data, list):
            raise ServiceError(f"Expected a list of {what} records, got {type(data).__name__}")
        try:
            return [decode(entry) for entry in data]
        except (TypeError, ValueError, AttributeError, KeyError) as e:
            raise ServiceError(f"Malformed {what} record: {e}") from e

    @staticmethod
    def _job_handle(data: Any) -> JobHandle:
        if not isinstance(data, dict) or not data.get("id"):
            raise ServiceError("Service did not return a job id")
        return JobHandle.from_dict(data)
