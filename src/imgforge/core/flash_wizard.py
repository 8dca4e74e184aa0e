"""
ImgForge Flash Wizard
Three-step flow that writes an image onto a removable device
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import ImgForgeError
from .models import Device, FlashImageSource, FlashRequest, JobKind, StoredImage
from .service import ProvisioningService
from .step_utils import PASS, StepCheck, require_filled
from .wizard import BaseStep, JobWizard


CATALOG_STORED_IMAGES = "stored_images"
CATALOG_DEVICES = "devices"

ERASE_WARNING = "All data on the selected device will be permanently erased."


def _image_source(value: Union[FlashImageSource, str]) -> FlashImageSource:
    return value if isinstance(value, FlashImageSource) else FlashImageSource(value)


class SelectImageStep(BaseStep):
    title = "Select Image"
    description = "Choose a stored image or upload one"

    def __init__(self, preselected_image: Optional[str] = None):
        super().__init__()
        self.preselected_image = preselected_image
        self._preselection_applied = False

    def on_enter(self) -> None:
        images = self.wizard.refresh_catalog(CATALOG_STORED_IMAGES,
                                             self.wizard.service.list_stored_images,
                                             "stored images")
        # A preselection is applied once, after the first non-empty listing
        if self.preselected_image and images and not self._preselection_applied:
            self._preselection_applied = True
            self.wizard.update_fields({
                "image_source": FlashImageSource.STORED,
                "selected_image": self.preselected_image,
            })
            self.logger.info(f"Preselected image {self.preselected_image}")

    def validate(self) -> StepCheck:
        source = _image_source(self.field("image_source", FlashImageSource.STORED))
        if source is FlashImageSource.UPLOAD:
            return require_filled(self.field("uploaded_image_path"), "Upload an image first")
        return require_filled(self.field("selected_image"), "Select an image to flash")


class SelectDeviceStep(BaseStep):
    title = "Select Target Device"
    description = "Pick the removable device to write to"

    def validate(self) -> StepCheck:
        return require_filled(self.field("device"), "Select a target device")


class ConfirmFlashStep(BaseStep):
    title = "Confirm & Flash"
    description = ERASE_WARNING

    def validate(self) -> StepCheck:
        return PASS


class FlashImageWizard(JobWizard):
    """
    Device flash wizard

    Steps: select image, select target device, confirm & flash. Devices are
    listed only when scan_devices() is called.
    """

    job_kind = JobKind.FLASH

    def __init__(self, service: ProvisioningService, preselected_image: Optional[str] = None,
                 parent=None):
        defaults = {
            "image_source": FlashImageSource.STORED,
            "selected_image": "",
            "uploaded_image_path": "",
            "device": "",
        }
        steps = [SelectImageStep(preselected_image), SelectDeviceStep(), ConfirmFlashStep()]
        super().__init__(steps, service, defaults, parent)
        self.preselected_image = preselected_image
        self.last_upload_error: Optional[str] = None

    @property
    def image_path(self) -> str:
        """Path of the image that will be flashed, from the active sub-choice"""
        source = _image_source(self.get_field("image_source"))
        if source is FlashImageSource.UPLOAD:
            return self.get_field("uploaded_image_path", "")
        return self.get_field("selected_image", "")

    def stored_images(self) -> List[StoredImage]:
        return self.catalog(CATALOG_STORED_IMAGES)

    def devices(self) -> List[Device]:
        return self.catalog(CATALOG_DEVICES)

    def selected_device(self) -> Optional[Device]:
        device_path = self.get_field("device")
        for device in self.devices():
            if device.path == device_path:
                return device
        return None

    # ---------- operator choices ----------
    def choose_stored_image(self, image_path: str) -> None:
        self.update_fields({"image_source": FlashImageSource.STORED, "selected_image": image_path})

    def choose_device(self, device_path: str) -> None:
        self.set_field("device", device_path)

    def scan_devices(self) -> List[Device]:
        """Ask the service for attached removable devices"""
        return self.refresh_catalog(CATALOG_DEVICES, self.service.list_devices, "devices")

    def upload_image(self, local_path: str) -> Optional[str]:
        """
        Upload a local image and select it

        Returns:
            The path on the service host, or None when the upload failed
            (the reason is kept in last_upload_error).
        """
        self.last_upload_error = None
        try:
            server_path = self.service.upload_image(local_path)
        except ImgForgeError as e:
            self.logger.error(f"Upload of {Path(local_path).name} failed: {e}")
            self.last_upload_error = str(e)
            return None

        self.update_fields({"image_source": FlashImageSource.UPLOAD,
                            "uploaded_image_path": server_path})
        self.logger.info(f"Uploaded image stored at {server_path}")
        return server_path

    # ---------- request assembly ----------
    def build_request(self) -> FlashRequest:
        return FlashRequest(image_path=self.image_path, device=self.get_field("device"))

    def confirmation_summary(self) -> Dict[str, Any]:
        device = self.selected_device()
        return {
            "image": self.image_path,
            "device": self.get_field("device"),
            "device_name": device.name if device else "",
            "device_size": device.size if device else "",
            "warning": ERASE_WARNING,
        }

    def start_flash(self, background: bool = True) -> bool:
        return self.start_job(background)

    def retry(self) -> bool:
        return self.retry_job()
