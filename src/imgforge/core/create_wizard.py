"""
ImgForge Image Creation Wizard
Six-step flow that collects an image configuration and submits it as a build job
"""

from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar, Union

from .models import BoardType, BuildMode, ImageSource, JobKind, PresetImage, StoredImage
from .service import ProvisioningService
from .step_utils import PASS, StepCheck, is_filled, require_filled
from .wizard import BaseStep, JobWizard


E = TypeVar("E")

EXTRA_SIZE_CHOICES = ("+1G", "+2G", "+4G", "+8G")

CATALOG_STORED_IMAGES = "stored_images"
CATALOG_NETWORK_NAMES = "network_names"


def default_fields() -> Dict[str, Any]:
    """Field values a new creation session starts from"""
    return {
        "board_type": BoardType.RASPBERRY_PI,
        "image_source": ImageSource.PRESET,
        "preset_image": PresetImage.RASPBERRY_PI_LITE,
        "custom_image_url": "",
        "stored_image": "",
        "hostname": "my-device",
        "change_username": False,
        "new_username": "",
        "set_root_password": False,
        "root_password": "",
        "enable_ssh": True,
        "wifi_enabled": False,
        "wifi_ssid": "",
        "wifi_password": "",
        "expand_image": True,
        "extra_size": "+2G",
        "mode": BuildMode.ARTIFACT,
        "docker_compose_enabled": False,
        "docker_compose_content": "",
        "custom_script_enabled": False,
        "custom_script_content": "",
        "inline_command_enabled": False,
        "inline_command": "",
    }


def _as_enum(enum_cls: Type[E], value: Union[E, str]) -> E:
    return value if isinstance(value, enum_cls) else enum_cls(value)


def _optional(enabled: Any, value: Any) -> Optional[str]:
    """Value of a toggled option, or None when the toggle is off or the value blank"""
    if not enabled or not is_filled(value):
        return None
    return str(value)


class BoardTypeStep(BaseStep):
    title = "Choose Board Type"
    description = "Pick the board family the image is built for"

    def validate(self) -> StepCheck:
        return PASS


class ImageSourceStep(BaseStep):
    title = "Select Image Source"
    description = "Start from a preset, a download URL or an image already in the store"

    def on_enter(self) -> None:
        self.wizard.refresh_catalog(CATALOG_STORED_IMAGES, self.wizard.service.list_stored_images,
                                    "stored images")

    def validate(self) -> StepCheck:
        source = _as_enum(ImageSource, self.field("image_source", ImageSource.PRESET))
        if source is ImageSource.CUSTOM:
            return require_filled(self.field("custom_image_url"), "Enter a custom image URL")
        if source is ImageSource.STORED:
            return require_filled(self.field("stored_image"), "Select a stored image")
        return PASS


class BasicConfigStep(BaseStep):
    title = "Basic Configuration"
    description = "Hostname, user account and SSH access"

    def validate(self) -> StepCheck:
        return require_filled(self.field("hostname"), "Hostname is required")


class NetworkStorageStep(BaseStep):
    title = "Network & Storage"
    description = "Headless Wi-Fi setup and extra space for packages"

    def on_enter(self) -> None:
        self.wizard.refresh_catalog(CATALOG_NETWORK_NAMES, self.wizard.service.list_network_names,
                                    "Wi-Fi networks")

    def validate(self) -> StepCheck:
        return PASS


class AdvancedOptionsStep(BaseStep):
    title = "Advanced Options"
    description = "Build mode, Docker Compose stack and first-boot scripts"

    def validate(self) -> StepCheck:
        return PASS


class ReviewBuildStep(BaseStep):
    title = "Review & Build"
    description = "Check the configuration and start the build"

    def validate(self) -> StepCheck:
        # Nothing follows this step; the build itself is gated by can_start_job()
        return PASS


class CreateImageWizard(JobWizard):
    """
    Image creation wizard

    Steps: board type, image source, basic configuration, network & storage,
    advanced options, review & build. The final step submits the assembled
    image configuration as a build job.
    """

    job_kind = JobKind.BUILD

    def __init__(self, service: ProvisioningService, parent=None):
        steps = [
            BoardTypeStep(),
            ImageSourceStep(),
            BasicConfigStep(),
            NetworkStorageStep(),
            AdvancedOptionsStep(),
            ReviewBuildStep(),
        ]
        super().__init__(steps, service, default_fields(), parent)

    # ---------- operator choices ----------
    def choose_board(self, board: Union[BoardType, str]) -> bool:
        """Select a board family; moves on to the image source step"""
        return self.select_and_advance("board_type", _as_enum(BoardType, board))

    def choose_image_source(self, source: Union[ImageSource, str], advance: bool = False) -> bool:
        self.set_field("image_source", _as_enum(ImageSource, source))
        if advance:
            return self.advance()
        return True

    def stored_images(self) -> List[StoredImage]:
        return self.catalog(CATALOG_STORED_IMAGES)

    def network_names(self) -> List[str]:
        return self.catalog(CATALOG_NETWORK_NAMES)

    def refresh_network_names(self) -> List[str]:
        return self.refresh_catalog(CATALOG_NETWORK_NAMES, self.service.list_network_names,
                                    "Wi-Fi networks")

    # ---------- request assembly ----------
    def base_image(self) -> Tuple[Optional[str], Optional[PresetImage]]:
        """(base_image_url, preset_image) for the chosen source"""
        source = _as_enum(ImageSource, self.get_field("image_source"))
        if source is ImageSource.CUSTOM:
            return self.get_field("custom_image_url").strip(), None
        if source is ImageSource.STORED:
            return self.get_field("stored_image"), None
        return None, _as_enum(PresetImage, self.get_field("preset_image"))

    def build_request(self) -> Dict[str, Any]:
        """The image configuration payload the build service accepts"""
        f = self.fields
        base_image_url, preset = self.base_image()
        wifi = f.get("wifi_enabled")

        return {
            "hostname": f["hostname"].strip(),
            "change_username": bool(f.get("change_username")),
            "new_username": _optional(f.get("change_username"), f.get("new_username")),
            "set_root_password": bool(f.get("set_root_password")),
            "root_password": _optional(f.get("set_root_password"), f.get("root_password")),
            "enable_ssh": bool(f.get("enable_ssh")),
            "wifi_ssid": _optional(wifi, f.get("wifi_ssid")),
            "wifi_password": _optional(wifi, f.get("wifi_password")),
            "board_type": _as_enum(BoardType, f["board_type"]).value,
            "mode": _as_enum(BuildMode, f["mode"]).value,
            "expand_image": bool(f.get("expand_image")),
            "extra_size": _optional(f.get("expand_image"), f.get("extra_size")),
            "base_image_url": base_image_url,
            "preset_image": preset.value if preset else None,
            "docker_compose_content": _optional(f.get("docker_compose_enabled"),
                                                f.get("docker_compose_content")),
            "custom_script_content": _optional(f.get("custom_script_enabled"),
                                               f.get("custom_script_content")),
            "inline_command": _optional(f.get("inline_command_enabled"), f.get("inline_command")),
        }

    def review_summary(self) -> List[Tuple[str, str]]:
        """Label/value rows shown on the review step"""
        f = self.fields
        base_image_url, preset = self.base_image()
        rows = [
            ("Board", _as_enum(BoardType, f["board_type"]).label),
            ("Base image", preset.label if preset else (base_image_url or "")),
            ("Hostname", f.get("hostname", "")),
            ("SSH", "enabled" if f.get("enable_ssh") else "disabled"),
        ]
        if f.get("change_username"):
            rows.append(("Username", f.get("new_username", "")))
        if f.get("set_root_password"):
            rows.append(("Root password", "set"))
        if f.get("wifi_enabled"):
            rows.append(("Wi-Fi", f.get("wifi_ssid", "")))
        rows.append(("Extra space", f.get("extra_size", "") if f.get("expand_image") else "none"))
        rows.append(("Output", _as_enum(BuildMode, f["mode"]).value))
        if f.get("docker_compose_enabled"):
            rows.append(("Docker Compose", "included"))
        if f.get("custom_script_enabled"):
            rows.append(("Custom script", "included"))
        if f.get("inline_command_enabled"):
            rows.append(("Inline command", f.get("inline_command", "")))
        return rows

    def start_build(self, background: bool = True) -> bool:
        return self.start_job(background)
