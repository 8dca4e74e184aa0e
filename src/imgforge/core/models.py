"""
ImgForge Core Data Models
Shared data classes and enums used by the wizards, the job tracker and the service client
Separated to prevent circular imports between modules
"""

from enum import Enum
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field


class BoardType(Enum):
    """Target board families supported by the image builder"""
    RASPBERRY_PI = "raspberrypi"
    RADXA = "radxa"
    JETSON = "jetson"

    @property
    def label(self) -> str:
        labels = {
            BoardType.RASPBERRY_PI: "Raspberry Pi / Generic",
            BoardType.RADXA: "Radxa Boards",
            BoardType.JETSON: "NVIDIA Jetson",
        }
        return labels[self]

    @property
    def description(self) -> str:
        descriptions = {
            BoardType.RASPBERRY_PI: "For Raspberry Pi and .img-based boards",
            BoardType.RADXA: "Radxa boards requiring bootloader flash",
            BoardType.JETSON: "Jetson devices via flash.sh",
        }
        return descriptions[self]


class ImageSource(Enum):
    """Where the base image for a build comes from"""
    PRESET = "preset"
    CUSTOM = "custom"
    STORED = "stored"


class PresetImage(Enum):
    """Base images the backend knows how to download by itself"""
    RASPBERRY_PI_LITE = "RaspberryPiLite"
    RADXA_DESKTOP = "RadxaDesktop"
    RADXA_SERVER = "RadxaServer"

    @property
    def label(self) -> str:
        labels = {
            PresetImage.RASPBERRY_PI_LITE: "Raspberry Pi OS Lite (64-bit)",
            PresetImage.RADXA_DESKTOP: "Radxa Zero3W Ubuntu 22.04 Desktop",
            PresetImage.RADXA_SERVER: "Radxa Zero3W Ubuntu 22.04 Server",
        }
        return labels[self]


class BuildMode(Enum):
    """Build output: write straight to a device or keep an image artifact"""
    FLASH = "flash"
    ARTIFACT = "artifact"


class FlashImageSource(Enum):
    """Sub-choice of the flash wizard's image step"""
    STORED = "stored"
    UPLOAD = "upload"


class JobKind(Enum):
    """Kind of remote job supervised by the tracker"""
    FLASH = "flash"
    BUILD = "build"

    @property
    def noun(self) -> str:
        return "Flash" if self is JobKind.FLASH else "Build"


class JobStatus(Enum):
    """Lifecycle status of a tracked job"""
    IDLE = "idle"
    FLASHING = "flashing"
    BUILDING = "building"
    SUCCESS = "success"
    ERROR = "error"

    @classmethod
    def running_for(cls, kind: JobKind) -> "JobStatus":
        """Active status used while a job of the given kind is in flight"""
        return cls.FLASHING if kind is JobKind.FLASH else cls.BUILDING

    @property
    def is_running(self) -> bool:
        return self in (JobStatus.FLASHING, JobStatus.BUILDING)

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.ERROR)


@dataclass(frozen=True)
class StoredImage:
    """Image file kept in the service's image store"""
    name: str
    path: str
    size_mb: int
    modified: Optional[int] = None  # epoch seconds

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StoredImage':
        return cls(
            name=str(data.get("name", "")),
            path=str(data.get("path", "")),
            size_mb=int(data.get("size_mb") or 0),
            modified=data.get("modified"),
        )


@dataclass(frozen=True)
class Device:
    """Removable block device reported by the service"""
    name: str
    path: str
    size: str
    removable: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Device':
        return cls(
            name=str(data.get("name", "")),
            path=str(data.get("path", "")),
            size=str(data.get("size", "")),
            removable=bool(data.get("removable", True)),
        )


@dataclass(frozen=True)
class FlashRequest:
    """Payload for a flash submission"""
    image_path: str
    device: str

    def to_dict(self) -> Dict[str, str]:
        return {"image_path": self.image_path, "device": self.device}


@dataclass(frozen=True)
class JobHandle:
    """Job record returned by the service when a job is accepted or looked up"""
    id: str
    status: str = "running"
    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JobHandle':
        return cls(
            id=str(data["id"]),
            status=str(data.get("status", "running")),
            created_at=data.get("created_at"),
        )


@dataclass
class Job:
    """One supervised remote job and its streamed log

    The log only grows; lines keep their arrival order.
    """
    kind: JobKind = JobKind.FLASH
    id: Optional[str] = None
    status: JobStatus = JobStatus.IDLE
    log: List[str] = field(default_factory=list)

    def append(self, line: str) -> None:
        self.log.append(line)
