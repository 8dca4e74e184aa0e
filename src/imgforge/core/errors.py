"""
ImgForge error types
"""

from typing import Optional


class ImgForgeError(Exception):
    """Base class for all ImgForge errors"""


class ServiceError(ImgForgeError):
    """The provisioning service answered with a non-success response"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ServiceUnavailableError(ServiceError):
    """The provisioning service could not be reached"""


class ChannelError(ImgForgeError):
    """The job channel could not be opened or failed mid-stream"""
