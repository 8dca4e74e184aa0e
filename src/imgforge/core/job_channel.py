"""
ImgForge Job Channel
Push-style log stream for a single remote job, modelled as a cancellable subscription
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK, WebSocketException
from websockets.sync.client import ClientConnection, connect

from .errors import ChannelError


class ChannelEventType(Enum):
    """Kinds of events a job channel yields"""
    MESSAGE = "message"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class ChannelEvent:
    """One event read from a job channel

    A channel yields any number of MESSAGE events followed by exactly one
    CLOSED or ERROR event, unless it is closed locally first. A channel that
    cannot be opened raises ChannelError instead.
    """
    type: ChannelEventType
    data: str = ""

    @classmethod
    def message(cls, text: str) -> 'ChannelEvent':
        return cls(ChannelEventType.MESSAGE, text)

    @classmethod
    def closed(cls) -> 'ChannelEvent':
        return cls(ChannelEventType.CLOSED)

    @classmethod
    def error(cls, detail: str) -> 'ChannelEvent':
        return cls(ChannelEventType.ERROR, detail)

    @property
    def is_terminal(self) -> bool:
        return self.type is not ChannelEventType.MESSAGE


class JobChannel(ABC):
    """Subscription to the log stream of one job"""

    def __init__(self, job_id: str):
        self.job_id = job_id
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._cancelled = False

    @abstractmethod
    def events(self) -> Iterator[ChannelEvent]:
        """Yield channel events in arrival order"""

    def __iter__(self) -> Iterator[ChannelEvent]:
        return self.events()

    @property
    def cancelled(self) -> bool:
        """True once the subscriber closed the channel itself"""
        return self._cancelled

    def close(self) -> None:
        """Unsubscribe; safe to call more than once and from another thread"""
        self._cancelled = True


class WebSocketJobChannel(JobChannel):
    """Job channel backed by the service's WebSocket endpoint"""

    def __init__(self, job_id: str, ws_url: str, open_timeout: Optional[float] = 10.0):
        super().__init__(job_id)
        self.url = f"{ws_url.rstrip('/')}/api/ws/{job_id}"
        self.open_timeout = open_timeout
        self._connection: Optional[ClientConnection] = None
        self._lock = threading.Lock()

    def events(self) -> Iterator[ChannelEvent]:
        try:
            connection = connect(self.url, open_timeout=self.open_timeout)
        except (OSError, TimeoutError, WebSocketException) as e:
            raise ChannelError(f"Could not open job channel: {e}") from e

        with self._lock:
            if self._cancelled:
                connection.close()
                return
            self._connection = connection
        self.logger.info(f"Job channel opened for job {self.job_id}")

        try:
            while True:
                try:
                    message = connection.recv()
                except ConnectionClosedOK:
                    if not self._cancelled:
                        self.logger.info(f"Job channel for {self.job_id} closed by the service")
                        yield ChannelEvent.closed()
                    return
                except ConnectionClosedError as e:
                    if not self._cancelled:
                        self.logger.warning(f"Job channel for {self.job_id} closed abnormally: {e}")
                        yield ChannelEvent.error(str(e))
                    return
                except (OSError, WebSocketException) as e:
                    if not self._cancelled:
                        self.logger.warning(f"Job channel for {self.job_id} failed: {e}")
                        yield ChannelEvent.error(str(e))
                    return

                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                yield ChannelEvent.message(message)
        finally:
            connection.close()

    def close(self) -> None:
        with self._lock:
            super().close()
            connection = self._connection
        if connection is not None:
            connection.close()
            self.logger.debug(f"Job channel for {self.job_id} closed locally")
