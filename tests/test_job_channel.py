"""
ImgForge WebSocket Job Channel Tests
"""

from unittest.mock import Mock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from imgforge.core.errors import ChannelError
from imgforge.core.job_channel import ChannelEvent, WebSocketJobChannel
from imgforge.core.job_tracker import JobLifecycleTracker
from imgforge.core.models import FlashRequest, JobStatus


@pytest.fixture
def connection():
    return Mock()


@pytest.fixture
def connect(connection):
    with patch("imgforge.core.job_channel.connect", return_value=connection) as mock_connect:
        yield mock_connect


def make_channel():
    return WebSocketJobChannel("job-1", "ws://localhost:3001/", open_timeout=5.0)


def make_channel_for(job_id):
    return WebSocketJobChannel(job_id, "ws://localhost:3001", open_timeout=5.0)


class TestChannelEvents:
    """Translation of socket activity into channel events"""

    def test_messages_then_clean_close(self, connect, connection):
        connection.recv.side_effect = ["writing 10%", b"writing 90%", ConnectionClosedOK(None, None)]

        events = list(make_channel())

        assert events == [
            ChannelEvent.message("writing 10%"),
            ChannelEvent.message("writing 90%"),
            ChannelEvent.closed(),
        ]
        connect.assert_called_once_with("ws://localhost:3001/api/ws/job-1", open_timeout=5.0)
        connection.close.assert_called()

    def test_abnormal_close_is_error(self, connect, connection):
        closed = ConnectionClosedError(None, None)
        connection.recv.side_effect = ["writing 10%", closed]

        events = list(make_channel())

        assert events[0] == ChannelEvent.message("writing 10%")
        assert events[1] == ChannelEvent.error(str(closed))
        assert len(events) == 2

    def test_transport_error_is_error(self, connect, connection):
        connection.recv.side_effect = [OSError("connection reset")]

        assert list(make_channel()) == [ChannelEvent.error("connection reset")]

    def test_connect_failure(self, connect):
        """A channel that cannot be opened raises instead of yielding"""
        connect.side_effect = OSError("refused")

        with pytest.raises(ChannelError, match="Could not open job channel: refused"):
            list(make_channel())

    def test_connect_failure_fails_the_job(self, connect, service):
        connect.side_effect = OSError("refused")
        service.open_job_channel = make_channel_for
        tracker = JobLifecycleTracker(service)

        assert tracker.run(FlashRequest(image_path="/images/a.img", device="/dev/sdb")) is JobStatus.ERROR
        assert tracker.log == ["❌ Flash failed: Could not open job channel: refused"]
        assert not tracker.has_open_channel

    def test_messages_are_not_terminal(self):
        assert not ChannelEvent.message("x").is_terminal
        assert ChannelEvent.closed().is_terminal
        assert ChannelEvent.error("x").is_terminal


class TestLocalClose:
    """Closing from the subscriber side"""

    def test_close_before_reading(self, connect, connection):
        channel = make_channel()
        channel.close()

        assert list(channel) == []
        assert channel.cancelled
        connection.close.assert_called()

    def test_close_while_reading_suppresses_terminal_event(self, connect, connection):
        """A local close ends the stream without a closed or error event"""
        channel = make_channel()

        def recv():
            if not channel.cancelled:
                channel.close()
                return "writing 10%"
            raise ConnectionClosedOK(None, None)

        connection.recv.side_effect = recv

        assert list(channel) == [ChannelEvent.message("writing 10%")]

    def test_close_is_idempotent(self, connect, connection):
        channel = make_channel()
        connection.recv.side_effect = [ConnectionClosedOK(None, None)]
        list(channel)

        channel.close()
        channel.close()
        assert channel.cancelled
