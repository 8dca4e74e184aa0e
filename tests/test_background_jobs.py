"""
ImgForge Background Job Tests
Jobs started on a JobWorker thread, with results delivered through the Qt event loop
"""

import pytest
from PyQt6.QtCore import QCoreApplication

from imgforge.core.flash_wizard import FlashImageWizard
from imgforge.core.job_channel import ChannelEvent
from imgforge.core.job_tracker import JobLifecycleTracker
from imgforge.core.models import FlashRequest, JobStatus

from conftest import DEVICE, STORED_IMAGE, messages


@pytest.fixture(scope="module")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


def finish(tracker):
    """Wait for the worker thread, then deliver its queued signals"""
    assert tracker.wait(5000)
    QCoreApplication.processEvents()


@pytest.fixture
def wizard(qapp, service):
    controller = FlashImageWizard(service)
    controller.open()
    controller.choose_stored_image(STORED_IMAGE.path)
    controller.advance()
    controller.choose_device(DEVICE.path)
    controller.advance()
    yield controller
    controller.close()
    controller.tracker.wait(5000)


class TestWorkerThread:
    """JobLifecycleTracker.start() runs the job off the calling thread"""

    def test_status_and_log_order(self, qapp, service):
        service.channel_scripts.append(messages("writing 10%", "writing 90%") + [ChannelEvent.closed()])
        tracker = JobLifecycleTracker(service)
        statuses, lines = [], []
        tracker.status_changed.connect(statuses.append)
        tracker.log_appended.connect(lines.append)

        assert tracker.start(FlashRequest(image_path=STORED_IMAGE.path, device=DEVICE.path)) is True
        finish(tracker)

        assert tracker.status is JobStatus.SUCCESS
        assert statuses == [JobStatus.FLASHING, JobStatus.SUCCESS]
        assert lines == ["writing 10%", "writing 90%", "✅ Flash completed successfully!"]
        assert tracker.log == lines

    def test_second_start_refused(self, qapp, service):
        tracker = JobLifecycleTracker(service)
        request = FlashRequest(image_path=STORED_IMAGE.path, device=DEVICE.path)

        assert tracker.start(request) is True
        assert tracker.start(request) is False
        finish(tracker)
        assert service.calls["submit_flash"] == 1

    def test_retry_waits_for_worker(self, qapp, service):
        """After retry the previous worker has finished before a new one starts"""
        service.channel_scripts.append([ChannelEvent.error("connection reset")])
        tracker = JobLifecycleTracker(service)
        request = FlashRequest(image_path=STORED_IMAGE.path, device=DEVICE.path)
        tracker.start(request)
        finish(tracker)
        first_worker = tracker._worker

        assert tracker.retry() is True
        assert first_worker.isFinished()

        assert tracker.start(request) is True
        finish(tracker)
        assert tracker.status is JobStatus.SUCCESS
        assert tracker._worker is not first_worker


class TestWizardBackgroundJob:
    """JobWizard.start_job(background=True), as the desktop interface runs it"""

    def test_success_unlocks_navigation(self, wizard, service):
        service.channel_scripts.append(messages("writing 10%", "writing 90%") + [ChannelEvent.closed()])

        assert wizard.start_flash() is True
        assert wizard.job_in_progress
        finish(wizard.tracker)

        assert wizard.job_status is JobStatus.SUCCESS
        assert wizard.job_log == ["writing 10%", "writing 90%", "✅ Flash completed successfully!"]
        assert not wizard.job_in_progress
        assert wizard.retreat() is True

    def test_error_unlocks_navigation(self, wizard, service):
        service.channel_scripts.append(messages("writing 10%") + [ChannelEvent.error("connection reset")])

        wizard.start_flash()
        finish(wizard.tracker)

        assert wizard.job_status is JobStatus.ERROR
        assert wizard.job_log == ["writing 10%", "❌ Flash failed: connection reset"]
        assert not wizard.job_in_progress
        assert wizard.can_go_back() == (True, "")

    def test_silent_drop_unlocks_navigation(self, wizard, service):
        """A stream that stops without a close signal still ends the job"""
        service.channel_scripts.append(messages("writing 10%"))

        wizard.start_flash()
        finish(wizard.tracker)

        assert wizard.job_status is JobStatus.ERROR
        assert wizard.job_log[-1] == "❌ Flash failed: channel ended without a close signal"
        assert not wizard.job_in_progress

    def test_retry_then_background_success(self, wizard, service):
        service.channel_scripts.append([ChannelEvent.error("connection reset")])
        wizard.start_flash()
        finish(wizard.tracker)

        assert wizard.retry() is True
        QCoreApplication.processEvents()
        assert wizard.start_flash() is True
        finish(wizard.tracker)

        assert wizard.job_status is JobStatus.SUCCESS
        assert service.calls["submit_flash"] == 2
        assert not wizard.job_in_progress
