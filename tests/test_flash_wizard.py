"""
ImgForge Flash Wizard Tests
"""

import pytest

from imgforge.core.flash_wizard import ERASE_WARNING, FlashImageWizard
from imgforge.core.job_channel import ChannelEvent
from imgforge.core.models import FlashImageSource, FlashRequest, JobStatus

from conftest import DEVICE, STORED_IMAGE, messages


@pytest.fixture
def wizard(service):
    controller = FlashImageWizard(service)
    controller.open()
    return controller


def ready_to_flash(wizard):
    """Walk the wizard to the confirm step with the stored image and device chosen"""
    wizard.choose_stored_image(STORED_IMAGE.path)
    assert wizard.advance()
    wizard.scan_devices()
    wizard.choose_device(DEVICE.path)
    assert wizard.advance()
    assert wizard.current_step == 3


class TestSelectImage:
    """Step 1 gate and image sources"""

    def test_lists_images_on_entry(self, wizard, service):
        assert service.calls["list_stored_images"] == 1
        assert wizard.stored_images() == [STORED_IMAGE]

    def test_image_required(self, wizard):
        assert wizard.advance() is False
        assert wizard.check_step() == (False, "Select an image to flash")

    def test_stored_image_selected(self, wizard):
        wizard.choose_stored_image(STORED_IMAGE.path)
        assert wizard.advance() is True
        assert wizard.image_path == STORED_IMAGE.path

    def test_upload_sub_choice_needs_upload(self, wizard):
        """Switching to upload ignores the stored selection"""
        wizard.choose_stored_image(STORED_IMAGE.path)
        wizard.set_field("image_source", FlashImageSource.UPLOAD)

        assert wizard.check_step() == (False, "Upload an image first")

    def test_upload_success(self, wizard, service, tmp_path):
        image = tmp_path / "custom.img"
        image.write_bytes(b"\0" * 16)

        server_path = wizard.upload_image(str(image))

        assert server_path == "/var/lib/imgforge/uploads/custom.img"
        assert wizard.get_field("image_source") is FlashImageSource.UPLOAD
        assert wizard.image_path == server_path
        assert wizard.last_upload_error is None
        assert wizard.can_proceed()

    def test_upload_failure(self, wizard, service, caplog):
        service.fail.add("upload_image")

        assert wizard.upload_image("/tmp/custom.img") is None
        assert wizard.last_upload_error == "upload_image failed (HTTP 500)"
        assert "Upload of custom.img failed" in caplog.text
        assert not wizard.can_proceed()

    def test_preselected_image(self, service):
        wizard = FlashImageWizard(service, preselected_image=STORED_IMAGE.path)
        wizard.open()

        assert wizard.get_field("selected_image") == STORED_IMAGE.path
        assert wizard.get_field("image_source") is FlashImageSource.STORED
        assert wizard.advance() is True

    def test_preselection_waits_for_listing(self, service):
        """Nothing is preselected until the image list has arrived"""
        service.stored_images = []
        wizard = FlashImageWizard(service, preselected_image=STORED_IMAGE.path)
        wizard.open()

        assert wizard.get_field("selected_image") == ""

    def test_preselection_applied_once(self, service):
        """Returning to step 1 keeps the operator's own choice"""
        wizard = FlashImageWizard(service, preselected_image=STORED_IMAGE.path)
        wizard.open()
        wizard.advance()
        wizard.retreat()
        wizard.choose_stored_image("/var/lib/imgforge/images/other.img")
        wizard.advance()
        wizard.retreat()

        assert wizard.get_field("selected_image") == "/var/lib/imgforge/images/other.img"


class TestSelectDevice:
    """Step 2 gate and device listing"""

    def test_devices_listed_only_on_scan(self, wizard, service):
        wizard.choose_stored_image(STORED_IMAGE.path)
        wizard.advance()
        assert service.calls["list_devices"] == 0

        assert wizard.scan_devices() == [DEVICE]
        assert wizard.devices() == [DEVICE]

    def test_device_required(self, wizard):
        wizard.choose_stored_image(STORED_IMAGE.path)
        wizard.advance()

        assert wizard.advance() is False
        assert wizard.check_step() == (False, "Select a target device")

    def test_failed_listing_does_not_block(self, wizard, service, caplog):
        """A device path can still be entered by hand"""
        service.fail.add("list_devices")
        wizard.choose_stored_image(STORED_IMAGE.path)
        wizard.advance()

        assert wizard.scan_devices() == []
        assert "Failed to load devices" in caplog.text

        wizard.choose_device("/dev/sdc")
        assert wizard.advance() is True
        assert wizard.selected_device() is None


class TestConfirmFlash:
    """Step 3 summary and the flash job"""

    def test_confirmation_summary(self, wizard):
        ready_to_flash(wizard)

        assert wizard.confirmation_summary() == {
            "image": STORED_IMAGE.path,
            "device": "/dev/sdb",
            "device_name": "SanDisk Ultra",
            "device_size": "32G",
            "warning": ERASE_WARNING,
        }

    def test_build_request(self, wizard):
        ready_to_flash(wizard)
        assert wizard.build_request() == FlashRequest(image_path=STORED_IMAGE.path, device="/dev/sdb")

    def test_flash_success(self, wizard, service):
        """The stream ends with a clean close"""
        service.channel_scripts.append(messages("writing 10%", "writing 90%") + [ChannelEvent.closed()])
        ready_to_flash(wizard)

        assert wizard.start_flash(background=False) is True
        assert wizard.job_status is JobStatus.SUCCESS
        assert wizard.job_log == ["writing 10%", "writing 90%", "✅ Flash completed successfully!"]
        assert service.flash_requests == [FlashRequest(image_path=STORED_IMAGE.path, device="/dev/sdb")]

    def test_flash_transport_error_and_retry(self, wizard, service):
        service.channel_scripts.append(messages("writing 10%") + [ChannelEvent.error("connection reset")])
        ready_to_flash(wizard)
        wizard.start_flash(background=False)

        assert wizard.job_status is JobStatus.ERROR
        assert wizard.job_log == ["writing 10%", "❌ Flash failed: connection reset"]
        assert service.calls["submit_flash"] == 1

        assert wizard.retry() is True
        assert wizard.job_log == []
        assert wizard.start_flash(background=False) is True
        assert wizard.job_status is JobStatus.SUCCESS
        assert service.calls["submit_flash"] == 2

    def test_submission_failure(self, wizard, service):
        service.fail.add("submit_flash")
        ready_to_flash(wizard)
        wizard.start_flash(background=False)

        assert wizard.job_status is JobStatus.ERROR
        assert wizard.job_log == ["❌ Error: submit_flash failed (HTTP 500)"]
        assert service.calls["open_job_channel"] == 0
        assert not wizard.job_in_progress

    def test_navigation_locked_while_flashing(self, wizard, service):
        """Back is refused for as long as the job is running"""
        observed = []

        def try_back(status):
            if status is JobStatus.FLASHING:
                observed.append((wizard.job_in_progress, wizard.retreat(), wizard.current_step))

        wizard.tracker.status_changed.connect(try_back)
        ready_to_flash(wizard)
        wizard.start_flash(background=False)

        assert observed == [(True, False, 3)]
        assert not wizard.job_in_progress
        assert wizard.retreat() is True

    def test_second_flash_refused(self, wizard, service):
        ready_to_flash(wizard)
        wizard.start_flash(background=False)

        assert wizard.start_flash(background=False) is False
        assert service.calls["submit_flash"] == 1

    def test_close_abandons_job(self, wizard, service):
        ready_to_flash(wizard)
        wizard.close()

        assert not wizard.tracker.can_start()
        assert wizard.start_flash(background=False) is False
