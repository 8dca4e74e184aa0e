"""
ImgForge Wizard Controller Tests
"""

import pytest

from imgforge.core.step_utils import PASS, is_filled, require_filled
from imgforge.core.wizard import BaseStep, WizardController


class NameStep(BaseStep):
    title = "Name"

    def __init__(self):
        super().__init__()
        self.entered = 0
        self.exited = 0

    def on_enter(self):
        self.entered += 1

    def on_exit(self):
        self.exited += 1

    def validate(self):
        return require_filled(self.field("name"), "Name is required")


class OpenStep(BaseStep):
    title = "Anything"

    def validate(self):
        return PASS


@pytest.fixture
def wizard(service):
    controller = WizardController([NameStep(), OpenStep(), OpenStep()], service, {"name": ""})
    controller.open()
    return controller


class TestStepUtils:
    """Validation helpers"""

    @pytest.mark.parametrize("value", ["", "   ", None, [], {}])
    def test_blank_values(self, value):
        assert not is_filled(value)

    @pytest.mark.parametrize("value", ["x", 0, False, ["a"]])
    def test_filled_values(self, value):
        assert is_filled(value)

    def test_require_filled_reason(self):
        assert require_filled(" ", "Needed") == (False, "Needed")
        assert require_filled("ok", "Needed") == (True, "")


class TestNavigation:
    """Gated forward movement and free backward movement"""

    def test_starts_on_first_step(self, wizard):
        assert wizard.current_step == 1
        assert wizard.get_step_progress() == (1, 3)

    def test_advance_blocked_by_validation(self, wizard):
        """A failing step keeps the wizard where it is and reports why"""
        failures = []
        wizard.validation_failed.connect(lambda title, reason: failures.append((title, reason)))

        assert wizard.advance() is False
        assert wizard.current_step == 1
        assert failures == [("Name", "Name is required")]

    def test_advance_after_field_filled(self, wizard):
        changes = []
        wizard.step_changed.connect(lambda old, new: changes.append((old, new)))
        wizard.set_field("name", "pi")

        assert wizard.advance() is True
        assert wizard.current_step == 2
        assert changes == [(1, 2)]

    def test_set_field_never_advances(self, wizard):
        """Editing a field only updates the session"""
        wizard.set_field("name", "pi")
        assert wizard.current_step == 1

    def test_no_advance_past_last_step(self, wizard):
        wizard.set_field("name", "pi")
        wizard.advance()
        wizard.advance()

        assert wizard.advance() is False
        assert wizard.current_step == 3
        assert wizard.can_go_next() == (False, "Already at final step")

    def test_no_retreat_before_first_step(self, wizard):
        assert wizard.retreat() is False
        assert wizard.current_step == 1

    def test_retreat_keeps_fields(self, wizard):
        """Going back never discards entered values"""
        wizard.set_field("name", "pi")
        wizard.advance()
        wizard.set_field("extra", "kept")

        assert wizard.retreat() is True
        assert wizard.current_step == 1
        assert wizard.get_field("name") == "pi"
        assert wizard.get_field("extra") == "kept"

    def test_enter_and_exit_hooks(self, wizard):
        step = wizard.step_implementation(1)
        wizard.set_field("name", "pi")
        wizard.advance()
        wizard.retreat()

        assert step.entered == 2
        assert step.exited == 1

    def test_open_runs_once(self, wizard):
        wizard.open()
        assert wizard.step_implementation(1).entered == 1

    def test_select_and_advance(self, wizard):
        assert wizard.select_and_advance("name", "pi") is True
        assert wizard.current_step == 2

    def test_select_and_advance_stays_when_invalid(self, wizard):
        assert wizard.select_and_advance("name", "") is False
        assert wizard.current_step == 1

    def test_step_out_of_range(self, wizard):
        with pytest.raises(IndexError):
            wizard.step_implementation(4)
        assert wizard.check_step(0) == (False, "No step 0")

    def test_wizard_needs_steps(self, service):
        with pytest.raises(ValueError):
            WizardController([], service)


class TestJobLock:
    """Navigation is frozen while a job runs"""

    def test_lock_blocks_both_directions(self, wizard):
        wizard.set_field("name", "pi")
        wizard.advance()
        wizard.set_job_in_progress(True)

        assert wizard.advance() is False
        assert wizard.retreat() is False
        assert wizard.current_step == 2
        assert wizard.can_go_back() == (False, "Cannot navigate while a job is running")

    def test_release_restores_navigation(self, wizard):
        wizard.set_field("name", "pi")
        wizard.set_job_in_progress(True)
        wizard.set_job_in_progress(False)

        assert wizard.advance() is True


class TestReporting:
    """Progress and summary output"""

    def test_completion_percentage(self, wizard):
        assert wizard.get_completion_percentage() == 0.0
        wizard.set_field("name", "pi")
        wizard.advance()
        assert wizard.get_completion_percentage() == 50.0
        wizard.advance()
        assert wizard.get_completion_percentage() == 100.0

    def test_state_summary(self, wizard):
        summary = wizard.get_state_summary()

        assert summary["current_step"] == "Name"
        assert summary["step_progress"] == "1/3"
        assert summary["completion_percentage"] == "0.0%"
        assert summary["job_in_progress"] is False
        assert summary["session_id"].startswith("wizard_")

    def test_step_history(self, wizard):
        wizard.set_field("name", "pi")
        wizard.advance()
        wizard.retreat()

        assert wizard.session.step_history == [1, 2]
