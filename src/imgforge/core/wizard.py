"""
ImgForge Wizard System
Gated, strictly ordered step-state machine shared by the image-creation and flash wizards
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from PyQt6.QtCore import QObject, pyqtSignal

from .job_tracker import JobLifecycleTracker, JobRequest
from .models import JobKind, JobStatus
from .service import ProvisioningService
from .step_utils import StepCheck, fetch_or_empty


@dataclass
class WizardSession:
    """State of one wizard run; discarded when the wizard closes"""
    total_steps: int
    current_step: int = 1
    fields: Dict[str, Any] = field(default_factory=dict)
    catalog: Dict[str, List[Any]] = field(default_factory=dict)
    session_id: str = ""
    started_at: Optional[datetime] = None
    step_history: List[int] = field(default_factory=list)

    def __post_init__(self):
        if not self.session_id:
            self.session_id = datetime.now().strftime("wizard_%Y%m%d_%H%M%S")
        if not self.started_at:
            self.started_at = datetime.now()

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


class BaseStep(ABC):
    """Abstract base class for wizard step implementations"""

    title = "Step"
    description = ""

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.wizard: Optional['WizardController'] = None

    def bind(self, wizard: 'WizardController') -> None:
        """Bind this step to the wizard that owns it"""
        self.wizard = wizard
        self.logger.debug(f"Step '{self.title}' bound to wizard")

    @property
    def session(self) -> WizardSession:
        return self.wizard.session

    def field(self, name: str, default: Any = None) -> Any:
        return self.wizard.session.get(name, default)

    @abstractmethod
    def validate(self) -> StepCheck:
        """
        Validate if this step can proceed to the next step

        Must only read the session fields.

        Returns:
            Tuple[bool, str]: (is_valid, error_message)
        """

    def on_enter(self) -> None:
        """Called when entering this step"""

    def on_exit(self) -> None:
        """Called when leaving this step"""


class WizardController(QObject):
    """
    Finite state machine controller for a linear wizard

    advance() moves forward only when the current step validates; retreat()
    moves back and keeps every entered value. Neither ever raises.
    """

    step_changed = pyqtSignal(int, int)  # old_step, new_step
    state_updated = pyqtSignal(object)  # WizardSession
    validation_failed = pyqtSignal(str, str)  # step_title, reason
    catalog_updated = pyqtSignal(str)  # catalog key

    def __init__(self, steps: List[BaseStep], service: ProvisioningService,
                 defaults: Optional[Dict[str, Any]] = None, parent=None):
        super().__init__(parent)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        if not steps:
            raise ValueError("A wizard needs at least one step")

        self.service = service
        self.steps = list(steps)
        self.session = WizardSession(total_steps=len(self.steps), fields=dict(defaults or {}))
        self._job_in_progress = False
        self._opened = False
        self._closed = False

        for step in self.steps:
            step.bind(self)

        self.logger.info(f"Wizard initialized with session ID: {self.session.session_id}")

    # ---------- lifecycle ----------
    def open(self) -> None:
        """Enter the first step, running its entry refreshes"""
        if self._opened:
            return
        self._opened = True
        self.current_step_implementation().on_enter()
        self.state_updated.emit(self.session)

    def close(self) -> None:
        """Leave the wizard; the session is discarded with the controller"""
        if self._closed:
            return
        self._closed = True
        self.current_step_implementation().on_exit()
        self.logger.info(f"Wizard session {self.session.session_id} closed")

    # ---------- queries ----------
    @property
    def current_step(self) -> int:
        return self.session.current_step

    @property
    def total_steps(self) -> int:
        return self.session.total_steps

    @property
    def fields(self) -> Dict[str, Any]:
        return self.session.fields

    @property
    def job_in_progress(self) -> bool:
        return self._job_in_progress

    def step_implementation(self, step: int) -> BaseStep:
        if not 1 <= step <= self.total_steps:
            raise IndexError(f"Step {step} is outside 1..{self.total_steps}")
        return self.steps[step - 1]

    def current_step_implementation(self) -> BaseStep:
        return self.step_implementation(self.current_step)

    def step_titles(self) -> List[str]:
        return [step.title for step in self.steps]

    def get_field(self, name: str, default: Any = None) -> Any:
        return self.session.get(name, default)

    def catalog(self, key: str) -> List[Any]:
        return list(self.session.catalog.get(key, []))

    def check_step(self, step: Optional[int] = None) -> StepCheck:
        """Run a step's validation predicate, reporting the reason when it fails"""
        step = self.current_step if step is None else step
        if not 1 <= step <= self.total_steps:
            return False, f"No step {step}"
        return self.step_implementation(step).validate()

    def can_proceed(self, step: Optional[int] = None) -> bool:
        return self.check_step(step)[0]

    def can_go_next(self) -> Tuple[bool, str]:
        """
        Check if navigation to next step is allowed

        Returns:
            Tuple[bool, str]: (can_proceed, reason_if_not)
        """
        if self._job_in_progress:
            return False, "Cannot navigate while a job is running"

        if self.current_step >= self.total_steps:
            return False, "Already at final step"

        is_valid, reason = self.check_step()
        if not is_valid:
            return False, reason

        return True, ""

    def can_go_back(self) -> Tuple[bool, str]:
        """
        Check if navigation to previous step is allowed

        Returns:
            Tuple[bool, str]: (can_go_back, reason_if_not)
        """
        if self._job_in_progress:
            return False, "Cannot navigate while a job is running"

        if self.current_step <= 1:
            return False, "Already at first step"

        return True, ""

    # ---------- commands ----------
    def set_field(self, name: str, value: Any) -> None:
        """Overwrite one field; never moves the wizard"""
        self.session.fields[name] = value
        self.state_updated.emit(self.session)

    def update_fields(self, values: Dict[str, Any]) -> None:
        self.session.fields.update(values)
        self.state_updated.emit(self.session)

    def advance(self) -> bool:
        """
        Navigate to the next step

        Returns:
            bool: True if navigation was successful
        """
        can_proceed, reason = self.can_go_next()
        if not can_proceed:
            self.logger.info(f"Cannot proceed from step {self.current_step}: {reason}")
            self.validation_failed.emit(self.current_step_implementation().title, reason)
            return False

        self._move_to(self.current_step + 1)
        return True

    def retreat(self) -> bool:
        """
        Navigate to the previous step

        Returns:
            bool: True if navigation was successful
        """
        can_go_back, reason = self.can_go_back()
        if not can_go_back:
            self.logger.info(f"Cannot go back from step {self.current_step}: {reason}")
            return False

        self._move_to(self.current_step - 1)
        return True

    def select_and_advance(self, name: str, value: Any) -> bool:
        """Record a choice and move on when the current step now validates"""
        self.set_field(name, value)
        if not self.can_proceed():
            return False
        return self.advance()

    def set_job_in_progress(self, in_progress: bool) -> None:
        """Lock or release navigation around a running job"""
        if in_progress == self._job_in_progress:
            return
        self._job_in_progress = in_progress
        if in_progress:
            self.logger.info("Job started - navigation restricted")
        else:
            self.logger.info("Job no longer running - navigation enabled")
        self.state_updated.emit(self.session)

    def refresh_catalog(self, key: str, fetch: Callable[[], List[Any]], what: str) -> List[Any]:
        """Reload one collaborator list into the session; failures give an empty list"""
        items = fetch_or_empty(fetch, what, self.logger)
        self.session.catalog[key] = items
        self.logger.debug(f"Loaded {len(items)} {what}")
        self.catalog_updated.emit(key)
        return list(items)

    def _move_to(self, new_step: int) -> None:
        old_step = self.current_step
        self.current_step_implementation().on_exit()

        self.session.current_step = new_step
        self.session.step_history.append(old_step)

        self.current_step_implementation().on_enter()

        self.logger.info(f"Moved from step {old_step} to step {new_step} ({self.current_step_implementation().title})")
        self.step_changed.emit(old_step, new_step)
        self.state_updated.emit(self.session)

    # ---------- reporting ----------
    def get_step_progress(self) -> Tuple[int, int]:
        """
        Get current step progress

        Returns:
            Tuple[int, int]: (current_step_number, total_steps)
        """
        return (self.current_step, self.total_steps)

    def get_completion_percentage(self) -> float:
        """Get overall wizard completion percentage"""
        if self.total_steps == 1:
            return 100.0
        return ((self.current_step - 1) / (self.total_steps - 1)) * 100

    def get_state_summary(self) -> Dict[str, Any]:
        """Get state summary for debugging and monitoring"""
        return {
            "session_id": self.session.session_id,
            "current_step": self.current_step_implementation().title,
            "step_progress": f"{self.current_step}/{self.total_steps}",
            "completion_percentage": f"{self.get_completion_percentage():.1f}%",
            "job_in_progress": self._job_in_progress,
            "steps_valid": {step.title: step.validate()[0] for step in self.steps},
            "step_history": self.session.step_history[-5:],
        }


class JobWizard(WizardController):
    """Wizard whose final step submits a job and follows it to completion"""

    job_kind = JobKind.FLASH

    def __init__(self, steps: List[BaseStep], service: ProvisioningService,
                 defaults: Optional[Dict[str, Any]] = None, parent=None):
        super().__init__(steps, service, defaults, parent)
        self.tracker = JobLifecycleTracker(service, self.job_kind)
        self.tracker.status_changed.connect(self._on_job_status)

    @property
    def job_status(self) -> JobStatus:
        return self.tracker.status

    @property
    def job_log(self) -> List[str]:
        return self.tracker.log

    def build_request(self) -> JobRequest:
        """Assemble the request submitted on the final step"""
        raise NotImplementedError

    def can_start_job(self) -> Tuple[bool, str]:
        if self.current_step != self.total_steps:
            return False, "Jobs start from the final step"
        for step in range(1, self.total_steps):
            is_valid, reason = self.check_step(step)
            if not is_valid:
                return False, reason
        if not self.tracker.can_start():
            return False, f"A {self.job_kind.value} job is already {self.job_status.value}"
        return True, ""

    def start_job(self, background: bool = True) -> bool:
        """Submit the assembled request; background runs it on a worker thread"""
        can_start, reason = self.can_start_job()
        if not can_start:
            self.logger.warning(f"Cannot start {self.job_kind.value}: {reason}")
            self.validation_failed.emit(self.current_step_implementation().title, reason)
            return False

        request = self.build_request()
        self.set_job_in_progress(True)
        if background:
            started = self.tracker.start(request)
            if not started:
                self.set_job_in_progress(False)
            return started

        self.tracker.run(request)
        return True

    def retry_job(self) -> bool:
        """Explicit operator retry after a failed job"""
        return self.tracker.retry()

    def close(self) -> None:
        self.tracker.abandon()
        super().close()

    def _on_job_status(self, status: JobStatus) -> None:
        self.set_job_in_progress(status.is_running)
