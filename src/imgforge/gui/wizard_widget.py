"""
ImgForge Wizard Widget
Shared frame for the wizard screens: stepper, step pages, navigation and the job log
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QStackedWidget, QPlainTextEdit, QGroupBox, QLineEdit, QCheckBox, QComboBox
)
from PyQt6.QtCore import pyqtSignal, pyqtSlot
from PyQt6.QtGui import QFont, QTextCursor

from imgforge.core.models import JobStatus
from imgforge.core.wizard import JobWizard
from imgforge.gui.stepper_header import StepperHeader
from imgforge.gui.theme import ImgForgeTheme


class JobLogView(QPlainTextEdit):
    """Read-only, append-only view of a job log"""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setReadOnly(True)
        self.setFont(QFont("Consolas", 10))
        self.setMinimumHeight(180)

    @pyqtSlot(str)
    def append_line(self, line: str):
        self.appendPlainText(line)
        self.moveCursor(QTextCursor.MoveOperation.End)


class WizardWidget(QWidget):
    """Renders a JobWizard; subclasses supply one page per step"""

    back_requested = pyqtSignal()

    action_label = "Start"

    def __init__(self, wizard: JobWizard, title: str,
                 accent: str = ImgForgeTheme.COLORS['primary'], parent=None):
        super().__init__(parent)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.wizard = wizard
        self.title = title
        self.accent = accent
        self.field_bindings: Dict[str, Tuple[QWidget, Callable[[Any], None]]] = {}

        self._setup_ui()

        self.wizard.step_changed.connect(self._on_step_changed)
        self.wizard.state_updated.connect(self._refresh_navigation)
        self.wizard.validation_failed.connect(self._on_validation_failed)
        self.wizard.catalog_updated.connect(self.on_catalog_updated)
        self.wizard.tracker.log_appended.connect(self.log_view.append_line)
        self.wizard.tracker.status_changed.connect(self._on_job_status)

        self.wizard.open()
        self._show_step(self.wizard.current_step)

    # ---------- construction ----------
    def _setup_ui(self):
        layout = QVBoxLayout(self)

        top_bar = QHBoxLayout()
        self.home_button = QPushButton("← Back to Home")
        self.home_button.setProperty("flat", True)
        self.home_button.clicked.connect(self.leave)
        top_bar.addWidget(self.home_button)
        top_bar.addStretch()
        self.counter_label = QLabel()
        self.counter_label.setProperty("role", "muted")
        top_bar.addWidget(self.counter_label)
        layout.addLayout(top_bar)

        heading = QLabel(self.title)
        heading.setProperty("role", "title")
        layout.addWidget(heading)

        self.stepper = StepperHeader(self.wizard.step_titles(), self.accent)
        layout.addWidget(self.stepper)

        self.step_title_label = QLabel()
        self.step_title_label.setProperty("role", "title")
        layout.addWidget(self.step_title_label)
        self.step_description_label = QLabel()
        self.step_description_label.setProperty("role", "muted")
        self.step_description_label.setWordWrap(True)
        layout.addWidget(self.step_description_label)

        self.pages = QStackedWidget()
        for step in range(1, self.wizard.total_steps + 1):
            self.pages.addWidget(self.build_page(step))
        layout.addWidget(self.pages, 1)

        self.message_label = QLabel()
        self.message_label.setStyleSheet(f"color: {ImgForgeTheme.COLORS['error']};")
        layout.addWidget(self.message_label)

        self.log_group = QGroupBox("Progress")
        log_layout = QVBoxLayout(self.log_group)
        self.status_label = QLabel()
        log_layout.addWidget(self.status_label)
        self.log_view = JobLogView()
        log_layout.addWidget(self.log_view)
        self.retry_button = QPushButton("Try Again")
        self.retry_button.clicked.connect(self.retry)
        self.retry_button.setVisible(False)
        log_layout.addWidget(self.retry_button)
        self.log_group.setVisible(False)
        layout.addWidget(self.log_group)

        nav = QHBoxLayout()
        self.back_button = QPushButton("Back")
        self.back_button.clicked.connect(self.wizard.retreat)
        nav.addWidget(self.back_button)
        nav.addStretch()
        self.next_button = QPushButton("Next")
        self.next_button.clicked.connect(self.wizard.advance)
        nav.addWidget(self.next_button)
        self.action_button = QPushButton(self.action_label)
        self.action_button.clicked.connect(self.start)
        nav.addWidget(self.action_button)
        layout.addLayout(nav)

    def build_page(self, step: int) -> QWidget:
        """Widget for one step"""
        raise NotImplementedError

    def sync_page(self, step: int):
        """Copy the session fields into the widgets of a step page"""

    def on_catalog_updated(self, key: str):
        """A collaborator list was reloaded"""

    # ---------- field bindings ----------
    def bind_line_edit(self, widget: QLineEdit, name: str):
        widget.textChanged.connect(lambda text: self.wizard.set_field(name, text))
        self.field_bindings[name] = (widget, lambda value: widget.setText(value or ""))

    def bind_check_box(self, widget: QCheckBox, name: str):
        widget.toggled.connect(lambda checked: self.wizard.set_field(name, checked))
        self.field_bindings[name] = (widget, lambda value: widget.setChecked(bool(value)))

    def bind_plain_text(self, widget: QPlainTextEdit, name: str):
        widget.textChanged.connect(lambda: self.wizard.set_field(name, widget.toPlainText()))
        self.field_bindings[name] = (widget, lambda value: widget.setPlainText(value or ""))

    def bind_combo_box(self, widget: QComboBox, name: str, values: Sequence[Any]):
        """Combo box whose items stand for `values`, in order"""
        values = list(values)
        widget.currentIndexChanged.connect(
            lambda index: self.wizard.set_field(name, values[index]) if index >= 0 else None
        )
        self.field_bindings[name] = (
            widget, lambda value: widget.setCurrentIndex(values.index(value) if value in values else -1)
        )

    def bind_editable_combo(self, widget: QComboBox, name: str):
        widget.currentTextChanged.connect(lambda text: self.wizard.set_field(name, text))
        self.field_bindings[name] = (widget, lambda value: widget.setCurrentText(value or ""))

    def load_fields(self, names: Optional[List[str]] = None):
        """Push session values into bound widgets without echoing them back"""
        for name, (widget, setter) in self.field_bindings.items():
            if names is not None and name not in names:
                continue
            widget.blockSignals(True)
            setter(self.wizard.get_field(name))
            widget.blockSignals(False)

    # ---------- actions ----------
    def start(self):
        self.log_view.clear()
        self.message_label.clear()
        if self.wizard.start_job():
            self.status_label.setText("Submitting...")
            self.log_group.setVisible(True)
        self._refresh_navigation()

    def retry(self):
        if self.wizard.retry_job():
            self.log_view.clear()
            self.log_group.setVisible(False)

    def leave(self):
        """Close the wizard; a running job keeps running on the service"""
        self.wizard.close()
        self.back_requested.emit()

    # ---------- state sync ----------
    def _show_step(self, step: int):
        implementation = self.wizard.step_implementation(step)
        self.pages.setCurrentIndex(step - 1)
        self.counter_label.setText(f"Step {step} of {self.wizard.total_steps}")
        self.step_title_label.setText(implementation.title)
        self.step_description_label.setText(implementation.description)
        self.stepper.set_current_step(step, failed=self.wizard.job_status is JobStatus.ERROR)
        self.message_label.clear()
        self.load_fields()
        self.sync_page(step)
        self._refresh_navigation()

    @pyqtSlot(int, int)
    def _on_step_changed(self, old_step: int, new_step: int):
        self._show_step(new_step)

    def _refresh_navigation(self, *args):
        at_last = self.wizard.current_step == self.wizard.total_steps
        idle = self.wizard.job_status is JobStatus.IDLE

        self.back_button.setEnabled(self.wizard.can_go_back()[0])
        self.back_button.setVisible(idle)
        self.next_button.setVisible(not at_last)
        self.next_button.setEnabled(self.wizard.can_go_next()[0])
        self.action_button.setVisible(at_last and idle)
        self.action_button.setEnabled(self.wizard.can_start_job()[0])

    @pyqtSlot(str, str)
    def _on_validation_failed(self, step_title: str, reason: str):
        self.message_label.setText(reason)

    @pyqtSlot(object)
    def _on_job_status(self, status: JobStatus):
        messages = {
            JobStatus.FLASHING: "Flashing...",
            JobStatus.BUILDING: "Building...",
            JobStatus.SUCCESS: f"✅ {self.wizard.job_kind.noun} completed",
            JobStatus.ERROR: f"❌ {self.wizard.job_kind.noun} failed",
        }
        self.status_label.setText(messages.get(status, ""))
        self.log_group.setVisible(status is not JobStatus.IDLE)
        self.retry_button.setVisible(status is JobStatus.ERROR)
        self.stepper.set_current_step(self.wizard.current_step, failed=status is JobStatus.ERROR)
        self._refresh_navigation()
