"""
ImgForge StepperHeader Widget
Horizontal progress indicator showing completed, current and pending wizard steps
"""

import logging
from enum import Enum, auto
from typing import List

from PyQt6.QtWidgets import QWidget, QHBoxLayout
from PyQt6.QtCore import Qt, QRect
from PyQt6.QtGui import QPainter, QPen, QBrush, QColor, QFont

from imgforge.gui.theme import ImgForgeTheme


class StepState(Enum):
    """Visual states for stepper steps"""
    PENDING = auto()     # Not reached yet
    ACTIVE = auto()      # Current step
    COMPLETE = auto()    # Behind the current step
    ERROR = auto()       # Current step while its job failed


class StepIndicator(QWidget):
    """Numbered circle with a connecting line to the next step"""

    CIRCLE_SIZE = 40
    LINE_WIDTH = 4
    LINE_LENGTH = 60

    def __init__(self, step_number: int, step_name: str, accent: str, is_last: bool = False):
        super().__init__()
        self.step_number = step_number
        self.step_name = step_name
        self.accent = accent
        self.is_last = is_last
        self.state = StepState.PENDING

        width = self.CIRCLE_SIZE if is_last else self.CIRCLE_SIZE + self.LINE_LENGTH
        self.setFixedSize(width, self.CIRCLE_SIZE + 8)
        self.setToolTip(step_name)

    def set_state(self, state: StepState):
        if state != self.state:
            self.state = state
            self.update()

    def _circle_color(self) -> QColor:
        if self.state == StepState.PENDING:
            return QColor(ImgForgeTheme.COLORS['bg_tertiary'])
        if self.state == StepState.ERROR:
            return QColor(ImgForgeTheme.COLORS['error'])
        return QColor(self.accent)

    def paintEvent(self, a0):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)

        circle_rect = QRect(0, 4, self.CIRCLE_SIZE, self.CIRCLE_SIZE)
        line_y = circle_rect.center().y()

        if not self.is_last:
            done = self.state == StepState.COMPLETE
            color = QColor(self.accent) if done else QColor(ImgForgeTheme.COLORS['border'])
            painter.setPen(QPen(color, self.LINE_WIDTH))
            painter.drawLine(self.CIRCLE_SIZE + 8, line_y, self.width() - 8, line_y)

        circle_color = self._circle_color()
        painter.setBrush(QBrush(circle_color))
        painter.setPen(QPen(circle_color.darker(120), 2))
        painter.drawEllipse(circle_rect)

        if self.state == StepState.PENDING:
            painter.setPen(QPen(QColor(ImgForgeTheme.COLORS['text_disabled'])))
        else:
            painter.setPen(QPen(QColor(ImgForgeTheme.COLORS['text_primary'])))
        painter.setFont(QFont(ImgForgeTheme.FONTS['default_family'], 12, QFont.Weight.Bold))

        marks = {StepState.COMPLETE: "✓", StepState.ERROR: "!"}
        painter.drawText(circle_rect, Qt.AlignmentFlag.AlignCenter,
                         marks.get(self.state, str(self.step_number)))


class StepperHeader(QWidget):
    """Row of step indicators for one wizard"""

    def __init__(self, step_names: List[str], accent: str = ImgForgeTheme.COLORS['primary']):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.indicators: List[StepIndicator] = []

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        layout.addStretch()
        for i, name in enumerate(step_names, 1):
            indicator = StepIndicator(i, name, accent, is_last=(i == len(step_names)))
            self.indicators.append(indicator)
            layout.addWidget(indicator)
        layout.addStretch()

        self.set_current_step(1)

    def set_current_step(self, step: int, failed: bool = False):
        """Mark steps before `step` complete, `step` active (or failed) and the rest pending"""
        for indicator in self.indicators:
            if indicator.step_number < step:
                indicator.set_state(StepState.COMPLETE)
            elif indicator.step_number == step:
                indicator.set_state(StepState.ERROR if failed else StepState.ACTIVE)
            else:
                indicator.set_state(StepState.PENDING)
        self.logger.debug(f"Stepper moved to step {step}")

    def states(self) -> List[StepState]:
        return [indicator.state for indicator in self.indicators]
