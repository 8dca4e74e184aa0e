"""
ImgForge Main Window
Landing page with the stored image library, and the two wizard screens
"""

import logging
from typing import Optional

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QStackedWidget, QScrollArea, QFrame, QStatusBar
)
from PyQt6.QtCore import Qt, pyqtSlot

from imgforge import __version__
from imgforge.core.config import Config
from imgforge.core.create_wizard import CreateImageWizard
from imgforge.core.flash_wizard import FlashImageWizard
from imgforge.core.logger import GuiLogHandler
from imgforge.core.models import StoredImage
from imgforge.core.service import ProvisioningService
from imgforge.core.step_utils import fetch_or_empty
from imgforge.gui.create_wizard_widget import CreateWizardWidget
from imgforge.gui.flash_wizard_widget import FlashWizardWidget
from imgforge.gui.theme import ImgForgeTheme
from imgforge.gui.wizard_widget import WizardWidget
from imgforge.utils.formatting import format_date, format_size


class ImageCard(QFrame):
    """One stored image with its Flash action"""

    def __init__(self, image: StoredImage, on_flash, parent=None):
        super().__init__(parent)
        self.image = image
        self.setFrameShape(QFrame.Shape.StyledPanel)
        self.setStyleSheet(
            f"ImageCard {{ border: 1px solid {ImgForgeTheme.COLORS['border']}; border-radius: 8px; }}"
        )

        layout = QHBoxLayout(self)
        details = QVBoxLayout()
        name_label = QLabel(image.name)
        name_label.setStyleSheet("font-weight: 600;")
        details.addWidget(name_label)
        meta = format_size(image.size_mb)
        if image.modified:
            meta += f"  ·  {format_date(image.modified)}"
        meta_label = QLabel(meta)
        meta_label.setProperty("role", "muted")
        details.addWidget(meta_label)
        layout.addLayout(details, 1)

        flash_button = QPushButton("Flash")
        flash_button.setStyleSheet(f"background-color: {ImgForgeTheme.COLORS['flash']};")
        flash_button.clicked.connect(lambda: on_flash(image.path))
        layout.addWidget(flash_button)


class LandingPage(QWidget):
    """Start screen: create a new image or flash one from the library"""

    def __init__(self, window: 'MainWindow'):
        super().__init__()
        self.main_window = window
        self.logger = logging.getLogger(__name__)

        layout = QVBoxLayout(self)
        title = QLabel("ImgForge")
        title.setProperty("role", "title")
        layout.addWidget(title)
        subtitle = QLabel("Build customized OS images and flash them to your boards")
        subtitle.setProperty("role", "muted")
        layout.addWidget(subtitle)

        actions = QHBoxLayout()
        create_button = QPushButton("Create New Image")
        create_button.clicked.connect(self.main_window.show_create_wizard)
        actions.addWidget(create_button)
        refresh_button = QPushButton("Refresh")
        refresh_button.setProperty("flat", True)
        refresh_button.clicked.connect(self.refresh)
        actions.addWidget(refresh_button)
        actions.addStretch()
        layout.addLayout(actions)

        self.library_label = QLabel("Your Images")
        self.library_label.setStyleSheet("font-weight: 600;")
        layout.addWidget(self.library_label)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        self.library = QWidget()
        self.library_layout = QVBoxLayout(self.library)
        self.library_layout.setAlignment(Qt.AlignmentFlag.AlignTop)
        scroll.setWidget(self.library)
        layout.addWidget(scroll, 1)

    def refresh(self):
        """Reload the image library; a failed listing shows an empty library"""
        while self.library_layout.count():
            item = self.library_layout.takeAt(0)
            if item.widget():
                item.widget().deleteLater()

        images = fetch_or_empty(self.main_window.service.list_stored_images, "stored images", self.logger)
        if not images:
            empty = QLabel("No images yet. Create one to get started.")
            empty.setProperty("role", "muted")
            self.library_layout.addWidget(empty)
            return

        for image in images:
            self.library_layout.addWidget(ImageCard(image, self.main_window.show_flash_wizard))


class MainWindow(QMainWindow):
    """Main application window"""

    def __init__(self, service: ProvisioningService, config: Optional[Config] = None,
                 log_handler: Optional[GuiLogHandler] = None):
        super().__init__()
        self.logger = logging.getLogger(__name__)
        self.service = service
        self.config = config
        self.active_wizard: Optional[WizardWidget] = None

        self.setWindowTitle(f"ImgForge v{__version__}")
        self.resize(1000, 760)

        self.stack = QStackedWidget()
        self.setCentralWidget(self.stack)
        self.landing = LandingPage(self)
        self.stack.addWidget(self.landing)

        self.setStatusBar(QStatusBar())
        if config is not None:
            self.statusBar().showMessage(f"Service: {config.server_url}")
        if log_handler is not None:
            log_handler.log_message.connect(self._on_log_message)

        self.landing.refresh()
        self.logger.info("Main window initialized")

    def show_create_wizard(self):
        self._show_wizard(CreateWizardWidget(CreateImageWizard(self.service)))

    def show_flash_wizard(self, image_path: Optional[str] = None):
        self._show_wizard(FlashWizardWidget(FlashImageWizard(self.service, preselected_image=image_path)))

    def show_landing(self):
        if self.active_wizard is not None:
            self.stack.removeWidget(self.active_wizard)
            self.active_wizard.deleteLater()
            self.active_wizard = None
        self.stack.setCurrentWidget(self.landing)
        self.landing.refresh()

    def _show_wizard(self, widget: WizardWidget):
        if self.active_wizard is not None:
            self.active_wizard.wizard.close()
            self.show_landing()
        self.active_wizard = widget
        widget.back_requested.connect(self.show_landing)
        self.stack.addWidget(widget)
        self.stack.setCurrentWidget(widget)

    @pyqtSlot(str, str, str)
    def _on_log_message(self, level: str, timestamp: str, message: str):
        if level in ("WARNING", "ERROR", "CRITICAL"):
            self.statusBar().showMessage(f"[{timestamp}] {message.split(' - ')[-1]}", 8000)

    def closeEvent(self, a0):
        if self.active_wizard is not None:
            self.active_wizard.wizard.close()
        super().closeEvent(a0)
