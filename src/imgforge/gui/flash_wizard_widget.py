"""
ImgForge Flash Wizard Widget
Select image, select target device, confirm & flash
"""

from pathlib import Path

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QListWidget, QListWidgetItem, QRadioButton, QButtonGroup, QFileDialog
)
from PyQt6.QtCore import Qt

from imgforge.core.flash_wizard import (
    CATALOG_DEVICES, CATALOG_STORED_IMAGES, ERASE_WARNING, FlashImageWizard
)
from imgforge.core.models import FlashImageSource
from imgforge.gui.theme import ImgForgeTheme
from imgforge.gui.wizard_widget import WizardWidget
from imgforge.utils.formatting import format_date, format_size

PATH_ROLE = Qt.ItemDataRole.UserRole


class FlashWizardWidget(WizardWidget):
    """Screen for the three-step flash wizard"""

    action_label = "Start Flash"

    def __init__(self, wizard: FlashImageWizard, parent=None):
        super().__init__(wizard, "Flash Image to Device", ImgForgeTheme.COLORS['flash'], parent)

    def build_page(self, step: int) -> QWidget:
        builders = {1: self._build_image_page, 2: self._build_device_page, 3: self._build_confirm_page}
        return builders[step]()

    # ---------- step 1 ----------
    def _build_image_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.stored_radio = QRadioButton("Stored images")
        self.upload_radio = QRadioButton("Upload an image")
        self.source_group = QButtonGroup(page)
        self.source_group.addButton(self.stored_radio)
        self.source_group.addButton(self.upload_radio)
        self.stored_radio.toggled.connect(self._on_source_toggled)
        source_row = QHBoxLayout()
        source_row.addWidget(self.stored_radio)
        source_row.addWidget(self.upload_radio)
        source_row.addStretch()
        layout.addLayout(source_row)

        self.image_list = QListWidget()
        self.image_list.currentItemChanged.connect(self._on_image_selected)
        layout.addWidget(self.image_list)

        upload_row = QHBoxLayout()
        self.upload_button = QPushButton("Choose File...")
        self.upload_button.clicked.connect(self._choose_upload)
        upload_row.addWidget(self.upload_button)
        self.upload_label = QLabel("No file uploaded")
        self.upload_label.setProperty("role", "muted")
        upload_row.addWidget(self.upload_label, 1)
        layout.addLayout(upload_row)
        return page

    def _on_source_toggled(self, stored_checked: bool):
        source = FlashImageSource.STORED if stored_checked else FlashImageSource.UPLOAD
        self.image_list.setEnabled(stored_checked)
        self.upload_button.setEnabled(not stored_checked)
        self.wizard.set_field("image_source", source)

    def _on_image_selected(self, current: QListWidgetItem, previous: QListWidgetItem):
        if current is not None:
            self.wizard.choose_stored_image(current.data(PATH_ROLE))

    def _choose_upload(self):
        path, _ = QFileDialog.getOpenFileName(self, "Select image", "",
                                              "Disk images (*.img *.iso *.xz *.gz);;All files (*)")
        if not path:
            return
        self.upload_label.setText(f"Uploading {Path(path).name}...")
        server_path = self.wizard.upload_image(path)
        if server_path:
            self.upload_label.setText(f"Uploaded: {server_path}")
        else:
            self.upload_label.setText(f"Upload failed: {self.wizard.last_upload_error}")

    # ---------- step 2 ----------
    def _build_device_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        scan_row = QHBoxLayout()
        self.scan_button = QPushButton("Scan for Devices")
        self.scan_button.clicked.connect(self.wizard.scan_devices)
        scan_row.addWidget(self.scan_button)
        scan_row.addStretch()
        layout.addLayout(scan_row)

        self.device_list = QListWidget()
        self.device_list.currentItemChanged.connect(self._on_device_selected)
        layout.addWidget(self.device_list)
        return page

    def _on_device_selected(self, current: QListWidgetItem, previous: QListWidgetItem):
        if current is not None:
            self.wizard.choose_device(current.data(PATH_ROLE))

    # ---------- step 3 ----------
    def _build_confirm_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.summary_label = QLabel()
        self.summary_label.setWordWrap(True)
        layout.addWidget(self.summary_label)
        warning = QLabel(f"⚠️ {ERASE_WARNING}")
        warning.setStyleSheet(f"color: {ImgForgeTheme.COLORS['warning']}; font-weight: 600;")
        layout.addWidget(warning)
        layout.addStretch()
        return page

    # ---------- sync ----------
    def sync_page(self, step: int):
        if step == 1:
            stored = self.wizard.get_field("image_source") is FlashImageSource.STORED
            self.stored_radio.setChecked(stored)
            self.upload_radio.setChecked(not stored)
            self._select_item(self.image_list, self.wizard.get_field("selected_image"))
        elif step == 2:
            self._select_item(self.device_list, self.wizard.get_field("device"))
        elif step == 3:
            summary = self.wizard.confirmation_summary()
            device = summary['device']
            if summary['device_name']:
                device = f"{summary['device_name']} ({summary['device']}, {summary['device_size']})"
            self.summary_label.setText(f"Image: {summary['image']}\nDevice: {device}")

    def on_catalog_updated(self, key: str):
        if key == CATALOG_STORED_IMAGES:
            self.image_list.blockSignals(True)
            self.image_list.clear()
            for image in self.wizard.stored_images():
                text = f"{image.name}  ·  {format_size(image.size_mb)}"
                if image.modified:
                    text += f"  ·  {format_date(image.modified)}"
                item = QListWidgetItem(text)
                item.setData(PATH_ROLE, image.path)
                self.image_list.addItem(item)
            self.image_list.blockSignals(False)
            self._select_item(self.image_list, self.wizard.get_field("selected_image"))
        elif key == CATALOG_DEVICES:
            self.device_list.blockSignals(True)
            self.device_list.clear()
            for device in self.wizard.devices():
                item = QListWidgetItem(f"{device.name}  ·  {device.path}  ·  {device.size}")
                item.setData(PATH_ROLE, device.path)
                self.device_list.addItem(item)
            self.device_list.blockSignals(False)
            self._select_item(self.device_list, self.wizard.get_field("device"))

    @staticmethod
    def _select_item(list_widget: QListWidget, path: str):
        list_widget.blockSignals(True)
        for row in range(list_widget.count()):
            item = list_widget.item(row)
            if item.data(PATH_ROLE) == path:
                list_widget.setCurrentItem(item)
                break
        list_widget.blockSignals(False)
