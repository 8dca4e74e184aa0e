"""
ImgForge Create Wizard Widget
Six pages: board type, image source, basic configuration, network & storage,
advanced options, review & build
"""

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit, QCheckBox,
    QComboBox, QPlainTextEdit, QListWidget, QListWidgetItem, QRadioButton,
    QButtonGroup, QFormLayout, QGroupBox
)
from PyQt6.QtCore import Qt

from imgforge.core.create_wizard import (
    CATALOG_NETWORK_NAMES, CATALOG_STORED_IMAGES, EXTRA_SIZE_CHOICES, CreateImageWizard
)
from imgforge.core.models import BoardType, BuildMode, ImageSource, PresetImage
from imgforge.gui.theme import ImgForgeTheme
from imgforge.gui.wizard_widget import WizardWidget
from imgforge.utils.formatting import format_size

PATH_ROLE = Qt.ItemDataRole.UserRole


class CreateWizardWidget(WizardWidget):
    """Screen for the six-step image creation wizard"""

    action_label = "Start Build"

    def __init__(self, wizard: CreateImageWizard, parent=None):
        super().__init__(wizard, "Create New Image", ImgForgeTheme.COLORS['primary'], parent)

    def build_page(self, step: int) -> QWidget:
        builders = {
            1: self._build_board_page,
            2: self._build_source_page,
            3: self._build_basic_page,
            4: self._build_network_page,
            5: self._build_advanced_page,
            6: self._build_review_page,
        }
        return builders[step]()

    # ---------- step 1 ----------
    def _build_board_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        for board in BoardType:
            button = QPushButton(f"{board.label}\n{board.description}")
            button.setProperty("flat", True)
            button.setMinimumHeight(64)
            button.clicked.connect(lambda checked=False, b=board: self.wizard.choose_board(b))
            layout.addWidget(button)
        layout.addStretch()
        return page

    # ---------- step 2 ----------
    def _build_source_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        self.source_buttons = {
            ImageSource.PRESET: QRadioButton("Preset images"),
            ImageSource.CUSTOM: QRadioButton("Custom image URL"),
            ImageSource.STORED: QRadioButton("Stored images"),
        }
        self.source_group = QButtonGroup(page)
        for source, button in self.source_buttons.items():
            self.source_group.addButton(button)
            button.toggled.connect(
                lambda checked, s=source: self.wizard.choose_image_source(s) if checked else None
            )

        layout.addWidget(self.source_buttons[ImageSource.PRESET])
        self.preset_combo = QComboBox()
        self.preset_combo.addItems([preset.label for preset in PresetImage])
        self.bind_combo_box(self.preset_combo, "preset_image", list(PresetImage))
        layout.addWidget(self.preset_combo)

        layout.addWidget(self.source_buttons[ImageSource.CUSTOM])
        self.custom_url_edit = QLineEdit()
        self.custom_url_edit.setPlaceholderText("https://example.com/image.img.xz")
        self.bind_line_edit(self.custom_url_edit, "custom_image_url")
        layout.addWidget(self.custom_url_edit)

        layout.addWidget(self.source_buttons[ImageSource.STORED])
        self.stored_list = QListWidget()
        self.stored_list.currentItemChanged.connect(self._on_stored_selected)
        layout.addWidget(self.stored_list)
        return page

    def _on_stored_selected(self, current: QListWidgetItem, previous: QListWidgetItem):
        if current is not None:
            self.wizard.set_field("stored_image", current.data(PATH_ROLE))

    # ---------- step 3 ----------
    def _build_basic_page(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)

        self.hostname_edit = QLineEdit()
        self.bind_line_edit(self.hostname_edit, "hostname")
        form.addRow("Hostname", self.hostname_edit)

        self.change_username_check = QCheckBox("Change default username")
        self.bind_check_box(self.change_username_check, "change_username")
        form.addRow(self.change_username_check)
        self.username_edit = QLineEdit()
        self.bind_line_edit(self.username_edit, "new_username")
        form.addRow("New username", self.username_edit)

        self.root_password_check = QCheckBox("Set root password")
        self.bind_check_box(self.root_password_check, "set_root_password")
        form.addRow(self.root_password_check)
        self.root_password_edit = QLineEdit()
        self.root_password_edit.setEchoMode(QLineEdit.EchoMode.Password)
        self.bind_line_edit(self.root_password_edit, "root_password")
        form.addRow("Root password", self.root_password_edit)

        self.ssh_check = QCheckBox("Enable SSH")
        self.bind_check_box(self.ssh_check, "enable_ssh")
        form.addRow(self.ssh_check)

        self.change_username_check.toggled.connect(self.username_edit.setEnabled)
        self.root_password_check.toggled.connect(self.root_password_edit.setEnabled)
        return page

    # ---------- step 4 ----------
    def _build_network_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)

        wifi_group = QGroupBox("Wi-Fi")
        wifi_form = QFormLayout(wifi_group)
        self.wifi_check = QCheckBox("Headless Wi-Fi setup")
        self.bind_check_box(self.wifi_check, "wifi_enabled")
        wifi_form.addRow(self.wifi_check)
        ssid_row = QHBoxLayout()
        self.ssid_combo = QComboBox()
        self.ssid_combo.setEditable(True)
        self.bind_editable_combo(self.ssid_combo, "wifi_ssid")
        ssid_row.addWidget(self.ssid_combo, 1)
        self.rescan_button = QPushButton("Rescan")
        self.rescan_button.clicked.connect(self.wizard.refresh_network_names)
        ssid_row.addWidget(self.rescan_button)
        wifi_form.addRow("SSID", ssid_row)
        self.wifi_password_edit = QLineEdit()
        self.wifi_password_edit.setEchoMode(QLineEdit.EchoMode.Password)
        self.bind_line_edit(self.wifi_password_edit, "wifi_password")
        wifi_form.addRow("Password", self.wifi_password_edit)
        layout.addWidget(wifi_group)

        storage_group = QGroupBox("Storage")
        storage_form = QFormLayout(storage_group)
        self.expand_check = QCheckBox("Add extra space for packages")
        self.bind_check_box(self.expand_check, "expand_image")
        storage_form.addRow(self.expand_check)
        self.extra_size_combo = QComboBox()
        self.extra_size_combo.addItems([size.replace("G", " GB") for size in EXTRA_SIZE_CHOICES])
        self.bind_combo_box(self.extra_size_combo, "extra_size", EXTRA_SIZE_CHOICES)
        storage_form.addRow("Extra size", self.extra_size_combo)
        layout.addWidget(storage_group)
        layout.addStretch()

        self.wifi_check.toggled.connect(self._update_enabled)
        self.expand_check.toggled.connect(self._update_enabled)
        return page

    # ---------- step 5 ----------
    def _build_advanced_page(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)

        self.mode_combo = QComboBox()
        self.mode_combo.addItems(["Keep image artifact" if mode is BuildMode.ARTIFACT else "Flash after build"
                                  for mode in BuildMode])
        self.bind_combo_box(self.mode_combo, "mode", list(BuildMode))
        form.addRow("Output", self.mode_combo)

        self.compose_check = QCheckBox("Include Docker Compose stack")
        self.bind_check_box(self.compose_check, "docker_compose_enabled")
        form.addRow(self.compose_check)
        self.compose_edit = QPlainTextEdit()
        self.compose_edit.setPlaceholderText("services:\n  app:\n    image: nginx")
        self.bind_plain_text(self.compose_edit, "docker_compose_content")
        form.addRow(self.compose_edit)

        self.script_check = QCheckBox("Run custom setup script")
        self.bind_check_box(self.script_check, "custom_script_enabled")
        form.addRow(self.script_check)
        self.script_edit = QPlainTextEdit()
        self.script_edit.setPlaceholderText("#!/bin/bash\napt-get install -y htop")
        self.bind_plain_text(self.script_edit, "custom_script_content")
        form.addRow(self.script_edit)

        self.command_check = QCheckBox("Run inline command")
        self.bind_check_box(self.command_check, "inline_command_enabled")
        form.addRow(self.command_check)
        self.command_edit = QLineEdit()
        self.bind_line_edit(self.command_edit, "inline_command")
        form.addRow(self.command_edit)

        for check in (self.compose_check, self.script_check, self.command_check):
            check.toggled.connect(self._update_enabled)
        return page

    # ---------- step 6 ----------
    def _build_review_page(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.review_form = QFormLayout()
        layout.addLayout(self.review_form)
        layout.addStretch()
        return page

    # ---------- sync ----------
    def _update_enabled(self, *args):
        self.username_edit.setEnabled(self.change_username_check.isChecked())
        self.root_password_edit.setEnabled(self.root_password_check.isChecked())
        wifi = self.wifi_check.isChecked()
        self.ssid_combo.setEnabled(wifi)
        self.rescan_button.setEnabled(wifi)
        self.wifi_password_edit.setEnabled(wifi)
        self.extra_size_combo.setEnabled(self.expand_check.isChecked())
        self.compose_edit.setEnabled(self.compose_check.isChecked())
        self.script_edit.setEnabled(self.script_check.isChecked())
        self.command_edit.setEnabled(self.command_check.isChecked())

    def sync_page(self, step: int):
        self._update_enabled()
        if step == 2:
            button = self.source_buttons[self.wizard.get_field("image_source")]
            button.blockSignals(True)
            button.setChecked(True)
            button.blockSignals(False)
            self._select_stored(self.wizard.get_field("stored_image"))
        elif step == 6:
            while self.review_form.rowCount():
                self.review_form.removeRow(0)
            for label, value in self.wizard.review_summary():
                self.review_form.addRow(f"{label}:", QLabel(str(value)))

    def on_catalog_updated(self, key: str):
        if key == CATALOG_STORED_IMAGES:
            self.stored_list.blockSignals(True)
            self.stored_list.clear()
            for image in self.wizard.stored_images():
                item = QListWidgetItem(f"{image.name}  ·  {format_size(image.size_mb)}")
                item.setData(PATH_ROLE, image.path)
                self.stored_list.addItem(item)
            self.stored_list.blockSignals(False)
            self._select_stored(self.wizard.get_field("stored_image"))
        elif key == CATALOG_NETWORK_NAMES:
            self.ssid_combo.blockSignals(True)
            self.ssid_combo.clear()
            self.ssid_combo.addItems(self.wizard.network_names())
            self.ssid_combo.setCurrentText(self.wizard.get_field("wifi_ssid") or "")
            self.ssid_combo.blockSignals(False)

    def _select_stored(self, path: str):
        self.stored_list.blockSignals(True)
        for row in range(self.stored_list.count()):
            item = self.stored_list.item(row)
            if item.data(PATH_ROLE) == path:
                self.stored_list.setCurrentItem(item)
                break
        self.stored_list.blockSignals(False)
