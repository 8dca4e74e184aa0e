"""
ImgForge Theme
Color palette and stylesheet for the desktop interface
"""

from PyQt6.QtGui import QColor, QPalette, QFont
from PyQt6.QtWidgets import QApplication


class ImgForgeTheme:
    """Dark theme with orange accents for the creation flow and blue for flashing"""

    COLORS = {
        "primary": "#ff6b35",
        "primary_hover": "#e55d00",
        "flash": "#3b82f6",
        "flash_hover": "#2563eb",

        "bg_primary": "#000000",
        "bg_secondary": "#0a0a0a",
        "bg_tertiary": "#141414",
        "bg_input": "#1a1a1a",

        "border": "#2a2a2a",
        "border_focus": "#ff6b35",

        "text_primary": "#ffffff",
        "text_secondary": "#e0e0e0",
        "text_muted": "#b0b0b0",
        "text_disabled": "#666666",

        "success": "#00e676",
        "warning": "#ff8500",
        "error": "#ff4444",
    }

    FONTS = {
        "default_family": "Segoe UI, system-ui, sans-serif",
        "monospace_family": "Consolas, 'Courier New', monospace",
        "sizes": {
            "sm": 12,
            "base": 14,
            "lg": 16,
            "2xl": 24,
        }
    }

    @classmethod
    def get_stylesheet(cls) -> str:
        """Get the complete application stylesheet"""
        return f"""
        QMainWindow, QWidget {{
            background-color: {cls.COLORS['bg_primary']};
            color: {cls.COLORS['text_primary']};
            font-family: {cls.FONTS['default_family']};
            font-size: {cls.FONTS['sizes']['base']}px;
        }}

        QPushButton {{
            background-color: {cls.COLORS['primary']};
            color: {cls.COLORS['text_primary']};
            border: none;
            border-radius: 6px;
            padding: 8px 16px;
            font-weight: 600;
        }}

        QPushButton:hover {{
            background-color: {cls.COLORS['primary_hover']};
        }}

        QPushButton:disabled {{
            background-color: {cls.COLORS['bg_tertiary']};
            color: {cls.COLORS['text_disabled']};
        }}

        QPushButton[flat="true"] {{
            background-color: transparent;
            border: 1px solid {cls.COLORS['border']};
        }}

        QLineEdit, QPlainTextEdit, QComboBox, QListWidget {{
            background-color: {cls.COLORS['bg_input']};
            border: 1px solid {cls.COLORS['border']};
            border-radius: 6px;
            padding: 6px;
        }}

        QLineEdit:focus, QPlainTextEdit:focus, QComboBox:focus {{
            border-color: {cls.COLORS['border_focus']};
        }}

        QGroupBox {{
            border: 1px solid {cls.COLORS['border']};
            border-radius: 8px;
            margin-top: 12px;
            padding: 12px;
        }}

        QLabel[role="title"] {{
            font-size: {cls.FONTS['sizes']['2xl']}px;
            font-weight: 700;
        }}

        QLabel[role="muted"] {{
            color: {cls.COLORS['text_muted']};
        }}
        """

    @classmethod
    def apply_theme(cls, app: QApplication):
        """Apply the theme to the application"""
        font = QFont(cls.FONTS['default_family'])
        font.setPointSize(cls.FONTS['sizes']['base'])
        app.setFont(font)

        app.setStyleSheet(cls.get_stylesheet())

        palette = QPalette()
        palette.setColor(QPalette.ColorRole.Window, QColor(cls.COLORS['bg_primary']))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(cls.COLORS['text_primary']))
        palette.setColor(QPalette.ColorRole.Base, QColor(cls.COLORS['bg_secondary']))
        palette.setColor(QPalette.ColorRole.Text, QColor(cls.COLORS['text_primary']))
        palette.setColor(QPalette.ColorRole.Button, QColor(cls.COLORS['bg_tertiary']))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(cls.COLORS['text_primary']))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(cls.COLORS['primary']))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(cls.COLORS['text_primary']))
        app.setPalette(palette)
