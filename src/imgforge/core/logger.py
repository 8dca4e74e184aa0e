"""
ImgForge Logging
Root logger wiring: stderr console, rotating log files, and an optional Qt signal sink for the GUI
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QObject, pyqtSignal


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

MAIN_LOG = "imgforge.log"
ERROR_LOG = "errors.log"


class GuiLogHandler(logging.Handler, QObject):
    """Forwards log records to the interface as (level, time, message)"""

    log_message = pyqtSignal(str, str, str)

    def __init__(self):
        logging.Handler.__init__(self)
        QObject.__init__(self)

    def emit(self, record):
        try:
            stamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S')
            self.log_message.emit(record.levelname, stamp, self.format(record))
        except Exception:
            self.handleError(record)


def _rotating(path: Path, max_mb: int, backups: int, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_mb * 1024 * 1024,
                                                   backupCount=backups)
    handler.setLevel(level)
    return handler


class ImgForgeLogger:
    """Owns the handlers installed on the root logger for one process"""

    def __init__(self, log_dir: Optional[Path] = None, level: str = "INFO", gui: bool = False):
        self.log_dir = Path(log_dir) if log_dir else Path.home() / ".imgforge" / "logs"
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.level = getattr(logging, level.upper(), logging.INFO)
        self.gui_handler: Optional[GuiLogHandler] = GuiLogHandler() if gui else None
        self.handlers = self._build_handlers()
        self._install()

    def _build_handlers(self) -> List[logging.Handler]:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

        # stderr keeps command output on stdout clean
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(self.level)
        handlers = [
            console,
            _rotating(self.log_dir / MAIN_LOG, 10, 5, self.level),
            _rotating(self.log_dir / ERROR_LOG, 5, 3, logging.ERROR),
        ]
        for handler in handlers:
            handler.setFormatter(formatter)

        if self.gui_handler is not None:
            self.gui_handler.setLevel(self.level)
            self.gui_handler.setFormatter(logging.Formatter('%(message)s'))
            handlers.append(self.gui_handler)
        return handlers

    def _install(self):
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(self.level)
        for handler in self.handlers:
            root.addHandler(handler)
        logging.getLogger(__name__).debug(f"Logging to {self.log_dir} at {logging.getLevelName(self.level)}")

    def get_gui_handler(self) -> Optional[GuiLogHandler]:
        return self.gui_handler


def setup_logging(log_dir: Optional[Path] = None, level: str = "INFO", gui: bool = False) -> ImgForgeLogger:
    """Replace the root logger's handlers with the ImgForge set"""
    return ImgForgeLogger(log_dir, level, gui)
