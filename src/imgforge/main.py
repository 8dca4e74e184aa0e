"""
ImgForge - guided OS image creation and device flashing
Main application entry point
"""

import sys
import logging


def run_gui() -> int:
    """Start the desktop interface"""
    from PyQt6.QtWidgets import QApplication

    from imgforge import __version__
    from imgforge.core.api_client import ImgForgeClient
    from imgforge.core.config import Config
    from imgforge.core.logger import setup_logging
    from imgforge.gui.main_window import MainWindow
    from imgforge.gui.theme import ImgForgeTheme

    app = QApplication(sys.argv)
    app.setApplicationName("ImgForge")
    app.setApplicationVersion(__version__)
    app.setOrganizationName("ImgForge")

    ImgForgeTheme.apply_theme(app)

    config = Config()
    imgforge_logger = setup_logging(log_dir=config.get_log_dir(), level=config.get("log_level", "INFO"),
                                    gui=True)
    logger = logging.getLogger(__name__)
    logger.info("Starting ImgForge GUI application...")

    main_window = MainWindow(ImgForgeClient(config), config, imgforge_logger.get_gui_handler())
    main_window.show()

    return app.exec()


def main():
    """Main application entry point"""
    if "--gui" in sys.argv:
        sys.argv.remove("--gui")
        try:
            sys.exit(run_gui())
        except (ImportError, RuntimeError) as e:
            print("\n🖥️  GUI Mode Not Available")
            print("═" * 40)
            print(f"Error Type: {type(e).__name__}")
            print(f"Reason: {e}")
            print("\n📋 Falling back to CLI mode...")
            print("   Use 'imgforge --help' for available commands")
            print()

    from imgforge.cli.cli_interface import cli
    cli()


if __name__ == "__main__":
    main()
