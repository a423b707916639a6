"""
SpineView entry point.

    spineview change.json [--theme dark] [--debug]

Reads one serialized file diff (before/after files plus alignments) and opens
the two-pane viewer for it. Startup steps:
- Parse options
- Configure logging (console, plus a log file in debug mode)
- Install the unhandled exception hook
- Load settings and apply the theme
- Show the viewer
"""

from __future__ import annotations

import argparse
import faulthandler
import json
import logging
import signal
import sys
import traceback
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional, List

from PyQt6.QtCore import QTimer
from PyQt6.QtGui import QColor, QPalette
from PyQt6.QtWidgets import QApplication, QMessageBox, QStyleFactory

from spineview import __version__
from spineview.core.diff_utils import display_path
from spineview.core.models import FileDiff
from spineview.services.settings import SettingsManager, Theme


# =============================================================================
# Constants
# =============================================================================

APP_NAME = "SpineView"
APP_ORGANIZATION = "SpineView"

# Exit status for a diff file that cannot be read
EXIT_BAD_INPUT = 2

# Debug log files go next to the settings file
LOGS_DIR = SettingsManager.default_path().parent / "logs"


@dataclass
class CommandLineArgs:
    """Options after parsing."""
    diff_path: Optional[str] = None
    theme: Optional[Theme] = None
    config_file: Optional[str] = None
    log_level: str = "INFO"
    reset_settings: bool = False
    debug: bool = False


# =============================================================================
# Logging
# =============================================================================

# ANSI colors per level; DEBUG stays uncolored
LEVEL_COLORS = {
    logging.INFO: '32',
    logging.WARNING: '33',
    logging.ERROR: '31',
    logging.CRITICAL: '35',
}


class LogFormatter(logging.Formatter):
    """Single-line records, colored by level when writing to a terminal."""

    FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'

    def __init__(self, colored: bool = False):
        super().__init__(self.FORMAT, datefmt='%H:%M:%S')
        self.colored = colored

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        code = LEVEL_COLORS.get(record.levelno) if self.colored else None
        if code is None:
            return text
        return f"\033[{code}m{text}\033[0m"


def setup_logging(level: str = "INFO", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Route all records to the console and, optionally, a file.

    Args:
        level: Level name (DEBUG, INFO, ...)
        log_file: File receiving an uncolored copy of the records

    Returns:
        The root logger
    """
    threshold = logging.getLevelName(level.upper())
    if not isinstance(threshold, int):
        threshold = logging.INFO

    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(LogFormatter(colored=sys.stderr.isatty()))
    handlers.append(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        to_file = logging.FileHandler(log_file, encoding='utf-8')
        to_file.setFormatter(LogFormatter())
        handlers.append(to_file)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(threshold)
    for handler in handlers:
        handler.setLevel(threshold)
        root.addHandler(handler)

    # Scroll sync logs every write at DEBUG; only wanted when asked for
    if threshold > logging.DEBUG:
        logging.getLogger('spineview.core.scroll_sync').setLevel(logging.INFO)

    return root


# =============================================================================
# Unhandled exceptions
# =============================================================================

class ExceptionHandler:
    """
    sys.excepthook replacement.

    Logs the traceback and, once the GUI is up, shows it in a message box.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self.gui_ready = False

    def __call__(self, exc_type: type, exc_value: BaseException, exc_tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_tb)
            return

        self.logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))
        if self.gui_ready and QApplication.instance() is not None:
            details = ''.join(traceback.format_exception(exc_type, exc_value, exc_tb))
            self._report(f"{exc_type.__name__}: {exc_value}", details)

    @staticmethod
    def _report(summary: str, details: str) -> None:
        box = QMessageBox(QMessageBox.Icon.Critical, APP_NAME, f"Unexpected error:\n\n{summary}")
        box.setDetailedText(details)
        copy_button = box.addButton("Copy Details", QMessageBox.ButtonRole.ActionRole)
        box.addButton(QMessageBox.StandardButton.Ok)
        quit_button = box.addButton("Quit", QMessageBox.ButtonRole.DestructiveRole)
        box.exec()

        clicked = box.clickedButton()
        if clicked is copy_button:
            QApplication.clipboard().setText(details)
        elif clicked is quit_button:
            QApplication.quit()


# =============================================================================
# Options
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spineview",
        description="Show a file diff side by side with synchronized scrolling.",
    )
    parser.add_argument('diff', nargs='?', help="JSON file with one serialized file diff")
    parser.add_argument('--theme', choices=[t.value for t in Theme], help="color theme")
    parser.add_argument('-c', '--config', metavar='FILE', help="settings file to use")
    parser.add_argument('--reset-settings', action='store_true',
                        help="restore default settings before starting")
    parser.add_argument('-v', '--verbose', action='store_true', help="same as --log-level DEBUG")
    parser.add_argument('--debug', action='store_true',
                        help="verbose logging, also written to a file in " + str(LOGS_DIR))
    parser.add_argument('--log-level', default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'])
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> CommandLineArgs:
    """Parse argv (defaults to sys.argv[1:])."""
    options = build_parser().parse_args(argv)
    return CommandLineArgs(
        diff_path=options.diff,
        theme=Theme.from_string(options.theme) if options.theme else None,
        config_file=options.config,
        log_level='DEBUG' if options.verbose or options.debug else options.log_level,
        reset_settings=options.reset_settings,
        debug=options.debug,
    )


# =============================================================================
# Startup
# =============================================================================

def load_file_diff(path: str) -> FileDiff:
    """
    Read a serialized file diff.

    Raises:
        OSError: File cannot be read
        ValueError: Not JSON, or not shaped like a file diff
    """
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    try:
        return FileDiff.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"not a file diff: {e}") from e


def setup_application() -> QApplication:
    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    app.setApplicationVersion(__version__)
    app.setStyle(QStyleFactory.create("Fusion"))
    return app


def setup_settings(args: CommandLineArgs) -> SettingsManager:
    manager = SettingsManager(Path(args.config_file) if args.config_file else None)
    if args.reset_settings:
        logging.info("Resetting settings in %s", manager.settings_path)
        manager.reset()
    return manager


# Palette roles for the dark theme
DARK_PALETTE = {
    QPalette.ColorRole.Window: "#2d2d2d",
    QPalette.ColorRole.WindowText: "#d4d4d4",
    QPalette.ColorRole.Base: "#1e1e1e",
    QPalette.ColorRole.AlternateBase: "#2d2d2d",
    QPalette.ColorRole.Text: "#d4d4d4",
    QPalette.ColorRole.Button: "#333333",
    QPalette.ColorRole.ButtonText: "#d4d4d4",
    QPalette.ColorRole.Highlight: "#264f78",
    QPalette.ColorRole.HighlightedText: "#ffffff",
}


def setup_theme(app: QApplication, theme: Theme) -> None:
    """Apply a theme; SYSTEM and LIGHT keep the style's own palette."""
    logging.debug("Theme: %s", theme.value)
    if theme is not Theme.DARK:
        return

    palette = QPalette()
    for role, color in DARK_PALETTE.items():
        palette.setColor(role, QColor(color))
    palette.setColor(QPalette.ColorGroup.Disabled, QPalette.ColorRole.Text, QColor("#7f7f7f"))
    app.setPalette(palette)


def change_display_size(manager: SettingsManager, step: int) -> int:
    """Step the text size up (step > 0), down (step < 0) or back to default (0)."""
    if step > 0:
        return manager.increase_size()
    if step < 0:
        return manager.decrease_size()
    return manager.reset_size()


def create_viewer(manager: SettingsManager, diff: Optional[FileDiff]):
    """Build the viewer window for a diff (or an empty one)."""
    from spineview.ui.diff_viewer import DiffViewerWidget

    settings = manager.settings
    viewer = DiffViewerWidget(settings)
    manager.add_observer(viewer.apply_settings)
    viewer.size_change_requested.connect(lambda step: change_display_size(manager, step))

    title = APP_NAME if diff is None else f"{display_path(diff)} - {APP_NAME}"
    viewer.setWindowTitle(title)
    viewer.resize(settings.display.window_width, settings.display.window_height)
    viewer.set_file_diff(diff)
    return viewer


def install_signal_handlers(app: QApplication) -> None:
    """Quit cleanly on Ctrl+C / SIGTERM (POSIX only)."""
    if sys.platform == 'win32':
        return

    def quit_on_signal(signum, frame) -> None:
        logging.info("Signal %d received, quitting", signum)
        app.quit()

    signal.signal(signal.SIGINT, quit_on_signal)
    signal.signal(signal.SIGTERM, quit_on_signal)

    # Python only runs signal handlers between bytecodes; wake it up regularly
    wakeup = QTimer(app)
    wakeup.timeout.connect(lambda: None)
    wakeup.start(250)


# =============================================================================
# Main
# =============================================================================

def main() -> int:
    """Run the viewer; returns the process exit status."""
    faulthandler.enable()
    args = parse_arguments()

    log_file = LOGS_DIR / f"spineview-{date.today():%Y%m%d}.log" if args.debug else None
    logger = setup_logging(args.log_level, log_file)
    logger.info("%s %s starting", APP_NAME, __version__)

    hook = ExceptionHandler(logger)
    sys.excepthook = hook

    diff = None
    if args.diff_path:
        try:
            diff = load_file_diff(args.diff_path)
        except (OSError, ValueError) as e:
            logger.error("Cannot open %s: %s", args.diff_path, e)
            return EXIT_BAD_INPUT

    try:
        app = setup_application()
        manager = setup_settings(args)
        setup_theme(app, args.theme or manager.settings.display.theme)
        install_signal_handlers(app)

        viewer = create_viewer(manager, diff)
        viewer.show()
        if args.diff_path:
            manager.add_recent_file(str(Path(args.diff_path).resolve()))
        hook.gui_ready = True

        status = app.exec()
        logger.info("Exiting with status %d", status)
        return status

    except Exception as e:
        logger.critical("Startup failed: %s", e, exc_info=True)
        if QApplication.instance() is not None:
            QMessageBox.critical(None, APP_NAME, f"{APP_NAME} could not start:\n\n{e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
