import sys
from typing import Sequence

from loguru import logger
from PySide6.QtGui import QIcon
from PySide6.QtWidgets import QApplication

from colossus import __version__
from colossus.core.launch_args import EXECUTE_MARKERS
from colossus.core.session import spec_from_argv
from colossus.logging_setup import setup_logger
from colossus.settings_models import APP_NAME, APP_SLUG, SettingsPaths, resolve_log_path
from colossus.settings_store import load_settings
from colossus.ui.terminal_window import TerminalWindow

VERSION_FLAG = "--version"


def _wants_version(argv: Sequence[str]) -> bool:
    for arg in argv[1:]:
        if arg in EXECUTE_MARKERS:
            return False
        if arg == VERSION_FLAG:
            return True
    return False


def main(argv: Sequence[str] | None = None) -> int:
    # Everything argv-derived is resolved before QApplication rewrites argv.
    args = list(sys.argv if argv is None else argv)
    if not args:
        args = [APP_SLUG]
    if _wants_version(args):
        print(f"{APP_SLUG} {__version__}")
        return 0

    paths = SettingsPaths.from_environment()
    settings = load_settings(paths)
    setup_logger(
        resolve_log_path(settings.get("log.path"), paths),
        truncate=bool(settings.get("log.truncate_on_start", True)),
    )
    if settings.last_error:
        logger.warning("Settings file {} ignored: {}", settings.path, settings.last_error)

    spec, explicit = spec_from_argv(args)

    app = QApplication([args[0]])
    app.setApplicationName(APP_SLUG)
    app.setApplicationDisplayName(APP_NAME)
    app.setWindowIcon(QIcon.fromTheme("utilities-terminal"))

    window = TerminalWindow(settings)
    window.show()
    window.start(spec, explicit=explicit)
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
