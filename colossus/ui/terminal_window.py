from __future__ import annotations

from PySide6.QtGui import QCloseEvent, QFont
from PySide6.QtWidgets import QMainWindow

from colossus.core.session import LaunchSpec, SessionLauncher, window_title
from colossus.settings_models import APP_NAME
from colossus.settings_store import UserSettings
from colossus.ui.widgets.terminal_widget import TerminalWidget


class TerminalWindow(QMainWindow):
    """Top-level window for exactly one terminal session."""

    def __init__(self, settings: UserSettings, parent=None) -> None:
        super().__init__(parent)
        self.settings = settings

        self.terminal = TerminalWidget(
            parent=self,
            history_lines=settings.get_int("terminal.history_lines", 5000),
        )
        self._apply_settings()
        self.setCentralWidget(self.terminal)
        self.resize(
            settings.get_int("window.width", 1100),
            settings.get_int("window.height", 700),
        )

        self._update_title("")
        self.terminal.terminalTitleChanged.connect(self._update_title)
        self.launcher = SessionLauncher(self.terminal, self.close)

    def _apply_settings(self) -> None:
        family = str(self.settings.get("font.family", "") or "").strip()
        if family:
            font = QFont(family)
            font.setPointSize(max(4, self.settings.get_int("font.size", 11)))
            self.terminal.set_terminal_font(font)
        self.terminal.set_colors(
            self.settings.get("palette.foreground"),
            self.settings.get("palette.background"),
            self.settings.get("palette.ansi"),
        )

    def _update_title(self, title: str) -> None:
        self.setWindowTitle(window_title(title, APP_NAME))

    def start(self, spec: LaunchSpec, *, explicit: bool) -> None:
        self.launcher.launch(spec, explicit=explicit)
        self.terminal.setFocus()

    def closeEvent(self, event: QCloseEvent):
        self.terminal.shutdown()
        super().closeEvent(event)
