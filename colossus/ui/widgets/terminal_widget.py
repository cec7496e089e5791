# colossus/ui/widgets/terminal_widget.py
import os
import pty
import fcntl
import termios
import struct
import signal
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from loguru import logger
from PySide6 import QtCore, QtGui, QtWidgets
from PySide6.QtCore import Qt

import pyte
from pyte.screens import HistoryScreen
from pyte import modes

from colossus.core.font_scale import FontScaleController
from colossus.core.input_actions import (
    CONTEXT_MENU_ITEMS,
    KeyChord,
    TerminalAction,
    dispatch_button,
    dispatch_key,
)
from colossus.core.paths import format_dropped_paths
from colossus.core.session import SpawnOutcome
from colossus.settings_models import GRAYSCALE_ANSI

# ============================ Colors & Utilities ============================

# pyte color names in ANSI index order
_ANSI16_ORDER = [
    "black", "red", "green", "brown", "blue", "magenta", "cyan", "white",
    "brightblack", "brightred", "brightgreen", "brightbrown",
    "brightblue", "brightmagenta", "brightcyan", "brightwhite",
]
_ANSI16_INDICES = {name: idx for idx, name in enumerate(_ANSI16_ORDER)}
_RE_HEX_RGB = re.compile(r"^[0-9a-fA-F]{6}$")

# How often the child pid is polled for exit
CHILD_POLL_MS = 50


def build_xterm256(ansi16: Sequence[QtGui.QColor]) -> List[QtGui.QColor]:
    pals = [QtGui.QColor(0, 0, 0) for _ in range(16)]
    steps = [0, 95, 135, 175, 215, 255]
    for r in steps:
        for g in steps:
            for b in steps:
                pals.append(QtGui.QColor(r, g, b))
    for i in range(24):
        v = 8 + i * 10
        pals.append(QtGui.QColor(v, v, v))
    for i, color in enumerate(list(ansi16)[:16]):
        pals[i] = QtGui.QColor(color)
    return pals


def _coerce_color(value, fallback: str) -> QtGui.QColor:
    color = QtGui.QColor(str(value or ""))
    if not color.isValid():
        logger.warning("Invalid palette color {!r}, using {}", value, fallback)
        color = QtGui.QColor(fallback)
    return color


def qt_mouse_button_index(button: Qt.MouseButton) -> int:
    """X11 numbering: 1 left, 2 middle, 3 right."""
    if button == Qt.MouseButton.LeftButton:
        return 1
    if button == Qt.MouseButton.MiddleButton:
        return 2
    if button == Qt.MouseButton.RightButton:
        return 3
    return 0


_KEYPAD_NAMES = {
    Qt.Key_Plus: "KP_Add",
    Qt.Key_Minus: "KP_Subtract",
    Qt.Key_0: "KP_0",
}
_SYMBOL_NAMES = {
    Qt.Key_Plus: "+",
    Qt.Key_Equal: "=",
    Qt.Key_Minus: "-",
}


def key_chord_from_event(e: QtGui.QKeyEvent) -> KeyChord:
    key, mods = e.key(), e.modifiers()
    name = ""
    if mods & Qt.KeypadModifier and key in _KEYPAD_NAMES:
        name = _KEYPAD_NAMES[key]
    elif Qt.Key_A <= key <= Qt.Key_Z or Qt.Key_0 <= key <= Qt.Key_9:
        name = chr(key)
    elif key in _SYMBOL_NAMES:
        name = _SYMBOL_NAMES[key]
    return KeyChord(
        key=name,
        ctrl=bool(mods & Qt.ControlModifier),
        alt=bool(mods & Qt.AltModifier),
        shift=bool(mods & Qt.ShiftModifier),
        meta=bool(mods & Qt.MetaModifier),
    )


# ============================ Emulator Screen ============================

class _SessionScreen(HistoryScreen):
    """HistoryScreen that reports title changes and terminal replies."""

    def __init__(self, columns, lines, *, history, on_title=None, on_reply=None):
        super().__init__(columns, lines, history=history)
        self._on_title = on_title
        self._on_reply = on_reply

    def set_title(self, param):
        super().set_title(param)
        if self._on_title is not None:
            self._on_title(self.title)

    def write_process_input(self, data):
        if self._on_reply is not None:
            self._on_reply(data)


# ============================ Terminal Widget ============================

class TerminalWidget(QtWidgets.QWidget):
    """
    Terminal widget hosting one child process on a PTY, rendered from a pyte
    screen that follows the widget size.
    """
    childExited = QtCore.Signal(int)
    terminalTitleChanged = QtCore.Signal(str)

    # Track xterm mouse + bracketed paste toggles
    _RE_MOUSE_ENABLE = re.compile(rb"\x1b\[\?(?P<mode>1000|1002|1003|1006)h")
    _RE_MOUSE_DISABLE = re.compile(rb"\x1b\[\?(?P<mode>1000|1002|1003|1006)l")
    _RE_BRACKET_PASTE_ENABLE = re.compile(rb"\x1b\[\?2004h")
    _RE_BRACKET_PASTE_DISABLE = re.compile(rb"\x1b\[\?2004l")

    # -------- Init --------
    def __init__(self, parent=None, history_lines=5000):
        super().__init__(parent)
        self.setObjectName("TerminalWidget")
        self.setFocusPolicy(Qt.StrongFocus)
        self.setAttribute(Qt.WA_OpaquePaintEvent, True)
        self.setAcceptDrops(True)

        self._fg_default = QtGui.QColor("#d0d0d0")
        self._bg_default = QtGui.QColor("#050505")
        self._cursor_color = QtGui.QColor(self._fg_default)
        self._xterm256 = build_xterm256([QtGui.QColor(c) for c in GRAYSCALE_ANSI])
        self._sel_bg = QtGui.QColor("#606060")
        self._sel_fg = QtGui.QColor("#ffffff")

        # Font and zoom
        font = QtGui.QFontDatabase.systemFont(QtGui.QFontDatabase.FixedFont)
        self._base_font = QtGui.QFont(font)
        self._zoom = FontScaleController()
        self._cell_w = self._cell_h = self._baseline = 0
        self.setFont(self._base_font)
        self._recompute_metrics()

        # Child process (set by spawn_async)
        self._pid: Optional[int] = None
        self._fd: Optional[int] = None
        self._notifier: Optional[QtCore.QSocketNotifier] = None
        self._child_exit_emitted = False
        self._history_limit = int(history_lines)

        # Spawns wait for the event loop; the child is watched by pid, not by PTY EOF
        self._pending_spawns: List[tuple] = []
        self._spawn_timer = QtCore.QTimer(self)
        self._spawn_timer.setSingleShot(True)
        self._spawn_timer.timeout.connect(self._run_pending_spawns)
        self._exit_watch = QtCore.QTimer(self)
        self._exit_watch.setInterval(CHILD_POLL_MS)
        self._exit_watch.timeout.connect(self._poll_child)

        # Emulator + stream
        self._screen = _SessionScreen(
            80, 24,
            history=self._history_limit,
            on_title=self._on_screen_title,
            on_reply=self._on_screen_reply,
        )
        self._screen.set_mode(modes.DECAWM)
        self._stream = pyte.ByteStream(self._screen)

        # Viewport scrollback offset in rows (0 = follow bottom)
        self._view_offset = 0

        # Cursor blink
        self._cursor_visible = True
        self._blink = QtCore.QTimer(self)
        self._blink.timeout.connect(self._toggle_cursor)
        self._blink.start(600)

        # Mouse / bracketed paste modes
        self.setMouseTracking(True)
        self._mouse_btns = 0
        self._mouse_mode_btn = False   # 1000/1002/1003 (button/motion)
        self._mouse_mode_any = False   # 1003 any-motion
        self._mouse_mode_sgr = False   # 1006 SGR encoding
        self._bracket_paste_enabled = False  # xterm 2004 mode

        # Selection in (global_row, col); global rows count history first
        self._sel_start = None
        self._sel_end = None
        self._selecting = False

    # -------- Palette & Metrics --------
    def set_colors(self, foreground, background, ansi: Optional[Sequence] = None) -> None:
        self._fg_default = _coerce_color(foreground, "#d0d0d0")
        self._bg_default = _coerce_color(background, "#050505")
        self._cursor_color = QtGui.QColor(self._fg_default)
        entries = list(ansi or GRAYSCALE_ANSI)
        if len(entries) != 16:
            logger.warning("Palette needs 16 ANSI entries, got {}; using grayscale", len(entries))
            entries = list(GRAYSCALE_ANSI)
        colors = [_coerce_color(value, GRAYSCALE_ANSI[i]) for i, value in enumerate(entries)]
        self._xterm256 = build_xterm256(colors)
        self.update()

    def _pyte_color(self, color, default: QtGui.QColor) -> QtGui.QColor:
        if color is None or color == "default":
            return default
        if isinstance(color, int):
            return self._xterm256[color] if 0 <= color < 256 else default
        if isinstance(color, str):
            idx = _ANSI16_INDICES.get(color)
            if idx is not None:
                return self._xterm256[idx]
            if _RE_HEX_RGB.match(color):
                return QtGui.QColor("#" + color)
        return default

    def set_terminal_font(self, font: QtGui.QFont) -> None:
        self._base_font = QtGui.QFont(font)
        self._base_font.setStyleHint(QtGui.QFont.Monospace)
        self._apply_scaled_font()

    def _apply_scaled_font(self) -> None:
        f = QtGui.QFont(self._base_font)
        base_size = self._base_font.pointSizeF()
        if base_size > 0:
            f.setPointSizeF(base_size * self._zoom.scale)
        self.setFont(f)

    def _recompute_metrics(self):
        fm = QtGui.QFontMetrics(self.font())
        self._cell_w = max(1, fm.horizontalAdvance("M"))
        self._cell_h = max(1, fm.height())
        self._baseline = fm.ascent()

    def changeEvent(self, ev: QtCore.QEvent):
        if ev.type() in (QtCore.QEvent.FontChange, QtCore.QEvent.StyleChange):
            self._recompute_metrics()
            self._resize_grid()
            self.update()
        super().changeEvent(ev)

    def focusNextPrevChild(self, next: bool) -> bool:
        # Keep focus so Tab reaches the shell instead of moving to other widgets.
        return False

    # -------- Spawn --------
    def spawn_async(
            self,
            argv: Sequence[str],
            cwd: str,
            env: Mapping[str, str],
            callback: Callable[[SpawnOutcome], None],
    ) -> None:
        """Start ``argv`` on a new PTY once control returns to the event loop.

        ``callback`` receives exactly one SpawnOutcome; failures never raise.
        """
        args = [str(a) for a in argv]
        env2 = {str(k): str(v) for k, v in dict(env).items()}
        self._pending_spawns.append((args, str(cwd or ""), env2, callback))
        self._spawn_timer.start(0)

    def _run_pending_spawns(self):
        pending, self._pending_spawns = self._pending_spawns, []
        for args, cwd, env, callback in pending:
            callback(self._spawn(args, cwd, env))

    def _spawn(self, argv: List[str], cwd: str, env: Dict[str, str]) -> SpawnOutcome:
        if not argv:
            return SpawnOutcome.failed("No program to execute")
        if self._pid is not None:
            return SpawnOutcome.failed("A child process is already running")

        try:
            err_r, err_w = os.pipe()  # close-on-exec: EOF means exec succeeded
        except OSError as exc:
            return SpawnOutcome.failed(f"Failed to create pipe ({exc.strerror or exc})")

        try:
            pid, fd = pty.fork()
        except OSError as exc:
            os.close(err_r)
            os.close(err_w)
            return SpawnOutcome.failed(f"Failed to fork ({exc.strerror or exc})")

        if pid == 0:
            self._exec_child(argv, cwd, env, err_r, err_w)

        os.close(err_w)
        try:
            chunks = []
            while True:
                chunk = os.read(err_r, 4096)
                if not chunk:
                    break
                chunks.append(chunk)
        finally:
            os.close(err_r)
        if chunks:
            message = b"".join(chunks).decode("utf-8", errors="replace")
            try:
                os.waitpid(pid, 0)
            except ChildProcessError:
                pass
            os.close(fd)
            return SpawnOutcome.failed(message)

        self._pid, self._fd = pid, fd
        fl = fcntl.fcntl(fd, fcntl.F_GETFL)
        fcntl.fcntl(fd, fcntl.F_SETFL, fl | os.O_NONBLOCK)
        self._set_winsize(self._screen.lines, self._screen.columns)

        self._notifier = QtCore.QSocketNotifier(fd, QtCore.QSocketNotifier.Read, self)
        self._notifier.activated.connect(self._read_ready)
        self._exit_watch.start()
        return SpawnOutcome.ok(pid)

    @staticmethod
    def _exec_child(argv: List[str], cwd: str, env: Dict[str, str], err_r: int, err_w: int) -> None:
        # Runs in the forked child; never returns.
        try:
            os.close(err_r)
            if cwd:
                try:
                    os.chdir(cwd)
                except OSError as exc:
                    raise OSError(exc.errno, f'Failed to change to directory "{cwd}" ({exc.strerror})') from exc
            try:
                os.execvpe(argv[0], argv, env)
            except OSError as exc:
                raise OSError(exc.errno, f'Failed to execute child process "{argv[0]}" ({exc.strerror})') from exc
        except Exception as exc:
            message = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
            try:
                os.write(err_w, message.encode("utf-8", errors="replace"))
            finally:
                os._exit(127)
        os._exit(127)

    # -------- Emulator/PTY Helpers --------
    def _set_winsize(self, rows, cols):
        if self._fd is None:
            return
        TIOCSWINSZ = getattr(termios, "TIOCSWINSZ", 0x5414)
        buf = struct.pack("HHHH", rows, cols, 0, 0)
        try:
            fcntl.ioctl(self._fd, TIOCSWINSZ, buf)
        except OSError:
            pass

    def _resize_grid(self):
        if not hasattr(self, "_screen"):
            return
        cols = max(2, self.width() // self._cell_w)
        rows = max(1, self.height() // self._cell_h)
        if cols == self._screen.columns and rows == self._screen.lines:
            return
        self._screen.resize(rows, cols)
        self._set_winsize(rows, cols)
        self._view_offset = min(self._view_offset, self._history_length())

    def _on_screen_title(self, title: str):
        self.terminalTitleChanged.emit(str(title or ""))

    def _on_screen_reply(self, data: str):
        self._send(data.encode("utf-8"))

    def _history_rows(self) -> Sequence:
        return self._screen.history.top

    def _history_length(self) -> int:
        return len(self._screen.history.top)

    def _row_at(self, global_row: int) -> dict:
        hist = self._history_rows()
        hist_len = len(hist)
        if global_row < hist_len:
            return hist[global_row]
        return self._screen.buffer.get(global_row - hist_len, {})

    def _row_text(self, row) -> str:
        cols = int(self._screen.columns)
        chars = []
        for c in range(cols):
            cell = row.get(c) if row else None
            chars.append(cell.data if cell and cell.data else " ")
        return "".join(chars).rstrip()

    def _total_rows(self) -> int:
        return self._history_length() + int(self._screen.lines)

    def _view_top(self) -> int:
        return max(0, self._history_length() - self._view_offset)

    # -------- Async I/O --------
    def _read_ready(self):
        try:
            data = os.read(self._fd, 65536)
            if not data:
                self._stop_reading()
                return

            # Track xterm mouse modes
            for m in self._RE_MOUSE_ENABLE.finditer(data):
                mode = m.group("mode")
                if mode in (b"1000", b"1002", b"1003"):
                    self._mouse_mode_btn = True
                if mode == b"1003":
                    self._mouse_mode_any = True
                if mode == b"1006":
                    self._mouse_mode_sgr = True
            for m in self._RE_MOUSE_DISABLE.finditer(data):
                mode = m.group("mode")
                if mode in (b"1000", b"1002", b"1003"):
                    self._mouse_mode_btn = False
                    self._mouse_mode_any = False
                if mode == b"1006":
                    self._mouse_mode_sgr = False

            # Track bracketed paste mode 2004
            if self._RE_BRACKET_PASTE_ENABLE.search(data):
                self._bracket_paste_enabled = True
            if self._RE_BRACKET_PASTE_DISABLE.search(data):
                self._bracket_paste_enabled = False

            self._stream.feed(data)

            if self._view_offset == 0:
                self._ensure_bottom()
            self.update()
        except BlockingIOError:
            pass
        except OSError:
            # EIO once nothing holds the child side of the PTY open
            self._stop_reading()

    def _stop_reading(self):
        # The child may outlive its terminal; only the pid watcher reports exit.
        if self._notifier is not None:
            self._notifier.setEnabled(False)
        self._poll_child()

    def _poll_child(self):
        if self._pid is None:
            self._exit_watch.stop()
            return
        try:
            pid, status = os.waitpid(self._pid, os.WNOHANG)
        except ChildProcessError:
            pid, status = self._pid, 0
        if pid == 0:
            return
        self._exit_watch.stop()
        self._pid = None
        self._emit_child_exited_once(status)

    def _emit_child_exited_once(self, status: int):
        if self._child_exit_emitted:
            return
        self._child_exit_emitted = True
        self.childExited.emit(int(status))

    def _send(self, b: bytes):
        if self._fd is None:
            return
        try:
            os.write(self._fd, b)
        except OSError:
            pass

    def feed_child(self, text: str | bytes):
        """Send input to the child as if typed."""
        payload = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        self._send(payload)
        self._ensure_bottom()

    def feed_display(self, text: str | bytes):
        """Render text in the terminal without sending it to the child."""
        payload = text.encode("utf-8") if isinstance(text, str) else bytes(text)
        self._stream.feed(payload)
        self._ensure_bottom()

    # -------- Paint --------
    def paintEvent(self, e: QtGui.QPaintEvent):
        p = QtGui.QPainter(self)
        try:
            p.fillRect(self.rect(), self._bg_default)
            p.setFont(self.font())
            bold_font = QtGui.QFont(self.font())
            bold_font.setBold(True)

            rows = int(self._screen.lines)
            cols = int(self._screen.columns)
            view_top = self._view_top()
            sel = self._ordered_selection()

            for vis_row in range(rows):
                global_row = view_top + vis_row
                row = self._row_at(global_row)
                y = vis_row * self._cell_h
                sel_bounds = self._selection_bounds_for_row(sel, global_row, cols)

                for col in range(cols):
                    cell = row.get(col) if row else None
                    x = col * self._cell_w
                    selected = sel_bounds is not None and sel_bounds[0] <= col <= sel_bounds[1]
                    if cell is None:
                        if selected:
                            p.fillRect(x, y, self._cell_w, self._cell_h, self._sel_bg)
                        continue

                    fg = self._pyte_color(cell.fg, self._fg_default)
                    bg = self._pyte_color(cell.bg, self._bg_default)
                    if cell.reverse:
                        fg, bg = bg, fg
                    if selected:
                        fg, bg = self._sel_fg, self._sel_bg
                    if bg != self._bg_default:
                        p.fillRect(x, y, self._cell_w, self._cell_h, bg)

                    ch = cell.data
                    if not ch or ch == " ":
                        continue
                    p.setFont(bold_font if cell.bold else self.font())
                    p.setPen(fg)
                    p.drawText(x, y + self._baseline, ch)

            cursor = self._screen.cursor
            if self._cursor_visible and self._view_offset == 0 and not cursor.hidden:
                r = QtCore.QRect(cursor.x * self._cell_w, cursor.y * self._cell_h, self._cell_w, self._cell_h)
                c = QtGui.QColor(self._cursor_color)
                c.setAlpha(180 if self.hasFocus() else 90)
                p.fillRect(r, c)
        finally:
            p.end()

    def _toggle_cursor(self):
        self._cursor_visible = not self._cursor_visible
        if self._view_offset == 0:
            self.update()

    # -------- Actions --------
    def perform_action(self, action: TerminalAction, global_pos: Optional[QtCore.QPoint] = None) -> bool:
        """Apply a dispatched action. Returns False for PASS_THROUGH."""
        if action is TerminalAction.COPY:
            self.copySelection()
        elif action is TerminalAction.PASTE:
            self.paste()
        elif action is TerminalAction.SELECT_ALL:
            self.select_all()
        elif action in (TerminalAction.ZOOM_IN, TerminalAction.ZOOM_OUT, TerminalAction.ZOOM_RESET):
            self._zoom.apply(action)
            self._apply_scaled_font()
        elif action is TerminalAction.CONTEXT_MENU:
            self._show_context_menu(global_pos or QtGui.QCursor.pos())
        else:
            return False
        return True

    def _show_context_menu(self, global_pos: QtCore.QPoint):
        menu = QtWidgets.QMenu(self)
        for label, action in CONTEXT_MENU_ITEMS:
            act = menu.addAction(label)
            act.triggered.connect(lambda _=False, a=action: self.perform_action(a))
        menu.exec(global_pos)

    # -------- Input: Wheel/Keys --------
    def wheelEvent(self, e: QtGui.QWheelEvent):
        # Terminal-directed scroll (xterm mouse mode) with Shift
        if self._mouse_mode_btn and (e.modifiers() & QtCore.Qt.ShiftModifier):
            col, row = self._cell_pos_from_event(e)
            col1, row1 = col + 1, row + 1
            delta = e.angleDelta().y()
            btn = 64 if delta > 0 else 65
            if self._mouse_mode_sgr:
                seq = "\x1b[<%d;%d;%dM" % (btn, col1, row1)
                self._send(seq.encode("ascii"))
            else:
                Cb, Cx, Cy = 32 + btn, 32 + col1, 32 + row1
                self._send(b"\x1b[M" + bytes([Cb, Cx, Cy]))
            return

        # Viewport scrollback
        steps = e.angleDelta().y() / 120.0
        if steps != 0:
            new_offset = self._view_offset + steps * 3
            new_offset = max(0.0, min(new_offset, self._history_length()))
            self._view_offset = int(new_offset)
            self.update()

    def keyPressEvent(self, e: QtGui.QKeyEvent):
        action = dispatch_key(key_chord_from_event(e), self.has_selection())
        if self.perform_action(action):
            return

        key, mods = e.key(), e.modifiers()
        step = max(1, int(self._screen.lines) // 2)

        # Scrollback keys
        if mods & QtCore.Qt.ShiftModifier:
            if key == QtCore.Qt.Key_PageUp:
                self._view_offset = min(self._view_offset + step, self._history_length())
                self.update(); return
            if key == QtCore.Qt.Key_PageDown:
                self._view_offset = max(0, self._view_offset - step)
                self.update(); return

        # Terminal input mapping
        seq = None
        if key == QtCore.Qt.Key_Backspace: seq = b"\x7f"
        elif key in (QtCore.Qt.Key_Return, QtCore.Qt.Key_Enter): seq = b"\r"
        elif key == QtCore.Qt.Key_Tab: seq = b"\t"
        elif key == QtCore.Qt.Key_Backtab: seq = b"\x1b[Z"
        elif key == QtCore.Qt.Key_Escape: seq = b"\x1b"
        elif key == QtCore.Qt.Key_Up: seq = b"\x1b[A"
        elif key == QtCore.Qt.Key_Down: seq = b"\x1b[B"
        elif key == QtCore.Qt.Key_Right: seq = b"\x1b[C"
        elif key == QtCore.Qt.Key_Left: seq = b"\x1b[D"
        elif key == QtCore.Qt.Key_Home: seq = b"\x1b[H"
        elif key == QtCore.Qt.Key_End: seq = b"\x1b[F"
        elif key == QtCore.Qt.Key_PageUp: seq = b"\x1b[5~"
        elif key == QtCore.Qt.Key_PageDown: seq = b"\x1b[6~"
        elif key == QtCore.Qt.Key_Insert: seq = b"\x1b[2~"
        elif key == QtCore.Qt.Key_Delete: seq = b"\x1b[3~"
        elif (mods & QtCore.Qt.ControlModifier) and QtCore.Qt.Key_A <= key <= QtCore.Qt.Key_Z:
            # Ctrl+C lands here when nothing is selected: ^C for the child
            seq = bytes([key - QtCore.Qt.Key_A + 1])
        if seq is not None:
            if mods & QtCore.Qt.AltModifier:
                seq = b"\x1b" + seq
            self._send(seq)
            self._ensure_bottom()
            return

        text = e.text()
        if text:
            payload = text.encode("utf-8")
            if mods & QtCore.Qt.AltModifier:
                payload = b"\x1b" + payload
            self._send(payload)
            self._ensure_bottom()

    # -------- Mouse & Selection --------
    def _cell_pos_from_event(self, e) -> tuple[int, int]:
        """Map an event to (col, visible_row)."""
        x = max(0, min(self.width() - 1, int(e.position().x())))
        y = max(0, min(self.height() - 1, int(e.position().y())))
        col = min(int(self._screen.columns) - 1, x // self._cell_w)
        row = min(int(self._screen.lines) - 1, y // self._cell_h)
        return col, row

    def _selection_point(self, e) -> tuple[int, int]:
        col, row = self._cell_pos_from_event(e)
        return self._view_top() + row, col

    def _ordered_selection(self):
        if self._sel_start is None or self._sel_end is None or self._sel_start == self._sel_end:
            return None
        a, b = self._sel_start, self._sel_end
        return (a, b) if a <= b else (b, a)

    @staticmethod
    def _selection_bounds_for_row(sel, global_row: int, cols: int):
        if sel is None:
            return None
        (r1, c1), (r2, c2) = sel
        if global_row < r1 or global_row > r2:
            return None
        start_col = c1 if global_row == r1 else 0
        end_col = c2 if global_row == r2 else cols - 1
        if end_col < start_col:
            return None
        return start_col, end_col

    def has_selection(self) -> bool:
        return self._ordered_selection() is not None

    def select_all(self):
        self._sel_start = (0, 0)
        self._sel_end = (self._total_rows() - 1, int(self._screen.columns) - 1)
        self._selecting = False
        self.update()

    def selected_text(self) -> str:
        sel = self._ordered_selection()
        if sel is None:
            return ""
        (r1, c1), (r2, c2) = sel
        lines = []
        for global_row in range(r1, r2 + 1):
            s = self._row_text(self._row_at(global_row))
            if r1 == r2:
                part = s[c1:c2 + 1]
            elif global_row == r1:
                part = s[c1:]
            elif global_row == r2:
                part = s[:c2 + 1]
            else:
                part = s
            lines.append(part)
        return "\n".join(lines).rstrip("\n")

    def mousePressEvent(self, e: QtGui.QMouseEvent):
        action = dispatch_button(qt_mouse_button_index(e.button()))
        if action is TerminalAction.CONTEXT_MENU:
            self.perform_action(action, e.globalPosition().toPoint())
            return

        self._mouse_btns |= e.buttons().value
        if self._mouse_mode_btn:
            self._report_mouse(e, pressed=True)
        elif e.button() == Qt.MouseButton.LeftButton:
            pos = self._selection_point(e)
            self._sel_start = pos
            self._sel_end = pos
            self._selecting = True
            self.update()

    def mouseReleaseEvent(self, e: QtGui.QMouseEvent):
        self._mouse_btns &= ~e.button().value
        if self._mouse_mode_btn:
            self._report_mouse(e, pressed=False)
        elif e.button() == Qt.MouseButton.LeftButton and self._selecting:
            self._sel_end = self._selection_point(e)
            self._selecting = False
            self.update()

    def mouseMoveEvent(self, e: QtGui.QMouseEvent):
        if self._mouse_mode_btn and (self._mouse_mode_any or self._mouse_btns):
            self._report_mouse(e, motion=True)
        elif self._selecting:
            self._sel_end = self._selection_point(e)
            self.update()

    def _report_mouse(self, e: QtGui.QMouseEvent, pressed=None, motion=False):
        col, row = self._cell_pos_from_event(e)
        col1, row1 = col + 1, row + 1
        btn_code = 0
        if motion:
            btn_code = 32
            if self._mouse_btns & Qt.MouseButton.LeftButton.value:     btn_code |= 0
            elif self._mouse_btns & Qt.MouseButton.MiddleButton.value: btn_code |= 1
            elif self._mouse_btns & Qt.MouseButton.RightButton.value:  btn_code |= 2
        else:
            if pressed is True:
                if e.button() == Qt.MouseButton.LeftButton: btn_code = 0
                elif e.button() == Qt.MouseButton.MiddleButton: btn_code = 1
                elif e.button() == Qt.MouseButton.RightButton:  btn_code = 2
            elif pressed is False:
                btn_code = 3
        if self._mouse_mode_sgr:
            final = "M" if (pressed or motion) else "m"
            seq = "\x1b[<%d;%d;%d%s" % (btn_code, col1, row1, final)
            self._send(seq.encode("ascii"))
        else:
            Cb = 32 + btn_code
            Cx = min(255, 32 + col1)
            Cy = min(255, 32 + row1)
            self._send(b"\x1b[M" + bytes([Cb, Cx, Cy]))

    # -------- Drag & Drop --------
    def dragEnterEvent(self, e: QtGui.QDragEnterEvent):
        if e.mimeData().hasUrls() or e.mimeData().hasText():
            e.acceptProposedAction()
            return
        super().dragEnterEvent(e)

    def dragMoveEvent(self, e: QtGui.QDragMoveEvent):
        if e.mimeData().hasUrls() or e.mimeData().hasText():
            e.acceptProposedAction()
            return
        super().dragMoveEvent(e)

    def dropEvent(self, e: QtGui.QDropEvent):
        mime = e.mimeData()
        uris: list[str] = []
        if mime.hasUrls():
            for url in mime.urls():
                uris.append(bytes(url.toEncoded()).decode("ascii", errors="replace"))
        elif mime.hasText():
            for raw_line in str(mime.text() or "").splitlines():
                line = raw_line.strip()
                if line:
                    uris.append(line)
        text = format_dropped_paths(uris)
        if text:
            self.feed_child(text)
            self.setFocus()
        e.acceptProposedAction()

    # -------- Clipboard & Paste --------
    def paste(self):
        text = QtGui.QGuiApplication.clipboard().text()
        if not text:
            return
        payload = text.encode("utf-8")
        if self._bracket_paste_enabled:
            # xterm bracketed paste: ESC [ 200~ ... ESC [ 201~
            self._send(b"\x1b[200~" + payload + b"\x1b[201~")
        else:
            self._send(payload)
        self._ensure_bottom()

    def copySelection(self):
        text = self.selected_text()
        if text:
            QtGui.QGuiApplication.clipboard().setText(text)

    # -------- Scrolling & Resize --------
    def _ensure_bottom(self):
        if self._view_offset != 0:
            self._view_offset = 0
        self.update()

    def resizeEvent(self, e: QtGui.QResizeEvent):
        self._resize_grid()
        self.update()
        super().resizeEvent(e)

    # -------- Cleanup --------
    def shutdown(self):
        """Hang up on the child and release the PTY without reporting an exit."""
        self._child_exit_emitted = True
        if self._notifier is not None:
            self._notifier.setEnabled(False)
        self._spawn_timer.stop()
        pending, self._pending_spawns = self._pending_spawns, []
        for _args, _cwd, _env, callback in pending:
            callback(SpawnOutcome.failed("Terminal closed before the child was started"))
        # Reap first so a pid that already exited is never signalled
        self._poll_child()
        if self._pid is not None:
            try:
                os.kill(self._pid, signal.SIGHUP)
            except OSError:
                pass
            self._exit_watch.start()
        if self._fd is not None:
            try:
                os.close(self._fd)
            except OSError:
                pass
            self._fd = None
