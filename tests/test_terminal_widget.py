"""Tests for the PTY side of the terminal widget: spawning, exit and shutdown."""

import os
import pty
import time

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6 import QtWidgets  # noqa: E402

from colossus.ui.widgets.terminal_widget import TerminalWidget  # noqa: E402


CHILD_ENV = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), "TERM": "xterm-256color"}


@pytest.fixture(scope="session")
def qapp():
    app = QtWidgets.QApplication.instance() or QtWidgets.QApplication(["colossus-tests"])
    yield app


@pytest.fixture
def terminal(qapp):
    widget = TerminalWidget()
    exits = []
    widget.childExited.connect(exits.append)
    widget.exits = exits
    yield widget
    widget.shutdown()
    wait_until(qapp, lambda: widget._pid is None, timeout=5.0)
    widget.deleteLater()
    qapp.processEvents()


@pytest.fixture
def forked_pids(monkeypatch):
    pids = []
    real_fork = pty.fork

    def recording_fork():
        pid, fd = real_fork()
        if pid != 0:
            pids.append(pid)
        return pid, fd

    monkeypatch.setattr(pty, "fork", recording_fork)
    return pids


def wait_until(qapp, predicate, timeout=5.0):
    """Pump the event loop until ``predicate()`` holds; return the longest stall."""
    deadline = time.monotonic() + timeout
    longest = 0.0
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached before timeout")
        started = time.monotonic()
        qapp.processEvents()
        longest = max(longest, time.monotonic() - started)
        time.sleep(0.01)
    return longest


def pump(qapp, seconds):
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        qapp.processEvents()
        time.sleep(0.01)


def spawn(qapp, widget, argv, cwd="/"):
    outcomes = []
    widget.spawn_async(argv, cwd, CHILD_ENV, outcomes.append)
    assert outcomes == []
    wait_until(qapp, lambda: outcomes)
    return outcomes


def assert_reaped(pid):
    with pytest.raises(ChildProcessError):
        os.waitpid(pid, os.WNOHANG)


# === Spawn failures ===

def test_missing_program_reports_exec_failure(qapp, terminal, forked_pids):
    outcomes = spawn(qapp, terminal, ["/no/such/prog", "x"])

    assert len(outcomes) == 1
    assert not outcomes[0].success
    assert outcomes[0].error_message == 'Failed to execute child process "/no/such/prog" (No such file or directory)'
    assert len(forked_pids) == 1
    assert_reaped(forked_pids[0])
    assert terminal._pid is None


def test_missing_directory_reports_chdir_failure(qapp, terminal, forked_pids):
    outcomes = spawn(qapp, terminal, ["/bin/sh", "-c", "true"], cwd="/no/dir")

    assert not outcomes[0].success
    assert outcomes[0].error_message.startswith('Failed to change to directory "/no/dir" (')
    assert_reaped(forked_pids[0])


def test_failed_spawn_never_reports_child_exit(qapp, terminal):
    spawn(qapp, terminal, ["/no/such/prog"])
    pump(qapp, 0.3)
    assert terminal.exits == []


# === Child exit ===

def test_child_exit_is_reported_once_with_status(qapp, terminal):
    outcomes = spawn(qapp, terminal, ["/bin/sh", "-c", "exit 3"])
    assert outcomes[0].success
    assert outcomes[0].pid > 0

    wait_until(qapp, lambda: terminal.exits)
    pump(qapp, 0.3)

    assert len(terminal.exits) == 1
    assert os.WIFEXITED(terminal.exits[0])
    assert os.WEXITSTATUS(terminal.exits[0]) == 3
    assert terminal._pid is None


def test_child_that_closes_its_terminal_does_not_block_the_event_loop(qapp, terminal):
    outcomes = spawn(qapp, terminal, ["/bin/sh", "-c", "exec </dev/null >/dev/null 2>&1; sleep 1"])
    assert outcomes[0].success

    pump(qapp, 0.3)
    assert terminal.exits == []

    stall = wait_until(qapp, lambda: terminal.exits, timeout=5.0)
    assert stall < 0.5
    assert len(terminal.exits) == 1


# === Shutdown ===

def test_shutdown_after_exit_does_not_signal_reaped_pid(qapp, terminal, monkeypatch):
    spawn(qapp, terminal, ["/bin/sh", "-c", "exit 0"])
    wait_until(qapp, lambda: terminal.exits)

    killed = []
    monkeypatch.setattr(os, "kill", lambda pid, sig: killed.append((pid, sig)))
    terminal.shutdown()
    assert killed == []


def test_shutdown_hangs_up_running_child_without_reporting_exit(qapp, terminal):
    outcomes = spawn(qapp, terminal, ["/bin/sh", "-c", "sleep 30"])
    pid = outcomes[0].pid

    terminal.shutdown()
    wait_until(qapp, lambda: terminal._pid is None)
    pump(qapp, 0.2)

    assert terminal.exits == []
    assert_reaped(pid)


def test_shutdown_fails_pending_spawn(qapp, terminal):
    outcomes = []
    terminal.spawn_async(["/bin/sh"], "/", CHILD_ENV, outcomes.append)
    terminal.shutdown()
    pump(qapp, 0.1)

    assert len(outcomes) == 1
    assert not outcomes[0].success
