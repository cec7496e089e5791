"""Tests for the keyboard/mouse action table."""

import pytest

from colossus.core.input_actions import (
    CONTEXT_MENU_ITEMS,
    KeyChord,
    TerminalAction,
    dispatch_button,
    dispatch_key,
    zoom_delta,
)


def chord(text: str) -> KeyChord:
    parsed = KeyChord.from_portable_text(text)
    assert parsed is not None
    return parsed


# === Copy / paste ===

def test_ctrl_c_without_selection_passes_through():
    assert dispatch_key(chord("Ctrl+C"), has_selection=False) is TerminalAction.PASS_THROUGH


def test_ctrl_c_with_selection_copies():
    assert dispatch_key(chord("Ctrl+C"), has_selection=True) is TerminalAction.COPY


def test_lowercase_key_name_behaves_the_same():
    assert dispatch_key(KeyChord(key="c", ctrl=True), has_selection=False) is TerminalAction.PASS_THROUGH


@pytest.mark.parametrize("has_selection", [True, False])
def test_ctrl_shift_c_always_copies(has_selection):
    assert dispatch_key(chord("Ctrl+Shift+C"), has_selection) is TerminalAction.COPY


@pytest.mark.parametrize("text", ["Ctrl+V", "Ctrl+Shift+V"])
@pytest.mark.parametrize("has_selection", [True, False])
def test_paste_chords(text, has_selection):
    assert dispatch_key(chord(text), has_selection) is TerminalAction.PASTE


# === Zoom ===

@pytest.mark.parametrize(
    "text,expected",
    [
        ("Ctrl++", TerminalAction.ZOOM_IN),
        ("Ctrl+=", TerminalAction.ZOOM_IN),
        ("Ctrl+KP_Add", TerminalAction.ZOOM_IN),
        ("Ctrl+Shift++", TerminalAction.ZOOM_IN),
        ("Ctrl+-", TerminalAction.ZOOM_OUT),
        ("Ctrl+KP_Subtract", TerminalAction.ZOOM_OUT),
        ("Ctrl+0", TerminalAction.ZOOM_RESET),
        ("Ctrl+KP_0", TerminalAction.ZOOM_RESET),
    ],
)
def test_zoom_chords(text, expected):
    assert dispatch_key(chord(text), has_selection=False) is expected


def test_zoom_deltas():
    assert zoom_delta(TerminalAction.ZOOM_IN) == pytest.approx(0.1)
    assert zoom_delta(TerminalAction.ZOOM_OUT) == pytest.approx(-0.1)
    assert zoom_delta(TerminalAction.ZOOM_RESET) == 0.0


# === Pass-through ===

@pytest.mark.parametrize(
    "text",
    ["C", "V", "0", "Shift+C", "Ctrl+D", "Ctrl+Z", "Ctrl+1", "Alt+C", "Ctrl+Alt+V", "Meta+Ctrl+C"],
)
def test_other_chords_pass_through(text):
    assert dispatch_key(chord(text), has_selection=True) is TerminalAction.PASS_THROUGH


def test_chord_without_key_passes_through():
    assert dispatch_key(KeyChord(key="", ctrl=True), has_selection=True) is TerminalAction.PASS_THROUGH


# === Mouse ===

def test_right_button_opens_context_menu():
    assert dispatch_button(3) is TerminalAction.CONTEXT_MENU


@pytest.mark.parametrize("button", [0, 1, 2, 4, 5])
def test_other_buttons_pass_through(button):
    assert dispatch_button(button) is TerminalAction.PASS_THROUGH


def test_context_menu_offers_copy_paste_select_all():
    assert CONTEXT_MENU_ITEMS == (
        ("Copy", TerminalAction.COPY),
        ("Paste", TerminalAction.PASTE),
        ("Select All", TerminalAction.SELECT_ALL),
    )


# === KeyChord ===

def test_chord_text_parsing_is_case_insensitive():
    assert chord("ctrl+shift+c") == KeyChord(key="C", ctrl=True, shift=True)


def test_plus_key_chord_text():
    assert chord("Ctrl++") == KeyChord(key="+", ctrl=True)


def test_empty_chord_text():
    assert KeyChord.from_portable_text("  ") is None
