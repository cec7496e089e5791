"""Keyboard chord and mouse button to terminal action mapping."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TerminalAction(Enum):
    COPY = "copy"
    PASTE = "paste"
    SELECT_ALL = "select_all"
    ZOOM_IN = "zoom_in"
    ZOOM_OUT = "zoom_out"
    ZOOM_RESET = "zoom_reset"
    CONTEXT_MENU = "context_menu"
    PASS_THROUGH = "pass_through"


@dataclass(frozen=True, slots=True)
class KeyChord:
    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False

    @staticmethod
    def from_portable_text(chord_text: str) -> "KeyChord | None":
        text = str(chord_text or "").strip()
        if not text:
            return None
        # "Ctrl++" names the plus key itself
        if text.endswith("++"):
            tokens = [tok.strip() for tok in text[:-2].split("+") if tok.strip()] + ["+"]
        else:
            tokens = [tok.strip() for tok in text.split("+") if tok.strip()]
        if not tokens:
            return None
        mods = {tok.lower() for tok in tokens[:-1]}
        key = tokens[-1]
        if len(key) == 1:
            key = key.upper()
        return KeyChord(
            key=key,
            ctrl=("ctrl" in mods),
            alt=("alt" in mods),
            shift=("shift" in mods),
            meta=("meta" in mods or "cmd" in mods),
        )


@dataclass(frozen=True, slots=True)
class InputBinding:
    chord_text: str
    action: TerminalAction


# Exact chords; Ctrl+C without Shift is handled separately (selection-aware).
KEY_BINDINGS: tuple[InputBinding, ...] = (
    InputBinding("Ctrl+Shift+C", TerminalAction.COPY),
    InputBinding("Ctrl+Shift+V", TerminalAction.PASTE),
    InputBinding("Ctrl+V", TerminalAction.PASTE),
)

ZOOM_KEYS: dict[str, TerminalAction] = {
    "+": TerminalAction.ZOOM_IN,
    "=": TerminalAction.ZOOM_IN,
    "KP_Add": TerminalAction.ZOOM_IN,
    "-": TerminalAction.ZOOM_OUT,
    "KP_Subtract": TerminalAction.ZOOM_OUT,
    "0": TerminalAction.ZOOM_RESET,
    "KP_0": TerminalAction.ZOOM_RESET,
}

ZOOM_STEP = 0.1

CONTEXT_MENU_BUTTON = 3
CONTEXT_MENU_ITEMS: tuple[tuple[str, TerminalAction], ...] = (
    ("Copy", TerminalAction.COPY),
    ("Paste", TerminalAction.PASTE),
    ("Select All", TerminalAction.SELECT_ALL),
)

_ACTION_BY_CHORD: dict[KeyChord, TerminalAction] = {
    KeyChord.from_portable_text(binding.chord_text): binding.action for binding in KEY_BINDINGS
}


def dispatch_key(chord: KeyChord, has_selection: bool) -> TerminalAction:
    if not chord.ctrl or chord.alt or chord.meta:
        return TerminalAction.PASS_THROUGH

    key = chord.key.upper() if len(chord.key) == 1 else chord.key
    if key == "C" and not chord.shift:
        # Plain Ctrl+C must reach the child as an interrupt unless there is
        # something to copy.
        return TerminalAction.COPY if has_selection else TerminalAction.PASS_THROUGH

    action = _ACTION_BY_CHORD.get(KeyChord(key=key, ctrl=True, shift=chord.shift))
    if action is not None:
        return action
    return ZOOM_KEYS.get(key, TerminalAction.PASS_THROUGH)


def dispatch_button(button: int) -> TerminalAction:
    if button == CONTEXT_MENU_BUTTON:
        return TerminalAction.CONTEXT_MENU
    return TerminalAction.PASS_THROUGH


def zoom_delta(action: TerminalAction) -> float:
    if action is TerminalAction.ZOOM_IN:
        return ZOOM_STEP
    if action is TerminalAction.ZOOM_OUT:
        return -ZOOM_STEP
    return 0.0
