from __future__ import annotations

from dataclasses import dataclass

from colossus.core.input_actions import TerminalAction, zoom_delta

MIN_SCALE = 0.5
MAX_SCALE = 3.0
DEFAULT_SCALE = 1.0


def clamp_scale(value: float, minimum: float = MIN_SCALE, maximum: float = MAX_SCALE) -> float:
    # Rounded so repeated 0.1 steps land on exact values.
    return round(max(minimum, min(maximum, float(value))), 4)


@dataclass(slots=True)
class ZoomState:
    scale: float = DEFAULT_SCALE
    minimum: float = MIN_SCALE
    maximum: float = MAX_SCALE


class FontScaleController:
    """Owns the window's font scale and applies zoom actions to it."""

    def __init__(self, state: ZoomState | None = None) -> None:
        self._state = state if state is not None else ZoomState()
        self._state.scale = clamp_scale(self._state.scale, self._state.minimum, self._state.maximum)

    @property
    def scale(self) -> float:
        return self._state.scale

    def adjust(self, delta: float) -> float:
        self._state.scale = clamp_scale(self._state.scale + delta, self._state.minimum, self._state.maximum)
        return self._state.scale

    def zoom_in(self) -> float:
        return self.apply(TerminalAction.ZOOM_IN)

    def zoom_out(self) -> float:
        return self.apply(TerminalAction.ZOOM_OUT)

    def reset(self) -> float:
        self._state.scale = DEFAULT_SCALE
        return self._state.scale

    def apply(self, action: TerminalAction) -> float:
        if action is TerminalAction.ZOOM_RESET:
            return self.reset()
        delta = zoom_delta(action)
        if delta:
            return self.adjust(delta)
        return self._state.scale
