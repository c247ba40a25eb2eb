"""Keyboard and mouse-button state tracking across frames."""

from __future__ import annotations

from enum import Enum, auto
from collections.abc import Hashable


class InputState(Enum):
    INVALID = auto()
    REGISTERED = auto()
    UNREGISTERED = auto()
    TRIGGERED = auto()
    PRESSED = auto()
    RELEASED = auto()


_NEXT_STATE = {
    InputState.REGISTERED: InputState.TRIGGERED,
    InputState.TRIGGERED: InputState.PRESSED,
    InputState.UNREGISTERED: InputState.RELEASED,
}


def _advance(container: dict) -> None:
    for key in [k for k, state in container.items() if state is InputState.RELEASED]:
        del container[key]
    for key, state in list(container.items()):
        container[key] = _NEXT_STATE.get(state, state)


def _sub(a, b) -> tuple[int, int]:
    return (a[0] - b[0], a[1] - b[1])


class InputManager:
    """Tracks key and button states and mouse movement, advanced once per frame."""

    def __init__(self):
        self._keys: dict[Hashable, InputState] = {}
        self._buttons: dict[Hashable, InputState] = {}
        self.mouse_position = (0, 0)
        self.mouse_previous_position = (0, 0)
        self.mouse_triggered_position = (0, 0)
        self.mouse_delta = (0, 0)
        self.mouse_triggered_delta = (0, 0)

    def key_state(self, key) -> InputState:
        return self._keys.get(key, InputState.INVALID)

    def button_state(self, button) -> InputState:
        return self._buttons.get(button, InputState.INVALID)

    def set_mouse_triggered_position(self) -> None:
        self.mouse_triggered_position = self.mouse_position

    def update(self, local_mouse_pos) -> None:
        """Record the mouse position and move every key and button to its next state."""
        self.mouse_previous_position = self.mouse_position
        self.mouse_position = tuple(local_mouse_pos)
        self.mouse_delta = _sub(self.mouse_position, self.mouse_previous_position)
        self.mouse_triggered_delta = _sub(self.mouse_position, self.mouse_triggered_position)
        _advance(self._buttons)
        _advance(self._keys)

    def register_key_press(self, key) -> None:
        self._keys.setdefault(key, InputState.REGISTERED)

    def register_key_release(self, key) -> None:
        if key in self._keys:
            self._keys[key] = InputState.UNREGISTERED

    def register_mouse_press(self, button) -> None:
        self._buttons.setdefault(button, InputState.REGISTERED)

    def register_mouse_release(self, button) -> None:
        if button in self._buttons:
            self._buttons[button] = InputState.UNREGISTERED

    def reset(self) -> None:
        """Forget all key and button states."""
        self._keys.clear()
        self._buttons.clear()