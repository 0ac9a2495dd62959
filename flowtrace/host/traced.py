"""Observable values that notify subscribers with (old, new) on change."""

from __future__ import annotations

from collections.abc import Callable

type ChangeCallback = Callable[[float, float], None]


class TracedValue:
    def __init__(self, value: float = 0.0) -> None:
        self._value = value
        self._callbacks: list[ChangeCallback] = []

    @property
    def value(self) -> float:
        return self._value

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def connect(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    def set(self, value: float) -> None:
        if value == self._value:
            return
        old, self._value = self._value, value
        for callback in self._callbacks:
            callback(old, value)
