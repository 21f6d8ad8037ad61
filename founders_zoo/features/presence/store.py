"""
Readable value with setup/teardown around its observers.

``subscribe(run)`` calls ``run`` with the current value straight away and on
every later change, and returns an unsubscribe function. The optional
``start`` callback runs when the first observer arrives; whatever it returns
runs when the last observer leaves.
"""

from __future__ import annotations

from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")

Setter = Callable[[T], None]
StartFn = Callable[[Setter], Optional[Callable[[], None]]]

_SCALARS = (str, int, float, bool, type(None))


def _changed(old: object, new: object) -> bool:
    # Scalars are compared by value; anything else always counts as a change
    if isinstance(new, _SCALARS) and isinstance(old, _SCALARS):
        return old != new or type(old) is not type(new)
    return True


class Readable(Generic[T]):
    def __init__(self, initial: T, start: Optional[StartFn] = None):
        self._value = initial
        self._start = start
        self._stop: Optional[Callable[[], None]] = None
        self._observers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def _set(self, value: T) -> None:
        if not _changed(self._value, value):
            return
        self._value = value
        for run in list(self._observers):
            run(value)

    def subscribe(self, run: Callable[[T], None]) -> Callable[[], None]:
        if not self._observers and self._start is not None:
            self._stop = self._start(self._set) or None
        self._observers.append(run)
        run(self._value)

        done = False

        def unsubscribe() -> None:
            nonlocal done
            if done:
                return
            done = True
            self._observers.remove(run)
            if not self._observers and self._stop is not None:
                stop, self._stop = self._stop, None
                stop()

        return unsubscribe
