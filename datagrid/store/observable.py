# datagrid/store/observable.py
# Observer registry with an "apply without notifying" primitive

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterable, Iterator

from datagrid.utils.logger import log_exception

Listener = Callable[[frozenset], None]


class Observable:
    """
    Base for state containers.

    Mutators call `_changed(fields)`; each field's version counter is bumped
    (derived values key their caches on these) and subscribers are told which
    fields changed. Inside `untracked()` versions still move but nobody is
    notified.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []
        self._versions: dict[str, int] = {}
        self._untracked_depth = 0

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def untracked(self) -> Iterator[None]:
        self._untracked_depth += 1
        try:
            yield
        finally:
            self._untracked_depth -= 1

    @property
    def is_tracking(self) -> bool:
        return self._untracked_depth == 0

    def version(self, *fields: str) -> tuple:
        return tuple(self._versions.get(f, 0) for f in fields)

    def _changed(self, fields: Iterable[str]) -> None:
        changed = frozenset(fields)
        if not changed:
            return
        for field in changed:
            self._versions[field] = self._versions.get(field, 0) + 1
        if not self.is_tracking:
            return
        for listener in list(self._listeners):
            try:
                listener(changed)
            except Exception as e:
                # One broken subscriber must not block the others
                log_exception(e, "Observable: listener failed")
