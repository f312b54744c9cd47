"""A manual scheduler for debounce tests: callbacks run only when fired."""

from __future__ import annotations

from collections.abc import Callable


class ManualScheduler:
    """Drop-in for ``thread_timer_scheduler`` that never fires on its own."""

    def __init__(self) -> None:
        self.entries: list[list] = []  # [callback, delay, active]

    def __call__(self, delay: float, fn: Callable[[], None]) -> Callable[[], None]:
        entry = [fn, delay, True]
        self.entries.append(entry)

        def cancel() -> None:
            entry[2] = False

        return cancel

    @property
    def active(self) -> int:
        return sum(1 for e in self.entries if e[2])

    def fire(self) -> int:
        """Run every still-active callback; return how many ran."""

        entries, self.entries = self.entries, []
        ran = 0
        for fn, _delay, active in entries:
            if active:
                fn()
                ran += 1
        return ran
