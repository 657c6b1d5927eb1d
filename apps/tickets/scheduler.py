"""
Cooperative timer queue driven by an injected clock.

Nothing runs on its own: callbacks fire only when the owner calls
run_due(), in deadline order, on the caller's thread. The web adapter calls
it on every request with the wall clock; tests call it with a fake clock.

Public API:
  Scheduler(clock)
  Scheduler.call_at / call_later / call_every  → TimerHandle
  Scheduler.run_due(now=None)
  CancellationToken(*handles)
"""
import heapq
import itertools


class TimerHandle:
    """A scheduled callback. Periodic when `interval` is set."""

    def __init__(self, when: float, callback, interval: float = None):
        self.when = when
        self.callback = callback
        self.interval = interval
        self.runs = 0
        self._first = when
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def _advance(self) -> None:
        # Derived from the first deadline so float error does not accumulate
        self.runs += 1
        self.when = self._first + self.runs * self.interval

    def __repr__(self):
        state = 'cancelled' if self._cancelled else 'pending'
        return f"<TimerHandle when={self.when:.3f} interval={self.interval} {state}>"


class Scheduler:

    def __init__(self, clock):
        self._clock = clock
        self._queue = []
        self._seq = itertools.count()

    def now(self) -> float:
        return self._clock()

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))

    def call_at(self, when: float, callback) -> TimerHandle:
        handle = TimerHandle(when, callback)
        self._push(handle)
        return handle

    def call_later(self, delay: float, callback, start: float = None) -> TimerHandle:
        base = self.now() if start is None else start
        return self.call_at(base + delay, callback)

    def call_every(self, interval: float, callback, start: float = None) -> TimerHandle:
        """Fire every `interval` seconds, first at start + interval."""
        if interval <= 0:
            raise ValueError('Timer interval must be positive.')
        base = self.now() if start is None else start
        handle = TimerHandle(base + interval, callback, interval=interval)
        self._push(handle)
        return handle

    def run_due(self, now: float = None) -> int:
        """Fire every callback whose deadline is <= now. Returns how many fired."""
        now = self.now() if now is None else now
        fired = 0
        while self._queue and self._queue[0][0] <= now:
            _, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            if handle.interval is not None:
                handle._advance()
                self._push(handle)
            handle.callback()
            fired += 1
        return fired

    def pending(self) -> int:
        return sum(1 for _, _, handle in self._queue if not handle.cancelled)


class CancellationToken:
    """Cancels a group of timers together."""

    def __init__(self, *handles: TimerHandle):
        self._handles = list(handles)
        self._cancelled = False

    def add(self, handle: TimerHandle) -> TimerHandle:
        if self._cancelled:
            handle.cancel()
        self._handles.append(handle)
        return handle

    def cancel(self) -> None:
        self._cancelled = True
        for handle in self._handles:
            handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled
