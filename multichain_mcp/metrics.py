"""
In-process instrumentation sink (not suitable for multi-process aggregation).

Counters are monotonic and keyed by ``(network, operation)``. Each counter
owns its own lock, so increments for unrelated keys never wait on each other.
"""

from __future__ import annotations

from threading import Lock
from typing import Dict, List, Tuple

METRIC_PREFIX = "multichain_mcp"

Key = Tuple[str, str]


class _Counter:
    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0

    def incr(self) -> None:
        with self._lock:
            self._value += 1

    @property
    def value(self) -> int:
        return self._value


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


class InstrumentationSink:
    def __init__(self) -> None:
        self._invocations: Dict[Key, _Counter] = {}
        self._errors: Dict[Key, _Counter] = {}
        self._requests = _Counter()
        self._rate_limited = _Counter()

    @staticmethod
    def _counter(table: Dict[Key, _Counter], key: Key) -> _Counter:
        counter = table.get(key)
        if counter is None:
            # setdefault is atomic; a racing creator gets the winning counter.
            counter = table.setdefault(key, _Counter())
        return counter

    def increment(self, network: str, operation: str, *, success: bool = True) -> None:
        """Record one dispatched operation; failures also bump the error counter."""
        key = (str(network), str(operation))
        self._counter(self._invocations, key).incr()
        if not success:
            self._counter(self._errors, key).incr()

    def incr_request(self) -> None:
        self._requests.incr()

    def incr_rate_limited(self) -> None:
        self._rate_limited.incr()

    def value(self, network: str, operation: str) -> int:
        counter = self._invocations.get((str(network), str(operation)))
        return counter.value if counter is not None else 0

    def error_value(self, network: str, operation: str) -> int:
        counter = self._errors.get((str(network), str(operation)))
        return counter.value if counter is not None else 0

    @property
    def requests(self) -> int:
        return self._requests.value

    @property
    def rate_limited(self) -> int:
        return self._rate_limited.value

    @staticmethod
    def _labelled(name: str, help_text: str, table: Dict[Key, _Counter]) -> List[str]:
        lines = [f"# HELP {name} {help_text}", f"# TYPE {name} counter"]
        items = sorted(list(table.items()), key=lambda item: item[0])
        for (network, operation), counter in items:
            lines.append(
                f'{name}{{network="{_escape_label(network)}",operation="{_escape_label(operation)}"}} '
                f"{counter.value}"
            )
        return lines

    def snapshot(self) -> str:
        """Render all counters in the Prometheus text exposition format."""
        lines: List[str] = []
        lines.extend(
            self._labelled(
                f"{METRIC_PREFIX}_invocations_total",
                "Dispatched operations by network and operation.",
                self._invocations,
            )
        )
        lines.extend(
            self._labelled(
                f"{METRIC_PREFIX}_invocation_errors_total",
                "Operations that returned an error envelope.",
                self._errors,
            )
        )
        lines.append(f"# HELP {METRIC_PREFIX}_http_requests_total HTTP requests received.")
        lines.append(f"# TYPE {METRIC_PREFIX}_http_requests_total counter")
        lines.append(f"{METRIC_PREFIX}_http_requests_total {self._requests.value}")
        lines.append(f"# HELP {METRIC_PREFIX}_rate_limited_total Calls rejected by the rate limiter.")
        lines.append(f"# TYPE {METRIC_PREFIX}_rate_limited_total counter")
        lines.append(f"{METRIC_PREFIX}_rate_limited_total {self._rate_limited.value}")
        return "\n".join(lines) + "\n"


default_metrics = InstrumentationSink()
