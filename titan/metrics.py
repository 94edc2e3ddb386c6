"""Prometheus-style metrics: counters, gauges, histograms and their exposition."""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

NAMESPACE = "titan"

DEFAULT_BUCKETS: Tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)

_COMMAND = "command"
_BIZ = "biz"
_LEADER = "leader"
_ZTINFO = "ztinfo"
_LEVEL = "level"
_GCKEYS = "gckeys"
_EXPIRE = "expire"
_TIKV_GC = "tikvgc"

_MULTI_LABEL = (_BIZ, _COMMAND)


def exponential_buckets(start: float, factor: float, count: int) -> List[float]:
    """Return ``count`` bucket bounds, the first ``start``, each ``factor`` times the last."""
    if count < 1:
        raise ValueError("exponential_buckets needs a positive count")
    if start <= 0:
        raise ValueError("exponential_buckets needs a positive start value")
    if factor <= 1:
        raise ValueError("exponential_buckets needs a factor greater than 1")
    buckets = []
    bound = float(start)
    for _ in range(count):
        buckets.append(bound)
        bound *= factor
    return buckets


def _full_name(namespace: str, name: str) -> str:
    return "_".join(part for part in (namespace, name) if part)


def _format_float(value: float) -> str:
    """Format a float as the shortest representation, switching to exponent form like %g."""
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"
    sign, digits, exponent = Decimal(repr(value)).normalize().as_tuple()
    prefix = "-" if sign else ""
    exp = len(digits) + exponent - 1
    if exp < -4 or exp >= 6:
        mantissa = str(digits[0])
        if len(digits) > 1:
            mantissa += "." + "".join(str(d) for d in digits[1:])
        return f"{prefix}{mantissa}e{exp:+03d}"
    return prefix + format(abs(Decimal(repr(value)).normalize()), "f")


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _labels_text(pairs: Sequence[Tuple[str, str]]) -> str:
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{_escape_label(v)}"' for k, v in pairs) + "}"


def _render(name: str, documentation: str, kind: str, samples: List[str]) -> List[str]:
    return [f"# HELP {name} {_escape_help(documentation)}", f"# TYPE {name} {kind}", *samples]


class _Metric:
    kind = "untyped"

    def __init__(self, name: str = "", help: str = "", namespace: str = "") -> None:
        self.name = _full_name(namespace, name)
        self.documentation = help
        self._lock = threading.Lock()

    def _samples(self, name: str, pairs: Sequence[Tuple[str, str]]) -> List[str]:
        raise NotImplementedError

    def collect(self) -> List[str]:
        """Return the exposition lines of this metric on its own."""
        return _render(self.name, self.documentation, self.kind, self._samples(self.name, ()))


class Counter(_Metric):
    """A value that only goes up."""

    kind = "counter"

    def __init__(self, name: str = "", help: str = "", namespace: str = "") -> None:
        super().__init__(name, help, namespace)
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    def inc(self) -> None:
        self.add(1.0)

    def add(self, value: float) -> None:
        if value < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += value

    def _samples(self, name: str, pairs: Sequence[Tuple[str, str]]) -> List[str]:
        return [f"{name}{_labels_text(pairs)} {_format_float(self._value)}"]


class Gauge(_Metric):
    """A value that can go up and down."""

    kind = "gauge"

    def __init__(self, name: str = "", help: str = "", namespace: str = "") -> None:
        super().__init__(name, help, namespace)
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    def inc(self) -> None:
        self.add(1.0)

    def dec(self) -> None:
        self.add(-1.0)

    def add(self, value: float) -> None:
        with self._lock:
            self._value += value

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def _samples(self, name: str, pairs: Sequence[Tuple[str, str]]) -> List[str]:
        return [f"{name}{_labels_text(pairs)} {_format_float(self._value)}"]


class Histogram(_Metric):
    """Counts observations into cumulative buckets and tracks their sum."""

    kind = "histogram"

    def __init__(
        self,
        name: str = "",
        help: str = "",
        namespace: str = "",
        buckets: Optional[Iterable[float]] = None,
    ) -> None:
        super().__init__(name, help, namespace)
        bounds = [float(b) for b in (DEFAULT_BUCKETS if buckets is None else buckets)]
        if bounds and math.isinf(bounds[-1]) and bounds[-1] > 0:
            bounds.pop()
        if any(b >= nxt for b, nxt in zip(bounds, bounds[1:])):
            raise ValueError("histogram buckets must be in increasing order")
        self._bounds = bounds
        self._counts = [0] * len(bounds)
        self._count = 0
        self._sum = 0.0

    @property
    def count(self) -> int:
        return self._count

    @property
    def sum(self) -> float:
        return self._sum

    @property
    def buckets(self) -> List[Tuple[float, int]]:
        """Upper bounds with their cumulative counts, ending with +Inf."""
        with self._lock:
            result = []
            running = 0
            for bound, n in zip(self._bounds, self._counts):
                running += n
                result.append((bound, running))
            result.append((math.inf, self._count))
            return result

    def observe(self, value: float) -> None:
        with self._lock:
            for i, bound in enumerate(self._bounds):
                if value <= bound:
                    self._counts[i] += 1
                    break
            self._count += 1
            self._sum += value

    def _samples(self, name: str, pairs: Sequence[Tuple[str, str]]) -> List[str]:
        lines = [
            f"{name}_bucket{_labels_text([*pairs, ('le', _format_float(bound))])} {cumulative}"
            for bound, cumulative in self.buckets
        ]
        lines.append(f"{name}_sum{_labels_text(pairs)} {_format_float(self._sum)}")
        lines.append(f"{name}_count{_labels_text(pairs)} {self._count}")
        return lines


_Child = TypeVar("_Child", bound=_Metric)


class _MetricVec(Generic[_Child]):
    kind = "untyped"

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str],
        namespace: str,
        factory: Callable[[], _Child],
    ) -> None:
        self.name = _full_name(namespace, name)
        self.documentation = help
        self.label_names = tuple(label_names)
        self._factory = factory
        self._children: Dict[Tuple[str, ...], _Child] = {}
        self._lock = threading.Lock()

    def with_label_values(self, *args: str) -> _Child:
        """Return the child metric for these label values, creating it on first use."""
        if len(args) != len(self.label_names):
            raise ValueError(
                f"{self.name}: expected {len(self.label_names)} label values but got {len(args)}"
            )
        values = tuple(str(a) for a in args)
        with self._lock:
            child = self._children.get(values)
            if child is None:
                child = self._factory()
                self._children[values] = child
            return child

    def collect(self) -> List[str]:
        with self._lock:
            children = sorted(self._children.items())
        if not children:
            return []
        samples: List[str] = []
        for values, child in children:
            samples.extend(child._samples(self.name, list(zip(self.label_names, values))))
        return _render(self.name, self.documentation, self.kind, samples)


class CounterVec(_MetricVec[Counter]):
    """Counters partitioned by label values."""

    kind = "counter"

    def __init__(self, name: str, help: str, label_names: Sequence[str], namespace: str = "") -> None:
        super().__init__(name, help, label_names, namespace, Counter)

    def with_label_values(self, *args: str) -> Counter:
        return super().with_label_values(*args)


class GaugeVec(_MetricVec[Gauge]):
    """Gauges partitioned by label values."""

    kind = "gauge"

    def __init__(self, name: str, help: str, label_names: Sequence[str], namespace: str = "") -> None:
        super().__init__(name, help, label_names, namespace, Gauge)

    def with_label_values(self, *args: str) -> Gauge:
        return super().with_label_values(*args)


class HistogramVec(_MetricVec[Histogram]):
    """Histograms partitioned by label values, all sharing one bucket layout."""

    kind = "histogram"

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str],
        namespace: str = "",
        buckets: Optional[Iterable[float]] = None,
    ) -> None:
        bounds = tuple(DEFAULT_BUCKETS if buckets is None else buckets)
        Histogram(buckets=bounds)  # validate the layout up front
        super().__init__(name, help, label_names, namespace, lambda: Histogram(buckets=bounds))

    def with_label_values(self, *args: str) -> Histogram:
        return super().with_label_values(*args)


class Registry:
    """A set of collectors exposed together in the text format."""

    def __init__(self) -> None:
        self._collectors: Dict[str, object] = {}
        self._lock = threading.Lock()

    def register(self, collector):
        """Add a collector; a second collector with the same name is refused."""
        with self._lock:
            if collector.name in self._collectors:
                raise ValueError(
                    f"duplicate metrics collector registration attempted: {collector.name}"
                )
            self._collectors[collector.name] = collector
        return collector

    def expose(self) -> str:
        """Render every registered collector, sorted by name."""
        with self._lock:
            collectors = [self._collectors[name] for name in sorted(self._collectors)]
        lines: List[str] = []
        for collector in collectors:
            lines.extend(collector.collect())
        return "".join(line + "\n" for line in lines)


@dataclass
class Metrics:
    """All server metrics."""

    connection_online_gauge_vec: GaugeVec
    zt_info_counter_vec: CounterVec
    is_leader_gauge_vec: GaugeVec
    lrange_seek_histogram: Histogram
    gc_keys_counter_vec: CounterVec
    expire_keys_total: CounterVec
    tikv_gc_total: CounterVec
    command_call_histogram_vec: HistogramVec
    txn_begin_histogram_vec: HistogramVec
    command_func_done_histogram_vec: HistogramVec
    txn_commit_histogram_vec: HistogramVec
    reply_func_done_histogram_vec: HistogramVec
    command_args_num_histogram_vec: HistogramVec
    txn_retries_counter_vec: CounterVec
    txn_conflicts_counter_vec: CounterVec
    txn_failures_counter_vec: CounterVec
    multi_command_histogram_vec: HistogramVec
    log_metrics_counter_vec: CounterVec


def _create_metrics(registry: Registry) -> Metrics:
    def hist_vec(name: str, help: str, buckets: List[float]) -> HistogramVec:
        return registry.register(HistogramVec(name, help, _MULTI_LABEL, NAMESPACE, buckets))

    def counter_vec(name: str, help: str, labels: Sequence[str]) -> CounterVec:
        return registry.register(CounterVec(name, help, labels, NAMESPACE))

    def gauge_vec(name: str, help: str, labels: Sequence[str]) -> GaugeVec:
        return registry.register(GaugeVec(name, help, labels, NAMESPACE))

    return Metrics(
        command_call_histogram_vec=hist_vec(
            "command_duration_seconds", "The cost times of command call",
            exponential_buckets(0.0005, 1.4, 30)),
        txn_retries_counter_vec=counter_vec(
            "txn_retries_total", "The total of txn retries", _MULTI_LABEL),
        txn_conflicts_counter_vec=counter_vec(
            "txn_conflicts_total", "The total of txn conflicts", _MULTI_LABEL),
        command_args_num_histogram_vec=hist_vec(
            "command_args_num", "The arguments num of command not including the key",
            exponential_buckets(1, 2, 20)),
        txn_begin_histogram_vec=hist_vec(
            "txn_begin_seconds", "The cost times of txn begin",
            exponential_buckets(0.0002, 2, 10)),
        command_func_done_histogram_vec=hist_vec(
            "command_func_done_seconds", "The cost times of command func",
            exponential_buckets(0.0002, 2, 10)),
        txn_commit_histogram_vec=hist_vec(
            "txn_commit_seconds", "The cost times of txn commit",
            exponential_buckets(0.0005, 1.4, 30)),
        reply_func_done_histogram_vec=hist_vec(
            "reply_func_done_seconds", "The cost times of reply func",
            exponential_buckets(0.0001, 2, 10)),
        txn_failures_counter_vec=counter_vec(
            "txn_failures_total", "The total of txn failures", _MULTI_LABEL),
        multi_command_histogram_vec=hist_vec(
            "multi_command_total", "The number of command per txn",
            exponential_buckets(0.0005, 2, 20)),
        connection_online_gauge_vec=gauge_vec(
            "connect_online_number", "The number of online connection", (_BIZ,)),
        lrange_seek_histogram=registry.register(Histogram(
            "lrange_seek_duration_seconds", "The cost times of list lrange seek", NAMESPACE,
            exponential_buckets(0.0005, 1.4, 30))),
        zt_info_counter_vec=counter_vec(
            "zt_info_total", "zlist transfer worker summary", (_ZTINFO,)),
        gc_keys_counter_vec=counter_vec(
            "gc_keys_total", "the number of gc keys added or deleted", (_GCKEYS,)),
        expire_keys_total=counter_vec(
            "expire_keys_total", "the number of expire keys added or expired", (_EXPIRE,)),
        tikv_gc_total=counter_vec(
            "tikv_gc_total", "the number of tikv gc total by exec", (_TIKV_GC,)),
        is_leader_gauge_vec=gauge_vec(
            "is_leader", "mark titan is leader for gc/expire/zt/tikvgc", (_LEADER,)),
        log_metrics_counter_vec=counter_vec(
            "logs_entries_total", "Number of logs of certain level", (_LEVEL,)),
    )


REGISTRY = Registry()
_METRICS = _create_metrics(REGISTRY)


def get_metrics() -> Metrics:
    """Return the process-wide metrics object."""
    return _METRICS


def measure(logger_name: str, level: str) -> None:
    """Count one log entry of ``level`` written by ``logger_name``."""
    _METRICS.log_metrics_counter_vec.with_label_values(f"{logger_name}_{level}").inc()