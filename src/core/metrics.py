"""In-process metrics collector with Prometheus text exposition."""

from __future__ import annotations

from collections import defaultdict
from threading import Lock
import time
from typing import Dict, Iterable, List, Tuple


_lock = Lock()
_started_at = time.time()

_http_requests_total: Dict[Tuple[str, str, str], int] = defaultdict(int)
_http_request_duration_sum: Dict[Tuple[str, str], float] = defaultdict(float)
_http_request_duration_count: Dict[Tuple[str, str], int] = defaultdict(int)
_posts_generated_total: Dict[str, int] = defaultdict(int)
_postcard_insert_failures_total: int = 0
_translations_total: Dict[Tuple[str, str], int] = defaultdict(int)
_llm_errors_total: Dict[str, int] = defaultdict(int)
_progress_streams_total: int = 0


def _escape_label(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _normalize_label(value: str, *, fallback: str = "unknown") -> str:
    normalized = (value or "").strip()
    return normalized or fallback


def record_http_request(*, method: str, path: str, status_code: int, duration_seconds: float) -> None:
    status = str(status_code)
    method_label = method.upper()
    path_label = path or "unknown"
    duration = max(duration_seconds, 0.0)

    with _lock:
        _http_requests_total[(method_label, path_label, status)] += 1
        _http_request_duration_sum[(method_label, path_label)] += duration
        _http_request_duration_count[(method_label, path_label)] += 1


def record_posts_generated(*, template: str, count: int = 1) -> None:
    if count <= 0:
        return
    with _lock:
        _posts_generated_total[_normalize_label(template)] += int(count)


def record_postcard_insert_failure(count: int = 1) -> None:
    global _postcard_insert_failures_total
    if count <= 0:
        return
    with _lock:
        _postcard_insert_failures_total += int(count)


def record_translation(*, mode: str, outcome: str, count: int = 1) -> None:
    if count <= 0:
        return
    with _lock:
        _translations_total[(_normalize_label(mode), _normalize_label(outcome))] += int(count)


def record_llm_error(*, kind: str) -> None:
    with _lock:
        _llm_errors_total[_normalize_label(kind)] += 1


def record_progress_stream_opened() -> None:
    global _progress_streams_total
    with _lock:
        _progress_streams_total += 1


def _section(name: str, help_text: str, metric_type: str) -> List[str]:
    return [f"# HELP {name} {help_text}", f"# TYPE {name} {metric_type}"]


def _labelled(name: str, labels: Iterable[Tuple[str, str]], value: object) -> str:
    rendered = ",".join(f'{key}="{_escape_label(label)}"' for key, label in labels)
    return f"{name}{{{rendered}}} {value}"


def render_prometheus_metrics(*, app_name: str, app_version: str, env: str) -> str:
    uptime = max(time.time() - _started_at, 0.0)

    with _lock:
        http_total = dict(_http_requests_total)
        duration_sum = dict(_http_request_duration_sum)
        duration_count = dict(_http_request_duration_count)
        posts_generated_total = dict(_posts_generated_total)
        insert_failures_total = _postcard_insert_failures_total
        translations_total = dict(_translations_total)
        llm_errors_total = dict(_llm_errors_total)
        progress_streams_total = _progress_streams_total

    lines = _section("contentos_build_info", "Build metadata.", "gauge")
    lines.append(
        _labelled(
            "contentos_build_info",
            [("app_name", app_name), ("version", app_version), ("env", env)],
            1,
        )
    )
    lines.extend(_section("contentos_process_uptime_seconds", "Process uptime in seconds.", "gauge"))
    lines.append(f"contentos_process_uptime_seconds {uptime:.6f}")

    lines.extend(_section("contentos_http_requests_total", "Total HTTP requests.", "counter"))
    for (method, path, status), value in sorted(http_total.items()):
        lines.append(
            _labelled(
                "contentos_http_requests_total",
                [("method", method), ("path", path), ("status", status)],
                value,
            )
        )

    lines.extend(_section("contentos_http_request_duration_seconds", "Request duration summary.", "summary"))
    for (method, path), value in sorted(duration_sum.items()):
        lines.append(
            _labelled(
                "contentos_http_request_duration_seconds_sum",
                [("method", method), ("path", path)],
                f"{value:.6f}",
            )
        )
    for (method, path), value in sorted(duration_count.items()):
        lines.append(
            _labelled(
                "contentos_http_request_duration_seconds_count",
                [("method", method), ("path", path)],
                value,
            )
        )

    lines.extend(_section("contentos_posts_generated_total", "Total generated English posts.", "counter"))
    for template, value in sorted(posts_generated_total.items()):
        lines.append(_labelled("contentos_posts_generated_total", [("template", template)], value))

    lines.extend(
        _section("contentos_postcard_insert_failures_total", "Generated posts that failed to persist.", "counter")
    )
    lines.append(f"contentos_postcard_insert_failures_total {insert_failures_total}")

    lines.extend(_section("contentos_translations_total", "Translations by mode and outcome.", "counter"))
    for (mode, outcome), value in sorted(translations_total.items()):
        lines.append(
            _labelled(
                "contentos_translations_total",
                [("mode", mode), ("outcome", outcome)],
                value,
            )
        )

    lines.extend(_section("contentos_llm_errors_total", "LLM API errors by kind.", "counter"))
    for kind, value in sorted(llm_errors_total.items()):
        lines.append(_labelled("contentos_llm_errors_total", [("kind", kind)], value))

    lines.extend(_section("contentos_progress_streams_total", "Progress streams opened.", "counter"))
    lines.append(f"contentos_progress_streams_total {progress_streams_total}")

    lines.append("")
    return "\n".join(lines)


def reset_metrics_for_tests() -> None:
    global _started_at, _postcard_insert_failures_total, _progress_streams_total
    with _lock:
        _http_requests_total.clear()
        _http_request_duration_sum.clear()
        _http_request_duration_count.clear()
        _posts_generated_total.clear()
        _translations_total.clear()
        _llm_errors_total.clear()
        _postcard_insert_failures_total = 0
        _progress_streams_total = 0
    _started_at = time.time()
