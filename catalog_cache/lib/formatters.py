"""Response formatting helpers."""

from __future__ import annotations


def _fmt_percent(ratio: float | None) -> str:
    if ratio is None:
        return "n/a"
    return f"{ratio * 100:.1f}%"


def _fmt_age(seconds: float | None) -> str:
    if seconds is None:
        return "n/a"
    if seconds >= 3600:
        return f"{seconds / 3600:.1f}h"
    if seconds >= 60:
        return f"{seconds / 60:.1f}m"
    return f"{seconds:.0f}s"


def format_response(
    title: str,
    lines: list[str],
    source: str | None = None,
    warning: str | None = None,
) -> str:
    chunks: list[str] = [title]
    if source:
        chunks.append(f"Source: {source}")
    if warning:
        chunks.append(f"Warning: {warning}")
    chunks.extend(lines)
    return "\n".join(chunks)


def line_percent(label: str, ratio: float | None) -> str:
    return f"{label}: {_fmt_percent(ratio)}"


def line_age(label: str, seconds: float | None) -> str:
    return f"{label}: {_fmt_age(seconds)}"
