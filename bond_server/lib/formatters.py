"""Response formatting helpers."""

from __future__ import annotations

from bond_server.providers.models import SchedulePoint

PRICING_DISCLAIMER = "Prices are synthesized from published emission terms, not market quotes."


def _fmt_number(value: float | None, decimals: int = 2) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{decimals}f}"


def format_response(
    title: str,
    lines: list[str],
    source: str | None = None,
    warning: str | None = None,
    include_disclaimer: bool = True,
) -> str:
    chunks: list[str] = [title]
    if source:
        chunks.append(f"Source: {source}")
    if warning:
        chunks.append(f"Warning: {warning}")
    chunks.extend(lines)
    if include_disclaimer:
        chunks.extend(["---", PRICING_DISCLAIMER])
    return "\n".join(chunks)


def line_price(label: str, value: float | None, currency: str = "PLN") -> str:
    return f"{label}: {_fmt_number(value)} {currency}"


def schedule_lines(points: list[SchedulePoint], currency: str = "PLN", limit: int | None = None) -> list[str]:
    shown = points if limit is None or len(points) <= limit else points[-limit:]
    lines = [line_price(point.date.isoformat(), point.price, currency) for point in shown]
    if len(shown) < len(points):
        lines.insert(0, f"... {len(points) - len(shown)} earlier points omitted")
    return lines
