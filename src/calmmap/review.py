"""
Plain-text review report of request resolution.

Shows, per request, the start, end and route segments or the error that
stopped each stage, so misresolved requests can be spotted and corrected
with an override file.
"""

from typing import Iterable, List

from calmmap.pipeline import RequestAttempt


def _section(title: str, segments, error) -> List[str]:
    lines = [f"  {title}:"]
    if error is not None:
        lines.append(f"    Error: {error}")
        return lines
    lines.extend(f"    {seg}" for seg in segments)
    return lines


def render_attempt(attempt: RequestAttempt) -> str:
    """Render one request attempt as an indented text block.

    Stages after the first failure are not shown, matching how far the
    handler got.
    """
    lines = [str(attempt.request)]

    lines += _section("start", attempt.start_segments, attempt.start_error)
    if attempt.start_error is None:
        lines += _section("end", attempt.end_segments, attempt.end_error)
        if attempt.end_error is None:
            lines += _section("route", attempt.route_segments, attempt.route_error)

    return "\n".join(lines)


def render_report(attempts: Iterable[RequestAttempt], failures_only: bool = False) -> str:
    """Render attempts separated by blank lines."""
    blocks = [
        render_attempt(att) for att in attempts
        if not (failures_only and att.succeeded)
    ]
    return "\n\n".join(blocks) + ("\n" if blocks else "")
