"""Renders report sections to the plain-text report."""

from typing import List, Sequence

from embassy_checker.models.report import ReportSection


def render_section(section: ReportSection) -> str:
    lines: List[str] = [
        f"-------{section.title}-------",
        f"Total regions found: {section.total}.",
    ]
    lines.extend(str(entry) for entry in section.entries)
    return "\n".join(lines) + "\n"


def render_report(sections: Sequence[ReportSection]) -> str:
    """Render sections in the given order, each followed by a blank line."""
    return "".join(render_section(s) + "\n" for s in sections)
