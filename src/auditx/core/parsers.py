"""Free-text parsers for evaluator output.

The evaluator writes three ad hoc text formats into each audit document:

- ``gapReport``: one control per line,
  ``[A-1.2] Gap: 0.35 | Score: 65% | description``
- ``recommendations``: ``[A-1.2]:`` headers, each followed by ``-`` bullets
- ``executiveSummary``: markdown with ``### Top 3 Strengths`` and
  ``### Top 3 Critical Gaps`` sections of numbered items

Each parser is a pure function over one string. Malformed fragments are
skipped, never raised.
"""

from __future__ import annotations

import math
import re
from typing import Optional

from ..models.audit import ExecutiveSummary, Finding, RecommendationGroup
from .scoring import classify_control

CONTROL_ID_PATTERN = r"[A-B]-\d+\.\d+"

GAP_LINE_RE = re.compile(
    rf"\[({CONTROL_ID_PATTERN})\]\s*Gap:\s*([\d.]+)\s*\|\s*Score:\s*(\d+)%\s*\|\s*(.*)"
)
RECOMMENDATION_HEADER_RE = re.compile(rf"\[({CONTROL_ID_PATTERN})\]:")
NUMBERED_ITEM_RE = re.compile(r"^\d+\.\s*")
BOLD_LEAD_RE = re.compile(r"^\*\*(.*?)(?:\*\*|$)")

STRENGTHS_HEADER = "### Top 3 Strengths"
GAPS_HEADER = "### Top 3 Critical Gaps"


def _parse_gap_line(line: str) -> Optional[Finding]:
    m = GAP_LINE_RE.search(line)
    if not m:
        return None
    try:
        gap = float(m.group(2))
        score = int(m.group(3))
    except ValueError:
        return None
    if not math.isfinite(gap) or score > 100:
        return None

    control_id = m.group(1)
    return Finding(
        control_id=control_id,
        control_name=f"Control {control_id}",
        gap=gap,
        score=score,
        description=m.group(4).strip(),
        status_code=classify_control(score),
    )


def parse_gap_report(text: Optional[str]) -> list[Finding]:
    """Parse a gap report into findings, largest gap first."""
    if not text:
        return []

    findings: list[Finding] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        finding = _parse_gap_line(line)
        if finding is not None:
            findings.append(finding)

    # sorted() is stable with reverse=True, so equal gaps keep line order
    return sorted(findings, key=lambda f: f.gap, reverse=True)


def parse_recommendations(text: Optional[str]) -> list[RecommendationGroup]:
    """Parse ``[control]:`` sections into recommendation groups."""
    if not text:
        return []

    # re.split with one capture group: [preamble, id, body, id, body, ...]
    parts = RECOMMENDATION_HEADER_RE.split(text)
    groups: list[RecommendationGroup] = []
    for i in range(1, len(parts), 2):
        control_id = parts[i]
        body = parts[i + 1] if i + 1 < len(parts) else ""
        items = [
            line.strip()[1:].strip()
            for line in body.splitlines()
            if line.strip().startswith("-")
        ]
        groups.append(RecommendationGroup(control_id=control_id, items=tuple(items)))
    return groups


def _section_items(text: str, header: str) -> list[str]:
    m = re.search(rf"{re.escape(header)}\s*([\s\S]*?)(?=###|\Z)", text)
    if not m:
        return []

    items: list[str] = []
    for line in m.group(1).splitlines():
        line = line.strip()
        if not NUMBERED_ITEM_RE.match(line):
            continue
        item = NUMBERED_ITEM_RE.sub("", line, count=1)
        bold = BOLD_LEAD_RE.match(item)
        if bold:
            item = bold.group(1)
        item = item.strip()
        if item:
            items.append(item)
    return items


def parse_executive_summary(text: Optional[str]) -> ExecutiveSummary:
    """Extract the top strengths and critical gaps from an executive summary."""
    if not text:
        return ExecutiveSummary()
    return ExecutiveSummary(
        strengths=tuple(_section_items(text, STRENGTHS_HEADER)),
        gaps=tuple(_section_items(text, GAPS_HEADER)),
    )
