"""Score thresholds, status classification and module statistics.

Every score-to-status decision in AuditX goes through this module:

- control level: Pass >= 90, Partial >= 70, Fail otherwise
- audit level: approved >= 90, rejected < 70, pending_review otherwise
"""

from __future__ import annotations

import math
from typing import Iterable

from ..models.audit import AuditStatus, ControlStatus, Finding, ModuleStats

PASS_THRESHOLD = 90
PARTIAL_THRESHOLD = 70

# Legacy display placeholder used when a module has no parsed findings.
# TODO: drop once the evaluator is confirmed to always emit every control.
DEFAULT_TOTAL_CONTROLS = 7

MODULE_PREFIXES = {"A": "A-", "B": "B-"}


def classify_control(score: float) -> ControlStatus:
    if score >= PASS_THRESHOLD:
        return ControlStatus.PASS
    if score >= PARTIAL_THRESHOLD:
        return ControlStatus.PARTIAL
    return ControlStatus.FAIL


def classify_status(score: float) -> AuditStatus:
    """Map an overall score to the audit review status."""
    if score >= PASS_THRESHOLD:
        return AuditStatus.APPROVED
    if score < PARTIAL_THRESHOLD:
        return AuditStatus.REJECTED
    return AuditStatus.PENDING_REVIEW


def round_score(value: float) -> float:
    """Round half-up to one decimal place.

    Values too large to scale are returned unchanged.
    """
    scaled = value * 10
    if not math.isfinite(scaled):
        return value
    return math.floor(scaled + 0.5) / 10


def partition_findings(findings: Iterable[Finding]) -> tuple[list[Finding], list[Finding]]:
    """Split findings into Module A and Module B by control ID prefix."""
    module_a: list[Finding] = []
    module_b: list[Finding] = []
    for f in findings:
        if f.control_id.startswith(MODULE_PREFIXES["A"]):
            module_a.append(f)
        elif f.control_id.startswith(MODULE_PREFIXES["B"]):
            module_b.append(f)
    return module_a, module_b


def calculate_module_stats(findings: list[Finding]) -> ModuleStats:
    """Count passed/partial/failed controls for one module."""
    counts = {status: 0 for status in ControlStatus}
    for f in findings:
        counts[classify_control(f.score)] += 1

    return ModuleStats(
        passed=counts[ControlStatus.PASS],
        partial=counts[ControlStatus.PARTIAL],
        failed=counts[ControlStatus.FAIL],
        total=len(findings) or DEFAULT_TOTAL_CONTROLS,
    )
