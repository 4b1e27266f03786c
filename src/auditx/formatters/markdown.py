"""Markdown rendering of normalized audits."""

from __future__ import annotations

from typing import Iterable

from .. import __version__
from ..core.state import dashboard_stats
from ..models.audit import AuditStatus, ModuleScore, NormalizedAudit

STATUS_LABELS = {
    AuditStatus.APPROVED: "Approved",
    AuditStatus.PENDING_REVIEW: "Pending Review",
    AuditStatus.REJECTED: "Rejected",
}


def _module_row(module: ModuleScore) -> str:
    s = module.stats
    return (
        f"| {module.module_name} | {module.score}% | {s.passed} | {s.partial} "
        f"| {s.failed} | {s.total} |"
    )


def render_audit_report(audit: NormalizedAudit) -> str:
    """Render one audit as a markdown review report."""
    lines: list[str] = []
    lines.append(f"# {audit.display_name}")
    lines.append("")
    lines.append(f"**Audit ID:** {audit.audit_id or audit.id}")
    lines.append(f"**Status:** {STATUS_LABELS[audit.status]}")
    lines.append(f"**Overall Score:** {audit.overall_score}%")
    lines.append(f"**Generated:** {audit.last_reviewed}")
    lines.append(f"**Due:** {audit.due_date}")
    lines.append(f"**SLA:** {audit.sla_date}")
    if audit.checklist_version:
        lines.append(f"**Checklist:** {audit.checklist_version}")
    lines.append("")

    lines.append("## Modules")
    lines.append("")
    lines.append("| Module | Score | Passed | Partial | Failed | Total |")
    lines.append("|--------|-------|--------|---------|--------|-------|")
    lines.append(_module_row(audit.module_a))
    lines.append(_module_row(audit.module_b))
    lines.append("")

    if audit.findings:
        lines.append("## Findings")
        lines.append("")
        lines.append("| Control | Score | Gap | Status | Description |")
        lines.append("|---------|-------|-----|--------|-------------|")
        for f in audit.findings:
            lines.append(
                f"| {f.control_id} | {f.score}% | {f.gap} | {f.status_code.label} | {f.description} |"
            )
        lines.append("")

    for title, items in (("Key Strengths", audit.key_strengths), ("Key Gaps", audit.key_gaps)):
        if not items:
            continue
        lines.append(f"## {title}")
        lines.append("")
        for i, item in enumerate(items, 1):
            lines.append(f"{i}. {item}")
        lines.append("")

    if audit.recommendations:
        lines.append("## Recommendations")
        lines.append("")
        for group in audit.recommendations:
            lines.append(f"### {group.control_id}")
            if group.items:
                lines.extend(f"- {item}" for item in group.items)
            else:
                lines.append("_No actions listed._")
            lines.append("")

    lines.append("---")
    lines.append(f"*Generated by AuditX v{__version__}*")
    return "\n".join(lines)


def render_audit_table(audits: Iterable[NormalizedAudit]) -> str:
    """Render the audit queue with summary counts."""
    audits = list(audits)
    stats = dashboard_stats(audits)

    lines: list[str] = []
    lines.append("# Audit Queue")
    lines.append("")
    lines.append(
        f"**Total:** {stats.total} | **Pending Review:** {stats.pending_review} | "
        f"**Approved:** {stats.approved} | **Rejected:** {stats.rejected} | "
        f"**Avg Score:** {stats.avg_score}%"
    )
    lines.append("")
    lines.append("| Audit | ID | Score | Status | Due | SLA |")
    lines.append("|-------|----|-------|--------|-----|-----|")
    for a in audits:
        lines.append(
            f"| {a.display_name} | {a.id} | {a.overall_score}% | {STATUS_LABELS[a.status]} "
            f"| {a.due_date} | {a.sla_date} |"
        )
    return "\n".join(lines)
