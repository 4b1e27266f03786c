"""Audit record normalization.

Turns a raw document from the audit store into a ``NormalizedAudit``.
Schema variants are mapped onto the canonical record by ``adapt_record``
before the single shared pipeline runs.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from ..exceptions import MissingIdentityError
from ..models.audit import AuditStatus, Finding, ModuleScore, NormalizedAudit, RawAuditRecord
from .dates import derive_dates
from .parsers import parse_executive_summary, parse_gap_report, parse_recommendations
from .scoring import calculate_module_stats, classify_status, partition_findings, round_score

MODULE_A_NAME = "Foundation"
MODULE_B_NAME = "Implementation"
DEFAULT_TOTAL_QUESTIONS = 14

# legacy key -> canonical key
LEGACY_KEYS = {
    "overallScore": "overallPercentage",
    "timestamp": "generatedAt",
    "moduleAScore": "moduleAPercentage",
    "moduleBScore": "moduleBPercentage",
}


def _legacy_value(value: Any) -> Any:
    # Older documents stored module scores as {"score": 82.5, ...}
    if isinstance(value, Mapping):
        return value.get("score")
    return value


def adapt_record(doc: Mapping[str, Any]) -> RawAuditRecord:
    """Map any known document shape onto the canonical raw record."""
    data = dict(doc)
    for legacy, canonical in LEGACY_KEYS.items():
        if data.get(canonical) is None and data.get(legacy) is not None:
            data[canonical] = _legacy_value(data[legacy])
    data.pop("moduleAScore", None)
    data.pop("moduleBScore", None)
    return RawAuditRecord.model_validate(data)


def _display_name(record: RawAuditRecord, record_id: str) -> str:
    if record.audit_id:
        return f"Audit {record.audit_id.split('-')[-1]}"
    return f"Audit {record_id[:8]}"


def _module_score(name: str, percentage: Optional[float], findings: list[Finding]) -> ModuleScore:
    return ModuleScore(
        module_name=name,
        score=round_score(percentage or 0),
        stats=calculate_module_stats(findings),
        findings=tuple(findings),
    )


def normalize_audit(record: Union[RawAuditRecord, Mapping[str, Any]]) -> NormalizedAudit:
    """Build the canonical view-model for one audit document.

    Raises MissingIdentityError when the record has neither ``id`` nor
    ``auditId``; every other gap in the input degrades to a default.
    """
    if not isinstance(record, RawAuditRecord):
        record = adapt_record(record)

    record_id = record.id or record.audit_id
    if not record_id:
        raise MissingIdentityError("Audit record has neither 'id' nor 'auditId'")

    overall = record.overall_percentage
    if overall is None:
        overall = record.overall_score or 0
    generated_at = record.generated_at or record.timestamp

    findings = parse_gap_report(record.gap_report)
    recommendations = parse_recommendations(record.recommendations)
    summary = parse_executive_summary(record.executive_summary)
    dates = derive_dates(generated_at)

    module_a, module_b = partition_findings(findings)

    return NormalizedAudit(
        id=record_id,
        audit_id=record.audit_id,
        display_name=_display_name(record, record_id),
        status=classify_status(overall),
        overall_score=round_score(overall),
        generated_at=generated_at,
        due_date=dates.due_date,
        sla_date=dates.sla_date,
        last_reviewed=dates.last_reviewed,
        module_a=_module_score(MODULE_A_NAME, record.module_a_percentage, module_a),
        module_b=_module_score(MODULE_B_NAME, record.module_b_percentage, module_b),
        total_questions=record.total_questions or DEFAULT_TOTAL_QUESTIONS,
        evidence_items=len(findings),
        findings=tuple(findings),
        recommendations=tuple(recommendations),
        key_strengths=summary.strengths,
        key_gaps=summary.gaps,
        gap_report=record.gap_report,
        executive_summary=record.executive_summary,
        recommendations_raw=record.recommendations,
        checklist_version=record.checklist_version,
    )


def apply_status_override(audit: NormalizedAudit, status: Union[AuditStatus, str]) -> NormalizedAudit:
    """Return a copy of ``audit`` with a manually assigned review status."""
    return audit.model_copy(update={"status": AuditStatus(status)})
