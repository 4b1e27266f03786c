"""Audit record data models."""

from __future__ import annotations

import math
from enum import Enum, IntEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ControlStatus(IntEnum):
    PASS = 0
    PARTIAL = 1
    FAIL = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


class AuditStatus(str, Enum):
    APPROVED = "approved"
    PENDING_REVIEW = "pending_review"
    REJECTED = "rejected"


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class RawAuditRecord(BaseModel):
    """An audit document as stored in the document database.

    The schema is owned by the upstream evaluator, so every field is optional
    and values of the wrong type are dropped instead of rejected.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Optional[str] = None
    audit_id: Optional[str] = Field(default=None, alias="auditId")
    generated_at: Optional[str] = Field(default=None, alias="generatedAt")
    timestamp: Optional[str] = None
    overall_percentage: Optional[float] = Field(default=None, alias="overallPercentage")
    overall_score: Optional[float] = Field(default=None, alias="overallScore")
    module_a_percentage: Optional[float] = Field(default=None, alias="moduleAPercentage")
    module_b_percentage: Optional[float] = Field(default=None, alias="moduleBPercentage")
    gap_report: Optional[str] = Field(default=None, alias="gapReport")
    recommendations: Optional[str] = None
    executive_summary: Optional[str] = Field(default=None, alias="executiveSummary")
    checklist_version: Optional[str] = Field(default=None, alias="checklistVersion")
    total_questions: Optional[int] = Field(default=None, alias="totalQuestions")

    @field_validator("id", "audit_id", "checklist_version", mode="before")
    @classmethod
    def _identifier(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, (dict, list, bool)):
            return None
        text = str(value).strip()
        return text or None

    @field_validator(
        "generated_at", "timestamp", "gap_report", "recommendations", "executive_summary",
        mode="before",
    )
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) else None

    @field_validator(
        "overall_percentage", "overall_score", "module_a_percentage", "module_b_percentage",
        mode="before",
    )
    @classmethod
    def _number(cls, value: Any) -> Optional[float]:
        return _coerce_number(value)

    @field_validator("total_questions", mode="before")
    @classmethod
    def _count(cls, value: Any) -> Optional[int]:
        number = _coerce_number(value)
        if number is None or number < 0:
            return None
        return int(number)


class _ViewModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class Finding(_ViewModel):
    control_id: str = Field(pattern=r"^[A-B]-\d+\.\d+$")
    control_name: str
    gap: float
    score: int = Field(ge=0, le=100)
    description: str = ""
    status_code: ControlStatus


class RecommendationGroup(_ViewModel):
    control_id: str
    items: tuple[str, ...] = ()


class ExecutiveSummary(_ViewModel):
    strengths: tuple[str, ...] = ()
    gaps: tuple[str, ...] = ()


class ModuleStats(_ViewModel):
    passed: int = 0
    partial: int = 0
    failed: int = 0
    total: int = 0


class ModuleScore(_ViewModel):
    module_name: str
    score: float = 0.0
    stats: ModuleStats = ModuleStats()
    findings: tuple[Finding, ...] = ()


class NormalizedAudit(_ViewModel):
    """Canonical view of one audit, rebuilt on every fetch."""

    id: str
    audit_id: Optional[str] = None
    display_name: str
    status: AuditStatus
    overall_score: float = 0.0
    generated_at: Optional[str] = None
    due_date: str = "N/A"
    sla_date: str = "N/A"
    last_reviewed: str = "N/A"
    module_a: ModuleScore
    module_b: ModuleScore
    total_questions: int = 14
    evidence_items: int = 0
    findings: tuple[Finding, ...] = ()
    recommendations: tuple[RecommendationGroup, ...] = ()
    key_strengths: tuple[str, ...] = ()
    key_gaps: tuple[str, ...] = ()
    gap_report: Optional[str] = None
    executive_summary: Optional[str] = None
    recommendations_raw: Optional[str] = None
    checklist_version: Optional[str] = None
