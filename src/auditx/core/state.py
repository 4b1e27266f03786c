"""Dashboard state and its reducer.

State is never mutated: ``reduce`` returns a new ``DashboardState`` for
every action that changes something.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from ..models.audit import AuditStatus, NormalizedAudit
from .normalize import apply_status_override


class Persona(str, Enum):
    AUDITOR = "auditor"
    ENGINEER = "engineer"
    PARTNER = "partner"


class ActionType(str, Enum):
    SET_PERSONA = "SET_PERSONA"
    SET_FILTER = "SET_FILTER"
    SELECT_AUDIT = "SELECT_AUDIT"
    ADD_PROMPT = "ADD_PROMPT"
    ADD_AGENT_RESPONSE = "ADD_AGENT_RESPONSE"
    CLEAR_PROMPTS = "CLEAR_PROMPTS"
    UPDATE_AUDIT_STATUS = "UPDATE_AUDIT_STATUS"
    SET_AUDITS = "SET_AUDITS"
    SET_LOADING = "SET_LOADING"
    SET_ERROR = "SET_ERROR"


FILTER_ALL = "all"


class Action(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: ActionType
    payload: Any = None


class DashboardState(BaseModel):
    model_config = ConfigDict(frozen=True)

    current_persona: Persona = Persona.AUDITOR
    selected_audit_id: Optional[str] = None
    filter_status: str = FILTER_ALL
    audits: tuple[NormalizedAudit, ...] = ()
    loading: bool = True
    error: Optional[str] = None
    prompt_history: tuple[str, ...] = ()
    agent_responses: tuple[Any, ...] = ()


class DashboardStats(BaseModel):
    total: int = 0
    pending_review: int = 0
    approved: int = 0
    rejected: int = 0
    avg_score: int = 0


def _update_status(audits: tuple[NormalizedAudit, ...], payload: dict) -> tuple[NormalizedAudit, ...]:
    audit_id = payload["id"]
    status = AuditStatus(payload["status"])
    return tuple(
        apply_status_override(a, status) if a.id == audit_id else a
        for a in audits
    )


def reduce(state: DashboardState, action: Action) -> DashboardState:
    """Apply one action to the dashboard state."""
    t = action.type
    payload = action.payload

    if t == ActionType.SET_PERSONA:
        return state.model_copy(update={"current_persona": Persona(payload), "selected_audit_id": None})
    if t == ActionType.SET_FILTER:
        status = payload if payload == FILTER_ALL else AuditStatus(payload).value
        return state.model_copy(update={"filter_status": status})
    if t == ActionType.SELECT_AUDIT:
        return state.model_copy(update={"selected_audit_id": payload})
    if t == ActionType.ADD_PROMPT:
        return state.model_copy(update={"prompt_history": state.prompt_history + (payload,)})
    if t == ActionType.ADD_AGENT_RESPONSE:
        return state.model_copy(update={"agent_responses": state.agent_responses + (payload,)})
    if t == ActionType.CLEAR_PROMPTS:
        return state.model_copy(update={"prompt_history": (), "agent_responses": ()})
    if t == ActionType.UPDATE_AUDIT_STATUS:
        return state.model_copy(update={"audits": _update_status(state.audits, payload)})
    if t == ActionType.SET_AUDITS:
        return state.model_copy(update={"audits": tuple(payload), "loading": False, "error": None})
    if t == ActionType.SET_LOADING:
        return state.model_copy(update={"loading": bool(payload)})
    if t == ActionType.SET_ERROR:
        return state.model_copy(update={"error": payload, "loading": False})
    return state


def selected_audit(state: DashboardState) -> Optional[NormalizedAudit]:
    if state.selected_audit_id is None:
        return None
    return next((a for a in state.audits if a.id == state.selected_audit_id), None)


def filtered_audits(state: DashboardState) -> list[NormalizedAudit]:
    if state.filter_status == FILTER_ALL:
        return list(state.audits)
    return [a for a in state.audits if a.status.value == state.filter_status]


def dashboard_stats(audits: list[NormalizedAudit] | tuple[NormalizedAudit, ...]) -> DashboardStats:
    """Summary counts shown above the audit queue."""
    if not audits:
        return DashboardStats()
    avg = sum(a.overall_score for a in audits) / len(audits)
    return DashboardStats(
        total=len(audits),
        pending_review=sum(1 for a in audits if a.status == AuditStatus.PENDING_REVIEW),
        approved=sum(1 for a in audits if a.status == AuditStatus.APPROVED),
        rejected=sum(1 for a in audits if a.status == AuditStatus.REJECTED),
        avg_score=int(avg + 0.5),
    )
