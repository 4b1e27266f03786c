"""Shared fixtures for AuditX tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create an empty project directory."""
    project = tmp_path / "test-project"
    project.mkdir()
    return project


@pytest.fixture
def initialized_project(tmp_project: Path) -> Path:
    """Create a project with .auditx/config.yaml."""
    cfg_dir = tmp_project / ".auditx"
    cfg_dir.mkdir()
    (cfg_dir / "config.yaml").write_text(
        'project:\n  name: "test-project"\n\n'
        "document_store:\n"
        '  endpoint: "https://audit.example.test/"\n'
        '  database: "AuditPlatformDB"\n'
        '  container: "audit-results"\n',
        encoding="utf-8",
    )
    return tmp_project


@pytest.fixture
def sample_gap_report() -> str:
    return (
        "[A-1.1] Gap: 0.20 | Score: 92% | Strategy process documented\n"
        "[B-2.3] Gap: 0.90 | Score: 35% | No production deployment evidence\n"
        "\n"
        "Legacy line without a control\n"
        "[A-2.1] Gap: 0.50 | Score: 75% | Landing zone partially covered\n"
    )


@pytest.fixture
def sample_recommendations() -> str:
    return (
        "Recommended actions:\n"
        "[B-2.3]:\n"
        "- Provide deployment runbook\n"
        "- Attach monitoring screenshots\n"
        "[A-2.1]:\n"
        "  - Document network topology\n"
        "[A-1.1]:\n"
        "No action required.\n"
    )


@pytest.fixture
def sample_executive_summary() -> str:
    return (
        "## Executive Summary\n"
        "\n"
        "### Top 3 Strengths\n"
        "1. **Clear cloud strategy** - reviewed quarterly\n"
        "2. **Governance tooling**: Defender for Cloud enabled\n"
        "3. Skilling plan in place\n"
        "\n"
        "### Top 3 Critical Gaps\n"
        "1. **No production evidence** for AI workloads\n"
        "2. **Missing PoC documentation**\n"
        "\n"
        "### Conclusion\n"
        "1. Not a gap item\n"
    )


@pytest.fixture
def sample_document(
    sample_gap_report: str,
    sample_recommendations: str,
    sample_executive_summary: str,
) -> dict:
    """A document shaped like the audit results container."""
    return {
        "id": "8f14e45f-ceea-467f-a0e6-2b3c4d5e6f70",
        "auditId": "audit-2026-0213-0042",
        "generatedAt": "2026-02-13T19:20:09Z",
        "overallPercentage": 75.25,
        "moduleAPercentage": 83.54,
        "moduleBPercentage": 35,
        "gapReport": sample_gap_report,
        "recommendations": sample_recommendations,
        "executiveSummary": sample_executive_summary,
        "checklistVersion": "v2.1",
        "_rid": "abc==",
        "_ts": 1760000000,
    }


@pytest.fixture
def legacy_document() -> dict:
    """A document in the older schema."""
    return {
        "id": "legacy-001",
        "timestamp": "2025-12-01T08:00:00Z",
        "overallScore": 91,
        "moduleAScore": {"moduleName": "Foundation", "score": 95},
        "moduleBScore": 88.0,
        "gapReport": "[A-1.1] Gap: 0.1 | Score: 95% | ok",
    }
