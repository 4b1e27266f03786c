"""AuditX - audit record normalization and review tooling."""

__version__ = "1.0.0"
