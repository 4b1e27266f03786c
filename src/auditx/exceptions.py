"""Exception hierarchy for AuditX."""

from __future__ import annotations


class AuditXError(Exception):
    """Base class for all AuditX errors."""


class MissingIdentityError(AuditXError):
    """Raised when a record has neither ``id`` nor ``auditId``."""


class DocumentStoreError(AuditXError):
    """Raised when the document store cannot be read."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UploadError(AuditXError):
    """Raised when a single evidence file fails to upload."""


class RagServiceError(AuditXError):
    """Raised when search or chat completion fails."""
