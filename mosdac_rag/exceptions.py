"""
Exceptions raised by the extraction, graph and answering pipeline.
"""

from typing import Optional


class MosdacRAGError(Exception):
    """Base exception for the MOSDAC HelpBot pipeline."""


class ExtractionError(MosdacRAGError):
    """Raised when document content cannot be processed.

    Ingestion records the failure for the offending document and moves on
    with the rest of the batch.
    """

    def __init__(self, message: str, document_id: Optional[str] = None):
        self.document_id = document_id
        super().__init__(message)


class CompletionServiceError(MosdacRAGError):
    """Raised when the external completion service fails.

    ``transient`` marks failures worth one more attempt (timeouts, network
    errors, 5xx, rate limiting). Client errors and missing configuration
    are never retried.
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: Optional[int] = None,
        cause: Optional[Exception] = None,
    ):
        self.transient = transient
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


class InitializationError(MosdacRAGError):
    """Raised when the query engine is used before its corpus and graph exist."""
