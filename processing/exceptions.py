"""
Custom exceptions for SLI processing operations.

This module defines specific exception classes for the different conditions
that can stop or degrade an SLI run: unreadable invoices, missing master data,
inconsistent groups and template problems.
"""

from typing import Optional, Dict, Any, Iterable, List


class SLIProcessingError(Exception):
    """Base exception for all SLI processing errors."""

    def __init__(self, message: str, source: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.source = source
        self.details = details or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.source:
            base_msg = f"{base_msg} (source: {self.source})"
        return base_msg


class TextExtractionError(SLIProcessingError):
    """Raised when text cannot be extracted from an invoice document."""

    def __init__(self, message: str, source: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, source)
        self.original_error = original_error
        if original_error:
            self.details['original_error'] = str(original_error)
            self.details['error_type'] = type(original_error).__name__


class MissingMasterDataError(SLIProcessingError):
    """
    Raised when merged items reference product codes with no master data.

    The run must stop before weights are computed; the codes are resolved
    manually and the run is retried from aggregation.
    """

    def __init__(self, codes: Iterable[str]):
        self.codes: List[str] = sorted(set(codes))
        super().__init__(
            f"Master data missing for {len(self.codes)} product code(s): {', '.join(self.codes)}"
        )
        self.details['missing_codes'] = self.codes


class MixedUnitGroupError(SLIProcessingError):
    """Raised when one schedule/origin group mixes unit families and mixing is rejected."""

    def __init__(self, schedule_code: str, bucket: str, unit_families: Iterable[str]):
        self.schedule_code = schedule_code
        self.bucket = bucket
        self.unit_families = sorted(set(unit_families))
        super().__init__(
            f"Group {schedule_code} ({bucket}) mixes unit families: {', '.join(self.unit_families)}"
        )
        self.details.update({
            'schedule_code': schedule_code,
            'bucket': bucket,
            'unit_families': self.unit_families
        })


class AggregationCacheError(SLIProcessingError):
    """Raised when no usable cached aggregation exists for a session."""

    def __init__(self, message: str, session_id: Optional[str] = None):
        super().__init__(message)
        self.session_id = session_id
        if session_id:
            self.details['session_id'] = session_id


class TemplateLayoutError(SLIProcessingError):
    """Raised when the SLI template lacks the expected anchor or footer structure."""

    def __init__(self, message: str, template: Optional[str] = None,
                 missing: Optional[List[str]] = None):
        super().__init__(message, template)
        self.missing = missing or []
        if self.missing:
            self.details['missing'] = self.missing


class DocumentWriteError(SLIProcessingError):
    """Raised when the finished document cannot be serialized or saved."""

    def __init__(self, message: str, output_path: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, output_path)
        self.original_error = original_error
        if original_error:
            self.details['original_error'] = str(original_error)
