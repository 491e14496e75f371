"""
Exception classes for the record store.

Taxonomy:
- NotLoggedInError: auth precondition not met, raised before any mutating call
- StoreUnavailableError: a directory cannot be listed or the Pod is unreachable
- RecordParseError: a single blob is malformed (caught and skipped by batch reads)
- NoMatchFoundError: update/delete found no blob for a record (benign)
- AmbiguousMatchError: several blobs match one record
- ValidationError: CSV input problems (MissingColumnsError aborts an import,
  RowValidationError skips one row)
- EncryptionError: a blob cannot be encrypted or decrypted

Per-item errors are caught and logged where they occur. Directory-level and
auth-level errors propagate to the caller.

Usage:
    from pod_records.core.exceptions import NotLoggedInError

    raise NotLoggedInError(operation="save_record")
"""
from typing import Any, Dict, Iterable, List, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================

class RecordStoreError(Exception):
    """
    Base exception for all record store errors.

    Carries a human-readable detail message plus keyword context that is
    included in logs and in ``to_dict()``.
    """

    detail: str = "An unexpected record store error occurred"

    def __init__(self, detail: Optional[str] = None, **kwargs: Any):
        self.detail = detail or self.__class__.detail
        self.context = kwargs
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a dictionary for logging or display."""
        result: Dict[str, Any] = {"error": type(self).__name__, "detail": self.detail}
        if self.context:
            result["context"] = self.context
        return result


# =============================================================================
# STORE AND AUTH
# =============================================================================

class NotLoggedInError(RecordStoreError):
    """Raised when no authenticated Pod session is available."""

    detail = "Not logged in to a Pod"


class StoreUnavailableError(RecordStoreError):
    """Raised when a feature directory cannot be listed or the Pod cannot be reached."""

    detail = "The Pod is unavailable"

    def __init__(self, path: Optional[str] = None, reason: Optional[str] = None, **kwargs: Any):
        detail = f"Cannot access '{path}'" if path else self.detail
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail=detail, path=path, **kwargs)


class EncryptionError(RecordStoreError):
    """Raised when a blob cannot be encrypted or decrypted."""

    detail = "Blob encryption failed"


# =============================================================================
# RECORD EXCEPTIONS
# =============================================================================

class RecordParseError(RecordStoreError):
    """Raised when a blob's content is not a valid serialized record."""

    detail = "Malformed record blob"

    def __init__(self, blob_name: Optional[str] = None, reason: Optional[str] = None, **kwargs: Any):
        detail = f"Cannot parse blob '{blob_name}'" if blob_name else self.detail
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail=detail, blob_name=blob_name, **kwargs)


class NoMatchFoundError(RecordStoreError):
    """Raised when no blob in a feature directory matches a record."""

    detail = "No matching record found"

    def __init__(self, feature: Optional[str] = None, **kwargs: Any):
        detail = f"No matching {feature} record found" if feature else self.detail
        super().__init__(detail=detail, feature=feature, **kwargs)


class AmbiguousMatchError(RecordStoreError):
    """Raised when more than one blob matches a record."""

    detail = "Several records match"

    def __init__(self, blob_names: Iterable[str], feature: Optional[str] = None, **kwargs: Any):
        self.blob_names: List[str] = list(blob_names)
        detail = (
            f"{len(self.blob_names)} {feature or 'stored'} records match: "
            f"{', '.join(self.blob_names)}"
        )
        super().__init__(detail=detail, feature=feature, blob_names=self.blob_names, **kwargs)


# =============================================================================
# VALIDATION EXCEPTIONS
# =============================================================================

class ValidationError(RecordStoreError):
    """Raised when input data fails validation."""

    detail = "Invalid input data"


class MissingColumnsError(ValidationError):
    """Raised when a CSV file lacks required columns. Aborts the whole import."""

    detail = "Required columns missing"

    def __init__(
        self,
        missing: Iterable[str],
        required: Iterable[str] = (),
        optional: Iterable[str] = (),
        **kwargs: Any
    ):
        self.missing = list(missing)
        self.required = list(required)
        self.optional = list(optional)

        lines = [f"Required columns missing: {', '.join(self.missing)}"]
        if self.required:
            lines.append("")
            lines.append("The following columns are required:")
            lines.extend(f"- {col}" for col in self.required)
        if self.optional:
            lines.append("")
            lines.append("These columns are optional:")
            lines.extend(f"- {col}" for col in self.optional)

        super().__init__(detail="\n".join(lines), missing=self.missing, **kwargs)


class RowValidationError(ValidationError):
    """Raised for a single CSV row with a blank or invalid required value."""

    detail = "Invalid CSV row"

    def __init__(self, row: int, reason: str, **kwargs: Any):
        self.row = row
        super().__init__(detail=f"Row {row}: {reason}", row=row, **kwargs)
