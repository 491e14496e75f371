"""
User-facing error messages.

This module provides:
- Short, user-friendly messages for every record store error
- Error categorization by exception type
- Logging of full details while hiding them from users

Missing-column errors are the exception to "no details": the user needs
the column lists to fix the file, so their own detail text is shown.

Usage:
    from pod_records.core.error_messages import format_error

    try:
        await store.delete_record("vaccination", record)
    except RecordStoreError as e:
        print(format_error(e, context="deleting a vaccination"))
"""

import logging
from typing import Optional

import httpx

from pod_records.core.exceptions import (
    AmbiguousMatchError,
    EncryptionError,
    MissingColumnsError,
    NoMatchFoundError,
    NotLoggedInError,
    RecordParseError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# ERROR MESSAGE TEMPLATES
# =============================================================================

ERROR_MESSAGES = {
    "not_logged_in": (
        "🔒 You are not logged in to your Pod.\n\n"
        "Set POD_ACCESS_TOKEN and try again."
    ),
    "unavailable": (
        "🔌 Unable to reach your Pod.\n\n"
        "Please check your connection and the Pod address, then try again."
    ),
    "ambiguous": (
        "⚠️ More than one stored record matches this entry.\n\n"
        "Nothing was changed. Remove the duplicates and try again."
    ),
    "not_found": (
        "🔍 The record was not found in your Pod.\n\n"
        "It may already have been deleted."
    ),
    "encryption": (
        "🔑 A record could not be decrypted.\n\n"
        "Please check your security key."
    ),
    "parse": (
        "📄 A stored record could not be read.\n\n"
        "It was skipped; other records are unaffected."
    ),
    "validation": (
        "📝 The file is not valid.\n\n"
        "Please check its contents and try again."
    ),
    "unknown": (
        "❌ An unexpected error occurred.\n\n"
        "Please try again. If the problem persists, check the log."
    ),
}


def classify_error(error: Exception) -> str:
    """
    Classify an error into a category for message selection.

    Returns:
        str: Error category key for ERROR_MESSAGES lookup.
    """
    if isinstance(error, NotLoggedInError):
        return "not_logged_in"
    if isinstance(error, (StoreUnavailableError, httpx.RequestError, ConnectionError)):
        return "unavailable"
    if isinstance(error, AmbiguousMatchError):
        return "ambiguous"
    if isinstance(error, NoMatchFoundError):
        return "not_found"
    if isinstance(error, EncryptionError):
        return "encryption"
    if isinstance(error, RecordParseError):
        return "parse"
    if isinstance(error, ValidationError):
        return "validation"
    return "unknown"


def format_error(
    error: Exception,
    context: Optional[str] = None,
    log_full: bool = True
) -> str:
    """
    Format an exception as a user-friendly error message.

    Args:
        error: The exception to format.
        context: Optional context about what operation failed (for logging).
        log_full: Whether to log the full error details (default: True).

    Returns:
        str: Message safe for display.
    """
    if log_full:
        log_msg = "Error occurred"
        if context:
            log_msg += f" while {context}"
        logger.error(log_msg, exc_info=error)

    if isinstance(error, MissingColumnsError):
        return f"📝 {error.detail}"

    category = classify_error(error)
    return ERROR_MESSAGES.get(category, ERROR_MESSAGES["unknown"])
