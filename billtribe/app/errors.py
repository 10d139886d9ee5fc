"""
errors.py — AppError base class and error code registry.

Every error returned by the BillTribe API must use a code defined here.

Who raises AppError:
  - Routes, when a core service reports a rejection (None / False /
    FinalizeResult.accepted == False) or an id does not resolve.
  - The core services NEVER raise AppError. Their rejections are return
    values; translating them into HTTP errors is the caller's job.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
            details: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field     # which request field caused the error
        self.details     = details   # extra machine-readable context

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        if self.details:
            payload["details"] = self.details
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"AppError(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
# IMPORTANT: these are the string values sent in the API response.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD            = "MISSING_FIELD"
    INVALID_FIELD            = "INVALID_FIELD"
    INVALID_AMOUNT_PRECISION = "INVALID_AMOUNT_PRECISION"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    GROUP_NOT_FOUND          = "GROUP_NOT_FOUND"
    MEMBER_NOT_FOUND         = "MEMBER_NOT_FOUND"
    INVOICE_NOT_FOUND        = "INVOICE_NOT_FOUND"

    # ── Business Rule Violations (422) ────────────────────────────────────
    INCOMPLETE_ASSIGNMENT    = "INCOMPLETE_ASSIGNMENT"   # finalize with unassigned items
    LAST_MEMBER              = "LAST_MEMBER"             # group would be left empty
    INVALID_TRANSITION       = "INVALID_TRANSITION"      # e.g. reopen a non-reviewed invoice
    NO_EDIT_SESSION          = "NO_EDIT_SESSION"         # toggle without entering edit mode
    READ_ONLY_SESSION        = "READ_ONLY_SESSION"       # toggle in view mode
    INVALID_REQUEST          = "INVALID_REQUEST"         # blank after trimming, core no-op

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR           = "INTERNAL_ERROR"


# ── Warning Code Registry ──────────────────────────────────────────────────
#
# Warnings are returned alongside a 2xx response in the `warnings` array.
# They do not block the request.
# ──────────────────────────────────────────────────────────────────────────

class WarningCode:

    # Some items have no assignee yet; finalize is blocked until they do.
    UNASSIGNED_ITEMS = "UNASSIGNED_ITEMS"

    # invoice.total differs from the sum of item totals (tax lines, rounding).
    # Both values are kept; nothing is corrected.
    TOTAL_MISMATCH   = "TOTAL_MISMATCH"

    # Entering edit or view mode replaced an edit session whose toggles were
    # never finalized.
    UNSAVED_CHANGES_DISCARDED = "UNSAVED_CHANGES_DISCARDED"
