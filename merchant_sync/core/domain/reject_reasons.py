"""Canonical reject reason codes for local validation rejections."""

from __future__ import annotations


class RejectReason:
    """String constants used in ValidationRejection and BulkResult.rejected."""

    ILLEGAL_TRANSITION = "illegal_transition"
    STATUS_UNCHANGED = "status_unchanged"
    RECORD_NOT_FOUND = "record_not_found"
    PROVISIONAL_RECORD = "provisional_record"
    NOT_AN_ORDER = "not_an_order"
    EMPTY_SELECTION = "empty_selection"
    BATCH_TOO_LARGE = "batch_too_large"
    NOTHING_ELIGIBLE = "nothing_eligible"
