"""Canonical reject reason codes for draft mutations."""

from __future__ import annotations


class RejectReason:
    """String constants attached to ConfigurationError.reason and Rejection.reason."""

    EMPTY_SELECTION = "EMPTY_SELECTION"
    SEGMENT_CAPACITY_REACHED = "SEGMENT_CAPACITY_REACHED"
    DUPLICATE_SEGMENT = "DUPLICATE_SEGMENT"
    UNKNOWN_SEGMENT = "UNKNOWN_SEGMENT"
    NO_SEGMENT = "NO_SEGMENT"
    INVALID_ORDER = "INVALID_ORDER"

    DUPLICATE_OFFER = "DUPLICATE_OFFER"
    FLAT_MAPPING_NOT_SUPPORTED = "FLAT_MAPPING_NOT_SUPPORTED"
    UNKNOWN_STEP = "UNKNOWN_STEP"

    INVALID_CONTROL_GROUP = "INVALID_CONTROL_GROUP"
    UNKNOWN_CONTROL_GROUP = "UNKNOWN_CONTROL_GROUP"
    CONTROL_GROUP_EXCEEDS_SEGMENT = "CONTROL_GROUP_EXCEEDS_SEGMENT"

    INVALID_METADATA = "INVALID_METADATA"
