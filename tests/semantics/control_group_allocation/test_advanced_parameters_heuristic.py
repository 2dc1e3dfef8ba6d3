"""
Semantic test: advanced-parameters sizing heuristic.

Invariant:
size = round(round(customer_count * 0.1) * (confidence / 95) * (10 / margin)).
This is a display approximation and is kept exactly as specified, including
results larger than the segment for small margins.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from campaign_topology.core.allocation.control_group import compute_control_group_size
from campaign_topology.core.domain.types import AdvancedParameters, SegmentRef, WithControlGroup


def size_for(customers: int, confidence: float, margin: float) -> int:
    segment = SegmentRef(id="s1", name="Segment", customer_count=customers)
    config = WithControlGroup(method=AdvancedParameters(confidence_level=confidence, margin_of_error=margin))
    return compute_control_group_size(segment, config)


@pytest.mark.parametrize(
    ("customers", "confidence", "margin", "expected"),
    [
        (10_000, 95, 10, 1000),
        (10_000, 95, 5, 2000),
        (10_000, 99, 10, 1042),
        (10_000, 90, 10, 947),
        (1_234, 95, 10, 123),
        (10_000, 95, 1, 10_000),
    ],
)
def test_heuristic_values(customers: int, confidence: float, margin: float, expected: int) -> None:
    assert size_for(customers, confidence, margin) == expected


def test_out_of_range_parameters_are_rejected() -> None:
    with pytest.raises(ValidationError):
        AdvancedParameters(confidence_level=89, margin_of_error=5)
    with pytest.raises(ValidationError):
        AdvancedParameters(confidence_level=95, margin_of_error=11)
