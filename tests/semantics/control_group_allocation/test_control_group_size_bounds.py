"""
Semantic test: control-group size bounds and monotonicity.

Invariant:
compute_control_group_size returns an integer in [0, customer_count] for
fixed-percentage and universal-group configs, and is monotonic
non-decreasing in percentage, count and confidence level.
"""

from __future__ import annotations

import pytest

from campaign_topology.core.allocation.control_group import (
    DEFAULT_UNIVERSAL_CONTROL_GROUPS,
    compute_control_group_size,
    round_half_up,
)
from campaign_topology.core.domain.types import (
    AdvancedParameters,
    FixedNumber,
    FixedPercentage,
    MultipleControlGroup,
    NoControlGroup,
    PercentageLimits,
    SegmentRef,
    UniversalControlGroup,
    WithControlGroup,
)

CUSTOMER_COUNTS = [0, 1, 7, 999, 10_000, 123_457]
PERCENTAGES = [0.1, 0.5, 1, 2.5, 10, 23, 33.3, 49.9, 50]


def seg(customers: int) -> SegmentRef:
    return SegmentRef(id="s1", name="Segment", customer_count=customers)


def pct(value: float) -> WithControlGroup:
    return WithControlGroup(method=FixedPercentage(percentage=value))


def test_fixed_percentage_example() -> None:
    assert compute_control_group_size(seg(10_000), pct(23)) == 2300


def test_no_control_group_is_zero() -> None:
    assert compute_control_group_size(seg(10_000), NoControlGroup()) == 0


@pytest.mark.parametrize("customers", CUSTOMER_COUNTS)
def test_fixed_percentage_bounded_and_monotonic(customers: int) -> None:
    sizes = [compute_control_group_size(seg(customers), pct(p)) for p in PERCENTAGES]

    assert all(isinstance(s, int) for s in sizes)
    assert all(0 <= s <= customers for s in sizes)
    assert sizes == sorted(sizes)


@pytest.mark.parametrize("customers", CUSTOMER_COUNTS)
def test_universal_group_bounded_and_monotonic(customers: int) -> None:
    catalog = [
        UniversalControlGroup(id=str(p), name=f"U{p}", percentage=p) for p in (0, 5, 10, 37.5, 80, 100)
    ]
    sizes = [
        compute_control_group_size(seg(customers), MultipleControlGroup(selected_universal_group_id=g.id), catalog)
        for g in catalog
    ]

    assert all(0 <= s <= customers for s in sizes)
    assert sizes == sorted(sizes)


def test_universal_group_uses_default_catalog() -> None:
    config = MultipleControlGroup(selected_universal_group_id="2")

    assert DEFAULT_UNIVERSAL_CONTROL_GROUPS[1].percentage == 15
    assert compute_control_group_size(seg(10_000), config) == 1500


def test_unknown_universal_group_is_zero() -> None:
    config = MultipleControlGroup(selected_universal_group_id="missing")
    assert compute_control_group_size(seg(10_000), config) == 0


def test_fixed_number_is_monotonic_and_unclamped() -> None:
    sizes = [compute_control_group_size(seg(500), WithControlGroup(method=FixedNumber(count=n))) for n in (0, 10, 500)]
    assert sizes == [0, 10, 500]
    # The allocator does not clamp; the draft enforces count <= customer_count.
    assert compute_control_group_size(seg(500), WithControlGroup(method=FixedNumber(count=800))) == 800


def test_confidence_level_is_monotonic() -> None:
    sizes = [
        compute_control_group_size(
            seg(50_000),
            WithControlGroup(method=AdvancedParameters(confidence_level=c, margin_of_error=5)),
        )
        for c in (90, 92.5, 95, 97, 99)
    ]
    assert sizes == sorted(sizes)


def test_limits_never_clamp_the_size() -> None:
    config = WithControlGroup(
        method=FixedPercentage(percentage=40, limits=PercentageLimits(lower=1, upper=5)),
    )
    assert compute_control_group_size(seg(1000), config) == 400


def test_halves_round_up() -> None:
    # 2.5% of 100 = 2.5 -> 3 (banker's rounding would give 2)
    assert compute_control_group_size(seg(100), pct(2.5)) == 3
    assert round_half_up(0.5) == 1
    assert round_half_up(1.49) == 1
