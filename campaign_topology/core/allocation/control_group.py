"""Control-group allocator.

Pure functions computing the withheld audience of a segment from its
control-group configuration. Size computation and the display label share the
same exhaustive variant match so that they can never disagree.
"""

from __future__ import annotations

import math
from typing import Iterable, assert_never

from campaign_topology.core.domain.types import (
    AdvancedParameters,
    ControlGroupConfig,
    FixedNumber,
    FixedPercentage,
    MultipleControlGroup,
    NoControlGroup,
    SegmentRef,
    UniversalControlGroup,
    WithControlGroup,
)

# Heuristic constants of the advanced-parameters method. The formula is a
# display approximation kept for output parity; it is not a sample-size test.
ADVANCED_BASE_FRACTION: float = 0.1
ADVANCED_REFERENCE_CONFIDENCE: float = 95.0
ADVANCED_REFERENCE_MARGIN: float = 10.0


DEFAULT_UNIVERSAL_CONTROL_GROUPS: tuple[UniversalControlGroup, ...] = (
    UniversalControlGroup(id="1", name="Pilot", percentage=10, description="Standard pilot control group"),
    UniversalControlGroup(id="2", name="Champion Challenger", percentage=15, description="A/B testing control group"),
    UniversalControlGroup(id="3", name="Multiple Target Groups", percentage=20, description="Multi-variant control group"),
    UniversalControlGroup(
        id="4",
        name="Multiple Target Groups (Non-Exclusive)",
        percentage=25,
        description="Non-exclusive multi-variant control",
    ),
)


def round_half_up(value: float) -> int:
    """Round halves away from zero for non-negative values.

    Python's round() is banker's rounding (round(2.5) == 2); displayed sizes
    must round 2.5 up to 3.
    """
    return int(math.floor(value + 0.5))


def find_universal_group(
    group_id: str,
    catalog: Iterable[UniversalControlGroup],
) -> UniversalControlGroup | None:
    for group in catalog:
        if group.id == group_id:
            return group
    return None


def _percentage_of(customer_count: int, percentage: float) -> int:
    return round_half_up(customer_count * percentage / 100)


def _advanced_size(customer_count: int, method: AdvancedParameters) -> int:
    base_size = round_half_up(customer_count * ADVANCED_BASE_FRACTION)
    confidence_multiplier = method.confidence_level / ADVANCED_REFERENCE_CONFIDENCE
    error_multiplier = ADVANCED_REFERENCE_MARGIN / method.margin_of_error
    return round_half_up(base_size * confidence_multiplier * error_multiplier)


def compute_control_group_size(
    segment: SegmentRef,
    config: ControlGroupConfig,
    catalog: Iterable[UniversalControlGroup] = DEFAULT_UNIVERSAL_CONTROL_GROUPS,
) -> int:
    """Return the number of customers withheld from the campaign.

    - fixed percentage: limits are advisory and never clamp the result
    - fixed number: returned as-is; the caller enforces count <= customer_count
    - universal group: 0 when the referenced group is not in the catalog
    """
    customer_count = segment.customer_count

    if isinstance(config, NoControlGroup):
        return 0

    if isinstance(config, WithControlGroup):
        method = config.method
        if isinstance(method, FixedPercentage):
            return _percentage_of(customer_count, method.percentage)
        if isinstance(method, FixedNumber):
            return method.count
        if isinstance(method, AdvancedParameters):
            return _advanced_size(customer_count, method)
        assert_never(method)

    if isinstance(config, MultipleControlGroup):
        group = find_universal_group(config.selected_universal_group_id, catalog)
        if group is None:
            return 0
        return _percentage_of(customer_count, group.percentage)

    assert_never(config)


def _format_number(value: float) -> str:
    return f"{value:g}"


def describe(
    config: ControlGroupConfig,
    catalog: Iterable[UniversalControlGroup] = DEFAULT_UNIVERSAL_CONTROL_GROUPS,
) -> str:
    """Human label for a control-group configuration."""

    if isinstance(config, NoControlGroup):
        return "No Control Group"

    if isinstance(config, WithControlGroup):
        method = config.method
        if isinstance(method, FixedPercentage):
            return f"Fixed Percentage ({_format_number(method.percentage)}%)"
        if isinstance(method, FixedNumber):
            return f"Fixed Number ({method.count:,})"
        if isinstance(method, AdvancedParameters):
            return f"Advanced ({_format_number(method.confidence_level)}% conf.)"
        assert_never(method)

    if isinstance(config, MultipleControlGroup):
        group = find_universal_group(config.selected_universal_group_id, catalog)
        if group is None:
            return "Universal Control Group"
        return f"Universal: {group.name}"

    assert_never(config)
