"""
Semantic test: control-group labels.

Invariant:
describe() derives the display label from the same variant match as the size
computation, so every config variant has exactly one label.
"""

from __future__ import annotations

import pytest

from campaign_topology.core.allocation.control_group import describe
from campaign_topology.core.domain.types import (
    AdvancedParameters,
    FixedNumber,
    FixedPercentage,
    MultipleControlGroup,
    NoControlGroup,
    WithControlGroup,
)


@pytest.mark.parametrize(
    ("config", "label"),
    [
        (NoControlGroup(), "No Control Group"),
        (WithControlGroup(method=FixedPercentage(percentage=23)), "Fixed Percentage (23%)"),
        (WithControlGroup(method=FixedPercentage(percentage=12.5)), "Fixed Percentage (12.5%)"),
        (WithControlGroup(method=FixedNumber(count=10_000)), "Fixed Number (10,000)"),
        (
            WithControlGroup(method=AdvancedParameters(confidence_level=95, margin_of_error=5)),
            "Advanced (95% conf.)",
        ),
        (MultipleControlGroup(selected_universal_group_id="1"), "Universal: Pilot"),
        (MultipleControlGroup(selected_universal_group_id="nope"), "Universal Control Group"),
    ],
)
def test_labels(config, label: str) -> None:
    assert describe(config) == label
