"""
Semantic test: step payload variant contract.

Invariant:
Round robin steps carry interval payloads and multiple-level steps carry
condition payloads. A mismatched variant, or a sequential operation on a
flat topology, is a TopologyContractError and never a ConfigurationError.
"""

from __future__ import annotations

import pytest

from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.domain.sequential import SequentialFlowBuilder
from campaign_topology.core.domain.types import (
    MULTIPLE_LEVEL,
    MULTIPLE_TARGET,
    ROUND_ROBIN,
    ConditionConfig,
    IntervalConfig,
    SegmentRef,
)
from campaign_topology.core.errors import ConfigurationError, TopologyContractError
from campaign_topology.core.events.sinks.null_event_bus import NullEventBus


def test_interval_on_multiple_level_is_contract_violation() -> None:
    builder = SequentialFlowBuilder(MULTIPLE_LEVEL)

    with pytest.raises(TopologyContractError):
        builder.append_step("o1", "s1", IntervalConfig(value=2))

    assert len(builder) == 0


def test_condition_update_on_round_robin_is_contract_violation() -> None:
    draft = CampaignDraft(ROUND_ROBIN, event_bus=NullEventBus())
    draft.add_segments([SegmentRef(id="s1", name="Gold")])
    draft.append_step("o1")

    with pytest.raises(TopologyContractError) as excinfo:
        draft.update_step_config(0, ConditionConfig(field="tier", value="gold"))

    assert not isinstance(excinfo.value, ConfigurationError)
    assert draft.sequential_steps[0].config == IntervalConfig()


def test_flat_topology_has_no_flow() -> None:
    with pytest.raises(TopologyContractError):
        SequentialFlowBuilder(MULTIPLE_TARGET)

    draft = CampaignDraft(MULTIPLE_TARGET, event_bus=NullEventBus())
    draft.add_segments([SegmentRef(id="s1", name="Gold")])
    with pytest.raises(TopologyContractError):
        draft.append_step("o1")


def test_update_without_payload_is_contract_violation() -> None:
    draft = CampaignDraft(ROUND_ROBIN, event_bus=NullEventBus())
    draft.add_segments([SegmentRef(id="s1", name="Gold")])
    draft.append_step("o1", IntervalConfig(unit="hours", value=6))

    with pytest.raises(TopologyContractError):
        draft.update_step_config(0, None)

    assert draft.sequential_steps[0].config == IntervalConfig(unit="hours", value=6)
