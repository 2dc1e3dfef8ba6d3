"""Sequential flow builder for round-robin and multiple-level topologies.

Maintains the ordered (offer, interval-or-condition) list bound to the single
campaign segment. sequence_order is always the 1-based list position.
"""

from __future__ import annotations

from typing import Iterable

from campaign_topology.core.domain.reject_reasons import RejectReason
from campaign_topology.core.domain.topology_rules import rule_for
from campaign_topology.core.domain.types import (
    ConditionConfig,
    IntervalConfig,
    SequentialStep,
    StepConfig,
    TopologyType,
)
from campaign_topology.core.errors import ConfigurationError, TopologyContractError


def default_step_config(topology: TopologyType) -> StepConfig:
    """Payload given to a freshly appended step."""
    expected = rule_for(topology).step_config_type
    if expected == "interval":
        return IntervalConfig(unit="days", value=1)
    if expected == "condition":
        return ConditionConfig(kind="customer_attribute", operator="equals", field="", value="")
    raise TopologyContractError(f"Topology {topology!r} has no sequential flow")


def describe_step(step: SequentialStep) -> str:
    """Short label shown between two offer nodes."""
    config = step.config
    if isinstance(config, IntervalConfig):
        return f"Wait {config.value} {config.unit}"
    return f"If {config.field} {config.operator} {config.value}"


class SequentialFlowBuilder:
    """Ordered offer flow for one segment."""

    def __init__(self, topology: TopologyType, steps: Iterable[SequentialStep] | None = None) -> None:
        rule = rule_for(topology)
        if rule.binding != "sequential":
            raise TopologyContractError(f"Topology {topology!r} does not use sequential steps")

        self._topology = topology
        self._expected_config_type = rule.step_config_type
        self._steps: list[SequentialStep] = []

        for step in steps or ():
            self._check_variant(step.config)
            self._steps.append(step)
        self._renumber()

    @property
    def topology(self) -> TopologyType:
        return self._topology

    @property
    def steps(self) -> list[SequentialStep]:
        """Return a copy of the ordered steps."""
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def offer_ids(self) -> list[str]:
        return [s.offer_id for s in self._steps]

    def contains_offer(self, offer_id: str) -> bool:
        return any(s.offer_id == offer_id for s in self._steps)

    def _check_variant(self, config: StepConfig) -> None:
        if config.config_type != self._expected_config_type:
            raise TopologyContractError(
                f"{self._topology} steps require a {self._expected_config_type} config, "
                f"got {config.config_type}"
            )

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._steps):
            raise ConfigurationError(
                f"No sequential step at index {index}",
                reason=RejectReason.UNKNOWN_STEP,
            )

    def _renumber(self) -> None:
        self._steps = [
            step if step.sequence_order == i + 1 else step.model_copy(update={"sequence_order": i + 1})
            for i, step in enumerate(self._steps)
        ]

    # ---- Mutators ----
    def append_step(
        self,
        offer_id: str,
        segment_id: str,
        config: StepConfig | None = None,
    ) -> SequentialStep:
        """Append an offer at sequence_order = len + 1."""
        payload = default_step_config(self._topology) if config is None else config
        self._check_variant(payload)

        if self.contains_offer(offer_id):
            raise ConfigurationError(
                f"Offer {offer_id!r} is already part of the sequence",
                reason=RejectReason.DUPLICATE_OFFER,
            )

        step = SequentialStep(
            offer_id=offer_id,
            segment_id=segment_id,
            sequence_order=len(self._steps) + 1,
            config=payload,
        )
        self._steps.append(step)
        return step

    def remove_step(self, index: int) -> SequentialStep:
        """Remove the step at index and renumber the tail."""
        self._check_index(index)
        removed = self._steps.pop(index)
        self._renumber()
        return removed

    def update_step_config(self, index: int, config: StepConfig) -> SequentialStep:
        """Replace only the interval/condition payload of a step."""
        self._check_variant(config)
        self._check_index(index)
        updated = self._steps[index].model_copy(update={"config": config})
        self._steps[index] = updated
        return updated

    def remove_steps_for_segment(self, segment_id: str) -> list[SequentialStep]:
        removed = [s for s in self._steps if s.segment_id == segment_id]
        if removed:
            self._steps = [s for s in self._steps if s.segment_id != segment_id]
            self._renumber()
        return removed

    def clear(self) -> list[SequentialStep]:
        removed, self._steps = self._steps, []
        return removed
