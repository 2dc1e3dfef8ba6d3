"""Core shared data models and schemas.

This module defines the canonical Pydantic models used across the engine for
segments, control-group configuration, sequential offer flows, campaign
metadata and the records exchanged with external repositories. The
variant-shaped models are closed discriminated unions: every consumer matches
them exhaustively.
"""

# pylint: disable=line-too-long,missing-class-docstring,missing-function-docstring
from __future__ import annotations

from datetime import date
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Topology
# ---------------------------------------------------------------------------


TopologyType = Literal[
    "multiple_target_group",
    "champion_challenger",
    "ab_test",
    "round_robin",
    "multiple_level",
]

MULTIPLE_TARGET: TopologyType = "multiple_target_group"
CHAMPION_CHALLENGER: TopologyType = "champion_challenger"
AB_TEST: TopologyType = "ab_test"
ROUND_ROBIN: TopologyType = "round_robin"
MULTIPLE_LEVEL: TopologyType = "multiple_level"

SegmentRole = Literal[
    "champion",
    "challenger",
    "variant_a",
    "variant_b",
    "target",
    "member",
]


# ---------------------------------------------------------------------------
# Control group configuration (discriminated unions)
# ---------------------------------------------------------------------------


class PercentageLimits(BaseModel):
    """Advisory bounds shown next to a fixed percentage. Never clamped."""

    lower: int | None = Field(default=None, ge=0)
    upper: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def validate_bounds(self) -> PercentageLimits:
        if self.lower is not None and self.upper is not None and self.lower > self.upper:
            raise ValueError("lower limit must not exceed upper limit")
        return self


class FixedPercentage(BaseModel):
    kind: Literal["fixed_percentage"] = "fixed_percentage"
    percentage: float = Field(..., ge=0.1, le=50)
    limits: PercentageLimits | None = None

    model_config = ConfigDict(extra="forbid")


class FixedNumber(BaseModel):
    kind: Literal["fixed_number"] = "fixed_number"
    count: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")


class AdvancedParameters(BaseModel):
    """Heuristic sizing inputs. Not a statistical sample-size calculation."""

    kind: Literal["advanced_parameters"] = "advanced_parameters"
    confidence_level: float = Field(..., ge=90, le=99)
    margin_of_error: float = Field(..., ge=1, le=10)

    model_config = ConfigDict(extra="forbid")


ControlGroupMethod = Annotated[
    FixedPercentage | FixedNumber | AdvancedParameters,
    Field(discriminator="kind"),
]


class NoControlGroup(BaseModel):
    type: Literal["none"] = "none"

    model_config = ConfigDict(extra="forbid")


class WithControlGroup(BaseModel):
    type: Literal["with_control_group"] = "with_control_group"
    method: ControlGroupMethod

    model_config = ConfigDict(extra="forbid")


class MultipleControlGroup(BaseModel):
    type: Literal["multiple_control_group"] = "multiple_control_group"
    selected_universal_group_id: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


# Discriminated union: Pydantic will select the correct model based on type.
ControlGroupConfig = Annotated[
    NoControlGroup | WithControlGroup | MultipleControlGroup,
    Field(discriminator="type"),
]


class UniversalControlGroup(BaseModel):
    """Pre-defined reusable control group managed outside the campaign."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    percentage: float = Field(..., ge=0, le=100)
    description: str | None = None

    model_config = ConfigDict(extra="forbid", frozen=True)


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class SegmentRef(BaseModel):
    """A segment as seen by the draft.

    The role of a segment is intentionally NOT a field: it is always derived
    from (topology, priority) by topology_rules.derive_role().
    """

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: str | None = None
    customer_count: int = Field(default=0, ge=0)
    priority: int = Field(default=1, ge=1)
    control_group_config: ControlGroupConfig = Field(default_factory=NoControlGroup)
    is_mutually_exclusive: bool = False

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Sequential offer flow
# ---------------------------------------------------------------------------


IntervalUnit = Literal["hours", "days", "weeks"]
ConditionKind = Literal["customer_attribute", "behavior", "transaction", "custom"]
ConditionOperator = Literal[
    "equals",
    "not_equals",
    "greater_than",
    "less_than",
    "contains",
    "not_contains",
]


class IntervalConfig(BaseModel):
    """Round-robin payload: wait this long before the next offer."""

    config_type: Literal["interval"] = "interval"
    unit: IntervalUnit = "days"
    value: int = Field(default=1, ge=1)
    note: str | None = None

    model_config = ConfigDict(extra="forbid")


class ConditionConfig(BaseModel):
    """Multiple-level payload: deliver the next offer if the condition holds."""

    config_type: Literal["condition"] = "condition"
    kind: ConditionKind = "customer_attribute"
    field: str = ""
    operator: ConditionOperator = "equals"
    value: str | float | bool = ""
    note: str | None = None

    model_config = ConfigDict(extra="forbid")


StepConfig = Annotated[
    IntervalConfig | ConditionConfig,
    Field(discriminator="config_type"),
]


class SequentialStep(BaseModel):
    offer_id: str = Field(..., min_length=1)
    segment_id: str = Field(..., min_length=1)
    sequence_order: int = Field(..., ge=1)
    config: StepConfig

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# Campaign metadata and scheduling (owned by external steps)
# ---------------------------------------------------------------------------


class CampaignMetadata(BaseModel):
    """Definition-step fields.

    Unknown keys are kept so that fields owned by the definition step but
    not inspected by the engine survive a checkpoint round-trip.
    """

    name: str = Field(default="", max_length=128)
    description: str | None = Field(default=None, max_length=1000)
    objective: str | None = Field(default=None, max_length=256)
    category_id: int | None = Field(default=None, gt=0)
    program_id: int | None = Field(default=None, gt=0)
    budget_allocated: float | None = None
    start_date: date | None = None
    end_date: date | None = None
    timezone: str | None = None
    owner_team: str | None = Field(default=None, max_length=64)
    tags: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class FrequencyCapping(BaseModel):
    max_per_day: int | None = Field(default=1, ge=0)
    max_per_week: int | None = Field(default=3, ge=0)
    max_per_month: int | None = Field(default=10, ge=0)

    model_config = ConfigDict(extra="forbid")


class Throttling(BaseModel):
    max_per_hour: int = Field(default=1000, ge=0)
    max_per_day: int = Field(default=10000, ge=0)

    model_config = ConfigDict(extra="forbid")


class SchedulingConfig(BaseModel):
    """Scheduling-step payload. The defaults are always a valid schedule."""

    type: Literal["immediate", "scheduled", "recurring", "trigger_based"] = "scheduled"
    time_zone: str = Field(default="UTC", min_length=1)
    delivery_times: list[str] = Field(default_factory=lambda: ["09:00"])
    frequency_capping: FrequencyCapping = Field(default_factory=FrequencyCapping)
    throttling: Throttling = Field(default_factory=Throttling)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------------
# External records
# ---------------------------------------------------------------------------


class OfferRecord(BaseModel):
    """Offer as returned by the offer repository."""

    id: str = Field(..., min_length=1)
    status: str = Field(..., min_length=1)
    name: str | None = None
    raw: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")


class SegmentOfferMapping(BaseModel):
    """One row of the batched segment-offer mapping call."""

    campaign_id: str = Field(..., min_length=1)
    segment_id: str = Field(..., min_length=1)
    offer_id: str = Field(..., min_length=1)
    priority: int = Field(default=1, ge=1)

    model_config = ConfigDict(extra="forbid")


class ExistingOfferMapping(BaseModel):
    """Offer binding as stored on an existing campaign."""

    offer_id: str = Field(..., min_length=1)
    segment_ids: list[str] = Field(..., min_length=1)
    priority: int = Field(default=1, ge=1)
    step_config: StepConfig | None = None

    model_config = ConfigDict(extra="forbid")


class CampaignRecord(BaseModel):
    """An existing campaign loaded for edit or duplicate."""

    id: str = Field(..., min_length=1)
    topology: TopologyType
    metadata: CampaignMetadata = Field(default_factory=CampaignMetadata)
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    segment_ids: list[str] = Field(default_factory=list)
    control_group_configs: dict[str, ControlGroupConfig] = Field(default_factory=dict)
    offer_mappings: list[ExistingOfferMapping] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
