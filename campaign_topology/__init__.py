"""Public API for the campaign_topology package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Allocation & Topology Rules
# ----------------------------------------------------------------------
from campaign_topology.core.allocation.control_group import (
    DEFAULT_UNIVERSAL_CONTROL_GROUPS,
    compute_control_group_size,
    describe,
)
from campaign_topology.core.config import EngineConfig

# ----------------------------------------------------------------------
# Draft (mapping store)
# ----------------------------------------------------------------------
from campaign_topology.core.domain.draft import AudienceOverview, CampaignDraft, DraftSnapshot
from campaign_topology.core.domain.sequential import SequentialFlowBuilder, describe_step
from campaign_topology.core.domain.topology_rules import (
    TOPOLOGY_RULES,
    AcceptedSegments,
    Rejection,
    derive_role,
    validate_add_segment,
)

# ----------------------------------------------------------------------
# Domain Types
# ----------------------------------------------------------------------
from campaign_topology.core.domain.types import (
    AB_TEST,
    CHAMPION_CHALLENGER,
    MULTIPLE_LEVEL,
    MULTIPLE_TARGET,
    ROUND_ROBIN,
    AdvancedParameters,
    CampaignMetadata,
    CampaignRecord,
    ConditionConfig,
    ControlGroupConfig,
    FixedNumber,
    FixedPercentage,
    IntervalConfig,
    MultipleControlGroup,
    NoControlGroup,
    SchedulingConfig,
    SegmentRef,
    SequentialStep,
    TopologyType,
    UniversalControlGroup,
    WithControlGroup,
)
from campaign_topology.core.errors import (
    CampaignEngineError,
    ConfigurationError,
    ExternalFetchError,
    PartialSubmissionFailure,
    SnapshotCorruption,
    TopologyContractError,
    ValidationError,
)
from campaign_topology.core.ports.storage import InMemoryStorage
from campaign_topology.core.validation.step_validator import StepValidation, validate_step

# ----------------------------------------------------------------------
# Wizard API
# ----------------------------------------------------------------------
from campaign_topology.wizard.checkpoint import DraftCheckpoint
from campaign_topology.wizard.controller import WizardController
from campaign_topology.wizard.submission import SubmissionResult

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Wizard
    "WizardController",
    "DraftCheckpoint",
    "SubmissionResult",
    "InMemoryStorage",
    "EngineConfig",

    # Draft
    "CampaignDraft",
    "DraftSnapshot",
    "AudienceOverview",
    "SequentialFlowBuilder",
    "describe_step",

    # Rules & allocation
    "TOPOLOGY_RULES",
    "AcceptedSegments",
    "Rejection",
    "derive_role",
    "validate_add_segment",
    "DEFAULT_UNIVERSAL_CONTROL_GROUPS",
    "compute_control_group_size",
    "describe",
    "StepValidation",
    "validate_step",

    # Domain types
    "TopologyType",
    "MULTIPLE_TARGET",
    "CHAMPION_CHALLENGER",
    "AB_TEST",
    "ROUND_ROBIN",
    "MULTIPLE_LEVEL",
    "SegmentRef",
    "ControlGroupConfig",
    "NoControlGroup",
    "WithControlGroup",
    "MultipleControlGroup",
    "FixedPercentage",
    "FixedNumber",
    "AdvancedParameters",
    "UniversalControlGroup",
    "SequentialStep",
    "IntervalConfig",
    "ConditionConfig",
    "CampaignMetadata",
    "SchedulingConfig",
    "CampaignRecord",

    # Errors
    "CampaignEngineError",
    "ConfigurationError",
    "TopologyContractError",
    "ValidationError",
    "ExternalFetchError",
    "PartialSubmissionFailure",
    "SnapshotCorruption",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("campaign-topology")
except PackageNotFoundError:
    __version__ = "0.0.0"
