"""Engine configuration model for wizard controllers and headless callers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from campaign_topology.core.allocation.control_group import DEFAULT_UNIVERSAL_CONTROL_GROUPS
from campaign_topology.core.domain.types import UniversalControlGroup


class EngineConfig(BaseModel):
    """Structured engine configuration.

    strict_* flags switch the corresponding degraded path from fail-open
    (log and continue) to fail-closed.
    """

    strict_offer_status: bool = False
    strict_snapshot: bool = False

    snapshot_key: str = Field(default="campaign_draft_snapshot", min_length=1)
    return_signal_key: str = Field(default="returning_from_offer_creation", min_length=1)

    universal_control_groups: list[UniversalControlGroup] = Field(
        default_factory=lambda: list(DEFAULT_UNIVERSAL_CONTROL_GROUPS)
    )
    valid_offer_statuses: frozenset[str] = frozenset({"active", "approved"})

    # Optional caller-specific keys, never read by the engine
    extra: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    @classmethod
    def from_json_obj(cls, config_obj: dict[str, Any]) -> EngineConfig:
        """Create an EngineConfig instance from a JSON-compatible object."""
        return cls.model_validate(config_obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> EngineConfig:
        """Validate internal consistency of the engine configuration."""
        ids = [g.id for g in self.universal_control_groups]
        if len(set(ids)) != len(ids):
            raise ValueError("universal_control_groups ids must be unique")
        if self.snapshot_key == self.return_signal_key:
            raise ValueError("snapshot_key and return_signal_key must differ")
        if not self.valid_offer_statuses:
            raise ValueError("valid_offer_statuses must not be empty")
        return self

    def is_valid_offer_status(self, status: str) -> bool:
        return status.strip().lower() in {s.lower() for s in self.valid_offer_statuses}
