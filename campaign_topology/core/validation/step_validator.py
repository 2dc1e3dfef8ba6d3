"""Per-step wizard validation.

Five pure predicates, one per wizard step. Each returns a StepValidation whose
errors map field -> message; an empty map means the step may be left forward.
The offer-status verdict is computed elsewhere and passed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from campaign_topology.core.domain.topology_rules import rule_for
from campaign_topology.core.domain.types import MULTIPLE_TARGET

if TYPE_CHECKING:
    from campaign_topology.core.domain.draft import CampaignDraft


@dataclass(slots=True)
class StepValidation:
    is_valid: bool
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_errors(cls, errors: dict[str, str]) -> StepValidation:
        return cls(is_valid=not errors, errors=errors)


def validate_definition(draft: CampaignDraft) -> StepValidation:
    metadata = draft.metadata
    errors: dict[str, str] = {}

    if not metadata.name.strip():
        errors["name"] = "Campaign name is required"
    if not (metadata.objective or "").strip():
        errors["objective"] = "Campaign objective is required"
    if metadata.category_id is None:
        errors["category_id"] = "Campaign category is required"
    if metadata.budget_allocated is None or metadata.budget_allocated <= 0:
        errors["budget_allocated"] = "Budget must be greater than 0"
    if metadata.start_date is not None and metadata.end_date is not None:
        if metadata.end_date < metadata.start_date:
            errors["end_date"] = "End date must be on or after the start date"

    return StepValidation.from_errors(errors)


def validate_audience(draft: CampaignDraft) -> StepValidation:
    segments = draft.segments
    rule = rule_for(draft.topology)
    errors: dict[str, str] = {}

    if not segments:
        errors["segments"] = "Select at least one segment"
    elif rule.exact_segments is not None and len(segments) != rule.exact_segments:
        noun = "segment" if rule.exact_segments == 1 else "segments"
        errors["segments"] = (
            f"{rule.display_name} campaigns require exactly {rule.exact_segments} {noun}"
        )

    return StepValidation.from_errors(errors)


def validate_offers(draft: CampaignDraft) -> StepValidation:
    """Topology-specific offer completeness plus the external status verdict."""
    rule = rule_for(draft.topology)
    errors: dict[str, str] = {}

    if rule.binding == "sequential":
        if not draft.sequential_steps:
            errors["offers"] = "Add at least one offer to the sequence"
    elif draft.topology == MULTIPLE_TARGET:
        mappings = draft.flat_mappings
        missing = [s.name for s in draft.segments if not mappings.get(s.id)]
        if missing:
            errors["offers"] = f"Map at least one offer to: {', '.join(missing)}"
    elif not any(draft.flat_mappings.values()):
        errors["offers"] = "Select at least one offer"

    if draft.offer_status_error:
        errors["offer_status"] = draft.offer_status_error

    return StepValidation.from_errors(errors)


def validate_scheduling(draft: CampaignDraft) -> StepValidation:
    # Scheduling defaults are always a deliverable schedule.
    return StepValidation(is_valid=True)


def validate_preview(draft: CampaignDraft) -> StepValidation:
    return StepValidation(is_valid=True)


STEP_VALIDATORS: dict[int, Callable[[CampaignDraft], StepValidation]] = {
    1: validate_definition,
    2: validate_audience,
    3: validate_offers,
    4: validate_scheduling,
    5: validate_preview,
}


def validate_step(step: int, draft: CampaignDraft) -> StepValidation:
    validator = STEP_VALIDATORS.get(step)
    if validator is None:
        raise ValueError(f"Unknown wizard step: {step}")
    return validator(draft)


def validate_all(draft: CampaignDraft) -> dict[int, StepValidation]:
    """Run every step validator (used before submit and by previews)."""
    return {step: validator(draft) for step, validator in STEP_VALIDATORS.items()}
