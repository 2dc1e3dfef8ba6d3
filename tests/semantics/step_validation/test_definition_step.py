"""
Semantic test: definition step validation.

Invariant:
Step 1 requires a name, an objective, a category and a positive budget, and
an end date that is not before the start date when both are present.
"""

from __future__ import annotations

from datetime import date

from campaign_topology.core.domain.draft import CampaignDraft
from campaign_topology.core.validation.step_validator import validate_definition, validate_step

VALID = {
    "name": "Spring reactivation",
    "objective": "retention",
    "category_id": 3,
    "budget_allocated": 2500.0,
}


def test_empty_definition_reports_every_required_field() -> None:
    result = validate_definition(CampaignDraft())

    assert not result.is_valid
    assert set(result.errors) == {"name", "objective", "category_id", "budget_allocated"}


def test_complete_definition_is_valid() -> None:
    draft = CampaignDraft()
    draft.update_metadata(VALID)

    assert validate_step(1, draft).is_valid


def test_blank_name_and_zero_budget_are_rejected() -> None:
    draft = CampaignDraft()
    draft.update_metadata({**VALID, "name": "   ", "budget_allocated": 0})

    result = validate_definition(draft)

    assert set(result.errors) == {"name", "budget_allocated"}


def test_end_date_before_start_date() -> None:
    draft = CampaignDraft()
    draft.update_metadata({**VALID, "start_date": date(2026, 5, 10), "end_date": date(2026, 5, 9)})
    assert set(validate_definition(draft).errors) == {"end_date"}

    draft.update_metadata({"end_date": date(2026, 5, 10)})
    assert validate_definition(draft).is_valid


def test_scheduling_and_preview_are_always_valid() -> None:
    draft = CampaignDraft()

    assert validate_step(4, draft).is_valid
    assert validate_step(5, draft).is_valid
