"""Hand-over of a validated draft to campaign persistence.

The campaign record is created (or updated) first. Segment attachment and the
batched segment-offer mapping call follow; their failures are collected as
warnings and never roll the campaign back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from campaign_topology.core.domain.types import ExistingOfferMapping, SegmentOfferMapping
from campaign_topology.core.errors import PartialSubmissionFailure

if TYPE_CHECKING:
    from campaign_topology.core.domain.draft import CampaignDraft
    from campaign_topology.core.ports.repositories import CampaignPersistence

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------


def build_campaign_request(draft: CampaignDraft) -> dict[str, Any]:
    """JSON-compatible campaign record for create/update."""
    request = draft.metadata.model_dump(mode="json", exclude_none=True)
    request["campaign_type"] = draft.topology
    request["scheduling"] = draft.scheduling.model_dump(mode="json")
    request["is_mutually_exclusive"] = any(s.is_mutually_exclusive for s in draft.segments)
    request["control_groups"] = {
        s.id: s.control_group_config.model_dump(mode="json") for s in draft.segments
    }
    return request


def build_offer_mappings(draft: CampaignDraft) -> list[ExistingOfferMapping]:
    """Offer bindings of the draft.

    Flat topologies emit one mapping per (segment, offer) binding at priority
    1. Sequential topologies emit one mapping per step with priority equal to
    its sequence_order and the step payload attached.
    """
    if draft.sequential_steps:
        return [
            ExistingOfferMapping(
                offer_id=step.offer_id,
                segment_ids=[step.segment_id],
                priority=step.sequence_order,
                step_config=step.config,
            )
            for step in draft.sequential_steps
        ]

    mappings: list[ExistingOfferMapping] = []
    flat = draft.flat_mappings
    for segment in draft.segments:
        for offer_id in flat.get(segment.id, []):
            mappings.append(ExistingOfferMapping(offer_id=offer_id, segment_ids=[segment.id], priority=1))
    return mappings


def build_segment_offer_rows(campaign_id: str, draft: CampaignDraft) -> list[SegmentOfferMapping]:
    return [
        SegmentOfferMapping(
            campaign_id=campaign_id,
            segment_id=segment_id,
            offer_id=mapping.offer_id,
            priority=mapping.priority,
        )
        for mapping in build_offer_mappings(draft)
        for segment_id in mapping.segment_ids
    ]


# ---------------------------------------------------------------------------
# Submitter
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class SubmissionResult:
    campaign_id: str
    created: bool
    attached_segment_ids: list[str] = field(default_factory=list)
    mapping_count: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def partial_failure(self) -> PartialSubmissionFailure | None:
        if not self.warnings:
            return None
        return PartialSubmissionFailure(self.campaign_id, self.warnings)


class CampaignSubmitter:
    def __init__(self, persistence: CampaignPersistence) -> None:
        self._persistence = persistence

    async def submit(self, draft: CampaignDraft, *, campaign_id: str | None = None) -> SubmissionResult:
        """Persist the draft.

        Failure to create/update the record propagates. Link failures after
        that point become warnings on the result.
        """
        request = build_campaign_request(draft)
        if campaign_id is None:
            campaign_id = await self._persistence.create_campaign(request)
            created = True
        else:
            campaign_id = await self._persistence.update_campaign(campaign_id, request)
            created = False

        result = SubmissionResult(campaign_id=campaign_id, created=created)

        for segment in draft.segments:
            try:
                await self._persistence.attach_segment(
                    campaign_id,
                    segment.id,
                    is_primary=segment.priority == 1,
                )
            except Exception as exc:
                LOGGER.warning(
                    "segment_attach_failed",
                    extra={"campaign_id": campaign_id, "segment_id": segment.id, "error": str(exc)},
                )
                result.warnings.append(f"Failed to attach segment {segment.name!r}: {exc}")
            else:
                result.attached_segment_ids.append(segment.id)

        rows = build_segment_offer_rows(campaign_id, draft)
        if rows:
            try:
                await self._persistence.create_segment_offer_mappings(rows)
            except Exception as exc:
                LOGGER.warning(
                    "segment_offer_mapping_failed",
                    extra={"campaign_id": campaign_id, "rows": len(rows), "error": str(exc)},
                )
                result.warnings.append(f"Failed to create {len(rows)} segment-offer mapping(s): {exc}")
            else:
                result.mapping_count = len(rows)

        LOGGER.info(
            "campaign_submitted",
            extra={
                "campaign_id": campaign_id,
                "created": created,
                "segments": len(result.attached_segment_ids),
                "mappings": result.mapping_count,
                "warnings": len(result.warnings),
            },
        )
        return result
