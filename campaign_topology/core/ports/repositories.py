"""Repository and persistence protocols.

These are the external boundaries of the engine. Segment and offer
repositories are read only and used to check offer status and to hydrate an
existing campaign. Campaign persistence receives the validated draft on
submit. Implementations raise on failure; the engine decides whether a
failure degrades or propagates.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence

from campaign_topology.core.domain.types import OfferRecord, SegmentOfferMapping, SegmentRef


class OfferRepository(Protocol):
    async def fetch_offer_by_id(self, offer_id: str) -> OfferRecord:
        """Return the offer record, raising if it cannot be fetched."""


class SegmentRepository(Protocol):
    async def fetch_segment_by_id(self, segment_id: str) -> SegmentRef:
        """Return the segment, raising if it cannot be fetched."""


class CampaignPersistence(Protocol):
    """Campaign write API.

    Request payloads are plain JSON-compatible dicts built by the submission
    module; the persistence layer owns its own wire format.
    """

    async def create_campaign(self, request: dict[str, Any]) -> str:
        """Create a campaign record and return its id."""

    async def update_campaign(self, campaign_id: str, request: dict[str, Any]) -> str:
        """Update an existing campaign record and return its id."""

    async def attach_segment(self, campaign_id: str, segment_id: str, *, is_primary: bool) -> None:
        """Link one segment to the campaign."""

    async def create_segment_offer_mappings(self, mappings: Sequence[SegmentOfferMapping]) -> None:
        """Persist every segment-offer link in one batched call."""
