"""
Semantic test: concurrent offer-status check.

Invariant:
Every selected offer is fetched concurrently and the verdict is produced
only after all fetches finish. A failed fetch counts as valid in lenient
mode and as invalid in strict mode.
"""

from __future__ import annotations

import asyncio

import pytest

from campaign_topology.core.domain.types import OfferRecord
from campaign_topology.core.validation.offer_status import OfferStatusChecker


class FakeOfferRepository:
    def __init__(self, statuses: dict[str, str], failing: set[str] | None = None) -> None:
        self.statuses = statuses
        self.failing = failing or set()
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_offer_by_id(self, offer_id: str) -> OfferRecord:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            if offer_id in self.failing:
                raise ConnectionError("offer service unavailable")
            return OfferRecord(id=offer_id, status=self.statuses[offer_id])
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_fetches_run_concurrently() -> None:
    repo = FakeOfferRepository({"o1": "active", "o2": "approved", "o3": "Active"})

    report = await OfferStatusChecker(repo).check(["o1", "o2", "o3"])

    assert report.is_valid
    assert report.error_message is None
    assert repo.max_in_flight == 3


@pytest.mark.asyncio
async def test_inactive_offer_is_reported() -> None:
    repo = FakeOfferRepository({"o1": "active", "o2": "draft"})

    report = await OfferStatusChecker(repo).check(["o1", "o2"])

    assert not report.is_valid
    assert report.invalid == {"o2": "draft"}
    assert "o2 (draft)" in report.error_message


@pytest.mark.asyncio
async def test_failed_fetch_is_valid_when_lenient() -> None:
    repo = FakeOfferRepository({"o1": "active"}, failing={"o2"})

    report = await OfferStatusChecker(repo).check(["o1", "o2"])

    assert report.failed == ["o2"]
    assert report.is_valid


@pytest.mark.asyncio
async def test_failed_fetch_is_invalid_when_strict() -> None:
    repo = FakeOfferRepository({"o1": "active"}, failing={"o2"})

    report = await OfferStatusChecker(repo, strict=True).check(["o1", "o2"])

    assert not report.is_valid
    assert "Could not verify offer status: o2" in report.error_message


@pytest.mark.asyncio
async def test_no_offers_is_trivially_valid() -> None:
    repo = FakeOfferRepository({})

    report = await OfferStatusChecker(repo).check([])

    assert report.is_valid
    assert repo.max_in_flight == 0
