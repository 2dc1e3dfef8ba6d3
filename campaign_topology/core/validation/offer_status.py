"""Concurrent offer-status check.

Each selected offer is fetched independently (fan-out with asyncio.gather)
and the verdicts are joined before the aggregate result is produced. A fetch
failure counts as valid in lenient mode and as invalid in strict mode.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from campaign_topology.core.errors import ExternalFetchError

if TYPE_CHECKING:
    from campaign_topology.core.ports.repositories import OfferRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_VALID_STATUSES: frozenset[str] = frozenset({"active", "approved"})


@dataclass(slots=True)
class OfferStatusReport:
    checked: list[str] = field(default_factory=list)
    invalid: dict[str, str] = field(default_factory=dict)  # offer_id -> status
    failed: list[str] = field(default_factory=list)
    strict: bool = False

    @property
    def is_valid(self) -> bool:
        if self.invalid:
            return False
        return not (self.strict and self.failed)

    def restricted_to(self, offer_ids: Iterable[str]) -> OfferStatusReport:
        """The verdict for the offers still in `offer_ids` only."""
        keep = set(offer_ids)
        return OfferStatusReport(
            checked=[o for o in self.checked if o in keep],
            invalid={o: s for o, s in self.invalid.items() if o in keep},
            failed=[o for o in self.failed if o in keep],
            strict=self.strict,
        )

    @property
    def error_message(self) -> str | None:
        """Blocking message for the offers step, or None if nothing blocks."""
        if self.is_valid:
            return None
        parts: list[str] = []
        if self.invalid:
            listed = ", ".join(f"{offer_id} ({status})" for offer_id, status in self.invalid.items())
            parts.append(f"Offers must be active or approved: {listed}")
        if self.strict and self.failed:
            parts.append(f"Could not verify offer status: {', '.join(self.failed)}")
        return "; ".join(parts)


class OfferStatusChecker:
    """Fan-out/fan-in offer status validation."""

    def __init__(
        self,
        repository: OfferRepository,
        *,
        valid_statuses: Iterable[str] = DEFAULT_VALID_STATUSES,
        strict: bool = False,
    ) -> None:
        self._repository = repository
        self._valid_statuses = frozenset(s.lower() for s in valid_statuses)
        self._strict = strict

    async def _fetch_status(self, offer_id: str) -> str:
        try:
            record = await self._repository.fetch_offer_by_id(offer_id)
        except Exception as exc:
            raise ExternalFetchError(f"Failed to fetch offer {offer_id}: {exc}", resource_id=offer_id) from exc
        return record.status

    async def check(self, offer_ids: Iterable[str]) -> OfferStatusReport:
        ids = list(dict.fromkeys(offer_ids))
        report = OfferStatusReport(checked=ids, strict=self._strict)
        if not ids:
            return report

        results = await asyncio.gather(*(self._fetch_status(i) for i in ids), return_exceptions=True)

        for offer_id, result in zip(ids, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                report.failed.append(offer_id)
                LOGGER.warning(
                    "offer_status_fetch_failed",
                    extra={"offer_id": offer_id, "strict": self._strict, "error": str(result)},
                )
                continue
            if result.strip().lower() not in self._valid_statuses:
                report.invalid[offer_id] = result

        return report
