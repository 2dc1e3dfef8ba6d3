"""Engine error taxonomy.

Mutators raise before they mutate: a raised ConfigurationError always leaves
the draft exactly as it was. External failures are degraded locally and are
only raised when the caller explicitly asked for strict behavior.
"""

from __future__ import annotations

from typing import Mapping


class CampaignEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(CampaignEngineError):
    """Out-of-range control-group parameter or topology-cardinality violation.

    Local and recoverable: the caller re-prompts the operator.
    """

    def __init__(self, message: str, *, reason: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.field = field


class TopologyContractError(CampaignEngineError):
    """An operation was called that the active topology can never accept.

    This is a programming error in the calling UI layer (e.g. appending an
    interval step to a multiple-level flow), not something to re-prompt.
    """


class ValidationError(CampaignEngineError):
    """Blocking step validation failure, carrying the field -> message map."""

    def __init__(self, errors: Mapping[str, str], *, step: int | None = None) -> None:
        self.errors: dict[str, str] = dict(errors)
        self.step = step
        summary = "; ".join(f"{k}: {v}" for k, v in self.errors.items())
        prefix = f"Step {step} is invalid" if step is not None else "Draft is invalid"
        super().__init__(f"{prefix}: {summary}" if summary else prefix)


class ExternalFetchError(CampaignEngineError):
    """Offer-status or segment/offer hydration failure."""

    def __init__(self, message: str, *, resource_id: str | None = None) -> None:
        super().__init__(message)
        self.resource_id = resource_id


class PartialSubmissionFailure(CampaignEngineError):
    """The campaign record exists but some segment/offer links failed.

    Never raised by the submitter itself; it is exposed on the submission
    result so callers can surface (or raise) it as a warning.
    """

    def __init__(self, campaign_id: str, warnings: list[str]) -> None:
        self.campaign_id = campaign_id
        self.warnings = list(warnings)
        super().__init__(
            f"Campaign {campaign_id} was created but {len(self.warnings)} link(s) failed; "
            "verify the campaign details manually"
        )


class SnapshotCorruption(CampaignEngineError):
    """Malformed recoverable-storage payload (only raised in strict mode)."""
