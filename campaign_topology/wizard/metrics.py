from __future__ import annotations

import json
import logging
import os

from prometheus_client import CollectorRegistry, Counter, push_to_gateway

LOGGER = logging.getLogger(__name__)


class WizardMetrics:
    """Prometheus counters for wizard activity.

    Counters live on a private registry so several controllers (or tests) can
    coexist in one process.

    Optional environment:
    - PROMETHEUS_PUSHGATEWAY_URL: when set, push() delivers the registry to
      the Pushgateway.
    - PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON: JSON object used as grouping key.

    Metrics are best-effort: callers never fail the wizard because of them.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._pushgateway_url = os.environ.get("PROMETHEUS_PUSHGATEWAY_URL")
        self._grouping_key = self._load_grouping_key()

        self.step_transitions = Counter(
            "campaign_wizard_step_transitions",
            "Wizard step transitions",
            labelnames=["direction", "outcome"],
            registry=self._registry,
        )
        self.submissions = Counter(
            "campaign_wizard_submissions",
            "Campaign submissions",
            labelnames=["outcome"],
            registry=self._registry,
        )
        self.checkpoint_restores = Counter(
            "campaign_wizard_checkpoint_restores",
            "Draft checkpoint resumes",
            labelnames=["outcome"],
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @staticmethod
    def _load_grouping_key() -> dict[str, str]:
        raw = os.environ.get("PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON")
        if not raw:
            return {}

        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("Invalid PROMETHEUS_PUSHGATEWAY_GROUPING_KEY_JSON; ignoring")
            return {}

        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(k, str) and isinstance(v, str)}

    def record_transition(self, direction: str, accepted: bool) -> None:
        self._inc(self.step_transitions, direction=direction, outcome="accepted" if accepted else "rejected")

    def record_submission(self, outcome: str) -> None:
        self._inc(self.submissions, outcome=outcome)

    def record_restore(self, restored: bool) -> None:
        self._inc(self.checkpoint_restores, outcome="restored" if restored else "empty")

    def sample(self, name: str, labels: dict[str, str]) -> float:
        """Current value of a counter sample (0.0 if never incremented)."""
        value = self._registry.get_sample_value(f"{name}_total", labels)
        return 0.0 if value is None else value

    @staticmethod
    def _inc(counter: Counter, **labels: str) -> None:
        try:
            counter.labels(**labels).inc()
        except Exception:
            LOGGER.exception("wizard_metric_failed", extra={"labels": labels})

    def push(self, *, job: str = "campaign_wizard") -> None:
        if not self._pushgateway_url:
            return
        try:
            push_to_gateway(
                gateway=self._pushgateway_url,
                job=job,
                registry=self._registry,
                grouping_key=self._grouping_key,
            )
        except Exception:
            LOGGER.exception("Prometheus push failed", extra={"job": job})
            return

        LOGGER.info(
            "Prometheus metrics pushed",
            extra={"job": job, "grouping_key": self._grouping_key},
        )
