from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from campaign_topology.core.config import EngineConfig
from campaign_topology.core.domain.draft import CampaignDraft, DraftSnapshot
from campaign_topology.wizard.checkpoint import CheckpointEnvelope
from campaign_topology.wizard.summary import print_draft_summary, summarize_draft

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _load_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return json.loads(path.read_text(encoding="utf-8"))


def _parse_snapshot(obj: dict[str, Any]) -> DraftSnapshot:
    """
    Accept either a stored checkpoint envelope or a bare draft snapshot.
    """
    if "checkpoint_id" in obj:
        return CheckpointEnvelope.model_validate(obj).draft
    return DraftSnapshot.model_validate(obj)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print the preview summary and step validation of a campaign draft"
    )

    parser.add_argument(
        "--draft",
        type=Path,
        required=True,
        help="Path to a draft checkpoint or snapshot JSON.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional engine config JSON (universal control groups, statuses).",
    )

    parser.add_argument(
        "--fail-on-invalid",
        action="store_true",
        help="Exit with status 1 when any step does not validate.",
    )

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    config = EngineConfig.from_json_obj(_load_json(args.config)) if args.config else EngineConfig()

    try:
        snapshot = _parse_snapshot(_load_json(args.draft))
    except (PydanticValidationError, json.JSONDecodeError) as exc:
        print(f"Error: {args.draft} is not a valid campaign draft: {exc}", file=sys.stderr)
        return 2

    draft = CampaignDraft.from_snapshot(snapshot, catalog=config.universal_control_groups)
    summary = summarize_draft(draft)
    print_draft_summary(summary)

    if args.fail_on_invalid and summary.step_errors:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
