"""
Wizard step state machine definitions.

This module defines the five wizard steps and the transitions allowed between
them. It is passive and validation-only: the controller consults it and
decides whether a transition also needs the current step to validate.
"""

from __future__ import annotations

WIZARD_STEPS: dict[int, str] = {
    1: "Definition",
    2: "Audience",
    3: "Offers",
    4: "Schedule",
    5: "Preview",
}

FIRST_STEP: int = 1
OFFERS_STEP: int = 3
LAST_STEP: int = 5


def step_name(step: int) -> str:
    """Return the display name of a step."""
    return WIZARD_STEPS[step]


def is_known_step(step: int) -> bool:
    return step in WIZARD_STEPS


def requires_validation(prev_step: int, next_step: int) -> bool:
    """Return True if moving prev_step -> next_step is gated on prev_step validating.

    Only a single step forward is gated. Moving backwards never is.
    """
    return next_step == prev_step + 1


def is_valid_transition(prev_step: int, next_step: int) -> bool:
    """Return True if the transition prev_step -> next_step is allowed at all.

    Notes:
    - Any earlier step may be re-entered.
    - Forward moves are limited to the immediately following step.
    - Staying on the same step is not a transition.
    """
    if not (is_known_step(prev_step) and is_known_step(next_step)):
        return False
    if next_step < prev_step:
        return True
    return next_step == prev_step + 1
