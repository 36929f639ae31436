import logging
from typing import List, Optional, Sequence, Tuple
from .base import Action
from .upgrade import Upgrade, Observation, TRANSITIONS, classify
from .upgrade_backoff import UpgradeBackoff, BackoffOutcome
from .check_updates import CheckUpdates, UPDATE_AVAILABLE
from syndesis.resources import Installation


def default_actions() -> List[Action]:
    return [Upgrade(), UpgradeBackoff(), CheckUpdates()]


async def run_actions(
    installation: Installation,
    logger: logging.Logger,
    actions: Sequence[Action] = None,
) -> Tuple[Optional[Action], Optional[str]]:
    """Execute the first action that accepts the installation.

    Phases are mutually exclusive, so at most one action runs per pass.
    Returns the action that ran and its outcome, or (None, None).
    """
    for action in actions if actions is not None else default_actions():
        if action.can_execute(installation):
            logger.debug(f"Running {action!r} on {installation!r}.")
            return action, await action.execute(installation, logger)
    return None, None


__all__ = [
    "Action",
    "Upgrade",
    "UpgradeBackoff",
    "CheckUpdates",
    "Observation",
    "BackoffOutcome",
    "TRANSITIONS",
    "UPDATE_AVAILABLE",
    "classify",
    "default_actions",
    "run_actions",
]
