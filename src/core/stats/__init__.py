"""Match statistics and leaderboard engine.

Two pure halves:
1. Single-match reduction (classifier + reducer)
2. Cross-match ranking contracts over the users_games fact table
"""

from src.core.stats.classifier import (
    PhaseStateEvent,
    PlayerActionEvent,
    classify_event,
    classify_outcome,
    result_codes_for_role,
    winning_faction,
)
from src.core.stats.reducer import reduce_match

__all__ = [
    "PhaseStateEvent",
    "PlayerActionEvent",
    "classify_event",
    "classify_outcome",
    "reduce_match",
    "result_codes_for_role",
    "winning_faction",
]
