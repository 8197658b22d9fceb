"""
Compatibility Model - how well two players should be paired, 0..100.

Precedence:
- either player avoids the other      -> 0 (veto always wins)
- both prefer each other              -> 100
- one prefers the other               -> 80
- stored history score for the pair   -> that score
- otherwise                           -> 50

History scores only move through feedback: a match rated 1..5 stars nudges
every pair of its players by (rating - 3) * 5, clamped to 0..100.
"""

import logging
from typing import Dict, List, Optional, Sequence

from clubplanner.models.club import Player
from clubplanner.services.errors import PlannerValidationError, UnknownRecordError

logger = logging.getLogger(__name__)

VETO_SCORE = 0
MUTUAL_PREFERENCE_SCORE = 100
ONE_WAY_PREFERENCE_SCORE = 80
NEUTRAL_SCORE = 50

FEEDBACK_STEP = 5
FEEDBACK_NEUTRAL_RATING = 3


def clamp_score(score: int) -> int:
    return max(0, min(100, int(score)))


def get_compatibility(a: Optional[Player], b: Optional[Player]) -> int:
    # Unknown players pair neutrally
    if a is None or b is None:
        return NEUTRAL_SCORE

    if b.id in a.avoid_players or a.id in b.avoid_players:
        return VETO_SCORE

    a_prefers = b.id in a.preferred_players
    b_prefers = a.id in b.preferred_players
    if a_prefers and b_prefers:
        return MUTUAL_PREFERENCE_SCORE
    if a_prefers or b_prefers:
        return ONE_WAY_PREFERENCE_SCORE

    if b.id in a.compatibility:
        return a.compatibility[b.id]
    return NEUTRAL_SCORE


def levels_compatible(a: Player, b: Player, max_difference: int) -> bool:
    return abs(a.level_value - b.level_value) <= max_difference


# ============================================================================
# Writes
# ============================================================================


def _by_id(players: Sequence[Player]) -> Dict[str, Player]:
    return {p.id: p for p in players}


def set_compatibility(players: Sequence[Player], a_id: str, b_id: str, score: int) -> None:
    """Store a history score on both players (in place)."""
    index = _by_id(players)
    if a_id not in index or b_id not in index:
        missing = a_id if a_id not in index else b_id
        raise UnknownRecordError(f"Player {missing} not found")
    score = clamp_score(score)
    index[a_id].compatibility[b_id] = score
    index[b_id].compatibility[a_id] = score


def mark_preferred(player: Player, other_id: str) -> None:
    """Add other_id to the preferred set, dropping it from avoid."""
    if other_id == player.id:
        raise PlannerValidationError("A player cannot prefer themselves")
    player.avoid_players = [pid for pid in player.avoid_players if pid != other_id]
    if other_id not in player.preferred_players:
        player.preferred_players.append(other_id)


def mark_avoided(player: Player, other_id: str) -> None:
    """Add other_id to the avoid set, dropping it from preferred."""
    if other_id == player.id:
        raise PlannerValidationError("A player cannot avoid themselves")
    player.preferred_players = [pid for pid in player.preferred_players if pid != other_id]
    if other_id not in player.avoid_players:
        player.avoid_players.append(other_id)


def clear_preference(player: Player, other_id: str) -> None:
    player.preferred_players = [pid for pid in player.preferred_players if pid != other_id]
    player.avoid_players = [pid for pid in player.avoid_players if pid != other_id]


def check_preferences_disjoint(preferred: Sequence[str], avoid: Sequence[str]) -> None:
    both = sorted(set(preferred) & set(avoid))
    if both:
        raise PlannerValidationError(f"Players both preferred and avoided: {', '.join(both)}")


def apply_feedback(players: Sequence[Player], player_ids: Sequence[str], rating: int) -> List[str]:
    """
    Nudge every pairwise score among player_ids by (rating - 3) * 5.

    Players are updated in place. Ids that no longer exist are skipped.
    Returns the ids of the players whose scores changed.
    """
    if not 1 <= rating <= 5:
        raise PlannerValidationError(f"Rating must be between 1 and 5, got {rating}")

    index = _by_id(players)
    delta = (rating - FEEDBACK_NEUTRAL_RATING) * FEEDBACK_STEP
    present = []
    for pid in player_ids:
        if pid in index:
            present.append(pid)
        else:
            logger.warning("Feedback references unknown player %s, skipped", pid)

    for i in range(len(present)):
        for j in range(i + 1, len(present)):
            a, b = index[present[i]], index[present[j]]
            score = clamp_score(get_compatibility(a, b) + delta)
            a.compatibility[b.id] = score
            b.compatibility[a.id] = score

    logger.info("Applied %d-star feedback (delta %+d) to %d players", rating, delta, len(present))
    return present
