"""
Match Generator - turns eligible players and free courts into proposals.

For each slot start (90-minute matches):
1. find the season's courts free for [start, start + 90)
2. find players available at start who play the match type
3. in weekly mode, drop players who already reached matchesPerWeek
4. singles: greedy best-score pairing; doubles: shuffled groups of four
5. hand out free courts in court order; pairs beyond the courts are dropped

Pairing is heuristic, not an optimal assignment. Doubles groups that fail the
compatibility threshold are discarded, not requeued, so shuffle order can
leave compatible players unmatched.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import date
from math import floor
from typing import Dict, List, Optional, Sequence

from clubplanner.models.club import ClubSettings, Court, MatchType, Player, ScheduledMatch
from clubplanner.services.availability import filter_available_players
from clubplanner.services.compatibility import get_compatibility, levels_compatible
from clubplanner.services.reservations import DateScope, is_court_free
from clubplanner.utils.slot_templates import Templates, resolve_time_slots
from clubplanner.utils.time_utils import MATCH_DURATION_MINUTES, add_minutes, normalize_time, week_dates

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7


@dataclass
class ClubSnapshot:
    """Everything one generation call reads, loaded fresh by the caller."""

    players: List[Player]
    courts: List[Court]
    scheduled: List[ScheduledMatch] = field(default_factory=list)
    settings: ClubSettings = field(default_factory=ClubSettings)
    templates: Templates = field(default_factory=dict)

    def season_courts(self) -> List[Court]:
        return [c for c in self.courts if c.season == self.settings.season and c.available]


@dataclass
class Pairing:
    players: List[str]
    score: int


def generate_singles_pairs(
    players: Sequence[Player], min_compatibility: int, max_level_difference: int
) -> List[Pairing]:
    candidates: List[Pairing] = []
    for i in range(len(players)):
        for j in range(i + 1, len(players)):
            a, b = players[i], players[j]
            if not levels_compatible(a, b, max_level_difference):
                continue
            score = get_compatibility(a, b)
            if score < min_compatibility:
                continue
            candidates.append(Pairing(players=[a.id, b.id], score=score))

    # Stable sort: equal scores keep enumeration order
    candidates.sort(key=lambda p: p.score, reverse=True)

    pairs: List[Pairing] = []
    used = set()
    for candidate in candidates:
        first, second = candidate.players
        if first in used or second in used:
            continue
        pairs.append(candidate)
        used.update(candidate.players)
    return pairs


def generate_doubles_teams(
    players: Sequence[Player], min_compatibility: int, rng: random.Random
) -> List[Pairing]:
    """
    Groups of four from a shuffled pool; the first two popped form team one.

    A group is kept only if all six pairwise scores reach min_compatibility.
    Its score is the mean of those six, halves rounded up.
    """
    pool = list(players)
    rng.shuffle(pool)

    teams: List[Pairing] = []
    while len(pool) >= 4:
        group = [pool.pop() for _ in range(4)]
        scores = [
            get_compatibility(group[i], group[j]) for i in range(len(group)) for j in range(i + 1, len(group))
        ]
        if all(s >= min_compatibility for s in scores):
            teams.append(Pairing(players=[p.id for p in group], score=floor(sum(scores) / len(scores) + 0.5)))
    return teams


def generate_matches(
    snapshot: ClubSnapshot,
    day: date,
    match_type: MatchType,
    week_counts: Optional[Dict[str, int]] = None,
    time_slots: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> List[ScheduledMatch]:
    """
    Proposals for one date. week_counts, when given, is the running weekly
    quota map and is updated in place for every player placed on a court.
    """
    rng = rng or random.Random()
    settings = snapshot.settings
    courts = snapshot.season_courts()
    scope = DateScope(day)

    if time_slots is None:
        slots = resolve_time_slots(snapshot.templates, day, [c.id for c in courts])
    else:
        slots = [normalize_time(t) for t in time_slots]

    proposals: List[ScheduledMatch] = []
    for start in slots:
        end = add_minutes(start, MATCH_DURATION_MINUTES)

        free_courts = [c for c in courts if is_court_free(c, scope, start, end, snapshot.scheduled)]
        if not free_courts:
            logger.debug("Slot %s %s skipped: no free court", day.isoformat(), start)
            continue

        eligible = filter_available_players(snapshot.players, day, start, match_type)
        if week_counts is not None:
            eligible = [p for p in eligible if week_counts.get(p.id, 0) < p.matches_per_week]

        if len(eligible) < match_type.required_players:
            logger.debug("Slot %s %s skipped: %d eligible players", day.isoformat(), start, len(eligible))
            continue

        if match_type is MatchType.SINGLES:
            pairings = generate_singles_pairs(eligible, settings.min_compatibility, settings.max_level_difference)
        else:
            pairings = generate_doubles_teams(eligible, settings.min_compatibility, rng)

        for pairing, court in zip(pairings, free_courts):
            proposals.append(
                ScheduledMatch(
                    date=day,
                    time=start,
                    type=match_type,
                    court=court.id,
                    players=pairing.players,
                    score=pairing.score,
                    confirmed=False,
                )
            )
            if week_counts is not None:
                for pid in pairing.players:
                    week_counts[pid] = week_counts.get(pid, 0) + 1

    logger.info("Generated %d %s proposals for %s", len(proposals), match_type.value, day.isoformat())
    return proposals


def generate_weekly_matches(
    snapshot: ClubSnapshot,
    start: date,
    match_type: MatchType,
    time_slots: Optional[Sequence[str]] = None,
    rng: Optional[random.Random] = None,
) -> List[ScheduledMatch]:
    """Seven consecutive days sharing one quota map across the whole week."""
    rng = rng or random.Random()
    week_counts: Dict[str, int] = {}
    proposals: List[ScheduledMatch] = []
    for day in week_dates(start, DAYS_PER_WEEK):
        proposals.extend(generate_matches(snapshot, day, match_type, week_counts, time_slots, rng))
    return proposals
