"""
PlannerService - the scheduling engine over the document repository.

Each operation starts by reading the documents it needs, runs the pure
algorithm from the availability / reservations / compatibility /
match_generator modules, and writes back whole documents only when the
algorithm succeeded. Nothing is cached between calls: another client may
replace any document between two operations.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from clubplanner.models.club import (
    ClubSettings,
    Court,
    MatchRecord,
    MatchType,
    Player,
    Reservation,
    ScheduledMatch,
    Season,
    SkillLevel,
)
from clubplanner.repository import (
    COURTS,
    MATCHES,
    PLANNING_TEMPLATES,
    PLAYERS,
    SCHEDULED,
    SETTINGS,
    ClubRepository,
)
from clubplanner.services import availability, compatibility, match_generator, reservations
from clubplanner.services.errors import PlannerValidationError, UnknownRecordError
from clubplanner.services.match_generator import ClubSnapshot
from clubplanner.services.reservations import Scope
from clubplanner.utils.slot_templates import DEFAULT_SLOT_STARTS, parse_slot_template, resolve_time_slots

logger = logging.getLogger(__name__)

UNKNOWN_PLAYER = "Unknown"
UNKNOWN_COURT = "TBD"


@dataclass
class MatchView:
    """A scheduled match with names resolved for display."""

    match: ScheduledMatch
    player_names: List[str]
    court_name: str


@dataclass
class HistoryStats:
    total: int
    singles: int
    doubles: int
    this_month: int


class PlannerService:
    def __init__(self, repository: ClubRepository):
        self.repository = repository

    # ------------------------------------------------------------------
    # Document access
    # ------------------------------------------------------------------

    def players(self) -> List[Player]:
        return [Player.from_document(d) for d in self.repository.load(PLAYERS, []) or []]

    def courts(self) -> List[Court]:
        return [Court.model_validate(d) for d in self.repository.load(COURTS, []) or []]

    def scheduled(self) -> List[ScheduledMatch]:
        return [ScheduledMatch.model_validate(d) for d in self.repository.load(SCHEDULED, []) or []]

    def history(self) -> List[MatchRecord]:
        return [MatchRecord.model_validate(d) for d in self.repository.load(MATCHES, []) or []]

    def settings(self) -> ClubSettings:
        return ClubSettings.model_validate(self.repository.load(SETTINGS, {}) or {})

    def templates(self) -> Dict[str, Dict[str, Any]]:
        return self.repository.load(PLANNING_TEMPLATES, {}) or {}

    def snapshot(self) -> ClubSnapshot:
        return ClubSnapshot(
            players=self.players(),
            courts=self.courts(),
            scheduled=self.scheduled(),
            settings=self.settings(),
            templates=self.templates(),
        )

    def _save_players(self, players: Sequence[Player]) -> None:
        self.repository.save(PLAYERS, [p.to_document() for p in players])

    def _save_courts(self, courts: Sequence[Court]) -> None:
        self.repository.save(COURTS, [c.to_document() for c in courts])

    @staticmethod
    def _find_player(players: Sequence[Player], player_id: str) -> Player:
        for player in players:
            if player.id == player_id:
                return player
        raise UnknownRecordError(f"Player {player_id} not found")

    @staticmethod
    def _find_court(courts: Sequence[Court], court_id: str) -> Court:
        for court in courts:
            if court.id == court_id:
                return court
        raise UnknownRecordError(f"Court {court_id} not found")

    # ------------------------------------------------------------------
    # Defaults
    # ------------------------------------------------------------------

    def seed_defaults(self) -> None:
        """Create the initial courts and empty collections when absent."""
        if not self.repository.load(COURTS):
            courts = [
                Court(name=f"Campo {n}", season=Season.WINTER if n <= 4 else Season.SUMMER) for n in range(1, 7)
            ]
            self._save_courts(courts)
            logger.info("Seeded %d default courts", len(courts))
        for key in (PLAYERS, MATCHES, SCHEDULED):
            if self.repository.load(key) is None:
                self.repository.save(key, [])
        if self.repository.load(SETTINGS) is None:
            self.repository.save(SETTINGS, ClubSettings().to_document())

    # ------------------------------------------------------------------
    # Settings and slot templates
    # ------------------------------------------------------------------

    def update_settings(self, changes: Dict[str, Any]) -> ClubSettings:
        current = self.settings()
        try:
            updated = ClubSettings.model_validate({**current.model_dump(), **changes})
        except ValueError as e:
            raise PlannerValidationError(str(e))
        self.repository.save(SETTINGS, updated.to_document())
        return updated

    def slot_template(self, day: date, court_id: str) -> List[str]:
        stored = self.templates().get(day.isoformat(), {}).get(court_id)
        return parse_slot_template(stored) if stored else parse_slot_template(DEFAULT_SLOT_STARTS)

    def set_slot_template(self, day: date, court_id: str, times: Sequence[str]) -> List[str]:
        self._find_court(self.courts(), court_id)
        try:
            parsed = parse_slot_template(list(times))
        except ValueError as e:
            raise PlannerValidationError(str(e))
        if not parsed:
            raise PlannerValidationError("A slot template needs at least one time")
        templates = self.templates()
        templates.setdefault(day.isoformat(), {})[court_id] = list(times)
        self.repository.save(PLANNING_TEMPLATES, templates)
        return parsed

    def time_slots_for(self, day: date) -> List[str]:
        snapshot = self.snapshot()
        return resolve_time_slots(snapshot.templates, day, [c.id for c in snapshot.season_courts()])

    # ------------------------------------------------------------------
    # Players and availability
    # ------------------------------------------------------------------

    def get_player(self, player_id: str) -> Player:
        return self._find_player(self.players(), player_id)

    def search_players(self, query: str = "", level: Optional[SkillLevel] = None) -> List[Player]:
        """Players whose name contains query (case-insensitive), optionally of one level."""
        players = self.players()
        if query:
            needle = query.strip().lower()
            players = [p for p in players if needle in p.name.lower()]
        if level:
            players = [p for p in players if p.level == level]
        return players

    def create_player(self, data: Dict[str, Any]) -> Player:
        compatibility.check_preferences_disjoint(
            data.get("preferred_players") or [], data.get("avoid_players") or []
        )
        try:
            player = Player.model_validate(data)
        except ValueError as e:
            raise PlannerValidationError(str(e))
        players = self.players()
        players.append(player)
        self._save_players(players)
        logger.info("Created player %s (%s)", player.name, player.id)
        return player

    def update_player(self, player_id: str, changes: Dict[str, Any]) -> Player:
        players = self.players()
        player = self._find_player(players, player_id)
        try:
            updated = Player.model_validate({**player.model_dump(), **changes, "id": player.id})
        except ValueError as e:
            raise PlannerValidationError(str(e))
        compatibility.check_preferences_disjoint(updated.preferred_players, updated.avoid_players)
        players[players.index(player)] = updated
        self._save_players(players)
        return updated

    def resolve_availability(self, player_id: str, day: date, time: str) -> bool:
        player = self.get_player(player_id)
        try:
            return availability.is_available(player, day, time)
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def available_players(self, day: date, time: str, match_type: MatchType) -> List[Player]:
        try:
            return availability.filter_available_players(self.players(), day, time, match_type)
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def _edit_availability(self, player_id: str, edit) -> Player:
        players = self.players()
        player = self._find_player(players, player_id)
        player.availability = edit(player.availability)
        self._save_players(players)
        return player

    def add_recurring_availability(self, player_id: str, weekday: str, start: str, end: str) -> Player:
        return self._edit_availability(
            player_id, lambda profile: availability.add_recurring(profile, weekday, start, end)
        )

    def add_extra_availability(self, player_id: str, day: date, start: str, end: str) -> Player:
        return self._edit_availability(player_id, lambda profile: availability.add_extra(profile, day, start, end))

    def remove_recurring_availability(self, player_id: str, index: int) -> Player:
        return self._edit_availability(player_id, lambda profile: availability.remove_recurring(profile, index))

    def remove_extra_availability(self, player_id: str, index: int) -> Player:
        return self._edit_availability(player_id, lambda profile: availability.remove_extra(profile, index))

    # ------------------------------------------------------------------
    # Compatibility
    # ------------------------------------------------------------------

    def get_compatibility(self, a_id: str, b_id: str) -> int:
        players = self.players()
        return compatibility.get_compatibility(self._find_player(players, a_id), self._find_player(players, b_id))

    def set_preference(self, player_id: str, other_id: str, kind: str) -> Player:
        players = self.players()
        player = self._find_player(players, player_id)
        self._find_player(players, other_id)
        if kind == "preferred":
            compatibility.mark_preferred(player, other_id)
        elif kind == "avoid":
            compatibility.mark_avoided(player, other_id)
        elif kind == "none":
            compatibility.clear_preference(player, other_id)
        else:
            raise PlannerValidationError(f"Unknown preference '{kind}'")
        self._save_players(players)
        return player

    def set_compatibility_score(self, a_id: str, b_id: str, score: int) -> int:
        if a_id == b_id:
            raise PlannerValidationError("Compatibility needs two different players")
        players = self.players()
        compatibility.set_compatibility(players, a_id, b_id, score)
        self._save_players(players)
        return compatibility.clamp_score(score)

    def apply_feedback(self, player_ids: Sequence[str], rating: int) -> List[str]:
        players = self.players()
        changed = compatibility.apply_feedback(players, player_ids, rating)
        self._save_players(players)
        return changed

    # ------------------------------------------------------------------
    # Courts and reservations
    # ------------------------------------------------------------------

    def get_court(self, court_id: str) -> Court:
        return self._find_court(self.courts(), court_id)

    def create_court(self, data: Dict[str, Any]) -> Court:
        try:
            court = Court.model_validate(data)
        except ValueError as e:
            raise PlannerValidationError(str(e))
        courts = self.courts()
        courts.append(court)
        self._save_courts(courts)
        logger.info("Created court %s (%s)", court.name, court.id)
        return court

    def update_court(self, court_id: str, changes: Dict[str, Any]) -> Court:
        courts = self.courts()
        court = self._find_court(courts, court_id)
        try:
            updated = Court.model_validate({**court.model_dump(), **changes, "id": court.id})
        except ValueError as e:
            raise PlannerValidationError(str(e))
        courts[courts.index(court)] = updated
        self._save_courts(courts)
        return updated

    def is_court_free(self, court_id: str, scope: Scope, start: str, end: str) -> bool:
        court = self.get_court(court_id)
        try:
            return reservations.is_court_free(court, scope, start, end, self.scheduled())
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def list_reservations(self, court_id: str, scope: Scope) -> List[Reservation]:
        return reservations.reservations_in_scope(self.get_court(court_id).reservations, scope)

    def _edit_reservations(self, court_id: str, edit) -> Court:
        courts = self.courts()
        court = self._find_court(courts, court_id)
        court.reservations = edit(court.reservations)
        self._save_courts(courts)
        return court

    def upsert_reservation(self, court_id: str, scope: Scope, reservation: Reservation) -> Court:
        return self._edit_reservations(
            court_id, lambda current: reservations.upsert_reservation(current, scope, reservation)
        )

    def delete_reservation_range(self, court_id: str, scope: Scope, start: str, end: str) -> Court:
        return self._edit_reservations(
            court_id, lambda current: reservations.delete_reservation_range(current, scope, start, end)
        )

    def delete_all_reservations(self, court_id: str, scope: Scope) -> Court:
        return self._edit_reservations(court_id, lambda current: reservations.delete_all_for_scope(current, scope))

    # ------------------------------------------------------------------
    # Match generation and scheduling
    # ------------------------------------------------------------------

    def generate_matches(
        self,
        day: date,
        match_type: MatchType,
        time_slots: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
    ) -> List[ScheduledMatch]:
        try:
            return match_generator.generate_matches(self.snapshot(), day, match_type, None, time_slots, rng)
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def generate_weekly_matches(
        self,
        start: date,
        match_type: MatchType,
        time_slots: Optional[Sequence[str]] = None,
        rng: Optional[random.Random] = None,
    ) -> List[ScheduledMatch]:
        try:
            return match_generator.generate_weekly_matches(self.snapshot(), start, match_type, time_slots, rng)
        except ValueError as e:
            raise PlannerValidationError(str(e))

    def confirm_matches(self, proposals: Sequence[ScheduledMatch]) -> List[ScheduledMatch]:
        """Append proposals to the scheduled collection as confirmed matches."""
        court_ids = {c.id for c in self.courts()}
        for proposal in proposals:
            if proposal.court not in court_ids:
                raise UnknownRecordError(f"Court {proposal.court} not found")
            if len(proposal.players) != proposal.type.required_players:
                raise PlannerValidationError(
                    f"A {proposal.type.value} match needs {proposal.type.required_players} players, "
                    f"got {len(proposal.players)}"
                )

        confirmed = [p.model_copy(update={"confirmed": True}) for p in proposals]
        scheduled = self.scheduled()
        scheduled.extend(confirmed)
        self.repository.save(SCHEDULED, [m.to_document() for m in scheduled])
        logger.info("Confirmed %d matches", len(confirmed))
        return confirmed

    def list_scheduled(self, day: Optional[date] = None) -> List[MatchView]:
        names = {p.id: p.name for p in self.players()}
        courts = {c.id: c.name for c in self.courts()}
        views = []
        for match in self.scheduled():
            if day is not None and match.date != day:
                continue
            player_names = []
            for pid in match.players:
                if pid not in names:
                    logger.warning("Scheduled match %s references missing player %s", match.id, pid)
                player_names.append(names.get(pid, UNKNOWN_PLAYER))
            if match.court not in courts:
                logger.warning("Scheduled match %s references missing court %s", match.id, match.court)
            views.append(
                MatchView(match=match, player_names=player_names, court_name=courts.get(match.court, UNKNOWN_COURT))
            )
        return sorted(views, key=lambda v: (v.match.date, v.match.time))

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def record_match(self, record: MatchRecord) -> MatchRecord:
        """Prepend a played match; a feedback rating then adjusts compatibility."""
        history = self.history()
        history.insert(0, record)
        self.repository.save(MATCHES, [m.to_document() for m in history])
        if record.feedback:
            self.apply_feedback(record.players, record.feedback)
        return record

    def update_match_record(self, record_id: str, changes: Dict[str, Any]) -> MatchRecord:
        history = self.history()
        index = self._find_record_index(history, record_id)
        record = history[index]

        try:
            updated = MatchRecord.model_validate({**record.model_dump(), **changes, "id": record.id})
        except ValueError as e:
            raise PlannerValidationError(str(e))
        history[index] = updated
        self.repository.save(MATCHES, [m.to_document() for m in history])
        if changes.get("feedback"):
            self.apply_feedback(updated.players, updated.feedback)
        return updated

    def delete_match_record(self, record_id: str) -> None:
        history = self.history()
        del history[self._find_record_index(history, record_id)]
        self.repository.save(MATCHES, [m.to_document() for m in history])
        logger.info("Deleted match record %s", record_id)

    @staticmethod
    def _find_record_index(history: Sequence[MatchRecord], record_id: str) -> int:
        for index, record in enumerate(history):
            if record.id == record_id:
                return index
        raise UnknownRecordError(f"Match {record_id} not found")

    def filter_history(
        self,
        start: Optional[date] = None,
        end: Optional[date] = None,
        match_type: Optional[MatchType] = None,
    ) -> List[MatchRecord]:
        records = self.history()
        if start:
            records = [m for m in records if m.date >= start]
        if end:
            records = [m for m in records if m.date <= end]
        if match_type:
            records = [m for m in records if m.type == match_type]
        return records

    def history_stats(self, today: Optional[date] = None) -> HistoryStats:
        """Totals by type, plus matches played in the calendar month of today."""
        today = today or date.today()
        records = self.history()
        return HistoryStats(
            total=len(records),
            singles=sum(1 for m in records if m.type == MatchType.SINGLES),
            doubles=sum(1 for m in records if m.type == MatchType.DOUBLES),
            this_month=sum(1 for m in records if (m.date.year, m.date.month) == (today.year, today.month)),
        )
