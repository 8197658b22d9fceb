"""
PlannerService over a real document repository: seeding, stored records,
confirmation, scheduled listings with placeholders and match history.
"""
from datetime import date

import pytest

from clubplanner.models.club import MatchRecord, MatchType, Reservation, ScheduledMatch, Season, SkillLevel
from clubplanner.repository import COURTS, MATCHES, PLAYERS, SCHEDULED, DocumentRepository
from clubplanner.services.errors import PlannerValidationError, UnknownRecordError
from clubplanner.services.planner import PlannerService
from clubplanner.services.reservations import DateScope, WeekdayScope

MONDAY = date(2025, 3, 10)


def _seed_pair(planner: PlannerService):
    court = planner.create_court({"name": "Campo 1"})
    p1 = planner.create_player({"name": "P1", "level": "beginner"})
    p2 = planner.create_player({"name": "P2", "level": "beginner"})
    return court, p1, p2


class TestSeeding:
    def test_seed_creates_six_courts(self, planner: PlannerService, repository: DocumentRepository):
        planner.seed_defaults()
        courts = planner.courts()
        assert [c.name for c in courts] == [f"Campo {n}" for n in range(1, 7)]
        assert [c.season for c in courts].count(Season.WINTER) == 4
        assert [c.season for c in courts].count(Season.SUMMER) == 2
        assert repository.load(PLAYERS) == []
        assert planner.settings().min_compatibility == 30

    def test_seed_keeps_existing_courts(self, planner: PlannerService):
        planner.create_court({"name": "Centrale"})
        planner.seed_defaults()
        assert [c.name for c in planner.courts()] == ["Centrale"]

    def test_stored_courts_use_camel_case(self, planner: PlannerService, repository: DocumentRepository):
        planner.create_court({"name": "Campo 1", "winter_cover": True})
        stored = repository.load(COURTS)[0]
        assert stored["winterCover"] is True
        assert stored["type"] == "winter"


class TestPlayers:
    def test_unknown_fields_survive_round_trip(self, planner: PlannerService, repository: DocumentRepository):
        repository.save(PLAYERS, [{"id": "p1", "name": "Anna", "livello": "principiante", "email": "a@b.it"}])
        planner.update_player("p1", {"phone": "333"})
        stored = repository.load(PLAYERS)[0]
        assert stored["email"] == "a@b.it"
        assert stored["phone"] == "333"

    def test_legacy_level_accepted(self, planner: PlannerService, repository: DocumentRepository):
        repository.save(PLAYERS, [{"id": "p1", "name": "Anna", "level": "principiante"}])
        assert planner.get_player("p1").level.value == "beginner"

    def test_missing_player(self, planner: PlannerService):
        with pytest.raises(UnknownRecordError):
            planner.get_player("nobody")

    def test_preferred_and_avoid_overlap_rejected(self, planner: PlannerService):
        with pytest.raises(PlannerValidationError):
            planner.create_player({"name": "X", "preferred_players": ["a"], "avoid_players": ["a"]})

    def test_set_preference_both_ways(self, planner: PlannerService):
        _, p1, p2 = _seed_pair(planner)
        planner.set_preference(p1.id, p2.id, "preferred")
        assert planner.get_compatibility(p1.id, p2.id) == 80
        planner.set_preference(p2.id, p1.id, "preferred")
        assert planner.get_compatibility(p1.id, p2.id) == 100
        planner.set_preference(p2.id, p1.id, "avoid")
        assert planner.get_compatibility(p1.id, p2.id) == 0
        planner.set_preference(p2.id, p1.id, "none")
        assert planner.get_compatibility(p1.id, p2.id) == 80

    def test_availability_edits_persist(self, planner: PlannerService):
        _, p1, _ = _seed_pair(planner)
        planner.add_recurring_availability(p1.id, "lunedi", "10:00", "12:00")
        assert not planner.resolve_availability(p1.id, MONDAY, "09:00")
        planner.add_extra_availability(p1.id, MONDAY, "08:00", "09:30")
        assert planner.resolve_availability(p1.id, MONDAY, "09:00")
        planner.remove_extra_availability(p1.id, 0)
        planner.remove_recurring_availability(p1.id, 0)
        assert planner.get_player(p1.id).availability.is_empty


class TestReservations:
    def test_upsert_and_list(self, planner: PlannerService):
        court, _, _ = _seed_pair(planner)
        planner.upsert_reservation(
            court.id, DateScope(MONDAY), Reservation(date=MONDAY, start="09:00", end="12:00", type="lesson")
        )
        planner.upsert_reservation(
            court.id, DateScope(MONDAY), Reservation(date=MONDAY, start="10:00", end="10:30", players=["Rossi"])
        )
        listed = planner.list_reservations(court.id, DateScope(MONDAY))
        assert [(r.start, r.end) for r in listed] == [("09:00", "10:00"), ("10:00", "10:30"), ("10:30", "12:00")]
        assert not planner.is_court_free(court.id, DateScope(MONDAY), "09:30", "10:00")

    def test_weekly_reservation_listed_on_dates(self, planner: PlannerService):
        court, _, _ = _seed_pair(planner)
        planner.upsert_reservation(
            court.id, WeekdayScope("lunedi"), Reservation(day="lunedi", start="18:00", end="19:00", type="lesson")
        )
        assert len(planner.list_reservations(court.id, DateScope(MONDAY))) == 1
        planner.delete_all_reservations(court.id, DateScope(MONDAY))
        assert len(planner.list_reservations(court.id, DateScope(MONDAY))) == 1
        planner.delete_all_reservations(court.id, WeekdayScope("lunedi"))
        assert planner.list_reservations(court.id, DateScope(MONDAY)) == []

    def test_unknown_court(self, planner: PlannerService):
        with pytest.raises(UnknownRecordError):
            planner.is_court_free("nope", DateScope(MONDAY), "09:00", "10:00")


class TestScheduling:
    def test_generate_confirm_and_block(self, planner: PlannerService):
        court, p1, p2 = _seed_pair(planner)
        proposals = planner.generate_matches(MONDAY, MatchType.SINGLES, ["09:30"])
        assert len(proposals) == 1
        assert proposals[0].score == 50
        assert planner.scheduled() == []

        confirmed = planner.confirm_matches(proposals)
        assert confirmed[0].confirmed is True
        assert len(planner.scheduled()) == 1

        # The confirmed match now occupies the court
        assert not planner.is_court_free(court.id, DateScope(MONDAY), "10:00", "10:30")
        assert planner.generate_matches(MONDAY, MatchType.SINGLES, ["09:30"]) == []

    def test_confirm_rejects_unknown_court(self, planner: PlannerService):
        _, p1, p2 = _seed_pair(planner)
        proposal = ScheduledMatch(
            date=MONDAY, time="09:30", type="singles", court="ghost", players=[p1.id, p2.id], score=50
        )
        with pytest.raises(UnknownRecordError):
            planner.confirm_matches([proposal])

    def test_confirm_rejects_wrong_player_count(self, planner: PlannerService):
        court, p1, _ = _seed_pair(planner)
        proposal = ScheduledMatch(date=MONDAY, time="09:30", type="doubles", court=court.id, players=[p1.id], score=50)
        with pytest.raises(PlannerValidationError):
            planner.confirm_matches([proposal])

    def test_listing_uses_placeholders_for_missing_records(
        self, planner: PlannerService, repository: DocumentRepository
    ):
        _, p1, _ = _seed_pair(planner)
        orphan = ScheduledMatch(
            date=MONDAY, time="18:00", type="singles", court="gone", players=[p1.id, "ghost"], score=50, confirmed=True
        )
        repository.save(SCHEDULED, [orphan.to_document()])

        views = planner.list_scheduled(MONDAY)
        assert len(views) == 1
        assert views[0].player_names == ["P1", "Unknown"]
        assert views[0].court_name == "TBD"
        assert planner.list_scheduled(date(2025, 3, 11)) == []

    def test_weekly_generation_honors_quota(self, planner: PlannerService):
        planner.create_court({"name": "Campo 1"})
        planner.create_player({"name": "A", "matches_per_week": 1})
        planner.create_player({"name": "B", "matches_per_week": 1})
        proposals = planner.generate_weekly_matches(MONDAY, MatchType.SINGLES, ["09:30"])
        assert len(proposals) == 1

    def test_slot_templates_drive_generation(self, planner: PlannerService):
        court, _, _ = _seed_pair(planner)
        assert planner.slot_template(MONDAY, court.id)[0] == "08:30"
        planner.set_slot_template(MONDAY, court.id, ["17.00", "18.30"])
        assert planner.time_slots_for(MONDAY) == ["17:00", "18:30"]
        proposals = planner.generate_matches(MONDAY, MatchType.SINGLES)
        assert [p.time for p in proposals] == ["17:00", "18:30"]

    def test_empty_slot_template_rejected(self, planner: PlannerService):
        court, _, _ = _seed_pair(planner)
        with pytest.raises(PlannerValidationError):
            planner.set_slot_template(MONDAY, court.id, [])

    def test_season_switch(self, planner: PlannerService):
        planner.create_court({"name": "Estivo", "season": "summer"})
        planner.create_player({"name": "A"})
        planner.create_player({"name": "B"})
        assert planner.generate_matches(MONDAY, MatchType.SINGLES, ["09:30"]) == []
        planner.update_settings({"season": "summer"})
        assert len(planner.generate_matches(MONDAY, MatchType.SINGLES, ["09:30"])) == 1


class TestHistory:
    def test_feedback_updates_compatibility(self, planner: PlannerService):
        _, p1, p2 = _seed_pair(planner)
        planner.record_match(
            MatchRecord(date=MONDAY, time="09:30", type="singles", players=[p1.id, p2.id], feedback=5)
        )
        assert planner.get_compatibility(p1.id, p2.id) == 60

    def test_update_record_applies_new_feedback(self, planner: PlannerService):
        _, p1, p2 = _seed_pair(planner)
        record = planner.record_match(MatchRecord(date=MONDAY, time="09:30", type="singles", players=[p1.id, p2.id]))
        assert planner.get_compatibility(p1.id, p2.id) == 50

        updated = planner.update_match_record(record.id, {"result": "6-4 6-3", "feedback": 1})
        assert updated.result == "6-4 6-3"
        assert planner.get_compatibility(p1.id, p2.id) == 40

    def test_update_missing_record(self, planner: PlannerService):
        with pytest.raises(UnknownRecordError):
            planner.update_match_record("nope", {"result": "x"})

    def test_filter_and_stats(self, planner: PlannerService):
        planner.record_match(MatchRecord(date=date(2025, 3, 1), time="09:30", type="singles", players=["a", "b"]))
        planner.record_match(
            MatchRecord(date=date(2025, 3, 8), time="09:30", type="doubles", players=["a", "b", "c", "d"])
        )
        planner.record_match(MatchRecord(date=date(2025, 3, 15), time="09:30", type="singles", players=["a", "c"]))

        history = planner.history()
        assert [m.date for m in history] == [date(2025, 3, 15), date(2025, 3, 8), date(2025, 3, 1)]

        in_range = planner.filter_history(date(2025, 3, 5), date(2025, 3, 15))
        assert len(in_range) == 2
        assert len(planner.filter_history(match_type=MatchType.SINGLES)) == 2

        stats = planner.history_stats(today=date(2025, 3, 20))
        assert (stats.total, stats.singles, stats.doubles, stats.this_month) == (3, 2, 1, 3)
        assert planner.history_stats(today=date(2025, 4, 1)).this_month == 0

    def test_delete_record(self, planner: PlannerService):
        first = planner.record_match(MatchRecord(date=MONDAY, time="09:30", type="singles", players=["a", "b"]))
        second = planner.record_match(MatchRecord(date=MONDAY, time="11:00", type="singles", players=["c", "d"]))
        planner.delete_match_record(first.id)
        assert [m.id for m in planner.history()] == [second.id]
        with pytest.raises(UnknownRecordError):
            planner.delete_match_record(first.id)

    def test_history_saved_before_feedback(self, planner: PlannerService, repository: DocumentRepository):
        _, p1, p2 = _seed_pair(planner)
        saved_keys = []
        repository.subscribe(MATCHES, lambda _: saved_keys.append(MATCHES))
        repository.subscribe(PLAYERS, lambda _: saved_keys.append(PLAYERS))

        planner.record_match(
            MatchRecord(date=MONDAY, time="09:30", type="singles", players=[p1.id, p2.id], feedback=2)
        )
        assert saved_keys == [MATCHES, PLAYERS]
        assert planner.get_compatibility(p1.id, p2.id) == 45


class TestStoredPlayerTolerance:
    def test_unknown_stored_level_reads_as_intermediate(
        self, planner: PlannerService, repository: DocumentRepository
    ):
        planner.create_court({"name": "Campo 1"})
        repository.save(
            PLAYERS,
            [
                {"id": "a", "name": "A", "level": "beginner"},
                {"id": "b", "name": "B", "level": "beginner"},
                {"id": "c", "name": "C", "level": "esperto"},
            ],
        )
        assert planner.get_player("c").level.value == "intermediate"

        # Equal scores keep enumeration order, so a and b pair first and c waits
        proposals = planner.generate_matches(MONDAY, MatchType.SINGLES, ["09:30"])
        assert len(proposals) == 1
        assert proposals[0].players == ["a", "b"]

    def test_unknown_level_still_rejected_on_create(self, planner: PlannerService):
        with pytest.raises(PlannerValidationError):
            planner.create_player({"name": "X", "level": "esperto"})


class TestSearchPlayers:
    def test_name_substring_and_level(self, planner: PlannerService):
        planner.create_player({"name": "Anna Rossi", "level": "beginner"})
        planner.create_player({"name": "Marco Bianchi", "level": "advanced"})
        planner.create_player({"name": "Giovanna Verdi", "level": "advanced"})

        assert [p.name for p in planner.search_players("ANNA")] == ["Anna Rossi", "Giovanna Verdi"]
        assert [p.name for p in planner.search_players("anna", SkillLevel.ADVANCED)] == ["Giovanna Verdi"]
        assert len(planner.search_players()) == 3
        assert planner.search_players("zzz") == []
