"""
Unit tests for achievement predicates and the catalog.

Predicates are pure functions of an EvaluationContext, so every rule is
exercised here without a database.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from src.database.models import AchievementCategory, KnowledgeCategory, Round
from src.modules.achievements.catalog import (
    EVENT_ACHIEVEMENTS,
    CatalogError,
    codes_for_event,
    get_definition,
    load_catalog,
    parse_catalog,
)
from src.modules.achievements.predicates import (
    HIDDEN_SET_CODES,
    PREDICATES,
    AchievementEvent,
    AchievementEventKind,
    AchievementStats,
    EvaluationContext,
    GameQuestionState,
    UserSnapshot,
    accuracy_reached,
    daily_challenge_streak,
    perfect_game,
    perfect_round,
    qualifies,
)


def make_context(
    kind=AchievementEventKind.QUESTION_ANSWERED,
    *,
    stats=None,
    user=None,
    unlocked=None,
    **event_fields,
) -> EvaluationContext:
    return EvaluationContext(
        event=AchievementEvent(kind=kind, **event_fields),
        user=user or UserSnapshot(),
        stats=stats or AchievementStats(),
        unlocked=set(unlocked or ()),
    )


def board(*states):
    return tuple(GameQuestionState(round=r, answered=a, correct=c) for r, a, c in states)


# ============================================================================
# Threshold predicates
# ============================================================================


@pytest.mark.unit
class TestThresholds:

    def test_first_correct(self):
        assert qualifies("FIRST_CORRECT", make_context(stats=AchievementStats(total_correct=1)))
        assert not qualifies("FIRST_CORRECT", make_context(stats=AchievementStats()))

    def test_question_volume_is_inclusive(self):
        assert qualifies("QUESTIONS_50", make_context(stats=AchievementStats(total_questions=50)))
        assert not qualifies(
            "QUESTIONS_50", make_context(stats=AchievementStats(total_questions=49))
        )

    def test_hidden_volume_code(self):
        ctx = make_context(stats=AchievementStats(total_questions=1337))
        assert qualifies("QUESTIONS_1337", ctx)

    def test_streak_prefers_event_value(self):
        # Arrange
        ctx = make_context(
            AchievementEventKind.STREAK_UPDATED,
            current_streak=7,
            user=UserSnapshot(current_streak=2),
        )

        # Act / Assert
        assert qualifies("STREAK_7", ctx)
        assert not qualifies("STREAK_14", ctx)

    def test_streak_falls_back_to_user_row(self):
        ctx = make_context(
            AchievementEventKind.STREAK_UPDATED, user=UserSnapshot(current_streak=69)
        )
        assert qualifies("STREAK_69", ctx)

    def test_score_thresholds(self):
        ctx = make_context(AchievementEventKind.GAME_COMPLETED, game_id="g-1", final_score=15000)
        assert qualifies("SCORE_15000", ctx)
        assert not qualifies("SCORE_20000", ctx)

    def test_score_1984_is_exact(self):
        hit = make_context(AchievementEventKind.GAME_COMPLETED, final_score=1984)
        miss = make_context(AchievementEventKind.GAME_COMPLETED, final_score=1985)
        assert qualifies("SCORE_1984", hit)
        assert not qualifies("SCORE_1984", miss)

    def test_score_without_final_score(self):
        assert not qualifies("SCORE_5000", make_context(AchievementEventKind.GAME_COMPLETED))

    def test_final_round_codes(self):
        ctx = make_context(stats=AchievementStats(final_jeopardy_correct=5))
        assert qualifies("FINAL_JEOPARDY_CORRECT", ctx)
        assert qualifies("FINAL_JEOPARDY_STREAK_5", ctx)

    def test_unknown_code_never_qualifies(self):
        assert not qualifies("NOT_A_CODE", make_context())


# ============================================================================
# Accuracy
# ============================================================================


@pytest.mark.unit
class TestAccuracy:

    def test_requires_full_sample(self):
        assert accuracy_reached([True] * 49, 50, 0.8) is False

    def test_ratio_boundary_is_inclusive(self):
        # Arrange
        results = [True] * 40 + [False] * 10

        # Act / Assert
        assert accuracy_reached(results, 50, 0.8) is True
        assert accuracy_reached([True] * 39 + [False] * 11, 50, 0.8) is False

    def test_only_latest_window_counts(self):
        results = [True] * 50 + [False] * 150
        assert accuracy_reached(results, 50, 0.8) is True
        assert accuracy_reached(results, 200, 0.95) is False

    def test_predicate_reads_recent_results(self):
        ctx = make_context(stats=AchievementStats(recent_results=tuple([True] * 100)))
        assert qualifies("ACCURACY_90_PERCENT", ctx)
        assert not qualifies("ACCURACY_95_PERCENT", ctx)


# ============================================================================
# Game boards
# ============================================================================


@pytest.mark.unit
class TestBoards:

    def test_perfect_round_ignores_unanswered(self):
        questions = board(
            (Round.SINGLE, True, True),
            (Round.SINGLE, False, None),
        )
        assert perfect_round(questions) is True

    def test_perfect_round_needs_an_answer(self):
        assert perfect_round(board((Round.SINGLE, False, None))) is False
        assert perfect_round(()) is False

    def test_perfect_round_filters_by_round(self):
        questions = board(
            (Round.SINGLE, True, False),
            (Round.DOUBLE, True, True),
        )
        assert perfect_round(questions, Round.DOUBLE) is True
        assert perfect_round(questions) is False

    def test_perfect_game_needs_every_question(self):
        assert perfect_game(board((Round.SINGLE, True, True), (Round.DOUBLE, True, True)))
        assert not perfect_game(board((Round.SINGLE, True, True), (Round.DOUBLE, False, None)))

    def test_board_codes_require_completed_game(self):
        stats = AchievementStats(game_questions=board((Round.DOUBLE, True, True)))
        completed = make_context(AchievementEventKind.GAME_COMPLETED, game_id="g-1", stats=stats)
        answered = make_context(AchievementEventKind.QUESTION_ANSWERED, stats=stats)

        assert qualifies("PERFECT_ROUND", completed)
        assert qualifies("PERFECT_ROUND_DOUBLE_JEOPARDY", completed)
        assert not qualifies("PERFECT_ROUND", answered)


# ============================================================================
# Calendar rules
# ============================================================================


@pytest.mark.unit
class TestCalendarRules:

    def test_daily_challenge_streak_stops_at_gap(self):
        today = date(2025, 6, 10)
        dates = [today, today - timedelta(days=1), today - timedelta(days=2), today - timedelta(days=4)]
        assert daily_challenge_streak(dates, today) == 3

    def test_daily_challenge_streak_must_include_today(self):
        today = date(2025, 6, 10)
        assert daily_challenge_streak([today - timedelta(days=1)], today) == 0
        assert daily_challenge_streak([], today) == 0

    def test_returning_player(self):
        # Arrange
        occurred = datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc)
        ctx = make_context(
            AchievementEventKind.STREAK_UPDATED,
            current_streak=1,
            previous_game_date=date(2025, 6, 1),
            occurred_at=occurred,
        )

        # Act / Assert
        assert qualifies("RETURNING_PLAYER", ctx)

    def test_returning_player_needs_a_week_away(self):
        ctx = make_context(
            AchievementEventKind.STREAK_UPDATED,
            current_streak=1,
            previous_game_date=date(2025, 6, 5),
            occurred_at=datetime(2025, 6, 10, 15, 0, tzinfo=timezone.utc),
        )
        assert not qualifies("RETURNING_PLAYER", ctx)

    def test_returning_player_not_on_first_game(self):
        ctx = make_context(AchievementEventKind.STREAK_UPDATED, current_streak=1)
        assert not qualifies("RETURNING_PLAYER", ctx)

    @pytest.mark.parametrize(("hour", "expected"), [(0, True), (2, True), (3, False), (23, False)])
    def test_midnight_window(self, hour, expected):
        ctx = make_context(
            AchievementEventKind.DAILY_CHALLENGE_COMPLETED,
            occurred_at=datetime(2025, 6, 10, hour, 30, tzinfo=timezone.utc),
        )
        assert qualifies("DAILY_CHALLENGE_MIDNIGHT", ctx) is expected


# ============================================================================
# Knowledge and hidden sets
# ============================================================================


@pytest.mark.unit
class TestKnowledgeAndHidden:

    def test_category_master(self):
        stats = AchievementStats(category_counts={KnowledgeCategory.SCIENCE_AND_NATURE: 50})
        ctx = make_context(stats=stats)
        assert qualifies("CATEGORY_MASTER_SCIENCE", ctx)
        assert not qualifies("CATEGORY_MASTER_SPORTS", ctx)
        assert not qualifies("ALL_CATEGORIES_MASTER", ctx)

    def test_all_categories_master(self):
        stats = AchievementStats(category_counts={c: 50 for c in KnowledgeCategory})
        assert qualifies("ALL_CATEGORIES_MASTER", make_context(stats=stats))

    def test_all_hidden(self):
        assert qualifies("ALL_HIDDEN", make_context(unlocked=HIDDEN_SET_CODES))
        assert not qualifies("ALL_HIDDEN", make_context(unlocked=HIDDEN_SET_CODES[1:]))


# ============================================================================
# Catalog
# ============================================================================


@pytest.mark.unit
class TestCatalog:

    def test_packaged_catalog_loads(self):
        # Act
        definitions = load_catalog()
        codes = [d.code for d in definitions]

        # Assert
        assert len(codes) == len(set(codes))
        assert "FIRST_CORRECT" in codes

    def test_every_playable_code_has_a_predicate(self):
        codes = {d.code for d in load_catalog()}
        assert codes - set(PREDICATES) == {"PROFILE_CUSTOMIZED"}
        assert set(PREDICATES) <= codes

    def test_event_codes_exist_in_catalog(self):
        codes = {d.code for d in load_catalog()}
        for event_codes in EVENT_ACHIEVEMENTS.values():
            assert set(event_codes) <= codes

    def test_all_hidden_evaluated_last(self):
        for event_codes in EVENT_ACHIEVEMENTS.values():
            assert event_codes[-1] == "ALL_HIDDEN"

    def test_hidden_category_marks_hidden(self):
        hidden = {d.code for d in load_catalog() if d.is_hidden}
        assert hidden == set(HIDDEN_SET_CODES) | {"ALL_HIDDEN"}

    def test_get_definition(self):
        definition = get_definition("SCORE_1984")
        assert definition is not None
        assert definition.category is AchievementCategory.HIDDEN
        assert get_definition("NOPE") is None

    def test_codes_for_event(self):
        assert "STREAK_3" in codes_for_event(AchievementEventKind.STREAK_UPDATED)
        assert "STREAK_3" not in codes_for_event(AchievementEventKind.QUESTION_ANSWERED)

    def test_parse_rejects_non_mapping(self):
        with pytest.raises(CatalogError):
            parse_catalog(["FIRST_GAME"])

    def test_parse_rejects_unknown_category(self):
        with pytest.raises(CatalogError):
            parse_catalog({"legendary": []})

    def test_parse_rejects_missing_field(self):
        with pytest.raises(CatalogError):
            parse_catalog({"onboarding": [{"code": "X", "name": "X"}]})

    def test_parse_rejects_duplicate_code(self):
        entry = {"code": "X", "name": "X", "description": "d", "icon": "*", "tier": 1}
        with pytest.raises(CatalogError):
            parse_catalog({"onboarding": [entry], "skill": [entry]})

    def test_parse_builds_definitions(self):
        entry = {"code": "X", "name": "Ex", "description": "d", "icon": "*", "tier": "2"}
        (definition,) = parse_catalog({"hidden": [entry]})
        assert definition.tier == 2
        assert definition.is_hidden is True
        assert definition.to_row()["category"] is AchievementCategory.HIDDEN
