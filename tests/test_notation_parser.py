"""
Tests for the notation parser: one class per notation plus groups, modifiers,
diagnostics and recovery.
"""

import pytest

from workout_notation.parsers.exercise_catalog import ExerciseMatcher
from workout_notation.parsers.models import RepRange, Tempo
from workout_notation.parsers.notation_parser import GENERIC_SUGGESTION, WorkoutParser, parse
from workout_notation.parsers.tokenizer import tokenize


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def all_exercises(result):
    """Every exercise in the workout, in order."""
    return [ex for group in result.workout.groups for ex in group.exercises]


def only_exercise(text):
    result = parse(text)
    assert result.success, result.errors
    exercises = all_exercises(result)
    assert len(exercises) == 1
    return exercises[0]


def canonical(raw):
    return ExerciseMatcher.find_exercise(raw) or raw


# ---------------------------------------------------------------------------
# Notations
# ---------------------------------------------------------------------------

class TestStandardNotation:

    def test_sets_by_reps(self):
        """5x10 Squat -> five sets of ten."""
        result = parse("5x10 Squat")
        assert result.success is True
        assert result.errors == []
        assert len(result.workout.groups) == 1
        group = result.workout.groups[0]
        assert group.type == "single"
        exercise = group.exercises[0]
        assert exercise.name == "squat"
        assert [s.reps for s in exercise.sets] == [10] * 5
        assert all(s.weight is None for s in exercise.sets)

    def test_rep_range(self):
        exercise = only_exercise("3x8-12 Squat")
        assert exercise.sets[0].reps == RepRange(min=8, max=12)

    def test_amrap(self):
        """3xAMRAP splits into multiply and the AMRAP keyword."""
        exercise = only_exercise("3xAMRAP Push-ups")
        assert exercise.name == "push ups"
        assert [s.reps for s in exercise.sets] == ["AMRAP"] * 3

    def test_failure_reps(self):
        """'failure' reps are AMRAP with a note."""
        exercise = only_exercise("3xfailure Dips")
        assert exercise.name == "dips"
        assert exercise.sets[0].reps == "AMRAP"
        assert exercise.notes == ["to failure"]

    def test_unknown_name_kept_verbatim(self):
        """Names that do not resolve keep their original spelling."""
        result = parse("3x10 Qncline Bqnqq")
        assert result.success is True
        assert all_exercises(result)[0].name == "Qncline Bqnqq"

    def test_name_starting_with_keyword(self):
        """A keyword can open a name when no number follows it."""
        exercise = only_exercise("3x10 Bodyweight Squats")
        assert exercise.name == canonical("Bodyweight Squats")
        assert exercise.sets[0].weight is None

    def test_hyphenated_name(self):
        exercise = only_exercise("3x10 T-Bar Row")
        assert exercise.name == "t bar row"

    def test_number_inside_name(self):
        """A number followed by a word belongs to the name."""
        exercise = only_exercise("3x10 45 degree hyperextension")
        assert exercise.name == canonical("45 degree hyperextension")
        assert [s.reps for s in exercise.sets] == [10, 10, 10]

    def test_number_before_unit_is_not_a_name_word(self):
        exercise = only_exercise("3x10 Squat 225 lbs")
        assert exercise.name == "squat"
        assert exercise.sets[0].weight.value == 225


class TestWeightFirstNotation:

    def test_bare_weight(self):
        """225 3x5 Bench -> weight without unit on every set."""
        exercise = only_exercise("225 3x5 Bench")
        assert exercise.name == "bench press"
        assert len(exercise.sets) == 3
        assert all(s.reps == 5 for s in exercise.sets)
        assert all(s.weight.value == 225 and s.weight.unit is None for s in exercise.sets)

    def test_weight_with_unit(self):
        exercise = only_exercise("100kg 3x5 Squat")
        assert exercise.sets[0].weight.value == 100
        assert exercise.sets[0].weight.unit == "kg"


class TestAtNotation:

    def test_weight_after_at(self):
        exercise = only_exercise("3x5 @225lbs Squat")
        assert exercise.name == "squat"
        assert all(s.weight.value == 225 and s.weight.unit == "lbs" for s in exercise.sets)

    def test_percentage(self):
        exercise = only_exercise("3x5 @80% Squat")
        assert exercise.sets[0].weight.value == 80
        assert exercise.sets[0].weight.percentage is True

    def test_small_bare_number_is_rpe(self):
        """@8 with no unit is an RPE, not 8 lbs."""
        exercise = only_exercise("3x5 @8 Squat")
        assert exercise.sets[0].rpe == 8
        assert exercise.sets[0].weight is None

    def test_large_bare_number_is_weight(self):
        exercise = only_exercise("3x5 @225 Squat")
        assert exercise.sets[0].weight.value == 225
        assert exercise.sets[0].rpe is None


class TestSlashNotation:

    def test_descending_reps(self):
        """12/10/8 Curls -> one set per number, marked as a drop set."""
        result = parse("12/10/8 Curls")
        assert result.success is True
        group = result.workout.groups[0]
        assert group.type == "single"
        exercise = group.exercises[0]
        assert exercise.name == "barbell curl"
        assert [s.reps for s in exercise.sets] == [12, 10, 8]
        assert exercise.modifiers.dropset is True


class TestCommaNotation:

    def test_varying_reps_with_shared_weight(self):
        """225x5,5,3 Bench -> three sets at 225, the short last set failed."""
        exercise = only_exercise("225x5,5,3 Bench")
        assert exercise.name == "bench press"
        assert [s.reps for s in exercise.sets] == [5, 5, 3]
        assert all(s.weight.value == 225 for s in exercise.sets)
        assert [s.failed for s in exercise.sets] == [None, None, True]

    def test_equal_reps_not_failed(self):
        exercise = only_exercise("225x5,5,5 Bench")
        assert all(s.failed is None for s in exercise.sets)


class TestNameFirstNotation:

    def test_name_then_scheme(self):
        exercise = only_exercise("Bench Press 4x8")
        assert exercise.name == "bench press"
        assert [s.reps for s in exercise.sets] == [8] * 4

    def test_name_alone_is_an_error(self):
        """Outside a superset a name needs sets and reps."""
        result = parse("Flyes")
        assert result.success is False
        assert result.errors[0].message == "Unable to parse exercise notation"


class TestComplexNotation:

    def test_clauses_split_the_sets(self):
        """Clauses take contiguous slices of the total set count."""
        result = parse("5x Incline DB (2x failure @85lbs) (3x8-10 @75lbs)")
        assert result.success is True, result.errors
        exercise = all_exercises(result)[0]
        assert exercise.name == canonical("Incline DB")
        assert len(exercise.sets) == 5
        assert [s.reps for s in exercise.sets[:2]] == ["AMRAP", "AMRAP"]
        assert all(s.weight.value == 85 for s in exercise.sets[:2])
        assert all(s.reps == RepRange(min=8, max=10) for s in exercise.sets[2:])
        assert all(s.weight.value == 75 and s.weight.unit == "lbs" for s in exercise.sets[2:])
        assert exercise.notes == ["to failure"]

    def test_unallocated_sets_keep_default_reps(self):
        exercise = only_exercise("4x Squat (2x5 @100kg)")
        assert [s.reps for s in exercise.sets] == [5, 5, 10, 10]
        assert [s.weight.value if s.weight else None for s in exercise.sets] == [100, 100, None, None]

    def test_trailing_reps_set_the_default(self):
        exercise = only_exercise("3x Squat 8 (1x5 @100kg)")
        assert [s.reps for s in exercise.sets] == [5, 8, 8]

    def test_trailing_scheme_gives_reps_for_every_set(self):
        """5x Name 3x8-10: the outer count is the total, the inner scheme the reps."""
        exercise = only_exercise("5x Incline db 3X8-10 @ 75lbs")
        assert exercise.name == canonical("Incline db")
        assert len(exercise.sets) == 5
        assert all(s.reps == RepRange(min=8, max=10) for s in exercise.sets)
        assert all(s.weight.value == 75 and s.weight.unit == "lbs" for s in exercise.sets)

    def test_word_at_inside_clause(self):
        """The word at before a weight in a clause reads like @."""
        exercise = only_exercise("5x Incline DB (2x failure at 85lbs) (3x8-10 @75lbs)")
        assert all(s.weight.value == 85 for s in exercise.sets[:2])
        assert exercise.notes == ["to failure"]

    def test_overflow_is_clamped_with_warning(self):
        """Clauses asking for more sets than the total are cut short."""
        result = parse("3x Squat (2x5 @100kg) (2x3 @110kg)")
        assert result.success is True
        exercise = all_exercises(result)[0]
        assert [s.reps for s in exercise.sets] == [5, 5, 3]
        assert [s.weight.value for s in exercise.sets] == [100, 100, 110]
        warnings = [e for e in result.errors if e.severity == "warning"]
        assert warnings[0].message == "Set breakdown exceeds the total of 3 sets"


# ---------------------------------------------------------------------------
# Modifiers
# ---------------------------------------------------------------------------

class TestModifiers:

    @pytest.mark.parametrize(
        "text,rest",
        [
            ("3x8 Squat rest 90", 90),
            ("3x8 Squat rest 2 min", 120),
            ("3x8 Squat r: 90s", 90),
        ],
    )
    def test_rest(self, text, rest):
        exercise = only_exercise(text)
        assert all(s.rest == rest for s in exercise.sets)

    @pytest.mark.parametrize(
        "text,tempo",
        [
            ("3x5 Squat tempo 3-1-2", Tempo(eccentric=3, pause=1, concentric=2)),
            ("3x5 Squat tempo 3-1-2-0", Tempo(eccentric=3, pause=1, concentric=2, pause_top=0)),
            ("3x5 Squat tempo: 3010", Tempo(eccentric=3, pause=0, concentric=1, pause_top=0)),
        ],
    )
    def test_tempo(self, text, tempo):
        exercise = only_exercise(text)
        assert exercise.sets[0].tempo == tempo

    def test_malformed_tempo_warns(self):
        result = parse("3x5 Squat tempo")
        assert result.success is True
        assert result.errors[0].severity == "warning"
        assert "Tempo should look like" in result.errors[0].message
        assert all_exercises(result)[0].sets[0].tempo is None

    def test_rpe(self):
        exercise = only_exercise("3x5 Squat RPE 8")
        assert all(s.rpe == 8 for s in exercise.sets)

    def test_rpe_after_at(self):
        exercise = only_exercise("3x5 Squat @ RPE 8.5")
        assert exercise.sets[0].rpe == 8.5

    def test_rpe_out_of_range_is_ignored(self):
        result = parse("3x5 Squat RPE 11")
        assert result.success is True
        assert result.errors[0].severity == "warning"
        assert result.errors[0].message == "RPE 11 is outside 1-10 and was ignored"
        assert all_exercises(result)[0].sets[0].rpe is None

    def test_inline_weight(self):
        exercise = only_exercise("3x5 Squat 225lbs")
        assert exercise.sets[0].weight.value == 225
        assert exercise.sets[0].weight.unit == "lbs"

    def test_weight_range(self):
        exercise = only_exercise("3x10 Curls 25-35 lbs")
        assert exercise.sets[0].weight.value == 25
        assert exercise.sets[0].weight.max == 35

    def test_bodyweight(self):
        exercise = only_exercise("3x10 Pull-ups bw")
        assert exercise.name == "pull ups"
        assert exercise.sets[0].weight.is_bodyweight is True
        assert exercise.sets[0].weight.value == 0

    def test_bodyweight_plus_load(self):
        exercise = only_exercise("3x10 Dips @ BW + 25")
        weight = exercise.sets[0].weight
        assert weight.is_bodyweight is True
        assert weight.value == 25

    def test_drop_keyword(self):
        exercise = only_exercise("3x10 Curls drop")
        assert exercise.modifiers.dropset is True

    def test_parenthetical_note(self):
        exercise = only_exercise("3x10 Squat (slow eccentric)")
        assert exercise.notes == ["slow eccentric"]

    def test_per_side_weight(self):
        """'each side' marks the weight per side instead of becoming a note."""
        exercise = only_exercise("3x10 Lunges (25 lbs each side)")
        weight = exercise.sets[0].weight
        assert weight.value == 25
        assert weight.per_side is True
        assert exercise.notes is None

    def test_scheme_in_parentheses_kept_as_text(self):
        """Without a set total the clause is kept as written."""
        exercise = only_exercise("3x10 Squat (2x5 heavy)")
        assert exercise.notes == ["2x5 heavy"]
        assert [s.reps for s in exercise.sets] == [10, 10, 10]


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

class TestGroups:

    def test_superset(self):
        result = parse("4x10 Leg Press ss 4x15 Leg Curls")
        assert result.success is True
        group = result.workout.groups[0]
        assert group.type == "superset"
        assert [e.name for e in group.exercises] == ["leg press", "leg curls"]
        assert [len(e.sets) for e in group.exercises] == [4, 4]

    def test_circuit(self):
        result = parse("3x10 Pushups + 3x15 Squats + 3x20 Lunges")
        group = result.workout.groups[0]
        assert group.type == "circuit"
        assert [e.name for e in group.exercises] == ["push ups", "squat", "lunges"]

    def test_first_operator_decides_type(self):
        result = parse("3x10 Squat ss 3x10 Lunges + 3x10 Dips")
        group = result.workout.groups[0]
        assert group.type == "superset"
        assert len(group.exercises) == 3

    def test_lines_are_groups(self):
        result = parse("5x5 Squat\n3x8 Bench Press\n\n3x10 Curls")
        assert result.success is True
        assert [g.exercises[0].name for g in result.workout.groups] == [
            "squat",
            "bench press",
            "barbell curl",
        ]

    def test_partner_inherits_sets_and_reps(self):
        """A partner with only a name copies the lead's sets and reps."""
        result = parse("4x10 Bench Press ss Flyes")
        assert result.success is True
        partner = result.workout.groups[0].exercises[1]
        assert partner.name == "dumbbell flyes"
        assert [s.reps for s in partner.sets] == [10] * 4

    def test_partner_with_only_a_name_inherits_scheme(self):
        result = parse("5x5 benchpress ss banded pull aparts")
        group = result.workout.groups[0]
        assert [e.name for e in group.exercises] == ["bench press", "band pull aparts"]
        assert [s.reps for s in group.exercises[1].sets] == [5] * 5

    def test_partner_with_own_reps(self):
        result = parse("4x10 Bench Press ss Flyes 12")
        partner = result.workout.groups[0].exercises[1]
        assert [s.reps for s in partner.sets] == [12] * 4

    def test_partner_with_amrap_reps(self):
        result = parse("5x5 Bench ss Pushups AMRAP")
        assert result.success is True, result.errors
        partner = result.workout.groups[0].exercises[1]
        assert [s.reps for s in partner.sets] == ["AMRAP"] * 5

    def test_partner_to_failure(self):
        result = parse("3x8 Bench Press ss Dips failure")
        assert result.success is True, result.errors
        partner = result.workout.groups[0].exercises[1]
        assert [s.reps for s in partner.sets] == ["AMRAP"] * 3
        assert partner.notes == ["to failure"]

    def test_partner_inherits_rep_range(self):
        result = parse("3x8-12 Squat ss Lunges")
        partner = result.workout.groups[0].exercises[1]
        assert [s.reps for s in partner.sets] == [RepRange(min=8, max=12)] * 3


# ---------------------------------------------------------------------------
# Diagnostics and recovery
# ---------------------------------------------------------------------------

class TestDiagnostics:

    def test_unparseable_line(self):
        result = parse("hello world")
        assert result.success is False
        assert result.workout.groups == []
        error = result.errors[0]
        assert error.message == "Unable to parse exercise notation"
        assert (error.line, error.column, error.offset) == (1, 1, 0)
        assert error.suggestion == GENERIC_SUGGESTION

    @pytest.mark.parametrize(
        "text,suggestion",
        [
            ("3 Squat", 'Try using format like "3x10" for sets and reps'),
            ("3x10", 'Add an exercise name after the sets and reps, e.g. "3x10 Squat"'),
        ],
    )
    def test_fix_suggestions(self, text, suggestion):
        result = parse(text)
        assert result.errors[0].suggestion == suggestion

    def test_recovers_at_next_line(self):
        """A bad line is skipped and later lines still parse."""
        result = parse("hello world\n5x5 Squat")
        assert result.success is False
        assert len(result.errors) == 1
        assert [g.exercises[0].name for g in result.workout.groups] == ["squat"]

    def test_error_position_on_second_line(self):
        result = parse("5x5 Squat\n???")
        error = result.errors[0]
        assert (error.line, error.column, error.offset) == (2, 1, 10)

    def test_garbage_line_between_valid_lines(self):
        result = parse("5x5 Squat\n???\n3x8 Bench")
        assert [g.exercises[0].name for g in result.workout.groups] == ["squat", "bench press"]
        assert len(result.errors) == 1
        assert result.errors[0].line == 2

    def test_missing_partner(self):
        result = parse("3x10 Squat ss")
        assert result.success is False
        error = result.errors[0]
        assert error.message == "Expected exercise after superset/circuit operator"
        assert (error.line, error.column) == (1, 12)
        group = result.workout.groups[0]
        assert group.type == "single"
        assert group.exercises[0].name == "squat"

    def test_leading_operator_is_a_warning(self):
        result = parse("ss 3x10 Squat")
        assert result.success is True
        assert result.errors[0].severity == "warning"
        assert len(result.workout.groups) == 1

    def test_set_count_is_capped(self):
        result = parse("60x5 Squat")
        assert result.success is True
        assert len(all_exercises(result)[0].sets) == 50
        assert result.errors[0].message == "Set count 60 capped at 50"

    def test_suggestion_for_unknown_name(self):
        result = parse("3x10 Qncline Bqnqq")
        suggestion = result.suggestions[0]
        assert suggestion.original == "Qncline Bqnqq"
        assert suggestion.suggestion == "incline bench press"
        assert suggestion.confidence == pytest.approx(9 / 13)

    def test_known_names_give_no_suggestions(self):
        assert parse("5x5 Squat").suggestions == []

    @pytest.mark.parametrize("text", [None, 42, "", "   \n  "])
    def test_invalid_input(self, text):
        result = parse(text)
        assert result.success is False
        assert result.workout is None
        assert [e.message for e in result.errors] == ["Input must be a non-empty string"]

    @pytest.mark.parametrize(
        "text",
        [
            "@@@ ((( +++ ss ss )))",
            "x x x x",
            "5x (((",
            "3x10 Squat (2x5 @",
            "BW + + + 3x",
            "rest rest tempo - - -",
            "12/ 10/ Curls",
            "225x5,,3 Bench",
        ],
    )
    def test_garbage_never_raises(self, text):
        result = parse(text)
        assert result.workout is not None
        assert result.success == (not any(e.severity == "error" for e in result.errors))


class TestWorkoutParser:

    def test_requires_eof(self):
        with pytest.raises(ValueError):
            WorkoutParser(tokenize("5x5 Squat")[:-1])

    def test_parse_workout(self):
        parser = WorkoutParser(tokenize("5x5 Squat\n3x8 Bench"))
        workout = parser.parse_workout()
        assert len(workout.groups) == 2
        assert parser.errors == []
