"""
Notation Parser

Recursive-descent parser that turns a token stream into a Workout.

Each exercise is matched by trying a fixed list of notation strategies at the
current token. A strategy is a pure function of the cursor: it returns a draft
exercise and the cursor after it, or None. Nothing a strategy sees is recorded
until its draft is committed, so a failed attempt leaves no trace.

Supported notations:
    5x10 Squat                    standard
    225 3x5 Squat                 weight first
    3x5 @225lbs Squat, 3x5 @80%   at-notation
    12/10/8 Curls                 slash (drop set)
    225x5,5,3 Bench               comma (varying reps)
    5x Incline DB (2x failure @85lbs) (3x8-10 @75lbs)
    Bench Press 4x8               name first

Lines are groups; `ss` joins a superset and `+` joins a circuit.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .exercise_catalog import ExerciseMatcher
from .models import (
    AMRAP,
    Exercise,
    ExerciseGroup,
    ExerciseModifiers,
    ExerciseSet,
    ParseError,
    ParseResult,
    ParseSuggestion,
    RepRange,
    RepsValue,
    Tempo,
    Weight,
    Workout,
)
from .tokenizer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)

# Hard limits on adversarial input
MAX_INPUT_CHARS = 10_000
MAX_TOKENS = 5_000
MAX_PARSE_SECONDS = 2.0

MAX_NAME_WORDS = 10
MAX_MODIFIERS = 20
MAX_SETS = 50
DEFAULT_REPS = 10
SUGGESTION_WINDOW = 6

FAILURE_WORDS = frozenset({"failure", "fail"})
MINUTE_UNITS = frozenset({"m", "min", "mins", "minutes"})
SIDE_WORDS = frozenset({"side", "sides"})
SIDE_FILLER_WORDS = frozenset({"on", "each", "per", "a"})

# Keywords that may open a name when nothing numeric follows ("3x10 R", "3x10 bodyweight squats")
NAME_KEYWORDS = frozenset({
    TokenType.REST,
    TokenType.DROP,
    TokenType.TEMPO,
    TokenType.RPE,
    TokenType.BW,
    TokenType.AMRAP,
    TokenType.RM,
    TokenType.WEIGHT_UNIT,
    TokenType.TIME_UNIT,
})

GROUP_BOUNDARIES = frozenset({TokenType.NEWLINE, TokenType.EOF, TokenType.PLUS, TokenType.SUPERSET})

GENERIC_SUGGESTION = 'Try formats like "3x10 Squat", "225 3x5 Bench", or "3x5 @225lbs Deadlift"'


# ---------------------------------------------------------------------------
# Drafts: mutable working state for a single strategy attempt
# ---------------------------------------------------------------------------

@dataclass
class _SetDraft:
    reps: RepsValue
    weight: Optional[Weight] = None
    rpe: Optional[float] = None
    tempo: Optional[Tempo] = None
    rest: Optional[int] = None
    failed: Optional[bool] = None


@dataclass
class _Modifiers:
    weight: Optional[Weight] = None
    rpe: Optional[float] = None
    tempo: Optional[Tempo] = None
    rest: Optional[int] = None
    dropset: bool = False
    notes: List[str] = field(default_factory=list)


@dataclass
class _Diagnostic:
    token: Token
    message: str
    severity: str = "warning"


@dataclass
class _ExerciseDraft:
    raw_name: str
    token: Token
    sets: List[_SetDraft] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)
    mods: _Modifiers = field(default_factory=_Modifiers)
    # Superset partners may leave set count and reps to the lead exercise
    inherit_sets: bool = False
    inherit_reps: bool = False
    own_reps: Optional[RepsValue] = None
    diagnostics: List[_Diagnostic] = field(default_factory=list)

    def warn(self, token: Token, message: str) -> None:
        self.diagnostics.append(_Diagnostic(token, message))


@dataclass
class _Clause:
    """Contents of one parenthetical, e.g. (2x failure @85lbs)"""
    count: Optional[int] = None
    reps: Optional[RepsValue] = None
    mods: _Modifiers = field(default_factory=_Modifiers)


Match = Optional[Tuple[_ExerciseDraft, int]]


class WorkoutParser:
    """Parses one token stream. Create a new instance per parse."""

    def __init__(self, tokens: List[Token]):
        if not tokens or tokens[-1].kind != TokenType.EOF:
            raise ValueError("token stream must end with EOF")
        self.tokens = tokens
        self.errors: List[ParseError] = []
        self.suggestions: List[ParseSuggestion] = []
        self._last = len(tokens) - 1

    # -- token access -------------------------------------------------------

    def _tok(self, pos: int) -> Token:
        return self.tokens[min(pos, self._last)]

    def _kind(self, pos: int) -> TokenType:
        return self._tok(pos).kind

    def _number(self, pos: int) -> Optional[float]:
        token = self._tok(pos)
        if token.kind != TokenType.NUMBER:
            return None
        return float(token.text)

    def _int(self, pos: int) -> Optional[int]:
        token = self._tok(pos)
        if token.kind != TokenType.NUMBER or not token.text.isdigit():
            return None
        return int(token.text)

    # -- diagnostics --------------------------------------------------------

    def _add(self, token: Token, message: str, severity: str = "error", suggestion: Optional[str] = None) -> None:
        self.errors.append(ParseError(
            offset=token.offset,
            line=token.line,
            column=token.column,
            message=message,
            suggestion=suggestion,
            severity=severity,
        ))

    # -- workout and groups -------------------------------------------------

    def parse_workout(self) -> Workout:
        groups: List[ExerciseGroup] = []
        pos = 0
        # Every iteration consumes at least one token
        ceiling = 2 * len(self.tokens) + 10
        iterations = 0

        while self._kind(pos) != TokenType.EOF:
            iterations += 1
            if iterations > ceiling:
                self._add(self._tok(pos), "Parser iteration limit reached; the rest of the input was skipped")
                break

            token = self._tok(pos)
            if token.kind == TokenType.NEWLINE:
                pos += 1
                continue
            if token.kind in (TokenType.PLUS, TokenType.SUPERSET):
                self._add(token, f"'{token.text}' has no exercise before it and was ignored", severity="warning")
                pos += 1
                continue

            group, pos = self._parse_group(pos)
            if group is not None:
                groups.append(group)

        return Workout(groups=groups)

    def _parse_group(self, start: int) -> Tuple[Optional[ExerciseGroup], int]:
        first = self._parse_exercise(start, partner=False)
        if first is None:
            self._add(
                self._tok(start),
                "Unable to parse exercise notation",
                suggestion=self._suggest_fix(start),
            )
            return None, self._recover(start)

        drafts, pos = [first[0]], first[1]
        group_type = "single"

        while True:
            operator = self._tok(pos)
            if operator.kind == TokenType.SUPERSET:
                joined = "superset"
            elif operator.kind == TokenType.PLUS and self._looks_like_exercise(pos + 1):
                joined = "circuit"
            else:
                break

            partner = self._parse_exercise(pos + 1, partner=True)
            if partner is None:
                self._add(
                    operator,
                    "Expected exercise after superset/circuit operator",
                    suggestion='Write the partner exercise after the operator, e.g. "4x10 Leg Press ss 4x15 Leg Curls"',
                )
                pos = self._recover(pos + 1)
                break

            if group_type == "single":
                group_type = joined
            drafts.append(partner[0])
            pos = partner[1]

        return ExerciseGroup(type=group_type, exercises=self._commit_group(drafts)), pos

    def _looks_like_exercise(self, pos: int) -> bool:
        """One token of lookahead (plus an optional leading weight) after '+'."""
        kind = self._kind(pos)
        if kind == TokenType.WORD:
            return True
        if kind != TokenType.NUMBER:
            return False
        if self._kind(pos + 1) in (TokenType.MULTIPLY, TokenType.SLASH):
            return True
        probe = pos + 1
        if self._kind(probe) == TokenType.WEIGHT_UNIT:
            probe += 1
        return self._kind(probe) == TokenType.NUMBER and self._kind(probe + 1) == TokenType.MULTIPLY

    def _recover(self, pos: int) -> int:
        """Skip to the next NEWLINE, '+' or 'ss'. A '+' or 'ss' stop is consumed."""
        if self._kind(pos) not in (TokenType.NEWLINE, TokenType.EOF):
            pos += 1
        while self._kind(pos) not in GROUP_BOUNDARIES:
            pos += 1
        if self._kind(pos) in (TokenType.PLUS, TokenType.SUPERSET):
            pos += 1
        return pos

    def _suggest_fix(self, pos: int) -> str:
        """Hint from the few tokens at the failure, never the whole line."""
        segment = []
        for probe in range(pos, pos + SUGGESTION_WINDOW):
            if self._kind(probe) in (TokenType.NEWLINE, TokenType.EOF):
                break
            segment.append(self._kind(probe))
        has_number = TokenType.NUMBER in segment
        has_multiply = TokenType.MULTIPLY in segment
        has_word = TokenType.WORD in segment

        if has_number and not has_multiply:
            return 'Try using format like "3x10" for sets and reps'
        if has_multiply and not has_number:
            return "Missing numbers for sets or reps"
        if has_number and has_multiply and not has_word:
            return 'Add an exercise name after the sets and reps, e.g. "3x10 Squat"'
        return GENERIC_SUGGESTION

    # -- exercise strategies ------------------------------------------------

    def _parse_exercise(self, pos: int, partner: bool) -> Match:
        strategies: List[Callable[[int], Match]] = [
            self._standard,
            self._weight_first,
            self._at_notation,
            self._slash,
            self._comma,
            self._complex,
        ]
        for strategy in strategies:
            match = strategy(pos)
            if match is not None:
                return match
        return self._name_first(pos, partner)

    def _standard(self, pos: int) -> Match:
        """5x10 Squat"""
        scheme = self._sets_reps(pos)
        if scheme is None:
            return None
        count, reps, note, pos = scheme
        name = self._name(pos)
        if name is None:
            return None
        draft = self._new_draft(name)
        self._fill_sets(draft, count, reps)
        if note:
            draft.notes.append(note)
        return draft, self._modifiers(name[1], draft.mods, draft)

    def _weight_first(self, pos: int) -> Match:
        """225 3x5 Squat"""
        lead = self._weight(pos, require_marker=False)
        if lead is None:
            return None
        weight, pos, _ = lead
        scheme = self._sets_reps(pos)
        if scheme is None:
            return None
        count, reps, note, pos = scheme
        name = self._name(pos)
        if name is None:
            return None
        draft = self._new_draft(name)
        self._fill_sets(draft, count, reps)
        for s in draft.sets:
            s.weight = weight
        if note:
            draft.notes.append(note)
        return draft, self._modifiers(name[1], draft.mods, draft)

    def _at_notation(self, pos: int) -> Match:
        """3x5 @225lbs Squat, 3x5 @80% Squat"""
        scheme = self._sets_reps(pos)
        if scheme is None:
            return None
        count, reps, note, pos = scheme
        if self._kind(pos) != TokenType.AT:
            return None

        probe = _ExerciseDraft(raw_name="", token=self._tok(pos))
        head = _Modifiers()
        pos = self._at_operand(pos + 1, head, probe)
        if pos is None:
            return None
        name = self._name(pos)
        if name is None:
            return None

        draft = self._new_draft(name)
        draft.diagnostics.extend(probe.diagnostics)
        self._fill_sets(draft, count, reps)
        for s in draft.sets:
            s.weight = head.weight
            s.rpe = head.rpe
        if note:
            draft.notes.append(note)
        return draft, self._modifiers(name[1], draft.mods, draft)

    def _slash(self, pos: int) -> Match:
        """12/10/8 Curls"""
        first = self._reps(pos)
        if first is None or self._kind(first[2]) != TokenType.SLASH:
            return None
        reps_list = [first[0]]
        notes = [first[1]] if first[1] else []
        pos = first[2]
        while self._kind(pos) == TokenType.SLASH:
            following = self._reps(pos + 1)
            if following is None:
                return None
            reps_list.append(following[0])
            if following[1] and following[1] not in notes:
                notes.append(following[1])
            pos = following[2]

        name = self._name(pos)
        if name is None:
            return None
        draft = self._new_draft(name)
        draft.sets = [_SetDraft(reps=reps) for reps in reps_list]
        draft.notes.extend(notes)
        draft.mods.dropset = True
        return draft, self._modifiers(name[1], draft.mods, draft)

    def _comma(self, pos: int) -> Match:
        """225x5,5,3 Bench"""
        value = self._number(pos)
        if value is None:
            return None
        pos += 1
        unit = None
        if self._kind(pos) == TokenType.WEIGHT_UNIT:
            unit = _unit(self._tok(pos).text)
            pos += 1
        if self._kind(pos) != TokenType.MULTIPLY:
            return None

        first = self._reps(pos + 1)
        if first is None or self._kind(first[2]) != TokenType.COMMA:
            return None
        reps_list = [first[0]]
        pos = first[2]
        while self._kind(pos) == TokenType.COMMA:
            following = self._reps(pos + 1)
            if following is None:
                return None
            reps_list.append(following[0])
            pos = following[2]

        name = self._name(pos)
        if name is None:
            return None
        draft = self._new_draft(name)
        weight = Weight(value=value, unit=unit)
        draft.sets = [_SetDraft(reps=reps, weight=weight) for reps in reps_list]

        # A last set short of the first set's reps is taken as a missed rep target
        last, lead = reps_list[-1], reps_list[0]
        if isinstance(last, int) and isinstance(lead, int) and last < lead:
            draft.sets[-1].failed = True
        return draft, self._modifiers(name[1], draft.mods, draft)

    def _complex(self, pos: int) -> Match:
        """5x Incline DB (2x failure @85lbs) (3x8-10 @75lbs)"""
        total = self._int(pos)
        if total is None or total <= 0 or self._kind(pos + 1) != TokenType.MULTIPLY:
            return None
        name = self._name(pos + 2)
        if name is None:
            return None
        draft = self._new_draft(name)
        pos = name[1]

        default_reps: RepsValue = DEFAULT_REPS
        # "5x Incline DB 3x8-10": the outer count stays the total, the inner scheme gives the reps
        scheme = self._sets_reps(pos)
        if scheme is not None:
            _, default_reps, note, pos = scheme
            if note:
                draft.notes.append(note)
        elif (
            self._kind(pos) == TokenType.NUMBER
            and self._weight(pos, require_marker=True) is None
            and self._kind(pos + 1) not in (TokenType.MULTIPLY, TokenType.SLASH, TokenType.TIME_UNIT)
        ):
            trailing = self._reps(pos)
            if trailing is not None:
                default_reps, pos = trailing[0], trailing[2]

        clauses: List[Tuple[_Clause, Token]] = []
        while self._kind(pos) == TokenType.LPAREN:
            clause_token = self._tok(pos)
            clause, pos = self._clause(pos, draft)
            clauses.append((clause, clause_token))

        self._fill_sets(draft, total, default_reps)
        allocated = 0
        for clause, clause_token in clauses:
            if clause.count is None:
                if clause.reps is not None:
                    for s in draft.sets[allocated:]:
                        s.reps = clause.reps
                _merge_modifiers(draft.mods, clause.mods)
                continue

            remaining = len(draft.sets) - allocated
            size = min(clause.count, remaining)
            if clause.count > remaining:
                draft.warn(clause_token, f"Set breakdown exceeds the total of {len(draft.sets)} sets")
            for s in draft.sets[allocated:allocated + size]:
                if clause.reps is not None:
                    s.reps = clause.reps
                _fill_set(s, clause.mods)
            draft.notes.extend(n for n in clause.mods.notes if n not in draft.notes)
            allocated += size

        return draft, self._modifiers(pos, draft.mods, draft)

    def _name_first(self, pos: int, partner: bool) -> Match:
        """Bench Press 4x8; as a superset partner the numbers may be omitted"""
        name = self._name(pos)
        if name is None:
            return None
        draft = self._new_draft(name)
        pos = name[1]

        scheme = self._sets_reps(pos)
        if scheme is not None:
            count, reps, note, pos = scheme
            self._fill_sets(draft, count, reps)
            if note:
                draft.notes.append(note)
        elif not partner:
            return None
        else:
            bare = self._bare_reps(pos)
            draft.inherit_sets = True
            if bare is not None:
                draft.own_reps, note, pos = bare
                if note:
                    draft.notes.append(note)
            else:
                draft.inherit_reps = True

        return draft, self._modifiers(pos, draft.mods, draft)

    # -- shared grammar pieces ----------------------------------------------

    def _new_draft(self, name: Tuple[str, int, Token]) -> _ExerciseDraft:
        return _ExerciseDraft(raw_name=name[0], token=name[2])

    def _fill_sets(self, draft: _ExerciseDraft, count: int, reps: RepsValue) -> None:
        if count > MAX_SETS:
            draft.warn(draft.token, f"Set count {count} capped at {MAX_SETS}")
            count = MAX_SETS
        draft.sets = [_SetDraft(reps=reps) for _ in range(count)]

    def _sets_reps(self, pos: int) -> Optional[Tuple[int, RepsValue, Optional[str], int]]:
        """SETS x REPS"""
        count = self._int(pos)
        if count is None or count <= 0 or self._kind(pos + 1) != TokenType.MULTIPLY:
            return None
        reps = self._reps(pos + 2)
        if reps is None:
            return None
        return count, reps[0], reps[1], reps[2]

    def _reps(self, pos: int) -> Optional[Tuple[RepsValue, Optional[str], int]]:
        """N, N-M, AMRAP, or failure. Returns (reps, note, new position)."""
        token = self._tok(pos)
        if token.kind == TokenType.AMRAP:
            return AMRAP, None, pos + 1
        if token.kind == TokenType.WORD and token.text.lower() in FAILURE_WORDS:
            return AMRAP, "to failure", pos + 1

        low = self._int(pos)
        if low is None:
            return None
        if self._kind(pos + 1) == TokenType.DASH:
            high = self._int(pos + 2)
            if high is not None:
                return RepRange(min=low, max=high), None, pos + 3
        return low, None, pos + 1

    def _bare_reps(self, pos: int) -> Optional[Tuple[RepsValue, Optional[str], int]]:
        """Reps written without a set count: the 12 in "ss Curls 12", or AMRAP/failure."""
        kind = self._kind(pos)
        if kind == TokenType.AMRAP or (kind == TokenType.WORD and self._tok(pos).text.lower() in FAILURE_WORDS):
            return self._reps(pos)
        if kind != TokenType.NUMBER or self._weight(pos, require_marker=True) is not None:
            return None
        if self._kind(pos + 1) in (TokenType.MULTIPLY, TokenType.SLASH, TokenType.TIME_UNIT):
            return None
        return self._reps(pos)

    def _name(self, pos: int) -> Optional[Tuple[str, int, Token]]:
        """
        Exercise name words, hyphenated words joined with '-'.

        A number is a name word only when another word follows it
        ("45 degree hyperextension"); otherwise it ends the name, so "4x15"
        starts the next exercise and "225 lbs" stays a weight. Also stops at
        keywords, at "failure" after the first word, at any other symbol, and
        after MAX_NAME_WORDS words.
        """
        start = self._tok(pos)
        words: List[str] = []
        while len(words) < MAX_NAME_WORDS:
            token = self._tok(pos)
            if token.kind == TokenType.WORD and not (words and token.text.lower() in FAILURE_WORDS):
                word = token.text
                pos += 1
                while self._kind(pos) == TokenType.DASH and self._kind(pos + 1) == TokenType.WORD:
                    word = f"{word}-{self._tok(pos + 1).text}"
                    pos += 2
                words.append(word)
                continue
            if token.kind == TokenType.NUMBER and self._kind(pos + 1) == TokenType.WORD:
                words.append(token.text)
                pos += 1
                continue
            if (
                not words
                and token.kind in NAME_KEYWORDS
                and self._kind(pos + 1) not in (TokenType.NUMBER, TokenType.COLON)
            ):
                words.append(token.text)
                pos += 1
                continue
            break

        if not words:
            return None
        return " ".join(words), pos, start

    def _weight(self, pos: int, require_marker: bool) -> Optional[Tuple[Weight, int, bool]]:
        """
        N[-M] lbs|kg, N[-M]%, or (when no marker is required) a bare N.

        Returns (weight, new position, whether a unit or % was present).
        """
        value = self._number(pos)
        if value is None:
            return None
        end = pos + 1
        high = None
        if (
            self._kind(end) == TokenType.DASH
            and self._kind(end + 1) == TokenType.NUMBER
            and self._kind(end + 2) in (TokenType.WEIGHT_UNIT, TokenType.PERCENT)
        ):
            high = float(self._tok(end + 1).text)
            end += 2

        kind = self._kind(end)
        if kind == TokenType.WEIGHT_UNIT:
            return Weight(value=value, max=high, unit=_unit(self._tok(end).text)), end + 1, True
        if kind == TokenType.PERCENT:
            return Weight(value=value, max=high, percentage=True), end + 1, True
        if require_marker or kind in (TokenType.MULTIPLY, TokenType.SLASH):
            return None
        return Weight(value=value), end, False

    def _bodyweight(self, pos: int) -> Tuple[Weight, int]:
        """BW, BW + 25, BW + 10kg"""
        end = pos + 1
        extra = 0.0
        unit = None
        if (
            self._kind(end) == TokenType.PLUS
            and self._kind(end + 1) == TokenType.NUMBER
            and self._kind(end + 2) not in (TokenType.MULTIPLY, TokenType.SLASH)
        ):
            extra = float(self._tok(end + 1).text)
            end += 2
            if self._kind(end) == TokenType.WEIGHT_UNIT:
                unit = _unit(self._tok(end).text)
                end += 1
        return Weight(value=extra, unit=unit, is_bodyweight=True), end

    def _tempo(self, pos: int) -> Optional[Tuple[Tempo, int]]:
        """3-1-2, 3-1-2-0, or packed digits like 3010"""
        parts: List[int] = []
        end = pos
        while len(parts) < 4:
            value = self._int(end)
            if value is None:
                break
            parts.append(value)
            end += 1
            if len(parts) < 4 and self._kind(end) == TokenType.DASH and self._kind(end + 1) == TokenType.NUMBER:
                end += 1
                continue
            break

        if len(parts) == 1:
            digits = self._tok(pos).text
            if len(digits) in (3, 4):
                parts = [int(d) for d in digits]
        if len(parts) < 3:
            return None
        return Tempo(
            eccentric=parts[0],
            pause=parts[1],
            concentric=parts[2],
            pause_top=parts[3] if len(parts) > 3 else None,
        ), end

    def _set_rpe(self, mods: _Modifiers, value: float, token: Token, draft: _ExerciseDraft) -> None:
        if 1 <= value <= 10:
            mods.rpe = value
        else:
            draft.warn(token, f"RPE {value:g} is outside 1-10 and was ignored")

    def _at_operand(self, pos: int, mods: _Modifiers, draft: _ExerciseDraft) -> Optional[int]:
        """What follows '@': RPE N, BW, a weight, or a bare 1-10 read as RPE."""
        kind = self._kind(pos)
        if kind == TokenType.RPE:
            value = self._number(pos + 1)
            if value is None:
                return None
            self._set_rpe(mods, value, self._tok(pos), draft)
            return pos + 2
        if kind == TokenType.BW:
            mods.weight, end = self._bodyweight(pos)
            return end

        found = self._weight(pos, require_marker=False)
        if found is None:
            return None
        weight, end, marked = found
        if not marked and 1 <= weight.value <= 10:
            mods.rpe = weight.value
        else:
            mods.weight = weight
        return end

    def _modifiers(self, pos: int, mods: _Modifiers, draft: _ExerciseDraft) -> int:
        for _ in range(MAX_MODIFIERS):
            end = self._modifier(pos, mods, draft)
            if end is None:
                break
            pos = end
        return pos

    def _modifier(self, pos: int, mods: _Modifiers, draft: _ExerciseDraft) -> Optional[int]:
        """Consume one modifier. Returns the new position, or None if there is none here."""
        token = self._tok(pos)
        kind = token.kind

        if kind == TokenType.AT:
            return self._at_operand(pos + 1, mods, draft)

        if kind == TokenType.RPE:
            value = self._number(pos + 1)
            if value is None:
                return None
            self._set_rpe(mods, value, token, draft)
            return pos + 2

        if kind == TokenType.REST:
            end = pos + 1
            if self._kind(end) == TokenType.COLON:
                end += 1
            value = self._number(end)
            if value is None:
                return None
            end += 1
            if self._kind(end) == TokenType.TIME_UNIT:
                if self._tok(end).text.lower() in MINUTE_UNITS:
                    value *= 60
                end += 1
            mods.rest = int(round(value))
            return end

        if kind == TokenType.TEMPO:
            start = pos + 1
            if self._kind(start) == TokenType.COLON:
                start += 1
            tempo = self._tempo(start)
            if tempo is None:
                draft.warn(token, 'Tempo should look like "3-1-2" or "3-1-2-0"')
                return pos + 1
            mods.tempo, end = tempo
            return end

        if kind == TokenType.DROP:
            mods.dropset = True
            return pos + 1

        if kind == TokenType.BW:
            mods.weight, end = self._bodyweight(pos)
            return end

        if kind == TokenType.NUMBER:
            found = self._weight(pos, require_marker=True)
            if found is None:
                return None
            mods.weight = found[0]
            return found[1]

        if kind == TokenType.LPAREN:
            clause, end = self._clause(pos, draft)
            if clause.count is not None or clause.reps is not None:
                # No set total to allocate against here, keep the clause as written
                close = end - 1 if self._kind(end - 1) == TokenType.RPAREN else end
                clause.mods.notes = [self._text(pos + 1, close)]
            _merge_modifiers(mods, clause.mods)
            return end

        return None

    def _clause(self, pos: int, draft: _ExerciseDraft) -> Tuple[_Clause, int]:
        """Parse "( ... )" starting at LPAREN. Unknown words become a note."""
        clause = _Clause()
        words: List[str] = []
        end = pos + 1
        while self._kind(end) not in (TokenType.RPAREN, TokenType.NEWLINE, TokenType.EOF):
            token = self._tok(end)

            if clause.count is None and clause.reps is None:
                scheme = self._sets_reps(end)
                if scheme is not None:
                    clause.count, clause.reps, note, end = scheme
                    if note:
                        clause.mods.notes.append(note)
                    continue

            # "(2x failure at 85lbs)" reads the word "at" like "@"
            if token.kind == TokenType.AT or (token.kind == TokenType.WORD and token.text.lower() == "at"):
                after = self._at_operand(end + 1, clause.mods, draft)
                if after is not None:
                    end = after
                    continue
            elif token.kind in (
                TokenType.NUMBER,
                TokenType.RPE,
                TokenType.REST,
                TokenType.TEMPO,
                TokenType.BW,
                TokenType.DROP,
            ):
                after = self._modifier(end, clause.mods, draft)
                if after is not None:
                    end = after
                    continue
            elif token.kind == TokenType.WORD and token.text.lower() in FAILURE_WORDS and clause.reps is None:
                clause.reps = AMRAP
                clause.mods.notes.append("to failure")
                end += 1
                continue

            words.append(token.text)
            end += 1

        if self._kind(end) == TokenType.RPAREN:
            end += 1
        else:
            draft.warn(self._tok(pos), "Missing closing parenthesis")

        lowered = {w.lower() for w in words}
        if clause.mods.weight is not None and lowered & SIDE_WORDS:
            clause.mods.weight = clause.mods.weight.model_copy(update={"per_side": True})
            words = [w for w in words if w.lower() not in SIDE_WORDS | SIDE_FILLER_WORDS]
        if words:
            clause.mods.notes.append(" ".join(words))
        return clause, end

    def _text(self, start: int, end: int) -> str:
        """Source text covered by tokens[start:end] on a single line."""
        return _source_slice(self.tokens[start:end])

    # -- commit -------------------------------------------------------------

    def _commit_group(self, drafts: List[_ExerciseDraft]) -> List[Exercise]:
        lead = drafts[0]
        for partner in drafts[1:]:
            if not partner.inherit_sets:
                continue
            reps = lead.sets[0].reps if partner.inherit_reps else partner.own_reps
            partner.sets = [_SetDraft(reps=reps) for _ in lead.sets]
        return [self._commit(draft) for draft in drafts]

    def _commit(self, draft: _ExerciseDraft) -> Exercise:
        for diagnostic in draft.diagnostics:
            self._add(diagnostic.token, diagnostic.message, severity=diagnostic.severity)

        name = self._canonical_name(draft.raw_name)
        for s in draft.sets:
            _fill_set(s, draft.mods)

        notes = list(draft.notes)
        notes.extend(n for n in draft.mods.notes if n not in notes)
        sets = [
            ExerciseSet(
                reps=s.reps,
                weight=s.weight,
                rpe=s.rpe,
                tempo=s.tempo,
                rest=s.rest,
                failed=s.failed,
            )
            for s in draft.sets
        ]
        return Exercise(
            name=name,
            sets=sets,
            notes=notes or None,
            modifiers=ExerciseModifiers(dropset=True) if draft.mods.dropset else None,
        )

    def _canonical_name(self, raw_name: str) -> str:
        canonical = ExerciseMatcher.find_exercise(raw_name)
        if canonical:
            return canonical

        ranked = ExerciseMatcher.rank_suggestions(raw_name)
        if ranked:
            best, score = ranked[0]
            self.suggestions.append(ParseSuggestion(
                original=raw_name,
                suggestion=best,
                confidence=min(score, 1.0),
                alternatives=[name for name, _ in ranked[1:]],
            ))
        return raw_name


def _unit(text: str) -> str:
    return "kg" if text.lower().startswith("k") else "lbs"


def _fill_set(target: _SetDraft, mods: _Modifiers) -> None:
    """Copy modifier values onto a set without overwriting what it already has."""
    if target.weight is None:
        target.weight = mods.weight
    if target.rpe is None:
        target.rpe = mods.rpe
    if target.tempo is None:
        target.tempo = mods.tempo
    if target.rest is None:
        target.rest = mods.rest


def _merge_modifiers(target: _Modifiers, source: _Modifiers) -> None:
    if target.weight is None:
        target.weight = source.weight
    if target.rpe is None:
        target.rpe = source.rpe
    if target.tempo is None:
        target.tempo = source.tempo
    if target.rest is None:
        target.rest = source.rest
    target.dropset = target.dropset or source.dropset
    target.notes.extend(n for n in source.notes if n not in target.notes)


def _source_slice(tokens: List[Token]) -> str:
    """Rebuild text from same-line tokens using their columns for spacing."""
    parts: List[str] = []
    previous_end = None
    for token in tokens:
        if previous_end is not None and token.column > previous_end:
            parts.append(" ")
        parts.append(token.text)
        previous_end = token.column + len(token.text)
    return "".join(parts)


def _rejected(message: str) -> ParseResult:
    return ParseResult(success=False, errors=[ParseError(message=message)])


def parse(text: object, clock: Callable[[], float] = time.perf_counter) -> ParseResult:
    """
    Parse workout notation into a Workout.

    Never raises. Invalid or oversized input gives a single error and no
    workout. A parse slower than MAX_PARSE_SECONDS keeps its result and gets
    one extra error appended.
    """
    if not isinstance(text, str) or not text.strip():
        logger.warning("Rejected empty or non-string notation input")
        return _rejected("Input must be a non-empty string")

    if len(text) > MAX_INPUT_CHARS:
        logger.warning(f"Rejected notation input of {len(text)} characters")
        return _rejected(f"Input is too long ({len(text)} characters); the limit is {MAX_INPUT_CHARS}")

    started = clock()
    try:
        tokens = tokenize(text)
    except Exception as e:
        logger.exception("Tokenizer failed")
        return _rejected(f"Unable to tokenize input: {e}")

    if len(tokens) > MAX_TOKENS:
        logger.warning(f"Rejected notation input of {len(tokens)} tokens")
        return _rejected(f"Input has too many tokens ({len(tokens)}); the limit is {MAX_TOKENS}")

    parser = WorkoutParser(tokens)
    workout: Optional[Workout] = None
    try:
        workout = parser.parse_workout()
    except Exception as e:
        logger.exception("Unexpected error while parsing notation")
        parser.errors.append(ParseError(message=f"Unexpected parsing error: {e}"))

    elapsed = clock() - started
    if elapsed > MAX_PARSE_SECONDS:
        logger.warning(f"Notation parse took {elapsed:.2f}s")
        parser.errors.append(ParseError(
            offset=len(text),
            message=f"Parsing took {elapsed:.2f}s, over the {MAX_PARSE_SECONDS:g}s budget; the result may be incomplete",
        ))

    success = not any(error.severity == "error" for error in parser.errors)
    logger.debug(
        f"Parsed notation: groups={len(workout.groups) if workout else 0} "
        f"errors={len(parser.errors)} suggestions={len(parser.suggestions)}"
    )
    return ParseResult(
        success=success,
        workout=workout,
        errors=parser.errors,
        suggestions=parser.suggestions,
    )
