"""
Exercise Validator

Pre-parse check of workout text. Pulls candidate exercise names out of each
raw line with regular expressions (no tokenizing) and checks them against the
built-in vocabulary and the caller's exercise directory, so a UI can ask the
user to confirm names before the workout is saved.
"""

import logging
import re
from typing import List, NamedTuple, Optional, Sequence

from .directory_matching import exercise_video_links, find_in_directory
from .exercise_catalog import ExerciseMatcher
from .models import (
    DirectoryExercise,
    ExerciseSuggestion,
    MatchedExercise,
    UnmatchedExercise,
    ValidationResult,
    ValidationWarning,
)

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
PARSER_SUGGESTION_CONFIDENCE = 0.7
EXACT_MATCH_CONFIDENCE = 1.0
APPROXIMATE_MATCH_CONFIDENCE = 0.8
CONFIRMATION_THRESHOLD = 0.9
DIRECTORY_MATCH_THRESHOLD = 0.7
DIRECTORY_SUGGESTION_THRESHOLD = 0.5

# 3x10 Squat, 3x8-12 Squat, 3xAMRAP Pushups
SETS_REPS_NAME = re.compile(r"^\s*\d+\s*x\s*(?:\d+|\d+-\d+|AMRAP)\s+(.+?)(?:\s+[@\d]|$)", re.IGNORECASE)
# Bench Press 4x8
NAME_SETS_REPS = re.compile(r"^(.+?)\s+\d+\s*x\s*(?:\d+|\d+-\d+|AMRAP)", re.IGNORECASE)
# 225lbs 3x5 Squat
WEIGHT_SETS_REPS_NAME = re.compile(r"^\s*\d+(?:lbs?|kg)?\s+\d+\s*x\s*\d+\s+(.+?)$", re.IGNORECASE)
# 5x Incline DB (2x failure @85lbs)
SETS_NAME_PAREN = re.compile(r"^\s*\d+x\s+([^(]+?)(?:\s*\(|$)", re.IGNORECASE)
# Superset segment: 5x Squat
SETS_NAME = re.compile(r"^\s*\d+x\s+(.+?)(?:\s+[@\d]|$)", re.IGNORECASE)

SUPERSET_SPLIT = re.compile(r"\s+ss\s+", re.IGNORECASE)
LEADING_NUMBER = re.compile(r"^\d+")
TRAILING_AT = re.compile(r"@.*$")

# Fallback word scan stops at 3x10, @225 and 225lbs
STOP_WORD_PATTERNS = [
    re.compile(r"^\d+x\d+$", re.IGNORECASE),
    re.compile(r"^@\d+", re.IGNORECASE),
    re.compile(r"^\d+(?:lbs?|kg)?$", re.IGNORECASE),
]
MAX_FALLBACK_WORDS = 5


class Candidate(NamedTuple):
    name: str
    position: int
    line: int


def _suggestions_from_directory(
    name: str,
    directory: Sequence[DirectoryExercise],
    max_suggestions: int,
) -> List[ExerciseSuggestion]:
    clean = name.lower().strip()
    scored = []
    for exercise in directory:
        score = _word_overlap(clean, exercise.name.lower())
        if score > DIRECTORY_SUGGESTION_THRESHOLD:
            scored.append((exercise, score))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [
        ExerciseSuggestion(name=exercise.name, confidence=score, source="directory", exercise=exercise)
        for exercise, score in scored[:max_suggestions]
    ]


def _word_overlap(first: str, second: str) -> float:
    """1.0 exact, 0.9 containment, else the fraction of overlapping words."""
    if first == second:
        return 1.0
    if first in second or second in first:
        return 0.9
    words1, words2 = first.split(), second.split()
    if not words1 or not words2:
        return 0.0
    matching = sum(
        1 for w1 in words1
        if any(w1 == w2 or w2 in w1 or w1 in w2 for w2 in words2)
    )
    return matching / max(len(words1), len(words2))


def _directory_entry(name: str, directory: Sequence[DirectoryExercise]) -> Optional[DirectoryExercise]:
    lowered = name.lower()
    return next((e for e in directory if e.name.lower() == lowered), None)


class ExerciseValidator:
    """Checks exercise names in raw workout text before a full parse"""

    @staticmethod
    def extract_exercise_names(text: str) -> List[Candidate]:
        """Candidate names with the character offset and 1-based number of their line."""
        candidates: List[Candidate] = []
        position = 0

        for index, line in enumerate(text.split("\n")):
            line_number = index + 1
            if not line.strip():
                position += len(line) + 1
                continue

            if " ss " in line.lower():
                for part in SUPERSET_SPLIT.split(line):
                    name = ExerciseValidator._superset_segment_name(part.strip())
                    if name:
                        candidates.append(Candidate(name, position, line_number))
                position += len(line) + 1
                continue

            match = (
                SETS_REPS_NAME.search(line)
                or NAME_SETS_REPS.search(line)
                or WEIGHT_SETS_REPS_NAME.search(line)
                or SETS_NAME_PAREN.search(line)
            )
            if match:
                candidates.append(Candidate(match.group(1).strip(), position + match.start(), line_number))
            else:
                name = ExerciseValidator._fallback_name(line)
                if name:
                    candidates.append(Candidate(name, position, line_number))

            position += len(line) + 1

        return candidates

    @staticmethod
    def _superset_segment_name(part: str) -> Optional[str]:
        match = SETS_REPS_NAME.search(part) or SETS_NAME.search(part)
        if match:
            return match.group(1).strip()
        if part and not LEADING_NUMBER.match(part):
            return TRAILING_AT.sub("", part).strip() or None
        return None

    @staticmethod
    def _fallback_name(line: str) -> Optional[str]:
        """Leading words of a free-form line, kept only if they contain a known exercise."""
        words = []
        for word in line.split():
            if any(pattern.search(word) for pattern in STOP_WORD_PATTERNS):
                break
            words.append(word)

        if not words or len(words) > MAX_FALLBACK_WORDS:
            return None
        candidate = " ".join(words)
        if ExerciseMatcher.contains_exercise(candidate):
            return candidate
        return None

    @staticmethod
    def validate_workout_text(
        text: str,
        directory: Sequence[DirectoryExercise],
        always_confirm: bool = True,
    ) -> ValidationResult:
        """
        Validate exercise names in workout text.

        Args:
            text: Raw workout notation
            directory: Exercise directory from the catalog (may be empty)
            always_confirm: Mark every match as needing user confirmation

        Returns:
            ValidationResult with matched and unmatched names and warnings
        """
        matched: List[MatchedExercise] = []
        unmatched: List[UnmatchedExercise] = []
        warnings: List[ValidationWarning] = []

        candidates = ExerciseValidator.extract_exercise_names(text)
        if not candidates:
            warnings.append(ValidationWarning(message="No exercises detected in the workout text", severity="warning"))
            return ValidationResult(
                is_valid=False,
                matched_exercises=[],
                unmatched_exercises=[],
                warnings=warnings,
                all_exercises_valid=False,
                requires_confirmation=False,
            )

        for candidate in candidates:
            parser_match = ExerciseMatcher.find_exercise(candidate.name)
            directory_match = (
                find_in_directory(candidate.name, directory, DIRECTORY_MATCH_THRESHOLD)
                if directory else None
            )

            if not parser_match and not directory_match:
                unmatched.append(UnmatchedExercise(
                    original=candidate.name,
                    position=candidate.position,
                    line=candidate.line,
                    suggestions=ExerciseValidator._suggestions(candidate.name, directory),
                ))
                continue

            matched_name = parser_match or directory_match.name
            exercise = directory_match or _directory_entry(matched_name, directory)
            confidence = (
                EXACT_MATCH_CONFIDENCE
                if candidate.name.lower() == matched_name.lower()
                else APPROXIMATE_MATCH_CONFIDENCE
            )
            matched.append(MatchedExercise(
                original=candidate.name,
                matched=matched_name,
                position=candidate.position,
                line=candidate.line,
                confidence=confidence,
                exercise=exercise,
                video_links=exercise_video_links(matched_name, directory),
                needs_confirmation=always_confirm or confidence < CONFIRMATION_THRESHOLD,
            ))

            if not directory_match and directory:
                warnings.append(ValidationWarning(
                    message=f'"{matched_name}" is recognized but may not have full exercise details',
                    severity="info",
                ))

        result = ValidationResult(
            is_valid=not unmatched or all(u.suggestions for u in unmatched),
            matched_exercises=matched,
            unmatched_exercises=unmatched,
            warnings=warnings,
            all_exercises_valid=not unmatched,
            requires_confirmation=(
                always_confirm
                or bool(unmatched)
                or any(m.needs_confirmation for m in matched)
            ),
        )
        logger.debug(f"Validated workout text: {result.summary()}")
        return result

    @staticmethod
    def _suggestions(name: str, directory: Sequence[DirectoryExercise]) -> List[ExerciseSuggestion]:
        """Directory suggestions first, then vocabulary suggestions not already offered."""
        suggestions: List[ExerciseSuggestion] = []
        if directory:
            suggestions.extend(_suggestions_from_directory(name, directory, MAX_SUGGESTIONS))

        for suggestion in ExerciseMatcher.get_suggestions(name, 3):
            if any(s.name.lower() == suggestion.lower() for s in suggestions):
                continue
            suggestions.append(ExerciseSuggestion(
                name=suggestion,
                confidence=PARSER_SUGGESTION_CONFIDENCE,
                source="parser",
                exercise=_directory_entry(suggestion, directory),
            ))

        return suggestions[:MAX_SUGGESTIONS]


def validate(
    text: str,
    directory: Optional[Sequence[DirectoryExercise]] = None,
    always_confirm: bool = True,
) -> ValidationResult:
    return ExerciseValidator.validate_workout_text(text, directory or [], always_confirm)
