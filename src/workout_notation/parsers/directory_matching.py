"""
Directory Matching

Word-overlap matching of free-text exercise names against the external
exercise directory (the catalog records that carry videos and instructions).
"""

import re
from typing import List, Optional, Sequence

from .models import DirectoryExercise

DEFAULT_MIN_SIMILARITY = 0.7

# Set/rep/load fragments removed before matching, applied in order
_NAME_NOISE_PATTERNS = [
    re.compile(r"\s+\d+x\d+", re.IGNORECASE),                 # 3x10
    re.compile(r"\s+\d+\s*x\s*\d+", re.IGNORECASE),           # 3 x 10
    re.compile(r"\s+\d+xAMRAP", re.IGNORECASE),               # 3xAMRAP
    re.compile(r"\s+\d+x\s*AMRAP", re.IGNORECASE),            # 3x AMRAP
    re.compile(r"\s+@\s*\d+\s*(?:lbs?|kgs?|pounds?|kilos?)?", re.IGNORECASE),  # @75lbs, @75
    re.compile(r"\s+\d+\s*(?:lbs?|kgs?|pounds?|kilos?)", re.IGNORECASE),       # 100kg
    re.compile(r"\s*\([^)]*\)"),                              # (anything in parentheses)
    re.compile(r"\s+(?:sets?|reps?)", re.IGNORECASE),
]


def extract_exercise_name(workout_string: str) -> str:
    """
    Strip sets, reps and loads from a workout line.

    "Dumbbell Press 4x12 @75lbs" -> "Dumbbell Press"
    "Push-ups 3xAMRAP" -> "Push-ups"
    """
    clean = workout_string
    for pattern in _NAME_NOISE_PATTERNS:
        clean = pattern.sub("", clean)
    return clean.strip()


def _overlaps(a: str, b: str) -> bool:
    return a == b or a in b or b in a


def directory_similarity(first: str, second: str) -> float:
    """
    Similarity used for directory lookups.

    1.0 exact, 0.9 when one contains the other, 0.8 when every word of one
    side appears in the other, 0.95 for the same words in another order,
    otherwise the fraction of overlapping words scaled by 0.7.
    """
    s1, s2 = first.lower(), second.lower()
    if s1 == s2:
        return 1.0
    if s1 in s2 or s2 in s1:
        return 0.9

    words1, words2 = s1.split(), s2.split()
    if not words1 or not words2:
        return 0.0

    all_1_in_2 = all(any(_overlaps(w, w2) for w2 in words2) for w in words1)
    all_2_in_1 = all(any(_overlaps(w, w1) for w1 in words1) for w in words2)
    if all_1_in_2 or all_2_in_1:
        return 0.8

    matching = sum(1 for w1 in words1 if any(_overlaps(w1, w2) for w2 in words2))
    ratio = matching / max(len(words1), len(words2))

    if sorted(words1) == sorted(words2):
        return 0.95
    return ratio * 0.7


def find_in_directory(
    exercise_name: str,
    directory: Sequence[DirectoryExercise],
    min_similarity: float = DEFAULT_MIN_SIMILARITY,
) -> Optional[DirectoryExercise]:
    """Best directory entry for a workout line, or None below min_similarity."""
    clean = extract_exercise_name(exercise_name)
    if not clean or not directory:
        return None

    best = max(directory, key=lambda exercise: directory_similarity(clean, exercise.name))
    if directory_similarity(clean, best.name) >= min_similarity:
        return best
    return None


def exercise_video_links(exercise_name: str, directory: Sequence[DirectoryExercise]) -> List[str]:
    exercise = find_in_directory(exercise_name, directory)
    return list(exercise.video_links) if exercise else []
