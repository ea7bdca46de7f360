"""
Exercise Catalog

Controlled vocabulary of exercise names with their common aliases, plus exact
and fuzzy lookup. Fuzzy scores are normalized Levenshtein similarity:
(len(longer) - distance) / len(longer).
"""

from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from rapidfuzz.distance import Levenshtein


# Minimum similarity for find_exercise to accept a fuzzy hit
MATCH_THRESHOLD = 0.7
# Minimum similarity for a name to be offered as a suggestion
SUGGESTION_THRESHOLD = 0.5
SUBSTRING_BOOST = 0.8
WORD_MATCH_BOOST = 0.9

EXERCISE_DATABASE: Dict[str, List[str]] = {
    # Chest
    "bench press": ["bench", "bp", "barbell bench", "bb bench", "benchpress", "bench-press"],
    "dumbbell bench press": ["db bench", "dumbbell bench", "db press"],
    "incline bench press": ["incline bench", "incline press", "incline bp"],
    "decline bench press": ["decline bench", "decline press", "decline bp"],
    "close grip bench press": ["close grip bench", "cgbp", "close grip"],
    "dumbbell flyes": ["flyes", "db flyes", "flies", "db flies", "pec flyes"],
    "cable flyes": ["cable flies", "cable crossover", "crossover"],
    "push ups": ["pushups", "push-ups"],
    "dips": ["chest dips", "weighted dips"],

    # Back
    "deadlift": ["dl", "conventional deadlift", "deads"],
    "sumo deadlift": ["sumo", "sumo dl", "sumo deads"],
    "romanian deadlift": ["rdl", "romanian dl", "stiff leg deadlift", "sldl"],
    "bent over row": ["bb row", "barbell row", "rows", "bent row"],
    "dumbbell row": ["db row", "one arm row", "single arm row"],
    "lat pulldown": ["pulldown", "lat pull", "wide grip pulldown"],
    "pull ups": ["pullups", "pull-ups", "chins"],
    "chin ups": ["chinups", "chin-ups", "underhand pullups"],
    "cable row": ["seated row", "low row", "horizontal row"],
    "t bar row": ["t-bar row", "tbar row"],

    # Legs
    "squat": ["back squat", "barbell squat", "squats", "bb squat"],
    "front squat": ["front squats", "fs"],
    "leg press": ["press", "leg press machine"],
    "lunges": ["walking lunges", "reverse lunges", "forward lunges"],
    "bulgarian split squat": ["bss", "split squats", "rear foot elevated split squat"],
    "leg curls": ["hamstring curls", "lying leg curls", "seated leg curls"],
    "leg extensions": ["leg ext", "quad extensions"],
    "calf raises": ["calf raise", "standing calf raises", "seated calf raises"],
    "hack squat": ["hack squats", "machine squat"],

    # Shoulders
    "overhead press": ["ohp", "military press", "shoulder press", "press"],
    "dumbbell overhead press": ["db ohp", "db press", "db shoulder press"],
    "arnold press": ["arnold", "arnold dumbbell press"],
    "lateral raises": ["lat raises", "side raises", "lateral raise", "side laterals"],
    "front raises": ["front raise", "frontal raises"],
    "rear delt flyes": ["rear delts", "reverse flyes", "rear delt raises"],
    "upright row": ["upright rows"],
    "face pulls": ["face pull", "facepulls"],
    "shrugs": ["barbell shrugs", "dumbbell shrugs", "trap shrugs"],
    "band pull aparts": ["banded pull aparts", "band pulls", "pull aparts"],

    # Arms
    "barbell curl": ["bb curl", "curls", "bicep curls", "straight bar curl"],
    "dumbbell curl": ["db curl", "db curls", "bicep curl"],
    "hammer curl": ["hammer curls", "neutral grip curls"],
    "preacher curl": ["preacher curls", "ez bar curl"],
    "cable curl": ["cable curls", "rope curls"],
    "tricep pushdown": ["pushdowns", "tricep pushdowns", "rope pushdown"],
    "overhead tricep extension": ["tricep extension", "overhead extension", "french press"],
    "tricep dips": ["dips", "bench dips"],
    "skullcrushers": ["skull crushers", "lying tricep extension", "lte"],

    # Core
    "plank": ["planks", "front plank"],
    "side plank": ["side planks"],
    "crunches": ["crunch", "ab crunches"],
    "sit ups": ["situps", "sit-ups"],
    "leg raises": ["hanging leg raises", "lying leg raises", "leg raise"],
    "russian twists": ["russian twist", "twists"],
    "ab wheel": ["ab rollout", "wheel rollout"],
    "cable crunches": ["cable crunch", "rope crunches"],

    # Olympic / power
    "clean": ["power clean", "hang clean", "clean and jerk"],
    "snatch": ["power snatch", "hang snatch"],
    "clean and jerk": ["c&j", "clean & jerk"],
    "push press": ["push presses"],
    "thrusters": ["thruster", "squat to press"],
}


def _build_alias_index(database: Dict[str, List[str]]) -> Dict[str, str]:
    """
    Map every lower-cased alias and canonical name to its canonical name.

    An alias shared by several entries resolves to the last one listed. An
    alias that is itself a canonical name never shadows that canonical name.
    """
    canonical_keys = {name.lower() for name in database}
    index: Dict[str, str] = {}
    for canonical, aliases in database.items():
        index[canonical.lower()] = canonical
        for alias in aliases:
            key = alias.lower()
            if key in canonical_keys and key != canonical.lower():
                continue
            index[key] = canonical
    return index


EXERCISE_ALIASES: Dict[str, str] = _build_alias_index(EXERCISE_DATABASE)


def normalize_name(name: str) -> str:
    """Trim, lower-case and collapse internal whitespace."""
    return " ".join(name.lower().split())


def similarity(a: str, b: str) -> float:
    """Normalized Levenshtein similarity in [0, 1]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - Levenshtein.distance(a, b)) / longest


@lru_cache(maxsize=1024)
def _lookup(normalized: str) -> Optional[str]:
    exact = EXERCISE_ALIASES.get(normalized)
    if exact is not None:
        return exact

    best_match: Optional[str] = None
    best_score = 0.0
    for alias, canonical in EXERCISE_ALIASES.items():
        score = similarity(normalized, alias)
        if score > best_score and score >= MATCH_THRESHOLD:
            best_score = score
            best_match = canonical
    return best_match


class ExerciseMatcher:
    """Lookup helpers over the built-in exercise vocabulary"""

    @staticmethod
    def find_exercise(name: str) -> Optional[str]:
        """
        Resolve a free-text name to its canonical exercise name.

        Exact alias hits win; otherwise the best fuzzy match at or above
        MATCH_THRESHOLD is returned. Ties keep the first entry in catalog order.
        """
        normalized = normalize_name(name)
        if not normalized:
            return None
        return _lookup(normalized)

    @staticmethod
    def rank_suggestions(name: str, max_suggestions: int = 3) -> List[Tuple[str, float]]:
        """Scored suggestions, best first, one entry per canonical name."""
        normalized = normalize_name(name)
        if not normalized:
            return []

        scored: List[Tuple[str, float]] = []
        for alias, canonical in EXERCISE_ALIASES.items():
            score = similarity(normalized, alias)
            canonical_lower = canonical.lower()

            if normalized in alias or normalized in canonical_lower:
                score = max(score, SUBSTRING_BOOST)

            if normalized in alias.split() or normalized in canonical_lower.split():
                score = max(score, WORD_MATCH_BOOST)

            if score > SUGGESTION_THRESHOLD:
                scored.append((canonical, score))

        scored.sort(key=lambda item: item[1], reverse=True)

        seen = set()
        ranked: List[Tuple[str, float]] = []
        for canonical, score in scored:
            if canonical in seen:
                continue
            seen.add(canonical)
            ranked.append((canonical, score))
            if len(ranked) >= max_suggestions:
                break
        return ranked

    @staticmethod
    def get_suggestions(name: str, max_suggestions: int = 3) -> List[str]:
        return [canonical for canonical, _ in ExerciseMatcher.rank_suggestions(name, max_suggestions)]

    @staticmethod
    def contains_exercise(text: str) -> bool:
        """True if any contiguous run of words resolves to a known exercise."""
        words = text.lower().split()
        for start in range(len(words)):
            for end in range(start + 1, len(words) + 1):
                if ExerciseMatcher.find_exercise(" ".join(words[start:end])):
                    return True
        return False

    @staticmethod
    def canonical_names() -> List[str]:
        return list(EXERCISE_DATABASE)
