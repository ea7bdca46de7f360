"""
Notation Models

Pydantic models for the structured workout produced by the notation parser,
the parse diagnostics, and the pre-parse validation report.
"""

from typing import Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field, model_validator


WeightUnit = Literal["lbs", "kg"]
GroupType = Literal["single", "superset", "circuit", "dropset", "cluster"]
Severity = Literal["error", "warning"]

AMRAP = "AMRAP"


class Weight(BaseModel):
    """Load for a set. `max` turns the value into a range (25-35 lbs)."""
    value: float = Field(..., ge=0)
    max: Optional[float] = Field(default=None, ge=0)
    unit: Optional[WeightUnit] = None
    is_bodyweight: Optional[bool] = None
    percentage: Optional[bool] = Field(default=None, description="value is a percentage of 1RM")
    per_side: Optional[bool] = Field(default=None, description="value is loaded on each side")

    class Config:
        frozen = True


class Tempo(BaseModel):
    """Lifting tempo in seconds, written E-P-C[-P2]"""
    eccentric: int = Field(..., ge=0)
    pause: int = Field(..., ge=0)
    concentric: int = Field(..., ge=0)
    pause_top: Optional[int] = Field(default=None, ge=0)

    class Config:
        frozen = True


class RepRange(BaseModel):
    """Rep range such as 8-12"""
    min: int = Field(..., ge=0)
    max: int = Field(..., ge=0)

    class Config:
        frozen = True


# Fixed reps, a range, or the AMRAP sentinel
RepsValue = Union[int, RepRange, Literal["AMRAP"]]


class ExerciseSet(BaseModel):
    reps: RepsValue
    weight: Optional[Weight] = None
    rpe: Optional[float] = Field(default=None, ge=1, le=10)
    tempo: Optional[Tempo] = None
    rest: Optional[int] = Field(default=None, ge=0, description="Rest after the set in seconds")
    failed: Optional[bool] = None

    class Config:
        frozen = True


class ExerciseModifiers(BaseModel):
    dropset: Optional[bool] = None

    class Config:
        frozen = True


class Exercise(BaseModel):
    """A single exercise with at least one set"""
    name: str = Field(..., min_length=1, description="Canonical name, or the raw name when unknown")
    sets: List[ExerciseSet] = Field(..., min_length=1)
    notes: Optional[List[str]] = None
    modifiers: Optional[ExerciseModifiers] = None

    class Config:
        frozen = True


class ExerciseGroup(BaseModel):
    """Exercises performed together, one line of notation"""
    type: GroupType = "single"
    exercises: List[Exercise] = Field(..., min_length=1)
    rest: Optional[int] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def check_exercise_count(self) -> "ExerciseGroup":
        count = len(self.exercises)
        if self.type in ("single", "dropset") and count != 1:
            raise ValueError(f"{self.type} group must hold exactly one exercise, got {count}")
        if self.type in ("superset", "circuit") and count < 2:
            raise ValueError(f"{self.type} group needs at least two exercises, got {count}")
        return self


class Workout(BaseModel):
    groups: List[ExerciseGroup] = Field(default_factory=list)

    class Config:
        frozen = True


class ParseError(BaseModel):
    """Diagnostic with its source position (line and column are 1-based)"""
    offset: int = 0
    line: int = 1
    column: int = 1
    message: str
    suggestion: Optional[str] = None
    severity: Severity = "error"

    class Config:
        frozen = True


class ParseSuggestion(BaseModel):
    """'Did you mean' hint for an exercise name that was kept verbatim"""
    original: str
    suggestion: str
    confidence: float = Field(..., ge=0, le=1)
    alternatives: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class ParseResult(BaseModel):
    """Result of parse(). success is False iff an error-severity entry exists."""
    success: bool
    workout: Optional[Workout] = None
    errors: List[ParseError] = Field(default_factory=list)
    suggestions: List[ParseSuggestion] = Field(default_factory=list)

    class Config:
        frozen = True


# ---------------------------------------------------------------------------
# Exercise directory and pre-parse validation
# ---------------------------------------------------------------------------

class DirectoryExercise(BaseModel):
    """Exercise record supplied by the external exercise catalog"""
    id: str
    name: str
    muscle_group: Optional[str] = None
    equipment: Optional[str] = None
    video_links: List[str] = Field(default_factory=list)
    difficulty: Optional[str] = None
    instructions: List[str] = Field(default_factory=list)
    search_keywords: List[str] = Field(default_factory=list)

    class Config:
        extra = "allow"
        frozen = True
        coerce_numbers_to_str = True


class ExerciseSuggestion(BaseModel):
    name: str
    confidence: float = Field(..., ge=0, le=1)
    source: Literal["parser", "directory"]
    exercise: Optional[DirectoryExercise] = None


class UnmatchedExercise(BaseModel):
    original: str
    position: int
    line: int
    suggestions: List[ExerciseSuggestion] = Field(default_factory=list)


class MatchedExercise(BaseModel):
    original: str
    matched: str
    position: int
    line: int
    confidence: float = Field(..., ge=0, le=1)
    exercise: Optional[DirectoryExercise] = None
    video_links: List[str] = Field(default_factory=list)
    needs_confirmation: bool


class ValidationWarning(BaseModel):
    message: str
    severity: Literal["warning", "info"] = "warning"


class ValidationResult(BaseModel):
    is_valid: bool
    matched_exercises: List[MatchedExercise] = Field(default_factory=list)
    unmatched_exercises: List[UnmatchedExercise] = Field(default_factory=list)
    warnings: List[ValidationWarning] = Field(default_factory=list)
    all_exercises_valid: bool
    requires_confirmation: bool

    def summary(self) -> dict[str, Any]:
        """Counts used in log lines and the /validate response metadata"""
        return {
            "matched": len(self.matched_exercises),
            "unmatched": len(self.unmatched_exercises),
            "warnings": len(self.warnings),
        }
