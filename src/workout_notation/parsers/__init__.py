"""Workout notation parsing: tokenizer, parser, exercise catalog and validator."""
from .exercise_catalog import ExerciseMatcher
from .exercise_validator import ExerciseValidator, validate
from .notation_parser import WorkoutParser, parse
from .tokenizer import Token, TokenType, tokenize

__all__ = [
    "ExerciseMatcher",
    "ExerciseValidator",
    "Token",
    "TokenType",
    "WorkoutParser",
    "parse",
    "tokenize",
    "validate",
]
