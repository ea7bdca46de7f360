"""
Notation Tokenizer

Turns raw workout text into a flat token stream. Keyword classification is
purely lexical; the parser decides what a keyword means in context.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


class TokenType(str, Enum):
    NUMBER = "number"
    MULTIPLY = "multiply"
    PLUS = "plus"
    DASH = "dash"
    COMMA = "comma"
    SLASH = "slash"
    COLON = "colon"
    AT = "at"
    PERCENT = "percent"
    LPAREN = "lparen"
    RPAREN = "rparen"
    SUPERSET = "superset"
    RPE = "rpe"
    REST = "rest"
    TEMPO = "tempo"
    DROP = "drop"
    AMRAP = "amrap"
    BW = "bw"
    RM = "rm"
    WEIGHT_UNIT = "weight_unit"
    TIME_UNIT = "time_unit"
    WORD = "word"
    NEWLINE = "newline"
    EOF = "eof"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Token:
    kind: TokenType
    text: str
    offset: int
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.line}:{self.column})"


KEYWORDS = {
    "ss": TokenType.SUPERSET,
    "superset": TokenType.SUPERSET,
    "rpe": TokenType.RPE,
    "r": TokenType.REST,
    "rest": TokenType.REST,
    "tempo": TokenType.TEMPO,
    "drop": TokenType.DROP,
    "dropset": TokenType.DROP,
    "amrap": TokenType.AMRAP,
    "bw": TokenType.BW,
    "bodyweight": TokenType.BW,
    "rm": TokenType.RM,
    # Weight units
    "lbs": TokenType.WEIGHT_UNIT,
    "lb": TokenType.WEIGHT_UNIT,
    "pounds": TokenType.WEIGHT_UNIT,
    "kg": TokenType.WEIGHT_UNIT,
    "kgs": TokenType.WEIGHT_UNIT,
    "kilos": TokenType.WEIGHT_UNIT,
    # Time units
    "s": TokenType.TIME_UNIT,
    "sec": TokenType.TIME_UNIT,
    "secs": TokenType.TIME_UNIT,
    "seconds": TokenType.TIME_UNIT,
    "min": TokenType.TIME_UNIT,
    "mins": TokenType.TIME_UNIT,
    "minutes": TokenType.TIME_UNIT,
    "m": TokenType.TIME_UNIT,
}

SINGLE_CHAR_TOKENS = {
    "+": TokenType.PLUS,
    "-": TokenType.DASH,
    ",": TokenType.COMMA,
    "/": TokenType.SLASH,
    ":": TokenType.COLON,
    "@": TokenType.AT,
    "%": TokenType.PERCENT,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}

MULTIPLY_CHARS = frozenset("xX×*")
WHITESPACE_CHARS = frozenset(" \t\r")


def _is_digit(char: str) -> bool:
    return "0" <= char <= "9"


def _is_letter(char: str) -> bool:
    return ("a" <= char <= "z") or ("A" <= char <= "Z")


def classify_word(word: str) -> TokenType:
    """Keyword type for a word, WORD when it is not a keyword."""
    return KEYWORDS.get(word.lower(), TokenType.WORD)


class Tokenizer:
    """Single left-to-right scan over the input text."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.line = 1
        self.column = 1

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        while True:
            self._skip_whitespace()
            if self.pos >= len(self.text):
                break
            tokens.append(self._next_token())
        tokens.append(Token(TokenType.EOF, "", self.pos, self.line, self.column))
        return tokens

    def _next_token(self) -> Token:
        char = self.text[self.pos]

        if _is_digit(char):
            return self._read_number()

        if char == "\n":
            token = self._advance(TokenType.NEWLINE)
            self.line += 1
            self.column = 1
            return token

        kind = SINGLE_CHAR_TOKENS.get(char)
        if kind is not None:
            return self._advance(kind)

        # Checked before letters so a standalone "x" is a multiply sign
        if char in MULTIPLY_CHARS:
            return self._advance(TokenType.MULTIPLY)

        if _is_letter(char):
            return self._read_word()

        return self._advance(TokenType.UNKNOWN)

    def _read_number(self) -> Token:
        start, start_column = self.pos, self.column
        has_decimal = False
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if _is_digit(char):
                pass
            elif char == "." and not has_decimal:
                has_decimal = True
            else:
                break
            self.pos += 1
            self.column += 1
        return Token(TokenType.NUMBER, self.text[start:self.pos], start, self.line, start_column)

    def _read_word(self) -> Token:
        start, start_column = self.pos, self.column
        while self.pos < len(self.text):
            char = self.text[self.pos]
            if not (_is_letter(char) or char == "'"):
                break
            self.pos += 1
            self.column += 1
        word = self.text[start:self.pos]
        return Token(classify_word(word), word, start, self.line, start_column)

    def _advance(self, kind: TokenType) -> Token:
        token = Token(kind, self.text[self.pos], self.pos, self.line, self.column)
        self.pos += 1
        self.column += 1
        return token

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in WHITESPACE_CHARS:
            self.pos += 1
            self.column += 1


def tokenize(text: str) -> List[Token]:
    """Tokenize text. Always ends with exactly one EOF token and never raises."""
    return Tokenizer(text).tokenize()
