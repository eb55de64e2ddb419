"""
Mercosul plate extraction from raw OCR text.

The extractor scans the transcription token by token, derives a 7-character
candidate from each token and checks it against the ``LLLNLNN`` layout. When a
candidate does not match directly, commonly confused characters are swapped
according to the class expected at each position and the candidate is tested
once more. The first candidate that matches wins.
"""

from __future__ import annotations

import enum
import logging
import re
import string
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

PLATE_FOUND_MESSAGE = "Plate identified successfully"
PLATE_NOT_FOUND_MESSAGE = "No plate could be automatically identified."

CANDIDATE_LENGTH = 7

_NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9]")
# \s does not cover U+FEFF.
_WHITESPACE = re.compile(r"[\s\ufeff]+")


class CharClass(enum.Enum):
    LETTER = frozenset(string.ascii_uppercase)
    DIGIT = frozenset(string.digits)

    def accepts(self, char: str) -> bool:
        return char in self.value


# Mercosul layout: LLLNLNN
PLATE_PATTERN: Tuple[CharClass, ...] = (
    CharClass.LETTER,
    CharClass.LETTER,
    CharClass.LETTER,
    CharClass.DIGIT,
    CharClass.LETTER,
    CharClass.DIGIT,
    CharClass.DIGIT,
)

DIGIT_TO_LETTER: Mapping[str, str] = MappingProxyType(
    {"0": "O", "1": "I", "8": "B", "5": "S", "2": "Z"}
)
LETTER_TO_DIGIT: Mapping[str, str] = MappingProxyType(
    {"O": "0", "I": "1", "B": "8", "S": "5", "Z": "2"}
)

# Replacements applied to a character found where the given class is expected.
_CORRECTIONS = MappingProxyType(
    {
        CharClass.LETTER: DIGIT_TO_LETTER,
        CharClass.DIGIT: LETTER_TO_DIGIT,
    }
)


@dataclass(frozen=True)
class Token:
    """A whitespace-delimited word of the transcription."""

    original: str
    normalized: str


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of a plate extraction: the plate (or ``None``) and a status message."""

    plate: Optional[str]
    message: str

    @property
    def found(self) -> bool:
        return self.plate is not None


def tokenize(text: str) -> List[Token]:
    """
    Split OCR text into upper-cased tokens, preserving document order.
    """
    if not text:
        return []
    return [
        Token(original=word, normalized=word.upper())
        for word in _WHITESPACE.split(text)
        if word
    ]


def derive_candidate(token: Token) -> Optional[str]:
    """
    Build a 7-character candidate from a token.

    Everything outside ``[A-Z0-9]`` is dropped. Exactly seven remaining
    characters are used as-is, longer runs contribute their last seven
    characters and shorter runs yield ``None``.
    """
    cleaned = _NON_ALPHANUMERIC.sub("", token.normalized)
    if len(cleaned) < CANDIDATE_LENGTH:
        return None
    return cleaned[-CANDIDATE_LENGTH:]


def matches_pattern(candidate: str) -> bool:
    """Return ``True`` if ``candidate`` follows the ``LLLNLNN`` layout exactly."""
    if len(candidate) != len(PLATE_PATTERN):
        return False
    return all(expected.accepts(char) for expected, char in zip(PLATE_PATTERN, candidate))


def correct_candidate(candidate: str) -> str:
    """
    Swap visually similar characters to the class each position expects.

    A single pass over the candidate: a digit in a letter position (or a
    letter in a digit position) is replaced only when the correction tables
    know it. Anything else is left untouched.
    """
    corrected: List[str] = []
    for expected, char in zip(PLATE_PATTERN, candidate):
        if expected.accepts(char):
            corrected.append(char)
        else:
            corrected.append(_CORRECTIONS[expected].get(char, char))
    # Anything beyond the pattern length is kept as-is.
    corrected.extend(candidate[len(PLATE_PATTERN):])
    return "".join(corrected)


def iter_candidates(text: str) -> Iterator[Tuple[Token, str]]:
    """Yield ``(token, candidate)`` pairs lazily in document order."""
    for token in tokenize(text):
        candidate = derive_candidate(token)
        if candidate is not None:
            yield token, candidate


def _resolve(token: Token, candidate: str) -> Optional[str]:
    if matches_pattern(candidate):
        logger.info("Plate found directly: %s (OCR word: %r)", candidate, token.original)
        return candidate

    corrected = correct_candidate(candidate)
    if corrected != candidate:
        logger.debug(
            "OCR word: %r, candidate: %r, corrected attempt: %r",
            token.original,
            candidate,
            corrected,
        )

    if matches_pattern(corrected):
        logger.info("Plate found after correction: %s (OCR word: %r)", corrected, token.original)
        return corrected
    return None


def extract_plate(text: str) -> ExtractionResult:
    """
    Extract the first Mercosul plate found in an OCR transcription.

    Parameters
    ----------
    text:
        Full transcription returned by the text-detection service. May be
        empty or contain arbitrary noise.

    Returns
    -------
    An :class:`ExtractionResult` whose ``plate`` is ``None`` when no token
    yields a valid plate, directly or after correction.
    """
    resolved = (_resolve(token, candidate) for token, candidate in iter_candidates(text))
    plate = next((match for match in resolved if match is not None), None)

    if plate is None:
        logger.warning("No valid Mercosul plate (LLLNLNN) found after correction attempts.")
        return ExtractionResult(plate=None, message=PLATE_NOT_FOUND_MESSAGE)
    return ExtractionResult(plate=plate, message=PLATE_FOUND_MESSAGE)
