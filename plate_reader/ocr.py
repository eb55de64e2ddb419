"""
Text detection for uploaded vehicle images.

The module wraps EasyOCR and turns its fragment-level output into a single
transcription, which is what the plate extractor consumes.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List, Sequence, Tuple

import cv2
import easyocr
import numpy as np

logger = logging.getLogger(__name__)

# Fragments whose top edges are closer than this share of the mean height sit on one row.
ROW_TOLERANCE = 0.6


@lru_cache(maxsize=4)
def _build_reader(languages: Tuple[str, ...], gpu: bool) -> easyocr.Reader:
    """
    Create and cache an EasyOCR reader instance.
    """
    logger.info("Loading EasyOCR reader (languages=%s, gpu=%s)", ",".join(languages), gpu)
    return easyocr.Reader(list(languages), gpu=gpu)


def _top(bbox) -> float:
    return min(point[1] for point in bbox)


def _left(bbox) -> float:
    return min(point[0] for point in bbox)


def _height(bbox) -> float:
    ys = [point[1] for point in bbox]
    return max(ys) - min(ys)


def order_fragments(fragments: Sequence[Tuple[object, str, float]]) -> List[List[str]]:
    """
    Group EasyOCR fragments into rows in reading order.

    Rows run top-to-bottom and fragments within a row left-to-right.
    """
    if not fragments:
        return []

    mean_height = sum(_height(bbox) for bbox, _text, _conf in fragments) / len(fragments)
    tolerance = max(mean_height, 1.0) * ROW_TOLERANCE

    rows: List[List[str]] = []
    remaining = sorted(fragments, key=lambda f: _top(f[0]))
    while remaining:
        row_top = _top(remaining[0][0])
        row = [f for f in remaining if abs(_top(f[0]) - row_top) < tolerance]
        remaining = [f for f in remaining if abs(_top(f[0]) - row_top) >= tolerance]
        row.sort(key=lambda f: _left(f[0]))
        rows.append([text for _bbox, text, _conf in row])
    return rows


class TextReader:
    """
    Full-image text detection using EasyOCR.

    The reader is cached across instances to avoid the heavy initialization
    cost EasyOCR incurs on first use.
    """

    def __init__(self, languages: Sequence[str] | None = None, gpu: bool = False) -> None:
        self.languages = tuple(languages or ("en",))
        self.gpu = gpu
        self._reader = _build_reader(self.languages, gpu)

    def read_text(self, image: np.ndarray) -> str:
        """
        Run OCR on a vehicle image and return the whole transcription.

        Parameters
        ----------
        image:
            Image in BGR color order.

        Returns
        -------
        Detected text with fragments of a row separated by spaces and rows by
        newlines. Empty string when nothing was detected.
        """
        if image is None or image.size == 0:
            raise ValueError("Input image is empty.")

        grayscale = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        fragments = self._reader.readtext(grayscale, detail=1)
        rows = order_fragments(fragments)
        return "\n".join(" ".join(row) for row in rows)
