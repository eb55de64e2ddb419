"""
Runtime settings read from environment variables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

_TRUTHY = {"1", "true", "yes", "on"}


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


def _languages(raw: str) -> Tuple[str, ...]:
    languages = tuple(part.strip() for part in raw.split(",") if part.strip())
    return languages or ("en",)


@dataclass(frozen=True)
class Settings:
    upload_dir: Path = Path("uploads")
    ocr_languages: Tuple[str, ...] = ("en",)
    ocr_gpu: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        raw_port = os.getenv("PORT", "8000")
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ValueError(f"PORT must be an integer, got {raw_port!r}.") from exc

        return cls(
            upload_dir=Path(os.getenv("UPLOAD_DIR", "uploads")),
            ocr_languages=_languages(os.getenv("OCR_LANGUAGES", "en")),
            ocr_gpu=_flag("OCR_GPU"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Set up root logging for the service process."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
