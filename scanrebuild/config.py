import json
import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

import pytesseract

logger = logging.getLogger(__name__)

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
SETTINGS_PATH = os.path.join(PROJECT_ROOT, "config", "settings.json")

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# camelCase names accepted in settings.json next to the field names
_ALIASES = {
    "lineMergeVariance": "line_merge_variance",
    "minTextHeight": "min_text_height",
    "processedContainer": "output_container",
    "sourceContainer": "source_container",
}

_ENV_OVERRIDES = {
    "SCANREBUILD_LINE_MERGE_VARIANCE": ("line_merge_variance", float),
    "PROCESSED_CONTAINER": ("output_container", str),
}


@dataclass
class Settings:
    line_merge_variance: float = 0.02
    min_text_height: float = 0.1
    font_family: str = "Helvetica"
    font_path: Optional[str] = None
    output_container: str = "parsed-text"
    source_container: str = "scanned-images"
    ocr_lang: str = "eng"
    ocr_conf_threshold: int = 30
    ocr_mode: str = "auto"
    default_dpi: int = 300
    max_workers: int = 4
    tesseract_path: Optional[str] = None
    poppler_path: Optional[str] = None

    def validate(self) -> "Settings":
        if self.line_merge_variance <= 0:
            raise ValueError(f"line_merge_variance must be positive, got {self.line_merge_variance}")
        if self.min_text_height <= 0:
            raise ValueError(f"min_text_height must be positive, got {self.min_text_height}")
        if self.ocr_mode not in ("auto", "raw"):
            raise ValueError(f"ocr_mode must be 'auto' or 'raw', got {self.ocr_mode!r}")
        return self


def configure_logging(level: int = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)


def settings_from_dict(raw: Dict[str, Any]) -> Settings:
    known = {f.name for f in fields(Settings)}
    values: Dict[str, Any] = {}
    for key, value in (raw or {}).items():
        name = _ALIASES.get(key, key)
        if name not in known:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        values[name] = value
    return Settings(**values)


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from config/settings.json, then apply environment overrides."""
    path = path or SETTINGS_PATH
    raw: Dict[str, Any] = {}
    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f) or {}
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid settings file {path}: {exc}") from exc
    else:
        logger.warning("settings.json not found at %s, using defaults", path)

    settings = settings_from_dict(raw)
    for env_name, (attr, cast) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            try:
                setattr(settings, attr, cast(value))
            except ValueError as exc:
                raise ValueError(f"Invalid value for {env_name}: {value!r}") from exc
    return settings.validate()


def _resolve_path(base: str, relative: str) -> str:
    return os.path.abspath(os.path.join(base, relative))


def configure_dependencies(settings: Settings) -> Optional[str]:
    """Point pytesseract at the configured Tesseract binary; return the Poppler dir if valid.

    Relative paths are resolved against the project root.
    """
    if settings.tesseract_path:
        tess_abs = _resolve_path(PROJECT_ROOT, settings.tesseract_path)
        if os.path.exists(tess_abs):
            pytesseract.pytesseract.tesseract_cmd = tess_abs
        else:
            logger.warning("Tesseract path from config does not exist: %s", tess_abs)

    poppler_abs: Optional[str] = None
    if settings.poppler_path:
        candidate = _resolve_path(PROJECT_ROOT, settings.poppler_path)
        if os.path.isdir(candidate):
            poppler_abs = candidate
        else:
            logger.warning("Poppler path from config does not exist or is not a directory: %s", candidate)
    return poppler_abs
