"""Runtime settings of a wizard run."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from .models import OptionTag
from .persistence import ENVIRONMENT_PATTERN
from .shutdown import DEFAULT_GRACE_DELAY
from .submission import DEFAULT_ATTACHMENT_TYPES, MAX_BODY_BYTES
from .views import STATIC_DIR

DEFAULT_FEATURES_DIR = Path("requirements")
DEFAULT_OUTPUT_DIR = Path("output")
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8080


class WizardSettings(BaseModel):
    """Everything the server needs, resolved once at startup."""

    option_tag: OptionTag
    features_dir: Path = DEFAULT_FEATURES_DIR
    environment: str = Field(default="", pattern=rf"^{ENVIRONMENT_PATTERN.pattern}$")
    output_dir: Path = DEFAULT_OUTPUT_DIR
    static_dir: Path = STATIC_DIR
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=0, le=65535)
    grace_delay: float = Field(default=DEFAULT_GRACE_DELAY, ge=0)
    max_body_bytes: int = Field(default=MAX_BODY_BYTES, gt=0)
    attachment_types: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ATTACHMENT_TYPES))


def load_attachment_types(path: Path) -> dict[str, str]:
    """Read a YAML mapping of file suffix to MIME type, e.g. ``.log: text/plain``."""

    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"Attachment types file {path} must contain a mapping")
    types: dict[str, str] = {}
    for suffix, mime_type in payload.items():
        suffix = str(suffix).strip().lower()
        if not suffix or not mime_type:
            raise ValueError(f"Attachment types file {path} has an empty suffix or MIME type")
        types[suffix if suffix.startswith(".") else f".{suffix}"] = str(mime_type).strip()
    return types
