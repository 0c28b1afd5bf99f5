"""Writing and locating manual test result files."""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path

import structlog

from .models import OptionTag, ResultRecord

LOGGER = structlog.get_logger("manual_test_wizard")

FILENAME_PREFIX = "manual-test-"
FILENAME_SUFFIX = "-result.json"
FILENAME_PATTERN = re.compile(r"manual-test-[A-Za-z0-9_-]*-[a-z]+-\d+-result\.json")
ENVIRONMENT_PATTERN = re.compile(r"[A-Za-z0-9_-]*")


class ResultPersistenceError(RuntimeError):
    """Raised when a result file cannot be written."""


class InvalidResultFilename(ValueError):
    """Raised when a requested filename does not follow the result naming convention."""


class ResultStore:
    """Persists ResultRecords as one indented JSON file each."""

    def __init__(self, output_dir: Path, environment: str, option_tag: OptionTag) -> None:
        if not ENVIRONMENT_PATTERN.fullmatch(environment):
            raise ValueError(f"Environment label {environment!r} may only contain letters, digits, '-' and '_'")
        self.output_dir = output_dir
        self.environment = environment
        self.option_tag = option_tag
        self._logger = LOGGER.bind(environment=environment, option_tag=option_tag.value)

    def filename_for(self, stop: int) -> str:
        return f"{FILENAME_PREFIX}{self.environment}-{self.option_tag.slug}-{stop}{FILENAME_SUFFIX}"

    def save(self, record: ResultRecord) -> Path:
        """Write ``record`` atomically and return the final path."""

        destination = self.output_dir / self.filename_for(record.stop)
        payload = json.dumps(record.as_serializable(), indent=2, ensure_ascii=False)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.output_dir, prefix=".tmp-", suffix=".json")
        except OSError as exc:
            raise ResultPersistenceError(f"Cannot prepare output directory {self.output_dir}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fp:
                fp.write(payload)
                fp.flush()
                os.fsync(fp.fileno())
            os.replace(tmp_name, destination)
        except OSError as exc:
            Path(tmp_name).unlink(missing_ok=True)
            raise ResultPersistenceError(f"Cannot write result file {destination}: {exc}") from exc

        self._logger.info(
            "result_saved",
            path=str(destination),
            status=record.status.value,
            attachments=len(record.attachments),
        )
        return destination

    def resolve(self, filename: str) -> Path:
        """Return the path of a previously written result, validating the name first."""

        if not filename or not FILENAME_PATTERN.fullmatch(filename):
            raise InvalidResultFilename(f"Invalid filename: {filename!r}")
        return self.output_dir / filename
