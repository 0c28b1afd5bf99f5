"""Pydantic models for scenarios and persisted manual test results."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MANUAL_TAG = "@manual"


class OptionTag(str, Enum):
    """Execution context selecting which manual scenarios are walked through."""

    PV = "@PV"
    IV = "@IV"
    PPV = "@pPV"
    PIV = "@pIV"

    @property
    def label(self) -> str:
        return self.value.lstrip("@")

    @property
    def slug(self) -> str:
        """Lowercase form used in result filenames."""

        return self.label.lower()

    @property
    def page_title(self) -> str:
        return f"Test Scenarios ({self.label})"


class ResultStatus(str, Enum):
    """Verdicts accepted from the operator (Allure status values)."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    BROKEN = "broken"


class ScenarioRecord(BaseModel):
    """One manual scenario extracted from a feature file."""

    model_config = ConfigDict(frozen=True)

    name: str
    feature_name: str
    feature_tag: str = ""
    option_tag: str
    keyword: str = "Scenario"
    steps: tuple[str, ...] = ()
    rendered_text: str = ""
    source: str | None = None


class Attachment(BaseModel):
    """Base64 encoded evidence file attached to a result."""

    name: str
    content: str
    type: str


class Label(BaseModel):
    name: str
    value: str


class ResultRecord(BaseModel):
    """Outcome of one manual scenario, shaped like an Allure result file."""

    uuid: str
    name: str
    status: ResultStatus
    attachments: list[Attachment] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    start: int
    stop: int

    def as_serializable(self) -> dict[str, Any]:
        """Return a JSON friendly payload."""

        return self.model_dump(mode="json")
