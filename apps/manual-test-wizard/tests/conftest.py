"""Test bootstrap and shared fixtures for the manual test wizard."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

import pytest
import structlog

APP_ROOT = Path(__file__).resolve().parents[1]
if str(APP_ROOT) not in sys.path:
    sys.path.insert(0, str(APP_ROOT))

LOGIN_FEATURE = """\
@web @authentication
Feature: Login

  @manual @PV
  Scenario: Login with valid credentials
    Given I open the login page
    When I enter valid credentials
    Then I see the dashboard

  @manual @IV
  Scenario: Login audit trail
    Given an administrator account
    Then the login is written to the audit log

  @PV
  Scenario: Automated login smoke
    Given the login API is reachable

  @manual @PV
  Scenario Outline: Login as <user>
    Given I open the login page
    When I log in as <user>
    Then I see <page>

    Examples:
      | user  | page      |
      | admin | dashboard |
      | guest | welcome   |
"""

REPORTS_FEATURE = """\
@reports
Feature: Reports

  @manual @pPV @PV
  Scenario: Export monthly report
    Given a month with bookings
    When I export the report
    Then a PDF is downloaded
"""


@pytest.fixture
def write_feature(tmp_path: Path) -> Callable[[str, str], Path]:
    root = tmp_path / "requirements"

    def _write(relative: str, text: str) -> Path:
        target = root / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        return target

    return _write


@pytest.fixture
def corpus(tmp_path: Path, write_feature: Callable[[str, str], Path]) -> Path:
    """Two feature files: three @manual @PV scenarios in total."""

    write_feature("auth/login.feature", LOGIN_FEATURE)
    write_feature("reports.feature", REPORTS_FEATURE)
    write_feature("README.md", "# not a feature\n")
    return tmp_path / "requirements"


@pytest.fixture
def multipart() -> Callable[..., tuple[bytes, str]]:
    """Build a multipart/form-data body; returns ``(body, content_type)``."""

    def _build(
        fields: dict[str, str],
        files: list[tuple[str, str, bytes]] | None = None,
    ) -> tuple[bytes, str]:
        boundary = "----wizard-test-boundary"
        parts: list[bytes] = []
        for name, value in fields.items():
            parts.append(
                f'--{boundary}\r\nContent-Disposition: form-data; name="{name}"\r\n\r\n{value}\r\n'.encode("utf-8")
            )
        for field_name, filename, content in files or []:
            header = (
                f"--{boundary}\r\n"
                f'Content-Disposition: form-data; name="{field_name}"; filename="{filename}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            )
            parts.append(header.encode("utf-8") + content + b"\r\n")
        parts.append(f"--{boundary}--\r\n".encode("utf-8"))
        return b"".join(parts), f"multipart/form-data; boundary={boundary}"

    return _build


@pytest.fixture
def reset_logging():
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()
