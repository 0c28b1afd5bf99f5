"""Jinja2 rendering of the wizard pages."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .models import OptionTag, ResultStatus
from .session import WalkthroughSession

TEMPLATE_DIR = Path(__file__).parent / "templates"
STATIC_DIR = Path(__file__).parent / "static"

# delay before the transitional page navigates back to the wizard
RETURN_DELAY_MS = 2000


class WizardViews:
    """Renders the current-scenario page and the post-submission page."""

    def __init__(self, option_tag: OptionTag, template_dir: Path | None = None) -> None:
        self.option_tag = option_tag
        self.env = Environment(
            loader=FileSystemLoader(str(template_dir or TEMPLATE_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )

    def render_current(self, session: WalkthroughSession) -> tuple[str, bool]:
        """Return the page for the session's current scenario and whether the walkthrough is complete."""

        scenario = session.current()
        template = self.env.get_template("index.html")
        html = template.render(
            title=self.option_tag.page_title,
            option_tag=self.option_tag.value,
            scenario=scenario,
            completed=scenario is None,
            position=min(session.position + 1, session.total),
            total=session.total,
            statuses=[status.value for status in ResultStatus],
        )
        return html, scenario is None

    def render_processing(self, filename: str) -> str:
        template = self.env.get_template("processing.html")
        return template.render(
            title=self.option_tag.page_title,
            download_url=download_url(filename),
            return_delay_ms=RETURN_DELAY_MS,
        )


def download_url(filename: str) -> str:
    return f"/download?filename={quote(filename, safe='')}"
