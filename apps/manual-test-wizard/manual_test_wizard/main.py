"""CLI entrypoint for the manual test wizard."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
import yaml

if __package__ in {None, ""}:
    sys.path.append(str(Path(__file__).resolve().parents[1]))
    __package__ = "manual_test_wizard"

from pydantic import ValidationError

from .config import (
    DEFAULT_FEATURES_DIR,
    DEFAULT_HOST,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PORT,
    WizardSettings,
    load_attachment_types,
)
from .extractor import load_scenarios
from .logging_utils import configure_logging
from .models import OptionTag
from .output_config import get_log_format
from .scanner import FeatureLoadError
from .server import WizardServer
from .session import WalkthroughSession
from .shutdown import DEFAULT_GRACE_DELAY
from .views import STATIC_DIR

app = typer.Typer(help="Walk an operator through @manual Gherkin scenarios and record Allure results.")

MISSING_MODE_MESSAGE = "Please specify one of --pv, --iv, --ppv, or --piv"


def _select_option_tag(pv: bool, iv: bool, ppv: bool, piv: bool) -> OptionTag | None:
    flags = ((pv, OptionTag.PV), (iv, OptionTag.IV), (ppv, OptionTag.PPV), (piv, OptionTag.PIV))
    selected = [tag for flag, tag in flags if flag]
    if len(selected) > 1:
        raise typer.BadParameter("Options --pv, --iv, --ppv and --piv are mutually exclusive")
    return selected[0] if selected else None


@app.command()
def serve(
    pv: bool = typer.Option(False, "--pv", help="Process @manual scenarios with @PV tag."),
    iv: bool = typer.Option(False, "--iv", help="Process @manual scenarios with @IV tag."),
    ppv: bool = typer.Option(False, "--ppv", help="Process @manual scenarios with @pPV tag."),
    piv: bool = typer.Option(False, "--piv", help="Process @manual scenarios with @pIV tag."),
    features_dir: Path = typer.Option(
        DEFAULT_FEATURES_DIR,
        help="Directory containing .feature files.",
    ),
    environment: str = typer.Option(
        "",
        help="Environment the tests are executed in (e.g. validation, production); used in result filenames.",
    ),
    output_dir: Path = typer.Option(DEFAULT_OUTPUT_DIR, help="Directory receiving result JSON files."),
    static_dir: Path = typer.Option(STATIC_DIR, help="Directory served under /static/."),
    host: str = typer.Option(DEFAULT_HOST, help="Bind host."),
    port: int = typer.Option(DEFAULT_PORT, help="Bind port."),
    grace_delay: float = typer.Option(
        DEFAULT_GRACE_DELAY,
        help="Seconds to keep serving after the completion page before shutting down.",
    ),
    attachment_types: Optional[Path] = typer.Option(
        None,
        exists=True,
        readable=True,
        help="Optional YAML mapping of file suffix to MIME type accepted as evidence (default: JPEG and PNG).",
    ),
    log_level: str = typer.Option("INFO", help="Log level."),
    log_format: Optional[str] = typer.Option(
        None,
        help="Log format: console, plain or json (defaults to CONSOLE_OUTPUT_FORMAT or console).",
    ),
) -> None:
    """Serve the manual test wizard until every selected scenario has a result."""

    logger = configure_logging(log_level, get_log_format(log_format))

    option_tag = _select_option_tag(pv, iv, ppv, piv)
    if option_tag is None:
        logger.critical("option_tag_missing")
        typer.secho(MISSING_MODE_MESSAGE, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    extra: dict[str, object] = {}
    if attachment_types is not None:
        try:
            extra["attachment_types"] = load_attachment_types(attachment_types)
        except (ValueError, yaml.YAMLError) as exc:
            raise typer.BadParameter(str(exc)) from exc

    try:
        settings = WizardSettings(
            option_tag=option_tag,
            features_dir=features_dir,
            environment=environment,
            output_dir=output_dir,
            static_dir=static_dir,
            host=host,
            port=port,
            grace_delay=grace_delay,
            **extra,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        scenarios = load_scenarios(settings.features_dir, settings.option_tag)
    except FeatureLoadError as exc:
        logger.critical("scenario_load_failed", path=str(exc.path), reason=exc.reason)
        typer.secho(f"Error loading scenarios: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    server = WizardServer(settings, WalkthroughSession(scenarios))
    try:
        server.bind()
    except OSError as exc:
        logger.critical("server_bind_failed", host=settings.host, port=settings.port, error=str(exc))
        raise typer.Exit(code=1) from exc
    server.serve_forever()
    typer.secho("Shutting down", fg=typer.colors.CYAN)


def run() -> None:
    """Console_scripts hook."""

    app()


if __name__ == "__main__":  # pragma: no cover
    run()
