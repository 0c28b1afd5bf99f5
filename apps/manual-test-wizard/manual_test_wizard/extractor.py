"""Selection of manual scenarios and transcript rendering."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import structlog

from .models import MANUAL_TAG, OptionTag, ScenarioRecord
from .scanner import scan_features

LOGGER = structlog.get_logger("manual_test_wizard")


def feature_tag_of(feature: dict[str, Any]) -> str:
    """Return the feature's classification tag: the last tag it carries, if any."""

    tags = feature.get("tags") or []
    if not tags:
        return ""
    return tags[-1]["name"]


def is_selected(scenario: dict[str, Any], option_tag: OptionTag) -> bool:
    """A scenario is walked through only if it is manual and carries the option tag."""

    names = {tag["name"] for tag in scenario.get("tags") or []}
    return MANUAL_TAG in names and option_tag.value in names


def iter_scenarios(feature: dict[str, Any]) -> Iterator[dict[str, Any]]:
    """Yield scenario nodes in document order, including those nested in rules."""

    for child in feature.get("children") or []:
        if "scenario" in child:
            yield child["scenario"]
        elif "rule" in child:
            yield from iter_scenarios(child["rule"])


def _table_row(cells: list[dict[str, Any]]) -> str:
    return "  |" + "".join(f" {cell['value']} |" for cell in cells) + "\n"


def render_transcript(scenario: dict[str, Any]) -> str:
    """Render a scenario the way the operator reads it, example tables included.

    Step keywords come from the parser with a trailing space; it is stripped so
    step lines read ``  Given text`` with a single space. Table rows keep cell
    values and order exactly as written.
    """

    lines = [f"{scenario.get('keyword', 'Scenario')}: {scenario.get('name', '')}\n"]
    for step in scenario.get("steps") or []:
        lines.append(f"  {step['keyword'].strip()} {step['text']}\n")

    examples = scenario.get("examples") or []
    if examples:
        lines.append("\nExamples:\n")
        for example in examples:
            header = example.get("tableHeader")
            if header:
                lines.append(_table_row(header["cells"]))
            for row in example.get("tableBody") or []:
                lines.append(_table_row(row["cells"]))
    return "".join(lines)


def extract_scenarios(
    document: dict[str, Any],
    option_tag: OptionTag,
    source: str | None = None,
) -> list[ScenarioRecord]:
    """Build one ScenarioRecord per selected scenario of a parsed feature document."""

    feature = document.get("feature") or {}
    feature_name = feature.get("name", "")
    feature_tag = feature_tag_of(feature)

    records: list[ScenarioRecord] = []
    for scenario in iter_scenarios(feature):
        if not is_selected(scenario, option_tag):
            continue
        records.append(
            ScenarioRecord(
                name=scenario.get("name", ""),
                feature_name=feature_name,
                feature_tag=feature_tag,
                option_tag=option_tag.value,
                keyword=scenario.get("keyword", "Scenario"),
                steps=tuple(step["keyword"] + step["text"] for step in scenario.get("steps") or []),
                rendered_text=render_transcript(scenario),
                source=source,
            )
        )
    return records


def load_scenarios(features_dir: Path, option_tag: OptionTag) -> tuple[ScenarioRecord, ...]:
    """Scan the corpus and return the ordered walkthrough for ``option_tag``."""

    records: list[ScenarioRecord] = []
    files = 0
    for path, document in scan_features(features_dir):
        files += 1
        records.extend(extract_scenarios(document, option_tag, source=str(path)))
    LOGGER.info(
        "scenarios_loaded",
        features_dir=str(features_dir),
        feature_files=files,
        scenarios=len(records),
        option_tag=option_tag.value,
    )
    return tuple(records)
