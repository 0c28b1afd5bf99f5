from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from manual_test_wizard.extractor import load_scenarios
from manual_test_wizard.models import OptionTag
from manual_test_wizard.scanner import FeatureLoadError, iter_feature_files, scan_features

MINIMAL = "Feature: {name}\n\n  Scenario: one\n    Given a step\n"


def test_walk_visits_directories_in_place(tmp_path: Path, write_feature: Callable[[str, str], Path]) -> None:
    write_feature("c.feature", MINIMAL.format(name="C"))
    write_feature("a.feature", MINIMAL.format(name="A"))
    write_feature("b/z.feature", MINIMAL.format(name="BZ"))
    write_feature("b/nested/x.feature", MINIMAL.format(name="BX"))
    write_feature("b/notes.txt", "not a feature")
    write_feature("d.feature.bak", MINIMAL.format(name="D"))

    root = tmp_path / "requirements"
    names = [path.relative_to(root).as_posix() for path in iter_feature_files(root)]

    assert names == ["a.feature", "b/nested/x.feature", "b/z.feature", "c.feature"]


def test_scan_returns_parsed_documents(corpus: Path) -> None:
    documents = list(scan_features(corpus))

    assert [document["feature"]["name"] for _, document in documents] == ["Login", "Reports"]


def test_missing_directory_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(FeatureLoadError) as excinfo:
        list(scan_features(tmp_path / "absent"))

    assert excinfo.value.path == tmp_path / "absent"


def test_one_malformed_file_aborts_the_load(
    tmp_path: Path,
    corpus: Path,
    write_feature: Callable[[str, str], Path],
) -> None:
    broken = write_feature("zz-broken.feature", "this is not gherkin\nFeature: Broken\n")

    with pytest.raises(FeatureLoadError) as excinfo:
        load_scenarios(corpus, OptionTag.PV)

    assert excinfo.value.path == broken
    assert "invalid Gherkin" in str(excinfo.value)


def test_file_without_feature_is_rejected(tmp_path: Path, write_feature: Callable[[str, str], Path]) -> None:
    write_feature("empty.feature", "# only a comment\n")

    with pytest.raises(FeatureLoadError, match="no feature found"):
        list(scan_features(tmp_path / "requirements"))
