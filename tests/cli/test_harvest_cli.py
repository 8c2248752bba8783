from __future__ import annotations

import json
from pathlib import Path

from lxml import etree
import pytest

from mathharvest.cli.harvest_tree import main as harvest_cli_main

_MWS = "http://search.mathweb.org/ns"


def _document(formula_id: str) -> bytes:
    return (
        f'<html><body><p>Sum <math xmlns="http://www.w3.org/1998/Math/MathML" id="{formula_id}"><mi>s</mi>'
        '<semantics><annotation-xml encoding="MathML-Content"><ci>s</ci></annotation-xml></semantics>'
        "</math></p></body></html>"
    ).encode("utf-8")


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "MATHHARVEST_SUFFIXES",
        "MATHHARVEST_URI_BASE",
        "MATHHARVEST_MAX_CONCURRENCY",
        "MATHHARVEST_OUTPUT_NAME",
    ):
        monkeypatch.delenv(name, raising=False)


def test_cli_harvests_directory_tree(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "corpus"
    (source / "ch1").mkdir(parents=True)
    (source / "ch1" / "b.xhtml").write_bytes(_document("b1"))
    (source / "ch1" / "a.xhtml").write_bytes(_document("a1"))
    (source / "empty").mkdir()
    output = tmp_path / "out"

    exit_code = harvest_cli_main(
        ["--path", str(source), "--output-dir", str(output), "--uri-base", "https://example.org/corpus"]
    )
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["directories_emitted"] == ["ch1"]
    assert payload["fragments"] == 2
    assert not (output / "index.harvest").exists()
    root = etree.fromstring((output / "ch1" / "index.harvest").read_bytes())
    uris = [node.findtext("id") for node in root.findall(f"{{{_MWS}}}data")]
    assert uris == ["https://example.org/corpus/ch1/a.xhtml", "https://example.org/corpus/ch1/b.xhtml"]


def test_cli_single_file_writes_to_stdout(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    source = tmp_path / "paper.xhtml"
    source.write_bytes(_document("f1"))

    exit_code = harvest_cli_main(["--path", str(source), "--uri-base", "https://example.org"])
    captured = capsys.readouterr()

    assert exit_code == 0
    root = etree.fromstring(captured.out.encode("utf-8"))
    data = root.find(f"{{{_MWS}}}data")
    assert data is not None
    assert data.findtext("id") == "https://example.org/paper.xhtml"
    assert data.get(f"{{{_MWS}}}data_id") == "1"


def test_cli_single_file_to_output_dir(tmp_path: Path) -> None:
    source = tmp_path / "paper.xhtml"
    source.write_bytes(_document("f1"))

    exit_code = harvest_cli_main(["--path", str(source), "--output-dir", str(tmp_path / "out")])

    assert exit_code == 0
    root = etree.fromstring((tmp_path / "out" / "paper.harvest").read_bytes())
    assert root.find(f"{{{_MWS}}}expr").get("url") == "f1"


def test_cli_reports_unparseable_single_file(tmp_path: Path) -> None:
    source = tmp_path / "broken.xhtml"
    source.write_bytes(b"<html><body>")

    assert harvest_cli_main(["--path", str(source), "--output-dir", str(tmp_path / "out")]) == 1


def test_cli_failed_single_file_keeps_previous_harvest(tmp_path: Path) -> None:
    source = tmp_path / "paper.xhtml"
    source.write_bytes(_document("f1"))
    output = tmp_path / "out"
    assert harvest_cli_main(["--path", str(source), "--output-dir", str(output)]) == 0
    previous = (output / "paper.harvest").read_bytes()

    source.write_bytes(_document("f1")[:40])
    exit_code = harvest_cli_main(["--path", str(source), "--output-dir", str(output)])

    assert exit_code == 1
    assert (output / "paper.harvest").read_bytes() == previous
    assert [path.name for path in output.iterdir()] == ["paper.harvest"]


def test_cli_failed_single_file_writes_nothing_to_stdout(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    source = tmp_path / "broken.xhtml"
    source.write_bytes(b"<html><body>")

    exit_code = harvest_cli_main(["--path", str(source)])

    assert exit_code == 1
    assert capsys.readouterr().out == ""


def test_cli_requires_output_dir_for_trees(tmp_path: Path) -> None:
    assert harvest_cli_main(["--path", str(tmp_path)]) == 2


def test_cli_rejects_missing_source(tmp_path: Path) -> None:
    assert harvest_cli_main(["--path", str(tmp_path / "missing")]) == 2


def test_cli_rejects_invalid_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MATHHARVEST_MAX_CONCURRENCY", "many")

    assert harvest_cli_main(["--path", str(tmp_path), "--output-dir", str(tmp_path / "out")]) == 2
