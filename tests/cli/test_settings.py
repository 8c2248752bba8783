from __future__ import annotations

import pytest

from mathharvest.config import HarvestSettings


def test_defaults_without_environment() -> None:
    settings = HarvestSettings.from_env({})

    assert settings.suffixes == (".xhtml", ".html", ".xml")
    assert settings.uri_base == ""
    assert settings.max_concurrency is None
    assert settings.output_name == "index.harvest"


def test_reads_all_variables() -> None:
    settings = HarvestSettings.from_env(
        {
            "MATHHARVEST_SUFFIXES": ".xhtml, .tei ",
            "MATHHARVEST_URI_BASE": " https://example.org/docs ",
            "MATHHARVEST_MAX_CONCURRENCY": "8",
            "MATHHARVEST_OUTPUT_NAME": "dir.harvest",
        }
    )

    assert settings.suffixes == (".xhtml", ".tei")
    assert settings.uri_base == "https://example.org/docs"
    assert settings.max_concurrency == 8
    assert settings.output_name == "dir.harvest"


@pytest.mark.parametrize("value", ["zero", "0", "-3"])
def test_rejects_invalid_concurrency(value: str) -> None:
    with pytest.raises(ValueError, match="MATHHARVEST_MAX_CONCURRENCY"):
        HarvestSettings.from_env({"MATHHARVEST_MAX_CONCURRENCY": value})


def test_rejects_output_name_with_directories() -> None:
    with pytest.raises(ValueError, match="MATHHARVEST_OUTPUT_NAME"):
        HarvestSettings.from_env({"MATHHARVEST_OUTPUT_NAME": "a/b.harvest"})
