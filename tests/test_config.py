import json
from pathlib import Path

from copy_as_markdown.config import AppConfig, dump_config, load_config
from copy_as_markdown.models import IndexFormat, NamingPattern, OrganizeBy


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent.toml")
    assert config == AppConfig()
    assert config.runtime.max_html_size_mb == 10
    assert config.runtime.history_path == Path("runs") / "history.jsonl"


def test_load_config_reads_sections(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(
        "\n".join(
            [
                "[runtime]",
                'output_dir = "out"',
                "max_html_size_mb = 2",
                'profiles_file = "profiles.json"',
                "",
                "[naming]",
                'pattern = "custom_prefix"',
                'custom_template = "{date}_{title}"',
                "",
                "[export]",
                'organize_by = "flat"',
                'index_format = "html"',
                "compression_level = 9",
                "",
                "[api]",
                "port = 9000",
            ]
        ),
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.runtime.output_dir == Path("out")
    assert config.runtime.profiles_file == Path("profiles.json")
    assert config.runtime.summary_path == Path("out") / "summary.csv"
    preferences = config.naming.preferences()
    assert preferences.pattern is NamingPattern.CUSTOM_PREFIX
    assert preferences.custom_template == "{date}_{title}"
    options = config.export.options()
    assert options.organize_by is OrganizeBy.FLAT
    assert options.index_format is IndexFormat.HTML
    assert options.compression_level == 9
    assert config.api.port == 9000
    assert config.api.host == "127.0.0.1"


def test_dump_config_is_json() -> None:
    payload = json.loads(dump_config(AppConfig()))
    assert payload["runtime"]["output_dir"] == "runs"
    assert payload["runtime"]["profiles_file"] is None
    assert payload["naming"]["pattern"] == "tab_title"
    assert payload["export"]["organize_by"] == "domain"
