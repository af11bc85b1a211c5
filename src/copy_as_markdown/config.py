from __future__ import annotations

import json
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .models import BatchExportOptions, IndexFormat, NamingPattern, NamingPreferences, OrganizeBy

CONFIG_FILE = Path("config.toml")


@dataclass(slots=True)
class RuntimeConfig:
    output_dir: Path = Path("runs")
    history_file: str = "history.jsonl"
    summary_csv: str = "summary.csv"
    max_html_size_mb: int = 10
    enable_local_api: bool = False
    profiles_file: Path | None = None

    @property
    def history_path(self) -> Path:
        return self.output_dir / self.history_file

    @property
    def summary_path(self) -> Path:
        return self.output_dir / self.summary_csv


@dataclass(slots=True)
class NamingConfig:
    pattern: NamingPattern = NamingPattern.TAB_TITLE
    custom_template: str | None = None

    def preferences(self) -> NamingPreferences:
        return NamingPreferences(pattern=self.pattern, custom_template=self.custom_template)


@dataclass(slots=True)
class ExportConfig:
    organize_by: OrganizeBy = OrganizeBy.DOMAIN
    include_index: bool = True
    index_format: IndexFormat = IndexFormat.MARKDOWN
    compression_level: int = 6

    def options(self) -> BatchExportOptions:
        return BatchExportOptions(
            organize_by=self.organize_by,
            include_index=self.include_index,
            index_format=self.index_format,
            compression_level=self.compression_level,
        )


@dataclass(slots=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass(slots=True)
class AppConfig:
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    naming: NamingConfig = field(default_factory=NamingConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    api: APIConfig = field(default_factory=APIConfig)


def _read_toml(path: Path) -> Mapping[str, object]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _build_runtime(data: Mapping[str, object] | None) -> RuntimeConfig:
    if not data:
        return RuntimeConfig()
    profiles_file = data.get("profiles_file")
    return RuntimeConfig(
        output_dir=Path(str(data.get("output_dir", "runs"))),
        history_file=str(data.get("history_file", "history.jsonl")),
        summary_csv=str(data.get("summary_csv", "summary.csv")),
        max_html_size_mb=int(data.get("max_html_size_mb", 10)),
        enable_local_api=bool(data.get("enable_local_api", False)),
        profiles_file=Path(str(profiles_file)) if profiles_file else None,
    )


def _build_naming(data: Mapping[str, object] | None) -> NamingConfig:
    if not data:
        return NamingConfig()
    template = data.get("custom_template")
    return NamingConfig(
        pattern=NamingPattern(str(data.get("pattern", "tab_title"))),
        custom_template=str(template) if template else None,
    )


def _build_export(data: Mapping[str, object] | None) -> ExportConfig:
    if not data:
        return ExportConfig()
    return ExportConfig(
        organize_by=OrganizeBy(str(data.get("organize_by", "domain"))),
        include_index=bool(data.get("include_index", True)),
        index_format=IndexFormat(str(data.get("index_format", "markdown"))),
        compression_level=int(data.get("compression_level", 6)),
    )


def _build_api(data: Mapping[str, object] | None) -> APIConfig:
    if not data:
        return APIConfig()
    return APIConfig(host=str(data.get("host", "127.0.0.1")), port=int(data.get("port", 8000)))


def _mapping(raw: Mapping[str, object], key: str) -> Mapping[str, object] | None:
    value = raw.get(key)
    return value if isinstance(value, Mapping) else None


def load_config(path: Path | None = None) -> AppConfig:
    path = path or CONFIG_FILE
    raw = _read_toml(path)
    return AppConfig(
        runtime=_build_runtime(_mapping(raw, "runtime")),
        naming=_build_naming(_mapping(raw, "naming")),
        export=_build_export(_mapping(raw, "export")),
        api=_build_api(_mapping(raw, "api")),
    )


def dump_config(config: AppConfig) -> str:
    payload = {
        "runtime": {
            "output_dir": str(config.runtime.output_dir),
            "history_file": config.runtime.history_file,
            "summary_csv": config.runtime.summary_csv,
            "max_html_size_mb": config.runtime.max_html_size_mb,
            "enable_local_api": config.runtime.enable_local_api,
            "profiles_file": str(config.runtime.profiles_file) if config.runtime.profiles_file else None,
        },
        "naming": {
            "pattern": config.naming.pattern.value,
            "custom_template": config.naming.custom_template,
        },
        "export": {
            "organize_by": config.export.organize_by.value,
            "include_index": config.export.include_index,
            "index_format": config.export.index_format.value,
            "compression_level": config.export.compression_level,
        },
        "api": {
            "host": config.api.host,
            "port": config.api.port,
        },
    }
    return json.dumps(payload, indent=2)


__all__ = [
    "APIConfig",
    "AppConfig",
    "ExportConfig",
    "NamingConfig",
    "RuntimeConfig",
    "dump_config",
    "load_config",
]
