from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, load_config
from ..core import ConversionError, ConversionService, summarize
from ..logging import HistoryLogger, append_summary_row
from ..matching import ProfileMatcher
from ..models import BatchItem, BatchMode, ConversionProfile, NamingPattern, NamingPreferences
from ..naming import FileNameContext, process_template, unique_file_name, validate_template
from ..page import build_page_context, extract_page_metadata
from ..profiles import ProfileCollection, load_collection
from ..utils import atomic_write, atomic_write_bytes, generate_run_id

console = Console()

app = typer.Typer(help="Convert saved web pages to Markdown using conversion profiles")

CONFIG_OPTION = typer.Option(None, "--config", help="Path to config.toml")
PROFILES_OPTION = typer.Option(None, "--profiles", help="Path to a profiles JSON file")
PROFILE_ID_OPTION = typer.Option(None, "--profile", help="Profile id; matched automatically when omitted")


def _load_config(path: Path | None) -> AppConfig:
    return load_config(path)


def _load_profiles(cfg: AppConfig, path: Path | None) -> ProfileCollection:
    try:
        return load_collection(path or cfg.runtime.profiles_file)
    except ConversionError as exc:
        console.print(f"[red]Invalid profiles[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc


def _service(cfg: AppConfig) -> ConversionService:
    return ConversionService(cfg, history=HistoryLogger(cfg.runtime.history_path))


def _naming(cfg: AppConfig, pattern: NamingPattern | None, template: str | None) -> NamingPreferences:
    preferences = cfg.naming.preferences()
    return NamingPreferences(
        pattern=pattern or preferences.pattern,
        custom_template=template or preferences.custom_template,
    )


def _choose_profile(
    service: ConversionService,
    profiles: ProfileCollection,
    profile_id: str | None,
    html: str,
    url: str,
    title: str,
) -> ConversionProfile:
    if profile_id:
        return service.resolve_profile(profiles, profile_id)
    return service.select_profile(profiles, build_page_context(html, url, title))


@app.command()
def convert(
    file: Path,
    url: str = typer.Option("", "--url", help="Original page URL"),
    title: str = typer.Option("", "--title", help="Page title; read from <title> when omitted"),
    profile_id: str | None = PROFILE_ID_OPTION,
    profiles_file: Path | None = PROFILES_OPTION,
    pattern: NamingPattern | None = typer.Option(None, "--naming", help="File naming pattern"),
    template: str | None = typer.Option(None, "--template", help="Custom file name template"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    stdout: bool = typer.Option(False, "--stdout", help="Print Markdown instead of writing a file"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    service = _service(cfg)
    profiles = _load_profiles(cfg, profiles_file)
    html = file.read_text(encoding="utf-8", errors="replace")
    metadata = extract_page_metadata(html, url=url, title=title)
    try:
        profile = _choose_profile(service, profiles, profile_id, html, metadata.url, metadata.title)
        document = service.convert(html, profile, metadata, naming=_naming(cfg, pattern, template))
    except ConversionError as exc:
        console.print(f"[red]Conversion failed[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc
    if stdout:
        typer.echo(document.content, nl=False)
        return
    target = (output or cfg.runtime.output_dir) / document.file_name
    atomic_write(target, document.content)
    console.print(f"[green]Success[/green]: {target} ({document.size_bytes} bytes, profile {profile.name})")
    for warning in document.warnings:
        console.print(f"[yellow]Warning[/yellow]: {warning}")


@app.command()
def batch(
    files: list[Path],
    urls: list[str] = typer.Option([], "--url", help="Page URL for each file, in order"),
    mode: BatchMode = typer.Option(BatchMode.SEPARATE, "--mode", help="separate, combined or zip"),
    profile_id: str | None = PROFILE_ID_OPTION,
    profiles_file: Path | None = PROFILES_OPTION,
    output: Path | None = typer.Option(None, "--output", "-o", help="Output directory"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    service = _service(cfg)
    profiles = _load_profiles(cfg, profiles_file)
    items: list[BatchItem] = []
    for position, path in enumerate(files):
        html = path.read_text(encoding="utf-8", errors="replace")
        url = urls[position] if position < len(urls) else ""
        items.append(BatchItem(id=path.name, html=html, metadata=extract_page_metadata(html, url=url)))
    try:
        profile = service.resolve_profile(profiles, profile_id)
        result = service.convert_batch(items, profile, mode=mode)
    except ConversionError as exc:
        console.print(f"[red]Batch failed[/red]: {exc.code} - {exc}")
        raise typer.Exit(1) from exc

    run_id = generate_run_id("batch")
    target_dir = output or cfg.runtime.output_dir / run_id
    written: dict[str, str] = {}
    taken: set[str] = set()
    if mode is BatchMode.SEPARATE:
        for item in result.results:
            if item.document is not None:
                name = unique_file_name(item.document.file_name, taken)
                atomic_write(target_dir / name, item.document.content)
                taken.add(name)
                written[item.id] = name
    elif mode is BatchMode.COMBINED and result.combined is not None:
        atomic_write(target_dir / result.combined.file_name, result.combined.content)
    elif mode is BatchMode.ZIP and result.archive is not None:
        atomic_write_bytes(target_dir / f"{run_id}.zip", result.archive.archive_bytes)

    table = Table(title="Batch summary")
    table.add_column("Item")
    table.add_column("Status")
    table.add_column("Output")
    table.add_column("Warnings")
    for item in result.results:
        if item.success and item.document is not None:
            table.add_row(
                item.id,
                "[green]ok[/green]",
                written.get(item.id, item.document.file_name),
                ", ".join(item.document.warnings) or "-",
            )
        else:
            table.add_row(item.id, "[red]failed[/red]", item.error_code or "-", item.error_message or "-")
    console.print(table)
    append_summary_row(cfg.runtime.summary_path, summarize(result), run_id)
    console.print(
        f"Processed {len(result.results)} pages: "
        f"{result.success_count} succeeded, {result.failure_count} failed. Output: {target_dir}"
    )


@app.command()
def match(
    file: Path,
    url: str = typer.Option(..., "--url", help="Page URL"),
    title: str = typer.Option("", "--title", help="Page title"),
    profiles_file: Path | None = PROFILES_OPTION,
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    profiles = _load_profiles(cfg, profiles_file)
    html = file.read_text(encoding="utf-8", errors="replace")
    context = build_page_context(html, url, title)
    matcher = ProfileMatcher()
    chosen = matcher.find_matching_profile(profiles.profiles, context)
    table = Table(title="Profile matches")
    table.add_column("Profile")
    table.add_column("Priority")
    table.add_column("Reasons")
    for profile in profiles:
        priority = str(profile.match_rules.priority) if profile.match_rules else "-"
        reasons = matcher.get_match_reasons(profile, context)
        marker = " *" if chosen is not None and profile.id == chosen.id else ""
        table.add_row(f"{profile.id}{marker}", priority, "; ".join(reasons) or "-")
        for warning in matcher.invalid_rules(profile):
            console.print(f"[yellow]Warning[/yellow]: {profile.id}: {warning}")
    console.print(table)
    if chosen is None:
        console.print("[red]No profile matched and no default is set[/red]")
        raise typer.Exit(1)
    console.print(f"Selected profile: [bold]{chosen.id}[/bold] ({chosen.name})")


@app.command("validate-template")
def validate_template_command(
    template: str,
    url: str = typer.Option("https://example.com/page", "--url", help="Sample URL for the preview"),
    title: str = typer.Option("Example Page", "--title", help="Sample title for the preview"),
) -> None:
    validation = validate_template(template)
    if not validation.valid:
        for error in validation.errors:
            console.print(f"[red]Invalid[/red]: {error}")
        raise typer.Exit(1)
    preview = process_template(template, FileNameContext(title=title, url=url))
    console.print(f"[green]Valid[/green]: uses {', '.join(validation.used_variables) or 'no variables'}")
    console.print(f"Preview: {preview or 'document'}.md")


@app.command()
def serve(
    host: str | None = typer.Option(None, "--host"),
    port: int | None = typer.Option(None, "--port"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    import uvicorn

    from ..api import create_app

    cfg = _load_config(config)
    try:
        api = create_app(config, require_enabled=True)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    uvicorn.run(api, host=host or cfg.api.host, port=port or cfg.api.port)


@app.command()
def history(
    limit: int = typer.Option(20, "--limit", min=0, help="Show the most recent N entries"),
    config: Path | None = CONFIG_OPTION,
) -> None:
    cfg = _load_config(config)
    entries = HistoryLogger(cfg.runtime.history_path).read(limit)
    if not entries:
        console.print("No conversions recorded.")
        raise typer.Exit()
    table = Table(title="Conversion history")
    table.add_column("Title")
    table.add_column("Profile")
    table.add_column("Size")
    table.add_column("Result")
    for entry in entries:
        result = "[green]ok[/green]" if entry.success else f"[red]{entry.error_code}[/red]"
        table.add_row(entry.title or entry.url or "-", entry.profile_used, str(entry.size_bytes), result)
    console.print(table)


if __name__ == "__main__":
    app()
