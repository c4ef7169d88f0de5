"""Command line interface for Refiler."""

from __future__ import annotations

import difflib
import time
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from refiler.config import ConfigError, ConfigManager, RefilerConfig, resolve_with_precedence
from refiler.logging_setup import configure_logging
from refiler.organization import FileOperation, FileSystemError, ReversalResult
from refiler.organization.operations import summarize
from refiler.organization.paths import normalize
from refiler.organization.plan_io import dump_plan_document
from refiler.organizer import FolderOrganizer, PlanFileProvider, PlanProvider
from refiler.scanning import DirectoryScanner
from refiler.state import HistoryRepository, OrganizationHistoryEntry, StateError
from refiler.watch import FolderWatcher, WatchedFolder, WatchedFolderStore

console = Console()


def _handle_cli_error(
    message: str,
    *,
    code: str,
    json_output: bool,
    details: Any | None = None,
    original: Exception | None = None,
) -> None:
    """Emit a standardized error and terminate the command appropriately.

    Args:
        message: Human-readable error message.
        code: Machine-readable error identifier.
        json_output: Indicates whether JSON mode is active.
        details: Optional structured details to include in the payload.
        original: Original exception for chaining when not using JSON.

    Raises:
        SystemExit: When emitting JSON output to terminate the command.
        click.ClickException: For non-JSON flows to surface the error.
    """

    if json_output:
        payload: dict[str, Any] = {"error": {"code": code, "message": message}}
        if details is not None:
            payload["error"]["details"] = details
        console.print_json(data=payload)
        raise SystemExit(1)

    if isinstance(original, click.ClickException):
        raise original

    raise click.ClickException(message) from original


def _handle_command_error(exc: Exception, *, action: str, json_output: bool) -> None:
    """Map an exception raised by a command body onto ``_handle_cli_error``."""
    if isinstance(exc, ConfigError):
        _handle_cli_error(str(exc), code="config_error", json_output=json_output, original=exc)
    elif isinstance(exc, FileSystemError):
        details = {"path": str(exc.path)} if exc.path is not None else None
        _handle_cli_error(
            str(exc),
            code="filesystem_error",
            json_output=json_output,
            details=details,
            original=exc,
        )
    elif isinstance(exc, StateError):
        _handle_cli_error(str(exc), code="state_error", json_output=json_output, original=exc)
    elif isinstance(exc, click.ClickException):
        _handle_cli_error(str(exc), code="cli_error", json_output=json_output, original=exc)
    else:
        _handle_cli_error(
            f"Unexpected error while {action}: {exc}",
            code="internal_error",
            json_output=json_output,
            details={"exception": type(exc).__name__},
            original=exc,
        )


def _emit_message(message: Any, *, mode: str, quiet: bool, summary_only: bool) -> None:
    """Conditionally print CLI output according to quiet/summary settings.

    Args:
        message: Renderable or string to emit.
        mode: Output mode identifier (`detail`, `summary`, `warning`, or `error`).
        quiet: Whether quiet mode is active.
        summary_only: Whether only summary lines should be emitted.
    """

    if quiet and mode != "error":
        return

    important_modes = {"summary", "warning", "error"}
    if summary_only and mode not in important_modes:
        return

    console.print(message)


def _format_summary_line(command: str, root: Path | str, metrics: dict[str, Any]) -> str:
    """Return a consistent summary line for CLI commands.

    Args:
        command: Command name to include in the summary.
        root: Target root path relevant to the command.
        metrics: Ordered mapping of metric names to values.

    Returns:
        str: Rich-formatted summary string.
    """

    parts = ", ".join(f"{key}={value}" for key, value in metrics.items())
    return f"[green]{command} summary for {root}: {parts}.[/green]"


def _resolve_output_modes(
    ctx: click.Context,
    config: RefilerConfig,
    *,
    json_output: bool,
    quiet: bool,
    summary_mode: bool,
) -> tuple[bool, bool]:
    """Combine output flags with configured defaults.

    Returns:
        tuple[bool, bool]: Effective quiet and summary-only switches.

    Raises:
        click.ClickException: If the flags conflict.
    """

    explicit_quiet = ctx.get_parameter_source("quiet") == ParameterSource.COMMANDLINE
    explicit_summary = ctx.get_parameter_source("summary_mode") == ParameterSource.COMMANDLINE

    quiet_enabled = quiet if explicit_quiet else config.cli.quiet_default
    summary_only = summary_mode if explicit_summary else config.cli.summary_default

    if json_output:
        if explicit_quiet and quiet_enabled:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if explicit_summary and summary_only:
            raise click.ClickException("--json cannot be combined with --summary.")
        return False, False

    if quiet_enabled and summary_only:
        raise click.ClickException(
            "Quiet and summary modes cannot both be enabled. Adjust CLI defaults or flags."
        )
    return quiet_enabled, summary_only


def _load_config(ctx: click.Context) -> RefilerConfig:
    """Load the effective configuration and install logging handlers."""
    manager = ConfigManager()
    manager.ensure_exists()
    config = manager.load()
    verbose = bool((ctx.find_root().obj or {}).get("verbose"))
    configure_logging(config.logging, verbose=verbose)
    return config


def _history_repository(config: RefilerConfig) -> HistoryRepository:
    return HistoryRepository(
        Path(config.history.path), max_entries=config.history.max_entries
    )


def _build_organizer(config: RefilerConfig, provider: Optional[PlanProvider] = None) -> FolderOrganizer:
    return FolderOrganizer(
        provider,
        history=_history_repository(config),
        scanner=DirectoryScanner(
            include_hidden=config.scan.include_hidden,
            follow_symlinks=config.scan.follow_symlinks,
        ),
        exclusions=config.scan.exclusions,
        max_depth=config.execution.max_depth,
        trash_dir=Path(config.execution.trash_dir).expanduser() if config.execution.trash_dir else None,
    )


def _watched_store(config: RefilerConfig) -> WatchedFolderStore:
    return WatchedFolderStore(Path(config.watch.folders_file))


def _assign_nested(target: dict[str, Any], path: list[str], value: Any) -> None:
    """Assign a nested value within a dictionary for a dotted path.

    Raises:
        ConfigError: If a non-mapping value is encountered along the path.
    """

    node = target
    for segment in path[:-1]:
        existing = node.get(segment)
        if existing is None:
            existing = {}
            node[segment] = existing
        elif not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _relative(path: Optional[Path], root: Path) -> str:
    if path is None:
        return "-"
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def _operations_table(operations: list[FileOperation], root: Path) -> Table:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Operation")
    table.add_column("Source")
    table.add_column("Destination")
    for operation in operations:
        table.add_row(
            operation.type.value,
            _relative(operation.source_path, root),
            _relative(operation.destination_path, root),
        )
    return table


def _reversal_payload(result: ReversalResult) -> dict[str, Any]:
    return {
        "restored": {str(key): str(value) for key, value in result.restored.items()},
        "skipped": [operation.model_dump(mode="json") for operation in result.skipped],
        "irreversible": [operation.model_dump(mode="json") for operation in result.irreversible],
        "removed_copies": [str(path) for path in result.removed_copies],
        "removed_folders": [str(path) for path in result.removed_folders],
    }


def _format_history_entry(entry: OrganizationHistoryEntry) -> list[str]:
    return [
        str(entry.id)[:8],
        entry.timestamp.isoformat(timespec="seconds"),
        entry.directory_path,
        entry.status.value,
        str(entry.files_organized),
        str(entry.folders_created),
        "yes" if entry.is_undone else "no",
    ]


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="refiler")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Refiler organizes folders from a plan and can undo every change it makes."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _run_plan(
    ctx: click.Context,
    *,
    command: str,
    root_arg: str,
    plan_path: str,
    prompt: Optional[str],
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    try:
        config = _load_config(ctx)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
        )

        root = normalize(Path(root_arg).expanduser())
        organizer = _build_organizer(config, PlanFileProvider(Path(plan_path)))
        plan = organizer.organize(root, custom_prompt=prompt)
        operations = organizer.apply(root, dry_run=dry_run)
        counts = summarize(operations)

        if json_output:
            console.print_json(
                data={
                    "root": str(root),
                    "dry_run": dry_run,
                    "plan": dump_plan_document(plan, root),
                    "operations": [operation.model_dump(mode="json") for operation in operations],
                    "counts": counts,
                }
            )
            return

        if dry_run:
            _emit_message(
                "[yellow]Dry run: no files were changed.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        if operations:
            _emit_message(
                _operations_table(operations, root),
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        else:
            _emit_message(
                "[yellow]Everything is already in place.[/yellow]",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                command,
                root,
                {
                    "folders": counts["create_folder"],
                    "moves": counts["move_file"],
                    "renames": counts["rename_file"],
                    "dry_run": dry_run,
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _handle_command_error(exc, action="applying the plan", json_output=json_output)


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option(
    "--plan",
    "plan_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="YAML or JSON plan document describing the target layout.",
)
@click.option("--prompt", type=str, help="Extra instructions passed to the plan provider.")
@click.option("--dry-run", is_flag=True, help="Preview changes without modifying files.")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the operations.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def apply(
    ctx: click.Context,
    root: str,
    plan_path: str,
    prompt: str | None,
    dry_run: bool,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Organize ROOT according to the plan document and record the batch in history."""
    _run_plan(
        ctx,
        command="Apply",
        root_arg=root,
        plan_path=plan_path,
        prompt=prompt,
        dry_run=dry_run,
        json_output=json_output,
        summary_mode=summary_mode,
        quiet=quiet,
    )


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option(
    "--plan",
    "plan_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=str),
    help="YAML or JSON plan document describing the target layout.",
)
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the operations.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def preview(
    ctx: click.Context,
    root: str,
    plan_path: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Show the operations the plan would perform on ROOT without changing anything."""
    _run_plan(
        ctx,
        command="Preview",
        root_arg=root,
        plan_path=plan_path,
        prompt=None,
        dry_run=True,
        json_output=json_output,
        summary_mode=summary_mode,
        quiet=quiet,
    )


@cli.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the reversal.")
@click.option("--summary", "summary_mode", is_flag=True, help="Only emit summary lines.")
@click.option("--quiet", is_flag=True, help="Suppress non-error output.")
@click.pass_context
def undo(
    ctx: click.Context,
    root: str,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Reverse the most recent batch applied to ROOT that has not been undone."""
    try:
        config = _load_config(ctx)
        quiet_enabled, summary_only = _resolve_output_modes(
            ctx, config, json_output=json_output, quiet=quiet, summary_mode=summary_mode
        )
        target = normalize(Path(root).expanduser())
        result = _build_organizer(config).undo_last(target)

        if json_output:
            console.print_json(data={"root": str(target), **_reversal_payload(result)})
            return

        for operation in result.irreversible:
            _emit_message(
                f"[yellow]Cannot restore deleted file {operation.source_path}.[/yellow]",
                mode="warning",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        for destination, source in result.restored.items():
            _emit_message(
                f"  {_relative(destination, target)} -> {_relative(source, target)}",
                mode="detail",
                quiet=quiet_enabled,
                summary_only=summary_only,
            )
        _emit_message(
            _format_summary_line(
                "Undo",
                target,
                {
                    "restored": len(result.restored),
                    "skipped": len(result.skipped),
                    "folders_removed": len(result.removed_folders),
                },
            ),
            mode="summary",
            quiet=quiet_enabled,
            summary_only=summary_only,
        )
    except Exception as exc:
        _handle_command_error(exc, action="undoing changes", json_output=json_output)


@cli.command()
@click.argument("entry_id")
@click.option("--json", "json_output", is_flag=True, help="Emit JSON describing the reversal.")
@click.pass_context
def restore(ctx: click.Context, entry_id: str, json_output: bool) -> None:
    """Undo every batch applied after history entry ENTRY_ID in the same folder."""
    try:
        config = _load_config(ctx)
        organizer = _build_organizer(config)
        entry = organizer.history.find(entry_id)
        results = organizer.restore_to_state(entry.id)

        if json_output:
            console.print_json(
                data={
                    "entry": str(entry.id),
                    "root": entry.directory_path,
                    "reversed": [_reversal_payload(result) for result in results],
                }
            )
            return

        console.print(
            _format_summary_line(
                "Restore",
                entry.directory_path,
                {
                    "batches_undone": len(results),
                    "restored": sum(len(result.restored) for result in results),
                },
            )
        )
    except Exception as exc:
        _handle_command_error(exc, action="restoring history", json_output=json_output)


@cli.command()
@click.option("--limit", type=click.IntRange(min=1), help="Number of entries to show.")
@click.option("--json", "json_output", is_flag=True, help="Emit history entries as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int | None, json_output: bool) -> None:
    """List recorded organization batches, newest first."""
    try:
        config = _load_config(ctx)
        repository = _history_repository(config)
        entries = repository.load()[: limit or config.cli.history_limit]

        if json_output:
            console.print_json(
                data={
                    "entries": [
                        entry.model_dump(mode="json", exclude={"plan", "operations"})
                        | {"operations": len(entry.operations)}
                        for entry in entries
                    ]
                }
            )
            return

        if not entries:
            console.print("[yellow]No organization history recorded yet.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold")
        for column in ("ID", "When", "Directory", "Status", "Files", "Folders", "Undone"):
            table.add_column(column)
        for entry in entries:
            table.add_row(*_format_history_entry(entry))
        console.print(table)
    except Exception as exc:
        _handle_command_error(exc, action="reading history", json_output=json_output)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.argument("new_name")
@click.option("--json", "json_output", is_flag=True, help="Emit the recorded operation as JSON.")
@click.pass_context
def rename(ctx: click.Context, path: str, new_name: str, json_output: bool) -> None:
    """Rename the file at PATH to NEW_NAME; fails instead of overwriting."""
    try:
        config = _load_config(ctx)
        operation = _build_organizer(config).rename_file(Path(path), new_name)
        if json_output:
            console.print_json(data=operation.model_dump(mode="json"))
            return
        console.print(
            f"[green]Renamed {operation.source_path.name} to "
            f"{operation.destination_path.name if operation.destination_path else new_name}.[/green]"
        )
    except Exception as exc:
        _handle_command_error(exc, action="renaming the file", json_output=json_output)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option(
    "--trash",
    "trash_dir",
    type=click.Path(file_okay=False, path_type=str),
    help="Move the file here instead of deleting it (defaults to execution.trash_dir).",
)
@click.option("--json", "json_output", is_flag=True, help="Emit the recorded operation as JSON.")
@click.pass_context
def delete(ctx: click.Context, path: str, trash_dir: str | None, json_output: bool) -> None:
    """Delete the file at PATH. Deletions are recorded but cannot be undone."""
    try:
        config = _load_config(ctx)
        if trash_dir is not None:
            execution = config.execution.model_copy(update={"trash_dir": trash_dir})
            config = config.model_copy(update={"execution": execution})
        operation = _build_organizer(config).delete_file(Path(path))
        if json_output:
            console.print_json(data=operation.model_dump(mode="json"))
            return
        if operation.destination_path is not None:
            console.print(f"[green]Moved {operation.source_path.name} to the trash folder.[/green]")
        else:
            console.print(f"[green]Deleted {operation.source_path.name}.[/green]")
    except Exception as exc:
        _handle_command_error(exc, action="deleting the file", json_output=json_output)


@cli.group()
def watch() -> None:
    """Manage folders that are organized automatically when they change."""


@watch.command("add")
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=str))
@click.option("--plan", "plan_path", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--delay", type=click.FloatRange(min=0), help="Quiet period in seconds.")
@click.option("--manual", is_flag=True, help="Watch without organizing automatically.")
@click.option("--prompt", type=str, help="Extra instructions passed to the plan provider.")
@click.pass_context
def watch_add(
    ctx: click.Context,
    path: str,
    plan_path: str | None,
    delay: float | None,
    manual: bool,
    prompt: str | None,
) -> None:
    """Register PATH as a watched folder."""
    try:
        config = _load_config(ctx)
        folder = WatchedFolder(
            path=str(normalize(Path(path).expanduser())),
            auto_organize=not manual,
            trigger_delay=config.watch.default_trigger_delay if delay is None else delay,
            custom_prompt=prompt,
            plan_file=str(normalize(Path(plan_path).expanduser())) if plan_path else None,
        )
        stored = _watched_store(config).add(folder)
        if stored is not folder:
            console.print(f"[yellow]{stored.path} is already watched.[/yellow]")
            return
        console.print(f"[green]Watching {stored.path} ({str(stored.id)[:8]}).[/green]")
        if stored.plan_file is None:
            console.print(
                "[yellow]No plan document configured; changes will be detected but not organized.[/yellow]"
            )
    except Exception as exc:
        _handle_command_error(exc, action="adding the watched folder", json_output=False)


@watch.command("list")
@click.option("--json", "json_output", is_flag=True, help="Emit watched folders as JSON.")
@click.pass_context
def watch_list(ctx: click.Context, json_output: bool) -> None:
    """List watched folders."""
    try:
        config = _load_config(ctx)
        folders = _watched_store(config).load()
        if json_output:
            console.print_json(data={"folders": [folder.model_dump(mode="json") for folder in folders]})
            return
        if not folders:
            console.print("[yellow]No watched folders.[/yellow]")
            return
        table = Table(show_header=True, header_style="bold")
        for column in ("ID", "Name", "Path", "Enabled", "Auto", "Delay", "Plan"):
            table.add_column(column)
        for folder in folders:
            table.add_row(
                str(folder.id)[:8],
                folder.name,
                folder.path,
                "yes" if folder.is_enabled else "no",
                "yes" if folder.auto_organize else "no",
                f"{folder.trigger_delay:g}s",
                folder.plan_file or "-",
            )
        console.print(table)
    except Exception as exc:
        _handle_command_error(exc, action="listing watched folders", json_output=json_output)


@watch.command("remove")
@click.argument("reference")
@click.pass_context
def watch_remove(ctx: click.Context, reference: str) -> None:
    """Stop watching the folder identified by REFERENCE (id prefix, path or name)."""
    try:
        config = _load_config(ctx)
        store = _watched_store(config)
        removed = store.remove(store.find(reference).id)
        console.print(f"[green]Stopped watching {removed.path}.[/green]")
    except Exception as exc:
        _handle_command_error(exc, action="removing the watched folder", json_output=False)


@watch.command("run")
@click.option("--once", is_flag=True, help="Organize every auto-organize folder once and exit.")
@click.pass_context
def watch_run(ctx: click.Context, once: bool) -> None:
    """Watch the registered folders and organize them after changes settle."""
    try:
        config = _load_config(ctx)
        store = _watched_store(config)
        organizer = _build_organizer(config)
        folders = [folder for folder in store.load() if folder.is_enabled]

        def _on_change(folder: WatchedFolder) -> None:
            operations = organizer.handle_folder_change(folder)
            if operations is not None:
                store.mark_triggered(folder.id)
                console.print(
                    _format_summary_line(
                        "Watch", folder.path, {"operations": len(operations)}
                    )
                )

        if once:
            for folder in folders:
                if folder.auto_organize:
                    _on_change(folder)
            return

        if not folders:
            raise click.ClickException("No enabled watched folders. Add one with `refiler watch add`.")

        watcher = FolderWatcher(
            _on_change,
            is_path_being_reverted=organizer.is_path_being_reverted,
            recursive=config.watch.recursive,
        )
        watcher.sync_with_folders(folders)
        console.print(
            f"[green]Watching {len(watcher.watched_ids())} folder(s). Press Ctrl+C to stop.[/green]"
        )
        try:
            while True:
                time.sleep(1)
        except KeyboardInterrupt:
            console.print("[yellow]Stopping watch.[/yellow]")
        finally:
            watcher.stop_all_watching()
    except Exception as exc:
        _handle_command_error(exc, action="watching folders", json_output=False)


@cli.group()
def config() -> None:
    """Manage Refiler configuration files and overrides."""


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore environment overrides when displaying output.")
def config_view(no_env: bool) -> None:
    """Display the effective configuration after applying precedence rules."""
    manager = ConfigManager()
    try:
        manager.ensure_exists()
        effective = manager.load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    yaml_text = yaml.safe_dump(effective.model_dump(mode="json"), sort_keys=False)
    console.print(Syntax(yaml_text, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="Value to assign to KEY.")
def config_set(key: str, value: str) -> None:
    """Persist a configuration value expressed as a dotted KEY.

    Args:
        key: Dotted path describing the configuration field to update.
        value: YAML-literal value to write into the configuration file.

    Raises:
        click.ClickException: If parsing, assignment, or validation fails.
    """
    manager = ConfigManager()
    manager.ensure_exists()

    before = manager.read_text().splitlines()
    segments = [segment.strip() for segment in key.split(".") if segment.strip()]
    if not segments:
        raise click.ClickException("KEY must specify a dotted path such as 'execution.max_depth'.")

    try:
        parsed_value = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"Unable to parse value: {exc}") from exc

    file_data = manager.load_file_overrides()

    try:
        _assign_nested(file_data, segments, parsed_value)
        resolve_with_precedence(defaults=RefilerConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    manager.save(file_data)
    after = manager.read_text().splitlines()

    diff = list(
        difflib.unified_diff(
            before,
            after,
            fromfile="config.yaml (before)",
            tofile="config.yaml (after)",
            lineterm="",
        )
    )
    changed = [
        line
        for line in diff
        if line[:1] in {"+", "-"}
        and not line.startswith(("+++", "---"))
        and "# Last updated:" not in line
    ]

    if not changed:
        console.print("[yellow]No changes applied; value already up to date.[/yellow]")
        return

    console.print(Syntax("\n".join(diff), "diff", word_wrap=False))
    console.print(f"[green]Updated {'.'.join(segments)}.[/green]")


def main() -> None:
    """Invoke the Click CLI as the console script entry point."""
    cli()


if __name__ == "__main__":
    main()
