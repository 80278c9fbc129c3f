"""
cli.py

click entry point over the stores:

    meatycapture config init|show|set
    meatycapture project list|add|update|enable|disable|remove|set-default
    meatycapture field list|add|import|remove
    meatycapture serve

exit codes: 0 ok, 1 validation, 2 i/o, 3 not found / conflict, 130 interrupted.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

from . import __version__
from .config_store import LocalConfigStore
from .errors import (
    ResourceConflictError,
    ResourceNotFoundError,
    StoreError,
    StorePermissionError,
    UserInterruptError,
    ValidationError,
)
from .factory import Adapters, create_adapters, init_local_store, local_adapters
from .field_store import import_options, read_import_file
from .models import FIELD_NAMES, dump_record
from .prompts import ConfirmResult, confirm
from .settings import Settings, load_settings


EXIT_VALIDATION = 1
EXIT_IO = 2
EXIT_NOT_FOUND = 3
EXIT_INTERRUPTED = 130

_CLEAR_VALUES = ("", "null", "none")


def exit_code_for(exc: Exception) -> int:
    if isinstance(exc, UserInterruptError):
        return EXIT_INTERRUPTED
    if isinstance(exc, ValidationError):
        return EXIT_VALIDATION
    if isinstance(exc, (ResourceNotFoundError, ResourceConflictError)):
        return EXIT_NOT_FOUND
    if isinstance(exc, StorePermissionError):
        return EXIT_IO
    return EXIT_VALIDATION


@dataclass
class CliContext:
    """per-invocation state; quiet lives on settings, not in a module global."""

    settings: Settings
    _adapters: Adapters | None = field(default=None, repr=False)

    @property
    def adapters(self) -> Adapters:
        if self._adapters is None:
            self._adapters = create_adapters(self.settings)
        return self._adapters

    def say(self, message: str) -> None:
        if not self.settings.quiet:
            click.echo(message)


def _emit_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _confirm_or_stop(ctx: CliContext, message: str, yes: bool) -> bool:
    """True to proceed. declining returns False; an interrupt raises before any store call."""
    if yes:
        return True
    result = confirm(message, default=False)
    if result is ConfirmResult.INTERRUPTED:
        raise UserInterruptError("confirmation interrupted, nothing was removed")
    if result is ConfirmResult.DECLINED:
        ctx.say("Cancelled.")
        return False
    return True


class StoreErrorGroup(click.Group):
    """maps store errors raised anywhere below this group onto exit codes."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except (StoreError, UserInterruptError) as exc:
            click.echo(f"Error: {exc}", err=True)
            ctx.exit(exit_code_for(exc))


pass_cli = click.make_pass_decorator(CliContext)


@click.group(cls=StoreErrorGroup)
@click.option("--config-dir", type=click.Path(file_okay=False, path_type=Path), default=None,
              help="store root (overrides MEATYCAPTURE_CONFIG_DIR)")
@click.option("-q", "--quiet", is_flag=True, help="suppress non-error output")
@click.option("-v", "--verbose", is_flag=True, help="debug logging to stderr")
@click.version_option(version=__version__, prog_name="meatycapture")
@click.pass_context
def cli(ctx: click.Context, config_dir: Path | None, quiet: bool, verbose: bool) -> None:
    """settings, projects and field options."""
    # .env never overrides variables already set in the environment
    load_dotenv(Path.cwd() / ".env", override=False)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    overrides: dict[str, Any] = {"quiet": quiet}
    if config_dir is not None:
        overrides["store_root"] = config_dir
    ctx.obj = CliContext(settings=load_settings(**overrides))


# config

@cli.group()
def config() -> None:
    """global settings."""


@config.command("init")
@click.option("--force", is_flag=True, help="overwrite an existing configuration")
@pass_cli
def config_init(ctx: CliContext, force: bool) -> None:
    """create config.json, projects.json and fields.json under the store root."""
    for path in init_local_store(ctx.settings.store_root, force=force):
        ctx.say(f"Created: {path}")


@config.command("show")
@pass_cli
def config_show(ctx: CliContext) -> None:
    """print the local config.json (or its defaults) and any env overrides."""
    store = LocalConfigStore(ctx.settings.store_root)
    data = dump_record(store.get())
    data["initialized"] = store.exists()
    if ctx.settings.api_url:
        data["api_url_env"] = ctx.settings.api_url
    if ctx.settings.default_project:
        data["default_project_env"] = ctx.settings.default_project
    _emit_json(data)


@config.command("set")
@click.argument("key")
@click.argument("value")
@pass_cli
def config_set(ctx: CliContext, key: str, value: str) -> None:
    """set KEY to VALUE; '', 'null' or 'none' clears it."""
    if value.strip().lower() in _CLEAR_VALUES:
        value = ""

    if key == "default_project":
        # stored and checked on the same backend the project commands use
        ctx.adapters.set_config(key, value)
    else:
        # api_url picks the backend, so it stays local and settable while the api is down
        LocalConfigStore(ctx.settings.store_root).set(key, value)

    ctx.say(f"Set {key} = {value}" if value else f"Cleared {key}")


# project

@cli.group()
def project() -> None:
    """project registry."""


@project.command("list")
@click.option("--enabled-only", is_flag=True, help="hide disabled projects")
@click.option("--json", "as_json", is_flag=True, help="emit json")
@pass_cli
def project_list(ctx: CliContext, enabled_only: bool, as_json: bool) -> None:
    projects = ctx.adapters.project_store.list()
    if enabled_only:
        projects = [p for p in projects if p.enabled]

    if as_json:
        _emit_json([dump_record(p) for p in projects])
        return
    if not projects:
        ctx.say("No projects.")
        return
    default = ctx.adapters.default_project()
    for p in projects:
        star = "*" if p.id == default else " "
        status = "" if p.enabled else "  (disabled)"
        click.echo(f"{star} {p.id:<24} {p.name:<24} {p.default_path}{status}")


@project.command("add")
@click.argument("name")
@click.argument("default_path")
@click.option("--id", "project_id", default=None, help="slug id (default: derived from NAME)")
@click.option("--repo-url", default=None)
@click.option("--disabled", is_flag=True, help="create the project disabled")
@pass_cli
def project_add(
    ctx: CliContext, name: str, default_path: str, project_id: str | None, repo_url: str | None, disabled: bool
) -> None:
    fields: dict[str, Any] = {"name": name, "default_path": default_path, "enabled": not disabled}
    if project_id:
        fields["id"] = project_id
    if repo_url:
        fields["repo_url"] = repo_url

    created = ctx.adapters.project_store.create(fields)
    ctx.say(f"Created project {created.id}")


@project.command("update")
@click.argument("project_id")
@click.option("--name", default=None)
@click.option("--path", "default_path", default=None)
@click.option("--repo-url", default=None, help="'' clears it")
@pass_cli
def project_update(
    ctx: CliContext, project_id: str, name: str | None, default_path: str | None, repo_url: str | None
) -> None:
    patch = {k: v for k, v in {"name": name, "default_path": default_path, "repo_url": repo_url}.items() if v is not None}
    if not patch:
        raise ValidationError("nothing to update: pass --name, --path or --repo-url")

    ctx.adapters.project_store.update(project_id, patch)
    ctx.say(f"Updated project {project_id}")


@project.command("enable")
@click.argument("project_id")
@pass_cli
def project_enable(ctx: CliContext, project_id: str) -> None:
    ctx.adapters.project_store.set_enabled(project_id, True)
    ctx.say(f"Enabled project {project_id}")


@project.command("disable")
@click.argument("project_id")
@pass_cli
def project_disable(ctx: CliContext, project_id: str) -> None:
    ctx.adapters.project_store.set_enabled(project_id, False)
    ctx.say(f"Disabled project {project_id}")


@project.command("remove")
@click.argument("project_id")
@click.option("-y", "--yes", is_flag=True, help="skip confirmation")
@pass_cli
def project_remove(ctx: CliContext, project_id: str, yes: bool) -> None:
    """remove a project and its field options."""
    store = ctx.adapters.project_store
    if store.get(project_id) is None:
        raise ResourceNotFoundError("project", project_id)
    if not _confirm_or_stop(ctx, f"Remove project {project_id}?", yes):
        return

    store.remove(project_id)
    ctx.say(f"Removed project {project_id}")


@project.command("set-default")
@click.argument("project_id")
@pass_cli
def project_set_default(ctx: CliContext, project_id: str) -> None:
    ctx.adapters.set_config("default_project", project_id)
    ctx.say(f"Default project: {project_id}")


# field

@cli.group(name="field")
def field_group() -> None:
    """field option catalog."""


@field_group.command("list")
@click.option("--project", "project_id", default=None, help="include this project's options")
@click.option("--field", "field_name", type=click.Choice(FIELD_NAMES), default=None)
@click.option("--json", "as_json", is_flag=True, help="emit json")
@pass_cli
def field_list(ctx: CliContext, project_id: str | None, field_name: str | None, as_json: bool) -> None:
    store = ctx.adapters.field_store
    if field_name:
        options = store.get_by_field(field_name, project_id)
    else:
        options = store.get_global()
        if project_id:
            options += store.get_for_project(project_id)

    if as_json:
        _emit_json([dump_record(o) for o in options])
        return
    for o in options:
        scope = o.project_id if o.scope == "project" else "global"
        click.echo(f"{o.id:<36} {o.field:<10} {o.value:<16} {scope}")


@field_group.command("add")
@click.argument("field_name", type=click.Choice(FIELD_NAMES))
@click.argument("value")
@click.option("--project", "project_id", default=None, help="project scope (default: global)")
@pass_cli
def field_add(ctx: CliContext, field_name: str, value: str, project_id: str | None) -> None:
    option = ctx.adapters.field_store.add_option({
        "field": field_name,
        "value": value,
        "scope": "project" if project_id else "global",
        "project_id": project_id,
    })
    ctx.say(f"Added {option.field} option {option.value!r} ({option.id})")


@field_group.command("import")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--project", "project_id", default=None, help="project scope (default: global)")
@click.option("--merge", is_flag=True, help="skip values that already exist instead of failing")
@click.option("--json", "as_json", is_flag=True, help="emit the summary as json")
@pass_cli
def field_import(ctx: CliContext, file: Path, project_id: str | None, merge: bool, as_json: bool) -> None:
    """add options from a {field: [values]} .json or .yaml FILE."""
    summary = import_options(
        ctx.adapters.field_store,
        ctx.adapters.project_store,
        read_import_file(file),
        project_id=project_id,
        merge=merge,
    )

    if as_json:
        _emit_json(summary.model_dump())
        return
    ctx.say(f"Import complete: {summary.added} added, {summary.skipped} skipped")
    for name, counts in summary.fields.items():
        ctx.say(f"  {name}: {counts.added} added, {counts.skipped} skipped")


@field_group.command("remove")
@click.argument("option_id")
@click.option("-y", "--yes", is_flag=True, help="skip confirmation")
@pass_cli
def field_remove(ctx: CliContext, option_id: str, yes: bool) -> None:
    if not _confirm_or_stop(ctx, f"Remove field option {option_id}?", yes):
        return

    ctx.adapters.field_store.remove_option(option_id)
    ctx.say(f"Removed field option {option_id}")


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", type=int, default=None, help="default: MEATYCAPTURE_SERVER_PORT or 3737")
@pass_cli
def serve(ctx: CliContext, host: str, port: int | None) -> None:
    """serve the local store over http."""
    import uvicorn

    from .main import create_app

    app = create_app(local_adapters(ctx.settings))
    uvicorn.run(app, host=host, port=port or ctx.settings.server_port)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
