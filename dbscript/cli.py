#!/usr/bin/env python3
"""
dbscript – run ``GO``‑separated SQL scripts against a configured database.

• `split`        print the batches a script is cut into (no database needed)
• `run-script`   execute a script file batch by batch
• `drop-table`   drop a plugin table (guarded by --allow-destructive)
• `db-name`      print the name of the configured database
"""
from __future__ import annotations

import asyncio
import pathlib
import sys

import click
import sqlparse

from dbscript import __version__
from dbscript.config import Environment, load, ConfigError
from dbscript.constants import SCRIPT_ENCODING
from dbscript.context import db_name, drop_plugin_table
from dbscript.driver import connection
from dbscript.files import FileProvider
from dbscript.scripts import execute_sql_script_from_file, get_commands_from_script


def _load_env(ctx, _param, value) -> Environment:
    try:
        return load(ctx.obj["config_path"], value)
    except ConfigError as exc:
        click.echo(f"Config error: {exc}", err=True)
        sys.exit(1)


def _read_script(provider: FileProvider, path: str) -> str:
    try:
        return asyncio.run(provider.read_all_text(path, SCRIPT_ENCODING))
    except UnicodeDecodeError as exc:
        click.echo(f"{path} is not valid {SCRIPT_ENCODING}: {exc.reason}", err=True)
        sys.exit(1)


def _echo_batches(commands: list[str], pretty: bool) -> None:
    for i, command in enumerate(commands, 1):
        if pretty:
            command = sqlparse.format(command, reindent=True, keyword_case="upper")
        click.echo(f"-- batch {i}")
        click.echo(command.rstrip("\n"))


@click.group()
@click.option(
    "-c", "--config", "config_path", type=click.Path(), help="env config YAML"
)
@click.pass_context
def main(ctx, config_path):
    ctx.obj = {"config_path": pathlib.Path(config_path) if config_path else None}


@main.command()
def version():
    click.echo(__version__)


@main.command()
@click.argument("script", type=click.Path(exists=True, dir_okay=False))
@click.option("--format", "pretty", is_flag=True, help="re-indent each batch")
def split(script, pretty):
    provider = FileProvider(str(pathlib.Path.cwd()))
    sql = _read_script(provider, script)
    commands = get_commands_from_script(sql)
    _echo_batches(commands, pretty)
    click.echo(f"{len(commands)} batch(es).")


@main.command("run-script")
@click.argument("script", type=click.Path())
@click.option("-e", "--env", callback=_load_env, expose_value=True)
@click.option("--dry-run", is_flag=True)
def run_script(script, env, dry_run):
    provider = FileProvider(env.web_root, env.content_root)
    path = asyncio.run(provider.map_path(script)) if script.startswith("~/") else script

    if not asyncio.run(provider.file_exists(path)):
        click.echo(f"{path} not found – nothing to execute.")
        return

    if dry_run:
        sql = _read_script(provider, path)
        _echo_batches(get_commands_from_script(sql), pretty=False)
        click.echo("\n-- DRY‑RUN complete (no changes executed)")
        return

    with connection(env) as conn:
        try:
            asyncio.run(execute_sql_script_from_file(conn, path, provider))
        except UnicodeDecodeError as exc:
            click.echo(f"{path} is not valid {SCRIPT_ENCODING}: {exc.reason}", err=True)
            sys.exit(1)
    click.echo(f"✅  Executed {path}.")


@main.command("drop-table")
@click.argument("table_name")
@click.option("-e", "--env", callback=_load_env, expose_value=True)
@click.option("--allow-destructive", is_flag=True)
def drop_table(table_name, env, allow_destructive):
    if not (allow_destructive or env.allow_destructive):
        click.echo(
            f"Refusing to drop {table_name!r} – re‑run with --allow-destructive to proceed.",
            err=True,
        )
        sys.exit(1)

    with connection(env) as conn:
        drop_plugin_table(conn, table_name)
    click.echo(f"Dropped {table_name!r} (if it existed).")


@main.command("db-name")
@click.option("-e", "--env", callback=_load_env, expose_value=True)
def db_name_cmd(env):
    with connection(env) as conn:
        click.echo(db_name(conn) or "")
