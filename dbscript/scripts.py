"""
Splitting and executing multi‑batch SQL scripts.

Scripts may contain ``GO`` / ``GO <count>`` separator lines (a client‑tool
directive, not SQL).  They are split client‑side and each batch is sent to the
server as its own command.
"""
from __future__ import annotations
import re
import typing as t

import sqlparse
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session

from dbscript.constants import SCRIPT_ENCODING

if t.TYPE_CHECKING:
    from dbscript.files import FileProvider

_CONTINUATION_RE = re.compile(r"\\\r?\n")
_SEPARATOR_RE = re.compile(
    r"^\s*(GO[ \t]+[0-9]+|GO)(?:\s+|$)", re.IGNORECASE | re.MULTILINE
)
_COUNT_RE = re.compile(r"[0-9]+")


def _is_separator(piece: str) -> bool:
    return piece[:2].upper() == "GO"


def get_commands_from_script(sql: str) -> list[str]:
    """
    Split *sql* on ``GO [N]`` lines into the commands to run, in order.

    A batch followed by ``GO N`` is emitted N times.  Backslash‑newline line
    continuations are removed first.  The last batch of a script that has
    separators but does not end with one gets a trailing newline.
    """
    sql = _CONTINUATION_RE.sub("", sql)
    batches = _SEPARATOR_RE.split(sql)

    commands: list[str] = []
    last = len(batches) - 1
    for i, batch in enumerate(batches):
        if not batch.strip() or _is_separator(batch):
            continue

        count = 1
        if i != last and _is_separator(batches[i + 1]):
            match = _COUNT_RE.search(batches[i + 1])
            if match:
                count = int(match.group())

        if i == last and last > 0:
            batch += "\n"

        commands.extend([batch] * count)

    return commands


def _connection_of(context: Session | Connection) -> Connection:
    if context is None:
        raise ValueError("context is required")
    if isinstance(context, Session):
        return context.connection()
    return context


def split_statements(batch: str) -> list[str]:
    """
    Split one batch into its individual statements **safely** (aware of
    literals, comments, etc.); DBAPI cursors take one statement per call.
    """
    return [s.strip() for s in sqlparse.split(batch) if s.strip()]


def execute_sql_script(context: Session | Connection, sql: str) -> None:
    """Execute every command of *sql* on *context*, one after another."""
    conn = _connection_of(context)
    for command in get_commands_from_script(sql):
        for stmt in split_statements(command):
            # raw driver SQL: the text is not scanned for `:name` bind markers
            conn.exec_driver_sql(stmt)


async def execute_sql_script_from_file(
    context: Session | Connection,
    file_path: str,
    file_provider: FileProvider,
) -> None:
    """
    Execute the script stored at *file_path*.  A missing file means there is
    nothing to run.
    """
    if context is None:
        raise ValueError("context is required")

    if not await file_provider.file_exists(file_path):
        return

    sql = await file_provider.read_all_text(file_path, SCRIPT_ENCODING)
    execute_sql_script(context, sql)
