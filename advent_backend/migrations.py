"""
Apply the session-events SQL migration to the edge D1 database via wrangler.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import Callable, Sequence, Union

logger = logging.getLogger(__name__)


class MigrationError(Exception):
    pass


Runner = Callable[..., subprocess.CompletedProcess]


def build_d1_command(database_name: str, migration_file: Path, *, local: bool) -> list[str]:
    command = [
        "npx",
        "wrangler",
        "d1",
        "execute",
        database_name,
        f"--file={migration_file}",
    ]
    if local:
        command.append("--local")
    return command


def run_d1_migration(
    migration_file: Union[str, Path],
    database_name: str,
    *,
    local: bool = False,
    runner: Runner = subprocess.run,
) -> Sequence[str]:
    """Validate the migration file and hand it to wrangler; returns the command run."""
    path = Path(migration_file)
    logger.info("Reading migration file %s", path)
    try:
        sql = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise MigrationError(f"Cannot read migration file {path}: {exc}") from exc
    if not sql.strip():
        raise MigrationError("Migration file is empty")

    command = build_d1_command(database_name, path, local=local)
    logger.info(
        "Applying D1 migration to %s (%s)", database_name, "local" if local else "remote"
    )
    logger.info("Running: %s", shlex.join(command))
    try:
        runner(command, check=True)
    except subprocess.CalledProcessError as exc:
        raise MigrationError(
            f"wrangler exited with status {exc.returncode}"
        ) from exc
    except FileNotFoundError as exc:
        raise MigrationError("npx is not installed or not on PATH") from exc
    logger.info("Migration applied successfully")
    return command
