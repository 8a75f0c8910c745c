"""
Maintenance passes over the photo sidecar files.

Each photo asset `<name>_compressed.<ext>` may carry a JSON sidecar
`<name>_compressed.json` with the fields below. Every pass reads each file,
decides whether it needs rewriting and counts what it did; running a pass
twice leaves the second run with nothing to update.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

COMPRESSED_MARKER = "_compressed"
PROCESSED_MARKER = "_processed"
SIDECAR_PATTERN = f"*{COMPRESSED_MARKER}.json"
CANONICAL_FIELDS = ("Title", "Subtitle", "Body", "cache_key", "day")
TIMESTAMP_FIELD = "body_timestamp"
DEFAULT_SUBTITLE = "Daddy Loves You!"

_MISSING = object()


@dataclass
class PassStats:
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    def summary(self) -> str:
        return f"updated={self.updated} skipped={self.skipped} errors={self.errors}"


@dataclass
class RemovalStats:
    deleted: int = 0
    kept: int = 0
    errors: int = 0

    def summary(self) -> str:
        return f"deleted={self.deleted} kept={self.kept} errors={self.errors}"


def read_sidecar(path: Path) -> dict:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError("sidecar is not a JSON object")
    return data


def write_sidecar(path: Path, data: dict) -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(json.dumps(data, indent=2, ensure_ascii=False))


def _ordered(data: dict, fields: tuple[str, ...]) -> dict:
    return {key: data[key] for key in fields if key in data}


def _first(data: dict, *keys: str, default: Any = _MISSING) -> Any:
    """
    First truthy value among `keys`. Without one, `default` when given,
    otherwise whatever the last key holds (`_MISSING` when absent), so
    `_first(d, "Title", "title")` behaves like `d.Title || d.title`.
    """
    for key in keys:
        value = data.get(key, _MISSING)
        if value is not _MISSING and value:
            return value
    if default is not _MISSING:
        return default
    return data.get(keys[-1], _MISSING)


def _drop_missing(data: dict) -> dict:
    return {key: value for key, value in data.items() if value is not _MISSING}


def _require_dir(photos_dir: PathLike) -> Path:
    root = Path(photos_dir)
    if not root.is_dir():
        raise FileNotFoundError(f"Photos directory not found: {root}")
    return root


def _rewrite_pass(
    photos_dir: PathLike,
    transform: Callable[[dict, Path], Optional[dict]],
    *,
    pattern: str = SIDECAR_PATTERN,
    dry_run: bool = False,
    label: str,
) -> PassStats:
    """Apply `transform` to every matching file; a None result means skip."""
    stats = PassStats()
    for path in sorted(_require_dir(photos_dir).glob(pattern)):
        if not path.is_file():
            continue
        try:
            data = read_sidecar(path)
            updated = transform(data, path)
            if updated is None:
                stats.skipped += 1
                continue
            if not dry_run:
                write_sidecar(path, updated)
            logger.info("[%s] %s %s", label, "Would update" if dry_run else "Updated", path.name)
            stats.updated += 1
        except (OSError, ValueError) as exc:
            logger.error("[%s] Error processing %s: %s", label, path.name, exc)
            stats.errors += 1
    logger.info("[%s] Summary: %s", label, stats.summary())
    return stats


def backfill_body_timestamps(photos_dir: PathLike, *, dry_run: bool = False) -> PassStats:
    """Stamp each sidecar with the mtime (epoch ms) of the file holding its Body."""

    def transform(data: dict, path: Path) -> Optional[dict]:
        if data.get(TIMESTAMP_FIELD):
            return None
        stamped = dict(data)
        stamped[TIMESTAMP_FIELD] = path.stat().st_mtime_ns / 1_000_000
        return _ordered(stamped, CANONICAL_FIELDS + (TIMESTAMP_FIELD,))

    return _rewrite_pass(
        photos_dir, transform, dry_run=dry_run, label="backfill:timestamps"
    )


def remove_body_timestamps(photos_dir: PathLike, *, dry_run: bool = False) -> PassStats:
    def transform(data: dict, path: Path) -> Optional[dict]:
        if not data.get(TIMESTAMP_FIELD):
            return None
        return _ordered(data, CANONICAL_FIELDS)

    return _rewrite_pass(
        photos_dir, transform, dry_run=dry_run, label="remove:timestamps"
    )


def remove_duplicate_keys(photos_dir: PathLike, *, dry_run: bool = False) -> PassStats:
    """Collapse lowercase twins (title/subtitle/body) onto their title-case keys."""

    def transform(data: dict, path: Path) -> Optional[dict]:
        has_duplicates = any(
            data.get(lower) and data.get(upper)
            for lower, upper in (("title", "Title"), ("body", "Body"), ("subtitle", "Subtitle"))
        )
        if not has_duplicates:
            return None
        cleaned = {
            "Title": _first(data, "Title", "title"),
            "Subtitle": _first(data, "Subtitle", "subtitle"),
            "Body": _first(data, "Body", "body"),
            "cache_key": data.get("cache_key", _MISSING),
            "day": data.get("day", _MISSING),
        }
        return _drop_missing(cleaned)

    return _rewrite_pass(
        photos_dir, transform, dry_run=dry_run, label="remove:duplicates"
    )


def normalize_sidecar(data: dict) -> dict:
    """Coerce a sidecar onto the canonical five-field schema."""
    return {
        "Title": _first(data, "Title", "title", default=""),
        "Subtitle": _first(
            data, "Subtitle", "subtitle", "Summary", "summary", default=DEFAULT_SUBTITLE
        ),
        "Body": _first(data, "Body", "body", "Prompt", "prompt", default=""),
        "cache_key": _first(data, "cache_key", "cacheKey", "CacheKey", default=""),
        "day": _first(data, "day", "Day", "date", "Date", default=None),
    }


def _case_duplicates(data: dict) -> int:
    lowered = [key.lower() for key in data]
    return len(lowered) - len(set(lowered))


def normalize_sidecars(photos_dir: PathLike, *, dry_run: bool = False) -> PassStats:
    def transform(data: dict, path: Path) -> Optional[dict]:
        normalized = normalize_sidecar(data)
        if normalized == data:
            return None
        duplicates = _case_duplicates(data)
        if duplicates:
            logger.info("[normalize] %s had %d duplicate key(s)", path.name, duplicates)
        return normalized

    return _rewrite_pass(
        photos_dir, transform, pattern="*.json", dry_run=dry_run, label="normalize"
    )


def remove_originals(photos_dir: PathLike, *, dry_run: bool = False) -> RemovalStats:
    """
    Delete original assets that have a compressed counterpart.

    A file `<stem><ext>` is a candidate when any `<stem>_compressed.*` exists.
    It is only unlinked once `<stem>_compressed<ext>` is confirmed on disk;
    otherwise it is left in place and counted as an error. `_processed`
    intermediates without a compressed counterpart are always kept.
    """
    root = _require_dir(photos_dir)
    files = sorted(p for p in root.iterdir() if p.is_file())
    compressed_bases = {
        p.stem[: -len(COMPRESSED_MARKER)] for p in files if p.stem.endswith(COMPRESSED_MARKER)
    }

    stats = RemovalStats()
    candidates: list[Path] = []
    for path in files:
        stem = path.stem
        if stem.endswith(COMPRESSED_MARKER):
            stats.kept += 1
        elif stem.endswith(PROCESSED_MARKER) and (
            stem[: -len(PROCESSED_MARKER)] not in compressed_bases
        ):
            stats.kept += 1
        elif stem in compressed_bases:
            candidates.append(path)
        else:
            stats.kept += 1

    logger.info(
        "[remove:originals] Found %d original files with compressed versions",
        len(candidates),
    )
    logger.info(
        "[remove:originals] Keeping %d files without compressed versions", stats.kept
    )

    for path in candidates:
        counterpart = path.with_name(f"{path.stem}{COMPRESSED_MARKER}{path.suffix}")
        if not counterpart.is_file():
            logger.warning(
                "[remove:originals] Skipping %s - compressed version not found", path.name
            )
            stats.errors += 1
            continue
        try:
            if not dry_run:
                path.unlink()
        except OSError as exc:
            logger.error("[remove:originals] Error deleting %s: %s", path.name, exc)
            stats.errors += 1
            continue
        logger.info(
            "[remove:originals] %s %s", "Would delete" if dry_run else "Deleted", path.name
        )
        stats.deleted += 1

    logger.info("[remove:originals] Summary: %s", stats.summary())
    return stats
