"""Filesystem operations for workspace manifests.

INVARIANT: Files are truth. Every run re-reads ``package.json`` files from
disk; writes go back through :func:`write_manifest`, which keeps key order
and the file's indentation so a fix only produces the lines it changes.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable
from pathlib import Path
from typing import Any

MANIFEST_FILENAME = "package.json"
DEFAULT_INDENT = 2

# Directories never searched for workspaces.
_SKIP_DIRS = frozenset({"node_modules", ".git"})

_INDENT = re.compile(r"^[{\[]\s*\n([ \t]+)\S", re.MULTILINE)


# ---------------------------------------------------------------------------
# File I/O
# ---------------------------------------------------------------------------


def detect_indent(text: str) -> int | str:
    """Return the indentation of the first nested line of a JSON document."""
    match = _INDENT.search(text)
    if match is None:
        return DEFAULT_INDENT
    indent = match.group(1)
    return indent if "\t" in indent else len(indent)


def read_manifest(path: Path) -> dict[str, Any]:
    """Read a ``package.json``.

    Raises:
        ValueError: If the file is not valid JSON or not a JSON object.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        msg = f"{path} does not contain a JSON object"
        raise ValueError(msg)
    return data


def write_manifest(path: Path, data: dict[str, Any]) -> None:
    """Write *data* to *path* in the file's existing indentation.

    New files use two-space indentation. Output always ends with a newline.
    """
    indent: int | str = DEFAULT_INDENT
    if path.exists():
        indent = detect_indent(path.read_text(encoding="utf-8"))
    path.write_text(json.dumps(data, indent=indent, ensure_ascii=False) + "\n", encoding="utf-8")


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def find_workspace_dirs(root: Path, patterns: Iterable[str]) -> list[Path]:
    """Expand workspace glob *patterns* relative to *root*.

    Patterns prefixed with ``!`` exclude matches. Only directories holding
    a ``package.json`` are returned; ``node_modules`` is never entered.
    """
    included: set[Path] = set()
    excluded: set[Path] = set()
    for pattern in patterns:
        target = excluded if pattern.startswith("!") else included
        cleaned = pattern.lstrip("!").strip().rstrip("/")
        if cleaned.startswith("./"):
            cleaned = cleaned[2:]
        if not cleaned:
            continue
        for candidate in root.glob(cleaned):
            if not candidate.is_dir():
                continue
            relative = candidate.relative_to(root)
            if any(part in _SKIP_DIRS for part in relative.parts):
                continue
            if (candidate / MANIFEST_FILENAME).is_file():
                target.add(candidate)
    return sorted(included - excluded)


def find_installed_manifest(start: Path, root: Path, name: str) -> Path | None:
    """Locate ``node_modules/<name>/package.json`` as seen from *start*.

    Mirrors node resolution: look in *start*, then each parent directory up
    to and including *root*.
    """
    current = start.resolve()
    stop = root.resolve()
    while True:
        candidate = current / "node_modules" / name / MANIFEST_FILENAME
        if candidate.is_file():
            return candidate
        if current == stop or current.parent == current:
            return None
        current = current.parent
