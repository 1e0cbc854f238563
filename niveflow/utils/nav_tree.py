"""Navigation index generation for staged documentation"""

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

NAV_INDEX_FILENAME = "nav.json"


def _is_skipped(entry: Path) -> bool:
    return entry.name.startswith(".") or entry.name == "node_modules"


def build_nav_tree(docs_dir: Path, _root: Path | None = None) -> list[dict[str, Any]]:
    """
    Build the navigation tree for a documentation directory

    Directories come first, then markdown files, each group sorted by name.
    Directories without any markdown file below them are left out.

    Args:
        docs_dir: Directory to index

    Returns:
        List of nodes: {"name", "path", "type"} plus "children" for directories
    """
    root = _root or docs_dir
    directories: list[dict[str, Any]] = []
    files: list[dict[str, Any]] = []

    for entry in sorted(docs_dir.iterdir(), key=lambda p: p.name.lower()):
        if _is_skipped(entry):
            continue

        relative = entry.relative_to(root).as_posix()
        if entry.is_dir():
            children = build_nav_tree(entry, root)
            if children:
                directories.append(
                    {"name": entry.name, "path": relative, "type": "directory", "children": children}
                )
        elif entry.suffix.lower() == ".md":
            files.append({"name": entry.stem, "path": relative, "type": "file"})

    return directories + files


def generate_nav_tree(docs_dir: Path) -> Path:
    """
    Write the navigation index into docs_dir

    Args:
        docs_dir: Staged documentation directory

    Returns:
        Path of the written index file
    """
    tree = build_nav_tree(docs_dir)
    index_path = docs_dir / NAV_INDEX_FILENAME
    index_path.write_text(json.dumps(tree, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"Generated navigation index: {index_path}")
    return index_path
