"""Single-project commands: create meta.json, build the current directory"""

import json
import logging
from pathlib import Path

from niveflow.services.build_dispatcher import META_FILENAME, BuildDispatcher
from niveflow.utils.fs import ignore_names

logger = logging.getLogger(__name__)

PROJECT_OUTPUT_DIRNAME = "_documents"
PROJECT_IGNORE = ("node_modules", ".git", PROJECT_OUTPUT_DIRNAME, ".github", "dist")

DEFAULT_META = {
    "title": "NiveFlow Docs",
    "logo": "NiveFlow",
    "indexPath": "README.md",
    "avatar": "",
}


def init_project(directory: Path) -> bool:
    """
    Create a default meta.json in directory

    Returns:
        True if the file was created, False if it already exists
    """
    meta_path = directory / META_FILENAME
    if meta_path.exists():
        logger.warning(f"{META_FILENAME} already exists: {meta_path}")
        return False

    meta_path.write_text(json.dumps(DEFAULT_META, indent=2) + "\n", encoding="utf-8")
    logger.info(f"Created {meta_path}")
    return True


async def build_project(
    source_dir: Path,
    dispatcher: BuildDispatcher | None = None,
    output_dir: Path | None = None,
) -> Path:
    """
    Build the documentation in source_dir into <source_dir>/_documents

    Args:
        source_dir: Directory holding the markdown files and meta.json
        dispatcher: Build dispatcher (optional, creates new if None)
        output_dir: Output directory override

    Returns:
        The output directory

    Raises:
        BuildError: If staging or the bundler fails
    """
    dispatcher = dispatcher or BuildDispatcher()
    source_dir = source_dir.resolve()
    output_dir = (output_dir or source_dir / PROJECT_OUTPUT_DIRNAME).resolve()

    try:
        await dispatcher.build_directory(
            source_dir.name, source_dir, output_dir, ignore_names(*PROJECT_IGNORE)
        )
    finally:
        dispatcher.clear_docs()

    logger.info(f"Done! Output: {output_dir}")
    return output_dir
