"""Directory copy helpers used when staging documentation"""

import shutil
from collections.abc import Callable, Iterable
from pathlib import Path

IgnoreFn = Callable[[str, list[str]], Iterable[str]]

GIT_METADATA_NAMES = frozenset({".git", ".gitmodules", ".gitignore", ".gitattributes"})


def ignore_hidden(directory: str, names: list[str]) -> set[str]:
    """shutil.copytree ignore callback: dotfiles and node_modules"""
    return {name for name in names if name.startswith(".") or name == "node_modules"}


def ignore_git(directory: str, names: list[str]) -> set[str]:
    """shutil.copytree ignore callback: version-control metadata"""
    return {name for name in names if name in GIT_METADATA_NAMES}


def ignore_names(*ignored: str) -> IgnoreFn:
    """Build a shutil.copytree ignore callback for exact entry names"""
    ignored_set = set(ignored)

    def _ignore(directory: str, names: list[str]) -> set[str]:
        return {name for name in names if name in ignored_set}

    return _ignore


def empty_dir(path: Path) -> None:
    """Create path if needed and remove everything inside it"""
    path.mkdir(parents=True, exist_ok=True)
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()


def replace_tree(src: Path, dest: Path, ignore: IgnoreFn | None = None) -> None:
    """
    Replace dest with a copy of src

    The copy is made into a sibling temporary directory first, so a failed copy
    leaves the existing dest untouched.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    tmp = dest.with_name(f".{dest.name}.tmp")
    if tmp.exists():
        shutil.rmtree(tmp)

    try:
        shutil.copytree(src, tmp, ignore=ignore, symlinks=True)
        if dest.exists():
            shutil.rmtree(dest)
        tmp.rename(dest)
    finally:
        if tmp.exists():
            shutil.rmtree(tmp, ignore_errors=True)


def copy_tree_into(src: Path, dest: Path, ignore: IgnoreFn | None = None) -> None:
    """Copy the contents of src into dest, merging with what is already there"""
    shutil.copytree(src, dest, ignore=ignore, dirs_exist_ok=True)
