"""File path resolution utilities for CLI."""

from pathlib import Path
from typing import Iterable, List
from ...utils.errors import ParseError


def resolve_file_paths(paths: Iterable[str]) -> List[str]:
    """
    Resolve resource document paths against the current directory.

    Args:
        paths: User-provided files or directories

    Returns:
        Absolute paths as strings

    Raises:
        ParseError: If a path does not exist
    """
    resolved = []
    current_dir = Path.cwd()
    for file_path in paths:
        path = Path(file_path)
        if not path.is_absolute():
            path = current_dir / path
        path = path.resolve()
        if not path.exists():
            raise ParseError(f"File not found: {file_path}. Please check the path and try again.")
        resolved.append(str(path))
    return resolved
