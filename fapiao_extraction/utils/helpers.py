"""
Helper Utilities Module.

This module provides common utility functions used throughout the
fapiao extraction system. Functions here should be generic and
reusable across different modules.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - generate_timestamp: Generate formatted timestamps
    - validate_file_exists: Check a path is a regular file
    - chunked: Split a sequence into fixed-size batches
    - parse_number: Parse a numeric field string
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, TypeVar, Union

T = TypeVar('T')


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Example:
        >>> ensure_directory("outputs/reports")
        PosixPath('outputs/reports')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath.

    Returns the extension in lowercase, including the dot.
    Returns empty string if no extension exists.

    Example:
        >>> get_file_extension("invoice.PDF")
        '.pdf'
    """
    return Path(filepath).suffix.lower()


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.
    """
    return datetime.now().strftime(format_str)


def validate_file_exists(filepath: Union[str, Path]) -> bool:
    """
    Check if a file exists and is a regular file.

    Args:
        filepath: Path to check.

    Returns:
        True if file exists and is a regular file.
    """
    path = Path(filepath)
    return path.exists() and path.is_file()


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Yield consecutive batches of at most ``size`` items.

    Example:
        >>> list(chunked([1, 2, 3], 2))
        [[1, 2], [3]]
    """
    if size < 1:
        raise ValueError(f"Batch size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def parse_number(value: Optional[str]) -> Optional[float]:
    """
    Parse a numeric field string into a float.

    Thousands separators and currency glyphs are ignored.

    Args:
        value: String such as "1,234.50" or "¥9.08".

    Returns:
        Parsed float, or None if the value is empty or not numeric.
    """
    if value is None:
        return None
    cleaned = re.sub(r'[,，\s￥¥]', '', str(value))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None
