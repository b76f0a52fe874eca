"""File discovery and interactive subset selection."""

from __future__ import annotations

from pathlib import Path

_WILDCARDS = "*?["


def discover_files(root: Path, pattern: str) -> list[Path]:
    """Return files under ``root`` matching the glob, in stable enumeration order.

    An absolute pattern such as ``C:\\src\\**\\*.cs`` ignores ``root`` and is matched
    from its longest wildcard-free prefix.
    """

    if not pattern.strip():
        raise ValueError("File pattern must not be empty.")
    if Path(pattern).is_absolute():
        root, pattern = split_absolute_pattern(Path(pattern))
    if not root.is_dir():
        raise ValueError(f"Search root is not a directory: {root}")
    matches = {path for path in root.glob(pattern) if path.is_file()}
    return sorted(matches, key=lambda path: path.relative_to(root).as_posix())


def split_absolute_pattern(pattern: Path) -> tuple[Path, str]:
    """Split ``/abs/dir/**/*.cs`` into ``(Path("/abs/dir"), "**/*.cs")``."""

    parts = pattern.parts
    for index, part in enumerate(parts):
        if any(char in part for char in _WILDCARDS):
            return Path(*parts[:index]), "/".join(parts[index:])
    return pattern.parent, pattern.name


def parse_selection(text: str, count: int) -> list[int]:
    """Parse ``"all"`` or ``"1,3-5"`` into sorted zero-based indexes.

    Numbers are one-based as shown to the user. Duplicates collapse.
    """

    normalized = text.strip().lower()
    if normalized in {"", "all", "*"}:
        return list(range(count))

    selected: set[int] = set()
    for part in normalized.split(","):
        token = part.strip()
        if not token:
            continue
        if "-" in token:
            start_raw, end_raw = token.split("-", 1)
            start, end = _parse_number(start_raw, count), _parse_number(end_raw, count)
            if start > end:
                raise ValueError(f"Invalid range {token!r}: start is after end.")
            selected.update(range(start - 1, end))
        else:
            selected.add(_parse_number(token, count) - 1)

    if not selected:
        raise ValueError("Selection is empty.")
    return sorted(selected)


def _parse_number(raw: str, count: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError as error:
        raise ValueError(f"Invalid selection number: {raw.strip()!r}") from error
    if value < 1 or value > count:
        raise ValueError(f"Selection number out of range 1-{count}: {value}")
    return value
