"""Resolution of project identifiers to session log directories."""

from __future__ import annotations

import re
from pathlib import Path

from loguru import logger

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9._-]+$")


class InvalidIdentifierError(ValueError):
    """Raised when an identifier contains characters outside the allow-list."""


class ProjectNotFoundError(LookupError):
    """Raised when no project directory matches an identifier."""

    def __init__(
        self,
        identifier: str,
        base_dir: Path,
        candidates: list[str],
        message: str | None = None,
    ) -> None:
        super().__init__(message or f"No project matching '{identifier}' under {base_dir}")
        self.identifier = identifier
        self.base_dir = base_dir
        self.candidates = candidates


class AmbiguousProjectError(ProjectNotFoundError):
    """Raised when an identifier matches more than one project directory."""

    def __init__(self, identifier: str, base_dir: Path, candidates: list[str]) -> None:
        message = f"Project identifier '{identifier}' is ambiguous under {base_dir}"
        super().__init__(identifier, base_dir, candidates, message)


def validate_identifier(value: str, kind: str = "identifier") -> str:
    """Return `value` unchanged if it is safe to use as a path component.

    Only alphanumerics, dot, dash and underscore are accepted; `.` and `..`
    are rejected.

    Raises:
        InvalidIdentifierError: If the value fails the allow-list.
    """
    if not _IDENTIFIER_RE.match(value) or value in {".", ".."}:
        raise InvalidIdentifierError(
            f"Invalid {kind} '{value}': only letters, digits, '.', '-' and '_' are allowed"
        )
    return value


def list_projects(base_dir: Path) -> list[str]:
    """Return the sorted names of project directories under `base_dir`."""
    if not base_dir.is_dir():
        return []
    return sorted(path.name for path in base_dir.iterdir() if path.is_dir())


def resolve_project_dir(identifier: str, base_dir: Path) -> Path:
    """Resolve a project identifier to its log directory.

    Resolution order:
    1. Exact directory name under `base_dir`.
    2. The single directory whose name ends with `-<identifier>`; project
       directories are named after the absolute project path with `/`
       replaced by `-`, so the identifier is usually the last path segment.

    Raises:
        InvalidIdentifierError: If the identifier fails the allow-list.
        AmbiguousProjectError: If several directories match by suffix.
        ProjectNotFoundError: If nothing matches.
    """
    validate_identifier(identifier, "project identifier")
    base_dir = base_dir.expanduser()

    exact = base_dir / identifier
    if exact.is_dir():
        logger.debug("Resolved project {id} to {path}", id=identifier, path=exact)
        return exact

    candidates = list_projects(base_dir)
    suffix = f"-{identifier}"
    matches = [name for name in candidates if name.endswith(suffix)]

    if len(matches) == 1:
        resolved = base_dir / matches[0]
        logger.debug("Resolved project {id} to {path}", id=identifier, path=resolved)
        return resolved
    if len(matches) > 1:
        raise AmbiguousProjectError(identifier, base_dir, matches)
    raise ProjectNotFoundError(identifier, base_dir, candidates)
