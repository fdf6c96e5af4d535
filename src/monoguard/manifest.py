"""Package manifest contract: dependency types, known fields, read/write helpers."""

from __future__ import annotations

import enum
import json
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pathlib import Path

# ---------------------------------------------------------------------------
# Dependency types
# ---------------------------------------------------------------------------


class DependencyType(enum.Enum):
    """Manifest bucket an edge is declared in."""

    RUNTIME = "dependencies"
    DEV = "devDependencies"
    PEER = "peerDependencies"
    OPTIONAL = "optionalDependencies"

    @classmethod
    def parse(cls, value: str) -> DependencyType:
        """Accept either the bucket name or the short alias (``runtime``, ``dev``...)."""
        for member in cls:
            if value in (member.value, member.name.lower()):
                return member
        msg = f"unknown dependency type '{value}', must be one of {[m.value for m in cls]}"
        raise ValueError(msg)


# ---------------------------------------------------------------------------
# Field contract (https://docs.npmjs.com/files/package.json)
# ---------------------------------------------------------------------------

DEPENDENCY_FIELDS: tuple[str, ...] = tuple(t.value for t in DependencyType)

KNOWN_FIELDS: frozenset[str] = frozenset(
    {
        "name",
        "version",
        "description",
        "keywords",
        "homepage",
        "bugs",
        "license",
        "author",
        "contributors",
        "funding",
        "files",
        "type",
        "packageManager",
        "exports",
        "imports",
        "main",
        "module",
        "browser",
        "types",
        "bin",
        "man",
        "directories",
        "repository",
        "scripts",
        "config",
        "dependenciesMeta",
        "peerDependenciesMeta",
        "bundledDependencies",
        "overrides",
        "resolutions",
        "engines",
        "os",
        "cpu",
        "libc",
        "devEngines",
        "private",
        "publishConfig",
        "workspaces",
        *DEPENDENCY_FIELDS,
    }
)


def read_manifest(path: Path) -> dict[str, Any]:
    """Read a ``package.json`` file.

    Raises ``ValueError`` when the file is not valid JSON or not an object.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"{path}: invalid JSON ({exc.msg} at line {exc.lineno})"
        raise ValueError(msg) from exc
    if not isinstance(data, dict):
        msg = f"{path}: manifest must be a JSON object"
        raise ValueError(msg)
    return data


def write_manifest(path: Path, manifest: dict[str, Any]) -> None:
    """Write *manifest* using the conventional two-space layout with trailing newline."""
    path.write_text(json.dumps(manifest, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def dependency_map(manifest: dict[str, Any], dep_type: DependencyType) -> dict[str, str]:
    """Return the declared ``identity -> range`` map of one bucket (empty if absent)."""
    bucket = manifest.get(dep_type.value)
    if not isinstance(bucket, dict):
        return {}
    return {str(k): str(v) for k, v in bucket.items()}
