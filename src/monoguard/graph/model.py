"""Graph entities: workspaces, dependency edges, resolutions, reported violations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from monoguard.manifest import DependencyType

if TYPE_CHECKING:
    from monoguard.graph.project import Project

FieldPath = str | tuple[str, ...]


def _split_path(path: FieldPath) -> tuple[str, ...]:
    if isinstance(path, str):
        return (path,)
    if not path:
        msg = "field path must not be empty"
        raise ValueError(msg)
    return tuple(path)


@dataclass(frozen=True)
class Resolution:
    """Dependencies and peer dependencies of an edge's target, as resolved."""

    dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ReportedViolation:
    """A message recorded against a workspace, or against one of its edges."""

    workspace_cwd: str
    ident: str | None
    message: str


class Workspace:
    """A local package of the monorepo and its mutable manifest."""

    def __init__(self, project: Project, cwd: str, manifest: dict[str, Any]) -> None:
        self._project = project
        self.cwd = cwd
        self.manifest = manifest

    def __repr__(self) -> str:
        return f"Workspace(cwd={self.cwd!r}, ident={self.ident!r})"

    @property
    def ident(self) -> str | None:
        name = self.manifest.get("name")
        return str(name) if name is not None else None

    def get(self, path: FieldPath) -> Any:
        """Return the value at *path*, or ``None`` when any segment is missing."""
        node: Any = self.manifest
        for key in _split_path(path):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node

    def set(self, path: FieldPath, value: Any) -> None:
        """Set *path* to *value*, creating intermediate mappings as needed.

        An existing key is overwritten in place, so a dependency map never
        ends up with the same identity twice.
        """
        keys = _split_path(path)
        node = self.manifest
        for key in keys[:-1]:
            child = node.get(key)
            if child is None:
                child = {}
                node[key] = child
            elif not isinstance(child, dict):
                msg = f"{self.cwd}: cannot set {'.'.join(keys)}, '{key}' is not a mapping"
                raise ValueError(msg)
            node = child
        node[keys[-1]] = value

    def unset(self, path: FieldPath) -> None:
        """Remove *path*; empty parent mappings are dropped as well."""
        keys = _split_path(path)
        parents: list[dict[str, Any]] = [self.manifest]
        for key in keys[:-1]:
            child = parents[-1].get(key)
            if not isinstance(child, dict):
                return
            parents.append(child)
        parents[-1].pop(keys[-1], None)
        for depth in range(len(parents) - 1, 0, -1):
            if parents[depth]:
                break
            del parents[depth - 1][keys[depth - 1]]

    def error(self, message: str) -> None:
        self._project.report(self, None, message)


class Dependency:
    """A declared edge ``(workspace, ident, type) -> range``.

    Edges are views over the owning manifest: ``update`` and ``delete`` write
    straight through to it.
    """

    def __init__(
        self,
        project: Project,
        workspace: Workspace,
        ident: str,
        dep_type: DependencyType,
        range_: str,
    ) -> None:
        self._project = project
        self.workspace = workspace
        self.ident = ident
        self.type = dep_type
        self.range = range_

    def __repr__(self) -> str:
        return (
            f"Dependency({self.workspace.cwd!r} -> {self.ident}@{self.range}, "
            f"{self.type.value})"
        )

    @property
    def resolution(self) -> Resolution | None:
        return self._project.resolve(self)

    def update(self, range_: str) -> None:
        self.workspace.set((self.type.value, self.ident), range_)
        self.range = range_

    def delete(self) -> None:
        self.workspace.unset((self.type.value, self.ident))

    def error(self, message: str) -> None:
        self._project.report(self.workspace, self.ident, message)
