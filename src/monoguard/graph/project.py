"""In-memory workspace graph and its ``package.json`` loader.

The :class:`Project` is the only data source the constraint rules talk to.
Every query materialises a fresh list derived from the current manifests, so
rules can update or delete edges while iterating a query result.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from monoguard.graph.model import Dependency, ReportedViolation, Resolution, Workspace
from monoguard.manifest import DependencyType, dependency_map, read_manifest, write_manifest

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

ROOT_CWD = "."


class Project:
    """Workspaces of a monorepo plus the resolved metadata of their edges.

    Parameters
    ----------
    manifests:
        Mapping of workspace ``cwd`` (POSIX, relative to the project root) to
        its parsed manifest.  The manifests are owned by the project from now on.
    root:
        Project root on disk.  Used to locate installed packages for external
        resolutions and to persist manifests.
    packages:
        Manifests of installed external packages, keyed by identity.  Takes
        precedence over lookups under ``node_modules``.
    """

    def __init__(
        self,
        manifests: Mapping[str, dict[str, Any]],
        *,
        root: Path | None = None,
        packages: Mapping[str, dict[str, Any]] | None = None,
    ) -> None:
        self.root = root
        self._workspaces: dict[str, Workspace] = {
            cwd: Workspace(self, cwd, manifest) for cwd, manifest in sorted(manifests.items())
        }
        self._original: dict[str, dict[str, Any]] = {
            cwd: copy.deepcopy(ws.manifest) for cwd, ws in self._workspaces.items()
        }
        self._packages: dict[str, dict[str, Any]] = dict(packages or {})
        self._installed_cache: dict[tuple[str, str], dict[str, Any] | None] = {}
        self.violations: list[ReportedViolation] = []

    # -- loading / saving ---------------------------------------------------

    @classmethod
    def load(cls, root: Path) -> Project:
        """Load the root ``package.json`` and every workspace it declares.

        Patterns prefixed with ``!`` exclude their matches, and nothing below a
        ``node_modules`` directory is ever treated as a workspace.

        Raises ``ValueError`` when the root manifest is missing or a manifest
        cannot be parsed.
        """
        root_manifest_path = root / "package.json"
        if not root_manifest_path.is_file():
            msg = f"{root}: no package.json found"
            raise ValueError(msg)

        root_manifest = read_manifest(root_manifest_path)
        manifests: dict[str, dict[str, Any]] = {ROOT_CWD: root_manifest}

        patterns = _workspace_patterns(root_manifest)
        excluded = {
            candidate.relative_to(root).as_posix()
            for pattern in patterns
            if pattern.startswith("!")
            for candidate in root.glob(pattern[1:])
        }

        for pattern in patterns:
            if pattern.startswith("!"):
                continue
            for candidate in sorted(root.glob(pattern)):
                relative = candidate.relative_to(root)
                if "node_modules" in relative.parts:
                    continue
                cwd = relative.as_posix()
                if cwd in manifests or cwd in excluded:
                    continue
                manifest_path = candidate / "package.json"
                if not manifest_path.is_file():
                    continue
                manifests[cwd] = read_manifest(manifest_path)

        logger.debug("Loaded %d workspaces from %s", len(manifests), root)
        return cls(manifests, root=root)

    def changed_workspaces(self) -> list[Workspace]:
        """Workspaces whose manifest differs from the one originally loaded."""
        return [ws for cwd, ws in self._workspaces.items() if ws.manifest != self._original[cwd]]

    def original_manifest(self, workspace: Workspace) -> dict[str, Any]:
        return self._original[workspace.cwd]

    def save(self) -> list[Path]:
        """Write every changed manifest back to disk and return the written paths."""
        if self.root is None:
            msg = "cannot save a project that was not loaded from disk"
            raise ValueError(msg)

        written: list[Path] = []
        for ws in self.changed_workspaces():
            path = self.root / ws.cwd / "package.json"
            write_manifest(path, ws.manifest)
            self._original[ws.cwd] = copy.deepcopy(ws.manifest)
            written.append(path)
            logger.info("Updated %s", path)
        return written

    # -- queries ------------------------------------------------------------

    def workspaces(self) -> list[Workspace]:
        return list(self._workspaces.values())

    def workspace(self, *, ident: str | None = None, cwd: str | None = None) -> Workspace | None:
        """Return the workspace matching every given criterion, or ``None``."""
        if cwd is not None:
            ws = self._workspaces.get(cwd)
            if ws is None or (ident is not None and ws.ident != ident):
                return None
            return ws
        if ident is None:
            return None
        for ws in self._workspaces.values():
            if ws.ident == ident:
                return ws
        return None

    def dependencies(
        self,
        *,
        ident: str | None = None,
        workspace: Workspace | None = None,
        dep_type: DependencyType | None = None,
    ) -> list[Dependency]:
        """Return a snapshot of the edges matching the given filters.

        Ordering: workspaces by ``cwd``, then bucket order of
        :class:`DependencyType`, then declaration order in the manifest.
        """
        sources = [workspace] if workspace is not None else self._workspaces.values()
        types = [dep_type] if dep_type is not None else list(DependencyType)

        result: list[Dependency] = []
        for ws in sources:
            for t in types:
                for dep_ident, dep_range in dependency_map(ws.manifest, t).items():
                    if ident is not None and dep_ident != ident:
                        continue
                    result.append(Dependency(self, ws, dep_ident, t, dep_range))
        return result

    def dependency(
        self, *, workspace: Workspace, ident: str, dep_type: DependencyType
    ) -> Dependency | None:
        found = self.dependencies(ident=ident, workspace=workspace, dep_type=dep_type)
        return found[0] if found else None

    # -- resolutions --------------------------------------------------------

    def resolve(self, dependency: Dependency) -> Resolution | None:
        """Resolved metadata of *dependency*'s target, or ``None`` if unknown."""
        target = self.workspace(ident=dependency.ident)
        if target is not None:
            manifest: dict[str, Any] | None = target.manifest
        elif dependency.ident in self._packages:
            manifest = self._packages[dependency.ident]
        else:
            manifest = self._installed_manifest(dependency.workspace, dependency.ident)

        if manifest is None:
            return None
        return Resolution(
            dependencies=dependency_map(manifest, DependencyType.RUNTIME),
            peer_dependencies=dependency_map(manifest, DependencyType.PEER),
        )

    def _installed_manifest(self, workspace: Workspace, ident: str) -> dict[str, Any] | None:
        """Find ``node_modules/<ident>/package.json`` from *workspace* up to the root."""
        if self.root is None:
            return None

        key = (workspace.cwd, ident)
        if key in self._installed_cache:
            return self._installed_cache[key]

        manifest: dict[str, Any] | None = None
        directory = (self.root / workspace.cwd).resolve()
        top = self.root.resolve()
        while True:
            candidate = directory / "node_modules" / ident / "package.json"
            if candidate.is_file():
                try:
                    manifest = read_manifest(candidate)
                except (OSError, ValueError):
                    logger.warning("Cannot read installed manifest %s", candidate)
                break
            if directory == top or directory.parent == directory:
                break
            directory = directory.parent

        self._installed_cache[key] = manifest
        return manifest

    # -- reporting ----------------------------------------------------------

    def report(self, workspace: Workspace, ident: str | None, message: str) -> None:
        self.violations.append(ReportedViolation(workspace.cwd, ident, message))
        logger.debug("%s: %s", workspace.cwd, message)


def _workspace_patterns(root_manifest: dict[str, Any]) -> list[str]:
    """Extract workspace globs from either the array or the ``{packages: [...]}`` form."""
    raw = root_manifest.get("workspaces")
    if isinstance(raw, dict):
        raw = raw.get("packages")
    if raw is None:
        return []
    if not isinstance(raw, list):
        msg = "package.json: 'workspaces' must be a list of globs"
        raise ValueError(msg)
    return [str(p) for p in raw]
