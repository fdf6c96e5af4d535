"""Constraint rules over the workspace dependency graph.

Each rule is an independent entry point taking the :class:`Project` plus its
own options.  Rules mutate manifests eagerly, so a caller running several in
sequence sees earlier rules' changes in later ones.  Policy violations are
reported through ``Dependency.error`` / ``Workspace.error`` and never raise.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from monoguard.manifest import KNOWN_FIELDS, DependencyType
from monoguard.rules.policy import ConsistencyPolicy

if TYPE_CHECKING:
    from monoguard.graph.model import Dependency, Workspace
    from monoguard.graph.project import Project

logger = logging.getLogger(__name__)

WORKSPACE_PROTOCOL_RANGE = "workspace:^"

# ---------------------------------------------------------------------------
# Field values for set_fields
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Literal:
    """A field value used as-is."""

    value: Any

    def resolve(self, workspace: Workspace) -> Any:
        return self.value


@dataclass(frozen=True)
class Computed:
    """A field value derived from the workspace it is applied to."""

    fn: Callable[[Workspace], Any]

    def resolve(self, workspace: Workspace) -> Any:
        return self.fn(workspace)


FieldValue = Literal | Computed


def as_field_value(value: Any) -> FieldValue:
    """Wrap a plain value or callable into a :data:`FieldValue`."""
    if isinstance(value, (Literal, Computed)):
        return value
    if callable(value):
        return Computed(value)
    return Literal(value)


# ---------------------------------------------------------------------------
# Identity classifier
# ---------------------------------------------------------------------------


def is_workspace_ident(project: Project, ident: str) -> bool:
    """Return True if *ident* names one of the project's workspaces."""
    return project.workspace(ident=ident) is not None


def _is_ignored(project: Project, dependency: Dependency, ignored: frozenset[str]) -> bool:
    """An edge is ignored when its owner, or the workspace it targets, is ignored."""
    if not ignored:
        return False
    if dependency.workspace.cwd in ignored:
        return True
    target = project.workspace(ident=dependency.ident)
    return target is not None and target.cwd in ignored


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


def reconcile(
    project: Project,
    options: ConsistencyPolicy | Mapping[str, Any] | None = None,
) -> None:
    """Make every eligible edge sharing an identity declare the same range.

    Edges are eligible when their workspace is not ignored and their
    (workspace/external x type) combination is enabled by the policy.  Each
    eligible edge takes the range of every other eligible edge with the same
    identity in enumeration order, so after one pass they all hold the range
    of the last eligible edge visited.
    """
    policy = options if isinstance(options, ConsistencyPolicy) else _policy_from_mapping(options)
    ignored = policy.ignore_packages

    def eligible(dep: Dependency) -> bool:
        if _is_ignored(project, dep, ignored):
            return False
        target_policy = policy.for_target(is_workspace_ident(project, dep.ident))
        return target_policy.allows(dep.type)

    for dependency in project.dependencies():
        if not eligible(dependency):
            continue

        for other in project.dependencies(ident=dependency.ident):
            if not eligible(other):
                continue
            if dependency.range != other.range:
                logger.debug(
                    "%s: %s %s -> %s (from %s)",
                    dependency.workspace.cwd,
                    dependency.ident,
                    dependency.range,
                    other.range,
                    other.workspace.cwd,
                )
            dependency.update(other.range)


ensure_dependency_consistency = reconcile


def _policy_from_mapping(options: Mapping[str, Any] | None) -> ConsistencyPolicy:
    if not options:
        return ConsistencyPolicy()
    ignore = options.get("ignore_packages", options.get("ignorePackages"))
    return ConsistencyPolicy.from_options(
        ignore_packages=ignore,
        workspace=options.get("workspace"),
        external=options.get("external"),
    )


def enforce_workspace_protocol(project: Project, ignore_packages: Iterable[str] = ()) -> None:
    """Point every edge on a workspace at the local workspace protocol."""
    ignored = frozenset(ignore_packages)

    for dependency in project.dependencies():
        if _is_ignored(project, dependency, ignored):
            continue
        if not is_workspace_ident(project, dependency.ident):
            continue
        dependency.update(WORKSPACE_PROTOCOL_RANGE)


def forbid(project: Project, forbidden: Iterable[str]) -> None:
    """Report and remove every edge on a forbidden identity."""
    for ident in forbidden:
        for dependency in project.dependencies(ident=ident):
            dependency.error(f"This workspace is forbidden to depend on {ident}")
            dependency.delete()


def pin_ranges(project: Project, identity_to_range: Mapping[str, str]) -> None:
    """Rewrite every edge on a pinned identity to the given literal range."""
    for ident, range_ in identity_to_range.items():
        for dependency in project.dependencies(ident=ident):
            dependency.update(range_)


def set_fields(project: Project, field_map: Mapping[str, Any]) -> None:
    """Set manifest fields on every workspace.

    Values may be literals, callables taking the workspace, or explicit
    :class:`Literal` / :class:`Computed` wrappers.  A dotted field name such
    as ``engines.node`` addresses a nested key.
    """
    resolved = {name: as_field_value(value) for name, value in field_map.items()}
    for name in resolved:
        if name.split(".", 1)[0] not in KNOWN_FIELDS:
            logger.debug("Setting non-standard manifest field %s", name)

    for workspace in project.workspaces():
        for name, value in resolved.items():
            path = tuple(name.split(".")) if "." in name else name
            workspace.set(path, value.resolve(workspace))


def enforce_peer_presence(
    project: Project,
    ignore_packages: Iterable[str] = (),
    *,
    report_conflicts: bool = False,
) -> None:
    """Declare peer dependencies that a workspace's dependencies require.

    For each non-peer edge with a resolution, every peer it requires that it
    does not already depend on itself must be supplied by the workspace.  The
    range is copied from the non-peer edges on that peer elsewhere in the
    graph; when none exists the workspace is reported.
    """
    ignored = frozenset(ignore_packages)

    for workspace in project.workspaces():
        for dependency in project.dependencies(workspace=workspace):
            if dependency.type is DependencyType.PEER:
                continue

            resolution = dependency.resolution
            if resolution is None:
                continue

            for peer_name in resolution.peer_dependencies:
                if peer_name in ignored:
                    continue
                if peer_name in resolution.dependencies:
                    continue

                suppliers = [
                    other
                    for other in project.dependencies(ident=peer_name)
                    if other.type is not DependencyType.PEER
                ]

                if not suppliers:
                    workspace.error(
                        f"Missing dependency on {peer_name} (required by {dependency.ident})"
                    )

                ranges = list(dict.fromkeys(s.range for s in suppliers))
                if len(ranges) > 1:
                    logger.warning(
                        "%s: suppliers of %s disagree (%s), using %s",
                        workspace.cwd,
                        peer_name,
                        ", ".join(ranges),
                        suppliers[-1].range,
                    )
                    if report_conflicts:
                        workspace.error(
                            f"Conflicting ranges for {peer_name} ({', '.join(ranges)})"
                        )

                # A workspace that itself declares the peer expects an ancestor to
                # provide it, so it only needs it for development.
                own_peer = project.dependency(
                    workspace=workspace, ident=peer_name, dep_type=DependencyType.PEER
                )
                target = DependencyType.DEV if own_peer is not None else DependencyType.RUNTIME

                for supplier in suppliers:
                    workspace.set((target.value, peer_name), supplier.range)
