"""Per-type inclusion policy for the consistency reconciler.

Defaults are spelled out as dataclass defaults; :meth:`ConsistencyPolicy.from_options`
overlays caller options on top of them one toggle at a time.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from monoguard.manifest import DependencyType

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


@dataclass(frozen=True)
class TypePolicy:
    """Which dependency types take part in enforcement."""

    runtime: bool = True
    dev: bool = False
    peer: bool = False
    optional: bool = False

    def allows(self, dep_type: DependencyType) -> bool:
        if dep_type is DependencyType.RUNTIME:
            return self.runtime
        if dep_type is DependencyType.DEV:
            return self.dev
        if dep_type is DependencyType.PEER:
            return self.peer
        return self.optional

    def merged(self, overrides: Mapping[str, Any] | None) -> TypePolicy:
        """Return a copy with the toggles named in *overrides* replaced.

        Keys may be bucket names (``devDependencies``) or short names (``dev``).
        Raises ``ValueError`` on an unknown key or a non-boolean value.
        """
        if not overrides:
            return self
        changes: dict[str, bool] = {}
        for key, value in overrides.items():
            dep_type = DependencyType.parse(str(key))
            if not isinstance(value, bool):
                msg = f"policy toggle '{key}' must be a boolean, got {value!r}"
                raise ValueError(msg)
            changes[dep_type.name.lower()] = value
        return replace(self, **changes)


DEFAULT_WORKSPACE_POLICY = TypePolicy(runtime=True, dev=False, peer=False)
DEFAULT_EXTERNAL_POLICY = TypePolicy(runtime=True, dev=True, peer=False)


@dataclass(frozen=True)
class ConsistencyPolicy:
    """Resolved options of the consistency reconciler."""

    ignore_packages: frozenset[str] = frozenset()
    workspace: TypePolicy = DEFAULT_WORKSPACE_POLICY
    external: TypePolicy = DEFAULT_EXTERNAL_POLICY

    @classmethod
    def from_options(
        cls,
        *,
        ignore_packages: Iterable[str] | None = None,
        workspace: Mapping[str, Any] | None = None,
        external: Mapping[str, Any] | None = None,
    ) -> ConsistencyPolicy:
        """Overlay caller options onto the defaults.

        Toggles that are not mentioned keep their default.  The ignore list
        replaces the (empty) default list.
        """
        return cls(
            ignore_packages=frozenset(ignore_packages or ()),
            workspace=DEFAULT_WORKSPACE_POLICY.merged(workspace),
            external=DEFAULT_EXTERNAL_POLICY.merged(external),
        )

    def for_target(self, is_workspace: bool) -> TypePolicy:
        return self.workspace if is_workspace else self.external
