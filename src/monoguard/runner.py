"""Check orchestrator: load the project and constraints, apply rules, format results."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from monoguard.graph.project import Project
from monoguard.rules.config import apply_config, load_config

if TYPE_CHECKING:
    from pathlib import Path

    from monoguard.graph.model import ReportedViolation

DEFAULT_CONFIG_NAME = "constraints.yml"

_MISSING = object()


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConstraintsError(Exception):
    """Raised when the constraints configuration or a manifest cannot be loaded or written."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ManifestChange:
    """A single field that a rule changed.

    *kind* is ``"added"``, ``"removed"`` or ``"changed"``; the absent side of an
    addition or removal is ``None``, which is distinct from a JSON ``null`` value.
    """

    workspace_cwd: str
    path: tuple[str, ...]
    before: Any
    after: Any
    kind: str = "changed"


@dataclass
class CheckResult:
    """Result of a check run."""

    violations: list[ReportedViolation] = field(default_factory=list)
    changes: list[ManifestChange] = field(default_factory=list)
    rules_evaluated: int = 0
    workspaces_checked: int = 0
    fixed: bool = False
    elapsed_ms: float = 0.0


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def check(
    project_root: Path,
    *,
    config_path: Path | None = None,
    fix: bool = False,
) -> CheckResult:
    """Apply the configured constraints to the project at *project_root*.

    Parameters
    ----------
    project_root:
        Directory holding the root ``package.json``.
    config_path:
        Optional explicit path to ``constraints.yml``.  When *None* the file
        is looked up at the project root.
    fix:
        When *True*, manifests changed by the rules are written back to disk.

    Raises
    ------
    ConstraintsError
        When the configuration is invalid or a manifest cannot be read.
    """
    start = time.monotonic()

    if config_path is None:
        config_path = project_root / DEFAULT_CONFIG_NAME

    if not config_path.is_file():
        elapsed = (time.monotonic() - start) * 1000
        return CheckResult(elapsed_ms=elapsed)

    try:
        config = load_config(config_path)
    except ValueError as exc:
        msg = f"Invalid constraints configuration: {exc}"
        raise ConstraintsError(msg) from exc

    try:
        project = Project.load(project_root)
    except (OSError, ValueError) as exc:
        msg = f"Cannot load workspaces: {exc}"
        raise ConstraintsError(msg) from exc

    apply_config(project, config)

    changes: list[ManifestChange] = []
    for ws in project.changed_workspaces():
        changes.extend(diff_manifest(ws.cwd, project.original_manifest(ws), ws.manifest))

    if fix and changes:
        try:
            project.save()
        except OSError as exc:
            msg = f"Cannot write manifests: {exc}"
            raise ConstraintsError(msg) from exc

    elapsed = (time.monotonic() - start) * 1000
    return CheckResult(
        violations=list(project.violations),
        changes=changes,
        rules_evaluated=config.rule_count,
        workspaces_checked=len(project.workspaces()),
        fixed=fix,
        elapsed_ms=elapsed,
    )


def diff_manifest(
    cwd: str,
    before: dict[str, Any],
    after: dict[str, Any],
    prefix: tuple[str, ...] = (),
) -> list[ManifestChange]:
    """List leaf-level differences between two manifests, descending into mappings."""
    changes: list[ManifestChange] = []
    keys = list(dict.fromkeys([*before, *after]))
    for key in keys:
        old = before.get(key, _MISSING)
        new = after.get(key, _MISSING)
        if old == new:
            continue
        path = (*prefix, key)
        if old is _MISSING:
            changes.append(ManifestChange(cwd, path, None, new, kind="added"))
            continue
        if new is _MISSING:
            changes.append(ManifestChange(cwd, path, old, None, kind="removed"))
            continue
        if isinstance(old, dict) and isinstance(new, dict):
            changes.extend(diff_manifest(cwd, old, new, path))
            continue
        changes.append(ManifestChange(cwd, path, old, new))
    return changes


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _describe_change(change: ManifestChange) -> str:
    path = ".".join(change.path)
    if change.kind == "added":
        return f"{change.workspace_cwd}: + {path} = {json.dumps(change.after)}"
    if change.kind == "removed":
        return f"{change.workspace_cwd}: - {path}"
    return (
        f"{change.workspace_cwd}: ~ {path} "
        f"{json.dumps(change.before)} → {json.dumps(change.after)}"
    )


def format_rich(result: CheckResult) -> str:
    """Format a CheckResult as human-readable text.

    Example output::

        Rules: 3 configured
        Workspaces: 4 checked

        ✗ packages/app
          This workspace is forbidden to depend on left-pad

        Changes (pending, run with --fix):
          packages/app: ~ dependencies.react "^17.0.0" → "^18.2.0"

        1 violations, 1 changes (3 rules evaluated, 0.0s)
    """
    lines: list[str] = [
        f"Rules: {result.rules_evaluated} configured",
        f"Workspaces: {result.workspaces_checked} checked",
        "",
    ]

    for v in result.violations:
        lines.append(f"✗ {v.workspace_cwd}")
        lines.append(f"  {v.message}")
        lines.append("")

    if result.changes:
        header = "Changes (applied):" if result.fixed else "Changes (pending, run with --fix):"
        lines.append(header)
        lines.extend(f"  {_describe_change(c)}" for c in result.changes)
        lines.append("")

    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    if result.violations or result.changes:
        lines.append(
            f"{len(result.violations)} violations, {len(result.changes)} changes "
            f"({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
    else:
        lines.append(
            f"✓ All constraints satisfied ({result.rules_evaluated} rules evaluated, "
            f"{elapsed_str})"
        )

    return "\n".join(lines)


def format_json(result: CheckResult) -> str:
    """Format a CheckResult as structured JSON with ``violations``, ``changes``, ``summary``."""
    output: dict[str, object] = {
        "violations": [
            {"workspace": v.workspace_cwd, "ident": v.ident, "message": v.message}
            for v in result.violations
        ],
        "changes": [
            {
                "workspace": c.workspace_cwd,
                "path": list(c.path),
                "before": c.before,
                "after": c.after,
                "kind": c.kind,
            }
            for c in result.changes
        ],
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "workspaces_checked": result.workspaces_checked,
            "violations_count": len(result.violations),
            "changes_count": len(result.changes),
            "fixed": result.fixed,
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: CheckResult) -> str:
    """One line per violation: ``workspace:ident:message`` (empty ident for workspace reports)."""
    return "\n".join(f"{v.workspace_cwd}:{v.ident or ''}:{v.message}" for v in result.violations)
