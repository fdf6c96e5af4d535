"""Parse ``constraints.yml`` into a :class:`ConstraintsConfig` and apply it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from monoguard.rules.constraints import (
    enforce_peer_presence,
    enforce_workspace_protocol,
    forbid,
    pin_ranges,
    reconcile,
    set_fields,
)
from monoguard.rules.policy import ConsistencyPolicy

if TYPE_CHECKING:
    from pathlib import Path

    from monoguard.graph.project import Project

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})
VALID_SECTIONS: frozenset[str] = frozenset(
    {"version", "consistency", "workspace_protocol", "forbid", "pin", "fields", "peer_presence"}
)

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WorkspaceProtocolConfig:
    ignore: tuple[str, ...] = ()


@dataclass(frozen=True)
class PeerPresenceConfig:
    ignore: tuple[str, ...] = ()
    report_conflicts: bool = False


@dataclass(frozen=True)
class ConstraintsConfig:
    """Every rule section of ``constraints.yml``; ``None`` means the rule is off."""

    consistency: ConsistencyPolicy | None = None
    workspace_protocol: WorkspaceProtocolConfig | None = None
    forbid: tuple[str, ...] = ()
    pin: dict[str, str] = field(default_factory=dict)
    fields: dict[str, Any] = field(default_factory=dict)
    peer_presence: PeerPresenceConfig | None = None

    @property
    def rule_count(self) -> int:
        return sum(
            [
                self.consistency is not None,
                self.workspace_protocol is not None,
                bool(self.forbid),
                bool(self.pin),
                bool(self.fields),
                self.peer_presence is not None,
            ]
        )


# ---------------------------------------------------------------------------
# YAML parsing
# ---------------------------------------------------------------------------


def _string_list(value: object, context: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        msg = f"{context} must be a list"
        raise ValueError(msg)
    return tuple(str(item) for item in value)


def _mapping(value: object, context: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        msg = f"{context} must be a mapping"
        raise ValueError(msg)
    return {str(k): v for k, v in value.items()}


def _parse_consistency(data: object) -> ConsistencyPolicy:
    section = _mapping(data, "consistency")
    unknown = set(section) - {"ignore", "workspace", "external"}
    if unknown:
        msg = f"consistency: unknown keys {sorted(unknown)}"
        raise ValueError(msg)
    try:
        return ConsistencyPolicy.from_options(
            ignore_packages=_string_list(section.get("ignore"), "consistency.ignore"),
            workspace=_mapping(section.get("workspace"), "consistency.workspace"),
            external=_mapping(section.get("external"), "consistency.external"),
        )
    except ValueError as exc:
        msg = f"consistency: {exc}"
        raise ValueError(msg) from exc


def _parse_pin(data: object) -> dict[str, str]:
    pins = _mapping(data, "pin")
    for ident, range_ in pins.items():
        if not isinstance(range_, str):
            msg = f"pin: range for '{ident}' must be a string"
            raise ValueError(msg)
    return pins


def parse_config(data: object) -> ConstraintsConfig:
    """Build a :class:`ConstraintsConfig` from already-parsed YAML data.

    Raises ``ValueError`` on schema errors.
    """
    if not isinstance(data, dict):
        msg = "constraints.yml must be a YAML mapping"
        raise ValueError(msg)

    version = data.get("version")
    if version is None:
        msg = "constraints.yml: missing required 'version' field"
        raise ValueError(msg)
    if version not in SUPPORTED_SCHEMA_VERSIONS:
        expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
        msg = f"constraints.yml: unsupported version {version}, expected one of {expected}"
        raise ValueError(msg)

    unknown = set(data) - VALID_SECTIONS
    if unknown:
        msg = f"constraints.yml: unknown sections {sorted(unknown)}"
        raise ValueError(msg)

    consistency = _parse_consistency(data["consistency"]) if "consistency" in data else None

    workspace_protocol: WorkspaceProtocolConfig | None = None
    if "workspace_protocol" in data:
        section = _mapping(data["workspace_protocol"], "workspace_protocol")
        workspace_protocol = WorkspaceProtocolConfig(
            ignore=_string_list(section.get("ignore"), "workspace_protocol.ignore")
        )

    peer_presence: PeerPresenceConfig | None = None
    if "peer_presence" in data:
        section = _mapping(data["peer_presence"], "peer_presence")
        report_conflicts = section.get("report_conflicts", False)
        if not isinstance(report_conflicts, bool):
            msg = "peer_presence.report_conflicts must be a boolean"
            raise ValueError(msg)
        peer_presence = PeerPresenceConfig(
            ignore=_string_list(section.get("ignore"), "peer_presence.ignore"),
            report_conflicts=report_conflicts,
        )

    return ConstraintsConfig(
        consistency=consistency,
        workspace_protocol=workspace_protocol,
        forbid=_string_list(data.get("forbid"), "forbid"),
        pin=_parse_pin(data.get("pin")),
        fields=_mapping(data.get("fields"), "fields"),
        peer_presence=peer_presence,
    )


def load_config(config_path: Path) -> ConstraintsConfig:
    """Parse ``constraints.yml``.

    Raises ``ValueError`` on unreadable YAML or schema errors.
    """
    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"{config_path.name}: invalid YAML ({exc})"
        raise ValueError(msg) from exc
    return parse_config(data)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


def apply_config(project: Project, config: ConstraintsConfig) -> None:
    """Run every configured rule against *project* in a fixed order.

    Order: forbid, pin, workspace protocol, consistency, peer presence, fields.
    """
    if config.forbid:
        forbid(project, config.forbid)
    if config.pin:
        pin_ranges(project, config.pin)
    if config.workspace_protocol is not None:
        enforce_workspace_protocol(project, config.workspace_protocol.ignore)
    if config.consistency is not None:
        reconcile(project, config.consistency)
    if config.peer_presence is not None:
        enforce_peer_presence(
            project,
            config.peer_presence.ignore,
            report_conflicts=config.peer_presence.report_conflicts,
        )
    if config.fields:
        set_fields(project, config.fields)
