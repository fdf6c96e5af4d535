"""Constraint rules, their policy records, and the constraints.yml parser."""

from monoguard.rules.config import ConstraintsConfig, apply_config, load_config, parse_config
from monoguard.rules.constraints import (
    WORKSPACE_PROTOCOL_RANGE,
    Computed,
    Literal,
    enforce_peer_presence,
    enforce_workspace_protocol,
    ensure_dependency_consistency,
    forbid,
    is_workspace_ident,
    pin_ranges,
    reconcile,
    set_fields,
)
from monoguard.rules.policy import ConsistencyPolicy, TypePolicy

__all__ = [
    "WORKSPACE_PROTOCOL_RANGE",
    "Computed",
    "ConsistencyPolicy",
    "ConstraintsConfig",
    "Literal",
    "TypePolicy",
    "apply_config",
    "enforce_peer_presence",
    "enforce_workspace_protocol",
    "ensure_dependency_consistency",
    "forbid",
    "is_workspace_ident",
    "load_config",
    "parse_config",
    "pin_ranges",
    "reconcile",
    "set_fields",
]
