"""Tests for monoguard.rules.policy — default policy and option overlay."""

from __future__ import annotations

import pytest

from monoguard.manifest import DependencyType
from monoguard.rules.policy import ConsistencyPolicy, TypePolicy


class TestDefaults:
    def test_workspace_defaults(self) -> None:
        policy = ConsistencyPolicy()
        assert policy.workspace.allows(DependencyType.RUNTIME)
        assert not policy.workspace.allows(DependencyType.DEV)
        assert not policy.workspace.allows(DependencyType.PEER)
        assert not policy.workspace.allows(DependencyType.OPTIONAL)

    def test_external_defaults(self) -> None:
        policy = ConsistencyPolicy()
        assert policy.external.allows(DependencyType.RUNTIME)
        assert policy.external.allows(DependencyType.DEV)
        assert not policy.external.allows(DependencyType.PEER)

    def test_from_options_without_overrides_equals_defaults(self) -> None:
        assert ConsistencyPolicy.from_options() == ConsistencyPolicy()


class TestOverlay:
    def test_only_named_toggles_change(self) -> None:
        policy = ConsistencyPolicy.from_options(workspace={"peerDependencies": True})
        assert policy.workspace == TypePolicy(runtime=True, dev=False, peer=True)
        assert policy.external == ConsistencyPolicy().external

    def test_short_names_accepted(self) -> None:
        policy = ConsistencyPolicy.from_options(external={"dev": False, "optional": True})
        assert policy.external == TypePolicy(runtime=True, dev=False, optional=True)

    def test_ignore_list_replaces_default(self) -> None:
        policy = ConsistencyPolicy.from_options(ignore_packages=["a", "b", "a"])
        assert policy.ignore_packages == frozenset({"a", "b"})

    def test_non_boolean_rejected(self) -> None:
        with pytest.raises(ValueError, match="must be a boolean"):
            ConsistencyPolicy.from_options(workspace={"dependencies": "yes"})

    def test_for_target(self) -> None:
        policy = ConsistencyPolicy()
        assert policy.for_target(True) is policy.workspace
        assert policy.for_target(False) is policy.external
