# SPDX-License-Identifier: MIT
"""Tests for binswap.core.scope."""

import re

import pytest

from binswap.core.graph import ProjectGraph
from binswap.core.scope import ProjectTargetsResolver, TargetScope, TargetSelector
from binswap.core.target import Target


def _project(*names: str) -> ProjectGraph:
    project = ProjectGraph(name="Pods")
    for name in names:
        project.add_target(Target(name))
    return project


class TestTargetScope:
    def test_exact(self):
        scope = TargetScope.exact(["B", "A"])
        assert scope.is_exact
        assert scope.names == frozenset({"A", "B"})
        assert str(scope) == "{A, B}"

    def test_filter(self):
        scope = TargetScope.filter(r"^Firebase", exclude="Tests$")
        assert not scope.is_exact
        assert scope.include == re.compile(r"^Firebase")
        assert str(scope) == "/^Firebase/ except /Tests$/"

    def test_filter_without_exclude(self):
        assert str(TargetScope.filter("^A")) == "/^A/"

    def test_needs_names_or_pattern(self):
        with pytest.raises(ValueError):
            TargetScope()
        with pytest.raises(ValueError):
            TargetScope(names=frozenset({"A"}), include=re.compile("A"))

    def test_exclude_needs_filter(self):
        with pytest.raises(ValueError, match="exclude"):
            TargetScope(names=frozenset({"A"}), exclude=re.compile("A"))


class TestTargetSelector:
    def test_exact_names(self):
        selector = TargetSelector(ProjectTargetsResolver(_project("A", "B", "C")))
        assert set(selector.select(TargetScope.exact({"A", "C"}))) == {"A", "C"}

    def test_unknown_names_are_dropped(self):
        """Unmatched names are not an error."""
        selector = TargetSelector(ProjectTargetsResolver(_project("A")))
        assert set(selector.select(TargetScope.exact({"A", "Missing"}))) == {"A"}

    def test_filter_uses_search(self):
        selector = TargetSelector(
            ProjectTargetsResolver(_project("FirebaseCore", "MyFirebase", "Moya"))
        )
        assert set(selector.select(TargetScope.filter("Firebase"))) == {
            "FirebaseCore",
            "MyFirebase",
        }
        assert set(selector.select(TargetScope.filter("^Firebase"))) == {"FirebaseCore"}

    def test_filter_with_exclude(self):
        selector = TargetSelector(
            ProjectTargetsResolver(_project("Core", "CoreTests", "UI"))
        )
        scope = TargetScope.filter(".*", exclude="Tests$")
        assert set(selector.select(scope)) == {"Core", "UI"}

    def test_exclude_matching_nothing(self):
        selector = TargetSelector(ProjectTargetsResolver(_project("Core", "UI")))
        scope = TargetScope.filter(".*", exclude="^Nothing$")
        assert set(selector.select(scope)) == {"Core", "UI"}

    def test_selection_is_deterministic(self):
        """Same graph and scope give the same set."""
        project = _project("A1", "A2", "B1")
        selector = TargetSelector(ProjectTargetsResolver(project))
        scope = TargetScope.filter("^A")
        assert list(selector.select(scope)) == list(selector.select(scope))
