# SPDX-License-Identifier: MIT
"""Tests for binswap.core.hasher."""

from pathlib import Path

import pytest

from binswap.core.errors import DependencyCycleError, HashComputationError
from binswap.core.hasher import TargetHasher, file_digest
from binswap.core.target import Product, ProductType, Target


def _write(root: Path, rel: str, content: str) -> None:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _graph(root: Path) -> dict[str, Target]:
    """Core <- UI, each with one source file under root."""
    _write(root, "Core/core.swift", "struct Core {}")
    _write(root, "UI/ui.swift", "struct UI {}")
    core = Target(
        "Core",
        product=Product("Core", ProductType.FRAMEWORK),
        sources=["Core/core.swift"],
    )
    ui = Target(
        "UI",
        product=Product("UI", ProductType.FRAMEWORK),
        sources=["UI/ui.swift"],
    ).link(core)
    return {"Core": core, "UI": ui}


class TestFileDigest:
    def test_digest(self, tmp_path):
        path = tmp_path / "a.txt"
        path.write_text("hello")
        assert file_digest(path) == (
            "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824"
        )


class TestTargetHasher:
    def test_hash_sets_keys(self, tmp_path):
        targets = _graph(tmp_path)
        keys = TargetHasher(tmp_path).hash({"UI": targets["UI"]})

        assert set(keys) == {"UI"}
        assert targets["UI"].cache_key == keys["UI"]
        # Dependencies are hashed too
        assert targets["Core"].cache_key is not None
        assert len(keys["UI"]) == 64

    def test_keys_are_stable(self, tmp_path):
        """Same content and flags give the same keys across runs."""
        first = TargetHasher(tmp_path).hash(_graph(tmp_path), ["A=1"])
        second = TargetHasher(tmp_path, jobs=4).hash(_graph(tmp_path), ["A=1"])
        assert first == second

    def test_keys_survive_moving_the_checkout(self, tmp_path):
        first = TargetHasher(tmp_path / "one").hash(_graph(tmp_path / "one"))
        second = TargetHasher(tmp_path / "two").hash(_graph(tmp_path / "two"))
        assert first == second

    def test_source_change_propagates_to_dependents(self, tmp_path):
        before = TargetHasher(tmp_path).hash(_graph(tmp_path))
        targets = _graph(tmp_path)
        _write(tmp_path, "Core/core.swift", "struct Core { let x = 1 }")
        after = TargetHasher(tmp_path).hash(targets)

        assert before["Core"] != after["Core"]
        assert before["UI"] != after["UI"]

    def test_rehash_same_targets_after_edit(self, tmp_path):
        """Keys of an earlier run do not block the next one."""
        targets = _graph(tmp_path)
        hasher = TargetHasher(tmp_path)
        before = hasher.hash(targets)
        _write(tmp_path, "Core/core.swift", "struct Core { let z = 3 }")

        after = hasher.hash(targets)

        assert before["Core"] != after["Core"]
        assert targets["Core"].cache_key == after["Core"]
        assert targets["UI"].cache_key == after["UI"]

    def test_dependent_change_leaves_dependency(self, tmp_path):
        before = TargetHasher(tmp_path).hash(_graph(tmp_path))
        targets = _graph(tmp_path)
        _write(tmp_path, "UI/ui.swift", "struct UI { let y = 2 }")
        after = TargetHasher(tmp_path).hash(targets)

        assert before["Core"] == after["Core"]
        assert before["UI"] != after["UI"]

    def test_build_flags_change_keys(self, tmp_path):
        debug = TargetHasher(tmp_path).hash(_graph(tmp_path), ["-configuration", "Debug"])
        release = TargetHasher(tmp_path).hash(_graph(tmp_path), ["-configuration", "Release"])
        assert debug["Core"] != release["Core"]

    def test_resource_directories_are_hashed(self, tmp_path):
        _write(tmp_path, "Res/Assets/a.json", "{}")
        target = Target("Res", resources=["Res/Assets"])
        before = TargetHasher(tmp_path).hash({"Res": target})

        _write(tmp_path, "Res/Assets/b.json", "[]")
        after = TargetHasher(tmp_path).hash({"Res": Target("Res", resources=["Res/Assets"])})
        assert before["Res"] != after["Res"]

    def test_missing_source(self, tmp_path):
        target = Target("Core", sources=["Core/missing.swift"])
        with pytest.raises(HashComputationError) as exc_info:
            TargetHasher(tmp_path).hash({"Core": target})
        assert exc_info.value.target == "Core"
        assert exc_info.value.path == tmp_path / "Core/missing.swift"

    def test_failure_leaves_no_keys(self, tmp_path):
        targets = _graph(tmp_path)
        targets["UI"].sources.append(Path("UI/missing.swift"))
        with pytest.raises(HashComputationError):
            TargetHasher(tmp_path).hash(targets)
        assert targets["Core"].cache_key is None

    def test_cycle(self, tmp_path):
        a = Target("A")
        b = Target("B").link(a)
        a.link(b)
        with pytest.raises(DependencyCycleError) as exc_info:
            TargetHasher(tmp_path).hash({"A": a})
        assert exc_info.value.cycle == ["A", "B", "A"]
