# SPDX-License-Identifier: MIT
"""Tests for binswap.core.store."""

import pytest

from binswap.core.errors import ArtifactNotFoundError
from binswap.core.store import BinaryStore
from binswap.core.target import Product, ProductType, Target


def _hashed(name: str, key: str = "k1") -> Target:
    target = Target(name, product=Product(name, ProductType.FRAMEWORK))
    target.cache_key = key
    return target


class TestBinaryStore:
    def test_artifact_path_layout(self, tmp_path):
        store = BinaryStore(tmp_path, "Debug-iphonesimulator")
        assert store.artifact_path(_hashed("Core")) == (
            tmp_path / "Core" / "Debug-iphonesimulator" / "k1"
        )

    def test_unhashed_target(self, tmp_path):
        store = BinaryStore(tmp_path, "Debug")
        with pytest.raises(ArtifactNotFoundError, match="no cache key"):
            store.artifact_path(Target("Core"))
        assert not store.contains(Target("Core"))

    def test_resolve_missing_artifact(self, tmp_path):
        store = BinaryStore(tmp_path, "Debug")
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            store.resolve_artifact_path(_hashed("Core"))
        assert exc_info.value.target == "Core"
        assert exc_info.value.path == tmp_path / "Core" / "Debug" / "k1"

    def test_store_and_resolve(self, tmp_path):
        built = tmp_path / "build" / "Core.framework"
        built.mkdir(parents=True)
        (built / "Core").write_bytes(b"\xcf\xfa\xed\xfe")
        store = BinaryStore(tmp_path / "bin", "Debug")
        core = _hashed("Core")

        path = store.store(core, built.parent)

        assert store.contains(core)
        assert store.resolve_artifact_path(core) == path
        assert (path / "Core.framework" / "Core").read_bytes() == b"\xcf\xfa\xed\xfe"
        assert not list(path.parent.glob(".*.tmp"))

    def test_store_keeps_existing_artifact(self, tmp_path):
        """The same key always names the same artifact."""
        first = tmp_path / "first"
        first.mkdir()
        (first / "marker").write_text("first")
        second = tmp_path / "second"
        second.mkdir()
        (second / "marker").write_text("second")
        store = BinaryStore(tmp_path / "bin", "Debug")
        core = _hashed("Core")

        store.store(core, first)
        path = store.store(core, second)
        assert (path / "marker").read_text() == "first"

    def test_configurations_are_separate(self, tmp_path):
        core = _hashed("Core")
        built = tmp_path / "build"
        built.mkdir()
        BinaryStore(tmp_path / "bin", "Debug").store(core, built)
        assert not BinaryStore(tmp_path / "bin", "Release").contains(core)
