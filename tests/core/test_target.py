# SPDX-License-Identifier: MIT
"""Tests for binswap.core.target."""

from pathlib import Path

import pytest

from binswap.core.errors import HashComputationError
from binswap.core.target import BinaryLink, Product, ProductType, Target


class TestProduct:
    def test_products_are_values(self):
        a = Product("Core", ProductType.FRAMEWORK)
        b = Product("Core", ProductType.FRAMEWORK)
        assert a == b
        assert hash(a) == hash(b)


class TestBinaryLink:
    def test_dict_round_trip(self):
        link = BinaryLink("Core", ProductType.FRAMEWORK, Path("/bin/Core/Debug/k"))
        assert BinaryLink.from_dict(link.to_dict()) == link


class TestTarget:
    def test_creation(self):
        target = Target("Core", sources=["Core/a.swift"], resources=["Core/R.bundle"])
        assert target.name == "Core"
        assert target.product is None
        assert target.sources == [Path("Core/a.swift")]
        assert target.resources == [Path("Core/R.bundle")]
        assert target.dependencies == {}
        assert target.binary_links == []
        assert target.cache_key is None

    def test_link_is_fluent_and_deduplicates(self):
        core = Target("Core")
        ui = Target("UI")
        app = Target("App").link(core, ui).link(core)
        assert list(app.dependencies) == ["Core", "UI"]

    def test_cache_key_is_write_once(self):
        """A key set for a run cannot change within that run."""
        target = Target("Core")
        target.cache_key = "abc"
        target.cache_key = "abc"
        with pytest.raises(HashComputationError, match="already set"):
            target.cache_key = "def"
        assert target.cache_key == "abc"

    def test_resource_bundle_names(self):
        target = Target(
            "UI",
            resources=["UI/Assets.xcassets", "UI/UI_Resources.bundle"],
            built_resources=["Core_Resources.bundle"],
        )
        assert target.resource_bundle_names() == {"UI_Resources", "Core_Resources"}

    def test_reset_cache_key(self):
        """A new run may assign a different key."""
        target = Target("Core")
        target.cache_key = "abc"
        target.reset_cache_key()
        assert target.cache_key is None
        target.cache_key = "def"
        assert target.cache_key == "def"

    def test_identity_is_name(self):
        assert Target("Core") == Target("Core")
        assert len({Target("Core"), Target("Core")}) == 1
        assert Target("Core") != Target("UI")
