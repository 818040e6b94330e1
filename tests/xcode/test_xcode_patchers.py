# SPDX-License-Identifier: MIT
"""Tests for binswap.xcode.patchers."""

from pathlib import Path
from unittest.mock import MagicMock

from binswap.core.context import BoundProduct, SubstitutionPlan
from binswap.core.patcher import FileContentEditor
from binswap.core.target import Product, ProductType, Target
from binswap.xcode.patchers import CocoaPodsSupportFilesPatcher, XcodeLibrariesPatcher


def _framework(name: str) -> Target:
    return Target(name, product=Product(name, ProductType.FRAMEWORK))


class TestXcodeLibrariesPatcher:
    def test_static_libraries_define_modules(self):
        model = MagicMock()
        patcher = XcodeLibrariesPatcher(model)
        kit = Target("Kit", product=Product("Kit", ProductType.STATIC_LIBRARY))

        patcher.patch({"Kit": kit, "Alamofire": _framework("Alamofire")})

        model.set_build_setting.assert_called_once_with("Kit", "DEFINES_MODULE", "YES")

    def test_targets_without_product_are_ignored(self):
        model = MagicMock()
        XcodeLibrariesPatcher(model).patch({"Aggregate": Target("Aggregate")})
        model.set_build_setting.assert_not_called()


class TestCocoaPodsSupportFilesPatcher:
    def _support_dir(self, tmp_path: Path) -> Path:
        folder = tmp_path / "Target Support Files" / "App"
        folder.mkdir(parents=True)
        (folder / "App.debug.xcconfig").write_text(
            'FRAMEWORK_SEARCH_PATHS = $(inherited) "${PODS_CONFIGURATION_BUILD_DIR}/Alamofire"'
            ' "${PODS_CONFIGURATION_BUILD_DIR}/AlamofireImage"\n'
        )
        (folder / "App-frameworks.sh").write_text(
            'install_framework "${BUILT_PRODUCTS_DIR}/Alamofire/Alamofire.framework"\n'
        )
        (folder / "App-umbrella.h").write_text("#import <Alamofire/Alamofire.h>\n")
        return tmp_path / "Target Support Files"

    def _plan(self, artifact: Path) -> SubstitutionPlan:
        alamofire = _framework("Alamofire")
        app = Target("App").link(alamofire)
        return SubstitutionPlan(
            target=app,
            binary_dependencies={"Alamofire": alamofire},
            binary_products=[BoundProduct("Alamofire", alamofire.product, artifact)],
        )

    def test_support_files(self, tmp_path):
        patcher = CocoaPodsSupportFilesPatcher(self._support_dir(tmp_path))
        names = [p.name for p in patcher.support_files(Target("App"))]
        assert names == ["App-frameworks.sh", "App.debug.xcconfig"]
        assert patcher.support_files(Target("Other")) == []

    def test_rewrites_build_dir_references(self, tmp_path):
        """Both build directory variables point at the artifact folder."""
        support_dir = self._support_dir(tmp_path)
        artifact = tmp_path / "bin" / "Alamofire" / "Debug" / "k1"
        patcher = CocoaPodsSupportFilesPatcher(support_dir)
        editor = FileContentEditor()

        for replacement in patcher.prepare_replacements(self._plan(artifact)):
            editor.replace(replacement.replacements, replacement.regex, replacement.file_path)

        xcconfig = (support_dir / "App" / "App.debug.xcconfig").read_text()
        assert f'"{artifact.as_posix()}"' in xcconfig
        # A pod whose name extends the substituted one is untouched
        assert "${PODS_CONFIGURATION_BUILD_DIR}/AlamofireImage" in xcconfig
        script = (support_dir / "App" / "App-frameworks.sh").read_text()
        assert f"{artifact.as_posix()}/Alamofire.framework" in script

    def test_no_products_no_replacements(self, tmp_path):
        patcher = CocoaPodsSupportFilesPatcher(self._support_dir(tmp_path))
        plan = SubstitutionPlan(target=Target("App"), binary_dependencies={})
        assert patcher.prepare_replacements(plan) == []

    def test_missing_support_folder(self, tmp_path):
        patcher = CocoaPodsSupportFilesPatcher(tmp_path / "nowhere")
        assert patcher.prepare_replacements(self._plan(tmp_path)) == []
