import json

import pytest

from drgmint.lint_context import LintCtxt, PakReader
from drgmint.lints_assets import (
    SplitAssetPair,
    SplitAssetPairsLint,
    UnmodifiedGameAssetsLint,
)
from drgmint.providers import ModSpecification


class FakePak(PakReader):
    def __init__(self, stream):
        stream.seek(0)
        doc = json.loads(stream.read())
        self._mount = doc["mount"]
        self._version = doc.get("version", 11)
        self._files = doc["files"]

    @property
    def mount_point(self):
        return self._mount

    @property
    def version(self):
        return self._version

    def files(self):
        return list(self._files)

    def read_file(self, path, reader):
        return self._files[path].encode()


def write_pak(path, files, mount="../../../"):
    path.write_text(json.dumps({"mount": mount, "files": files}))
    return path


SPEC_A = ModSpecification("mod-a")
SPEC_B = ModSpecification("mod-b")


def test_split_asset_pairs_reports_missing_halves(tmp_path):
    a = write_pak(
        tmp_path / "a.pak",
        {
            "fsd/content/a.uasset": "1",
            "fsd/content/a.uexp": "2",
            "fsd/content/b.uasset": "3",
            "FSD/Content/C.uexp": "4",
        },
    )
    b = write_pak(
        tmp_path / "b.pak",
        {"fsd/content/x.uasset": "1", "fsd/content/x.uexp": "2"},
    )
    lcx = LintCtxt([(SPEC_A, a), (SPEC_B, b)], None, FakePak)
    result = SplitAssetPairsLint().check_mods(lcx)
    assert result == {
        SPEC_A: {
            "fsd/content/b.uasset": SplitAssetPair.MISSING_UEXP,
            "fsd/content/c.uexp": SplitAssetPair.MISSING_UASSET,
        }
    }


def test_split_asset_pairs_ignores_other_extensions(tmp_path):
    a = write_pak(
        tmp_path / "a.pak",
        {"fsd/content/a.ubulk": "1", "fsd/content/noext": "2"},
    )
    lcx = LintCtxt([(SPEC_A, a)], None, FakePak)
    assert SplitAssetPairsLint().check_mods(lcx) == {}


def test_split_asset_pairs_bad_mount_raises(tmp_path):
    a = write_pak(tmp_path / "a.pak", {"a.uasset": "1"}, mount="/elsewhere/")
    lcx = LintCtxt([(SPEC_A, a)], None, FakePak)
    with pytest.raises(ValueError, match="prefix does not match"):
        SplitAssetPairsLint().check_mods(lcx)


def test_unmodified_game_assets_finds_identical_files(tmp_path):
    game = write_pak(
        tmp_path / "game.pak",
        {"fsd/content/a.uasset": "orig-a", "fsd/content/b.uasset": "orig-b"},
    )
    a = write_pak(
        tmp_path / "a.pak",
        {"fsd/content/a.uasset": "orig-a", "fsd/content/b.uasset": "changed"},
    )
    b = write_pak(tmp_path / "b.pak", {"fsd/content/b.uasset": "also-changed"})
    lcx = LintCtxt([(SPEC_A, a), (SPEC_B, b)], game, FakePak)
    result = UnmodifiedGameAssetsLint().check_mods(lcx)
    assert result == {SPEC_A: {"fsd/content/a.uasset"}}


def test_unmodified_game_assets_keys_are_not_lowercased(tmp_path):
    game = write_pak(tmp_path / "game.pak", {"FSD/Content/A.uasset": "same"})
    a = write_pak(tmp_path / "a.pak", {"FSD/Content/A.uasset": "same"})
    lcx = LintCtxt([(SPEC_A, a)], game, FakePak)
    assert UnmodifiedGameAssetsLint().check_mods(lcx) == {}


def test_unmodified_game_assets_requires_game_pak(tmp_path):
    a = write_pak(tmp_path / "a.pak", {"fsd/content/a.uasset": "x"})
    lcx = LintCtxt([(SPEC_A, a)], None, FakePak)
    with pytest.raises(ValueError, match="requires specifying a valid game pak path"):
        UnmodifiedGameAssetsLint().check_mods(lcx)


def test_unmodified_game_assets_bad_game_mount_raises(tmp_path):
    game = write_pak(tmp_path / "game.pak", {"a.uasset": "x"}, mount="/abs/")
    a = write_pak(tmp_path / "a.pak", {"fsd/content/a.uasset": "x"})
    lcx = LintCtxt([(SPEC_A, a)], game, FakePak)
    with pytest.raises(ValueError, match="prefix does not match"):
        UnmodifiedGameAssetsLint().check_mods(lcx)