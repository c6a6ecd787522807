from pathlib import Path

import pytest

from drgmint.installation import (
    DRGInstallation,
    DRGInstallationType,
    open_file,
    read_file,
    write_file,
)


def test_steam_type_from_pak():
    kind = DRGInstallationType.from_pak_path("x/FSD/Content/Paks/FSD-WindowsNoEditor.pak")
    assert kind is DRGInstallationType.STEAM
    assert kind.binaries_directory_name() == "Win64"
    assert kind.main_pak_name() == "FSD-WindowsNoEditor.pak"
    assert kind.hook_dll_name() == "x3daudio1_7.dll"


def test_xbox_type_from_pak():
    kind = DRGInstallationType.from_pak_path("FSD/Content/Paks/FSD-WinGDK.pak")
    assert kind is DRGInstallationType.XBOX
    assert kind.binaries_directory_name() == "WinGDK"
    assert kind.main_pak_name() == "FSD-WinGDK.pak"
    assert kind.hook_dll_name() == "d3d9.dll"


def test_type_is_case_insensitive():
    assert DRGInstallationType.from_pak_path("fsd-windowsnoeditor.PAK") is DRGInstallationType.STEAM


def test_unrecognized_pak_name():
    with pytest.raises(ValueError, match="unrecognized pak file name"):
        DRGInstallationType.from_pak_path("a/b/c/other.pak")


def test_installation_from_pak_path():
    inst = DRGInstallation.from_pak_path(Path("game/FSD/Content/Paks/FSD-WindowsNoEditor.pak"))
    assert inst.root == Path("game/FSD")
    assert inst.installation_type is DRGInstallationType.STEAM
    assert inst.binaries_directory() == Path("game/FSD/Binaries/Win64")
    assert inst.paks_path() == Path("game/FSD/Content/Paks")


def test_main_pak_round_trip():
    inst = DRGInstallation.from_pak_path(Path("root/FSD/Content/Paks/FSD-WinGDK.pak"))
    assert inst.main_pak().parent == inst.paks_path()
    assert DRGInstallation.from_pak_path(inst.main_pak()) == inst


def test_installation_path_too_short():
    with pytest.raises(ValueError, match="parent directory"):
        DRGInstallation.from_pak_path("Paks/FSD-WindowsNoEditor.pak")


def test_read_write_round_trip(tmp_path):
    target = tmp_path / "data.bin"
    write_file(target, b"\x00\x01payload")
    assert read_file(target) == b"\x00\x01payload"
    with open_file(target) as handle:
        assert handle.read() == b"\x00\x01payload"


def test_read_missing_names_path(tmp_path):
    missing = tmp_path / "missing.bin"
    with pytest.raises(FileNotFoundError) as info:
        read_file(missing)
    assert "Could not read file" in str(info.value)
    assert str(missing) in str(info.value)


def test_open_missing_names_path(tmp_path):
    with pytest.raises(FileNotFoundError, match="Could not open file"):
        open_file(tmp_path / "nope")


def test_write_into_missing_directory(tmp_path):
    with pytest.raises(OSError, match="Could not write to file"):
        write_file(tmp_path / "no" / "such" / "file", b"x")