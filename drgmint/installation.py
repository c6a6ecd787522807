"""Game installation layout and file helpers that name the path in errors."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Union

PathLike = Union[str, "os.PathLike[str]"]


class DRGInstallationType(Enum):
    """Which storefront the game was installed from."""

    STEAM = "Steam"
    XBOX = "Xbox"

    @classmethod
    def from_pak_path(cls, pak: PathLike) -> DRGInstallationType:
        """Tell the installation type from the main pak's file name."""
        pak_name = Path(pak).name
        if not pak_name or pak_name == "..":
            raise ValueError("failed to get pak file name")
        lowered = pak_name.lower()
        try:
            return _PAK_NAMES[lowered]
        except KeyError:
            raise ValueError(f"unrecognized pak file name: {lowered}") from None

    def binaries_directory_name(self) -> str:
        return _BINARIES[self]

    def main_pak_name(self) -> str:
        return _MAIN_PAKS[self]

    def hook_dll_name(self) -> str:
        return _HOOK_DLLS[self]


_PAK_NAMES = {
    "fsd-windowsnoeditor.pak": DRGInstallationType.STEAM,
    "fsd-wingdk.pak": DRGInstallationType.XBOX,
}
_BINARIES = {DRGInstallationType.STEAM: "Win64", DRGInstallationType.XBOX: "WinGDK"}
_MAIN_PAKS = {
    DRGInstallationType.STEAM: "FSD-WindowsNoEditor.pak",
    DRGInstallationType.XBOX: "FSD-WinGDK.pak",
}
_HOOK_DLLS = {
    DRGInstallationType.STEAM: "x3daudio1_7.dll",
    DRGInstallationType.XBOX: "d3d9.dll",
}


@dataclass(frozen=True)
class DRGInstallation:
    """A game installation rooted at its FSD directory."""

    root: Path
    installation_type: DRGInstallationType

    @classmethod
    def from_pak_path(cls, pak: PathLike) -> DRGInstallation:
        """Build from the path of the main pak inside Content/Paks."""
        parents = Path(pak).parents
        if len(parents) < 3:
            raise ValueError("failed to get pak parent directory")
        return cls(parents[2], DRGInstallationType.from_pak_path(pak))

    def binaries_directory(self) -> Path:
        return self.root / "Binaries" / self.installation_type.binaries_directory_name()

    def paks_path(self) -> Path:
        return self.root / "Content" / "Paks"

    def main_pak(self) -> Path:
        return self.paks_path() / self.installation_type.main_pak_name()


def _with_path(exc: OSError, action: str, path: PathLike) -> OSError:
    message = f"Could not {action} {os.fspath(path)}"
    if exc.strerror:
        message = f"{message}: {exc.strerror}"
    if exc.errno is None:
        return OSError(message)
    return OSError(exc.errno, message)


def open_file(path: PathLike) -> BinaryIO:
    """Open a file for binary reading."""
    try:
        return open(path, "rb")
    except OSError as exc:
        raise _with_path(exc, "open file", path) from exc


def read_file(path: PathLike) -> bytes:
    """Read a whole file."""
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise _with_path(exc, "read file", path) from exc


def write_file(path: PathLike, data: bytes) -> None:
    """Write a whole file, replacing what was there."""
    try:
        Path(path).write_bytes(data)
    except OSError as exc:
        raise _with_path(exc, "write to file", path) from exc