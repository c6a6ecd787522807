"""Extracting pak files from mod downloads that may be zip archives."""

from __future__ import annotations

import io
import zipfile
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath
from typing import BinaryIO, Iterator, Optional


@dataclass
class ArchiveEntry:
    """A file taken from a mod download."""

    path: PurePath
    data: BinaryIO
    is_pak: bool


class EmptyArchiveError(Exception):
    """The zip archive holds no entries."""


class OnlyNonPakFilesError(Exception):
    """The zip archive holds files, but none of them is a pak."""


def _enclosed_name(name: str) -> Optional[PurePosixPath]:
    """The entry name as a path, or None if it would escape the archive root."""
    if "\0" in name or name.startswith(("/", "\\")):
        return None
    depth = 0
    for part in name.split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if depth == 0:
                return None
            depth -= 1
        elif len(part) >= 2 and part[1] == ":":
            return None
        else:
            depth += 1
    return PurePosixPath(name)


def _open_zip(data: BinaryIO) -> Optional[zipfile.ZipFile]:
    try:
        return zipfile.ZipFile(data)
    except zipfile.BadZipFile:
        return None


def _files(archive: zipfile.ZipFile) -> Iterator[tuple[PurePosixPath, zipfile.ZipInfo]]:
    for info in archive.infolist():
        path = _enclosed_name(info.filename)
        if path is not None and not info.is_dir():
            yield path, info


def get_pak_from_data(data: BinaryIO) -> BinaryIO:
    """The first pak inside a zip archive, or the data itself if it is not a zip."""
    archive = _open_zip(data)
    if archive is None:
        data.seek(0)
        return data
    for path, info in _files(archive):
        if path.suffix == ".pak":
            return io.BytesIO(archive.read(info))
    raise ValueError("zip does not contain pak")


def get_all_files_from_data(data: BinaryIO) -> list[ArchiveEntry]:
    """Every file inside a zip archive, or the data itself as a single pak.

    Raises EmptyArchiveError or OnlyNonPakFilesError for archives that
    cannot hold a usable mod.
    """
    archive = _open_zip(data)
    if archive is None:
        data.seek(0)
        return [ArchiveEntry(PurePath("."), data, True)]
    if not archive.infolist():
        raise EmptyArchiveError("archive is empty")
    entries = [
        ArchiveEntry(path, io.BytesIO(archive.read(info)), path.suffix == ".pak")
        for path, info in _files(archive)
    ]
    if not any(entry.is_pak for entry in entries):
        raise OnlyNonPakFilesError("archive contains only non-pak files")
    return entries