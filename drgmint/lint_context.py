"""Walking the pak files of a set of mods for lints."""

from __future__ import annotations

import os
import string
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import PurePosixPath
from typing import BinaryIO, Callable, Generic, Iterable, Optional, TypeVar, Union

from .archive import EmptyArchiveError, OnlyNonPakFilesError, get_all_files_from_data
from .installation import open_file
from .providers import ModSpecification

PathLike = Union[str, "os.PathLike[str]"]

_ROOT_PREFIX = PurePosixPath("../../..")
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


class PakReader(ABC):
    """Read access to the index and contents of one pak file."""

    @property
    @abstractmethod
    def mount_point(self) -> str:
        """The directory the pak's file names are relative to."""

    @property
    @abstractmethod
    def version(self) -> int:
        """The pak format version."""

    @abstractmethod
    def files(self) -> list[str]:
        """Names of every file in the pak, relative to the mount point."""

    @abstractmethod
    def read_file(self, path: str, reader: BinaryIO) -> bytes:
        """The contents of one file, read from the pak's data stream."""


PakOpener = Callable[[BinaryIO], PakReader]
ModSpecHandler = Callable[[ModSpecification], None]
ModCallback = Callable[[ModSpecification, BinaryIO, PakReader], None]
ModFileCallback = Callable[[ModSpecification, BinaryIO, PakReader, PurePosixPath, str], None]


class LintCtxt:
    """The mods under inspection, the game pak, and how to open pak files."""

    def __init__(
        self,
        mods: Iterable[tuple[ModSpecification, PathLike]],
        fsd_pak_path: Optional[PathLike],
        open_pak: PakOpener,
    ) -> None:
        self.mods: list[tuple[ModSpecification, PathLike]] = sorted(
            set(mods), key=lambda pair: (pair[0], os.fspath(pair[1]))
        )
        self.fsd_pak_path = fsd_pak_path
        self.open_pak = open_pak

    def for_each_mod(
        self,
        f: ModCallback,
        empty_archive_handler: Optional[ModSpecHandler] = None,
        only_non_pak_files_handler: Optional[ModSpecHandler] = None,
        multiple_pak_files_handler: Optional[ModSpecHandler] = None,
    ) -> None:
        """Call ``f`` with the first pak of every mod, in mod order.

        Mods whose archive is empty or holds no pak are reported to the
        matching handler and skipped; archives with several paks are
        reported and then checked using their first pak.
        """
        for mod_spec, mod_path in self.mods:
            with open_file(mod_path) as handle:
                try:
                    entries = get_all_files_from_data(handle)
                except EmptyArchiveError:
                    if empty_archive_handler is not None:
                        empty_archive_handler(mod_spec)
                    continue
                except OnlyNonPakFilesError:
                    if only_non_pak_files_handler is not None:
                        only_non_pak_files_handler(mod_spec)
                    continue

                paks = [entry.data for entry in entries if entry.is_pak]
                if len(paks) > 1 and multiple_pak_files_handler is not None:
                    multiple_pak_files_handler(mod_spec)

                stream = paks[0]
                reader = self.open_pak(stream)
                f(mod_spec, stream, reader)

    def for_each_mod_file(self, f: ModFileCallback) -> None:
        """Call ``f`` for every file of every mod's pak.

        ``f`` receives the path relative to the game root and the same path
        with forward slashes and ASCII letters lowered.
        """

        def visit(mod_spec: ModSpecification, stream: BinaryIO, reader: PakReader) -> None:
            mount = PurePosixPath(reader.mount_point)
            for name in reader.files():
                try:
                    raw = (mount / name).relative_to(_ROOT_PREFIX)
                except ValueError:
                    raise ValueError("prefix does not match") from None
                normalized = str(raw).replace("\\", "/").translate(_ASCII_LOWER)
                f(mod_spec, stream, reader, raw, normalized)

        self.for_each_mod(visit)


T = TypeVar("T")


class Lint(ABC, Generic[T]):
    """A check over every mod in a lint context."""

    @abstractmethod
    def check_mods(self, lcx: LintCtxt) -> T:
        """Inspect the mods and return the findings."""


class LintId(Enum):
    """Identifiers of the available lints, ordered by name."""

    CONFLICTING = "conflicting"
    ASSET_REGISTRY_BIN = "asset_registry_bin"
    SHADER_FILES = "shader_files"
    OUTDATED_PAK_VERSION = "outdated_pak_version"
    EMPTY_ARCHIVE = "empty_archive"
    ARCHIVE_WITH_ONLY_NON_PAK_FILES = "archive_only_non_pak_files"
    ARCHIVE_WITH_MULTIPLE_PAKS = "archive_with_multiple_paks"
    NON_ASSET_FILES = "non_asset_files"
    SPLIT_ASSET_PAIRS = "split_asset_pairs"
    UNMODIFIED_GAME_ASSETS = "unmodified_game_assets"

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LintId):
            return NotImplemented
        return self.value < other.value