"""Lints that inspect archive layout, file names and pak versions."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import BinaryIO

from .lint_context import Lint, LintCtxt, PakReader
from .providers import ModSpecification

_CURRENT_PAK_VERSION = 11
CONFLICTING_MODS_LINT_WHITELIST = ("fsd/content/_interop",)
ENDS_WITH_WHITE_LIST = (
    ".uexp",
    ".uasset",
    ".ubulk",
    ".ufont",
    ".locres",
    ".ushaderbytecode",
    "assetregistry.bin",
)


def _mods_with_archive_issue(lcx: LintCtxt, handler: str) -> set[ModSpecification]:
    """Collect the mods for which the named archive-layout handler fires."""
    found: set[ModSpecification] = set()
    lcx.for_each_mod(lambda spec, stream, reader: None, **{handler: found.add})
    return found


def _sorted_paths(found: dict[ModSpecification, set[str]]) -> dict[ModSpecification, set[str]]:
    return dict(sorted(found.items()))


class ArchiveMultiplePaksLint(Lint[set[ModSpecification]]):
    """Mods whose archive holds more than one pak."""

    def check_mods(self, lcx: LintCtxt) -> set[ModSpecification]:
        return _mods_with_archive_issue(lcx, "multiple_pak_files_handler")


class ArchiveOnlyNonPakFilesLint(Lint[set[ModSpecification]]):
    """Mods whose archive holds files but no pak."""

    def check_mods(self, lcx: LintCtxt) -> set[ModSpecification]:
        return _mods_with_archive_issue(lcx, "only_non_pak_files_handler")


class EmptyArchiveLint(Lint[set[ModSpecification]]):
    """Mods whose archive is empty."""

    def check_mods(self, lcx: LintCtxt) -> set[ModSpecification]:
        return _mods_with_archive_issue(lcx, "empty_archive_handler")


class AssetRegisterBinLint(Lint[dict[ModSpecification, set[str]]]):
    """Mods that ship an AssetRegistry.bin."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, set[str]]:
        found: dict[ModSpecification, set[str]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            if raw.name == "AssetRegistry.bin":
                found.setdefault(spec, set()).add(normalized)

        lcx.for_each_mod_file(visit)
        return _sorted_paths(found)


class ShaderFilesLint(Lint[dict[ModSpecification, set[str]]]):
    """Mods that ship compiled shader bytecode."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, set[str]]:
        found: dict[ModSpecification, set[str]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            if raw.suffix == ".ushaderbytecode":
                found.setdefault(spec, set()).add(normalized)

        lcx.for_each_mod_file(visit)
        return _sorted_paths(found)


class NonAssetFilesLint(Lint[dict[ModSpecification, set[str]]]):
    """Mods that ship files which are not Unreal assets."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, set[str]]:
        found: dict[ModSpecification, set[str]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            if not normalized.endswith(ENDS_WITH_WHITE_LIST):
                found.setdefault(spec, set()).add(normalized)

        lcx.for_each_mod_file(visit)
        return _sorted_paths(found)


class ConflictingModsLint(Lint[dict[str, list[ModSpecification]]]):
    """Paths that more than one mod modifies, with the mods in visiting order."""

    def check_mods(self, lcx: LintCtxt) -> dict[str, list[ModSpecification]]:
        modifiers: dict[str, dict[ModSpecification, None]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            modifiers.setdefault(normalized, {})[spec] = None

        lcx.for_each_mod_file(visit)
        return {
            path: list(specs)
            for path, specs in sorted(modifiers.items())
            if not path.startswith(CONFLICTING_MODS_LINT_WHITELIST) and len(specs) > 1
        }


class OutdatedPakVersionLint(Lint[dict[ModSpecification, int]]):
    """Mods whose pak is older than the version the game uses."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, int]:
        found: dict[ModSpecification, int] = {}

        def visit(spec: ModSpecification, stream: BinaryIO, reader: PakReader) -> None:
            if reader.version < _CURRENT_PAK_VERSION:
                found[spec] = reader.version

        lcx.for_each_mod(visit)
        return dict(sorted(found.items()))