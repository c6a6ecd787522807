"""Lints that compare asset files within mods and against the game pak."""

from __future__ import annotations

import hashlib
from enum import Enum
from pathlib import PurePosixPath
from typing import BinaryIO

from .installation import open_file
from .lint_context import Lint, LintCtxt, PakReader
from .providers import ModSpecification

_ROOT_PREFIX = PurePosixPath("../../..")


class SplitAssetPair(Enum):
    """Which half of a .uasset/.uexp pair a mod is missing."""

    MISSING_UEXP = "MissingUexp"
    MISSING_UASSET = "MissingUasset"


class SplitAssetPairsLint(Lint[dict[ModSpecification, dict[str, SplitAssetPair]]]):
    """Mods that ship a .uasset without its .uexp, or the other way round."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, dict[str, SplitAssetPair]]:
        exts_by_mod: dict[ModSpecification, dict[str, set[str]]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            parts = normalized.split(".")
            if len(parts) < 2:
                return
            stem, ext = parts[-2], parts[-1]
            exts_by_mod.setdefault(spec, {}).setdefault(stem, set()).add(ext)

        lcx.for_each_mod_file(visit)

        result: dict[ModSpecification, dict[str, SplitAssetPair]] = {}
        for spec, stems in sorted(exts_by_mod.items()):
            pairs: dict[str, SplitAssetPair] = {}
            for stem, exts in sorted(stems.items()):
                has_uexp = "uexp" in exts
                has_uasset = "uasset" in exts
                if has_uexp and not has_uasset:
                    pairs[f"{stem}.uexp"] = SplitAssetPair.MISSING_UASSET
                elif has_uasset and not has_uexp:
                    pairs[f"{stem}.uasset"] = SplitAssetPair.MISSING_UEXP
            if pairs:
                result[spec] = dict(sorted(pairs.items()))
        return result


def _strip_root(path: PurePosixPath) -> PurePosixPath:
    try:
        return path.relative_to(_ROOT_PREFIX)
    except ValueError:
        raise ValueError("prefix does not match") from None


def _game_file_hashes(pak: PakReader, stream: BinaryIO) -> dict[str, bytes]:
    mount = PurePosixPath(pak.mount_point)
    names = [(name, _strip_root(mount / name)) for name in pak.files()]
    return {
        stripped.as_posix(): hashlib.sha256(pak.read_file(name, stream)).digest()
        for name, stripped in names
    }


class UnmodifiedGameAssetsLint(Lint[dict[ModSpecification, set[str]]]):
    """Mods that ship game assets identical to the ones in the game pak."""

    def check_mods(self, lcx: LintCtxt) -> dict[ModSpecification, set[str]]:
        if lcx.fsd_pak_path is None:
            raise ValueError("UnmodifiedGameAssetsLint requires specifying a valid game pak path")

        with open_file(lcx.fsd_pak_path) as handle:
            game_hashes = _game_file_hashes(lcx.open_pak(handle), handle)

        found: dict[ModSpecification, set[str]] = {}

        def visit(spec, stream, reader, raw: PurePosixPath, normalized: str) -> None:
            reference = game_hashes.get(normalized)
            if reference is None:
                return
            if hashlib.sha256(reader.read_file(normalized, stream)).digest() == reference:
                found.setdefault(spec, set()).add(normalized)

        lcx.for_each_mod_file(visit)
        return dict(sorted(found.items()))