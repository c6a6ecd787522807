"""Running a chosen set of lints and collecting their findings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from .lint_context import LintCtxt, LintId, PakOpener
from .lints_assets import SplitAssetPair, SplitAssetPairsLint, UnmodifiedGameAssetsLint
from .lints_basic import (
    ArchiveMultiplePaksLint,
    ArchiveOnlyNonPakFilesLint,
    AssetRegisterBinLint,
    ConflictingModsLint,
    EmptyArchiveLint,
    NonAssetFilesLint,
    OutdatedPakVersionLint,
    ShaderFilesLint,
)
from .providers import ModSpecification

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class LintReport:
    """Findings of each lint; None for lints that were not run."""

    conflicting_mods: Optional[dict[str, list[ModSpecification]]] = None
    asset_register_bin_mods: Optional[dict[ModSpecification, set[str]]] = None
    shader_file_mods: Optional[dict[ModSpecification, set[str]]] = None
    outdated_pak_version_mods: Optional[dict[ModSpecification, int]] = None
    empty_archive_mods: Optional[set[ModSpecification]] = None
    archive_with_only_non_pak_files_mods: Optional[set[ModSpecification]] = None
    archive_with_multiple_paks_mods: Optional[set[ModSpecification]] = None
    non_asset_file_mods: Optional[dict[ModSpecification, set[str]]] = None
    split_asset_pairs_mods: Optional[dict[ModSpecification, dict[str, SplitAssetPair]]] = None
    unmodified_game_assets_mods: Optional[dict[ModSpecification, set[str]]] = None


_LINTS: dict[LintId, tuple[str, Any]] = {
    LintId.CONFLICTING: ("conflicting_mods", ConflictingModsLint),
    LintId.ASSET_REGISTRY_BIN: ("asset_register_bin_mods", AssetRegisterBinLint),
    LintId.SHADER_FILES: ("shader_file_mods", ShaderFilesLint),
    LintId.OUTDATED_PAK_VERSION: ("outdated_pak_version_mods", OutdatedPakVersionLint),
    LintId.EMPTY_ARCHIVE: ("empty_archive_mods", EmptyArchiveLint),
    LintId.ARCHIVE_WITH_ONLY_NON_PAK_FILES: (
        "archive_with_only_non_pak_files_mods",
        ArchiveOnlyNonPakFilesLint,
    ),
    LintId.ARCHIVE_WITH_MULTIPLE_PAKS: (
        "archive_with_multiple_paks_mods",
        ArchiveMultiplePaksLint,
    ),
    LintId.NON_ASSET_FILES: ("non_asset_file_mods", NonAssetFilesLint),
    LintId.SPLIT_ASSET_PAIRS: ("split_asset_pairs_mods", SplitAssetPairsLint),
    LintId.UNMODIFIED_GAME_ASSETS: ("unmodified_game_assets_mods", UnmodifiedGameAssetsLint),
}


def run_lints(
    enabled_lints: Iterable[LintId],
    mods: Iterable[tuple[ModSpecification, PathLike]],
    fsd_pak_path: Optional[PathLike],
    open_pak: PakOpener,
) -> LintReport:
    """Run the enabled lints, in order of their names, over the mods."""
    lcx = LintCtxt(mods, fsd_pak_path, open_pak)
    results: dict[str, Any] = {}
    for lint_id in sorted(set(enabled_lints)):
        field_name, lint_cls = _LINTS[lint_id]
        results[field_name] = lint_cls().check_mods(lcx)
    return LintReport(**results)