"""Provider for mods that are files on the local disk."""

from __future__ import annotations

from pathlib import Path, PurePath
from typing import Mapping, Optional

from .providers import (
    BlobCache,
    Cache,
    FetchProgress,
    ModInfo,
    ModProvider,
    ModResolution,
    ModSpecification,
    ProgressCallback,
    ProviderFactory,
    register_provider,
    send_progress,
)

FILE_PROVIDER_ID = "file"
_LATEST = "latest"


def can_provide_file(url: str) -> bool:
    """Whether the URL names a path that exists."""
    return Path(url).exists()


def _file_name(url: str) -> Optional[str]:
    name = PurePath(url).name
    return name if name and name != ".." else None


def _info(spec: ModSpecification) -> ModInfo:
    file_name = _file_name(spec.url)
    return ModInfo(
        provider=FILE_PROVIDER_ID,
        name=file_name if file_name is not None else spec.url,
        spec=spec,
        versions=[],
        resolution=ModResolution.unresolvable(
            spec.url, file_name if file_name is not None else "unknown"
        ),
        suggested_require=False,
        suggested_dependencies=[],
    )


class FileProvider(ModProvider):
    """Serves mods straight from local paths."""

    @classmethod
    def new_provider(cls, parameters: Mapping[str, str]) -> FileProvider:
        return cls()

    async def resolve_mod(self, spec: ModSpecification, update: bool, cache: Cache) -> ModInfo:
        return _info(spec)

    async def fetch_mod(
        self,
        res: ModResolution,
        update: bool,
        cache: Cache,
        blob_cache: BlobCache,
        progress: Optional[ProgressCallback] = None,
    ) -> Path:
        await send_progress(progress, FetchProgress(res))
        return Path(res.url)

    async def update_cache(self, cache: Cache) -> None:
        """Local files keep no metadata; only make sure paths can still be resolved."""
        await self.check()

    async def check(self) -> None:
        """Relative mod paths resolve against the working directory, which must exist."""
        Path.cwd()

    def get_mod_info(self, spec: ModSpecification, cache: Cache) -> Optional[ModInfo]:
        return _info(spec)

    def is_pinned(self, spec: ModSpecification, cache: Cache) -> bool:
        # A path resolves to itself, so it always names one exact file.
        return _info(spec).resolution.url == spec.url

    def get_version_name(self, spec: ModSpecification, cache: Cache) -> Optional[str]:
        versions = _info(spec).versions
        return versions[-1].url if versions else _LATEST


register_provider(
    ProviderFactory(
        id=FILE_PROVIDER_ID,
        new=FileProvider.new_provider,
        can_provide=can_provide_file,
    )
)