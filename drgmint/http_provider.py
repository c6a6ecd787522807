"""Provider for mods downloaded from plain HTTP(S) URLs."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional
from urllib.parse import urlsplit

import httpx

from .providers import (
    BlobCache,
    Cache,
    FetchProgress,
    ModInfo,
    ModProvider,
    ModResolution,
    ModSpecification,
    ProgressCallback,
    ProviderCacheEntry,
    ProviderFactory,
    register_cache_type,
    register_provider,
    send_progress,
)

logger = logging.getLogger(__name__)

HTTP_PROVIDER_ID = "http"
RE_MOD = re.compile(r"^https?://(?P<hostname>[^/]+)(/|$)")
_MODIO_HOSTS = ("mod.io", "drg.mod.io", "drg.old.mod.io")
_ACCEPTED_CONTENT_TYPES = ("application/zip", "application/octet-stream")
_LATEST = "latest"


def can_provide_http(url: str) -> bool:
    """Whether the URL is HTTP(S) and not on a mod.io host."""
    match = RE_MOD.match(url)
    return match is not None and match.group("hostname") not in _MODIO_HOSTS


@dataclass
class HttpProviderCache(ProviderCacheEntry):
    """Maps downloaded URLs to blobs in the blob cache."""

    url_blobs: dict[str, str] = field(default_factory=dict)


register_cache_type("HttpProviderCache", HttpProviderCache)


def _mod_name(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme:
        raise ValueError(f"relative URL without a base: {url!r}")
    if parts.netloc or parts.path.startswith("/"):
        return parts.path.rsplit("/", 1)[-1]
    return url


def _info(spec: ModSpecification) -> ModInfo:
    return ModInfo(
        provider=HTTP_PROVIDER_ID,
        name=_mod_name(spec.url),
        spec=spec,
        versions=[],
        resolution=ModResolution.resolvable(spec.url),
        suggested_require=False,
        suggested_dependencies=[],
    )


class HttpProvider(ModProvider):
    """Downloads mods over HTTP and keeps them in the blob cache."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client

    @classmethod
    def new_provider(cls, parameters: Mapping[str, str]) -> HttpProvider:
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
        url = res.url
        if not update:
            entry = cache.get(HTTP_PROVIDER_ID, HttpProviderCache)
            blob = entry.url_blobs.get(url) if entry is not None else None
            path = blob_cache.get_path(blob) if blob is not None else None
            if path is not None:
                await send_progress(progress, FetchProgress(res))
                return path

        logger.info("downloading mod %s...", url)
        if self._client is not None:
            data = await self._download(self._client, res, progress)
        else:
            async with httpx.AsyncClient() as client:
                data = await self._download(client, res, progress)

        blob = blob_cache.write(data)
        path = blob_cache.get_path(blob)
        if path is None:
            raise FileNotFoundError(f"blob {blob} missing right after it was written")
        cache.get_mut(HTTP_PROVIDER_ID, HttpProviderCache).url_blobs[url] = blob
        await send_progress(progress, FetchProgress(res))
        return path

    @staticmethod
    async def _download(
        client: httpx.AsyncClient, res: ModResolution, progress: Optional[ProgressCallback]
    ) -> bytes:
        async with client.stream("GET", res.url) as response:
            response.raise_for_status()
            try:
                size: Optional[int] = int(response.headers["content-length"])
            except (KeyError, ValueError):
                size = None
            content_type = response.headers.get("content-type")
            if content_type is not None and content_type not in _ACCEPTED_CONTENT_TYPES:
                raise ValueError(f"unexpected content-type: {content_type}")
            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if size is not None:
                    await send_progress(progress, FetchProgress(res, len(buffer), size))
        return bytes(buffer)

    async def update_cache(self, cache: Cache) -> None:
        """Nothing is fetched ahead of time; make sure this provider's entry exists."""
        cache.get_mut(HTTP_PROVIDER_ID, HttpProviderCache)

    async def check(self) -> None:
        """A provider given its own client can only download while that client is open."""
        if self._client is not None and self._client.is_closed:
            raise RuntimeError("HTTP client is closed")

    def get_mod_info(self, spec: ModSpecification, cache: Cache) -> Optional[ModInfo]:
        try:
            return _info(spec)
        except ValueError:
            return None

    def is_pinned(self, spec: ModSpecification, cache: Cache) -> bool:
        # A direct URL resolves to itself, so it always names one exact download.
        return ModResolution.resolvable(spec.url).url == spec.url

    def get_version_name(self, spec: ModSpecification, cache: Cache) -> Optional[str]:
        info = self.get_mod_info(spec, cache)
        versions = info.versions if info is not None else []
        return versions[-1].url if versions else _LATEST


register_provider(
    ProviderFactory(
        id=HTTP_PROVIDER_ID,
        new=HttpProvider.new_provider,
        can_provide=can_provide_http,
    )
)