"""Mod specifications, provider registry, caches and the mod store."""

from __future__ import annotations

import asyncio
import hashlib
import inspect
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Sequence, TypeVar, Union

from .config import ConfigWrapper

logger = logging.getLogger(__name__)

CACHE_VERSION = "0.0.0"
CONCURRENCY = 5


@dataclass(frozen=True, order=True)
class ModSpecification:
    """Points to a mod, optionally a specific version."""

    url: str

    def satisfies_dependency(self, other: ModSpecification) -> bool:
        """Loose match: either URL is a prefix of the other."""
        return self.url.startswith(other.url) or other.url.startswith(self.url)


@dataclass(frozen=True)
class ModResolution:
    """Points to a specific version of a specific mod."""

    url: str
    unresolvable_name: Optional[str] = None

    @classmethod
    def resolvable(cls, url: str) -> ModResolution:
        return cls(url)

    @classmethod
    def unresolvable(cls, url: str, name: str) -> ModResolution:
        return cls(url, name)

    @property
    def is_resolvable(self) -> bool:
        return self.unresolvable_name is None

    def get_resolvable_url_or_name(self) -> str:
        """The URL if clients can resolve it, otherwise the mod name."""
        if self.unresolvable_name is None:
            return self.url
        return self.unresolvable_name


class RequiredStatus(Enum):
    REQUIRED_BY_ALL = "RequiredByAll"
    OPTIONAL = "Optional"


class ApprovalStatus(Enum):
    VERIFIED = "Verified"
    APPROVED = "Approved"
    SANDBOX = "Sandbox"


@dataclass(frozen=True)
class ModioTags:
    """Tags attached to a mod on mod.io."""

    qol: bool
    gameplay: bool
    audio: bool
    visual: bool
    framework: bool
    versions: frozenset[str]
    required_status: RequiredStatus
    approval_status: ApprovalStatus


@dataclass
class ModInfo:
    """Resolved information about a mod."""

    provider: str
    name: str
    spec: ModSpecification
    versions: list[ModSpecification]
    resolution: ModResolution
    suggested_require: bool
    suggested_dependencies: list[ModSpecification]
    modio_tags: Optional[ModioTags] = None
    modio_id: Optional[int] = None


# A provider answers a resolution either with the mod's info or with a
# specification to follow instead.
ModResponse = Union[ModInfo, ModSpecification]


@dataclass(frozen=True)
class FetchProgress:
    """A download progress event; without progress and size it marks completion."""

    resolution: ModResolution
    progress: Optional[int] = None
    size: Optional[int] = None

    @property
    def complete(self) -> bool:
        return self.progress is None


ProgressCallback = Callable[[FetchProgress], Union[None, Awaitable[None]]]


async def send_progress(progress: Optional[ProgressCallback], event: FetchProgress) -> None:
    """Deliver an event to a progress callback, awaiting it if it is async."""
    if progress is None:
        return
    result = progress(event)
    if inspect.isawaitable(result):
        await result


@dataclass(frozen=True)
class ProviderParameter:
    id: str
    name: str
    description: str
    link: Optional[str] = None


@dataclass(frozen=True)
class ProviderFactory:
    """Describes how to build a provider and which URLs it handles."""

    id: str
    new: Callable[[Mapping[str, str]], "ModProvider"] = field(repr=False, compare=False)
    can_provide: Callable[[str], bool] = field(repr=False, compare=False)
    parameters: tuple[ProviderParameter, ...] = ()


class NoProviderError(Exception):
    """A provider can handle the URL but has not been initialised yet."""

    def __init__(self, url: str, factory: ProviderFactory) -> None:
        super().__init__(f'no initialised provider "{factory.id}" for "{url}"')
        self.url = url
        self.factory = factory


_FACTORIES: dict[str, ProviderFactory] = {}


def register_provider(factory: ProviderFactory) -> ProviderFactory:
    """Add a provider factory to the registry, replacing one with the same id."""
    _FACTORIES[factory.id] = factory
    return factory


def provider_factories() -> tuple[ProviderFactory, ...]:
    """All registered provider factories in registration order."""
    return tuple(_FACTORIES.values())


class ModProvider(ABC):
    """A source of mods."""

    @abstractmethod
    async def resolve_mod(self, spec: ModSpecification, update: bool, cache: Cache) -> ModResponse:
        """Resolve a specification to mod info or to another specification."""

    @abstractmethod
    async def fetch_mod(
        self,
        res: ModResolution,
        update: bool,
        cache: Cache,
        blob_cache: BlobCache,
        progress: Optional[ProgressCallback],
    ) -> Path:
        """Download (or locate) the mod and return its local path."""

    @abstractmethod
    async def update_cache(self, cache: Cache) -> None:
        """Refresh cached metadata."""

    @abstractmethod
    async def check(self) -> None:
        """Raise if the provider is not configured correctly."""

    @abstractmethod
    def get_mod_info(self, spec: ModSpecification, cache: Cache) -> Optional[ModInfo]:
        """Mod info from cached data only."""

    @abstractmethod
    def is_pinned(self, spec: ModSpecification, cache: Cache) -> bool:
        """Whether the specification names a fixed version."""

    @abstractmethod
    def get_version_name(self, spec: ModSpecification, cache: Cache) -> Optional[str]:
        """A human-readable version name."""


class ProviderCacheEntry:
    """Base for per-provider cache data; subclasses must build with no arguments."""

    def to_json(self) -> dict[str, Any]:
        return dict(vars(self))

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> ProviderCacheEntry:
        return cls(**data)


_CACHE_TYPES: dict[str, type[ProviderCacheEntry]] = {}

E = TypeVar("E", bound=ProviderCacheEntry)


def register_cache_type(name: str, cls: type[E]) -> type[E]:
    """Register a cache entry class under the type tag used in cache.json."""
    _CACHE_TYPES[name] = cls
    return cls


def _cache_type_name(entry: ProviderCacheEntry) -> str:
    for name, cls in _CACHE_TYPES.items():
        if type(entry) is cls:
            return name
    raise ValueError(f"unregistered provider cache type {type(entry).__name__}")


def _entry_from_json(value: Any) -> ProviderCacheEntry:
    if not isinstance(value, dict) or not isinstance(value.get("type"), str):
        raise ValueError("provider cache entry is missing its type tag")
    name = value["type"]
    cls = _CACHE_TYPES.get(name)
    if cls is None:
        raise ValueError(f"unknown provider cache type {name!r}")
    fields = {k: v for k, v in value.items() if k != "type"}
    try:
        return cls.from_json(fields)
    except (TypeError, KeyError) as exc:
        raise ValueError(f"invalid {name} cache entry: {exc}") from exc


class Cache:
    """Provider caches keyed by provider id."""

    def __init__(self, entries: Optional[Mapping[str, ProviderCacheEntry]] = None) -> None:
        self.entries: dict[str, ProviderCacheEntry] = dict(entries or {})

    def get(self, provider_id: str, cache_type: type[E]) -> Optional[E]:
        entry = self.entries.get(provider_id)
        return entry if isinstance(entry, cache_type) else None

    def get_mut(self, provider_id: str, cache_type: type[E]) -> E:
        """The entry for the provider, replaced by a fresh one if absent or of another type."""
        entry = self.get(provider_id, cache_type)
        if entry is None:
            entry = cache_type()
            self.entries[provider_id] = entry
        return entry

    def to_json(self) -> dict[str, Any]:
        return {
            "version": CACHE_VERSION,
            "cache": {
                pid: {"type": _cache_type_name(entry), **entry.to_json()}
                for pid, entry in self.entries.items()
            },
        }

    @classmethod
    def from_json(cls, data: Any) -> Cache:
        """Read either the versioned layout or the legacy bare map."""
        if not isinstance(data, dict):
            raise ValueError("failed to deserialize cache metadata into object map")
        version = data.get("version")
        if isinstance(version, str):
            if version != CACHE_VERSION:
                raise ValueError(f"unsupported cache version {version!r}")
            raw = data.get("cache")
            if not isinstance(raw, dict):
                raise ValueError("failed to deserialize cache as v0.0.0")
        else:
            raw = data
        return cls({pid: _entry_from_json(value) for pid, value in raw.items()})


def load_cache(path: str | os.PathLike[str]) -> Cache:
    """Load cache.json, or an empty cache if the file does not exist."""
    try:
        raw = Path(path).read_bytes()
    except FileNotFoundError:
        return Cache()
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ValueError("failed to deserialize cache metadata into dynamic json value") from exc
    return Cache.from_json(data)


class BlobCache:
    """Content-addressed file store keyed by SHA-256."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        try:
            self.path.mkdir()
        except OSError:
            pass

    def write(self, blob: bytes) -> str:
        """Store the bytes and return their hex digest."""
        digest = hashlib.sha256(blob).hexdigest()
        tmp = self.path / f".{digest}"
        tmp.write_bytes(blob)
        os.replace(tmp, self.path / digest)
        return digest

    def get_path(self, blob: str) -> Optional[Path]:
        path = self.path / blob
        return path if path.exists() else None


async def _gather_limited(coros: Iterable[Awaitable[Any]], *, ordered: bool) -> list[Any]:
    semaphore = asyncio.Semaphore(CONCURRENCY)

    async def guarded(coro: Awaitable[Any]) -> Any:
        async with semaphore:
            return await coro

    tasks = [asyncio.ensure_future(guarded(c)) for c in coros]
    try:
        if ordered:
            return list(await asyncio.gather(*tasks))
        return [await task for task in asyncio.as_completed(tasks)]
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()


class ModStore:
    """Routes mod specifications to providers and owns the shared caches."""

    def __init__(
        self,
        cache_path: str | os.PathLike[str],
        parameters: Mapping[str, Mapping[str, str]],
    ) -> None:
        cache_path = Path(cache_path)
        self._providers: dict[str, ModProvider] = {}
        for factory in provider_factories():
            params = dict(parameters.get(factory.id, {}))
            if all(p.id in params for p in factory.parameters):
                self._providers[factory.id] = factory.new(params)

        metadata_path = cache_path / "cache.json"
        self.cache = load_cache(metadata_path)
        self._cache_file = ConfigWrapper(metadata_path, self.cache)
        self._cache_file.save()
        self.blob_cache = BlobCache(cache_path / "blobs")

    @staticmethod
    def get_provider_factories() -> tuple[ProviderFactory, ...]:
        return provider_factories()

    def add_provider(self, provider_factory: ProviderFactory, parameters: Mapping[str, str]) -> None:
        self._providers[provider_factory.id] = provider_factory.new(parameters)

    async def add_provider_checked(
        self, provider_factory: ProviderFactory, parameters: Mapping[str, str]
    ) -> None:
        """Build the provider, check it, and only then register it."""
        provider = provider_factory.new(parameters)
        await provider.check()
        self._providers[provider_factory.id] = provider

    def get_provider(self, url: str) -> ModProvider:
        factory = next((f for f in provider_factories() if f.can_provide(url)), None)
        if factory is None:
            raise LookupError(f'Could not find mod provider for "{url}"')
        try:
            return self._providers[factory.id]
        except KeyError:
            raise NoProviderError(url, factory) from None

    async def resolve_mods(
        self, mods: Sequence[ModSpecification], update: bool
    ) -> dict[ModSpecification, ModInfo]:
        """Resolve the mods and, transitively, their suggested dependencies."""
        to_resolve = set(mods)
        mods_map: dict[ModSpecification, ModInfo] = {}
        # deduplicates dependencies already present in the mod list
        precise_specs: set[ModSpecification] = set()

        while to_resolve:
            results = await _gather_limited(
                (self.resolve_mod(spec, update) for spec in to_resolve), ordered=False
            )
            for spec, info in results:
                precise_specs.add(info.spec)
                mods_map[spec] = info
            to_resolve = {
                dep
                for info in mods_map.values()
                for dep in info.suggested_dependencies
                if dep not in precise_specs
            }
        return mods_map

    async def resolve_mod(
        self, original_spec: ModSpecification, update: bool
    ) -> tuple[ModSpecification, ModInfo]:
        """Follow redirects until a provider returns mod info."""
        spec = original_spec
        while True:
            response = await self.get_provider(spec.url).resolve_mod(spec, update, self.cache)
            if isinstance(response, ModInfo):
                return original_spec, response
            spec = response

    async def fetch_mods(
        self,
        mods: Sequence[ModResolution],
        update: bool,
        progress: Optional[ProgressCallback] = None,
    ) -> list[Path]:
        """Fetch mods concurrently; paths come back in completion order."""
        return await _gather_limited(
            (self.fetch_mod(res, update, progress) for res in mods), ordered=False
        )

    async def fetch_mods_ordered(
        self,
        mods: Sequence[ModResolution],
        update: bool,
        progress: Optional[ProgressCallback] = None,
    ) -> list[Path]:
        """Fetch mods concurrently; paths come back in input order."""
        return await _gather_limited(
            (self.fetch_mod(res, update, progress) for res in mods), ordered=True
        )

    async def fetch_mod(
        self,
        res: ModResolution,
        update: bool,
        progress: Optional[ProgressCallback] = None,
    ) -> Path:
        provider = self.get_provider(res.url)
        return await provider.fetch_mod(res, update, self.cache, self.blob_cache, progress)

    async def update_cache(self) -> None:
        for name, provider in list(self._providers.items()):
            logger.info("updating cache for %s provider", name)
            await provider.update_cache(self.cache)

    def get_mod_info(self, spec: ModSpecification) -> Optional[ModInfo]:
        try:
            provider = self.get_provider(spec.url)
        except (LookupError, NoProviderError):
            return None
        return provider.get_mod_info(spec, self.cache)

    def is_pinned(self, spec: ModSpecification) -> bool:
        return self.get_provider(spec.url).is_pinned(spec, self.cache)

    def get_version_name(self, spec: ModSpecification) -> Optional[str]:
        return self.get_provider(spec.url).get_version_name(spec, self.cache)

    def save(self) -> None:
        """Write the cache metadata to disk."""
        self._cache_file.save()