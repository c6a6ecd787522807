import json
from dataclasses import dataclass, field

import pytest

from drgmint.providers import (
    BlobCache,
    Cache,
    FetchProgress,
    ModInfo,
    ModProvider,
    ModResolution,
    ModSpecification,
    ModStore,
    NoProviderError,
    ProviderCacheEntry,
    ProviderFactory,
    ProviderParameter,
    load_cache,
    provider_factories,
    register_cache_type,
    register_provider,
    send_progress,
)


@dataclass
class FakeCache(ProviderCacheEntry):
    fetched: dict = field(default_factory=dict)


@dataclass
class OtherCache(ProviderCacheEntry):
    items: list = field(default_factory=list)


register_cache_type("FakeCache", FakeCache)
register_cache_type("OtherCache", OtherCache)


def _info(url, spec_url, deps=()):
    return ModInfo(
        provider="fake",
        name=spec_url.rsplit("/", 1)[-1],
        spec=ModSpecification(spec_url),
        versions=[],
        resolution=ModResolution.resolvable(url),
        suggested_require=False,
        suggested_dependencies=[ModSpecification(d) for d in deps],
    )


class FakeProvider(ModProvider):
    def __init__(self, parameters, fail_check=False):
        self.parameters = dict(parameters)
        self.fail_check = fail_check

    async def resolve_mod(self, spec, update, cache):
        if spec.url == "fake://a":
            return ModSpecification("fake://a/1")
        if spec.url == "fake://a/1":
            return _info(spec.url, "fake://a", deps=["fake://b"])
        if spec.url == "fake://b":
            return _info(spec.url, "fake://b")
        raise ValueError(f"unknown mod {spec.url}")

    async def fetch_mod(self, res, update, cache, blob_cache, progress):
        digest = blob_cache.write(res.url.encode())
        cache.get_mut("fake", FakeCache).fetched[res.url] = digest
        await send_progress(progress, FetchProgress(res))
        return blob_cache.get_path(digest)

    async def update_cache(self, cache):
        cache.get_mut("fake", FakeCache).fetched["updated"] = "yes"

    async def check(self):
        if self.fail_check:
            raise RuntimeError("check failed")

    def get_mod_info(self, spec, cache):
        if spec.url == "fake://b":
            return _info(spec.url, "fake://b")
        return None

    def is_pinned(self, spec, cache):
        return spec.url.endswith("/1")

    def get_version_name(self, spec, cache):
        return "latest"


FAKE_FACTORY = register_provider(
    ProviderFactory(
        id="fake",
        new=lambda params: FakeProvider(params),
        can_provide=lambda url: url.startswith("fake://"),
        parameters=(ProviderParameter("token", "Token", "fake token"),),
    )
)

BROKEN_FACTORY = register_provider(
    ProviderFactory(
        id="broken",
        new=lambda params: FakeProvider(params, fail_check=True),
        can_provide=lambda url: url.startswith("broken://"),
        parameters=(ProviderParameter("token", "Token", "broken token"),),
    )
)


@pytest.fixture
def store(tmp_path):
    return ModStore(tmp_path, {"fake": {"token": "token"}})


def test_satisfies_dependency():
    a = ModSpecification("fake://mod")
    b = ModSpecification("fake://mod#1/2")
    c = ModSpecification("fake://other")
    assert a.satisfies_dependency(b)
    assert b.satisfies_dependency(a)
    assert not a.satisfies_dependency(c)


def test_resolution_url_or_name():
    assert ModResolution.resolvable("fake://x").get_resolvable_url_or_name() == "fake://x"
    res = ModResolution.unresolvable("/tmp/x.pak", "x.pak")
    assert res.get_resolvable_url_or_name() == "x.pak"
    assert not res.is_resolvable


def test_fetch_progress_complete():
    res = ModResolution.resolvable("fake://x")
    assert FetchProgress(res).complete
    assert not FetchProgress(res, progress=1, size=2).complete


@pytest.mark.asyncio
async def test_send_progress_async_callback():
    events = []

    async def collect(event):
        events.append(event)

    event = FetchProgress(ModResolution.resolvable("fake://x"))
    await send_progress(collect, event)
    await send_progress(None, event)
    assert events == [event]


def test_registry_replaces_by_id():
    register_provider(FAKE_FACTORY)
    ids = [f.id for f in provider_factories()]
    assert ids.count("fake") == 1


def test_blob_cache_write_and_get(tmp_path):
    blobs = BlobCache(tmp_path / "blobs")
    digest = blobs.write(b"abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    assert blobs.get_path(digest).read_bytes() == b"abc"
    assert blobs.get_path("missing") is None
    assert [p.name for p in (tmp_path / "blobs").iterdir()] == [digest]


def test_cache_get_and_get_mut():
    cache = Cache()
    assert cache.get("fake", FakeCache) is None
    entry = cache.get_mut("fake", FakeCache)
    entry.fetched["k"] = "v"
    assert cache.get("fake", FakeCache).fetched == {"k": "v"}
    assert cache.get("fake", OtherCache) is None
    other = cache.get_mut("fake", OtherCache)
    assert cache.get("fake", OtherCache) is other
    assert cache.get("fake", FakeCache) is None


def test_cache_json_round_trip():
    cache = Cache({"fake": FakeCache({"u": "d"}), "other": OtherCache([1])})
    data = cache.to_json()
    assert data["version"] == "0.0.0"
    assert data["cache"]["fake"] == {"type": "FakeCache", "fetched": {"u": "d"}}
    restored = Cache.from_json(json.loads(json.dumps(data)))
    assert restored.get("fake", FakeCache).fetched == {"u": "d"}
    assert restored.get("other", OtherCache).items == [1]


def test_cache_legacy_layout():
    legacy = {"fake": {"type": "FakeCache", "fetched": {"a": "b"}}}
    assert Cache.from_json(legacy).get("fake", FakeCache).fetched == {"a": "b"}


def test_cache_unknown_version_rejected():
    with pytest.raises(ValueError, match="unsupported cache version"):
        Cache.from_json({"version": "9.9.9", "cache": {}})


def test_cache_unknown_type_rejected():
    with pytest.raises(ValueError, match="unknown provider cache type"):
        Cache.from_json({"version": "0.0.0", "cache": {"x": {"type": "Nope"}}})


def test_load_cache_missing_and_invalid(tmp_path):
    assert load_cache(tmp_path / "absent.json").entries == {}
    bad = tmp_path / "cache.json"
    bad.write_text("{not json")
    with pytest.raises(ValueError):
        load_cache(bad)


def test_store_writes_cache_file(tmp_path):
    new_store = ModStore(tmp_path, {"fake": {"token": "token"}})
    data = json.loads((tmp_path / "cache.json").read_text())
    assert data == {"version": "0.0.0", "cache": {}}
    assert new_store.cache.to_json() == data


def test_missing_parameters_raise_no_provider(tmp_path):
    store = ModStore(tmp_path, {})
    with pytest.raises(NoProviderError) as info:
        store.get_provider("fake://a")
    assert info.value.url == "fake://a"
    assert info.value.factory.id == "fake"
    store.add_provider(FAKE_FACTORY, {"token": "token"})
    assert store.get_provider("fake://a").parameters == {"token": "token"}


def test_unknown_url_raises_lookup(store):
    with pytest.raises(LookupError, match="Could not find mod provider"):
        store.get_provider("nothing://x")


@pytest.mark.asyncio
async def test_add_provider_checked_failure(tmp_path):
    store = ModStore(tmp_path, {})
    with pytest.raises(RuntimeError, match="check failed"):
        await store.add_provider_checked(BROKEN_FACTORY, {"token": "token"})
    with pytest.raises(NoProviderError):
        store.get_provider("broken://x")


@pytest.mark.asyncio
async def test_resolve_mod_follows_redirect(store):
    spec = ModSpecification("fake://a")
    original, info = await store.resolve_mod(spec, False)
    assert original == spec
    assert info.resolution.url == "fake://a/1"


@pytest.mark.asyncio
async def test_resolve_mods_includes_dependencies(store):
    result = await store.resolve_mods([ModSpecification("fake://a")], False)
    assert set(result) == {ModSpecification("fake://a"), ModSpecification("fake://b")}
    assert result[ModSpecification("fake://b")].resolution.url == "fake://b"


@pytest.mark.asyncio
async def test_resolve_mods_propagates_errors(store):
    with pytest.raises(ValueError, match="unknown mod"):
        await store.resolve_mods([ModSpecification("fake://zzz")], False)


@pytest.mark.asyncio
async def test_fetch_mods_ordered(store):
    resolutions = [ModResolution.resolvable(u) for u in ("fake://b", "fake://a/1")]
    events = []
    paths = await store.fetch_mods_ordered(resolutions, False, events.append)
    assert [p.read_bytes() for p in paths] == [b"fake://b", b"fake://a/1"]
    assert {e.resolution for e in events} == set(resolutions)
    assert all(e.complete for e in events)


@pytest.mark.asyncio
async def test_fetch_mods_unordered(store):
    resolutions = [ModResolution.resolvable(u) for u in ("fake://b", "fake://a/1")]
    paths = await store.fetch_mods(resolutions, False)
    assert {p.read_bytes() for p in paths} == {b"fake://b", b"fake://a/1"}


@pytest.mark.asyncio
async def test_fetch_records_cache_and_saves(store, tmp_path):
    await store.fetch_mod(ModResolution.resolvable("fake://b"), False)
    store.save()
    loaded = load_cache(tmp_path / "cache.json")
    assert "fake://b" in loaded.get("fake", FakeCache).fetched


@pytest.mark.asyncio
async def test_update_cache(store):
    await store.update_cache()
    assert store.cache.get("fake", FakeCache).fetched["updated"] == "yes"


def test_sync_queries(store):
    assert store.get_mod_info(ModSpecification("nothing://x")) is None
    assert store.get_mod_info(ModSpecification("fake://b")).name == "b"
    assert store.is_pinned(ModSpecification("fake://a/1"))
    assert not store.is_pinned(ModSpecification("fake://a"))
    assert store.get_version_name(ModSpecification("fake://a")) == "latest"