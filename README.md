# drgmint

`drgmint` is a library for managing Deep Rock Galactic mods. It covers:

- **Mod sources.** It resolves and fetches mods from local files and from plain HTTP(S)
  URLs. Downloads are kept in a content-addressed blob cache.
- **Profiles and groups.** It stores mod profiles and mod groups. Older profile files are
  moved forward to the current format when they are loaded.
- **Linting.** It checks a set of mod archives for common problems: conflicting files,
  stray `AssetRegistry.bin`, shader bytecode, non-asset files, outdated pak versions,
  empty archives, archives with several paks or no pak, split `.uasset`/`.uexp` pairs, and
  assets left identical to the game's.

## Concepts

`ModSpecification` (`drgmint.providers`)
: Points to a mod by URL or by file path.

`ModResolution` (`drgmint.providers`)
: Points to one specific, fetchable version of a mod.

`ModStore` (`drgmint.providers`)
: Finds the provider for each URL and uses it to resolve and fetch mods. It also owns the
  provider metadata cache (`cache.json`) and the blob cache (`blobs/`).

`State` (`drgmint.state`)
: Holds three things together: the user configuration (`config.json`), the profiles and
  groups (`mod_data.json`), and a `ModStore`.

`ConfigWrapper` (`drgmint.config`)
: Holds one configuration object and the file it belongs to.
  - `save()` writes through a temporary file and then replaces the target, so a crash
    never leaves half a file.
  - Used as a context manager, it saves when the block ends.
  - It does not save on its own at any other time.

## Providers

Two providers are registered when `drgmint.file_provider` and `drgmint.http_provider` are
imported. `drgmint.state` imports both. The first provider whose check accepts a URL
handles it.

| Provider | Handles |
| --- | --- |
| `file` | Any path that exists on disk. |
| `http` | `http://` and `https://` URLs, except those on the mod.io hosts. |

The HTTP provider accepts only two response content types, `application/zip` and
`application/octet-stream`. Any other content type raises `ValueError`.

Some providers take parameters, which are read from `Config.provider_parameters`. When
such a provider has not been set up yet, `ModStore.get_provider` raises
`NoProviderError`. The error carries the URL and the provider's `ProviderFactory`.

## Resolving and fetching mods

```python
import asyncio
from pathlib import Path

from drgmint.state import State
from drgmint.providers import ModSpecification
from drgmint.resolve import resolve_into_urls

state = State.init(Path("config"), Path("cache"))

specs = [
    ModSpecification("./local/path/test-mod.pak"),
    ModSpecification("https://example.com/mods/public-mod.zip"),
]

async def fetch():
    resolutions = await resolve_into_urls(state, specs)
    return await state.store.fetch_mods_ordered(resolutions, False)

paths = asyncio.run(fetch())
for spec, path in zip(specs, paths):
    print(spec.url, "->", path)

state.save()
```

Up to five mods are resolved or fetched at once.

- `ModStore.fetch_mods_ordered` returns paths in the order of its input.
- `ModStore.fetch_mods` returns paths in the order the downloads complete.
- `resolve.resolve_ordered` and `resolve.resolve_ordered_with_provider_init` both fetch
  through `fetch_mods`, so they also return paths in completion order.

`resolve_ordered_with_provider_init(state, specs, init)` retries on `NoProviderError`.
Before each retry it calls `init(state, url, factory)`, which may be sync or async. The
`init` callback is where you would register the missing provider with
`state.store.add_provider`.

Some mods suggest dependencies that are not in the list. These are logged as warnings, and
`find_missing_dependencies` returns the same URLs directly.

Progress can be followed by passing a callback, sync or async, to the fetch methods. The
callback receives `FetchProgress` events.

## Working with profiles

```python
mod_data = state.mod_data.config

profile = mod_data.get_active_profile()

for mod in mod_data.enabled_mods(mod_data.active_profile):
    print(mod.spec.url, "required" if mod.required else "optional")
```

A profile lists `ModConfig` entries and `GroupRef` entries mixed together. A `GroupRef`
points to a `ModGroup` by name. There are three ways to walk a profile:

- `mods(profile)` yields every mod, including the mods inside groups.
- `enabled_mods(profile)` yields only mods that are enabled themselves. A mod inside a
  group is also left out when its group is disabled.
- `iter_mods(profile, group_filter, predicate)` lets you choose both filters.

`any_mod(profile, f)` is `True` if `f(mod, group_enabled)` holds for any mod. The second
argument is `None` for mods listed directly in the profile.

`load_mod_data` handles older files as follows:

- It reads unversioned or `0.0.0` data and converts it to the `0.1.0` layout.
- When only a legacy `profiles.json` exists, it migrates that file and then deletes it.

## Linting a mod bundle

```python
from pathlib import Path

from drgmint.lint_context import LintId
from drgmint.report import run_lints

report = run_lints(
    {LintId.CONFLICTING, LintId.EMPTY_ARCHIVE, LintId.SPLIT_ASSET_PAIRS},
    set(zip(specs, paths)),
    Path("FSD/Content/Paks/FSD-WindowsNoEditor.pak"),
    open_pak,
)

print(report.conflicting_mods)
print(report.empty_archive_mods)
print(report.split_asset_pairs_mods)
```

`run_lints` takes four arguments:

- The lints to run. They run in the order of their names.
- `(ModSpecification, path)` pairs, one for each mod. A path may be a bare pak or a zip
  archive.
- The path to the game's main pak. Only `LintId.UNMODIFIED_GAME_ASSETS` needs it, and that
  lint raises `ValueError` without it.
- `open_pak`, a callable that takes a binary stream and returns a `PakReader`.

Each lint's findings are stored on a field of `LintReport`. A field stays `None` when its
lint was not run.

## Game installations

`DRGInstallation.from_pak_path` works out where a Steam or Xbox installation lives from the
path of its main pak. From there you can get the binaries directory, the paks directory
and the main pak path. `DRGInstallationType` also gives the name of the hook DLL for each
storefront.

## What this package does not do

- **It does not read the pak format.** `PakReader` is an abstract class. To lint, you must
  supply your own implementation through `open_pak`.
- **It has no mod.io provider.** Only local files and plain HTTP(S) URLs can be resolved
  and fetched.
- **It does not write mods into the game's pak files.** It does not build or install a
  combined mod bundle.
- **It does not find a game installation on its own.** `Config.drg_pak_path` defaults to
  `None`.
- **It has no command-line tool and no graphical interface.** It is used as a library.