"""User configuration, mod profiles and groups, and the application state."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterator, Mapping, Optional, Union

import platformdirs

from . import file_provider, http_provider  # noqa: F401  (registers the providers)
from .config import ConfigWrapper
from .providers import ModSpecification, ModStore

APP_NAME = "drg-mod-integration"
MOD_DATA_VERSION = "0.1.0"
LEGACY_MOD_DATA_VERSION = "0.0.0"
CONFIG_VERSION = "0.0.0"
DEFAULT_PROFILE = "default"


def _require_bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValueError(f"expected boolean field {key!r}")
    return value


def _require_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"expected string field {key!r}")
    return value


def _require_dict(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"expected an object for {what}")
    return value


def _require_list(value: Any, what: str) -> list[Any]:
    if not isinstance(value, list):
        raise ValueError(f"expected a list for {what}")
    return value


@dataclass
class ModConfig:
    """A mod in a profile or group together with its settings."""

    spec: ModSpecification
    required: bool
    enabled: bool = True

    def to_json(self) -> dict[str, Any]:
        return {"spec": {"url": self.spec.url}, "required": self.required, "enabled": self.enabled}

    @classmethod
    def from_json(cls, data: Any) -> ModConfig:
        data = _require_dict(data, "mod config")
        spec = _require_dict(data.get("spec"), "mod specification")
        enabled = data.get("enabled", True)
        if not isinstance(enabled, bool):
            raise ValueError("expected boolean field 'enabled'")
        return cls(
            ModSpecification(_require_str(spec, "url")),
            _require_bool(data, "required"),
            enabled,
        )


@dataclass
class ModGroup:
    """A named collection of mods that profiles can include."""

    mods: list[ModConfig] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {"mods": [m.to_json() for m in self.mods]}

    @classmethod
    def from_json(cls, data: Any) -> ModGroup:
        data = _require_dict(data, "mod group")
        return cls([ModConfig.from_json(m) for m in _require_list(data.get("mods"), "mods")])


@dataclass
class GroupRef:
    """A reference from a profile to a mod group."""

    group_name: str
    enabled: bool

    def to_json(self) -> dict[str, Any]:
        return {"group_name": self.group_name, "enabled": self.enabled}


ModOrGroup = Union[ModConfig, GroupRef]


def _mod_or_group_from_json(data: Any) -> ModOrGroup:
    data = _require_dict(data, "profile entry")
    if isinstance(data.get("group_name"), str) and isinstance(data.get("enabled"), bool):
        return GroupRef(data["group_name"], data["enabled"])
    return ModConfig.from_json(data)


@dataclass
class ModProfile:
    """An ordered list of individual mods mixed with mod groups."""

    mods: list[ModOrGroup] = field(default_factory=list)

    def to_json(self) -> dict[str, Any]:
        return {"mods": [m.to_json() for m in self.mods]}

    @classmethod
    def from_json(cls, data: Any) -> ModProfile:
        data = _require_dict(data, "mod profile")
        return cls([_mod_or_group_from_json(m) for m in _require_list(data.get("mods"), "mods")])


def _default_profiles() -> dict[str, ModProfile]:
    return {DEFAULT_PROFILE: ModProfile()}


def _default_groups() -> dict[str, ModGroup]:
    return {DEFAULT_PROFILE: ModGroup()}


@dataclass
class ModData:
    """All profiles and groups, and which profile is active."""

    active_profile: str = DEFAULT_PROFILE
    profiles: dict[str, ModProfile] = field(default_factory=_default_profiles)
    groups: dict[str, ModGroup] = field(default_factory=_default_groups)

    def iter_mods(
        self,
        profile: str,
        group_filter: Optional[Callable[[bool], bool]] = None,
        predicate: Optional[Callable[[ModConfig], bool]] = None,
    ) -> Iterator[ModConfig]:
        """Mods of a profile in order, expanding groups.

        ``group_filter`` receives a group's enabled flag and decides whether
        its mods are visited; ``predicate`` filters the individual mods.
        """
        for entry in self.profiles[profile].mods:
            if isinstance(entry, GroupRef):
                if group_filter is None or group_filter(entry.enabled):
                    for mc in self.groups[entry.group_name].mods:
                        if predicate is None or predicate(mc):
                            yield mc
            elif predicate is None or predicate(entry):
                yield entry

    def mods(self, profile: str) -> Iterator[ModConfig]:
        """Every mod of the profile, enabled or not."""
        return self.iter_mods(profile)

    def enabled_mods(self, profile: str) -> Iterator[ModConfig]:
        """Enabled mods of the profile, skipping disabled groups."""
        return self.iter_mods(profile, lambda enabled: enabled, lambda mc: mc.enabled)

    def any_mod(self, profile: str, f: Callable[[ModConfig, Optional[bool]], bool]) -> bool:
        """Whether ``f`` holds for any mod; the second argument is the group's
        enabled flag, or None for mods listed directly in the profile."""
        for entry in self.profiles[profile].mods:
            if isinstance(entry, GroupRef):
                if any(f(mc, entry.enabled) for mc in self.groups[entry.group_name].mods):
                    return True
            elif f(entry, None):
                return True
        return False

    def get_active_profile(self) -> ModProfile:
        return self.profiles[self.active_profile]

    def remove_active_profile(self) -> None:
        """Delete the active profile and activate the first remaining one by name."""
        self.profiles.pop(self.active_profile, None)
        if not self.profiles:
            raise ValueError("no profiles left to activate")
        self.active_profile = min(self.profiles)

    def to_json(self) -> dict[str, Any]:
        return {
            "version": MOD_DATA_VERSION,
            "active_profile": self.active_profile,
            "profiles": {name: p.to_json() for name, p in sorted(self.profiles.items())},
            "groups": {name: g.to_json() for name, g in sorted(self.groups.items())},
        }

    @classmethod
    def _from_legacy(cls, data: dict[str, Any]) -> ModData:
        profiles = {}
        for name, raw in _require_dict(data.get("profiles"), "profiles").items():
            raw = _require_dict(raw, "mod profile")
            mods = [ModConfig.from_json(m) for m in _require_list(raw.get("mods"), "mods")]
            profiles[name] = ModProfile(list(mods))
        return cls(_require_str(data, "active_profile"), profiles, {})

    @classmethod
    def from_json(cls, data: Any) -> ModData:
        """Read the current layout, migrating version 0.0.0 and unversioned data."""
        data = _require_dict(data, "mod data")
        version = data.get("version")
        if version == MOD_DATA_VERSION:
            return cls(
                _require_str(data, "active_profile"),
                {
                    name: ModProfile.from_json(p)
                    for name, p in _require_dict(data.get("profiles"), "profiles").items()
                },
                {
                    name: ModGroup.from_json(g)
                    for name, g in _require_dict(data.get("groups"), "groups").items()
                },
            )
        return cls._from_legacy(data)


@dataclass
class Config:
    """User settings: provider parameters and the game pak location."""

    provider_parameters: dict[str, dict[str, str]] = field(default_factory=dict)
    drg_pak_path: Optional[Path] = None

    def to_json(self) -> dict[str, Any]:
        return {
            "version": CONFIG_VERSION,
            "provider_parameters": self.provider_parameters,
            "drg_pak_path": None if self.drg_pak_path is None else str(self.drg_pak_path),
        }

    @classmethod
    def from_json(cls, data: Any) -> Config:
        """Read the versioned or legacy layout; unknown versions are rejected."""
        data = _require_dict(data, "config")
        version = data.get("version")
        if version is not None and version != CONFIG_VERSION:
            raise ValueError("unsupported config version")
        raw_params = _require_dict(data.get("provider_parameters"), "provider_parameters")
        params: dict[str, dict[str, str]] = {}
        for provider, values in raw_params.items():
            values = _require_dict(values, f"parameters of {provider}")
            if not all(isinstance(v, str) for v in values.values()):
                raise ValueError(f"parameters of {provider} must be strings")
            params[provider] = dict(values)
        pak = data.get("drg_pak_path")
        if pak is not None and not isinstance(pak, str):
            raise ValueError("expected string field 'drg_pak_path'")
        return cls(params, None if pak is None else Path(pak))


def load_config(path: str | os.PathLike[str]) -> Config:
    """Load config.json, or the default config if it does not exist."""
    try:
        raw = Path(path).read_bytes()
    except FileNotFoundError:
        return Config()
    try:
        return Config.from_json(json.loads(raw))
    except ValueError as exc:
        raise ValueError(f"failed to deserialize user config: {exc}") from exc


def load_mod_data(
    path: str | os.PathLike[str], legacy_path: str | os.PathLike[str]
) -> ModData:
    """Load mod_data.json, migrating a legacy profiles.json if that is all there is.

    The legacy file is removed once it has been read.
    """
    try:
        raw = Path(path).read_bytes()
    except FileNotFoundError:
        legacy = Path(legacy_path)
        try:
            raw = legacy.read_bytes()
        except FileNotFoundError:
            return ModData()
        try:
            mod_data = ModData.from_json(json.loads(raw))
        except ValueError as exc:
            raise ValueError(f"failed to deserialize legacy `profiles.json`: {exc}") from exc
        legacy.unlink()
        return mod_data
    try:
        return ModData.from_json(json.loads(raw))
    except ValueError as exc:
        raise ValueError(f"failed to deserialize existing `mod_data.json`: {exc}") from exc


@dataclass
class State:
    """Configuration, mod data and the mod store, each backed by files."""

    config_dir: Path
    cache_dir: Path
    config: ConfigWrapper[Config]
    mod_data: ConfigWrapper[ModData]
    store: ModStore

    @classmethod
    def init(
        cls,
        config_dir: Optional[str | os.PathLike[str]] = None,
        cache_dir: Optional[str | os.PathLike[str]] = None,
    ) -> State:
        """Load everything from the given (or the user's default) directories."""
        config_dir = Path(config_dir or platformdirs.user_config_dir(APP_NAME))
        cache_dir = Path(cache_dir or platformdirs.user_cache_dir(APP_NAME))
        cache_dir.mkdir(parents=True, exist_ok=True)
        config_dir.mkdir(parents=True, exist_ok=True)

        config_path = config_dir / "config.json"
        config = ConfigWrapper(config_path, load_config(config_path))
        config.save()

        mod_data_path = config_dir / "mod_data.json"
        mod_data = ConfigWrapper(
            mod_data_path, load_mod_data(mod_data_path, config_dir / "profiles.json")
        )
        mod_data.save()

        store = ModStore(cache_dir, config.config.provider_parameters)
        return cls(config_dir, cache_dir, config, mod_data, store)

    def save(self) -> None:
        """Write configuration, mod data and cache metadata."""
        self.config.save()
        self.mod_data.save()
        self.store.save()