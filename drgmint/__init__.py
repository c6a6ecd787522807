"""Resolve, fetch, organise and lint Deep Rock Galactic mods: local and HTTP providers,
profiles and groups, and lints over mod archives."""

__version__ = "0.2.14"