"""Resolving mod specifications into fetched local files."""

from __future__ import annotations

import inspect
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Sequence, Union

from .providers import ModInfo, ModResolution, ModSpecification, NoProviderError, ProviderFactory

if TYPE_CHECKING:
    from .state import State

logger = logging.getLogger(__name__)

ProviderInit = Callable[["State", str, ProviderFactory], Union[None, Awaitable[Any]]]


def find_missing_dependencies(
    mod_specs: Sequence[ModSpecification], mods: Mapping[ModSpecification, ModInfo]
) -> set[str]:
    """URLs of suggested dependencies that are not among the listed mods."""
    present = {url for spec in mod_specs for url in (mods[spec].spec.url, mods[spec].resolution.url)}
    return {
        dep.url
        for spec in mod_specs
        for dep in mods[spec].suggested_dependencies
        if dep.url not in present
    }


async def resolve_into_urls(
    state: State, mod_specs: Sequence[ModSpecification]
) -> list[ModResolution]:
    """Resolve the mods and return their resolutions in the given order."""
    mods = await state.store.resolve_mods(mod_specs, False)
    missing = find_missing_dependencies(mod_specs, mods)
    if missing:
        logger.warning("the following dependencies are missing:")
        for url in sorted(missing):
            logger.warning("  %s", url)
    return [mods[spec].resolution for spec in mod_specs]


async def resolve_ordered(state: State, mod_specs: Sequence[ModSpecification]) -> list[Path]:
    """Resolve and fetch the mods, returning their local paths."""
    resolutions = await resolve_into_urls(state, mod_specs)
    return await state.store.fetch_mods(resolutions, False, None)


async def resolve_ordered_with_provider_init(
    state: State, mod_specs: Sequence[ModSpecification], init: ProviderInit
) -> list[Path]:
    """Like resolve_ordered, calling ``init`` for each provider that needs setting up."""
    while True:
        try:
            return await resolve_ordered(state, mod_specs)
        except NoProviderError as exc:
            result = init(state, exc.url, exc.factory)
            if inspect.isawaitable(result):
                await result