"""
Section builder interface and adapters.

The section builders themselves (identity, financials, assessment, ...) live
outside this package. The dossier updater only depends on the
``SectionBuilder`` protocol:

    build_all_sections(company_id)        -> {section: content}
    build_sections(company_id, names)     -> {section: content} for ``names``

Two adapters ship here:

``SectionProviderRegistry``
    Composes one callable per section into a ``SectionBuilder``. This is how
    a service wires its domain builders in::

        registry = SectionProviderRegistry()
        registry.register(SectionName.TASKS, build_tasks_section)

``JsonDirectorySectionBuilder``
    Reads precomputed section files from ``<root>/<company_id>/<section>.json``.
    Used by the CLI and for replaying exported section data.

Builders raise on failure; the updater never catches builder errors.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any, Optional, Protocol, runtime_checkable

from exit_intel.errors import SectionBuildError
from exit_intel.models.dossier import SectionContent
from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, SectionName

logger = logging.getLogger(__name__)

SectionProvider = Callable[[str], Optional[SectionContent]]


@runtime_checkable
class SectionBuilder(Protocol):
    """Contract for computing dossier section content."""

    def build_all_sections(self, company_id: str) -> Mapping[Any, Any]:
        ...

    def build_sections(
        self,
        company_id: str,
        names: Iterable[SectionName],
    ) -> Mapping[Any, Any]:
        ...


class SectionProviderRegistry:
    """``SectionBuilder`` assembled from per-section provider callables.

    A provider takes a company id and returns the section's JSON object (or
    ``None`` when there is no data yet). A section with no registered
    provider cannot be built.
    """

    def __init__(self, providers: Optional[Mapping[SectionName, SectionProvider]] = None) -> None:
        self._providers: dict[SectionName, SectionProvider] = {}
        for name, provider in (providers or {}).items():
            self.register(name, provider)

    def register(self, name: SectionName | str, provider: SectionProvider) -> None:
        self._providers[SectionName(name)] = provider

    @property
    def registered(self) -> list[SectionName]:
        return [s for s in ALL_SECTIONS if s in self._providers]

    def build_all_sections(self, company_id: str) -> dict[SectionName, Optional[SectionContent]]:
        return self.build_sections(company_id, ALL_SECTIONS)

    def build_sections(
        self,
        company_id: str,
        names: Iterable[SectionName],
    ) -> dict[SectionName, Optional[SectionContent]]:
        result: dict[SectionName, Optional[SectionContent]] = {}
        for name in names:
            provider = self._providers.get(SectionName(name))
            if provider is None:
                raise SectionBuildError(company_id, f"no provider registered for section '{name}'")
            result[SectionName(name)] = provider(company_id)
        return result


class JsonDirectorySectionBuilder:
    """Read sections from ``<root>/<company_id>/<section>.json``.

    A missing file means the section has no data yet (``None``). Unreadable
    or malformed files raise ``SectionBuildError``.

    Attributes:
        root: Base directory holding one sub-directory per company.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def section_path(self, company_id: str, name: SectionName) -> Path:
        return self.root / company_id / f"{SectionName(name).value}.json"

    def build_all_sections(self, company_id: str) -> dict[SectionName, Optional[SectionContent]]:
        return self.build_sections(company_id, ALL_SECTIONS)

    def build_sections(
        self,
        company_id: str,
        names: Iterable[SectionName],
    ) -> dict[SectionName, Optional[SectionContent]]:
        result: dict[SectionName, Optional[SectionContent]] = {}
        for name in names:
            path = self.section_path(company_id, name)
            if not path.exists():
                logger.debug("No section file %s; treating as empty.", path)
                result[SectionName(name)] = None
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    result[SectionName(name)] = json.load(f)
            except (OSError, json.JSONDecodeError) as exc:
                raise SectionBuildError(company_id, f"cannot read {path}: {exc}") from exc
        return result
