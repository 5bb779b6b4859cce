"""
Builder-output validation and section-level merge.

Builders return loosely typed mappings. Before anything is merged or hashed,
``collect_sections()`` checks that every requested section came back and is
a JSON object of JSON-native values (or ``None`` for "no data yet"); a
violation aborts the update with ``SectionBuildError``. Sections the caller
did not request are dropped so the snapshot's ``sections`` list matches
what was rebuilt.

``merge_content()`` is an explicit per-field replace: a section listed in
``rebuilt`` takes the new value, every other section keeps the base value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional

from exit_intel.errors import SectionBuildError
from exit_intel.models.dossier import DossierContent, SectionContent, find_non_json_value
from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, SectionName

logger = logging.getLogger(__name__)

BuiltSections = dict[SectionName, Optional[SectionContent]]


def collect_sections(
    company_id: str,
    built: Mapping[Any, Any],
    requested: Sequence[SectionName],
) -> BuiltSections:
    """Validate builder output against the requested section list.

    Args:
        company_id: Company being built (for error context).
        built: Raw builder output keyed by section name (``SectionName`` or str).
        requested: Sections the builder was asked for.

    Returns:
        Dict of exactly the requested sections, keyed by ``SectionName``.

    Raises:
        SectionBuildError: On unknown keys, missing sections, or non-object content.
    """
    by_name: dict[SectionName, Any] = {}
    for key, value in built.items():
        try:
            name = SectionName(key)
        except ValueError:
            raise SectionBuildError(company_id, f"builder returned unknown section '{key}'") from None
        by_name[name] = value

    missing = [s.value for s in requested if s not in by_name]
    if missing:
        raise SectionBuildError(company_id, f"builder omitted section(s): {', '.join(missing)}")

    extra = [s.value for s in by_name if s not in requested]
    if extra:
        logger.warning(
            "Ignoring unrequested section(s) %s from builder | company=%s",
            extra, company_id,
        )

    result: BuiltSections = {}
    for name in requested:
        value = by_name[name]
        if value is not None and not isinstance(value, Mapping):
            raise SectionBuildError(
                company_id,
                f"section '{name.value}' must be an object, got {type(value).__name__}",
            )
        if value is not None:
            found = find_non_json_value(dict(value), name.value)
            if found is not None:
                raise SectionBuildError(
                    company_id, f"section '{name.value}' holds a non-JSON value at {found}"
                )
        result[name] = dict(value) if value is not None else None
    return result


def content_from_sections(sections: BuiltSections) -> DossierContent:
    """Build a full ``DossierContent`` from a complete section set."""
    fields: dict[str, Optional[SectionContent]] = {}
    for name in ALL_SECTIONS:
        fields[name.value] = sections.get(name)
    return DossierContent(**fields)


def merge_content(base: DossierContent, rebuilt: BuiltSections) -> DossierContent:
    """Replace the rebuilt sections of ``base``; carry every other section over."""
    fields: dict[str, Optional[SectionContent]] = {}
    for name in ALL_SECTIONS:
        if name in rebuilt:
            fields[name.value] = rebuilt[name]
        else:
            fields[name.value] = base.section(name)
    return DossierContent(**fields)
