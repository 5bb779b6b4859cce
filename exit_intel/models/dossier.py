"""
Dossier content and snapshot models.

``DossierContent`` is the strongly typed body of a dossier: one optional
field per ``SectionName``. A field is ``None`` until a builder has produced
that section; otherwise it holds the section's JSON object verbatim. Only
JSON-native values are accepted (dict with str keys, list, str, int, float,
bool, None).

``DossierSnapshot`` is one immutable row of the version chain. Both models
are frozen: once a snapshot is written, only the ``is_current`` column of
the superseded row changes, and that happens in the database, never on a
model instance.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator, model_validator

from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, BuildType, SectionName

SectionContent = dict[str, Any]

_JSON_SCALARS = (str, int, float, bool, type(None))


def find_non_json_value(value: Any, path: str = "$") -> Optional[str]:
    """Return the path of the first value that is not JSON-native, or ``None``."""
    if isinstance(value, _JSON_SCALARS):
        return None
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                return f"{path} (key {key!r})"
            found = find_non_json_value(item, f"{path}.{key}")
            if found is not None:
                return found
        return None
    if isinstance(value, (list, tuple)):
        for i, item in enumerate(value):
            found = find_non_json_value(item, f"{path}[{i}]")
            if found is not None:
                return found
        return None
    return f"{path} ({type(value).__name__})"


class DossierContent(BaseModel):
    """Full dossier body, one field per section.

    Field names equal ``SectionName`` values, so ``content.section(name)``
    and ``getattr(content, name)`` are interchangeable.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity: Optional[SectionContent] = None
    financials: Optional[SectionContent] = None
    assessment: Optional[SectionContent] = None
    valuation: Optional[SectionContent] = None
    tasks: Optional[SectionContent] = None
    evidence: Optional[SectionContent] = None
    signals: Optional[SectionContent] = None
    engagement: Optional[SectionContent] = None
    ai_context: Optional[SectionContent] = None
    na_flags: Optional[SectionContent] = None
    disclosures: Optional[SectionContent] = None
    notes: Optional[SectionContent] = None

    @field_validator("*")
    @classmethod
    def validate_json_native(
        cls, v: Optional[SectionContent], info: ValidationInfo
    ) -> Optional[SectionContent]:
        if v is not None:
            found = find_non_json_value(v, info.field_name)
            if found is not None:
                raise ValueError(f"section content must be JSON-native, got {found}.")
        return v

    def section(self, name: SectionName | str) -> Optional[SectionContent]:
        """Return one section's content by name."""
        return getattr(self, SectionName(name).value)

    def present_sections(self) -> list[SectionName]:
        """Sections that hold content, in canonical order."""
        return [s for s in ALL_SECTIONS if self.section(s) is not None]


class DossierSnapshot(BaseModel):
    """One version of a company's dossier.

    Attributes:
        id: Auto-assigned DB PK; ``None`` before insertion.
        company_id: Owning company.
        version: Positive, strictly increasing per company.
        content: Full merged dossier body.
        build_type: ``FULL`` (first build) or ``INCREMENTAL``.
        trigger_event: Event name that caused this build.
        trigger_source: Optional free-text origin (e.g. a task id).
        sections: Sections actually rebuilt for this version.
        previous_id: PK of the version this one superseded, or ``None``.
        is_current: ``True`` only for the head of the chain.
        content_hash: SHA-256 of the canonical serialization of ``content``.
        created_at: UTC insertion time; ``None`` before insertion.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    company_id: str
    version: int
    content: DossierContent
    build_type: BuildType
    trigger_event: str
    trigger_source: Optional[str] = None
    sections: list[SectionName]
    previous_id: Optional[int] = None
    is_current: bool = True
    content_hash: str
    created_at: Optional[datetime] = None

    @field_validator("company_id")
    @classmethod
    def validate_company_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("company_id must not be empty.")
        return v

    @field_validator("version")
    @classmethod
    def validate_version(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"version must be >= 1, got {v}.")
        return v

    @model_validator(mode="after")
    def validate_chain_consistency(self) -> "DossierSnapshot":
        if self.version == 1 and self.previous_id is not None:
            raise ValueError("version 1 cannot reference a previous snapshot.")
        if self.version > 1 and self.previous_id is None:
            raise ValueError(f"version {self.version} must reference its previous snapshot.")
        if self.build_type == BuildType.FULL and list(self.sections) != list(ALL_SECTIONS):
            raise ValueError("FULL builds must list every section as rebuilt.")
        return self
