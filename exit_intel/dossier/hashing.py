"""
Canonical content hashing for dossier snapshots.

The content hash is the dedup key of the version chain: an update whose
merged content hashes to the current head's hash writes nothing. For that
to hold across build paths (FULL vs INCREMENTAL reaching the same state) the
serialization must not depend on dict insertion order, so every object is
serialized with recursively sorted keys and fixed separators.

Section hashes use the same canonical form per section; they let readers
report *which* sections differ between two versions without diffing the
full JSON.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from exit_intel.models.dossier import DossierContent
from exit_intel.taxonomy.dossier_taxonomy import ALL_SECTIONS, SectionName


def canonical_json(payload: Any) -> str:
    """Serialize ``payload`` deterministically.

    ``sort_keys`` applies recursively, separators carry no whitespace, and
    non-ASCII text is kept as-is so the digest does not depend on escaping.
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def compute_hash(payload: Any) -> str:
    """Hex SHA-256 of the canonical serialization of ``payload``."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def compute_content_hash(content: DossierContent) -> str:
    """Digest of the full merged dossier body."""
    return compute_hash(content.model_dump(mode="json"))


def compute_section_hashes(content: DossierContent) -> dict[str, str]:
    """Digest of every section (absent sections hash as JSON ``null``)."""
    dumped = content.model_dump(mode="json")
    return {s.value: compute_hash(dumped[s.value]) for s in ALL_SECTIONS}


def changed_sections(
    old: DossierContent,
    new: DossierContent,
) -> list[SectionName]:
    """Sections whose content differs between ``old`` and ``new``, in canonical order."""
    return diff_section_hashes(compute_section_hashes(old), compute_section_hashes(new))


def diff_section_hashes(
    old_hashes: dict[str, str],
    new_hashes: dict[str, str],
) -> list[SectionName]:
    """Sections whose stored digests differ, in canonical order."""
    return [s for s in ALL_SECTIONS if old_hashes.get(s.value) != new_hashes.get(s.value)]
