"""
Company dossier: a versioned, incrementally rebuilt snapshot of a company's
derived state, split into named sections.

Modules
-------
builders : SectionBuilder protocol + SectionProviderRegistry
           + JsonDirectorySectionBuilder.
hashing  : canonical JSON + content / per-section SHA-256 digests.
merge    : builder-output validation + per-section merge.
updater  : DossierUpdater — update, read and background-update entry points.
"""
