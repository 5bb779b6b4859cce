"""
Exit Intelligence — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action (DB init, dossier update, recommendation run, etc.).
  5. Report result to stdout.

Install and run::

    pip install -e .
    exit-intel --help
    exit-intel init-db
    exit-intel validate-config
    exit-intel update-dossier --company acme --trigger task_completed --source task-42
    exit-intel show-dossier --company acme --section tasks
    exit-intel dossier-history --company acme
    exit-intel recommend --inputs data/inputs/acme.json --output data/outputs/acme.json

The dossier commands read section content from JSON files under
``[dossier] sections_dir`` (``<sections_dir>/<company>/<section>.json``).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="exit-intel",
    help="Exit Intelligence — company dossier store and playbook recommendations.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from exit_intel.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from exit_intel.utils.logging import configure_logging
    configure_logging(config.logging)


def _open_database(config, db_path: Optional[str] = None):
    """Build and open the ``Database`` resource (schema + migrations applied)."""
    from exit_intel.db.connection import Database

    return Database(
        db_path or config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ).open()


def _make_updater(config, database):
    from exit_intel.dossier.builders import JsonDirectorySectionBuilder
    from exit_intel.dossier.updater import DossierUpdater

    builder = JsonDirectorySectionBuilder(config.dossier.sections_dir)
    return DossierUpdater(database, builder, config.dossier)


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Safe to run multiple times; all DDL uses IF NOT EXISTS.
    Also runs pending schema migrations.
    """
    from exit_intel.db.connection import get_connection
    from exit_intel.db.migrations import run_migrations
    from exit_intel.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        migrations_applied = run_migrations(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo(f"  Migrations applied: {migrations_applied}")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)
    rec = config.recommendations

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Sections dir:      {config.dossier.sections_dir}")
    typer.echo(f"  Conflict retries:  {config.dossier.max_conflict_retries}")
    typer.echo(f"  Background workers:{config.dossier.background_workers}")
    typer.echo(f"  RSS / BQS ceiling: {rec.rss_max_rate} / {rec.bqs_max_impact}")
    typer.echo(f"  Top N:             {rec.top_n}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("update-dossier")
def update_dossier(
    company: str = typer.Option(..., "--company", "-c", help="Company id."),
    trigger: str = typer.Option(
        ...,
        "--trigger",
        "-t",
        help="Trigger event (e.g. task_completed, manual_rebuild).",
    ),
    source: Optional[str] = typer.Option(
        None,
        "--source",
        help="Optional origin of the event (e.g. a task id).",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Rebuild the sections affected by TRIGGER and advance the dossier chain."""
    from exit_intel.errors import ExitIntelError

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    database = _open_database(config, db_path)
    try:
        with _make_updater(config, database) as updater:
            previous = updater.get_current_dossier(company)
            snapshot = updater.update_dossier(company, trigger, source)
    except ExitIntelError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    finally:
        database.close()

    if previous is not None and snapshot.id == previous.id:
        typer.echo(f"[OK] {company}: unchanged at v{snapshot.version} (hash {snapshot.content_hash[:12]}).")
        return

    typer.echo(
        f"[OK] {company}: v{snapshot.version} {snapshot.build_type.value} "
        f"(hash {snapshot.content_hash[:12]})"
    )
    typer.echo(f"  Rebuilt sections: {', '.join(s.value for s in snapshot.sections)}")


@app.command("show-dossier")
def show_dossier(
    company: str = typer.Option(..., "--company", "-c", help="Company id."),
    section: Optional[str] = typer.Option(
        None,
        "--section",
        "-s",
        help="Print only this section (e.g. tasks).",
    ),
    version: Optional[int] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show a historical version instead of the current head.",
    ),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Print a dossier snapshot (or one of its sections) as JSON."""
    from exit_intel.taxonomy.dossier_taxonomy import SectionName

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if section is not None and section not in {s.value for s in SectionName}:
        typer.echo(
            f"[ERROR] Unknown section '{section}'. "
            f"Valid: {', '.join(s.value for s in SectionName)}",
            err=True,
        )
        raise typer.Exit(code=1)

    database = _open_database(config, db_path)
    try:
        with _make_updater(config, database) as updater:
            if version is None:
                snapshot = updater.get_current_dossier(company)
            else:
                snapshot = updater.get_version(company, version)
    finally:
        database.close()

    if snapshot is None:
        label = f"version {version}" if version is not None else "dossier"
        typer.echo(f"[ERROR] No {label} found for company '{company}'.", err=True)
        raise typer.Exit(code=1)

    if section is not None:
        payload = snapshot.content.section(section)
    else:
        payload = snapshot.model_dump(mode="json")

    typer.echo(json.dumps(payload, indent=2, default=str))


@app.command("dossier-history")
def dossier_history(
    company: str = typer.Option(..., "--company", "-c", help="Company id."),
    limit: int = typer.Option(20, "--limit", "-n", help="Max versions to list."),
    db_path: Optional[str] = typer.Option(None, "--db-path", help="Override DB path."),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """List dossier versions, newest first, with the sections that changed."""
    from exit_intel.dossier.hashing import diff_section_hashes

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    database = _open_database(config, db_path)
    try:
        with _make_updater(config, database) as updater:
            # one extra row so the oldest listed version can be diffed
            entries = updater.list_history(company, limit=limit + 1)
    finally:
        database.close()

    if not entries:
        typer.echo(f"No dossier versions for company '{company}'.")
        return

    typer.echo(f"Dossier history for {company}:")
    for i, entry in enumerate(entries[:limit]):
        older = entries[i + 1] if i + 1 < len(entries) else None
        if older is None:
            changed = "(initial)"
        else:
            diff = diff_section_hashes(older.section_hashes, entry.section_hashes)
            changed = ", ".join(s.value for s in diff) or "-"
        marker = "*" if entry.is_current else " "
        typer.echo(
            f" {marker} v{entry.version:<4} {entry.build_type.value:<11} "
            f"{entry.trigger_event:<26} {entry.created_at:%Y-%m-%d %H:%M:%S}  "
            f"changed: {changed}"
        )


@app.command("recommend")
def recommend(
    inputs_file: str = typer.Option(
        ...,
        "--inputs",
        "-i",
        help="JSON file with drs_categories, risk_discounts, quality_adjustments, "
             "company_profile and active_playbook_slugs.",
    ),
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the full ranked result to this JSON file.",
    ),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to TOML config file."),
) -> None:
    """Rank playbooks for one company from its score inputs."""
    from pydantic import ValidationError

    from exit_intel.models.recommendation import RecommendationInputs
    from exit_intel.recommendations.ranker import recommend_playbooks
    from exit_intel.recommendations.reporter import write_recommendation_json

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    inputs_path = Path(inputs_file)
    if not inputs_path.exists():
        typer.echo(f"[ERROR] Inputs file not found: {inputs_path}", err=True)
        raise typer.Exit(code=1)

    try:
        with open(inputs_path, encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)

    if not isinstance(raw, dict):
        typer.echo("[ERROR] Inputs file must contain a JSON object.", err=True)
        raise typer.Exit(code=1)

    try:
        inputs = RecommendationInputs.model_validate(raw)
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid inputs:\n{exc}", err=True)
        raise typer.Exit(code=1)

    result = recommend_playbooks(inputs, tuning=config.recommendations.to_tuning())
    company_id = str(raw.get("company_id", ""))

    typer.echo(f"Top category: {result.top_category or '-'}")
    typer.echo(
        f"Total addressable impact: ${result.total_addressable_impact.low:,} – "
        f"${result.total_addressable_impact.high:,}"
    )
    typer.echo("")
    for rank, rec in enumerate(result.recommendations, start=1):
        if not rec.is_recommended:
            continue
        typer.echo(
            f"  #{rank} {rec.playbook.slug:<36} relevance={rec.relevance_score:.3f} "
            f"impact=${rec.estimated_impact_low:,}–${rec.estimated_impact_high:,}"
        )

    if output:
        path = write_recommendation_json(result, Path(output), company_id=company_id)
        typer.echo("")
        typer.echo(f"  Written: {path}")

    typer.echo("[OK] Recommendations ready.")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
