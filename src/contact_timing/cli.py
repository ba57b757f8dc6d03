"""
Command-line interface for Contact-Timing.

Provides commands for:
  - Scoring a batch of contacts from an events file
  - Inferring a single contact's timezone
  - Validating an algorithm config
  - Generating demo data and scoring it
  - Writing a default config file
"""

from __future__ import annotations

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

app = typer.Typer(
    name="contact-timing",
    help="Best time to contact -- timezone inference and hour-of-week scoring",
    add_completion=False,
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log per-contact detail"),
):
    """Contact-Timing command-line tools."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _parse_timestamp(value: Optional[str], option: str = "--now") -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.error(f"{option} must be an ISO-8601 timestamp, got {value!r}")
        raise typer.Exit(2)


def _log_recommendations(recommendations, limit: int = 10) -> None:
    for rec in recommendations[:limit]:
        best = rec.recommended_windows[0] if rec.recommended_windows else None
        best_str = f"{best.dow} {best.start}-{best.end} ({best.confidence:.2f})" if best else "-"
        logger.info(
            f"  {rec.contact_id:<14} tz={rec.timezone:<20} [{rec.timezone_confidence}]  "
            f"best={best_str}  composite={rec.composite_score:.3f}"
        )
    if len(recommendations) > limit:
        logger.info(f"  ... and {len(recommendations) - limit} more")


def _log_quality(report) -> None:
    if report is None or (report.overall_pass and not report.n_warnings):
        return
    flagged = [g.gate_name for g in report.gates if not g.passed]
    logger.warning(
        f"Event data flagged by {len(flagged)} quality gate(s): {', '.join(flagged)} "
        f"({report.n_failed} failed, {report.n_warnings} warnings)"
    )


# ---------------------------------------------------------------------------
# compute
# ---------------------------------------------------------------------------

@app.command()
def compute(
    events: Path = typer.Option(
        ..., "--events", "-e", help="Events file (CSV, JSON or Parquet)",
    ),
    contacts: Optional[Path] = typer.Option(
        None, "--contacts", help="Contact profiles file (location, locale, timezone, ...)",
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml",
    ),
    priors: Optional[Path] = typer.Option(
        None, "--priors", "-p", help="Segment priors JSON from a previous run",
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory (defaults to storage.outputs_path)",
    ),
    now: Optional[str] = typer.Option(
        None, "--now", help="Evaluation instant (ISO-8601); defaults to the clock",
    ),
):
    """
    Score every contact in an events file and write recommendations.

    Writes recommendations.csv, recommendations.json and, when priors
    are refreshed, segment_priors.json.
    """
    from pydantic import ValidationError

    from contact_timing.config import load_config
    from contact_timing.core.exceptions import ContactTimingError
    from contact_timing.models.priors import SegmentPriorSet
    from contact_timing.pipeline.runner import ContactTimingPipeline

    try:
        cfg = load_config(config_path)
    except (ValidationError, OSError) as e:
        logger.error(f"Could not load config: {e}")
        raise typer.Exit(1)

    segment_priors = None
    if priors is not None:
        if not priors.exists():
            logger.error(f"Priors file not found: {priors}")
            raise typer.Exit(1)
        try:
            segment_priors = SegmentPriorSet.load(priors)
        except (ValueError, OSError) as e:
            logger.error(f"Could not load priors from {priors}: {e}")
            raise typer.Exit(1)
        logger.info(f"Loaded {len(segment_priors)} segment priors from {priors}")

    try:
        pipe = ContactTimingPipeline(cfg, segment_priors=segment_priors)
        pipe.connect(events=events, contacts=contacts)
        results = pipe.run(now=_parse_timestamp(now))
    except ContactTimingError as e:
        logger.error(f"[{e.code}] {e}")
        raise typer.Exit(1)

    _log_quality(results["event_quality"])

    out_dir = output or cfg.storage.outputs_path
    try:
        pipe.save(out_dir)
    except (ContactTimingError, OSError) as e:
        logger.error(f"Could not write outputs to {out_dir}: {e}")
        raise typer.Exit(1)

    logger.info(f"Scored {results['n_contacts']} contacts in {results['duration_seconds']}s")
    _log_recommendations(results["recommendations"])
    typer.echo(str(out_dir))


# ---------------------------------------------------------------------------
# infer-timezone
# ---------------------------------------------------------------------------

@app.command("infer-timezone")
def infer_timezone(
    timestamps: Optional[List[str]] = typer.Option(
        None, "--timestamp", "-t", help="Activity timestamp (ISO-8601, repeatable)",
    ),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
    locale: Optional[str] = typer.Option(None, "--locale"),
    override: Optional[str] = typer.Option(
        None, "--override", help="Pin the zone (IANA name or alias such as 'Pacific')",
    ),
    default_timezone: str = typer.Option("UTC", "--default"),
):
    """
    Infer one contact's timezone and print it as JSON.
    """
    from contact_timing.timezone.inference import (
        get_timezone_display_name,
        infer_best_timezone,
        manual_override,
    )

    if override:
        inference = manual_override(override)
        if inference is None:
            logger.error(f"Unknown timezone: {override}")
            raise typer.Exit(1)
    else:
        parsed = []
        for ts in timestamps or []:
            parsed.append(_parse_timestamp(ts, "--timestamp"))
        inference = infer_best_timezone(
            parsed, location=location, locale=locale, default_timezone=default_timezone,
        )

    out = inference.to_dict()
    out["display_name"] = get_timezone_display_name(inference.timezone)
    typer.echo(json.dumps(out, indent=2))


# ---------------------------------------------------------------------------
# validate-config
# ---------------------------------------------------------------------------

@app.command("validate-config")
def validate_config(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to config.yaml",
    ),
):
    """
    Run the algorithm-config quality gates; exit 1 if any fail.
    """
    from pydantic import ValidationError

    from contact_timing.config import load_config
    from contact_timing.quality.gates import run_config_gates

    try:
        cfg = load_config(config_path)
        algorithm = cfg.to_algorithm_config()
    except (ValidationError, OSError) as e:
        logger.error(f"Could not load config: {e}")
        raise typer.Exit(1)

    report = run_config_gates(algorithm)
    typer.echo(json.dumps(report.to_dict(), indent=2))
    if not report.overall_pass:
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# demo
# ---------------------------------------------------------------------------

@app.command()
def demo(
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory (defaults to storage.outputs_path)",
    ),
    n_contacts: int = typer.Option(20, "--n-contacts", "-n"),
    days_back: int = typer.Option(60, "--days"),
):
    """
    Generate synthetic contacts and events, then score them.

    This is the fastest way to see the engine in action:

        contact-timing demo
    """
    from contact_timing.config import load_config
    from contact_timing.connectors.local import save_file
    from contact_timing.connectors.synthetic import generate_demo_dataset
    from contact_timing.pipeline.runner import ContactTimingPipeline

    cfg = load_config()
    out_dir = output or cfg.storage.outputs_path
    raw_dir = out_dir / "raw"

    logger.info(f"Generating {n_contacts} synthetic contacts over {days_back} days...")
    events_df, contacts_df = generate_demo_dataset(n_contacts=n_contacts, days_back=days_back)
    save_file(events_df, raw_dir / "events.csv")
    save_file(contacts_df, raw_dir / "contacts.csv")

    logger.info("Running pipeline on demo data...")
    pipe = ContactTimingPipeline(cfg)
    pipe.connect(events=raw_dir / "events.csv", contacts=raw_dir / "contacts.csv")
    results = pipe.run()
    _log_quality(results["event_quality"])
    pipe.save(out_dir)

    # How often did inference recover the zone the data was generated in?
    truth = dict(zip(contacts_df["contact_id"], contacts_df["true_timezone"]))
    hits = sum(1 for r in results["recommendations"] if truth.get(r.contact_id) == r.timezone)
    logger.info(f"Timezone recovered for {hits}/{len(truth)} contacts")

    _log_recommendations(results["recommendations"])
    typer.echo(str(out_dir))


# ---------------------------------------------------------------------------
# init-config
# ---------------------------------------------------------------------------

@app.command("init-config")
def init_config(
    output: Path = typer.Option(Path("config.yaml"), "--output", "-o"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
):
    """Write a config file populated with the defaults."""
    from contact_timing.config import ContactTimingConfig

    if output.exists() and not force:
        logger.error(f"{output} already exists (use --force to overwrite)")
        raise typer.Exit(1)

    output.parent.mkdir(parents=True, exist_ok=True)
    ContactTimingConfig().to_yaml(output)
    logger.info(f"Wrote default config to {output}")
    typer.echo(str(output))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
