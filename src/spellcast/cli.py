"""spellcast CLI — work with spell libraries and recorded sessions.

Usage:
    spellcast replay        — Replay a recorded tracking session through the engine
    spellcast match         — Match a stroke file against a spell library
    spellcast learn         — Learn a spell from three stroke files
    spellcast benchmark     — Time normalization and matching
    spellcast init-config   — Write the default engine config
    spellcast templates ... — List, delete, import and generate spell libraries

Stroke files are JSON: either ``[[x, y], ...]`` or ``{"points": [[x, y], ...]}``.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import List, Optional

import typer

app = typer.Typer(
    name="spellcast",
    help="🪄 Draw spells in the air and recognize them.",
    add_completion=False,
)
templates_app = typer.Typer(help="Manage spell template libraries.")
app.add_typer(templates_app, name="templates")


@app.callback()
def main_options(
    log_level: str = typer.Option("warning", help="Log level"),
):
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_library(path: Optional[str]):
    from spellcast.templates import TemplateLibrary

    if path is None:
        return TemplateLibrary.with_defaults()
    if not Path(path).exists():
        typer.echo(f"❌ Template library not found: {path}", err=True)
        raise typer.Exit(1)
    library = TemplateLibrary()
    library.load_from_file(path)
    return library


def _load_stroke(path: str):
    from spellcast.normalizer import as_points

    p = Path(path)
    if not p.exists():
        typer.echo(f"❌ Stroke file not found: {path}", err=True)
        raise typer.Exit(1)
    try:
        with open(p) as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("points", [])
        return as_points(data)
    except json.JSONDecodeError as e:
        typer.echo(f"❌ {path} is not valid JSON: {e}", err=True)
        raise typer.Exit(1)
    except (TypeError, ValueError) as e:
        typer.echo(f"❌ {path} does not hold [x, y] points: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def replay(
    recording: str = typer.Argument(..., help="Path to recording file"),
    templates: Optional[str] = typer.Option(None, help="Spell library JSON (default: presets)"),
    config: Optional[str] = typer.Option(None, help="Engine config (.json/.yaml)"),
    speed: float = typer.Option(1.0, help="Playback speed multiplier"),
    realtime: bool = typer.Option(False, help="Play at original timing"),
):
    """Replay a recorded tracking session through the spell engine."""
    from spellcast.config import ConfigError, EngineConfig, load_config
    from spellcast.engine import SpellEngine
    from spellcast.recorder import TrackingPlayer

    path = Path(recording)
    if not path.exists():
        typer.echo(f"❌ Recording not found: {recording}", err=True)
        raise typer.Exit(1)

    try:
        cfg = load_config(config) if config else EngineConfig()
    except ConfigError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1)

    player = TrackingPlayer.load(path)
    typer.echo(f"▶️  Replaying {path.name} ({player.frame_count} frames, {player.duration:.1f}s)")

    engine = SpellEngine(config=cfg, library=_load_library(templates))
    engine.on_spell(lambda r: typer.echo(f"   ✨ {r.name} (score: {r.score:.2f})"))

    cast = player.replay(engine, realtime=realtime, speed=speed)
    typer.echo(f"\n✅ Replay complete. {len(cast)} spells recognized.")


@app.command()
def match(
    stroke: str = typer.Argument(..., help="Stroke JSON file"),
    templates: Optional[str] = typer.Option(None, help="Spell library JSON (default: presets)"),
    strategy: str = typer.Option("rotation", help="rotation or bbox"),
    threshold: float = typer.Option(0.7, help="Recognition threshold"),
):
    """Match a single stroke and print every template's score."""
    from spellcast.matcher import GestureMatcher, MatchStrategy

    try:
        strat = MatchStrategy(strategy)
    except ValueError:
        typer.echo(f"❌ Unknown strategy: {strategy}", err=True)
        raise typer.Exit(1)

    matcher = GestureMatcher(_load_library(templates), threshold=threshold, strategy=strat)
    points = _load_stroke(stroke)
    scores = matcher.scores(points)
    if not scores:
        typer.echo(f"⚠️  Stroke too short or degenerate ({len(points)} points)")
        raise typer.Exit(1)

    for name, score in sorted(scores.items(), key=lambda kv: kv[1], reverse=True):
        typer.echo(f"   {name:20s} {score:.3f}")

    result = matcher.match(points)
    if result:
        typer.echo(f"\n✨ Recognized: {result.name} ({result.score:.2f})")
    else:
        typer.echo("\n🤷 No spell above threshold")


@app.command()
def learn(
    name: str = typer.Argument(..., help="Spell name"),
    strokes: List[str] = typer.Argument(..., help="Three stroke JSON files"),
    templates: str = typer.Option("spells.json", help="Spell library to update"),
):
    """Learn a spell from three repetitions and save it to the library."""
    from spellcast.learner import GestureLearner, LearnerOutcome
    from spellcast.templates import TemplateLibrary

    if len(strokes) != 3:
        typer.echo(f"❌ Need exactly 3 stroke files, got {len(strokes)}", err=True)
        raise typer.Exit(1)

    library = TemplateLibrary()
    if Path(templates).exists():
        library.load_from_file(templates)

    learner = GestureLearner(library)
    event = learner.start(name)
    if not event.ok:
        typer.echo(f"❌ {event.message}", err=True)
        raise typer.Exit(1)

    for path in strokes:
        event = learner.capture_pattern(_load_stroke(path))
        typer.echo(f"   {Path(path).name}: {event.message}")
        if event.outcome == LearnerOutcome.TOO_SHORT:
            raise typer.Exit(1)

    if event.outcome != LearnerOutcome.COMMITTED:
        sims = ", ".join(f"{s:.2f}" for s in event.similarities)
        typer.echo(f"❌ {event.message} (similarities: {sims})", err=True)
        raise typer.Exit(1)

    library.save_to_file(templates)
    typer.echo(f"✅ Learned '{name}' → {templates}")


@app.command()
def benchmark(
    iterations: int = typer.Option(500, help="Number of iterations"),
    points: int = typer.Option(60, help="Points per synthetic stroke"),
):
    """Run performance benchmarks on normalization and matching."""
    import numpy as np
    from spellcast.matcher import GestureMatcher
    from spellcast.normalizer import normalize
    from spellcast.templates import TemplateLibrary

    typer.echo(f"⚡ Running benchmark: {iterations} iterations, {points}-point strokes")

    matcher = GestureMatcher(TemplateLibrary.with_defaults())
    rng = np.random.default_rng(42)
    strokes = [np.cumsum(rng.normal(size=(points, 2)) * 10, axis=0) for _ in range(16)]

    timings: dict[str, list[float]] = {"normalize": [], "match": []}
    for i in range(iterations):
        stroke = strokes[i % len(strokes)]

        t0 = time.perf_counter()
        normalize(stroke)
        timings["normalize"].append(time.perf_counter() - t0)

        t0 = time.perf_counter()
        matcher.match(stroke)
        timings["match"].append(time.perf_counter() - t0)

    typer.echo("\n📊 Results:")
    for stage, times in timings.items():
        avg_ms = sum(times) / len(times) * 1000
        p95_ms = sorted(times)[int(len(times) * 0.95)] * 1000
        typer.echo(f"   {stage:12s} avg={avg_ms:.3f}ms  p95={p95_ms:.3f}ms")


@app.command("init-config")
def init_config(
    output: str = typer.Argument("spellcast.yaml", help="Output path (.yaml or .json)"),
    force: bool = typer.Option(False, help="Overwrite an existing file"),
):
    """Write the default engine configuration."""
    from spellcast.config import EngineConfig, save_config

    path = Path(output)
    if path.exists() and not force:
        typer.echo(f"❌ {output} exists (use --force to overwrite)", err=True)
        raise typer.Exit(1)
    save_config(EngineConfig(), path)
    typer.echo(f"💾 Saved default config to: {output}")


@templates_app.command("list")
def templates_list(
    templates: Optional[str] = typer.Argument(None, help="Spell library JSON (default: presets)"),
):
    """List spells in a library."""
    library = _load_library(templates)
    typer.echo(f"📚 {len(library)} spells")
    for name in library.names:
        typer.echo(f"   • {name}")


@templates_app.command("delete")
def templates_delete(
    name: str = typer.Argument(..., help="Spell to delete"),
    templates: str = typer.Option("spells.json", help="Spell library JSON"),
):
    """Delete a spell from a library file."""
    library = _load_library(templates)
    if not library.remove(name):
        typer.echo(f"❌ No spell named '{name}'", err=True)
        raise typer.Exit(1)
    library.save_to_file(templates)
    typer.echo(f"🗑️  Deleted '{name}'")


@templates_app.command("import")
def templates_import(
    source: str = typer.Argument(..., help="Library JSON to import from"),
    templates: str = typer.Option("spells.json", help="Spell library to merge into"),
):
    """Merge spells from another library; same-named spells are replaced."""
    from spellcast.templates import TemplateLibrary

    incoming = _load_library(source)
    library = TemplateLibrary()
    if Path(templates).exists():
        library.load_from_file(templates)
    count = library.import_templates(incoming.snapshot())
    library.save_to_file(templates)
    typer.echo(f"📥 Imported {count} spells into {templates}")


@templates_app.command("presets")
def templates_presets(
    output: str = typer.Argument("spells.json", help="Output library JSON"),
):
    """Write the built-in preset spells to a library file."""
    from spellcast.templates import TemplateLibrary

    library = TemplateLibrary.with_defaults()
    library.save_to_file(output)
    typer.echo(f"💾 Saved {len(library)} preset spells to: {output}")


def main():
    app()


if __name__ == "__main__":
    main()
