# src/signalpost/cli/app.py
from __future__ import annotations

import importlib
from pathlib import Path
from typing import List, Optional

import typer

from signalpost.config.loader import load_config
from signalpost.core.observable import Observable
from signalpost.core.runtime import build_center, install_default_center
from signalpost.broadcast.queues import main_queue
from signalpost.demo.television import Television, TelevisionWatcher
from signalpost.errors import SignalpostError
from signalpost.logging.log import init_logging


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="signalpost publish/subscribe tools")


# ------------------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------------------

def parse_channels(raw: str) -> List[int]:
    items = [i.strip() for i in raw.split(",") if i.strip()]
    try:
        return [int(i) for i in items]
    except ValueError:
        raise typer.BadParameter(f"Channels must be comma separated integers, got: {raw}")


def load_entity_class(target: str) -> type:
    """
    Import ``module:Class`` and check that it is an Observable entity.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"Expected module:Class, got: {target}")

    # vocabulary errors surface here, when the class body is executed
    module = importlib.import_module(module_name)
    cls = getattr(module, attr, None)
    if not (isinstance(cls, type) and issubclass(cls, Observable)):
        raise TypeError(f"{target} is not an Observable subclass")
    return cls


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command()
def demo(
    config: Optional[Path] = typer.Option(None, "--config", help="signalpost YAML config"),
    channels: str = typer.Option("3,7,11", "--channels", help="Channels to flip through"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Run the television example through a configured center."""
    cfg = load_config(config)
    logger, run_id, log_path = init_logging(
        base_dir=cfg.logging.log_dir,
        verbose=debug or cfg.logging.verbose,
        to_file=cfg.logging.to_file,
    )

    typer.echo(f"  Run ID   : {run_id}")
    if log_path:
        typer.echo(f"  Logs     : {log_path}")

    center = build_center(cfg, logger=logger, run_id=run_id)
    previous = install_default_center(center)
    try:
        tv = Television(center=center)
        watcher = TelevisionWatcher(tv)

        tv.power_on()
        for number in parse_channels(channels):
            tv.channel = number
        tv.power_off()

        main_queue().run_pending()
    finally:
        install_default_center(previous)

    for line in watcher.seen:
        typer.echo(line)


@app.command()
def inspect(
    target: str = typer.Argument(..., help="Entity class as module:Class"),
):
    """Print an entity's event-to-channel table."""
    try:
        cls = load_entity_class(target)
    except (ImportError, TypeError, SignalpostError) as e:
        typer.echo(f"[inspect] {target}: {e}", err=True)
        raise typer.Exit(1)

    names = cls.channel_names()
    vocabulary = cls.Event
    if vocabulary is None:
        typer.echo(f"{cls.__name__} declares no events")
        return

    typer.echo(f"{cls.__name__} ({len(names)} channel(s))")
    for member in vocabulary:
        name = names.get(member)
        if name is None:
            typer.echo(f"  {member.name:<24} -> (unresolved, dropped)")
        else:
            typer.echo(f"  {member.name:<24} -> {name}")


if __name__ == "__main__":
    app()
