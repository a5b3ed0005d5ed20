"""Command-line interface for gauge configuration and output files.

Usage:
    amrgauges verify gauges.data --num-eqn=3 --num-aux=1
    amrgauges convert gauges.data gauges.json
    amrgauges inspect _output/gauge00001.txt
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from amrgauges.errors import GaugeError


def _load_config(config_file: str):
    from amrgauges.config import GaugesConfig

    if Path(config_file).suffix.lower() == ".json":
        return GaugesConfig.from_file(config_file)
    return GaugesConfig.from_data_file(config_file)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool) -> None:
    """amrgauges: gauge output for AMR shallow-water simulations."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


@cli.command()
@click.argument("config_file", type=click.Path(exists=True))
@click.option("--num-eqn", type=int, default=None, help="Check q masks against this count.")
@click.option("--num-aux", type=int, default=None, help="Check aux masks against this count.")
def verify(config_file: str, num_eqn: int | None, num_aux: int | None) -> None:
    """Verify a gauge configuration (JSON or gauges.data) is valid."""
    from amrgauges.gauges.registry import GaugeRegistry

    try:
        config = _load_config(config_file)
        if config.gauges and (num_eqn is not None or num_aux is not None):
            first = config.gauges[0]
            if num_eqn is None:
                num_eqn = len(first.q_out_vars)
            if num_aux is None:
                num_aux = len(first.aux_out_vars)
            GaugeRegistry(config, num_eqn, num_aux)
    except (GaugeError, ValidationError) as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    click.echo("Configuration is valid:")
    click.echo(f"  Gauges: {len(config.gauges)}")
    for g in config.gauges:
        click.echo(
            f"  {g.gauge_id:5d}: ({g.x:.6g}, {g.y:.6g}) t=[{g.t_start:.4g}, {g.t_end:.4g}] "
            f"q={sum(g.q_out_vars)}/{len(g.q_out_vars)} "
            f"aux={sum(g.aux_out_vars)}/{len(g.aux_out_vars)} fmt={g.display_format}"
        )


@cli.command()
@click.argument("data_file", type=click.Path(exists=True))
@click.argument("output_json", type=click.Path())
def convert(data_file: str, output_json: str) -> None:
    """Convert a gauges.data file to a JSON configuration."""
    from amrgauges.config import GaugesConfig

    try:
        config = GaugesConfig.from_data_file(data_file)
    except (GaugeError, ValidationError) as exc:
        click.echo(f"Configuration error: {exc}", err=True)
        sys.exit(1)

    config.to_json(output_json)
    click.echo(f"Wrote {len(config.gauges)} gauges to {output_json}")


@cli.command()
@click.argument("gauge_file", type=click.Path(exists=True))
def inspect(gauge_file: str) -> None:
    """Summarize a gauge output file."""
    from amrgauges.gauges.reader import read_gauge_file

    try:
        record = read_gauge_file(gauge_file)
    except (GaugeError, ValueError) as exc:
        click.echo(f"Cannot read {gauge_file}: {exc}", err=True)
        sys.exit(1)

    click.echo(f"Gauge {record.gauge_id} at ({record.x:.6g}, {record.y:.6g})")
    click.echo(f"  Variables: {record.num_out_vars} (q{record.q_indices}, eta, aux{record.aux_indices})")
    click.echo(f"  Samples: {record.times.size}")
    if record.times.size:
        click.echo(f"  Time range: {record.times[0]:.6e} .. {record.times[-1]:.6e}")
        levels = ", ".join(str(lev) for lev in sorted(set(record.levels.tolist())))
        click.echo(f"  Levels: {levels}")


if __name__ == "__main__":
    cli()
