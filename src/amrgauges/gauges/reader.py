"""Read gauge output files back for post-processing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from amrgauges.errors import ConfigurationError

_HEADER = re.compile(
    r"#\s*gauge_id=\s*(?P<id>\d+)\s+location=\(\s*(?P<x>\S+)\s+(?P<y>\S+)\s*\)\s+"
    r"num_var=\s*(?P<num_var>\d+)"
)
_LEGEND = re.compile(r"q\[(?P<q>[^\]]*)\].*aux\[(?P<aux>[^\]]*)\]")


@dataclass
class GaugeRecord:
    """Contents of one gauge file.

    Attributes:
        gauge_id: Gauge number.
        x: Gauge x coordinate.
        y: Gauge y coordinate.
        num_out_vars: Number of recorded variables per sample.
        q_indices: 1-based state variable indices recorded.
        aux_indices: 1-based auxiliary variable indices recorded.
        levels: Refinement level of each sample, shape (n,).
        times: Sample times, shape (n,).
        values: Output vectors, shape (n, num_out_vars).
    """

    gauge_id: int
    x: float
    y: float
    num_out_vars: int
    q_indices: list[int]
    aux_indices: list[int]
    levels: np.ndarray
    times: np.ndarray
    values: np.ndarray

    @property
    def eta(self) -> np.ndarray:
        """Surface elevation column."""
        return self.values[:, len(self.q_indices)]


def _fortran_number(token: str) -> float:
    # Fortran drops the E when the exponent needs three digits: 0.1-100
    token = token.replace("D", "E").replace("d", "e")
    if "e" not in token.lower():
        token = re.sub(r"(?<=\d)([+-]\d+)$", r"e\1", token)
    return float(token)


def read_gauge_file(path: str | Path) -> GaugeRecord:
    """Parse a gauge file written by the gauge subsystem.

    Only whitespace-separated numeric columns can be read back; fixed-width
    fields that run into each other are rejected.

    Raises:
        ConfigurationError: If the header lines are missing or malformed.
    """
    path = Path(path)
    with path.open() as f:
        header = f.readline()
        legend = f.readline()
        lines = [line.split() for line in f if line.strip()]

    match = _HEADER.search(header)
    if match is None:
        raise ConfigurationError(f"{path}: not a gauge file (bad header {header.strip()!r})")
    legend_match = _LEGEND.search(legend)
    if legend_match is None:
        raise ConfigurationError(f"{path}: bad column legend {legend.strip()!r}")

    num_var = int(match.group("num_var"))
    levels = np.array([int(row[0]) for row in lines], dtype=int)
    data = np.zeros((len(lines), num_var + 1))
    for n, row in enumerate(lines):
        if len(row) != num_var + 2:
            raise ConfigurationError(
                f"{path}: data line {n + 1} has {len(row)} columns, expected {num_var + 2}"
            )
        data[n] = [_fortran_number(token) for token in row[1:]]

    return GaugeRecord(
        gauge_id=int(match.group("id")),
        x=_fortran_number(match.group("x")),
        y=_fortran_number(match.group("y")),
        num_out_vars=num_var,
        q_indices=[int(t) for t in legend_match.group("q").split()],
        aux_indices=[int(t) for t in legend_match.group("aux").split()],
        levels=levels,
        times=data[:, 0],
        values=data[:, 1:],
    )
