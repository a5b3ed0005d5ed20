"""Pydantic v2 configuration for the gauge subsystem.

Gauges are described either by a JSON document matching
:class:`GaugesConfig` or by a ``gauges.data`` text file with a fixed record
order (see :meth:`GaugesConfig.from_data_file`).
"""

from __future__ import annotations

import json
import shlex
from pathlib import Path

from pydantic import BaseModel, Field, field_validator, model_validator

from amrgauges.constants import (
    DEFAULT_DISPLAY_FORMAT,
    MAX_BUFFER,
    MAX_GAUGE_ID,
    SUPPORTED_FILE_FORMATS,
)
from amrgauges.errors import ConfigurationError
from amrgauges.formatting import display_format


class GaugeConfig(BaseModel):
    """One gauge: location, active window and output selection."""

    gauge_id: int = Field(..., ge=0, le=MAX_GAUGE_ID, description="Gauge number")
    x: float = Field(..., description="Gauge x coordinate")
    y: float = Field(..., description="Gauge y coordinate")
    t_start: float = Field(..., description="Start of the recording window")
    t_end: float = Field(..., description="End of the recording window")
    file_format: int = Field(1, description="Output file format code (1 = ASCII)")
    display_format: str = Field(
        DEFAULT_DISPLAY_FORMAT,
        description="Fortran edit descriptor (e15.7) or Python format spec (.6e)",
    )
    min_time_increment: float = Field(0.0, ge=0, description="Minimum time between samples")
    q_out_vars: list[bool] = Field(default_factory=list, description="State variable selection")
    aux_out_vars: list[bool] = Field(default_factory=list, description="Aux variable selection")

    @field_validator("file_format")
    @classmethod
    def check_file_format(cls, value: int) -> int:
        if value not in SUPPORTED_FILE_FORMATS:
            raise ValueError(f"unhandled file format {value}, supported: {SUPPORTED_FILE_FORMATS}")
        return value

    @field_validator("display_format")
    @classmethod
    def check_display_format(cls, value: str) -> str:
        try:
            display_format(value)
        except ConfigurationError as exc:
            raise ValueError(str(exc)) from exc
        return value

    @model_validator(mode="after")
    def check_window(self) -> GaugeConfig:
        if self.t_start > self.t_end:
            raise ValueError(
                f"gauge {self.gauge_id}: t_start ({self.t_start}) exceeds t_end ({self.t_end})"
            )
        return self


class GaugeOutputConfig(BaseModel):
    """Where and how gauge files are written."""

    output_dir: str = Field(".", description="Directory for gaugeNNNNN.txt files")
    buffer_size: int = Field(MAX_BUFFER, ge=1, description="Samples buffered per gauge")
    restart: bool = Field(False, description="Append to existing files without headers")
    interpolate: bool = Field(True, description="Bilinear interpolation (else containing cell)")


class GaugesConfig(BaseModel):
    """Top-level gauge configuration."""

    gauges: list[GaugeConfig] = Field(default_factory=list)
    output: GaugeOutputConfig = Field(default_factory=GaugeOutputConfig)

    @model_validator(mode="after")
    def check_unique_ids(self) -> GaugesConfig:
        seen: set[int] = set()
        for gauge in self.gauges:
            if gauge.gauge_id in seen:
                raise ValueError(f"duplicate gauge_id {gauge.gauge_id}")
            seen.add(gauge.gauge_id)
        return self

    # --- I/O helpers ---

    @classmethod
    def from_file(cls, path: str | Path) -> GaugesConfig:
        """Load configuration from a JSON file."""
        path = Path(path)
        with path.open() as f:
            data = json.load(f)
        return cls(**data)

    @classmethod
    def from_data_file(
        cls,
        path: str | Path,
        output: GaugeOutputConfig | None = None,
    ) -> GaugesConfig:
        """Load configuration from a ``gauges.data`` file.

        Record order (one record per line, comments and blank lines skipped)::

            num_gauges
            gauge_id x y t_start t_end        (num_gauges lines)
            file_format ...                   (one value per gauge)
            display_format ...                (one value per gauge)
            min_time_increment ...            (one value per gauge)
            q_out_vars mask                   (num_gauges lines)
            aux_out_vars mask                 (num_gauges lines)

        Raises:
            ConfigurationError: If the file is truncated or a value cannot
                be parsed.
        """
        path = Path(path)
        records = _read_records(path.read_text(), str(path))
        gauges = _parse_records(records, str(path))
        return cls(gauges=gauges, output=output or GaugeOutputConfig())

    def to_json(self, path: str | Path | None = None) -> str:
        """Serialize to JSON string, optionally writing to file."""
        out = self.model_dump_json(indent=2)
        if path is not None:
            Path(path).write_text(out)
        return out


# ============================================================
# gauges.data parsing
# ============================================================

_TRUE = {"t", ".true.", "true", "1"}
_FALSE = {"f", ".false.", "false", "0"}


def _read_records(text: str, source: str) -> list[list[str]]:
    records = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        lexer = shlex.shlex(line.replace(",", " "), posix=True)
        lexer.whitespace_split = True
        lexer.commenters = "#"
        try:
            tokens = list(lexer)
        except ValueError as exc:
            raise ConfigurationError(f"{source}:{lineno}: {exc}") from exc
        if tokens:
            records.append(tokens)
    return records


def _fortran_float(token: str) -> float:
    # Fortran double precision literals use a D exponent: 1.5d0
    return float(token.lower().replace("d", "e"))


def _parse_logical(token: str, source: str) -> bool:
    lowered = token.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{source}: cannot parse '{token}' as a logical")


def _parse_records(records: list[list[str]], source: str) -> list[dict]:
    cursor = iter(records)

    def next_record(what: str) -> list[str]:
        try:
            return next(cursor)
        except StopIteration:
            raise ConfigurationError(f"{source}: unexpected end of file reading {what}") from None

    try:
        num_gauges = int(next_record("gauge count")[0])
    except ValueError as exc:
        raise ConfigurationError(f"{source}: invalid gauge count") from exc
    if num_gauges < 0:
        raise ConfigurationError(f"{source}: negative gauge count {num_gauges}")

    gauges: list[dict] = []
    for n in range(num_gauges):
        fields = next_record(f"gauge {n + 1} location")
        if len(fields) < 5:
            raise ConfigurationError(
                f"{source}: gauge record {n + 1} needs 'id x y t_start t_end', got {fields}"
            )
        try:
            gauges.append(
                {
                    "gauge_id": int(fields[0]),
                    "x": _fortran_float(fields[1]),
                    "y": _fortran_float(fields[2]),
                    "t_start": _fortran_float(fields[3]),
                    "t_end": _fortran_float(fields[4]),
                }
            )
        except ValueError as exc:
            raise ConfigurationError(f"{source}: gauge record {n + 1}: {exc}") from exc

    if num_gauges == 0:
        return gauges

    for key, convert in (
        ("file_format", int),
        ("display_format", str),
        ("min_time_increment", _fortran_float),
    ):
        values = next_record(key)
        if len(values) < num_gauges:
            raise ConfigurationError(
                f"{source}: expected {num_gauges} {key} values, got {len(values)}"
            )
        try:
            for gauge, value in zip(gauges, values):
                gauge[key] = convert(value)
        except ValueError as exc:
            raise ConfigurationError(f"{source}: {key}: {exc}") from exc

    # An empty selection (e.g. num_aux = 0) leaves no record behind
    for key in ("q_out_vars", "aux_out_vars"):
        for gauge in gauges:
            mask = next(cursor, [])
            gauge[key] = [_parse_logical(token, source) for token in mask]

    return gauges
