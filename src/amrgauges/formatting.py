"""Text layout of gauge output files.

Gauge files are plain text with a two-line header followed by one line per
sample. Numeric columns use the gauge's display format, which is either a
Fortran edit descriptor (``e15.7``, ``es14.6``, ``f12.4``, ``g15.7``, ...)
as written in ``gauges.data`` files, or a Python format spec (``.6e``).

Fortran descriptors produce fixed-width fields that are concatenated
without separators, exactly as a Fortran ``write`` with a repeated edit
descriptor would. Python format specs are joined with a single space.
"""

from __future__ import annotations

import math
import re
from functools import lru_cache
from typing import Callable, Sequence

from amrgauges.errors import ConfigurationError

_EDIT_DESCRIPTOR = re.compile(
    r"^(?:(?P<scale>[+-]?\d+)p)?(?P<kind>es|en|e|d|f|g)(?P<width>\d+)\.(?P<digits>\d+)$"
)


def _overflow(text: str, width: int) -> str:
    # Fortran fills a field that is too narrow with asterisks
    if len(text) > width:
        return "*" * width
    return text.rjust(width)


def _exponent_suffix(exponent: int, letter: str) -> str:
    if abs(exponent) <= 99:
        return f"{letter}{exponent:+03d}"
    return f"{exponent:+04d}"


def _format_e(value: float, width: int, digits: int, letter: str = "E") -> str:
    """Fortran ``Ew.d``: mantissa in [0.1, 1) written as ``0.ddd``."""
    if not math.isfinite(value):
        return _overflow(str(value).upper(), width)
    if value == 0.0:
        text = "0." + "0" * digits + _exponent_suffix(0, letter)
        return _overflow(("-" if math.copysign(1.0, value) < 0 else "") + text, width)
    # Python rounds to d significant digits as d.ddd; shift the point left
    sci = f"{abs(value):.{max(digits - 1, 0)}e}"
    mantissa, exponent = sci.split("e")
    significant = mantissa.replace(".", "")
    text = "0." + significant + _exponent_suffix(int(exponent) + 1, letter)
    if value < 0:
        text = "-" + text
    return _overflow(text, width)


def _format_es(value: float, width: int, digits: int) -> str:
    """Fortran ``ESw.d``: scientific with one nonzero leading digit."""
    if not math.isfinite(value):
        return _overflow(str(value).upper(), width)
    mantissa, exponent = f"{value:.{digits}E}".split("E")
    return _overflow(mantissa + _exponent_suffix(int(exponent), "E"), width)


def _format_f(value: float, width: int, digits: int) -> str:
    return _overflow(f"{value:.{digits}f}", width)


def _format_g(value: float, width: int, digits: int) -> str:
    """Fortran ``Gw.d``: fixed notation for moderate magnitudes, else ``Ew.d``."""
    magnitude = abs(value)
    if value == 0.0:
        return _format_f(value, width - 4, max(digits - 1, 0)) + "    "
    if not math.isfinite(value) or not (0.1 - 0.5 * 10.0 ** (-digits - 1) <= magnitude < 10.0**digits - 0.5):
        return _format_e(value, width, digits)
    k = int(math.floor(math.log10(magnitude))) + 1
    return _format_f(value, width - 4, max(digits - k, 0)) + "    "


class DisplayFormat:
    """Formatter for one gauge's numeric columns.

    Args:
        spec: Fortran edit descriptor or Python format spec.

    Raises:
        ConfigurationError: If ``spec`` is neither.
    """

    def __init__(self, spec: str) -> None:
        self.spec = spec
        self.separator = ""
        self._format_value = self._build(spec.strip())

    def _build(self, spec: str) -> Callable[[float], str]:
        match = _EDIT_DESCRIPTOR.match(spec.lower())
        if match is None:
            return self._build_python(spec)

        kind = match.group("kind")
        width = int(match.group("width"))
        digits = int(match.group("digits"))
        scale = int(match.group("scale")) if match.group("scale") else 0

        if width == 0:
            raise ConfigurationError(f"display format '{self.spec}' has zero width")
        if scale not in (0, 1):
            raise ConfigurationError(
                f"display format '{self.spec}': only scale factors 0p and 1p are supported"
            )

        if kind in ("es", "en") or (kind in ("e", "d") and scale == 1):
            return lambda v: _format_es(v, width, digits)
        if kind == "e":
            return lambda v: _format_e(v, width, digits)
        if kind == "d":
            return lambda v: _format_e(v, width, digits, letter="D")
        if kind == "f":
            return lambda v: _format_f(v, width, digits)
        return lambda v: _format_g(v, width, digits)

    def _build_python(self, spec: str) -> Callable[[float], str]:
        try:
            format(1.0, spec)
        except (ValueError, TypeError) as exc:
            raise ConfigurationError(
                f"display format '{self.spec}' is neither a Fortran edit "
                f"descriptor nor a Python format spec"
            ) from exc
        self.separator = " "
        return lambda v: format(v, spec)

    def __call__(self, value: float) -> str:
        return self._format_value(float(value))

    def row(self, values: Sequence[float]) -> str:
        """Format a sequence of values as one line fragment."""
        return self.separator.join(self._format_value(float(v)) for v in values)


@lru_cache(maxsize=64)
def display_format(spec: str) -> DisplayFormat:
    """Return a cached :class:`DisplayFormat` for ``spec``."""
    return DisplayFormat(spec)


def format_level(level: int) -> str:
    """Refinement level as Fortran ``i5.2`` (width 5, at least 2 digits)."""
    return _overflow(f"{int(level):02d}", 5)


def format_sample_line(level: int, time: float, values: Sequence[float], fmt: DisplayFormat) -> str:
    """One data line: level, time, then the output vector."""
    return format_level(level) + fmt.separator + fmt(time) + fmt.separator + fmt.row(values)


def header_line(gauge_id: int, x: float, y: float, num_out_vars: int) -> str:
    """First line of a gauge file: id, location and output variable count."""
    return (
        f"# gauge_id= {gauge_id:5d} location=( {_format_e(x, 17, 10)} {_format_e(y, 17, 10)} ) "
        f"num_var= {num_out_vars:2d}"
    )


def _index_list(indices: Sequence[int]) -> str:
    tokens = ["["]
    tokens.extend(f"{n:3d}" for n in indices)
    tokens.append("]")
    return "".join(tokens)


def legend_line(q_indices: Sequence[int], aux_indices: Sequence[int]) -> str:
    """Second line of a gauge file naming the recorded columns.

    Args:
        q_indices: 1-based indices of the selected state variables.
        aux_indices: 1-based indices of the selected auxiliary variables.
    """
    return f"# level, time, q{_index_list(q_indices)}, eta, aux{_index_list(aux_indices)}"
