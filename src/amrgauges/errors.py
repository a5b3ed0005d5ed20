"""Exceptions raised by the :mod:`amrgauges` package."""

from __future__ import annotations


class GaugeError(Exception):
    """Base exception for gauge subsystem errors."""


class ConfigurationError(GaugeError, ValueError):
    """Invalid gauge configuration (mask lengths, formats, data file)."""


class ConsistencyError(GaugeError, RuntimeError):
    """A broken internal invariant, e.g. a patch recording a gauge it does not own."""


class BufferOverflowError(ConsistencyError):
    """A sample was appended to a gauge buffer that was not flushed."""


__all__ = [
    "GaugeError",
    "ConfigurationError",
    "ConsistencyError",
    "BufferOverflowError",
]
