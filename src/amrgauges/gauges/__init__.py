"""Gauges: fixed-location probes sampled from the finest covering patch.

Provides the gauge registry, patch ownership index, per-patch sample
recorder, buffer flusher and the subsystem that ties them together.
"""

from amrgauges.gauges.assignment import PatchAssignmentIndex
from amrgauges.gauges.flusher import BufferFlusher
from amrgauges.gauges.reader import GaugeRecord, read_gauge_file
from amrgauges.gauges.recorder import SampleRecorder
from amrgauges.gauges.registry import Gauge, GaugeBuffer, GaugeRegistry, gauge_filename
from amrgauges.gauges.subsystem import GaugeSubsystem

__all__ = [
    "BufferFlusher",
    "Gauge",
    "GaugeBuffer",
    "GaugeRecord",
    "GaugeRegistry",
    "GaugeSubsystem",
    "PatchAssignmentIndex",
    "SampleRecorder",
    "gauge_filename",
    "read_gauge_file",
]
