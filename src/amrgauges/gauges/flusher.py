"""Write buffered gauge samples to the gauge files."""

from __future__ import annotations

import logging

from amrgauges.constants import ASCII_FORMAT
from amrgauges.errors import ConfigurationError
from amrgauges.formatting import format_sample_line
from amrgauges.gauges.registry import Gauge, GaugeRegistry

logger = logging.getLogger(__name__)


class BufferFlusher:
    """Appends pending samples to each gauge's own file.

    Each gauge has a dedicated file, so flushes of different gauges never
    contend. Flushes of the same gauge are serialized by the gauge lock;
    the overflow path inside the recorder already holds it (re-entrant).

    Args:
        registry: Gauges to flush.
    """

    def __init__(self, registry: GaugeRegistry) -> None:
        self.registry = registry

    def flush(self, gauge: Gauge) -> int:
        """Write and clear the pending samples of one gauge.

        Returns:
            Number of lines written.

        Raises:
            ConfigurationError: If the gauge's file format is not handled.
        """
        with gauge.lock:
            if gauge.file_format != ASCII_FORMAT:
                raise ConfigurationError(
                    f"gauge {gauge.gauge_id}: unhandled file format {gauge.file_format}"
                )

            buf = gauge.buffer
            n = len(buf)
            if n == 0:
                return 0

            fmt = gauge.fmt
            rows = buf.pending()
            with gauge.path.open("a") as f:
                for row in rows:
                    f.write(format_sample_line(int(row[0]), row[1], row[2:], fmt) + "\n")
            buf.reset()

        logger.debug("Flushed %d samples of gauge %d to %s", n, gauge.gauge_id, gauge.file_name)
        return n

    def flush_all(self) -> int:
        """Flush every gauge regardless of fill level.

        Returns:
            Total number of lines written.
        """
        total = 0
        for gauge in self.registry:
            total += self.flush(gauge)
        logger.info("Flushed %d pending samples across %d gauges", total, len(self.registry))
        return total
