"""Static gauge configuration and per-gauge sample buffers.

The registry is built once at the start of a run. It validates the
variable selections against the solver's equation/aux counts, allocates a
fixed-capacity buffer per gauge and prepares the gauge output files.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from amrgauges.config import GaugeConfig, GaugesConfig
from amrgauges.constants import FILE_PREFIX, FILE_SUFFIX, GAUGE_ID_WIDTH, MAX_BUFFER
from amrgauges.errors import BufferOverflowError, ConfigurationError
from amrgauges.formatting import DisplayFormat, display_format, header_line, legend_line

logger = logging.getLogger(__name__)


def gauge_filename(gauge_id: int) -> str:
    """Output file name for a gauge, e.g. ``gauge00042.txt``."""
    return f"{FILE_PREFIX}{gauge_id:0{GAUGE_ID_WIDTH}d}{FILE_SUFFIX}"


# ============================================================
# Sample buffer
# ============================================================


class GaugeBuffer:
    """Fixed-capacity store of (level, time, values) samples.

    Row ``n`` of :attr:`data` holds the level in column 0, the time in
    column 1 and the output vector in the remaining columns. ``index`` is
    the number of pending samples.

    Args:
        num_out_vars: Length of the output vector.
        capacity: Maximum number of pending samples.
    """

    def __init__(self, num_out_vars: int, capacity: int = MAX_BUFFER) -> None:
        self.capacity = capacity
        self.data = np.zeros((capacity, num_out_vars + 2))
        self.index = 0

    def __len__(self) -> int:
        return self.index

    @property
    def full(self) -> bool:
        return self.index >= self.capacity

    def append(self, level: int, time: float, values: np.ndarray) -> None:
        """Store one sample at the write index.

        Raises:
            BufferOverflowError: If the buffer is full.
        """
        if self.index >= self.capacity:
            raise BufferOverflowError(
                f"gauge buffer full ({self.capacity} samples) without a flush"
            )
        row = self.data[self.index]
        row[0] = level
        row[1] = time
        row[2:] = values
        self.index += 1

    def pending(self) -> np.ndarray:
        """View of the pending rows."""
        return self.data[: self.index]

    @property
    def levels(self) -> np.ndarray:
        return self.data[: self.index, 0].astype(int)

    @property
    def times(self) -> np.ndarray:
        return self.data[: self.index, 1]

    @property
    def values(self) -> np.ndarray:
        return self.data[: self.index, 2:]

    def reset(self) -> None:
        self.index = 0


# ============================================================
# Gauge
# ============================================================


@dataclass
class Gauge:
    """A fixed-location probe.

    Only ``last_time`` and the buffer change after setup; both are guarded
    by ``lock`` whenever a flush can race with recording.
    """

    gauge_id: int
    x: float
    y: float
    t_start: float
    t_end: float
    min_time_increment: float
    q_out_vars: np.ndarray
    aux_out_vars: np.ndarray
    num_out_vars: int
    file_format: int
    fmt: DisplayFormat
    path: Path
    buffer: GaugeBuffer
    last_time: float = 0.0
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def __post_init__(self) -> None:
        self.q_indices = np.flatnonzero(self.q_out_vars)
        self.aux_indices = np.flatnonzero(self.aux_out_vars)

    @property
    def file_name(self) -> str:
        return self.path.name

    def active_at(self, time: float) -> bool:
        return self.t_start <= time <= self.t_end

    def header(self) -> str:
        return header_line(self.gauge_id, self.x, self.y, self.num_out_vars)

    def legend(self) -> str:
        return legend_line(
            [int(n) + 1 for n in self.q_indices],
            [int(n) + 1 for n in self.aux_indices],
        )


# ============================================================
# Registry
# ============================================================


class GaugeRegistry:
    """All gauges of a run, in configuration order.

    Args:
        config: Gauge configuration.
        num_eqn: Number of state variables the solver carries.
        num_aux: Number of auxiliary variables the solver carries.

    Raises:
        ConfigurationError: If a selection mask does not match
            ``num_eqn``/``num_aux``.
    """

    def __init__(self, config: GaugesConfig, num_eqn: int, num_aux: int) -> None:
        self.config = config
        self.num_eqn = num_eqn
        self.num_aux = num_aux
        self.output_dir = Path(config.output.output_dir)
        self.gauges: list[Gauge] = [self._build_gauge(gc) for gc in config.gauges]
        self._by_id = {g.gauge_id: i for i, g in enumerate(self.gauges)}

        logger.info(
            "GaugeRegistry initialized: %d gauges, num_eqn=%d, num_aux=%d, buffer=%d, output=%s",
            len(self.gauges),
            num_eqn,
            num_aux,
            config.output.buffer_size,
            self.output_dir,
        )

    def _build_gauge(self, gc: GaugeConfig) -> Gauge:
        if len(gc.q_out_vars) != self.num_eqn:
            raise ConfigurationError(
                f"gauge {gc.gauge_id}: q_out_vars has {len(gc.q_out_vars)} entries, "
                f"expected num_eqn={self.num_eqn}"
            )
        if len(gc.aux_out_vars) != self.num_aux:
            raise ConfigurationError(
                f"gauge {gc.gauge_id}: aux_out_vars has {len(gc.aux_out_vars)} entries, "
                f"expected num_aux={self.num_aux}"
            )
        if self.num_eqn < 1 or self.num_aux < 1:
            # Depth (q[0]) and topography (aux[0]) are needed for eta
            raise ConfigurationError(
                f"gauges need num_eqn >= 1 and num_aux >= 1, got {self.num_eqn}, {self.num_aux}"
            )

        q_mask = np.asarray(gc.q_out_vars, dtype=bool)
        aux_mask = np.asarray(gc.aux_out_vars, dtype=bool)
        num_out_vars = int(q_mask.sum()) + 1 + int(aux_mask.sum())

        return Gauge(
            gauge_id=gc.gauge_id,
            x=gc.x,
            y=gc.y,
            t_start=gc.t_start,
            t_end=gc.t_end,
            min_time_increment=gc.min_time_increment,
            q_out_vars=q_mask,
            aux_out_vars=aux_mask,
            num_out_vars=num_out_vars,
            file_format=gc.file_format,
            fmt=display_format(gc.display_format),
            path=self.output_dir / gauge_filename(gc.gauge_id),
            buffer=GaugeBuffer(num_out_vars, self.config.output.buffer_size),
            last_time=gc.t_start,
        )

    def __len__(self) -> int:
        return len(self.gauges)

    def __iter__(self):
        return iter(self.gauges)

    def __getitem__(self, index: int) -> Gauge:
        return self.gauges[index]

    @property
    def x(self) -> np.ndarray:
        return np.array([g.x for g in self.gauges], dtype=float)

    @property
    def y(self) -> np.ndarray:
        return np.array([g.y for g in self.gauges], dtype=float)

    def index_of(self, gauge_id: int) -> int:
        """Position of the gauge with ``gauge_id``.

        Raises:
            KeyError: If no such gauge exists.
        """
        return self._by_id[gauge_id]

    def by_id(self, gauge_id: int) -> Gauge:
        return self.gauges[self.index_of(gauge_id)]

    def create_files(self, restart: bool | None = None) -> None:
        """Prepare the gauge output files.

        A fresh run truncates each file and writes the header and column
        legend. A restart leaves existing files untouched so new samples
        are appended.
        """
        if restart is None:
            restart = self.config.output.restart

        self.output_dir.mkdir(parents=True, exist_ok=True)
        for gauge in self.gauges:
            if restart:
                gauge.path.touch(exist_ok=True)
                continue
            with gauge.path.open("w") as f:
                f.write(gauge.header() + "\n")
                f.write(gauge.legend() + "\n")

        logger.info(
            "%s %d gauge files in %s",
            "Reopened" if restart else "Created",
            len(self.gauges),
            self.output_dir,
        )
