"""Grid patches as seen by the gauge subsystem.

The AMR engine owns the hierarchy; gauges only need a read-only view of
each active patch: its identity, refinement level, physical rectangle and
the ghost-cell-filled state and auxiliary arrays.

Arrays are cell-centered and include ``num_ghost`` ghost cells on every
side. With ghost-inclusive 0-based indices the cell centers are:
    x[i] = xlow - num_ghost * dx + (i + 0.5) * dx
    y[j] = ylow - num_ghost * dy + (j + 0.5) * dy
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class GridPatch:
    """A rectangular patch at a single refinement level.

    Attributes:
        patch_id: Positive patch identifier (0 is reserved for "no patch").
        level: Refinement level (larger is finer).
        xlow: Lower x edge of the interior cells.
        ylow: Lower y edge of the interior cells.
        dx: Grid spacing in x.
        dy: Grid spacing in y.
        mx: Number of interior cells in x.
        my: Number of interior cells in y.
        num_ghost: Ghost cells on each side.
        time: Current patch time.
        q: State array, shape (num_eqn, mx + 2*num_ghost, my + 2*num_ghost).
        aux: Auxiliary array, shape (num_aux, mx + 2*num_ghost, my + 2*num_ghost).
            Channel 0 holds the topography.
    """

    patch_id: int
    level: int
    xlow: float
    ylow: float
    dx: float
    dy: float
    mx: int
    my: int
    num_ghost: int = 2
    time: float = 0.0
    q: np.ndarray = field(default_factory=lambda: np.zeros((0, 0, 0)))
    aux: np.ndarray = field(default_factory=lambda: np.zeros((0, 0, 0)))

    def __post_init__(self) -> None:
        if self.patch_id <= 0:
            raise ValueError(f"patch_id must be positive, got {self.patch_id}")

    @property
    def xhi(self) -> float:
        """Upper x edge of the interior cells."""
        return self.xlow + self.mx * self.dx

    @property
    def yhi(self) -> float:
        """Upper y edge of the interior cells."""
        return self.ylow + self.my * self.dy

    @property
    def xlow_ghost(self) -> float:
        """Lower x edge including ghost cells."""
        return self.xlow - self.num_ghost * self.dx

    @property
    def ylow_ghost(self) -> float:
        """Lower y edge including ghost cells."""
        return self.ylow - self.num_ghost * self.dy

    @property
    def shape(self) -> tuple[int, int]:
        """Ghost-inclusive cell counts (mitot, mjtot)."""
        return (self.mx + 2 * self.num_ghost, self.my + 2 * self.num_ghost)

    def contains(self, x: np.ndarray | float, y: np.ndarray | float) -> np.ndarray | bool:
        """Whether points lie in the patch rectangle (inclusive bounds)."""
        return (x >= self.xlow) & (x <= self.xhi) & (y >= self.ylow) & (y <= self.yhi)

    def cell_centers_x(self) -> np.ndarray:
        """Return ghost-inclusive x cell-center coordinates."""
        return self.xlow_ghost + (np.arange(self.shape[0]) + 0.5) * self.dx

    def cell_centers_y(self) -> np.ndarray:
        """Return ghost-inclusive y cell-center coordinates."""
        return self.ylow_ghost + (np.arange(self.shape[1]) + 0.5) * self.dy

    @classmethod
    def uniform(
        cls,
        patch_id: int,
        level: int,
        xlow: float,
        ylow: float,
        xhi: float,
        yhi: float,
        mx: int,
        my: int,
        q_values: list[float] | np.ndarray,
        aux_values: list[float] | np.ndarray,
        num_ghost: int = 2,
        time: float = 0.0,
    ) -> GridPatch:
        """Build a patch whose variables are constant in space.

        Args:
            q_values: One constant per state variable.
            aux_values: One constant per auxiliary variable.
        """
        mitot = mx + 2 * num_ghost
        mjtot = my + 2 * num_ghost
        q = np.empty((len(q_values), mitot, mjtot))
        q[:] = np.asarray(q_values, dtype=float)[:, np.newaxis, np.newaxis]
        aux = np.empty((len(aux_values), mitot, mjtot))
        aux[:] = np.asarray(aux_values, dtype=float)[:, np.newaxis, np.newaxis]
        return cls(
            patch_id=patch_id,
            level=level,
            xlow=xlow,
            ylow=ylow,
            dx=(xhi - xlow) / mx,
            dy=(yhi - ylow) / my,
            mx=mx,
            my=my,
            num_ghost=num_ghost,
            time=time,
            q=q,
            aux=aux,
        )
