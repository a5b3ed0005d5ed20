"""Point sampling of cell-centered patch data.

Gauge values are bilinear interpolants of the four cell centers around the
gauge. With ghost-inclusive 0-based indices and ``x0 = xlow_ghost``:

    i = floor((x - x0) / dx - 0.5)           lower-left stencil cell
    xoff = (x - (x0 + (i + 0.5) * dx)) / dx  in [0, 1]

    v = (1-xoff)(1-yoff) v[i,j] + xoff(1-yoff) v[i+1,j]
        + (1-xoff) yoff v[i,j+1] + xoff yoff v[i+1,j+1]

Near a wet/dry front the interpolant would blend wet and dry cells, so the
caller falls back to the containing cell ``floor((x - x0) / dx)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from numba import njit


@dataclass(frozen=True)
class Stencil:
    """Location of a point within a patch.

    Attributes:
        i: Lower-left stencil cell, x index.
        j: Lower-left stencil cell, y index.
        xoff: Fractional x offset from cell center ``i``.
        yoff: Fractional y offset from cell center ``j``.
        icell: Containing cell, x index.
        jcell: Containing cell, y index.
    """

    i: int
    j: int
    xoff: float
    yoff: float
    icell: int
    jcell: int


def locate(x: float, y: float, x0: float, y0: float, dx: float, dy: float) -> Stencil:
    """Stencil for point (x, y) on a grid with lower ghost corner (x0, y0)."""
    sx = (x - x0) / dx
    sy = (y - y0) / dy
    i = int(math.floor(sx - 0.5))
    j = int(math.floor(sy - 0.5))
    return Stencil(
        i=i,
        j=j,
        xoff=sx - (i + 0.5),
        yoff=sy - (j + 0.5),
        icell=int(math.floor(sx)),
        jcell=int(math.floor(sy)),
    )


@njit(cache=True)
def bilinear_select(
    field: np.ndarray,
    var_indices: np.ndarray,
    i: int,
    j: int,
    xoff: float,
    yoff: float,
) -> np.ndarray:
    """Bilinear interpolant of selected variables.

    Args:
        field: Array of shape (nvar, mitot, mjtot).
        var_indices: 0-based variable indices to interpolate.
        i: Lower-left stencil x index (i + 1 must be valid).
        j: Lower-left stencil y index (j + 1 must be valid).
        xoff: Fractional x offset in [0, 1].
        yoff: Fractional y offset in [0, 1].

    Returns:
        Interpolated values, shape (len(var_indices),).
    """
    w00 = (1.0 - xoff) * (1.0 - yoff)
    w10 = xoff * (1.0 - yoff)
    w01 = (1.0 - xoff) * yoff
    w11 = xoff * yoff
    out = np.empty(var_indices.shape[0])
    for k in range(var_indices.shape[0]):
        n = var_indices[k]
        out[k] = (
            w00 * field[n, i, j]
            + w10 * field[n, i + 1, j]
            + w01 * field[n, i, j + 1]
            + w11 * field[n, i + 1, j + 1]
        )
    return out


@njit(cache=True)
def stencil_min(field: np.ndarray, var: int, i: int, j: int) -> float:
    """Smallest value of variable ``var`` over the four stencil cells."""
    return min(
        field[var, i, j],
        field[var, i + 1, j],
        field[var, i, j + 1],
        field[var, i + 1, j + 1],
    )


@njit(cache=True)
def zero_tiny(values: np.ndarray, tiny: float) -> None:
    """Set entries with magnitude below ``tiny`` to zero, in place."""
    for k in range(values.shape[0]):
        if abs(values[k]) < tiny:
            values[k] = 0.0
