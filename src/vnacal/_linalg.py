#!/usr/bin/python3
#
# Vector Network Analyzer Library
# Copyright © 2020-2023 D Scott Guthridge <scott_guthridge@rompromity.net>
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
# General Public License for more details.
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.
#
"""
Dense complex linear algebra helpers.

Each routine reports a determinant or rank instead of raising so that
the caller can decide which error to report.
"""

import numpy as np
import scipy.linalg as sl


def _lu_det(lu, piv) -> complex:
    det = complex(np.prod(np.diag(lu)))
    swaps = np.count_nonzero(piv != np.arange(len(piv)))
    if swaps & 1:
        det = -det
    return det


def _usable(det: complex) -> bool:
    return det != 0.0 and np.isfinite(det)


def mldivide(a, b):
    """
    Solve a x = b for square a.

    Returns (x, determinant).  When the determinant is zero or not
    finite, x is None.
    """
    a = np.asarray(a, dtype=complex)
    b = np.asarray(b, dtype=complex)
    lu, piv = sl.lu_factor(a, check_finite=False)
    det = _lu_det(lu, piv)
    if not _usable(det):
        return None, det
    return sl.lu_solve((lu, piv), b, check_finite=False), det


def mrdivide(b, a):
    """
    Find x = b a^-1 for square a.

    Returns (x, determinant).
    """
    a = np.asarray(a, dtype=complex)
    b = np.asarray(b, dtype=complex)
    xt, det = mldivide(a.T, b.T)
    if xt is None:
        return None, det
    return xt.T, det


def minverse(a):
    """
    Invert square matrix a.

    Returns (inverse, determinant).
    """
    a = np.asarray(a, dtype=complex)
    return mldivide(a, np.identity(a.shape[0], dtype=complex))


def qrsolve(a, b):
    """
    Find the least-squares solution of a x = b using a column-pivoted
    QR decomposition.

    Returns (x, rank).  When a does not have full column rank, x is
    None.
    """
    a = np.asarray(a, dtype=complex)
    b = np.asarray(b, dtype=complex)
    rows, columns = a.shape
    if rows < columns:
        return None, rows
    q, r, p = sl.qr(a, mode='economic', pivoting=True, check_finite=False)
    d = np.abs(np.diag(r))
    if len(d) == 0 or not np.isfinite(d).all() or d[0] == 0.0:
        return None, 0
    tolerance = max(rows, columns) * np.finfo(float).eps * d[0]
    rank = int(np.count_nonzero(d > tolerance))
    if rank < columns:
        return None, rank
    y = sl.solve_triangular(r, q.conj().T @ b, check_finite=False)
    x = np.empty_like(y)
    x[p, ...] = y
    return x, rank


def qr(a):
    """
    Return the full QR decomposition (q, r) of a.
    """
    return sl.qr(np.asarray(a, dtype=complex), mode='full',
                 check_finite=False)


def rank_of_r(r, columns: int) -> int:
    """
    Estimate the rank of the leading columns of an upper-triangular r.
    """
    d = np.abs(np.diag(r[:columns, :columns]))
    if len(d) == 0 or not np.isfinite(d).all():
        return 0
    dmax = np.max(d)
    if dmax == 0.0:
        return 0
    tolerance = max(r.shape) * np.finfo(float).eps * dmax
    return int(np.count_nonzero(d > tolerance))
