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
Frequency interpolation of complex values.
"""

import numpy as np
from scipy.interpolate import CubicSpline

from vnacal.errors import UsageError

# Fraction of the frequency span we allow beyond either end.
EXTRAPOLATION = 0.01


def check_ascending(frequency_vector, name: str):
    """
    Convert frequency_vector to a 1-D float array and check that it is
    finite, non-negative and strictly ascending.
    """
    f = np.atleast_1d(np.asarray(frequency_vector, dtype=float))
    if f.ndim != 1:
        raise UsageError(f"{name}: frequency vector must be one dimensional")
    if len(f) == 0:
        raise UsageError(f"{name}: frequency vector must not be empty")
    if not np.isfinite(f).all() or (f < 0.0).any():
        raise UsageError(f"{name}: invalid frequency")
    if (np.diff(f) <= 0.0).any():
        raise UsageError(f"{name}: frequencies must be ascending")
    return f


class Interpolator:
    """
    Natural cubic spline through (frequency, value) points.  Values may
    be complex and may carry extra trailing dimensions.  A single point
    gives a constant.
    """
    def __init__(self, frequency_vector, values):
        self.frequency_vector = np.asarray(frequency_vector, dtype=float)
        self.values = np.asarray(values)
        self.fmin = self.frequency_vector[0]
        self.fmax = self.frequency_vector[-1]
        if len(self.frequency_vector) > 1:
            self._spline = CubicSpline(self.frequency_vector, self.values,
                                       axis=0, bc_type='natural')
        else:
            self._spline = None

    def in_range(self, f) -> bool:
        lower = self.fmin * (1.0 - EXTRAPOLATION)
        upper = self.fmax * (1.0 + EXTRAPOLATION)
        f = np.asarray(f, dtype=float)
        return bool(np.all((f >= lower) & (f <= upper)))

    def __call__(self, f):
        if self._spline is None:
            f = np.asarray(f, dtype=float)
            return np.broadcast_to(self.values[0],
                                   f.shape + self.values.shape[1:]).copy()
        return self._spline(f)
