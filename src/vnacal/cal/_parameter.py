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
Parameters describing the S matrices of calibration standards.

A parameter is owned by the Calset it was created in and is known there
by a small integer handle.  Handles ZERO, ONE and SHORT are predefined.
"""

import numbers

import numpy as np

from vnacal._spline import Interpolator, check_ascending
from vnacal.errors import UsageError

ZERO = 0
ONE = 1
SHORT = 2
BUILTIN_COUNT = 3


class Parameter:
    """
    Base class of all calibration parameters.
    """
    is_unknown = False
    is_correlated = False

    def __init__(self, calset):
        self._calset = calset
        self._handle = calset._add_parameter(self)

    @property
    def calset(self):
        return self._calset

    @property
    def handle(self) -> int:
        return self._handle

    @property
    def deleted(self) -> bool:
        return self._handle is None

    def delete(self):
        """
        Remove this parameter from its calset.
        """
        if self._handle is None:
            return
        if self._handle < BUILTIN_COUNT:
            raise UsageError("Parameter.delete: cannot delete a "
                             "predefined parameter")
        self._calset._remove_parameter(self._handle)
        self._handle = None

    def get_value(self, frequency):
        """
        Return the value of the parameter at the given frequency (or
        array of frequencies).
        """
        raise NotImplementedError

    def _check_live(self, name: str):
        if self._handle is None:
            raise UsageError(f"{name}: parameter has been deleted")

    @staticmethod
    def check_value(calset, value, name: str):
        """
        Raise UsageError unless from_value can convert value to a
        Parameter of calset.
        """
        if isinstance(value, Parameter):
            if value.calset is not calset:
                raise UsageError(f"{name}: parameter belongs to a "
                                 f"different Calset")
            value._check_live(name)
            return
        if not isinstance(value, numbers.Number):
            raise UsageError(f"{name}: cannot convert "
                             f"{type(value).__name__} to a parameter")

    @staticmethod
    def from_value(calset, value):
        """
        Convert value to a Parameter in calset.  Parameters are returned
        unchanged; 0, 1 and -1 give the predefined parameters; other
        numbers become new ScalarParameters.
        """
        Parameter.check_value(calset, value, "Parameter.from_value")
        if isinstance(value, Parameter):
            return value
        value = complex(value)
        if value == 0.0:
            return calset.get_parameter(ZERO)
        if value == 1.0:
            return calset.get_parameter(ONE)
        if value == -1.0:
            return calset.get_parameter(SHORT)
        return ScalarParameter(calset, value)


class ScalarParameter(Parameter):
    """
    Frequency-independent parameter.
    """
    def __init__(self, calset, value):
        self._value = complex(value)
        super().__init__(calset)

    @property
    def value(self) -> complex:
        return self._value

    def get_value(self, frequency):
        self._check_live("ScalarParameter.get_value")
        f = np.asarray(frequency, dtype=float)
        if f.ndim == 0:
            return self._value
        return np.full(f.shape, self._value, dtype=complex)

    def __repr__(self):
        return f"ScalarParameter({self._value})"


class VectorParameter(Parameter):
    """
    Frequency-dependent parameter given as (frequency, value) pairs.
    Values between the given frequencies are found by natural cubic
    spline interpolation.
    """
    def __init__(self, calset, frequency_vector, gamma_vector):
        f = check_ascending(frequency_vector, "VectorParameter")
        gamma = np.atleast_1d(np.asarray(gamma_vector, dtype=complex))
        if gamma.shape != f.shape:
            raise UsageError("VectorParameter: frequency_vector and "
                             "gamma_vector must have the same length")
        self._interpolator = Interpolator(f, gamma)
        super().__init__(calset)

    @property
    def frequency_vector(self):
        return self._interpolator.frequency_vector

    @property
    def gamma_vector(self):
        return self._interpolator.values

    def get_value(self, frequency):
        self._check_live("VectorParameter.get_value")
        if not self._interpolator.in_range(frequency):
            raise UsageError(f"VectorParameter.get_value: frequency "
                             f"{frequency} out of bounds")
        value = self._interpolator(frequency)
        if np.ndim(value) == 0:
            return complex(value)
        return value


class UnknownParameter(Parameter):
    """
    Parameter whose value the solver finds.  Before solving, its value
    is the initial guess.  After solving, its value interpolates the
    solution found at the calibration frequencies.
    """
    is_unknown = True

    def __init__(self, calset, initial_guess):
        if isinstance(initial_guess, tuple):
            if len(initial_guess) != 2:
                raise UsageError("UnknownParameter: initial guess tuple "
                                 "must be (frequency_vector, values)")
            initial_guess = VectorParameter(calset, initial_guess[0],
                                            initial_guess[1])
        self._other = Parameter.from_value(calset, initial_guess)
        self._solved = None
        super().__init__(calset)

    @property
    def other(self):
        """The initial guess, or for correlated parameters, the
        parameter this one is correlated with."""
        return self._other

    @property
    def solved(self) -> bool:
        return self._solved is not None

    def _set_solution(self, frequency_vector, values):
        self._solved = Interpolator(frequency_vector, values)

    def get_value(self, frequency):
        self._check_live(f"{type(self).__name__}.get_value")
        if self._solved is None:
            return self._other.get_value(frequency)
        if not self._solved.in_range(frequency):
            raise UsageError(f"{type(self).__name__}.get_value: frequency "
                             f"{frequency} out of bounds")
        value = self._solved(frequency)
        if np.ndim(value) == 0:
            return complex(value)
        return value


class CorrelatedParameter(UnknownParameter):
    """
    Unknown parameter known to lie close to another parameter.  The
    difference between them is modeled as complex Gaussian with the
    given standard deviation, interpolated over frequency.  A single
    sigma value applies at all frequencies.
    """
    is_correlated = True

    def __init__(self, calset, other, frequency_vector, sigma_vector):
        sigma = np.atleast_1d(np.asarray(sigma_vector, dtype=float))
        if sigma.ndim != 1 or len(sigma) == 0:
            raise UsageError("CorrelatedParameter: sigma_vector must be a "
                             "non-empty vector")
        if not np.isfinite(sigma).all() or (sigma <= 0.0).any():
            raise UsageError("CorrelatedParameter: sigma values must be "
                             "positive")
        if len(sigma) == 1:
            if frequency_vector is None:
                frequency_vector = [0.0]
            f = np.atleast_1d(np.asarray(frequency_vector, dtype=float))[:1]
            self._sigma_range = None
        else:
            f = check_ascending(frequency_vector, "CorrelatedParameter")
            if len(f) != len(sigma):
                raise UsageError("CorrelatedParameter: frequency_vector and "
                                 "sigma_vector must have the same length")
            self._sigma_range = (f[0], f[-1])
        self._sigma = Interpolator(f, sigma)
        super().__init__(calset, other)

    def get_sigma(self, frequency):
        """
        Return the standard deviation at the given frequency.
        """
        if self._sigma_range is not None and \
                not self._sigma.in_range(frequency):
            raise UsageError(f"CorrelatedParameter.get_sigma: frequency "
                             f"{frequency} out of bounds")
        value = self._sigma(frequency)
        if np.ndim(value) == 0:
            return float(value)
        return value
