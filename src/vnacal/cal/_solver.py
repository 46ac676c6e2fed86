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
Error term solver: collects measurements of calibration standards and
solves for the error terms of the VNA.
"""

import logging

import numpy as np

from vnacal._spline import Interpolator, check_ascending
from vnacal.cal import _pvalue, _trl, _varpro
from vnacal.cal._calibration import Calibration
from vnacal.cal._layout import CalType, Layout, T_TYPES
from vnacal.cal._measurement import add_common
from vnacal.cal._model import make_model
from vnacal.cal._parameter import Parameter
from vnacal.cal._solve import SolveState, convert_ue14_to_e12, solve_simple
from vnacal.errors import MathError, UsageError

logger = logging.getLogger(__name__)


def _is_measurement(first, second) -> bool:
    """
    Return True if second has the dimensions of a measurement matrix
    accompanying first, rather than being the value of a standard.
    """
    if second is None or isinstance(second, Parameter):
        return False
    return np.ndim(second) >= 2 and np.ndim(second) == np.ndim(first)


def _bind(name: str, args, kwargs, *parameters):
    """
    Bind the arguments of an add_* call.

    The measurement comes first, as (a, b), (None, m) or m alone, or by
    keyword as a and b, or m.  The remaining positional arguments fill
    parameters, a sequence of (name, default) pairs, in order.  Returns
    (a, b, values).
    """
    args = list(args)
    kwargs = dict(kwargs)
    a = kwargs.pop('a', None)
    b = kwargs.pop('b', None)
    m = kwargs.pop('m', None)
    if m is not None:
        if a is not None or b is not None:
            raise UsageError(f"{name}: m cannot be given with a or b")
        b = m
    elif b is not None:
        if args and a is None:
            a = args.pop(0)
    elif args:
        first = args.pop(0)
        if first is None or (args and _is_measurement(first, args[0])):
            a = first
            b = args.pop(0) if args else None
        else:
            b = first
    if len(args) > len(parameters):
        raise TypeError(f"{name}() takes at most {len(parameters) + 2} "
                        f"positional arguments")
    values = {key: default for key, default in parameters}
    for (key, default), value in zip(parameters, args):
        if key in kwargs:
            raise TypeError(f"{name}() got multiple values for argument "
                            f"'{key}'")
        values[key] = value
    for key, value in kwargs.items():
        if key not in values:
            raise TypeError(f"{name}() got an unexpected keyword argument "
                            f"'{key}'")
        values[key] = value
    return a, b, tuple(values[key] for key, default in parameters)


class Solver:
    """
    Solve for VNA error terms from measurements of calibration standards.

    Parameters:
        calset:           Calset that owns the parameters used and
                          receives the solved calibration
        ctype:            error term model, a CalType
        rows:             rows in the measurement matrix
        columns:          columns in the measurement matrix
        frequency_vector: calibration frequencies in Hz, ascending
        z0:               reference impedance of the VNA ports

    Each add_* method takes either the incident and reflected/transmitted
    wave matrices (a, b) or the measurement matrix m alone, passed as
    (None, m) or as (m), followed by the values of the standard.
    Matrices have shape (frequencies, rows, columns).  A second argument
    with fewer dimensions than the first is taken as the standard, so
    (m, s11) and (a, b, s11) both work.
    """
    def __init__(self, calset, ctype, rows: int, columns: int,
                 frequency_vector=None, z0=50.0):
        ctype = CalType(ctype)
        if rows < 1 or columns < 1:
            raise UsageError("Solver: rows and columns must be at least 1")
        if ctype in T_TYPES and rows > columns:
            raise UsageError("Solver: U parameters must be used when "
                             "m_rows > m_columns")
        if ctype not in T_TYPES and rows < columns:
            raise UsageError("Solver: T parameters must be used when "
                             "m_rows < m_columns")
        self._calset = calset
        self._layout = Layout(ctype, rows, columns)
        self.model = make_model(self._layout)
        self.measurements = []
        self._frequency_vector = None
        self._m_error = None
        self._p_tolerance = 1.0e-6
        self._et_tolerance = 1.0e-6
        self._iteration_limit = 30
        self._pvalue_limit = 0.001
        self._calibration = None
        self._unknown_values = None
        self.z0 = z0
        if frequency_vector is not None:
            self.frequency_vector = frequency_vector

    def _invalidate(self):
        self._calibration = None
        self._unknown_values = None

    @property
    def calset(self):
        return self._calset

    @property
    def layout(self):
        return self._layout

    @property
    def ctype(self):
        return self._layout.ctype

    @property
    def rows(self) -> int:
        return self._layout.m_rows

    @property
    def columns(self) -> int:
        return self._layout.m_columns

    @property
    def frequency_vector(self):
        return self._frequency_vector

    @frequency_vector.setter
    def frequency_vector(self, value):
        f = check_ascending(value, "set_frequency_vector")
        for measurement in self.measurements:
            if measurement.m_matrix.shape[0] != len(f):
                raise UsageError("set_frequency_vector: frequency count "
                                 "does not match measurements already "
                                 "added")
        self._frequency_vector = f.copy()
        self._invalidate()

    @property
    def frequencies(self):
        if self._frequency_vector is None:
            return None
        return len(self._frequency_vector)

    @property
    def z0(self) -> complex:
        return self._z0

    @z0.setter
    def z0(self, value):
        self._z0 = complex(value)
        self._invalidate()

    @property
    def p_tolerance(self) -> float:
        """RMS change in the unknown parameters at convergence."""
        return self._p_tolerance

    @p_tolerance.setter
    def p_tolerance(self, value):
        value = float(value)
        if not value >= 0.0:
            raise UsageError("p_tolerance: tolerance must be non-negative")
        self._p_tolerance = value
        self._invalidate()

    @property
    def et_tolerance(self) -> float:
        """RMS change in the error terms at convergence."""
        return self._et_tolerance

    @et_tolerance.setter
    def et_tolerance(self, value):
        value = float(value)
        if not value >= 0.0:
            raise UsageError("et_tolerance: tolerance must be non-negative")
        self._et_tolerance = value
        self._invalidate()

    @property
    def iteration_limit(self) -> int:
        return self._iteration_limit

    @iteration_limit.setter
    def iteration_limit(self, value):
        value = int(value)
        if value < 1:
            raise UsageError("iteration_limit: iterations must be at "
                             "least 1")
        self._iteration_limit = value
        self._invalidate()

    @property
    def pvalue_limit(self) -> float:
        """
        Solutions with a p-value below this limit are rejected when a
        measurement error model is given.  Zero disables the test.
        """
        return self._pvalue_limit

    @pvalue_limit.setter
    def pvalue_limit(self, value):
        value = float(value)
        if not 0.0 <= value <= 1.0:
            raise UsageError("pvalue_limit: limit must be in 0 .. 1")
        self._pvalue_limit = value
        self._invalidate()

    def set_m_error(self, frequency_vector, noise_vector,
                    tracking_vector=None):
        """
        Set the measurement error model.

        noise_vector gives the standard deviation of the noise floor and
        tracking_vector the standard deviation of the noise proportional
        to the measured value.  If frequency_vector is None, the vectors
        correspond to the calibration frequencies; otherwise they are
        interpolated.  A single value applies at every frequency.
        Passing None for noise_vector removes the model.
        """
        self._invalidate()
        if noise_vector is None:
            self._m_error = None
            return
        if self._frequency_vector is None:
            raise UsageError("set_m_error: calibration frequency vector "
                             "must be set first")
        noise = np.atleast_1d(np.asarray(noise_vector, dtype=float))
        if tracking_vector is None:
            tracking = np.zeros(noise.shape)
        else:
            tracking = np.atleast_1d(np.asarray(tracking_vector,
                                                dtype=float))
        if noise.ndim != 1 or tracking.ndim != 1:
            raise UsageError("set_m_error: noise and tracking must be "
                             "vectors")
        if not np.isfinite(noise).all() or (noise <= 0.0).any():
            raise UsageError("set_m_error: noise values must be positive")
        if not np.isfinite(tracking).all() or (tracking < 0.0).any():
            raise UsageError("set_m_error: tracking values must be "
                             "non-negative")
        if frequency_vector is None:
            f = self._frequency_vector
        else:
            f = check_ascending(frequency_vector, "set_m_error")
        for name, v in (("noise", noise), ("tracking", tracking)):
            if len(v) != 1 and len(v) != len(f):
                raise UsageError(f"set_m_error: {name} vector must have "
                                 f"length 1 or {len(f)}")
        if len(noise) == 1:
            noise_interpolator = Interpolator(f[:1], noise)
        else:
            noise_interpolator = Interpolator(f, noise)
        if len(tracking) == 1:
            tracking_interpolator = Interpolator(f[:1], tracking)
        else:
            tracking_interpolator = Interpolator(f, tracking)
        if frequency_vector is not None and (len(noise) > 1
                                             or len(tracking) > 1):
            if not Interpolator(f, f).in_range(self._frequency_vector):
                raise UsageError("set_m_error: frequency vector does not "
                                 "cover the calibration frequency range")
        self._m_error = (noise_interpolator, tracking_interpolator)

    def _m_error_vectors(self):
        if self._m_error is None:
            return None
        noise, tracking = self._m_error
        f = self._frequency_vector
        noise_vector = np.abs(np.asarray(noise(f), dtype=float))
        tracking_vector = np.abs(np.asarray(tracking(f), dtype=float))
        if (noise_vector <= 0.0).any():
            raise UsageError("solve: interpolated noise must be positive")
        return noise_vector, tracking_vector

    def _add(self, name, a, b, s, port_map, delay_vector=None):
        measurement = add_common(self, name, a, b, s, port_map,
                                 delay_vector)
        self.measurements.append(measurement)
        self._invalidate()
        return measurement

    def add_single_reflect(self, *args, **kwargs):
        """
        add_single_reflect(a, b, s11, port=1, delay=0.0)

        Add the measurement of a reflect standard on a single port.
        delay is the one-way delay in seconds of the offset between the
        reference plane and the standard.
        """
        name = "add_single_reflect"
        a, b, (s11, port, delay) = _bind(name, args, kwargs, ('s11', None),
                                         ('port', 1), ('delay', 0.0))
        if s11 is None:
            raise UsageError("add_single_reflect: s11 must be given")
        self._add(name, a, b, [[s11]], [port], [delay])

    def add_double_reflect(self, *args, **kwargs):
        """
        add_double_reflect(a, b, s11, s22, port1=1, port2=2, delay1=0.0,
                           delay2=0.0)

        Add the measurement of a pair of reflect standards on two ports.
        """
        name = "add_double_reflect"
        a, b, (s11, s22, port1, port2, delay1, delay2) = _bind(
            name, args, kwargs, ('s11', None), ('s22', None), ('port1', 1),
            ('port2', 2), ('delay1', 0.0), ('delay2', 0.0))
        if s11 is None or s22 is None:
            raise UsageError("add_double_reflect: s11 and s22 must be given")
        self._add(name, a, b, [[s11, 0.0], [0.0, s22]], [port1, port2],
                  [delay1, delay2])

    def add_through(self, *args, **kwargs):
        """
        add_through(a, b, port1=1, port2=2, delay=0.0)

        Add the measurement of a through between two ports, perfect
        apart from its delay in seconds.
        """
        name = "add_through"
        a, b, (port1, port2, delay) = _bind(name, args, kwargs,
                                            ('port1', 1), ('port2', 2),
                                            ('delay', 0.0))
        self._add(name, a, b, [[0.0, 1.0], [1.0, 0.0]], [port1, port2],
                  [0.0, delay])

    def add_line(self, *args, **kwargs):
        """
        add_line(a, b, s_2x2, port1=1, port2=2, delay1=0.0, delay2=0.0)

        Add the measurement of an arbitrary two-port standard.
        """
        name = "add_line"
        a, b, (s_2x2, port1, port2, delay1, delay2) = _bind(
            name, args, kwargs, ('s_2x2', None), ('port1', 1),
            ('port2', 2), ('delay1', 0.0), ('delay2', 0.0))
        if s_2x2 is None:
            raise UsageError("add_line: s_2x2 must be given")
        if len(s_2x2) != 2 or any(len(row) != 2 for row in s_2x2):
            raise UsageError("add_line: s_2x2 must be a 2x2 matrix")
        self._add(name, a, b, s_2x2, [port1, port2], [delay1, delay2])

    def add_mapped_matrix(self, *args, **kwargs):
        """
        add_mapped_matrix(a, b, s, port_map=None, delay_vector=None)

        Add the measurement of an arbitrary standard whose S matrix
        rows and columns connect to the DUT ports listed in port_map.
        Without a port map, s must cover every port.  delay_vector gives
        the delay of each row and column of s.
        """
        name = "add_mapped_matrix"
        a, b, (s, port_map, delay_vector) = _bind(
            name, args, kwargs, ('s', None), ('port_map', None),
            ('delay_vector', None))
        self._add(name, a, b, s, port_map, delay_vector)

    def solve(self):
        """
        Solve for the error terms.  Raises MathError if the system cannot
        be solved at any frequency, in which case no calibration results.
        """
        self._invalidate()
        layout = self._layout
        if self._frequency_vector is None:
            raise UsageError("solve: calibration frequency vector must be "
                             "given")
        f_vector = self._frequency_vector
        frequencies = len(f_vector)
        for measurement in self.measurements:
            if measurement.m_matrix.shape[0] != frequencies:
                raise UsageError("solve: measurement frequency count does "
                                 "not match the calibration frequency "
                                 "vector")
        if layout.is_16term and self._m_error is not None:
            for measurement in self.measurements:
                if any(p is None for p in measurement.s_matrix.flat):
                    raise UsageError(f"solve: {layout.ctype.name} with a "
                                     f"measurement error model requires "
                                     f"every S parameter of every standard "
                                     f"to be given")

        state = SolveState(self, self._m_error_vectors())
        if _trl.is_trl(state):
            path = "TRL"
            method = _trl.solve_trl
        elif state.p_length == 0:
            path = "simple"
            method = solve_simple
        else:
            path = "general"
            method = _varpro.solve_varpro
        logger.debug("solving %s %dx%d over %d frequencies: %s path, %d "
                     "measurements, %d equations, %d unknown parameters",
                     layout.ctype.name, layout.m_rows, layout.m_columns,
                     frequencies, path, len(self.measurements),
                     state.equation_count, state.p_length)

        error_terms = np.empty((layout.error_terms, frequencies),
                               dtype=complex)
        for findex in range(frequencies):
            state.set_frequency(findex)
            x = method(state)
            if state.m_error is not None and self._pvalue_limit > 0.0:
                pvalue, df = _pvalue.calc_pvalue(state, x)
                logger.debug("%e Hz: p-value %f with %d degrees of freedom",
                             state.frequency, pvalue, df)
                if df >= 1 and pvalue < self._pvalue_limit:
                    raise MathError(f"solve: p-value {pvalue:.3e} at "
                                    f"{state.frequency:e} Hz is below "
                                    f"{self._pvalue_limit}: measurements "
                                    f"are inconsistent with the error "
                                    f"model")
            e = state.error_terms(x)
            if layout.ctype == CalType.E12:
                e = convert_ue14_to_e12(layout, e)
            error_terms[:, findex] = e
            state.p_history[findex, :] = state.p

        for i, parameter in enumerate(state.unknown_parameters):
            parameter._set_solution(f_vector, state.p_history[:, i])
        self._unknown_values = {id(p): state.p_history[:, i].copy()
                                for i, p in
                                enumerate(state.unknown_parameters)}
        self._calibration = Calibration(None, layout.ctype, layout.m_rows,
                                        layout.m_columns, f_vector,
                                        error_terms, self._z0)

    @property
    def calibration(self):
        """The solved calibration, or None before solve()."""
        return self._calibration

    def get_unknown_value(self, parameter):
        """
        Return the solved values of an unknown or correlated parameter
        at the calibration frequencies.
        """
        if self._calibration is None:
            raise UsageError("get_unknown_value: solve must be called "
                             "first")
        try:
            return self._unknown_values[id(parameter)].copy()
        except KeyError:
            raise UsageError("get_unknown_value: parameter is not an "
                             "unknown parameter of this solver") from None

    def add_to_calset(self, name: str) -> int:
        """
        Add the solved calibration to the calset under name.  Returns its
        index.
        """
        if self._calibration is None:
            raise UsageError("add_to_calset: solve must be called first")
        solved = self._calibration
        calibration = Calibration(name, solved.ctype, solved.rows,
                                  solved.columns, solved.frequency_vector,
                                  solved.error_term_vector, solved.z0)
        return self._calset.add_calibration(calibration)
