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
Solve for error terms.

The solve runs independently at each calibration frequency.  Known
standards give a linear system in the error terms; standards with
unknown or correlated parameters need the iterative solver in _varpro,
and one special case of those, TRL, has a closed-form solution in _trl.
"""

import logging
import math

import numpy as np

from vnacal import _linalg
from vnacal.errors import MathError

logger = logging.getLogger(__name__)


def _initial_value(parameter, f):
    while parameter.is_unknown:
        parameter = parameter.other
    return parameter.get_value(f)


def rms(v) -> float:
    v = np.asarray(v)
    if v.size == 0:
        return 0.0
    return math.sqrt(np.sum(np.abs(v) ** 2) / v.size)


class SolveState:
    """
    Working state of a solve at one frequency at a time: measured values
    with leakage removed, current S values, V matrices and the unknown
    parameter vector.
    """
    def __init__(self, solver, m_error=None):
        self.solver = solver
        self.layout = solver.layout
        self.model = solver.model
        self.frequency_vector = solver.frequency_vector
        self.measurements = solver.measurements
        self.m_error = m_error
        self.findex = None
        self.frequency = None

        # Collect the unknown and correlated parameters in order of
        # first use.
        unknowns = []

        def note(parameter):
            if parameter.is_unknown and \
                    all(parameter is not q for q in unknowns):
                unknowns.append(parameter)
                note(parameter.other)

        for measurement in self.measurements:
            for parameter in measurement.parameters():
                note(parameter)
        self.unknown_parameters = unknowns
        self.p_length = len(unknowns)
        self.correlated = sum(1 for p in unknowns if p.is_correlated)
        self.p_history = np.zeros((len(self.frequency_vector),
                                   self.p_length), dtype=complex)

        # Equations participating in the solve, by system.
        self.system_equations = [[] for _ in range(self.layout.systems)]
        for mindex, measurement in enumerate(self.measurements):
            for equation in measurement.equations:
                if not (self.layout.is_16term or equation.is_diagonal
                        or measurement.connected[equation.row,
                                                 equation.column]):
                    continue
                self.system_equations[equation.sindex].append(
                    (mindex, equation))

        self.p = np.zeros((self.p_length,), dtype=complex)
        self.s_values = []
        self.v_matrices = None
        self.leakage = None
        self.leakage_stats = {}

    @property
    def equation_count(self) -> int:
        return sum(len(eqs) for eqs in self.system_equations)

    def parameter_index(self, parameter):
        for i, q in enumerate(self.unknown_parameters):
            if q is parameter:
                return i
        return None

    def set_frequency(self, findex: int):
        """
        Make findex the current frequency: find the leakage terms,
        initialize the unknown parameters and evaluate the S matrices.
        """
        self.findex = findex
        self.frequency = self.frequency_vector[findex]
        self.v_matrices = None
        self._find_leakage()
        for i, parameter in enumerate(self.unknown_parameters):
            self.p[i] = _initial_value(parameter, self.frequency)
        self._known_s = []
        for measurement in self.measurements:
            s = np.zeros(measurement.s_matrix.shape, dtype=complex)
            for (i, j), parameter in np.ndenumerate(measurement.s_matrix):
                if parameter is not None and not parameter.is_unknown:
                    s[i, j] = parameter.get_value(self.frequency)
            self._known_s.append(s)
        self.update_s()

    def set_p(self, p):
        self.p[...] = p
        self.update_s()

    def update_s(self):
        """
        Evaluate the S matrices from the known values and the current
        unknown parameter vector.
        """
        self.s_values = []
        for measurement, known in zip(self.measurements, self._known_s):
            s = known.copy()
            for (i, j), parameter in np.ndenumerate(measurement.s_matrix):
                if parameter is not None and parameter.is_unknown:
                    s[i, j] = self.p[self.parameter_index(parameter)]
            self.s_values.append(s)

    def _find_leakage(self):
        layout = self.layout
        self.leakage = np.zeros((layout.m_rows, layout.m_columns),
                                dtype=complex)
        self.leakage_stats = {}
        if not layout.has_leakage:
            return
        for row, column in layout.leakage_cells():
            total = 0.0j
            total_squares = 0.0
            count = 0
            for measurement in self.measurements:
                if not measurement.m_given(row, column):
                    continue
                if measurement.connected[row, column]:
                    continue
                value = measurement.m_matrix[self.findex, row, column]
                total += value
                total_squares += abs(value) ** 2
                count += 1
            if count == 0:
                raise MathError(f"solve: leakage term system is singular: "
                                f"no measurement isolates m{row + 1}"
                                f"{column + 1}")
            self.leakage[row, column] = total / count
            self.leakage_stats[(row, column)] = (total, total_squares, count)

    def m_value(self, mindex: int, cell):
        """
        Return the measured value in cell with leakage removed.
        """
        m = self.measurements[mindex].m_matrix[self.findex][cell]
        if cell[0] != cell[1]:
            m -= self.leakage[cell]
        return m

    def weight(self, mindex: int, equation) -> float:
        """
        Return the reciprocal of the expected standard deviation of the
        residual of equation under the measurement error model.
        """
        if self.m_error is None:
            return 1.0
        noise, tracking = self.m_error
        sigma_nf = noise[self.findex]
        sigma_tr = tracking[self.findex]
        m = self.m_value(mindex, (equation.row, equation.column))
        return 1.0 / math.sqrt(sigma_nf ** 2 + sigma_tr ** 2 * abs(m) ** 2)

    def term_value(self, mindex: int, sindex: int, term, use_v: bool,
                   include_s: bool = True):
        """
        Return the coefficient of term.  With include_s false, the S
        factor is left out, giving the derivative with respect to S.
        """
        value = 1.0 + 0.0j
        if term.m_cell is not None:
            value *= self.m_value(mindex, term.m_cell)
        if include_s and term.s_cell is not None:
            value *= self.s_values[mindex][term.s_cell]
        if use_v and term.v_cell is not None:
            value *= self.v_matrices[mindex][sindex][term.v_cell]
        return -value if term.negative else value

    def use_v(self) -> bool:
        return self.v_matrices is not None

    def build_system(self, sindex: int):
        """
        Return (a, b) for system sindex: one row per equation, one
        column per unknown error term.  With V matrices present, the
        full term lists are used and each row is weighted.
        """
        use_v = self.use_v()
        equations = self.system_equations[sindex]
        unknowns = self.layout.unknowns
        a = np.zeros((len(equations), unknowns), dtype=complex)
        b = np.zeros((len(equations),), dtype=complex)
        for row, (mindex, equation) in enumerate(equations):
            terms = equation.terms if use_v else equation.terms_no_v
            for term in terms:
                value = self.term_value(mindex, sindex, term, use_v)
                if term.is_rhs:
                    b[row] += value
                else:
                    a[row, term.xindex] += value
            if use_v:
                w = self.weight(mindex, equation)
                a[row, :] *= w
                b[row] *= w
        return a, b

    def update_v(self, x):
        """
        Recompute the V matrices from the error terms x, one row per
        system.
        """
        v_matrices = []
        for mindex, s in enumerate(self.s_values):
            per_system = []
            for sindex in range(self.layout.systems):
                try:
                    per_system.append(self.model.update_v(x[sindex], s,
                                                          sindex))
                except MathError:
                    raise MathError(f"solve: singular matrix at "
                                    f"{self.frequency:e} Hz") from None
            v_matrices.append(per_system)
        self.v_matrices = v_matrices

    def init_x(self):
        return np.array([self.model.init_x(sindex)
                         for sindex in range(self.layout.systems)])

    def error_terms(self, x):
        """
        Return the full error term vector for solution x: the per-system
        terms with unity restored, followed by the leakage terms.
        """
        parts = [self.model.expand(x[sindex], sindex)
                 for sindex in range(self.layout.systems)]
        parts.append(np.array([self.leakage[cell] for cell in
                               self.layout.leakage_cells()],
                              dtype=complex)
                     if self.layout.has_leakage else
                     np.zeros((0,), dtype=complex))
        return np.concatenate(parts)


def solve_linear(a, b, frequency):
    """
    Solve a x = b, exactly when square and by least squares when
    overdetermined.
    """
    rows, columns = a.shape
    if rows == columns:
        x, det = _linalg.mldivide(a, b)
        if x is None:
            raise MathError(f"solve: singular linear system at "
                            f"{frequency:e} Hz")
        return x
    x, rank = _linalg.qrsolve(a, b)
    if x is None:
        raise MathError(f"solve: singular linear system at "
                        f"{frequency:e} Hz")
    return x


def solve_simple(state):
    """
    Solve for the error terms when every S parameter is known.
    """
    layout = state.layout
    unknowns = layout.unknowns
    x = np.empty((layout.systems, unknowns), dtype=complex)
    for sindex in range(layout.systems):
        count = len(state.system_equations[sindex])
        if count < unknowns:
            raise MathError(f"solve: insufficient number of standards to "
                            f"solve error terms: {count} equations for "
                            f"{unknowns} unknowns")
        a, b = state.build_system(sindex)
        x[sindex] = solve_linear(a, b, state.frequency)

    if state.m_error is None:
        return x

    # Iterate, weighting each equation by its expected error, until the
    # error terms settle.
    solver = state.solver
    iteration = 0
    while True:
        state.update_v(x)
        x_new = np.empty_like(x)
        for sindex in range(layout.systems):
            a, b = state.build_system(sindex)
            x_new[sindex] = solve_linear(a, b, state.frequency)
        delta = rms(x_new - x)
        x = x_new
        iteration += 1
        logger.debug("simple solve %e Hz iteration %d: rms change %e",
                     state.frequency, iteration, delta)
        if delta <= solver.et_tolerance:
            break
        if iteration >= solver.iteration_limit:
            raise MathError(f"solve: system failed to converge at "
                            f"{state.frequency:e} Hz")
    return x


def convert_ue14_to_e12(layout, e):
    """
    Convert a UE14 error term vector to E12 (el, er, em per column).
    """
    m_rows = layout.m_rows
    terms = layout.terms
    result = np.empty((layout.m_columns * 3 * m_rows,), dtype=complex)
    for c in range(layout.m_columns):
        base = c * terms
        um = e[base + layout.um_offset:base + layout.um_offset + m_rows]
        ui = e[base + layout.ui_offset]
        ux = e[base + layout.ux_offset:base + layout.ux_offset + m_rows]
        us = e[base + layout.us_offset]
        if (um == 0.0).any():
            raise MathError("solve: singular system converting to E12 "
                            "error terms")
        n = us - ui * ux[c] / um[c]
        out = c * 3 * m_rows
        for r in range(m_rows):
            if r == c:
                el = -ui / um[c]
            else:
                el = e[layout.leakage_offset + layout.leakage_index(r, c)]
            result[out + r] = el
            result[out + m_rows + r] = n / um[r]
            result[out + 2 * m_rows + r] = ux[r] / um[r]
    return result
