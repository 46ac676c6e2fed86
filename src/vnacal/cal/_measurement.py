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
Measurements of calibration standards and the equations they generate.
"""

import logging
import math
import numbers

import numpy as np

from vnacal import _linalg
from vnacal.cal._layout import CalType
from vnacal.cal._parameter import ZERO, Parameter, VectorParameter
from vnacal.errors import MathError, ResourceError, UsageError

logger = logging.getLogger(__name__)


class Equation:
    """
    The calibration equation for one measurement cell.

    terms holds every term; terms_no_v holds only the terms whose V
    cell is on the diagonal, which is the equation with V taken as the
    identity.
    """
    def __init__(self, measurement, row: int, column: int, sindex: int,
                 terms):
        self.measurement = measurement
        self.row = row
        self.column = column
        self.sindex = sindex
        self.terms = terms
        self.terms_no_v = [term for term in terms if not term.uses_v]

    @property
    def is_diagonal(self) -> bool:
        return self.row == self.column

    def __repr__(self):
        return f"Equation({self.row}, {self.column}, system={self.sindex})"


class Measurement:
    """
    One measured calibration standard.

    m_matrix has shape (frequencies, m_rows, m_columns) and holds NaN in
    cells that were not measured.  s_matrix is a ports x ports object
    array of Parameters, with None where the value is not known.
    """
    def __init__(self, m_matrix, s_matrix, connected, m_row_given,
                 m_column_given, s_row_given, s_column_given):
        self.m_matrix = m_matrix
        self.s_matrix = s_matrix
        self.connected = connected
        self.m_row_given = m_row_given
        self.m_column_given = m_column_given
        self.s_row_given = s_row_given
        self.s_column_given = s_column_given
        self.equations = []

    def m_given(self, row: int, column: int) -> bool:
        return bool(self.m_row_given[row] and self.m_column_given[column])

    def s_zero(self):
        """
        Return a boolean matrix, true where S is known to be zero.
        """
        ports = self.s_matrix.shape[0]
        result = np.zeros((ports, ports), dtype=bool)
        for i in range(ports):
            for j in range(ports):
                p = self.s_matrix[i, j]
                result[i, j] = p is not None and p.handle == ZERO
        return result

    def parameters(self):
        """
        Return the distinct parameters used in the S matrix.
        """
        result = []
        for p in self.s_matrix.flat:
            if p is not None and all(p is not q for q in result):
                result.append(p)
        return result


def compute_connectivity(s_matrix):
    """
    Return the symmetric, reflexive, transitive closure of the relation
    "S[i, j] is not known to be zero".
    """
    ports = s_matrix.shape[0]
    connected = np.zeros((ports, ports), dtype=bool)
    for i in range(ports):
        for j in range(ports):
            p = s_matrix[i, j]
            connected[i, j] = p is None or p.handle != ZERO
    connected |= connected.T
    connected[range(ports), range(ports)] = True
    for k in range(ports):
        connected |= connected[:, k:k + 1] & connected[k:k + 1, :]
    return connected


def _as_3d(value, frequencies, what: str, name: str):
    value = np.asarray(value, dtype=complex)
    if value.ndim == 2 and frequencies == 1:
        value = value[np.newaxis, ...]
    if value.ndim != 3:
        raise UsageError(f"{name}: '{what}' matrix must have shape "
                         f"(frequencies, rows, columns)")
    if frequencies is not None and value.shape[0] != frequencies:
        raise UsageError(f"{name}: '{what}' matrix must have {frequencies} "
                         f"frequencies; found {value.shape[0]}")
    return value


def _check_port_map(port_map, s_rows, s_columns, layout, name: str):
    port_map = [int(p) for p in port_map]
    if len(port_map) < max(s_rows, s_columns):
        raise UsageError(f"{name}: port map must have at least "
                         f"{max(s_rows, s_columns)} entries")
    seen = set()
    for i, port in enumerate(port_map[:max(s_rows, s_columns)]):
        if port < 1:
            raise UsageError(f"{name}: invalid port index {port}")
        if i < s_rows and port > layout.s_rows:
            raise UsageError(f"{name}: port index {port} out of bounds")
        if i < s_columns and port > layout.s_columns:
            raise UsageError(f"{name}: port index {port} out of bounds")
        if port in seen:
            raise UsageError(f"{name}: port {port} appears more than once "
                             f"in port map")
        seen.add(port)
    return port_map[:max(s_rows, s_columns)]


def _is_zero(value) -> bool:
    if isinstance(value, Parameter):
        return value.handle == ZERO
    return isinstance(value, numbers.Number) and value == 0


def _check_delays(delay_vector, s_rows, s_columns, frequency_vector,
                  name: str):
    """
    Return delay_vector as an array with one delay per row/column of s,
    or None if there are no delays.
    """
    if delay_vector is None:
        return None
    try:
        delays = np.atleast_1d(np.asarray(delay_vector, dtype=float))
    except (TypeError, ValueError):
        raise UsageError(f"{name}: delays must be numbers") from None
    if delays.ndim != 1 or len(delays) != max(s_rows, s_columns):
        raise UsageError(f"{name}: delay vector must have "
                         f"{max(s_rows, s_columns)} entries")
    if not np.isfinite(delays).all():
        raise UsageError(f"{name}: delays must be finite")
    if not delays.any():
        return None
    if frequency_vector is None:
        raise UsageError(f"{name}: calibration frequency vector must be "
                         f"set before adding delayed standards")
    return delays


def _convert_s(calset, s, delays, frequency_vector, name: str):
    """
    Convert the entries of s to Parameters.  Where delays are given,
    cell (i, j) is delayed by delays[i] + delays[j] seconds.  All
    entries are validated before any new parameter is made in calset.
    """
    pending = []
    for i, row in enumerate(s):
        pending_row = []
        for j, value in enumerate(row):
            Parameter.check_value(calset, value, name)
            delay = 0.0 if delays is None else delays[i] + delays[j]
            if delay == 0.0 or _is_zero(value):
                pending_row.append(value)
                continue
            if isinstance(value, Parameter):
                if value.is_unknown:
                    raise UsageError(f"{name}: delay cannot be applied to "
                                     f"an unknown parameter")
                gamma = np.asarray(value.get_value(frequency_vector),
                                   dtype=complex)
            else:
                gamma = np.full(frequency_vector.shape, complex(value))
            pending_row.append(gamma * np.exp(-2.0j * math.pi * delay
                                              * frequency_vector))
        pending.append(pending_row)
    return [[VectorParameter(calset, frequency_vector, value)
             if isinstance(value, np.ndarray)
             else Parameter.from_value(calset, value)
             for value in row] for row in pending]


def add_common(solver, name: str, a, b, s, port_map=None,
               delay_vector=None):
    """
    Validate a measurement of a calibration standard, derive its M
    matrix, S matrix, connectivity and equations, and return it as a
    new Measurement.  Nothing in solver is changed.

    s is a rows x columns nested sequence of Parameters or numbers.
    port_map, if given, maps each row and column of s to a DUT port
    (1-based).  delay_vector, if given, holds the one-way delay in
    seconds of the offset between the reference plane and each port of
    the standard.
    """
    layout = solver.layout
    calset = solver.calset
    frequencies = solver.frequencies

    if b is None:
        raise UsageError(f"{name}: '{'m' if a is None else 'b'}' matrix "
                         f"must be given")
    if s is None:
        raise UsageError(f"{name}: 's' matrix must be given")
    s_rows = len(s)
    if s_rows == 0:
        raise UsageError(f"{name}: 's' matrix must not be empty")
    s_columns = len(s[0])
    if any(len(row) != s_columns for row in s):
        raise UsageError(f"{name}: 's' matrix rows must have equal length")
    if s_rows < 1 or s_rows > layout.s_rows:
        raise UsageError(f"{name}: invalid s_rows value: {s_rows}")
    if s_columns < 1 or s_columns > layout.s_columns:
        raise UsageError(f"{name}: invalid s_columns value: {s_columns}")
    if layout.is_t:
        if s_rows < s_columns and s_rows != layout.s_rows:
            raise UsageError(f"{name}: s_rows cannot be less than "
                             f"s_columns when using T parameters")
    else:
        if s_columns < s_rows and s_columns != layout.s_columns:
            raise UsageError(f"{name}: s_columns cannot be less than "
                             f"s_rows when using U parameters")
    s_is_full = s_rows == layout.s_rows and s_columns == layout.s_columns
    if port_map is None and not s_is_full:
        raise UsageError(f"{name}: port map is required when s matrix is "
                         f"smaller than {layout.s_rows} x {layout.s_columns}")

    b = _as_3d(b, frequencies, 'm' if a is None else 'b', name)
    full_m_rows = layout.m_rows
    full_m_columns = layout.m_columns
    if layout.ctype == CalType.T16:
        min_b_rows = min(s_rows, full_m_rows)
        min_b_columns = full_m_columns
    elif layout.ctype == CalType.U16:
        min_b_rows = full_m_rows
        min_b_columns = min(s_columns, full_m_columns)
    else:
        min_b_rows = min(s_rows, full_m_rows)
        min_b_columns = min(s_columns, full_m_columns)
    b_rows, b_columns = b.shape[1], b.shape[2]
    if b_rows not in (min_b_rows, full_m_rows):
        raise UsageError(f"{name}: '{'m' if a is None else 'b'}' matrix "
                         f"must have {min_b_rows} or {full_m_rows} rows")
    if b_columns not in (min_b_columns, full_m_columns):
        raise UsageError(f"{name}: '{'m' if a is None else 'b'}' matrix "
                         f"must have {min_b_columns} or {full_m_columns} "
                         f"columns")

    if a is not None:
        a = _as_3d(a, b.shape[0], 'a', name)
        a_rows = 1 if layout.is_ue14 else b_columns
        if a.shape[1:] != (a_rows, b_columns):
            raise UsageError(f"{name}: 'a' matrix must be {a_rows} x "
                             f"{b_columns}")

    if port_map is not None:
        port_map = _check_port_map(port_map, s_rows, s_columns, layout, name)
        row_ports = [p - 1 for p in port_map[:s_rows]]
        column_ports = [p - 1 for p in port_map[:s_columns]]
    else:
        row_ports = list(range(s_rows))
        column_ports = list(range(s_columns))
    delays = _check_delays(delay_vector, s_rows, s_columns,
                           solver.frequency_vector, name)

    # Map measured rows and columns onto the full M matrix.
    if b_rows == full_m_rows:
        m_row_map = list(range(full_m_rows))
    else:
        m_row_map = sorted(row_ports)
    if b_columns == full_m_columns:
        m_column_map = list(range(full_m_columns))
    else:
        m_column_map = sorted(column_ports)

    try:
        m = _compute_m(name, a, b, layout.is_ue14)
        m_matrix = np.full((b.shape[0], full_m_rows, full_m_columns),
                           np.nan, dtype=complex)
    except MemoryError as e:
        raise ResourceError(f"{name}: {e}") from e
    m_matrix[np.ix_(range(b.shape[0]), m_row_map, m_column_map)] = m
    m_row_given = np.zeros((full_m_rows,), dtype=bool)
    m_row_given[m_row_map] = True
    m_column_given = np.zeros((full_m_columns,), dtype=bool)
    m_column_given[m_column_map] = True

    # Build the full S matrix.
    ports = layout.ports
    standard = _convert_s(calset, s, delays, solver.frequency_vector, name)
    s_matrix = np.full((ports, ports), None, dtype=object)
    for i in range(s_rows):
        for j in range(s_columns):
            s_matrix[row_ports[i], column_ports[j]] = standard[i][j]
    mapped = np.zeros((ports,), dtype=bool)
    mapped[row_ports] = True
    mapped[column_ports] = True
    zero = calset.get_parameter(ZERO)
    for i in range(ports):
        for j in range(ports):
            if mapped[i] != mapped[j]:
                s_matrix[i, j] = zero
    s_row_given = np.zeros((ports,), dtype=bool)
    s_row_given[row_ports] = True
    s_column_given = np.zeros((ports,), dtype=bool)
    s_column_given[column_ports] = True

    connected = compute_connectivity(s_matrix)
    measurement = Measurement(m_matrix, s_matrix, connected, m_row_given,
                              m_column_given, s_row_given, s_column_given)

    # Generate the equations.
    model = solver.model
    s_zero = measurement.s_zero()
    if layout.is_ue14:
        cells = [(row, column)
                 for column in range(full_m_columns)
                 for row in range(full_m_rows)
                 if s_row_given[row] and m_column_given[column]]
    elif layout.is_t:
        cells = [(row, column)
                 for row in range(full_m_rows)
                 for column in range(full_m_columns)
                 if m_row_given[row] and s_column_given[column]]
    else:
        cells = [(row, column)
                 for row in range(full_m_rows)
                 for column in range(full_m_columns)
                 if s_row_given[row] and m_column_given[column]]
    for row, column in cells:
        terms = model.build_terms(row, column, s_zero, connected)
        measurement.equations.append(
            Equation(measurement, row, column,
                     model.system_of(row, column), terms))
    logger.debug("%s: %d equation(s), s %dx%d, port map %s",
                 name, len(measurement.equations), s_rows, s_columns,
                 port_map)
    return measurement


def _compute_m(name, a, b, is_ue14):
    if a is None:
        return b.copy()
    m = np.empty(b.shape, dtype=complex)
    for findex in range(b.shape[0]):
        if is_ue14:
            d = a[findex, 0, :]
            if (d == 0.0).any():
                raise MathError(f"{name}: 'a' matrix is singular at "
                                f"frequency index {findex}")
            m[findex] = b[findex] / d[np.newaxis, :]
        else:
            x, det = _linalg.mrdivide(b[findex], a[findex])
            if x is None:
                raise MathError(f"{name}: 'a' matrix is singular at "
                                f"frequency index {findex}")
            m[findex] = x
    return m
