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
Solved calibrations and their application to measured data.
"""

import logging

import numpy as np

from vnacal import _linalg
from vnacal._spline import Interpolator
from vnacal.cal._layout import CalType, Layout
from vnacal.cal._model import make_model
from vnacal.data import NPData, PType
from vnacal.errors import MathError, UsageError

logger = logging.getLogger(__name__)


class Calibration:
    """
    Solved error terms of a calibration.

    error_term_vector has shape (error terms, frequencies).
    """
    def __init__(self, name, ctype, rows: int, columns: int,
                 frequency_vector, error_term_vector, z0=50.0):
        self.name = name
        self._layout = Layout(ctype, rows, columns)
        self._model = make_model(self._layout)
        self._frequency_vector = np.array(frequency_vector, dtype=float)
        self._error_term_vector = np.array(error_term_vector, dtype=complex)
        if self._error_term_vector.shape != (self._layout.error_terms,
                                             len(self._frequency_vector)):
            raise UsageError("Calibration: error_term_vector must have "
                             "shape (error terms, frequencies)")
        self.z0 = complex(z0)
        self._interpolator = Interpolator(self._frequency_vector,
                                          self._error_term_vector.T)

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
    def frequencies(self) -> int:
        return len(self._frequency_vector)

    @property
    def frequency_vector(self):
        return self._frequency_vector

    @property
    def error_term_vector(self):
        return self._error_term_vector

    @property
    def layout(self):
        return self._layout

    @property
    def fmin(self) -> float:
        return self._frequency_vector[0]

    @property
    def fmax(self) -> float:
        return self._frequency_vector[-1]

    def get_error_terms(self, findex: int):
        """
        Return the error terms at frequency index findex as a dict of
        named blocks.
        """
        e = self._error_term_vector[:, findex]
        return self._blocks(e)

    def _blocks(self, e):
        layout = self._layout
        if layout.ctype == CalType.E12:
            n = layout.m_rows
            shaped = e.reshape((layout.m_columns, 3, n))
            return {'el': shaped[:, 0, :], 'er': shaped[:, 1, :],
                    'em': shaped[:, 2, :]}
        terms = layout.terms
        if layout.is_ue14:
            result = {name: np.array([self._model.blocks(
                          e[c * terms:(c + 1) * terms])[name]
                          for c in range(layout.systems)])
                      for name in ('um', 'ui', 'ux', 'us')}
        else:
            result = self._model.blocks(e[:terms])
        if layout.has_leakage:
            leakage = np.zeros((layout.m_rows, layout.m_columns),
                               dtype=complex)
            for i, cell in enumerate(layout.leakage_cells()):
                leakage[cell] = e[layout.leakage_offset + i]
            result['el'] = leakage
        return result

    def apply(self, frequency_vector, a, b=None, delay_vector=None):
        """
        Correct measured data.

        Pass either (a, b), the incident and reflected/transmitted wave
        matrices, or the measurement matrix alone, as (m) or (None, m).
        Each has shape (frequencies, ports, ports); for UE14 and E12
        calibrations, a may instead have shape (frequencies, 1, ports).

        For a calibration with fewer rows or columns than ports, the
        ports x ports matrix is measured by rotating the device: column j
        is measured through calibration column j mod columns with VNA
        port r connected to device port (r + j - j mod columns) mod ports;
        rows and columns of the matrix are in device port order.

        delay_vector, if given, holds the one-way delay in seconds
        between each VNA port reference plane and the device; the
        corrected result is rotated to remove it.

        Returns an NPData of S parameters.
        """
        layout = self._layout
        ports = layout.ports
        f_vector = np.atleast_1d(np.asarray(frequency_vector, dtype=float))
        if f_vector.ndim != 1:
            raise UsageError("apply: frequency vector must be one "
                             "dimensional")
        if not self._interpolator.in_range(f_vector):
            raise UsageError(f"apply: frequency out of bounds "
                             f"{self.fmin:e} .. {self.fmax:e}")
        if b is None:
            a, b = None, a
        if b is None:
            raise UsageError("apply: measurement matrix must be given")
        if delay_vector is not None:
            delay_vector = np.asarray(delay_vector, dtype=float)
            if delay_vector.shape != (ports,):
                raise UsageError(f"apply: delay vector must have length "
                                 f"{ports}")
            if not np.isfinite(delay_vector).all():
                raise UsageError("apply: delays must be finite")
        frequencies = len(f_vector)
        logger.debug("applying %s %dx%d calibration %r at %d frequencies",
                     self.ctype.name, self.rows, self.columns, self.name,
                     frequencies)
        m = self._measurement_matrix(frequencies, a, b)
        e_vectors = self._interpolator(f_vector)
        if frequencies == 1:
            e_vectors = np.reshape(e_vectors, (1, -1))

        result = NPData(PType.S, ports, ports, frequencies, self.z0)
        result.frequency_vector = f_vector
        s = np.empty((frequencies, ports, ports), dtype=complex)
        for findex in range(frequencies):
            try:
                s[findex] = self._correct(e_vectors[findex], m[findex])
            except MathError as e:
                raise MathError(f"apply: {e} at {f_vector[findex]:e} "
                                f"Hz") from None
            if delay_vector is not None:
                r = np.exp(2.0j * np.pi * delay_vector * f_vector[findex])
                s[findex] *= np.outer(r, r)
        result.data_array = s
        return result

    def _measurement_matrix(self, frequencies, a, b):
        ports = self._layout.ports
        b = np.asarray(b, dtype=complex)
        if b.ndim == 2 and frequencies == 1:
            b = b[np.newaxis, ...]
        if b.shape != (frequencies, ports, ports):
            raise UsageError(f"apply: measurement matrix must have shape "
                             f"({frequencies}, {ports}, {ports})")
        if a is None:
            return b
        a = np.asarray(a, dtype=complex)
        if a.ndim == 2 and frequencies == 1:
            a = a[np.newaxis, ...]
        m = np.empty(b.shape, dtype=complex)
        if self._layout.is_ue14 and a.shape == (frequencies, 1, ports):
            for findex in range(frequencies):
                if (a[findex, 0, :] == 0.0).any():
                    raise MathError(f"apply: 'a' matrix is singular at "
                                    f"frequency index {findex}")
                m[findex] = b[findex] / a[findex, 0, np.newaxis, :]
            return m
        if a.shape != (frequencies, ports, ports):
            raise UsageError(f"apply: 'a' matrix must have shape "
                             f"({frequencies}, {ports}, {ports})")
        for findex in range(frequencies):
            x, det = _linalg.mrdivide(b[findex], a[findex])
            if x is None:
                raise MathError(f"apply: 'a' matrix is singular at "
                                f"frequency index {findex}")
            m[findex] = x
        return m

    def _leakage(self, e):
        layout = self._layout
        leakage = np.zeros((layout.m_rows, layout.m_columns), dtype=complex)
        if layout.has_leakage and layout.ctype != CalType.E12:
            for i, cell in enumerate(layout.leakage_cells()):
                leakage[cell] = e[layout.leakage_offset + i]
        return leakage

    def _correct(self, e, m):
        layout = self._layout
        if layout.is_t:
            return self._correct_t(e, m)
        return self._correct_u(e, m)

    def _correct_t(self, e, m):
        layout = self._layout
        ports = layout.ports
        m_rows = layout.m_rows
        blocks = self._model.blocks(e[:layout.terms])
        ts, ti, tx, tm = blocks['ts'], blocks['ti'], blocks['tx'], blocks['tm']
        leakage = self._leakage(e)
        a_dut = np.empty((ports, ports), dtype=complex)
        b_dut = np.empty((ports, ports), dtype=complex)
        for i in range(ports):
            c = i % m_rows
            k = i - c
            order = [(r + k) % ports for r in range(ports)]
            m_vna = m[i, order].copy()
            for r in range(ports):
                if r != c:
                    m_vna[r] -= leakage[c, r]
            a_dut[i, order] = ts[c, :] - m_vna @ tx
            b_dut[i, order] = m_vna @ tm - ti[c, :]
        s, det = _linalg.mldivide(a_dut, b_dut)
        if s is None:
            raise MathError("singular matrix")
        return s

    def _correct_u(self, e, m):
        layout = self._layout
        ports = layout.ports
        m_columns = layout.m_columns
        terms = layout.terms
        leakage = self._leakage(e)
        x_dut = np.empty((ports, ports), dtype=complex)
        y_dut = np.empty((ports, ports), dtype=complex)
        if layout.is_ue14:
            blocks = None
        else:
            blocks = self._model.blocks(e[:terms])
        for j in range(ports):
            c = j % m_columns
            k = j - c
            order = [(r + k) % ports for r in range(ports)]
            m_vna = m[order, j].copy()
            unit = np.zeros((ports,), dtype=complex)
            unit[c] = 1.0
            if layout.ctype == CalType.E12:
                base = c * 3 * ports
                el = e[base:base + ports]
                er = e[base + ports:base + 2 * ports]
                em = e[base + 2 * ports:base + 3 * ports]
                y = (m_vna - el) / er
                x = unit + em * y
            else:
                for r in range(ports):
                    if r != c:
                        m_vna[r] -= leakage[r, c]
                if layout.is_ue14:
                    system = self._model.blocks(e[c * terms:(c + 1) * terms])
                    y = system['um'] * m_vna + system['ui'] * unit
                    x = system['ux'] * m_vna + system['us'] * unit
                else:
                    y = blocks['um'] @ m_vna + blocks['ui'][:, c]
                    x = blocks['ux'] @ m_vna + blocks['us'][:, c]
            y_dut[order, j] = y
            x_dut[order, j] = x
        s, det = _linalg.mrdivide(y_dut, x_dut)
        if s is None:
            raise MathError("singular matrix")
        return s

    def __repr__(self):
        return (f"Calibration({self.name!r}, {self.ctype.name}, "
                f"{self.rows}x{self.columns}, {self.frequencies} "
                f"frequencies)")
