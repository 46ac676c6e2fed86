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
Error term models.

Each model expands one calibration equation into a list of terms and
knows how to form the V matrix and the ideal error terms for its family.

T parameters satisfy, for each measurement,
    -Ts S V - Ti V + M Tx S V + M Tm V = 0,    V = (Tx S + Tm)^-1
and U parameters satisfy
    V Um M + V Ui - V S Ux M - V S Us = 0,     V = (Um - S Ux)^-1

Multiplying through by V makes the residual of each equation equal to
the error in the corresponding measurement cell.

In the per-system error term vector "e", the unity term is present.
The unknown vector "x" is e with the unity term removed.
"""

import numpy as np

from vnacal import _linalg
from vnacal.cal._layout import CalType
from vnacal.errors import MathError


class Term:
    """
    One product in a calibration equation: sign * [M cell] * [S cell] *
    [V cell] * x[xindex].  An xindex of -1 marks a right-hand side term,
    in which case negative gives its sign on the right-hand side.
    """
    __slots__ = ('xindex', 'negative', 'm_cell', 's_cell', 'v_cell')

    def __init__(self, xindex: int, negative: bool, m_cell=None,
                 s_cell=None, v_cell=None):
        self.xindex = xindex
        self.negative = negative
        self.m_cell = m_cell
        self.s_cell = s_cell
        self.v_cell = v_cell

    @property
    def is_rhs(self) -> bool:
        return self.xindex < 0

    @property
    def uses_v(self) -> bool:
        """True if the V cell is off the diagonal."""
        return self.v_cell is not None and self.v_cell[0] != self.v_cell[1]

    def __repr__(self):
        sign = '-' if self.negative else '+'
        return (f"Term({sign}x[{self.xindex}] m={self.m_cell} "
                f"s={self.s_cell} v={self.v_cell})")


class Model:
    """
    Base class for the error term models.
    """
    def __init__(self, layout):
        self.layout = layout

    def _add(self, terms, sindex, t, negative, m_cell=None, s_cell=None,
             v_cell=None):
        unity = self.layout.unity_index(sindex)
        if t == unity:
            terms.append(Term(-1, not negative, m_cell, s_cell, v_cell))
        else:
            xindex = t - 1 if t > unity else t
            terms.append(Term(xindex, negative, m_cell, s_cell, v_cell))

    def build_terms(self, eq_row, eq_column, s_zero, connected):
        """
        Return the terms of the equation for measurement cell (eq_row,
        eq_column).  s_zero[i, j] is true where the standard's S
        parameter is known to be zero; connected[i, j] is true where
        DUT ports i and j are connected.
        """
        raise NotImplementedError

    def v_inverse(self, e, s):
        raise NotImplementedError

    def ideal(self, sindex=0):
        raise NotImplementedError

    def system_of(self, eq_row, eq_column) -> int:
        return 0

    def update_v(self, x, s, sindex=0):
        """
        Return the V matrix for unknown vector x and S values s.
        """
        e = self.expand(x, sindex)
        v, det = _linalg.minverse(self.v_inverse(e, s))
        if v is None:
            raise MathError("singular matrix")
        return v

    def expand(self, x, sindex=0):
        """
        Insert the unity term into unknown vector x.
        """
        return np.insert(np.asarray(x, dtype=complex),
                         self.layout.unity_index(sindex), 1.0)

    def init_x(self, sindex=0):
        """
        Return the unknown vector of a perfect instrument.
        """
        e = self.ideal(sindex)
        return np.delete(e, self.layout.unity_index(sindex))


class TDiagonalModel(Model):
    """
    T8 and TE10: diagonal Ts, Ti, Tx and Tm.
    """
    def build_terms(self, eq_row, eq_column, s_zero, connected):
        layout = self.layout
        ports = layout.ports
        terms = []
        for v_row in range(ports):
            if connected[v_row, eq_column] and not s_zero[eq_row, v_row]:
                self._add(terms, 0, layout.ts_offset + eq_row, True,
                          s_cell=(eq_row, v_row), v_cell=(v_row, eq_column))
        if connected[eq_row, eq_column]:
            self._add(terms, 0, layout.ti_offset + eq_row, True,
                      v_cell=(eq_row, eq_column))
        for d in range(layout.m_columns):
            for v_row in range(ports):
                if connected[v_row, eq_column] and not s_zero[d, v_row]:
                    self._add(terms, 0, layout.tx_offset + d, False,
                              m_cell=(eq_row, d), s_cell=(d, v_row),
                              v_cell=(v_row, eq_column))
        for d in range(layout.m_columns):
            if connected[d, eq_column]:
                self._add(terms, 0, layout.tm_offset + d, False,
                          m_cell=(eq_row, d), v_cell=(d, eq_column))
        return terms

    def v_inverse(self, e, s):
        layout = self.layout
        n = layout.m_columns
        tx = e[layout.tx_offset:layout.tx_offset + n]
        tm = e[layout.tm_offset:layout.tm_offset + n]
        return np.diag(tm) + tx[:, np.newaxis] * s

    def ideal(self, sindex=0):
        layout = self.layout
        e = np.zeros((layout.terms,), dtype=complex)
        e[layout.ts_offset:layout.ti_offset] = 1.0
        e[layout.tm_offset:] = 1.0
        return e

    def blocks(self, e):
        layout = self.layout
        m_rows, m_columns = layout.m_rows, layout.m_columns
        ports = layout.ports

        def diagonal(offset, rows, columns):
            n = min(rows, columns)
            result = np.zeros((rows, columns), dtype=complex)
            result[range(n), range(n)] = e[offset:offset + n]
            return result

        return {
            'ts': diagonal(layout.ts_offset, m_rows, ports),
            'ti': diagonal(layout.ti_offset, m_rows, ports),
            'tx': diagonal(layout.tx_offset, m_columns, ports),
            'tm': diagonal(layout.tm_offset, m_columns, ports),
        }


class T16Model(Model):
    """
    T16: full Ts, Ti, Tx and Tm.
    """
    def build_terms(self, eq_row, eq_column, s_zero, connected):
        layout = self.layout
        m_columns = layout.m_columns
        ports = layout.ports
        terms = []
        for tc in range(ports):
            for v_row in range(ports):
                if not s_zero[tc, v_row]:
                    self._add(terms, 0,
                              layout.ts_offset + eq_row * ports + tc, True,
                              s_cell=(tc, v_row), v_cell=(v_row, eq_column))
        for tc in range(ports):
            self._add(terms, 0, layout.ti_offset + eq_row * ports + tc, True,
                      v_cell=(tc, eq_column))
        for tr in range(m_columns):
            for tc in range(ports):
                for v_row in range(ports):
                    if not s_zero[tc, v_row]:
                        self._add(terms, 0,
                                  layout.tx_offset + tr * ports + tc, False,
                                  m_cell=(eq_row, tr), s_cell=(tc, v_row),
                                  v_cell=(v_row, eq_column))
        for tr in range(m_columns):
            for tc in range(ports):
                self._add(terms, 0, layout.tm_offset + tr * ports + tc,
                          False, m_cell=(eq_row, tr),
                          v_cell=(tc, eq_column))
        return terms

    def _matrices(self, e):
        layout = self.layout
        m_rows, m_columns = layout.m_rows, layout.m_columns
        ports = layout.ports
        return {
            'ts': e[layout.ts_offset:layout.ti_offset].reshape(m_rows, ports),
            'ti': e[layout.ti_offset:layout.tx_offset].reshape(m_rows, ports),
            'tx': e[layout.tx_offset:layout.tm_offset].reshape(m_columns,
                                                               ports),
            'tm': e[layout.tm_offset:layout.terms].reshape(m_columns, ports),
        }

    def v_inverse(self, e, s):
        blocks = self._matrices(e)
        return blocks['tx'] @ s + blocks['tm']

    def ideal(self, sindex=0):
        layout = self.layout
        ports = layout.ports
        e = np.zeros((layout.terms,), dtype=complex)
        e[layout.ts_offset:layout.ti_offset] = \
            np.eye(layout.m_rows, ports).flatten()
        e[layout.tm_offset:layout.terms] = \
            np.eye(layout.m_columns, ports).flatten()
        return e

    def blocks(self, e):
        return self._matrices(e)


class UDiagonalModel(Model):
    """
    U8 and UE10: diagonal Um, Ui, Ux and Us.
    """
    def build_terms(self, eq_row, eq_column, s_zero, connected):
        layout = self.layout
        ports = layout.ports
        terms = []
        for d in range(layout.m_rows):
            if connected[eq_row, d]:
                self._add(terms, 0, layout.um_offset + d, False,
                          m_cell=(d, eq_column), v_cell=(eq_row, d))
        if connected[eq_row, eq_column]:
            self._add(terms, 0, layout.ui_offset + eq_column, False,
                      v_cell=(eq_row, eq_column))
        for d in range(layout.m_rows):
            for v_column in range(ports):
                if connected[eq_row, v_column] and not s_zero[v_column, d]:
                    self._add(terms, 0, layout.ux_offset + d, True,
                              m_cell=(d, eq_column), s_cell=(v_column, d),
                              v_cell=(eq_row, v_column))
        for v_column in range(ports):
            if connected[eq_row, v_column] and \
                    not s_zero[v_column, eq_column]:
                self._add(terms, 0, layout.us_offset + eq_column, True,
                          s_cell=(v_column, eq_column),
                          v_cell=(eq_row, v_column))
        return terms

    def v_inverse(self, e, s):
        layout = self.layout
        n = layout.m_rows
        um = e[layout.um_offset:layout.um_offset + n]
        ux = e[layout.ux_offset:layout.ux_offset + n]
        return np.diag(um) - s * ux[np.newaxis, :]

    def ideal(self, sindex=0):
        layout = self.layout
        e = np.zeros((layout.terms,), dtype=complex)
        e[layout.um_offset:layout.ui_offset] = 1.0
        e[layout.us_offset:] = 1.0
        return e

    def blocks(self, e):
        layout = self.layout
        m_rows, m_columns = layout.m_rows, layout.m_columns
        ports = layout.ports

        def diagonal(offset, rows, columns):
            n = min(rows, columns)
            result = np.zeros((rows, columns), dtype=complex)
            result[range(n), range(n)] = e[offset:offset + n]
            return result

        return {
            'um': diagonal(layout.um_offset, ports, m_rows),
            'ui': diagonal(layout.ui_offset, ports, m_columns),
            'ux': diagonal(layout.ux_offset, ports, m_rows),
            'us': diagonal(layout.us_offset, ports, m_columns),
        }


class U16Model(Model):
    """
    U16: full Um, Ui, Ux and Us.
    """
    def build_terms(self, eq_row, eq_column, s_zero, connected):
        layout = self.layout
        m_rows, m_columns = layout.m_rows, layout.m_columns
        ports = layout.ports
        terms = []
        for ur in range(ports):
            for uc in range(m_rows):
                self._add(terms, 0, layout.um_offset + ur * m_rows + uc,
                          False, m_cell=(uc, eq_column),
                          v_cell=(eq_row, ur))
        for ur in range(ports):
            self._add(terms, 0, layout.ui_offset + ur * m_columns + eq_column,
                      False, v_cell=(eq_row, ur))
        for ur in range(ports):
            for uc in range(m_rows):
                for v_column in range(ports):
                    if not s_zero[v_column, ur]:
                        self._add(terms, 0,
                                  layout.ux_offset + ur * m_rows + uc, True,
                                  m_cell=(uc, eq_column),
                                  s_cell=(v_column, ur),
                                  v_cell=(eq_row, v_column))
        for ur in range(ports):
            for v_column in range(ports):
                if not s_zero[v_column, ur]:
                    self._add(terms, 0,
                              layout.us_offset + ur * m_columns + eq_column,
                              True, s_cell=(v_column, ur),
                              v_cell=(eq_row, v_column))
        return terms

    def _matrices(self, e):
        layout = self.layout
        m_rows, m_columns = layout.m_rows, layout.m_columns
        ports = layout.ports
        return {
            'um': e[layout.um_offset:layout.ui_offset].reshape(ports, m_rows),
            'ui': e[layout.ui_offset:layout.ux_offset].reshape(ports,
                                                               m_columns),
            'ux': e[layout.ux_offset:layout.us_offset].reshape(ports, m_rows),
            'us': e[layout.us_offset:layout.terms].reshape(ports, m_columns),
        }

    def v_inverse(self, e, s):
        blocks = self._matrices(e)
        return blocks['um'] - s @ blocks['ux']

    def ideal(self, sindex=0):
        layout = self.layout
        ports = layout.ports
        e = np.zeros((layout.terms,), dtype=complex)
        e[layout.um_offset:layout.ui_offset] = \
            np.eye(ports, layout.m_rows).flatten()
        e[layout.us_offset:layout.terms] = \
            np.eye(ports, layout.m_columns).flatten()
        return e

    def blocks(self, e):
        return self._matrices(e)


class UE14Model(Model):
    """
    UE14 (and E12): an independent U system for each measurement column
    with diagonal Um and Ux, and scalar Ui and Us.
    """
    def system_of(self, eq_row, eq_column) -> int:
        return eq_column

    def build_terms(self, eq_row, eq_column, s_zero, connected):
        layout = self.layout
        ports = layout.ports
        sindex = eq_column
        terms = []
        for d in range(layout.m_rows):
            if connected[eq_row, d]:
                self._add(terms, sindex, layout.um_offset + d, False,
                          m_cell=(d, eq_column), v_cell=(eq_row, d))
        if connected[eq_row, eq_column]:
            self._add(terms, sindex, layout.ui_offset, False,
                      v_cell=(eq_row, eq_column))
        for d in range(layout.m_rows):
            for v_column in range(ports):
                if connected[eq_row, v_column] and not s_zero[v_column, d]:
                    self._add(terms, sindex, layout.ux_offset + d, True,
                              m_cell=(d, eq_column), s_cell=(v_column, d),
                              v_cell=(eq_row, v_column))
        for v_column in range(ports):
            if connected[eq_row, v_column] and \
                    not s_zero[v_column, eq_column]:
                self._add(terms, sindex, layout.us_offset, True,
                          s_cell=(v_column, eq_column),
                          v_cell=(eq_row, v_column))
        return terms

    def v_inverse(self, e, s):
        layout = self.layout
        n = layout.m_rows
        um = e[layout.um_offset:layout.um_offset + n]
        ux = e[layout.ux_offset:layout.ux_offset + n]
        return np.diag(um) - s * ux[np.newaxis, :]

    def ideal(self, sindex=0):
        layout = self.layout
        e = np.zeros((layout.terms,), dtype=complex)
        e[layout.um_offset:layout.ui_offset] = 1.0
        e[layout.us_offset] = 1.0
        return e

    def blocks(self, e):
        layout = self.layout
        n = layout.m_rows
        return {
            'um': e[layout.um_offset:layout.um_offset + n],
            'ui': e[layout.ui_offset],
            'ux': e[layout.ux_offset:layout.ux_offset + n],
            'us': e[layout.us_offset],
        }


def make_model(layout) -> Model:
    """
    Return the error term model for layout.
    """
    ctype = layout.ctype
    if ctype in (CalType.T8, CalType.TE10):
        return TDiagonalModel(layout)
    if ctype == CalType.T16:
        return T16Model(layout)
    if ctype in (CalType.U8, CalType.UE10):
        return UDiagonalModel(layout)
    if ctype == CalType.U16:
        return U16Model(layout)
    return UE14Model(layout)
