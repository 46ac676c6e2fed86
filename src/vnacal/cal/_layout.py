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
Error term types and the arrangement of error terms in a calibration.
"""

from enum import IntEnum


class CalType(IntEnum):
    """
    Error term model.

    T8, U8:     8-term T or U parameters (no leakage)
    TE10, UE10: 8-term T or U parameters plus off-diagonal leakage
    T16, U16:   16-term T or U parameters (full leakage)
    UE14:       independent 7-term U systems per measurement column
                plus off-diagonal leakage
    E12:        classic 12-term SOLT, solved as UE14 and converted
    """
    T8 = 1
    U8 = 2
    TE10 = 3
    UE10 = 4
    T16 = 5
    U16 = 6
    UE14 = 7
    E12 = 8


T_TYPES = (CalType.T8, CalType.TE10, CalType.T16)
U_TYPES = (CalType.U8, CalType.UE10, CalType.U16)
DIAGONAL_TYPES = (CalType.T8, CalType.U8, CalType.TE10, CalType.UE10)
LEAKAGE_TYPES = (CalType.TE10, CalType.UE10, CalType.UE14, CalType.E12)


class Layout:
    """
    Sizes and offsets of the error term blocks for a given type and
    measurement matrix dimensions.  Immutable.

    Offsets index the per-system error term vector, in which the unity
    term is still present.  Leakage terms follow the per-system terms.
    """
    def __init__(self, ctype, m_rows: int, m_columns: int):
        ctype = CalType(ctype)
        self._ctype = ctype
        self._m_rows = m_rows
        self._m_columns = m_columns
        ports = max(m_rows, m_columns)
        diagonals = min(m_rows, m_columns)
        s_rows = s_columns = ports
        self._s_rows = s_rows
        self._s_columns = s_columns

        self._ts = self._ti = self._tx = self._tm = None
        self._um = self._ui = self._ux = self._us = None
        if ctype == CalType.T16:
            self._ts = 0
            self._ti = self._ts + m_rows * s_rows
            self._tx = self._ti + m_rows * s_columns
            self._tm = self._tx + m_columns * s_rows
            terms = self._tm + m_columns * s_columns
        elif ctype in (CalType.T8, CalType.TE10):
            self._ts = 0
            self._ti = self._ts + min(m_rows, s_rows)
            self._tx = self._ti + min(m_rows, s_columns)
            self._tm = self._tx + min(m_columns, s_rows)
            terms = self._tm + min(m_columns, s_columns)
        elif ctype == CalType.U16:
            self._um = 0
            self._ui = self._um + s_rows * m_rows
            self._ux = self._ui + s_rows * m_columns
            self._us = self._ux + s_columns * m_rows
            terms = self._us + s_columns * m_columns
        elif ctype in (CalType.U8, CalType.UE10):
            self._um = 0
            self._ui = self._um + min(s_rows, m_rows)
            self._ux = self._ui + min(s_rows, m_columns)
            self._us = self._ux + min(s_columns, m_rows)
            terms = self._us + min(s_columns, m_columns)
        else:
            # UE14 and E12: one system per measurement column
            self._um = 0
            self._ui = m_rows
            self._ux = self._ui + 1
            self._us = self._ux + m_rows
            terms = self._us + 1
        self._terms = terms

        if ctype in (CalType.UE14, CalType.E12):
            self._systems = m_columns
        else:
            self._systems = 1

        if ctype in LEAKAGE_TYPES:
            self._leakage_terms = m_rows * m_columns - diagonals
        else:
            self._leakage_terms = 0
        self._leakage_offset = self._systems * terms

    def __eq__(self, other):
        if not isinstance(other, Layout):
            return NotImplemented
        return (self._ctype == other._ctype
                and self._m_rows == other._m_rows
                and self._m_columns == other._m_columns)

    def __hash__(self):
        return hash((self._ctype, self._m_rows, self._m_columns))

    def __repr__(self):
        return (f"Layout({self._ctype.name}, {self._m_rows}, "
                f"{self._m_columns})")

    @property
    def ctype(self):
        return self._ctype

    @property
    def m_rows(self) -> int:
        return self._m_rows

    @property
    def m_columns(self) -> int:
        return self._m_columns

    @property
    def s_rows(self) -> int:
        return self._s_rows

    @property
    def s_columns(self) -> int:
        return self._s_columns

    @property
    def ports(self) -> int:
        return self._s_rows

    @property
    def is_t(self) -> bool:
        return self._ctype in T_TYPES

    @property
    def is_u(self) -> bool:
        """True for all U-style types, including UE14 and E12."""
        return self._ctype not in T_TYPES

    @property
    def is_diagonal(self) -> bool:
        return self._ctype in DIAGONAL_TYPES

    @property
    def is_16term(self) -> bool:
        return self._ctype in (CalType.T16, CalType.U16)

    @property
    def is_ue14(self) -> bool:
        """True for UE14 and for E12, which is solved as UE14."""
        return self._ctype in (CalType.UE14, CalType.E12)

    @property
    def has_leakage(self) -> bool:
        return self._ctype in LEAKAGE_TYPES

    @property
    def v_rows(self) -> int:
        return self._m_columns if self.is_t else self._m_rows

    # T offsets
    @property
    def ts_offset(self):
        return self._ts

    @property
    def ti_offset(self):
        return self._ti

    @property
    def tx_offset(self):
        return self._tx

    @property
    def tm_offset(self):
        return self._tm

    # U offsets
    @property
    def um_offset(self):
        return self._um

    @property
    def ui_offset(self):
        return self._ui

    @property
    def ux_offset(self):
        return self._ux

    @property
    def us_offset(self):
        return self._us

    @property
    def terms(self) -> int:
        """Error terms per system, including the unity term."""
        return self._terms

    @property
    def unknowns(self) -> int:
        """Unknown error terms per system."""
        return self._terms - 1

    @property
    def systems(self) -> int:
        return self._systems

    @property
    def leakage_terms(self) -> int:
        return self._leakage_terms

    @property
    def leakage_offset(self) -> int:
        return self._leakage_offset

    @property
    def error_terms(self) -> int:
        """Length of the solved error term vector."""
        if self._ctype == CalType.E12:
            return self._m_columns * 3 * self._m_rows
        return self._systems * self._terms + self._leakage_terms

    def unity_index(self, sindex: int = 0) -> int:
        """
        Return the index within system sindex of the term fixed at 1.
        """
        if self.is_ue14:
            return self._um + sindex
        if self.is_t:
            return self._tm
        return self._um

    def leakage_cells(self):
        """
        Return the off-diagonal measurement cells in leakage term order.
        """
        return [(row, column)
                for row in range(self._m_rows)
                for column in range(self._m_columns)
                if row != column]

    def leakage_index(self, row: int, column: int) -> int:
        """
        Return the position of off-diagonal cell (row, column) among the
        leakage terms.
        """
        index = row * self._m_columns + column
        # skip the diagonal cells preceding this one
        index -= min(row, self._m_columns)
        if column > row:
            index -= 1
        return index
