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
In-memory network parameter data.
"""

from enum import IntEnum

import numpy as np

from vnacal import conv
from vnacal.errors import UsageError


class PType(IntEnum):
    """
    Network parameter type.
    """
    ANY = 0
    S = 1
    T = 2
    U = 3
    Z = 4
    Y = 5


class NPData:
    """
    Network parameter data: a frequency vector, a (frequencies, rows,
    columns) array of complex parameters and a per-port reference
    impedance vector.
    """
    def __init__(self, ptype=PType.ANY, rows: int = 0, columns: int = 0,
                 frequencies: int = 0, z0=50.0):
        self.init(ptype, rows, columns, frequencies, z0)

    def init(self, ptype, rows: int, columns: int, frequencies: int,
             z0=50.0):
        """
        Reset to zero data with the given type and dimensions.
        """
        if rows < 0 or columns < 0 or frequencies < 0:
            raise UsageError("NPData: invalid dimensions")
        self.ptype = PType(ptype)
        self._frequency_vector = np.zeros((frequencies,), dtype=float)
        self._data_array = np.zeros((frequencies, rows, columns),
                                    dtype=complex)
        self._z0_vector = np.full((max(rows, columns),), z0, dtype=complex)

    @property
    def rows(self) -> int:
        return self._data_array.shape[1]

    @property
    def columns(self) -> int:
        return self._data_array.shape[2]

    @property
    def frequencies(self) -> int:
        return self._data_array.shape[0]

    @property
    def frequency_vector(self):
        return self._frequency_vector

    @frequency_vector.setter
    def frequency_vector(self, value):
        value = np.asarray(value, dtype=float)
        if value.ndim != 1:
            raise UsageError("NPData: frequency vector must be "
                             "one dimensional")
        if len(value) != self.frequencies:
            self.resize(self.ptype, self.rows, self.columns, len(value))
        self._frequency_vector[...] = value

    @property
    def data_array(self):
        return self._data_array

    @data_array.setter
    def data_array(self, value):
        value = np.asarray(value, dtype=complex)
        if value.ndim != 3:
            raise UsageError("NPData: data array must have shape "
                             "(frequencies, rows, columns)")
        if value.shape != self._data_array.shape:
            self.resize(self.ptype, value.shape[1], value.shape[2],
                        value.shape[0])
        self._data_array[...] = value

    @property
    def z0_vector(self):
        return self._z0_vector

    @z0_vector.setter
    def z0_vector(self, value):
        value = np.atleast_1d(np.asarray(value, dtype=complex))
        ports = max(self.rows, self.columns)
        if len(value) == 1:
            value = np.full((ports,), value[0], dtype=complex)
        if value.shape != (ports,):
            raise UsageError(f"NPData: z0 vector must have length {ports}")
        self._z0_vector = value

    def resize(self, ptype, rows: int, columns: int, frequencies: int):
        """
        Change the dimensions, preserving the overlapping data.  New
        cells are zero and new ports get a reference impedance of 50.
        """
        if rows < 0 or columns < 0 or frequencies < 0:
            raise UsageError("NPData: invalid dimensions")
        f_vector = np.zeros((frequencies,), dtype=float)
        n = min(frequencies, self.frequencies)
        f_vector[:n] = self._frequency_vector[:n]
        data_array = np.zeros((frequencies, rows, columns), dtype=complex)
        r = min(rows, self.rows)
        c = min(columns, self.columns)
        data_array[:n, :r, :c] = self._data_array[:n, :r, :c]
        ports = max(rows, columns)
        z0_vector = np.full((ports,), 50.0, dtype=complex)
        p = min(ports, len(self._z0_vector))
        z0_vector[:p] = self._z0_vector[:p]
        self.ptype = PType(ptype)
        self._frequency_vector = f_vector
        self._data_array = data_array
        self._z0_vector = z0_vector

    def convert(self, ptype):
        """
        Return a new NPData holding this data converted to ptype.
        """
        ptype = PType(ptype)
        if self.ptype == PType.ANY or ptype == PType.ANY:
            raise UsageError("NPData.convert: parameter type must be "
                             "specified")
        if self.rows != self.columns:
            raise UsageError("NPData.convert: matrix must be square")
        result = NPData(ptype, self.rows, self.columns, self.frequencies)
        result.frequency_vector = self._frequency_vector
        result.z0_vector = self._z0_vector
        if ptype == self.ptype:
            result.data_array = self._data_array
            return result
        s = self._to_s()
        z0 = self._z0_vector
        if ptype == PType.S:
            result.data_array = s
        elif ptype == PType.Z:
            result.data_array = conv.stoz(s, z0)
        elif ptype == PType.Y:
            result.data_array = conv.stoy(s, z0)
        elif ptype == PType.T:
            result.data_array = conv.stot(s)
        elif ptype == PType.U:
            result.data_array = conv.stou(s)
        return result

    def _to_s(self):
        z0 = self._z0_vector
        if self.ptype == PType.S:
            return self._data_array
        if self.ptype == PType.Z:
            return conv.ztos(self._data_array, z0)
        if self.ptype == PType.Y:
            return conv.ytos(self._data_array, z0)
        if self.ptype == PType.T:
            return conv.ttos(self._data_array)
        if self.ptype == PType.U:
            return conv.utos(self._data_array)
        raise UsageError(f"NPData.convert: cannot convert from "
                         f"{self.ptype.name}")

    def __repr__(self):
        return (f"NPData({self.ptype.name}, rows={self.rows}, "
                f"columns={self.columns}, frequencies={self.frequencies})")
