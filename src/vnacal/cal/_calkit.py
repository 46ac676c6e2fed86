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
Parameters for standards described by calibration kit data or by
measured network parameter data.

Kit standards follow the usual offset model: a lossy transmission line
of the given delay, loss and impedance, terminated in a frequency
dependent inductance (short), capacitance (open) or impedance (load).
A through is the offset line alone.
"""

import numpy as np

from vnacal.cal._parameter import Parameter, VectorParameter
from vnacal.data import NPData, PType
from vnacal import conv
from vnacal.errors import UsageError


def _polynomial(coefficients, f):
    c0, c1, c2, c3 = coefficients
    return c0 + f * (c1 + f * (c2 + f * c3))


class CalkitStandard:
    """
    Offset transmission line common to all kit standards.

    Parameters:
        offset_delay: one-way delay of the offset in seconds
        offset_loss:  loss of the offset in ohms per second
        offset_z0:    characteristic impedance of the offset
        traditional:  use the traditional approximation of the offset
                      loss instead of the exact lossy line model
    """
    ports = 1

    def __init__(self, offset_delay=0.0, offset_loss=0.0, offset_z0=50.0,
                 traditional: bool = False):
        if offset_delay < 0.0 or offset_loss < 0.0:
            raise UsageError(f"{type(self).__name__}: offset delay and "
                             f"loss must be non-negative")
        if offset_z0 <= 0.0:
            raise UsageError(f"{type(self).__name__}: offset_z0 must be "
                             f"positive")
        self.offset_delay = float(offset_delay)
        self.offset_loss = float(offset_loss)
        self.offset_z0 = float(offset_z0)
        self.traditional = traditional

    def _line(self, f):
        """
        Return (gamma * length, characteristic impedance) of the offset
        at each frequency in f.
        """
        delay = self.offset_delay
        loss = self.offset_loss
        z0 = self.offset_z0
        nonzero = f != 0.0
        safe_f = np.where(nonzero, f, 1.0)
        if self.traditional:
            w = 2.0 * np.pi * f
            f_root = np.sqrt(f / 1.0e+9)
            alpha_l = loss * delay * f_root / (2.0 * z0)
            gl = alpha_l + 1j * (w * delay + alpha_l)
            zc = z0 + np.where(nonzero, (1.0 - 1j) * loss * f_root
                               / (4.0 * np.pi * safe_f), 0.0)
            return gl, zc
        temp = np.where(nonzero,
                        np.sqrt(1.0 + (1.0 - 1j) * loss
                                / (2.0 * np.pi * np.sqrt(1.0e+9 * safe_f)
                                   * z0)),
                        1.0 + 0.0j)
        return 2.0j * np.pi * f * delay * temp, z0 * temp

    def _terminated(self, f, z0, yl):
        """
        Return the reflection coefficient of the offset terminated in
        admittance yl, referenced to z0.
        """
        gl, zc = self._line(f)
        ht = np.tanh(gl)
        numerator = zc * (1.0 + yl * zc * ht)
        denominator = yl * zc + ht
        open_circuit = denominator == 0.0
        zi = numerator / np.where(open_circuit, 1.0, denominator)
        return np.where(open_circuit, 1.0 + 0.0j,
                        (zi - np.conj(z0)) / (zi + z0))

    def evaluate(self, f, z0):
        """
        Return the S matrix of the standard at each frequency in f as
        an array of shape f.shape + (ports, ports).
        """
        raise NotImplementedError


class CalkitShort(CalkitStandard):
    """
    Short terminated in inductance l0 + l1 f + l2 f^2 + l3 f^3 henries.
    """
    def __init__(self, l_coefficients=(0.0, 0.0, 0.0, 0.0), **kwargs):
        super().__init__(**kwargs)
        self.l_coefficients = tuple(float(c) for c in l_coefficients)
        if len(self.l_coefficients) != 4:
            raise UsageError("CalkitShort: l_coefficients must have four "
                             "values")

    def evaluate(self, f, z0):
        f = np.asarray(f, dtype=float)
        zl = 2.0j * np.pi * f * _polynomial(self.l_coefficients, f)
        gl, zc = self._line(f)
        ht = np.tanh(gl)
        zi = zc * (zl + zc * ht) / (zc + zl * ht)
        gamma = (zi - np.conj(z0)) / (zi + z0)
        return gamma[..., np.newaxis, np.newaxis]


class CalkitOpen(CalkitStandard):
    """
    Open terminated in capacitance c0 + c1 f + c2 f^2 + c3 f^3 farads.
    """
    def __init__(self, c_coefficients=(0.0, 0.0, 0.0, 0.0), **kwargs):
        super().__init__(**kwargs)
        self.c_coefficients = tuple(float(c) for c in c_coefficients)
        if len(self.c_coefficients) != 4:
            raise UsageError("CalkitOpen: c_coefficients must have four "
                             "values")

    def evaluate(self, f, z0):
        f = np.asarray(f, dtype=float)
        yl = 2.0j * np.pi * f * _polynomial(self.c_coefficients, f)
        return self._terminated(f, z0, yl)[..., np.newaxis, np.newaxis]


class CalkitLoad(CalkitStandard):
    """
    Load of impedance zl at the end of the offset.
    """
    def __init__(self, zl=50.0, **kwargs):
        super().__init__(**kwargs)
        self.zl = complex(zl)
        if self.zl == 0.0:
            raise UsageError("CalkitLoad: use CalkitShort for a zero "
                             "impedance load")

    def evaluate(self, f, z0):
        f = np.asarray(f, dtype=float)
        yl = np.full(f.shape, 1.0 / self.zl, dtype=complex)
        return self._terminated(f, z0, yl)[..., np.newaxis, np.newaxis]


class CalkitThrough(CalkitStandard):
    """
    Two-port through made of the offset line.
    """
    ports = 2

    def evaluate(self, f, z0):
        f = np.asarray(f, dtype=float)
        z1, z2 = z0
        gl, zc = self._line(f)
        p = np.exp(-gl)
        p2 = p * p
        pp = 1.0 + p2
        mp = 1.0 - p2
        z1r = z1.real
        z2r = z2.real
        rt = np.sqrt(abs(z1r / z2r))
        d = pp * (z1 + z2) * zc + mp * (z1 * z2 + zc * zc)
        c = 4.0 * p * zc / d
        result = np.empty(f.shape + (2, 2), dtype=complex)
        result[..., 0, 0] = ((pp * z2 + mp * zc) * zc
                             - (mp * z2 + pp * zc) * np.conj(z1)) / d
        result[..., 0, 1] = c * z1r / rt
        result[..., 1, 0] = c * z2r * rt
        result[..., 1, 1] = ((pp * z1 + mp * zc) * zc
                             - (mp * z1 + pp * zc) * np.conj(z2)) / d
        return result


class CalkitParameter(Parameter):
    """
    One cell of the S matrix of a kit standard.
    """
    def __init__(self, calset, standard, row: int, column: int, z0_vector):
        self._standard = standard
        self._row = row
        self._column = column
        self._z0_vector = z0_vector
        super().__init__(calset)

    @property
    def standard(self):
        return self._standard

    def get_value(self, frequency):
        self._check_live("CalkitParameter.get_value")
        f = np.asarray(frequency, dtype=float)
        if (f < 0.0).any():
            raise UsageError(f"CalkitParameter.get_value: invalid "
                             f"frequency {frequency}")
        z0 = self._z0_vector if self._standard.ports > 1 \
            else self._z0_vector[0]
        value = self._standard.evaluate(f, z0)[..., self._row, self._column]
        if np.ndim(value) == 0:
            return complex(value)
        return value

    def __repr__(self):
        return (f"CalkitParameter({type(self._standard).__name__}, "
                f"s{self._row + 1}{self._column + 1})")


def make_calkit_parameter_matrix(calset, standard, z0=50.0):
    """
    Return the S matrix of a kit standard as a ports x ports list of
    parameters, suitable for the add_* methods of Solver.  z0 is the
    reference impedance, a scalar or one value per port.
    """
    if not isinstance(standard, CalkitStandard):
        raise UsageError("make_calkit_parameter_matrix: standard must be a "
                         "CalkitStandard")
    ports = standard.ports
    z0_vector = np.atleast_1d(np.asarray(z0, dtype=complex))
    if len(z0_vector) == 1:
        z0_vector = np.full((ports,), z0_vector[0])
    if z0_vector.shape != (ports,):
        raise UsageError(f"make_calkit_parameter_matrix: z0 must be a "
                         f"scalar or a vector of length {ports}")
    return [[CalkitParameter(calset, standard, row, column, z0_vector)
             for column in range(ports)] for row in range(ports)]


def make_calkit_parameter(calset, standard, z0=50.0):
    """
    Return the reflection coefficient of a one-port kit standard as a
    parameter.
    """
    if getattr(standard, 'ports', None) != 1:
        raise UsageError("make_calkit_parameter: standard must have one "
                         "port")
    return make_calkit_parameter_matrix(calset, standard, z0)[0][0]


def make_data_parameter_matrix(calset, data, z0=None):
    """
    Return the S matrix of a standard described by measured network
    parameter data (an NPData) as a ports x ports list of
    VectorParameters.  Data of other parameter types is converted to S.
    If z0 is given, the S parameters are renormalized from the reference
    impedances of the data to z0.
    """
    if not isinstance(data, NPData):
        raise UsageError("make_data_parameter_matrix: data must be an "
                         "NPData")
    if data.rows != data.columns or data.rows == 0:
        raise UsageError("make_data_parameter_matrix: data must be a "
                         "square matrix")
    if data.frequencies == 0:
        raise UsageError("make_data_parameter_matrix: data has no "
                         "frequencies")
    if data.ptype != PType.S:
        data = data.convert(PType.S)
    s = data.data_array
    if z0 is not None:
        z0_vector = np.atleast_1d(np.asarray(z0, dtype=complex))
        if len(z0_vector) == 1:
            z0_vector = np.full((data.rows,), z0_vector[0])
        if np.abs(z0_vector - data.z0_vector).max() > 1.0e-5:
            s = conv.ztos(conv.stoz(s, data.z0_vector), z0_vector)
    f_vector = data.frequency_vector
    return [[VectorParameter(calset, f_vector, s[:, row, column])
             for column in range(data.columns)]
            for row in range(data.rows)]
