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
Network parameter conversions.

Each function accepts a single matrix or a stack of matrices with shape
(..., n, n).  Impedance-based conversions use power waves: with
K = diag(sqrt(|Re z0|) / Re z0), port voltage and current are
v = K (z0* a + z0 b) and i = K (a - b).

T and U parameters are defined only for two ports:
    t [a2; b2] = [b1; a1]
    u [b1; a1] = [a2; b2]
"""

import numpy as np

from vnacal.errors import UsageError


def _z0_vector(z0, ports: int, name: str):
    z0 = np.atleast_1d(np.asarray(z0, dtype=complex))
    if z0.ndim != 1:
        raise UsageError(f"{name}: z0 must be a scalar or vector")
    if len(z0) == 1:
        z0 = np.full((ports,), z0[0], dtype=complex)
    elif len(z0) != ports:
        raise UsageError(f"{name}: z0 vector must have length {ports}")
    return z0


def _square(x, name: str):
    x = np.asarray(x, dtype=complex)
    if x.ndim < 2 or x.shape[-1] != x.shape[-2]:
        raise UsageError(f"{name}: matrix must be square")
    return x


def _two_port(x, name: str):
    x = _square(x, name)
    if x.shape[-1] != 2:
        raise UsageError(f"{name}: matrix must be 2x2")
    return x


def _k_factors(z0):
    return np.sqrt(np.abs(z0.real)) / z0.real


def stoz(s, z0=50.0):
    """
    Convert S parameters to Z parameters.
    """
    s = _square(s, "stoz")
    n = s.shape[-1]
    z0 = _z0_vector(z0, n, "stoz")
    k = _k_factors(z0)
    identity = np.identity(n)
    # z = K (Z0* + Z0 S) (I - S)^-1 K^-1
    left = np.diag(z0.conj()) + z0[:, np.newaxis] * s
    z = np.linalg.solve(np.swapaxes(identity - s, -1, -2),
                        np.swapaxes(left, -1, -2))
    z = np.swapaxes(z, -1, -2)
    return k[:, np.newaxis] * z / k[np.newaxis, :]


def ztos(z, z0=50.0):
    """
    Convert Z parameters to S parameters.
    """
    z = _square(z, "ztos")
    n = z.shape[-1]
    z0 = _z0_vector(z0, n, "ztos")
    k = _k_factors(z0)
    # S = (z K + K Z0)^-1 (z K - K Z0*)
    zk = z * k[np.newaxis, :]
    return np.linalg.solve(zk + np.diag(k * z0),
                           zk - np.diag(k * z0.conj()))


def stoy(s, z0=50.0):
    """
    Convert S parameters to Y parameters.
    """
    s = _square(s, "stoy")
    n = s.shape[-1]
    z0 = _z0_vector(z0, n, "stoy")
    k = _k_factors(z0)
    identity = np.identity(n)
    # y = K (I - S) (Z0* + Z0 S)^-1 K^-1
    right = np.diag(z0.conj()) + z0[:, np.newaxis] * s
    y = np.linalg.solve(np.swapaxes(right, -1, -2),
                        np.swapaxes(identity - s, -1, -2))
    y = np.swapaxes(y, -1, -2)
    return k[:, np.newaxis] * y / k[np.newaxis, :]


def ytos(y, z0=50.0):
    """
    Convert Y parameters to S parameters.
    """
    y = _square(y, "ytos")
    n = y.shape[-1]
    z0 = _z0_vector(z0, n, "ytos")
    k = _k_factors(z0)
    # S = (K + y K Z0)^-1 (K - y K Z0*)
    return np.linalg.solve(np.diag(k) + y * (k * z0)[np.newaxis, :],
                           np.diag(k) - y * (k * z0.conj())[np.newaxis, :])


def stozi(s, z0=50.0):
    """
    Return the impedance looking into each port when every other port
    is terminated in its reference impedance.
    """
    s = _square(s, "stozi")
    n = s.shape[-1]
    z0 = _z0_vector(z0, n, "stozi")
    d = np.diagonal(s, axis1=-2, axis2=-1)
    return (d * z0 + z0.conj()) / (1.0 - d)


def stot(s):
    """
    Convert 2x2 S parameters to T parameters.
    """
    s = _two_port(s, "stot")
    s11, s12 = s[..., 0, 0], s[..., 0, 1]
    s21, s22 = s[..., 1, 0], s[..., 1, 1]
    t = np.empty(s.shape, dtype=complex)
    t[..., 0, 0] = (s12 * s21 - s11 * s22) / s21
    t[..., 0, 1] = s11 / s21
    t[..., 1, 0] = -s22 / s21
    t[..., 1, 1] = 1.0 / s21
    return t


def ttos(t):
    """
    Convert 2x2 T parameters to S parameters.
    """
    t = _two_port(t, "ttos")
    t11, t12 = t[..., 0, 0], t[..., 0, 1]
    t21, t22 = t[..., 1, 0], t[..., 1, 1]
    s = np.empty(t.shape, dtype=complex)
    s[..., 0, 0] = t12 / t22
    s[..., 0, 1] = (t11 * t22 - t12 * t21) / t22
    s[..., 1, 0] = 1.0 / t22
    s[..., 1, 1] = -t21 / t22
    return s


def stou(s):
    """
    Convert 2x2 S parameters to U parameters.
    """
    s = _two_port(s, "stou")
    s11, s12 = s[..., 0, 0], s[..., 0, 1]
    s21, s22 = s[..., 1, 0], s[..., 1, 1]
    u = np.empty(s.shape, dtype=complex)
    u[..., 0, 0] = 1.0 / s12
    u[..., 0, 1] = -s11 / s12
    u[..., 1, 0] = s22 / s12
    u[..., 1, 1] = (s12 * s21 - s11 * s22) / s12
    return u


def utos(u):
    """
    Convert 2x2 U parameters to S parameters.
    """
    u = _two_port(u, "utos")
    u11, u12 = u[..., 0, 0], u[..., 0, 1]
    u21, u22 = u[..., 1, 0], u[..., 1, 1]
    s = np.empty(u.shape, dtype=complex)
    s[..., 0, 0] = -u12 / u11
    s[..., 0, 1] = 1.0 / u11
    s[..., 1, 0] = (u11 * u22 - u12 * u21) / u11
    s[..., 1, 1] = u21 / u11
    return s


def ttou(t):
    """
    Convert 2x2 T parameters to U parameters.
    """
    return np.linalg.inv(_two_port(t, "ttou"))


def utot(u):
    """
    Convert 2x2 U parameters to T parameters.
    """
    return np.linalg.inv(_two_port(u, "utot"))
