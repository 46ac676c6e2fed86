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
Closed-form solution of through-reflect-line (TRL) calibration.

With a perfect through, a reflect with unknown but equal reflection on
both ports and a matched line with unknown but equal transmission in
both directions, the line transmission is a root of a quadratic in the
measurements and the reflection then follows directly.  Of the two
roots, we take the one closer to the initial guess.
"""

import cmath
import logging

from vnacal.cal._layout import CalType
from vnacal.cal._parameter import ONE, ZERO
from vnacal.cal._solve import solve_linear
from vnacal.errors import MathError

logger = logging.getLogger(__name__)

TRL_TYPES = (CalType.T8, CalType.TE10, CalType.U8, CalType.UE10)


def _is(parameter, handle) -> bool:
    return parameter is not None and parameter.handle == handle


def _is_plain_unknown(parameter) -> bool:
    return (parameter is not None and parameter.is_unknown
            and not parameter.is_correlated)


def classify(measurement):
    """
    Return 'T', 'R' or 'L' if the 2x2 S matrix of measurement is
    a through, a symmetric unknown reflect or a matched unknown line,
    else None.
    """
    s = measurement.s_matrix
    s11, s12, s21, s22 = s[0, 0], s[0, 1], s[1, 0], s[1, 1]
    if _is(s11, ZERO) and _is(s22, ZERO):
        if _is(s12, ONE) and _is(s21, ONE):
            return 'T'
        if _is_plain_unknown(s12) and s21 is s12:
            return 'L'
        return None
    if _is(s12, ZERO) and _is(s21, ZERO):
        if _is_plain_unknown(s11) and s22 is s11:
            return 'R'
    return None


def find_trl(state):
    """
    Return the (through, reflect, line) measurement indices if the
    calibration is TRL, else None.
    """
    layout = state.layout
    if layout.ctype not in TRL_TYPES:
        return None
    if layout.m_rows != 2 or layout.m_columns != 2:
        return None
    if len(state.measurements) != 3:
        return None
    if state.p_length != 2 or state.correlated != 0:
        return None
    if state.m_error is not None:
        return None
    found = {}
    for mindex, measurement in enumerate(state.measurements):
        kind = classify(measurement)
        if kind is None or kind in found:
            return None
        found[kind] = mindex
    return found['T'], found['R'], found['L']


def is_trl(state) -> bool:
    return find_trl(state) is not None


def solve_line(mt, ml, guess):
    """
    Return the line transmission given the through and line measurement
    matrices (2x2, leakage removed), choosing the root nearest guess.
    """
    a = ml[0][1] * mt[1][0]
    b = ((ml[0][0] - mt[0][0]) * (ml[1][1] - mt[1][1])
         - ml[0][1] * ml[1][0] - mt[0][1] * mt[1][0])
    c = mt[0][1] * ml[1][0]
    if a == 0.0:
        raise MathError("solve: solution of unknown line parameter is "
                        "singular")
    u = -b / (2.0 * a)
    v = cmath.sqrt(b * b - 4.0 * a * c) / (2.0 * a)
    if abs(u + v - guess) <= abs(u - v - guess):
        return u + v
    return u - v


def solve_reflect(mt, mr, ml, l, guess):
    """
    Return the reflect coefficient given the through, reflect and line
    measurements and the line transmission, choosing the sign nearest
    guess.
    """
    mt11, mt12, mt21, mt22 = mt[0][0], mt[0][1], mt[1][0], mt[1][1]
    ml11, ml12, ml21, ml22 = ml[0][0], ml[0][1], ml[1][0], ml[1][1]
    mr11, mr22 = mr[0][0], mr[1][1]
    n = ((-ml12 * mt21 + (mt12 * mt21 - (ml11 - mt11) * (mr22 - mt22)) * l)
         * ((mr11 - mt11) * (ml22 - mt22) * l + mt12 * (ml21 - mt21 * l)))
    d = ((ml21 * (mt22 - mr22) + mt21 * (mr22 - ml22) * l)
         * (-mt11 * ml12 + ml11 * mt12 * l + mr11 * (ml12 - mt12 * l)))
    if d == 0.0:
        raise MathError("solve: solution of unknown reflect parameter is "
                        "singular")
    r = cmath.sqrt(n / d)
    if abs(-r - guess) < abs(r - guess):
        r = -r
    return r


def solve_trl(state):
    """
    Solve the unknown line and reflect parameters in closed form, then
    the error terms by least squares.
    """
    t_index, r_index, l_index = find_trl(state)
    measurements = state.measurements
    reflect = measurements[r_index].s_matrix[0, 0]
    line = measurements[l_index].s_matrix[0, 1]
    r_p = state.parameter_index(reflect)
    l_p = state.parameter_index(line)

    def m(mindex):
        return [[state.m_value(mindex, (i, j)) for j in range(2)]
                for i in range(2)]

    mt, mr, ml = m(t_index), m(r_index), m(l_index)
    l = solve_line(mt, ml, state.p[l_p])
    r = solve_reflect(mt, mr, ml, l, state.p[r_p])
    logger.debug("TRL %e Hz: line %s (guess %s), reflect %s (guess %s)",
                 state.frequency, l, state.p[l_p], r, state.p[r_p])
    p = state.p.copy()
    p[l_p] = l
    p[r_p] = r
    state.set_p(p)

    a, b = state.build_system(0)
    x = solve_linear(a, b, state.frequency)
    return x.reshape((1, -1))
