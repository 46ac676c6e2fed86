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
Consistency of a solution with the measurement error model.

Each equation residual, divided by its expected standard deviation, is
a complex Gaussian with unit variance if the error model holds, giving
two degrees of freedom of chi-squared per equation, less two per solved
error term and per uncorrelated unknown parameter.  The spread of the
repeated leakage measurements adds its own contribution.
"""

from scipy.special import gammaincc


def calc_pvalue(state, x):
    """
    Return (p-value, degrees of freedom) for solution x at the current
    frequency.
    """
    layout = state.layout
    noise, tracking = state.m_error
    sigma_nf2 = noise[state.findex] ** 2
    sigma_tr2 = tracking[state.findex] ** 2

    state.update_v(x)
    chisq = 0.0
    df = 0
    for sindex in range(layout.systems):
        for mindex, equation in state.system_equations[sindex]:
            residual = 0.0j
            for term in equation.terms:
                value = state.term_value(mindex, sindex, term, True)
                if term.is_rhs:
                    residual -= value
                else:
                    residual += value * x[sindex, term.xindex]
            m = state.m_value(mindex, (equation.row, equation.column))
            divisor = abs(m) ** 2 * sigma_tr2 + sigma_nf2
            chisq += 2.0 * abs(residual) ** 2 / divisor
            df += 2
        df -= 2 * layout.unknowns
    # Each unknown parameter solved from the measurements takes two
    # more degrees of freedom.  A correlated parameter also adds a
    # constraint row, not counted above, which gives them back.
    df -= 2 * (state.p_length - state.correlated)

    for total, total_squares, count in state.leakage_stats.values():
        if count <= 1:
            continue
        mean2 = abs(total) ** 2 / count
        value = (total_squares - mean2) / (sigma_nf2
                                           + mean2 / count * sigma_tr2)
        chisq += 2.0 * value
        df += 2 * (count - 1)

    if df < 1:
        return 0.0, df
    return float(gammaincc(df / 2.0, chisq / 2.0)), df
