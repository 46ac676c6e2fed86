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
Solve for error terms and unknown standard parameters together.

The equations are linear in the error terms x for a fixed vector of
unknown parameters p.  Variable projection eliminates x: with the full
QR decomposition A(p) = [Q1 Q2] [R1; 0], x = R1^-1 Q1^H b and the
remaining residual Q2^H b depends on p alone.  We minimize that
residual, plus one weighted row per correlated parameter, by
Levenberg-Marquardt on p.
"""

import logging
import math

import numpy as np
import scipy.linalg as sl

from vnacal import _linalg
from vnacal.cal._solve import rms
from vnacal.errors import MathError

logger = logging.getLogger(__name__)

PHI_INV = 0.61803398874989484820
PHI_INV2 = 0.38196601125010515180


def _assemble(state):
    """
    Build the block-diagonal coefficient matrix over all systems, the
    right-hand side and the list of (row, p index, xindex, coefficient)
    entries giving the derivative of each row with respect to p.
    """
    layout = state.layout
    unknowns = layout.unknowns
    use_v = state.use_v()
    rows = state.equation_count
    a = np.zeros((rows, layout.systems * unknowns), dtype=complex)
    b = np.zeros((rows,), dtype=complex)
    derivatives = []
    row = 0
    for sindex in range(layout.systems):
        offset = sindex * unknowns
        for mindex, equation in state.system_equations[sindex]:
            s_matrix = state.measurements[mindex].s_matrix
            w = state.weight(mindex, equation) if use_v else 1.0
            terms = equation.terms if use_v else equation.terms_no_v
            for term in terms:
                value = w * state.term_value(mindex, sindex, term, use_v)
                if term.is_rhs:
                    b[row] += value
                    continue
                a[row, offset + term.xindex] += value
                if term.s_cell is None:
                    continue
                parameter = s_matrix[term.s_cell]
                if parameter is None or not parameter.is_unknown:
                    continue
                coefficient = w * state.term_value(mindex, sindex, term,
                                                   use_v, include_s=False)
                derivatives.append((row, state.parameter_index(parameter),
                                    offset + term.xindex, coefficient))
            row += 1
    return a, b, derivatives


def _correlated_rows(state):
    """
    Return (j, k) rows for the correlated parameters at the current p.
    """
    f = state.frequency
    j_rows = []
    k_rows = []
    for i, parameter in enumerate(state.unknown_parameters):
        if not parameter.is_correlated:
            continue
        w = 1.0 / parameter.get_sigma(f)
        j_row = np.zeros((state.p_length,), dtype=complex)
        j_row[i] = w
        k = w * state.p[i]
        other = parameter.other
        if other.is_unknown:
            j = state.parameter_index(other)
            j_row[j] = -w
            k -= w * state.p[j]
        else:
            k -= w * other.get_value(f)
        j_rows.append(j_row)
        k_rows.append(k)
    return j_rows, k_rows


def _solve_step(j, k, mu, frequency):
    """
    Solve (J^H J, with its diagonal scaled by mu) d = J^H k.
    """
    jh = j.conj().T
    n = jh @ j
    n[np.diag_indices_from(n)] *= mu
    d, det = _linalg.mldivide(n, jh @ k)
    if d is None:
        raise MathError(f"solve: singular Jacobian at {frequency:e} Hz")
    return d


def _limit_step(d, p):
    sum_p2 = max(float(np.sum(np.abs(p) ** 2)), 1.0)
    sum_d2 = float(np.sum(np.abs(d) ** 2))
    if sum_d2 > sum_p2 * PHI_INV2:
        d = d * (math.sqrt(sum_p2 / sum_d2) * PHI_INV)
    return d


def solve_varpro(state):
    """
    Solve for the error terms and unknown parameters at the current
    frequency.  Returns x with one row per system; the solved
    parameters are left in state.p.
    """
    layout = state.layout
    solver = state.solver
    unknowns = layout.unknowns
    x_length = layout.systems * unknowns
    p_length = state.p_length
    equations = state.equation_count
    if equations + state.correlated < x_length + p_length:
        raise MathError(f"solve: not enough standards given to solve the "
                        f"system: {equations + state.correlated} "
                        f"equations for {x_length + p_length} unknowns")

    if state.m_error is not None:
        # Start weighting from a solution at the initial guess.
        state.update_v(solve_simple_start(state))

    best_sum = None
    best_x = state.init_x().flatten()
    best_p = state.p.copy()
    best_v = state.v_matrices
    best_j = best_k = None
    mu = 1.0
    iteration = 0
    while True:
        a, b, derivatives = _assemble(state)
        q, r = _linalg.qr(a)
        if _linalg.rank_of_r(r, x_length) < x_length:
            raise MathError(f"solve: singular linear system at "
                            f"{state.frequency:e} Hz")
        q1 = q[:, :x_length]
        q2 = q[:, x_length:]
        x = sl.solve_triangular(r[:x_length, :x_length], q1.conj().T @ b,
                                check_finite=False)
        if p_length == 0:
            return x.reshape((layout.systems, unknowns))

        ap = np.zeros((equations, p_length), dtype=complex)
        for row, pindex, xindex, coefficient in derivatives:
            ap[row, pindex] += coefficient * x[xindex]
        j = -(q2.conj().T @ ap)
        k = q2.conj().T @ b
        j_rows, k_rows = _correlated_rows(state)
        if j_rows:
            j = np.vstack([j, np.array(j_rows)])
            k = np.concatenate([k, np.array(k_rows)])
        if state.m_error is not None:
            state.update_v(x.reshape((layout.systems, unknowns)))

        sum_sq = float(np.sum(np.abs(k) ** 2))
        improved = best_sum is None or sum_sq < best_sum
        if improved:
            mu = max(1.0, mu / 2.0)

        # Convergence is tested at the current point on every
        # iteration; mu * d approximates the undamped step.
        d = _solve_step(j, k, mu, state.frequency)
        if mu * rms(d) <= solver.p_tolerance and \
                rms(x - best_x) <= solver.et_tolerance:
            best_sum = sum_sq
            best_x = x
            best_p = state.p.copy()
            best_v = state.v_matrices
            break

        if improved:
            best_sum = sum_sq
            best_x = x
            best_p = state.p.copy()
            best_v = state.v_matrices
            best_j, best_k = j, k
        else:
            mu *= 2.0
            logger.debug("%e Hz iteration %d: residual rose to %e; "
                         "multiplier now %g", state.frequency, iteration,
                         sum_sq, mu)
            state.v_matrices = best_v
            d = _solve_step(best_j, best_k, mu, state.frequency)
        iteration += 1
        if iteration >= solver.iteration_limit:
            raise MathError(f"solve: system failed to converge at "
                            f"{state.frequency:e} Hz")
        state.set_p(best_p - _limit_step(d, best_p))

    logger.debug("%e Hz: converged after %d iteration(s), residual %e",
                 state.frequency, iteration, best_sum)
    state.set_p(best_p)
    state.v_matrices = best_v
    return best_x.reshape((layout.systems, unknowns))


def solve_simple_start(state):
    """
    Return error terms solved with the parameters at their initial
    values and V taken as the identity.
    """
    x = np.empty((state.layout.systems, state.layout.unknowns),
                 dtype=complex)
    for sindex in range(state.layout.systems):
        a, b = state.build_system(sindex)
        x_s, rank = _linalg.qrsolve(a, b) if a.shape[0] > a.shape[1] \
            else _linalg.mldivide(a, b)
        if x_s is None:
            return state.init_x()
        x[sindex] = x_s
    return x
