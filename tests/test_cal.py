#!/usr/bin/python3
"""
Test the vnacal.cal module: solve calibrations from simulated
measurements of standards and check that they reproduce the DUT.
"""
from vnacal.cal import (CalType, Calset, CalkitLoad, CalkitOpen, CalkitShort,
                        CalkitThrough, CorrelatedParameter, Solver,
                        UnknownParameter, VectorParameter,
                        make_calkit_parameter, make_calkit_parameter_matrix)
from vnacal.conv import ytos, ztos
from vnacal.data import PType
from vnacal.errors import UsageError
import math
import numpy as np
import unittest
import sys

sys.path.append('tests')
sys.path.append('.')
import random_error_terms as ret

rng = np.random.default_rng(seed=7)

fmin = 1.0e+9
fmax = 10.0e+9
points = 10
f_vector = np.linspace(fmin, fmax, num=points)


def delay_vector(delay, n=1):
    return np.exp(-2.0j * n * math.pi * delay * f_vector)


def lc_filter(high_pass=False):
    '''
    Return the S parameters of an LC filter at each calibration
    frequency.
    '''
    l = 2.5e-9
    c = 1.0e-12
    expected = np.empty((points, 2, 2), dtype=complex)
    for i, f in enumerate(f_vector):
        jω = 2.0j * math.pi * f
        if high_pass:
            z1 = 1.0 / (jω * c)
            z2 = jω * l
        else:
            z1 = jω * l
            z2 = 1.0 / (jω * c)
        z = [[z1 + z2, z2],
             [z2,      z2]]
        expected[i, ...] = ztos(z)
    return expected


def as_parameters(calset, s):
    '''
    Convert a (frequencies, n, n) array to an n x n matrix of
    VectorParameters.
    '''
    n = s.shape[1]
    return [[VectorParameter(calset, f_vector, s[:, i, j])
             for j in range(n)] for i in range(n)]


def delta_network():
    '''
    Return the S parameters of a delta configuration with a capacitor
    between ports 1 and 2, an inductor between ports 2 and 3, and a
    resistor between ports 3 and 1.
    '''
    l = 2.5e-9
    c = 1.0e-12
    g = 1.0 / 50.0
    expected = np.empty((points, 3, 3), dtype=complex)
    for i, f in enumerate(f_vector):
        jω = 2.0j * math.pi * f
        yl = 1.0 / (jω * l)
        yc = jω * c
        y = [
            [yc + g, -yc, -g],
            [-yc, yc + yl, -yl],
            [-g, -yl, yl + g]
        ]
        expected[i, ...] = ytos(y)
    return expected


class TestModule(unittest.TestCase):
    def check_dut(self, calset, eterms, expected):
        s = as_parameters(calset, expected)
        m = eterms.evaluate(calset, f_vector, s)
        calibration = calset.calibrations['cal']
        result = calibration.apply(f_vector, m)
        self.assertEqual(result.ptype, PType.S)
        self.assertTrue(np.allclose(result.frequency_vector, f_vector))
        self.assertTrue(np.allclose(result.data_array, expected,
                                    rtol=1.0e-5, atol=1.0e-5))

    def test_SOLT(self):
        eterms = ret.RandomErrorTerms(rng, CalType.E12, 2, 1, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.E12, rows=2, columns=1,
                        frequency_vector=f_vector)
        r_short   = delay_vector(rng.normal() / fmax, 2)
        r_open    = delay_vector(rng.normal() / fmax, 2)
        r_through = delay_vector(rng.normal() / fmax)

        # Add short standard.
        s11 = VectorParameter(calset, f_vector, r_short * -1.0)
        m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, 0.0]])
        solver.add_single_reflect(None, m, s11)

        # Add open standard.
        s11 = VectorParameter(calset, f_vector, r_open * 1.0)
        m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, 0.0]])
        solver.add_single_reflect(m, s11=s11)

        # Add match standard.
        m = eterms.evaluate(calset, f_vector, [[0.0, 0.0], [0.0, 0.0]])
        solver.add_single_reflect(m, s11=0.0)

        # Add through standard.
        s12 = VectorParameter(calset, f_vector, r_through)
        s = [[0.0, s12],
             [s12, 0.0]]
        m = eterms.evaluate(calset, f_vector, s)
        solver.add_line(m, s_2x2=s)

        solver.solve()
        self.assertEqual(solver.add_to_calset('cal'), 0)
        calibration = calset.calibrations['cal']
        self.assertEqual(calibration.ctype, CalType.E12)
        self.assertEqual(calibration.error_term_vector.shape,
                         (calibration.layout.error_terms, points))
        blocks = calibration.get_error_terms(0)
        self.assertEqual(sorted(blocks), ['el', 'em', 'er'])

        # Add DUT as LC LPF, measuring the reverse direction by
        # swapping the DUT ports.
        expected = lc_filter()
        s = as_parameters(calset, expected)
        m1 = eterms.evaluate(calset, f_vector, s)
        m2 = eterms.evaluate(calset, f_vector, np.flipud(np.fliplr(s)))
        m = np.concatenate((m1, np.flip(m2, axis=1)), axis=2)
        result = calibration.apply(f_vector, m)
        self.assertTrue(np.allclose(result.data_array, expected,
                                    rtol=1.0e-5, atol=1.0e-5))

    def test_TE10(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, rows=2, columns=2,
                        frequency_vector=f_vector)
        r_short   = delay_vector(rng.normal() / fmax, 2)
        r_open    = delay_vector(rng.normal() / fmax, 2)
        r_through = delay_vector(rng.normal() / fmax)

        # Add short-open standard.
        s11 = VectorParameter(calset, f_vector, r_short * -1.0)
        s22 = VectorParameter(calset, f_vector, r_open  *  1.0)
        m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
        solver.add_double_reflect(None, m, s11, s22)

        # Add match-short standard, given as a and b.
        s22 = VectorParameter(calset, f_vector, r_short * -1.0)
        a, b = eterms.evaluate(calset, f_vector, [[0.0, 0.0], [0.0, s22]],
                               ab=True)
        solver.add_double_reflect(a, b, 0.0, s22)

        # Add through standard (using line).
        s12 = VectorParameter(calset, f_vector, r_through)
        s = [[0.0, s12],
             [s12, 0.0]]
        m = eterms.evaluate(calset, f_vector, s)
        solver.add_line(m, s_2x2=s)

        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter(high_pass=True))

    def test_TSD(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)

        # Through, short on both ports, and a known delay line.
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)
        m = eterms.evaluate(calset, f_vector, [[-1.0, 0.0], [0.0, -1.0]])
        solver.add_double_reflect(m, s11=-1.0, s22=-1.0)
        delay = VectorParameter(calset, f_vector,
                                delay_vector(0.25 / fmax))
        s = [[0.0, delay],
             [delay, 0.0]]
        m = eterms.evaluate(calset, f_vector, s)
        solver.add_line(m, s_2x2=s)

        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter())

    def test_TRL(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)

        # Actual reflect is a slightly offset short; actual line is a
        # lossy version of the ideal line.
        actual_reflect = -1.0 * delay_vector(0.01 / fmax, 2)
        l_ideal = delay_vector(0.3 / fmax)
        actual_line = l_ideal * 0.98

        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)

        unknown_reflect = UnknownParameter(calset, -1.0)
        reflect = VectorParameter(calset, f_vector, actual_reflect)
        m = eterms.evaluate(calset, f_vector,
                            [[reflect, 0.0], [0.0, reflect]])
        solver.add_double_reflect(m, s11=unknown_reflect,
                                  s22=unknown_reflect)

        unknown_line = UnknownParameter(calset, (f_vector, l_ideal))
        line = VectorParameter(calset, f_vector, actual_line)
        m = eterms.evaluate(calset, f_vector, [[0.0, line], [line, 0.0]])
        solver.add_line(m, s_2x2=[[0.0, unknown_line],
                                  [unknown_line, 0.0]])

        solver.solve()
        solver.add_to_calset('cal')
        self.assertTrue(np.allclose(solver.get_unknown_value(unknown_reflect),
                                    actual_reflect, rtol=1.0e-5,
                                    atol=1.0e-5))
        self.assertTrue(np.allclose(solver.get_unknown_value(unknown_line),
                                    actual_line, rtol=1.0e-5, atol=1.0e-5))
        self.assertTrue(unknown_line.solved)
        self.assertTrue(np.isclose(unknown_line.get_value(f_vector[3]),
                                   actual_line[3]))
        self.check_dut(calset, eterms, lc_filter(high_pass=True))

    def test_unknown_open(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)
        actual_open = 0.95 * delay_vector(0.02 / fmax, 2)

        # Short, open and load on each port plus through, with the open
        # only approximately known.
        m = eterms.evaluate(calset, f_vector, [[-1.0, 0.0], [0.0, -1.0]])
        solver.add_double_reflect(m, s11=-1.0, s22=-1.0)
        unknown_open = UnknownParameter(calset, 1.0)
        actual = VectorParameter(calset, f_vector, actual_open)
        m = eterms.evaluate(calset, f_vector, [[actual, 0.0], [0.0, actual]])
        solver.add_double_reflect(m, s11=unknown_open, s22=unknown_open)
        m = eterms.evaluate(calset, f_vector, [[0.0, 0.0], [0.0, 0.0]])
        solver.add_double_reflect(m, s11=0.0, s22=0.0)
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)

        solver.solve()
        solver.add_to_calset('cal')
        self.assertTrue(np.allclose(solver.get_unknown_value(unknown_open),
                                    actual_open, rtol=1.0e-5, atol=1.0e-5))
        self.check_dut(calset, eterms, lc_filter())

    def test_correlated(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)
        solver.set_m_error(None, 1.0e-6)
        actual_open = 0.98 * delay_vector(0.01 / fmax, 2)

        # Open known to be within 0.05 of ideal.
        nominal = VectorParameter(calset, f_vector, np.ones(points))
        correlated_open = CorrelatedParameter(calset, nominal, None, 0.05)
        m = eterms.evaluate(calset, f_vector, [[-1.0, 0.0], [0.0, -1.0]])
        solver.add_double_reflect(m, s11=-1.0, s22=-1.0)
        actual = VectorParameter(calset, f_vector, actual_open)
        m = eterms.evaluate(calset, f_vector, [[actual, 0.0], [0.0, actual]])
        solver.add_double_reflect(m, s11=correlated_open,
                                  s22=correlated_open)
        m = eterms.evaluate(calset, f_vector, [[0.0, 0.0], [0.0, 0.0]])
        solver.add_double_reflect(m, s11=0.0, s22=0.0)
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)

        solver.solve()
        solver.add_to_calset('cal')
        self.assertTrue(np.allclose(solver.get_unknown_value(correlated_open),
                                    actual_open, rtol=1.0e-4, atol=1.0e-4))
        self.check_dut(calset, eterms, lc_filter())

    def test_UE14(self):
        eterms = ret.RandomErrorTerms(rng, CalType.UE14, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.UE14, 2, 2, f_vector)
        for s11, s22 in ((-1.0, 1.0), (1.0, 0.0), (0.0, -1.0)):
            a, b = eterms.evaluate(calset, f_vector,
                                   [[s11, 0.0], [0.0, s22]], ab=True)
            solver.add_double_reflect(a, b, s11, s22)
        a, b = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]],
                               ab=True)
        solver.add_through(a, b)
        solver.solve()
        solver.add_to_calset('cal')
        blocks = calset.calibrations[0].get_error_terms(0)
        self.assertEqual(blocks['um'].shape, (2, 2))
        self.assertEqual(blocks['el'].shape, (2, 2))
        self.check_dut(calset, eterms, lc_filter())

    def test_U8(self):
        eterms = ret.RandomErrorTerms(rng, CalType.U8, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.U8, 2, 2, f_vector)
        for s11, s22 in ((-1.0, 1.0), (0.0, -1.0)):
            m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
            solver.add_double_reflect(m, s11=s11, s22=s22)
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)
        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter(high_pass=True))

    def test_T16_3x3(self):
        eterms = ret.RandomErrorTerms(rng, CalType.T16, 3, 3, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.T16, rows=3, columns=3,
                        frequency_vector=f_vector)
        standards = [
            [[+0.4034-0.2752j, +0.7065+1.0564j, -0.0052-0.2987j],
             [-0.3819-0.2956j, -0.0749-0.5035j, -0.8099-2.1261j],
             [+0.1404-1.8447j, +0.4446-0.9603j, -0.3800-0.3787j]],
            [[+0.8030+0.5993j, +0.8734+0.2789j, -0.3054-0.5189j],
             [+0.9983+0.8756j, +0.4573-2.0263j, -2.4729+0.1327j],
             [-2.0109+0.3117j, -0.9881-0.5521j, -1.9446+1.3456j]],
            [[-0.8374-0.4580j, -0.4390-1.7829j, +0.2250-0.5186j],
             [+0.4076+0.0577j, +0.7048+1.2195j, -1.2111+0.2743j],
             [-0.4238-0.4229j, -0.7292-1.0598j, -0.3230+0.0595j]],
            [[-0.6309+0.1204j, +0.4045-0.0695j, -0.9811-0.8745j],
             [-1.1644+0.0586j, +0.3026+0.6481j, -1.2244-1.0485j],
             [+0.3459-1.6778j, -0.2581-0.1265j, -0.4891+0.2133j]],
            [[+0.8902-1.0414j, -0.6846+0.5228j, -0.5762-0.6446j],
             [-0.1297+0.1755j, +1.8558-0.2308j, -0.5737-2.2328j],
             [+0.7810-0.3430j, -0.1914-0.0231j, +0.6078+0.2086j]],
        ]
        port_maps = [[1, 2, 3], [3, 1, 2], [3, 2, 1], [2, 1, 3], [2, 3, 1]]
        for s_matrix, port_map in zip(standards, port_maps):
            s_matrix = np.asarray(s_matrix)
            # Row/column i of the given matrix connects to DUT port
            # port_map[i]; find the matrix as seen from the DUT ports.
            inverse_indices = [None, None, None]
            for i, p in enumerate(port_map):
                inverse_indices[p - 1] = i
            s_ports = s_matrix[inverse_indices, :][:, inverse_indices]
            m = eterms.evaluate(calset, f_vector, s_ports)
            solver.add_mapped_matrix(m, s=s_matrix, port_map=port_map)
        solver.solve()
        solver.add_to_calset('cal')

        self.check_dut(calset, eterms, delta_network())

    def test_delay(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)
        d1 = 0.05 / fmax
        d2 = 0.08 / fmax
        dt = 0.12 / fmax

        # Offset short and open, given as ideal standards with delays.
        s11 = VectorParameter(calset, f_vector, -delay_vector(d1, 2))
        s22 = VectorParameter(calset, f_vector, delay_vector(d2, 2))
        m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
        solver.add_double_reflect(m, -1.0, 1.0, delay1=d1, delay2=d2)

        s22 = VectorParameter(calset, f_vector, -delay_vector(d2, 2))
        m = eterms.evaluate(calset, f_vector, [[0.0, 0.0], [0.0, s22]])
        solver.add_double_reflect(m, 0.0, -1.0, delay2=d2)

        s11 = VectorParameter(calset, f_vector, delay_vector(d1, 2))
        m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, 0.0]])
        solver.add_double_reflect(m, 1.0, 0.0, delay1=d1)

        s12 = VectorParameter(calset, f_vector, delay_vector(dt))
        m = eterms.evaluate(calset, f_vector, [[0.0, s12], [s12, 0.0]])
        solver.add_through(m, delay=dt)

        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter())

        # Measure the DUT behind offsets on both ports and remove them
        # when correcting.
        expected = lc_filter()
        r = np.stack([delay_vector(d1), delay_vector(d2)], axis=1)
        offset = expected * r[:, :, np.newaxis] * r[:, np.newaxis, :]
        m = eterms.evaluate(calset, f_vector, as_parameters(calset, offset))
        calibration = calset.calibrations['cal']
        result = calibration.apply(f_vector, m, delay_vector=[d1, d2])
        self.assertTrue(np.allclose(result.data_array, expected,
                                    rtol=1.0e-5, atol=1.0e-5))
        with self.assertRaises(UsageError):
            calibration.apply(f_vector, m, delay_vector=[d1])

    def test_calkit(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)
        short = make_calkit_parameter(
            calset, CalkitShort((2.0e-12, 0.0, 0.0, 0.0),
                                offset_delay=30.0e-12,
                                offset_loss=2.2e+9))
        open_ = make_calkit_parameter(
            calset, CalkitOpen((50.0e-15, 0.0, 0.0, 0.0),
                               offset_delay=29.0e-12,
                               offset_loss=2.2e+9))
        load = make_calkit_parameter(calset, CalkitLoad(50.0))
        through = make_calkit_parameter_matrix(
            calset, CalkitThrough(offset_delay=50.0e-12,
                                  offset_loss=2.2e+9))
        for s11, s22 in ((short, open_), (open_, load), (load, short)):
            m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
            solver.add_double_reflect(m, s11, s22)
        m = eterms.evaluate(calset, f_vector, through)
        solver.add_line(m, through)
        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter(high_pass=True))

    def test_UE10(self):
        eterms = ret.RandomErrorTerms(rng, CalType.UE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.UE10, 2, 2, f_vector)
        for s11, s22 in ((-1.0, 1.0), (1.0, 0.0), (0.0, -1.0)):
            m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
            solver.add_double_reflect(m, s11, s22)
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)
        solver.solve()
        solver.add_to_calset('cal')
        blocks = calset.calibrations['cal'].get_error_terms(0)
        self.assertEqual(blocks['el'].shape, (2, 2))
        self.check_dut(calset, eterms, lc_filter())

    def test_U16(self):
        eterms = ret.RandomErrorTerms(rng, CalType.U16, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.U16, 2, 2, f_vector)

        # Through plus match-match, short-short, open-open and
        # short-open.
        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)
        for s11, s22 in ((0.0, 0.0), (-1.0, -1.0), (1.0, 1.0), (-1.0, 1.0)):
            m = eterms.evaluate(calset, f_vector, [[s11, 0.0], [0.0, s22]])
            solver.add_double_reflect(m, s11, s22)
        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, lc_filter(high_pass=True))

    def test_T8_partial_3x3(self):
        eterms = ret.RandomErrorTerms(rng, CalType.T8, 3, 3, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.T8, 3, 3, f_vector)

        # Short, open and load on each port, measured one port at a
        # time.
        for port in range(3):
            for gamma in (-1.0, 1.0, 0.0):
                s = np.zeros((3, 3))
                s[port, port] = gamma
                m = eterms.evaluate(calset, f_vector, s)
                solver.add_single_reflect(
                    m[:, port:port + 1, port:port + 1], gamma, port + 1)

        # Throughs from port 1 to each other port, measured on just the
        # two ports involved.
        for port in (2, 3):
            s = np.zeros((3, 3))
            s[0, port - 1] = s[port - 1, 0] = 1.0
            m = eterms.evaluate(calset, f_vector, s)
            index = [0, port - 1]
            solver.add_through(m[:, index, :][:, :, index], 1, port)

        solver.solve()
        solver.add_to_calset('cal')
        self.check_dut(calset, eterms, delta_network())

    def test_TRL_reflect_guess(self):
        eterms = ret.RandomErrorTerms(rng, CalType.TE10, 2, 2, fmin, fmax)
        calset = Calset()
        solver = Solver(calset, CalType.TE10, 2, 2, f_vector)
        actual_reflect = -1.0 * delay_vector(0.01 / fmax, 2)
        l_ideal = delay_vector(0.3 / fmax)
        actual_line = l_ideal * 0.98

        m = eterms.evaluate(calset, f_vector, [[0.0, 1.0], [1.0, 0.0]])
        solver.add_through(m)

        # Guess an open for what is really a short.
        unknown_reflect = UnknownParameter(calset, 1.0)
        reflect = VectorParameter(calset, f_vector, actual_reflect)
        m = eterms.evaluate(calset, f_vector,
                            [[reflect, 0.0], [0.0, reflect]])
        solver.add_double_reflect(m, unknown_reflect, unknown_reflect)

        unknown_line = UnknownParameter(calset, (f_vector, l_ideal))
        line = VectorParameter(calset, f_vector, actual_line)
        m = eterms.evaluate(calset, f_vector, [[0.0, line], [line, 0.0]])
        solver.add_line(m, [[0.0, unknown_line], [unknown_line, 0.0]])

        # The measurements fit the negated reflect equally well; the
        # root nearer the guess is taken.
        solver.solve()
        self.assertTrue(np.allclose(solver.get_unknown_value(unknown_reflect),
                                    -actual_reflect, rtol=1.0e-5,
                                    atol=1.0e-5))
        self.assertTrue(np.allclose(solver.get_unknown_value(unknown_line),
                                    actual_line, rtol=1.0e-5, atol=1.0e-5))

    def test_calset_replace(self):
        calset = Calset()
        solver = Solver(calset, CalType.T8, 1, 1, f_vector)
        for gamma in (-1.0, 0.0, 1.0):
            solver.add_single_reflect(np.full((points, 1, 1), gamma),
                                      s11=gamma)
        solver.solve()
        self.assertEqual(solver.add_to_calset('a'), 0)
        self.assertEqual(solver.add_to_calset('b'), 1)
        self.assertEqual(solver.add_to_calset('a'), 0)
        self.assertEqual(len(calset.calibrations), 2)
        self.assertEqual(calset.calibrations.names(), ['a', 'b'])
        del calset.calibrations['a']
        self.assertEqual(calset.calibrations[0].name, 'b')
        self.assertNotIn('a', calset.calibrations)


if __name__ == '__main__':
    unittest.main()
