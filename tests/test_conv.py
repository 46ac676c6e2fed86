#!/usr/bin/python3
"""
Test the vnacal.conv module.
"""

import unittest
import numpy as np
import vnacal.conv as vc
from vnacal.errors import UsageError

TRIALS = 20

M_SQRT1_2 = 0.70710678118654752440

rng = np.random.default_rng(seed=3)


def crandn(size=None):
    """
    Return a gaussian complex random number
    """
    return M_SQRT1_2 * (rng.normal(size=size) +
                        1j * rng.normal(size=size))


def port_values(z0, a, s):
    """
    Return the reflected waves, voltages and currents at each port for
    incident waves a, S matrix s and reference impedances z0.
    """
    b = s @ a
    k = np.sqrt(np.abs(np.real(z0))) / np.real(z0)
    v = k * (np.conjugate(z0) * a + z0 * b)
    i = k * (a - b)
    return b, v, i


class TestModule(unittest.TestCase):
    def test_2x2(self):
        """
        Test the 2x2 conversion cases
        """
        for _ in range(TRIALS):
            #
            # Make random system impedances, incident power and S
            # matrix, and from these, the reflected power.
            #
            z0 = crandn(2)
            a = crandn(2)
            s = crandn((2, 2))
            b, v, i = port_values(z0, a, s)
            a1, a2 = a
            b1, b2 = b

            #
            # Calculate input impedance looking into each port when
            # the other port is terminated in the system impendance.
            #
            zi = (np.diagonal(s) * z0 + np.conjugate(z0)) / \
                (1.0 - np.diagonal(s))

            #
            # Convert s to t and verify against the defition of t.
            #
            t = vc.stot(s)
            self.assertTrue(np.allclose(t @ [a2, b2], [b1, a1]))

            #
            # Convert s to u and verify against the defition of u.
            #
            u = vc.stou(s)
            self.assertTrue(np.allclose(u @ [b1, a1], [a2, b2]))

            #
            # Convert s to z and y and verify against their definitions.
            #
            z = vc.stoz(s, z0)
            self.assertTrue(np.allclose(z @ i, v))
            y = vc.stoy(s, z0)
            self.assertTrue(np.allclose(y @ v, i))
            self.assertTrue(np.allclose(vc.stozi(s, z0), zi))

            #
            # Convert back.
            #
            self.assertTrue(np.allclose(vc.ttos(t), s))
            self.assertTrue(np.allclose(vc.utos(u), s))
            self.assertTrue(np.allclose(vc.ttou(t), u))
            self.assertTrue(np.allclose(vc.utot(u), t))
            self.assertTrue(np.allclose(vc.ztos(z, z0), s))
            self.assertTrue(np.allclose(vc.ytos(y, z0), s))

    def test_3x3(self):
        """
        Test the N-port conversions with three ports
        """
        for _ in range(TRIALS):
            z0 = crandn(3)
            a = crandn(3)
            s = crandn((3, 3))
            b, v, i = port_values(z0, a, s)
            z = vc.stoz(s, z0)
            self.assertTrue(np.allclose(z @ i, v))
            y = vc.stoy(s, z0)
            self.assertTrue(np.allclose(y @ v, i))
            self.assertTrue(np.allclose(np.linalg.inv(z), y))
            self.assertTrue(np.allclose(vc.ztos(z, z0), s))
            self.assertTrue(np.allclose(vc.ytos(y, z0), s))

    def test_stack(self):
        """
        Test conversion of a stack of matrices against conversion of
        each matrix.
        """
        s = crandn((4, 2, 2))
        z0 = [50.0, 75.0]
        z = vc.stoz(s, z0)
        t = vc.stot(s)
        self.assertEqual(z.shape, (4, 2, 2))
        for findex in range(4):
            self.assertTrue(np.allclose(z[findex], vc.stoz(s[findex], z0)))
            self.assertTrue(np.allclose(t[findex], vc.stot(s[findex])))
        self.assertTrue(np.allclose(vc.ztos(z, z0), s))

    def test_default_z0(self):
        """
        Test the resistor divider with the default reference impedance.
        """
        s = vc.ztos([[100.0, 50.0], [50.0, 100.0]])
        self.assertTrue(np.allclose(vc.stoz(s), [[100.0, 50.0],
                                                 [50.0, 100.0]]))
        self.assertTrue(np.allclose(vc.stoz(s), vc.stoz(s, 50.0)))
        self.assertTrue(np.allclose(vc.ztos([[50.0]]), [[0.0]]))

    def test_z0_dimensions(self):
        s = crandn((3, 3))
        with self.assertRaises(UsageError):
            vc.stoz(s, [50.0, 50.0])
        with self.assertRaises(UsageError):
            vc.stot(s)
        with self.assertRaises(UsageError):
            vc.stoz(crandn((2, 3)))


if __name__ == '__main__':
    unittest.main()
