#!/usr/bin/python3
"""
Test the error term layouts of vnacal.cal.
"""
from vnacal.cal import CalType, Layout
import unittest


class TestLayout(unittest.TestCase):
    def test_idempotent(self):
        for ctype in CalType:
            for rows, columns in ((1, 1), (2, 2), (3, 2), (2, 3), (4, 4)):
                a = Layout(ctype, rows, columns)
                b = Layout(ctype, rows, columns)
                self.assertEqual(a, b)
                self.assertEqual(hash(a), hash(b))
                self.assertEqual(a.error_terms, b.error_terms)
                self.assertEqual(a.leakage_cells(), b.leakage_cells())

    def test_T8(self):
        layout = Layout(CalType.T8, 2, 2)
        self.assertEqual((layout.ts_offset, layout.ti_offset,
                          layout.tx_offset, layout.tm_offset), (0, 2, 4, 6))
        self.assertEqual(layout.terms, 8)
        self.assertEqual(layout.unknowns, 7)
        self.assertEqual(layout.systems, 1)
        self.assertEqual(layout.leakage_terms, 0)
        self.assertEqual(layout.error_terms, 8)
        self.assertEqual(layout.unity_index(), layout.tm_offset)
        self.assertTrue(layout.is_t)
        self.assertFalse(layout.has_leakage)

    def test_T8_1x2(self):
        layout = Layout(CalType.T8, 1, 2)
        self.assertEqual(layout.ports, 2)
        self.assertEqual((layout.ts_offset, layout.ti_offset,
                          layout.tx_offset, layout.tm_offset), (0, 1, 2, 4))
        self.assertEqual(layout.terms, 6)

    def test_TE10(self):
        layout = Layout(CalType.TE10, 2, 2)
        self.assertEqual(layout.terms, 8)
        self.assertEqual(layout.leakage_terms, 2)
        self.assertEqual(layout.leakage_offset, 8)
        self.assertEqual(layout.error_terms, 10)
        self.assertEqual(layout.leakage_cells(), [(0, 1), (1, 0)])

    def test_leakage_index(self):
        layout = Layout(CalType.TE10, 2, 3)
        cells = layout.leakage_cells()
        self.assertEqual(cells, [(0, 1), (0, 2), (1, 0), (1, 2)])
        for i, (row, column) in enumerate(cells):
            self.assertEqual(layout.leakage_index(row, column), i)
        layout = Layout(CalType.UE10, 3, 2)
        for i, (row, column) in enumerate(layout.leakage_cells()):
            self.assertEqual(layout.leakage_index(row, column), i)

    def test_T16(self):
        layout = Layout(CalType.T16, 2, 2)
        self.assertEqual(layout.terms, 16)
        self.assertEqual(layout.error_terms, 16)
        self.assertTrue(layout.is_16term)
        layout = Layout(CalType.U16, 3, 3)
        self.assertEqual(layout.terms, 36)
        self.assertEqual(layout.unknowns, 35)
        self.assertTrue(layout.is_u)

    def test_UE14(self):
        layout = Layout(CalType.UE14, 2, 2)
        self.assertEqual((layout.um_offset, layout.ui_offset,
                          layout.ux_offset, layout.us_offset), (0, 2, 3, 5))
        self.assertEqual(layout.terms, 6)
        self.assertEqual(layout.systems, 2)
        self.assertEqual(layout.leakage_terms, 2)
        self.assertEqual(layout.error_terms, 14)
        self.assertEqual(layout.unity_index(0), 0)
        self.assertEqual(layout.unity_index(1), 1)
        self.assertTrue(layout.is_ue14)

    def test_E12(self):
        layout = Layout(CalType.E12, 2, 2)
        self.assertEqual(layout.error_terms, 12)
        self.assertTrue(layout.is_ue14)
        self.assertEqual(Layout(CalType.E12, 2, 1).error_terms, 6)

    def test_diagonal(self):
        for ctype in (CalType.T8, CalType.U8, CalType.TE10, CalType.UE10):
            self.assertTrue(Layout(ctype, 2, 2).is_diagonal)
        for ctype in (CalType.T16, CalType.U16, CalType.UE14, CalType.E12):
            self.assertFalse(Layout(ctype, 2, 2).is_diagonal)


if __name__ == '__main__':
    unittest.main()
