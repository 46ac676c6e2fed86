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
VNA calibration: calibration standards, the error term solver, and the
solved calibrations used to correct measurements.
"""

from vnacal.cal._calibration import Calibration
from vnacal.cal._calkit import (CalkitLoad, CalkitOpen, CalkitParameter,
                                CalkitShort, CalkitStandard, CalkitThrough,
                                make_calkit_parameter,
                                make_calkit_parameter_matrix,
                                make_data_parameter_matrix)
from vnacal.cal._calset import Calset
from vnacal.cal._layout import CalType, Layout
from vnacal.cal._parameter import (CorrelatedParameter, Parameter,
                                   ScalarParameter, UnknownParameter,
                                   VectorParameter)
from vnacal.cal._solver import Solver

__all__ = [
    'CalType', 'Calibration', 'CalkitLoad', 'CalkitOpen', 'CalkitParameter',
    'CalkitShort', 'CalkitStandard', 'CalkitThrough', 'Calset',
    'CorrelatedParameter', 'Layout', 'Parameter', 'ScalarParameter',
    'Solver', 'UnknownParameter', 'VectorParameter',
    'make_calkit_parameter', 'make_calkit_parameter_matrix',
    'make_data_parameter_matrix',
]
