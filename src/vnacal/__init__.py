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
Vector network analyzer calibration library.

vnacal.cal solves for the error terms of a VNA from measurements of
calibration standards and applies them to correct measurements;
vnacal.conv converts between network parameter types; vnacal.data holds
network parameter data.
"""

from vnacal.errors import MathError, ResourceError, UsageError, VNAError

__version__ = "0.1.0"

__all__ = ['MathError', 'ResourceError', 'UsageError', 'VNAError']
