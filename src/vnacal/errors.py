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
Exceptions raised by the vnacal package.

All errors derive from VNAError.  UsageError is also a ValueError and
MathError is also an ArithmeticError so that callers may catch either
the library-specific type or the standard one.
"""


class VNAError(Exception):
    """
    Base class of all vnacal errors.
    """
    pass


class UsageError(VNAError, ValueError):
    """
    A function was called with invalid arguments or in an invalid state.
    """
    pass


class MathError(VNAError, ArithmeticError):
    """
    A numeric failure: singular system, insufficient standards, failure
    to converge or a measurement inconsistent with the error model.
    """
    pass


class ResourceError(VNAError, MemoryError):
    """
    Storage for the calibration could not be allocated.
    """
    pass
