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
Container for calibrations and the parameters they use.
"""

import logging

from vnacal.cal._parameter import ONE, SHORT, ZERO, ScalarParameter
from vnacal.errors import UsageError

logger = logging.getLogger(__name__)


class Calibrations:
    """
    Ordered collection of named calibrations, indexable by position or
    by name.
    """
    def __init__(self):
        self._list = []

    def __len__(self):
        return len(self._list)

    def __iter__(self):
        return iter(self._list)

    def _find(self, key):
        if isinstance(key, str):
            for index, calibration in enumerate(self._list):
                if calibration.name == key:
                    return index
            raise KeyError(key)
        return range(len(self._list))[key]

    def __getitem__(self, key):
        return self._list[self._find(key)]

    def __delitem__(self, key):
        del self._list[self._find(key)]

    def __contains__(self, name):
        return any(c.name == name for c in self._list)

    def names(self):
        return [c.name for c in self._list]

    def _add(self, calibration):
        for index, existing in enumerate(self._list):
            if existing.name == calibration.name:
                self._list[index] = calibration
                return index
        self._list.append(calibration)
        return len(self._list) - 1


class Calset:
    """
    A set of calibrations together with the parameter registry used to
    describe the calibration standards.
    """
    def __init__(self):
        self._parameters = {}
        self._next_handle = 0
        self.calibrations = Calibrations()
        # predefined parameters take handles ZERO, ONE and SHORT
        ScalarParameter(self, 0.0)
        ScalarParameter(self, 1.0)
        ScalarParameter(self, -1.0)

    def _add_parameter(self, parameter) -> int:
        handle = self._next_handle
        self._next_handle += 1
        self._parameters[handle] = parameter
        return handle

    def _remove_parameter(self, handle: int):
        del self._parameters[handle]

    def get_parameter(self, handle: int):
        """
        Return the parameter with the given handle.
        """
        try:
            return self._parameters[handle]
        except KeyError:
            raise UsageError(f"get_parameter: invalid parameter handle "
                             f"{handle}") from None

    @property
    def parameters(self):
        """Live parameters in handle order."""
        return [self._parameters[h] for h in sorted(self._parameters)]

    @property
    def zero(self):
        return self._parameters[ZERO]

    @property
    def one(self):
        return self._parameters[ONE]

    @property
    def short(self):
        return self._parameters[SHORT]

    def add_calibration(self, calibration) -> int:
        """
        Add calibration under its name, replacing any calibration with
        the same name.  Returns its index.
        """
        if not calibration.name:
            raise UsageError("add_calibration: calibration must be named")
        index = self.calibrations._add(calibration)
        logger.debug("added calibration %r (%s %dx%d) at index %d",
                     calibration.name, calibration.ctype.name,
                     calibration.rows, calibration.columns, index)
        return index
