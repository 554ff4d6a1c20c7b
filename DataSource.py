#! /usr/bin/env python
# -*- python-fmt -*-

## Copyright (c) 2025  University of Washington.
##
## Redistribution and use in source and binary forms, with or without
## modification, are permitted provided that the following conditions are met:
##
## 1. Redistributions of source code must retain the above copyright notice, this
##    list of conditions and the following disclaimer.
##
## 2. Redistributions in binary form must reproduce the above copyright notice,
##    this list of conditions and the following disclaimer in the documentation
##    and/or other materials provided with the distribution.
##
## 3. Neither the name of the University of Washington nor the names of its
##    contributors may be used to endorse or promote products derived from this
##    software without specific prior written permission.
##
## THIS SOFTWARE IS PROVIDED BY THE UNIVERSITY OF WASHINGTON AND CONTRIBUTORS “AS
## IS” AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
## IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
## DISCLAIMED. IN NO EVENT SHALL THE UNIVERSITY OF WASHINGTON OR CONTRIBUTORS BE
## LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
## CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE
## GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION)
## HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT
## LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT
## OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.

"""Access to the variables of an Argo file

The checks only need typed array reads, dimension lengths and fill values.
NetCDFDataSource reads a netCDF file; ArrayDataSource serves arrays already in
memory.
"""

import netCDF4
import numpy as np

import Utils


def _fill_for_dtype(dtype: np.dtype):
    """netCDF default fill value for a numpy dtype"""
    key = dtype.str[1:]
    if key in netCDF4.default_fillvals:
        return netCDF4.default_fillvals[key]
    return None


def _chars_to_str(chars: np.ndarray) -> str:
    """Join an array of single characters, treating NUL as blank"""
    if chars.dtype.kind == "S":
        return "".join(
            (c.decode("latin-1") if c not in (b"", b"\x00") else " ")
            for c in chars.ravel()
        )
    return "".join((c if c not in ("", "\x00") else " ") for c in chars.ravel())


class DataSource:
    """Base class for variable access"""

    def dimension_length(self, name: str) -> int:
        raise NotImplementedError

    def has_variable(self, name: str) -> bool:
        raise NotImplementedError

    def read(self, name: str, index: int | None = None) -> np.ndarray:
        """Read a variable, optionally only the slice at index along the first axis

        Raises:
            KeyError if the variable does not exist
        """
        raise NotImplementedError

    def fill_value(self, name: str):
        raise NotImplementedError

    def read_chars(self, name: str, index: int | None = None) -> str:
        """Read a character variable (or one row of it) as a string

        Each character is one sample - e.g. TEMP_QC[N_PROF, N_LEVELS] with
        index p is the QC string of profile p.
        """
        return _chars_to_str(np.asarray(self.read(name, index)))

    def read_strings(self, name: str, index: int | None = None) -> list[str]:
        """Read a string-array variable (last axis is the string length)"""
        values = np.asarray(self.read(name, index))
        if values.ndim <= 1:
            return [_chars_to_str(values).strip()]
        rows = values.reshape(-1, values.shape[-1])
        return [_chars_to_str(row).strip() for row in rows]

    def close(self) -> None:
        pass


class NetCDFDataSource(DataSource):
    """Variable access backed by a netCDF4 Dataset"""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.ds = Utils.open_netcdf_file(filename, "r")
        # Char arrays are joined here, not by netCDF4
        self.ds.set_auto_chartostring(False)

    def dimension_length(self, name: str) -> int:
        return len(self.ds.dimensions[name])

    def has_variable(self, name: str) -> bool:
        return name in self.ds.variables

    def read(self, name: str, index: int | None = None) -> np.ndarray:
        var = self.ds.variables[name]
        if index is None:
            return np.asarray(var[:])
        return np.asarray(var[index])

    def fill_value(self, name: str):
        var = self.ds.variables[name]
        if "_FillValue" in var.ncattrs():
            fill = var.getncattr("_FillValue")
        else:
            fill = _fill_for_dtype(var.dtype)
        if isinstance(fill, np.generic):
            return fill.item()
        return fill

    def close(self) -> None:
        self.ds.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class ArrayDataSource(DataSource):
    """Variable access over in-memory arrays

    Inputs:
    variables - dictionary of name to array.  Character variables may be given
                as a str (one dimension) or a list of equal length str (two
                dimensions), which are split into single characters.
    fill_values - dictionary of name to fill value; variables not listed use
                  the netCDF default fill for their dtype
    dimensions - dictionary of dimension name to length
    """

    def __init__(self, variables=None, fill_values=None, dimensions=None) -> None:
        self.variables = {}
        for name, value in (variables or {}).items():
            if isinstance(value, str):
                value = np.array(list(value), dtype="U1")
            elif isinstance(value, list) and value and isinstance(value[0], str):
                value = np.array([list(v) for v in value], dtype="U1")
            self.variables[name] = np.asarray(value)
        self.fill_values = dict(fill_values or {})
        self.dimensions = dict(dimensions or {})

    def dimension_length(self, name: str) -> int:
        return self.dimensions[name]

    def has_variable(self, name: str) -> bool:
        return name in self.variables

    def read(self, name: str, index: int | None = None) -> np.ndarray:
        values = self.variables[name]
        if index is None:
            return values
        return values[index]

    def fill_value(self, name: str):
        if name in self.fill_values:
            return self.fill_values[name]
        return _fill_for_dtype(self.variables[name].dtype)
