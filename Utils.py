#! /usr/bin/env python
# -*- python-fmt -*-

## Copyright (c) 2023, 2024  University of Washington.
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

"""Utility routines shared by the Argo file checker"""

import os
from typing import Literal

import netCDF4
import numpy as np
import numpy.typing as npt

from BaseLog import log_warning


def open_netcdf_file(
    filename: str,
    mode: Literal["r", "w", "r+", "a", "x", "rs", "ws", "r+s", "as"] = "r",
    mask_results: bool = False,
) -> netCDF4.Dataset:
    # netCDF4 tries to open with a write exclusive, which will fail if some other process has
    # the file open for read.
    if "w" in mode:
        try:
            os.remove(filename)
        except FileNotFoundError:
            pass
        except Exception:
            log_warning("Failed to remove file before write", "exc")
    ds = netCDF4.Dataset(filename, mode)
    ds.set_auto_mask(mask_results)
    return ds


def is_missing(fill_value: float, value: float) -> bool:
    """True if value is the fill value or NaN

    The comparison against the fill value is exact.  Fill values are
    read from the same typed variable as the data, so no tolerance is needed.
    """
    if np.isnan(value):
        return True
    return bool(value == fill_value)


def collapse_extra(values: npt.ArrayLike, fill_value: float) -> float:
    """Reduce the extra-dimension slice for one sample to a single scalar

    Inputs:
    values - the slice (any shape, iterated in C order)
    fill_value - fill value of the variable

    Returns:
    NaN if any element is NaN, otherwise the first element that is not the
    fill value, otherwise the fill value (including for an empty slice)
    """
    flat_v = np.asarray(values, dtype=np.float64).ravel()
    if flat_v.size == 0:
        return fill_value
    if np.any(np.isnan(flat_v)):
        return np.nan
    present_i_v = np.nonzero(flat_v != fill_value)[0]
    if present_i_v.size:
        return float(flat_v[present_i_v[0]])
    return fill_value


def reduce_to_samples(values: npt.ArrayLike, fill_value: float) -> np.ndarray:
    """Collapse any trailing dimensions of values, one scalar per sample

    Inputs:
    values - array shaped (n_samples,) or (n_samples, e1, e2, ...)
    fill_value - fill value of the variable

    Returns:
    float64 array of length n_samples
    """
    values_v = np.asarray(values, dtype=np.float64)
    if values_v.ndim == 0:
        return values_v.reshape(1)
    if values_v.ndim == 1:
        return values_v
    rows_v = values_v.reshape(values_v.shape[0], -1)
    return np.array(
        [collapse_extra(row, fill_value) for row in rows_v], dtype=np.float64
    )
