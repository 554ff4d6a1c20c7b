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

import netCDF4
import numpy as np

import DataSource
import Utils

import testutils


def test_array_source_chars():
    source = DataSource.ArrayDataSource(
        {
            "DATA_MODE": "RD",
            "TEMP_QC": ["12", "4 "],
            "TEMP": np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32),
        },
        dimensions={"N_PROF": 2},
    )
    assert source.dimension_length("N_PROF") == 2
    assert source.read_chars("DATA_MODE") == "RD"
    assert source.read_chars("TEMP_QC", 1) == "4 "
    assert source.read("TEMP", 1).tolist() == [3.0, 4.0]
    assert source.fill_value("TEMP") == netCDF4.default_fillvals["f4"]
    assert not source.has_variable("PSAL")


def test_netcdf_source(tmp_path):
    fn = str(tmp_path / "source.nc")
    ds = Utils.open_netcdf_file(fn, "w")
    ds.createDimension("N_PROF", 2)
    ds.createDimension("N_PARAM", 2)
    ds.createDimension("STRING4", 4)
    ds.createVariable("DATA_MODE", "S1", ("N_PROF",))[:] = testutils._chars("RD")
    params = ds.createVariable("STATION_PARAMETERS", "S1", ("N_PROF", "N_PARAM", "STRING4"))
    params[0, :, :] = testutils._strings(["PRES", "TEMP"], 4)
    params[1, 0, :] = testutils._strings(["PSAL"], 4)[0]
    # never written - no fill attribute
    ds.createVariable("CYCLE_NUMBER", "i4", ("N_PROF",), fill_value=False)
    var = ds.createVariable("PRES", "f4", ("N_PROF",), fill_value=99999.0)
    var[0] = 10.0
    ds.close()

    with DataSource.NetCDFDataSource(fn) as source:
        assert source.has_variable("PRES")
        assert source.dimension_length("N_PARAM") == 2
        assert source.read_chars("DATA_MODE") == "RD"
        assert source.read_strings("STATION_PARAMETERS", 0) == ["PRES", "TEMP"]
        # unwritten characters read as blanks
        assert source.read_strings("STATION_PARAMETERS", 1) == ["PSAL", ""]
        assert source.fill_value("PRES") == 99999.0
        assert isinstance(source.fill_value("PRES"), float)
        assert source.read("PRES", 1) == 99999.0
        assert source.fill_value("CYCLE_NUMBER") == netCDF4.default_fillvals["i4"]
