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

import dataclasses

import numpy as np

import TrajChecker
from DataSource import ArrayDataSource
from ErrorTracker import ValidationReport
from FileSpec import FileSpec
from RefTables import CodeTable, default_ref_tables

import testutils

CF = testutils.CYCLE_FILL
JF = testutils.JULD_FILL
PF = testutils.PARAM_FILL

spec = FileSpec()
tables = default_ref_tables()
caps = spec.capabilities("trajectory")


def traj_variables():
    """Launch record plus two cycles, each with a descent start and two locations"""
    return {
        "CYCLE_NUMBER_INDEX": np.array([1, 2], dtype=np.int32),
        "CYCLE_NUMBER_INDEX_ADJUSTED": np.array([CF, CF], dtype=np.int32),
        "DATA_MODE": "RR",
        "CYCLE_NUMBER": np.array([-1, 1, 1, 1, 2, 2], dtype=np.int32),
        "CYCLE_NUMBER_ADJUSTED": np.full(6, CF, dtype=np.int32),
        "MEASUREMENT_CODE": np.array([0, 100, 703, 703, 100, 703], dtype=np.int32),
        "JULD": np.array([100.0, 101.0, 101.5, 101.6, 102.0, 102.5]),
        "JULD_QC": "111111",
        "JULD_STATUS": "222222",
        "JULD_DESCENT_START": np.array([101.0, 102.0]),
        "JULD_DESCENT_START_STATUS": "22",
        "JULD_FIRST_LOCATION": np.array([101.5, 102.5]),
        "JULD_FIRST_LOCATION_STATUS": "22",
        "JULD_LAST_LOCATION": np.array([101.6, 102.5]),
        "JULD_LAST_LOCATION_STATUS": "22",
        "PRES": np.array([0.0, 10.0, 0.5, 0.5, 10.0, 0.5], dtype=np.float32),
        "PRES_QC": "111111",
        "TEMP": np.array([PF, 10.0, 20.0, 20.0, 10.0, 20.0], dtype=np.float32),
        "TEMP_QC": "911111",
    }


def traj_source(**changes):
    variables = traj_variables()
    variables.update(changes)
    fill_values = {
        name: CF
        for name in (
            "CYCLE_NUMBER_INDEX",
            "CYCLE_NUMBER_INDEX_ADJUSTED",
            "CYCLE_NUMBER",
            "CYCLE_NUMBER_ADJUSTED",
            "MEASUREMENT_CODE",
        )
    }
    fill_values.update({name: JF for name in variables if name.startswith("JULD")})
    fill_values.update({"PRES": PF, "TEMP": PF})
    return ArrayDataSource(
        variables,
        fill_values,
        {"N_CYCLE": len(variables["CYCLE_NUMBER_INDEX"]), "N_MEASUREMENT": 6},
    )


def test_clean_trajectory():
    report = TrajChecker.check_traj_file(traj_source(), spec, tables, caps)
    assert report.errors == []
    assert report.warnings == []


def test_first_location_mismatch():
    source = traj_source(JULD_FIRST_LOCATION=np.array([101.5, 102.4]))
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == [
        "JULD (MC 703) / JULD_FIRST_LOCATION: Inconsistent: 1 measurements; "
        "index (N_MEASUREMENT, N_CYCLE) = (6,2)"
    ]


def test_last_location_compares_last_of_cycle():
    source = traj_source(JULD_LAST_LOCATION=np.array([101.5, 102.5]))
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == [
        "JULD (MC 703) / JULD_LAST_LOCATION: Inconsistent: 1 measurements; "
        "index (N_MEASUREMENT, N_CYCLE) = (4,1)"
    ]


def test_cycle_errors_skip_time_checks():
    source = traj_source(
        CYCLE_NUMBER_INDEX=np.array([1, 1], dtype=np.int32),
        JULD_FIRST_LOCATION=np.array([0.0, 0.0]),
    )
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert "CYCLE_NUMBER_INDEX: Duplicate cycle number: 1 cycles; index 2" in report.errors
    assert "CYCLE_NUMBER errors exist. Per-cycle time checks skipped" in report.errors
    assert not any("Inconsistent" in e for e in report.errors)


def test_adjusted_time_in_real_time():
    source = traj_source(
        JULD_ADJUSTED=np.array([JF, JF, 101.5, JF, JF, JF]),
        JULD_ADJUSTED_QC="  1   ",
        JULD_ADJUSTED_STATUS="  2   ",
    )
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == [
        "JULD_ADJUSTED: Not FillValue where DATA_MODE is 'R': 1 measurements; index 3"
    ]


def test_adjusted_time_is_final_time():
    source = traj_source(
        DATA_MODE="RD",
        CYCLE_NUMBER_INDEX_ADJUSTED=np.array([CF, 2], dtype=np.int32),
        CYCLE_NUMBER_ADJUSTED=np.array([CF, CF, CF, CF, 2, 2], dtype=np.int32),
        JULD_ADJUSTED=np.array([JF, JF, JF, JF, JF, 102.7]),
        JULD_ADJUSTED_QC="     1",
        JULD_ADJUSTED_STATUS="     2",
        JULD_FIRST_LOCATION=np.array([101.5, 102.7]),
        JULD_LAST_LOCATION=np.array([101.6, 102.7]),
    )
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == []


def test_measurement_codes():
    report = TrajChecker.check_measurement_codes(
        np.array([0, 25, 100, 285, 301, 260, 999]), tables
    )
    assert report.errors == [
        "MEASUREMENT_CODE: Invalid code: 3 measurements; first 3 indices 2, 6, 7"
    ]

    specific = CodeTable("measurement code", (301,), deprecated=(702,), deleted=(901,))
    custom = dataclasses.replace(tables, measurement_code_specific=specific)
    report = TrajChecker.check_measurement_codes(np.array([301, 702, 901]), custom)
    assert report.errors == ["MEASUREMENT_CODE: Obsolete code: 1 measurements; index 3"]
    assert report.warnings == [
        "MEASUREMENT_CODE: Deprecated code: 1 measurements; index 2"
    ]


def test_time_series():
    report = ValidationReport()
    values = np.array([1.0, JF, JF, 2.0, JF, 1.0])
    TrajChecker.check_time_series(
        "JULD", values, JF, "1 991 ", "2 9922", tables, report
    )
    assert report.errors == [
        "JULD_QC/JULD_STATUS: Inconsistent ' ': 1 measurements; index 6",
        "JULD: FillValue where QC is not ' ' or '9': 1 measurements; index 5",
        "JULD: Not FillValue where QC is ' ' or '9': 2 measurements; first 2 indices 4, 6",
    ]


def test_param_modes():
    source = ArrayDataSource(
        {
            "TRAJECTORY_PARAMETERS": ["PRES".ljust(16), "TEMP".ljust(16)],
            "TRAJECTORY_PARAMETER_DATA_MODE": ["R ", "DD", " A"],
        }
    )
    modes_d = TrajChecker.param_modes(source, ["PRES", "TEMP"], "RRR")
    assert modes_d == {"PRES": "RDR", "TEMP": "RDA"}


def test_trajectory_parameter_names():
    source = traj_source(
        TRAJECTORY_PARAMETERS=["PRES".ljust(16), "BOGUS".ljust(16), "TEMP".ljust(16)]
    )
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == ["TRAJECTORY_PARAMETERS: Invalid parameter name 'BOGUS'"]


def test_trajectory_parameter_failure():
    source = traj_source(TEMP_QC="911X11")
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == ["TEMP_QC: Invalid QC code: 1 measurements; index 4"]


def test_param_modes_repeated_name():
    source = ArrayDataSource(
        {
            "TRAJECTORY_PARAMETERS": [p.ljust(16) for p in ("PRES", "TEMP", "TEMP")],
            "TRAJECTORY_PARAMETER_DATA_MODE": ["R  ", "DDA", " AD"],
        }
    )
    modes_d = TrajChecker.param_modes(source, ["PRES", "TEMP"], "RRR")
    assert modes_d == {"PRES": "RDR", "TEMP": "RDA"}


def test_position():
    lat = np.array([10.0, PF, 10.0, 10.0, PF])
    lon = np.array([20.0, 20.0, 20.0, 20.0, PF])
    report = TrajChecker.check_position(lat, PF, lon, PF, "119X ", "G2AQ ", tables)
    assert report.errors == [
        "POSITION_QC: Invalid QC code: 1 measurements; index 4",
        "POSITION_ACCURACY: Invalid code: 1 measurements; index 4",
        "LATITUDE/LONGITUDE: FillValue where POSITION_QC is not ' ' or '9': 1 measurements; index 2",
        "LATITUDE/LONGITUDE: Not FillValue where POSITION_QC is ' ' or '9': 1 measurements; index 3",
    ]

    location = CodeTable("location class", ("G",), deprecated=("A",))
    custom = dataclasses.replace(tables, location_class=location)
    report = TrajChecker.check_position(
        lat[:1], PF, lon[:1], PF, "1", "A", custom
    )
    assert report.errors == []
    assert report.warnings == [
        "POSITION_ACCURACY: Deprecated code: 1 measurements; index 1"
    ]


def test_cycle_variables():
    report = TrajChecker.check_cycle_variables(
        "NYXB", np.array([CF, 1, 0, CF]), CF, "DDRD", tables
    )
    assert report.errors == [
        "GROUNDED: Invalid code: 1 cycles; index 3",
        "CONFIG_MISSION_NUMBER: Invalid mission number: 1 cycles; index 3",
        "CONFIG_MISSION_NUMBER: FillValue where DATA_MODE is 'D': 1 cycles; index 4",
    ]


def position_changes(position_qc="111111"):
    return {
        "LATITUDE": np.array([47.0, PF, 47.1, 47.2, PF, 47.3]),
        "LONGITUDE": np.array([-122.0, PF, -122.1, -122.2, PF, -122.3]),
        "POSITION_QC": position_qc,
        "POSITION_ACCURACY": "G  G G",
        "GROUNDED": "NN",
        "CONFIG_MISSION_NUMBER": np.array([1, 1], dtype=np.int32),
    }


def test_trajectory_position_and_cycle_variables():
    source = traj_source(**position_changes("191191"))
    source.fill_values.update({"LATITUDE": PF, "LONGITUDE": PF})
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == []

    changes = position_changes()
    changes["GROUNDED"] = "NQ"
    source = traj_source(**changes)
    source.fill_values.update({"LATITUDE": PF, "LONGITUDE": PF})
    report = TrajChecker.check_traj_file(source, spec, tables, caps)
    assert report.errors == [
        "LATITUDE/LONGITUDE: FillValue where POSITION_QC is not ' ' or '9': "
        "2 measurements; first 2 indices 2, 5",
        "GROUNDED: Invalid code: 1 cycles; index 2",
    ]

    # bio trajectory files carry no GROUNDED
    bio_caps = spec.capabilities("bio-trajectory")
    report = TrajChecker.read_cycle_variables(source, "RR", tables, bio_caps)
    assert report.errors == []
