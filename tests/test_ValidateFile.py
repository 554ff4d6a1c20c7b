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

import pytest
import yaml

import ValidateFile
from DataSource import ArrayDataSource

import testutils

JF = testutils.JULD_FILL
CF = testutils.CYCLE_FILL


def profile_params(temp_qc="111"):
    return {
        "PRES": {"values": [5.0, 10.0, 15.0], "qc": "111"},
        "TEMP": {"values": [12.0, 11.0, 10.0], "qc": temp_qc},
    }


def traj_d():
    return {
        "cycle_index": [1, 2],
        "cycle_index_adj": [CF, CF],
        "data_mode": "RR",
        "cycle_number": [-1, 1, 1, 2],
        "cycle_number_adj": [CF, CF, CF, CF],
        "codes": [0, 100, 703, 703],
        "juld": [100.0, 101.0, 101.5, 102.5],
        "juld_qc": "1111",
        "juld_status": "2222",
        "cycle_times": {
            "JULD_DESCENT_START": ([101.0, JF], "29"),
            "JULD_FIRST_LOCATION": ([101.5, 102.5], "22"),
            "JULD_LAST_LOCATION": ([101.5, 102.5], "22"),
        },
    }


def run_main(cmd_line, caplog, allowed_msgs=()):
    testutils.run_validate(ValidateFile.main, cmd_line, caplog, list(allowed_msgs))


def read_results(results_file):
    with open(results_file, "r") as fi:
        return yaml.safe_load(fi.read())


def test_accepted_files(tmp_path, caplog):
    profile = testutils.write_profile_nc(
        tmp_path / "R1900001_001.nc", profile_params(), profile_qc={"TEMP": "A"}
    )
    traj = testutils.write_traj_nc(tmp_path / "1900001_Rtraj.nc", traj_d())
    results_file = tmp_path / "results.yml"

    run_main(
        [str(profile), str(traj), "--results_file", str(results_file)], caplog
    )

    results = read_results(results_file)
    assert [r["file_type"] for r in results] == ["profile", "trajectory"]
    for r in results:
        assert r["status"] == ValidateFile.FILE_ACCEPTED, r["errors"]
        assert r["errors"] == []


def test_rejected_profile(tmp_path, caplog):
    profile = testutils.write_profile_nc(
        tmp_path / "R1900001_002.nc", profile_params("144"), profile_qc={"TEMP": "A"}
    )
    results_file = tmp_path / "results.yml"
    run_main([str(profile), "--results_file", str(results_file)], caplog)

    (result,) = read_results(results_file)
    assert result["status"] == ValidateFile.FILE_REJECTED
    assert result["errors"] == ["PROFILE_TEMP_QC[1]: Value = 'A'. Expected = 'D'"]


def test_rejected_trajectory(tmp_path, caplog):
    traj = traj_d()
    traj["cycle_times"]["JULD_LAST_LOCATION"] = ([101.5, 102.6], "22")
    traj_file = testutils.write_traj_nc(tmp_path / "1900001_Rtraj.nc", traj)
    results_file = tmp_path / "results.yml"
    run_main([str(traj_file), "--results_file", str(results_file)], caplog)

    (result,) = read_results(results_file)
    assert result["status"] == ValidateFile.FILE_REJECTED
    assert result["errors"] == [
        "JULD (MC 703) / JULD_LAST_LOCATION: Inconsistent: 1 measurements; "
        "index (N_MEASUREMENT, N_CYCLE) = (4,2)"
    ]


def test_results_to_stdout(tmp_path, caplog, capsys):
    profile = testutils.write_profile_nc(
        tmp_path / "BR1900001_001.nc",
        {"DOXY": {"values": [200.0, 210.0], "qc": "11"}},
        data_type="B-Argo profile",
    )
    run_main([str(profile)], caplog)
    (result,) = yaml.safe_load(capsys.readouterr().out)
    assert result["file_type"] == "bio-profile"
    assert result["status"] == ValidateFile.FILE_ACCEPTED


def test_unreadable_and_unknown_files(tmp_path, caplog):
    not_nc = tmp_path / "notes.nc"
    not_nc.write_text("not a netCDF file\n")
    meta = testutils.write_profile_nc(
        tmp_path / "1900001_meta.nc", profile_params(), data_type="Argo meta-data"
    )
    results_file = tmp_path / "results.yml"
    run_main(
        [str(not_nc), str(meta), "--results_file", str(results_file)],
        caplog,
        ["Could not open", "Could not determine the type"],
    )

    results = read_results(results_file)
    assert [r["status"] for r in results] == [ValidateFile.FILE_REJECTED] * 2
    assert results[0]["file_type"] is None
    assert results[0]["errors"][0].startswith("Could not open")
    assert results[1]["errors"] == [
        "DATA_TYPE: Missing or not a supported Argo file type"
    ]


def test_unexpected_failure_is_reported(tmp_path, caplog, monkeypatch):
    profile = testutils.write_profile_nc(tmp_path / "R1900001_001.nc", profile_params())

    def broken_check(*args):
        raise RuntimeError("broken reader")

    monkeypatch.setattr(ValidateFile, "check_source", broken_check)
    results_file = tmp_path / "results.yml"
    run_main(
        [str(profile), "--results_file", str(results_file)],
        caplog,
        ["Problem checking"],
    )
    (result,) = read_results(results_file)
    assert result["file"] == str(profile)
    assert result["status"] == ValidateFile.FILE_REJECTED
    assert result["errors"] == ["Unexpected problem checking the file - not checked"]


def test_file_type_from_config(tmp_path, caplog):
    meta = testutils.write_profile_nc(
        tmp_path / "1900001_meta.nc", profile_params(), data_type="Argo meta-data"
    )
    config_file = tmp_path / "checker.cnf"
    config_file.write_text("[validate]\nfile_type = profile\n")
    results_file = tmp_path / "results.yml"
    run_main(
        [
            str(meta),
            "--config",
            str(config_file),
            "--file_type",
            "trajectory",
            "--results_file",
            str(results_file),
        ],
        caplog,
    )
    (result,) = read_results(results_file)
    assert result["file_type"] == "profile"
    assert result["status"] == ValidateFile.FILE_ACCEPTED


def test_missing_spec_file(tmp_path, caplog):
    profile = testutils.write_profile_nc(tmp_path / "R1900001_001.nc", profile_params())
    result = ValidateFile.main(
        [str(profile), "--spec_file", str(tmp_path / "missing.yml")]
    )
    assert result == 1


def test_bad_time_tolerance(tmp_path):
    with pytest.raises(SystemExit):
        ValidateFile.main(["x.nc", "--time_tolerance", "2.0"])


@pytest.mark.parametrize(
    "data_type,file_type",
    (
        ("Argo profile", "profile"),
        ("B-Argo profile", "bio-profile"),
        ("Argo trajectory", "trajectory"),
        ("B-Argo trajectory", "bio-trajectory"),
        ("Bio-Argo trajectory", "bio-trajectory"),
    ),
)
def test_detect_file_type(data_type, file_type):
    source = ArrayDataSource({"DATA_TYPE": data_type.ljust(16)})
    assert ValidateFile.detect_file_type(source) == file_type


def test_detect_file_type_unknown():
    with pytest.raises(ValueError):
        ValidateFile.detect_file_type(ArrayDataSource({"DATA_TYPE": "Argo meta-data"}))
    with pytest.raises(KeyError):
        ValidateFile.detect_file_type(ArrayDataSource({}))
