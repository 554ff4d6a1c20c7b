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

"""Checks Argo profile and trajectory netCDF files for internal consistency

Writes a YAML list of per-file results (status, errors, warnings) to
--results_file, or to stdout.
"""

import dataclasses
import pdb
import sys
import time
import traceback

import yaml

import BaseOpts
import DataSource
import FileSpec
import ProfileChecker
import RefTables
import TrajChecker
from BaseLog import BaseLogger, log_critical, log_error, log_info, log_warning
from ErrorTracker import ValidationReport

DEBUG_PDB = False

FILE_ACCEPTED = "FILE-ACCEPTED"
FILE_REJECTED = "FILE-REJECTED"


def DEBUG_PDB_F() -> None:
    """Enter the debugger on exceptions"""
    if DEBUG_PDB:
        _, __, traceb = sys.exc_info()
        traceback.print_exc()
        pdb.post_mortem(traceb)


def load_additional_arguments():
    """Defines and extends arguments related to this module"""
    return (
        # Add this module to these options defined in BaseOpts
        [],
        # Option groups
        {},
        # Additional arguments
        {
            "netcdf_files": BaseOpts.options_t(
                [],
                ("ValidateFile",),
                ("netcdf_files",),
                BaseOpts.FullPath,
                {
                    "help": "Argo netCDF file(s) to check",
                    "nargs": "+",
                },
            ),
        },
    )


@dataclasses.dataclass
class FileResult:
    filename: str
    file_type: str | None
    report: ValidationReport

    @property
    def status(self) -> str:
        return FILE_ACCEPTED if self.report.passed else FILE_REJECTED

    def as_dict(self) -> dict:
        return {
            "file": self.filename,
            "file_type": self.file_type,
            "status": self.status,
            **self.report.as_dict(),
        }


def detect_file_type(source: DataSource.DataSource) -> str:
    """Determine the file type from the DATA_TYPE variable

    Raises:
    KeyError if there is no DATA_TYPE, ValueError if it is not recognized
    """
    data_type = source.read_strings("DATA_TYPE")[0].lower()
    is_bio = data_type.startswith("b-") or data_type.startswith("bio")
    if "traj" in data_type:
        return "bio-trajectory" if is_bio else "trajectory"
    if "profile" in data_type:
        return "bio-profile" if is_bio else "profile"
    raise ValueError(f"Unknown DATA_TYPE '{data_type}'")


def check_source(
    source: DataSource.DataSource,
    spec: FileSpec.FileSpec,
    tables: RefTables.RefTables,
    file_type: str,
    tolerance: float,
) -> ValidationReport:
    """Runs the checks for file_type over an open data source"""
    caps = spec.capabilities(file_type)
    if caps.is_trajectory:
        return TrajChecker.check_traj_file(source, spec, tables, caps, tolerance)
    return ProfileChecker.check_profile_file(source, spec, tables, caps)


def validate_file(
    filename: str,
    spec: FileSpec.FileSpec,
    tables: RefTables.RefTables,
    file_type: str = "auto",
    tolerance: float = 1.0e-6,
) -> FileResult:
    """Checks one netCDF file

    Returns:
    FileResult - a file that cannot be opened or typed is rejected with one error
    """
    report = ValidationReport()
    try:
        source = DataSource.NetCDFDataSource(filename)
    except OSError:
        log_error(f"Could not open {filename}", "exc")
        report.add_error(f"Could not open {filename} as a netCDF file")
        return FileResult(filename, None, report)

    with source:
        if file_type == "auto":
            try:
                file_type = detect_file_type(source)
            except (KeyError, IndexError, ValueError):
                log_warning(f"Could not determine the type of {filename}", "exc")
                report.add_error("DATA_TYPE: Missing or not a supported Argo file type")
                return FileResult(filename, None, report)
        log_info(f"Checking {filename} as {file_type}")
        report.extend(check_source(source, spec, tables, file_type, tolerance))

    return FileResult(filename, file_type, report)


def main(cmdline_args: list[str] = sys.argv[1:]) -> int:
    """Checks each file named on the command line

    Returns:
        0 for success (although individual files may be rejected).
        Non-zero if the specification or reference tables could not be loaded.

    Raises:
        Any exceptions raised are considered critical errors and not expected
    """
    add_to_arguments, add_option_groups, additional_arguments = (
        load_additional_arguments()
    )

    base_opts = BaseOpts.BaseOptions(
        "Checks Argo profile and trajectory files for internal consistency",
        additional_arguments=additional_arguments,
        add_option_groups=add_option_groups,
        add_to_arguments=add_to_arguments,
        cmdline_args=cmdline_args,
        calling_module="ValidateFile",
    )
    BaseLogger(base_opts)

    global DEBUG_PDB
    DEBUG_PDB = base_opts.debug_pdb

    try:
        spec = FileSpec.load_file_spec(base_opts.spec_file)
        tables = RefTables.load_ref_tables(base_opts.tables_file)
    except (OSError, yaml.YAMLError, ValueError):
        DEBUG_PDB_F()
        log_critical("Could not load the parameter specification or reference tables")
        return 1

    results = []
    for filename in base_opts.netcdf_files:
        try:
            result = validate_file(
                filename,
                spec,
                tables,
                base_opts.file_type,
                base_opts.time_tolerance,
            )
        except Exception:
            DEBUG_PDB_F()
            log_error(f"Problem checking {filename}", "exc")
            report = ValidationReport()
            report.add_error("Unexpected problem checking the file - not checked")
            result = FileResult(filename, None, report)
        log_info(
            f"{filename}: {result.status} ({len(result.report.errors)} errors, "
            f"{len(result.report.warnings)} warnings)"
        )
        results.append(result.as_dict())

    if base_opts.results_file:
        with open(base_opts.results_file, "w") as fo:
            yaml.safe_dump(results, fo, sort_keys=False)
    else:
        yaml.safe_dump(results, sys.stdout, sort_keys=False)

    log_info(
        "Finished processing "
        + time.strftime("%H:%M:%S %d %b %Y %Z", time.gmtime(time.time()))
    )
    return 0


if __name__ == "__main__":
    retval = 0
    try:
        retval = main()
    except SystemExit:
        pass
    except Exception:
        DEBUG_PDB_F()
        sys.stderr.write(f"Exception in main ({traceback.format_exc()})\n")

    sys.exit(retval)
