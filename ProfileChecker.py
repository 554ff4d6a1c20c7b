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

"""Consistency checks for Argo profile files (core and bio)"""

import ParamCheck
import QC
import Utils
from BaseLog import log_debug, log_error
from CycleIndex import INVALID_MODE, check_data_modes
from DataSource import DataSource
from ErrorTracker import ErrorTracker, Severity, ValidationReport
from FileSpec import Capabilities, FileSpec
from RefTables import RefTables

# Data modes in order of processing
mode_rank_d = {"R": 0, "A": 1, "D": 2}

# Failures reading a variable that only abandon the current parameter
read_errors = (KeyError, IndexError, ValueError, OSError)


def resolve_param_modes(
    data_mode: str, param_data_modes: str | None, n_params: int, p: int
) -> tuple[str, ValidationReport]:
    """Data mode of each parameter of profile p

    PARAMETER_DATA_MODE[p, i] applies where set, DATA_MODE[p] elsewhere.

    Returns:
    (modes, report) - one mode character per parameter
    """
    report = ValidationReport()
    where = f"[{p + 1}]"
    if param_data_modes is None:
        return data_mode * n_params, report

    param_data_modes = param_data_modes[:n_params].ljust(n_params)
    if not param_data_modes.strip():
        if data_mode != "R":
            report.add_warning(
                f"PARAMETER_DATA_MODE{where}: Not set where DATA_MODE is '{data_mode}'"
            )
        return data_mode * n_params, report

    modes = []
    for i, mode in enumerate(param_data_modes):
        if mode == " ":
            modes.append(data_mode)
        elif mode in mode_rank_d:
            modes.append(mode)
        else:
            report.add_error(
                f"PARAMETER_DATA_MODE[{p + 1},{i + 1}]: Invalid data mode '{mode}'"
            )
            modes.append(INVALID_MODE)

    ranked = [m for m in modes if m in mode_rank_d]
    if ranked and data_mode in mode_rank_d:
        highest = max(ranked, key=lambda m: mode_rank_d[m])
        if highest != data_mode:
            report.add_error(
                f"DATA_MODE{where}: '{data_mode}' inconsistent with PARAMETER_DATA_MODE (most advanced '{highest}')"
            )
    return "".join(modes), report


def read_param_series(
    source: DataSource, param: str, p: int, mode: str, caps: Capabilities
) -> ParamCheck.ParamSeries:
    """Reads one parameter of profile p, reduced to one value per level

    Raises:
    KeyError for a missing variable, ValueError for inconsistent lengths
    """
    fill_value = source.fill_value(param)
    values = Utils.reduce_to_samples(source.read(param, p), fill_value)
    qc = source.read_chars(f"{param}_QC", p)
    if len(qc) != len(values):
        raise ValueError(f"{param}_QC has {len(qc)} levels, {param} has {len(values)}")

    series = ParamCheck.ParamSeries(
        param, values, qc, fill_value, mode * len(values), where=f"[{p + 1}]"
    )

    if caps.has_adjusted_triad(param) and source.has_variable(f"{param}_ADJUSTED"):
        adj_name = f"{param}_ADJUSTED"
        err_name = f"{param}_ADJUSTED_ERROR"
        series.adj_fill_value = source.fill_value(adj_name)
        series.adj_values = Utils.reduce_to_samples(
            source.read(adj_name, p), series.adj_fill_value
        )
        series.adj_qc = source.read_chars(f"{adj_name}_QC", p)
        series.err_fill_value = source.fill_value(err_name)
        series.adj_errors = Utils.reduce_to_samples(
            source.read(err_name, p), series.err_fill_value
        )
        if not len(series.adj_values) == len(series.adj_qc) == len(series.adj_errors) == len(values):
            raise ValueError(f"{param} adjusted variables differ in number of levels")
    return series


def check_profile_qc(
    source: DataSource,
    param: str,
    p: int,
    result: ParamCheck.ParamResult,
    tables: RefTables,
    report: ValidationReport,
) -> None:
    """Compare PROFILE_<PARAM>_QC[p] with the grade derived from the level QC"""
    var = f"PROFILE_{param}_QC"
    if not source.has_variable(var):
        log_debug(f"No {var} - skipping")
        return
    where = f"{var}[{p + 1}]"
    if result.failed:
        report.add_warning(f"{where}: not checked due to errors in {param} data")
        return

    stored = source.read_chars(var, p)[:1] or " "
    entry = tables.profile_qc_flag.classify(stored)
    if not entry.is_valid:
        report.add_error(f"{where}: Invalid profile QC code '{stored}'")
        return
    if entry.is_deprecated:
        report.add_warning(f"{where}: Deprecated profile QC code '{stored}'")

    expected = QC.expected_profile_qc(result.aggregate_qc)
    if stored != expected:
        report.add_error(f"{where}: Value = '{stored}'. Expected = '{expected}'")


def check_station_qc(qc: str, name: str, tables: RefTables) -> ValidationReport:
    """JULD_QC or POSITION_QC, one code per profile, against the QC flag table"""
    report = ValidationReport()
    invalid = ErrorTracker(f"{name}: Invalid QC code", "profiles")
    deprecated = ErrorTracker(f"{name}: Deprecated QC code", "profiles", Severity.WARNING)
    for p, code in enumerate(qc):
        entry = tables.qc_flag.classify(code)
        if not entry.is_valid:
            invalid.increment(p)
        elif entry.is_deprecated:
            deprecated.increment(p)
    invalid.report(report)
    deprecated.report(report)
    return report


def check_profile_file(
    source: DataSource, spec: FileSpec, tables: RefTables, caps: Capabilities
) -> ValidationReport:
    """Runs the parameter and profile QC checks over every profile

    Inputs:
    source - access to the file's variables
    spec - parameter specification
    tables - reference tables
    caps - capabilities of the file type

    Returns:
    ValidationReport
    """
    report = ValidationReport()

    try:
        n_prof = source.dimension_length("N_PROF")
        data_modes = source.read_chars("DATA_MODE")
    except read_errors:
        log_error("Could not read N_PROF/DATA_MODE", "exc")
        report.add_error("DATA_MODE: Could not be read - no profile checks performed")
        return report

    data_modes, mode_report = check_data_modes(
        data_modes[:n_prof], tables.data_modes, unit="profiles"
    )
    report.extend(mode_report)

    for name in ("JULD_QC", "POSITION_QC"):
        if not source.has_variable(name):
            log_debug(f"{name} not in file - not checked")
            continue
        try:
            report.extend(check_station_qc(source.read_chars(name)[:n_prof], name, tables))
        except read_errors:
            log_error(f"Could not read {name}", "exc")
            report.add_error(f"{name}: Could not be read - not checked")

    has_param_data_mode = source.has_variable("PARAMETER_DATA_MODE")

    for p in range(n_prof):
        try:
            station_params = source.read_strings("STATION_PARAMETERS", p)
            param_data_modes = (
                source.read_chars("PARAMETER_DATA_MODE", p)
                if has_param_data_mode
                else None
            )
        except read_errors:
            log_error(f"Could not read STATION_PARAMETERS for profile {p + 1}", "exc")
            report.add_error(
                f"STATION_PARAMETERS[{p + 1}]: Could not be read - profile not checked"
            )
            continue

        # Positions in STATION_PARAMETERS index PARAMETER_DATA_MODE
        modes, pdm_report = resolve_param_modes(
            data_modes[p], param_data_modes, len(station_params), p
        )
        report.extend(pdm_report)
        params, names_report = ParamCheck.check_param_names(
            station_params, spec, f"STATION_PARAMETERS[{p + 1}]"
        )
        report.extend(names_report)
        # A repeated name takes the mode of its first position
        param_modes = {}
        for i, name in enumerate(station_params):
            if name in params and name not in param_modes:
                param_modes[name] = modes[i]

        for param in params:
            if not caps.checks_param(param):
                continue
            if not source.has_variable(param):
                report.add_error(
                    f"{param}[{p + 1}]: In STATION_PARAMETERS but not in the file"
                )
                continue
            try:
                series = read_param_series(source, param, p, param_modes[param], caps)
            except read_errors:
                log_error(f"Could not read {param} for profile {p + 1}", "exc")
                report.add_error(f"{param}[{p + 1}]: Could not be read - not checked")
                continue

            result = ParamCheck.check_param(series, tables.qc_flag, caps)
            report.extend(result.report)
            check_profile_qc(source, param, p, result, tables, report)

        log_debug(
            f"Profile {p + 1}: {len(params)} parameters, "
            f"{sum(m in 'AD' for m in modes)} adjusted"
        )

    return report
