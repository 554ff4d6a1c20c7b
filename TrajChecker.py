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

"""Consistency checks for Argo trajectory files (core and bio)"""

import numpy as np

import CycleIndex
import ParamCheck
import TimeXRef
import Utils
from BaseLog import log_debug, log_error, log_info
from DataSource import DataSource
from ErrorTracker import ErrorTracker, Severity, ValidationReport
from FileSpec import Capabilities, FileSpec
from RefTables import RefTables

read_errors = (KeyError, IndexError, ValueError, OSError)

STATUS_NOT_SET = " "
STATUS_MISSING = "9"


def check_measurement_codes(codes: np.ndarray, tables: RefTables) -> ValidationReport:
    """MEASUREMENT_CODE values against reference table 15"""
    report = ValidationReport()
    invalid = ErrorTracker("MEASUREMENT_CODE: Invalid code", "measurements")
    obsolete = ErrorTracker("MEASUREMENT_CODE: Obsolete code", "measurements")
    deprecated = ErrorTracker(
        "MEASUREMENT_CODE: Deprecated code", "measurements", Severity.WARNING
    )
    for n, code in enumerate(codes):
        entry = tables.classify_measurement_code(int(code))
        if entry.is_deprecated:
            deprecated.increment(n)
        elif entry.is_deleted:
            obsolete.increment(n)
        elif not entry.is_valid:
            invalid.increment(n)
    for tracker in (invalid, obsolete, deprecated):
        tracker.report(report)
    return report


def check_time_series(
    name: str,
    values: np.ndarray,
    fill_value: float,
    qc: str,
    status: str,
    tables: RefTables,
    report: ValidationReport,
) -> None:
    """JULD (or JULD_ADJUSTED) against its _QC and _STATUS, per measurement"""
    unit = "measurements"
    inv_qc = ErrorTracker(f"{name}_QC: Invalid QC code", unit)
    dep_qc = ErrorTracker(f"{name}_QC: Deprecated QC code", unit, Severity.WARNING)
    inv_status = ErrorTracker(f"{name}_STATUS: Invalid status code", unit)
    dep_status = ErrorTracker(
        f"{name}_STATUS: Deprecated status code", unit, Severity.WARNING
    )
    not_set = ErrorTracker(f"{name}_QC/{name}_STATUS: Inconsistent ' '", unit)
    missing = ErrorTracker(f"{name}_QC/{name}_STATUS: Inconsistent '9'", unit)
    fill_qc = ErrorTracker(f"{name}: FillValue where QC is not ' ' or '9'", unit)
    data_qc = ErrorTracker(f"{name}: Not FillValue where QC is ' ' or '9'", unit)
    nan = ErrorTracker(f"{name}: NaN", unit)

    for n, value in enumerate(values):
        q = qc[n]
        s = status[n]
        for code, table, inv, dep in (
            (q, tables.qc_flag, inv_qc, dep_qc),
            (s, tables.status_flag, inv_status, dep_status),
        ):
            if code == STATUS_NOT_SET:
                continue
            entry = table.classify(code)
            if not entry.is_valid:
                inv.increment(n)
            elif entry.is_deprecated:
                dep.increment(n)

        if (q == STATUS_NOT_SET) != (s == STATUS_NOT_SET):
            not_set.increment(n)
        if (q == STATUS_MISSING) != (s == STATUS_MISSING):
            missing.increment(n)

        if np.isnan(value):
            nan.increment(n)
        if Utils.is_missing(fill_value, value):
            if q not in (STATUS_NOT_SET, STATUS_MISSING):
                fill_qc.increment(n)
        elif q in (STATUS_NOT_SET, STATUS_MISSING):
            data_qc.increment(n)

    for tracker in (inv_qc, dep_qc, inv_status, dep_status, not_set, missing, fill_qc, data_qc, nan):
        tracker.report(report)


def check_position(
    lat: np.ndarray,
    lat_fill: float,
    lon: np.ndarray,
    lon_fill: float,
    position_qc: str,
    position_accuracy: str,
    tables: RefTables,
) -> ValidationReport:
    """LATITUDE/LONGITUDE against POSITION_QC, and the POSITION_QC and
    POSITION_ACCURACY codes, per measurement
    """
    report = ValidationReport()
    unit = "measurements"
    inv_qc = ErrorTracker("POSITION_QC: Invalid QC code", unit)
    dep_qc = ErrorTracker("POSITION_QC: Deprecated QC code", unit, Severity.WARNING)
    inv_acc = ErrorTracker("POSITION_ACCURACY: Invalid code", unit)
    dep_acc = ErrorTracker(
        "POSITION_ACCURACY: Deprecated code", unit, Severity.WARNING
    )
    fill_qc = ErrorTracker(
        "LATITUDE/LONGITUDE: FillValue where POSITION_QC is not ' ' or '9'", unit
    )
    data_qc = ErrorTracker(
        "LATITUDE/LONGITUDE: Not FillValue where POSITION_QC is ' ' or '9'", unit
    )

    for n in range(len(lat)):
        q = position_qc[n]
        for code, table, inv, dep in (
            (q, tables.qc_flag, inv_qc, dep_qc),
            (position_accuracy[n], tables.location_class, inv_acc, dep_acc),
        ):
            if code == STATUS_NOT_SET:
                continue
            entry = table.classify(code)
            if not entry.is_valid:
                inv.increment(n)
            elif entry.is_deprecated:
                dep.increment(n)

        if Utils.is_missing(lat_fill, lat[n]) or Utils.is_missing(lon_fill, lon[n]):
            if q not in (STATUS_NOT_SET, STATUS_MISSING):
                fill_qc.increment(n)
        elif q in (STATUS_NOT_SET, STATUS_MISSING):
            data_qc.increment(n)

    for tracker in (inv_qc, dep_qc, inv_acc, dep_acc, fill_qc, data_qc):
        tracker.report(report)
    return report


def check_cycle_variables(
    grounded: str | None,
    mission_numbers: np.ndarray,
    mission_fill: int | None,
    data_modes: str,
    tables: RefTables,
) -> ValidationReport:
    """GROUNDED and CONFIG_MISSION_NUMBER, per cycle

    grounded is None for files without GROUNDED.  The mission number of the
    first cycle may be unset in any mode, the others only outside delayed mode.
    """
    report = ValidationReport()
    inv_grounded = ErrorTracker("GROUNDED: Invalid code", "cycles")
    dep_grounded = ErrorTracker("GROUNDED: Deprecated code", "cycles", Severity.WARNING)
    inv_mission = ErrorTracker("CONFIG_MISSION_NUMBER: Invalid mission number", "cycles")
    unset_mission = ErrorTracker(
        "CONFIG_MISSION_NUMBER: FillValue where DATA_MODE is 'D'", "cycles"
    )

    if grounded is not None:
        for i, code in enumerate(grounded):
            entry = tables.grounded.classify(code)
            if not entry.is_valid:
                inv_grounded.increment(i)
            elif entry.is_deprecated:
                dep_grounded.increment(i)

    for i in range(1, len(mission_numbers)):
        mission = int(mission_numbers[i])
        if mission == mission_fill:
            if data_modes[i] == "D":
                unset_mission.increment(i)
        elif mission < 1:
            inv_mission.increment(i)

    for tracker in (inv_grounded, dep_grounded, inv_mission, unset_mission):
        tracker.report(report)
    return report


def _read_time(source, name, n_meas):
    """(values, fill, qc, status) for JULD or JULD_ADJUSTED"""
    values = source.read(name).astype(np.float64)
    fill_value = source.fill_value(name)
    qc = source.read_chars(f"{name}_QC")
    status = source.read_chars(f"{name}_STATUS")
    if not len(values) == len(qc) == len(status) == n_meas:
        raise ValueError(f"{name} variables are not N_MEASUREMENT long")
    return values, fill_value, qc, status


def final_measurement_times(
    source: DataSource,
    final_cycles: list[int | None],
    codes: np.ndarray,
    measurement_modes: str,
    tables: RefTables,
    report: ValidationReport,
) -> list[TimeXRef.MeasurementTime]:
    """Checks JULD and JULD_ADJUSTED and builds the final time per measurement

    The final time is JULD_ADJUSTED (with its status) where set, JULD elsewhere.

    Raises:
    KeyError / ValueError if the JULD variables cannot be read
    """
    n_meas = len(codes)
    juld, juld_fill, juld_qc, juld_status = _read_time(source, "JULD", n_meas)
    check_time_series("JULD", juld, juld_fill, juld_qc, juld_status, tables, report)

    adj = None
    if source.has_variable("JULD_ADJUSTED"):
        adj = _read_time(source, "JULD_ADJUSTED", n_meas)
        check_time_series("JULD_ADJUSTED", *adj, tables, report)

    adj_in_rt = ErrorTracker(
        "JULD_ADJUSTED: Not FillValue where DATA_MODE is 'R'", "measurements"
    )
    measurements = []
    for n in range(n_meas):
        if adj is not None and not Utils.is_missing(adj[1], adj[0][n]):
            if measurement_modes[n] == "R" and final_cycles[n] not in (
                None,
                CycleIndex.LAUNCH_CYCLE,
            ):
                adj_in_rt.increment(n)
            time, status = float(adj[0][n]), adj[3][n]
        else:
            time, status = float(juld[n]), juld_status[n]
        measurements.append(
            TimeXRef.MeasurementTime(final_cycles[n], int(codes[n]), time, status)
        )
    adj_in_rt.report(report)
    return measurements


def read_position(source: DataSource, n_meas: int, tables: RefTables) -> ValidationReport:
    """Reads the position variables and runs check_position()

    Raises:
    KeyError / ValueError if the variables cannot be read
    """
    lat = source.read("LATITUDE").astype(np.float64)
    lon = source.read("LONGITUDE").astype(np.float64)
    position_qc = source.read_chars("POSITION_QC")
    if source.has_variable("POSITION_ACCURACY"):
        position_accuracy = source.read_chars("POSITION_ACCURACY")
    else:
        position_accuracy = STATUS_NOT_SET * n_meas
    if not len(lat) == len(lon) == len(position_qc) == len(position_accuracy) == n_meas:
        raise ValueError("Position variables are not N_MEASUREMENT long")
    return check_position(
        lat,
        source.fill_value("LATITUDE"),
        lon,
        source.fill_value("LONGITUDE"),
        position_qc,
        position_accuracy,
        tables,
    )


def read_cycle_variables(
    source: DataSource, data_modes: str, tables: RefTables, caps: Capabilities
) -> ValidationReport:
    """Reads GROUNDED and CONFIG_MISSION_NUMBER and runs check_cycle_variables()

    Raises:
    KeyError / ValueError if the variables cannot be read
    """
    n_cycle = len(data_modes)
    grounded = None
    if caps.has_grounded:
        if source.has_variable("GROUNDED"):
            grounded = source.read_chars("GROUNDED")[:n_cycle]
        else:
            log_debug("GROUNDED not in file - not checked")

    mission_numbers = np.array([], dtype=np.int32)
    mission_fill = None
    if source.has_variable("CONFIG_MISSION_NUMBER"):
        mission_numbers = source.read("CONFIG_MISSION_NUMBER")[:n_cycle]
        mission_fill = source.fill_value("CONFIG_MISSION_NUMBER")
    else:
        log_debug("CONFIG_MISSION_NUMBER not in file - not checked")

    return check_cycle_variables(
        grounded, mission_numbers, mission_fill, data_modes, tables
    )


def read_cycle_times(
    source: DataSource, tables: RefTables, n_cycle: int, report: ValidationReport
) -> dict[str, TimeXRef.CycleTimes]:
    """Reads the per-cycle event time variables named in the event table"""
    cycle_times_d = {}
    for entry in tables.event_times:
        var = entry.variable
        if var in cycle_times_d:
            continue
        if not source.has_variable(var):
            # Required variables are established by the format verification
            log_debug(f"{var} not in file - not checked")
            continue
        try:
            values = source.read(var).astype(np.float64)
            status = source.read_chars(f"{var}_STATUS")
            if not len(values) == len(status) == n_cycle:
                raise ValueError(f"{var} is not N_CYCLE long")
        except read_errors:
            log_error(f"Could not read {var}", "exc")
            report.add_error(f"{var}: Could not be read - not checked")
            continue
        cycle_times_d[var] = TimeXRef.CycleTimes(values, status, source.fill_value(var))
    return cycle_times_d


def param_modes(
    source: DataSource, params: list[str], measurement_modes: str
) -> dict[str, str]:
    """Data mode per measurement for each parameter

    TRAJECTORY_PARAMETER_DATA_MODE[n, i] applies where set, the cycle's
    DATA_MODE elsewhere.
    """
    modes_d = {p: measurement_modes for p in params}
    if not (
        source.has_variable("TRAJECTORY_PARAMETER_DATA_MODE")
        and source.has_variable("TRAJECTORY_PARAMETERS")
    ):
        return modes_d

    names = source.read_strings("TRAJECTORY_PARAMETERS")
    tpdm = source.read("TRAJECTORY_PARAMETER_DATA_MODE")
    resolved = set()
    for i, name in enumerate(names):
        if name not in modes_d or name in resolved:
            continue
        resolved.add(name)
        column = "".join(
            source_mode if source_mode.strip() else cycle_mode
            for source_mode, cycle_mode in zip(
                _column_chars(tpdm, i), measurement_modes
            )
        )
        modes_d[name] = column
    return modes_d


def _column_chars(tpdm: np.ndarray, i: int) -> str:
    column = tpdm[:, i]
    if column.dtype.kind == "S":
        return "".join(c.decode("latin-1") or " " for c in column)
    return "".join(c or " " for c in column)


def read_traj_series(
    source: DataSource, param: str, modes: str, caps: Capabilities
) -> ParamCheck.ParamSeries:
    fill_value = source.fill_value(param)
    values = Utils.reduce_to_samples(source.read(param), fill_value)
    qc = source.read_chars(f"{param}_QC")
    if len(qc) != len(values) or len(modes) != len(values):
        raise ValueError(f"{param} variables are not N_MEASUREMENT long")
    series = ParamCheck.ParamSeries(param, values, qc, fill_value, modes)
    if caps.has_adjusted_triad(param) and source.has_variable(f"{param}_ADJUSTED"):
        series.adj_fill_value = source.fill_value(f"{param}_ADJUSTED")
        series.adj_values = Utils.reduce_to_samples(
            source.read(f"{param}_ADJUSTED"), series.adj_fill_value
        )
        series.adj_qc = source.read_chars(f"{param}_ADJUSTED_QC")
        series.err_fill_value = source.fill_value(f"{param}_ADJUSTED_ERROR")
        series.adj_errors = Utils.reduce_to_samples(
            source.read(f"{param}_ADJUSTED_ERROR"), series.err_fill_value
        )
        if not len(series.adj_values) == len(series.adj_qc) == len(series.adj_errors) == len(values):
            raise ValueError(f"{param} adjusted variables are not N_MEASUREMENT long")
    return series


def check_traj_file(
    source: DataSource,
    spec: FileSpec,
    tables: RefTables,
    caps: Capabilities,
    tolerance: float = TimeXRef.DEFAULT_TOLERANCE,
) -> ValidationReport:
    """Runs the cycle, time, position and parameter checks on a trajectory file

    Inputs:
    source - access to the file's variables
    spec - parameter specification
    tables - reference tables
    caps - capabilities of the file type
    tolerance - largest acceptable difference between matching times (days)

    Returns:
    ValidationReport
    """
    report = ValidationReport()

    try:
        n_cycle = source.dimension_length("N_CYCLE")
        cycle_index = source.read("CYCLE_NUMBER_INDEX")
        cycle_fill = source.fill_value("CYCLE_NUMBER_INDEX")
        meas_cycle = source.read("CYCLE_NUMBER")
        codes = source.read("MEASUREMENT_CODE")
        data_modes = source.read_chars("DATA_MODE")
        cycle_index_adj = meas_cycle_adj = None
        if caps.has_adjusted_cycle_numbers:
            if source.has_variable("CYCLE_NUMBER_INDEX_ADJUSTED"):
                cycle_index_adj = source.read("CYCLE_NUMBER_INDEX_ADJUSTED")
            if source.has_variable("CYCLE_NUMBER_ADJUSTED"):
                meas_cycle_adj = source.read("CYCLE_NUMBER_ADJUSTED")
    except read_errors:
        log_error("Could not read the cycle number variables", "exc")
        report.add_error("CYCLE_NUMBER: Could not be read - no trajectory checks performed")
        return report

    data_modes, mode_report = CycleIndex.check_data_modes(
        data_modes[:n_cycle], tables.data_modes
    )
    report.extend(mode_report)
    log_info(f"Overall data mode {CycleIndex.overall_data_mode(data_modes)}")

    cycles = CycleIndex.reconcile_cycles(
        cycle_index, cycle_index_adj, meas_cycle, meas_cycle_adj, data_modes, cycle_fill
    )
    report.extend(cycles.report)

    report.extend(check_measurement_codes(codes, tables))

    try:
        measurements = final_measurement_times(
            source,
            cycles.final_cycles,
            codes,
            cycles.measurement_modes,
            tables,
            report,
        )
    except read_errors:
        log_error("Could not read JULD", "exc")
        report.add_error("JULD: Could not be read - time checks not performed")
        measurements = None

    if not cycles.passed:
        report.add_error("CYCLE_NUMBER errors exist. Per-cycle time checks skipped")
    elif measurements is not None and caps.has_cycle_times:
        cycle_times_d = read_cycle_times(source, tables, n_cycle, report)
        report.extend(
            TimeXRef.check_cycle_times(
                cycles.cycle2index,
                measurements,
                cycle_times_d,
                tables.event_times,
                tolerance,
            )
        )

    if source.has_variable("LATITUDE") and source.has_variable("LONGITUDE"):
        try:
            report.extend(read_position(source, len(codes), tables))
        except read_errors:
            log_error("Could not read the position variables", "exc")
            report.add_error("LATITUDE/LONGITUDE: Could not be read - positions not checked")
    else:
        log_debug("LATITUDE/LONGITUDE not in file - positions not checked")

    if source.has_variable("TRAJECTORY_PARAMETERS"):
        try:
            names = source.read_strings("TRAJECTORY_PARAMETERS")
        except read_errors:
            log_error("Could not read TRAJECTORY_PARAMETERS", "exc")
            report.add_error("TRAJECTORY_PARAMETERS: Could not be read")
            names = []
        params, names_report = ParamCheck.check_param_names(
            names, spec, "TRAJECTORY_PARAMETERS"
        )
        report.extend(names_report)
    else:
        params = [p for p in spec.physical_param_names() if source.has_variable(p)]

    try:
        modes_d = param_modes(source, params, cycles.measurement_modes)
    except read_errors:
        log_error("Could not read TRAJECTORY_PARAMETER_DATA_MODE", "exc")
        report.add_error("TRAJECTORY_PARAMETER_DATA_MODE: Could not be read - cycle data modes used")
        modes_d = {p: cycles.measurement_modes for p in params}

    for param in params:
        if not caps.checks_param(param):
            continue
        if not source.has_variable(param):
            report.add_error(f"{param}: In TRAJECTORY_PARAMETERS but not in the file")
            continue
        try:
            series = read_traj_series(source, param, modes_d[param], caps)
        except read_errors:
            log_error(f"Could not read {param}", "exc")
            report.add_error(f"{param}: Could not be read - not checked")
            continue
        result = ParamCheck.check_param(series, tables.qc_flag, caps)
        report.extend(result.report)

    try:
        report.extend(read_cycle_variables(source, data_modes, tables, caps))
    except read_errors:
        log_error("Could not read GROUNDED/CONFIG_MISSION_NUMBER", "exc")
        report.add_error("CONFIG_MISSION_NUMBER: Could not be read - not checked")

    log_debug(f"{len(params)} parameters checked over {len(meas_cycle)} measurements")
    return report
