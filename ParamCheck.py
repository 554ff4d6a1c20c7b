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

"""Consistency checks between <PARAM>, its QC and its adjusted variables

Phase 1 checks each sample's value against its QC code.  Phase 2, run only
when phase 1 is clean, checks the adjusted value, adjusted QC and adjusted
error against the raw value and the data mode.
"""

import dataclasses
import enum

import numpy as np

import QC
from BaseLog import log_debug
from ErrorTracker import ErrorTracker, Severity, ValidationReport
from FileSpec import Capabilities
from RefTables import CodeTable
from Utils import is_missing


class Presence(enum.Enum):
    """State of one field of one sample"""

    MISSING = "missing"
    PRESENT = "present"
    INVALID = "invalid"  # NaN

    @classmethod
    def of(cls, value: float, fill_value: float) -> "Presence":
        if np.isnan(value):
            return cls.INVALID
        if is_missing(fill_value, value):
            return cls.MISSING
        return cls.PRESENT

    @property
    def is_present(self) -> bool:
        """NaN is treated as missing data for the cross-field rules"""
        return self is Presence.PRESENT


@dataclasses.dataclass
class ParamSeries:
    """One parameter's samples, already reduced to one value per sample

    modes is a sequence of one data mode character per sample.  The adjusted
    arrays are None when the file has no adjusted variables for the parameter.
    where is appended to variable names in messages (e.g. "[3]" for profile 3).
    """

    name: str
    values: np.ndarray
    qc: str
    fill_value: float
    modes: str
    adj_values: np.ndarray | None = None
    adj_qc: str | None = None
    adj_fill_value: float | None = None
    adj_errors: np.ndarray | None = None
    err_fill_value: float | None = None
    where: str = ""

    def var(self, suffix: str = "") -> str:
        return f"{self.name}{suffix}{self.where}"

    @property
    def has_adjusted(self) -> bool:
        return (
            self.adj_values is not None
            and self.adj_qc is not None
            and self.adj_errors is not None
        )


@dataclasses.dataclass
class ParamResult:
    report: ValidationReport
    raw_failed: bool
    adjusted_checked: bool
    adjusted_failed: bool
    # Per-sample QC used for the profile QC - adjusted QC for 'A'/'D' samples
    aggregate_qc: str

    @property
    def failed(self) -> bool:
        return self.raw_failed or self.adjusted_failed


@dataclasses.dataclass(frozen=True)
class AdjustedRule:
    """Constraints on the adjusted fields for one combination of
    (raw presence, adjusted presence, data mode)

    adj_qc_allowed / adj_qc_forbidden - None if unconstrained
    error_presence - required presence of the adjusted error, None if unconstrained
    combination_error - when set, the combination itself is an error
    situation - describes the combination in messages
    """

    situation: str
    adj_qc_allowed: tuple | None = None
    adj_qc_forbidden: tuple | None = None
    error_presence: Presence | None = None
    combination_error: str | None = None


_missing_missing = AdjustedRule(
    "PARAM and PARAM_ADJUSTED are FillValue",
    adj_qc_allowed=(QC.QC_MISSING,),
    error_presence=Presence.MISSING,
)
_missing_present = AdjustedRule(
    "PARAM is FillValue",
    adj_qc_allowed=(QC.QC_MISSING,),
    error_presence=Presence.MISSING,
    combination_error="Not FillValue where PARAM is FillValue",
)
_present_missing = AdjustedRule(
    "PARAM_ADJUSTED is FillValue",
    adj_qc_allowed=QC.bad_or_missing_qc_values,
    error_presence=Presence.MISSING,
)

# Keyed by (raw value present, adjusted value present, data mode)
adjusted_rules = {
    (False, False, "A"): _missing_missing,
    (False, False, "D"): _missing_missing,
    (False, True, "A"): _missing_present,
    (False, True, "D"): _missing_present,
    (True, False, "A"): _present_missing,
    (True, False, "D"): _present_missing,
    (True, True, "A"): AdjustedRule(
        "PARAM_ADJUSTED is not FillValue",
        adj_qc_forbidden=QC.bad_or_missing_qc_values,
    ),
    (True, True, "D"): AdjustedRule(
        "PARAM_ADJUSTED is not FillValue",
        adj_qc_forbidden=QC.bad_or_missing_qc_values,
        error_presence=Presence.PRESENT,
    ),
}

# In real-time mode the adjusted QC may only hold these
real_time_adj_qc_values = (QC.QC_NOT_MEASURED, QC.QC_NO_CHANGE, QC.QC_MISSING)


def _quoted(codes) -> str:
    return " or ".join(f"'{c}'" for c in codes)


class _Trackers:
    """Creates trackers on first use, reporting them in creation order"""

    def __init__(self, unit: str) -> None:
        self.unit = unit
        self.trackers_d: dict[str, ErrorTracker] = {}

    def __call__(self, subject: str, severity: Severity = Severity.ERROR):
        if subject not in self.trackers_d:
            self.trackers_d[subject] = ErrorTracker(subject, self.unit, severity)
        return self.trackers_d[subject]

    def report(self, report: ValidationReport) -> bool:
        """Returns True if any error (not warning) was reported"""
        failed = False
        for tracker in self.trackers_d.values():
            if tracker.report(report) and tracker.severity is Severity.ERROR:
                failed = True
        return failed


def check_raw(
    series: ParamSeries, qc_table: CodeTable, caps: Capabilities
) -> tuple[bool, ValidationReport]:
    """Phase 1 - raw value against its QC code, per sample

    Returns:
    (failed, report)
    """
    report = ValidationReport()
    track = _Trackers(caps.sample_unit)
    qc_var = series.var("_QC")
    allow_noqc = caps.allow_noqc(series.name)

    for k, value in enumerate(series.values):
        qc = series.qc[k]
        presence = Presence.of(value, series.fill_value)
        if presence is Presence.INVALID:
            track(f"{series.var()}: NaN").increment(k)

        if qc == QC.QC_NOT_MEASURED:
            if presence.is_present:
                track(f"{series.var()}: Not FillValue where QC is ' '").increment(k)
            continue

        entry = qc_table.classify(qc)
        if not entry.is_valid:
            track(f"{qc_var}: Invalid QC code").increment(k)
            continue
        if entry.is_deprecated:
            track(f"{qc_var}: Deprecated QC code", Severity.WARNING).increment(k)

        if not presence.is_present:
            if qc != QC.QC_MISSING:
                track(
                    f"{series.var()}: FillValue where QC is not ' ' or '9'"
                ).increment(k)
        elif qc == QC.QC_MISSING:
            track(f"{series.var()}: Not FillValue where QC is '9'").increment(k)
        elif qc == QC.QC_NO_CHANGE and not allow_noqc:
            track(f"{qc_var}: QC code '0' where data is present").increment(k)

    failed = track.report(report)
    log_debug(f"{series.var()}: phase 1 {'failed' if failed else 'passed'}")
    return failed, report


def _check_real_time(series, k, track) -> None:
    """Every adjusted field of a real-time sample must be missing"""
    prefix = "DATA_MODE 'R': "
    if Presence.of(series.adj_values[k], series.adj_fill_value) is not Presence.MISSING:
        track(f"{prefix}{series.var('_ADJUSTED')}: Not FillValue").increment(k)
    if Presence.of(series.adj_errors[k], series.err_fill_value) is not Presence.MISSING:
        track(f"{prefix}{series.var('_ADJUSTED_ERROR')}: Not FillValue").increment(k)
    if series.adj_qc[k] not in real_time_adj_qc_values:
        track(
            f"{prefix}{series.var('_ADJUSTED_QC')}: Not {_quoted(real_time_adj_qc_values)}"
        ).increment(k)


def _check_adjusted_sample(series, k, mode, qc_table, track) -> None:
    """Rules for one 'A' or 'D' mode sample"""
    prefix = f"DATA_MODE '{mode}': "
    adj_var = series.var("_ADJUSTED")
    adj_qc_var = series.var("_ADJUSTED_QC")
    err_var = series.var("_ADJUSTED_ERROR")

    qc = series.qc[k]
    adj_qc = series.adj_qc[k]
    value_p = Presence.of(series.values[k], series.fill_value)
    adj_p = Presence.of(series.adj_values[k], series.adj_fill_value)
    err_p = Presence.of(series.adj_errors[k], series.err_fill_value)

    if adj_p is Presence.INVALID:
        track(f"{prefix}{adj_var}: NaN").increment(k)
    if err_p is Presence.INVALID:
        track(f"{prefix}{err_var}: NaN").increment(k)

    if adj_qc != QC.QC_NOT_MEASURED:
        entry = qc_table.classify(adj_qc)
        if not entry.is_valid:
            track(f"{prefix}{adj_qc_var}: Invalid QC code").increment(k)
        elif entry.is_deprecated:
            track(f"{prefix}{adj_qc_var}: Deprecated QC code", Severity.WARNING).increment(
                k
            )

    if QC.QC_NOT_MEASURED in (qc, adj_qc):
        if qc != adj_qc:
            track(
                f"{prefix}{series.var('_QC')}/{adj_qc_var}: Inconsistent ' ' (not measured)"
            ).increment(k)
        elif adj_p.is_present:
            track(f"{prefix}{adj_var}: Not FillValue where QC is ' '").increment(k)
        return

    rule = adjusted_rules[(value_p.is_present, adj_p.is_present, mode)]
    situation = rule.situation.replace("PARAM", series.name)

    if rule.combination_error:
        track(
            f"{prefix}{adj_var}: {rule.combination_error.replace('PARAM', series.name)}"
        ).increment(k)
    if rule.adj_qc_allowed is not None and adj_qc not in rule.adj_qc_allowed:
        track(
            f"{prefix}{adj_qc_var}: Not {_quoted(rule.adj_qc_allowed)} where {situation}"
        ).increment(k)
    if rule.adj_qc_forbidden is not None and adj_qc in rule.adj_qc_forbidden:
        track(
            f"{prefix}{adj_qc_var}: {_quoted(rule.adj_qc_forbidden)} where {situation}"
        ).increment(k)
    if rule.error_presence is Presence.MISSING and err_p.is_present:
        track(f"{prefix}{err_var}: Not FillValue where {situation}").increment(k)
    elif rule.error_presence is Presence.PRESENT and not err_p.is_present:
        track(f"{prefix}{err_var}: FillValue where {situation}").increment(k)


def check_adjusted(
    series: ParamSeries, qc_table: CodeTable, caps: Capabilities
) -> tuple[bool, ValidationReport]:
    """Phase 2 - adjusted fields against the raw value and the data mode

    Returns:
    (failed, report)
    """
    report = ValidationReport()
    track = _Trackers(caps.sample_unit)

    for k in range(len(series.values)):
        mode = series.modes[k]
        if mode == "R":
            _check_real_time(series, k, track)
        elif mode in ("A", "D"):
            _check_adjusted_sample(series, k, mode, qc_table, track)
        else:
            # Invalid modes are reported where the data mode is read
            log_debug(f"{series.var()}: skipping sample {k} with mode '{mode}'")

    failed = track.report(report)
    log_debug(f"{series.var()}: phase 2 {'failed' if failed else 'passed'}")
    return failed, report


def aggregate_qc(series: ParamSeries) -> str:
    """QC codes that feed the profile QC: adjusted QC where the mode is 'A' or 'D'"""
    if series.adj_qc is None:
        return series.qc
    return "".join(
        series.adj_qc[k] if series.modes[k] in ("A", "D") else series.qc[k]
        for k in range(len(series.qc))
    )


def check_param(
    series: ParamSeries, qc_table: CodeTable, caps: Capabilities
) -> ParamResult:
    """Runs phase 1 and, if it passes, phase 2 for one parameter

    Inputs:
    series - the parameter's samples
    qc_table - reference table of QC flags
    caps - capabilities of the file type being checked

    Returns:
    ParamResult
    """
    report = ValidationReport()
    raw_failed, raw_report = check_raw(series, qc_table, caps)
    report.extend(raw_report)

    adjusted_checked = adjusted_failed = False
    if raw_failed:
        if series.has_adjusted and caps.has_adjusted_triad(series.name):
            report.add_warning(
                f"{series.var('_ADJUSTED')}: data not checked due to errors in {series.var()} data"
            )
    elif series.has_adjusted and caps.has_adjusted_triad(series.name):
        adjusted_checked = True
        adjusted_failed, adj_report = check_adjusted(series, qc_table, caps)
        report.extend(adj_report)

    return ParamResult(
        report,
        raw_failed,
        adjusted_checked,
        adjusted_failed,
        aggregate_qc(series),
    )


def check_param_names(names: list[str], spec, subject: str) -> tuple[list[str], ValidationReport]:
    """Validate a STATION_PARAMETERS / TRAJECTORY_PARAMETERS list

    Blank entries are ignored.  Unknown and duplicate names are errors,
    deprecated names are warnings.

    Returns:
    (names, report) - the known, unique names in order
    """
    report = ValidationReport()
    seen = set()
    known = []
    for name in names:
        if not name:
            continue
        if not spec.is_physical_param(name):
            report.add_error(f"{subject}: Invalid parameter name '{name}'")
            continue
        if name in seen:
            report.add_error(f"{subject}: Duplicate parameter name '{name}'")
            continue
        if spec.is_deprecated_param(name):
            report.add_warning(f"{subject}: Deprecated parameter name '{name}'")
        seen.add(name)
        known.append(name)
    return known, report
