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

from ErrorTracker import N_TRACKED, ErrorTracker, Severity, ValidationReport


def test_no_failures_reports_nothing():
    report = ValidationReport()
    tracker = ErrorTracker("TEMP: NaN", "levels")
    assert not tracker.report(report)
    assert report.errors == []
    assert report.passed


def test_single_failure():
    tracker = ErrorTracker("TEMP: NaN", "levels")
    tracker.increment(6)
    assert tracker.message() == "TEMP: NaN: 1 levels; index 7"


def test_count_beyond_retained():
    tracker = ErrorTracker("TEMP_QC: Invalid QC code", "levels")
    for i in range(12):
        tracker.increment(i)
    assert tracker.count == 12
    assert len(tracker.indices) == N_TRACKED
    assert tracker.message() == (
        "TEMP_QC: Invalid QC code: 12 levels; first 5 indices 1, 2, 3, 4, 5"
    )


def test_pairs_and_label():
    tracker = ErrorTracker(
        "JULD (MC 100) / JULD_DESCENT_START: Inconsistent",
        "measurements",
        index_label="(N_MEASUREMENT, N_CYCLE)",
    )
    tracker.increment(3, 0)
    tracker.increment(9, 1)
    assert tracker.message() == (
        "JULD (MC 100) / JULD_DESCENT_START: Inconsistent: 2 measurements; "
        "first 2 indices (N_MEASUREMENT, N_CYCLE) = (4,1), (10,2)"
    )


def test_severity_routing():
    report = ValidationReport()
    warn = ErrorTracker("TEMP_QC: Deprecated QC code", "levels", Severity.WARNING)
    err = ErrorTracker("TEMP: NaN", "levels")
    warn.increment(0)
    err.increment(1)
    assert warn.report(report)
    assert err.report(report)
    assert len(report.warnings) == 1
    assert len(report.errors) == 1
    assert not report.passed


def test_report_extend_keeps_order():
    first = ValidationReport(errors=["a"], warnings=["w1"])
    second = ValidationReport(errors=["b", "c"], warnings=["w2"])
    first.extend(second)
    assert first.as_dict() == {"errors": ["a", "b", "c"], "warnings": ["w1", "w2"]}
