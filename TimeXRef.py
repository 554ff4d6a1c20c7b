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

"""Cross-checks per-measurement times against the per-cycle event times

Each per-cycle JULD_<event>[N_CYCLE] variable (and its _STATUS) must match the
time (and status) of the measurement carrying the corresponding measurement
code in that cycle.  Measurements are expected to be grouped by cycle; first
and last selections apply to each contiguous run of a cycle.
"""

import dataclasses

import numpy as np

from BaseLog import log_debug
from CycleIndex import LAUNCH_CYCLE
from ErrorTracker import ErrorTracker, Severity, ValidationReport
from RefTables import EventEntry, EventTimeTable, Selection
from Utils import is_missing

DEFAULT_TOLERANCE = 1.0e-6  # days
STATUS_MISSING = ("9", " ")


@dataclasses.dataclass
class MeasurementTime:
    """Final cycle number, measurement code, final time and its status for one measurement"""

    cycle: int | None
    code: int
    juld: float
    status: str


@dataclasses.dataclass
class CycleTimes:
    """One per-cycle event time variable and its status"""

    values: np.ndarray
    status: str
    fill_value: float


def grouped_by_cycle(measurements: list[MeasurementTime]) -> bool:
    """True if every cycle's measurements form one contiguous run"""
    finished = set()
    prev = None
    for m in measurements:
        if m.cycle is None:
            continue
        if m.cycle != prev:
            if m.cycle in finished:
                return False
            if prev is not None:
                finished.add(prev)
            prev = m.cycle
    return True


def _check_entry(
    entry: EventEntry,
    cycle2index: dict[int, int],
    measurements: list[MeasurementTime],
    cycle_times: CycleTimes,
    tolerance: float,
    report: ValidationReport,
) -> None:
    var = entry.variable
    pair_label = "(N_MEASUREMENT, N_CYCLE)"
    time_diff = ErrorTracker(
        f"JULD (MC {entry.code}) / {var}: Inconsistent", "measurements", index_label=pair_label
    )
    status_diff = ErrorTracker(
        f"JULD_STATUS (MC {entry.code}) / {var}_STATUS: Inconsistent",
        "measurements",
        index_label=pair_label,
    )
    no_cycle = ErrorTracker(
        f"JULD (MC {entry.code}): No {var} entry for the cycle",
        "measurements",
        Severity.WARNING,
    )
    orphan = ErrorTracker(
        f"{var}: Not FillValue where there is no matching measurement", "cycles"
    )
    orphan_status = ErrorTracker(
        f"{var}_STATUS: Not ' ' or '9' where there is no matching measurement", "cycles"
    )

    checked = np.zeros(len(cycle_times.values), dtype=bool)

    def compare(n: int, i: int) -> None:
        checked[i] = True
        m = measurements[n]
        # NaN on either side never compares within tolerance
        if not abs(m.juld - float(cycle_times.values[i])) <= tolerance:
            time_diff.increment(n, i)
        if m.status != cycle_times.status[i]:
            status_diff.increment(n, i)

    prev_cycle = None
    first_done = False
    pending = None
    for n, m in enumerate(measurements):
        if m.cycle is None or m.cycle == LAUNCH_CYCLE:
            continue
        if m.cycle != prev_cycle:
            if pending is not None:
                compare(*pending)
                pending = None
            first_done = False
            prev_cycle = m.cycle

        if m.code != entry.code:
            continue
        i = cycle2index.get(m.cycle)
        if i is None:
            no_cycle.increment(n)
            continue

        if entry.selection is Selection.LAST:
            pending = (n, i)
        elif entry.selection is Selection.FIRST:
            if not first_done:
                compare(n, i)
                first_done = True
        else:
            compare(n, i)

    if pending is not None:
        compare(*pending)

    for i in np.nonzero(~checked)[0]:
        if not is_missing(cycle_times.fill_value, cycle_times.values[i]):
            orphan.increment(int(i))
        if cycle_times.status[i] not in STATUS_MISSING:
            orphan_status.increment(int(i))

    for tracker in (time_diff, status_diff, no_cycle, orphan, orphan_status):
        tracker.report(report)
    log_debug(f"{var} (MC {entry.code}): {int(checked.sum())} cycles matched")


def check_cycle_times(
    cycle2index: dict[int, int],
    measurements: list[MeasurementTime],
    cycle_times_d: dict[str, CycleTimes],
    event_table: EventTimeTable,
    tolerance: float = DEFAULT_TOLERANCE,
) -> ValidationReport:
    """Checks each per-cycle event time variable against the measurements

    Inputs:
    cycle2index - canonical final cycle number to N_CYCLE index
    measurements - one MeasurementTime per N_MEASUREMENT, in stored order
    cycle_times_d - per-cycle event time variables, keyed by variable name;
                    table entries whose variable is not present are skipped
    event_table - measurement code to per-cycle variable table
    tolerance - largest acceptable time difference (days)

    Returns:
    ValidationReport
    """
    report = ValidationReport()

    if not grouped_by_cycle(measurements):
        report.add_warning(
            "CYCLE_NUMBER: Measurements not grouped by cycle; first and last "
            "occurrences are taken per contiguous run of a cycle"
        )

    for entry in event_table:
        if entry.variable not in cycle_times_d:
            log_debug(f"{entry.variable} not present - skipping MC {entry.code}")
            continue
        _check_entry(
            entry,
            cycle2index,
            measurements,
            cycle_times_d[entry.variable],
            tolerance,
            report,
        )
    return report
