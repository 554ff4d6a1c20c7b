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

"""Reconciles per-measurement cycle numbers with the per-cycle index arrays

Trajectory files tag every measurement with CYCLE_NUMBER (and
CYCLE_NUMBER_ADJUSTED) and summarize every cycle in CYCLE_NUMBER_INDEX (and
CYCLE_NUMBER_INDEX_ADJUSTED) along N_CYCLE.  The final cycle number of an
entry is the adjusted number when set, otherwise the primary number.
"""

import dataclasses

import numpy as np

from BaseLog import log_debug
from ErrorTracker import ErrorTracker, ValidationReport

# Cycle number of the launch pseudo-cycle
LAUNCH_CYCLE = -1
INVALID_MODE = "X"


@dataclasses.dataclass
class CycleIndexResult:
    """Output of the reconciliation

    cycle2index - final cycle number to N_CYCLE index (first occurrence wins)
    final_cycles - final cycle number per measurement, None where neither array is set
    measurement_modes - data mode per measurement ('R' for launch and unresolved measurements)
    """

    cycle2index: dict[int, int]
    final_cycles: list[int | None]
    measurement_modes: str
    report: ValidationReport

    @property
    def passed(self) -> bool:
        return self.report.passed


def check_data_modes(
    data_modes: str, valid_modes=("R", "A", "D"), name="DATA_MODE", unit="cycles"
):
    """Validate a data mode variable - DATA_MODE[N_CYCLE] by default

    Returns:
    (modes, report) - modes has invalid entries replaced by 'X'
    """
    report = ValidationReport()
    invalid = ErrorTracker(f"{name}: Invalid data mode", unit)
    modes = []
    for i, mode in enumerate(data_modes):
        if mode in valid_modes:
            modes.append(mode)
        else:
            invalid.increment(i)
            modes.append(INVALID_MODE)
    invalid.report(report)
    return "".join(modes), report


def overall_data_mode(data_modes: str) -> str:
    """'D' if any cycle is delayed mode, otherwise 'R'"""
    return "D" if "D" in data_modes else "R"


def _final(primary: int, adjusted: int | None, fill_value: int) -> int | None:
    if adjusted is not None and adjusted != fill_value:
        return adjusted
    if primary != fill_value:
        return primary
    return None


def reconcile_cycles(
    cycle_index: np.ndarray,
    cycle_index_adj: np.ndarray | None,
    meas_cycle: np.ndarray,
    meas_cycle_adj: np.ndarray | None,
    data_modes: str,
    fill_value: int = 99999,
) -> CycleIndexResult:
    """Builds the canonical cycle map and cross-checks both directions

    Inputs:
    cycle_index - CYCLE_NUMBER_INDEX[N_CYCLE]
    cycle_index_adj - CYCLE_NUMBER_INDEX_ADJUSTED[N_CYCLE], or None
    meas_cycle - CYCLE_NUMBER[N_MEASUREMENT]
    meas_cycle_adj - CYCLE_NUMBER_ADJUSTED[N_MEASUREMENT], or None
    data_modes - DATA_MODE[N_CYCLE], invalid entries already replaced by 'X'
    fill_value - cycle number fill value

    Returns:
    CycleIndexResult
    """
    report = ValidationReport()
    n_cycle = len(cycle_index)
    n_meas = len(meas_cycle)

    inv_cyc = ErrorTracker("CYCLE_NUMBER_INDEX: Invalid cycle number", "cycles")
    inv_adj_cyc = ErrorTracker(
        "CYCLE_NUMBER_INDEX_ADJUSTED: Invalid cycle number", "cycles"
    )
    miss_r_cyc = ErrorTracker(
        "CYCLE_NUMBER_INDEX: FillValue where DATA_MODE is not 'D'", "cycles"
    )
    adj_set_cyc = ErrorTracker(
        "CYCLE_NUMBER_INDEX_ADJUSTED: Not FillValue where DATA_MODE is not 'D'",
        "cycles",
    )
    miss_d_cyc = ErrorTracker(
        "CYCLE_NUMBER_INDEX_ADJUSTED: FillValue where DATA_MODE is 'D'", "cycles"
    )
    dup_cyc = ErrorTracker("CYCLE_NUMBER_INDEX: Duplicate cycle number", "cycles")

    cycle2index: dict[int, int] = {}
    cycle_finals: list[int | None] = []
    for i in range(n_cycle):
        primary = int(cycle_index[i])
        adjusted = int(cycle_index_adj[i]) if cycle_index_adj is not None else None
        mode = data_modes[i]

        if primary < 0:
            inv_cyc.increment(i)
        if adjusted is not None and adjusted < 0:
            inv_adj_cyc.increment(i)

        if mode == "D":
            if adjusted is not None and adjusted == fill_value:
                miss_d_cyc.increment(i)
        else:
            if primary == fill_value:
                miss_r_cyc.increment(i)
            if adjusted is not None and adjusted != fill_value:
                adj_set_cyc.increment(i)

        final = _final(primary, adjusted, fill_value)
        cycle_finals.append(final)
        if final is None or final < 0:
            continue
        if final in cycle2index:
            dup_cyc.increment(i)
        else:
            cycle2index[final] = i

    for tracker in (inv_cyc, inv_adj_cyc, miss_r_cyc, adj_set_cyc, miss_d_cyc, dup_cyc):
        tracker.report(report)

    inv_meas = ErrorTracker("CYCLE_NUMBER: Invalid cycle number", "measurements")
    inv_adj_meas = ErrorTracker(
        "CYCLE_NUMBER_ADJUSTED: Invalid cycle number", "measurements"
    )
    launch_meas = ErrorTracker(
        "CYCLE_NUMBER: Invalid cycle number (-1 not at first index)", "measurements"
    )
    launch_adj_meas = ErrorTracker(
        "CYCLE_NUMBER_ADJUSTED: Invalid cycle number (-1 not at first index)",
        "measurements",
    )
    miss_r_meas = ErrorTracker(
        "CYCLE_NUMBER: FillValue where DATA_MODE is not 'D'", "measurements"
    )
    adj_set_meas = ErrorTracker(
        "CYCLE_NUMBER_ADJUSTED: Not FillValue where DATA_MODE is not 'D'",
        "measurements",
    )
    miss_d_meas = ErrorTracker(
        "CYCLE_NUMBER_ADJUSTED: FillValue where DATA_MODE is 'D'", "measurements"
    )
    missing_cyc = ErrorTracker(
        "CYCLE_NUMBER/CYCLE_NUMBER_ADJUSTED: Cycle number not in CYCLE_NUMBER_INDEX/CYCLE_NUMBER_INDEX_ADJUSTED",
        "measurements",
    )

    final_cycles: list[int | None] = []
    modes = []
    prev_final = None
    for n in range(n_meas):
        primary = int(meas_cycle[n])
        adjusted = int(meas_cycle_adj[n]) if meas_cycle_adj is not None else None

        for value, launch_tracker, inv_tracker in (
            (primary, launch_meas, inv_meas),
            (adjusted, launch_adj_meas, inv_adj_meas),
        ):
            if value is None:
                continue
            if value == LAUNCH_CYCLE:
                if n != 0:
                    launch_tracker.increment(n)
            elif value < 0:
                inv_tracker.increment(n)

        final = _final(primary, adjusted, fill_value)
        final_cycles.append(final)

        if final is None or final == LAUNCH_CYCLE:
            # An unresolved cycle is treated as real-time
            if final is None:
                miss_r_meas.increment(n)
            modes.append("R")
            prev_final = final
            continue

        if final in cycle2index:
            mode = data_modes[cycle2index[final]]
            if mode == "D":
                if adjusted is not None and adjusted == fill_value:
                    miss_d_meas.increment(n)
            else:
                if primary == fill_value:
                    miss_r_meas.increment(n)
                if adjusted is not None and adjusted != fill_value:
                    adj_set_meas.increment(n)
            modes.append(mode if mode in ("R", "A", "D") else "R")
        else:
            if final >= 0 and final != prev_final:
                missing_cyc.increment(n)
            modes.append("R")
        prev_final = final

    for tracker in (
        inv_meas,
        inv_adj_meas,
        launch_meas,
        launch_adj_meas,
        miss_r_meas,
        adj_set_meas,
        miss_d_meas,
        missing_cyc,
    ):
        tracker.report(report)

    referenced = set(c for c in final_cycles if c is not None)
    unreferenced = ErrorTracker(
        "CYCLE_NUMBER_INDEX/CYCLE_NUMBER_INDEX_ADJUSTED: Cycle number not in CYCLE_NUMBER/CYCLE_NUMBER_ADJUSTED",
        "cycles",
    )
    for final, i in cycle2index.items():
        if final not in referenced:
            unreferenced.increment(i)
    unreferenced.report(report)

    log_debug(
        f"{len(cycle2index)} cycles in index, {len(referenced)} referenced by measurements"
    )
    return CycleIndexResult(cycle2index, final_cycles, "".join(modes), report)
