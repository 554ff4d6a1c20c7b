#! /usr/bin/env python
# -*- python-fmt -*-

## Copyright (c) 2023, 2024  University of Washington.
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

"""Argo QC flag values and the profile QC aggregate
"""

from BaseLog import log_debug

# Ugh...ARGO stores QC variables as character string representations.
# All QC handling here works on single-character codes.

## For QC indications
# flags used by ARGO
QC_NO_CHANGE = "0"  # no QC performed
QC_GOOD = "1"  # ok
QC_PROBABLY_GOOD = "2"  # ...
QC_PROBABLY_BAD = "3"  # potentially correctable
QC_BAD = "4"  # untrustworthy and irreparable
QC_CHANGED = "5"  # explicit manual change
QC_INTERPOLATED = "8"  # interpolated value
QC_MISSING = "9"  # value missing
QC_NOT_MEASURED = " "  # no QC value - parameter not measured

good_qc_values = (QC_GOOD, QC_PROBABLY_GOOD, QC_CHANGED, QC_INTERPOLATED)
# QC values that mark an adjusted value as unusable
bad_or_missing_qc_values = (QC_BAD, QC_MISSING)
# QC values that do not count as data for the profile QC
no_data_qc_values = (QC_MISSING, QC_NOT_MEASURED)

# Profile QC grades, reference table 2a, as (lowest percentage of good data, grade)
PROFILE_QC_NONE = " "
profile_qc_grades = (
    (100.0, "A"),
    (75.0, "B"),
    (50.0, "C"),
    (25.0, "D"),
)
PROFILE_QC_SOME_GOOD = "E"
PROFILE_QC_NO_GOOD = "F"


def count_qc(qc_codes, good_codes=good_qc_values):
    """Count the data, good and no-QC samples in a sequence of QC codes

    Returns:
    (n_data, n_good, n_noqc)
    """
    n_data = n_good = n_noqc = 0
    for qc in qc_codes:
        if qc not in no_data_qc_values:
            n_data += 1
        if qc in good_codes:
            n_good += 1
        if qc == QC_NO_CHANGE:
            n_noqc += 1
    return n_data, n_good, n_noqc


def expected_profile_qc(qc_codes, good_codes=good_qc_values):
    """Derive the PROFILE_<PARAM>_QC grade from per-level QC codes

    Inputs:
    qc_codes - sequence (or string) of single character QC codes
    good_codes - the codes that count as good

    Returns:
    ' ' if every data level is un-QC'd (including no data at all),
    otherwise 'A' through 'F' by the percentage of good levels
    """
    n_data, n_good, n_noqc = count_qc(qc_codes, good_codes)
    log_debug(f"n_data:{n_data} n_good:{n_good} n_noqc:{n_noqc}")

    if n_noqc == n_data:
        return PROFILE_QC_NONE

    if n_good == n_data:
        return profile_qc_grades[0][1]

    pct = n_good / n_data * 100.0
    for min_pct, grade in profile_qc_grades[1:]:
        if pct >= min_pct:
            return grade
    if pct > 0.0:
        return PROFILE_QC_SOME_GOOD
    return PROFILE_QC_NO_GOOD
