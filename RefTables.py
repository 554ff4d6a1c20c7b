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

"""Argo reference tables used by the checker

Built-in defaults cover the QC flag, profile QC, status flag, measurement
code, location class and grounded tables.  A YAML file can replace any of
them, see load_ref_tables().
"""

import dataclasses
import enum

import yaml

from BaseLog import log_debug, log_error, log_warning


@dataclasses.dataclass(frozen=True)
class RefEntry:
    """Classification of a code against a reference table"""

    is_active: bool
    is_deprecated: bool
    is_deleted: bool
    message: str = ""

    @property
    def is_valid(self) -> bool:
        return self.is_active or self.is_deprecated


class CodeTable:
    """A reference table of codes, each active, deprecated or deleted"""

    def __init__(self, name, active=(), deprecated=(), deleted=()):
        self.name = name
        self.active = set(active)
        self.deprecated = set(deprecated)
        self.deleted = set(deleted)

    def classify(self, code) -> RefEntry:
        if code in self.active:
            return RefEntry(True, False, False)
        if code in self.deprecated:
            return RefEntry(False, True, False, f"Deprecated {self.name} code")
        if code in self.deleted:
            return RefEntry(False, False, True, f"Obsolete {self.name} code")
        return RefEntry(False, False, False, f"Not in {self.name} table")

    def __contains__(self, code) -> bool:
        return code in self.active or code in self.deprecated


class Selection(enum.Enum):
    """Which measurements of a cycle match a per-cycle event time"""

    EXACT = "exact"  # every matching measurement
    FIRST = "first"  # first matching measurement of the cycle
    LAST = "last"  # last matching measurement of the cycle


@dataclasses.dataclass(frozen=True)
class EventEntry:
    code: int
    variable: str
    selection: Selection


class EventTimeTable:
    """Measurement code to per-cycle JULD variable mapping"""

    def __init__(self, entries):
        self.entries = list(entries)

    def lookup(self, code: int) -> list[EventEntry]:
        return [e for e in self.entries if e.code == code]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)


# Reference table 2
default_qc_flags = ("0", "1", "2", "3", "4", "5", "8", "9")
# Reference table 2a
default_profile_qc_flags = (" ", "A", "B", "C", "D", "E", "F")
# Reference table 19
default_status_flags = ("0", "1", "2", "3", "4", "9")
# Reference table 15 - codes that are neither multiples of 50 nor relative codes
default_specific_measurement_codes = (301, 702, 703, 704, 901, 902, 903)
# Reference table 5 - POSITION_ACCURACY
default_location_classes = ("0", "1", "2", "3", "A", "B", "G", "I", "Z")
# Reference table 20
default_grounded_flags = ("Y", "N", "B", "S", "U")

default_event_times = (
    (100, "JULD_DESCENT_START", Selection.EXACT),
    (150, "JULD_FIRST_STABILIZATION", Selection.EXACT),
    (200, "JULD_DESCENT_END", Selection.EXACT),
    (250, "JULD_PARK_START", Selection.EXACT),
    (300, "JULD_PARK_END", Selection.EXACT),
    (400, "JULD_DEEP_DESCENT_END", Selection.EXACT),
    (450, "JULD_DEEP_PARK_START", Selection.EXACT),
    (500, "JULD_ASCENT_START", Selection.EXACT),
    (550, "JULD_DEEP_ASCENT_START", Selection.EXACT),
    (600, "JULD_ASCENT_END", Selection.EXACT),
    (700, "JULD_TRANSMISSION_START", Selection.EXACT),
    (702, "JULD_FIRST_MESSAGE", Selection.EXACT),
    (703, "JULD_FIRST_LOCATION", Selection.FIRST),
    (703, "JULD_LAST_LOCATION", Selection.LAST),
    (704, "JULD_LAST_MESSAGE", Selection.EXACT),
    (800, "JULD_TRANSMISSION_END", Selection.EXACT),
)

# Relative codes are MC-15 .. MC-1 below a multiple of 50
MAX_RELATIVE_OFFSET = 15


@dataclasses.dataclass
class RefTables:
    """The reference tables needed for one validation run"""

    qc_flag: CodeTable
    profile_qc_flag: CodeTable
    status_flag: CodeTable
    measurement_code_specific: CodeTable
    event_times: EventTimeTable
    location_class: CodeTable
    grounded: CodeTable
    data_modes: tuple = ("R", "A", "D")

    def classify_measurement_code(self, code: int) -> RefEntry:
        """Classify a trajectory measurement code

        0 (launch) and multiples of 50 are valid; codes at or below 50 or
        above 925 are not.  Codes up to 15 below a multiple of 50 are
        relative codes and valid.  Everything else must be in the specific
        code table.
        """
        if code == 0:
            return RefEntry(True, False, False)
        if code <= 50 or code > 925:
            return RefEntry(False, False, False, "Invalid measurement code")
        if code % 50 == 0:
            return RefEntry(True, False, False)
        if 50 - code % 50 <= MAX_RELATIVE_OFFSET:
            return RefEntry(True, False, False)
        return self.measurement_code_specific.classify(code)


def default_ref_tables() -> RefTables:
    return RefTables(
        qc_flag=CodeTable("QC flag", default_qc_flags),
        profile_qc_flag=CodeTable("profile QC flag", default_profile_qc_flags),
        status_flag=CodeTable("status flag", default_status_flags),
        measurement_code_specific=CodeTable(
            "measurement code", default_specific_measurement_codes
        ),
        event_times=EventTimeTable(
            EventEntry(code, var, sel) for code, var, sel in default_event_times
        ),
        location_class=CodeTable("location class", default_location_classes),
        grounded=CodeTable("grounded", default_grounded_flags),
    )


def _code_table(name, table_d, default, key_type):
    if table_d is None:
        return default
    if not isinstance(table_d, dict):
        raise ValueError(f"Table {name} is not a dictionary")
    return CodeTable(
        default.name,
        (key_type(x) for x in table_d.get("active", ())),
        (key_type(x) for x in table_d.get("deprecated", ())),
        (key_type(x) for x in table_d.get("deleted", ())),
    )


def load_ref_tables(tables_file: str | None) -> RefTables:
    """Loads the reference tables, starting from the built-in defaults

    Inputs:
    tables_file - YAML file with any of the sections qc_flag, profile_qc_flag,
                  status_flag, measurement_code_specific, location_class,
                  grounded (each a dictionary of
                  active/deprecated/deleted lists) and event_times (a list of
                  code/variable/selection dictionaries).  None or "" for defaults.

    Returns:
    RefTables

    Raises:
    OSError, yaml.YAMLError, ValueError for unreadable or malformed files
    """
    tables = default_ref_tables()
    if not tables_file:
        return tables

    with open(tables_file, "r") as fi:
        tables_d = yaml.safe_load(fi.read())
    if tables_d is None:
        log_warning(f"{tables_file} is empty - using built-in reference tables")
        return tables
    if not isinstance(tables_d, dict):
        raise ValueError(f"{tables_file} is not a dictionary of tables")

    for k in tables_d:
        if k not in (
            "qc_flag",
            "profile_qc_flag",
            "status_flag",
            "measurement_code_specific",
            "event_times",
            "location_class",
            "grounded",
        ):
            log_warning(f"Unknown table {k} in {tables_file} - skipping")

    tables.qc_flag = _code_table("qc_flag", tables_d.get("qc_flag"), tables.qc_flag, str)
    tables.profile_qc_flag = _code_table(
        "profile_qc_flag", tables_d.get("profile_qc_flag"), tables.profile_qc_flag, str
    )
    tables.status_flag = _code_table(
        "status_flag", tables_d.get("status_flag"), tables.status_flag, str
    )
    tables.measurement_code_specific = _code_table(
        "measurement_code_specific",
        tables_d.get("measurement_code_specific"),
        tables.measurement_code_specific,
        int,
    )
    tables.location_class = _code_table(
        "location_class", tables_d.get("location_class"), tables.location_class, str
    )
    tables.grounded = _code_table(
        "grounded", tables_d.get("grounded"), tables.grounded, str
    )

    if "event_times" in tables_d:
        entries = []
        for entry_d in tables_d["event_times"]:
            try:
                entries.append(
                    EventEntry(
                        int(entry_d["code"]),
                        str(entry_d["variable"]),
                        Selection(entry_d.get("selection", "exact")),
                    )
                )
            except (KeyError, TypeError, ValueError):
                log_error(f"Bad event_times entry {entry_d} in {tables_file}", "exc")
                raise
        tables.event_times = EventTimeTable(entries)

    log_debug(f"Loaded reference tables from {tables_file}")
    return tables
