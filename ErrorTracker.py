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

"""Per-rule failure counting and the per-file validation report"""

import dataclasses
import enum

# Number of failing sample indices retained per rule
N_TRACKED = 5


class Severity(enum.Enum):
    """How a failed rule is reported"""

    ERROR = "error"
    WARNING = "warning"


@dataclasses.dataclass
class ValidationReport:
    """Ordered error and warning messages for one validation pass"""

    errors: list[str] = dataclasses.field(default_factory=list)
    warnings: list[str] = dataclasses.field(default_factory=list)

    def add(self, severity: Severity, msg: str) -> None:
        if severity is Severity.ERROR:
            self.errors.append(msg)
        else:
            self.warnings.append(msg)

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def extend(self, other: "ValidationReport") -> None:
        """Append the messages of other, preserving order"""
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    @property
    def passed(self) -> bool:
        """True when no errors were recorded (warnings do not fail a file)"""
        return not self.errors

    def as_dict(self) -> dict:
        return {"errors": list(self.errors), "warnings": list(self.warnings)}


class ErrorTracker:
    """Counts the failures of a single rule, keeping the first few sample indices

    The count is always the true number of failures; only the first
    N_TRACKED indices are retained for the message.  Indices are recorded
    1-based, either as single indices or as (i, j) pairs.
    """

    def __init__(
        self,
        subject: str,
        unit: str,
        severity: Severity = Severity.ERROR,
        index_label: str | None = None,
    ) -> None:
        self.subject = subject
        self.unit = unit
        self.severity = severity
        self.index_label = index_label
        self.count = 0
        self.indices: list[int | tuple[int, int]] = []

    def increment(self, i: int, j: int | None = None) -> None:
        """Record one failure at sample i (or at the index pair i, j)"""
        self.count += 1
        if len(self.indices) < N_TRACKED:
            self.indices.append(i + 1 if j is None else (i + 1, j + 1))

    def _format_indices(self) -> str:
        idx = ", ".join(
            f"({x[0]},{x[1]})" if isinstance(x, tuple) else str(x)
            for x in self.indices
        )
        if self.index_label:
            return f"{self.index_label} = {idx}"
        return idx

    def message(self) -> str:
        """Render the tracker as a single report line"""
        if self.count == 1:
            return f"{self.subject}: 1 {self.unit}; index {self._format_indices()}"
        return (
            f"{self.subject}: {self.count} {self.unit}; "
            f"first {len(self.indices)} indices {self._format_indices()}"
        )

    def report(self, report: ValidationReport) -> bool:
        """Add the message to report if any failure was recorded

        Returns:
            True if the tracker recorded at least one failure
        """
        if not self.count:
            return False
        report.add(self.severity, self.message())
        return True
