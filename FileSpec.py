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

"""Argo file specification lookups and the per-file-type capability descriptor"""

import dataclasses

import yaml

from BaseLog import log_debug, log_warning


@dataclasses.dataclass(frozen=True)
class ParamSpec:
    """What the specification says about one physical parameter"""

    name: str
    optional: bool = False
    intermediate: bool = False
    bio: bool = False
    deprecated: bool = False


# Built-in parameter list - core parameters plus a representative set of
# biogeochemical parameters and their intermediate parameters
default_params = (
    ParamSpec("PRES"),
    ParamSpec("TEMP"),
    ParamSpec("PSAL"),
    ParamSpec("CNDC", optional=True),
    ParamSpec("DOXY", bio=True),
    ParamSpec("TEMP_DOXY", intermediate=True, bio=True),
    ParamSpec("PHASE_DELAY_DOXY", intermediate=True, bio=True),
    ParamSpec("MOLAR_DOXY", intermediate=True, bio=True),
    ParamSpec("CHLA", bio=True),
    ParamSpec("FLUORESCENCE_CHLA", intermediate=True, bio=True),
    ParamSpec("BBP700", bio=True),
    ParamSpec("BETA_BACKSCATTERING700", intermediate=True, bio=True),
    ParamSpec("NITRATE", bio=True),
    ParamSpec("PH_IN_SITU_TOTAL", bio=True),
    ParamSpec("VRS_PH", intermediate=True, bio=True),
    ParamSpec("CDOM", bio=True),
    ParamSpec("DOWNWELLING_PAR", bio=True),
    ParamSpec("DOWN_IRRADIANCE380", bio=True),
    ParamSpec("DOWN_IRRADIANCE412", bio=True),
    ParamSpec("DOWN_IRRADIANCE490", bio=True),
)


class FileSpec:
    """Specification lookup - parameter names and their attributes"""

    def __init__(self, params=default_params):
        self.params_d = {p.name: p for p in params}

    def is_physical_param(self, name: str) -> bool:
        return name in self.params_d

    def is_deprecated_param(self, name: str) -> bool:
        return name in self.params_d and self.params_d[name].deprecated

    def is_optional(self, name: str) -> bool:
        return name in self.params_d and self.params_d[name].optional

    def is_intermediate_param(self, name: str) -> bool:
        return name in self.params_d and self.params_d[name].intermediate

    def physical_param_names(self, bio: bool | None = None) -> list[str]:
        """Parameter names, optionally restricted to core (False) or bio (True)"""
        return [
            p.name for p in self.params_d.values() if bio is None or p.bio == bio
        ]

    def capabilities(self, file_type: str) -> "Capabilities":
        """Capability descriptor for one of the supported file types"""
        if file_type not in file_type_d:
            raise ValueError(f"Unknown file type {file_type}")
        is_trajectory, is_bio = file_type_d[file_type]
        return Capabilities(self, file_type, is_trajectory, is_bio)


# file type: (is_trajectory, is_bio)
file_type_d = {
    "profile": (False, False),
    "bio-profile": (False, True),
    "trajectory": (True, False),
    "bio-trajectory": (True, True),
}


@dataclasses.dataclass(frozen=True)
class Capabilities:
    """What checks apply to a given file type

    Replaces branching on the file type throughout the checks
    """

    spec: FileSpec
    file_type: str
    is_trajectory: bool
    is_bio: bool

    @property
    def sample_unit(self) -> str:
        return "measurements" if self.is_trajectory else "levels"

    @property
    def has_adjusted_cycle_numbers(self) -> bool:
        return self.is_trajectory

    @property
    def has_cycle_times(self) -> bool:
        return self.is_trajectory

    @property
    def has_grounded(self) -> bool:
        """GROUNDED is carried by core trajectory files only"""
        return self.is_trajectory and not self.is_bio

    def checks_param(self, param: str) -> bool:
        """Bio files carry PRES as the vertical coordinate only, without QC"""
        return not (self.is_bio and param == "PRES")

    def has_adjusted_triad(self, param: str) -> bool:
        """Intermediate parameters carry no _ADJUSTED/_ADJUSTED_QC/_ADJUSTED_ERROR"""
        return not self.spec.is_intermediate_param(param)

    def allow_noqc(self, param: str) -> bool:
        """True if a QC of '0' (no QC performed) is acceptable with data present

        Only optional parameters may skip QC, and in core files only the
        optional intermediate ones
        """
        return self.spec.is_optional(param) and (
            self.is_bio or self.spec.is_intermediate_param(param)
        )


def load_file_spec(spec_file: str | None) -> FileSpec:
    """Loads the parameter specification

    Inputs:
    spec_file - YAML file with a 'parameters' dictionary, keyed by parameter
                name, of optional/intermediate/bio/deprecated booleans.  None
                or "" for the built-in list.

    Returns:
    FileSpec

    Raises:
    OSError, yaml.YAMLError, ValueError for unreadable or malformed files
    """
    if not spec_file:
        return FileSpec()

    with open(spec_file, "r") as fi:
        spec_d = yaml.safe_load(fi.read())

    if not isinstance(spec_d, dict) or not isinstance(spec_d.get("parameters"), dict):
        raise ValueError(f"{spec_file} has no parameters dictionary")

    params = []
    for name, attrs_d in spec_d["parameters"].items():
        attrs_d = attrs_d or {}
        unknown = set(attrs_d) - {"optional", "intermediate", "bio", "deprecated"}
        if unknown:
            log_warning(f"Unknown attributes {sorted(unknown)} for {name} in {spec_file}")
        params.append(
            ParamSpec(
                str(name),
                optional=bool(attrs_d.get("optional", False)),
                intermediate=bool(attrs_d.get("intermediate", False)),
                bio=bool(attrs_d.get("bio", False)),
                deprecated=bool(attrs_d.get("deprecated", False)),
            )
        )
    log_debug(f"Loaded {len(params)} parameters from {spec_file}")
    return FileSpec(params)
