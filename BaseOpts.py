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

"""
  Common set of options for the Argo file checker
  Default values supplemented by option processing, both config file and command line
"""

import argparse
import configparser
import copy
import dataclasses
import inspect
import os
import sys
import typing


def generate_range_action(arg, min_val, max_val):
    """Creates an range checking action for argparse"""

    class RangeAction(argparse.Action):
        """Range checking action"""

        def __call__(self, parser, namespace, values, option_string=None):
            if values is None:
                raise argparse.ArgumentError(
                    self, f"None is not valid for argument [{arg}]"
                )

            if not min_val <= values <= max_val:
                raise argparse.ArgumentError(
                    self, f"{values} not in range for argument [{arg}]"
                )
            setattr(namespace, self.dest, values)

    return RangeAction


def FullPath(x):
    """Expand user- and relative-paths"""
    # An unset optional path keeps its empty-string default
    if x == "":
        return x

    if isinstance(x, list):
        return list(map(lambda y: os.path.abspath(os.path.expanduser(y)), x))
    else:
        return os.path.abspath(os.path.expanduser(x))


class FullPathAction(argparse.Action):
    """Expand user- and relative-paths"""

    def __call__(self, parser, namespace, values, option_string=None):
        if values is not None:
            setattr(namespace, self.dest, FullPath(values))
        else:
            setattr(namespace, self.dest, values)


def generate_sample_conf_file(options_dict, calling_module):
    """Generates a sample .conf file (to stdout)"""
    seen_sections = set()

    print(f"#\n# Sample conf file for {calling_module}.py\n#")
    print("[base]")

    for opt_n, opt_v in sorted(
        options_dict.items(), key=lambda x: x[1].kwargs.get("section", "")
    ):
        if opt_n in ("config_file_name", "generate_sample_conf"):
            continue
        if not opt_v.args[0].startswith("-"):
            # positional arguments are command line only
            continue
        if opt_v.group is None or calling_module in opt_v.group:
            section_name = opt_v.kwargs.get("section", "")
            if section_name not in seen_sections and section_name:
                print(f"#\n[{section_name}]")
                seen_sections.add(section_name)
            print(f"#\n# {opt_v.kwargs['help']}")
            print(f"#{opt_n} = ", end="")
            if opt_v.var_type is bool:
                print(f"{int(opt_v.default_val)}")
            elif opt_v.var_type is FullPath:
                print("<path_to_file>")
            else:
                print(f"{opt_v.default_val}")


# The kwargs in this type is overloaded.  Everything that is legit for argparse is allowed.
# Additionally, there is:
#
# range:list - two element list of the min and max allowed for an argument (inclusive).
# section:str - name of the section where the argument is loaded in the config file
# option_group:str - name of the option group to include the option in (for help)
@dataclasses.dataclass
class options_t:
    """Data that drives options processing"""

    default_val: typing.Any
    group: set
    args: tuple
    var_type: typing.Any
    kwargs: dict

    def __post_init__(self):
        """Type conversions"""
        if not isinstance(self.args, tuple):
            raise ValueError("args is not a tuple")
        if self.group is not None and not isinstance(self.group, set):
            self.group = set(self.group)
        if not isinstance(self.kwargs, dict):
            raise ValueError("kwargs is not a dict")
        if "range" in self.kwargs and (
            not isinstance(self.kwargs["range"], list) or len(self.kwargs["range"]) != 2
        ):
            raise ValueError("range must be a two element list")


file_types = ("auto", "profile", "bio-profile", "trajectory", "bio-trajectory")

global_options_dict = {
    "generate_sample_conf": options_t(
        False,
        None,
        ("--generate_sample_conf",),
        bool,
        {
            "help": "Generates a sample conf file to stdout",
            "action": "store_true",
        },
    ),
    "config_file_name": options_t(
        None,  # Never added to the options object, just used by the argparse
        None,
        ("--config", "-c"),
        FullPath,
        {"help": "script configuration file", "action": FullPathAction},
    ),
    "base_log": options_t(
        "",
        None,
        ("--base_log",),
        FullPath,
        {
            "help": "checker log file, records all levels of notifications",
            "action": FullPathAction,
        },
    ),
    "debug": options_t(
        False,
        None,
        ("--debug",),
        bool,
        {
            "action": "store_true",
            "help": "log/display debug messages",
        },
    ),
    "verbose": options_t(
        False,
        None,
        (
            "--verbose",
            "-v",
        ),
        bool,
        {
            "action": "store_true",
            "help": "print status messages to stdout",
        },
    ),
    "debug_pdb": options_t(
        False,
        None,
        ("--debug_pdb",),
        bool,
        {
            "action": "store_true",
            "help": "Enter the debugger for selected exceptions",
        },
    ),
    "file_type": options_t(
        "auto",
        ("ValidateFile",),
        ("--file_type",),
        str,
        {
            "help": "Type of Argo file; auto detects it from DATA_TYPE",
            "choices": file_types,
            "section": "validate",
        },
    ),
    "spec_file": options_t(
        "",
        ("ValidateFile",),
        ("--spec_file",),
        FullPath,
        {
            "help": "YAML file replacing the built-in parameter specification",
            "action": FullPathAction,
            "section": "validate",
        },
    ),
    "tables_file": options_t(
        "",
        ("ValidateFile",),
        ("--tables_file",),
        FullPath,
        {
            "help": "YAML file replacing the built-in reference tables",
            "action": FullPathAction,
            "section": "validate",
        },
    ),
    "results_file": options_t(
        "",
        ("ValidateFile",),
        ("--results_file",),
        FullPath,
        {
            "help": "YAML file to write the validation results to",
            "action": FullPathAction,
            "section": "validate",
        },
    ),
    "time_tolerance": options_t(
        1.0e-6,
        ("ValidateFile",),
        ("--time_tolerance",),
        float,
        {
            "help": "Largest difference (days) between matching measurement and cycle times",
            "range": [0.0, 1.0],
            "section": "validate",
        },
    ),
}

# Note: All option_group kwargs used in additional arguments must have an entry in this dictionary
option_group_description = {
    "required named arguments": None,
}


class CustomFormatter(
    argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter
):
    """Allow for multiple formatters for help"""


class BaseOptions:
    """
    BaseOptions: for use by all checker code and utilities.
       Defaults are trumped by command-line arguments;
       command-line arguments are trumped by options listed in configuration file.
    """

    def __init__(
        self,
        description,
        additional_arguments=None,
        add_option_groups=None,
        add_to_arguments=None,
        cmdline_args=None,
        calling_module=None,
    ):
        """
        Input:
            additional_arguments - dictionary of additional arguments - specific
                                   to a single module
            add_option_groups - dictionary of option group name to description
            add_to_arguments - adds the calling_module to the list of .group set of that option
            cmdline_args - list of command line arguments, equivalent to sys.argv[1:]
            calling_module - module name used to select options (defaults to the caller)
        """

        self._opts = None  # Retained for debugging
        self._ap = None  # Retained for debugging

        if calling_module is None:
            calling_module = os.path.splitext(
                os.path.split(inspect.stack()[1].filename)[1]
            )[0]

        if cmdline_args is None:
            cmdline_args = sys.argv[1:]

        options_dict = copy.deepcopy(global_options_dict)
        if additional_arguments is not None:
            options_dict |= additional_arguments

        if "--generate_sample_conf" in cmdline_args:
            # Generate a sample conf file and exit
            generate_sample_conf_file(options_dict, calling_module)
            sys.exit(0)

        if add_to_arguments is not None:
            for add_arg in add_to_arguments:
                if options_dict[add_arg].group is not None:
                    options_dict[add_arg].group.add(calling_module)

        group_descriptions = dict(option_group_description)
        if add_option_groups is not None:
            group_descriptions |= add_option_groups

        cp_default = {}
        for k, v in options_dict.items():
            if v.group is None or calling_module in v.group:
                setattr(self, k, v.default_val)  # Set the default for the object
            cp_default[k] = None

        cp = configparser.RawConfigParser(cp_default)

        ap = argparse.ArgumentParser(
            description=description, formatter_class=CustomFormatter
        )

        option_group_dict = {}
        for k, v in options_dict.items():
            if v.group is None or calling_module in v.group:
                og = v.kwargs.get("option_group")
                if og is not None and og not in option_group_dict:
                    option_group_dict[og] = ap.add_argument_group(
                        og, group_descriptions[og]
                    )

        # Loop over potential arguments and add what is appropriate
        for k, v in options_dict.items():
            if not (v.group is None or calling_module in v.group):
                continue
            kwargs = copy.deepcopy(v.kwargs)
            if not (v.var_type == bool and "action" in v.kwargs.keys()):
                kwargs["type"] = v.var_type
            if v.args and v.args[0].startswith("-"):
                kwargs["dest"] = k
            kwargs["default"] = v.default_val
            kwargs.pop("section", None)
            if "range" in kwargs:
                min_val, max_val = kwargs.pop("range")
                kwargs["action"] = generate_range_action(k, min_val, max_val)
                kwargs["metavar"] = f"{{{min_val}..{max_val}}}"

            og = kwargs.pop("option_group", None)
            if og is not None:
                option_group_dict[og].add_argument(*v.args, **kwargs)
            else:
                ap.add_argument(*v.args, **kwargs)

        self._ap = ap
        self._opts = ap.parse_args(cmdline_args)

        # Config file trumps command line - a set of common command line options
        # can be customized per directory with a config file

        # Initialize the object with the results of the command line parse
        for opt in dir(self._opts):
            if opt in options_dict.keys():
                setattr(self, opt, getattr(self._opts, opt))

        # Process the config file, updating the object
        if self._opts.config_file_name is None:
            return

        if not os.path.exists(self._opts.config_file_name):
            setattr(self, "config_file_not_found", True)
            return

        try:
            cp.read(self._opts.config_file_name)
        except configparser.Error as exc:
            raise RuntimeError(f"ERROR parsing {self._opts.config_file_name}") from exc

        for k, v in options_dict.items():
            if k == "config_file_name" or not v.args[0].startswith("-"):
                continue
            if not (v.group is None or calling_module in v.group):
                continue
            section_name = v.kwargs.get("section", "base")
            if not cp.has_section(section_name):
                continue
            if cp.get(section_name, k) is None:
                continue
            if v.var_type == bool:
                try:
                    value = cp.getboolean(section_name, k)
                except ValueError as exc:
                    raise ValueError(
                        f"Could not convert {k} from {self._opts.config_file_name} to boolean"
                    ) from exc
            else:
                value = cp.get(section_name, k)
                if v.var_type is FullPath:
                    value = FullPath(value)

            try:
                val = v.var_type(value)
            except ValueError as exc:
                raise ValueError(
                    f"Could not convert {k} from {self._opts.config_file_name} to requested type"
                ) from exc
            if "range" in v.kwargs:
                min_val, max_val = v.kwargs["range"]
                if not min_val <= val <= max_val:
                    raise ValueError(
                        f"{k} {val} from {self._opts.config_file_name} outside of range {min_val} {max_val}"
                    )
            if "choices" in v.kwargs and val not in v.kwargs["choices"]:
                raise ValueError(
                    f"{k} {val} from {self._opts.config_file_name} not one of {v.kwargs['choices']}"
                )
            setattr(self, k, val)
