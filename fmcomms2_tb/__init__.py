#    Copyright 2026 Two Sigma Open Source, LLC
#
#    Licensed under the Apache License, Version 2.0 (the "License");
#    you may not use this file except in compliance with the License.
#    You may obtain a copy of the License at
#
#        http://www.apache.org/licenses/LICENSE-2.0
#
#    Unless required by applicable law or agreed to in writing, software
#    distributed under the License is distributed on an "AS IS" BASIS,
#    WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#    See the License for the specific language governing permissions and
#    limitations under the License.

"""fmcomms2_tb - FMCOMMS2/3 testbench builder for Vivado.

Builds and runs the ADI FMCOMMS2/3 (AD9361) simulation testbenches from
Python without the Make build system. HDL library packaging, block design
elaboration and simulation all happen inside Vivado; this package checks the
prerequisites, generates the TCL that drives Vivado, and reports progress.
"""

from ._version import __version__
from .testbench import (
    build_fmcomms2_env,
    build_fmcomms2_tests,
    list_fmcomms2_tests,
    run_fmcomms2_test,
)

__all__ = [
    "__version__",
    "build_fmcomms2_env",
    "build_fmcomms2_tests",
    "list_fmcomms2_tests",
    "run_fmcomms2_test",
]
