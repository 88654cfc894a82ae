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

"""Central configuration for the FMCOMMS2/3 testbench builder.

Configuration
=============

Constants describing the FMCOMMS2/3 testbench: which HDL libraries and
simulation VIPs it depends on, which part the block design targets, and the
file naming used by the ADI simulation scripts.

Organization:
    - Dependency Lists (HDL libraries, simulation VIPs)
    - File Naming (marker files, project and wave config extensions)
    - Test Defaults (configuration, test, mode)
    - Block Design Globals (values adi_board.tcl expects in global scope)
    - TestbenchPaths (directory layout of the two repositories)

Usage:
    >>> from fmcomms2_tb.config import HDL_LIB_DEPS, TestbenchPaths
    >>> paths = TestbenchPaths(tb_dir=Path("testbenches"), hdl_dir=Path("hdl"))
    >>> paths.project_path("cfg1")
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

# ============================================================================
# Dependency Lists
# ============================================================================

# Simulation VIP libraries, built on demand under <tb_dir>/library/vip/adi
SIM_LIB_DEPS: Final[tuple[str, ...]] = ("io_vip",)

# HDL libraries that must already be packaged under <hdl_dir>/library
# (LIB_DEPS of the fmcomms2 testbench Makefile)
HDL_LIB_DEPS: Final[tuple[str, ...]] = (
    "axi_ad9361",
    "axi_dmac",
    "util_pack/util_cpack2",
    "util_pack/util_upack2",
    "util_rfifo",
    "util_tdd_sync",
    "util_wfifo",
    "xilinx/util_clkdiv",
)

# ============================================================================
# File Naming
# ============================================================================

MARKER_FILE: Final[str] = "component.xml"
PROJECT_EXTENSION: Final[str] = ".xpr"
WAVE_CONFIG_EXTENSION: Final[str] = ".wcfg"

TESTBENCH_SUBDIR: Final[str] = "testbenches/project/fmcomms2"
VIP_SUBDIR: Final[str] = "library/vip/adi"
DEVICE_INFO_SCRIPT: Final[str] = "library/scripts/adi_xilinx_device_info_enc.tcl"
SIM_SCRIPT: Final[str] = "scripts/adi_sim.tcl"
INCLUDE_SCRIPTS: Final[list[str]] = [
    "library/includes/sp_include_dmac.tcl",
    "library/includes/sp_include_converter.tcl",
]

# Subdirectories of the HDL repository root that must exist
REQUIRED_HDL_SUBDIRS: Final[list[str]] = ["library", "projects"]

# ============================================================================
# Test Defaults
# ============================================================================

DEFAULT_CONFIG: Final[str] = "cfg1"
DEFAULT_TEST: Final[str] = "test_program"
DEFAULT_MODE: Final[str] = "batch"
MODES: Final[list[str]] = ["batch", "gui"]

FPGA_PART: Final[str] = "xczu9eg-ffvb1156-2-e"

TEST_FILES: Final[list[str]] = ["tests/test_program.sv"]
TEST_PROGRAM_DEFINE: Final[str] = "TEST_PROGRAM"

CONFIG_GLOB: Final[str] = "cfg*.tcl"
TEST_GLOB: Final[str] = "*.sv"

# Hierarchy whose signals are logged in gui mode
WAVE_LOG_SCOPE: Final[str] = "/system_tb/test_harness/DUT"

# ============================================================================
# Block Design Globals
# ============================================================================

# adi_board.tcl reads these as globals. When it is sourced from inside a proc
# they never reach global scope, so they are seeded before the config runs.
BOARD_GLOBAL_DEFAULTS: Final[dict[str, str]] = {
    "sys_hpc0_interconnect_index": "-1",
    "sys_hpc1_interconnect_index": "-1",
    "sys_hp0_interconnect_index": "-1",
    "sys_hp1_interconnect_index": "-1",
    "sys_hp2_interconnect_index": "-1",
    "sys_hp3_interconnect_index": "-1",
    "sys_mem_interconnect_index": "-1",
    "sys_mem_clk_index": "0",
    "xcvr_index": "-1",
    "xcvr_tx_index": "0",
    "xcvr_rx_index": "0",
    "xcvr_instance": "NONE",
    # Vivado 2023.2+ default
    "use_smartconnect": "1",
}

# Cells looked up after project creation when debugging
KEY_BD_CELLS: Final[list[str]] = ["axi_axi_interconnect", "axi_mem_interconnect"]

# ============================================================================
# Environment
# ============================================================================

ENV_IP_LIBRARY: Final[str] = "ADI_VIVADO_IP_LIBRARY"
ENV_HDL_DIR: Final[str] = "ADI_HDL_DIR"
ENV_TB_DIR: Final[str] = "ADI_TB_DIR"
DEFAULT_IP_LIBRARY: Final[str] = "user"


def default_tb_dir() -> Path:
    """Return the testbenches repository root ($ADI_TB_DIR or the current directory)."""
    return Path(os.environ.get(ENV_TB_DIR) or Path.cwd()).resolve()


# ============================================================================
# Repository Layout
# ============================================================================


@dataclass(frozen=True)
class TestbenchPaths:
    """Directory layout of the ADI testbenches and HDL repositories.

    Attributes:
        tb_dir: Root of the ADI testbenches repository
        hdl_dir: Root of the full ADI HDL repository (library/ and projects/)
    """

    __test__ = False  # not a pytest test class

    tb_dir: Path
    hdl_dir: Path

    @property
    def testbench_dir(self) -> Path:
        """FMCOMMS2/3 testbench directory (cfgs/, tests/, runs/)."""
        return self.tb_dir / TESTBENCH_SUBDIR

    @property
    def sim_script(self) -> Path:
        return self.tb_dir / SIM_SCRIPT

    @property
    def include_scripts(self) -> list[Path]:
        return [self.tb_dir / script for script in INCLUDE_SCRIPTS]

    @property
    def device_info_script(self) -> Path:
        return self.hdl_dir / DEVICE_INFO_SCRIPT

    def vip_dir(self, vip_name: str) -> Path:
        return self.tb_dir / VIP_SUBDIR / vip_name

    def hdl_lib_dir(self, lib: str) -> Path:
        return self.hdl_dir / "library" / lib

    def run_dir(self, config_name: str) -> Path:
        return self.testbench_dir / "runs" / config_name

    def project_path(self, config_name: str) -> Path:
        """Project file produced by adi_sim_project_xilinx for a configuration."""
        return self.run_dir(config_name) / f"{config_name}{PROJECT_EXTENSION}"

    def config_file(self, config_name: str) -> Path:
        return self.testbench_dir / "cfgs" / f"{config_name}.tcl"

    def wave_file(self, config_name: str) -> Path:
        return self.testbench_dir / "waves" / f"{config_name}{WAVE_CONFIG_EXTENSION}"
