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

"""HDL library checks and simulation VIP builds.

A library counts as built when its ``component.xml`` exists. HDL libraries
are only checked (they come from the HDL repository's own build), while the
simulation VIPs are packaged on demand by sourcing their ``<name>_ip.tcl``.
"""

from collections.abc import Sequence

from . import vivado
from .config import HDL_LIB_DEPS, MARKER_FILE, SIM_LIB_DEPS, TestbenchPaths
from .vivado import VivadoSettings


def check_hdl_libs(
    paths: TestbenchPaths, libs: Sequence[str] = HDL_LIB_DEPS
) -> list[str]:
    """Verify that the HDL libraries are built.

    Args:
        paths: Repository layout
        libs: Library paths relative to <hdl_dir>/library

    Returns:
        Libraries whose marker file is missing, in declaration order.
        An empty list means every dependency is satisfied.
    """
    print("\n>>> Checking HDL library dependencies...")
    missing_libs = []

    for lib in libs:
        if (paths.hdl_lib_dir(lib) / MARKER_FILE).exists():
            print(f"  OK: {lib}")
        else:
            missing_libs.append(lib)
            print(f"  MISSING: {lib}")

    if missing_libs:
        print()
        print("ERROR: The following HDL libraries are not built:")
        for lib in missing_libs:
            print(f"  - {lib}")
        print()
        print("Please build them first using build_fmcomms2_ip.tcl or make.")
        return missing_libs

    print("All HDL library dependencies are satisfied.")
    return missing_libs


def hdl_libs_satisfied(
    paths: TestbenchPaths, libs: Sequence[str] = HDL_LIB_DEPS
) -> bool:
    """Boolean form of check_hdl_libs: True when every library is built."""
    return not check_hdl_libs(paths, libs)


def build_sim_vip(
    paths: TestbenchPaths, vip_name: str, settings: VivadoSettings
) -> bool:
    """Build a single simulation VIP library, skipping it if already built."""
    vip_path = paths.vip_dir(vip_name)
    vip_tcl_file = vip_path / f"{vip_name}_ip.tcl"
    marker = vip_path / MARKER_FILE

    if not vip_tcl_file.exists():
        print(f"WARNING: VIP TCL file not found: {vip_tcl_file}")
        return False

    if marker.exists():
        print(f"VIP {vip_name} already built, skipping")
        return True

    print("==========================================")
    print(f"Building VIP: {vip_name}")
    print("==========================================")

    # Source the packaging script from its own directory, then close the
    # project it leaves open
    script_lines = vivado.preamble(paths, settings) + [
        f"if {{[catch {{source {vivado.tcl_path(vip_tcl_file)}}} err]}} {{",
        f'    puts "ERROR building {vip_name}: $err"',
        "    catch {close_project}",
        "    exit 1",
        "}",
        f'if {{![catch {{current_project}}]}} {{ puts "Closing project for {vip_name}..."; close_project }}',
    ]
    script = vivado.write_script(vip_path / f"build_{vip_name}_vip.tcl", script_lines)

    if not vivado.run_script(
        settings,
        script,
        cwd=vip_path,
        paths=paths,
        log_file=vip_path / f"{vip_name}_ip.log",
    ):
        print(f"ERROR building {vip_name}: Vivado run failed")
        return False

    if marker.exists():
        print(f"SUCCESS: {vip_name} built successfully")
        return True

    print(f"WARNING: {MARKER_FILE} not found after building {vip_name}")
    return False


def build_sim_vips(
    paths: TestbenchPaths,
    settings: VivadoSettings,
    vips: Sequence[str] = SIM_LIB_DEPS,
) -> bool:
    """Build every simulation VIP the testbench needs, stopping at the first failure."""
    print("\n>>> Building simulation VIP libraries...")
    for vip in vips:
        if not build_sim_vip(paths, vip, settings):
            print(f"ERROR: Failed to build VIP {vip}")
            return False
    return True
