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

"""Build and run the FMCOMMS2/3 testbenches with Vivado.

Steps:
1. Verify HDL libraries are built (component.xml exists)
2. Build simulation VIP components (io_vip)
3. Build the block design test environment (runs/<cfg>/<cfg>.xpr)
4. Run the specified test in batch or gui mode

The HDL directory must be the complete ADI HDL repository root, not just the
built IP, because the testbench sources files from projects/fmcomms2/common.
"""

from pathlib import Path

from . import vivado
from .config import (
    BOARD_GLOBAL_DEFAULTS,
    CONFIG_GLOB,
    DEFAULT_CONFIG,
    DEFAULT_MODE,
    DEFAULT_TEST,
    FPGA_PART,
    KEY_BD_CELLS,
    MODES,
    REQUIRED_HDL_SUBDIRS,
    TEST_FILES,
    TEST_GLOB,
    TESTBENCH_SUBDIR,
    TEST_PROGRAM_DEFINE,
    WAVE_LOG_SCOPE,
    TestbenchPaths,
    default_tb_dir,
)
from .dependencies import build_sim_vips, hdl_libs_satisfied
from .vivado import VivadoSettings

RULE = "=" * 60


def _resolve(
    hdl_dir: str | Path, tb_dir: str | Path | None
) -> TestbenchPaths:
    tb_root = Path(tb_dir).resolve() if tb_dir is not None else default_tb_dir()
    return TestbenchPaths(tb_dir=tb_root, hdl_dir=Path(hdl_dir).resolve())


def _check_mode(mode: str) -> bool:
    if mode not in MODES:
        print(f"ERROR: Invalid mode '{mode}' (expected one of: {', '.join(MODES)})")
        return False
    return True


def _check_tcl_values(
    paths: TestbenchPaths, settings: VivadoSettings, *names: str
) -> bool:
    """Reject paths and names that cannot be written into the generated TCL."""
    values = [paths.hdl_dir.as_posix(), paths.tb_dir.as_posix(), settings.ip_library]
    bad = [value for value in [*values, *names] if not vivado.tcl_quotable(value)]
    for value in bad:
        print(f"ERROR: Cannot pass '{value}' to Vivado (braces or trailing backslash)")
    return not bad


def _print_banner(title: str, lines: list[str]) -> None:
    print(RULE)
    print(title)
    print(RULE)
    for line in lines:
        print(line)
    print(RULE)


def _env_script_lines(
    paths: TestbenchPaths, config_name: str, settings: VivadoSettings
) -> list[str]:
    """TCL that creates the block design project and generates the simulation."""
    lines = vivado.preamble(paths, settings)
    lines.append(f"cd {vivado.tcl_path(paths.testbench_dir)}")

    if paths.device_info_script.exists():
        lines.append(f"source {vivado.tcl_path(paths.device_info_script)}")

    sim_script = vivado.tcl_escape(paths.sim_script.as_posix())
    config = vivado.tcl_escape(config_name)
    lines += vivado.tcl_debug(settings, f"Sourcing adi_sim.tcl from {sim_script}")
    lines += vivado.tcl_debug(settings, "Current working directory: [pwd]")
    lines += vivado.tcl_debug(settings, "ADI_HDL_DIR env = $::env(ADI_HDL_DIR)")
    lines.append(f"source {vivado.tcl_path(paths.sim_script)}")

    for name, value in BOARD_GLOBAL_DEFAULTS.items():
        lines.append(f"if {{![info exists ::{name}]}} {{ set ::{name} {value} }}")
    lines += vivado.tcl_debug(settings, "use_smartconnect = $::use_smartconnect")

    lines += vivado.tcl_debug(settings, f"Sourcing configuration file: cfgs/{config}.tcl")
    lines.append(f"source {vivado.tcl_path(paths.config_file(config_name))}")

    lines += vivado.tcl_debug(
        settings,
        f"Calling adi_sim_project_xilinx with project={config} part={FPGA_PART}",
    )
    lines.append(f"adi_sim_project_xilinx {vivado.tcl_quote(config_name)} {FPGA_PART}")

    if settings.debug:
        for cell in KEY_BD_CELLS:
            lines += [
                f"if {{[catch {{get_bd_cells {cell}}} cell]}} {{",
                f'    puts "DEBUG: {cell} NOT found (catch error: $cell)"',
                f'}} elseif {{$cell == ""}} {{',
                f'    puts "DEBUG: {cell} NOT found (empty result)"',
                "} else {",
                f'    puts "DEBUG: {cell} found: $cell"',
                "}",
            ]

    for script in paths.include_scripts:
        lines.append(f"source {vivado.tcl_path(script)}")

    test_files = " ".join(vivado.tcl_quote(f) for f in TEST_FILES)
    lines.append(f"adi_sim_project_files [list {test_files}]")
    lines.append(f'adi_sim_add_define "{TEST_PROGRAM_DEFINE}={DEFAULT_TEST}"')
    lines.append(f"adi_sim_generate {vivado.tcl_quote(config_name)}")
    lines.append(vivado.CLOSE_PROJECT)
    return lines


def build_fmcomms2_env(
    hdl_dir: str | Path,
    config_name: str = DEFAULT_CONFIG,
    tb_dir: str | Path | None = None,
    settings: VivadoSettings | None = None,
) -> Path | None:
    """Build the FMCOMMS2/3 test environment (block design project).

    Args:
        hdl_dir: Full ADI HDL repository root (library/ and projects/)
        config_name: Configuration name from cfgs/
        tb_dir: ADI testbenches repository root (default: $ADI_TB_DIR or cwd)
        settings: Vivado invocation settings

    Returns:
        Path to the generated project file, or None on failure.
    """
    settings = settings or VivadoSettings()
    paths = _resolve(hdl_dir, tb_dir)

    if not _check_tcl_values(paths, settings, config_name):
        return None

    if not all((paths.hdl_dir / sub).exists() for sub in REQUIRED_HDL_SUBDIRS):
        print(f"ERROR: Invalid ADI HDL directory: {paths.hdl_dir}")
        print("The directory must be the full HDL repository root containing:")
        print("  - library/  (HDL IP cores)")
        print("  - projects/ (project files including fmcomms2 block design)")
        print()
        print("Example: C:/Work/deps/hdl")
        return None

    _print_banner(
        "FMCOMMS2/3 Testbench Environment Builder",
        [
            f"ADI HDL Directory: {paths.hdl_dir}",
            f"Testbench Directory: {paths.tb_dir}",
            f"Configuration: {config_name}",
        ],
    )

    if not paths.device_info_script.exists():
        print(f"WARNING: Device info script not found: {paths.device_info_script}")

    if not hdl_libs_satisfied(paths):
        return None

    if not build_sim_vips(paths, settings):
        return None

    run_dir = paths.run_dir(config_name)
    run_dir.mkdir(parents=True, exist_ok=True)
    (paths.testbench_dir / "results").mkdir(parents=True, exist_ok=True)

    print(f"\n>>> Building test environment for {config_name}...")

    config_file = paths.config_file(config_name)
    if not config_file.exists():
        print(f"ERROR: Configuration file not found: cfgs/{config_name}.tcl")
        return None

    if settings.debug:
        print(f"DEBUG: ad_hdl_dir = {paths.hdl_dir}")
        print(f"DEBUG: Configuration file: {config_file}")

    script = vivado.write_script(
        run_dir / "build_env.tcl", _env_script_lines(paths, config_name, settings)
    )
    if not vivado.run_script(
        settings,
        script,
        cwd=paths.testbench_dir,
        paths=paths,
        log_file=run_dir / "build_env.log",
    ):
        print(f"ERROR: Vivado failed while building the {config_name} environment")
        return None

    project_path = paths.project_path(config_name)
    if not project_path.exists():
        print(f"ERROR: Project not created: {project_path}")
        return None

    print(f"\n{RULE}")
    print("Environment build complete!")
    print(f"Project: {project_path}")
    print(RULE)

    return project_path


def _run_script_lines(
    paths: TestbenchPaths,
    config_name: str,
    test_name: str,
    mode: str,
    settings: VivadoSettings,
) -> list[str]:
    """TCL that opens an existing project and simulates one test."""
    lines = vivado.preamble(paths, settings) + [
        f"cd {vivado.tcl_path(paths.testbench_dir)}",
        f"source {vivado.tcl_path(paths.sim_script)}",
        f"adi_open_project {vivado.tcl_path(paths.project_path(config_name))}",
        f"adi_update_define {TEST_PROGRAM_DEFINE} {vivado.tcl_quote(test_name)}",
        "launch_simulation",
    ]

    if mode == "gui":
        wave_file = vivado.tcl_path(paths.wave_file(config_name))
        lines += [
            f"log_wave -r {{{WAVE_LOG_SCOPE}}}",
            f"if {{![file exists {wave_file}]}} {{",
            "    create_wave_config",
            f"    save_wave_config {wave_file}",
            "} else {",
            f"    open_wave_config {wave_file}",
            "}",
            f"add_files -fileset sim_1 -norecurse {wave_file}",
            f"set_property xsim.view {wave_file} [get_filesets sim_1]",
        ]

    lines.append("run all")
    return lines


def run_fmcomms2_test(
    hdl_dir: str | Path,
    config_name: str = DEFAULT_CONFIG,
    test_name: str = DEFAULT_TEST,
    mode: str = DEFAULT_MODE,
    tb_dir: str | Path | None = None,
    settings: VivadoSettings | None = None,
) -> bool:
    """Run a test on an environment built by build_fmcomms2_env.

    In gui mode Vivado stays open after ``run all`` with the DUT waveforms
    logged and the configuration's wave config loaded.
    """
    settings = settings or VivadoSettings()
    paths = _resolve(hdl_dir, tb_dir)

    if not _check_mode(mode):
        return False

    if not _check_tcl_values(paths, settings, config_name, test_name):
        return False

    project_path = paths.project_path(config_name)
    if not project_path.exists():
        print(f"ERROR: Project not found: {project_path}")
        print("Run build_fmcomms2_env first to create the test environment.")
        return False

    _print_banner(
        "Running FMCOMMS2/3 Test",
        [
            f"Configuration: {config_name}",
            f"Test: {test_name}",
            f"Mode: {mode}",
        ],
    )

    if mode == "gui":
        paths.wave_file(config_name).parent.mkdir(parents=True, exist_ok=True)

    run_dir = paths.run_dir(config_name)
    script = vivado.write_script(
        run_dir / f"run_{test_name}.tcl",
        _run_script_lines(paths, config_name, test_name, mode, settings),
    )
    success = vivado.run_script(
        settings,
        script,
        cwd=paths.testbench_dir,
        paths=paths,
        mode=mode,
        log_file=run_dir / f"run_{test_name}.log",
    )
    if not success:
        print(f"ERROR: Test {test_name} failed on {config_name}")
        return False

    print(f"\n{RULE}")
    print("Test complete!")
    print(RULE)
    return True


def build_fmcomms2_tests(
    hdl_dir: str | Path,
    config_name: str = DEFAULT_CONFIG,
    test_name: str = DEFAULT_TEST,
    mode: str = DEFAULT_MODE,
    tb_dir: str | Path | None = None,
    settings: VivadoSettings | None = None,
) -> bool:
    """Build the environment and run a test in one step."""
    if not _check_mode(mode):
        return False

    project_path = build_fmcomms2_env(hdl_dir, config_name, tb_dir, settings)
    if project_path is None:
        print("ERROR: Failed to build test environment")
        return False

    return run_fmcomms2_test(hdl_dir, config_name, test_name, mode, tb_dir, settings)


def list_fmcomms2_tests(
    tb_dir: str | Path | None = None,
) -> tuple[list[str], list[str]]:
    """List available configurations (cfgs/cfg*.tcl) and tests (tests/*.sv).

    Returns:
        (configuration names, test names), each sorted
    """
    tb_root = Path(tb_dir).resolve() if tb_dir is not None else default_tb_dir()
    testbench_dir = tb_root / TESTBENCH_SUBDIR

    configs = sorted(p.stem for p in (testbench_dir / "cfgs").glob(CONFIG_GLOB))
    tests = sorted(p.stem for p in (testbench_dir / "tests").glob(TEST_GLOB))

    print(RULE)
    print("Available FMCOMMS2/3 Tests")
    print(RULE)
    print("\nConfigurations (cfgs/):")
    for name in configs:
        print(f"  - {name}")
    print("\nTests (tests/):")
    for name in tests:
        print(f"  - {name}")
    print(RULE)

    return configs, tests
