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

"""Pytest configuration for tests.

Vivado is replaced by ``FakeVivado``, which records each invocation and
produces the artifacts the real tool would: ``component.xml`` for a VIP build
and ``<cfg>.xpr`` for an environment build.
"""

import shutil
import subprocess
from pathlib import Path
from typing import Any

import pytest

from fmcomms2_tb.config import (
    DEVICE_INFO_SCRIPT,
    HDL_LIB_DEPS,
    INCLUDE_SCRIPTS,
    MARKER_FILE,
    SIM_SCRIPT,
    TESTBENCH_SUBDIR,
    VIP_SUBDIR,
)


def pytest_configure(config: Any) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "vivado: mark test as requiring a Vivado installation"
    )


def pytest_addoption(parser: Any) -> None:
    """Add custom command line options for tests."""
    parser.addoption(
        "--vivado-path",
        action="store",
        default="vivado",
        help="Vivado executable used by tests marked 'vivado'.",
    )


def pytest_collection_modifyitems(config: Any, items: Any) -> None:
    """Skip Vivado tests when the executable is not available."""
    vivado_path = config.getoption("--vivado-path")
    if shutil.which(vivado_path):
        return
    skip_vivado = pytest.mark.skip(reason=f"Vivado not found ({vivado_path})")
    for item in items:
        if "vivado" in item.keywords:
            item.add_marker(skip_vivado)


# =============================================================================
# Fake Vivado
# =============================================================================


class FakeVivado:
    """Stand-in for the Vivado executable, installed in place of subprocess.Popen."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.returncode = 0
        self.produce_artifacts = True
        self.missing_executable = False
        self.interrupt = False

    def scripts(self) -> list[Path]:
        """Scripts passed via -source, in call order."""
        return [call["script"] for call in self.calls]

    def popen(self, args: list[str], cwd: Any = None, env: Any = None, **kwargs: Any) -> "FakeProcess":
        if self.missing_executable:
            raise FileNotFoundError(2, "No such file or directory", args[0])

        script = Path(args[args.index("-source") + 1])
        self.calls.append(
            {
                "args": list(args),
                "cwd": Path(cwd) if cwd is not None else None,
                "env": dict(env) if env is not None else None,
                "script": script,
                "script_text": script.read_text(),
            }
        )

        if self.returncode == 0 and self.produce_artifacts:
            if script.name.startswith("build_") and script.name.endswith("_vip.tcl"):
                (Path(cwd) / MARKER_FILE).touch()
            elif script.name == "build_env.tcl":
                run_dir = script.parent
                (run_dir / f"{run_dir.name}.xpr").touch()

        return FakeProcess(self.returncode, self.interrupt)


class FakeProcess:
    def __init__(self, returncode: int, interrupt: bool = False) -> None:
        self.pid = 4242
        self.returncode = returncode
        self.interrupt = interrupt

    def wait(self) -> int:
        if self.interrupt:
            raise KeyboardInterrupt
        return self.returncode


@pytest.fixture
def fake_vivado(monkeypatch: Any) -> FakeVivado:
    """Replace subprocess.Popen with a recording fake Vivado."""
    fake = FakeVivado()
    monkeypatch.setattr(subprocess, "Popen", fake.popen)
    return fake


# =============================================================================
# Repository Trees
# =============================================================================


@pytest.fixture
def hdl_repo(tmp_path: Path) -> Path:
    """ADI HDL repository root with every required library already built."""
    hdl_dir = tmp_path / "hdl"
    (hdl_dir / "projects" / "fmcomms2" / "common").mkdir(parents=True)
    for lib in HDL_LIB_DEPS:
        lib_dir = hdl_dir / "library" / lib
        lib_dir.mkdir(parents=True)
        (lib_dir / MARKER_FILE).touch()
    device_info = hdl_dir / DEVICE_INFO_SCRIPT
    device_info.parent.mkdir(parents=True, exist_ok=True)
    device_info.write_text("# device info encoding\n")
    return hdl_dir.resolve()


@pytest.fixture
def tb_repo(tmp_path: Path) -> Path:
    """ADI testbenches repository root with two configurations and two tests."""
    tb_dir = tmp_path / "testbenches"

    vip_dir = tb_dir / VIP_SUBDIR / "io_vip"
    vip_dir.mkdir(parents=True)
    (vip_dir / "io_vip_ip.tcl").write_text("# package io_vip\n")

    for script in [SIM_SCRIPT, *INCLUDE_SCRIPTS]:
        path = tb_dir / script
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("# adi script\n")

    testbench_dir = tb_dir / TESTBENCH_SUBDIR
    (testbench_dir / "cfgs").mkdir(parents=True)
    (testbench_dir / "tests").mkdir()
    for cfg in ["cfg1", "cfg2"]:
        (testbench_dir / "cfgs" / f"{cfg}.tcl").write_text(f"# {cfg}\n")
    (testbench_dir / "cfgs" / "common.tcl").write_text("# not a configuration\n")
    for test in ["test_program", "test_dma_loopback"]:
        (testbench_dir / "tests" / f"{test}.sv").write_text(f"program {test};\n")
    (testbench_dir / "tests" / "README.md").write_text("tests\n")
    return tb_dir.resolve()
