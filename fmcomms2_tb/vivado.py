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

"""Vivado process management and TCL script generation.

The ADI simulation flow is a set of TCL procedures that only exist inside a
Vivado session. Every step is therefore a small generated TCL script that
seeds the globals the ADI scripts read, sources them, and calls their
procedures. The script is handed to ``vivado -mode <batch|gui> -source``.
"""

import os
import re
import signal
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path

from .config import (
    DEFAULT_IP_LIBRARY,
    ENV_HDL_DIR,
    ENV_IP_LIBRARY,
    TestbenchPaths,
)

# =============================================================================
# Global Process Tracking (for cleanup on Ctrl+C)
# =============================================================================

_running_processes: list[subprocess.Popen] = []


def kill_process_tree(process: subprocess.Popen) -> None:
    """Kill a Vivado process and all its children."""
    try:
        os.killpg(os.getpgid(process.pid), signal.SIGTERM)
    except (ProcessLookupError, OSError):
        pass


def _cleanup_handler(signum: int, frame) -> None:
    """Signal handler to kill the running Vivado process on Ctrl+C."""
    if _running_processes:
        print(
            f"\n\nInterrupted! Killing {len(_running_processes)} running Vivado process(es)..."
        )
        for process in _running_processes:
            kill_process_tree(process)
        _running_processes.clear()
    sys.exit(1)


def install_signal_handlers() -> None:
    """Register SIGINT/SIGTERM handlers that take Vivado down with us."""
    signal.signal(signal.SIGINT, _cleanup_handler)
    signal.signal(signal.SIGTERM, _cleanup_handler)


# =============================================================================
# Settings
# =============================================================================


def _ip_library_from_env() -> str:
    return os.environ.get(ENV_IP_LIBRARY, DEFAULT_IP_LIBRARY)


@dataclass(frozen=True)
class VivadoSettings:
    """How to invoke Vivado.

    Attributes:
        vivado_path: Vivado executable (default: vivado from PATH)
        ip_library: VIVADO_IP_LIBRARY value for packaged IP ($ADI_VIVADO_IP_LIBRARY or "user")
        debug: Print DEBUG lines and emit extra diagnostics from the generated TCL
    """

    vivado_path: str = "vivado"
    ip_library: str = field(default_factory=_ip_library_from_env)
    debug: bool = False


# =============================================================================
# TCL Generation
# =============================================================================

_BARE_WORD = re.compile(r"^[A-Za-z0-9_.\-/:+=]+$")

# Close the current project if one is open
CLOSE_PROJECT = "if {![catch {current_project}]} { close_project }"


def tcl_quotable(value: str) -> bool:
    """Return True if tcl_quote can represent the value as one TCL word."""
    return not ("{" in value or "}" in value or value.endswith("\\"))


def tcl_quote(value: str) -> str:
    """Quote a value as a single TCL word.

    Plain words are returned unchanged, anything else is brace-quoted so that
    spaces, ``$`` and ``[`` are not substituted.
    """
    if _BARE_WORD.match(value):
        return value
    if not tcl_quotable(value):
        raise ValueError(f"Cannot quote value for TCL: {value!r}")
    return "{" + value + "}"


def tcl_escape(value: str) -> str:
    """Escape a value for use inside a double-quoted TCL string."""
    return re.sub(r'([\\\[\]$"])', r"\\\1", value)


def tcl_path(path: Path) -> str:
    """Quote a filesystem path for TCL (forward slashes, also on Windows)."""
    return tcl_quote(Path(path).as_posix())


def preamble(paths: TestbenchPaths, settings: VivadoSettings) -> list[str]:
    """TCL lines that set the globals the ADI scripts expect."""
    return [
        "# Generated by fmcomms2-tb",
        f"set ad_hdl_dir {tcl_path(paths.hdl_dir)}",
        f"set ad_tb_dir {tcl_path(paths.tb_dir)}",
        "set IGNORE_VERSION_CHECK 1",
        # adi_ip_xilinx.tcl references this global
        'set required_vivado_version "any"',
        f"set VIVADO_IP_LIBRARY {tcl_quote(settings.ip_library)}",
        f"set ::env({ENV_HDL_DIR}) $ad_hdl_dir",
    ]


def tcl_debug(settings: VivadoSettings, message: str) -> list[str]:
    """A ``puts "DEBUG: ..."`` line when debugging, nothing otherwise."""
    if not settings.debug:
        return []
    return [f'puts "DEBUG: {message}"']


def write_script(path: Path, lines: list[str]) -> Path:
    """Write a generated TCL script and return its path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")
    return path


# =============================================================================
# Process Execution
# =============================================================================


def build_command(
    settings: VivadoSettings,
    script: Path,
    mode: str = "batch",
    log_file: Path | None = None,
) -> list[str]:
    """Construct the Vivado command line for sourcing a script."""
    vivado_command = [
        settings.vivado_path,
        "-mode",
        mode,
        "-source",
        str(script),
        "-nojournal",
    ]
    if log_file is not None:
        vivado_command.extend(["-log", str(log_file)])
    else:
        vivado_command.append("-nolog")
    return vivado_command


def child_env(paths: TestbenchPaths, settings: VivadoSettings) -> dict[str, str]:
    """Environment for Vivado: ADI_HDL_DIR points at the HDL repository root."""
    env = os.environ.copy()
    env[ENV_HDL_DIR] = str(paths.hdl_dir)
    env[ENV_IP_LIBRARY] = settings.ip_library
    return env


def run_script(
    settings: VivadoSettings,
    script: Path,
    cwd: Path,
    paths: TestbenchPaths,
    mode: str = "batch",
    log_file: Path | None = None,
) -> bool:
    """Run Vivado on a TCL script, streaming its output to the console.

    Returns:
        True if Vivado started and exited with code 0, False otherwise.
    """
    vivado_command = build_command(settings, script, mode, log_file)
    if settings.debug:
        print(f"DEBUG: Running {' '.join(vivado_command)} (cwd: {cwd})")

    try:
        process = subprocess.Popen(
            vivado_command,
            cwd=cwd,
            env=child_env(paths, settings),
            start_new_session=True,
        )
    except OSError as e:
        print(
            f"Error: Could not start Vivado ({settings.vivado_path}): {e}",
            file=sys.stderr,
        )
        return False

    _running_processes.append(process)
    try:
        returncode = process.wait()
    except BaseException:
        # Vivado runs in its own session, so Ctrl+C never reaches it
        kill_process_tree(process)
        raise
    finally:
        if process in _running_processes:
            _running_processes.remove(process)

    if returncode != 0:
        print(f"Error: Vivado exited with code {returncode}", file=sys.stderr)
        return False
    return True
