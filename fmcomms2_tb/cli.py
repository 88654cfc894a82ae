#!/usr/bin/env python3

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

"""Command line front end: build and run FMCOMMS2/3 testbenches without Make."""

import argparse
import sys
from pathlib import Path

from . import vivado
from .config import DEFAULT_CONFIG, DEFAULT_MODE, DEFAULT_TEST, MODES, default_tb_dir
from .testbench import (
    RULE,
    build_fmcomms2_env,
    build_fmcomms2_tests,
    list_fmcomms2_tests,
    run_fmcomms2_test,
)
from .vivado import VivadoSettings

EPILOG = """
Commands:
  build <hdl_dir> [cfg] [test] [--mode batch|gui]
      Build environment and run test
  env <hdl_dir> [cfg]
      Build only the test environment
  run <hdl_dir> [cfg] [test] [--mode batch|gui]
      Run test on existing environment
  list
      List available configurations and tests

Examples:
  fmcomms2-tb build C:/Work/deps/hdl
  fmcomms2-tb env C:/Work/deps/hdl cfg1
  fmcomms2-tb run C:/Work/deps/hdl cfg1 test_program --mode gui

NOTE: hdl_dir must be the full ADI HDL repository root
      (containing both library/ and projects/ directories).
      The HDL libraries must be built before running tests.
"""


def print_banner(tb_dir: Path) -> None:
    """Print the command summary and the detected testbench directory."""
    print(RULE)
    print("FMCOMMS2/3 Testbench Builder")
    print(RULE)
    print(EPILOG.strip("\n"))
    print()
    print("Testbenches directory:")
    print(f"  {tb_dir}")
    print(RULE)


def _add_hdl_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "hdl_dir",
        type=Path,
        help="Full ADI HDL repository root (containing library/ and projects/)",
    )
    parser.add_argument(
        "config",
        nargs="?",
        default=DEFAULT_CONFIG,
        help=f"Configuration name from cfgs/ (default: {DEFAULT_CONFIG})",
    )


def _add_test_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "test",
        nargs="?",
        default=DEFAULT_TEST,
        help=f"Test name from tests/ (default: {DEFAULT_TEST})",
    )
    parser.add_argument(
        "--mode",
        choices=MODES,
        default=DEFAULT_MODE,
        help=f"Run Vivado in batch or gui mode (default: {DEFAULT_MODE})",
    )


def _add_common_args(parser: argparse.ArgumentParser, subcommand: bool = False) -> None:
    """Options accepted both before and after the subcommand.

    Subcommand copies default to SUPPRESS so that an option given before the
    subcommand is not overwritten by the subcommand's default.
    """

    def default(value):
        return argparse.SUPPRESS if subcommand else value

    parser.add_argument(
        "--tb-dir",
        type=Path,
        default=default(None),
        help="ADI testbenches repository root (default: $ADI_TB_DIR or current directory)",
    )
    parser.add_argument(
        "--vivado-path",
        default=default("vivado"),
        help="Path to Vivado executable (default: vivado from PATH)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=default(False),
        help="Print DEBUG diagnostics from this tool and the generated TCL",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fmcomms2-tb",
        description="Build and run the FMCOMMS2/3 testbenches with Vivado",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    _add_common_args(parser)

    subparsers = parser.add_subparsers(dest="command")

    build = subparsers.add_parser("build", help="Build environment and run test")
    _add_common_args(build, subcommand=True)
    _add_hdl_arg(build)
    _add_test_args(build)

    env = subparsers.add_parser("env", help="Build only the test environment")
    _add_common_args(env, subcommand=True)
    _add_hdl_arg(env)

    run = subparsers.add_parser("run", help="Run test on existing environment")
    _add_common_args(run, subcommand=True)
    _add_hdl_arg(run)
    _add_test_args(run)

    list_cmd = subparsers.add_parser("list", help="List available configurations and tests")
    _add_common_args(list_cmd, subcommand=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Dispatch a subcommand; return the process exit code."""
    args = build_parser().parse_args(argv)
    tb_dir = args.tb_dir.resolve() if args.tb_dir is not None else default_tb_dir()

    if args.command is None:
        print_banner(tb_dir)
        return 0

    if args.command == "list":
        list_fmcomms2_tests(tb_dir)
        return 0

    vivado.install_signal_handlers()
    settings = VivadoSettings(vivado_path=args.vivado_path, debug=args.debug)

    if args.command == "env":
        project_path = build_fmcomms2_env(
            args.hdl_dir, args.config, tb_dir=tb_dir, settings=settings
        )
        return 0 if project_path is not None else 1

    if args.command == "run":
        ok = run_fmcomms2_test(
            args.hdl_dir,
            args.config,
            args.test,
            args.mode,
            tb_dir=tb_dir,
            settings=settings,
        )
    else:
        ok = build_fmcomms2_tests(
            args.hdl_dir,
            args.config,
            args.test,
            args.mode,
            tb_dir=tb_dir,
            settings=settings,
        )
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
