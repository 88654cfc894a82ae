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

"""Tests for the fmcomms2-tb command line."""

from pathlib import Path
from typing import Any

import pytest

from fmcomms2_tb import cli, vivado


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch: Any) -> None:
    """Keep pytest's own SIGINT handling intact."""
    monkeypatch.setattr(vivado, "install_signal_handlers", lambda: None)


class TestCli:
    """Subcommand dispatch and exit codes."""

    def test_banner_without_command(self, tb_repo: Path, capsys: Any) -> None:
        assert cli.main(["--tb-dir", str(tb_repo)]) == 0

        out = capsys.readouterr().out
        assert "FMCOMMS2/3 Testbench Builder" in out
        assert "build <hdl_dir> [cfg] [test]" in out
        assert str(tb_repo) in out

    def test_list(self, tb_repo: Path, capsys: Any) -> None:
        assert cli.main(["--tb-dir", str(tb_repo), "list"]) == 0
        assert "  - cfg2" in capsys.readouterr().out

    def test_env(self, hdl_repo: Path, tb_repo: Path, fake_vivado: Any) -> None:
        assert cli.main(["--tb-dir", str(tb_repo), "env", str(hdl_repo), "cfg2"]) == 0
        assert fake_vivado.calls[-1]["script"].parent.name == "cfg2"

    def test_env_failure(self, tmp_path: Path, tb_repo: Path, fake_vivado: Any) -> None:
        assert cli.main(["--tb-dir", str(tb_repo), "env", str(tmp_path / "nowhere")]) == 1
        assert fake_vivado.calls == []

    def test_run_without_environment(
        self, hdl_repo: Path, tb_repo: Path, fake_vivado: Any
    ) -> None:
        assert cli.main(["--tb-dir", str(tb_repo), "run", str(hdl_repo)]) == 1

    def test_build_gui(self, hdl_repo: Path, tb_repo: Path, fake_vivado: Any) -> None:
        argv = [
            "--tb-dir",
            str(tb_repo),
            "--vivado-path",
            "/tools/Xilinx/Vivado/bin/vivado",
            "build",
            str(hdl_repo),
            "cfg1",
            "test_dma_loopback",
            "--mode",
            "gui",
        ]
        assert cli.main(argv) == 0

        run_call = fake_vivado.calls[-1]
        assert run_call["args"][:3] == ["/tools/Xilinx/Vivado/bin/vivado", "-mode", "gui"]
        assert run_call["script"].name == "run_test_dma_loopback.tcl"

    def test_debug_flag(
        self, hdl_repo: Path, tb_repo: Path, fake_vivado: Any, capsys: Any
    ) -> None:
        assert cli.main(["--tb-dir", str(tb_repo), "--debug", "env", str(hdl_repo)]) == 0
        assert "DEBUG: Running" in capsys.readouterr().out
        assert 'puts "DEBUG:' in fake_vivado.calls[-1]["script_text"]

    def test_common_options_after_subcommand(
        self, hdl_repo: Path, tb_repo: Path, fake_vivado: Any, capsys: Any
    ) -> None:
        argv = ["env", str(hdl_repo), "--debug", "--tb-dir", str(tb_repo)]
        assert cli.main(argv) == 0

        assert "DEBUG: Running" in capsys.readouterr().out
        assert fake_vivado.calls[-1]["cwd"] == tb_repo / "testbenches/project/fmcomms2"

    def test_options_before_subcommand_survive(self, hdl_repo: Path, tb_repo: Path) -> None:
        args = cli.build_parser().parse_args(
            ["--debug", "--tb-dir", str(tb_repo), "run", str(hdl_repo)]
        )
        assert args.debug
        assert args.tb_dir == tb_repo
        assert args.vivado_path == "vivado"

    def test_subcommand_option_wins(self, hdl_repo: Path) -> None:
        args = cli.build_parser().parse_args(
            ["--vivado-path", "/a/vivado", "build", str(hdl_repo), "--vivado-path", "/b/vivado"]
        )
        assert args.vivado_path == "/b/vivado"

    def test_list_accepts_tb_dir_after_subcommand(self, tb_repo: Path, capsys: Any) -> None:
        assert cli.main(["list", "--tb-dir", str(tb_repo)]) == 0
        assert "  - cfg2" in capsys.readouterr().out

    def test_invalid_mode_rejected(self, hdl_repo: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["run", str(hdl_repo), "--mode", "headless"])
        assert exc_info.value.code == 2
