"""
Tests for the command-line interface (cli.py)

Tests validate:
1. The example and options subcommands
2. Configuration errors exit with status 1 before any integration
3. A run from a response file writes the snapshot file, history and figure
   (response-file lines are split like a shell command line)
4. Initial composition taken from an existing zone-data file

Run with: pytest tests/test_cli.py -v
"""

import shlex

import pandas as pd
import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hydronet.cli import EXAMPLE, build_parser, main, raw_options
from hydronet.io.snapshots import read_zone_xml

SHORT_RUN = ["--tend", "1e-4", "--dtime", "1e-6", "--quiet"]


class TestInfoCommands:
    """Test the commands that do not integrate."""

    def test_example(self, capsys):
        assert main(["example"]) == 0
        assert capsys.readouterr().out.strip() == EXAMPLE

    def test_example_parses(self):
        args = build_parser().parse_args(EXAMPLE.split()[1:])
        options = raw_options(args)
        assert options["rho_1"] == 9e7
        assert options["mass_fractions"] == ["he4=1"]

    def test_options(self, capsys):
        assert main(["options"]) == 0
        out = capsys.readouterr().out
        assert "rho_1" in out
        assert "root_factor" in out
        assert "he4=1" in out
        assert "rho_2" not in out

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestConfigurationErrors:
    """Test error reporting."""

    def test_rho_1_not_below_rho_0(self, tmp_path, capsys):
        output = tmp_path / "out.xml"
        status = main(["run", str(output), "--rho-0", "1e8", "--rho-1", "1.1e8"])
        assert status == 1
        captured = capsys.readouterr()
        assert captured.err.startswith("error:")
        assert "rho_1" in captured.err
        assert not output.exists()

    def test_unknown_nuclide(self, tmp_path, capsys):
        status = main(["run", str(tmp_path / "out.xml"), "--mass-fraction", "xx99=1"])
        assert status == 1
        assert "xx99" in capsys.readouterr().err

    def test_missing_zone_file(self, tmp_path, capsys):
        status = main(["run", str(tmp_path / "out.xml"), "--zone-xml", str(tmp_path / "none.xml")])
        assert status == 1
        assert "error:" in capsys.readouterr().err

    def test_bad_toggle_rejected_by_parser(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["run", str(tmp_path / "out.xml"), "--t9-guess", "maybe"])

    def test_composition_sources_exclusive(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["run", "out.xml", "--mass-fraction", "he4=1", "--zone-xml", "zones.xml"])


class TestRun:
    """Test complete runs."""

    def test_response_file(self, tmp_path, capsys):
        output = tmp_path / "my_output.xml"
        history = tmp_path / "history.csv"
        figure = tmp_path / "trajectory.png"
        response = tmp_path / "run.rsp"
        lines = ["run", str(output), *SHORT_RUN, "--t9-guess", "no", "--steps", "5",
                 "--mass-fraction", "he4=0.9", "--mass-fraction", "c12=0.1",
                 "--history-csv", str(history), "--plot", str(figure)]
        response.write_text("\n".join(lines) + "\n")

        assert main([f"@{response}"]) == 0
        assert capsys.readouterr().out == ""

        snapshots = read_zone_xml(output)
        assert snapshots[-1].properties["time"] == pytest.approx(1e-4)

        table = pd.read_csv(history)
        assert table["time"].iloc[-1] == pytest.approx(1e-4)
        assert {"t9", "rho", "entropy", "x0", "x1", "X_he4", "X_c12"} <= set(table.columns)
        assert len(snapshots) == len(range(0, len(table), 5)) + ((len(table) - 1) % 5 != 0)

        assert figure.exists()
        assert figure.stat().st_size > 0

    def test_response_file_shell_lines(self, tmp_path):
        """Several options and quoted values may share a line."""
        output = tmp_path / "out.xml"
        response = tmp_path / "run.rsp"
        response.write_text(
            f"run {shlex.quote(str(output))}\n"
            "--tend 1e-6 --dtime 1e-6 --quiet\n"
            "--sdot-reactions 'he4 + he4 + he4 -> c12'\n"
        )

        args = build_parser().parse_args([f"@{response}"])
        assert args.tend == 1e-6
        assert args.dtime == 1e-6
        assert args.sdot_reactions == ["he4 + he4 + he4 -> c12"]

        assert main([f"@{response}"]) == 0
        assert read_zone_xml(output)[-1].properties["time"] == pytest.approx(1e-6)

    def test_verbose_run(self, tmp_path, capsys):
        output = tmp_path / "out.xml"
        assert main(["run", str(output), "--tend", "2e-6", "--dtime", "1e-6"]) == 0
        out = capsys.readouterr().out
        assert "Trajectory Complete" in out
        assert f"[SAVED] {output}" in out

    def test_composition_from_zone_file(self, tmp_path):
        # Cold enough that 16O(a,g) is frozen out over the run
        cold = ["--t9-0", "1"]
        first = tmp_path / "first.xml"
        assert main(["run", str(first), *SHORT_RUN, *cold, "--mass-fraction", "he4=0.5",
                     "--mass-fraction", "o16=0.5"]) == 0
        composition = {name: x for name, (_, _, x) in read_zone_xml(first)[-1].mass_fractions.items()}

        args = build_parser().parse_args(["run", "second.xml", "--zone-xml", str(first)])
        options = raw_options(args)
        assert options["mass_fractions"] == composition
        assert options["mass_fractions"]["o16"] > 0.4

        second = tmp_path / "second.xml"
        assert main(["run", str(second), *SHORT_RUN, *cold, "--zone-xml", str(first)]) == 0
        assert read_zone_xml(second)[0].x("o16") > 0.4

    def test_restricted_entropy_generation(self, tmp_path):
        output = tmp_path / "out.xml"
        status = main(["run", str(output), *SHORT_RUN,
                       "--sdot-reactions", "he4 + he4 + he4 -> c12"])
        assert status == 0
        assert output.exists()
