"""Tests for CLI interface.

Test Coverage:
    - Argument parsing
    - Command routing
    - List command against the demo source
    - Error handling and exit codes
"""

import json

import pytest

from incidentfeed.cli import cmd_list, cmd_version, create_parser, format_table, main
from incidentfeed.errors import ErrorKind, PipelineError
from incidentfeed.models import Incident


class TestParserCreation:
    """Test CLI parser creation."""

    def test_parser_prog_name(self):
        parser = create_parser()
        assert parser.prog == "incidentfeed"

    def test_help_exits(self):
        parser = create_parser()
        with pytest.raises(SystemExit):
            parser.parse_args(["--help"])


class TestListCommand:
    """Test list command parsing."""

    def test_defaults(self):
        args = create_parser().parse_args(["list"])
        assert args.command == "list"
        assert args.source == "fake"
        assert args.format == "text"
        assert args.fan_out is None
        assert args.timeout is None

    def test_options(self):
        args = create_parser().parse_args([
            "list", "--source", "http", "--format", "json", "--fan-out", "concurrent", "--timeout", "2.5",
        ])
        assert args.source == "http"
        assert args.format == "json"
        assert args.fan_out == "concurrent"
        assert args.timeout == 2.5

    def test_invalid_format_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["list", "--format", "xml"])

    def test_invalid_fan_out_rejected(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["list", "--fan-out", "parallel"])


class TestListExecution:
    """Test the list command end to end on the demo source."""

    def test_text_output(self, capsys):
        args = create_parser().parse_args(["list"])

        exit_code = cmd_list(args)

        assert exit_code == 0
        lines = capsys.readouterr().out.strip().splitlines()
        assert lines[0].startswith("PRIORITY")
        assert "Forklift collision" in lines[1]
        assert lines[1].startswith("High")
        assert lines[-1].startswith("Low")

    def test_json_output(self, capsys):
        args = create_parser().parse_args(["list", "--format", "json", "--fan-out", "concurrent"])

        exit_code = cmd_list(args)

        assert exit_code == 0
        payload = json.loads(capsys.readouterr().out)
        assert [item["id"] for item in payload] == [
            "inc-201", "inc-101", "inc-shared", "inc-301", "inc-102",
        ]
        assert payload[0]["priority_label"] == "High"

    def test_failed_run_exit_code(self, capsys, mocker):
        mocker.patch("incidentfeed.cli._fetch", new=mocker.MagicMock(return_value=None))
        mocker.patch(
            "incidentfeed.cli._run_async",
            side_effect=PipelineError(ErrorKind.SOURCE_UNAVAILABLE),
        )
        args = create_parser().parse_args(["list"])

        exit_code = cmd_list(args)

        assert exit_code == 1
        err = capsys.readouterr().err
        assert "Error: Incident data could not be retrieved" in err
        assert "source_unavailable" in err

    def test_interrupt_exit_code(self, mocker):
        mocker.patch("incidentfeed.cli._fetch", new=mocker.MagicMock(return_value=None))
        mocker.patch("incidentfeed.cli._run_async", side_effect=KeyboardInterrupt)
        args = create_parser().parse_args(["list"])

        assert cmd_list(args) == 130

    def test_overrides_reach_settings(self, mocker):
        fetch = mocker.patch("incidentfeed.cli._fetch", new=mocker.MagicMock(return_value=None))
        run_async = mocker.patch("incidentfeed.cli._run_async", return_value=[])
        args = create_parser().parse_args(["list", "--timeout", "3", "--fan-out", "concurrent"])

        assert cmd_list(args) == 0

        source, config = fetch.call_args.args
        assert source == "fake"
        assert config.run_timeout == 3.0
        assert config.fan_out == "concurrent"
        run_async.assert_called_once()

    @pytest.mark.parametrize("timeout", ["0", "-1"])
    def test_non_positive_timeout_rejected(self, capsys, mocker, timeout):
        run_async = mocker.patch("incidentfeed.cli._run_async", return_value=[])
        args = create_parser().parse_args(["list", f"--timeout={timeout}"])

        assert cmd_list(args) == 2

        assert "invalid option" in capsys.readouterr().err
        run_async.assert_not_called()


class TestFormatTable:
    """Test the plain-text table."""

    def test_empty(self):
        assert format_table([]) == "No incidents."

    def test_unknown_priority_label(self):
        table = format_table([Incident(id="a", name="Odd", priority=9, datetime="2024-01-01T00:00:00Z")])
        assert "Unknown" in table.splitlines()[1]


class TestVersionCommand:
    """Test version command."""

    def test_version_command_execution(self, capsys):
        args = create_parser().parse_args(["version"])

        assert cmd_version(args) == 0
        assert "incidentfeed v0.1.0" in capsys.readouterr().out


class TestMainEntryPoint:
    """Test main() entry point."""

    def test_main_no_args_shows_help(self, capsys):
        assert main([]) == 0
        assert "incidentfeed" in capsys.readouterr().out.lower()

    def test_main_routes_to_list(self, capsys):
        assert main(["list", "--format", "json"]) == 0
        assert json.loads(capsys.readouterr().out)
