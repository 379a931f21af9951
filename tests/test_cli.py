import json

import pytest
from click.testing import CliRunner

from iptkit import __version__
from iptkit import config as config_module
from iptkit.cli import main
from iptkit.config import set_config

from tests.conftest import DUMP


@pytest.fixture
def runner():
    return CliRunner()


class TestParseCommand:

    def test_parse_file(self, runner, tmp_path):
        dump = tmp_path / "rules.txt"
        dump.write_text(DUMP)

        result = runner.invoke(main, ["parse", str(dump), "--json"])

        assert result.exit_code == 0
        chains = json.loads(result.stdout)
        assert [c["name"] for c in chains] == ["INPUT", "FORWARD", "OUTPUT", "LOGDROP"]
        assert chains[0]["target"] == "DROP"
        assert chains[3]["target"] is None
        assert chains[0]["rules"][2]["source"] == {"negated": True, "value": "10.0.0.0/8"}

    def test_parse_stdin(self, runner):
        result = runner.invoke(main, ["parse", "--json"], input="-P INPUT ACCEPT\n-A INPUT -j DROP\n")

        assert result.exit_code == 0
        assert json.loads(result.stdout) == [{
            "name": "INPUT",
            "target": "ACCEPT",
            "rules": [{
                "protocol": None,
                "source": None,
                "destination": None,
                "jump": "DROP",
                "in_interface": None,
                "out_interface": None,
                "rule": "-j DROP",
            }],
        }]

    def test_parse_table(self, runner):
        result = runner.invoke(main, ["parse"], input=DUMP)

        assert result.exit_code == 0
        assert "LOGDROP" in result.stdout


class TestRuleCommand:

    def test_json(self, runner):
        result = runner.invoke(main, ["rule", "--json", "--", "!", "--source", "10.1.0.0/16", "--jump", "DROP"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["source"] == {"negated": True, "value": "10.1.0.0/16"}
        assert data["jump"] == "DROP"
        assert data["rule"] == "! -s 10.1.0.0/16 -j DROP"

    def test_table(self, runner):
        result = runner.invoke(main, ["rule", "--", "-p", "tcp", "-j", "ACCEPT"])

        assert result.exit_code == 0
        assert "-p tcp -j ACCEPT" in result.stdout


class TestListCommand:

    def test_json(self, runner):
        result = runner.invoke(main, ["--adapter", "fake", "list", "--json"])

        assert result.exit_code == 0
        chains = json.loads(result.stdout)
        assert [(c["name"], c["target"], c["rules"]) for c in chains] == [
            ("INPUT", "ACCEPT", []),
            ("FORWARD", "ACCEPT", []),
            ("OUTPUT", "ACCEPT", []),
        ]

    def test_raw(self, runner):
        result = runner.invoke(main, ["--adapter", "fake", "list", "--raw", "FORWARD"])

        assert result.exit_code == 0
        assert result.stdout == "-P FORWARD ACCEPT\n"

    def test_missing_chain(self, runner):
        result = runner.invoke(main, ["--adapter", "fake", "list", "MISSING"])

        assert result.exit_code == 1
        assert "MISSING" in result.stdout

    def test_table(self, runner):
        result = runner.invoke(main, ["--adapter", "fake", "list", "INPUT"])

        assert result.exit_code == 0
        assert "INPUT" in result.stdout


class TestCheckCommand:

    def test_missing_rule(self, runner):
        result = runner.invoke(main, ["--adapter", "fake", "check", "INPUT", "-s", "10.0.0.0/8", "-j", "DROP"])

        assert result.exit_code == 1
        assert "not found" in result.stdout


class TestGlobalOptions:

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_unknown_adapter(self, runner):
        result = runner.invoke(main, ["--adapter", "nft", "list"])

        assert result.exit_code == 2

    def test_log_file(self, runner, tmp_path):
        log_file = tmp_path / "iptkit.log"

        result = runner.invoke(main, ["--debug", "--log-file", str(log_file), "--adapter", "fake", "list", "--raw"])

        assert result.exit_code == 0
        assert "Fake iptables: --list-rules" in log_file.read_text()

    @pytest.mark.parametrize("name, value", [
        ("IPTKIT_LOG_LEVEL", "FOO"),
        ("IPTKIT_ADAPTER", "nft"),
        ("IPTKIT_TIMEOUT", "soon"),
    ])
    def test_invalid_environment(self, runner, monkeypatch, tmp_path, name, value):
        monkeypatch.setattr(config_module, "ENV_LOCATIONS", [tmp_path / ".env"])
        monkeypatch.setenv(name, value)
        set_config(None)

        result = runner.invoke(main, ["list"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output
        assert not isinstance(result.exception, (AttributeError, ValueError))
