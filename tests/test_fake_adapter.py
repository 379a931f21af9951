import pytest

from iptkit.adapters import FakeAdapter
from iptkit.errors import (
    InvalidRuleNumber,
    NoSuchChain,
    NoSuchRule,
    UnsupportedOperation,
)
from iptkit.parser import parse_dump
from iptkit.state import FirewallState


def rules(adapter: FakeAdapter, chain: str) -> list[str]:
    return [rule.raw for rule in parse_dump(adapter.execute(["--list-rules", chain]))[0].rules]


class TestFakeAdapter:

    def test_name(self, adapter):
        assert adapter.name == "fake"

    def test_append_and_list(self, adapter):
        assert adapter.execute(["--append", "INPUT", "-s", "10.0.0.0/8", "-j", "DROP"]) == ""
        assert adapter.execute(["--list-rules", "INPUT"]) == "-P INPUT ACCEPT\n-A INPUT -s 10.0.0.0/8 -j DROP\n"

    def test_list_all(self, adapter):
        assert adapter.execute(["--list-rules"]) == "-P INPUT ACCEPT\n-P FORWARD ACCEPT\n-P OUTPUT ACCEPT\n"

    def test_short_commands(self, adapter):
        adapter.execute(["-N", "CUSTOM"])
        adapter.execute(["-A", "CUSTOM", "-j", "RETURN"])
        adapter.execute(["-I", "CUSTOM", "1", "-s", "10.0.0.1", "-j", "DROP"])
        adapter.execute(["-P", "INPUT", "DROP"])
        assert adapter.execute(["-S"]) == (
            "-P INPUT DROP\n-P FORWARD ACCEPT\n-P OUTPUT ACCEPT\n"
            "-N CUSTOM\n-A CUSTOM -s 10.0.0.1/32 -j DROP\n-A CUSTOM -j RETURN\n"
        )

    def test_check(self, adapter):
        adapter.execute(["--append", "FORWARD", "--source", "10.0.0.0/8", "--jump", "DROP"])
        assert adapter.execute(["--check", "FORWARD", "-s", "10.0.0.0/8", "-j", "DROP"]) == ""
        with pytest.raises(NoSuchRule) as exc:
            adapter.execute(["--check", "FORWARD", "-s", "10.0.0.0/8", "-j", "ACCEPT"])
        assert exc.value.status == 1

    def test_check_missing_chain(self, adapter):
        with pytest.raises(NoSuchChain) as exc:
            adapter.execute(["--check", "MISSING", "-j", "DROP"])
        assert exc.value.status == 1

    def test_delete_by_rule_and_number(self, adapter):
        adapter.execute(["--append", "INPUT", "-s", "10.1.0.0/16", "-j", "DROP"])
        adapter.execute(["--append", "INPUT", "-s", "10.2.0.0/16", "-j", "DROP"])
        adapter.execute(["--append", "INPUT", "-s", "10.3.0.0/16", "-j", "DROP"])
        adapter.execute(["--delete", "INPUT", "-s", "10.2.0.0/16", "-j", "DROP"])
        adapter.execute(["--delete", "INPUT", "1"])
        assert rules(adapter, "INPUT") == ["-s 10.3.0.0/16 -j DROP"]

    def test_delete_missing(self, adapter):
        with pytest.raises(NoSuchRule):
            adapter.execute(["--delete", "INPUT", "-j", "DROP"])
        with pytest.raises(NoSuchChain):
            adapter.execute(["--delete", "MISSING", "-j", "DROP"])

    def test_insert_defaults_to_head(self, adapter):
        adapter.execute(["--append", "INPUT", "-j", "ACCEPT"])
        adapter.execute(["--insert", "INPUT", "-j", "DROP"])
        assert rules(adapter, "INPUT") == ["-j DROP", "-j ACCEPT"]

    def test_insert_out_of_range(self, adapter):
        with pytest.raises(InvalidRuleNumber):
            adapter.execute(["--insert", "INPUT", "3", "-j", "DROP"])

    @pytest.mark.parametrize("argv", [
        ["--insert", "INPUT", "-1", "-j", "DROP"],
        ["--insert", "INPUT", "0", "-j", "DROP"],
        ["--delete", "INPUT", "-1"],
        ["--replace", "INPUT", "-1", "-j", "DROP"],
        ["--zero", "INPUT", "-1"],
    ])
    def test_signed_rule_numbers_are_range_checked(self, adapter, argv):
        adapter.execute(["--append", "INPUT", "-j", "ACCEPT"])
        with pytest.raises(InvalidRuleNumber):
            adapter.execute(argv)
        assert rules(adapter, "INPUT") == ["-j ACCEPT"]

    def test_replace(self, adapter):
        adapter.execute(["--append", "INPUT", "-j", "ACCEPT"])
        adapter.execute(["--replace", "INPUT", "1", "-j", "DROP"])
        assert rules(adapter, "INPUT") == ["-j DROP"]

    def test_replace_requires_number(self, adapter):
        with pytest.raises(UnsupportedOperation):
            adapter.execute(["--replace", "INPUT", "first", "-j", "DROP"])

    def test_chain_commands(self, adapter):
        adapter.execute(["--new-chain", "ONE"])
        adapter.execute(["--rename-chain", "ONE", "TWO"])
        adapter.execute(["--append", "TWO", "-j", "RETURN"])
        adapter.execute(["--zero", "TWO", "1"])
        adapter.execute(["--flush", "TWO"])
        adapter.execute(["--delete-chain", "TWO"])
        assert [c.name for c in parse_dump(adapter.execute(["--list-rules"]))] == ["INPUT", "FORWARD", "OUTPUT"]

    def test_flush_and_delete_all(self, adapter):
        adapter.execute(["--new-chain", "ONE"])
        adapter.execute(["--append", "ONE", "-j", "RETURN"])
        adapter.execute(["--append", "INPUT", "-j", "ONE"])
        adapter.execute(["--flush"])
        adapter.execute(["--delete-chain"])
        adapter.execute(["--zero"])
        assert adapter.execute(["--list-rules"]) == "-P INPUT ACCEPT\n-P FORWARD ACCEPT\n-P OUTPUT ACCEPT\n"

    @pytest.mark.parametrize("argv", [
        [],
        ["--list"],
        ["--table", "nat", "--flush"],
        ["--policy", "INPUT"],
        ["--new-chain"],
        ["--rename-chain", "ONE"],
        ["--append"],
        ["--list-rules", "INPUT", "FORWARD"],
    ])
    def test_unsupported(self, adapter, argv):
        with pytest.raises(UnsupportedOperation) as exc:
            adapter.execute(argv)
        assert exc.value.status == 2

    def test_error_carries_argv(self, adapter):
        with pytest.raises(NoSuchChain) as exc:
            adapter.execute(["--policy", "MISSING", "DROP"])
        assert exc.value.argv == ["--policy", "MISSING", "DROP"]

    def test_clear(self, adapter):
        adapter.execute(["--append", "INPUT", "-j", "DROP"])
        adapter.execute(["--new-chain", "ONE"])
        adapter.clear()
        assert adapter.execute(["--list-rules"]) == "-P INPUT ACCEPT\n-P FORWARD ACCEPT\n-P OUTPUT ACCEPT\n"

    def test_adapters_are_isolated(self):
        first, second = FakeAdapter(), FakeAdapter()
        first.execute(["--append", "INPUT", "-j", "DROP"])
        assert rules(second, "INPUT") == []

    def test_shared_state(self):
        state = FirewallState()
        FakeAdapter(state).execute(["--append", "INPUT", "-j", "DROP"])
        assert state.check("INPUT", "-j DROP")
