from __future__ import annotations

import pytest

from vault_agent.engine.command_policy import (
    ALLOWED,
    CommandPolicy,
    compile_rule,
    compile_rules,
    evaluate,
)
from vault_agent.engine.config import DEFAULT_BLOCKED_COMMANDS


@pytest.mark.parametrize(
    "command",
    [
        "rm -rf /",
        "rm -rf ~/notes",
        "chmod 777 /etc/passwd",
        "mkfs.ext4 /dev/sda1",
        "dd if=/dev/zero of=/dev/sda",
        "cat image.iso > /dev/sdb",
    ],
)
def test_default_blocklist_blocks_destructive_commands(command: str) -> None:
    decision = evaluate(command, DEFAULT_BLOCKED_COMMANDS, enabled=True)
    assert decision.blocked
    assert decision.matched_pattern in DEFAULT_BLOCKED_COMMANDS


def test_default_blocklist_allows_safe_command() -> None:
    assert evaluate("ls -la", DEFAULT_BLOCKED_COMMANDS, enabled=True) == ALLOWED


def test_disabled_policy_never_blocks() -> None:
    decision = evaluate("rm -rf /", DEFAULT_BLOCKED_COMMANDS, enabled=False)
    assert not decision.blocked
    assert decision.matched_pattern is None


def test_regex_pattern_matches_with_whitespace_class() -> None:
    decision = evaluate("rm    -rf build", [r"rm\s+-rf"], enabled=True)
    assert decision.blocked
    assert decision.matched_pattern == r"rm\s+-rf"


def test_matching_is_case_sensitive() -> None:
    decision = evaluate("echo MKFS is documented", DEFAULT_BLOCKED_COMMANDS, enabled=True)
    assert decision == ALLOWED
    assert evaluate("mkfs /dev/sda", DEFAULT_BLOCKED_COMMANDS, enabled=True).blocked


def test_invalid_regex_falls_back_to_literal_substring() -> None:
    rule = compile_rule("[invalid regex")
    assert rule.is_literal

    decision = evaluate("echo [invalid regex here", ["[invalid regex"], enabled=True)
    assert decision.blocked
    assert decision.matched_pattern == "[invalid regex"

    assert not evaluate("echo invalid regex", ["[invalid regex"], enabled=True).blocked


def test_first_matching_pattern_is_reported() -> None:
    decision = evaluate("rm -rf /tmp/x", ["rm", "rm -rf"], enabled=True)
    assert decision.matched_pattern == "rm"


def test_empty_pattern_matches_every_command() -> None:
    rules = compile_rules(["", "mkfs"])
    assert [r.pattern for r in rules] == ["", "mkfs"]
    assert not rules[0].is_literal

    decision = evaluate("ls", [""], enabled=True)
    assert decision.blocked
    assert decision.matched_pattern == ""


def test_non_string_patterns_are_ignored() -> None:
    assert compile_rules([None, 42, "mkfs"])[0].pattern == "mkfs"


def test_empty_pattern_list_allows_everything() -> None:
    assert evaluate("rm -rf /", [], enabled=True) == ALLOWED


def test_command_policy_precompiles_rules() -> None:
    policy = CommandPolicy([r"chmod\s+-R\s+777", "dd if="])
    assert policy.enabled
    assert len(policy.rules) == 2
    assert policy.evaluate("chmod -R 777 vault").matched_pattern == r"chmod\s+-R\s+777"
    assert not policy.evaluate("chmod 644 note.md").blocked


def test_disabled_command_policy_has_no_rules() -> None:
    policy = CommandPolicy(list(DEFAULT_BLOCKED_COMMANDS), enabled=False)
    assert policy.rules == ()
    assert policy.evaluate("rm -rf /") == ALLOWED
