"""Shell command blocklist evaluation.

Each blocklist entry is compiled as a regular expression. Entries that
are not valid regular expressions degrade to a literal substring test
instead of being dropped, so a typo in a pattern still blocks the text
it was meant to block.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Sequence

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of evaluating one command against the blocklist."""

    blocked: bool
    matched_pattern: str | None = None


ALLOWED = PolicyDecision(blocked=False)


@dataclass(frozen=True)
class CompiledRule:
    """One blocklist entry after the compile stage.

    ``regex`` is None when the pattern failed to compile; the rule then
    matches by literal containment.
    """

    pattern: str
    regex: re.Pattern[str] | None

    @property
    def is_literal(self) -> bool:
        return self.regex is None

    def matches(self, command: str) -> bool:
        if self.regex is not None:
            return self.regex.search(command) is not None
        return self.pattern in command


@lru_cache(maxsize=512)
def compile_rule(pattern: str) -> CompiledRule:
    """Compile stage: regex when possible, literal otherwise."""
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        logger.warning(
            "Blocklist pattern %r is not a valid regex (%s); using literal match",
            pattern, exc,
        )
        return CompiledRule(pattern=pattern, regex=None)
    return CompiledRule(pattern=pattern, regex=regex)


def compile_rules(patterns: Sequence[str]) -> tuple[CompiledRule, ...]:
    rules: list[CompiledRule] = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            continue
        rules.append(compile_rule(pattern))
    return tuple(rules)


def evaluate(
    command: str,
    patterns: Sequence[str],
    enabled: bool,
) -> PolicyDecision:
    """Decide whether *command* is blocked by *patterns*.

    Returns the first matching pattern in list order. Disabled policy
    never blocks.
    """
    if not enabled:
        return ALLOWED
    return _match(command, compile_rules(patterns))


def _match(command: str, rules: Sequence[CompiledRule]) -> PolicyDecision:
    for rule in rules:
        if rule.matches(command):
            return PolicyDecision(blocked=True, matched_pattern=rule.pattern)
    return ALLOWED


class CommandPolicy:
    """Pre-compiled blocklist for repeated evaluation within a query."""

    def __init__(self, patterns: Sequence[str], enabled: bool = True) -> None:
        self._enabled = enabled
        self._rules = compile_rules(patterns) if enabled else ()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def rules(self) -> tuple[CompiledRule, ...]:
        return self._rules

    def evaluate(self, command: str) -> PolicyDecision:
        if not self._enabled:
            return ALLOWED
        return _match(command, self._rules)
