"""A single definition inside a model section, and the role links it builds."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Sequence

from .errors import ModelError

_TOO_FEW_UNDERSCORES = 'the number of "_" in role definition should be at least 2'
_RULE_TOO_SHORT = "grouping policy elements do not meet role definition"


class PolicyOp(enum.IntEnum):
    """Kind of incremental change applied to role links."""

    ADD = 0
    REMOVE = 1


@dataclass(eq=False)
class Assertion:
    """An expression in a model section, such as ``r = sub, obj, act``.

    ``rm`` and ``cond_rm`` are role managers: objects offering ``add_link`` and
    ``delete_link``, and for conditional ones also
    ``set_link_condition_func_params`` and
    ``set_domain_link_condition_func_params``.
    """

    key: str = ""
    value: str = ""
    tokens: list[str] = field(default_factory=list)
    params_tokens: list[str] = field(default_factory=list)
    policy: list[list[str]] = field(default_factory=list)
    policy_map: dict[str, int] = field(default_factory=dict)
    rm: Any = None
    cond_rm: Any = None
    field_index_map: dict[str, int] = field(default_factory=dict)
    logger: Any = field(default=None, repr=False)

    def _link_count(self) -> int:
        count = self.value.count("_")
        if count < 2:
            raise ModelError(_TOO_FEW_UNDERSCORES)
        return count

    @staticmethod
    def _trimmed(rules: Iterable[Sequence[str]], count: int) -> Iterator[list[str]]:
        for rule in rules:
            if len(rule) < count:
                raise ModelError(_RULE_TOO_SHORT)
            yield list(rule[:count])

    def build_incremental_role_links(self, rm: Any, op: PolicyOp, rules: Iterable[Sequence[str]]) -> None:
        """Add or remove the links for ``rules`` in ``rm``."""
        self.rm = rm
        count = self._link_count()
        for rule in self._trimmed(rules, count):
            if op == PolicyOp.ADD:
                rm.add_link(rule[0], rule[1], *rule[2:])
            elif op == PolicyOp.REMOVE:
                rm.delete_link(rule[0], rule[1], *rule[2:])

    def build_role_links(self, rm: Any) -> None:
        """Add a link in ``rm`` for every rule of this assertion's policy."""
        self.rm = rm
        count = self._link_count()
        for rule in self._trimmed(self.policy, count):
            rm.add_link(rule[0], rule[1], *rule[2:])

    def build_incremental_conditional_role_links(
        self, cond_rm: Any, op: PolicyOp, rules: Iterable[Sequence[str]]
    ) -> None:
        """Add or remove conditional links for ``rules`` in ``cond_rm``."""
        self.cond_rm = cond_rm
        count = self._link_count()
        for rule in self._trimmed(rules, count):
            if op == PolicyOp.ADD:
                self.add_conditional_role_link(rule, rule[2 : len(self.tokens)])
            elif op == PolicyOp.REMOVE:
                cond_rm.delete_link(rule[0], rule[1], *rule[2:])

    def build_conditional_role_links(self, cond_rm: Any) -> None:
        """Add a conditional link in ``cond_rm`` for every rule of the policy."""
        self.cond_rm = cond_rm
        count = self._link_count()
        for rule in self._trimmed(self.policy, count):
            self.add_conditional_role_link(rule, rule[2 : len(self.tokens)])

    def add_conditional_role_link(self, rule: Sequence[str], domain_rule: Sequence[str]) -> None:
        """Add one link and hand the trailing rule fields to its condition."""
        params = list(rule[len(self.tokens) :])
        if not domain_rule:
            self.cond_rm.add_link(rule[0], rule[1])
            self.cond_rm.set_link_condition_func_params(rule[0], rule[1], *params)
        else:
            domain = domain_rule[0]
            self.cond_rm.add_link(rule[0], rule[1], domain)
            self.cond_rm.set_domain_link_condition_func_params(rule[0], rule[1], domain, *params)

    def copy(self) -> Assertion:
        """Copy key, value, tokens and policy; the field index map is shared."""
        return Assertion(
            key=self.key,
            value=self.value,
            tokens=list(self.tokens),
            policy=[list(rule) for rule in self.policy],
            policy_map=dict(self.policy_map),
            field_index_map=self.field_index_map,
        )