"""Policy storage and editing on top of the access-control model."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Sequence

from .assertion import PolicyOp
from .errors import ModelError
from .model import PRIORITY_INDEX, Model

DEFAULT_SEP = ","

_INT_RE = re.compile(r"[+-]?[0-9]+")


def _key(rule: Sequence[str]) -> str:
    return DEFAULT_SEP.join(rule)


def _atoi(text: str) -> int | None:
    """Parse a plain decimal integer, returning None when it is not one."""
    if _INT_RE.fullmatch(text) is None:
        return None
    return int(text)


def _matches(rule: Sequence[str], field_index: int, field_values: Sequence[str]) -> bool:
    return all(
        value == "" or rule[field_index + offset] == value
        for offset, value in enumerate(field_values)
    )


class PolicyModel(Model):
    """A model that also holds and edits the policy rules of its assertions."""

    # Role links

    def build_incremental_role_links(
        self,
        rm_map: Mapping[str, Any],
        op: PolicyOp,
        sec: str,
        ptype: str,
        rules: Iterable[Sequence[str]],
    ) -> None:
        """Apply ``op`` for ``rules`` to the role manager of grouping type ``ptype``."""
        if sec == "g" and rm_map.get(ptype) is not None:
            self.get_assertion(sec, ptype).build_incremental_role_links(rm_map[ptype], op, rules)

    def build_role_links(self, rm_map: Mapping[str, Any]) -> None:
        """Build all role links of every grouping type that has a role manager."""
        self.print_policy()
        for ptype, ast in self.get("g", {}).items():
            rm = rm_map.get(ptype)
            if rm is not None:
                ast.build_role_links(rm)

    def build_incremental_conditional_role_links(
        self,
        cond_rm_map: Mapping[str, Any],
        op: PolicyOp,
        sec: str,
        ptype: str,
        rules: Iterable[Sequence[str]],
    ) -> None:
        """Apply ``op`` for ``rules`` to the conditional role manager of ``ptype``."""
        if sec == "g" and cond_rm_map.get(ptype) is not None:
            self.get_assertion(sec, ptype).build_incremental_conditional_role_links(
                cond_rm_map[ptype], op, rules
            )

    def build_conditional_role_links(self, cond_rm_map: Mapping[str, Any]) -> None:
        """Build all conditional role links of every grouping type that has a manager."""
        self.print_policy()
        for ptype, ast in self.get("g", {}).items():
            cond_rm = cond_rm_map.get(ptype)
            if cond_rm is not None:
                ast.build_conditional_role_links(cond_rm)

    # Inspection

    def print_policy(self) -> None:
        """Send the policy of every ``p`` and ``g`` type to the logger, if enabled."""
        logger = self.get_logger()
        if not logger.is_enabled():
            return
        policy: dict[str, list[list[str]]] = {}
        for sec in ("p", "g"):
            for key, ast in self.get(sec, {}).items():
                policy.setdefault(key, []).extend(ast.policy)
        logger.log_policy(policy)

    def clear_policy(self) -> None:
        """Remove every rule from every ``p`` and ``g`` assertion."""
        for sec in ("p", "g"):
            for ast in self.get(sec, {}).values():
                ast.policy = []
                ast.policy_map = {}

    def get_policy(self, sec: str, ptype: str) -> list[list[str]]:
        """Return all rules of a policy type."""
        return [list(rule) for rule in self.get_assertion(sec, ptype).policy]

    def get_filtered_policy(self, sec: str, ptype: str, field_index: int, *args: str) -> list[list[str]]:
        """Return the rules whose fields from ``field_index`` on match ``args``.

        An empty string in ``args`` matches any value.
        """
        ast = self.get_assertion(sec, ptype)
        return [list(rule) for rule in ast.policy if _matches(rule, field_index, args)]

    def has_policy_ex(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Like :meth:`has_policy`, but first check the rule has a valid size."""
        ast = self.get_assertion(sec, ptype)
        expected = len(ast.tokens)
        if (sec == "p" and len(rule) != expected) or (sec == "g" and len(rule) < expected):
            raise ModelError(
                f"invalid policy rule size: expected {expected}, got {len(rule)}, rule: {list(rule)}"
            )
        return self.has_policy(sec, ptype, rule)

    def has_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Report whether the rule is in the policy."""
        return _key(rule) in self.get_assertion(sec, ptype).policy_map

    def has_policies(self, sec: str, ptype: str, rules: Iterable[Sequence[str]]) -> bool:
        """Report whether any of the rules is in the policy."""
        return any(self.has_policy(sec, ptype, rule) for rule in rules)

    # Editing

    def add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> None:
        """Append a rule; for ``p`` types with a priority field keep priority order."""
        ast = self.get_assertion(sec, ptype)
        new_rule = list(rule)
        ast.policy.append(new_rule)
        ast.policy_map[_key(new_rule)] = len(ast.policy) - 1

        prio = ast.field_index_map.get(PRIORITY_INDEX)
        if sec != "p" or prio is None:
            return
        inserted = _atoi(new_rule[prio])
        if inserted is None:
            return
        i = len(ast.policy) - 1
        while i > 0:
            previous = _atoi(ast.policy[i - 1][prio])
            if previous is None or previous <= inserted:
                break
            ast.policy[i] = ast.policy[i - 1]
            ast.policy_map[_key(ast.policy[i])] += 1
            i -= 1
        ast.policy[i] = new_rule
        ast.policy_map[_key(new_rule)] = i

    def add_policies(self, sec: str, ptype: str, rules: Iterable[Sequence[str]]) -> None:
        """Add every rule that is not already present."""
        self.add_policies_with_affected(sec, ptype, rules)

    def add_policies_with_affected(
        self, sec: str, ptype: str, rules: Iterable[Sequence[str]]
    ) -> list[list[str]]:
        """Add every rule not already present and return those that were added."""
        ast = self.get_assertion(sec, ptype)
        affected: list[list[str]] = []
        for rule in rules:
            if _key(rule) in ast.policy_map:
                continue
            affected.append(list(rule))
            self.add_policy(sec, ptype, rule)
        return affected

    def _remove_at(self, sec: str, ptype: str, index: int, rule: Sequence[str]) -> None:
        ast = self.get_assertion(sec, ptype)
        del ast.policy[index]
        del ast.policy_map[_key(rule)]
        for i in range(index, len(ast.policy)):
            ast.policy_map[_key(ast.policy[i])] = i

    def remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Remove a rule; return False when it was not present."""
        ast = self.get_assertion(sec, ptype)
        index = ast.policy_map.get(_key(rule))
        if index is None:
            return False
        self._remove_at(sec, ptype, index, rule)
        return True

    def update_policy(self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]) -> bool:
        """Replace ``old_rule`` in place; return False when it was not present."""
        ast = self.get_assertion(sec, ptype)
        old_key = _key(old_rule)
        index = ast.policy_map.get(old_key)
        if index is None:
            return False
        ast.policy[index] = list(new_rule)
        del ast.policy_map[old_key]
        ast.policy_map[_key(new_rule)] = index
        return True

    def update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> bool:
        """Replace each old rule by the new rule at the same position.

        If any old rule is missing, every replacement already made is undone
        and False is returned.
        """
        ast = self.get_assertion(sec, ptype)
        done: list[tuple[int, Sequence[str], Sequence[str]]] = []
        for old_rule, new_rule in zip(old_rules, new_rules):
            old_key = _key(old_rule)
            index = ast.policy_map.get(old_key)
            if index is None:
                for undo_index, undo_old, undo_new in reversed(done):
                    ast.policy[undo_index] = list(undo_old)
                    ast.policy_map.pop(_key(undo_new), None)
                    ast.policy_map[_key(undo_old)] = undo_index
                return False
            ast.policy[index] = list(new_rule)
            del ast.policy_map[old_key]
            ast.policy_map[_key(new_rule)] = index
            done.append((index, old_rule, new_rule))
        return True

    def remove_policies(self, sec: str, ptype: str, rules: Iterable[Sequence[str]]) -> bool:
        """Remove the rules; return True when at least one was removed."""
        return bool(self.remove_policies_with_affected(sec, ptype, rules))

    def remove_policies_with_affected(
        self, sec: str, ptype: str, rules: Iterable[Sequence[str]]
    ) -> list[list[str]]:
        """Remove the rules and return those that were present."""
        ast = self.get_assertion(sec, ptype)
        affected: list[list[str]] = []
        for rule in rules:
            index = ast.policy_map.get(_key(rule))
            if index is None:
                continue
            affected.append(list(rule))
            self._remove_at(sec, ptype, index, rule)
        return affected

    def remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, *args: str
    ) -> tuple[bool, list[list[str]]]:
        """Remove the rules matching the field filter.

        Return whether anything was removed, and the removed rules.
        """
        ast = self.get_assertion(sec, ptype)
        kept: list[list[str]] = []
        effects: list[list[str]] = []
        ast.policy_map = {}
        for rule in ast.policy:
            if _matches(rule, field_index, args):
                effects.append(rule)
            else:
                kept.append(rule)
                ast.policy_map[_key(rule)] = len(kept) - 1
        changed = len(kept) != len(ast.policy)
        if changed:
            ast.policy = kept
        return changed, effects

    # Field values

    def get_values_for_field_in_policy(self, sec: str, ptype: str, field_index: int) -> list[str]:
        """Return the distinct values of one field, in order of first appearance."""
        ast = self.get_assertion(sec, ptype)
        return list(dict.fromkeys(rule[field_index] for rule in ast.policy))

    def get_values_for_field_in_policy_all_types(self, sec: str, field_index: int) -> list[str]:
        """Return the distinct values of one field over every type of the section."""
        values: list[str] = []
        for ptype in self.get(sec, {}):
            values.extend(self.get_values_for_field_in_policy(sec, ptype, field_index))
        return list(dict.fromkeys(values))

    def get_values_for_field_in_policy_all_types_by_name(self, sec: str, field: str) -> list[str]:
        """Return the distinct values of a named field; types without it are skipped."""
        values: list[str] = []
        for ptype in self.get(sec, {}):
            try:
                index = self.get_field_index(ptype, field)
            except ModelError:
                continue
            values.extend(self.get_values_for_field_in_policy(sec, ptype, index))
        return list(dict.fromkeys(values))