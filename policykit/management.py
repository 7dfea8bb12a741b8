"""Public API for reading and editing the policy and grouping rules."""

from __future__ import annotations

from typing import Any, Callable, Sequence

from .functions import FunctionMap
from .internal import PolicyEditor
from .model import ACTION_INDEX, OBJECT_INDEX, SUBJECT_INDEX
from .policy import PolicyModel


def _rule_from(params: Sequence[Any]) -> list[str]:
    """Accept either one sequence of fields or the fields themselves."""
    if not params:
        raise ValueError("a rule needs at least one field")
    if len(params) == 1 and isinstance(params[0], (list, tuple)):
        return list(params[0])
    for param in params:
        if not isinstance(param, str):
            raise TypeError(f"rule fields must be strings, got {type(param).__name__}")
    return list(params)


class ManagementAPI(PolicyEditor):
    """Queries and edits on the ``p`` and ``g`` rules of a model.

    Edits return True when something changed and False otherwise; invalid
    requests raise.
    """

    def __init__(
        self,
        model: PolicyModel | None = None,
        adapter: Any = None,
        watcher: Any = None,
        dispatcher: Any = None,
    ) -> None:
        super().__init__(model, adapter, watcher, dispatcher)
        self.fm = FunctionMap()

    # Field values

    def get_all_subjects(self) -> list[str]:
        """Return the subjects that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types_by_name("p", SUBJECT_INDEX)

    def get_all_named_subjects(self, ptype: str) -> list[str]:
        """Return the subjects that appear in policy type ``ptype``."""
        index = self.model.get_field_index(ptype, SUBJECT_INDEX)
        return self.model.get_values_for_field_in_policy("p", ptype, index)

    def get_all_objects(self) -> list[str]:
        """Return the objects that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types_by_name("p", OBJECT_INDEX)

    def get_all_named_objects(self, ptype: str) -> list[str]:
        """Return the objects that appear in policy type ``ptype``."""
        index = self.model.get_field_index(ptype, OBJECT_INDEX)
        return self.model.get_values_for_field_in_policy("p", ptype, index)

    def get_all_actions(self) -> list[str]:
        """Return the actions that appear in any policy type."""
        return self.model.get_values_for_field_in_policy_all_types_by_name("p", ACTION_INDEX)

    def get_all_named_actions(self, ptype: str) -> list[str]:
        """Return the actions that appear in policy type ``ptype``."""
        index = self.model.get_field_index(ptype, ACTION_INDEX)
        return self.model.get_values_for_field_in_policy("p", ptype, index)

    def get_all_roles(self) -> list[str]:
        """Return the roles that appear in any grouping type."""
        return self.model.get_values_for_field_in_policy_all_types("g", 1)

    def get_all_named_roles(self, ptype: str) -> list[str]:
        """Return the roles that appear in grouping type ``ptype``."""
        return self.model.get_values_for_field_in_policy("g", ptype, 1)

    # Reading rules

    def get_policy(self) -> list[list[str]]:
        """Return every rule of policy type ``p``."""
        return self.get_named_policy("p")

    def get_filtered_policy(self, field_index: int, *args: str) -> list[list[str]]:
        """Return the ``p`` rules matching the field filter."""
        return self.get_filtered_named_policy("p", field_index, *args)

    def get_named_policy(self, ptype: str) -> list[list[str]]:
        """Return every rule of policy type ``ptype``."""
        return self.model.get_policy("p", ptype)

    def get_filtered_named_policy(self, ptype: str, field_index: int, *args: str) -> list[list[str]]:
        """Return the rules of ``ptype`` matching the field filter."""
        return self.model.get_filtered_policy("p", ptype, field_index, *args)

    def get_grouping_policy(self) -> list[list[str]]:
        """Return every rule of grouping type ``g``."""
        return self.get_named_grouping_policy("g")

    def get_filtered_grouping_policy(self, field_index: int, *args: str) -> list[list[str]]:
        """Return the ``g`` rules matching the field filter."""
        return self.get_filtered_named_grouping_policy("g", field_index, *args)

    def get_named_grouping_policy(self, ptype: str) -> list[list[str]]:
        """Return every rule of grouping type ``ptype``."""
        return self.model.get_policy("g", ptype)

    def get_filtered_named_grouping_policy(self, ptype: str, field_index: int, *args: str) -> list[list[str]]:
        """Return the grouping rules of ``ptype`` matching the field filter."""
        return self.model.get_filtered_policy("g", ptype, field_index, *args)

    # Policy rules

    def has_policy(self, *args: Any) -> bool:
        """Report whether a ``p`` rule exists."""
        return self.has_named_policy("p", *args)

    def has_named_policy(self, ptype: str, *args: Any) -> bool:
        """Report whether a rule of policy type ``ptype`` exists."""
        return self.model.has_policy("p", ptype, _rule_from(args))

    def add_policy(self, *args: Any) -> bool:
        """Add a ``p`` rule; return False if it already exists."""
        return self.add_named_policy("p", *args)

    def add_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add ``p`` rules; return False, adding nothing, if any already exists."""
        return self.add_named_policies("p", rules)

    def add_policies_ex(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add the ``p`` rules that do not exist yet."""
        return self.add_named_policies_ex("p", rules)

    def add_named_policy(self, ptype: str, *args: Any) -> bool:
        """Add a rule of policy type ``ptype``; return False if it already exists."""
        return self._add_policy("p", ptype, _rule_from(args))

    def add_named_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add rules of ``ptype``; return False, adding nothing, if any exists."""
        return self._add_policies("p", ptype, rules, False)

    def add_named_policies_ex(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the rules of ``ptype`` that do not exist yet."""
        return self._add_policies("p", ptype, rules, True)

    def remove_policy(self, *args: Any) -> bool:
        """Remove a ``p`` rule."""
        return self.remove_named_policy("p", *args)

    def update_policy(self, old_policy: Sequence[str], new_policy: Sequence[str]) -> bool:
        """Replace a ``p`` rule."""
        return self.update_named_policy("p", old_policy, new_policy)

    def update_named_policy(self, ptype: str, p1: Sequence[str], p2: Sequence[str]) -> bool:
        """Replace rule ``p1`` of ``ptype`` by ``p2``."""
        return self._update_policy("p", ptype, p1, p2)

    def update_policies(
        self, old_policies: Sequence[Sequence[str]], new_policies: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several ``p`` rules, all or none."""
        return self.update_named_policies("p", old_policies, new_policies)

    def update_named_policies(
        self, ptype: str, p1: Sequence[Sequence[str]], p2: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several rules of ``ptype``, all or none."""
        return self._update_policies("p", ptype, p1, p2)

    def update_filtered_policies(
        self, new_policies: Sequence[Sequence[str]], field_index: int, *args: str
    ) -> bool:
        """Replace the ``p`` rules matching the filter by ``new_policies``."""
        return self.update_filtered_named_policies("p", new_policies, field_index, *args)

    def update_filtered_named_policies(
        self, ptype: str, new_policies: Sequence[Sequence[str]], field_index: int, *args: str
    ) -> bool:
        """Replace the rules of ``ptype`` matching the filter by ``new_policies``."""
        return self._update_filtered_policies("p", ptype, new_policies, field_index, *args)

    def remove_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Remove ``p`` rules."""
        return self.remove_named_policies("p", rules)

    def remove_filtered_policy(self, field_index: int, *args: str) -> bool:
        """Remove the ``p`` rules matching the field filter."""
        return self.remove_filtered_named_policy("p", field_index, *args)

    def remove_named_policy(self, ptype: str, *args: Any) -> bool:
        """Remove a rule of policy type ``ptype``."""
        return self._remove_policy("p", ptype, _rule_from(args))

    def remove_named_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove rules of policy type ``ptype``."""
        return self._remove_policies("p", ptype, rules)

    def remove_filtered_named_policy(self, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the rules of ``ptype`` matching the field filter."""
        return self._remove_filtered_policy("p", ptype, field_index, args)

    # Grouping rules

    def has_grouping_policy(self, *args: Any) -> bool:
        """Report whether a ``g`` rule exists."""
        return self.has_named_grouping_policy("g", *args)

    def has_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Report whether a rule of grouping type ``ptype`` exists."""
        return self.model.has_policy("g", ptype, _rule_from(args))

    def add_grouping_policy(self, *args: Any) -> bool:
        """Add a ``g`` rule; return False if it already exists."""
        return self.add_named_grouping_policy("g", *args)

    def add_grouping_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add ``g`` rules; return False, adding nothing, if any already exists."""
        return self.add_named_grouping_policies("g", rules)

    def add_grouping_policies_ex(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add the ``g`` rules that do not exist yet."""
        return self.add_named_grouping_policies_ex("g", rules)

    def add_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Add a rule of grouping type ``ptype``; return False if it exists."""
        return self._add_policy("g", ptype, _rule_from(args))

    def add_named_grouping_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add grouping rules of ``ptype``; return False, adding nothing, if any exists."""
        return self._add_policies("g", ptype, rules, False)

    def add_named_grouping_policies_ex(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the grouping rules of ``ptype`` that do not exist yet."""
        return self._add_policies("g", ptype, rules, True)

    def remove_grouping_policy(self, *args: Any) -> bool:
        """Remove a ``g`` rule."""
        return self.remove_named_grouping_policy("g", *args)

    def remove_grouping_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Remove ``g`` rules."""
        return self.remove_named_grouping_policies("g", rules)

    def remove_filtered_grouping_policy(self, field_index: int, *args: str) -> bool:
        """Remove the ``g`` rules matching the field filter."""
        return self.remove_filtered_named_grouping_policy("g", field_index, *args)

    def remove_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Remove a rule of grouping type ``ptype``."""
        return self._remove_policy("g", ptype, _rule_from(args))

    def remove_named_grouping_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove grouping rules of ``ptype``."""
        return self._remove_policies("g", ptype, rules)

    def update_grouping_policy(self, old_rule: Sequence[str], new_rule: Sequence[str]) -> bool:
        """Replace a ``g`` rule."""
        return self.update_named_grouping_policy("g", old_rule, new_rule)

    def update_grouping_policies(
        self, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several ``g`` rules, all or none."""
        return self.update_named_grouping_policies("g", old_rules, new_rules)

    def update_named_grouping_policy(
        self, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        """Replace a grouping rule of ``ptype``."""
        return self._update_policy("g", ptype, old_rule, new_rule)

    def update_named_grouping_policies(
        self, ptype: str, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several grouping rules of ``ptype``, all or none."""
        return self._update_policies("g", ptype, old_rules, new_rules)

    def remove_filtered_named_grouping_policy(self, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the grouping rules of ``ptype`` matching the field filter."""
        return self._remove_filtered_policy("g", ptype, field_index, args)

    # Functions

    def add_function(self, name: str, function: Callable[..., Any]) -> None:
        """Register a function callable from matchers."""
        self.fm.add_function(name, function)

    # Edits without watcher notification

    def self_add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Add a rule without notifying the watcher."""
        return self._add_policy_without_notify(sec, ptype, rule)

    def self_add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add rules, all or none, without notifying the watcher."""
        return self._add_policies_without_notify(sec, ptype, rules, False)

    def self_add_policies_ex(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the new rules among ``rules`` without notifying the watcher."""
        return self._add_policies_without_notify(sec, ptype, rules, True)

    def self_remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Remove a rule without notifying the watcher."""
        return self._remove_policy_without_notify(sec, ptype, rule)

    def self_remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove rules without notifying the watcher."""
        return self._remove_policies_without_notify(sec, ptype, rules)

    def self_remove_filtered_policy(self, sec: str, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the rules matching the filter without notifying the watcher."""
        return self._remove_filtered_policy_without_notify(sec, ptype, field_index, args)

    def self_update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        """Replace a rule without notifying the watcher."""
        return self._update_policy_without_notify(sec, ptype, old_rule, new_rule)

    def self_update_policies(
        self, sec: str, ptype: str, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several rules without notifying the watcher."""
        return self._update_policies_without_notify(sec, ptype, old_rules, new_rules)