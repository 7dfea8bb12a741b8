"""Policy edits that keep the model, the adapter, role links and watchers in step."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from .assertion import PolicyOp
from .errors import InvalidFieldValuesError
from .policy import PolicyModel

NOT_IMPLEMENTED = "not implemented"


class PolicyEditor:
    """Applies policy changes to a model and propagates them.

    ``adapter`` persists changes when ``auto_save`` is on. ``watcher`` is told
    about changes when ``auto_notify_watcher`` is on. When a ``dispatcher`` is
    set and ``auto_notify_dispatcher`` is on, changes are handed to it instead
    of being applied locally. ``rm_map`` and ``cond_rm_map`` map grouping types
    to their role managers.
    """

    def __init__(
        self,
        model: PolicyModel | None = None,
        adapter: Any = None,
        watcher: Any = None,
        dispatcher: Any = None,
    ) -> None:
        self.model: PolicyModel = model if model is not None else PolicyModel()
        self.adapter = adapter
        self.watcher = watcher
        self.dispatcher = dispatcher
        self.auto_save = True
        self.auto_notify_watcher = True
        self.auto_notify_dispatcher = True
        self.rm_map: dict[str, Any] = {}
        self.cond_rm_map: dict[str, Any] = {}

    # Plumbing

    def get_model(self) -> PolicyModel:
        """Return the model being edited."""
        return self.model

    def clear_policy(self) -> None:
        """Remove every rule from the model."""
        self.model.clear_policy()

    def set_watcher(self, watcher: Any) -> None:
        """Replace the watcher told about changes."""
        self.watcher = watcher

    def build_role_links(self) -> None:
        """Rebuild every role manager from the grouping policy."""
        for rm in self.rm_map.values():
            clear = getattr(rm, "clear", None)
            if clear is not None:
                clear()
        self.model.build_role_links(self.rm_map)
        self.model.build_conditional_role_links(self.cond_rm_map)

    def build_incremental_role_links(self, op: PolicyOp, ptype: str, rules: Iterable[Sequence[str]]) -> None:
        """Add or remove the role links of ``rules`` for grouping type ``ptype``."""
        self.model.build_incremental_role_links(self.rm_map, op, "g", ptype, rules)

    def build_incremental_conditional_role_links(
        self, op: PolicyOp, ptype: str, rules: Iterable[Sequence[str]]
    ) -> None:
        """Add or remove the conditional role links of ``rules`` for ``ptype``."""
        self.model.build_incremental_conditional_role_links(self.cond_rm_map, op, "g", ptype, rules)

    def get_field_index(self, ptype: str, field: str) -> int:
        """Return the position of ``field`` in policy type ``ptype``."""
        return self.model.get_field_index(ptype, field)

    def set_field_index(self, ptype: str, field: str, index: int) -> None:
        """Declare that ``field`` sits at ``index`` in policy type ``ptype``."""
        self.model.get_assertion("p", ptype).field_index_map[field] = index

    @property
    def _should_persist(self) -> bool:
        return self.adapter is not None and self.auto_save

    @property
    def _should_notify(self) -> bool:
        return self.watcher is not None and self.auto_notify_watcher

    @property
    def _should_dispatch(self) -> bool:
        return self.dispatcher is not None and self.auto_notify_dispatcher

    def _persist(self, method_name: str, *args: Any) -> Any:
        """Call an adapter method, ignoring adapters that do not implement it."""
        method = getattr(self.adapter, method_name, None)
        if method is None:
            return None
        try:
            return method(*args)
        except NotImplementedError:
            return None
        except Exception as exc:
            if str(exc) == NOT_IMPLEMENTED:
                return None
            raise

    def _notify(self, method_name: str, *args: Any) -> None:
        method = getattr(self.watcher, method_name, None)
        if method is not None:
            method(*args)
        else:
            self.watcher.update()

    # Changes without notification

    def _add_policy_without_notify(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        if self._should_dispatch:
            self.dispatcher.add_policies(sec, ptype, [list(rule)])
            return True
        if self.model.has_policy(sec, ptype, rule):
            return False
        if self._should_persist:
            self._persist("add_policy", sec, ptype, list(rule))
        self.model.add_policy(sec, ptype, rule)
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.ADD, ptype, [rule])
        return True

    def _add_policies_without_notify(
        self, sec: str, ptype: str, rules: Sequence[Sequence[str]], auto_remove_repeat: bool
    ) -> bool:
        if self._should_dispatch:
            self.dispatcher.add_policies(sec, ptype, [list(r) for r in rules])
            return True
        if not auto_remove_repeat and self.model.has_policies(sec, ptype, rules):
            return False
        if self._should_persist:
            self._persist("add_policies", sec, ptype, [list(r) for r in rules])
        self.model.add_policies(sec, ptype, rules)
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.ADD, ptype, rules)
            self.build_incremental_conditional_role_links(PolicyOp.ADD, ptype, rules)
        return True

    def _remove_policy_without_notify(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        if self._should_dispatch:
            self.dispatcher.remove_policies(sec, ptype, [list(rule)])
            return True
        if self._should_persist:
            self._persist("remove_policy", sec, ptype, list(rule))
        if not self.model.remove_policy(sec, ptype, rule):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, [rule])
        return True

    def _update_policy_without_notify(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        if self._should_dispatch:
            self.dispatcher.update_policy(sec, ptype, list(old_rule), list(new_rule))
            return True
        if self._should_persist:
            self._persist("update_policy", sec, ptype, list(old_rule), list(new_rule))
        if not self.model.update_policy(sec, ptype, old_rule, new_rule):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, [old_rule])
            self.build_incremental_role_links(PolicyOp.ADD, ptype, [new_rule])
        return True

    def _update_policies_without_notify(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> bool:
        if len(old_rules) != len(new_rules):
            raise ValueError(
                "the length of oldRules should be equal to the length of newRules, "
                f"but got the length of oldRules is {len(old_rules)}, "
                f"the length of newRules is {len(new_rules)}"
            )
        if self._should_dispatch:
            self.dispatcher.update_policies(sec, ptype, old_rules, new_rules)
            return True
        if self._should_persist:
            self._persist("update_policies", sec, ptype, old_rules, new_rules)
        if not self.model.update_policies(sec, ptype, old_rules, new_rules):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, old_rules)
            self.build_incremental_role_links(PolicyOp.ADD, ptype, new_rules)
        return True

    def _remove_policies_without_notify(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        if not self.model.has_policies(sec, ptype, rules):
            return False
        if self._should_dispatch:
            self.dispatcher.remove_policies(sec, ptype, [list(r) for r in rules])
            return True
        if self._should_persist:
            self._persist("remove_policies", sec, ptype, [list(r) for r in rules])
        if not self.model.remove_policies(sec, ptype, rules):
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, rules)
        return True

    def _remove_filtered_policy_without_notify(
        self, sec: str, ptype: str, field_index: int, field_values: Sequence[str]
    ) -> bool:
        if not field_values:
            raise InvalidFieldValuesError()
        if self._should_dispatch:
            self.dispatcher.remove_filtered_policy(sec, ptype, field_index, *field_values)
            return True
        if self._should_persist:
            self._persist("remove_filtered_policy", sec, ptype, field_index, *field_values)
        removed, effects = self.model.remove_filtered_policy(sec, ptype, field_index, *field_values)
        if not removed:
            return False
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, effects)
        return True

    def _update_filtered_policies_without_notify(
        self,
        sec: str,
        ptype: str,
        new_rules: Sequence[Sequence[str]],
        field_index: int,
        *field_values: str,
    ) -> list[list[str]]:
        ast = self.model.get_assertion(sec, ptype)
        old_rules: list[list[str]] = []
        if self._should_persist:
            returned = self._persist(
                "update_filtered_policies", sec, ptype, new_rules, field_index, *field_values
            )
            # Some adapters return old rules prefixed with their policy type.
            old_rules = [
                list(rule[1:]) if len(rule) == len(ast.tokens) + 1 else list(rule)
                for rule in returned or ()
            ]
        if self._should_dispatch:
            self.dispatcher.update_filtered_policies(sec, ptype, old_rules, new_rules)
            return old_rules

        changed = self.model.remove_policies(sec, ptype, old_rules)
        self.model.add_policies(sec, ptype, new_rules)
        if not (changed and len(new_rules) != 0):
            return []
        if sec == "g":
            self.build_incremental_role_links(PolicyOp.REMOVE, ptype, old_rules)
            self.build_incremental_role_links(PolicyOp.ADD, ptype, new_rules)
        return old_rules

    # Changes with notification

    def _add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        if not self._add_policy_without_notify(sec, ptype, rule):
            return False
        if self._should_notify:
            self._notify("update_for_add_policy", sec, ptype, *rule)
        return True

    def _add_policies(
        self, sec: str, ptype: str, rules: Sequence[Sequence[str]], auto_remove_repeat: bool
    ) -> bool:
        if not self._add_policies_without_notify(sec, ptype, rules, auto_remove_repeat):
            return False
        if self._should_notify:
            self._notify("update_for_add_policies", sec, ptype, *rules)
        return True

    def _remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        if not self._remove_policy_without_notify(sec, ptype, rule):
            return False
        if self._should_notify:
            self._notify("update_for_remove_policy", sec, ptype, *rule)
        return True

    def _update_policy(self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]) -> bool:
        if not self._update_policy_without_notify(sec, ptype, old_rule, new_rule):
            return False
        if self._should_notify:
            self._notify("update_for_update_policy", sec, ptype, old_rule, new_rule)
        return True

    def _update_policies(
        self,
        sec: str,
        ptype: str,
        old_rules: Sequence[Sequence[str]],
        new_rules: Sequence[Sequence[str]],
    ) -> bool:
        if not self._update_policies_without_notify(sec, ptype, old_rules, new_rules):
            return False
        if self._should_notify:
            self._notify("update_for_update_policies", sec, ptype, old_rules, new_rules)
        return True

    def _remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        if not self._remove_policies_without_notify(sec, ptype, rules):
            return False
        if self._should_notify:
            self._notify("update_for_remove_policies", sec, ptype, *rules)
        return True

    def _remove_filtered_policy(
        self, sec: str, ptype: str, field_index: int, field_values: Sequence[str]
    ) -> bool:
        if not self._remove_filtered_policy_without_notify(sec, ptype, field_index, field_values):
            return False
        if self._should_notify:
            self._notify("update_for_remove_filtered_policy", sec, ptype, field_index, *field_values)
        return True

    def _update_filtered_policies(
        self,
        sec: str,
        ptype: str,
        new_rules: Sequence[Sequence[str]],
        field_index: int,
        *field_values: str,
    ) -> bool:
        old_rules = self._update_filtered_policies_without_notify(
            sec, ptype, new_rules, field_index, *field_values
        )
        if not old_rules:
            return False
        if self._should_notify:
            self._notify("update_for_update_policies", sec, ptype, old_rules, new_rules)
        return True