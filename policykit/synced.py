"""A policy manager that is safe to share between threads."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Callable, Iterator, Sequence

from .errors import PolicyError
from .management import ManagementAPI
from .policy import PolicyModel


class ReadWriteLock:
    """A lock that lets many readers or one writer in, preferring writers."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold the lock for reading while the block runs."""
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold the lock exclusively while the block runs."""
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _seconds(interval: float | timedelta) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


class SyncedManager:
    """Wraps a :class:`ManagementAPI` and serialises access to it.

    Queries take a shared lock, edits an exclusive one. The policy can also be
    reloaded periodically from the wrapped manager's adapter, which must offer
    a ``load_policy(model)`` method that adds rules to the given model.
    """

    def __init__(self, enforcer: ManagementAPI | None = None) -> None:
        self._enforcer = enforcer if enforcer is not None else ManagementAPI()
        self._lock = ReadWriteLock()
        self._state_lock = threading.Lock()
        self._auto_load_running = False
        self._stop_event: threading.Event | None = None

    @property
    def enforcer(self) -> ManagementAPI:
        """The wrapped manager."""
        return self._enforcer

    def get_model(self) -> PolicyModel:
        """Return the model of the wrapped manager."""
        with self._lock.read():
            return self._enforcer.get_model()

    def get_lock(self) -> ReadWriteLock:
        """Return the lock guarding the wrapped manager."""
        return self._lock

    # Periodic reloading

    def is_auto_loading_running(self) -> bool:
        """Report whether the periodic reload is running."""
        with self._state_lock:
            return self._auto_load_running

    def start_auto_load_policy(self, interval: float | timedelta) -> None:
        """Reload the policy every ``interval`` (seconds or timedelta) in a thread.

        Does nothing if a reload thread is already running. Reload errors are
        ignored.
        """
        with self._state_lock:
            if self._auto_load_running:
                return
            self._auto_load_running = True
            stop = threading.Event()
            self._stop_event = stop
        period = _seconds(interval)

        def run() -> None:
            try:
                while not stop.wait(period):
                    try:
                        self.load_policy()
                    except Exception:  # noqa: BLE001 - reload errors are ignored by design
                        pass
            finally:
                with self._state_lock:
                    self._auto_load_running = False

        threading.Thread(target=run, name="policy-auto-load", daemon=True).start()

    def stop_auto_load_policy(self) -> None:
        """Ask the reload thread to exit."""
        with self._state_lock:
            if self._auto_load_running and self._stop_event is not None:
                self._stop_event.set()

    # Whole-model operations

    def set_watcher(self, watcher: Any) -> None:
        """Replace the watcher told about changes."""
        with self._lock.write():
            self._enforcer.set_watcher(watcher)

    def clear_policy(self) -> None:
        """Remove every rule."""
        with self._lock.write():
            self._enforcer.clear_policy()

    def _load_policy_from_adapter(self, model: PolicyModel) -> PolicyModel:
        adapter = self._enforcer.adapter
        if adapter is None:
            raise PolicyError("no adapter is set to load the policy from")
        loader = getattr(adapter, "load_policy", None)
        if loader is None:
            raise PolicyError("the adapter cannot load a policy")
        new_model = model.copy()
        new_model.clear_policy()
        loader(new_model)
        new_model.sort_policies_by_priority()
        return new_model

    def load_policy(self) -> None:
        """Reload the whole policy from the adapter and rebuild role links."""
        with self._lock.read():
            new_model = self._load_policy_from_adapter(self._enforcer.model)
        with self._lock.write():
            old_model = self._enforcer.model
            self._enforcer.model = new_model
            try:
                self._enforcer.build_role_links()
            except Exception:
                self._enforcer.model = old_model
                raise

    def build_role_links(self) -> None:
        """Rebuild every role manager from the grouping policy."""
        with self._lock.write():
            self._enforcer.build_role_links()

    # Queries

    def get_all_subjects(self) -> list[str]:
        """Return the subjects that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_subjects()

    def get_all_named_subjects(self, ptype: str) -> list[str]:
        """Return the subjects of policy type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_all_named_subjects(ptype)

    def get_all_objects(self) -> list[str]:
        """Return the objects that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_objects()

    def get_all_named_objects(self, ptype: str) -> list[str]:
        """Return the objects of policy type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_all_named_objects(ptype)

    def get_all_actions(self) -> list[str]:
        """Return the actions that appear in any policy type."""
        with self._lock.read():
            return self._enforcer.get_all_actions()

    def get_all_named_actions(self, ptype: str) -> list[str]:
        """Return the actions of policy type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_all_named_actions(ptype)

    def get_all_roles(self) -> list[str]:
        """Return the roles that appear in any grouping type."""
        with self._lock.read():
            return self._enforcer.get_all_roles()

    def get_all_named_roles(self, ptype: str) -> list[str]:
        """Return the roles of grouping type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_all_named_roles(ptype)

    def get_policy(self) -> list[list[str]]:
        """Return every ``p`` rule."""
        with self._lock.read():
            return self._enforcer.get_policy()

    def get_filtered_policy(self, field_index: int, *args: str) -> list[list[str]]:
        """Return the ``p`` rules matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_policy(field_index, *args)

    def get_named_policy(self, ptype: str) -> list[list[str]]:
        """Return every rule of policy type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_named_policy(ptype)

    def get_filtered_named_policy(self, ptype: str, field_index: int, *args: str) -> list[list[str]]:
        """Return the rules of ``ptype`` matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_named_policy(ptype, field_index, *args)

    def get_grouping_policy(self) -> list[list[str]]:
        """Return every ``g`` rule."""
        with self._lock.read():
            return self._enforcer.get_grouping_policy()

    def get_filtered_grouping_policy(self, field_index: int, *args: str) -> list[list[str]]:
        """Return the ``g`` rules matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_grouping_policy(field_index, *args)

    def get_named_grouping_policy(self, ptype: str) -> list[list[str]]:
        """Return every rule of grouping type ``ptype``."""
        with self._lock.read():
            return self._enforcer.get_named_grouping_policy(ptype)

    def get_filtered_named_grouping_policy(self, ptype: str, field_index: int, *args: str) -> list[list[str]]:
        """Return the grouping rules of ``ptype`` matching the field filter."""
        with self._lock.read():
            return self._enforcer.get_filtered_named_grouping_policy(ptype, field_index, *args)

    def has_policy(self, *args: Any) -> bool:
        """Report whether a ``p`` rule exists."""
        with self._lock.read():
            return self._enforcer.has_policy(*args)

    def has_named_policy(self, ptype: str, *args: Any) -> bool:
        """Report whether a rule of ``ptype`` exists."""
        with self._lock.read():
            return self._enforcer.has_named_policy(ptype, *args)

    def has_grouping_policy(self, *args: Any) -> bool:
        """Report whether a ``g`` rule exists."""
        with self._lock.read():
            return self._enforcer.has_grouping_policy(*args)

    def has_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Report whether a grouping rule of ``ptype`` exists."""
        with self._lock.read():
            return self._enforcer.has_named_grouping_policy(ptype, *args)

    # Policy edits

    def add_policy(self, *args: Any) -> bool:
        """Add a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.add_policy(*args)

    def add_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add ``p`` rules, all or none."""
        with self._lock.write():
            return self._enforcer.add_policies(rules)

    def add_policies_ex(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add the ``p`` rules that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_policies_ex(rules)

    def add_named_policy(self, ptype: str, *args: Any) -> bool:
        """Add a rule of ``ptype``."""
        with self._lock.write():
            return self._enforcer.add_named_policy(ptype, *args)

    def add_named_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add rules of ``ptype``, all or none."""
        with self._lock.write():
            return self._enforcer.add_named_policies(ptype, rules)

    def add_named_policies_ex(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the rules of ``ptype`` that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_named_policies_ex(ptype, rules)

    def remove_policy(self, *args: Any) -> bool:
        """Remove a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.remove_policy(*args)

    def update_policy(self, old_policy: Sequence[str], new_policy: Sequence[str]) -> bool:
        """Replace a ``p`` rule."""
        with self._lock.write():
            return self._enforcer.update_policy(old_policy, new_policy)

    def update_named_policy(self, ptype: str, p1: Sequence[str], p2: Sequence[str]) -> bool:
        """Replace rule ``p1`` of ``ptype`` by ``p2``."""
        with self._lock.write():
            return self._enforcer.update_named_policy(ptype, p1, p2)

    def update_policies(
        self, old_policies: Sequence[Sequence[str]], new_policies: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several ``p`` rules, all or none."""
        with self._lock.write():
            return self._enforcer.update_policies(old_policies, new_policies)

    def update_named_policies(
        self, ptype: str, p1: Sequence[Sequence[str]], p2: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several rules of ``ptype``, all or none."""
        with self._lock.write():
            return self._enforcer.update_named_policies(ptype, p1, p2)

    def update_filtered_policies(
        self, new_policies: Sequence[Sequence[str]], field_index: int, *args: str
    ) -> bool:
        """Replace the ``p`` rules matching the filter."""
        with self._lock.write():
            return self._enforcer.update_filtered_policies(new_policies, field_index, *args)

    def update_filtered_named_policies(
        self, ptype: str, new_policies: Sequence[Sequence[str]], field_index: int, *args: str
    ) -> bool:
        """Replace the rules of ``ptype`` matching the filter."""
        with self._lock.write():
            return self._enforcer.update_filtered_named_policies(ptype, new_policies, field_index, *args)

    def remove_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Remove ``p`` rules."""
        with self._lock.write():
            return self._enforcer.remove_policies(rules)

    def remove_filtered_policy(self, field_index: int, *args: str) -> bool:
        """Remove the ``p`` rules matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_policy(field_index, *args)

    def remove_named_policy(self, ptype: str, *args: Any) -> bool:
        """Remove a rule of ``ptype``."""
        with self._lock.write():
            return self._enforcer.remove_named_policy(ptype, *args)

    def remove_named_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove rules of ``ptype``."""
        with self._lock.write():
            return self._enforcer.remove_named_policies(ptype, rules)

    def remove_filtered_named_policy(self, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the rules of ``ptype`` matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_named_policy(ptype, field_index, *args)

    # Grouping edits

    def add_grouping_policy(self, *args: Any) -> bool:
        """Add a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.add_grouping_policy(*args)

    def add_grouping_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add ``g`` rules, all or none."""
        with self._lock.write():
            return self._enforcer.add_grouping_policies(rules)

    def add_grouping_policies_ex(self, rules: Sequence[Sequence[str]]) -> bool:
        """Add the ``g`` rules that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_grouping_policies_ex(rules)

    def add_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Add a grouping rule of ``ptype``."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policy(ptype, *args)

    def add_named_grouping_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add grouping rules of ``ptype``, all or none."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policies(ptype, rules)

    def add_named_grouping_policies_ex(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the grouping rules of ``ptype`` that do not exist yet."""
        with self._lock.write():
            return self._enforcer.add_named_grouping_policies_ex(ptype, rules)

    def remove_grouping_policy(self, *args: Any) -> bool:
        """Remove a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.remove_grouping_policy(*args)

    def remove_grouping_policies(self, rules: Sequence[Sequence[str]]) -> bool:
        """Remove ``g`` rules."""
        with self._lock.write():
            return self._enforcer.remove_grouping_policies(rules)

    def remove_filtered_grouping_policy(self, field_index: int, *args: str) -> bool:
        """Remove the ``g`` rules matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_grouping_policy(field_index, *args)

    def remove_named_grouping_policy(self, ptype: str, *args: Any) -> bool:
        """Remove a grouping rule of ``ptype``."""
        with self._lock.write():
            return self._enforcer.remove_named_grouping_policy(ptype, *args)

    def remove_named_grouping_policies(self, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove grouping rules of ``ptype``."""
        with self._lock.write():
            return self._enforcer.remove_named_grouping_policies(ptype, rules)

    def update_grouping_policy(self, old_rule: Sequence[str], new_rule: Sequence[str]) -> bool:
        """Replace a ``g`` rule."""
        with self._lock.write():
            return self._enforcer.update_grouping_policy(old_rule, new_rule)

    def update_grouping_policies(
        self, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several ``g`` rules, all or none."""
        with self._lock.write():
            return self._enforcer.update_grouping_policies(old_rules, new_rules)

    def update_named_grouping_policy(
        self, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        """Replace a grouping rule of ``ptype``."""
        with self._lock.write():
            return self._enforcer.update_named_grouping_policy(ptype, old_rule, new_rule)

    def update_named_grouping_policies(
        self, ptype: str, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several grouping rules of ``ptype``, all or none."""
        with self._lock.write():
            return self._enforcer.update_named_grouping_policies(ptype, old_rules, new_rules)

    def remove_filtered_named_grouping_policy(self, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the grouping rules of ``ptype`` matching the field filter."""
        with self._lock.write():
            return self._enforcer.remove_filtered_named_grouping_policy(ptype, field_index, *args)

    def add_function(self, name: str, function: Callable[..., Any]) -> None:
        """Register a function callable from matchers."""
        with self._lock.write():
            self._enforcer.add_function(name, function)

    # Edits without watcher notification

    def self_add_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Add a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_add_policy(sec, ptype, rule)

    def self_add_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add rules, all or none, without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_add_policies(sec, ptype, rules)

    def self_add_policies_ex(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Add the new rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_add_policies_ex(sec, ptype, rules)

    def self_remove_policy(self, sec: str, ptype: str, rule: Sequence[str]) -> bool:
        """Remove a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_policy(sec, ptype, rule)

    def self_remove_policies(self, sec: str, ptype: str, rules: Sequence[Sequence[str]]) -> bool:
        """Remove rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_policies(sec, ptype, rules)

    def self_remove_filtered_policy(self, sec: str, ptype: str, field_index: int, *args: str) -> bool:
        """Remove the rules matching the filter without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_remove_filtered_policy(sec, ptype, field_index, *args)

    def self_update_policy(
        self, sec: str, ptype: str, old_rule: Sequence[str], new_rule: Sequence[str]
    ) -> bool:
        """Replace a rule without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_update_policy(sec, ptype, old_rule, new_rule)

    def self_update_policies(
        self, sec: str, ptype: str, old_rules: Sequence[Sequence[str]], new_rules: Sequence[Sequence[str]]
    ) -> bool:
        """Replace several rules without notifying the watcher."""
        with self._lock.write():
            return self._enforcer.self_update_policies(sec, ptype, old_rules, new_rules)