# policykit

policykit holds access-control models and the policy rules that go with them.
A model is made of request (`r`), policy (`p`), role (`g`), effect (`e`) and
matcher (`m`) definitions. Rules are kept in order and indexed for fast
lookup. Grouping rules can be mirrored into role managers that you supply.
A management API edits rules and passes each change on to an adapter, a
watcher or a dispatcher when one is set. A reader/writer-locked wrapper makes
that API safe to share between threads.

The package has no dependencies outside the standard library.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Building a model

```python
from policykit.policy import PolicyModel

model = PolicyModel()
model.add_def("r", "r", "sub, obj, act")
model.add_def("p", "p", "sub, obj, act")
model.add_def("e", "e", "some(where (p.eft == allow))")
model.add_def("m", "m", "r.sub == p.sub && r.obj == p.obj && r.act == p.act")

model.add_policy("p", "p", ["alice", "data1", "read"])
model.add_policy("p", "p", ["bob", "data2", "write"])

assert model.has_policy("p", "p", ["alice", "data1", "read"])
assert model.get_filtered_policy("p", "p", 1, "data2") == [["bob", "data2", "write"]]
```

In a field filter, an empty string matches any value in that position.

A model can also be filled from a mapping with `Model.load_model_from_config`.
The mapping's keys look like `"request_definition::r"`, `"policy_definition::p"`,
`"role_definition::g"`, `"policy_effect::e"` and `"matchers::m"`. Numbered
keys such as `"policy_definition::p2"` are read in order until one is missing.
Any object with a `get(key)` method works as well. A `ModelError` is raised
when a required section (request, policy, effect or matcher) is missing.
`Model.to_text()` renders the definitions back into configuration text.

## Managing rules

```python
from policykit.management import ManagementAPI

api = ManagementAPI(model)
model.add_def("g", "g", "_, _")

api.add_policy("carol", "data3", "read")          # True
api.add_policy(["carol", "data3", "read"])        # False: already present
api.add_grouping_policy("alice", "admin")
api.get_all_subjects()                            # ['alice', 'bob', 'carol']
api.get_all_roles()                               # ['admin']
api.remove_filtered_policy(0, "bob")              # True
```

Edits return `True` when something changed and `False` otherwise. Invalid
requests raise an exception:

- a filtered removal with no field values raises `InvalidFieldValuesError`;
- an unknown section or type raises `ModelError`;
- old and new rule lists of different lengths raise `ValueError`.

`update_policies` is all-or-nothing. If any old rule is missing, the
replacements already made are undone. `add_policies` adds nothing when any
of the rules already exists. `add_policies_ex` adds only the rules that are
new. The `self_*` methods make the same changes without telling the watcher.

### Adapters, watchers, dispatchers and role managers

`ManagementAPI` (through `PolicyEditor`) works with duck-typed collaborators:

- `adapter`: while `auto_save` is on, methods such as `add_policy`,
  `remove_policy`, `add_policies`, `remove_policies`, `update_policy`,
  `update_policies`, `remove_filtered_policy` and `update_filtered_policies`
  are called when present. A missing method, or one that raises
  `NotImplementedError` or an error whose message is `"not implemented"`, is
  ignored.
- `watcher`: while `auto_notify_watcher` is on, specific methods such as
  `update_for_add_policy` are called when present. Otherwise `update()` is
  called.
- `dispatcher`: while `auto_notify_dispatcher` is on, changes go to the
  dispatcher instead of being applied to the local model.
- `rm_map` / `cond_rm_map`: map grouping types such as `"g"` to role managers
  with `add_link` and `delete_link`. Conditional ones also need
  `set_link_condition_func_params` and `set_domain_link_condition_func_params`.
  Grouping edits are mirrored into them, and `build_role_links()` rebuilds
  them from the whole grouping policy.

`set_field_index(ptype, field, index)` declares where a named field such as
`"sub"` or `"priority"` sits in a policy type. It is needed when the
definition does not use that name. Once a `priority` field is known,
`PolicyModel.add_policy` keeps `p` rules in ascending priority order.

## Thread safety and periodic reloading

`policykit.synced.SyncedManager` wraps a `ManagementAPI`. Queries take a shared
lock and edits take an exclusive one (`get_lock()` returns the
`ReadWriteLock`). `load_policy()` copies the model, clears the copy's rules,
asks the adapter's `load_policy(model)` to fill it, sorts the rules by
priority, then swaps the copy in and rebuilds role links.
`start_auto_load_policy(interval)` does the same every `interval`, given in
seconds or as a `timedelta`, in a background thread. Errors from the reload
are ignored. `stop_auto_load_policy()` stops the thread, and
`is_auto_loading_running()` reports whether it is running.

## Other modules

- `policykit.frontend.get_permission_for_user(enforcer, user)` returns a JSON
  document with the model text (`m`) and every `p` and `g` rule, each prefixed
  with its type. It works with any object that has `get_model()`. The whole
  policy is exported, whatever `user` is given.
- `policykit.functions.FunctionMap` is a thread-safe registry of named
  functions. The first function stored under a name wins.
- `policykit.logger` defines the `Logger` interface and `DefaultLogger`, which
  writes to the standard `logging` logger `policykit` and is off until
  `enable_log(True)`. It also has the module-wide `set_logger`, `get_logger`,
  `log_model`, `log_policy`, `log_enforce`, `log_role` and `log_error`.
- `policykit.errors` defines `PolicyError` and its subclasses, among them
  `ModelError`, `InvalidFieldValuesError` and `NameNotFoundError`.

## What the package does not do

- It does not evaluate matchers or make access decisions. There is no
  `enforce` call, and `FunctionMap` starts empty, with no built-in matching
  functions.
- It does not read model or policy files. Definitions come from `add_def` or
  from a mapping, and rules come from the API or from an adapter you supply.
- It ships no adapter, watcher, dispatcher or role-manager implementation. It
  only calls the ones you provide.