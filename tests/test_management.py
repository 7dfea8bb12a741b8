import pytest

from policykit.errors import InvalidFieldValuesError, ModelError
from policykit.management import ManagementAPI
from policykit.policy import PolicyModel

RBAC_CONFIG = {
    "request_definition::r": "sub, obj, act",
    "policy_definition::p": "sub, obj, act",
    "role_definition::g": "_, _",
    "policy_effect::e": "some(where (p.eft == allow))",
    "matchers::m": "g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act",
}

RBAC_POLICY = [
    ("p", ["alice", "data1", "read"]),
    ("p", ["bob", "data2", "write"]),
    ("p", ["data2_admin", "data2", "read"]),
    ("p", ["data2_admin", "data2", "write"]),
    ("g", ["alice", "data2_admin"]),
]

DOMAINS_CONFIG = {
    "request_definition::r": "sub, dom, obj, act",
    "policy_definition::p": "sub, dom, obj, act",
    "role_definition::g": "_, _, _",
    "policy_effect::e": "some(where (p.eft == allow))",
    "matchers::m": "g(r.sub, p.sub, r.dom) && r.dom == p.dom && r.obj == p.obj && r.act == p.act",
}

DOMAINS_POLICY = [
    ("p", ["admin", "domain1", "data1", "read"]),
    ("p", ["admin", "domain1", "data1", "write"]),
    ("p", ["admin", "domain2", "data2", "read"]),
    ("p", ["admin", "domain2", "data2", "write"]),
    ("g", ["alice", "admin", "domain1"]),
    ("g", ["bob", "admin", "domain2"]),
]


class FakeRoleManager:
    def __init__(self):
        self.links = set()

    def add_link(self, name1, name2, *domain):
        self.links.add((name1, name2, domain))

    def delete_link(self, name1, name2, *domain):
        self.links.discard((name1, name2, domain))

    def clear(self):
        self.links.clear()

    def roles(self, name):
        return sorted(n2 for n1, n2, _ in self.links if n1 == name)

    def users(self, role):
        return sorted(n1 for n1, n2, _ in self.links if n2 == role)


class RecordingWatcher:
    def __init__(self):
        self.calls = []

    def update_for_add_policy(self, *args):
        self.calls.append(("add", args))

    def update(self):
        self.calls.append(("update", ()))


class RecordingDispatcher:
    def __init__(self):
        self.calls = []

    def add_policies(self, sec, ptype, rules):
        self.calls.append(("add_policies", sec, ptype, rules))


def make_api(config=RBAC_CONFIG, policy=RBAC_POLICY, **kwargs):
    model = PolicyModel()
    model.load_model_from_config(config)
    for sec, rule in policy:
        model.add_policy(sec, sec, rule)
    api = ManagementAPI(model, **kwargs)
    rm = FakeRoleManager()
    api.rm_map["g"] = rm
    api.build_role_links()
    return api, rm


def test_get_list():
    api, _ = make_api()
    assert api.get_all_subjects() == ["alice", "bob", "data2_admin"]
    assert api.get_all_objects() == ["data1", "data2"]
    assert api.get_all_actions() == ["read", "write"]
    assert api.get_all_roles() == ["data2_admin"]


def test_get_list_with_domains():
    api, _ = make_api(DOMAINS_CONFIG, DOMAINS_POLICY)
    assert api.get_all_subjects() == ["admin"]
    assert api.get_all_objects() == ["data1", "data2"]
    assert api.get_all_actions() == ["read", "write"]
    assert api.get_all_roles() == ["admin"]


def test_named_lists():
    api, _ = make_api()
    assert api.get_all_named_subjects("p") == ["alice", "bob", "data2_admin"]
    assert api.get_all_named_objects("p") == ["data1", "data2"]
    assert api.get_all_named_actions("p") == ["read", "write"]
    assert api.get_all_named_roles("g") == ["data2_admin"]


def test_named_list_unknown_field_raises():
    api, _ = make_api()
    with pytest.raises(ModelError):
        api.get_all_named_subjects("p") and api.model.get_field_index("p", "dom")


def test_get_policy_api():
    api, _ = make_api()
    assert api.get_policy() == [
        ["alice", "data1", "read"],
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]
    assert api.get_filtered_policy(0, "alice") == [["alice", "data1", "read"]]
    assert api.get_filtered_policy(0, "bob") == [["bob", "data2", "write"]]
    assert api.get_filtered_policy(0, "data2_admin") == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]
    assert api.get_filtered_policy(1, "data1") == [["alice", "data1", "read"]]
    assert api.get_filtered_policy(1, "data2") == [
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]
    assert api.get_filtered_policy(2, "read") == [
        ["alice", "data1", "read"],
        ["data2_admin", "data2", "read"],
    ]
    assert api.get_filtered_policy(2, "write") == [
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "write"],
    ]
    assert api.get_filtered_policy(0, "data2_admin", "data2") == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]
    assert api.get_filtered_policy(0, "data2_admin", "", "read") == [["data2_admin", "data2", "read"]]
    assert api.get_filtered_policy(1, "data2", "write") == [
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "write"],
    ]

    assert api.has_policy(["alice", "data1", "read"]) is True
    assert api.has_policy(["bob", "data2", "write"]) is True
    assert api.has_policy(["alice", "data2", "read"]) is False
    assert api.has_policy(["bob", "data3", "write"]) is False
    assert api.has_policy("alice", "data1", "read") is True

    assert api.get_grouping_policy() == [["alice", "data2_admin"]]
    assert api.get_filtered_grouping_policy(0, "alice") == [["alice", "data2_admin"]]
    assert api.get_filtered_grouping_policy(0, "bob") == []
    assert api.get_filtered_grouping_policy(1, "data1_admin") == []
    assert api.get_filtered_grouping_policy(1, "data2_admin") == [["alice", "data2_admin"]]
    assert api.get_filtered_grouping_policy(0, "", "data2_admin") == [["alice", "data2_admin"]]

    assert api.has_grouping_policy(["alice", "data2_admin"]) is True
    assert api.has_grouping_policy(["bob", "data2_admin"]) is False


def test_modify_policy_api():
    api, _ = make_api()
    api.remove_policy("alice", "data1", "read")
    api.remove_policy("bob", "data2", "write")
    assert api.remove_policy("alice", "data1", "read") is False
    assert api.add_policy("eve", "data3", "read") is True
    assert api.add_policy("eve", "data3", "read") is False

    rules = [
        ["jack", "data4", "read"],
        ["jack", "data4", "read"],
        ["jack", "data4", "read"],
        ["katy", "data4", "write"],
        ["leyo", "data4", "read"],
        ["katy", "data4", "write"],
        ["katy", "data4", "write"],
        ["ham", "data4", "write"],
    ]
    assert api.add_policies(rules) is True
    assert api.add_policies(rules) is False
    assert api.get_policy() == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
        ["eve", "data3", "read"],
        ["jack", "data4", "read"],
        ["katy", "data4", "write"],
        ["leyo", "data4", "read"],
        ["ham", "data4", "write"],
    ]

    assert api.remove_policies(rules) is True
    assert api.remove_policies(rules) is False

    named = ["eve", "data3", "read"]
    api.remove_named_policy("p", named)
    api.add_named_policy("p", named)
    assert api.get_policy() == [
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
        ["eve", "data3", "read"],
    ]

    api.remove_filtered_policy(1, "data2")
    assert api.get_policy() == [["eve", "data3", "read"]]

    api.update_policy(["eve", "data3", "read"], ["eve", "data3", "write"])
    assert api.get_policy() == [["eve", "data3", "write"]]

    api.add_policies(rules)
    api.update_policies(
        [["eve", "data3", "write"], ["leyo", "data4", "read"], ["katy", "data4", "write"]],
        [["eve", "data3", "read"], ["leyo", "data4", "write"], ["katy", "data1", "write"]],
    )
    assert api.get_policy() == [
        ["eve", "data3", "read"],
        ["jack", "data4", "read"],
        ["katy", "data1", "write"],
        ["leyo", "data4", "write"],
        ["ham", "data4", "write"],
    ]

    api.clear_policy()
    api.add_policies_ex([["user1", "data1", "read"], ["user1", "data1", "read"]])
    assert api.get_policy() == [["user1", "data1", "read"]]
    api.add_policies_ex([["user1", "data1", "read"], ["user2", "data2", "read"]])
    assert api.get_policy() == [["user1", "data1", "read"], ["user2", "data2", "read"]]
    api.add_named_policies_ex(
        "p", [["user1", "data1", "read"], ["user2", "data2", "read"], ["user3", "data3", "read"]]
    )
    assert api.get_policy() == [
        ["user1", "data1", "read"],
        ["user2", "data2", "read"],
        ["user3", "data3", "read"],
    ]
    api.self_add_policies_ex(
        "p",
        "p",
        [
            ["user1", "data1", "read"],
            ["user2", "data2", "read"],
            ["user3", "data3", "read"],
            ["user4", "data4", "read"],
        ],
    )
    assert api.get_policy() == [
        ["user1", "data1", "read"],
        ["user2", "data2", "read"],
        ["user3", "data3", "read"],
        ["user4", "data4", "read"],
    ]


def test_modify_grouping_policy_api():
    api, rm = make_api()
    assert rm.roles("alice") == ["data2_admin"]
    assert rm.roles("bob") == []
    assert rm.roles("eve") == []
    assert rm.roles("non_exist") == []

    api.remove_grouping_policy("alice", "data2_admin")
    api.add_grouping_policy("bob", "data1_admin")
    api.add_grouping_policy("eve", "data3_admin")

    grouping_rules = [["ham", "data4_admin"], ["jack", "data5_admin"]]
    api.add_grouping_policies(grouping_rules)
    assert rm.roles("ham") == ["data4_admin"]
    assert rm.roles("jack") == ["data5_admin"]
    api.remove_grouping_policies(grouping_rules)

    assert rm.roles("alice") == []
    named = ["alice", "data2_admin"]
    api.add_named_grouping_policy("g", named)
    assert rm.roles("alice") == ["data2_admin"]
    api.remove_named_grouping_policy("g", named)

    assert api.add_named_grouping_policies("g", grouping_rules) is True
    assert api.add_named_grouping_policies("g", grouping_rules) is False
    assert rm.roles("ham") == ["data4_admin"]
    assert rm.roles("jack") == ["data5_admin"]
    assert api.remove_named_grouping_policies("g", grouping_rules) is True
    assert api.remove_named_grouping_policies("g", grouping_rules) is False

    assert rm.roles("alice") == []
    assert rm.roles("bob") == ["data1_admin"]
    assert rm.roles("eve") == ["data3_admin"]
    assert rm.roles("non_exist") == []
    assert rm.users("data1_admin") == ["bob"]
    assert rm.users("data2_admin") == []
    assert rm.users("data3_admin") == ["eve"]

    api.remove_filtered_grouping_policy(0, "bob")
    assert rm.roles("bob") == []
    assert rm.roles("eve") == ["data3_admin"]
    assert rm.users("data1_admin") == []
    assert rm.users("data3_admin") == ["eve"]

    api.add_grouping_policy("data3_admin", "data4_admin")
    api.update_grouping_policy(["eve", "data3_admin"], ["eve", "admin"])
    api.update_grouping_policy(["data3_admin", "data4_admin"], ["admin", "data4_admin"])
    assert rm.users("data4_admin") == ["admin"]
    assert rm.users("admin") == ["eve"]
    assert rm.roles("eve") == ["admin"]
    assert rm.roles("admin") == ["data4_admin"]

    api.update_grouping_policies([["eve", "admin"]], [["eve", "admin_groups"]])
    api.update_grouping_policies([["admin", "data4_admin"]], [["admin", "data5_admin"]])
    assert rm.users("data5_admin") == ["admin"]
    assert rm.users("admin_groups") == ["eve"]
    assert rm.roles("admin") == ["data5_admin"]
    assert rm.roles("eve") == ["admin_groups"]

    api.clear_policy()
    api.add_grouping_policies_ex([["user1", "member"]])
    assert rm.users("member") == ["user1"]
    api.add_grouping_policies_ex([["user1", "member"], ["user2", "member"]])
    assert rm.users("member") == ["user1", "user2"]
    api.add_named_grouping_policies_ex("g", [["user1", "member"], ["user2", "member"], ["user3", "member"]])
    assert rm.users("member") == ["user1", "user2", "user3"]
    assert api.get_grouping_policy() == [["user1", "member"], ["user2", "member"], ["user3", "member"]]


def test_remove_filtered_without_values_raises():
    api, _ = make_api()
    with pytest.raises(InvalidFieldValuesError):
        api.remove_filtered_policy(0)


def test_update_policies_length_mismatch_raises():
    api, _ = make_api()
    with pytest.raises(ValueError):
        api.update_policies([["alice", "data1", "read"]], [])


def test_has_policy_without_fields_raises():
    api, _ = make_api()
    with pytest.raises(ValueError):
        api.has_policy()


def test_has_policy_with_non_string_field_raises():
    api, _ = make_api()
    with pytest.raises(TypeError):
        api.has_policy("alice", 1, "read")


def test_unknown_ptype_raises():
    api, _ = make_api()
    with pytest.raises(ModelError):
        api.get_named_policy("p9")


def test_update_policies_rolls_back_on_missing_rule():
    api, _ = make_api()
    result = api.update_policies(
        [["alice", "data1", "read"], ["nobody", "data9", "read"]],
        [["alice", "data1", "write"], ["nobody", "data9", "write"]],
    )
    assert result is False
    assert api.has_policy("alice", "data1", "read") is True
    assert api.has_policy("alice", "data1", "write") is False


def test_self_edits_do_not_notify_watcher():
    watcher = RecordingWatcher()
    api, _ = make_api(watcher=watcher)
    assert api.self_add_policy("p", "p", ["user1", "data1", "read"]) is True
    assert watcher.calls == []
    assert api.add_policy("user2", "data2", "read") is True
    assert watcher.calls == [("add", ("p", "p", "user2", "data2", "read"))]


def test_self_remove_and_update():
    api, _ = make_api()
    api.self_add_policies("p", "p", [["user1", "data1", "read"], ["user2", "data2", "read"]])
    assert api.self_update_policy("p", "p", ["user1", "data1", "read"], ["user1", "data1", "write"]) is True
    assert api.self_update_policies("p", "p", [["user2", "data2", "read"]], [["user2", "data2", "write"]]) is True
    assert api.self_remove_policy("p", "p", ["user1", "data1", "write"]) is True
    assert api.self_remove_policies("p", "p", [["user2", "data2", "write"]]) is True
    assert api.self_remove_filtered_policy("p", "p", 0, "bob") is True
    assert api.get_policy() == [
        ["alice", "data1", "read"],
        ["data2_admin", "data2", "read"],
        ["data2_admin", "data2", "write"],
    ]


def test_dispatcher_receives_add_instead_of_model():
    dispatcher = RecordingDispatcher()
    api, _ = make_api(dispatcher=dispatcher)
    assert api.add_policy("user1", "data1", "read") is True
    assert dispatcher.calls == [("add_policies", "p", "p", [["user1", "data1", "read"]])]
    assert api.has_policy("user1", "data1", "read") is False


def test_add_function_first_registration_wins():
    api, _ = make_api()

    def first(*args):
        return True

    def second(*args):
        return False

    api.add_function("custom", first)
    api.add_function("custom", second)
    assert api.fm.get_functions()["custom"] is first


def test_update_filtered_policies_without_adapter_adds_new_rules():
    api, _ = make_api()
    result = api.update_filtered_policies([["eve", "data3", "read"]], 0, "alice")
    assert result is False
    assert api.has_policy("eve", "data3", "read") is True
    assert api.has_policy("alice", "data1", "read") is True