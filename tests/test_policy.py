import pytest

from policykit.assertion import PolicyOp
from policykit.errors import ModelError
from policykit.logger import Logger
from policykit.policy import PolicyModel

RBAC_CONFIG = {
    "request_definition::r": "sub, obj, act",
    "policy_definition::p": "sub, obj, act",
    "role_definition::g": "_, _",
    "policy_effect::e": "some(where (p.eft == allow))",
    "matchers::m": "g(r.sub, p.sub) && r.obj == p.obj && r.act == p.act",
}

RBAC_POLICY = [
    ["alice", "data1", "read"],
    ["bob", "data2", "write"],
    ["data2_admin", "data2", "read"],
    ["data2_admin", "data2", "write"],
]


def make_model(config=RBAC_CONFIG):
    model = PolicyModel()
    model.load_model_from_config(config)
    return model


@pytest.fixture
def model():
    m = make_model()
    m.add_policies("p", "p", RBAC_POLICY)
    m.add_policy("g", "g", ["alice", "data2_admin"])
    return m


class RecordingRoleManager:
    def __init__(self):
        self.links = set()

    def add_link(self, name1, name2, *domain):
        self.links.add((name1, name2, *domain))

    def delete_link(self, name1, name2, *domain):
        self.links.discard((name1, name2, *domain))


class RecordingLogger(Logger):
    def __init__(self):
        self.enabled = True
        self.policies = []

    def enable_log(self, enable):
        self.enabled = enable

    def is_enabled(self):
        return self.enabled

    def log_model(self, model):
        pass

    def log_enforce(self, matcher, request, result, explains):
        pass

    def log_role(self, roles):
        pass

    def log_policy(self, policy):
        self.policies.append(policy)

    def log_error(self, err, *args):
        pass


def test_get_policy_returns_rules_in_order(model):
    assert model.get_policy("p", "p") == RBAC_POLICY
    assert model.get_policy("g", "g") == [["alice", "data2_admin"]]


def test_get_policy_missing_type_raises(model):
    with pytest.raises(ModelError):
        model.get_policy("p", "p2")


def test_get_filtered_policy(model):
    assert model.get_filtered_policy("p", "p", 0, "alice") == [["alice", "data1", "read"]]
    assert model.get_filtered_policy("p", "p", 1, "data2", "write") == [
        ["bob", "data2", "write"],
        ["data2_admin", "data2", "write"],
    ]
    assert model.get_filtered_policy("p", "p", 0, "data2_admin", "", "read") == [
        ["data2_admin", "data2", "read"]
    ]
    assert model.get_filtered_policy("g", "g", 0, "bob") == []


def test_has_policy_and_has_policies(model):
    assert model.has_policy("p", "p", ["alice", "data1", "read"]) is True
    assert model.has_policy("p", "p", ["alice", "data2", "read"]) is False
    assert model.has_policies("p", "p", [["x", "y", "z"], ["bob", "data2", "write"]]) is True
    assert model.has_policies("p", "p", [["x", "y", "z"]]) is False


def test_has_policy_ex_checks_size(model):
    assert model.has_policy_ex("p", "p", ["alice", "data1", "read"]) is True
    with pytest.raises(ModelError):
        model.has_policy_ex("p", "p", ["alice", "data1"])
    with pytest.raises(ModelError):
        model.has_policy_ex("g", "g", ["alice"])


def test_add_policies_with_affected_skips_existing(model):
    affected = model.add_policies_with_affected(
        "p", "p", [["alice", "data1", "read"], ["eve", "data3", "read"], ["eve", "data3", "read"]]
    )
    assert affected == [["eve", "data3", "read"]]
    assert model.get_policy("p", "p")[-1] == ["eve", "data3", "read"]
    assert len(model.get_policy("p", "p")) == len(RBAC_POLICY) + 1


def test_policy_map_stays_consistent_after_edits(model):
    model.remove_policy("p", "p", ["bob", "data2", "write"])
    model.add_policy("p", "p", ["eve", "data3", "read"])
    ast = model.get_assertion("p", "p")
    assert {",".join(rule): i for i, rule in enumerate(ast.policy)} == ast.policy_map


def test_remove_policy(model):
    assert model.remove_policy("p", "p", ["alice", "data1", "read"]) is True
    assert model.remove_policy("p", "p", ["alice", "data1", "read"]) is False
    assert model.get_policy("p", "p") == RBAC_POLICY[1:]


def test_remove_policies_with_affected(model):
    rules = [["alice", "data1", "read"], ["nobody", "data9", "read"]]
    assert model.remove_policies_with_affected("p", "p", rules) == [["alice", "data1", "read"]]
    assert model.remove_policies("p", "p", rules) is False


def test_update_policy(model):
    assert model.update_policy("p", "p", ["alice", "data1", "read"], ["alice", "data1", "write"]) is True
    assert model.get_policy("p", "p")[0] == ["alice", "data1", "write"]
    assert model.has_policy("p", "p", ["alice", "data1", "read"]) is False
    assert model.update_policy("p", "p", ["ghost", "x", "y"], ["a", "b", "c"]) is False


def test_update_policies_rolls_back_on_missing_rule(model):
    before = model.get_policy("p", "p")
    ok = model.update_policies(
        "p",
        "p",
        [["alice", "data1", "read"], ["ghost", "data4", "read"]],
        [["alice", "data1", "write"], ["ghost", "data4", "write"]],
    )
    assert ok is False
    assert model.get_policy("p", "p") == before
    assert model.has_policy("p", "p", ["alice", "data1", "read"]) is True
    assert model.has_policy("p", "p", ["alice", "data1", "write"]) is False


def test_update_policies_success(model):
    ok = model.update_policies(
        "p",
        "p",
        [["alice", "data1", "read"], ["bob", "data2", "write"]],
        [["alice", "data1", "write"], ["bob", "data2", "read"]],
    )
    assert ok is True
    assert model.get_policy("p", "p")[:2] == [["alice", "data1", "write"], ["bob", "data2", "read"]]


def test_remove_filtered_policy(model):
    changed, effects = model.remove_filtered_policy("p", "p", 1, "data2")
    assert changed is True
    assert effects == RBAC_POLICY[1:]
    assert model.get_policy("p", "p") == [["alice", "data1", "read"]]
    changed, effects = model.remove_filtered_policy("p", "p", 1, "data2")
    assert changed is False
    assert effects == []


def test_clear_policy(model):
    model.clear_policy()
    assert model.get_policy("p", "p") == []
    assert model.get_policy("g", "g") == []
    assert model.has_policy("p", "p", ["alice", "data1", "read"]) is False


def test_values_for_field(model):
    assert model.get_values_for_field_in_policy("p", "p", 0) == ["alice", "bob", "data2_admin"]
    assert model.get_values_for_field_in_policy_all_types("g", 1) == ["data2_admin"]
    assert model.get_values_for_field_in_policy_all_types_by_name("p", "obj") == ["data1", "data2"]
    assert model.get_values_for_field_in_policy_all_types_by_name("p", "dom") == []


def test_priority_insertion_keeps_order():
    config = dict(RBAC_CONFIG)
    config["policy_definition::p"] = "priority, sub, obj, act"
    model = make_model(config)
    model.get_field_index("p", "priority")
    for rule in (["10", "a", "o", "r"], ["1", "b", "o", "r"], ["5", "c", "o", "r"]):
        model.add_policy("p", "p", rule)
    assert [rule[0] for rule in model.get_policy("p", "p")] == ["1", "5", "10"]
    ast = model.get_assertion("p", "p")
    assert {",".join(rule): i for i, rule in enumerate(ast.policy)} == ast.policy_map


def test_build_role_links(model):
    rm = RecordingRoleManager()
    model.build_role_links({"g": rm})
    assert rm.links == {("alice", "data2_admin")}


def test_build_incremental_role_links(model):
    rm = RecordingRoleManager()
    model.build_incremental_role_links({"g": rm}, PolicyOp.ADD, "g", "g", [["bob", "admin"]])
    assert rm.links == {("bob", "admin")}
    model.build_incremental_role_links({"g": rm}, PolicyOp.REMOVE, "g", "g", [["bob", "admin"]])
    assert rm.links == set()


def test_build_incremental_role_links_ignores_p_section(model):
    rm = RecordingRoleManager()
    model.build_incremental_role_links({"p": rm}, PolicyOp.ADD, "p", "p", [["bob", "admin"]])
    assert rm.links == set()


def test_print_policy_uses_logger(model):
    logger = RecordingLogger()
    model.set_logger(logger)
    model.print_policy()
    assert logger.policies == [{"p": RBAC_POLICY, "g": [["alice", "data2_admin"]]}]
    logger.enable_log(False)
    model.print_policy()
    assert len(logger.policies) == 1