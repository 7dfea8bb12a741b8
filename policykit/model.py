"""The access-control model: sections of assertions loaded from configuration."""

from __future__ import annotations

import re
from collections import deque
from functools import cmp_to_key
from typing import Any, Mapping

from .assertion import Assertion
from .errors import ModelError
from .logger import DefaultLogger, Logger

SUBJECT_INDEX = "sub"
OBJECT_INDEX = "obj"
ACTION_INDEX = "act"
DOMAIN_INDEX = "dom"
PRIORITY_INDEX = "priority"

ALLOW_OVERRIDE_EFFECT = "some(where (p_eft == allow))"
SUBJECT_PRIORITY_EFFECT = "subjectPriority(p_eft) || deny"

DEFAULT_DOMAIN = ""
DEFAULT_SEPARATOR = "::"

SECTION_NAMES: dict[str, str] = {
    "r": "request_definition",
    "p": "policy_definition",
    "g": "role_definition",
    "e": "policy_effect",
    "m": "matchers",
}

REQUIRED_SECTIONS: tuple[str, ...] = ("r", "p", "e", "m")

_PARAMS_RE = re.compile(r"\((.*?)\)")
_ESCAPE_RE = re.compile(r"\b((r|p)[0-9]*)\.")


def _escape_assertion(text: str) -> str:
    """Turn attribute access such as ``r.sub`` into the token ``r_sub``."""
    return _ESCAPE_RE.sub(lambda m: m.group(1) + "_", text)


def _remove_comments(text: str) -> str:
    pos = text.find("#")
    if pos == -1:
        return text
    return text[:pos].strip()


def _params_tokens(value: str) -> list[str]:
    found = _PARAMS_RE.search(value)
    if found is None:
        return []
    return found.group(1).split(",")


def _key_suffix(i: int) -> str:
    return "" if i == 1 else str(i)


def _name_with_domain(domain: str, name: str) -> str:
    return domain + DEFAULT_SEPARATOR + name


def _subject_hierarchy(policies: list[list[str]]) -> dict[str, int]:
    levels: dict[str, int] = {}
    children: dict[str, list[str]] = {}
    for rule in policies:
        if len(rule) < 2:
            raise ModelError("policy g expect 2 more params")
        domain = DEFAULT_DOMAIN if len(rule) == 2 else rule[2]
        child = _name_with_domain(domain, rule[0])
        parent = _name_with_domain(domain, rule[1])
        children.setdefault(parent, []).append(child)
        levels.setdefault(child, 0)
        levels.setdefault(parent, 0)
        levels[child] = 1

    roots = [name for name, level in levels.items() if level == 0]
    for root in roots:
        queue = deque([root])
        level = 0
        while queue:
            for _ in range(len(queue)):
                node = queue.popleft()
                levels[node] = level
                queue.extend(children.get(node, ()))
            level += 1
    return levels


class Model(dict):
    """Maps a section name (``r``, ``p``, ``g``, ``e``, ``m``) to its assertions by key."""

    def __init__(self, logger: Logger | None = None) -> None:
        super().__init__()
        self._logger: Logger = logger if logger is not None else DefaultLogger()

    def add_def(self, sec: str, key: str, value: str) -> bool:
        """Add an assertion; return False and add nothing when ``value`` is empty."""
        if not value:
            return False

        ast = Assertion(key=key, value=value, logger=self._logger)
        if sec in ("r", "p"):
            ast.tokens = [f"{key}_{token.strip()}" for token in value.split(",")]
        elif sec == "g":
            ast.params_tokens = _params_tokens(value)
            tokens = value.split(",")
            ast.tokens = tokens[: len(tokens) - len(ast.params_tokens)]
        else:
            ast.value = _remove_comments(_escape_assertion(value))

        if sec == "m" and "in" in ast.value:
            ast.value = ast.value.replace("[", "(").replace("]", ")")

        self.setdefault(sec, {})[key] = ast
        return True

    def set_logger(self, logger: Logger) -> None:
        """Use ``logger`` for the model and every assertion in it."""
        for assertions in self.values():
            for ast in assertions.values():
                ast.logger = logger
        self._logger = logger

    def get_logger(self) -> Logger:
        """Return the model's logger."""
        return self._logger

    def load_model_from_config(self, cfg: Mapping[str, str] | Any) -> None:
        """Load every section from ``cfg``.

        ``cfg`` maps keys of the form ``"request_definition::r"`` to values; any
        object with a ``get(key)`` method will do.
        """
        for sec, name in SECTION_NAMES.items():
            i = 1
            while self.add_def(sec, sec + _key_suffix(i), cfg.get(f"{name}::{sec}{_key_suffix(i)}") or ""):
                i += 1
        missing = [SECTION_NAMES[sec] for sec in REQUIRED_SECTIONS if not self.has_section(sec)]
        if missing:
            raise ModelError("missing required sections: " + ",".join(missing))

    def has_section(self, sec: str) -> bool:
        """Report whether the section has been defined."""
        return self.get(sec) is not None

    def get_assertion(self, sec: str, ptype: str) -> Assertion:
        """Return the assertion ``ptype`` of section ``sec``, or raise ModelError."""
        section = self.get(sec)
        if section is None:
            raise ModelError(f"missing required section {sec}")
        ast = section.get(ptype)
        if ast is None:
            raise ModelError(f"missing required definition {ptype} in section {sec}")
        return ast

    def print_model(self) -> None:
        """Send every assertion's value to the logger, if it is enabled."""
        if not self._logger.is_enabled():
            return
        info = [[sec, key, ast.value] for sec, assertions in self.items() for key, ast in assertions.items()]
        self._logger.log_model(info)

    def _reindex(self, ast: Assertion) -> None:
        for i, rule in enumerate(ast.policy):
            ast.policy_map[",".join(rule)] = i

    def sort_policies_by_subject_hierarchy(self) -> None:
        """Order policies so that deeper subjects in the role tree come first.

        Only applies when the effect is the subject-priority effect.
        """
        if self.get_assertion("e", "e").value != SUBJECT_PRIORITY_EFFECT:
            return
        g = self.get_assertion("g", "g")
        for ptype, ast in self.get("p", {}).items():
            try:
                domain_index = self.get_field_index(ptype, DOMAIN_INDEX)
            except ModelError:
                domain_index = -1
            levels = _subject_hierarchy(g.policy)

            def level(rule: list[str]) -> int:
                domain = rule[domain_index] if domain_index != -1 else DEFAULT_DOMAIN
                return levels.get(_name_with_domain(domain, rule[0]), 0)

            ast.policy[:] = sorted(ast.policy, key=lambda rule: -level(rule))
            self._reindex(ast)

    def sort_policies_by_priority(self) -> None:
        """Order policies of every type that has a priority field, lowest first."""
        for ptype, ast in self.get("p", {}).items():
            try:
                index = self.get_field_index(ptype, PRIORITY_INDEX)
            except ModelError:
                continue

            def less(a: list[str], b: list[str]) -> bool:
                try:
                    return int(a[index]) < int(b[index])
                except ValueError:
                    return True

            def compare(a: list[str], b: list[str]) -> int:
                if less(a, b):
                    return -1
                if less(b, a):
                    return 1
                return 0

            ast.policy[:] = sorted(ast.policy, key=cmp_to_key(compare))
            self._reindex(ast)

    def to_text(self) -> str:
        """Render the model back into configuration text."""
        patterns: dict[str, str] = {}
        for ptype in ("r", "p"):
            for token in self.get_assertion(ptype, ptype).tokens:
                patterns[token] = re.sub("^r_", "r.", re.sub("^p_", "p.", token))
        if "p_eft" in self.get_assertion("e", "e").value:
            patterns["p_eft"] = "p.eft"

        lines: list[str] = []

        def write(sec: str) -> None:
            for ast in self.get(sec, {}).values():
                value = ast.value
                for old, new in patterns.items():
                    value = value.replace(old, new)
                lines.append(f"{sec} = {value}")

        lines.append("[request_definition]")
        write("r")
        lines.append("[policy_definition]")
        write("p")
        if "g" in self:
            lines.append("[role_definition]")
            lines.extend(f"{ptype} = {ast.value}" for ptype, ast in self["g"].items())
        lines.append("[policy_effect]")
        write("e")
        lines.append("[matchers]")
        write("m")
        return "\n".join(lines) + "\n"

    def copy(self) -> Model:
        """Return a copy whose assertions and policies can change independently."""
        new = type(self)()
        for sec, assertions in self.items():
            new[sec] = {ptype: ast.copy() for ptype, ast in assertions.items()}
        new.set_logger(self._logger)
        return new

    def get_field_index(self, ptype: str, field: str) -> int:
        """Return the position of ``field`` in policy type ``ptype``, caching it."""
        ast = self.get_assertion("p", ptype)
        if field in ast.field_index_map:
            return ast.field_index_map[field]
        pattern = f"{ptype}_{field}"
        try:
            index = ast.tokens.index(pattern)
        except ValueError:
            raise ModelError(
                f"{field} index is not set, please use set_field_index() to set index"
            ) from None
        ast.field_index_map[field] = index
        return index