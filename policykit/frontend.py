"""Export a model and its policy for a client-side enforcer."""

from __future__ import annotations

import json
from typing import Any


def get_permission_for_user(enforcer: Any, user: str) -> str:
    """Return the model text and all rules of ``enforcer`` as a JSON document.

    The document has keys ``m`` (model text), ``p`` and ``g`` (rules prefixed
    with their type). ``enforcer`` needs a ``get_model()`` method returning a
    :class:`~policykit.policy.PolicyModel`. ``user`` is accepted for interface
    compatibility; the whole policy is exported.
    """
    model = enforcer.get_model()
    document: dict[str, Any] = {"m": model.to_text()}
    for sec in ("p", "g"):
        document[sec] = [
            [ptype, *rule]
            for ptype in model.get(sec, {})
            for rule in model.get_policy(sec, ptype)
        ]
    return json.dumps(document, ensure_ascii=False, separators=(",", ":"), sort_keys=True) + "\n"