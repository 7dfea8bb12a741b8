"""A thread-safe registry of functions callable from matcher expressions."""

from __future__ import annotations

import threading
from typing import Any, Callable, Mapping

ExpressionFunction = Callable[..., Any]


class FunctionMap:
    """Named expression functions; the first function stored under a name wins."""

    def __init__(self, functions: Mapping[str, ExpressionFunction] | None = None) -> None:
        self._lock = threading.Lock()
        self._functions: dict[str, ExpressionFunction] = {}
        for name, function in (functions or {}).items():
            self.add_function(name, function)

    def add_function(self, name: str, function: ExpressionFunction) -> None:
        """Store ``function`` under ``name`` unless that name is already taken."""
        with self._lock:
            self._functions.setdefault(name, function)

    def get_functions(self) -> dict[str, ExpressionFunction]:
        """Return a fresh dictionary of all stored functions."""
        with self._lock:
            return dict(self._functions)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._functions

    def __len__(self) -> int:
        with self._lock:
            return len(self._functions)