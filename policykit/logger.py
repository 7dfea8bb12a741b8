"""Logging interface, the default implementation and the module-wide logger."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Sequence

_log = logging.getLogger("policykit")


def _fmt(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_fmt(item) for item in value) + "]"
    return str(value)


class Logger(ABC):
    """What the package needs from a logger."""

    @abstractmethod
    def enable_log(self, enable: bool) -> None:
        """Turn output on or off."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Report whether output is on."""

    @abstractmethod
    def log_model(self, model: Sequence[Sequence[str]]) -> None:
        """Log the model's sections."""

    @abstractmethod
    def log_enforce(
        self,
        matcher: str,
        request: Sequence[Any],
        result: bool,
        explains: Sequence[Sequence[str]],
    ) -> None:
        """Log an enforcement decision."""

    @abstractmethod
    def log_role(self, roles: Sequence[str]) -> None:
        """Log a list of roles."""

    @abstractmethod
    def log_policy(self, policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
        """Log the current policy."""

    @abstractmethod
    def log_error(self, err: BaseException, *args: str) -> None:
        """Log an error with optional messages."""


class DefaultLogger(Logger):
    """Logger writing to the standard ``logging`` logger named ``policykit``.

    Output is off until :meth:`enable_log` turns it on.
    """

    def __init__(self, enabled: bool = False) -> None:
        self._enabled = enabled

    def enable_log(self, enable: bool) -> None:
        self._enabled = bool(enable)

    def is_enabled(self) -> bool:
        return self._enabled

    @staticmethod
    def _emit(text: str) -> None:
        _log.info(text.rstrip("\n"))

    def log_model(self, model: Iterable[Sequence[str]]) -> None:
        if not self._enabled:
            return
        self._emit("Model: " + "".join(f"{_fmt(row)}\n" for row in model or ()))

    def log_enforce(
        self,
        matcher: str,
        request: Sequence[Any],
        result: bool,
        explains: Sequence[Sequence[str]],
    ) -> None:
        if not self._enabled:
            return
        request_text = ", ".join(_fmt(value) for value in request or ())
        explains = list(explains or ())
        hits = ", ".join(_fmt(rule) for rule in explains)
        if explains:
            hits += " \n"
        self._emit(f"Request: {request_text} ---> {_fmt(bool(result))}\nHit Policy: {hits}")

    def log_policy(self, policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
        if not self._enabled:
            return
        body = "".join(f"{key} : {_fmt(list(rules or ()))}\n" for key, rules in (policy or {}).items())
        self._emit("Policy: " + body)

    def log_role(self, roles: Sequence[str]) -> None:
        if not self._enabled:
            return
        self._emit("Roles:  " + "\n".join(roles or ()))

    def log_error(self, err: BaseException, *args: str) -> None:
        if not self._enabled:
            return
        self._emit(f"{_fmt(list(args))} {err}")


class _Current:
    """Holder of the module-wide logger."""

    logger: Logger = DefaultLogger()


def set_logger(logger: Logger) -> Logger:
    """Replace the module-wide logger and return the one it replaced."""
    previous = _Current.logger
    _Current.logger = logger
    return previous


def get_logger() -> Logger:
    """Return the module-wide logger."""
    return _Current.logger


def log_model(model: Sequence[Sequence[str]]) -> None:
    """Log model information through the module-wide logger."""
    _Current.logger.log_model(model)


def log_enforce(matcher: str, request: Sequence[Any], result: bool, explains: Sequence[Sequence[str]]) -> None:
    """Log an enforcement decision through the module-wide logger."""
    _Current.logger.log_enforce(matcher, request, result, explains)


def log_role(roles: Sequence[str]) -> None:
    """Log roles through the module-wide logger."""
    _Current.logger.log_role(roles)


def log_policy(policy: Mapping[str, Sequence[Sequence[str]]]) -> None:
    """Log policy information through the module-wide logger."""
    _Current.logger.log_policy(policy)


def log_error(err: BaseException, *args: str) -> None:
    """Log an error through the module-wide logger."""
    _Current.logger.log_error(err, *args)