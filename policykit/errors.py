"""Exceptions raised by the policy model and its role managers."""

from __future__ import annotations


class PolicyError(Exception):
    """Base class for every error raised by this package."""

    default_message = "policy error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class NameNotFoundError(PolicyError):
    """A user or role name is not known to the role manager."""

    default_message = "error: name does not exist"


class DomainParameterError(PolicyError):
    """More than one domain was given where at most one is allowed."""

    default_message = "error: domain should be 1 parameter"


class LinkNotFoundError(PolicyError):
    """There is no inheritance link between the two names."""

    default_message = "error: link between name1 and name2 does not exist"


class UseDomainParameterError(PolicyError):
    """More than one use-domain flag was given."""

    default_message = "error: useDomain should be 1 parameter"


class InvalidFieldValuesError(PolicyError, ValueError):
    """A filtered operation was called without any field values."""

    default_message = "fieldValues requires at least one parameter"


class ObjConditionError(PolicyError):
    """An object does not carry the prefix its condition requires."""

    default_message = "need to meet the prefix required by the object condition"


class EmptyConditionError(PolicyError):
    """No object condition was found for the request."""

    default_message = "GetAllowedObjectConditions have an empty condition"


class ModelError(PolicyError):
    """The model or one of its assertions is malformed or incomplete."""

    default_message = "invalid model"