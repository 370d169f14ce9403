"""Data models for resolved authorization policies.

The parser produces a Config; the generators consume it.
"""

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class RouteKey(BaseModel):
    """One operation, identified by HTTP method and templated path."""

    model_config = ConfigDict(frozen=True)

    method: str  # GET / POST / PUT / DELETE / PATCH / OPTIONS / HEAD
    path: str  # /items/{id}

    def sort_key(self) -> tuple[str, str]:
        return (self.method, self.path)


class AuthPolicy(BaseModel):
    """Authorization requirements for a single operation.

    Callers must hold at least one of ``roles`` and every one of ``scopes``.
    Both keep the order in which tokens appear in the document.
    """

    model_config = ConfigDict(frozen=True)

    require_auth: bool
    roles: tuple[str, ...] = ()
    scopes: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _public_has_no_requirements(self) -> "AuthPolicy":
        if not self.require_auth and (self.roles or self.scopes):
            raise ValueError("a public policy cannot list roles or scopes")
        return self

    @classmethod
    def public(cls) -> "AuthPolicy":
        return cls(require_auth=False)


class Config(BaseModel):
    """All policies derived from one specification document.

    ``policies`` is a read-only view; a Config never changes once built.
    """

    model_config = ConfigDict(frozen=True)

    policies: Mapping[RouteKey, AuthPolicy]

    @field_validator("policies", mode="after")
    @classmethod
    def _read_only(cls, value: Mapping[RouteKey, AuthPolicy]) -> Mapping[RouteKey, AuthPolicy]:
        return MappingProxyType(dict(value))

    def sorted_items(self) -> list[tuple[RouteKey, AuthPolicy]]:
        """Return policies ordered by (method, path)."""
        return sorted(self.policies.items(), key=lambda item: item[0].sort_key())
