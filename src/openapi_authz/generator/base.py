"""Shared behaviour for the policy code generators."""

import logging

from openapi_authz.errors import InvalidNamespaceError
from openapi_authz.parser.base import AuthPolicy, Config, RouteKey

logger = logging.getLogger(__name__)

HEADER = "Code generated by openapi-authz. DO NOT EDIT."


class CodeGenerator:
    """Renders a Config as source code in one target language.

    Subclasses provide the namespace rules and the per-entry rendering;
    ordering and validation live here so every target is deterministic.
    """

    target = ""
    keywords: frozenset[str] = frozenset()

    def generate(self, namespace: str, config: Config) -> str:
        """Validate ``namespace`` and render ``config`` under it."""
        self.validate_namespace(namespace)
        entries = config.sorted_items()
        logger.debug(f"Rendering {len(entries)} policies for {self.target} namespace {namespace!r}")
        code = self._render(namespace, entries)
        return code.rstrip("\n") + "\n"

    def validate_namespace(self, namespace: str) -> None:
        if not namespace:
            raise InvalidNamespaceError(f"{self.target}: namespace must not be empty")
        if not self._is_identifier(namespace):
            raise InvalidNamespaceError(f"{self.target}: {namespace!r} is not a valid identifier")
        if namespace in self.keywords:
            raise InvalidNamespaceError(f"{self.target}: {namespace!r} is a reserved keyword")

    def _is_identifier(self, namespace: str) -> bool:
        raise NotImplementedError

    def _render(self, namespace: str, entries: list[tuple[RouteKey, AuthPolicy]]) -> str:
        raise NotImplementedError
