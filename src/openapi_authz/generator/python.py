"""Python code generator: emits a typed module with frozen dataclasses."""

import ast
import keyword

from openapi_authz.errors import GeneratedCodeError
from openapi_authz.parser.base import AuthPolicy, Config, RouteKey
from .base import HEADER, CodeGenerator

_PRELUDE = '''\
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Mapping


@dataclass(frozen=True)
class RouteKey:
    """An operation, identified by HTTP method and route pattern."""

    method: str
    path: str


@dataclass(frozen=True)
class AuthPolicy:
    """Authorization requirements for an operation."""

    require_auth: bool
    roles: tuple[str, ...] = ()
    scopes: tuple[str, ...] = ()
'''


class PythonCodeGenerator(CodeGenerator):
    """Renders policies as a Python module named ``namespace``."""

    target = "python"
    keywords = frozenset(keyword.kwlist)

    def generate(self, namespace: str, config: Config) -> str:
        code = super().generate(namespace, config)
        try:
            ast.parse(code, filename=f"{namespace}.py")
        except SyntaxError as e:
            raise GeneratedCodeError(
                f"generated module {namespace}.py does not parse: {e.msg} (line {e.lineno})"
            ) from e
        return code

    def _is_identifier(self, namespace: str) -> bool:
        return namespace.isidentifier()

    def _render(self, namespace: str, entries: list[tuple[RouteKey, AuthPolicy]]) -> str:
        lines = [
            f"# {HEADER}",
            f'"""Route authorization policies for the ``{namespace}`` module."""',
            "",
            _PRELUDE,
            "",
        ]
        annotation = "AUTH_POLICIES: Final[Mapping[RouteKey, AuthPolicy]] ="

        if not entries:
            lines.append(f"{annotation} {{}}")
            return "\n".join(lines)

        lines.append(f"{annotation} {{")
        for key, policy in entries:
            lines.append(f"    {self._render_key(key)}: {self._render_policy(policy)},")
        lines.append("}")
        return "\n".join(lines)

    def _render_key(self, key: RouteKey) -> str:
        return f"RouteKey(method={key.method!r}, path={key.path!r})"

    def _render_policy(self, policy: AuthPolicy) -> str:
        args = [f"require_auth={policy.require_auth!r}"]
        if policy.roles:
            args.append(f"roles={self._render_tuple(policy.roles)}")
        if policy.scopes:
            args.append(f"scopes={self._render_tuple(policy.scopes)}")
        return "AuthPolicy(" + ", ".join(args) + ")"

    def _render_tuple(self, values: tuple[str, ...]) -> str:
        if len(values) == 1:
            return f"({values[0]!r},)"
        return "(" + ", ".join(repr(v) for v in values) + ")"
