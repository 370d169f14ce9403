"""Go code generator: emits a package with a RouteKey -> AuthPolicy map."""

import math
import re

from openapi_authz.parser.base import AuthPolicy, RouteKey
from .base import HEADER, CodeGenerator

GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
})

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# go/printer exprList thresholds for breaking key alignment
_SMALL_KEY = 40
_ALIGN_RATIO = 2.5

_ESCAPES = {
    "\a": r"\a",
    "\b": r"\b",
    "\f": r"\f",
    "\n": r"\n",
    "\r": r"\r",
    "\t": r"\t",
    "\v": r"\v",
    "\\": r"\\",
    '"': r"\"",
}

_TYPES = """\
// RouteKey identifies an operation by HTTP method and route pattern.
type RouteKey struct {
\tMethod string
\tPath   string
}

// AuthPolicy describes the authorization requirements for an operation.
type AuthPolicy struct {
\tRequireAuth bool
\tRoles       []string
\tScopes      []string
}
"""


def go_quote(value: str) -> str:
    """Quote ``value`` as an interpreted Go string literal."""
    out = ['"']
    for ch in value:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif ord(ch) <= 0xFFFF:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    out.append('"')
    return "".join(out)


def alignment_sections(key_sizes: list[int]) -> list[list[int]]:
    """Group composite-literal entries the way gofmt aligns them.

    gofmt pads ``key: value`` lines to a common column, but starts a new
    section when a key is not small and its size differs from the geometric
    mean of the current section by a factor of 2.5 or more. Returns lists of
    entry indexes, one per aligned section.
    """
    sections: list[list[int]] = []
    lnsum = 0.0
    count = 0
    prev_size = 0
    for i, size in enumerate(key_sizes):
        new_section = i == 0
        if i > 0 and not (prev_size <= _SMALL_KEY and size <= _SMALL_KEY):
            ratio = size / math.exp(lnsum / count)
            new_section = _ALIGN_RATIO * ratio <= 1 or _ALIGN_RATIO <= ratio
        if new_section:
            sections.append([])
            lnsum = 0.0
            count = 0
        sections[-1].append(i)
        lnsum += math.log(size)
        count += 1
        prev_size = size
    return sections


class GoCodeGenerator(CodeGenerator):
    """Renders policies as a Go source file in package ``namespace``."""

    target = "go"
    keywords = GO_KEYWORDS

    def _is_identifier(self, namespace: str) -> bool:
        # "_" is a valid identifier but not a valid package name
        return namespace != "_" and _IDENTIFIER.fullmatch(namespace) is not None

    def _render(self, namespace: str, entries: list[tuple[RouteKey, AuthPolicy]]) -> str:
        lines = [f"// {HEADER}", "", f"package {namespace}", "", _TYPES]
        lines.append("// AuthPolicies maps each route to its authorization policy.")

        if not entries:
            lines.append("var AuthPolicies = map[RouteKey]AuthPolicy{}")
            return "\n".join(lines)

        keys = [self._render_key(key) for key, _ in entries]
        policies = [self._render_policy(policy) for _, policy in entries]
        lines.append("var AuthPolicies = map[RouteKey]AuthPolicy{")
        for section in alignment_sections([len(k.encode("utf-8")) for k in keys]):
            width = max(len(keys[i]) for i in section) + 1
            for i in section:
                lines.append(f"\t{(keys[i] + ':').ljust(width)} {policies[i]},")
        lines.append("}")
        return "\n".join(lines)

    def _render_key(self, key: RouteKey) -> str:
        return f"{{Method: {go_quote(key.method)}, Path: {go_quote(key.path)}}}"

    def _render_policy(self, policy: AuthPolicy) -> str:
        fields = [f"RequireAuth: {'true' if policy.require_auth else 'false'}"]
        if policy.roles:
            fields.append(f"Roles: {self._render_list(policy.roles)}")
        if policy.scopes:
            fields.append(f"Scopes: {self._render_list(policy.scopes)}")
        return "{" + ", ".join(fields) + "}"

    def _render_list(self, values: tuple[str, ...]) -> str:
        return "[]string{" + ", ".join(go_quote(v) for v in values) + "}"
