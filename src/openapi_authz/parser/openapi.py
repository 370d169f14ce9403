"""OpenAPI v3 security parser.

Reads the ``security`` blocks of an OpenAPI document and resolves one
AuthPolicy per operation. Everything except paths, methods and security
requirements is ignored.
"""

import logging
from collections.abc import Hashable
from pathlib import Path

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from openapi_authz.errors import MissingBearerSchemeError, PolicyResolutionError, SpecParseError, SpecReadError
from .base import AuthPolicy, Config, RouteKey

logger = logging.getLogger(__name__)

DEFAULT_BEARER_SCHEME = "BearerAuth"
DEFAULT_ROLE_PREFIX = "role:"

# scheme name -> role/scope tokens
SecurityRequirement = dict[str, list[str] | None]

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "options", "head")


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that rejects a key repeated within one mapping.

    PyYAML keeps the last duplicate, which could turn a protected
    operation into a public one without any error.
    """

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == "tag:yaml.org,2002:merge":
                continue  # "<<" keys may be overridden by explicit ones
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue  # reported by SafeLoader as an unhashable key
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping", node.start_mark,
                    f"mapping key {key!r} already defined", key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class _Operation(BaseModel):
    security: list[SecurityRequirement] | None = None


class _PathItem(BaseModel):
    get: _Operation | None = None
    post: _Operation | None = None
    put: _Operation | None = None
    delete: _Operation | None = None
    patch: _Operation | None = None
    options: _Operation | None = None
    head: _Operation | None = None

    def operations(self) -> list[tuple[str, _Operation]]:
        """Return (METHOD, operation) pairs for every declared method."""
        ops = []
        for method in HTTP_METHODS:
            op = getattr(self, method)
            if op is not None:
                ops.append((method.upper(), op))
        return ops


class _OpenApiRoot(BaseModel):
    security: list[SecurityRequirement] | None = None
    paths: dict[str, _PathItem | None] = {}

    @field_validator("paths", mode="before")
    @classmethod
    def _null_paths(cls, value):
        return {} if value is None else value


def load_config(
    file_path: Path,
    bearer_scheme: str = DEFAULT_BEARER_SCHEME,
    role_prefix: str = DEFAULT_ROLE_PREFIX,
) -> Config:
    """Read an OpenAPI YAML file and resolve its auth policies."""
    logger.info(f"Loading OpenAPI spec from {file_path}")
    try:
        data = Path(file_path).read_bytes()
    except OSError as e:
        raise SpecReadError(f"read spec {file_path}: {e}") from e
    return parse_config(data, bearer_scheme=bearer_scheme, role_prefix=role_prefix)


def parse_config(
    data: bytes | str,
    bearer_scheme: str = DEFAULT_BEARER_SCHEME,
    role_prefix: str = DEFAULT_ROLE_PREFIX,
) -> Config:
    """Resolve the auth policy of every operation in an OpenAPI document.

    Either every operation resolves or an error is raised; a partial
    Config is never returned.
    """
    root = _parse_root(data)

    policies: dict[RouteKey, AuthPolicy] = {}
    for path, item in root.paths.items():
        if item is None:
            continue
        for method, op in item.operations():
            key = RouteKey(method=method, path=path)
            try:
                policy = resolve_policy(root.security, op.security, bearer_scheme, role_prefix)
            except MissingBearerSchemeError as e:
                raise PolicyResolutionError(method, path, str(e)) from e
            logger.debug(f"{method} {path} -> {policy!r}")
            policies[key] = policy

    logger.info(f"Resolved {len(policies)} operation policies")
    return Config(policies=policies)


def resolve_policy(
    root_security: list[SecurityRequirement] | None,
    op_security: list[SecurityRequirement] | None,
    bearer_scheme: str = DEFAULT_BEARER_SCHEME,
    role_prefix: str = DEFAULT_ROLE_PREFIX,
) -> AuthPolicy:
    """Derive the policy for one operation.

    Operation-level security overrides root-level security whenever it is
    present, including an explicit empty list. Only the first requirement
    naming ``bearer_scheme`` is used.

    Raises MissingBearerSchemeError when security is declared but never
    names the bearer scheme, so a misconfigured route is never silently public.
    """
    security = op_security if op_security is not None else root_security
    if not security:
        return AuthPolicy.public()

    for requirement in security:
        for scheme, tokens in requirement.items():
            if scheme == bearer_scheme:
                roles, scopes = classify_tokens(tokens or [], role_prefix)
                return AuthPolicy(require_auth=True, roles=roles, scopes=scopes)

    raise MissingBearerSchemeError(f"security section present but no {bearer_scheme} requirement found")


def classify_tokens(tokens: list[str], role_prefix: str = DEFAULT_ROLE_PREFIX) -> tuple[list[str], list[str]]:
    """Split requirement tokens into (roles, scopes).

    ``role:admin`` becomes the role ``admin``; anything else, including a
    bare ``role:``, is kept verbatim as a scope.
    """
    roles: list[str] = []
    scopes: list[str] = []
    for token in tokens:
        if len(token) > len(role_prefix) and token.startswith(role_prefix):
            roles.append(token[len(role_prefix):])
        else:
            scopes.append(token)
    return roles, scopes


def _parse_root(data: bytes | str) -> _OpenApiRoot:
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise SpecParseError(f"unmarshal spec: not valid UTF-8: {e}") from e

    try:
        doc = yaml.load(data, Loader=_UniqueKeyLoader)
    except yaml.YAMLError as e:
        raise SpecParseError(f"unmarshal spec: {e}") from e

    if doc is None:
        logger.warning("OpenAPI spec is empty; no policies will be generated")
        doc = {}
    if not isinstance(doc, dict):
        raise SpecParseError(f"unmarshal spec: expected a mapping at the document root, got {type(doc).__name__}")

    try:
        return _OpenApiRoot.model_validate(doc)
    except ValidationError as e:
        raise SpecParseError(f"unmarshal spec: {e}") from e
