"""Error types raised while turning an OpenAPI document into policy code.

Every error is terminal for a run: the CLI reports it and exits without
writing any output.
"""


class AuthzError(Exception):
    """Base class for all openapi-authz failures."""


class SpecReadError(AuthzError):
    """The specification file could not be read."""


class SpecParseError(AuthzError):
    """The specification document is malformed."""


class MissingBearerSchemeError(AuthzError):
    """A non-empty security list never names the bearer scheme."""


class PolicyResolutionError(AuthzError):
    """An operation declares security the resolver cannot map to a policy."""

    def __init__(self, method: str, path: str, reason: str):
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(f"derive policy for {method} {path}: {reason}")


class InvalidNamespaceError(AuthzError):
    """The namespace is not usable as an identifier in the target language."""


class GeneratedCodeError(AuthzError):
    """A generator produced source that does not parse."""


class OutputWriteError(AuthzError):
    """The generated code could not be written."""
