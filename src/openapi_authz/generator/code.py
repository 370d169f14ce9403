"""Entry point for rendering a Config as source code."""

from openapi_authz.parser.base import Config
from .base import CodeGenerator
from .golang import GoCodeGenerator
from .python import PythonCodeGenerator

GENERATORS: dict[str, type[CodeGenerator]] = {
    "go": GoCodeGenerator,
    "python": PythonCodeGenerator,
}

DEFAULT_TARGET = "go"
DEFAULT_NAMESPACE = "httproutes"


def get_generator(target: str) -> CodeGenerator:
    try:
        return GENERATORS[target]()
    except KeyError:
        raise ValueError(f"unknown target {target!r}, expected one of {sorted(GENERATORS)}") from None


def generate(namespace: str, config: Config, target: str = DEFAULT_TARGET) -> str:
    """Render ``config`` as ``target`` source under ``namespace``.

    The namespace is validated before anything is rendered. Entries are
    sorted by (method, path), so the same Config always yields the same text.
    """
    return get_generator(target).generate(namespace, config)
