"""Name and path conventions shared by resolvers and delegates."""

from .exceptions import InvalidArgumentError

MODULE_SUFFIX = ".py"


def validate_name(name: str | None) -> str:
    """Return ``name`` unchanged, or raise if it is missing or empty."""
    if not name:
        raise InvalidArgumentError("name must not be empty")
    return name


def validate_path(path: str | None) -> str:
    """Return ``path`` unchanged, or raise if it is missing or empty."""
    if not path:
        raise InvalidArgumentError("path must not be empty")
    return path


def to_module_path(name: str) -> str:
    """Convert a dotted module name into its namespace path.

    Example:
        >>> to_module_path("example.Hello")
        'example/Hello.py'
    """
    return validate_name(name).replace(".", "/") + MODULE_SUFFIX
