"""Reporter functionality for gh_auditor."""

from typing import Any

from .console import create_reporter as create_console_reporter
from .formatter import render
from .json import create_reporter as create_json_reporter

FORMATS = ("console", "json")


def get_reporter(format: str = "console", **kwargs: Any) -> Any:
    """Get a reporter instance based on the specified format.

    Args:
        format: Output format ("console" or "json")
        **kwargs: Additional keyword arguments to pass to the reporter

    Returns:
        Reporter instance

    Raises:
        ValueError: If the specified format is not supported
    """
    if format == "console":
        return create_console_reporter(**kwargs)
    elif format == "json":
        return create_json_reporter(**kwargs)
    else:
        raise ValueError(f"Unsupported reporter format: {format}")


__all__ = ["FORMATS", "get_reporter", "render"]
