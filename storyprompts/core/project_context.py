"""Request-scoped context (project and request id) for log correlation."""

from contextvars import ContextVar
from typing import Optional

project_id_var: ContextVar[Optional[int]] = ContextVar("project_id", default=None)
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def set_project_context(project_id: int | None) -> None:
    """Set the current project context.

    Args:
        project_id: Project ID to set in context
    """
    project_id_var.set(project_id)


def get_project_context() -> int | None:
    """Get the current project context.

    Returns:
        Current project ID or None
    """
    return project_id_var.get()


def clear_project_context() -> None:
    """Clear the current project context."""
    project_id_var.set(None)


def set_request_id(request_id: str | None) -> None:
    """Set the current request id."""
    request_id_var.set(request_id)


def get_current_request_id() -> str | None:
    """Get the current request id."""
    return request_id_var.get()
