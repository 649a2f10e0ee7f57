from __future__ import annotations

from typing import Optional


class ProtocPluginError(Exception):
    """Base class for every fatal condition raised while processing a request."""


class UnresolvedReferenceError(ProtocPluginError):
    """Raised when a name is looked up that was never registered."""


class NamingConflictError(ProtocPluginError):
    """Raised when a declaration name cannot be used in the generated code."""


class TraversalError(ProtocPluginError):
    """Raised when the path or outer-name stacks are popped out of order."""


class RenderError(ProtocPluginError):
    """Raised when the assembled file cannot be rendered or formatted.

    The offending text is kept on ``source`` so it can be inspected.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source
