from __future__ import annotations


class CopilotError(Exception):
    """Base error carrying a machine code and optional hints for the CLI."""

    code = "COPILOT_ERROR"

    def __init__(self, message: str, *, suggestions: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.suggestions = suggestions or []


class ConfigurationError(CopilotError):
    code = "CONFIGURATION_ERROR"


class PageQueryError(CopilotError):
    """A single selector lookup against the live page failed."""

    code = "PAGE_QUERY_ERROR"

    def __init__(self, selector: str, reason: str):
        super().__init__(f"query failed for selector {selector!r}: {reason}")
        self.selector = selector
        self.reason = reason


class WorkflowStateError(CopilotError):
    code = "WORKFLOW_STATE_ERROR"
