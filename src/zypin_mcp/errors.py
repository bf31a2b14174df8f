"""Exception types raised by the browser session, registry and dispatcher."""

from typing import Optional


class ZypinError(Exception):
    """Base class for all errors raised by zypin-mcp."""


class ResourceClosedError(ZypinError):
    """The browser session was closed and cannot be reopened."""

    def __init__(self, message: str = "Browser session is closed"):
        super().__init__(message)


class LaunchFailedError(ZypinError):
    """The browser engine could not be started."""


class ElementNotFoundError(ZypinError):
    """A selector was invalid or matched no element."""


class OperationTimeoutError(ZypinError):
    """A navigation or selector wait exceeded its timeout."""


class ScriptError(ZypinError):
    """Script evaluation in the page threw."""


class AutomationFailure(ZypinError):
    """Any other failure reported by the automation engine."""


class UnknownToolError(ZypinError):
    """No tool with the requested name is registered."""

    def __init__(self, name: str):
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArgumentsError(ZypinError):
    """Tool arguments did not match the tool's input schema."""

    def __init__(self, tool_name: str, detail: str):
        super().__init__(f"Invalid arguments for {tool_name}: {detail}")
        self.tool_name = tool_name
        self.detail = detail


class InvalidConfigError(ZypinError):
    """Startup configuration is invalid."""


class ToolRegistrationError(ZypinError):
    """A tool descriptor could not be registered."""


class TemplateNotFoundError(ZypinError):
    """The requested project template is not available."""

    def __init__(self, template: str, available: Optional[list] = None):
        message = f"Template not found: {template}"
        if available:
            message += f". Available templates: {', '.join(available)}"
        super().__init__(message)
        self.template = template


class ExternalCommandFailedError(ZypinError):
    """An external command exited unsuccessfully or could not be run."""

    def __init__(self, command: str, detail: str, returncode: Optional[int] = None):
        super().__init__(f"Command failed: {command}: {detail}")
        self.command = command
        self.detail = detail
        self.returncode = returncode
