"""Call envelope and per-tool input models."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from zypin_mcp.browser import DEFAULT_WAIT_TIMEOUT


class CallEnvelope(BaseModel):
    """Uniform result of every tool call."""

    success: bool
    message: Optional[str] = None
    data: Optional[Any] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_outcome(self) -> "CallEnvelope":
        if self.error is not None and self.success:
            raise ValueError("a successful envelope cannot carry an error")
        if self.error is not None and self.data is not None:
            raise ValueError("data and error are mutually exclusive")
        if not self.success and self.data is not None:
            raise ValueError("a failed envelope cannot carry data")
        return self

    @classmethod
    def ok(cls, message: Optional[str] = None, data: Any = None) -> "CallEnvelope":
        return cls(success=True, message=message, data=data)

    @classmethod
    def soft_failure(cls, message: str) -> "CallEnvelope":
        """A failure the tool reports itself, without raising."""
        return cls(success=False, message=message)

    @classmethod
    def failure(cls, error: str) -> "CallEnvelope":
        return cls(success=False, error=error)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class NoArguments(BaseModel):
    """Input for tools that take no arguments."""


# Navigation


class NavigateInput(BaseModel):
    url: str = Field(description="URL to navigate to")


# Interaction


class SelectorInput(BaseModel):
    selector: str = Field(description="CSS selector of the element")


class TypeTextInput(BaseModel):
    selector: str = Field(description="CSS selector of the input element")
    text: str = Field(description="Text to type; replaces the current value")


class SelectOptionInput(BaseModel):
    selector: str = Field(description="CSS selector of the select element")
    value: str = Field(description="Option value or label to select")


class FillFormInput(BaseModel):
    fields: Dict[str, str] = Field(description="Mapping of CSS selector to value, filled in order")


# Inspection


class ScreenshotInput(BaseModel):
    filename: Optional[str] = Field(
        default=None, description="Output file path (defaults to screenshot-<timestamp>.png)"
    )
    full_page: bool = Field(default=False, description="Capture the full scrollable page")
    selector: Optional[str] = Field(default=None, description="Capture only this element")


# Utility


class WaitForElementInput(BaseModel):
    selector: str = Field(description="CSS selector to wait for")
    timeout: int = Field(
        default=DEFAULT_WAIT_TIMEOUT, gt=0, description="Timeout in milliseconds"
    )


class EvaluateInput(BaseModel):
    script: str = Field(description="JavaScript expression or function to evaluate in the page")


# Scaffolding


class WorkingDirectoryInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    working_directory: str = Field(alias="workingDirectory", description="Project directory path")


class CreateTemplateInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(alias="projectName", min_length=1, description="Project name")
    template: str = Field(description="Template name (e.g., selenium/cucumber-bdd)")
    working_directory: str = Field(
        alias="workingDirectory", description="Directory to create project in"
    )
