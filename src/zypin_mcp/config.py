"""Server configuration."""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, ValidationError

from zypin_mcp.errors import InvalidConfigError


logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 720
DEFAULT_TIMEOUT = 30000


class BrowserKind(str, Enum):
    """Browser engines Playwright can drive."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class Viewport(BaseModel):
    """Page viewport size in CSS pixels."""

    model_config = ConfigDict(frozen=True)

    width: StrictInt = Field(default=DEFAULT_WIDTH, gt=0)
    height: StrictInt = Field(default=DEFAULT_HEIGHT, gt=0)


class ServerConfig(BaseModel):
    """Browser and server settings, fixed once the server starts."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    browser: BrowserKind = BrowserKind.CHROMIUM
    headless: StrictBool = True
    viewport: Viewport = Field(default_factory=Viewport)
    timeout: StrictInt = Field(default=DEFAULT_TIMEOUT, gt=0)
    # Root scanned for project templates; unset means ask the zypin CLI.
    templates_dir: Optional[Path] = None
    # Relative screenshot paths resolve here; unset means the working directory.
    screenshot_dir: Optional[Path] = None


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(item) for item in err["loc"]) or "config"
        parts.append(f"{location}: {err['msg']}")
    return "; ".join(parts)


def validate_config(data: Dict[str, Any]) -> ServerConfig:
    """Validate a raw mapping, filling defaults for absent fields."""
    if not isinstance(data, dict):
        raise InvalidConfigError("Configuration must be a JSON object")
    try:
        return ServerConfig.model_validate(data)
    except ValidationError as exc:
        raise InvalidConfigError(f"Invalid configuration: {_format_validation_error(exc)}") from exc


def load_config(path: Optional[str] = None) -> ServerConfig:
    """Load configuration from a JSON file, or return defaults when no path is given."""
    if not path:
        return ServerConfig()

    config_path = Path(path).expanduser()
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidConfigError(f"Cannot read config file {config_path}: {exc}") from exc

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidConfigError(f"Config file {config_path} is not valid JSON: {exc}") from exc

    config = validate_config(data)
    logger.debug("Loaded configuration from %s", config_path)
    return config


def apply_overrides(config: ServerConfig, overrides: Dict[str, Any]) -> ServerConfig:
    """Return a new config with the non-None values of ``overrides`` applied.

    Recognised keys are ``browser``, ``headless``, ``width``, ``height``,
    ``timeout``, ``templates_dir`` and ``screenshot_dir``. The merged result is
    validated again so command-line values get the same checks as file values.
    """
    data = config.model_dump()
    viewport = dict(data["viewport"])
    for key, value in overrides.items():
        if value is None:
            continue
        if key in ("width", "height"):
            viewport[key] = value
        else:
            data[key] = value
    data["viewport"] = viewport
    return validate_config(data)
