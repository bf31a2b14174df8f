"""Project template tools backed by the external ``zypin`` CLI."""

import asyncio
import json
import logging
import re
import shlex
from pathlib import Path
from typing import Dict, List, Optional

from zypin_mcp.config import ServerConfig
from zypin_mcp.errors import ExternalCommandFailedError, TemplateNotFoundError
from zypin_mcp.models import CallEnvelope, CreateTemplateInput, NoArguments, WorkingDirectoryInput
from zypin_mcp.registry import Tool


logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 300.0
TEMPLATE_METADATA_FILE = "template.json"

_TEMPLATE_LINE_RE = re.compile(r"●\s+(\w+)/([\w-]+)(?:\s+(.+))?")


class ZypinCli:
    """Runs ``zypin`` subcommands and returns their standard output."""

    def __init__(self, executable: str = "zypin", timeout: float = DEFAULT_COMMAND_TIMEOUT):
        self.executable = executable
        self.timeout = timeout

    async def run(self, *args: str, cwd: Optional[str] = None) -> str:
        argv = [self.executable, *args]
        command = shlex.join(argv)
        logger.info("Running %s (cwd=%s)", command, cwd or ".")
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ExternalCommandFailedError(command, f"executable not found: {exc}") from exc
        except OSError as exc:
            raise ExternalCommandFailedError(command, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            process.kill()
            await process.wait()
            raise ExternalCommandFailedError(command, f"timed out after {self.timeout}s") from exc

        output = stdout.decode("utf-8", errors="replace")
        if process.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip() or output.strip()
            raise ExternalCommandFailedError(
                command, detail or f"exit status {process.returncode}", process.returncode
            )
        return output


def parse_templates_from_help(help_output: str) -> List[Dict[str, str]]:
    """Extract ``package/template`` entries from ``zypin create-project --help``.

    Only lines between the "Available Templates:" and "Usage Examples:" headings
    are considered.
    """
    templates: List[Dict[str, str]] = []
    in_section = False
    for line in help_output.splitlines():
        if "Available Templates:" in line:
            in_section = True
            continue
        if in_section and "Usage Examples:" in line:
            break
        if not in_section:
            continue
        match = _TEMPLATE_LINE_RE.search(line)
        if match:
            name = f"{match.group(1)}/{match.group(2)}"
            description = (match.group(3) or "").strip() or name
            templates.append({"name": name, "description": description})
    return templates


def scan_templates_dir(root: Path) -> List[Dict[str, str]]:
    """List ``<package>/<template>`` directories below ``root``."""
    templates: List[Dict[str, str]] = []
    for package_dir in sorted(p for p in root.iterdir() if p.is_dir()):
        for template_dir in sorted(p for p in package_dir.iterdir() if p.is_dir()):
            name = f"{package_dir.name}/{template_dir.name}"
            description = name
            metadata_path = template_dir / TEMPLATE_METADATA_FILE
            if metadata_path.is_file():
                try:
                    metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
                    description = metadata.get("description") or name
                except (OSError, ValueError, AttributeError) as exc:
                    logger.warning("Ignoring unreadable %s: %s", metadata_path, exc)
            templates.append({"name": name, "description": description})
    return templates


class TemplateCatalog:
    """Finds available templates and drives project creation."""

    def __init__(self, cli: ZypinCli, templates_dir: Optional[Path] = None):
        self.cli = cli
        self.templates_dir = templates_dir

    async def list_templates(self) -> List[Dict[str, str]]:
        if self.templates_dir is not None:
            root = Path(self.templates_dir).expanduser()
            if root.is_dir():
                return scan_templates_dir(root)
            logger.warning("Templates directory %s does not exist, asking zypin instead", root)
        help_output = await self.cli.run("create-project", "--help")
        return parse_templates_from_help(help_output)

    async def ensure_template(self, template: str) -> None:
        """Raise :class:`TemplateNotFoundError` if a known catalog lacks ``template``."""
        try:
            templates = await self.list_templates()
        except ExternalCommandFailedError as exc:
            logger.warning("Could not list templates, skipping check: %s", exc)
            return
        names = [t["name"] for t in templates]
        if names and template not in names:
            raise TemplateNotFoundError(template, names)


def _missing_directory(path: str) -> Optional[CallEnvelope]:
    if not Path(path).expanduser().is_dir():
        return CallEnvelope.soft_failure(f"Directory not found: {path}")
    return None


def create_scaffold_tools(config: ServerConfig, cli: Optional[ZypinCli] = None) -> List[Tool]:
    """Build the template scaffolding tools."""
    catalog = TemplateCatalog(cli or ZypinCli(), config.templates_dir)

    async def get_available_templates(args: NoArguments) -> CallEnvelope:
        templates = await catalog.list_templates()
        lines = [f"{i}. {t['name']} - {t['description']}" for i, t in enumerate(templates, 1)]
        return CallEnvelope.ok(
            "Available Templates:\n" + "\n".join(lines), {"templates": templates}
        )

    async def create_template(args: CreateTemplateInput) -> CallEnvelope:
        missing = _missing_directory(args.working_directory)
        if missing:
            return missing
        await catalog.ensure_template(args.template)
        cwd = str(Path(args.working_directory).expanduser())
        await catalog.cli.run(
            "create-project", args.project_name, "--template", args.template, "--force", cwd=cwd
        )
        return CallEnvelope.ok(
            f'Project "{args.project_name}" created with template {args.template}',
            {
                "projectPath": str(Path(cwd) / args.project_name),
                "nextSteps": [f"cd {args.project_name}", "npm install"],
            },
        )

    def guide_tool(flag: str, title: str):
        async def handler(args: WorkingDirectoryInput) -> CallEnvelope:
            missing = _missing_directory(args.working_directory)
            if missing:
                return missing
            cwd = str(Path(args.working_directory).expanduser())
            content = await catalog.cli.run("guide", flag, cwd=cwd)
            return CallEnvelope.ok(title, {"content": content})

        return handler

    return [
        Tool(
            "get_available_templates",
            "Get list of available Zypin templates",
            NoArguments,
            get_available_templates,
            "scaffolding",
        ),
        Tool(
            "create_template",
            "Create a new test project from template",
            CreateTemplateInput,
            create_template,
            "scaffolding",
        ),
        Tool(
            "how_to_write",
            "Get writing guide for current project template",
            WorkingDirectoryInput,
            guide_tool("--write", "Writing Guide"),
            "scaffolding",
        ),
        Tool(
            "how_to_debug",
            "Get debugging guide for current project template",
            WorkingDirectoryInput,
            guide_tool("--debugging", "Debugging Guide"),
            "scaffolding",
        ),
        Tool(
            "get_template_readme",
            "Get README guide for current project template",
            WorkingDirectoryInput,
            guide_tool("--readme", "Template README"),
            "scaffolding",
        ),
    ]
