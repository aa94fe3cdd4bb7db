"""
Shell command tool.
"""

import asyncio
import subprocess

from loguru import logger

from ghostcode.tools.base import ProjectTool, ToolCall, ToolDefinition, ToolParameter, ToolResult

COMMAND_TIMEOUT_SECONDS = 30


class RunCommandTool(ProjectTool):
    name = "run_command"
    description = f"Run a shell command in the project directory ({COMMAND_TIMEOUT_SECONDS}s limit)."

    def __init__(self, project_root, timeout: int = COMMAND_TIMEOUT_SECONDS):
        super().__init__(project_root)
        self.timeout = timeout

    def definition(self) -> ToolDefinition:
        return ToolDefinition(
            name=self.name,
            description=self.description,
            parameters=[
                ToolParameter("command", "Shell command to execute"),
                ToolParameter("working_directory", "Directory to run in (default: project root)", required=False),
            ],
        )

    async def execute(self, call: ToolCall) -> ToolResult:
        return await asyncio.to_thread(self._run, call)

    def _run(self, call: ToolCall) -> ToolResult:
        command = call.get_string("command")
        if not command:
            return ToolResult.fail("Missing required argument 'command'")

        try:
            working_dir = self._resolve_path(call.get_string("working_directory", "."))
        except ValueError as error:
            return ToolResult.fail(str(error))

        logger.debug(f"Running command: {command} (cwd={working_dir})")
        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=working_dir,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            return ToolResult.fail(f"Command timed out ({self.timeout}s limit)")
        except OSError as e:
            return ToolResult.fail(f"Failed to run command: {e}")

        stdout = result.stdout.strip()
        stderr = result.stderr.strip()
        if result.returncode != 0:
            return ToolResult.fail(stderr or stdout or f"Command failed with exit code {result.returncode}")

        return ToolResult.ok({
            "tool": self.name,
            "command": command,
            "output": stdout or stderr,
            "return_code": 0,
        })
