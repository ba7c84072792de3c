"""Deployer that shells out to an external deployment command per resource."""

import json
import os
import re
import subprocess
from typing import Any, Dict, Iterable, List, Optional

from .base import ResourceDeployer
from strata_deploy.utils.errors import DeployError
from strata_deploy.utils.logging import get_logger

logger = get_logger(__name__)

# An argv element equal to this expands to one element per resolved arg
ARGS_PLACEHOLDER = "{args}"


def _render_arg(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, default=str)


class CommandDeployer(ResourceDeployer):
    """Runs a command template for each resource and reads the identifier from stdout.

    Placeholders substituted in every argv element:
        {name}       resource name
        {artifact}   the resource's artifact (empty string if none)
        {args_json}  all resolved args as a JSON array

    An element that is exactly ``{args}`` is replaced by one element per arg.
    The process also receives STRATA_RESOURCE_NAME, STRATA_ARTIFACT and
    STRATA_ARGS_JSON in its environment.
    """

    def __init__(
        self,
        command: List[str],
        artifacts: Optional[Dict[str, str]] = None,
        timeout: float = 300.0,
        identifier_pattern: Optional[str] = None,
        cwd: Optional[str] = None,
        retry_exit_codes: Iterable[int] = ()
    ):
        """Initialize command deployer.

        Args:
            command: argv template
            artifacts: Resource name -> artifact mapping from the graph
            timeout: Seconds before the command is killed
            identifier_pattern: Regex whose first match on stdout is the identifier;
                defaults to the last non-empty stdout line
            cwd: Working directory for the command
            retry_exit_codes: Exit statuses reported as retryable DeployErrors
        """
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.artifacts = dict(artifacts or {})
        self.timeout = timeout
        self.identifier_pattern = re.compile(identifier_pattern) if identifier_pattern else None
        self.cwd = cwd
        self.retry_exit_codes = frozenset(retry_exit_codes)

    def build_argv(self, name: str, args: List[Any]) -> List[str]:
        """Render the command template for one resource."""
        substitutions = {
            "{name}": name,
            "{artifact}": self.artifacts.get(name, ""),
            "{args_json}": json.dumps(args, default=str),
        }

        argv = []
        for element in self.command:
            if element == ARGS_PLACEHOLDER:
                argv.extend(_render_arg(arg) for arg in args)
                continue
            for placeholder, value in substitutions.items():
                element = element.replace(placeholder, value)
            argv.append(element)
        return argv

    def deploy(self, name: str, args: List[Any]) -> str:
        argv = self.build_argv(name, args)
        env = {
            **os.environ,
            "STRATA_RESOURCE_NAME": name,
            "STRATA_ARTIFACT": self.artifacts.get(name, ""),
            "STRATA_ARGS_JSON": json.dumps(args, default=str),
        }

        logger.debug(f"Running deploy command for {name}: {argv}")

        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
                env=env
            )
        except FileNotFoundError as e:
            raise DeployError(
                f"Deploy command not found: {argv[0]}",
                resource_name=name,
                cause=e,
                suggestions=['Check the deployer.command setting in the graph file']
            )
        except subprocess.TimeoutExpired as e:
            raise DeployError(
                f"Deploy command timed out after {self.timeout}s",
                resource_name=name,
                cause=e,
                suggestions=['The resource may have been deployed anyway; verify before re-running']
            )

        if completed.returncode != 0:
            stderr = completed.stderr.strip()
            raise DeployError(
                f"Deploy command exited with status {completed.returncode}"
                + (f": {stderr.splitlines()[-1]}" if stderr else ""),
                resource_name=name,
                retryable=completed.returncode in self.retry_exit_codes
            )

        identifier = self._extract_identifier(completed.stdout)
        if not identifier:
            raise DeployError(
                "Deploy command succeeded but printed no deployed identifier",
                resource_name=name
            )
        return identifier

    def _extract_identifier(self, stdout: str) -> Optional[str]:
        if self.identifier_pattern is not None:
            match = self.identifier_pattern.search(stdout)
            return match.group(0) if match else None

        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        return lines[-1] if lines else None
