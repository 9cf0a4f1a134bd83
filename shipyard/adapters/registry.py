"""
Registry adapters.

CargoRegistry publishes one package through the external registry client.
SparseIndex queries a sparse registry index over HTTP so the orchestrator can
tell when a just-published version has propagated.
"""

import json
from typing import Optional, Sequence, Set

import requests
import structlog

from shipyard.exceptions import PublishFailure
from shipyard.models.workspace import Package
from shipyard.services.commands import CommandRunner, CommandTemplates

logger = structlog.get_logger()


class CargoRegistry:
    """
    Publishes packages with the external registry client.

    The credential travels in the child's environment, never on the command
    line, so it does not show up in process listings or logs.
    """

    TOKEN_ENV = "CARGO_REGISTRY_TOKEN"

    def __init__(self, runner: CommandRunner, templates: CommandTemplates):
        self.runner = runner
        self.templates = templates

    def publish(self, package: Package, credential: str, extra_args: Sequence[str] = ()) -> None:
        """
        Publish one package.

        Args:
            package: Package to upload
            credential: Registry token
            extra_args: Pass-through arguments appended to the command

        Raises:
            PublishFailure: If the registry client exits non-zero
        """
        argv = self.templates.render("publish", package=package.name, version=package.version)
        argv.extend(extra_args)
        result = self.runner.run(argv, env={self.TOKEN_ENV: credential})
        if not result.ok:
            raise PublishFailure(
                package.name,
                f"registry client exited with status {result.returncode}",
                exit_code=result.returncode,
            )


class SparseIndex:
    """
    Read-only client for a sparse registry index (e.g. https://index.crates.io/).

    Each package has one file of newline-delimited JSON records, one per
    published version.
    """

    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = 10.0):
        if base_url.startswith("sparse+"):
            base_url = base_url[len("sparse+"):]
        if not base_url.endswith("/"):
            base_url = f"{base_url}/"
        self.base_url = base_url
        self.session = session or requests.Session()
        self.timeout = timeout

    @staticmethod
    def index_path(name: str) -> str:
        """Path of a package's index file, following the registry's directory layout."""
        name = name.lower()
        if len(name) <= 2:
            return f"{len(name)}/{name}"
        if len(name) == 3:
            return f"3/{name[0]}/{name}"
        return f"{name[0:2]}/{name[2:4]}/{name}"

    def versions(self, name: str) -> Set[str]:
        """
        Versions of ``name`` currently visible in the index.

        Raises:
            requests.exceptions.RequestException: On transport or HTTP errors
        """
        url = f"{self.base_url}{self.index_path(name)}"
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code == 404:
            return set()
        response.raise_for_status()

        found: Set[str] = set()
        for line in response.text.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if record.get("vers"):
                found.add(record["vers"])
        return found

    def is_visible(self, name: str, version: str) -> bool:
        try:
            return version in self.versions(name)
        except requests.exceptions.RequestException as e:
            logger.warning("index.query_failed", package=name, error=str(e))
            return False
