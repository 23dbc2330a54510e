"""
Docker manager for the container workloads of a cluster node.

This module provides an abstraction over Docker operations against the
remote daemon of one node. Every operation shells out to the docker CLI
with ``-H`` pointing at the node, so no local daemon is required.
"""

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from clouddity_common.models import DockerConnection, ResolvedImage

logger = logging.getLogger(__name__)


@dataclass
class ContainerInfo:
    """
    Information about a Docker container on a node.

    Represents the current state of a container from the daemon's perspective.
    """

    container_id: str
    name: str  # Container name derived from the image name
    image: str
    status: str  # created|running|exited|paused|restarting|removing|dead

    @classmethod
    def from_ps_line(cls, line: str) -> "ContainerInfo":
        """Parse one line of ``docker ps --format '{{json .}}'`` output."""
        data = json.loads(line)
        return cls(
            container_id=data["ID"],
            name=data["Names"].split(",")[0].lstrip("/"),
            image=data.get("Image", ""),
            status=data.get("State", "").lower(),
        )


class DockerManager:
    """
    Manages images and containers on the Docker daemon of one node.

    Containers are named after the logical image they run, so each node runs
    at most one container per declared image.
    """

    def __init__(self, connection: DockerConnection, docker_binary: str = "docker"):
        """
        Initialize the docker manager.

        Args:
            connection: Protocol, host and port of the node's daemon
            docker_binary: Name or path of the docker CLI
        """
        self.connection = connection
        self.docker_binary = docker_binary

    def _base_args(self) -> list[str]:
        args = [self.docker_binary, "-H", self.connection.url]
        if self.connection.tls:
            args.append("--tls")
        return args

    async def _run(self, *args: str, stdin: bytes | None = None) -> str:
        """
        Run a docker command against the node and return its stdout.

        Raises:
            RuntimeError: If the command exits with a non-zero status
        """
        process = await asyncio.create_subprocess_exec(
            *self._base_args(),
            *args,
            stdin=asyncio.subprocess.PIPE if stdin is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        stdout, stderr = await process.communicate(stdin)

        if process.returncode != 0:
            raise RuntimeError(
                f"docker {args[0]} on {self.connection.host} failed: "
                f"{stderr.decode().strip()}"
            )
        return stdout.decode()

    async def login(self, auth: Mapping[str, Any]) -> None:
        """
        Log in to a registry with the shared credentials, if any are set.

        Args:
            auth: Mapping with "username", "password" and optional
                  "serveraddress" keys
        """
        username = auth.get("username")
        password = auth.get("password")
        if not username or not password:
            return

        args = ["login", "--username", str(username), "--password-stdin"]
        if auth.get("serveraddress"):
            args.append(str(auth["serveraddress"]))
        await self._run(*args, stdin=str(password).encode())

    async def pull_image(self, image: ResolvedImage) -> None:
        """
        Pull an image onto the node.

        Raises:
            RuntimeError: If the pull fails
        """
        logger.info(f"Pulling {image.qualified_name} on {self.connection.host}")
        await self._run("pull", image.qualified_name)

    async def run_container(
        self, image: ResolvedImage, hosts: tuple[str, ...] = ()
    ) -> str:
        """
        Create and start a detached container for an image.

        Args:
            image: Image to run; its container name is derived from the image name
            hosts: Extra "host:ip" entries for the container

        Returns:
            Container ID

        Raises:
            RuntimeError: If the container cannot be created
        """
        args = ["run", "--detach", "--name", image.container_name]
        for host in hosts:
            args.extend(["--add-host", host])
        for port in image.ports:
            args.extend(["--publish", port])
        for key, value in image.environment:
            args.extend(["--env", f"{key}={value}"])
        args.append(image.qualified_name)
        args.extend(image.command)

        logger.info(f"Running {image.qualified_name} on {self.connection.host}")
        stdout = await self._run(*args)
        return stdout.strip()

    async def start_container(self, container_id: str) -> None:
        """
        Start a created or stopped container.

        Raises:
            RuntimeError: If container start fails
        """
        await self._run("start", container_id)

    async def stop_container(self, container_id: str, timeout: int = 10) -> None:
        """
        Stop a running container.

        Args:
            container_id: Docker container ID or name
            timeout: Seconds to wait before killing container

        Raises:
            RuntimeError: If stop operation fails
        """
        await self._run("stop", "--time", str(timeout), container_id)

    async def remove_container(self, container_id: str, force: bool = False) -> None:
        """
        Remove a container.

        Args:
            container_id: Docker container ID or name
            force: If True, force removal even if running

        Raises:
            RuntimeError: If removal fails
        """
        args = ["rm"]
        if force:
            args.append("--force")
        args.append(container_id)

        try:
            await self._run(*args)
        except RuntimeError as e:
            # Ignore "already removed" errors
            if "No such container" not in str(e):
                raise

    async def list_containers(self) -> list[ContainerInfo]:
        """
        List all containers on the node (both running and stopped).

        Raises:
            RuntimeError: If the daemon cannot be queried
        """
        stdout = await self._run("ps", "--all", "--no-trunc", "--format", "{{json .}}")
        return [
            ContainerInfo.from_ps_line(line)
            for line in stdout.splitlines()
            if line.strip()
        ]
