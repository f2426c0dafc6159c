
import logging
import math
import multiprocessing
import os
import pathlib
import subprocess

from typing import List
from typing import Optional
from typing import Tuple

import docker
import docker.errors
import psutil

from forge.errors import ConfigurationError
from forge.platforms import BuildTarget
from forge.unity import UnityEditor

logger = logging.getLogger(__name__)

# GameCI publishes one editor image per (editor version, platform module).
# Tags look like `unityci/editor:ubuntu-2022.3.10f1-android-3`; the trailing number is GameCI's own image revision.
IMAGE_REPOSITORY = "unityci/editor"
IMAGE_REVISION = "3"

MODULES = {
    BuildTarget.Android: "android",
    BuildTarget.iOS: "ios",
    BuildTarget.StandaloneWindows64: "windows-mono",
    BuildTarget.StandaloneOSX: "mac-mono",
    BuildTarget.StandaloneLinux64: "linux-il2cpp",
    BuildTarget.WebGL: "webgl",
}

# licence activation happens inside the image; we just forward whatever the host has
LICENSE_ENV = ["UNITY_LICENSE", "UNITY_SERIAL", "UNITY_EMAIL", "UNITY_PASSWORD"]

# wrapper script the GameCI images put on PATH
CONTAINER_EDITOR = "unity-editor"

def image_for(editor_version: str, target: BuildTarget) -> str:
    return f"{IMAGE_REPOSITORY}:ubuntu-{editor_version}-{MODULES[target]}-{IMAGE_REVISION}"

def resources(memory_limit: Optional[int] = None) -> Tuple[int, int]:
    """Returns (cpus, memory in gigabytes) for the container."""
    cpus = multiprocessing.cpu_count()

    # use 75% of the computer's memory at most
    memory = round(psutil.virtual_memory().total / (1 << 30) / 4 * 3)

    # but if we have something specified, cut it down
    if memory_limit:
        memory = min(memory, int(memory_limit))

    # IL2CPP wants roughly 2gb per compiler process or it starts thrashing
    max_cpus = max(1, math.floor(memory / 2))
    if cpus > max_cpus:
        logger.info(f"CONTAINER: reducing CPU count to deal with limited memory; maxing out at {max_cpus} CPUs")
        cpus = max_cpus

    return cpus, memory

def ensure_image(image: str, client = None) -> None:
    """Verifies Docker is up and in Linux mode, and pulls `image` if we don't have it yet."""
    try:
        if client is None:
            client = docker.from_env()

        ostype = client.info()["OSType"].lower()
    except docker.errors.DockerException as e:
        raise ConfigurationError(f"Can't talk to Docker; is it running? ({e})")

    if ostype != "linux":
        raise ConfigurationError(f"Docker is running {ostype} containers; the editor images need Linux containers")

    try:
        client.images.get(image)
        logger.info(f"CONTAINER: image {image} already present")
    except docker.errors.ImageNotFound:
        repository, tag = image.rsplit(":", 1)
        logger.info(f"CONTAINER: pulling {image}, this takes a while the first time . . .")
        try:
            client.images.pull(repository, tag = tag)
        except docker.errors.APIError as e:
            raise ConfigurationError(f"Couldn't pull {image}: {e}")

class ContainerEditor(UnityEditor):
    """Same command line as UnityEditor, wrapped in `docker run`.

    Every mounted directory appears at the same absolute path inside the container, so paths in
    invocation files and reports mean the same thing on both sides.
    """

    def __init__(self, image: str, project: pathlib.Path, mounts: List[pathlib.Path] = (), memory_limit: Optional[int] = None, environ = None):
        super().__init__(CONTAINER_EDITOR, project)
        self.image = image
        self.mounts = [self.project] + [pathlib.Path(m).resolve() for m in mounts]
        self.memory_limit = memory_limit
        self.environ = os.environ if environ is None else environ

    def command(self, arguments: List[str]) -> List[str]:
        cpus, memory = resources(self.memory_limit)

        command = [
            "docker", "run",
            "--rm",
            "-w", str(self.project),
            f"--cpus={cpus}",
            f"--memory={memory}g",
        ]

        for mount in dict.fromkeys(self.mounts):
            command += ["-v", f"{mount}:{mount}"]

        for name in LICENSE_ENV:
            if name in self.environ:
                # just the name; docker picks the value up from our environment so it doesn't land in logs
                command += ["-e", name]

        command += [self.image]
        return command + super().command(arguments)

    def run(self, arguments: List[str]) -> int:
        command = self.command(arguments)
        logger.debug(f"CONTAINER: {' '.join(command)}")
        try:
            return subprocess.call(command, env = dict(self.environ))
        except OSError as e:
            raise ConfigurationError(f"Couldn't run docker: {e}")
