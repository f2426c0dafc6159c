"""Drives the Unity editor as a batch-mode subprocess.

The editor side is two static methods in the project's Editor assembly. They talk to us through
JSON files under `Temp/PlayerForge/`, passed as custom command line flags:

`PlayerForge.BuildPlayer -invocationFile <in> -reportFile <out>`
    in:  {"target": "Android", "scenes": ["Assets/Scenes/Boot.unity", ...], "development": false,
          "locationPathName": "/builds/QA/Game_v1.0.0/Game_v1.0.0.apk",
          "extra": {"buildAppBundle": false, "keystorePass": "...", "keyaliasPass": "..."}}
    out: {"summary": {"result": "Succeeded" | "Failed" | "Cancelled" | "Unknown", ...}, ...}
         Anything besides `summary.result` is kept verbatim as report details.

`PlayerForge.BuildAddressables -addressablesFile <out>`
    out: {"remoteCatalogBuildPath": "ServerData/Android" | null,
          "profileVariables": {"BuildPath": "Library/aa/Android", ...}}
         Paths may be relative to the project root.

Both methods have to exit the editor with a non-zero code on failure.
"""

import json
import logging
import os
import pathlib
import platform
import shutil
import subprocess

from typing import Dict
from typing import List
from typing import Optional

from forge.errors import ConfigurationError
from forge.errors import PipelineError
from forge.errors import PlatformSwitchError
from forge.parameters import BuildInvocation
from forge.platforms import BuildTarget
from forge.ports import BuildReport
from forge.ports import BuildResult
from forge.project_settings import read_editor_version

logger = logging.getLogger(__name__)

# editor-side entry points, see above for the file formats
BUILD_PLAYER_METHOD = "PlayerForge.BuildPlayer"
BUILD_ADDRESSABLES_METHOD = "PlayerForge.BuildAddressables"

# scratch space inside the project so the same paths work when the editor runs in a container
WORK_DIR = "Temp/PlayerForge"

def hub_editor_paths(version: str) -> List[pathlib.Path]:
    system = platform.system()
    if system == "Windows":
        return [pathlib.Path(os.environ.get("ProgramFiles", "C:\\Program Files")) / "Unity" / "Hub" / "Editor" / version / "Editor" / "Unity.exe"]
    if system == "Darwin":
        return [pathlib.Path("/Applications/Unity/Hub/Editor") / version / "Unity.app" / "Contents" / "MacOS" / "Unity"]
    return [
        pathlib.Path.home() / "Unity" / "Hub" / "Editor" / version / "Editor" / "Unity",
        pathlib.Path("/opt/unity/editors") / version / "Editor" / "Unity",
    ]

def find_editor(project: pathlib.Path, explicit: Optional[str] = None, environ = None) -> str:
    """Picks the editor binary: explicit path, then $UNITY_EDITOR, then wherever Unity Hub put the project's version."""
    if environ is None:
        environ = os.environ

    if explicit:
        return explicit

    if environ.get("UNITY_EDITOR"):
        return environ["UNITY_EDITOR"]

    version = read_editor_version(project)
    for candidate in hub_editor_paths(version):
        if candidate.is_file():
            return str(candidate)

    # last resort; GameCI-style installs put a wrapper on PATH
    onpath = shutil.which("unity-editor")
    if onpath is not None:
        return onpath

    raise ConfigurationError(f"Couldn't find Unity {version}; pass --editor or set UNITY_EDITOR")

class UnityEditor:
    def __init__(self, editor: str, project: pathlib.Path):
        self.editor = editor
        self.project = pathlib.Path(project).resolve()

    def command(self, arguments: List[str]) -> List[str]:
        return [
            self.editor,
            "-batchmode",
            "-quit",
            "-nographics",
            "-projectPath", str(self.project),
            "-logFile", "-", # straight to stdout so CI sees it
        ] + arguments

    def run(self, arguments: List[str]) -> int:
        command = self.command(arguments)
        logger.debug(f"EDITOR: {' '.join(command)}")
        try:
            return subprocess.call(command, cwd = str(self.project))
        except OSError as e:
            raise ConfigurationError(f"Couldn't launch the editor at {self.editor}: {e}")

    def work_dir(self) -> pathlib.Path:
        path = self.project / WORK_DIR
        path.mkdir(parents = True, exist_ok = True)
        return path

class UnityPlatformSwitcher:
    def __init__(self, editor: UnityEditor):
        self.editor = editor

    def switch(self, target: BuildTarget) -> None:
        logger.info(f"EDITOR: switching to build target {target.name}")
        code = self.editor.run(["-buildTarget", target.name])
        if code != 0:
            raise PlatformSwitchError(f"Failed to switch to build target {target.name} (editor exited with {code})")
        logger.info(f"EDITOR: switched to build target {target.name}")

class UnityPlayerPipeline:
    def __init__(self, editor: UnityEditor, method: str = BUILD_PLAYER_METHOD):
        self.editor = editor
        self.method = method

    def build(self, invocation: BuildInvocation) -> BuildReport:
        workdir = self.editor.work_dir()
        invocation_file = workdir / "invocation.json"
        report_file = workdir / "report.json"

        # a report left over from a previous run would look like a result from this one
        if report_file.exists():
            report_file.unlink()

        with open(invocation_file, "w") as f:
            json.dump(invocation.to_dict(), f, indent = 4)

        try:
            code = self.editor.run([
                "-buildTarget", invocation.target.name,
                "-executeMethod", self.method,
                "-invocationFile", str(invocation_file),
                "-reportFile", str(report_file),
            ])
        finally:
            # the invocation can hold keystore passwords, don't leave it lying around
            invocation_file.unlink()

        if not report_file.is_file():
            raise PipelineError(f"Editor exited with {code} without writing a build report")

        with open(report_file, "r") as f:
            try:
                report = BuildReport.from_dict(json.load(f))
            except json.JSONDecodeError as e:
                raise PipelineError(f"Build report {report_file} isn't valid JSON: {e}")

        if code != 0 and report.succeeded:
            logger.warning(f"BUILD: report says Succeeded but the editor exited with {code}; treating as failed")
            report.result = BuildResult.Failed

        report.details["exitCode"] = code
        return report

def check_addressables_info(info) -> Dict:
    if not isinstance(info, dict):
        raise PipelineError(f"Addressables result should be a JSON object, got {type(info).__name__}")

    remote = info.get("remoteCatalogBuildPath")
    if remote is not None and not isinstance(remote, str):
        raise PipelineError(f"remoteCatalogBuildPath should be a string, got {type(remote).__name__}")

    variables = info.get("profileVariables")
    if variables is None:
        variables = {}
    if not isinstance(variables, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in variables.items()):
        raise PipelineError("profileVariables should map names to string values")

    return {"remoteCatalogBuildPath": remote, "profileVariables": variables}

class UnityAddressablesPipeline:
    info = None

    def __init__(self, editor: UnityEditor, target: BuildTarget, method: str = BUILD_ADDRESSABLES_METHOD):
        self.editor = editor
        self.target = target
        self.method = method
        self.info = {}

    def clean_and_build(self) -> None:
        result_file = self.editor.work_dir() / "addressables.json"
        if result_file.exists():
            result_file.unlink()

        code = self.editor.run([
            "-buildTarget", self.target.name,
            "-executeMethod", self.method,
            "-addressablesFile", str(result_file),
        ])
        if code != 0:
            raise PipelineError(f"Addressables build exited with {code}")

        if not result_file.is_file():
            raise PipelineError("Addressables build didn't report its output paths")

        with open(result_file, "r") as f:
            try:
                info = json.load(f)
            except json.JSONDecodeError as e:
                raise PipelineError(f"Addressables result {result_file} isn't valid JSON: {e}")

        self.info = check_addressables_info(info)

    def remote_catalog_build_path(self) -> Optional[str]:
        return self.info.get("remoteCatalogBuildPath") or None

    def profile_variables(self) -> Dict[str, str]:
        return dict(self.info.get("profileVariables") or {})
