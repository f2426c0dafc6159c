
import logging
import pathlib
import re

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

import yaml

from forge.errors import ConfigurationError

logger = logging.getLogger(__name__)

PROJECT_SETTINGS = "ProjectSettings/ProjectSettings.asset"
EDITOR_BUILD_SETTINGS = "ProjectSettings/EditorBuildSettings.asset"
PROJECT_VERSION = "ProjectSettings/ProjectVersion.txt"

# Unity's YAML is mostly plain YAML 1.1 with a custom tag directive on top.
# We keep every scalar as a string, otherwise `bundleVersion: 1.10` turns into the float 1.1.
class UnityLoader(yaml.SafeLoader):
    pass

UnityLoader.yaml_implicit_resolvers = {}

class UnityDumper(yaml.SafeDumper):
    pass

UnityDumper.yaml_implicit_resolvers = {}

def split_unity_yaml(text: str):
    """Returns (header, body); the header is everything up to and including the `--- !u!` document marker."""
    lines = text.splitlines(keepends = True)
    for index, line in enumerate(lines):
        if line.startswith("--- "):
            return "".join(lines[:index + 1]), "".join(lines[index + 1:])

    raise ConfigurationError("Not a Unity YAML asset (no document marker)")

def load_unity_yaml(path: pathlib.Path):
    with open(path, "r", encoding = "utf-8") as f:
        header, body = split_unity_yaml(f.read())

    return header, yaml.load(body, Loader = UnityLoader)

def dump_unity_yaml(path: pathlib.Path, header: str, data: Dict) -> None:
    body = yaml.dump(data, Dumper = UnityDumper, sort_keys = False, default_flow_style = False, allow_unicode = True, width = 4096)
    with open(path, "w", encoding = "utf-8") as f:
        f.write(header + body)

def unity_scalar(value: Any) -> str:
    # Unity stores booleans as 0/1
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)

class ProjectSettingsStore:
    """PlayerSettings, backed by ProjectSettings.asset. Every set writes straight through to disk."""

    def __init__(self, project: pathlib.Path):
        self.path = pathlib.Path(project) / PROJECT_SETTINGS
        if not self.path.is_file():
            raise ConfigurationError(f"Can't find {self.path}; is this a Unity project?")

        self.header, document = load_unity_yaml(self.path)
        if not isinstance(document, dict) or "PlayerSettings" not in document:
            raise ConfigurationError(f"{self.path} has no PlayerSettings block")

        self.document = document

    @property
    def settings(self) -> Dict[str, Any]:
        return self.document["PlayerSettings"]

    def save(self) -> None:
        dump_unity_yaml(self.path, self.header, self.document)

    def get_product_name(self) -> str:
        return self.settings.get("productName") or ""

    def get_bundle_version(self) -> str:
        return self.settings.get("bundleVersion") or ""

    def set_bundle_version(self, version: str) -> None:
        self.settings["bundleVersion"] = version
        self.save()

    def get_define_symbols(self, group: str) -> List[str]:
        symbols = self.settings.get("scriptingDefineSymbols") or {}
        if not isinstance(symbols, dict):
            return []
        return [s for s in (symbols.get(group) or "").split(";") if s]

    def set_define_symbols(self, group: str, symbols: List[str]) -> None:
        current = self.settings.get("scriptingDefineSymbols")
        if not isinstance(current, dict):
            current = {}
            self.settings["scriptingDefineSymbols"] = current
        current[group] = ";".join(symbols)
        self.save()

    def get_toggle(self, key: str) -> Optional[str]:
        return self.settings.get(key)

    def set_toggle(self, key: str, value: Any) -> None:
        self.settings[key] = unity_scalar(value)
        self.save()

class EditorBuildSettingsScenes:
    def __init__(self, project: pathlib.Path):
        self.path = pathlib.Path(project) / EDITOR_BUILD_SETTINGS

    def get_scenes(self) -> List[str]:
        if not self.path.is_file():
            logger.warning(f"SCENES: {self.path} not found, building with no scenes")
            return []

        _, document = load_unity_yaml(self.path)
        scenes = (document or {}).get("EditorBuildSettings", {}).get("m_Scenes") or []

        return [scene["path"] for scene in scenes if str(scene.get("enabled", "0")) == "1" and scene.get("path")]

def read_editor_version(project: pathlib.Path) -> str:
    path = pathlib.Path(project) / PROJECT_VERSION
    if not path.is_file():
        raise ConfigurationError(f"Can't find {path}; is this a Unity project?")

    match = re.search(r"^m_EditorVersion:\s*(\S+)", path.read_text(encoding = "utf-8"), re.MULTILINE)
    if match is None:
        raise ConfigurationError(f"No m_EditorVersion in {path}")

    return match.group(1)
