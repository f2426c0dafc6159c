
import dataclasses
import datetime
import logging
import pathlib

from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from forge.platforms import BuildTarget
from forge.platforms import PlatformSettings
from forge.ports import PlayerSettingsStore

logger = logging.getLogger(__name__)

FOLDER_DEVELOPMENT = "Development"
FOLDER_QA = "QA"
FOLDER_RELEASE = "Release"

@dataclasses.dataclass
class BuildInvocation:
    """Everything the player build needs, in the shape the editor-side method reads it."""
    target: BuildTarget
    scenes: List[str]
    development: bool
    location_path_name: str
    extra: Dict[str, Any] = dataclasses.field(default_factory = dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "scenes": list(self.scenes),
            "development": self.development,
            "locationPathName": self.location_path_name,
            "extra": dict(self.extra),
        }

@dataclasses.dataclass(frozen = True)
class BuildParameters:
    build_target: BuildTarget
    build_version: str
    build_output_path: str
    product_name: str
    build_suffix: str = ""
    build_identifier: str = ""
    is_development_build: bool = False
    debug_mode: bool = False
    generate_addressables: bool = False
    save_build_report: bool = False
    platform_settings: Optional[PlatformSettings] = None

    def tier(self) -> str:
        # development wins over debug
        if self.is_development_build:
            return FOLDER_DEVELOPMENT
        if self.debug_mode:
            return FOLDER_QA
        return FOLDER_RELEASE

    def get_build_name(self, include_extension: bool) -> str:
        product = self.product_name.replace(" ", "")
        suffix = f"_{self.build_suffix}" if self.build_suffix else ""
        development = "_DEVELOPMENT" if self.is_development_build else ""
        identifier = f"_{self.build_identifier}" if self.build_identifier else ""

        name = f"{product}_v{self.build_version}{suffix}{development}{identifier}"

        if include_extension and self.platform_settings is not None:
            name += self.platform_settings.get_extension()

        return name

    def get_build_directory(self) -> pathlib.Path:
        directory = pathlib.Path(self.build_output_path) / self.tier() / self.get_build_name(False)

        if not directory.is_dir():
            directory.mkdir(parents = True, exist_ok = True)
            logger.info(f"BUILD: created build directory {directory}")

        return directory

    def get_build_options(self, scenes: List[str]) -> BuildInvocation:
        invocation = BuildInvocation(
            target = self.build_target,
            scenes = list(scenes),
            development = self.is_development_build,
            location_path_name = str(self.get_build_directory() / self.get_build_name(True)))

        if self.platform_settings is not None:
            self.platform_settings.apply_to(invocation)

        return invocation

    def apply_platform_modifiers(self, store: PlayerSettingsStore) -> None:
        if self.platform_settings is not None:
            self.platform_settings.apply_platform_modifiers(store)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "build_target": self.build_target.name,
            "build_version": self.build_version,
            "build_suffix": self.build_suffix,
            "generate_addressables": self.generate_addressables,
            "is_development_build": self.is_development_build,
            "build_output_path": self.build_output_path,
            "build_identifier": self.build_identifier,
            "platform_settings": None if self.platform_settings is None else self.platform_settings.to_dict(),
            "save_build_report": self.save_build_report,
            "debug_mode": self.debug_mode,
            "product_name": self.product_name,
        }

    def __str__(self) -> str:
        return "\n".join([
            "Build Parameters:",
            f"  - Game: {self.product_name}",
            f"  - Version: {self.build_version}",
            f"  - Target: {self.build_target.name}",
            f"  - Suffix: {self.build_suffix}",
            f"  - Output Path: {self.build_output_path}",
            f"  - Development: {self.is_development_build}",
            f"  - Debug: {self.debug_mode}",
            f"  - Addressables: {self.generate_addressables}",
        ])

def local_identifier(now: Optional[datetime.datetime] = None) -> str:
    """Identifier for builds made from a workstation: `local` plus the unix time in seconds."""
    if now is None:
        now = datetime.datetime.now(datetime.timezone.utc)

    return f"local{max(0, int(now.timestamp()))}"
