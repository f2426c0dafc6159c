
# The engine only talks to the outside world through these. The Unity-backed versions live in
# forge/unity.py and forge/project_settings.py; tests swap in in-memory ones.

import dataclasses
import enum

from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Protocol
from typing import runtime_checkable

from forge.errors import PipelineError

class BuildResult(enum.Enum):
    Unknown = "Unknown"
    Succeeded = "Succeeded"
    Failed = "Failed"
    Cancelled = "Cancelled"

@dataclasses.dataclass
class BuildReport:
    result: BuildResult
    details: Dict[str, Any] = dataclasses.field(default_factory = dict)

    @property
    def succeeded(self) -> bool:
        return self.result == BuildResult.Succeeded

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.details)
        data["summary"] = dict(data.get("summary", {}), result = self.result.name)
        return data

    @staticmethod
    def from_dict(data: Any) -> "BuildReport":
        # the editor side writes {"summary": {"result": "Succeeded", ...}, ...}
        if not isinstance(data, dict):
            raise PipelineError(f"Build report should be a JSON object, got {type(data).__name__}")

        summary = data.get("summary", {})
        if not isinstance(summary, dict):
            raise PipelineError(f"Build report summary should be a JSON object, got {type(summary).__name__}")

        name = str(summary.get("result", "Unknown"))
        try:
            result = BuildResult[name]
        except KeyError:
            result = BuildResult.Unknown
        return BuildReport(result = result, details = data)

@runtime_checkable
class PlayerSettingsStore(Protocol):
    def get_product_name(self) -> str: ...
    def get_bundle_version(self) -> str: ...
    def set_bundle_version(self, version: str) -> None: ...
    def get_define_symbols(self, group: str) -> List[str]: ...
    def set_define_symbols(self, group: str, symbols: List[str]) -> None: ...
    def get_toggle(self, key: str) -> Optional[str]: ...
    def set_toggle(self, key: str, value: Any) -> None: ...

@runtime_checkable
class SceneProvider(Protocol):
    def get_scenes(self) -> List[str]: ...

@runtime_checkable
class PlayerPipeline(Protocol):
    def build(self, invocation) -> BuildReport: ...

@runtime_checkable
class AddressablesPipeline(Protocol):
    def clean_and_build(self) -> None: ...
    def remote_catalog_build_path(self) -> Optional[str]: ...
    def profile_variables(self) -> Dict[str, str]: ...

@runtime_checkable
class PlatformSwitcher(Protocol):
    def switch(self, target) -> None: ...

@runtime_checkable
class Notifier(Protocol):
    def build_succeeded(self, location: str) -> None: ...
