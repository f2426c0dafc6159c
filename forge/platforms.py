
import dataclasses
import enum
import logging
import re

from typing import Dict
from typing import List
from typing import Optional
from typing import Union

from forge.credentials import SigningCredentials
from forge.errors import ConfigurationError
from forge.ports import PlayerSettingsStore

logger = logging.getLogger(__name__)

class BuildTarget(enum.Enum):
    # values match Unity's BuildTarget names so they can go straight onto the editor command line
    Android = "Android"
    iOS = "iOS"
    StandaloneWindows64 = "StandaloneWindows64"
    StandaloneOSX = "StandaloneOSX"
    StandaloneLinux64 = "StandaloneLinux64"
    WebGL = "WebGL"

# BuildTargetGroup names, which is how ProjectSettings.asset keys the define symbols
DEFINE_GROUPS = {
    BuildTarget.Android: "Android",
    BuildTarget.iOS: "iPhone",
    BuildTarget.StandaloneWindows64: "Standalone",
    BuildTarget.StandaloneOSX: "Standalone",
    BuildTarget.StandaloneLinux64: "Standalone",
    BuildTarget.WebGL: "WebGL",
}

def parse_build_target(name: str) -> BuildTarget:
    for target in BuildTarget:
        if target.name.lower() == name.strip().lower():
            return target

    raise ConfigurationError(f"Error parsing build target. Value provided: '{name}' (valid: {', '.join(t.name for t in BuildTarget)})")

def define_group(target: BuildTarget) -> str:
    return DEFINE_GROUPS[target]

class AndroidArchitecture(enum.Enum):
    ARMv7 = 1
    ARM64 = 2
    X86_64 = 8
    All = 0xFFFFFFFF

def parse_architecture(name: str) -> AndroidArchitecture:
    for arch in AndroidArchitecture:
        if arch.name.lower() == name.strip().lower():
            return arch

    raise ConfigurationError(f"Unknown Android architecture '{name}' (valid: {', '.join(a.name for a in AndroidArchitecture)})")

def version_code(version: str) -> int:
    """Android's integer version code, e.g. "1.2.3" -> 1230 and "10.0" -> 1000."""
    digits = re.sub(r"[^0-9.]", "", version).replace(".", "")
    return int(digits.ljust(4, "0"))

@dataclasses.dataclass(frozen = True)
class AndroidSettings:
    target_architectures: AndroidArchitecture = AndroidArchitecture.ARM64
    generate_aab: bool = False
    signing: Optional[SigningCredentials] = dataclasses.field(default = None, repr = False, compare = False)

    def on_gui(self, store: PlayerSettingsStore) -> List[str]:
        return [
            "Android Settings",
            f"  Target Architectures: {self.target_architectures.name}",
            f"  Generate AAB: {self.generate_aab}",
            f"  Version Code: {version_code(store.get_bundle_version())}",
        ]

    def apply_to(self, invocation) -> None:
        invocation.extra["buildAppBundle"] = self.generate_aab
        if self.generate_aab and self.signing is not None:
            # the passwords only ever live in the invocation handed to the editor, never in ProjectSettings
            invocation.extra["keystorePass"] = self.signing.keystore_pass
            invocation.extra["keyaliasPass"] = self.signing.keyalias_pass

    def apply_platform_modifiers(self, store: PlayerSettingsStore) -> None:
        store.set_toggle("AndroidTargetArchitectures", self.target_architectures.value)
        store.set_toggle("buildAppBundle", self.generate_aab)
        store.set_toggle("AndroidBundleVersionCode", version_code(store.get_bundle_version()))
        store.set_toggle("androidUseCustomKeystore", self.generate_aab)

        if self.generate_aab:
            if self.signing is None:
                raise ConfigurationError("Generating an AAB requires signing credentials")

            store.set_toggle("AndroidKeystoreName", self.signing.keystore_name)
            store.set_toggle("AndroidKeyaliasName", self.signing.keyalias_name)

    def get_extension(self) -> str:
        return ".aab" if self.generate_aab else ".apk"

    def to_dict(self) -> Dict:
        return {
            "target_architectures": self.target_architectures.name,
            "generate_aab": self.generate_aab,
        }

@dataclasses.dataclass(frozen = True)
class IosSettings:
    # Signing and export happen in Xcode, outside of us

    def on_gui(self, store: PlayerSettingsStore) -> List[str]:
        return ["iOS Settings"]

    def apply_to(self, invocation) -> None:
        pass

    def apply_platform_modifiers(self, store: PlayerSettingsStore) -> None:
        pass

    def get_extension(self) -> str:
        return ".ipa"

    def to_dict(self) -> Dict:
        return {}

PlatformSettings = Union[AndroidSettings, IosSettings]

def settings_for(target: BuildTarget) -> Optional[PlatformSettings]:
    if target == BuildTarget.Android:
        return AndroidSettings()
    if target == BuildTarget.iOS:
        return IosSettings()

    logger.warning(f"PLATFORM: no platform-specific settings for {target.name}")
    return None
