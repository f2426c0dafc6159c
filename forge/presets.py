
import dataclasses
import re

from typing import Callable
from typing import Dict
from typing import Optional

from forge.errors import ConfigurationError
from forge.parameters import BuildParameters
from forge.platforms import AndroidArchitecture
from forge.platforms import AndroidSettings
from forge.platforms import PlatformSettings

# Presets are the only thing allowed to rewrite the version. Debug builds get a `99.` prefix and
# development builds `00.` so they can never be mistaken for (or outrank) a store release.

def strip_version(version: str) -> str:
    return re.sub(r"[^0-9.]", "", version)

def strip_prefixes(version: str) -> str:
    return version.replace("99.", "").replace("00.", "")

# Whether each preset ships an app bundle. Signing gets resolved from this before the project is touched.
APP_BUNDLE = {
    "debug": False,
    "development": False,
    "release": True,
}

def android(settings: Optional[PlatformSettings], generate_aab: bool) -> Optional[PlatformSettings]:
    if isinstance(settings, AndroidSettings):
        return dataclasses.replace(settings, target_architectures = AndroidArchitecture.ARM64, generate_aab = generate_aab)
    return settings

def debug_preset(parameters: BuildParameters) -> BuildParameters:
    return dataclasses.replace(parameters,
        build_version = "99." + strip_version(parameters.build_version),
        debug_mode = True,
        generate_addressables = True,
        save_build_report = False,
        platform_settings = android(parameters.platform_settings, APP_BUNDLE["debug"]))

def development_preset(parameters: BuildParameters) -> BuildParameters:
    return dataclasses.replace(parameters,
        build_version = "00." + strip_prefixes(strip_version(parameters.build_version)),
        debug_mode = True,
        is_development_build = True,
        generate_addressables = True,
        save_build_report = False,
        platform_settings = android(parameters.platform_settings, APP_BUNDLE["development"]))

def release_preset(parameters: BuildParameters) -> BuildParameters:
    return dataclasses.replace(parameters,
        build_version = strip_prefixes(parameters.build_version),
        debug_mode = False,
        generate_addressables = True,
        save_build_report = True,
        platform_settings = android(parameters.platform_settings, APP_BUNDLE["release"]))

PRESETS: Dict[str, Callable[[BuildParameters], BuildParameters]] = {
    "debug": debug_preset,
    "development": development_preset,
    "release": release_preset,
}

def preset_key(name: str) -> str:
    key = name.lower()
    if key not in PRESETS:
        raise ConfigurationError(f"Unknown preset '{name}' (valid: {', '.join(PRESETS)})")
    return key

def apply_preset(name: str, parameters: BuildParameters) -> BuildParameters:
    return PRESETS[preset_key(name)](parameters)

def preset_platform_settings(name: str, settings: Optional[PlatformSettings]) -> Optional[PlatformSettings]:
    """The platform half of a preset, which doesn't depend on anything in the project."""
    return android(settings, APP_BUNDLE[preset_key(name)])
