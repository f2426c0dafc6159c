
import argparse
import dataclasses
import logging
import os
import pathlib
import sys

from typing import List
from typing import Optional

import psutil

from forge.args import CommandLineArguments
from forge.container import ContainerEditor
from forge.container import ensure_image
from forge.container import image_for
from forge.credentials import DEFAULT_CREDENTIALS_PATH
from forge.credentials import load_signing_credentials
from forge.engine import BuildEngine
from forge.errors import BuilderError
from forge.errors import ConfigurationError
from forge.notify import BatchNotifier
from forge.notify import ConsoleNotifier
from forge.parameters import BuildParameters
from forge.parameters import local_identifier
from forge.platforms import AndroidSettings
from forge.platforms import PlatformSettings
from forge.platforms import BuildTarget
from forge.platforms import parse_architecture
from forge.platforms import parse_build_target
from forge.platforms import settings_for
from forge.presets import PRESETS
from forge.presets import apply_preset
from forge.presets import preset_platform_settings
from forge.project_settings import EditorBuildSettingsScenes
from forge.project_settings import ProjectSettingsStore
from forge.project_settings import read_editor_version
from forge.ports import PlatformSwitcher
from forge.ports import PlayerSettingsStore
from forge.prof import Profiler
from forge.unity import UnityAddressablesPipeline
from forge.unity import UnityEditor
from forge.unity import UnityPlatformSwitcher
from forge.unity import UnityPlayerPipeline
from forge.unity import find_editor

logger = logging.getLogger("playerforge")

# Custom build flags. These go after our own options, Unity-style, with a single dash: `-buildVersion 1.2.0` or `-buildVersion=1.2.0`.
BUILD_TARGET = "buildTarget"
BUILD_VERSION = "buildVersion" # version shown on the device
BUILD_SUFFIX = "buildSuffix" # differentiator appended to the build name
BUILD_COMMIT_HASH = "commitHash" # commit the build was made from
BUILD_ID = "buildId" # CI job number, used when there's no commit hash
BUILD_OUTPUT_PATH = "buildOutputPath"
GENERATE_ADDRESSABLES = "generateAddressables"
DEVELOPMENT_BUILD = "developmentBuild"
DEBUG_MODE = "debugMode"
SAVE_BUILD_REPORT = "saveBuildReport"
BUILD_APP_BUNDLE = "buildAppBundle"
TARGET_ARCHITECTURES = "targetArchitectures"

def flag(args: CommandLineArguments, key: str, default: bool) -> bool:
    if key in args:
        return args.get_bool(key)
    return default

def android_settings(args: CommandLineArguments, settings: AndroidSettings) -> AndroidSettings:
    architecture = settings.target_architectures
    if args.get(TARGET_ARCHITECTURES):
        architecture = parse_architecture(args.get(TARGET_ARCHITECTURES))

    return AndroidSettings(
        target_architectures = architecture,
        generate_aab = flag(args, BUILD_APP_BUNDLE, settings.generate_aab))

def with_signing(settings: Optional[PlatformSettings], credentials: Optional[str]) -> Optional[PlatformSettings]:
    if isinstance(settings, AndroidSettings) and settings.generate_aab and settings.signing is None:
        settings = dataclasses.replace(settings, signing = load_signing_credentials(credentials))
    return settings

def resolve_platform_settings(args: CommandLineArguments, target: BuildTarget, preset: Optional[str], credentials: Optional[str]) -> Optional[PlatformSettings]:
    """Everything platform-specific that the command line alone decides, signing included."""
    settings = settings_for(target)
    if isinstance(settings, AndroidSettings):
        settings = android_settings(args, settings)

    if preset is not None:
        settings = preset_platform_settings(preset, settings)

    return with_signing(settings, credentials)

def output_path(args: CommandLineArguments, project: pathlib.Path, interactive: bool) -> str:
    output = args.get(BUILD_OUTPUT_PATH)
    if output:
        return output

    # interactive builds land on the desktop, like the editor panel does it
    if interactive:
        output = str(pathlib.Path.home() / "Desktop" / "Builds")
    else:
        output = str(project / "Builds")
    logger.info(f"BUILD: no {BUILD_OUTPUT_PATH} provided, using default: {output}")
    return output

def batch_parameters(args: CommandLineArguments, target: BuildTarget, store: PlayerSettingsStore, output: str, platform_settings: Optional[PlatformSettings]) -> BuildParameters:
    version = args.get(BUILD_VERSION)
    if not version:
        version = store.get_bundle_version()
        logger.info(f"BUILD: no {BUILD_VERSION} provided, keeping the project's: {version}")

    return BuildParameters(
        build_target = target,
        build_version = version,
        build_output_path = output,
        product_name = store.get_product_name(),
        build_suffix = args.get(BUILD_SUFFIX),
        build_identifier = args.get(BUILD_COMMIT_HASH) or args.get(BUILD_ID),
        is_development_build = args.get_bool(DEVELOPMENT_BUILD),
        debug_mode = args.get_bool(DEBUG_MODE),
        generate_addressables = args.get_bool(GENERATE_ADDRESSABLES),
        save_build_report = args.get_bool(SAVE_BUILD_REPORT),
        platform_settings = platform_settings)

def interactive_parameters(args: CommandLineArguments, target: BuildTarget, store: PlayerSettingsStore, output: str, platform_settings: Optional[PlatformSettings], preset: Optional[str]) -> BuildParameters:
    # Same defaults as the editor panel: debug build with addressables
    parameters = BuildParameters(
        build_target = target,
        build_version = args.get(BUILD_VERSION) or store.get_bundle_version(),
        build_output_path = output,
        product_name = store.get_product_name(),
        build_suffix = args.get(BUILD_SUFFIX),
        build_identifier = local_identifier(),
        is_development_build = flag(args, DEVELOPMENT_BUILD, False),
        debug_mode = flag(args, DEBUG_MODE, True),
        generate_addressables = flag(args, GENERATE_ADDRESSABLES, True),
        save_build_report = flag(args, SAVE_BUILD_REPORT, False),
        platform_settings = platform_settings)

    if preset is not None:
        parameters = apply_preset(preset, parameters)

    return parameters

def prepare_output(path: str) -> None:
    output = pathlib.Path(path)
    try:
        output.mkdir(parents = True, exist_ok = True)
    except OSError as e:
        raise ConfigurationError(f"Can't create output directory {output}: {e}")

    if not os.access(output, os.W_OK):
        raise ConfigurationError(f"Output directory {output} isn't writable")

    free = psutil.disk_usage(str(output)).free / (1 << 30)
    logger.info(f"BUILD: {free:0.1f}GB free at {output}")

def confirm(parameters: BuildParameters, store: PlayerSettingsStore) -> bool:
    print(parameters)
    if parameters.platform_settings is not None:
        for line in parameters.platform_settings.on_gui(store):
            print(line)
    return input("Generate build? [Y/n] ").strip().lower() in ("", "y", "yes")

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog = "PlayerForge",
        allow_abbrev = False,
        epilog = "Anything not listed here is read as a Unity-style build flag, e.g. `-buildTarget Android -buildVersion 1.2.0 -developmentBuild true`.")

    editor = parser.add_argument_group('editor configuration')
    editor.add_argument("--project", help="Unity project to build (defaults to the current directory)", default=".")
    editor.add_argument("--editor", help="Path to the Unity editor binary (defaults to $UNITY_EDITOR, then the Unity Hub install)")

    container = parser.add_argument_group('container configuration')
    container.add_argument("--docker", help="Run the editor inside a unityci/editor container", action="store_true")
    container.add_argument("--docker_image", help="Override the editor image")
    container.add_argument("--memory", help="Maximum memory for the container (in gigabytes)", type=int)

    parser.add_argument("--credentials", help=f"Signing credentials JSON (default {DEFAULT_CREDENTIALS_PATH})")
    parser.add_argument("--interactive", help="Workstation build: editor-panel defaults, confirmation, offer to open the output", action="store_true")
    parser.add_argument("--preset", help="Preset applied in interactive mode", choices=sorted(PRESETS))
    parser.add_argument("--verbose", help="Log the full editor command lines", action="store_true")

    options, build_args = parser.parse_known_args(argv)

    logging.basicConfig(
        level = logging.DEBUG if options.verbose else logging.INFO,
        format = "%(message)s")

    try:
        return build(options, build_args)
    except BuilderError as e:
        logger.error(f"FAILED: {e}")
        return 1

def build(options: argparse.Namespace, build_args: List[str]) -> int:
    if options.preset and not options.interactive:
        raise ConfigurationError("--preset only applies to --interactive builds")

    project = pathlib.Path(options.project).resolve()
    args = CommandLineArguments(" ".join(build_args))

    logger.info(f"BUILD: full command line: {' '.join(build_args)}")
    logger.info(f"BUILD: parsed arguments: {args}")

    # The target comes from our own -buildTarget flag; the editor gets switched to match.
    target_name = args.get(BUILD_TARGET)
    if not target_name:
        if not options.interactive:
            raise ConfigurationError(f"{BUILD_TARGET} argument is missing or empty")
        target_name = BuildTarget.Android.name
        logger.info(f"BUILD: no {BUILD_TARGET} provided, interactive builds default to {target_name}")
    target = parse_build_target(target_name)
    logger.info(f"BUILD: build target parsed: {target.name}")

    # Anything that can be wrong with the configuration has to surface before the editor touches the project.
    platform_settings = resolve_platform_settings(args, target, options.preset, options.credentials)
    output = output_path(args, project, options.interactive)
    prepare_output(output)

    if options.docker:
        image = options.docker_image or image_for(read_editor_version(project), target)
        ensure_image(image)
        unity = ContainerEditor(image, project, mounts = [output], memory_limit = options.memory)
    else:
        unity = UnityEditor(find_editor(project, options.editor), project)

    run = Profiler("playerforge")

    switcher: PlatformSwitcher = UnityPlatformSwitcher(unity)
    with run.context("switch platform"):
        switcher.switch(target)

    # Load settings only after the switch; the editor is free to reserialize them while it has the project open
    store = ProjectSettingsStore(project)

    if options.interactive:
        parameters = interactive_parameters(args, target, store, output, platform_settings, options.preset)
    else:
        parameters = batch_parameters(args, target, store, output, platform_settings)

    if options.interactive and not confirm(parameters, store):
        logger.info("BUILD: cancelled")
        return 1

    engine = BuildEngine(
        store = store,
        scenes = EditorBuildSettingsScenes(project),
        player = UnityPlayerPipeline(unity),
        addressables = UnityAddressablesPipeline(unity, target),
        notifier = ConsoleNotifier() if options.interactive else BatchNotifier(),
        project_root = project,
        batch_mode = not options.interactive)

    with run.context("build"):
        outcome = engine.generate_build(parameters)
    run.finish()

    if not outcome.succeeded:
        logger.error(f"FAILED: build {outcome.report.result.name}, see {outcome.build_directory}")
        return 1

    logger.info(f"SUCCESS! {outcome.location}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
