
import dataclasses
import enum
import json
import logging
import pathlib

from typing import Any
from typing import Callable
from typing import Dict
from typing import Iterator
from typing import Optional
from typing import Tuple

from forge.errors import BuilderError
from forge.errors import DegradedStepWarning
from forge.errors import PersistenceWarning
from forge.errors import PipelineError
from forge.fileops import replace_tree
from forge.parameters import BuildInvocation
from forge.parameters import BuildParameters
from forge.platforms import define_group
from forge.ports import AddressablesPipeline
from forge.ports import BuildReport
from forge.ports import BuildResult
from forge.ports import Notifier
from forge.ports import PlayerPipeline
from forge.ports import PlayerSettingsStore
from forge.ports import SceneProvider
from forge.prof import ProfBlock
from forge.prof import Profiler

logger = logging.getLogger(__name__)

DEBUG_MODE_SYMBOL = "DEBUG_MODE"

FOLDER_ADDRESSABLES = "ServerData"
BUILD_REPORT_FILE = "BuildReport.json"
BUILD_PARAMETERS_FILE = "BuildParameters.json"

class StepStatus(enum.Enum):
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    DEGRADED = "degraded"
    FAILED = "failed"

@dataclasses.dataclass
class StepResult:
    status: StepStatus
    detail: str = ""
    value: Any = None
    warning: Optional[Warning] = None
    elapsed: float = 0.0

def succeeded(detail: str = "", value: Any = None) -> StepResult:
    return StepResult(StepStatus.SUCCEEDED, detail, value)

def skipped(detail: str) -> StepResult:
    return StepResult(StepStatus.SKIPPED, detail)

def degraded(detail: str) -> StepResult:
    logger.warning(detail)
    return StepResult(StepStatus.DEGRADED, detail, warning = DegradedStepWarning(detail))

def failed(detail: str) -> StepResult:
    logger.error(detail)
    return StepResult(StepStatus.FAILED, detail, warning = PersistenceWarning(detail))

@dataclasses.dataclass
class BuildOutcome:
    report: BuildReport
    build_directory: pathlib.Path
    location: str
    steps: Dict[str, StepResult]
    timings: ProfBlock

    @property
    def succeeded(self) -> bool:
        return self.report.succeeded

class BuildEngine:
    """Runs one build from start to end.

    Steps run strictly in order. Anything that goes wrong before the player build is fatal and propagates;
    the optional steps afterwards (and Addressables before it) report through StepResult instead.
    Each call gets its own timing tree, returned on the outcome.
    """

    def __init__(self,
            store: PlayerSettingsStore,
            scenes: SceneProvider,
            player: PlayerPipeline,
            addressables: Optional[AddressablesPipeline] = None,
            notifier: Optional[Notifier] = None,
            project_root = ".",
            batch_mode: bool = True):
        self.store = store
        self.scenes = scenes
        self.player = player
        self.addressables = addressables
        self.notifier = notifier
        self.project_root = pathlib.Path(project_root)
        self.batch_mode = batch_mode

    def generate_build(self, parameters: BuildParameters) -> BuildOutcome:
        profiler = Profiler("generate_build")
        steps = {}

        def step(name: str, run: Callable[[], StepResult]) -> StepResult:
            with profiler.context(name) as block:
                result = run()
            result.elapsed = block.elapsed
            steps[name] = result
            return result

        with profiler.context("prepare"):
            self.store.set_bundle_version(parameters.build_version)
            invocation = parameters.get_build_options(self.scenes.get_scenes())

            self.apply_define_symbols(parameters)

        logger.info(str(parameters))

        if parameters.platform_settings is not None:
            logger.info(f"BUILD: applying settings of type {type(parameters.platform_settings).__name__}")
        with profiler.context("platform modifiers"):
            parameters.apply_platform_modifiers(self.store)

        if parameters.generate_addressables:
            step("addressables", self.generate_addressables)
        else:
            steps["addressables"] = skipped("Addressables not requested")

        report = step("player", lambda: self.build_player(invocation)).value

        addressables_path = steps["addressables"].value
        if addressables_path and report.succeeded:
            step("relocate", lambda: self.copy_addressables_to_build_output(addressables_path, parameters))
        else:
            steps["relocate"] = skipped("Nothing to relocate")

        if parameters.save_build_report:
            step("report", lambda: self.save_build_report(report, parameters))
        else:
            steps["report"] = skipped("Build report not requested")

        logger.info(f"BUILD: status {report.result.name}")
        step("parameters", lambda: self.save_parameters(parameters))

        if not self.batch_mode and report.succeeded and self.notifier is not None:
            step("notify", lambda: self.notify(invocation.location_path_name))
        else:
            steps["notify"] = skipped("Unattended or unsuccessful build")

        return BuildOutcome(
            report = report,
            build_directory = parameters.get_build_directory(),
            location = invocation.location_path_name,
            steps = steps,
            timings = profiler.finish())

    def apply_define_symbols(self, parameters: BuildParameters) -> None:
        group = define_group(parameters.build_target)

        # read-modify-write; whatever else the project defines has to survive
        symbols = [s for s in self.store.get_define_symbols(group) if s]
        if parameters.debug_mode:
            if DEBUG_MODE_SYMBOL not in symbols:
                symbols.append(DEBUG_MODE_SYMBOL)
        else:
            symbols = [s for s in symbols if s != DEBUG_MODE_SYMBOL]

        logger.info(f"BUILD: defined symbols: {','.join(symbols)}")
        self.store.set_define_symbols(group, symbols)

    def generate_addressables(self) -> StepResult:
        if self.addressables is None:
            return degraded("ADDRESSABLES: no Addressables pipeline available, continuing without")

        logger.info("ADDRESSABLES: generating")
        try:
            self.addressables.clean_and_build()

            for source, candidate in self.addressables_candidates():
                if not candidate:
                    continue

                path = pathlib.Path(candidate)
                if not path.is_absolute():
                    path = self.project_root / path

                if path.is_dir():
                    logger.info(f"ADDRESSABLES: generated at {path} (from {source})")
                    return succeeded(source, str(path))

                logger.info(f"ADDRESSABLES: {source} {path} is missing, trying the next one")
        except (BuilderError, OSError) as e:
            return degraded(f"ADDRESSABLES: error generating: {e}")

        return degraded("ADDRESSABLES: output path not found, continuing without")

    def addressables_candidates(self) -> Iterator[Tuple[str, Optional[str]]]:
        yield "remote catalog build path", self.addressables.remote_catalog_build_path()

        variables = self.addressables.profile_variables()
        if "BuildPath" in variables:
            yield "profile BuildPath", variables["BuildPath"]

        yield "default", str(self.project_root / FOLDER_ADDRESSABLES)

    def build_player(self, invocation: BuildInvocation) -> StepResult:
        """Always carries a BuildReport as its value; a pipeline error becomes a Failed report."""
        logger.info("BUILD: building player")
        try:
            report = self.player.build(invocation)
        except PipelineError as e:
            logger.error(f"BUILD: player build failed: {e}")
            report = BuildReport(result = BuildResult.Failed, details = {"error": str(e)})

        if report.succeeded:
            return succeeded(report.result.name, report)
        return StepResult(StepStatus.FAILED, report.result.name, report)

    def notify(self, location: str) -> StepResult:
        self.notifier.build_succeeded(location)
        return succeeded(value = location)

    def copy_addressables_to_build_output(self, addressables_path: str, parameters: BuildParameters) -> StepResult:
        try:
            target = parameters.get_build_directory() / FOLDER_ADDRESSABLES
            failures = replace_tree(pathlib.Path(addressables_path), target)
        except OSError as e:
            return degraded(f"ADDRESSABLES: error copying: {e}")

        if failures:
            return degraded(f"ADDRESSABLES: copied to {target} with {len(failures)} failures")

        logger.info(f"ADDRESSABLES: copied to {target}")
        return succeeded(value = str(target))

    def save_build_report(self, report: BuildReport, parameters: BuildParameters) -> StepResult:
        return self.write_json(BUILD_REPORT_FILE, report.to_dict(), parameters)

    def save_parameters(self, parameters: BuildParameters) -> StepResult:
        return self.write_json(BUILD_PARAMETERS_FILE, parameters.to_dict(), parameters)

    def write_json(self, filename: str, data: Dict[str, Any], parameters: BuildParameters) -> StepResult:
        try:
            path = parameters.get_build_directory() / filename
            with open(path, "w") as f:
                json.dump(data, f, indent = 4)
        except (OSError, TypeError) as e:
            return failed(f"BUILD: couldn't write {filename}: {e}")

        return succeeded(value = str(path))
