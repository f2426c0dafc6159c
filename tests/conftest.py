"""Shared fakes for the build engine's collaborators."""

import pathlib

import pytest

from forge.errors import PipelineError
from forge.ports import BuildReport
from forge.ports import BuildResult

class MemoryStore:
    """PlayerSettings kept in a dict instead of ProjectSettings.asset."""

    def __init__(self, product_name = "Space Miner", bundle_version = "0.9.0", symbols = None):
        self.product_name = product_name
        self.bundle_version = bundle_version
        self.symbols = dict(symbols or {})
        self.toggles = {}

    def get_product_name(self):
        return self.product_name

    def get_bundle_version(self):
        return self.bundle_version

    def set_bundle_version(self, version):
        self.bundle_version = version

    def get_define_symbols(self, group):
        return list(self.symbols.get(group, []))

    def set_define_symbols(self, group, symbols):
        self.symbols[group] = list(symbols)

    def get_toggle(self, key):
        return self.toggles.get(key)

    def set_toggle(self, key, value):
        self.toggles[key] = value

class ListScenes:
    def __init__(self, scenes):
        self.scenes = scenes

    def get_scenes(self):
        return list(self.scenes)

class ScriptedPlayer:
    """Records invocations; writes a fake artifact on success."""

    def __init__(self, result = BuildResult.Succeeded, error = None):
        self.result = result
        self.error = error
        self.invocations = []

    def build(self, invocation):
        self.invocations.append(invocation)
        if self.error is not None:
            raise PipelineError(self.error)
        if self.result == BuildResult.Succeeded:
            pathlib.Path(invocation.location_path_name).write_bytes(b"artifact")
        return BuildReport(result = self.result, details = {"summary": {"totalErrors": 0}})

class ScriptedAddressables:
    def __init__(self, remote = None, variables = None, error = None):
        self.remote = remote
        self.variables = variables or {}
        self.error = error
        self.builds = 0

    def clean_and_build(self):
        self.builds += 1
        if self.error is not None:
            raise PipelineError(self.error)

    def remote_catalog_build_path(self):
        return self.remote

    def profile_variables(self):
        return dict(self.variables)

class RecordingNotifier:
    def __init__(self):
        self.locations = []

    def build_succeeded(self, location):
        self.locations.append(location)

@pytest.fixture
def store():
    return MemoryStore(symbols = {"Android": ["ENABLE_ADS", "DEBUG_MODE", "USE_FIREBASE"]})

@pytest.fixture
def scenes():
    return ListScenes(["Assets/Scenes/Boot.unity", "Assets/Scenes/Mine.unity"])

@pytest.fixture
def player():
    return ScriptedPlayer()

@pytest.fixture
def output_dir(tmp_path):
    output = tmp_path / "Builds"
    output.mkdir()
    return output

@pytest.fixture
def project_dir(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    return project
