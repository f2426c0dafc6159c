"""End-to-end runs of the command line entry point with a scripted editor."""

import json
import pathlib

import pytest

import playerforge
from forge.engine import BUILD_PARAMETERS_FILE
from forge.engine import FOLDER_ADDRESSABLES
from forge.unity import UnityEditor

from conftest import RecordingNotifier
from test_project_settings import EDITOR_BUILD_SETTINGS
from test_project_settings import PROJECT_SETTINGS

@pytest.fixture
def project(project_dir):
    settings = project_dir / "ProjectSettings"
    settings.mkdir()
    (settings / "ProjectSettings.asset").write_text(PROJECT_SETTINGS)
    (settings / "EditorBuildSettings.asset").write_text(EDITOR_BUILD_SETTINGS)
    (settings / "ProjectVersion.txt").write_text("m_EditorVersion: 2022.3.21f1\n")
    (project_dir / "ServerData" / "Android").mkdir(parents = True)
    (project_dir / "ServerData" / "Android" / "catalog.json").write_text("{}")
    return project_dir

@pytest.fixture
def editor_calls(monkeypatch):
    """Stands in for the Unity editor: switches instantly, builds Addressables and writes a player artifact."""
    calls = []

    def run(self, arguments):
        calls.append(arguments)
        options = dict(zip(arguments[::2], arguments[1::2]))

        if "-addressablesFile" in options:
            with open(options["-addressablesFile"], "w") as f:
                json.dump({"remoteCatalogBuildPath": "ServerData/Android", "profileVariables": {}}, f)

        if "-reportFile" in options:
            with open(options["-invocationFile"]) as f:
                invocation = json.load(f)
            pathlib.Path(invocation["locationPathName"]).write_bytes(b"artifact")
            with open(options["-reportFile"], "w") as f:
                json.dump({"summary": {"result": "Succeeded"}}, f)

        return 0

    monkeypatch.setattr(UnityEditor, "run", run)
    return calls

class TestMain:
    def test_missing_target_fails(self, project, editor_calls):
        assert playerforge.main(["--project", str(project), "--editor", "/opt/unity/Editor/Unity", "-buildVersion", "1.0.0"]) == 1
        assert editor_calls == []

    def test_unknown_target_fails(self, project, editor_calls):
        assert playerforge.main(["--project", str(project), "--editor", "Unity", "-buildTarget", "Dreamcast"]) == 1

    def test_preset_needs_interactive(self, project, editor_calls):
        assert playerforge.main(["--project", str(project), "--editor", "Unity", "--preset", "debug", "-buildTarget", "Android"]) == 1

    def test_batch_build(self, project, output_dir, editor_calls):
        code = playerforge.main([
            "--project", str(project),
            "--editor", "/opt/unity/Editor/Unity",
            "-buildTarget", "Android",
            "-buildVersion=1.0.0",
            "-buildOutputPath", str(output_dir),
            "-debugMode", "true",
            "-generateAddressables", "true",
            "-commitHash", "3fa9c1d",
        ])

        assert code == 0
        assert editor_calls[0] == ["-buildTarget", "Android"]

        build_dir = output_dir / "QA" / "SpaceMiner_v1.0.0_3fa9c1d"
        assert (build_dir / "SpaceMiner_v1.0.0_3fa9c1d.apk").is_file()
        assert (build_dir / FOLDER_ADDRESSABLES / "catalog.json").is_file()

        snapshot = json.loads((build_dir / BUILD_PARAMETERS_FILE).read_text())
        assert snapshot["build_identifier"] == "3fa9c1d"

        settings = (project / "ProjectSettings" / "ProjectSettings.asset").read_text()
        assert "bundleVersion: 1.0.0" in settings
        assert "ENABLE_ADS;USE_FIREBASE;DEBUG_MODE" in settings

    def test_version_falls_back_to_project(self, project, output_dir, editor_calls):
        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "-buildTarget", "Android",
            "-buildOutputPath", str(output_dir),
            "-buildId", "77",
        ])

        assert code == 0
        assert (output_dir / "Release" / "SpaceMiner_v1.10_77" / "SpaceMiner_v1.10_77.apk").is_file()

    def test_app_bundle_without_credentials_fails(self, project, output_dir, editor_calls, tmp_path, monkeypatch):
        for name in ["KEYSTORE_NAME", "KEYSTORE_PASS", "KEYALIAS_NAME", "KEYALIAS_PASS"]:
            monkeypatch.delenv(f"PLAYERFORGE_{name}", raising = False)

        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "--credentials", str(tmp_path / "absent.json"),
            "-buildTarget", "Android",
            "-buildOutputPath", str(output_dir),
            "-buildAppBundle", "true",
        ])

        assert code == 1
        assert editor_calls == []

    def test_bad_architecture_fails_before_switching(self, project, output_dir, editor_calls):
        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "-buildTarget", "Android",
            "-buildOutputPath", str(output_dir),
            "-targetArchitectures", "mips",
        ])

        assert code == 1
        assert editor_calls == []

    def test_wrong_shaped_report_still_writes_snapshot(self, project, output_dir, editor_calls, monkeypatch):
        def run(self, arguments):
            options = dict(zip(arguments[::2], arguments[1::2]))
            if "-reportFile" in options:
                with open(options["-reportFile"], "w") as f:
                    json.dump([], f)
            return 0

        monkeypatch.setattr(UnityEditor, "run", run)

        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "-buildTarget", "Android",
            "-buildVersion", "1.0.0",
            "-buildOutputPath", str(output_dir),
            "-buildId", "5",
        ])

        assert code == 1
        assert (output_dir / "Release" / "SpaceMiner_v1.0.0_5" / BUILD_PARAMETERS_FILE).is_file()

class TestInteractive:
    def test_debug_preset(self, project, output_dir, editor_calls, monkeypatch):
        answers = []
        monkeypatch.setattr("builtins.input", lambda prompt: answers.append(prompt) or "y")
        notifier = RecordingNotifier()
        monkeypatch.setattr(playerforge, "ConsoleNotifier", lambda: notifier)

        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "--interactive",
            "--preset", "debug",
            "-buildOutputPath", str(output_dir),
        ])

        assert code == 0
        assert answers == ["Generate build? [Y/n] "]
        assert editor_calls[0] == ["-buildTarget", "Android"]

        builds = list((output_dir / "QA").iterdir())
        assert len(builds) == 1
        assert builds[0].name.startswith("SpaceMiner_v99.1.10_local")
        assert notifier.locations == [str(builds[0] / (builds[0].name + ".apk"))]

    def test_declined_confirmation(self, project, output_dir, editor_calls, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        code = playerforge.main(["--project", str(project), "--editor", "Unity", "--interactive", "-buildOutputPath", str(output_dir)])

        assert code == 1
        assert not any("-reportFile" in call for call in editor_calls)

    def test_release_preset_without_credentials_fails_before_switching(self, project, output_dir, editor_calls, tmp_path, monkeypatch):
        for name in ["KEYSTORE_NAME", "KEYSTORE_PASS", "KEYALIAS_NAME", "KEYALIAS_PASS"]:
            monkeypatch.delenv(f"PLAYERFORGE_{name}", raising = False)
        answers = []
        monkeypatch.setattr("builtins.input", lambda prompt: answers.append(prompt) or "y")

        code = playerforge.main([
            "--project", str(project),
            "--editor", "Unity",
            "--interactive",
            "--preset", "release",
            "--credentials", str(tmp_path / "absent.json"),
            "-buildOutputPath", str(output_dir),
        ])

        assert code == 1
        assert editor_calls == []
        assert answers == []

class TestContainer:
    def test_output_is_mounted(self, project, output_dir, monkeypatch):
        commands = []
        monkeypatch.setattr(playerforge, "ensure_image", lambda image: None)
        monkeypatch.setattr(playerforge.ContainerEditor, "run", lambda self, arguments: commands.append(self.command(arguments)) or 1)

        code = playerforge.main([
            "--project", str(project),
            "--docker",
            "-buildTarget", "Android",
            "-buildOutputPath", str(output_dir),
        ])

        assert code == 1
        output = output_dir.resolve()
        assert f"{output}:{output}" in commands[0]
        assert "unityci/editor:ubuntu-2022.3.21f1-android-3" in commands[0]
