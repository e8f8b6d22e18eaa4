"""Tests for invocation.py and runner.py."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from unreal_build.engine.models import EngineDetectionResult, Installation
from unreal_build.invocation import (
    VALID_CONFIGS,
    BuildInvocation,
    BuildOptions,
    InvocationError,
    RunInvocation,
    build_tool_path,
    editor_candidates,
    find_executable,
    find_generated_files,
    game_candidates,
    host_platform,
    is_editor_target,
    is_valid_engine_path,
    resolve_generate,
    resolve_invocation,
    resolve_run,
    unreal_build_tool_path,
)
from unreal_build.project import InvalidProjectError
from unreal_build.runner import run_executable, run_invocation
from unreal_build.targets import TargetNotFoundError


def _resolver(engine_path=None, warnings=(), error=None):
    def resolve(project_path):
        engine = Installation(str(engine_path), "G1", "registry") if engine_path else None
        return EngineDetectionResult(engine=engine, warnings=list(warnings), error=error)

    return resolve


class TestHostPlatform:
    @pytest.mark.parametrize(
        "system,expected",
        [("Windows", "Win64"), ("Darwin", "Mac"), ("Linux", "Linux"), ("FreeBSD", "Win64")],
    )
    def test_mapping(self, system, expected):
        assert host_platform(system) == expected


class TestBuildOptions:
    def test_defaults(self):
        options = BuildOptions(platform="Win64")
        assert options.target == "Editor"
        assert options.config == "Development"
        assert options.clean is False
        assert options.additional_args == ()

    def test_default_platform_is_host(self):
        assert BuildOptions().platform == host_platform()

    @pytest.mark.parametrize("config", VALID_CONFIGS)
    def test_valid_configs(self, config):
        assert BuildOptions(config=config, platform="Win64").config == config

    def test_invalid_config(self):
        with pytest.raises(ValueError, match="configuration"):
            BuildOptions(config="Release", platform="Win64")

    def test_invalid_platform(self):
        with pytest.raises(ValueError, match="platform"):
            BuildOptions(platform="PS5")

    def test_empty_target(self):
        with pytest.raises(ValueError, match="target"):
            BuildOptions(target="  ", platform="Win64")

    def test_additional_args_frozen_to_tuple(self):
        assert BuildOptions(platform="Win64", additional_args=["-a"]).additional_args == ("-a",)


class TestEnginePaths:
    def test_valid_engine_path(self, make_engine, tmp_path):
        assert is_valid_engine_path(make_engine())
        assert not is_valid_engine_path(tmp_path)

    def test_build_bat_on_windows(self, make_engine):
        root = make_engine()
        batch = root / "Engine" / "Build" / "BatchFiles"
        batch.mkdir(parents=True)
        (batch / "Build.bat").write_text("")
        assert build_tool_path(root, "Windows") == batch / "Build.bat"

    def test_build_sh_on_linux(self, make_engine):
        root = make_engine()
        linux = root / "Engine" / "Build" / "BatchFiles" / "Linux"
        linux.mkdir(parents=True)
        (linux / "Build.sh").write_text("")
        assert build_tool_path(root, "Linux") == linux / "Build.sh"

    def test_falls_back_to_ubt(self, make_engine):
        root = make_engine()
        assert build_tool_path(root, "Windows").name == "UnrealBuildTool.exe"
        assert build_tool_path(root, "Darwin").name == "UnrealBuildTool"


class TestBuildInvocation:
    def test_argv_order(self):
        invocation = BuildInvocation(
            engine_path="D:/UE",
            project_file="D:/MyGame/MyGame.uproject",
            target="MyGameEditor",
            config="Development",
            platform="Win64",
            tool_path="D:/UE/Engine/Build/BatchFiles/Build.bat",
            clean=True,
            verbose=True,
            additional_args=("-NoHotReload",),
        )
        assert invocation.argv() == [
            "D:/UE/Engine/Build/BatchFiles/Build.bat",
            "MyGameEditor",
            "Win64",
            "Development",
            "-project=D:/MyGame/MyGame.uproject",
            "-clean",
            "-verbose",
            "-NoHotReload",
        ]

    def test_to_dict_includes_argv(self):
        invocation = BuildInvocation("E", "P.uproject", "T", "Shipping", "Linux", "tool")
        data = invocation.to_dict()
        assert data["argv"] == ["tool", "T", "Linux", "Shipping", "-project=P.uproject"]
        assert data["warnings"] == []


class TestResolveInvocation:
    def test_resolves_engine_and_target(self, make_project, make_engine):
        uproject = make_project()
        engine = make_engine()
        options = BuildOptions(project_path=str(uproject), platform="Win64")
        invocation = resolve_invocation(
            options, engine_resolver=_resolver(engine, warnings=["fallback used"])
        )
        assert invocation.target == "MyGameEditor"
        assert invocation.engine_path == str(engine)
        assert invocation.project_file == str(uproject)
        assert invocation.argv()[1:5] == [
            "MyGameEditor",
            "Win64",
            "Development",
            f"-project={uproject}",
        ]
        assert invocation.warnings == ["fallback used"]

    def test_explicit_engine_path_skips_resolver(self, make_project, make_engine):
        resolver = MagicMock()
        options = BuildOptions(
            target="Game",
            project_path=str(make_project()),
            engine_path=str(make_engine()),
            platform="Linux",
        )
        invocation = resolve_invocation(options, engine_resolver=resolver)
        resolver.assert_not_called()
        assert invocation.target == "MyGame"

    def test_project_from_cwd(self, make_project, make_engine):
        uproject = make_project()
        options = BuildOptions(engine_path=str(make_engine()), platform="Win64")
        invocation = resolve_invocation(options, cwd=uproject.parent)
        assert invocation.project_file == str(uproject)

    def test_no_engine(self, make_project):
        options = BuildOptions(project_path=str(make_project()), platform="Win64")
        with pytest.raises(InvocationError, match="--engine-path"):
            resolve_invocation(options, engine_resolver=_resolver(None))

    def test_resolver_error(self, make_project):
        options = BuildOptions(project_path=str(make_project()), platform="Win64")
        with pytest.raises(InvocationError, match="boom"):
            resolve_invocation(options, engine_resolver=_resolver(None, error="boom"))

    def test_missing_engine_path(self, make_project, tmp_path):
        options = BuildOptions(
            project_path=str(make_project()),
            engine_path=str(tmp_path / "gone"),
            platform="Win64",
        )
        with pytest.raises(InvocationError, match="does not exist"):
            resolve_invocation(options)

    def test_engine_root_warning(self, make_project, tmp_path):
        bare = tmp_path / "NotAnEngine"
        bare.mkdir()
        options = BuildOptions(
            project_path=str(make_project()), engine_path=str(bare), platform="Win64"
        )
        invocation = resolve_invocation(options)
        assert any("does not look like an engine root" in w for w in invocation.warnings)

    def test_unknown_target(self, make_project, make_engine):
        options = BuildOptions(
            target="Server",
            project_path=str(make_project()),
            engine_path=str(make_engine()),
            platform="Win64",
        )
        with pytest.raises(TargetNotFoundError):
            resolve_invocation(options)

    def test_no_project(self, tmp_path, make_engine):
        options = BuildOptions(engine_path=str(make_engine()), platform="Win64")
        with pytest.raises(InvalidProjectError):
            resolve_invocation(options, cwd=tmp_path / "empty")


class TestRunInvocation:
    def _invocation(self, tool_path):
        return BuildInvocation(
            engine_path="E",
            project_file="P.uproject",
            target="MyGameEditor",
            config="Development",
            platform="Win64",
            tool_path=str(tool_path),
        )

    def test_missing_tool(self, tmp_path):
        runner = MagicMock()
        result = run_invocation(self._invocation(tmp_path / "Build.bat"), runner=runner)
        runner.assert_not_called()
        assert not result.success
        assert result.exit_code == -1
        assert "not found" in result.error

    def test_success(self, tmp_path):
        tool = tmp_path / "Build.bat"
        tool.write_text("")
        runner = MagicMock(return_value=subprocess.CompletedProcess([], 0))
        result = run_invocation(self._invocation(tool), runner=runner)
        assert result.success
        assert result.exit_code == 0
        assert result.error is None
        argv = runner.call_args[0][0]
        assert argv[0] == str(tool)
        assert runner.call_args[1]["cwd"] == str(tmp_path)

    def test_failure_exit_code(self, tmp_path):
        tool = tmp_path / "Build.bat"
        tool.write_text("")
        runner = MagicMock(return_value=subprocess.CompletedProcess([], 6))
        result = run_invocation(self._invocation(tool), runner=runner)
        assert not result.success
        assert result.exit_code == 6
        assert result.error == "Build failed with exit code 6"

    def test_launch_error(self, tmp_path):
        tool = tmp_path / "Build.bat"
        tool.write_text("")
        runner = MagicMock(side_effect=PermissionError("denied"))
        result = run_invocation(self._invocation(tool), runner=runner)
        assert not result.success
        assert "denied" in result.error


class TestExecutableCandidates:
    def test_editor_windows(self, tmp_path):
        candidates = editor_candidates(tmp_path, "Win64")
        binaries = tmp_path / "Engine" / "Binaries" / "Win64"
        assert candidates[0] == binaries / "UnrealEditor.exe"
        assert candidates[1] == binaries / "UnrealEditor-Cmd.exe"
        assert [c.name for c in candidates[2:]] == ["UE4Editor.exe", "UE5Editor.exe"]

    def test_editor_linux_has_no_suffix(self, tmp_path):
        assert editor_candidates(tmp_path, "Linux")[0].name == "UnrealEditor"

    def test_editor_mac_app_bundle(self, tmp_path):
        candidates = editor_candidates(tmp_path, "Mac")
        assert candidates[0].parts[-4:] == (
            "UnrealEditor.app",
            "Contents",
            "MacOS",
            "UnrealEditor",
        )
        assert candidates[1] == tmp_path / "Engine" / "Binaries" / "Mac" / "UnrealEditor-Cmd"

    def test_game_order(self, make_project):
        uproject = make_project()
        binaries = uproject.parent / "Binaries" / "Win64"
        assert game_candidates(uproject, "MyGameClient", "Shipping", "Win64") == [
            binaries / "MyGame.exe",
            binaries / "MyGame-Win64-Shipping" / "MyGame.exe",
            binaries / "MyGameClient.exe",
            binaries / "MyGameClient-Win64-Shipping.exe",
        ]

    def test_find_executable_prefers_existing(self, tmp_path):
        missing = tmp_path / "a.exe"
        present = tmp_path / "b.exe"
        present.write_text("")
        assert find_executable([missing, present]) == present

    def test_find_executable_defaults_to_first(self, tmp_path):
        assert find_executable([tmp_path / "a", tmp_path / "b"]) == tmp_path / "a"

    @pytest.mark.parametrize(
        "target,expected",
        [("MyGameEditor", True), ("Editor", True), ("MyGame", False), ("MyGameServer", False)],
    )
    def test_is_editor_target(self, target, expected):
        assert is_editor_target(target) is expected


class TestResolveRun:
    def test_editor_runs_engine_editor_with_project(self, make_project, make_engine):
        uproject = make_project()
        engine = make_engine()
        editor = engine / "Engine" / "Binaries" / "Win64" / "UnrealEditor.exe"
        editor.parent.mkdir(parents=True)
        editor.write_text("")

        run = resolve_run(
            BuildOptions(target="Editor", platform="Win64", project_path=str(uproject)),
            engine_resolver=_resolver(engine),
        )
        assert run.target == "MyGameEditor"
        assert run.executable == str(editor)
        assert run.engine_path == str(engine)
        assert run.argv() == [str(editor), str(uproject)]
        assert run.cwd == str(editor.parent)

    def test_editor_falls_back_to_cmd(self, make_project, make_engine):
        engine = make_engine()
        cmd = engine / "Engine" / "Binaries" / "Win64" / "UnrealEditor-Cmd.exe"
        cmd.parent.mkdir(parents=True)
        cmd.write_text("")
        options = BuildOptions(
            platform="Win64", project_path=str(make_project()), engine_path=str(engine)
        )
        run = resolve_run(options)
        assert run.executable == str(cmd)

    def test_game_runs_project_binary_with_args(self, make_project):
        uproject = make_project()
        resolver = MagicMock()
        run = resolve_run(
            BuildOptions(
                target="Game",
                platform="Linux",
                project_path=str(uproject),
                additional_args=("-windowed",),
            ),
            engine_resolver=resolver,
        )
        resolver.assert_not_called()
        assert run.executable == str(uproject.parent / "Binaries" / "Linux" / "MyGame")
        assert run.engine_path is None
        assert run.argv() == [run.executable, "-windowed"]
        assert run.to_dict()["exists"] is False

    def test_editor_without_engine(self, make_project):
        with pytest.raises(InvocationError, match="--engine-path"):
            resolve_run(
                BuildOptions(platform="Win64", project_path=str(make_project())),
                engine_resolver=_resolver(None),
            )

    def test_unknown_target(self, make_project):
        options = BuildOptions(
            target="Server", platform="Win64", project_path=str(make_project())
        )
        with pytest.raises(TargetNotFoundError):
            resolve_run(options)


class TestRunExecutable:
    def _run(self, executable):
        return RunInvocation(
            executable=str(executable),
            project_file="P.uproject",
            target="MyGameEditor",
            config="Development",
            platform="Win64",
        )

    def test_missing_executable(self, tmp_path):
        runner = MagicMock()
        result = run_executable(self._run(tmp_path / "UnrealEditor.exe"), runner=runner)
        runner.assert_not_called()
        assert result.exit_code == -1
        assert "Executable not found" in result.error
        assert "--build-first" in result.error

    def test_launches_from_executable_dir(self, tmp_path):
        exe = tmp_path / "bin" / "UnrealEditor.exe"
        exe.parent.mkdir()
        exe.write_text("")
        runner = MagicMock(return_value=subprocess.CompletedProcess([], 0))
        result = run_executable(self._run(exe), runner=runner)
        assert result.success
        assert runner.call_args[0][0] == [str(exe), "P.uproject"]
        assert runner.call_args[1]["cwd"] == str(exe.parent)

    def test_nonzero_exit(self, tmp_path):
        exe = tmp_path / "UnrealEditor.exe"
        exe.write_text("")
        runner = MagicMock(return_value=subprocess.CompletedProcess([], 3))
        result = run_executable(self._run(exe), runner=runner)
        assert result.exit_code == 3
        assert result.error == "Run failed with exit code 3"


class TestResolveGenerate:
    def test_default_visual_studio(self, make_project, make_engine):
        uproject = make_project()
        engine = make_engine()
        gen = resolve_generate(uproject, engine_resolver=_resolver(engine))
        assert gen.ide == "sln"
        assert gen.tool_path == str(unreal_build_tool_path(engine))
        assert gen.argv() == [
            gen.tool_path,
            "-projectfiles",
            f"-project={uproject}",
            "-game",
            "-engine",
        ]

    @pytest.mark.parametrize(
        "ide,flag",
        [("vscode", "-VSCode"), ("clion", "-CLion"), ("xcode", "-XCodeProjectFiles")],
    )
    def test_ide_flags(self, make_project, make_engine, ide, flag):
        gen = resolve_generate(make_project(), ide=ide, engine_path=str(make_engine()))
        assert gen.argv()[-1] == flag

    def test_force(self, make_project, make_engine):
        gen = resolve_generate(
            make_project(), ide="vs2022", engine_path=str(make_engine()), force=True
        )
        assert gen.argv()[-1] == "-force"
        assert "-2022" not in gen.argv()

    def test_unknown_ide(self, make_project):
        with pytest.raises(ValueError, match="Unknown IDE"):
            resolve_generate(make_project(), ide="emacs")

    def test_project_from_cwd(self, make_project, make_engine):
        uproject = make_project()
        gen = resolve_generate(engine_path=str(make_engine()), cwd=uproject.parent)
        assert gen.project_file == str(uproject)

    def test_ubt_path_per_system(self, tmp_path):
        assert unreal_build_tool_path(tmp_path, "Windows").name == "UnrealBuildTool.exe"
        assert unreal_build_tool_path(tmp_path, "Linux").name == "UnrealBuildTool"

    def test_run_through_build_runner(self, make_project, make_engine):
        engine = make_engine()
        gen = resolve_generate(make_project(), engine_path=str(engine))
        tool = Path(gen.tool_path)
        tool.parent.mkdir(parents=True)
        tool.write_text("")
        runner = MagicMock(return_value=subprocess.CompletedProcess([], 1))
        result = run_invocation(gen, runner=runner)
        assert result.error == "Project generation failed with exit code 1"


class TestFindGeneratedFiles:
    def test_solution_files(self, make_project):
        uproject = make_project()
        (uproject.parent / "MyGame.sln").write_text("")
        assert find_generated_files(uproject, "sln") == [uproject.parent / "MyGame.sln"]

    def test_vscode_files(self, make_project):
        uproject = make_project()
        (uproject.parent / "MyGame.code-workspace").write_text("")
        (uproject.parent / ".vscode").mkdir()
        (uproject.parent / ".vscode" / "tasks.json").write_text("")
        names = [p.name for p in find_generated_files(uproject, "vscode")]
        assert names == ["MyGame.code-workspace", "tasks.json"]

    def test_nothing_generated(self, make_project):
        assert find_generated_files(make_project(), "clion") == []
