"""Shared fixtures: fake projects and engine roots on disk."""

import json

import pytest


@pytest.fixture()
def make_project(tmp_path):
    """Create ``<tmp>/<name>/<name>.uproject`` with optional target files."""

    def _make(
        name="MyGame",
        association="5.3",
        targets=("MyGame", "MyGameEditor"),
        descriptor=None,
        build_modules=(),
    ):
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        if descriptor is None:
            descriptor = {
                "FileVersion": 3,
                "EngineAssociation": association,
                "Category": "",
                "Description": "",
                "Modules": [
                    {"Name": name, "Type": "Runtime", "LoadingPhase": "Default"}
                ],
                "Plugins": [{"Name": "ModelingToolsEditorMode", "Enabled": True}],
            }
        uproject = root / f"{name}.uproject"
        uproject.write_text(json.dumps(descriptor))

        if targets is not None:
            source = root / "Source"
            source.mkdir(exist_ok=True)
            for target in targets:
                (source / f"{target}.Target.cs").write_text("// target\n")
            for module in build_modules:
                module_dir = source / module
                module_dir.mkdir(exist_ok=True)
                (module_dir / f"{module}.Build.cs").write_text("// module\n")
        return uproject

    return _make


@pytest.fixture()
def make_engine(tmp_path):
    """Create a fake engine root, optionally with a Build.version file."""

    def _make(dirname="UE_5.3", version=None):
        root = tmp_path / "engines" / dirname
        (root / "Engine" / "Binaries").mkdir(parents=True, exist_ok=True)
        if version is not None:
            build_dir = root / "Engine" / "Build"
            build_dir.mkdir(parents=True, exist_ok=True)
            (build_dir / "Build.version").write_text(json.dumps(version))
        return root

    return _make
