"""Tests for the external-tool collaborators of the demo driver."""

from __future__ import annotations

import io
import os
import subprocess
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import pytest

from upgrade_demo import demo
from upgrade_demo.demo import UpgradeDemo, Variant
from upgrade_demo.errors import MissingDependency


@pytest.fixture()
def upgrade(tmp_path) -> UpgradeDemo:
    return UpgradeDemo(
        work_dir=str(tmp_path / "upgrade-example"),
        jar_name="app.jar",
        sdkman_dir=str(tmp_path / "sdkman"),
        repo_url="https://example.com/petclinic.git",
        stream=io.StringIO(),
    )


@pytest.fixture()
def commands(monkeypatch: pytest.MonkeyPatch) -> list[list[str]]:
    """Record subprocess.run calls instead of executing them."""
    ran: list[list[str]] = []

    def fake_run(cmd: list[str], **kwargs: Any) -> SimpleNamespace:
        ran.append(cmd)
        return SimpleNamespace(returncode=0, stdout="")

    monkeypatch.setattr(demo.subprocess, "run", fake_run)
    return ran


def test_check_dependencies_reports_first_missing_tool(monkeypatch):
    monkeypatch.setattr(demo.shutil, "which", lambda tool: None if tool == "mvnd" else f"/usr/bin/{tool}")

    with pytest.raises(MissingDependency, match="mvnd not found. Please install mvnd first."):
        demo.check_dependencies(("git", "mvnd", "advisor"))


def test_check_dependencies_passes_when_all_present(monkeypatch):
    monkeypatch.setattr(demo.shutil, "which", lambda tool: f"/usr/bin/{tool}")

    demo.check_dependencies()


def test_java_env_puts_candidate_first_on_path():
    env = demo.java_env("17.0.14-librca", "/opt/sdkman", base_env={"PATH": "/usr/bin"})

    home = os.path.join("/opt/sdkman", "candidates", "java", "17.0.14-librca")
    assert env["JAVA_HOME"] == home
    assert env["PATH"].split(os.pathsep) == [os.path.join(home, "bin"), "/usr/bin"]


@pytest.mark.parametrize(
    "variant, expected",
    [
        (Variant.STANDARD, ["java", "-jar", "./target/app.jar"]),
        (Variant.AOT, ["java", "-Dspring.aot.enabled=true", "-jar", "./target/app.jar"]),
        (Variant.EXPLODED, ["java", "-jar", "./application/app.jar"]),
        (Variant.CDS, ["java", "-XX:SharedArchiveFile=application.jsa", "-jar", "application/app.jar"]),
        ("aot-cds", ["java", "-Dspring.aot.enabled=true", "-XX:SharedArchiveFile=application.jsa",
                     "-jar", "application/app.jar"]),
    ],
)
def test_start_command(variant, expected):
    assert demo.start_command(variant, "app.jar") == expected


def test_unknown_variant_is_rejected():
    with pytest.raises(ValueError):
        demo.start_command("graal", "app.jar")


def test_rewrite_application_runs_advisor_in_order(upgrade, commands):
    upgrade.rewrite_application()

    assert commands == [
        ["advisor", "build-config", "get"],
        ["advisor", "upgrade-plan", "get"],
        ["advisor", "upgrade-plan", "apply"],
    ]
    assert "$ advisor upgrade-plan apply\n" in upgrade.stream.getvalue()


def test_use_java_switches_environment(upgrade, commands):
    upgrade.use_java("11.0.26-librca")

    assert upgrade.java_version == "11.0.26-librca"
    assert upgrade.env["JAVA_HOME"].endswith(os.path.join("java", "11.0.26-librca"))
    assert commands == [["java", "-version"]]
    assert upgrade.stream.getvalue().startswith("#### Use Java 11.0.26-librca\n\n")


def test_failing_command_raises(upgrade, monkeypatch):
    def fail(cmd, **kwargs):
        raise subprocess.CalledProcessError(128, cmd)

    monkeypatch.setattr(demo.subprocess, "run", fail)

    with pytest.raises(subprocess.CalledProcessError):
        upgrade.clone_app()


def test_sdk_requires_sdkman(upgrade, commands):
    with pytest.raises(MissingDependency, match="SDKMAN"):
        upgrade.install_java("17.0.14-librca")

    assert commands == []


def test_install_java_sources_sdkman(upgrade, commands):
    init = os.path.join(upgrade.sdkman_dir, "bin", "sdkman-init.sh")
    os.makedirs(os.path.dirname(init))
    open(init, "w").close()

    upgrade.install_java("8.0.442-librca")

    assert [cmd[:2] for cmd in commands] == [["bash", "-c"], ["bash", "-c"]]
    assert commands[0][2].endswith("sdk update")
    assert commands[1][2].endswith("sdk install java 8.0.442-librca")


def test_create_cds_archive_filters_cds_warnings(upgrade, monkeypatch):
    output = "[0.1s][warning][cds] Skipping class\nStarted PetClinicApplication\n"
    monkeypatch.setattr(demo.subprocess, "run", lambda cmd, **kwargs: SimpleNamespace(returncode=0, stdout=output))

    upgrade.create_cds_archive()

    text = upgrade.stream.getvalue()
    assert "Started PetClinicApplication" in text
    assert "[warning][cds]" not in text


def test_init_workspace_recreates_directory(upgrade):
    os.makedirs(upgrade.work_dir)
    stale = os.path.join(upgrade.work_dir, "stale.txt")
    open(stale, "w").close()

    upgrade.init_workspace()

    assert os.path.isdir(upgrade.work_dir)
    assert os.listdir(upgrade.work_dir) == []


def test_start_and_stop_app(upgrade, commands, monkeypatch, events):
    process = MagicMock(pid=4242)
    process.poll.return_value = None
    process.wait.return_value = -9
    popen = MagicMock(return_value=process)
    monkeypatch.setattr(demo.subprocess, "Popen", popen)

    assert upgrade.start_app(Variant.STANDARD) is process
    assert commands == [["mvnd", "-q", "clean", "package", "-DskipTests"]]
    assert popen.call_args.args[0] == ["java", "-jar", "./target/app.jar"]

    with pytest.raises(RuntimeError, match="already running"):
        upgrade.start_app(Variant.CDS)

    assert upgrade.stop_app() == -9
    process.kill.assert_called_once_with()
    assert upgrade.process is None
    assert [event_type for event_type, _ in events] == ["APP_STARTED", "APP_STOPPED"]


def test_start_app_writes_log_file(upgrade, tmp_path, monkeypatch, events):
    popen = MagicMock(return_value=MagicMock(pid=1))
    monkeypatch.setattr(demo.subprocess, "Popen", popen)
    log_path = tmp_path / "aot.log"

    upgrade.start_app(Variant.AOT, log_path=str(log_path))

    assert log_path.exists()
    assert popen.call_args.kwargs["stderr"] == subprocess.STDOUT


def test_stop_without_process_is_a_no_op(upgrade):
    assert upgrade.stop_app() is None


def test_packaging_variants_run_expected_commands(upgrade, commands):
    upgrade.aot_processing()
    upgrade.extract_jar()

    assert commands == [
        ["./mvnw", "-q", "-Pnative", "clean", "package", "-DskipTests"],
        ["java", "-Djarmode=tools", "-jar", "./target/app.jar", "extract", "--destination", "application"],
    ]


def test_remove_extracted(upgrade):
    extracted = os.path.join(upgrade.work_dir, "application")
    os.makedirs(extracted)

    upgrade.remove_extracted()

    assert not os.path.exists(extracted)


def test_sync_vendored_only_with_vendir_config(upgrade, commands, tmp_path):
    upgrade.sync_vendored(str(tmp_path))
    assert commands == []

    (tmp_path / "vendir.yml").write_text("apiVersion: vendir.k14s.io/v1alpha1\n")
    upgrade.sync_vendored(str(tmp_path))
    assert commands == [["vendir", "sync"]]


def test_stop_app_that_will_not_exit_raises_timeout(upgrade, monkeypatch, events):
    process = MagicMock(pid=7)
    process.poll.return_value = None
    process.wait.side_effect = subprocess.TimeoutExpired(["java"], 30)
    monkeypatch.setattr(demo.subprocess, "Popen", MagicMock(return_value=process))
    upgrade.start_app(Variant.AOT)

    with pytest.raises(subprocess.TimeoutExpired):
        upgrade.stop_app()
