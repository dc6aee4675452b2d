import logging

import pytest
from click.testing import CliRunner

import dockerupdater.cli as cli_module


class FakeUpdater:
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.calls = []
        FakeUpdater.instances.append(self)

    def run(self, container_name=None, all_running=False):
        self.calls.append(("run", container_name, all_running))
        return 0

    def show_list(self):
        self.calls.append(("list",))
        return 0


def _invoke(monkeypatch, args, cwd=None):
    FakeUpdater.instances = []
    monkeypatch.setattr(cli_module, "DockerUpdater", FakeUpdater)
    if cwd is not None:
        monkeypatch.chdir(cwd)
    return CliRunner().invoke(cli_module.main, args)


def test_cli_updates_single_container_with_flags(monkeypatch, tmp_path):
    result = _invoke(monkeypatch, ["-f", "-d", "-s", "nginx"], cwd=tmp_path)

    assert result.exit_code == 0
    updater = FakeUpdater.instances[0]
    assert updater.calls == [("run", "nginx", False)]
    options = updater.kwargs["options"]
    assert options.force is True
    assert options.dry_run is True
    assert options.skip_backup is True


def test_cli_requires_target(monkeypatch, tmp_path):
    result = _invoke(monkeypatch, [], cwd=tmp_path)

    assert result.exit_code != 0
    assert "No container specified" in result.output
    assert FakeUpdater.instances == []


def test_cli_list_is_exclusive_with_updates(monkeypatch, tmp_path):
    result = _invoke(monkeypatch, ["--list", "--all"], cwd=tmp_path)

    assert result.exit_code != 0
    assert FakeUpdater.instances == []


def test_cli_list(monkeypatch, tmp_path):
    result = _invoke(monkeypatch, ["-l"], cwd=tmp_path)

    assert result.exit_code == 0
    assert FakeUpdater.instances[0].calls == [("list",)]


def test_cli_help(monkeypatch, tmp_path):
    result = _invoke(monkeypatch, ["-h"], cwd=tmp_path)

    assert result.exit_code == 0
    assert "--skip-backup" in result.output
    assert "docker-update -a" in result.output


def test_cli_uses_config_and_allows_cli_override(monkeypatch, tmp_path):
    config_file = tmp_path / ".docker-update.yml"
    config_file.write_text(
        "backup_dir: /config/backups\n" "timeout: 45\n" "skip_backup: true\n",
        encoding="utf-8",
    )

    result = _invoke(monkeypatch, ["--backup-dir", "/cli/backups", "-a"], cwd=tmp_path)

    assert result.exit_code == 0
    updater = FakeUpdater.instances[0]
    assert updater.kwargs["backup_dir"] == "/cli/backups"
    assert updater.kwargs["command_timeout"] == 45.0
    assert updater.kwargs["options"].skip_backup is True
    assert updater.calls == [("run", None, True)]


def test_cli_propagates_failure_exit_status(monkeypatch, tmp_path):
    class FailingUpdater(FakeUpdater):
        def run(self, container_name=None, all_running=False):
            return 1

    monkeypatch.setattr(cli_module, "DockerUpdater", FailingUpdater)
    monkeypatch.chdir(tmp_path)

    result = CliRunner().invoke(cli_module.main, ["web"])

    assert result.exit_code == 1


@pytest.fixture
def package_logger():
    root = logging.getLogger()
    package = logging.getLogger("dockerupdater")
    levels = (root.level, package.level)
    yield package
    root.setLevel(levels[0])
    package.setLevel(levels[1])


@pytest.mark.parametrize(
    "flags, level",
    [
        ([], logging.INFO),
        (["-q"], logging.WARNING),
        (["-v"], logging.DEBUG),
        (["-q", "-v"], logging.DEBUG),
    ],
)
def test_cli_sets_log_level_for_output_mode(monkeypatch, tmp_path, package_logger, flags, level):
    result = _invoke(monkeypatch, [*flags, "web"], cwd=tmp_path)

    assert result.exit_code == 0
    assert package_logger.level == level
    assert FakeUpdater.instances[0].kwargs["options"].quiet is ("-q" in flags)


def test_cli_reports_invalid_config_value(monkeypatch, tmp_path):
    (tmp_path / ".docker-update.yml").write_text("timeout: abc\n", encoding="utf-8")

    result = _invoke(monkeypatch, ["web"], cwd=tmp_path)

    assert result.exit_code == 1
    assert "Invalid value for 'timeout'" in result.output
    assert FakeUpdater.instances == []
