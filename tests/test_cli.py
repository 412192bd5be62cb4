"""End-to-end tests through the command line and module-backed apps."""

from __future__ import annotations

import sys
from unittest.mock import patch

import pytest

from bootgate import GateStatus, migrate
from bootgate.__main__ import main

from conftest import Halted, write_unit


@pytest.fixture(autouse=True)
def _no_logging_setup():
    with patch("bootgate.__main__.setup_logging"):
        yield


class TestModuleApp:
    """Apps configured through their package, with units under priv/."""

    def test_migrates_from_priv_directory(self, app_factory, sqlite_url, controller):
        app = app_factory.create({"MainRepo": sqlite_url("main")})
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "20240101120000_users.py")
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "20240102120000_orders.py")

        result = migrate(app, halt_on_migration=False, process=controller)

        assert result.status == GateStatus.MIGRATED
        assert result.migrations == (20240101120000, 20240102120000)

    def test_second_boot_is_noop(self, app_factory, sqlite_url, controller):
        """Halt on the first boot, start normally on the second."""
        app = app_factory.create({"MainRepo": sqlite_url("main")})
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "1_users.py")

        with pytest.raises(Halted):
            migrate(app, process=controller)
        result = migrate(app, process=controller)

        assert controller.calls == 1
        assert result.status == GateStatus.NOOP


class TestCli:
    def test_no_halt_reports_versions(self, app_factory, sqlite_url, capsys):
        app = app_factory.create({"MainRepo": sqlite_url("main")})
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "7_users.py")

        code = main([app, "--no-halt", "--app-dir", str(app_factory.root)])

        assert code == 0
        assert "Migrated: 7" in capsys.readouterr().out

    def test_nothing_to_migrate(self, app_factory, capsys):
        app = app_factory.create()

        code = main([app, "--no-halt", "--app-dir", str(app_factory.root)])

        assert code == 0
        assert "Nothing to migrate" in capsys.readouterr().out

    def test_unknown_app_fails(self, capsys, monkeypatch):
        monkeypatch.setattr(sys, "path", list(sys.path))

        code = main(["bootgate_no_such_app", "--no-halt"])

        assert code == 1
        assert "Error:" in capsys.readouterr().err

    def test_halts_by_default(self, app_factory, sqlite_url):
        app = app_factory.create({"MainRepo": sqlite_url("main")})
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "1_users.py")

        with patch("bootgate.process.os._exit", side_effect=Halted) as exit_, patch(
            "bootgate.process.logging.shutdown"
        ):
            with pytest.raises(Halted):
                main([app, "--app-dir", str(app_factory.root)])

        exit_.assert_called_once_with(0)

    def test_halt_policy_from_settings(self, app_factory, sqlite_url, capsys):
        """Without --no-halt the configured policy decides."""
        app = app_factory.create({"MainRepo": sqlite_url("main")})
        write_unit(app_factory.migrations_dir(app, "MainRepo"), "1_users.py")

        with patch("bootgate.gate.settings.halt_on_migration", False), patch(
            "bootgate.process.os._exit"
        ) as exit_:
            code = main([app, "--app-dir", str(app_factory.root)])

        assert code == 0
        assert "Migrated: 1" in capsys.readouterr().out
        exit_.assert_not_called()
