"""Tests for the keeper-store command line."""
import logging

import pytest

from keeper_store.main import main, parse_args
from keeper_store.services.blob_store import FilesystemBlobStore
from keeper_store.services.keeper_service import KeeperService
from keeper_store.storage import open_adapter


@pytest.fixture(autouse=True)
def _restore_keeper_logger():
    logger = logging.getLogger("keeper_store")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield
    for handler in logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    logger.handlers = saved_handlers
    logger.setLevel(saved_level)


@pytest.fixture
def seeded(test_config):
    """A file-backed store with two notes and a tag."""
    service = KeeperService(
        open_adapter(test_config),
        blob_store=FilesystemBlobStore(test_config.get_media_dir()),
    )
    garden = service.create_note("tomatoes and basil", title="Garden plan")
    service.create_note("quarterly numbers", title="Budget")
    service.add_tag(garden.id, "home")
    service.close()
    return garden


class TestParseArgs:
    """Tests for argument parsing."""

    def test_search_takes_query(self):
        args = parse_args(["--backend", "sqlite", "search", "garden plan"])
        assert args.command == "search"
        assert args.query == "garden plan"
        assert args.backend == "sqlite"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])

    def test_unknown_backend_rejected(self):
        with pytest.raises(SystemExit):
            parse_args(["--backend", "postgres", "init"])

    def test_log_level_defaults_to_config(self, test_config, monkeypatch):
        monkeypatch.setattr(test_config, "log_level", "DEBUG")
        assert parse_args(["init"]).log_level == "DEBUG"
        assert parse_args(["--log-level", "ERROR", "init"]).log_level == "ERROR"


class TestCommands:
    """Tests for the sub-commands against a temporary store."""

    def test_init_creates_database(self, test_config, capsys):
        assert main(["init"]) == 0
        assert test_config.get_absolute_path(test_config.database_path).exists()
        assert "Schema ready" in capsys.readouterr().out

    def test_database_path_option(self, test_config, tmp_path):
        target = tmp_path / "elsewhere" / "other.sqlite3"
        assert main(["--database-path", str(target), "init"]) == 0
        assert target.exists()

    def test_search(self, seeded, capsys):
        assert main(["search", "garden"]) == 0
        out = capsys.readouterr().out
        assert seeded.id in out
        assert "Garden plan" in out
        assert "Budget" not in out

    def test_tags(self, seeded, capsys):
        assert main(["tags"]) == 0
        assert "home" in capsys.readouterr().out

    def test_reindex_and_check(self, seeded, capsys):
        assert main(["reindex"]) == 0
        assert "Indexed 2 notes" in capsys.readouterr().out
        assert main(["check"]) == 0
        assert "Search index OK" in capsys.readouterr().out

    def test_sqlite_backend_reads_same_file(self, seeded, capsys):
        assert main(["--backend", "sqlite", "search", "budget"]) == 0
        assert "Budget" in capsys.readouterr().out
