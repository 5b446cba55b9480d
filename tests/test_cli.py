"""
Tests for the command-line interface.
"""

import json
import pytest

from jinder import __version__
from jinder.app import main
from jinder.store import SqlJobStore


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    """Isolate the CLI from any .env or JINDER_* variables on the host."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("JINDER_DATABASE_URL", raising=False)
    return tmp_path


@pytest.fixture
def db_url(cli_env):
    return f"sqlite:///{cli_env / 'data' / 'jinder.db'}"


class TestCli:
    def test_version(self, capsys):
        main(["--version"])
        assert capsys.readouterr().out.strip() == __version__

    def test_no_command_prints_help(self, capsys):
        main([])
        assert "usage" in capsys.readouterr().out.lower()

    def test_init_db(self, db_url, cli_env, capsys):
        main(["init-db", "--database-url", db_url])
        assert (cli_env / "data" / "jinder.db").exists()
        assert "Database ready" in capsys.readouterr().out

    def test_validate_valid(self, cli_env, valid_application, capsys):
        path = cli_env / "job.json"
        path.write_text(json.dumps(valid_application))
        main(["validate", "--input", str(path)])
        assert capsys.readouterr().out.strip() == "Valid"

    def test_validate_invalid(self, cli_env, invalid_application, capsys):
        path = cli_env / "job.json"
        path.write_text(json.dumps(invalid_application))
        with pytest.raises(SystemExit) as exc:
            main(["validate", "--input", str(path)])
        assert exc.value.code == 2
        out = capsys.readouterr().out
        assert "position" in out
        assert "applicationDate" in out

    def test_validate_missing_file(self, cli_env):
        with pytest.raises(SystemExit) as exc:
            main(["validate", "--input", str(cli_env / "nope.json")])
        assert "not found" in str(exc.value.code)

    def test_list_and_stats(self, db_url, valid_application, capsys):
        store = SqlJobStore.from_url(db_url)
        store.create(valid_application)
        store.create({"company": "Globex", "position": "Analyst", "applicationDate": "2024-02-01", "status": "offer"})
        store.close()

        main(["list", "--database-url", db_url, "--sort-by", "company", "--sort-order", "asc"])
        out = capsys.readouterr().out
        assert "Showing 2 of 2 job applications" in out
        assert out.index("Acme") < out.index("Globex")
        assert "USD 120,000 - 150,000 (annual)" in out

        main(["list", "--database-url", db_url, "--status", "offer"])
        out = capsys.readouterr().out
        assert "Globex" in out and "Acme" not in out

        main(["stats", "--database-url", db_url])
        out = capsys.readouterr().out
        assert "Total: 2" in out
        assert "offer: 1" in out

    def test_list_empty(self, db_url, capsys):
        main(["list", "--database-url", db_url])
        assert "No job applications found." in capsys.readouterr().out

    def test_list_bad_sort(self, db_url):
        with pytest.raises(SystemExit):
            main(["list", "--database-url", db_url, "--sort-by", "password"])
