"""Tests for the devinsights command line."""

import json

import pytest

from devinsights.cli import build_parser, main


@pytest.fixture(autouse=True)
def _local_cold_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("HOT_STORE_BACKEND", "memory")
    monkeypatch.setenv("COLD_STORE_BACKEND", "file")
    monkeypatch.setenv("COLD_STORE_DIR", str(tmp_path / "cold"))


class TestParser:
    def test_api_defaults(self):
        args = build_parser().parse_args(["api"])
        assert args.port == 8000
        assert args.reload is False

    def test_no_command_exits(self):
        with pytest.raises(SystemExit):
            main([])


class TestCacheCommands:
    def test_save_then_get_reads_cold_tier(self, tmp_path, capsys):
        payload = tmp_path / "payload.json"
        payload.write_text(json.dumps({"total_repos": 4}))

        main(["cache-save", "octocat", str(payload)])
        saved = json.loads(capsys.readouterr().out)
        assert saved["success"] is True

        # Each command builds a fresh cache, so the in-memory hot tier is empty here.
        main(["cache-get", "octocat"])
        body = json.loads(capsys.readouterr().out)
        assert body["total_repos"] == 4
        assert body["cache_tier"] == "cold"
        assert body["promoted_to_hot"] is True

    def test_get_miss_exits_nonzero(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["cache-get", "nobody"])
        assert exc_info.value.code == 1
        assert "not cached" in capsys.readouterr().out

    def test_clear(self, tmp_path, capsys):
        payload = tmp_path / "payload.json"
        payload.write_text("{}")
        main(["cache-save", "octocat", str(payload)])
        capsys.readouterr()
        main(["cache-clear", "octocat"])
        cleared = json.loads(capsys.readouterr().out)
        assert cleared == {"success": True, "hot": True, "cold": True, "error": None}
        with pytest.raises(SystemExit):
            main(["cache-get", "octocat"])

    def test_stats(self, capsys):
        main(["cache-stats"])
        report = json.loads(capsys.readouterr().out)
        assert report["cold"]["total_cached_subjects"] == 0
        assert report["hot"]["connected"] is True
