"""Integration test: CLI flow from arguments to exit status and SARIF."""

import json
from unittest.mock import MagicMock, patch

import pytest

from repo_snapshot.main import build_parser, main, run
from repo_snapshot.models import VERSION


def _results(path):
    with open(path) as f:
        return json.load(f)["runs"][0]["results"]


@pytest.fixture
def repo(tmp_path):
    """An empty checkout; reports and logs are written beside it, not inside."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


class TestScannerFlow:
    def test_api_key_exits_non_zero(self, repo, tmp_path, capsys):
        (repo / "settings.env").write_text("API_KEY=AAAAAAAAAAAAAAAAAAAA\n")
        report = tmp_path / "out.sarif"

        code = main(["--path", str(repo), "--only", "secrets", "--sarif", str(report)])

        assert code == 1
        results = _results(report)
        assert len(results) == 1
        assert results[0]["level"] == "error"
        assert results[0]["locations"][0]["physicalLocation"]["artifactLocation"]["uri"] == "settings.env"
        assert results[0]["locations"][0]["physicalLocation"]["region"]["startLine"] == 1
        out = capsys.readouterr().out
        assert "[CRIT]  Found potential secret in settings.env:1" in out
        assert "AAAAAAAAAAAAAAAAAAAA" not in out
        assert "AAAAAAAAAAAAAAAAAAAA" not in report.read_text()

    def test_pattern_names_survive_in_report_and_console(self, repo, tmp_path, capsys):
        (repo / "app.env").write_text("PASSWORD=hunter22hunter\nDATABASE_URL=postgres://u@h/x\n")
        report = tmp_path / "out.sarif"

        code = main(["--path", str(repo), "--only", "secrets", "--verbose", "--sarif", str(report)])

        assert code == 1
        texts = [r["message"]["text"] for r in _results(report)]
        assert any("Pattern matched: PASSWORD;" in t for t in texts)
        assert any("Pattern matched: DATABASE_URL;" in t for t in texts)
        assert not any("hunter22hunter" in t for t in texts)
        out = capsys.readouterr().out
        assert "[INFO]  Pattern matched: PASSWORD; content: ****" in out
        assert "hunter22hunter" not in out

    def test_critical_threshold_without_secrets_is_clean(self, repo, tmp_path):
        (repo / "README.md").write_text("hello\nthe quick brown fox\n")
        report = tmp_path / "out.sarif"

        code = main([
            "--path", str(repo),
            "--severity", "critical",
            "--skip", "deps,iac,branch",
            "--sarif", str(report),
        ])

        assert code == 0
        assert _results(report) == []

    def test_skip_all(self, repo, capsys):
        (repo / "secret.env").write_text("SECRET=" + "x" * 20)
        assert main(["--path", str(repo), "--skip", "all"]) == 0
        assert "no high-severity findings" in capsys.readouterr().out

    def test_explicit_files(self, repo):
        clean = repo / "clean.txt"
        clean.write_text("nothing to see\n")
        (repo / "dirty.env").write_text("PASSWORD=hunter2hunter2\n")
        assert main(["--path", str(repo), "--only", "secrets", str(clean)]) == 0

    def test_entropy_threshold_flag(self, repo):
        (repo / "blob.txt").write_text("q8Zr3LpX7vN2mK9wT4yB6cH1\n")
        assert main(["--path", str(repo), "--only", "secrets"]) == 1
        assert main(["--path", str(repo), "--only", "secrets", "--entropy-threshold", "5.0"]) == 0

    def test_parallel_matches_sequential(self, repo, tmp_path, monkeypatch):
        (repo / "a.env").write_text("TOKEN=" + "t" * 20 + "\nq8Zr3LpX7vN2mK9wT4yB6cH1\n")
        monkeypatch.chdir(repo)
        seq_report = tmp_path / "seq.sarif"
        par_report = tmp_path / "par.sarif"
        args = ["--only", "secrets", "a.env"]

        seq = main(args + ["--sarif", str(seq_report)])
        par = main(args + ["--parallel", "--sarif", str(par_report)])

        assert seq == par == 1
        key = lambda r: (r["message"]["text"], r["level"])
        assert sorted(map(key, _results(seq_report))) == sorted(map(key, _results(par_report)))
        assert len(_results(seq_report)) == 2

    def test_log_file(self, repo, tmp_path):
        log = tmp_path / "snapshot.log"
        main(["--path", str(repo), "--skip", "all", "--log-file", str(log)])
        assert "Snapshot complete" in log.read_text()

    def test_malformed_lockfile_does_not_fail_the_scan(self, repo, capsys):
        (repo / "package-lock.json").write_text("[]")
        assert main(["--path", str(repo), "--only", "deps", "--severity", "low"]) == 0
        out = capsys.readouterr().out
        assert "[WARN]  package-lock.json: could not be parsed (ValueError)" in out
        assert "Error in deps check" not in out

    def test_unknown_check_is_warned(self, repo, capsys):
        (repo / "secret.env").write_text("SECRET=" + "x" * 20)
        assert main(["--path", str(repo), "--only", "dependencies"]) == 0
        assert "[WARN]  Unknown check: dependencies" in capsys.readouterr().out


class TestAllChecksWithFakes:
    @patch.dict("os.environ", {"GITHUB_TOKEN": "ghp_fake", "GITHUB_REPOSITORY": "owner/repo"})
    @patch("repo_snapshot.checks.branch_protection.git.current_branch", return_value="main")
    @patch("repo_snapshot.checks.branch_protection.Github")
    @patch("repo_snapshot.checks.iac_audit.shutil.which", return_value=None)
    def test_unprotected_branch_and_missing_tools(self, mock_which, mock_github_cls, mock_branch, repo, tmp_path):
        gh = MagicMock()
        mock_github_cls.return_value = gh
        gh.get_repo.return_value.get_branch.return_value.protected = False
        report = tmp_path / "out.sarif"

        code = main(["--path", str(repo), "--severity", "low", "--sarif", str(report), "--parallel"])

        assert code == 1
        messages = {r["message"]["text"]: r["level"] for r in _results(report)}
        assert messages["Branch main is NOT protected"] == "error"
        assert messages["Optional command 'tfsec' not found"] == "note"


class TestConfigErrors:
    def test_invalid_severity(self, tmp_path, capsys):
        assert main(["--path", str(tmp_path), "--severity", "invalid"]) == 2
        assert "Invalid severity" in capsys.readouterr().err

    def test_conflicting_filters(self, tmp_path, capsys):
        assert main(["--path", str(tmp_path), "--only", "secrets", "--skip", "secrets"]) == 2

    def test_bad_entropy_threshold(self, tmp_path):
        assert main(["--path", str(tmp_path), "--entropy-threshold", "lots"]) == 2

    def test_sarif_in_missing_directory(self, tmp_path, capsys):
        report = tmp_path / "missing" / "out.sarif"
        assert main(["--path", str(tmp_path), "--skip", "all", "--sarif", str(report)]) == 2
        assert "cannot write output file" in capsys.readouterr().err
        assert not report.exists()

    def test_log_file_in_missing_directory(self, tmp_path, capsys):
        log = tmp_path / "missing" / "snapshot.log"
        assert main(["--path", str(tmp_path), "--skip", "all", "--log-file", str(log)]) == 2
        assert "cannot write output file" in capsys.readouterr().err

    def test_unknown_flag(self):
        with pytest.raises(SystemExit) as exc:
            main(["--invalid"])
        assert exc.value.code == 2

    def test_quiet_and_verbose_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--quiet", "--verbose"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert f"snapshot v{VERSION}" in capsys.readouterr().out


class TestEntryPoint:
    @patch("repo_snapshot.main.main", return_value=1)
    def test_run_exits_with_status(self, mock_main):
        with pytest.raises(SystemExit) as exc:
            run()
        assert exc.value.code == 1
