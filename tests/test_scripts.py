"""
Tests for the command line scripts.

Network access and the browser are mocked; the scripts are imported
from the scripts/ directory the same way they are run.
"""

import pytest
import json
import sys
from contextlib import contextmanager
from pathlib import Path
from unittest.mock import Mock, patch
import pandas as pd
import requests

import matplotlib
matplotlib.use("Agg")

# Add src and scripts directories to path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

import scrape_constituencies
import scrape_static_table
from election_scraper.tables import TableScraper


@pytest.fixture
def page_html():
    return """
    <table class="results">
        <tr><th>Candidate</th><th>Turnout</th><th>Votes</th></tr>
        <tr><td>Alice</td><td>61.0%</td><td>1,220</td></tr>
        <tr><td>Bob</td><td>64.5%</td><td>1,290</td></tr>
        <tr><td>Cara</td><td>70.0%</td><td>1,400</td></tr>
    </table>
    """


@pytest.fixture(autouse=True)
def run_in_tmp(tmp_path, monkeypatch):
    """Keep log files and outputs inside a temporary directory."""
    monkeypatch.chdir(tmp_path)


class TestStaticTableScript:
    """Test scripts/scrape_static_table.py."""

    def test_parse_renames(self):
        assert scrape_static_table.parse_renames(["Votes=votes", "% Share=share"]) == {
            "Votes": "votes", "% Share": "share"
        }

    def test_parse_renames_rejects_bad_pair(self):
        with pytest.raises(ValueError):
            scrape_static_table.parse_renames(["Votes"])

    def test_main_writes_csv_and_regresses(self, page_html, tmp_path, capsys):
        output = tmp_path / "table.csv"

        with patch.object(TableScraper, "fetch_page", return_value=page_html):
            code = scrape_static_table.main([
                "--url", "https://example.org/results",
                "--selector", "table.results",
                "--rename", "Votes=votes",
                "--output", str(output),
                "--regress", "Turnout", "votes",
                "--quiet",
            ])

        assert code == 0
        saved = pd.read_csv(output)
        assert list(saved["votes"]) == [1220, 1290, 1400]
        assert "votes ~ Turnout (n=3)" in capsys.readouterr().out

    def test_main_reads_config_file(self, page_html, tmp_path):
        config_path = tmp_path / "table.json"
        config_path.write_text(json.dumps({
            "url": "https://example.org/results",
            "column_map": {"Candidate": "candidate"}
        }))
        output = tmp_path / "table.csv"

        with patch.object(TableScraper, "fetch_page", return_value=page_html):
            code = scrape_static_table.main(["--config", str(config_path), "--output", str(output), "--quiet"])

        assert code == 0
        assert "candidate" in pd.read_csv(output).columns

    def test_main_saves_plot(self, page_html, tmp_path):
        figure = tmp_path / "plot.png"

        with patch.object(TableScraper, "fetch_page", return_value=page_html):
            code = scrape_static_table.main([
                "--url", "https://example.org/results",
                "--plot", "Candidate", "Votes",
                "--figure", str(figure),
                "--quiet",
            ])

        assert code == 0
        assert figure.exists()

    def test_main_requires_url(self):
        assert scrape_static_table.main(["--quiet"]) == 1

    def test_main_reports_http_errors(self):
        with patch.object(TableScraper, "fetch_page",
                          side_effect=requests.exceptions.HTTPError("503 Server Error")):
            assert scrape_static_table.main(["--url", "https://example.org", "--quiet"]) == 1

    def test_main_reports_missing_table(self, page_html):
        with patch.object(TableScraper, "fetch_page", return_value=page_html):
            code = scrape_static_table.main([
                "--url", "https://example.org", "--selector", "table.missing", "--quiet"
            ])
        assert code == 1


class TestConstituencyScript:
    """Test scripts/scrape_constituencies.py."""

    @pytest.fixture
    def config_path(self, tmp_path):
        path = tmp_path / "lookup.json"
        path.write_text(json.dumps({"url": "https://results.example.org", "delay": 0}))
        return path

    @pytest.fixture
    def combined(self):
        return pd.DataFrame({
            "constituency": ["Varanasi", "Varanasi"],
            "party": ["BJP", "INC"],
            "candidate": ["Modi", "Rai"],
            "votes": [612970.0, 460457.0],
            "vote_share": [54.24, 40.74],
        })

    @staticmethod
    @contextmanager
    def fake_session(headless=True):
        yield Mock()

    def test_collect_from_command_line(self):
        args = scrape_constituencies.build_parser().parse_args(
            ["--constituency", "Varanasi", "--constituency", "Amethi", "--limit", "1"]
        )
        assert scrape_constituencies.collect_constituencies(args) == ["Varanasi"]

    def test_collect_from_names_table(self, page_html):
        args = scrape_constituencies.build_parser().parse_args(
            ["--constituency", "Bob", "--names-url", "https://example.org/list", "--names-column", "Candidate"]
        )

        with patch.object(TableScraper, "fetch_page", return_value=page_html):
            names = scrape_constituencies.collect_constituencies(args)

        assert names == ["Bob", "Alice", "Cara"]

    def test_main_runs_batch_and_writes_csv(self, config_path, combined, tmp_path, capsys):
        output = tmp_path / "results.csv"

        with patch.object(scrape_constituencies, "browser_session", self.fake_session), \
                patch.object(scrape_constituencies, "scrape_constituencies",
                             return_value=combined) as mock_batch:
            code = scrape_constituencies.main([
                "--config", str(config_path),
                "--constituency", "Varanasi",
                "--continue-on-error",
                "--output", str(output),
                "--quiet",
            ])

        assert code == 0
        lookup, names = mock_batch.call_args.args
        assert names == ["Varanasi"]
        assert lookup.config.url == "https://results.example.org"
        assert mock_batch.call_args.kwargs["continue_on_error"] is True
        assert len(pd.read_csv(output)) == 2
        assert "BJP" in capsys.readouterr().out

    def test_main_without_constituencies_fails(self, config_path):
        assert scrape_constituencies.main(["--config", str(config_path), "--quiet"]) == 1

    def test_main_without_url_fails(self):
        assert scrape_constituencies.main(["--constituency", "Varanasi", "--quiet"]) == 1

    def test_main_reports_lookup_failure(self, config_path):
        with patch.object(scrape_constituencies, "browser_session", self.fake_session), \
                patch.object(scrape_constituencies, "scrape_constituencies",
                             side_effect=RuntimeError("page changed")):
            code = scrape_constituencies.main([
                "--config", str(config_path), "--constituency", "Varanasi", "--quiet"
            ])

        assert code == 1
