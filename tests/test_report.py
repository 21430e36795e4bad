"""Tests for the export and summary of an analysis."""

import json
import logging

from commit_spans.engine import analyze
from commit_spans.report import analysis_to_dict, commit_to_dict, log_summary
from tests.helpers import sha


class TestExport:
    def test_commit_fields(self, diamond_repository):
        """A labeled commit exports its span, times and references."""
        analysis = analyze(diamond_repository)

        entry = commit_to_dict(analysis[sha("D")])

        assert entry["sha"] == sha("D")
        assert entry["parents"] == [sha("B"), sha("C")]
        assert entry["span"] == 3
        assert entry["parent_spans"] == [1, 2]
        assert entry["role"] == "merge"
        assert entry["branch_heads"] == ["main"]
        assert entry["inferred_time"] == "2024-01-01T00:00:20.001000+00:00"
        assert entry["blocked_by"] is None

    def test_unset_span_is_null(self, repository):
        """Unlabeled commits export null span and time."""
        repository.commit("A")
        repository.commit("B", ("A", "X"))
        repository.branch("main", "B")

        analysis = analyze(repository)
        entry = commit_to_dict(analysis[sha("B")])

        assert entry["span"] is None
        assert entry["inferred_time"] is None
        assert entry["blocked_by"] == sha("B")
        # the slot kept for the merge on its parent stays unset
        assert commit_to_dict(analysis[sha("A")])["child_spans"] == [None]

    def test_analysis_is_json_serializable(self, diamond_repository):
        """The whole export goes through json."""
        diamond_repository.branch("ghost", "nowhere")
        analysis = analyze(diamond_repository)

        data = json.loads(json.dumps(analysis_to_dict(analysis)))

        assert set(data["commits"]) == {sha(label) for label in "ABCD"}
        assert data["roots"] == {sha("A"): "main"}
        assert data["tags"] == {"v1.0": sha("B")}
        assert data["errors"] == [{
            "type": "CommitNotFound",
            "message": f"Commit {sha('nowhere')} not found while walking branch ghost",
            "sha": sha("nowhere"),
            "branch": "ghost",
        }]


class TestLogSummary:
    def test_counts_logged(self, diamond_repository, caplog):
        """Counts of commits, merges and spans are logged."""
        analysis = analyze(diamond_repository)

        with caplog.at_level(logging.INFO):
            log_summary(analysis)

        assert "Total commits: 4" in caplog.text
        assert "Total merge commits: 1" in caplog.text
        assert "Total split commits: 1" in caplog.text
        assert "Total spans: 3" in caplog.text

    def test_errors_logged(self, repository, caplog):
        """Collected errors are logged with their type."""
        repository.commit("A")
        repository.commit("B", ("A", "X"))
        repository.branch("main", "B")
        analysis = analyze(repository)

        with caplog.at_level(logging.INFO):
            log_summary(analysis)

        assert "CommitNotFound" in caplog.text
        assert "DanglingMergeParent" in caplog.text
        assert "Commits left without span: 1" in caplog.text
