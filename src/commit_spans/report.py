import logging
from typing import Any

from commit_spans.domain.enums import CommitRole
from commit_spans.domain.exceptions import (CommitNotFound, DanglingParent,
                                            ReferenceResolutionError)
from commit_spans.domain.git_objects import SPAN_NOT_SET, CommitNode
from commit_spans.domain.repository_analysis import RepositoryAnalysis


def commit_to_dict(commit: CommitNode) -> dict[str, Any]:
    return {
        "sha": commit.sha,
        "parents": list(commit.parents),
        "children": list(commit.children),
        "author_time": commit.author_time.isoformat(),
        "committer_time": commit.committer_time.isoformat(),
        # unset span and time stay null, never a valid looking value
        "inferred_time": commit.inferred_time.isoformat() if commit.inferred_time else None,
        "span": commit.span if commit.is_assigned else None,
        "parent_spans": list(commit.parent_spans),
        "child_spans": [None if span == SPAN_NOT_SET else span for span in commit.child_spans],
        "role": commit.role.name.lower(),
        "tags": sorted(commit.tags),
        "branch_heads": sorted(commit.branch_heads),
        "branch_membership": dict(sorted(commit.branch_membership.items())),
        "blocked_by": commit.blocked_by,
    }


def error_to_dict(error: Exception) -> dict[str, Any]:
    entry: dict[str, Any] = {"type": type(error).__name__, "message": str(error)}
    if isinstance(error, CommitNotFound):
        entry["sha"] = error.sha
        entry["branch"] = error.branch
    elif isinstance(error, ReferenceResolutionError):
        entry["reference"] = error.name
        entry["kind"] = error.kind
    elif isinstance(error, DanglingParent):
        entry["sha"] = error.sha
        entry["missing"] = error.missing
    return entry


def analysis_to_dict(analysis: RepositoryAnalysis) -> dict[str, Any]:
    snapshot = analysis.snapshot
    return {
        "branches": dict(snapshot.branches),
        "tags": dict(snapshot.tags),
        "roots": dict(snapshot.roots),
        "commits": {sha: commit_to_dict(c) for sha, c in analysis.commits.items()},
        "errors": [error_to_dict(e) for e in analysis.errors],
    }


def log_summary(analysis: RepositoryAnalysis) -> None:
    roles = {role: 0 for role in CommitRole}
    splits = 0
    for commit in analysis:
        roles[commit.role] += 1
        splits += commit.is_split

    logging.info('Total commits: %d', len(analysis))
    logging.info('Total roots: %d', roles[CommitRole.ROOT])
    logging.info('Total merge commits: %d', roles[CommitRole.MERGE])
    logging.info('Total split commits: %d', splits)
    logging.info('Total spans: %d', analysis.span_count)

    unassigned = analysis.unassigned()
    if unassigned:
        logging.warning('Commits left without span: %d', len(unassigned))
        for commit in unassigned:
            logging.debug('%s blocked by %s', commit.sha, commit.blocked_by)

    for error in analysis.errors:
        logging.error('%s: %s', type(error).__name__, error)
