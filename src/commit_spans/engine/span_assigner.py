import datetime
import logging
import random
from collections import deque
from typing import Optional

from commit_spans.domain.exceptions import (DanglingMergeParent,
                                            DanglingParent,
                                            InvariantViolation,
                                            WalkLimitExceeded)
from commit_spans.domain.git_objects import SPAN_NOT_SET, CommitNode
from commit_spans.domain.repository_analysis import RepositoryAnalysis
from commit_spans.domain.utils import ONE_MILLISECOND


def infer_time(committer_time: datetime.datetime,
               baseline: datetime.datetime) -> datetime.datetime:
    """Keep the committer clock when it moves forward, otherwise nudge the baseline."""
    if committer_time > baseline:
        return committer_time
    return baseline + ONE_MILLISECOND


class SpanAssigner:
    """Label every discovered commit with a span and an inferred time.

    Commits are processed from a worklist seeded with the roots. A commit
    enters the worklist once all of its parents are labeled, so a merge
    commit is labeled exactly once, after the last of its parents.

    ``rng`` picks the next worklist entry at random instead of in FIFO order.
    Labels stay valid whatever the order, only span numbers change.
    """

    def __init__(self, analysis: RepositoryAnalysis, rng: Optional[random.Random] = None) -> None:
        self.analysis = analysis
        self.rng = rng
        self.settled: list[str] = []
        self._outstanding: dict[str, int] = {}
        self._worklist: deque[str] = deque()
        # (parent, child) -> index of the child span in the parent child_spans
        self._slots: dict[tuple[str, str], int] = {}

    def assign(self) -> None:
        commits = self.analysis.commits
        self._outstanding = {sha: len(set(c.parents)) for sha, c in commits.items()}

        for root in self.analysis.roots:
            span = self.analysis.allocate_span()
            self._settle(root, span, root.committer_time)
            logging.debug("Root %s starts span %d", root.sha, span)

        while self._worklist:
            commit = commits[self._next()]
            self._process(commit)

        self._check_unassigned()
        logging.info('Commits labeled: %d with %d spans', len(self.settled), self.analysis.span_count)

    def _next(self) -> str:
        if self.rng is None:
            return self._worklist.popleft()
        index = self.rng.randrange(len(self._worklist))
        self._worklist.rotate(-index)
        return self._worklist.popleft()

    def _process(self, commit: CommitNode) -> None:
        commits = self.analysis.commits
        split = commit.is_split

        if not commit.children:
            logging.debug("%s: Reached the end commit", commit.sha)

        # child_spans follows children order, merge slots are filled later
        for index, child_sha in enumerate(commit.children):
            if commits[child_sha].is_merge or (split and index > 0):
                self._slots[(commit.sha, child_sha)] = len(commit.child_spans)
                commit.child_spans.append(SPAN_NOT_SET)

        for index, child_sha in enumerate(commit.children):
            child = commits[child_sha]
            self._outstanding[child_sha] -= 1
            if self._outstanding[child_sha] < 0:
                raise InvariantViolation(
                    f"Commit {child_sha} was reached from more parents than it has")

            if not child.is_merge:
                if split and index > 0:
                    span = self.analysis.allocate_span()
                    commit.child_spans[self._slots.pop((commit.sha, child_sha))] = span
                    child.parent_spans.append(commit.span)
                    logging.debug("%s: Split to %s on span %d", commit.sha, child_sha, span)
                else:
                    span = commit.span
                self._settle(child, span, commit.inferred_time)
                continue

            if self._outstanding[child_sha] > 0:
                logging.debug("%s: Merge commit waits for %d more parents",
                              child_sha, self._outstanding[child_sha])
                continue

            parents = [commits[p] for p in child.parents]
            span = self.analysis.allocate_span()
            for parent in parents:
                child.parent_spans.append(parent.span)
                slot = self._slots.pop((parent.sha, child_sha), None)
                if slot is not None:
                    parent.child_spans[slot] = span
            baseline = max(parent.inferred_time for parent in parents)
            logging.debug("%s: Merge commit with span %d and reference clock %s",
                          child_sha, span, baseline)
            self._settle(child, span, baseline)

    def _settle(self, commit: CommitNode, span: int, baseline: datetime.datetime) -> None:
        if commit.is_root:
            inferred = commit.committer_time
        else:
            inferred = infer_time(commit.committer_time, baseline)
        commit.settle(span, inferred)
        self.settled.append(commit.sha)
        self._worklist.append(commit.sha)

        max_commits = self.analysis.settings.max_commits
        if max_commits is not None and len(self._worklist) > max_commits:
            raise WalkLimitExceeded(f"Labeling worklist grew past {max_commits} commits")

    def _check_unassigned(self) -> None:
        """Report commits kept unlabeled by missing parents, fail on anything else."""
        commits = self.analysis.commits
        unassigned = [c for c in commits.values() if not c.is_assigned]
        if not unassigned:
            return

        # commits naming a parent that was never discovered
        blocked: deque[CommitNode] = deque()
        for commit in unassigned:
            missing = [p for p in commit.parents if p not in commits]
            if not missing:
                continue
            error_class = DanglingMergeParent if commit.is_merge else DanglingParent
            self.analysis.report(error_class(commit.sha, missing))
            commit.blocked_by = commit.sha
            blocked.append(commit)

        # and everything that can only be labeled after them
        while blocked:
            commit = blocked.popleft()
            for child_sha in commit.children:
                child = commits[child_sha]
                if child.is_assigned or child.blocked_by is not None:
                    continue
                child.blocked_by = commit.blocked_by
                blocked.append(child)

        cyclic = [c.sha for c in unassigned if c.blocked_by is None]
        if cyclic:
            raise InvariantViolation(
                f"Commits unreachable from any root, history is not a DAG: {', '.join(cyclic)}")
        logging.warning("%d commits left unlabeled because of missing parents", len(unassigned))
