import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Optional

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.exceptions import (CommandExecutionError,
                                            CommitNotFound, CommitReadError,
                                            GitError,
                                            ReferenceResolutionError,
                                            RepositoryError,
                                            WalkLimitExceeded)
from commit_spans.domain.git_objects import CommitNode, RawCommit, Reference
from commit_spans.domain.interfaces import GitRepository
from commit_spans.domain.repository_analysis import RepositoryAnalysis
from commit_spans.domain.snapshot import RepositorySnapshot


class GraphBuilder:
    """Discover the commit graph by walking back from every branch tip.

    Each commit is read once from the repository. Walks from different tips
    meet on already known commits, which is where split commits show up.
    """

    def __init__(self, analysis: RepositoryAnalysis, repository: GitRepository) -> None:
        self.analysis = analysis
        self.repository = repository
        self.settings = analysis.settings
        # sha -> (child, branch) edges seen while the sha was being read
        self._pending: dict[str, list[tuple[Optional[str], str]]] = {}
        # set once a walk failed fatally, the other workers stop early
        self._stopped = threading.Event()

    def build(self) -> RepositorySnapshot:
        snapshot = self.analysis.snapshot

        for ref in self._resolve(self.repository.list_branch_tips, ReferenceKind.BRANCH):
            snapshot.branches[ref.name] = ref.sha
        for ref in self._resolve(self.repository.list_tags, ReferenceKind.TAG):
            snapshot.tags[ref.name] = ref.sha
        logging.info('Branches found: %s', len(snapshot.branches))
        logging.info('Tags found: %s', len(snapshot.tags))

        tips = list(snapshot.branches.items())
        if self.settings.workers > 1 and len(tips) > 1:
            logging.info("Discovering %d branches with %d workers", len(tips), self.settings.workers)
            executor = ThreadPoolExecutor(max_workers=self.settings.workers)
            try:
                # consuming the results re-raises fatal errors from the workers
                list(executor.map(lambda tip: self.discover(tip[1], tip[0]), tips))
            except BaseException:
                self._stopped.set()
                executor.shutdown(cancel_futures=True)
                raise
            executor.shutdown()
            self._replay(tips)
        else:
            for name, sha in tips:
                logging.info("Iterating branch %s at %s", name, sha)
                for root in self.discover(sha, name):
                    snapshot.roots.setdefault(root, name)
                    logging.debug("Found root %s traversing branch %s", root, name)

        self._mark_references()
        logging.info('Commits discovered: %s', len(self.analysis))
        return snapshot

    def discover(self, tip: str, branch: str) -> list[str]:
        """Walk back from ``tip`` and return the roots this walk reached first."""
        roots: list[str] = []
        # (sha, child that led here, depth from the tip)
        stack: list[tuple[str, Optional[str], int]] = [(tip, None, 1)]

        while stack:
            if self._stopped.is_set():
                return roots
            sha, child, depth = stack.pop()
            if not self._claim(sha, child, branch):
                continue

            max_depth = self.settings.max_depth
            if max_depth is not None and depth > max_depth:
                self._stopped.set()
                raise WalkLimitExceeded(
                    f"Branch {branch} goes deeper than {max_depth} commits at {sha}")

            try:
                raw = self.repository.get_commit(sha)
            except CommitNotFound:
                self._abandon(sha)
                self.analysis.report(CommitNotFound(sha, branch))
                logging.error("Aborting walk of branch %s", branch)
                return roots
            except (RepositoryError, GitError, CommandExecutionError) as e:
                self._abandon(sha)
                self.analysis.report(CommitReadError(sha, branch, e))
                logging.error("Aborting walk of branch %s", branch)
                return roots

            node = self._create(sha, raw, child, branch)
            logging.debug("Storing commit: %s <- %s", sha, child)

            if node.is_root:
                logging.debug("Reached the first commit %s", sha)
                roots.append(sha)
                continue
            if node.is_merge:
                logging.debug("Merge commit %s from %d commits", sha, len(node.parents))
            # first parent on top, explored first
            for parent in reversed(node.parents):
                stack.append((parent, sha, depth + 1))

        return roots

    def _resolve(self, lister: Callable[[], Iterable[Reference]],
                 kind: ReferenceKind) -> list[Reference]:
        refs: list[Reference] = []
        for ref in lister():
            if not ref.resolved:
                self.analysis.report(
                    ReferenceResolutionError(ref.name, kind.value, f'got {ref.sha!r}'))
                continue
            refs.append(ref)
        return refs

    def _claim(self, sha: str, child: Optional[str], branch: str) -> bool:
        """Return True when the caller must read ``sha`` and create its node."""
        with self.analysis.lock:
            node = self.analysis.get(sha)
            if node is not None:
                self._record_visit(node, child, branch)
                return False
            if sha in self.analysis.missing:
                return False
            if sha in self._pending:
                self._pending[sha].append((child, branch))
                return False

            max_commits = self.settings.max_commits
            if max_commits is not None and len(self.analysis) + len(self._pending) >= max_commits:
                self._stopped.set()
                raise WalkLimitExceeded(f"More than {max_commits} commits discovered")

            self._pending[sha] = []
            return True

    def _create(self, sha: str, raw: RawCommit, child: Optional[str], branch: str) -> CommitNode:
        node = CommitNode.from_raw(raw)
        with self.analysis.lock:
            self.analysis.commits[sha] = node
            node.visit(branch)
            node.add_child(child)
            for queued_child, queued_branch in self._pending.pop(sha, []):
                self._record_visit(node, queued_child, queued_branch)
        return node

    def _abandon(self, sha: str) -> None:
        with self.analysis.lock:
            self._pending.pop(sha, None)
            self.analysis.missing.add(sha)

    @staticmethod
    def _record_visit(node: CommitNode, child: Optional[str], branch: str) -> None:
        node.add_child(child)
        node.visit(branch)
        if node.is_split:
            logging.debug("Found split commit: %s <- %s", node.sha, child)
        else:
            logging.debug("Commit already exists: %s <- %s", node.sha, child)

    def _replay(self, tips: list[tuple[str, str]]) -> None:
        """Rebuild child order, visit counts and roots as a one-worker run would.

        Parallel walks interleave, so the order in which children were
        appended depends on scheduling. The parents are all known by now, so
        the sequential walk can be replayed in memory.
        """
        with self.analysis.lock:
            for node in self.analysis:
                node.children.clear()
                node.branch_membership.clear()

            roots: dict[str, str] = {}
            visited: set[str] = set()
            failed: set[str] = set()
            for name, tip in tips:
                stack: list[tuple[str, Optional[str]]] = [(tip, None)]
                while stack:
                    sha, child = stack.pop()
                    node = self.analysis.get(sha)
                    if node is None:
                        if sha in self.analysis.missing and sha not in failed:
                            # the walk that first hit a missing commit stops there
                            failed.add(sha)
                            break
                        continue
                    if sha in visited:
                        node.add_child(child)
                        node.visit(name)
                        continue
                    visited.add(sha)
                    node.visit(name)
                    node.add_child(child)
                    if node.is_root:
                        roots.setdefault(sha, name)
                    for parent in reversed(node.parents):
                        stack.append((parent, sha))

            self.analysis.snapshot.roots = roots

    def _mark_references(self) -> None:
        snapshot = self.analysis.snapshot

        for sha, branch in snapshot.roots.items():
            logging.info("Root of the repo is %s in %s", sha, branch)

        for tag, sha in snapshot.tags.items():
            node = self.analysis.get(sha)
            if node is None:
                logging.warning("Tag %s points at %s which no branch reaches", tag, sha)
                continue
            node.tags.add(tag)
            logging.debug("%s: Tag %s", sha, tag)

        for branch, sha in snapshot.branches.items():
            node = self.analysis.get(sha)
            if node is None:
                continue
            node.branch_heads.add(branch)
            logging.debug("%s: Branch %s", sha, branch)
