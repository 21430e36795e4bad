import logging
import threading
from typing import Iterator, Optional

from commit_spans.domain.exceptions import CommitGraphError
from commit_spans.domain.git_objects import START_SPAN, CommitNode
from commit_spans.domain.settings import AnalysisSettings
from commit_spans.domain.snapshot import RepositorySnapshot


class RepositoryAnalysis:
    """State of one analysis run.

    Owns the commit table, the references snapshot, the span counter and the
    errors collected along the way. The builder and the assigner receive it
    explicitly, nothing is shared through module globals.
    """

    def __init__(self, settings: Optional[AnalysisSettings] = None) -> None:
        self.settings = settings if settings is not None else AnalysisSettings()
        self.commits: dict[str, CommitNode] = {}
        self.snapshot = RepositorySnapshot()
        self.errors: list[CommitGraphError] = []
        # hashes the reader failed to resolve, never read twice
        self.missing: set[str] = set()
        self.lock = threading.RLock()
        self._next_span = START_SPAN

    def __contains__(self, sha: str) -> bool:
        return sha in self.commits

    def __getitem__(self, sha: str) -> CommitNode:
        return self.commits[sha]

    def __iter__(self) -> Iterator[CommitNode]:
        return iter(self.commits.values())

    def __len__(self) -> int:
        return len(self.commits)

    def get(self, sha: str) -> Optional[CommitNode]:
        return self.commits.get(sha)

    def allocate_span(self) -> int:
        with self.lock:
            span = self._next_span
            self._next_span += 1
        return span

    @property
    def span_count(self) -> int:
        return self._next_span - START_SPAN

    def report(self, error: CommitGraphError) -> None:
        with self.lock:
            self.errors.append(error)
        logging.warning("%s", error)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def roots(self) -> list[CommitNode]:
        return [self.commits[sha] for sha in self.snapshot.roots if sha in self.commits]

    def unassigned(self) -> list[CommitNode]:
        return [c for c in self.commits.values() if not c.is_assigned]
