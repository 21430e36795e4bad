import logging
from typing import Optional

from commit_spans.domain.interfaces import GitRepository
from commit_spans.domain.repository_analysis import RepositoryAnalysis
from commit_spans.domain.settings import AnalysisSettings

from .graph_builder import GraphBuilder
from .span_assigner import SpanAssigner, infer_time


def analyze(repository: GitRepository,
            settings: Optional[AnalysisSettings] = None) -> RepositoryAnalysis:
    """Discover the commit graph of ``repository`` then label it.

    Errors limited to one branch or one subtree are collected on the returned
    analysis. Invariant violations and exceeded limits propagate.
    """
    analysis = RepositoryAnalysis(settings)

    logging.info("Populating commits by iterating branches")
    GraphBuilder(analysis, repository).build()

    logging.info("Assigning spans and inferred times")
    SpanAssigner(analysis).assign()

    return analysis


__all__ = ["GraphBuilder", "SpanAssigner", "analyze", "infer_time"]
