"""Pytest fixtures shared by the engine tests."""

import pytest

from tests.helpers import FakeRepository


@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return FakeRepository()


@pytest.fixture
def linear_repository():
    """A <- B <- C on main, clocks moving forward."""
    repository = FakeRepository()
    repository.commit("A", committed=0)
    repository.commit("B", ("A",), committed=10)
    repository.commit("C", ("B",), committed=20)
    repository.branch("main", "C")
    return repository


@pytest.fixture
def split_repository():
    """A split into B (main) and C (feature)."""
    repository = FakeRepository()
    repository.commit("A", committed=0)
    repository.commit("B", ("A",), committed=10)
    repository.commit("C", ("A",), committed=20)
    repository.branch("main", "B")
    repository.branch("feature", "C")
    return repository


@pytest.fixture
def diamond_repository():
    """A split into B and C, merged back into D whose clock lags behind C."""
    repository = FakeRepository()
    repository.commit("A", committed=0)
    repository.commit("B", ("A",), committed=10)
    repository.commit("C", ("A",), committed=20)
    repository.commit("D", ("B", "C"), committed=15)
    repository.branch("main", "D")
    repository.tag("v1.0", "B")
    return repository
