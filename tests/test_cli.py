"""Tests for the command line entry point."""

import json

import pytest

import commit_spans.__main__ as cli
from commit_spans.infra import Github, Gitlab, LocalGit
from tests.helpers import sha


@pytest.fixture
def use_repository(monkeypatch):
    """Make the CLI read the given in-memory repository."""
    def use(repository):
        monkeypatch.setattr(cli, "create_repository", lambda args: repository)
    return use


def parse(*argv):
    return cli.create_cli().parse_args(list(argv))


class TestMain:
    def test_clean_run(self, use_repository, diamond_repository):
        """A run without error exits 0."""
        use_repository(diamond_repository)

        assert cli.main([]) == 0

    def test_save(self, use_repository, diamond_repository, tmp_path):
        """--save writes the annotated commits as json."""
        use_repository(diamond_repository)
        target = tmp_path / "out.json"

        assert cli.main(["--save", str(target)]) == 0

        data = json.loads(target.read_text())
        assert data["commits"][sha("D")]["span"] == 3

    def test_collected_errors(self, use_repository, diamond_repository):
        """Errors limited to a branch exit 1."""
        diamond_repository.branch("ghost", "nowhere")
        use_repository(diamond_repository)

        assert cli.main(["-q"]) == 1

    def test_fatal_error(self, use_repository, linear_repository):
        """An exceeded limit exits 2."""
        use_repository(linear_repository)

        assert cli.main(["--max-depth", "1"]) == 2

    def test_parallel_workers(self, use_repository, diamond_repository):
        """--workers is accepted."""
        use_repository(diamond_repository)

        assert cli.main(["--workers", "3"]) == 0

    def test_invalid_environment(self, use_repository, diamond_repository, monkeypatch):
        """An invalid setting is a usage error."""
        use_repository(diamond_repository)
        monkeypatch.setenv("COMMIT_SPANS_WORKERS", "many")

        with pytest.raises(SystemExit) as excinfo:
            cli.main([])
        assert excinfo.value.code == 2


class TestCreateSettings:
    def test_flags_override_environment(self, monkeypatch):
        """Command line flags win over the environment."""
        monkeypatch.setenv("COMMIT_SPANS_WORKERS", "2")
        monkeypatch.setenv("COMMIT_SPANS_MAX_DEPTH", "10")

        settings = cli.create_settings(parse("--workers", "5"))

        assert settings.workers == 5
        assert settings.max_depth == 10

    def test_zero_workers(self):
        """Zero workers is rejected."""
        with pytest.raises(ValueError):
            cli.create_settings(parse("--workers", "0"))


class TestCreateRepository:
    @pytest.fixture
    def origin(self, monkeypatch):
        def set_origin(server):
            monkeypatch.setattr(cli, "get_remote_origin",
                                lambda git_dir, remote: (server, "octo", "project"))
        return set_origin

    def test_local(self):
        """The default reads the clone with git."""
        repository = cli.create_repository(parse("--git-dir", "/repo", "--remote", "origin"))

        assert isinstance(repository, LocalGit)
        assert repository.git_dir == "/repo"
        assert repository.remote == "origin"

    def test_auto_github(self, origin):
        """github.com remotes are read through the GitHub API."""
        origin("github.com")

        repository = cli.create_repository(parse("--server", "auto"))

        assert isinstance(repository, Github)
        assert str(repository) == "github.com/octo/project"

    def test_auto_unknown(self, origin):
        """Unknown servers need --server."""
        origin("git.example.com")

        with pytest.raises(NotImplementedError):
            cli.create_repository(parse("--server", "auto"))

    def test_gitlab(self, origin, monkeypatch):
        """--server gitlab reads through the GitLab API."""
        origin("git.example.com")
        monkeypatch.setenv("GITLAB_TOKEN", "secret")

        repository = cli.create_repository(parse("--server", "gitlab"))

        assert isinstance(repository, Gitlab)
        assert repository.hostname == "git.example.com"

