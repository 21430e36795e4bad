#!/bin/env python3
import argparse
import json
import logging
import os
import sys
from typing import Optional

from commit_spans.domain.exceptions import CommitGraphError
from commit_spans.domain.interfaces import GitRepository
from commit_spans.domain.settings import AnalysisSettings
from commit_spans.domain.utils import get_remote_origin
from commit_spans.engine import analyze
from commit_spans.infra import Github, Gitlab, LocalGit
from commit_spans.report import analysis_to_dict, log_summary

DEFAULT_SAVE_FILE = "commit_spans.json"


def create_cli() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Assign spans and inferred times to the commits of a repository")
    parser.add_argument("--git-dir", default=os.getcwd())
    parser.add_argument("--server", choices=("local", "auto", "github", "gitlab"), default="local",
                        help="where to read the history from, auto picks it from the remote url")
    parser.add_argument("--remote", default=None,
                        help="read the branches of this remote instead of the local ones")
    parser.add_argument("--fetch", action="store_true",
                        help="fetch all remotes before reading a local clone")
    parser.add_argument("--workers", type=int, default=None,
                        help="branches discovered in parallel")
    parser.add_argument("--max-depth", type=int, default=None,
                        help="abort when a branch has a longer ancestor chain")
    parser.add_argument("--max-commits", type=int, default=None,
                        help="abort when more commits are discovered")
    parser.add_argument(
        "--save", nargs='?', const=DEFAULT_SAVE_FILE, default=None,
        help=f"Create a json file containing the annotated commits (default: {DEFAULT_SAVE_FILE})")
    debug_level = parser.add_mutually_exclusive_group()
    debug_level.add_argument(
        '-d', '--debug',
        help="activate DEBUG output",
        default=False,
        action='store_true'
    )
    debug_level.add_argument(
        '-q', '--quiet',
        help="suppress INFO output",
        default=False,
        action='store_true'
    )

    return parser


def create_settings(args: argparse.Namespace) -> AnalysisSettings:
    settings = AnalysisSettings.from_env()
    if args.workers is not None:
        settings.workers = args.workers
    if args.max_depth is not None:
        settings.max_depth = args.max_depth
    if args.max_commits is not None:
        settings.max_commits = args.max_commits
    if settings.workers < 1:
        raise ValueError(f"workers must be >= 1, got {settings.workers}")
    return settings


def create_repository(args: argparse.Namespace) -> GitRepository:
    if args.server == "local":
        return LocalGit(args.git_dir, remote=args.remote)

    server, folder, repository = get_remote_origin(args.git_dir, args.remote or "origin")

    if args.server == "auto":
        if server == "github.com":
            logging.info("Automatically found %s so will query Github API", server)
            return Github(server, folder, repository)
        if server == "gitlab.com":
            logging.info("Automatically found %s so will query Gitlab API", server)
            return Gitlab(server, folder, repository)
        raise NotImplementedError(
            f"{server} cannot be automatically handled yet, maybe try using --server argument to manually specify it")
    if args.server == "github":
        return Github(server, folder, repository)
    return Gitlab(server, folder, repository)


def main(argv: Optional[list[str]] = None) -> int:
    parser: argparse.ArgumentParser = create_cli()
    args: argparse.Namespace = parser.parse_args(argv)

    if args.debug:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(levelname)s - %(message)s')
    elif args.quiet:
        logging.basicConfig(format='%(asctime)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(asctime)s - %(levelname)s - %(message)s')

    try:
        settings = create_settings(args)
    except ValueError as e:
        parser.error(str(e))

    try:
        gitRepository = create_repository(args)
        if args.fetch:
            logging.info("Fetching %s", gitRepository)
            gitRepository.fetch()
        analysis = analyze(gitRepository, settings)
    except CommitGraphError as e:
        logging.critical("%s: %s", type(e).__name__, e)
        return 2

    log_summary(analysis)

    if args.save is not None:
        with open(args.save, 'w') as f:
            json.dump(analysis_to_dict(analysis), f, indent=2)
        logging.info("Annotated commits saved in %s", args.save)

    if not analysis.ok:
        logging.error("%d errors while processing the repository", len(analysis.errors))
        return 1

    logging.info("all good !")
    return 0


if __name__ == "__main__":
    sys.exit(main())
