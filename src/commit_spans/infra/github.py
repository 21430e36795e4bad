import json
import logging
import random
import shlex
import subprocess as sp
import time
from typing import Any

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.exceptions import (CommitNotFound,
                                            ObjectNotFoundError,
                                            RepositoryError)
from commit_spans.domain.git_objects import RawCommit, Reference
from commit_spans.domain.interfaces import RemoteGitRepository
from commit_spans.domain.utils import parse_iso_timestamp

NOT_FOUND_MESSAGES = ("http 404", "no commit found for sha", "http 422")


class Github(RemoteGitRepository):
    """Read a GitHub repository through the ``gh`` command line."""

    def __sleep_to_reset_rate_limit(self, rate_limit_info: dict[str, Any]) -> None:
        if rate_limit_info['remaining'] == 0:
            time_to_sleep = int(rate_limit_info['reset']) - time.time() + 10
            logging.debug("Primary rate limit encountered, will sleep %dm", int(time_to_sleep / 60))
            time.sleep(time_to_sleep)
        else:
            logging.debug("Probably secondary rate limit occured, will sleep 60s")
            time.sleep(60)

    def __run(self, cmd: str) -> tuple[int, bytes, bytes]:
        with sp.Popen(shlex.split(cmd), stdout=sp.PIPE, stderr=sp.PIPE) as p:
            stdout, stderr = p.communicate()
        return p.returncode, stdout, stderr

    def __query_api_binary(self, cmd: str) -> bytes:
        failed = 0

        while True:
            if failed > 2:
                raise RepositoryError("Maximum attempts to perform query reached")

            returncode, stdout, stderr = self.__run(cmd)

            if returncode:
                failed += 1
                error_msg = stderr.decode().lower()

                if any(msg in error_msg for msg in NOT_FOUND_MESSAGES):
                    raise ObjectNotFoundError(f"Not found: {cmd}")
                elif "rate limit" in error_msg:
                    _, stdout, _ = self.__run(f"gh api --hostname {self.hostname} /rate_limit")
                    rates = json.loads(stdout)
                    self.__sleep_to_reset_rate_limit(rates['resources']['core'])
                elif any(msg in error_msg for msg in ["unexpected end of json input", "unexpected eof", "something went wrong"]):
                    logging.debug('Request to the API failed while processing the response')
                    time.sleep(random.randint(1, 3))
                elif "please run:  gh auth login" in error_msg:
                    logging.error(error_msg)
                    raise RepositoryError(
                        "You need to authenticate with 'gh auth login' to run on a github server")
                else:
                    logging.warning("Unknown error occured: %s with %s", error_msg, cmd)
            else:
                break

        return stdout

    def __query_api(self, path: str, jq_filter: str, paginate: bool = False) -> str:
        options = "--paginate " if paginate else ""
        cmd = (f"gh api {options}--hostname {self.hostname} "
               f"{shlex.quote(f'repos/{self.folder}/{self.repository}/{path}')} "
               f"-q {shlex.quote(jq_filter)}")
        return self.__query_api_binary(cmd).decode()

    def __list_references(self, path: str, kind: ReferenceKind) -> list[Reference]:
        references: list[Reference] = []
        output = self.__query_api(path, '.[] | .name + " " + (.commit.sha // "")', paginate=True)
        for line in output.splitlines():
            # can happen if the list is empty
            if line == '':
                continue
            name, _, sha = line.partition(' ')
            references.append(Reference(name, sha or None, kind))
        return references

    def list_branch_tips(self) -> list[Reference]:
        return self.__list_references("branches", ReferenceKind.BRANCH)

    def list_tags(self) -> list[Reference]:
        return self.__list_references("tags", ReferenceKind.TAG)

    def get_commit(self, sha: str) -> RawCommit:
        jq_filter = ('{parents: [.parents[].sha], '
                     'author: .commit.author.date, committer: .commit.committer.date}')
        try:
            commit = json.loads(self.__query_api(f'commits/{sha}', jq_filter))
        except ObjectNotFoundError as e:
            raise CommitNotFound(sha) from e

        return RawCommit(
            sha=sha,
            parents=tuple(commit['parents']),
            author_time=parse_iso_timestamp(commit['author']),
            committer_time=parse_iso_timestamp(commit['committer']))
