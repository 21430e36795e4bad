import logging
import os
import threading
from typing import Any, Optional

import requests

from commit_spans.domain.enums import ReferenceKind
from commit_spans.domain.exceptions import (CommitNotFound,
                                            ObjectNotFoundError,
                                            RepositoryError)
from commit_spans.domain.git_objects import RawCommit, Reference
from commit_spans.domain.interfaces import RemoteGitRepository
from commit_spans.domain.utils import parse_iso_timestamp


class Gitlab(RemoteGitRepository):
    """Read a GitLab project through the REST API."""

    def __init__(self, hostname: str, folder: str, repository: str,
                 token: Optional[str] = None) -> None:
        super().__init__(hostname, folder, repository)
        if token is None:
            token = os.environ.get('GITLAB_TOKEN')
        if not token:
            raise RepositoryError("GITLAB_TOKEN must be set to query a gitlab server")
        self.project: str = f'{self.folder}/{self.repository}'.replace("/", "%2f")
        self.session = requests.Session()
        self.session.headers.update({'PRIVATE-TOKEN': token})
        # requests sessions are not thread safe, discovery workers share this one
        self._session_lock = threading.Lock()

    def __query_api(self, path: str, paginate: bool = False) -> Any:
        if paginate:
            if '?' in path:
                url = f'https://{self.hostname}/{path}&per_page=100'
            else:
                url = f'https://{self.hostname}/{path}?per_page=100'
        else:
            url = f'https://{self.hostname}/{path}'

        page = 1
        json_response: list[Any] = []

        while True:
            with self._session_lock:
                if paginate:
                    r = self.session.get(f'{url}&page={page}')
                else:
                    r = self.session.get(url)

            if r.status_code == 404:
                raise ObjectNotFoundError(f"Not found: {url}")
            if r.status_code != 200:
                logging.error(r.text)
                raise RepositoryError(f"Unexpected {r.status_code} on request {url}")

            if not paginate:
                return r.json()

            json_response += r.json()
            if r.headers.get("x-next-page", "") == "":
                return json_response
            page += 1

    def __list_references(self, path: str, kind: ReferenceKind) -> list[Reference]:
        references: list[Reference] = []
        for ref in self.__query_api(f'api/v4/projects/{self.project}/{path}', paginate=True):
            commit = ref.get('commit') or {}
            references.append(Reference(ref['name'], commit.get('id'), kind))
        return references

    def list_branch_tips(self) -> list[Reference]:
        return self.__list_references('repository/branches', ReferenceKind.BRANCH)

    def list_tags(self) -> list[Reference]:
        return self.__list_references('repository/tags', ReferenceKind.TAG)

    def get_commit(self, sha: str) -> RawCommit:
        try:
            commit = self.__query_api(f'api/v4/projects/{self.project}/repository/commits/{sha}')
        except ObjectNotFoundError as e:
            raise CommitNotFound(sha) from e

        return RawCommit(
            sha=sha,
            parents=tuple(commit['parent_ids']),
            author_time=parse_iso_timestamp(commit['authored_date']),
            committer_time=parse_iso_timestamp(commit['committed_date']))
