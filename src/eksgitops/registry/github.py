# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/registry/github.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from ..config.models import DeployKey, RepositorySettings
from ..errors import KeyRegistryError

log = logging.getLogger("eksgitops")

DEFAULT_TIMEOUT_S = 30


class GitHubKeyRegistry:
    """
    Deploy keys of one GitHub repository.

    Endpoints used:
    - list:   GET    /repos/<owner>/<repo>/keys
    - create: POST   /repos/<owner>/<repo>/keys
    - delete: DELETE /repos/<owner>/<repo>/keys/<id>
    """

    def __init__(
        self,
        settings: RepositorySettings,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT_S,
    ):
        self.settings = settings
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {settings.token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            }
        )

    def _url(self, path: str = "") -> str:
        base = self.settings.api_url.rstrip("/")
        return f"{base}/repos/{self.settings.slug}/keys{path}"

    def _request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        log.debug(f"[github] {method} {url}")
        try:
            r = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise KeyRegistryError(f"{method} {url} failed: {exc}") from exc
        log.debug(f"[github] response: status={r.status_code}")
        return r

    # ------------------------- KeyRegistry methods -------------------------

    def list(self) -> List[DeployKey]:
        keys: List[DeployKey] = []
        url: Optional[str] = self._url()
        params: Optional[Dict[str, Any]] = {"per_page": 100}

        while url:
            r = self._request("GET", url, params=params)
            if r.status_code != 200:
                raise KeyRegistryError(
                    f"List deploy keys failed ({r.status_code}): {r.text}", status=r.status_code
                )
            keys.extend(DeployKey.model_validate(item) for item in r.json())
            # `next` already carries the query string.
            url = r.links.get("next", {}).get("url")
            params = None

        return keys

    def create(self, title: str, key: str) -> DeployKey:
        payload = {"title": title, "key": key, "read_only": False}
        r = self._request("POST", self._url(), json=payload)
        if r.status_code != 201:
            raise KeyRegistryError(
                f"Create deploy key {title!r} failed ({r.status_code}): {r.text}", status=r.status_code
            )
        return DeployKey.model_validate(r.json())

    def delete(self, key_id: int) -> None:
        r = self._request("DELETE", self._url(f"/{key_id}"))
        if r.status_code == 404:
            # already gone
            log.debug(f"[github] deploy key {key_id} not found; nothing to delete")
            return
        if r.status_code != 204:
            raise KeyRegistryError(
                f"Delete deploy key {key_id} failed ({r.status_code}): {r.text}", status=r.status_code
            )


def remove_keys(registry, title: str) -> List[DeployKey]:
    """Delete every key carrying `title`; returns what was removed."""
    removed = [k for k in registry.list() if k.title == title]
    for k in removed:
        registry.delete(k.id)
    return removed


def replace_key(registry, title: str, key: str) -> Tuple[DeployKey, int]:
    """
    Replace-by-title: drop any key with the same title, then create it.

    Returns (created key, number of keys replaced). A title therefore never
    appears twice in the registry.
    """
    removed = remove_keys(registry, title)
    if removed:
        log.debug(f"[github] replaced {len(removed)} existing key(s) titled {title!r}")
    return registry.create(title, key), len(removed)
