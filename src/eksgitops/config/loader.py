# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/config/loader.py

import logging
import os
from pathlib import Path
from typing import Mapping, Optional

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..utils.duration import parse_duration
from .models import (
    DEFAULT_API_URL,
    DEFAULT_GIT_EMAIL,
    DEFAULT_TIMEOUT,
    ClusterFile,
    ClusterState,
    DesiredSpec,
    RepositorySettings,
)

log = logging.getLogger("eksgitops")


def _load_yaml(path: Path) -> dict:
    """Load a YAML file, expanding ${ENV_VAR} references."""
    try:
        raw = path.read_text()
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    expanded = os.path.expandvars(raw)
    try:
        data = yaml.safe_load(expanded)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"{path} is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def parse_desired(data: dict, source: str = "<config>") -> DesiredSpec:
    """
    Turn the raw cluster.yaml mapping into a DesiredSpec.

    An unrecognised or missing spec.state is not an error: it yields
    ClusterState.UNKNOWN, for which no transition is ever performed.
    """
    try:
        raw = ClusterFile.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"{source} is malformed:\n{exc}") from exc

    metadata = raw.spec.template.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ConfigurationError(f"{source}: spec.template.metadata must be a mapping")

    name = str(metadata.get("name") or "").strip()
    if not name:
        raise ConfigurationError(f"{source}: spec.template.metadata.name is required")

    state = ClusterState.parse(raw.spec.state)
    if state is ClusterState.UNKNOWN:
        log.warning("%s: spec.state=%r is not present/absent; treating as unknown", source, raw.spec.state)

    timeout_text = str(raw.timeout).strip() if raw.timeout is not None else ""
    try:
        timeout = parse_duration(timeout_text or DEFAULT_TIMEOUT)
    except ValueError as exc:
        raise ConfigurationError(f"{source}: {exc}") from exc

    return DesiredSpec(
        state=state,
        cluster_name=name,
        region=str(metadata.get("region") or "").strip(),
        timeout=timeout,
        profiles=tuple(str(p) for p in raw.spec.profiles),
        template=raw.spec.template,
    )


class DesiredConfigFile:
    """
    The desired-state provider backed by cluster.yaml.

    Every read() parses the file again; callers that need a stable view for a
    whole run read once and pass the DesiredSpec along.
    """

    def __init__(self, path: str | Path = "cluster.yaml"):
        self.path = Path(path)

    def read(self) -> DesiredSpec:
        data = _load_yaml(self.path)
        spec = parse_desired(data, source=str(self.path))
        log.debug(
            "Desired state from %s: state=%s name=%s region=%s timeout=%s profiles=%d",
            self.path,
            spec.state.value,
            spec.cluster_name,
            spec.region or "-",
            spec.timeout,
            len(spec.profiles),
        )
        return spec


def load_repository_settings(environ: Optional[Mapping[str, str]] = None) -> RepositorySettings:
    """
    Build the GitHub repository settings from the environment.

    - GH_TOKEN (or GITHUB_TOKEN): access token for the deploy key API
    - GITHUB_REPOSITORY: "owner/repo"
    - GITHUB_API_URL: optional API base (GitHub Enterprise)
    - GITOPS_GIT_EMAIL: optional commit email for the GitOps agent
    """
    env = os.environ if environ is None else environ

    token = env.get("GH_TOKEN") or env.get("GITHUB_TOKEN")
    if not token:
        raise ConfigurationError("expected GH_TOKEN")

    slug = (env.get("GITHUB_REPOSITORY") or "").strip()
    if not slug:
        raise ConfigurationError("expected GITHUB_REPOSITORY")

    parts = slug.split("/", 1)
    if len(parts) != 2 or not parts[0] or not parts[1] or "/" in parts[1]:
        raise ConfigurationError(f"expected repo in the form of owner/repo, got {slug!r}")

    return RepositorySettings(
        owner=parts[0],
        name=parts[1],
        token=token,
        api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        git_email=env.get("GITOPS_GIT_EMAIL") or DEFAULT_GIT_EMAIL,
    )
