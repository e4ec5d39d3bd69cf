# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/config/models.py

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TIMEOUT = "25m"
DEFAULT_GIT_EMAIL = "flux@noreply.gitops"
DEFAULT_API_URL = "https://api.github.com"

# Opaque identifier (URL or slug) of a workload profile.
ProfileRef = str


class ClusterState(str, Enum):
    UNKNOWN = "unknown"
    PRESENT = "present"
    ABSENT = "absent"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ClusterState":
        text = (value or "").strip().lower()
        for state in (cls.PRESENT, cls.ABSENT):
            if text == state.value:
                return state
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------
# cluster.yaml (raw file shape)
# ---------------------------------------------------------------------
class ClusterFileSpec(BaseModel):
    state: Optional[str] = None
    template: Dict[str, Any] = Field(default_factory=dict)
    profiles: List[ProfileRef] = Field(default_factory=list)


class ClusterFile(BaseModel):
    """
    Shape of cluster.yaml:

        timeout: 25m
        spec:
          state: present
          template: { ...eksctl ClusterConfig... }
          profiles: [ ... ]
    """

    timeout: Optional[str] = None
    spec: ClusterFileSpec = Field(default_factory=ClusterFileSpec)


# ---------------------------------------------------------------------
# Desired state (one immutable snapshot per read)
# ---------------------------------------------------------------------
class DesiredSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ClusterState
    cluster_name: str
    region: str = ""
    timeout: timedelta = timedelta(minutes=25)
    profiles: Tuple[ProfileRef, ...] = ()
    template: Dict[str, Any] = Field(default_factory=dict)

    def template_yaml(self) -> str:
        """The eksctl ClusterConfig handed to `eksctl create cluster -f -`."""
        return yaml.safe_dump(self.template, sort_keys=False)


class DeployKey(BaseModel):
    """A deploy key as the source-control host reports it."""

    model_config = ConfigDict(frozen=True)

    id: int
    title: str
    key: str
    read_only: bool = False


class RepositorySettings(BaseModel):
    """Credentials and identifiers for the GitOps repository on GitHub."""

    model_config = ConfigDict(frozen=True)

    owner: str
    name: str
    token: str = Field(repr=False)
    api_url: str = DEFAULT_API_URL
    git_email: str = DEFAULT_GIT_EMAIL

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"

    @property
    def git_url(self) -> str:
        return f"git@github.com:{self.slug}"
