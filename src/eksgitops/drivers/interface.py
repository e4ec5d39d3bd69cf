# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/drivers/interface.py

from __future__ import annotations

from datetime import timedelta
from typing import List, Mapping, Protocol

from ..config.models import ClusterState, DeployKey, ProfileRef
from ..ssh.session import SSHSession


class ClusterDriver(Protocol):
    """Observes and mutates cluster existence at the cloud provider."""

    def observe(self, name: str) -> ClusterState:
        """
        Report whether the named cluster exists.
        Must return ClusterState.UNKNOWN (never ABSENT) when it cannot tell.
        """
        ...

    def create(self, template_yaml: str, timeout: timedelta) -> None: ...

    def delete(self, name: str) -> None: ...

    def write_kubeconfig(self, name: str) -> None: ...


class GitOpsDriver(Protocol):
    """Enables the GitOps agent, repository and profiles against a cluster."""

    def enable_repository(
        self,
        cluster_name: str,
        region: str,
        git_url: str,
        git_email: str,
        private_key_path: str,
        env: Mapping[str, str],
    ) -> None: ...

    def enable_profile(
        self,
        cluster_name: str,
        region: str,
        git_url: str,
        git_email: str,
        private_key_path: str,
        env: Mapping[str, str],
        profile: ProfileRef,
    ) -> None: ...

    def get_own_deploy_key(self) -> str:
        """Public key material the in-cluster agent uses to talk to git."""
        ...


class SSHAgent(Protocol):
    """Owns an ephemeral keypair and the agent process it is loaded into."""

    def start(self) -> SSHSession: ...

    def load_key(self, session: SSHSession) -> str:
        """Generate a fresh keypair, trust the git host, add the key; returns the public key."""
        ...

    def stop(self, session: SSHSession) -> None: ...


class KeyRegistry(Protocol):
    """Deploy keys on the source-control host."""

    def list(self) -> List[DeployKey]: ...

    def create(self, title: str, key: str) -> DeployKey: ...

    def delete(self, key_id: int) -> None: ...
