# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import os
from typing import Mapping, Optional

from ..config.models import ProfileRef
from ..errors import CollaboratorError
from ..execution.runner import CommandRunner, check


class EksctlGitOpsDriver:
    """
    Flux via the (experimental) `eksctl enable repo|profile` commands, plus
    `fluxctl identity` to read the agent's own deploy key.
    """

    def __init__(self, flux_namespace: str = "flux", runner: Optional[CommandRunner] = None):
        self.flux_namespace = flux_namespace
        self.runner = runner or CommandRunner(label="gitops")

    def _env(self, env: Mapping[str, str]) -> dict[str, str]:
        # The agent bindings are layered over a copy; os.environ is left alone.
        return {**os.environ, "EKSCTL_EXPERIMENTAL": "true", **env}

    def _git_args(
        self,
        cluster_name: str,
        region: str,
        git_url: str,
        git_email: str,
        private_key_path: str,
    ) -> list[str]:
        args = [
            f"--git-url={git_url}",
            f"--git-email={git_email}",
            f"--git-private-ssh-key-path={private_key_path}",
            f"--cluster={cluster_name}",
        ]
        if region:
            args.append(f"--region={region}")
        return args

    # ------------------------- GitOpsDriver methods -------------------------

    def enable_repository(
        self,
        cluster_name: str,
        region: str,
        git_url: str,
        git_email: str,
        private_key_path: str,
        env: Mapping[str, str],
    ) -> None:
        argv = ["eksctl", "enable", "repo"] + self._git_args(
            cluster_name, region, git_url, git_email, private_key_path
        )
        check(self.runner.run(argv, env=self._env(env), stream=True), "eksctl enable repo")

    def enable_profile(
        self,
        cluster_name: str,
        region: str,
        git_url: str,
        git_email: str,
        private_key_path: str,
        env: Mapping[str, str],
        profile: ProfileRef,
    ) -> None:
        argv = (
            ["eksctl", "enable", "profile"]
            + self._git_args(cluster_name, region, git_url, git_email, private_key_path)
            + [profile]
        )
        check(self.runner.run(argv, env=self._env(env), stream=True), f"eksctl enable profile {profile}")

    def get_own_deploy_key(self) -> str:
        argv = ["fluxctl", f"--k8s-fwd-ns={self.flux_namespace}", "identity"]
        result = check(self.runner.run(argv), "fluxctl identity")
        key = (result.stdout or "").strip()
        if not key:
            raise CollaboratorError("fluxctl identity returned no key")
        return key
