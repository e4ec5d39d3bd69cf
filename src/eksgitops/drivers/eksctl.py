# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Iterable, Optional

import yaml

from ..config.models import ClusterState
from ..errors import CollaboratorError
from ..execution.runner import CommandRunner, check
from ..utils.duration import format_duration

log = logging.getLogger("eksgitops")


def _cluster_names(doc: Any) -> Iterable[str]:
    # `eksctl get cluster -o yaml` has printed both a bare list of
    # {name, region} entries and full ClusterConfig-like objects.
    if doc is None:
        return []
    items = doc if isinstance(doc, list) else [doc]
    names = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("name") or item.get("Name") or (item.get("metadata") or {}).get("name")
        if name:
            names.append(str(name))
    return names


class EksctlClusterDriver:
    """
    A pragmatic wrapper around the `eksctl` CLI for cluster existence.
    - Mirrors human CLI usage: 'get cluster', 'create cluster -f -',
      'delete cluster', 'utils write-kubeconfig'.
    - Testable by mocking subprocess.run.
    """

    def __init__(self, region: Optional[str] = None, runner: Optional[CommandRunner] = None):
        self.region = region
        self.runner = runner or CommandRunner(label="eksctl")

    def _base(self) -> list[str]:
        return ["eksctl"]

    def _region_args(self) -> list[str]:
        return ["--region", self.region] if self.region else []

    # ------------------------- ClusterDriver methods -------------------------

    def observe(self, name: str) -> ClusterState:
        if not name:
            return ClusterState.UNKNOWN

        try:
            result = check(
                self.runner.run(self._base() + ["get", "cluster", "-o", "yaml"] + self._region_args()),
                "eksctl get cluster",
            )
            names = _cluster_names(yaml.safe_load(result.stdout or ""))
        except (CollaboratorError, yaml.YAMLError) as exc:
            log.warning(f"[eksctl] cannot observe cluster {name}: {exc}")
            return ClusterState.UNKNOWN

        return ClusterState.PRESENT if name in names else ClusterState.ABSENT

    def create(self, template_yaml: str, timeout: timedelta) -> None:
        argv = self._base() + ["create", "--timeout", format_duration(timeout), "cluster", "-f", "-"]
        check(self.runner.run(argv, stdin_text=template_yaml, stream=True), "eksctl create cluster")

    def delete(self, name: str) -> None:
        argv = self._base() + ["delete", "cluster", name] + self._region_args()
        check(self.runner.run(argv, stream=True), "eksctl delete cluster")

    def write_kubeconfig(self, name: str) -> None:
        argv = self._base() + ["utils", "write-kubeconfig", "--cluster", name] + self._region_args()
        check(self.runner.run(argv, stream=True), "eksctl utils write-kubeconfig")
