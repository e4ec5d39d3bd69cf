# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/orchestrator.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

from .config.models import ClusterState, DesiredSpec
from .drivers.interface import ClusterDriver, GitOpsDriver, KeyRegistry, SSHAgent
from .errors import EksGitOpsError
from .gitops.bootstrapper import BootstrapReport, GitOpsBootstrapper
from .observers.dispatcher import EventBus
from .observers.events import RunSummary, StateObserved, new_ctx
from .reconcile.reconciler import ClusterReconciler

log = logging.getLogger("eksgitops")


class DesiredConfig(Protocol):
    def read(self) -> DesiredSpec: ...


@dataclass
class RunReport:
    initial_observed: ClusterState
    initial_desired: ClusterState
    final_observed: ClusterState
    final_desired: ClusterState
    bootstrap: Optional[BootstrapReport] = None

    @property
    def final_state(self) -> ClusterState:
        return self.final_observed

    @property
    def converged(self) -> bool:
        return (
            self.final_desired is not ClusterState.UNKNOWN
            and self.final_observed is self.final_desired
        )


def format_states(observed: ClusterState, desired: ClusterState) -> str:
    return f'Cluster State: "{observed.value}" => Cluster Desired State: "{desired.value}"'


class Orchestrator:
    """
    One run: read the desired state, reconcile the cluster, bootstrap GitOps
    when the cluster is present, then report observed vs desired again.

    The cluster driver is built from the desired state (it needs the region).
    The registry and bootstrapper factories are called before anything is
    mutated, unless the desired state is absent: a run that deletes the
    cluster never needs repository credentials.

    A failed bootstrap still ends with the final state report before the
    error propagates.
    """

    def __init__(
        self,
        config: DesiredConfig,
        cluster_factory: Callable[[DesiredSpec], ClusterDriver],
        ssh_agent: SSHAgent,
        gitops: GitOpsDriver,
        registry_factory: Callable[[], KeyRegistry],
        bootstrapper_factory: Callable[[], GitOpsBootstrapper],
        reconciler: Optional[ClusterReconciler] = None,
        bus: Optional[EventBus] = None,
        echo: Callable[[str], None] = print,
        run_id: Optional[str] = None,
    ):
        self.config = config
        self.cluster_factory = cluster_factory
        self.ssh_agent = ssh_agent
        self.gitops = gitops
        self.registry_factory = registry_factory
        self.bootstrapper_factory = bootstrapper_factory
        self.bus = bus or EventBus()
        self.reconciler = reconciler or ClusterReconciler(self.bus)
        self.echo = echo
        self.run_id = run_id

    def _ctx(self, desired: DesiredSpec) -> Dict[str, Any]:
        return new_ctx(env=desired.region or "local", context=desired.cluster_name, run_id=self.run_id)

    def run(self) -> RunReport:
        desired = self.config.read()
        cluster = self.cluster_factory(desired)

        registry: Optional[KeyRegistry] = None
        bootstrapper: Optional[GitOpsBootstrapper] = None
        if desired.state is not ClusterState.ABSENT:
            # fail fast on missing credentials
            registry = self.registry_factory()
            bootstrapper = self.bootstrapper_factory()

        observed = cluster.observe(desired.cluster_name)
        self.echo(format_states(observed, desired.state) + " ...")
        self.bus.emit(
            StateObserved(observed=observed.value, desired=desired.state.value, phase="initial", **self._ctx(desired))
        )

        state = self.reconciler.reconcile(desired, cluster, observed=observed)

        bootstrap: Optional[BootstrapReport] = None
        if state is ClusterState.PRESENT and bootstrapper is not None:
            try:
                bootstrap = bootstrapper.bootstrap(desired, state, self.ssh_agent, registry, self.gitops)
            except EksGitOpsError as exc:
                log.error(f"GitOps bootstrap failed: {exc}")
                self._verify(desired, cluster, observed, None)
                raise
            log.info(bootstrap.summary())
        else:
            log.info(f"Cluster {desired.cluster_name} is {state.value}; skipping GitOps bootstrap")

        return self._verify(desired, cluster, observed, bootstrap)

    def _verify(
        self,
        desired: DesiredSpec,
        cluster: ClusterDriver,
        initial_observed: ClusterState,
        bootstrap: Optional[BootstrapReport],
    ) -> RunReport:
        self.echo("Verifying Cluster State ...")
        # Observed and desired are read independently; divergence is reported as-is.
        final_observed = cluster.observe(desired.cluster_name)
        final_desired = self.config.read().state
        self.echo(format_states(final_observed, final_desired))

        report = RunReport(
            initial_observed=initial_observed,
            initial_desired=desired.state,
            final_observed=final_observed,
            final_desired=final_desired,
            bootstrap=bootstrap,
        )
        self.bus.emit(
            StateObserved(
                observed=final_observed.value, desired=final_desired.value, phase="final", **self._ctx(desired)
            )
        )
        self.bus.emit(
            RunSummary(
                initial_observed=initial_observed.value,
                initial_desired=desired.state.value,
                final_observed=final_observed.value,
                final_desired=final_desired.value,
                converged=report.converged,
                **self._ctx(desired),
            )
        )
        return report
