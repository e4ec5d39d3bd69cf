# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..config.models import ClusterState, DesiredSpec
from ..drivers.interface import ClusterDriver
from ..errors import CollaboratorError, ConvergenceTimeout
from ..observers.dispatcher import EventBus
from ..observers.events import (
    ClusterCreateFailed,
    ClusterCreateStarted,
    ClusterDeleteAttempt,
    ClusterDeleteWaiting,
    ClusterUpdateSkipped,
    KubeconfigFailed,
    KubeconfigWritten,
    ReconcileSummary,
    new_ctx,
)
from ..utils.duration import format_duration

log = logging.getLogger("eksgitops")

DELETE_POLL_INTERVAL_S = 30.0


class ClusterReconciler:
    """
    Drives cluster existence toward the desired state.

        observed  desired  action
        --------  -------  ---------------------------------------------
        absent    present  create once (bounded by desired.timeout)
        absent    absent   nothing
        present   absent   delete, re-observe, wait, repeat until absent
        present   present  update is not implemented: write kubeconfig
        unknown   *        nothing
        *         unknown  nothing

    The delete loop is unbounded unless `max_delete_attempts` is set; a driver
    that can never delete the cluster keeps it spinning until the process is
    killed.
    """

    def __init__(
        self,
        bus: Optional[EventBus] = None,
        *,
        poll_interval: float = DELETE_POLL_INTERVAL_S,
        max_delete_attempts: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
        run_id: Optional[str] = None,
    ):
        if max_delete_attempts is not None and max_delete_attempts < 1:
            raise ValueError("max_delete_attempts must be >= 1")
        self.bus = bus or EventBus()
        self.poll_interval = poll_interval
        self.max_delete_attempts = max_delete_attempts
        self.sleep = sleep
        self.run_id = run_id

    def _ctx(self, desired: DesiredSpec) -> Dict[str, Any]:
        return new_ctx(env=desired.region or "local", context=desired.cluster_name, run_id=self.run_id)

    def reconcile(
        self,
        desired: DesiredSpec,
        driver: ClusterDriver,
        observed: Optional[ClusterState] = None,
    ) -> ClusterState:
        """
        Act once on (observed, desired) and return the state observed afterwards.

        `observed` may be supplied by a caller that has only just observed;
        otherwise the driver is asked.
        """
        name = desired.cluster_name
        if observed is None:
            observed = driver.observe(name)

        action = "none"
        final = observed

        if observed is ClusterState.UNKNOWN or desired.state is ClusterState.UNKNOWN:
            log.warning(
                f"Cluster {name}: observed={observed.value} desired={desired.state.value}; no transition"
            )

        elif observed is ClusterState.ABSENT and desired.state is ClusterState.PRESENT:
            action = "create"
            self._create(desired, driver)
            final = driver.observe(name)

        elif observed is ClusterState.ABSENT and desired.state is ClusterState.ABSENT:
            log.info("Do nothing.")

        elif observed is ClusterState.PRESENT and desired.state is ClusterState.ABSENT:
            action = "delete"
            final = self._delete_until_absent(desired, driver)

        elif observed is ClusterState.PRESENT and desired.state is ClusterState.PRESENT:
            action = "update"
            self._update(desired, driver)
            final = driver.observe(name)

        self.bus.emit(
            ReconcileSummary(
                name=name,
                action=action,
                observed=final.value,
                desired=desired.state.value,
                **self._ctx(desired),
            )
        )
        return final

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _create(self, desired: DesiredSpec, driver: ClusterDriver) -> None:
        # One attempt only; the caller decides from the state observed afterwards.
        timeout = format_duration(desired.timeout)
        log.info(f"Creating Cluster {desired.cluster_name} (timeout {timeout}) ...")
        self.bus.emit(
            ClusterCreateStarted(name=desired.cluster_name, timeout=timeout, **self._ctx(desired))
        )
        try:
            driver.create(desired.template_yaml(), desired.timeout)
        except CollaboratorError as exc:
            log.error(f"Creating cluster {desired.cluster_name} failed: {exc}")
            self.bus.emit(
                ClusterCreateFailed(name=desired.cluster_name, error=str(exc), **self._ctx(desired))
            )

    def _delete_until_absent(self, desired: DesiredSpec, driver: ClusterDriver) -> ClusterState:
        name = desired.cluster_name
        log.info(f"Deleting Cluster {name} ...")
        attempt = 0

        while True:
            attempt += 1
            self.bus.emit(ClusterDeleteAttempt(name=name, attempt=attempt, **self._ctx(desired)))
            try:
                driver.delete(name)
            except CollaboratorError as exc:
                # Teardown is asynchronous at the provider; the next observation decides.
                log.warning(f"Delete attempt {attempt} for {name} failed: {exc}")

            state = driver.observe(name)
            if state is ClusterState.ABSENT:
                return state

            if self.max_delete_attempts is not None and attempt >= self.max_delete_attempts:
                raise ConvergenceTimeout(
                    f"cluster {name} still {state.value} after {attempt} delete attempt(s)"
                )

            log.info(f"Waiting for {self.poll_interval:g}s")
            self.bus.emit(
                ClusterDeleteWaiting(name=name, attempt=attempt, wait_s=self.poll_interval, **self._ctx(desired))
            )
            self.sleep(self.poll_interval)
            log.info("Cluster still here. Keep deleting ...")

    def _update(self, desired: DesiredSpec, driver: ClusterDriver) -> None:
        name = desired.cluster_name
        log.warning("NYI: Should update cluster")
        self.bus.emit(
            ClusterUpdateSkipped(name=name, reason="update in place is not implemented", **self._ctx(desired))
        )

        log.info("Writing KubeConfig ...")
        try:
            driver.write_kubeconfig(name)
        except CollaboratorError as exc:
            log.error(f"Writing kubeconfig for {name} failed: {exc}")
            self.bus.emit(KubeconfigFailed(name=name, error=str(exc), **self._ctx(desired)))
            return
        self.bus.emit(KubeconfigWritten(name=name, **self._ctx(desired)))
