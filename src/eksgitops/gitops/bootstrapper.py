# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/gitops/bootstrapper.py

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config.models import ClusterState, DeployKey, DesiredSpec, RepositorySettings
from ..drivers.interface import GitOpsDriver, KeyRegistry, SSHAgent
from ..errors import CollaboratorError, EksGitOpsError
from ..observers.dispatcher import EventBus
from ..observers.events import (
    BootstrapStarted,
    BootstrapStepCompleted,
    BootstrapStepFailed,
    BootstrapSummary,
    DeployKeyRegistered,
    DeployKeyRevoked,
    ProfileEnabled,
    ProfileFailed,
    new_ctx,
)
from ..registry.github import remove_keys, replace_key
from ..ssh.session import SSHSession

log = logging.getLogger("eksgitops")

AGENT_KEY_TITLE = "flux"
BOOTSTRAP_KEY_PREFIX = "push-key-"
SETTLE_DELAY_S = 5.0

_SUFFIX_ALPHABET = string.ascii_letters + string.digits


def random_suffix(n: int = 10) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(n))


@dataclass
class ProfileOutcome:
    profile: str
    status: str                 # "OK" or "FAILED"
    error: Optional[str] = None


@dataclass
class BootstrapReport:
    bootstrap_title: str
    agent_key: Optional[DeployKey] = None
    profiles: List[ProfileOutcome] = field(default_factory=list)

    @property
    def failed_profiles(self) -> List[ProfileOutcome]:
        return [p for p in self.profiles if p.status != "OK"]

    @property
    def ok(self) -> bool:
        return self.agent_key is not None and not self.failed_profiles

    def summary(self) -> str:
        ok = sum(1 for p in self.profiles if p.status == "OK")
        return f"PROFILES OK={ok} FAILED={len(self.failed_profiles)}"


class GitOpsBootstrapper:
    """
    Hands the GitOps agent push access to the repository, once the cluster exists.

      1. start an ssh-agent session
      2. generate a keypair, trust the git host, load the key into the agent
      3. register the public key as a uniquely titled bootstrap key
      4. wait for the registry to settle
      5. enable the GitOps repository (pushes with the bootstrap key)
      6. register the agent's own key under the well-known title
      7. revoke the bootstrap key (always, once step 2 succeeded)
      8. enable each profile, in order, best-effort

    The agent session is stopped on every exit path.
    """

    def __init__(
        self,
        repository: RepositorySettings,
        bus: Optional[EventBus] = None,
        *,
        settle_delay: float = SETTLE_DELAY_S,
        sleep: Callable[[float], None] = time.sleep,
        agent_key_title: str = AGENT_KEY_TITLE,
        suffix_factory: Callable[[], str] = random_suffix,
        run_id: Optional[str] = None,
    ):
        self.repository = repository
        self.bus = bus or EventBus()
        self.settle_delay = settle_delay
        self.sleep = sleep
        self.agent_key_title = agent_key_title
        self.suffix_factory = suffix_factory
        self.run_id = run_id
        self._desired: Optional[DesiredSpec] = None

    def _ctx(self) -> Dict[str, Any]:
        desired = self._desired
        return new_ctx(
            env=(desired.region if desired else "") or "local",
            context=desired.cluster_name if desired else None,
            run_id=self.run_id,
        )

    def _step(self, name: str, fn: Callable[[], Any]) -> Any:
        """Run one bootstrap step; failures are re-raised naming the step."""
        log.info(f"{name} ...")
        try:
            result = fn()
        except CollaboratorError as exc:
            self.bus.emit(BootstrapStepFailed(step=name, error=str(exc), **self._ctx()))
            if exc.step:
                raise
            raise CollaboratorError(str(exc), step=name) from exc
        self.bus.emit(BootstrapStepCompleted(step=name, **self._ctx()))
        return result

    # ------------------------------------------------------------------

    def bootstrap(
        self,
        desired: DesiredSpec,
        cluster_state: ClusterState,
        ssh_agent: SSHAgent,
        registry: KeyRegistry,
        gitops: GitOpsDriver,
    ) -> BootstrapReport:
        if cluster_state is not ClusterState.PRESENT:
            raise EksGitOpsError(
                f"GitOps bootstrap needs a present cluster, {desired.cluster_name} is {cluster_state.value}"
            )

        self._desired = desired
        report = BootstrapReport(bootstrap_title=BOOTSTRAP_KEY_PREFIX + self.suffix_factory())
        self.bus.emit(
            BootstrapStarted(name=desired.cluster_name, repository=self.repository.slug, **self._ctx())
        )

        try:
            session = self._step("Starting ssh-agent", ssh_agent.start)
            failed = False
            try:
                self._exchange_keys(desired, session, ssh_agent, registry, gitops, report)
                self._enable_profiles(desired, session, gitops, report)
            except Exception:
                failed = True
                raise
            finally:
                self._stop_agent(ssh_agent, session, suppress=failed)
        except Exception as exc:
            self.bus.emit(
                BootstrapSummary(name=desired.cluster_name, status="FAILED", error=str(exc), **self._ctx())
            )
            raise

        self.bus.emit(
            BootstrapSummary(
                name=desired.cluster_name,
                status="OK" if report.ok else "PARTIAL",
                error=None if report.ok else report.summary(),
                **self._ctx(),
            )
        )
        return report

    def _exchange_keys(
        self,
        desired: DesiredSpec,
        session: SSHSession,
        ssh_agent: SSHAgent,
        registry: KeyRegistry,
        gitops: GitOpsDriver,
        report: BootstrapReport,
    ) -> None:
        public_key = self._step("Generating Key", lambda: ssh_agent.load_key(session))

        title = report.bootstrap_title
        failed = False
        try:
            created, replaced = self._step(
                "Allowing bootstrap deploy key", lambda: replace_key(registry, title, public_key)
            )
            self.bus.emit(DeployKeyRegistered(title=title, key_id=created.id, replaced=replaced, **self._ctx()))

            log.info(f"Waiting {self.settle_delay:g}s for the deploy key to propagate")
            self.sleep(self.settle_delay)

            self._step(
                "Enabling GitOps repository",
                lambda: gitops.enable_repository(
                    desired.cluster_name,
                    desired.region,
                    self.repository.git_url,
                    self.repository.git_email,
                    str(session.key_path),
                    session.env(),
                ),
            )

            agent_key = self._step("Getting deploy key from Flux", gitops.get_own_deploy_key)
            report.agent_key, replaced = self._step(
                "Adding deploy key to the repo",
                lambda: replace_key(registry, self.agent_key_title, agent_key),
            )
            self.bus.emit(
                DeployKeyRegistered(
                    title=self.agent_key_title, key_id=report.agent_key.id, replaced=replaced, **self._ctx()
                )
            )
        except Exception:
            failed = True
            raise
        finally:
            self._revoke_bootstrap_key(registry, title, suppress=failed)

    def _revoke_bootstrap_key(self, registry: KeyRegistry, title: str, *, suppress: bool) -> None:
        log.info(f"Revoking bootstrap deploy key {title} ...")
        try:
            removed = remove_keys(registry, title)
        except CollaboratorError as exc:
            self.bus.emit(BootstrapStepFailed(step="Revoking bootstrap deploy key", error=str(exc), **self._ctx()))
            if suppress:
                # an earlier step already failed; that error is the one reported
                log.error(f"Could not revoke bootstrap deploy key {title}: {exc}")
                return
            raise CollaboratorError(str(exc), step="Revoking bootstrap deploy key") from exc

        for key in removed:
            self.bus.emit(DeployKeyRevoked(title=title, key_id=key.id, **self._ctx()))
        self.bus.emit(BootstrapStepCompleted(step="Revoking bootstrap deploy key", **self._ctx()))

    def _stop_agent(self, ssh_agent: SSHAgent, session: SSHSession, *, suppress: bool) -> None:
        try:
            ssh_agent.stop(session)
        except CollaboratorError as exc:
            if not suppress:
                raise CollaboratorError(str(exc), step="Stopping ssh-agent") from exc
            log.error(f"Could not stop ssh-agent: {exc}")

    def _enable_profiles(
        self,
        desired: DesiredSpec,
        session: SSHSession,
        gitops: GitOpsDriver,
        report: BootstrapReport,
    ) -> None:
        for profile in desired.profiles:
            log.info(f"Enabling profile {profile} ...")
            try:
                gitops.enable_profile(
                    desired.cluster_name,
                    desired.region,
                    self.repository.git_url,
                    self.repository.git_email,
                    str(session.key_path),
                    session.env(),
                    profile,
                )
            except CollaboratorError as exc:
                # best-effort: keep going with the remaining profiles
                log.error(f"Enabling profile {profile} failed: {exc}")
                report.profiles.append(ProfileOutcome(profile=profile, status="FAILED", error=str(exc)))
                self.bus.emit(ProfileFailed(profile=profile, error=str(exc), **self._ctx()))
                continue

            report.profiles.append(ProfileOutcome(profile=profile, status="OK"))
            self.bus.emit(ProfileEnabled(profile=profile, **self._ctx()))
