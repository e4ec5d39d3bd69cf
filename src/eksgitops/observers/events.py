# src/eksgitops/observers/events.py

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single invocation
    env: str          # aws region (or "local")
    context: Optional[str]  # cluster name

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(env: str, context: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "env": env,
        "context": context,
    }


# ---------------------------------------------------------------------
# Cluster reconciliation
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class StateObserved(BaseEvent):
    observed: str
    desired: str
    phase: str        # "initial" | "final"

@dataclass(frozen=True)
class ClusterCreateStarted(BaseEvent):
    name: str
    timeout: str

@dataclass(frozen=True)
class ClusterCreateFailed(BaseEvent):
    name: str
    error: str

@dataclass(frozen=True)
class ClusterDeleteAttempt(BaseEvent):
    name: str
    attempt: int

@dataclass(frozen=True)
class ClusterDeleteWaiting(BaseEvent):
    name: str
    attempt: int
    wait_s: float

@dataclass(frozen=True)
class ClusterUpdateSkipped(BaseEvent):
    name: str
    reason: str

@dataclass(frozen=True)
class KubeconfigWritten(BaseEvent):
    name: str

@dataclass(frozen=True)
class KubeconfigFailed(BaseEvent):
    name: str
    error: str

@dataclass(frozen=True)
class ReconcileSummary(BaseEvent):
    name: str
    action: str       # "create" | "delete" | "update" | "none"
    observed: str
    desired: str


# ---------------------------------------------------------------------
# GitOps bootstrap
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BootstrapStarted(BaseEvent):
    name: str
    repository: str

@dataclass(frozen=True)
class BootstrapStepCompleted(BaseEvent):
    step: str

@dataclass(frozen=True)
class BootstrapStepFailed(BaseEvent):
    step: str
    error: str

@dataclass(frozen=True)
class DeployKeyRegistered(BaseEvent):
    title: str
    key_id: int
    replaced: int     # number of same-titled keys removed first

@dataclass(frozen=True)
class DeployKeyRevoked(BaseEvent):
    title: str
    key_id: int

@dataclass(frozen=True)
class ProfileEnabled(BaseEvent):
    profile: str

@dataclass(frozen=True)
class ProfileFailed(BaseEvent):
    profile: str
    error: str

@dataclass(frozen=True)
class BootstrapSummary(BaseEvent):
    name: str
    status: str       # "OK" | "PARTIAL" | "FAILED"
    error: Optional[str] = None


# ---------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class RunSummary(BaseEvent):
    initial_observed: str
    initial_desired: str
    final_observed: str
    final_desired: str
    converged: bool
