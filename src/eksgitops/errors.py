# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/errors.py
from __future__ import annotations

from typing import Optional, Sequence


class EksGitOpsError(RuntimeError):
    """Base class for eksgitops failures."""


class ConfigurationError(EksGitOpsError):
    """Raised for missing/malformed desired state, credentials or repo identifiers."""


class CollaboratorError(EksGitOpsError):
    """Raised when an external collaborator (CLI, agent, registry) fails."""

    def __init__(self, message: str, *, step: Optional[str] = None):
        self.step = step
        if step:
            message = f"[{step}] {message}"
        super().__init__(message)


class CommandError(CollaboratorError):
    """Raised when an external command is missing or exits non-zero."""

    def __init__(
        self,
        message: str,
        *,
        argv: Sequence[str] = (),
        returncode: Optional[int] = None,
        stderr: str = "",
        step: Optional[str] = None,
    ):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, step=step)


class KeyRegistryError(CollaboratorError):
    """Raised when the source-control host rejects a deploy key call."""

    def __init__(self, message: str, *, status: Optional[int] = None, step: Optional[str] = None):
        self.status = status
        super().__init__(message, step=step)


class ConvergenceTimeout(EksGitOpsError):
    """Raised when the delete loop gives up before observing an absent cluster."""
