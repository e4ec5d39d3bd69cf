# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/eksgitops/ssh/agent.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Sequence

import paramiko

from ..errors import CollaboratorError
from ..execution.runner import CommandRunner, check
from .session import SSHSession

log = logging.getLogger("eksgitops")

DEFAULT_KEY_PATH = Path.home() / ".ssh" / "gitops_push_rsa"
DEFAULT_KEY_BITS = 4096

# github.com host keys, so git over ssh never stops at a trust prompt.
GITHUB_KNOWN_HOSTS: Sequence[str] = (
    "github.com ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIOMqqnkVzrm0SdG6UOoqKLsabgH5C9okWi0dh2l9GKJl",
    "github.com ecdsa-sha2-nistp256 AAAAE2VjZHNhLXNoYTItbmlzdHAyNTYAAAAIbmlzdHAyNTYAAABBBEmKSENjQEezOmxkZMy7opKgwFB9nkt5YRrYMjNuG5N87uRgg6CLrbo5wAdT/y6v0mKV0U2w0WZ2YB/++Tpockg=",
)


class OpenSSHAgent:
    """
    Ephemeral push credential:
      - `ssh-agent -s` for an isolated agent process
      - paramiko for the RSA keypair (written to a fixed path)
      - `ssh-add` to load the key into that agent only
    """

    def __init__(
        self,
        key_path: Path = DEFAULT_KEY_PATH,
        known_hosts_path: Optional[Path] = None,
        key_bits: int = DEFAULT_KEY_BITS,
        known_hosts: Sequence[str] = GITHUB_KNOWN_HOSTS,
        runner: Optional[CommandRunner] = None,
    ):
        self.key_path = Path(key_path).expanduser()
        self.known_hosts_path = Path(known_hosts_path or self.key_path.parent / "known_hosts").expanduser()
        self.key_bits = key_bits
        self.known_hosts = tuple(known_hosts)
        self.runner = runner or CommandRunner(label="ssh")

    @property
    def public_key_path(self) -> Path:
        return self.key_path.with_name(self.key_path.name + ".pub")

    def _env(self, session: SSHSession) -> dict[str, str]:
        return {**os.environ, **session.env()}

    # ------------------------- SSHAgent methods -------------------------

    def start(self) -> SSHSession:
        result = check(self.runner.run(["ssh-agent", "-s"]), "ssh-agent")
        try:
            session = SSHSession.from_agent_output(result.stdout, self.key_path)
        except ValueError as exc:
            raise CollaboratorError(str(exc)) from exc
        log.debug(f"[ssh] agent started pid={session.agent_pid} sock={session.auth_sock}")
        return session

    def load_key(self, session: SSHSession) -> str:
        public_key = self._generate_keypair()
        self._trust_git_host()
        check(
            self.runner.run(["ssh-add", str(self.key_path)], env=self._env(session)),
            "ssh-add",
        )
        return public_key

    def stop(self, session: SSHSession) -> None:
        try:
            if session.agent_pid is not None:
                check(self.runner.run(["ssh-agent", "-k"], env=self._env(session)), "ssh-agent -k")
        finally:
            for path in (self.key_path, self.public_key_path):
                path.unlink(missing_ok=True)
        log.debug("[ssh] agent stopped and key material removed")

    # ------------------------- internal helpers -------------------------

    def _generate_keypair(self) -> str:
        self.key_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        # A fresh key every run: never reuse a previous push key.
        for path in (self.key_path, self.public_key_path):
            path.unlink(missing_ok=True)

        try:
            key = paramiko.RSAKey.generate(bits=self.key_bits)
            key.write_private_key_file(str(self.key_path))
        except (paramiko.SSHException, OSError) as exc:
            raise CollaboratorError(f"could not generate ssh key at {self.key_path}: {exc}") from exc
        os.chmod(self.key_path, 0o600)

        public_key = f"{key.get_name()} {key.get_base64()} gitops-push"
        self.public_key_path.write_text(public_key + "\n")
        log.debug(f"[ssh] generated {self.key_bits}-bit RSA key at {self.key_path}")
        return public_key

    def _trust_git_host(self) -> None:
        text = self.known_hosts_path.read_text() if self.known_hosts_path.exists() else ""
        existing = {line.strip() for line in text.splitlines()}

        missing = [entry for entry in self.known_hosts if entry not in existing]
        if not missing:
            return

        self.known_hosts_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        with self.known_hosts_path.open("a", encoding="utf-8") as f:
            if text and not text.endswith("\n"):
                f.write("\n")
            for entry in missing:
                f.write(entry + "\n")
        log.debug(f"[ssh] added {len(missing)} host key(s) to {self.known_hosts_path}")
