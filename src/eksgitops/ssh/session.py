# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

_ASSIGN = re.compile(r"(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;\s]+)")


@dataclass(frozen=True)
class SSHSession:
    """
    A running ssh-agent and the bindings child processes need to use it.

    Passed explicitly to every call that needs the agent; the process
    environment is never modified.
    """

    auth_sock: str
    agent_pid: Optional[int]
    key_path: Path

    def env(self) -> Dict[str, str]:
        out = {"SSH_AUTH_SOCK": self.auth_sock}
        if self.agent_pid is not None:
            out["SSH_AGENT_PID"] = str(self.agent_pid)
        return out

    @classmethod
    def from_agent_output(cls, output: str, key_path: Path) -> "SSHSession":
        """
        Parse `ssh-agent -s` output:

            SSH_AUTH_SOCK=/tmp/ssh-XXXX/agent.123; export SSH_AUTH_SOCK;
            SSH_AGENT_PID=124; export SSH_AGENT_PID;
        """
        values = dict(_ASSIGN.findall(output or ""))
        sock = values.get("SSH_AUTH_SOCK")
        if not sock:
            raise ValueError(f"SSH_AUTH_SOCK not found in ssh-agent output: {output!r}")
        pid = values.get("SSH_AGENT_PID")
        return cls(auth_sock=sock, agent_pid=int(pid) if pid else None, key_path=key_path)
