# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence, Union

from ..errors import CommandError

Cmd = Sequence[Union[str, "os.PathLike[str]"]]


@dataclass
class CommandRunner:
    """
    Runs local CLIs (eksctl, fluxctl, ssh-agent, ssh-add) and logs every call.

    Testable by mocking subprocess.run / subprocess.Popen.
    """

    label: Optional[str] = None
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("eksgitops"))

    def run(
        self,
        cmd: Cmd,
        *,
        stdin_text: str | None = None,
        env: Mapping[str, str] | None = None,
        stream: bool = False,
        cwd: str | None = None,
    ) -> subprocess.CompletedProcess:
        label = self.label or "cmd"
        argv = [str(c) for c in cmd]
        self.logger.debug(f"[{label}] $ {' '.join(argv)}")

        start = time.time()
        try:
            if stream:
                result = self._stream(argv, label=label, stdin_text=stdin_text, env=env, cwd=cwd)
            else:
                result = subprocess.run(
                    argv,
                    input=stdin_text,
                    capture_output=True,
                    check=False,
                    text=True,
                    cwd=cwd,
                    env=dict(env) if env is not None else None,
                )
        except FileNotFoundError as exc:
            raise CommandError(f"{argv[0]}: command not found", argv=argv) from exc

        duration = time.time() - start

        if not stream:
            if result.stdout:
                self.logger.debug(f"[{label}][stdout]\n{result.stdout.rstrip()}")
            if result.stderr:
                self.logger.debug(f"[{label}][stderr]\n{result.stderr.rstrip()}")
        self.logger.debug(f"[{label}][exit {result.returncode}] ({duration:.2f}s)")

        return result

    def _stream(
        self,
        argv: list[str],
        *,
        label: str,
        stdin_text: str | None,
        env: Mapping[str, str] | None,
        cwd: str | None,
    ) -> subprocess.CompletedProcess:
        # Long eksctl operations: relay progress as it happens.
        process = subprocess.Popen(
            argv,
            text=True,
            stdin=subprocess.PIPE if stdin_text is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=cwd,
            env=dict(env) if env is not None else None,
        )
        if stdin_text is not None:
            try:
                process.stdin.write(stdin_text)
                process.stdin.close()
            except BrokenPipeError:
                # exit status is collected below
                self.logger.debug(f"[{label}] exited before reading its input")

        lines = []
        for line in iter(process.stdout.readline, ""):
            self.logger.info(f"[{label}] {line.rstrip()}")
            lines.append(line)
        process.stdout.close()
        process.wait()
        return subprocess.CompletedProcess(argv, process.returncode, "".join(lines), "")


def check(result: subprocess.CompletedProcess, what: str) -> subprocess.CompletedProcess:
    """Raise CommandError unless the command exited 0."""
    if result.returncode != 0:
        stderr = (result.stderr or result.stdout or "").strip()
        raise CommandError(
            f"{what} failed (rc={result.returncode}): {stderr}",
            argv=result.args if isinstance(result.args, list) else [str(result.args)],
            returncode=result.returncode,
            stderr=stderr,
        )
    return result
