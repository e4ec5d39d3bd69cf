# src/eksgitops/observers/console.py
import typer

from .events import BaseEvent

_CTX_KEYS = ("ts", "run_id", "env", "context")


class ConsoleObserver:
    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        k = event.__class__.__name__
        data = ", ".join(f"{x}={y}" for x, y in d.items() if x not in _CTX_KEYS)
        typer.echo(f"[{d['ts']}] {k} cluster={d['context']} region={d['env']} {{{data}}}", err=True)
