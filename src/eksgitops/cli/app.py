# src/eksgitops/cli/app.py
from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from eksgitops.config.loader import DesiredConfigFile, load_repository_settings
from eksgitops.drivers.eksctl import EksctlClusterDriver
from eksgitops.drivers.gitops import EksctlGitOpsDriver
from eksgitops.errors import CollaboratorError, ConfigurationError, ConvergenceTimeout
from eksgitops.gitops.bootstrapper import GitOpsBootstrapper
from eksgitops.logging.log import init_logging
from eksgitops.observers.console import ConsoleObserver
from eksgitops.observers.dispatcher import EventBus
from eksgitops.observers.jsonfile import JsonFileObserver
from eksgitops.observers.logger import LoggerObserver
from eksgitops.orchestrator import Orchestrator, format_states
from eksgitops.reconcile.reconciler import DELETE_POLL_INTERVAL_S, ClusterReconciler
from eksgitops.registry.github import GitHubKeyRegistry
from eksgitops.ssh.agent import DEFAULT_KEY_PATH, OpenSSHAgent

# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="Reconcile an EKS cluster and bootstrap GitOps against it")

LOGS_DIR = Path.home() / ".eksgitops" / "logs"

EXIT_CONFIG = 1
EXIT_COLLABORATOR = 2
EXIT_PROFILES = 3


@app.command()
def reconcile(
    config: Path = typer.Argument(Path("cluster.yaml"), help="Desired cluster state (cluster.yaml)"),
    debug: bool = typer.Option(False, "--debug", help="DEBUG output on the console"),
    events: bool = typer.Option(False, "--events", help="Print lifecycle events on stderr"),
    poll_interval: float = typer.Option(
        DELETE_POLL_INTERVAL_S, "--poll-interval", help="Seconds between delete attempts"
    ),
    max_delete_attempts: Optional[int] = typer.Option(
        None,
        "--max-delete-attempts",
        min=1,
        help="Give up deleting after N attempts (default: keep trying until the cluster is gone)",
    ),
    key_path: Path = typer.Option(
        DEFAULT_KEY_PATH, "--key-path", help="Where the ephemeral push key is written"
    ),
    flux_namespace: str = typer.Option("flux", "--flux-namespace", help="Namespace of the Flux agent"),
    allow_profile_failures: bool = typer.Option(
        False, "--allow-profile-failures", help="Exit 0 even if some profiles failed to enable"
    ),
) -> None:
    """
    Drive the cluster toward spec.state, then enable GitOps when it is present.

    Needs GH_TOKEN and GITHUB_REPOSITORY (owner/repo) unless spec.state is absent.
    """
    logger, run_id, _ = init_logging(base_dir=LOGS_DIR, verbose=debug)

    observers = [LoggerObserver(logger), JsonFileObserver.for_run(LOGS_DIR, run_id)]
    if events:
        observers.append(ConsoleObserver())
    bus = EventBus(observers=observers)

    desired_config = DesiredConfigFile(config)

    def registry_factory() -> GitHubKeyRegistry:
        return GitHubKeyRegistry(load_repository_settings())

    def bootstrapper_factory() -> GitOpsBootstrapper:
        return GitOpsBootstrapper(load_repository_settings(), bus, run_id=run_id)

    orchestrator = Orchestrator(
        config=desired_config,
        cluster_factory=lambda desired: EksctlClusterDriver(region=desired.region or None),
        ssh_agent=OpenSSHAgent(key_path=key_path),
        gitops=EksctlGitOpsDriver(flux_namespace=flux_namespace),
        registry_factory=registry_factory,
        bootstrapper_factory=bootstrapper_factory,
        reconciler=ClusterReconciler(
            bus,
            poll_interval=poll_interval,
            max_delete_attempts=max_delete_attempts,
            run_id=run_id,
        ),
        bus=bus,
        echo=typer.echo,
        run_id=run_id,
    )

    try:
        report = orchestrator.run()
    except ConfigurationError as exc:
        logger.error(f"Configuration error: {exc}")
        raise typer.Exit(EXIT_CONFIG)
    except (CollaboratorError, ConvergenceTimeout) as exc:
        logger.error(str(exc))
        raise typer.Exit(EXIT_COLLABORATOR)

    if report.bootstrap and report.bootstrap.failed_profiles:
        failed = ", ".join(p.profile for p in report.bootstrap.failed_profiles)
        logger.error(f"Profiles failed to enable: {failed}")
        if not allow_profile_failures:
            raise typer.Exit(EXIT_PROFILES)

    if not report.converged:
        logger.warning("Cluster has not converged to the desired state")


@app.command()
def status(
    config: Path = typer.Argument(Path("cluster.yaml"), help="Desired cluster state (cluster.yaml)"),
) -> None:
    """Print the observed and desired cluster state without changing anything."""
    try:
        desired = DesiredConfigFile(config).read()
    except ConfigurationError as exc:
        typer.echo(f"Configuration error: {exc}", err=True)
        raise typer.Exit(EXIT_CONFIG)

    observed = EksctlClusterDriver(region=desired.region or None).observe(desired.cluster_name)
    typer.echo(format_states(observed, desired.state))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
