"""Point kubectl at the local minikube cluster."""

from __future__ import annotations

import argparse

from .config_errors import ConfigError
from .minikube import MinikubeContext


def run() -> None:
    """Add the minikube address to the hosts file and create its kubectl context."""
    context = MinikubeContext.try_from_system()
    context.save()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description=(
            "Add the minikube IP address to /etc/hosts and create a kubectl "
            "cluster and context that use it."
        )
    )
    parser.parse_args(argv)
    try:
        run()
    except ConfigError as err:
        print(err)
        return 1
    return 0