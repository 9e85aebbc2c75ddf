"""Configuration available to a process running inside a pod."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)

BASE_DIR = "/var/run/secrets/kubernetes.io/serviceaccount"
API_SERVER = "https://kubernetes.default.svc"


def _read_file(base_dir: str, name: str) -> str | None:
    full_path = f"{base_dir}/{name}"
    try:
        return Path(full_path).read_text()
    except OSError as err:
        log.error("no %s found as pod in %s", name, full_path)
        log.debug("unable to read pod: %s value: %s", name, err)
        return None


@dataclass
class PodConfig:
    """Service account namespace and token mounted into a pod."""

    namespace: str = ""
    token: str = field(default="", repr=False)
    base_dir: str = BASE_DIR

    @classmethod
    def load(cls, base_dir: str | None = None) -> PodConfig | None:
        """Read the service account files, or return None when they are absent."""
        directory = BASE_DIR if base_dir is None else str(base_dir)
        if not Path(directory).exists():
            log.debug("pod config dir: %s is not found, skipping pod config", directory)
            return None
        namespace = _read_file(directory, "namespace")
        if namespace is None:
            return None
        token = _read_file(directory, "token")
        if token is None:
            return None
        return cls(namespace=namespace, token=token, base_dir=directory)

    def api_path(self) -> str:
        return API_SERVER

    def ca_path(self) -> str:
        """Path to the CA certificate."""
        return f"{self.base_dir}/ca.crt"