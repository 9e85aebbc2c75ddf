"""Wiring kubectl up to a local minikube cluster."""

from __future__ import annotations

import dataclasses
import ipaddress
import json
import logging
import os
import subprocess
import sys
import tempfile
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from .config_errors import ConfigError
from .k8config import K8Config, KubeContext

log = logging.getLogger(__name__)

HOSTS_FILE = "/etc/hosts"
HOST_ALIAS = "minikubeCA"
DEFAULT_CONTEXT_NAME = "flvkube"
SCRIPT_NAME = "flv_minikube.sh"

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

_PROFILE_COMMAND = ["minikube", "profile", "list", "-o", "json"]


def _run(command: Sequence[str], **kwargs: Any) -> subprocess.CompletedProcess:
    """Start a program; failing to start it is a configuration error."""
    try:
        return subprocess.run(list(command), check=False, **kwargs)
    except OSError as err:
        raise ConfigError(f"IO error: {err}") from err


def _write_script(text: str) -> Path:
    """Write an executable script into the temporary directory."""
    path = Path(tempfile.gettempdir()) / SCRIPT_NAME
    try:
        fd = os.open(path, os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o755)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
    except OSError as err:
        raise ConfigError(f"IO error: {err}") from err
    log.debug("script %s", text)
    return path


def parse_hostfile(path: str | os.PathLike[str] = HOSTS_FILE) -> list[tuple[IPAddress, tuple[str, ...]]]:
    """Return ``(ip, names)`` for every valid entry of a hosts file."""
    entries = []
    for line in Path(path).read_text(encoding="utf-8", errors="replace").splitlines():
        fields = line.split("#", 1)[0].split()
        if len(fields) < 2:
            continue
        try:
            ip = ipaddress.ip_address(fields[0])
        except ValueError:
            continue
        entries.append((ip, tuple(fields[1:])))
    return entries


def get_host_entry(hostname: str, path: str | os.PathLike[str] = HOSTS_FILE) -> IPAddress | None:
    """The address a hosts file gives for ``hostname``, if any."""
    try:
        hosts = parse_hostfile(path)
    except OSError as err:
        raise ConfigError(f"Unknown error: failed to get /etc/hosts entries: {err}") from err
    return next((ip for ip, names in hosts if hostname in names), None)


def load_cert_auth() -> str:
    """Path of the certificate authority of the current kubeconfig cluster."""
    source = K8Config.load().source
    if not isinstance(source, KubeContext):
        raise ConfigError("Unknown error: should not be pod")
    cluster = source.config.active_cluster()
    if cluster is None:
        raise ConfigError("Unknown error: should have current context")
    authority = cluster.cluster.certificate_authority
    if authority is None:
        raise ConfigError("Unknown error: certificate authority")
    return authority


def _required(data: Any, key: str, kind: type | tuple[type, ...]) -> Any:
    if not isinstance(data, dict):
        raise ValueError("expected an object")
    if key not in data:
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if isinstance(value, bool) and kind is int or not isinstance(value, kind):
        raise ValueError(f"invalid type for field `{key}`")
    return value


@dataclass(frozen=True)
class MinikubeNode:
    ip: IPAddress
    port: int

    @classmethod
    def _from_dict(cls, data: Any) -> MinikubeNode:
        ip = ipaddress.ip_address(_required(data, "IP", str))
        port = _required(data, "Port", int)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {port}")
        return cls(ip=ip, port=port)


@dataclass(frozen=True)
class MinikubeProfile:
    """The active minikube profile and its first node."""

    name: str
    node: MinikubeNode

    @property
    def ip(self) -> IPAddress:
        return self.node.ip

    @property
    def port(self) -> int:
        return self.node.port

    @classmethod
    def from_json(cls, text: str) -> MinikubeProfile:
        """Pick the first valid profile from ``minikube profile list -o json`` output."""
        try:
            data = json.loads(text)
            profiles = []
            for entry in _required(data, "valid", list):
                name = _required(entry, "Name", str)
                _required(entry, "Status", str)
                config = _required(entry, "Config", dict)
                _required(config, "Name", str)
                nodes = [MinikubeNode._from_dict(n) for n in _required(config, "Nodes", list)]
                profiles.append((name, nodes))
        except ValueError as err:
            raise ConfigError(
                f"Unknown error: `minikube profile list -o json` did not give valid JSON: {err}"
            ) from err
        if not profiles:
            raise ConfigError("Unknown error: no valid minikube profiles")
        name, nodes = profiles[0]
        if not nodes:
            raise ConfigError("Unknown error: Minikube has no active nodes")
        return cls(name=name, node=nodes[0])

    @classmethod
    def load(cls) -> MinikubeProfile:
        """Ask the minikube program for its current profile."""
        completed = _run(_PROFILE_COMMAND, capture_output=True)
        try:
            text = completed.stdout.decode("utf-8")
        except UnicodeDecodeError as err:
            raise ConfigError(
                f"Unknown error: `minikube profile list -o json` did not give UTF-8: {err}"
            ) from err
        return cls.from_json(text)

    def matches_hostfile(self, path: str | os.PathLike[str] = HOSTS_FILE) -> bool:
        """True when the hosts file maps the minikube alias to this node's address."""
        return get_host_entry(HOST_ALIAS, path) == self.node.ip


@dataclass(frozen=True)
class MinikubeContext:
    """Settings to point kubectl at the running minikube instance."""

    profile: MinikubeProfile
    name: str = DEFAULT_CONTEXT_NAME
    hosts_path: str = HOSTS_FILE

    @classmethod
    def try_from_system(cls) -> MinikubeContext:
        """Build a context from the profile reported by the minikube program."""
        return cls(profile=MinikubeProfile.load())

    def with_name(self, name: str) -> MinikubeContext:
        return dataclasses.replace(self, name=str(name))

    def save(self) -> None:
        """Update the hosts file if needed, then the kubectl context."""
        if not self.profile.matches_hostfile(self.hosts_path):
            log.debug("hosts file is outdated: updating")
            self._update_hosts()
        self._update_kubectl_context()

    def _update_kubectl_context(self) -> None:
        authority = load_cert_auth()
        _run([
            "kubectl", "config", "set-cluster", self.name,
            f"--server=https://{HOST_ALIAS}:{self.profile.port}",
            f"--certificate-authority={authority}",
        ])
        _run([
            "kubectl", "config", "set-context", self.name,
            "--user=minikube", f"--cluster={self.name}",
        ])
        _run(["kubectl", "config", "use-context", self.name])

    def _update_hosts(self) -> None:
        script = (
            "#!/bin/bash\n"
            "# Get IP from context, if available\n"
            f"export IP={self.profile.ip}\n"
            '# If there is no IP in context, use "minikube ip"\n'
            'export IP="${IP:-$(minikube ip)}"\n'
            f"sudo sed -i'' -e '/{HOST_ALIAS}/d' {self.hosts_path}\n"
            f'echo "$IP {HOST_ALIAS}" | sudo tee -a  {self.hosts_path}\n'
        )
        _run([str(_write_script(script))])


def create_dns_context(ctx_name: str = DEFAULT_CONTEXT_NAME) -> None:
    """Create a kubectl context copying the current cluster (deprecated)."""
    warnings.warn(
        "create_dns_context is deprecated; use MinikubeContext instead",
        DeprecationWarning,
        stacklevel=2,
    )
    authority = load_cert_auth()
    script = (
        "#!/bin/bash\n"
        "export IP=$(minikube ip)\n"
        f"sudo sed -i '' '/{HOST_ALIAS}/d' /etc/hosts\n"
        f'echo "$IP {HOST_ALIAS}" | sudo tee -a  /etc/hosts\n'
        "cd ~\n"
        f"kubectl config set-cluster {ctx_name} --server=https://{HOST_ALIAS}:8443 "
        f"--certificate-authority={authority}\n"
        f"kubectl config set-context {ctx_name} --user=minikube --cluster={ctx_name}\n"
        f"kubectl config use-context {ctx_name}\n"
    )
    completed = _run([str(_write_script(script))], capture_output=True)
    sys.stdout.write((completed.stdout or b"").decode("utf-8", errors="replace"))
    sys.stderr.write((completed.stderr or b"").decode("utf-8", errors="replace"))