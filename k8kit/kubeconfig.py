"""Reading kubeconfig files."""

from __future__ import annotations

import argparse
import json
import logging
import os
import pprint
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from .config_errors import ConfigError

log = logging.getLogger(__name__)

KUBECONFIG = "KUBECONFIG"

_GCP_REQUIRED_FIELDS = ("cmd_args", "cmd_path", "expiry_key", "token_key")
_GCP_OPTIONAL_FIELDS = ("access_token", "expiry")
_USER_STR_FIELDS = (
    "client_certificate",
    "client_key",
    "client_certificate_data",
    "client_key_data",
    "token",
    "username",
    "password",
)


def _kebab(name: str) -> str:
    return name.replace("_", "-")


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ConfigError(f"Yaml error: {what}: expected a mapping")
    return data


def _value(data: Mapping[str, Any], key: str, kind: type, required: bool = True) -> Any:
    value = data.get(key)
    if value is None:
        if required:
            raise ConfigError(f"Yaml error: missing field `{key}`")
        return None
    if not isinstance(value, kind):
        raise ConfigError(f"Yaml error: invalid type for field `{key}`")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    values = _value(data, key, list)
    if not all(isinstance(item, str) for item in values):
        raise ConfigError(f"Yaml error: invalid type in field `{key}`")
    return list(values)


@dataclass
class ClusterDetail:
    server: str
    insecure_skip_tls_verify: bool | None = None
    certificate_authority: str | None = None
    certificate_authority_data: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ClusterDetail:
        data = _mapping(data, "cluster")
        return cls(
            server=_value(data, "server", str),
            insecure_skip_tls_verify=_value(data, "insecure-skip-tls-verify", bool, False),
            certificate_authority=_value(data, "certificate-authority", str, False),
            certificate_authority_data=_value(data, "certificate-authority-data", str, False),
        )

    def ca(self) -> str | None:
        """Contents of the certificate authority file, if one is configured."""
        if self.certificate_authority is None:
            return None
        return Path(self.certificate_authority).read_text()


@dataclass
class Cluster:
    name: str
    cluster: ClusterDetail


@dataclass
class ContextDetail:
    cluster: str
    user: str
    namespace: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ContextDetail:
        data = _mapping(data, "context")
        return cls(
            cluster=_value(data, "cluster", str),
            user=_value(data, "user", str),
            namespace=_value(data, "namespace", str, False),
        )

    def effective_namespace(self) -> str:
        """The configured namespace, or ``default``."""
        return self.namespace if self.namespace is not None else "default"


@dataclass
class Context:
    name: str
    context: ContextDetail


@dataclass
class GcpAuthProviderConfig:
    cmd_args: str
    cmd_path: str
    expiry_key: str
    token_key: str
    access_token: str | None = field(default=None, repr=False)
    expiry: str | None = None


@dataclass
class AuthProviderDetail:
    """An auth provider; only GCP carries a usable configuration."""

    name: str
    gcp: GcpAuthProviderConfig | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AuthProviderDetail:
        data = _mapping(data, "auth-provider")
        name = _value(data, "name", str)
        if name not in ("Gcp", "gcp"):
            return cls(name=name)
        config = _mapping(_value(data, "config", Mapping), "config")
        values = {key: _value(config, _kebab(key), str) for key in _GCP_REQUIRED_FIELDS}
        values.update(
            {key: _value(config, _kebab(key), str, False) for key in _GCP_OPTIONAL_FIELDS}
        )
        return cls(name=name, gcp=GcpAuthProviderConfig(**values))

    def token(self) -> str | None:
        """Run the provider's command and return the access token it reports."""
        if self.gcp is None:
            raise ConfigError(
                "Unknown error: Only Auth provider support for Google Kubernetes "
                "Engine (GKE). Please file issue."
            )
        command = [self.gcp.cmd_path, *self.gcp.cmd_args.split()]
        try:
            completed = subprocess.run(command, capture_output=True, check=False)
        except OSError as err:
            raise ConfigError(f"IO error: {err}") from err
        try:
            payload = json.loads(completed.stdout)
        except ValueError as err:
            raise ConfigError(
                "Unknown error: Failed parsing request token response"
            ) from err
        credential = payload.get("credential") if isinstance(payload, dict) else None
        reported = credential.get("access_token") if isinstance(credential, dict) else None
        return reported if isinstance(reported, str) else None


@dataclass
class Exec:
    api_version: str
    args: list[str]
    command: str


@dataclass
class UserDetail:
    auth_provider: AuthProviderDetail | None = None
    client_certificate: str | None = None
    client_key: str | None = None
    client_certificate_data: str | None = None
    client_key_data: str | None = field(default=None, repr=False)
    exec: Exec | None = None
    token: str | None = field(default=None, repr=False)
    username: str | None = None
    password: str | None = field(default=None, repr=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> UserDetail:
        data = _mapping(data, "user")
        provider = _value(data, "auth-provider", Mapping, False)
        exec_data = _value(data, "exec", Mapping, False)
        exec_value = None
        if exec_data is not None:
            exec_value = Exec(
                api_version=_value(exec_data, "apiVersion", str),
                args=_str_list(exec_data, "args"),
                command=_value(exec_data, "command", str),
            )
        values = {key: _value(data, _kebab(key), str, False) for key in _USER_STR_FIELDS}
        return cls(
            auth_provider=AuthProviderDetail.from_dict(provider) if provider is not None else None,
            exec=exec_value,
            **values,
        )


@dataclass
class User:
    name: str
    user: UserDetail


def _entries(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    return [_mapping(item, key) for item in _value(data, key, list)]


@dataclass
class KubeConfig:
    api_version: str
    clusters: list[Cluster]
    contexts: list[Context]
    current_context: str
    kind: str
    users: list[User]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> KubeConfig:
        data = _mapping(data, "kubeconfig")
        clusters = [
            Cluster(
                name=_value(item, "name", str),
                cluster=ClusterDetail.from_dict(_value(item, "cluster", Mapping)),
            )
            for item in _entries(data, "clusters")
        ]
        contexts = [
            Context(
                name=_value(item, "name", str),
                context=ContextDetail.from_dict(_value(item, "context", Mapping)),
            )
            for item in _entries(data, "contexts")
        ]
        users = [
            User(
                name=_value(item, "name", str),
                user=UserDetail.from_dict(_value(item, "user", Mapping)),
            )
            for item in _entries(data, "users")
        ]
        return cls(
            api_version=_value(data, "apiVersion", str),
            clusters=clusters,
            contexts=contexts,
            current_context=_value(data, "current-context", str),
            kind=_value(data, "kind", str),
            users=users,
        )

    @classmethod
    def from_home(cls) -> KubeConfig:
        """Read ``~/.kube/config``."""
        return cls.from_file(Path.home() / ".kube" / "config")

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> KubeConfig:
        try:
            with open(path, encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except OSError as err:
            raise ConfigError(f"IO error: {err}") from err
        except yaml.YAMLError as err:
            raise ConfigError(f"Yaml error: {err}") from err
        return cls.from_dict(data)

    def active_context(self) -> Context | None:
        return next((c for c in self.contexts if c.name == self.current_context), None)

    def active_cluster(self) -> Cluster | None:
        ctx = self.active_context()
        if ctx is None:
            return None
        return next((c for c in self.clusters if c.name == ctx.context.cluster), None)

    def active_user(self) -> User | None:
        ctx = self.active_context()
        if ctx is None:
            return None
        return next((u for u in self.users if u.name == ctx.context.user), None)


def main(argv: list[str] | None = None) -> int:
    """Load the kubeconfig named by KUBECONFIG, or the one at home, and print it."""
    parser = argparse.ArgumentParser(
        description="Print the parsed kubeconfig from $KUBECONFIG or ~/.kube/config."
    )
    parser.parse_args(argv)
    path = os.environ.get(KUBECONFIG)
    try:
        config = KubeConfig.from_file(path) if path else KubeConfig.from_home()
    except ConfigError as err:
        print(f"Load failed: {err}", file=sys.stderr)
        return 1
    print(pprint.pformat(config))
    return 0