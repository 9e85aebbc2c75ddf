"""Errors raised while loading Kubernetes configuration."""


class ConfigError(Exception):
    """Kubernetes configuration could not be read or used."""


class NoCurrentContextError(ConfigError):
    """The kubeconfig names no usable current context."""

    def __init__(self, message: str = "No active Kubernetes context") -> None:
        super().__init__(message)