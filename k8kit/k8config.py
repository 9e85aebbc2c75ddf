"""Choosing between in-pod and kubeconfig configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .config_errors import NoCurrentContextError
from .kubeconfig import KUBECONFIG, KubeConfig
from .pod import PodConfig

log = logging.getLogger(__name__)


@dataclass
class KubeContext:
    namespace: str
    api_path: str
    config: KubeConfig


@dataclass
class K8Config:
    """Either a pod's service account or the current kubeconfig context."""

    source: PodConfig | KubeContext = field(default_factory=PodConfig)

    @classmethod
    def load(cls) -> K8Config:
        pod_config = PodConfig.load()
        if pod_config is not None:
            log.debug("found pod config: %r", pod_config)
            return cls(pod_config)

        log.debug("no pod config is found. trying to read kubeconfig")
        path = os.environ.get(KUBECONFIG)
        config = KubeConfig.from_file(path) if path is not None else KubeConfig.from_home()
        log.debug("kube config: %r", config)

        cluster = config.active_cluster()
        if cluster is None:
            raise NoCurrentContextError()
        ctx = config.active_context()
        assert ctx is not None, "current context should exist"
        return cls(
            KubeContext(
                namespace=ctx.context.effective_namespace(),
                api_path=cluster.cluster.server,
                config=config,
            )
        )

    def api_path(self) -> str:
        if isinstance(self.source, PodConfig):
            return self.source.api_path()
        return self.source.api_path

    def namespace(self) -> str:
        return self.source.namespace