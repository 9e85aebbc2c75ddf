import textwrap

import pytest

from k8kit import pod
from k8kit.config_errors import NoCurrentContextError
from k8kit.k8config import K8Config, KubeContext
from k8kit.pod import PodConfig

CONFIG_TEMPLATE = textwrap.dedent(
    """\
    apiVersion: v1
    clusters:
    - cluster:
        server: https://192.168.0.0:8443
      name: minikube
    contexts:
    - context:
        cluster: minikube
        namespace: flv
        user: minikube
      name: flv
    - context:
        cluster: minikube
        user: minikube
      name: plain
    current-context: {current}
    kind: Config
    users:
    - name: minikube
      user:
        token: token
    """
)


@pytest.fixture
def no_pod(tmp_path, monkeypatch):
    monkeypatch.setattr(pod, "BASE_DIR", str(tmp_path / "no-pod"))


def _write_config(tmp_path, current):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_TEMPLATE.format(current=current))
    return path


def test_load_from_kubeconfig(tmp_path, monkeypatch, no_pod):
    monkeypatch.setenv("KUBECONFIG", str(_write_config(tmp_path, "flv")))
    config = K8Config.load()
    assert isinstance(config.source, KubeContext)
    assert config.namespace() == "flv"
    assert config.api_path() == "https://192.168.0.0:8443"


def test_load_context_without_namespace(tmp_path, monkeypatch, no_pod):
    monkeypatch.setenv("KUBECONFIG", str(_write_config(tmp_path, "plain")))
    assert K8Config.load().namespace() == "default"


def test_load_without_current_context(tmp_path, monkeypatch, no_pod):
    monkeypatch.setenv("KUBECONFIG", str(_write_config(tmp_path, "missing")))
    with pytest.raises(NoCurrentContextError):
        K8Config.load()


def test_load_from_home(tmp_path, monkeypatch, no_pod):
    home = tmp_path / "home"
    kube_dir = home / ".kube"
    kube_dir.mkdir(parents=True)
    (kube_dir / "config").write_text(CONFIG_TEMPLATE.format(current="flv"))
    monkeypatch.delenv("KUBECONFIG", raising=False)
    monkeypatch.setenv("HOME", str(home))
    config = K8Config.load()
    assert config.namespace() == "flv"


def test_load_prefers_pod(tmp_path, monkeypatch):
    pod_dir = tmp_path / "pod"
    pod_dir.mkdir()
    (pod_dir / "namespace").write_text("podns")
    (pod_dir / "token").write_text("token")
    monkeypatch.setattr(pod, "BASE_DIR", str(pod_dir))
    monkeypatch.setenv("KUBECONFIG", str(_write_config(tmp_path, "flv")))
    config = K8Config.load()
    assert isinstance(config.source, PodConfig)
    assert config.namespace() == "podns"
    assert config.api_path() == "https://kubernetes.default.svc"


def test_default_is_pod_config():
    config = K8Config()
    assert isinstance(config.source, PodConfig)
    assert config.namespace() == ""
    assert config.api_path() == PodConfig().api_path()