import ipaddress
import json
import subprocess
import tempfile

import pytest

from k8kit.config_errors import ConfigError
from k8kit.minikube import (
    MinikubeContext,
    MinikubeNode,
    MinikubeProfile,
    create_dns_context,
    get_host_entry,
    load_cert_auth,
    parse_hostfile,
)

KUBECONFIG_TEXT = """\
apiVersion: v1
kind: Config
current-context: flv
clusters:
- name: minikube
  cluster:
    server: https://192.168.0.0:8443
    certificate-authority: /Users/test/.minikube/ca.crt
contexts:
- name: flv
  context:
    cluster: minikube
    user: minikube
    namespace: flv
users:
- name: minikube
  user:
    client-certificate: /Users/test/.minikube/client.crt
    client-key: /Users/test/.minikube/client.key
"""

NODE_IP = "192.168.49.2"
NODE_PORT = 8443


def _profiles(ip=NODE_IP, port=NODE_PORT, nodes=True, valid=True):
    entries = []
    if valid:
        node_list = [{"IP": ip, "Port": port}] if nodes else []
        entries.append(
            {"Name": "minikube", "Status": "Running",
             "Config": {"Name": "minikube", "Nodes": node_list}}
        )
    return json.dumps({"valid": entries})


class _Recorder:
    def __init__(self, minikube_output=b"", script_output=b""):
        self.calls = []
        self.minikube_output = minikube_output
        self.script_output = script_output

    def __call__(self, command, **kwargs):
        self.calls.append(list(command))
        if command[0] == "minikube":
            return subprocess.CompletedProcess(command, 0, stdout=self.minikube_output, stderr=b"")
        if command[0] == "kubectl":
            return subprocess.CompletedProcess(command, 0)
        return subprocess.CompletedProcess(command, 0, stdout=self.script_output, stderr=b"")


@pytest.fixture
def kubeconfig(tmp_path, monkeypatch):
    path = tmp_path / "config"
    path.write_text(KUBECONFIG_TEXT)
    monkeypatch.setenv("KUBECONFIG", str(path))
    monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
    return path


@pytest.fixture
def profile():
    return MinikubeProfile.from_json(_profiles())


def _hosts(tmp_path, text):
    path = tmp_path / "hosts"
    path.write_text(text)
    return path


def test_parse_hostfile_skips_comments_and_bad_lines(tmp_path):
    path = _hosts(tmp_path, "# header\n\n127.0.0.1 localhost loopback # note\nbogus line\n::1 ip6-localhost\n")
    entries = parse_hostfile(path)
    assert entries == [
        (ipaddress.ip_address("127.0.0.1"), ("localhost", "loopback")),
        (ipaddress.ip_address("::1"), ("ip6-localhost",)),
    ]


def test_get_host_entry_found_and_absent(tmp_path):
    path = _hosts(tmp_path, f"{NODE_IP} minikubeCA\n127.0.0.1 localhost\n")
    assert get_host_entry("minikubeCA", path) == ipaddress.ip_address(NODE_IP)
    assert get_host_entry("missing", path) is None


def test_get_host_entry_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="failed to get /etc/hosts entries"):
        get_host_entry("minikubeCA", tmp_path / "nope")


def test_profile_from_json(profile):
    assert profile.name == "minikube"
    assert profile.node == MinikubeNode(ip=ipaddress.ip_address(NODE_IP), port=NODE_PORT)
    assert profile.ip == ipaddress.ip_address(NODE_IP)
    assert profile.port == NODE_PORT


def test_profile_from_json_invalid_json():
    with pytest.raises(ConfigError, match="did not give valid JSON"):
        MinikubeProfile.from_json("not json")


def test_profile_from_json_bad_fields():
    with pytest.raises(ConfigError, match="did not give valid JSON"):
        MinikubeProfile.from_json(_profiles(port=70000))
    with pytest.raises(ConfigError, match="did not give valid JSON"):
        MinikubeProfile.from_json(_profiles(ip="not-an-ip"))


def test_profile_from_json_no_profiles():
    with pytest.raises(ConfigError, match="no valid minikube profiles"):
        MinikubeProfile.from_json(_profiles(valid=False))


def test_profile_from_json_no_nodes():
    with pytest.raises(ConfigError, match="Minikube has no active nodes"):
        MinikubeProfile.from_json(_profiles(nodes=False))


def test_profile_load_runs_minikube(monkeypatch):
    recorder = _Recorder(minikube_output=_profiles().encode())
    monkeypatch.setattr("k8kit.minikube.subprocess.run", recorder)
    loaded = MinikubeProfile.load()
    assert recorder.calls == [["minikube", "profile", "list", "-o", "json"]]
    assert loaded == MinikubeProfile.from_json(_profiles())


def test_profile_load_rejects_non_utf8(monkeypatch):
    monkeypatch.setattr("k8kit.minikube.subprocess.run", _Recorder(minikube_output=b"\xff\xfe"))
    with pytest.raises(ConfigError, match="did not give UTF-8"):
        MinikubeProfile.load()


def test_profile_load_missing_program(monkeypatch):
    def fail(command, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", command[0])

    monkeypatch.setattr("k8kit.minikube.subprocess.run", fail)
    with pytest.raises(ConfigError, match="IO error"):
        MinikubeProfile.load()


def test_matches_hostfile(tmp_path, profile):
    assert profile.matches_hostfile(_hosts(tmp_path, f"{NODE_IP} minikubeCA\n")) is True
    assert profile.matches_hostfile(_hosts(tmp_path, "10.0.0.1 minikubeCA\n")) is False
    assert profile.matches_hostfile(_hosts(tmp_path, "127.0.0.1 localhost\n")) is False


def test_with_name_returns_renamed_copy(profile):
    context = MinikubeContext(profile=profile)
    renamed = context.with_name("my-minikube")
    assert renamed.name == "my-minikube"
    assert renamed.profile == profile
    assert context.name == "flvkube"


def test_try_from_system(monkeypatch):
    monkeypatch.setattr("k8kit.minikube.subprocess.run", _Recorder(minikube_output=_profiles().encode()))
    context = MinikubeContext.try_from_system()
    assert context.name == "flvkube"
    assert context.profile.ip == ipaddress.ip_address(NODE_IP)


def test_load_cert_auth(kubeconfig):
    assert load_cert_auth() == "/Users/test/.minikube/ca.crt"


def test_load_cert_auth_without_authority(kubeconfig):
    kubeconfig.write_text(KUBECONFIG_TEXT.replace(
        "    certificate-authority: /Users/test/.minikube/ca.crt\n", ""))
    with pytest.raises(ConfigError, match="certificate authority"):
        load_cert_auth()


def test_save_with_current_hosts_only_updates_kubectl(kubeconfig, tmp_path, profile, monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr("k8kit.minikube.subprocess.run", recorder)
    hosts = _hosts(tmp_path, f"{NODE_IP} minikubeCA\n")
    context = MinikubeContext(profile=profile, hosts_path=str(hosts))
    result = context.save()
    assert result is None
    assert context.name == "flvkube"
    assert recorder.calls == [
        ["kubectl", "config", "set-cluster", "flvkube",
         f"--server=https://minikubeCA:{NODE_PORT}",
         "--certificate-authority=/Users/test/.minikube/ca.crt"],
        ["kubectl", "config", "set-context", "flvkube", "--user=minikube", "--cluster=flvkube"],
        ["kubectl", "config", "use-context", "flvkube"],
    ]


def test_save_with_outdated_hosts_runs_script(kubeconfig, tmp_path, profile, monkeypatch):
    recorder = _Recorder()
    monkeypatch.setattr("k8kit.minikube.subprocess.run", recorder)
    hosts = _hosts(tmp_path, "127.0.0.1 localhost\n")
    result = MinikubeContext(profile=profile, hosts_path=str(hosts)).with_name("dev").save()
    assert result is None
    script = tmp_path / "flv_minikube.sh"
    assert recorder.calls[0] == [str(script)]
    text = script.read_text()
    assert text.startswith("#!/bin/bash\n")
    assert f"export IP={NODE_IP}\n" in text
    assert "minikubeCA" in text
    assert recorder.calls[-1] == ["kubectl", "config", "use-context", "dev"]
    assert len(recorder.calls) == 4


def test_create_dns_context(kubeconfig, tmp_path, monkeypatch, capsys):
    recorder = _Recorder(script_output=b"context ready\n")
    monkeypatch.setattr("k8kit.minikube.subprocess.run", recorder)
    with pytest.warns(DeprecationWarning):
        create_dns_context("flvkube")
    script = tmp_path / "flv_minikube.sh"
    text = script.read_text()
    assert "kubectl config use-context flvkube" in text
    assert "--certificate-authority=/Users/test/.minikube/ca.crt" in text
    assert recorder.calls == [[str(script)]]
    assert "context ready" in capsys.readouterr().out