# k8kit

Tools for working with a Kubernetes cluster from Python:

- reading kubeconfig files (clusters, contexts, users, auth providers);
- detecting in-cluster service-account configuration;
- building API resource URIs and list query strings;
- a small REST client for the Kubernetes API with list paging,
  watch streams and pod logs;
- pointing `kubectl` at a local Minikube instance.

## Installation

```
pip install k8kit
```

For running the test suite:

```
pip install "k8kit[test]"
pytest
```

## Reading configuration

`KubeConfig` in `k8kit.kubeconfig` parses a kubeconfig file and resolves the
active context, cluster and user:

```python
from k8kit.kubeconfig import KubeConfig

config = KubeConfig.from_file("/path/to/kubeconfig")
context = config.active_context()
cluster = config.active_cluster()
print(context.context.effective_namespace(), cluster.cluster.server)
```

`KubeConfig.from_home()` reads `~/.kube/config`. A context without a
namespace has the effective namespace `default`. `ClusterDetail.ca()` returns
the contents of the certificate authority file, if one is named. For a GCP
auth provider, `AuthProviderDetail.token()` runs the configured command and
returns the `credential.access_token` it reports; other providers raise
`ConfigError`.

Errors while reading configuration are `ConfigError` (from
`k8kit.config_errors`).

`PodConfig.load()` from `k8kit.pod` reads the service-account namespace and
token mounted at `/var/run/secrets/kubernetes.io/serviceaccount`, returning
`None` when they are not there.

`K8Config.load()` from `k8kit.k8config` picks the source on its own: inside a
pod it uses `PodConfig`, otherwise it reads the file named by the
`KUBECONFIG` environment variable, falling back to `~/.kube/config`. It
raises `NoCurrentContextError` when the kubeconfig has no current context
with a matching cluster.

```python
from k8kit.k8config import K8Config

config = K8Config.load()
print(config.api_path(), config.namespace())
```

## Building URIs

```python
from k8kit.uri import Crd, CrdNames, ListOptions, NameSpace, prefix_uri

items = Crd(
    group="test.com",
    version="v1",
    names=CrdNames(kind="Item", plural="items", singular="item"),
)
print(prefix_uri(items, "https://localhost", NameSpace.named("default"), None))
# https://localhost/apis/test.com/v1/namespaces/default/items

print(ListOptions(pretty=True, watch=True).to_query())
# pretty=true&watch=true
```

Resources in the `core` group are served under `/api` rather than
`/apis/<group>`. `ResourceKind` pairs a `Crd` with whether the resource is
namespaced; `item_uri` and `items_uri` build URIs from it and raise
`ClientError` for an invalid URI.

## The API client

`K8Client` in `k8kit.client` is built from a host and an optional bearer
token, or with `K8Client.from_config(config)` / `K8Client.default()` from a
`K8Config` (using the service-account token and CA, or the kubeconfig user's
token, client certificate and cluster CA).

It offers `server_version`, `retrieve_item`, `retrieve_items`,
`retrieve_items_in_chunks` (yields pages and follows the server's continue
tokens; an error ends the iteration), `create_item`, `replace_item`,
`update_status`, `patch` and `patch_status` (with a `PatchMergeType`),
`delete_item` (returns a `DeleteStatus`), `watch_stream_since` (yields each
watch event in a one-element list, with an undecodable event given as a
`ClientError`) and `retrieve_log` (returns a `LogStream` that can be read or
iterated line by line). Objects are sent and returned as plain dictionaries.

Failed requests raise `ClientError` subclasses from `k8kit.client_errors`; a
`StatusError` carries the HTTP status and answers `not_found()`.

`k8kit.streams.watch_chunks` splits any iterable of byte chunks into
newline-separated records.

## Commands

Print the parsed kubeconfig (from `KUBECONFIG` or `~/.kube/config`):

```
k8kit-kubeconfig
```

Point `kubectl` at the running Minikube instance: add its address to
`/etc/hosts` as `minikubeCA` when it is missing or out of date, then create
and select a `kubectl` cluster and context (named `flvkube`) for it. This
runs `minikube`, `kubectl` and `sudo`, so those must be installed. The same
is available from Python as `MinikubeContext` in `k8kit.minikube`.

```
k8kit-ctx-util
```

## What it does not do

- Objects are not typed: there are no resource spec classes and no
  computation of patches from differences between objects.
- The client does not run `exec` credential plugins or auth providers to
  obtain tokens; it uses only tokens and certificate files named directly.
- Inline certificate data (`certificate-authority-data`,
  `client-certificate-data`) is parsed but not used by the client.