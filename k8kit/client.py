"""Client for the Kubernetes API server."""

from __future__ import annotations

import enum
import json
import logging
from dataclasses import dataclass, fields
from typing import Any, Iterator, Mapping

import requests

from .client_errors import ClientError, StatusError
from .k8config import K8Config
from .pod import PodConfig
from .streams import LogStream, watch_chunks
from .uri import POD, ListOptions, NameSpace, NameSpaceLike, ResourceKind, item_uri, items_uri

log = logging.getLogger(__name__)

JSON_CONTENT = "application/json"
WATCH_TIMEOUT_SECONDS = 3600


@dataclass
class VersionInfo:
    """Version reported by the API server."""

    major: str = ""
    minor: str = ""
    git_version: str = ""
    git_commit: str = ""
    git_treestate: str = ""
    build_date: str = ""
    go_version: str = ""
    compiler: str = ""
    platform: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> VersionInfo:
        if not isinstance(data, Mapping):
            raise ClientError("version info: expected an object")
        values = {}
        for item in fields(cls):
            head, *rest = item.name.split("_")
            key = head + "".join(part.capitalize() for part in rest)
            value = data.get(key)
            if value is not None:
                values[item.name] = str(value)
        return cls(**values)


class PatchMergeType(enum.Enum):
    """Kind of patch, named by the content type it is sent with."""

    JSON = "application/json-patch+json"
    JSON_MERGE = "application/merge-patch+json"
    STRATEGIC_MERGE = "application/strategic-merge-patch+json"

    @property
    def content_type(self) -> str:
        return self.value


@dataclass
class DeleteStatus:
    """Outcome of a delete: either a final Status or the object being deleted."""

    body: dict[str, Any]
    foreground: bool = False

    @property
    def deleted(self) -> bool:
        return not self.foreground


def _metadata(value: Mapping[str, Any]) -> tuple[str, str]:
    metadata = value.get("metadata") if isinstance(value, Mapping) else None
    if not isinstance(metadata, Mapping) or not isinstance(metadata.get("name"), str):
        raise ClientError("object has no metadata name")
    namespace = metadata.get("namespace") or ""
    return metadata["name"], str(namespace)


class K8Client:
    """Access to a Kubernetes cluster through its HTTP API."""

    def __init__(
        self,
        host: str,
        token: str | None = None,
        *,
        session: requests.Session | None = None,
        ca_path: str | None = None,
        client_cert: tuple[str, str] | None = None,
    ) -> None:
        self.host = host
        self.token = token
        self.session = session if session is not None else requests.Session()
        if ca_path is not None:
            self.session.verify = ca_path
        if client_cert is not None:
            self.session.cert = client_cert
        log.debug("using k8 host: %s", host)

    @classmethod
    def from_config(cls, config: K8Config) -> K8Client:
        """Build a client from a pod service account or the current kubeconfig context."""
        source = config.source
        if isinstance(source, PodConfig):
            return cls(
                config.api_path(),
                token=source.token.strip() or None,
                ca_path=source.ca_path(),
            )
        kube = source.config
        cluster = kube.active_cluster()
        user = kube.active_user()
        ca_path = cluster.cluster.certificate_authority if cluster is not None else None
        token = None
        client_cert = None
        if user is not None:
            detail = user.user
            if detail.token:
                token = detail.token.strip()
            if detail.client_certificate and detail.client_key:
                client_cert = (detail.client_certificate, detail.client_key)
        return cls(config.api_path(), token=token, ca_path=ca_path, client_cert=client_cert)

    @classmethod
    def default(cls) -> K8Client:
        """Build a client from the configuration found on this system."""
        return cls.from_config(K8Config.load())

    def _headers(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if self.token is not None:
            if any(char in self.token for char in "\r\n\0"):
                raise ClientError("invalid HTTP header value")
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(
        self,
        method: str,
        uri: str,
        *,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        try:
            response = self.session.request(
                method, uri, data=data, headers=self._headers(headers)
            )
        except requests.RequestException as err:
            raise ClientError(str(err)) from err
        log.debug("response status: %s", response.status_code)
        if not 200 <= response.status_code < 300:
            raise StatusError(response.status_code)
        try:
            return json.loads(response.content)
        except ValueError as err:
            log.error("json error: %s", err)
            log.error("source: %s", response.content.decode("utf-8", errors="replace"))
            raise ClientError(str(err)) from err

    def _stream_of_chunks(self, uri: str) -> Iterator[bytes]:
        log.debug("streaming: %s", uri)
        try:
            response = self.session.get(uri, headers=self._headers(), stream=True)
        except (requests.RequestException, ClientError) as err:
            log.error("error getting streaming: %s", err)
            return iter(())
        log.debug("res status: %s", response.status_code)
        return watch_chunks(response.iter_content(chunk_size=None))

    def server_version(self) -> VersionInfo:
        info = self._request("GET", f"{self.host}/version")
        return VersionInfo.from_dict(info)

    def retrieve_item(self, kind: ResourceKind, name: str, namespace: str) -> dict[str, Any]:
        uri = item_uri(kind, self.host, name, namespace)
        log.debug("%s: retrieving item: %s", kind.label, uri)
        return self._request("GET", uri)

    def retrieve_items(
        self,
        kind: ResourceKind,
        namespace: NameSpaceLike,
        options: ListOptions | None = None,
    ) -> dict[str, Any]:
        uri = items_uri(kind, self.host, namespace, options)
        log.debug("%s: retrieving items: %s", kind.label, uri)
        return self._request("GET", uri)

    def retrieve_items_in_chunks(
        self,
        kind: ResourceKind,
        namespace: NameSpaceLike,
        limit: int,
        field_selector: str | None = None,
        label_selector: str | None = None,
    ) -> Iterator[dict[str, Any]]:
        """Yield list pages of at most ``limit`` items, following continue tokens.

        An error ends the iteration.
        """
        continue_token: str | None = None
        while True:
            options = ListOptions(
                limit=limit,
                continue_=continue_token,
                field_selector=field_selector,
                label_selector=label_selector,
            )
            try:
                page = self.retrieve_items(kind, namespace, options)
            except ClientError as err:
                log.error("%s: error in list stream: %s", kind.label, err)
                return
            yield page
            metadata = page.get("metadata") if isinstance(page, Mapping) else None
            continue_token = metadata.get("continue") if isinstance(metadata, Mapping) else None
            if continue_token is None:
                log.debug("%s no more continue, marking as done", kind.label)
                return

    def replace_item(self, kind: ResourceKind, value: Mapping[str, Any]) -> dict[str, Any]:
        """Replace an existing object."""
        name, namespace = _metadata(value)
        uri = item_uri(kind, self.host, name, namespace)
        return self._request("PUT", uri, body=value, headers={"Content-Type": JSON_CONTENT})

    def create_item(self, kind: ResourceKind, value: Mapping[str, Any]) -> dict[str, Any]:
        _, namespace = _metadata(value)
        uri = items_uri(kind, self.host, NameSpace.named(namespace))
        log.debug("creating '%s'", uri)
        return self._request("POST", uri, body=value, headers={"Content-Type": JSON_CONTENT})

    def update_status(self, kind: ResourceKind, value: Mapping[str, Any]) -> dict[str, Any]:
        name, namespace = _metadata(value)
        uri = item_uri(kind, self.host, name, namespace, "/status")
        log.debug("updating '%s' status - uri: %s", name, uri)
        return self._request("PUT", uri, body=value, headers={"Content-Type": JSON_CONTENT})

    def _patch(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        patch: Any,
        merge_type: PatchMergeType,
        sub_resource: str | None,
    ) -> dict[str, Any]:
        uri = item_uri(kind, self.host, name, namespace, sub_resource)
        headers = {"Accept": JSON_CONTENT, "Content-Type": PatchMergeType(merge_type).content_type}
        return self._request("PATCH", uri, body=patch, headers=headers)

    def patch(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        patch: Any,
        merge_type: PatchMergeType,
    ) -> dict[str, Any]:
        return self._patch(kind, name, namespace, patch, merge_type, None)

    def patch_status(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        patch: Any,
        merge_type: PatchMergeType,
    ) -> dict[str, Any]:
        return self._patch(kind, name, namespace, patch, merge_type, "/status")

    def delete_item(
        self,
        kind: ResourceKind,
        name: str,
        namespace: str,
        options: Mapping[str, Any] | None = None,
    ) -> DeleteStatus:
        uri = item_uri(kind, self.host, name, namespace)
        log.debug("%s: delete item on url: %s", kind.label, uri)
        values = self._request(
            "DELETE", uri, body=options, headers={"Accept": JSON_CONTENT}
        )
        if not isinstance(values, dict):
            raise ClientError(f"expected an object: {values!r}")
        if "kind" not in values:
            raise ClientError(f"missing kind: {values!r}")
        return DeleteStatus(values, foreground=values["kind"] != "Status")

    def watch_stream_since(
        self,
        kind: ResourceKind,
        namespace: NameSpaceLike,
        resource_version: str | None = None,
    ) -> Iterator[list[dict[str, Any] | ClientError]]:
        """Yield watch events, one per list; an undecodable event appears as a ClientError."""
        options = ListOptions(
            watch=True,
            resource_version=resource_version,
            timeout_seconds=WATCH_TIMEOUT_SECONDS,
        )
        uri = items_uri(kind, self.host, namespace, options)
        for record in self._stream_of_chunks(uri):
            try:
                yield [json.loads(record)]
            except ValueError as err:
                log.error("parsing error, chunk_len: %d, error: %s", len(record), err)
                yield [ClientError(str(err))]

    def retrieve_log(self, namespace: str, pod_name: str, container_name: str) -> LogStream:
        sub_resource = f"/log?container={container_name}&follow=false"
        uri = item_uri(POD, self.host, pod_name, namespace, sub_resource)
        return LogStream(self._stream_of_chunks(uri))