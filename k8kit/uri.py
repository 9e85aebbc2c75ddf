"""Building API URIs for Kubernetes resources."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Union
from urllib.parse import quote

from .client_errors import ClientError

DEFAULT_NS = "default"
TEST_NS = "test"

_FORBIDDEN_URI_CHARS = frozenset('"<>\\^`')


@dataclass(frozen=True)
class CrdNames:
    kind: str
    plural: str
    singular: str


@dataclass(frozen=True)
class Crd:
    group: str
    version: str
    names: CrdNames


@dataclass(frozen=True)
class ResourceKind:
    """A kind of resource: its definition and whether it lives in a namespace."""

    crd: Crd
    namespaced: bool = True

    @property
    def label(self) -> str:
        return self.crd.names.kind


POD = ResourceKind(
    Crd(group="core", version="v1", names=CrdNames(kind="Pod", plural="pods", singular="pod"))
)


@dataclass(frozen=True)
class NameSpace:
    """Either a single named namespace or all namespaces."""

    name: str | None = None

    @classmethod
    def all(cls) -> NameSpace:
        return cls(None)

    @classmethod
    def named(cls, name: str) -> NameSpace:
        return cls(str(name))

    def is_all(self) -> bool:
        return self.name is None

    def __str__(self) -> str:
        return "*" if self.name is None else self.name


NameSpaceLike = Union[NameSpace, str]


def _as_namespace(namespace: NameSpaceLike) -> NameSpace:
    if isinstance(namespace, NameSpace):
        return namespace
    if isinstance(namespace, str):
        return NameSpace.named(namespace)
    raise TypeError(f"expected a namespace, got {type(namespace).__name__}")


@dataclass
class ListOptions:
    """Query parameters for list and watch requests."""

    pretty: bool | None = None
    continue_: str | None = None
    field_selector: str | None = None
    include_uninitialized: bool | None = None
    label_selector: str | None = None
    limit: int | None = None
    resource_version: str | None = None
    timeout_seconds: int | None = None
    watch: bool | None = None

    _QUERY_NAMES = {
        "pretty": "pretty",
        "continue_": "continue",
        "field_selector": "fieldSelector",
        "include_uninitialized": "includeUninitialized",
        "label_selector": "labelSelector",
        "limit": "limit",
        "resource_version": "resourceVersion",
        "timeout_seconds": "timeoutSeconds",
        "watch": "watch",
    }

    def to_query(self) -> str:
        """The set options as a query string, without the leading ``?``."""
        pairs = []
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if isinstance(value, bool):
                text = "true" if value else "false"
            else:
                text = quote(str(value), safe="")
            pairs.append(f"{self._QUERY_NAMES[item.name]}={text}")
        return "&".join(pairs)


def _checked_uri(value: str) -> str:
    if not value:
        raise ClientError("empty string")
    for char in value:
        if ord(char) <= 0x20 or ord(char) >= 0x7F or char in _FORBIDDEN_URI_CHARS:
            raise ClientError("invalid uri character")
    return value


def prefix_uri(
    crd: Crd,
    host: str,
    namespace: NameSpaceLike,
    options: ListOptions | None = None,
) -> str:
    """The collection URI of ``crd``; core resources live under /api, others under /apis."""
    ns = _as_namespace(namespace)
    api_prefix = "api" if crd.group == "core" else f"apis/{crd.group}"
    query = f"?{options.to_query()}" if options is not None else ""
    if ns.is_all():
        return f"{host}/{api_prefix}/{crd.version}/{crd.names.plural}{query}"
    return (
        f"{host}/{api_prefix}/{crd.version}/namespaces/{ns.name}/"
        f"{crd.names.plural}{query}"
    )


def item_uri(
    kind: ResourceKind,
    host: str,
    name: str,
    namespace: str,
    sub_resource: str | None = None,
) -> str:
    """The URI of a single object, optionally followed by a sub-resource."""
    ns = NameSpace.named(namespace) if kind.namespaced else NameSpace.all()
    prefix = prefix_uri(kind.crd, host, ns)
    return _checked_uri(f"{prefix}/{name}{sub_resource or ''}")


def items_uri(
    kind: ResourceKind,
    host: str,
    namespace: NameSpaceLike,
    options: ListOptions | None = None,
) -> str:
    """The URI of a collection of objects."""
    ns = _as_namespace(namespace) if kind.namespaced else NameSpace.all()
    return _checked_uri(prefix_uri(kind.crd, host, ns, options))