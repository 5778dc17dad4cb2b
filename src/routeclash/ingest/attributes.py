from __future__ import annotations

from enum import Enum

from routeclash.invariants import never


class RouteAttributeKind(str, Enum):
    ROUTE = "Route"
    HTTP_DELETE = "HttpDelete"
    HTTP_GET = "HttpGet"
    HTTP_HEAD = "HttpHead"
    HTTP_OPTIONS = "HttpOptions"
    HTTP_PATCH = "HttpPatch"
    HTTP_POST = "HttpPost"
    HTTP_PUT = "HttpPut"


def verbs_for_attribute(kind: RouteAttributeKind) -> frozenset[str]:
    """Verb set carried by a routing attribute; ``Route`` carries none."""
    match kind:
        case RouteAttributeKind.ROUTE:
            return frozenset()
        case RouteAttributeKind.HTTP_DELETE:
            return frozenset({"DELETE"})
        case RouteAttributeKind.HTTP_GET:
            return frozenset({"GET"})
        case RouteAttributeKind.HTTP_HEAD:
            return frozenset({"HEAD"})
        case RouteAttributeKind.HTTP_OPTIONS:
            return frozenset({"OPTIONS"})
        case RouteAttributeKind.HTTP_PATCH:
            return frozenset({"PATCH"})
        case RouteAttributeKind.HTTP_POST:
            return frozenset({"POST"})
        case RouteAttributeKind.HTTP_PUT:
            return frozenset({"PUT"})
        case _:
            never("unexpected route attribute kind", kind=kind)
