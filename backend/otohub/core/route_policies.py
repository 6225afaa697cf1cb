# backend/otohub/core/route_policies.py
"""
Per-route access annotations.

Routes are registered by path template (``/api/v1/vehicles/{vehicle_id}``)
and optionally method, and looked up with the concrete request path, so
matching does not depend on how the router stores included routes.
Anything not registered gets the strict default: authenticated, verified
and onboarded.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Pattern, Tuple

from starlette.routing import compile_path


@dataclass(frozen=True)
class RoutePolicy:
    public: bool = False
    allow_unverified: bool = False
    allow_unonboarded: bool = False


DEFAULT_POLICY = RoutePolicy()

ANY_METHOD = "*"


class RoutePolicyTable:
    """Registration table mapping (method, path template) to a RoutePolicy"""

    def __init__(self):
        self._policies: Dict[Tuple[str, str], Tuple[Pattern, RoutePolicy]] = {}

    def register(
        self,
        path: str,
        methods: Optional[Iterable[str]] = None,
        public: bool = False,
        allow_unverified: bool = False,
        allow_unonboarded: bool = False,
    ) -> RoutePolicy:
        policy = RoutePolicy(
            public=public,
            allow_unverified=allow_unverified,
            allow_unonboarded=allow_unonboarded,
        )
        path_regex, _, _ = compile_path(path)
        for method in methods or [ANY_METHOD]:
            self._policies[(method.upper(), path)] = (path_regex, policy)
        return policy

    def _match(self, method: str, path: str) -> Optional[RoutePolicy]:
        for (registered_method, _), (path_regex, policy) in self._policies.items():
            if registered_method == method and path_regex.match(path):
                return policy
        return None

    def lookup(self, method: str, path: str) -> RoutePolicy:
        policy = self._match(method.upper(), path)
        if policy is None:
            policy = self._match(ANY_METHOD, path) or DEFAULT_POLICY
        return policy

    def __len__(self) -> int:
        return len(self._policies)
