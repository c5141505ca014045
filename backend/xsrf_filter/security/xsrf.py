"""
XSRF request filter.
Destructive requests must carry a kbn-xsrf (or legacy kbn-version) header
unless protection is disabled or the path is whitelisted.
Only header presence is checked; no token is validated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from xsrf_filter.core.config import Settings
from xsrf_filter.schemas.xsrf import XsrfRejectionOut

logger = logging.getLogger(__name__)

# Wire contract, do not rename without versioning the protocol
XSRF_HEADER = "kbn-xsrf"
VERSION_HEADER = "kbn-version"

MISSING_XSRF_MESSAGE = f"Request must contain a {XSRF_HEADER} header."
MISSING_XSRF_STATUS = 400

SAFE_METHODS: FrozenSet[str] = frozenset({"GET", "HEAD"})
# Known mutating verbs, for reference. Any method outside SAFE_METHODS is destructive (fail closed)
DESTRUCTIVE_METHODS: FrozenSet[str] = frozenset(
    {"POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT"}
)


class MethodClass(str, Enum):
    SAFE = "safe"
    DESTRUCTIVE = "destructive"


def classify_method(method: str) -> MethodClass:
    """GET and HEAD are safe. Everything else, unknown methods included, is destructive."""
    if method.upper() in SAFE_METHODS:
        return MethodClass.SAFE
    return MethodClass.DESTRUCTIVE


def path_matches(whitelist: Iterable[str], path: str) -> bool:
    """
    True if path equals a whitelist entry or sits below one on a segment boundary.
    "/api/hook" matches "/api/hook" and "/api/hook/x", not "/api/hooks".
    """
    for pattern in whitelist:
        base = pattern.rstrip("/")
        if path == pattern or path == base or path.startswith(base + "/"):
            return True
    return False


@dataclass(frozen=True)
class XsrfPolicy:
    """Immutable snapshot of the filter configuration. Replace it, never mutate it."""
    protection_enabled: bool = True
    whitelist: FrozenSet[str] = frozenset()

    def is_protection_enabled(self) -> bool:
        return self.protection_enabled

    def is_whitelisted(self, path: str) -> bool:
        return path_matches(self.whitelist, path)


@dataclass(frozen=True)
class RequestSignal:
    method: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_request_parts(
        cls,
        method: str,
        path: str,
        headers: Union[Mapping[str, str], Iterable[Tuple[str, str]]],
    ) -> "RequestSignal":
        """
        Build a signal with an upper-case method and lower-case header names.
        Repeated headers are joined with ", " as an HTTP list; empty items are dropped.
        """
        items = headers.items() if isinstance(headers, Mapping) else headers
        collected: Dict[str, List[str]] = {}
        for name, value in items:
            values = collected.setdefault(name.lower(), [])
            if value:
                values.append(value)
        normalized = {name: ", ".join(values) for name, values in collected.items()}
        return cls(method=method.upper(), path=path, headers=normalized)


@dataclass(frozen=True)
class Allow:
    pass


@dataclass(frozen=True)
class Deny:
    message: str = MISSING_XSRF_MESSAGE
    status_code: int = MISSING_XSRF_STATUS


Verdict = Union[Allow, Deny]

ALLOW = Allow()


def decide(policy: XsrfPolicy, signal: RequestSignal) -> Verdict:
    """
    Decide whether a request may reach its handler.

    Pure and synchronous. Steps short-circuit in order: kill switch,
    safe method, whitelist, kbn-xsrf (non-empty), kbn-version (any value).
    """
    if not policy.is_protection_enabled():
        return ALLOW

    if classify_method(signal.method) is MethodClass.SAFE:
        return ALLOW

    if policy.is_whitelisted(signal.path):
        return ALLOW

    if signal.headers.get(XSRF_HEADER):
        return ALLOW

    # Legacy clients; the value is never compared with the server version
    if VERSION_HEADER in signal.headers:
        return ALLOW

    return Deny()


def format_rejection(verdict: Deny) -> Tuple[int, dict]:
    """Map a Deny verdict to (status code, JSON body)."""
    body = XsrfRejectionOut(
        statusCode=verdict.status_code,
        error="Bad Request",
        message=verdict.message,
    )
    return verdict.status_code, body.model_dump()


def policy_from_settings(settings: Settings) -> XsrfPolicy:
    return XsrfPolicy(
        protection_enabled=settings.protection_enabled,
        whitelist=frozenset(settings.xsrf_whitelist),
    )


# Current policy handle, swapped wholesale on (re)load
_xsrf_policy: Optional[XsrfPolicy] = None


def init_xsrf_policy(policy: XsrfPolicy) -> None:
    """Install a policy. In-flight requests keep the snapshot they started with."""
    global _xsrf_policy
    _xsrf_policy = policy
    if policy.protection_enabled:
        logger.info("XSRF protection enabled, %d whitelisted path(s)", len(policy.whitelist))
    else:
        logger.warning("XSRF protection is DISABLED")


def get_xsrf_policy() -> XsrfPolicy:
    if _xsrf_policy is None:
        raise RuntimeError("XSRF policy not initialized. Call init_xsrf_policy() first.")
    return _xsrf_policy


def reload_xsrf_policy(settings: Settings) -> XsrfPolicy:
    """Rebuild the policy from settings and swap it in."""
    policy = policy_from_settings(settings)
    init_xsrf_policy(policy)
    return policy
