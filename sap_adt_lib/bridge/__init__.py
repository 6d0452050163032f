from __future__ import annotations

from .prober import BridgeEndpoint, EndpointProber, ProbeState, candidate_hosts
from .transport import BRIDGE_UNAVAILABLE_MESSAGE, ProxyCall, ProxyResult, ProxyTransport

__all__ = [
    "BRIDGE_UNAVAILABLE_MESSAGE",
    "BridgeEndpoint",
    "EndpointProber",
    "ProbeState",
    "ProxyCall",
    "ProxyResult",
    "ProxyTransport",
    "candidate_hosts",
]
