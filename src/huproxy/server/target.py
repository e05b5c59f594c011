"""
Tunnel target resolution.

The target comes either from the request path (/proxy/{host}/{port}) or from
a "Connect: host:port" header. Values are passed through unvalidated; empty
values are rejected later by the negotiator.
"""

from collections.abc import Mapping

CONNECT_HEADER = "connect"


def split_host_port(value: str) -> tuple[str, str]:
    """
    Split "host:port" into its parts.

    IPv6 hosts must be bracketed ("[::1]:22"). A value that cannot be split
    yields ("", "").
    """
    if value.startswith("["):
        end = value.find("]")
        if end < 0 or value[end + 1 : end + 2] != ":":
            return "", ""
        host, port = value[1:end], value[end + 2 :]
    else:
        host, sep, port = value.rpartition(":")
        if not sep or ":" in host:
            return "", ""

    if ":" in port or "[" in host or "]" in host:
        return "", ""
    return host, port


def resolve_target(
    headers: Mapping[str, str], path_params: Mapping[str, str]
) -> tuple[str, str]:
    """
    Get (host, port) for a tunnel request.

    A non-empty Connect header takes precedence over path parameters.
    """
    connect = headers.get(CONNECT_HEADER, "")
    if connect:
        return split_host_port(connect)
    return path_params.get("host", ""), path_params.get("port", "")
