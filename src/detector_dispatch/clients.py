"""HTTP transports and the detector dispatch table.

The table maps each detector identifier to a ``ConnectionDescriptor``: the
fully qualified URL of the detector endpoint and the pooled
``httpx.AsyncClient`` used to reach it. It is built once at startup and never
mutated afterwards.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

import httpx
import structlog

from .config import DispatchConfig, ServiceAddr, TlsConfig
from .errors import ConfigurationError

logger = structlog.get_logger(__name__)

DETECTOR_ID_HEADER_NAME = "detector-id"

DispatchTable = Mapping[str, "ConnectionDescriptor"]


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Resolved endpoint and shared transport for one detector."""

    endpoint: str
    transport: httpx.AsyncClient


def build_url(addr: ServiceAddr, default_target_port: int) -> str:
    """Build the detector URL, choosing https when TLS is configured."""

    if "://" in addr.hostname:
        raise ConfigurationError(
            f"Detector hostname must not include a scheme: {addr.hostname}"
        )
    scheme = "https" if addr.tls is not None else "http"
    port = addr.port or default_target_port
    path = addr.path if addr.path.startswith("/") else f"/{addr.path}"
    return f"{scheme}://{addr.hostname}:{port}{path}"


def build_ssl_context(tls: TlsConfig) -> ssl.SSLContext:
    """Create the SSL context for a TLS detector address."""

    for label, value in (
        ("CA certificate", tls.ca_cert_path),
        ("client certificate", tls.client_cert_path),
        ("client key", tls.client_key_path),
    ):
        if value and not Path(value).is_file():
            raise ConfigurationError(f"{label} not found: {value}")
    if tls.client_key_path and not tls.client_cert_path:
        raise ConfigurationError("client key configured without client certificate")

    context = ssl.create_default_context(cafile=tls.ca_cert_path)
    if tls.client_cert_path:
        context.load_cert_chain(tls.client_cert_path, tls.client_key_path)
    if tls.insecure:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def create_transport(tls: Optional[TlsConfig], config: DispatchConfig) -> httpx.AsyncClient:
    """Create a pooled async client for one detector address."""

    verify = build_ssl_context(tls) if tls is not None else True
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            config.request_timeout_seconds, connect=config.connect_timeout_seconds
        ),
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=config.max_keepalive_connections,
        ),
        headers={"User-Agent": config.user_agent},
        verify=verify,
    )


def build_dispatch_table(
    default_target_port: int,
    model_map: Mapping[str, ServiceAddr],
    config: Optional[DispatchConfig] = None,
) -> DispatchTable:
    """Build the read-only identifier to descriptor table.

    Detectors that share hostname, port and TLS settings share one transport
    so their requests draw from the same connection pool.
    """

    config = config or DispatchConfig()
    transports: Dict[Tuple[str, int, str], httpx.AsyncClient] = {}
    table: Dict[str, ConnectionDescriptor] = {}
    for detector_id, addr in model_map.items():
        endpoint = build_url(addr, default_target_port)
        key = (
            addr.hostname,
            addr.port or default_target_port,
            addr.tls.model_dump_json() if addr.tls is not None else "",
        )
        transport = transports.get(key)
        if transport is None:
            transport = create_transport(addr.tls, config)
            transports[key] = transport
        table[detector_id] = ConnectionDescriptor(endpoint=endpoint, transport=transport)
        logger.debug("detector_registered", detector_id=detector_id, endpoint=endpoint)

    logger.info(
        "dispatch_table_built", detectors=len(table), transports=len(transports)
    )
    return MappingProxyType(table)


async def close_dispatch_table(table: DispatchTable) -> None:
    """Close every distinct transport referenced by the table."""

    seen = set()
    for descriptor in table.values():
        if id(descriptor.transport) in seen:
            continue
        seen.add(id(descriptor.transport))
        await descriptor.transport.aclose()
