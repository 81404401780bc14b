"""Tests for dispatch table construction."""

import ssl
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from detector_dispatch.clients import (
    ConnectionDescriptor,
    build_dispatch_table,
    build_ssl_context,
    build_url,
    close_dispatch_table,
    create_transport,
)
from detector_dispatch.config import DispatchConfig, ServiceAddr, TlsConfig
from detector_dispatch.errors import ConfigurationError


class TestBuildUrl:
    def test_default_port_and_path(self):
        addr = ServiceAddr(hostname="pii-detector")

        assert build_url(addr, 8080) == "http://pii-detector:8080/api/v1/text/contents"

    def test_port_override(self):
        addr = ServiceAddr(hostname="pii-detector", port=9443)

        assert build_url(addr, 8080) == "http://pii-detector:9443/api/v1/text/contents"

    def test_custom_path_without_leading_slash(self):
        addr = ServiceAddr(hostname="hap", path="classify")

        assert build_url(addr, 8000) == "http://hap:8000/classify"

    def test_https_when_tls_configured(self):
        addr = ServiceAddr(hostname="hap", tls=TlsConfig(insecure=True))

        assert build_url(addr, 8443).startswith("https://hap:8443/")

    def test_scheme_in_hostname_rejected(self):
        addr = ServiceAddr(hostname="http://hap")

        with pytest.raises(ConfigurationError, match="scheme"):
            build_url(addr, 8080)


class TestSslContext:
    def test_insecure_disables_verification(self):
        context = build_ssl_context(TlsConfig(insecure=True))

        assert context.check_hostname is False
        assert context.verify_mode == ssl.CERT_NONE

    def test_default_verifies(self):
        context = build_ssl_context(TlsConfig())

        assert context.verify_mode == ssl.CERT_REQUIRED

    def test_missing_ca_file(self, tmp_path):
        missing = tmp_path / "ca.pem"

        with pytest.raises(ConfigurationError, match="CA certificate not found"):
            build_ssl_context(TlsConfig(ca_cert_path=str(missing)))

    def test_key_without_certificate(self, tmp_path):
        key = tmp_path / "client.key"
        key.write_text("not really a key", encoding="utf-8")

        with pytest.raises(ConfigurationError, match="without client certificate"):
            build_ssl_context(TlsConfig(client_key_path=str(key)))


class TestCreateTransport:
    async def test_timeouts_and_headers(self):
        config = DispatchConfig(request_timeout_seconds=12.5, connect_timeout_seconds=2.0)
        transport = create_transport(None, config)
        try:
            assert isinstance(transport, httpx.AsyncClient)
            assert transport.timeout.read == 12.5
            assert transport.timeout.connect == 2.0
            assert transport.headers["User-Agent"] == config.user_agent
        finally:
            await transport.aclose()


class TestBuildDispatchTable:
    async def test_builds_descriptor_per_identifier(self):
        table = build_dispatch_table(
            8080,
            {
                "pii": ServiceAddr(hostname="pii-detector"),
                "hap": ServiceAddr(hostname="hap-detector", port=9000),
            },
        )
        try:
            assert set(table) == {"pii", "hap"}
            assert table["pii"].endpoint == "http://pii-detector:8080/api/v1/text/contents"
            assert table["hap"].endpoint == "http://hap-detector:9000/api/v1/text/contents"
            assert table["pii"].transport is not table["hap"].transport
        finally:
            await close_dispatch_table(table)

    async def test_identifiers_are_case_sensitive(self):
        table = build_dispatch_table(
            8080,
            {"PII": ServiceAddr(hostname="a"), "pii": ServiceAddr(hostname="b")},
        )
        try:
            assert table["PII"].endpoint != table["pii"].endpoint
        finally:
            await close_dispatch_table(table)

    async def test_same_address_shares_transport(self):
        table = build_dispatch_table(
            8080,
            {
                "pii": ServiceAddr(hostname="guardrails", path="/pii"),
                "hap": ServiceAddr(hostname="guardrails", port=8080, path="/hap"),
            },
        )
        try:
            assert table["pii"].transport is table["hap"].transport
            assert table["pii"].endpoint != table["hap"].endpoint
        finally:
            await close_dispatch_table(table)

    async def test_table_is_read_only(self):
        table = build_dispatch_table(8080, {"pii": ServiceAddr(hostname="pii")})
        try:
            with pytest.raises(TypeError):
                table["hap"] = table["pii"]  # type: ignore[index]
            with pytest.raises(TypeError):
                del table["pii"]  # type: ignore[attr-defined]
        finally:
            await close_dispatch_table(table)

    async def test_descriptor_is_frozen(self):
        table = build_dispatch_table(8080, {"pii": ServiceAddr(hostname="pii")})
        try:
            with pytest.raises(AttributeError):
                table["pii"].endpoint = "http://elsewhere"  # type: ignore[misc]
        finally:
            await close_dispatch_table(table)

    def test_empty_map(self):
        assert dict(build_dispatch_table(8080, {})) == {}

    def test_invalid_address_fails_construction(self):
        with pytest.raises(ConfigurationError):
            build_dispatch_table(8080, {"pii": ServiceAddr(hostname="https://pii")})


class TestCloseDispatchTable:
    async def test_shared_transport_closed_once(self):
        transport = Mock(spec=httpx.AsyncClient)
        transport.aclose = AsyncMock()
        other = Mock(spec=httpx.AsyncClient)
        other.aclose = AsyncMock()
        table = {
            "pii": ConnectionDescriptor(endpoint="http://a:1/x", transport=transport),
            "hap": ConnectionDescriptor(endpoint="http://a:1/y", transport=transport),
            "tox": ConnectionDescriptor(endpoint="http://b:1/z", transport=other),
        }

        await close_dispatch_table(table)

        transport.aclose.assert_awaited_once()
        other.aclose.assert_awaited_once()
