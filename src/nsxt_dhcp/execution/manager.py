"""
NSX-T Manager REST client.

Implements NsxtClient over the Manager API with no third party deps.

Design
Transport is a small interface so tests can replace http with a fake.
The default transport uses urllib and maps http errors onto the error
taxonomy:
404 raises RemoteNotFound
other http errors raise TransportError with the status
connection failures and broken responses raise TransportError without a status
undecodable bodies raise PayloadError

List calls follow the cursor until the last page. A repeated cursor raises
PayloadError.
"""

from __future__ import annotations

import base64
import http.client
import json
import logging
import ssl
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol
from urllib.error import HTTPError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from nsxt_dhcp.core.errors import PayloadError, RemoteNotFound, TransportError
from nsxt_dhcp.core.resources import DhcpIpPool, DhcpProfile, LogicalDhcpServer, LogicalPort
from nsxt_dhcp.execution import codec
from nsxt_dhcp.execution.base import HTTP_OK, ApiResponse, NsxtClient

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _segment(value: str) -> str:
    return quote(value, safe="")


@dataclass(frozen=True)
class ManagerClientConfig:
    """
    Manager client configuration.

    host
    Manager host name, optionally with scheme and port.
    Without a scheme https is used.

    insecure
    Skip TLS certificate verification. Only for lab setups.

    timeout_seconds
    Socket timeout per request. Retry policy belongs to the caller.

    page_size
    Page size requested from list endpoints.
    """

    host: str
    username: str
    password: str
    insecure: bool = False
    timeout_seconds: int = 30
    page_size: int = 1000

    @property
    def base_url(self) -> str:
        host = self.host.rstrip("/")
        if host.startswith(("http://", "https://")):
            return host
        return f"https://{host}"


class HttpTransport(Protocol):
    """Simple http transport interface for testability."""

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Optional[dict[str, Any]] = None,
    ) -> tuple[int, Any]:
        """Send a request and return status and parsed json body, None when empty."""


@dataclass
class UrllibTransport(HttpTransport):
    """Default http transport using urllib."""

    timeout_seconds: int = 30
    insecure: bool = False

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if self.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def request(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Optional[dict[str, Any]] = None,
    ) -> tuple[int, Any]:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = Request(url, data=data, headers=headers, method=method)

        try:
            with urlopen(req, timeout=self.timeout_seconds, context=self._ssl_context()) as resp:
                status = resp.status
                raw = resp.read()
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            exc.close()
            if exc.code == 404:
                raise RemoteNotFound(f"{method} {url}") from exc
            raise TransportError(f"{method} {url}: {detail or exc.reason}", status=exc.code) from exc
        except OSError as exc:
            raise TransportError(f"{method} {url}: {exc}") from exc
        except http.client.HTTPException as exc:
            raise TransportError(f"{method} {url}: {exc}") from exc

        if not raw:
            return status, None
        try:
            return status, json.loads(raw.decode("utf-8"))
        except ValueError as exc:
            raise PayloadError(f"{method} {url}: response is not valid json", status=status) from exc


class NsxtManagerClient(NsxtClient):
    """
    NsxtClient backed by the NSX-T Manager API.

    config
    Connection settings and credentials.

    transport
    Optional http transport. Defaults to UrllibTransport built from config.
    """

    def __init__(self, config: ManagerClientConfig, transport: HttpTransport | None = None) -> None:
        self._config = config
        self._transport = transport or UrllibTransport(
            timeout_seconds=config.timeout_seconds,
            insecure=config.insecure,
        )
        token = base64.b64encode(f"{config.username}:{config.password}".encode("utf-8")).decode("ascii")
        self._headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Basic {token}",
        }

    def _url(self, path: str, query: Optional[dict[str, Any]] = None) -> str:
        url = f"{self._config.base_url}{API_PREFIX}{path}"
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    def _call(
        self,
        method: str,
        path: str,
        body: Optional[dict[str, Any]] = None,
        query: Optional[dict[str, Any]] = None,
    ) -> tuple[int, Any]:
        url = self._url(path, query)
        logger.debug("%s %s", method, url)
        return self._transport.request(method, url, dict(self._headers), body)

    def _list(self, path: str, decode: Callable[[Any], Any]) -> ApiResponse:
        items: list[Any] = []
        cursor: Optional[str] = None

        while True:
            query: dict[str, Any] = {"page_size": self._config.page_size}
            if cursor is not None:
                query["cursor"] = cursor

            status, payload = self._call("GET", path, query=query)
            if status != HTTP_OK:
                return ApiResponse(status=status, value=items)

            page, next_cursor = codec.decode_results(payload, decode)
            items.extend(page)
            if next_cursor is None:
                return ApiResponse(status=status, value=items)
            if next_cursor == cursor:
                raise PayloadError(f"GET {path}: cursor {cursor!r} repeated")
            cursor = next_cursor

    def _single(
        self,
        method: str,
        path: str,
        decode: Callable[[Any], Any],
        body: Optional[dict[str, Any]] = None,
    ) -> ApiResponse:
        status, payload = self._call(method, path, body=body)
        if payload is None:
            return ApiResponse(status=status)
        return ApiResponse(status=status, value=decode(payload))

    def list_edge_clusters(self) -> ApiResponse:
        return self._list("/edge-clusters", codec.decode_edge_cluster)

    def create_dhcp_profile(self, profile: DhcpProfile) -> ApiResponse:
        return self._single(
            "POST", "/dhcp/server-profiles", codec.decode_dhcp_profile, codec.encode_dhcp_profile(profile)
        )

    def read_dhcp_profile(self, profile_id: str) -> ApiResponse:
        return self._single("GET", f"/dhcp/server-profiles/{_segment(profile_id)}", codec.decode_dhcp_profile)

    def update_dhcp_profile(self, profile_id: str, profile: DhcpProfile) -> ApiResponse:
        return self._single(
            "PUT",
            f"/dhcp/server-profiles/{_segment(profile_id)}",
            codec.decode_dhcp_profile,
            codec.encode_dhcp_profile(profile),
        )

    def delete_dhcp_profile(self, profile_id: str) -> ApiResponse:
        status, _ = self._call("DELETE", f"/dhcp/server-profiles/{_segment(profile_id)}")
        return ApiResponse(status=status)

    def create_dhcp_server(self, server: LogicalDhcpServer) -> ApiResponse:
        return self._single("POST", "/dhcp/servers", codec.decode_dhcp_server, codec.encode_dhcp_server(server))

    def read_dhcp_server(self, server_id: str) -> ApiResponse:
        return self._single("GET", f"/dhcp/servers/{_segment(server_id)}", codec.decode_dhcp_server)

    def update_dhcp_server(self, server_id: str, server: LogicalDhcpServer) -> ApiResponse:
        return self._single(
            "PUT",
            f"/dhcp/servers/{_segment(server_id)}",
            codec.decode_dhcp_server,
            codec.encode_dhcp_server(server),
        )

    def delete_dhcp_server(self, server_id: str) -> ApiResponse:
        status, _ = self._call("DELETE", f"/dhcp/servers/{_segment(server_id)}")
        return ApiResponse(status=status)

    def list_logical_switches(self) -> ApiResponse:
        return self._list("/logical-switches", codec.decode_logical_switch)

    def create_logical_port(self, port: LogicalPort) -> ApiResponse:
        return self._single("POST", "/logical-ports", codec.decode_logical_port, codec.encode_logical_port(port))

    def read_logical_port(self, port_id: str) -> ApiResponse:
        return self._single("GET", f"/logical-ports/{_segment(port_id)}", codec.decode_logical_port)

    def update_logical_port(self, port_id: str, port: LogicalPort) -> ApiResponse:
        return self._single(
            "PUT",
            f"/logical-ports/{_segment(port_id)}",
            codec.decode_logical_port,
            codec.encode_logical_port(port),
        )

    def delete_logical_port(self, port_id: str, detach: bool = False) -> ApiResponse:
        query = {"detach": "true"} if detach else None
        status, _ = self._call("DELETE", f"/logical-ports/{_segment(port_id)}", query=query)
        return ApiResponse(status=status)

    def create_dhcp_ip_pool(self, server_id: str, pool: DhcpIpPool) -> ApiResponse:
        return self._single(
            "POST",
            f"/dhcp/servers/{_segment(server_id)}/ip-pools",
            codec.decode_dhcp_ip_pool,
            codec.encode_dhcp_ip_pool(pool),
        )

    def read_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        return self._single(
            "GET",
            f"/dhcp/servers/{_segment(server_id)}/ip-pools/{_segment(pool_id)}",
            codec.decode_dhcp_ip_pool,
        )

    def update_dhcp_ip_pool(self, server_id: str, pool_id: str, pool: DhcpIpPool) -> ApiResponse:
        return self._single(
            "PUT",
            f"/dhcp/servers/{_segment(server_id)}/ip-pools/{_segment(pool_id)}",
            codec.decode_dhcp_ip_pool,
            codec.encode_dhcp_ip_pool(pool),
        )

    def delete_dhcp_ip_pool(self, server_id: str, pool_id: str) -> ApiResponse:
        status, _ = self._call("DELETE", f"/dhcp/servers/{_segment(server_id)}/ip-pools/{_segment(pool_id)}")
        return ApiResponse(status=status)
