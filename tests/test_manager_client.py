from __future__ import annotations

import http.client
from typing import Any

import pytest

from nsxt_dhcp.agent.ensurer import Ensurer
from nsxt_dhcp.core.errors import (
    PayloadError,
    ReadingError,
    RemoteNotFound,
    TaskFailed,
    TransportError,
    UnexpectedStatusError,
)
from nsxt_dhcp.core.resources import DhcpIpPool, IpPoolRange
from nsxt_dhcp.core.types import InfraSpec, InfraState, Tag
from nsxt_dhcp.execution import manager
from nsxt_dhcp.execution.manager import ManagerClientConfig, NsxtManagerClient, UrllibTransport


class FakeTransport:
    """
    A fake http transport used for unit tests.

    responses maps (method, url without query) to a list of (status, body)
    returned in order. Every request is recorded.
    """

    def __init__(self, responses: dict[tuple[str, str], list[tuple[int, Any]]]) -> None:
        self._responses = responses
        self.requests: list[tuple[str, str, dict[str, str], Any]] = []

    def request(self, method, url, headers, body=None):  # type: ignore[no-untyped-def]
        self.requests.append((method, url, headers, body))
        key = (method, url.split("?")[0])
        queue = self._responses.get(key)
        if not queue:
            raise RemoteNotFound(f"{method} {url}")
        return queue.pop(0)


BASE = "https://nsx.example.com/api/v1"


def make_client(responses) -> tuple[NsxtManagerClient, FakeTransport]:
    transport = FakeTransport(responses)
    config = ManagerClientConfig(host="nsx.example.com", username="admin", password="secret", page_size=2)
    return NsxtManagerClient(config, transport=transport), transport


def test_list_follows_cursor():
    client, transport = make_client(
        {
            ("GET", f"{BASE}/edge-clusters"): [
                (200, {"results": [{"id": "ec-1", "display_name": "a"}], "cursor": "c1"}),
                (200, {"results": [{"id": "ec-2", "display_name": "b"}]}),
            ]
        }
    )

    response = client.list_edge_clusters()

    assert response.status == 200
    assert [e.id for e in response.value] == ["ec-1", "ec-2"]
    assert transport.requests[0][1] == f"{BASE}/edge-clusters?page_size=2"
    assert transport.requests[1][1] == f"{BASE}/edge-clusters?page_size=2&cursor=c1"
    assert transport.requests[0][2]["Authorization"] == "Basic YWRtaW46c2VjcmV0"


def test_repeated_cursor_stops_listing():
    page = (200, {"results": [{"id": "ec-1", "display_name": "a"}], "cursor": "c1"})
    client, transport = make_client({("GET", f"{BASE}/edge-clusters"): [page, page, page]})

    with pytest.raises(PayloadError):
        client.list_edge_clusters()

    assert len(transport.requests) == 2


def test_create_pool_encodes_payload():
    pool_payload = {
        "id": "pool-1",
        "display_name": "c",
        "gateway_ip": "10.0.0.1",
        "lease_time": 7200,
        "error_threshold": 98,
        "warning_threshold": 70,
        "allocation_ranges": [{"start": "10.0.0.10", "end": "10.0.0.254"}],
        "tags": [{"scope": "owner", "tag": "me"}],
    }
    client, transport = make_client({("POST", f"{BASE}/dhcp/servers/s-1/ip-pools"): [(201, pool_payload)]})

    pool = DhcpIpPool(
        display_name="c",
        gateway_ip="10.0.0.1",
        lease_time=7200,
        error_threshold=98,
        warning_threshold=70,
        allocation_ranges=[IpPoolRange(start="10.0.0.10", end="10.0.0.254")],
        tags=[Tag("owner", "me")],
    )
    response = client.create_dhcp_ip_pool("s-1", pool)

    assert response.status == 201
    assert response.value.id == "pool-1"
    assert response.value.tags == [Tag("owner", "me")]

    body = transport.requests[0][3]
    assert body["resource_type"] == "DhcpIpPool"
    assert body["allocation_ranges"] == [{"start": "10.0.0.10", "end": "10.0.0.254"}]
    assert body["tags"] == [{"scope": "owner", "tag": "me"}]
    assert "id" not in body


def test_delete_port_sends_detach():
    client, transport = make_client({("DELETE", f"{BASE}/logical-ports/p%2F1"): [(200, None)]})

    response = client.delete_logical_port("p/1", detach=True)

    assert response.status == 200
    assert transport.requests[0][1] == f"{BASE}/logical-ports/p%2F1?detach=true"


def test_malformed_payload_raises_payload_error():
    client, _ = make_client({("GET", f"{BASE}/dhcp/servers/s-1"): [(200, {"display_name": "no id"})]})

    with pytest.raises(PayloadError):
        client.read_dhcp_server("s-1")


def test_ensurer_over_rest_client():
    segment = "/infra/segments/seg"
    server_payload = {
        "id": "s-1",
        "display_name": "c",
        "dhcp_profile_id": "prof-1",
        "ipv4_dhcp_server": {
            "dhcp_server_ip": "10.0.0.2/24",
            "gateway_ip": "10.0.0.1",
            "dns_nameservers": ["10.0.0.53"],
        },
    }
    client, transport = make_client(
        {
            ("GET", f"{BASE}/edge-clusters"): [(200, {"results": [{"id": "ec-1", "display_name": "edge"}]})],
            ("POST", f"{BASE}/dhcp/server-profiles"): [
                (201, {"id": "prof-1", "display_name": "c", "edge_cluster_id": "ec-1"})
            ],
            ("POST", f"{BASE}/dhcp/servers"): [(201, server_payload)],
            ("GET", f"{BASE}/logical-switches"): [
                (
                    200,
                    {
                        "results": [
                            {"id": "ls-1", "display_name": "seg", "tags": [{"scope": "policyPath", "tag": segment}]}
                        ]
                    },
                )
            ],
            ("POST", f"{BASE}/logical-ports"): [(202, {"id": "port-1", "display_name": "c"})],
        }
    )
    spec = InfraSpec(
        cluster_name="c",
        workers_network="10.0.0.0/24",
        dns_servers=("10.0.0.53",),
        edge_cluster_name="edge",
    )
    state = InfraState(segment_path=segment)

    with pytest.raises(TaskFailed) as excinfo:
        Ensurer(client).ensure_all(spec, state)

    assert excinfo.value.label == "DHCP port"
    assert isinstance(excinfo.value.cause, UnexpectedStatusError)
    assert state.advanced_dhcp.server_id == "s-1"
    assert state.advanced_dhcp.port_id is None

    server_body = next(r[3] for r in transport.requests if r[1] == f"{BASE}/dhcp/servers")
    assert server_body["ipv4_dhcp_server"]["dhcp_server_ip"] == "10.0.0.2/24"
    assert server_body["dhcp_profile_id"] == "prof-1"


def test_base_url_keeps_explicit_scheme():
    config = ManagerClientConfig(host="http://localhost:8080/", username="u", password="p")

    assert config.base_url == "http://localhost:8080"


class TruncatedResponse:
    status = 200

    def __enter__(self):  # type: ignore[no-untyped-def]
        return self

    def __exit__(self, *exc_info):  # type: ignore[no-untyped-def]
        return False

    def read(self) -> bytes:
        raise http.client.IncompleteRead(b"")


def test_truncated_body_is_transport_error(monkeypatch):
    monkeypatch.setattr(manager, "urlopen", lambda *args, **kwargs: TruncatedResponse())

    with pytest.raises(TransportError) as excinfo:
        UrllibTransport().request("GET", f"{BASE}/edge-clusters", {})

    assert excinfo.value.retryable
    assert excinfo.value.status is None


def test_truncated_body_fails_the_task(monkeypatch):
    monkeypatch.setattr(manager, "urlopen", lambda *args, **kwargs: TruncatedResponse())
    config = ManagerClientConfig(host="nsx.example.com", username="admin", password="secret")
    spec = InfraSpec(
        cluster_name="c",
        workers_network="10.0.0.0/24",
        dns_servers=("10.0.0.53",),
        edge_cluster_name="edge",
    )

    with pytest.raises(TaskFailed) as excinfo:
        Ensurer(NsxtManagerClient(config)).ensure_all(spec, InfraState())

    assert excinfo.value.label == "edge cluster lookup"
    assert isinstance(excinfo.value.cause, ReadingError)
    assert excinfo.value.retryable
