import pytest

from nsxt_dhcp.agent.ensurer import Ensurer
from nsxt_dhcp.core.errors import (
    CreatingError,
    DependencyMissingError,
    LookupNotFoundError,
    PayloadError,
    ReadingError,
    TaskFailed,
    TransportError,
    UnexpectedStatusError,
    UpdatingError,
)
from nsxt_dhcp.core.resources import EdgeCluster, LogicalSwitch
from nsxt_dhcp.core.types import InfraSpec, InfraState, Tag
from nsxt_dhcp.execution.mock import InMemoryNsxtClient
from nsxt_dhcp.tasks import (
    DeletableTask,
    DhcpIpPoolTask,
    DhcpPortTask,
    DhcpProfileTask,
    LookupEdgeClusterTask,
    LookupLogicalSwitchTask,
    NameableTask,
    TaskSettings,
)

SEGMENT_PATH = "/infra/segments/shoot--dev--bar"


def make_client() -> InMemoryNsxtClient:
    return InMemoryNsxtClient(
        edge_clusters=[EdgeCluster(id="ec-1", display_name="edge-1")],
        logical_switches=[
            LogicalSwitch(
                id="ls-other",
                display_name="other",
                tags=[Tag(scope="policyPath", value="/infra/segments/other")],
            ),
            LogicalSwitch(
                id="ls-wrong-scope",
                display_name="decoy",
                tags=[Tag(scope="path", value=SEGMENT_PATH)],
            ),
            LogicalSwitch(
                id="ls-1",
                display_name="shoot--dev--bar",
                tags=[
                    Tag(scope="owner", value="someone"),
                    Tag(scope="policyPath", value=SEGMENT_PATH),
                ],
            ),
        ],
    )


def make_spec(**overrides) -> InfraSpec:
    values = dict(
        cluster_name="shoot--dev--bar",
        workers_network="10.250.0.0/16",
        dns_servers=("8.8.8.8", "1.1.1.1"),
        edge_cluster_name="edge-1",
    )
    values.update(overrides)
    return InfraSpec(**values)


def converged() -> tuple[InMemoryNsxtClient, InfraState, Ensurer]:
    client = make_client()
    state = InfraState(segment_path=SEGMENT_PATH)
    ensurer = Ensurer(client)
    ensurer.ensure_all(make_spec(), state)
    client.calls.clear()
    return client, state, ensurer


def test_pool_fails_without_server_reference():
    client = make_client()
    state = InfraState(segment_path=SEGMENT_PATH)

    with pytest.raises(DependencyMissingError) as excinfo:
        DhcpIpPoolTask().ensure(client, make_spec(), state)

    assert excinfo.value.reference == "server_id"
    assert client.calls == []
    assert state.advanced_dhcp.ip_pool_id is None


def test_profile_fails_without_edge_cluster_reference():
    client = make_client()

    with pytest.raises(DependencyMissingError):
        DhcpProfileTask().ensure(client, make_spec(), InfraState())

    assert client.calls == []


def test_reordering_dns_servers_updates_server():
    client, state, ensurer = converged()

    ensurer.ensure_all(make_spec(dns_servers=("1.1.1.1", "8.8.8.8")), state)

    assert client.writes == ["update_dhcp_server"]
    server = client.servers[state.advanced_dhcp.server_id]
    assert server.ipv4_dhcp_server.dns_nameservers == ["1.1.1.1", "8.8.8.8"]


def test_reordering_tags_does_not_update():
    client, state, ensurer = converged()
    server = client.servers[state.advanced_dhcp.server_id]
    server.tags = list(reversed(server.tags))
    profile = client.profiles[state.advanced_dhcp.profile_id]
    profile.tags = list(reversed(profile.tags))

    ensurer.ensure_all(make_spec(), state)

    assert client.writes == []


def test_changed_tag_set_updates_every_owned_object():
    client, state, ensurer = converged()

    ensurer.ensure_all(make_spec(extra_tags=(Tag(scope="team", value="net"),)), state)

    assert client.writes == [
        "update_dhcp_profile",
        "update_dhcp_server",
        "update_logical_port",
        "update_dhcp_ip_pool",
    ]


def test_pool_threshold_drift_is_corrected():
    client, state, ensurer = converged()
    dhcp = state.advanced_dhcp
    client.pools[dhcp.server_id][dhcp.ip_pool_id].warning_threshold = 50

    ensurer.ensure_all(make_spec(), state)

    assert client.writes == ["update_dhcp_ip_pool"]
    assert client.pools[dhcp.server_id][dhcp.ip_pool_id].warning_threshold == 70


def test_pool_uses_configured_settings():
    client = make_client()
    state = InfraState(segment_path=SEGMENT_PATH)
    settings = TaskSettings(lease_time=3600, error_threshold=90, warning_threshold=60, pool_start_offset=100)

    Ensurer(client, settings=settings).ensure_all(make_spec(), state)

    pool = client.pools[state.advanced_dhcp.server_id][state.advanced_dhcp.ip_pool_id]
    assert pool.lease_time == 3600
    assert pool.error_threshold == 90
    assert pool.warning_threshold == 60
    assert pool.allocation_ranges[0].start == "10.250.0.100"
    assert pool.allocation_ranges[0].end == "10.250.255.254"


def test_read_failure_propagates_without_touching_state():
    client, state, _ = converged()
    profile_id = state.advanced_dhcp.profile_id
    client.failures["read_dhcp_profile"] = TransportError("service unavailable", status=503)

    with pytest.raises(ReadingError):
        DhcpProfileTask().ensure(client, make_spec(), state)

    assert state.advanced_dhcp.profile_id == profile_id
    assert client.writes == []


def test_not_found_status_without_error_recreates():
    client, state, _ = converged()
    old_id = state.advanced_dhcp.profile_id
    client.failures["read_dhcp_profile"] = 404

    DhcpProfileTask().ensure(client, make_spec(), state)

    assert client.writes == ["create_dhcp_profile"]
    assert state.advanced_dhcp.profile_id not in (None, old_id)


def test_read_without_body_keeps_reference():
    client, state, _ = converged()
    profile_id = state.advanced_dhcp.profile_id
    client.failures["read_dhcp_profile"] = 200

    with pytest.raises(ReadingError) as excinfo:
        DhcpProfileTask().ensure(client, make_spec(), state)

    assert isinstance(excinfo.value.cause, PayloadError)
    assert state.advanced_dhcp.profile_id == profile_id
    assert client.writes == []
    assert list(client.profiles) == [profile_id]


def test_unexpected_update_status_is_an_error():
    client, state, _ = converged()
    client.profiles[state.advanced_dhcp.profile_id].display_name = "renamed"
    client.failures["update_dhcp_profile"] = 202

    with pytest.raises(UnexpectedStatusError) as excinfo:
        DhcpProfileTask().ensure(client, make_spec(), state)

    assert excinfo.value.operation == "updating"
    assert excinfo.value.status == 202


def test_update_transport_failure_stops_the_pass():
    client, state, ensurer = converged()
    server_id = state.advanced_dhcp.server_id
    client.servers[server_id].display_name = "renamed"
    client.failures["update_dhcp_server"] = TransportError("connection reset")

    with pytest.raises(TaskFailed) as excinfo:
        ensurer.ensure_all(make_spec(), state)

    assert excinfo.value.label == "DHCP server"
    assert isinstance(excinfo.value.cause, UpdatingError)
    assert excinfo.value.retryable
    assert client.writes == ["update_dhcp_server"]
    assert state.advanced_dhcp.server_id == server_id


def test_persistent_not_found_is_bounded():
    client, state, _ = converged()
    client.failures["read_dhcp_profile"] = 404
    client.failures["create_dhcp_profile"] = TransportError("not found", status=404)

    with pytest.raises(CreatingError):
        DhcpProfileTask().ensure(client, make_spec(), state)

    assert client.calls == ["read_dhcp_profile", "create_dhcp_profile"]
    assert state.advanced_dhcp.profile_id is None


def test_logical_switch_lookup_matches_correlation_tag():
    client = make_client()
    state = InfraState(segment_path=SEGMENT_PATH)

    LookupLogicalSwitchTask().ensure(client, make_spec(), state)

    assert state.advanced_dhcp.logical_switch_id == "ls-1"


def test_logical_switch_lookup_miss_is_fatal():
    client = make_client()
    state = InfraState(segment_path="/infra/segments/unknown")

    with pytest.raises(LookupNotFoundError) as excinfo:
        LookupLogicalSwitchTask().ensure(client, make_spec(), state)

    assert not excinfo.value.retryable
    assert state.advanced_dhcp.logical_switch_id is None


def test_lookup_listing_failure_is_reading_error():
    client = make_client()
    client.failures["list_edge_clusters"] = TransportError("timed out")

    with pytest.raises(ReadingError) as excinfo:
        LookupEdgeClusterTask().ensure(client, make_spec(), InfraState())

    assert excinfo.value.operation == "listing"


def test_lookup_listing_unexpected_status():
    client = make_client()
    client.failures["list_logical_switches"] = 500

    with pytest.raises(UnexpectedStatusError):
        LookupLogicalSwitchTask().ensure(client, make_spec(), InfraState(segment_path=SEGMENT_PATH))


def test_edge_cluster_lookup_follows_new_identity():
    client = make_client()
    state = InfraState()
    state.advanced_dhcp.edge_cluster_id = "ec-old"

    LookupEdgeClusterTask().ensure(client, make_spec(), state)

    assert state.advanced_dhcp.edge_cluster_id == "ec-1"


def test_port_is_deleted_with_detach():
    client, state, _ = converged()

    assert DhcpPortTask().ensure_deleted(client, make_spec(), state) is True
    assert state.advanced_dhcp.port_id is None
    assert client.ports == {}


def test_unexpected_delete_status_keeps_reference():
    client, state, _ = converged()
    profile_id = state.advanced_dhcp.profile_id
    client.failures["delete_dhcp_profile"] = 202

    with pytest.raises(UnexpectedStatusError) as excinfo:
        DhcpProfileTask().ensure_deleted(client, make_spec(), state)

    assert excinfo.value.operation == "deleting"
    assert excinfo.value.status == 202
    assert state.advanced_dhcp.profile_id == profile_id


def test_not_found_status_on_delete_forgets_reference():
    client, state, _ = converged()
    client.failures["delete_dhcp_profile"] = 404

    assert DhcpProfileTask().ensure_deleted(client, make_spec(), state) is False
    assert state.advanced_dhcp.profile_id is None
    assert client.calls == ["delete_dhcp_profile"]


def test_pool_without_server_is_forgotten_on_delete():
    client = make_client()
    state = InfraState()
    state.advanced_dhcp.ip_pool_id = "pool-7"

    assert DhcpIpPoolTask().ensure_deleted(client, make_spec(), state) is False
    assert state.advanced_dhcp.ip_pool_id is None
    assert client.calls == []


def test_capabilities():
    assert isinstance(LookupEdgeClusterTask(), NameableTask)
    assert not isinstance(LookupEdgeClusterTask(), DeletableTask)
    assert not isinstance(LookupLogicalSwitchTask(), DeletableTask)
    assert isinstance(DhcpIpPoolTask(), DeletableTask)
    assert not isinstance(DhcpIpPoolTask(), NameableTask)
