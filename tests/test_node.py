import pytest
import responses

from jkcli.client import JenkinsClient, JenkinsError
from jkcli.node import (
    NodeInfo,
    delete_node,
    encode_node_name,
    format_nodes,
    is_built_in_node,
    list_nodes,
    toggle_node,
)

BASE = "http://jenkins.example.com"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


@pytest.fixture
def client():
    return JenkinsClient(BASE, username="user", token="token", probe_capabilities=False)


def _no_crumb(rsps):
    rsps.add(responses.GET, BASE + "/crumbIssuer/api/json", status=404)


@pytest.mark.parametrize("name", ["master", "(master)", "built-in", " (built-in) "])
def test_encode_node_name_built_in_aliases(name):
    assert encode_node_name(name) == "(master)"


def test_encode_node_name_escapes_spaces():
    assert encode_node_name("my agent") == "my%20agent"


def test_is_built_in_node_is_case_insensitive():
    assert is_built_in_node("Built-In")
    assert is_built_in_node("  MASTER ")
    assert not is_built_in_node("agent-1")


def test_list_nodes_maps_fields(rsps, client):
    rsps.add(
        responses.GET,
        BASE + "/computer/api/json",
        json={
            "computer": [
                {"displayName": "agent-1", "offline": True, "temporarilyOffline": True,
                 "offlineCauseReason": "  maintenance  "},
                {"displayName": "agent-2", "offline": False, "temporarilyOffline": False},
            ]
        },
    )
    nodes = list_nodes(client)
    assert nodes == [
        NodeInfo("agent-1", True, True, "maintenance"),
        NodeInfo("agent-2", False, False, ""),
    ]
    assert "tree=" in rsps.calls[0].request.url


def test_format_nodes_empty():
    assert format_nodes([]) == "No nodes found\n"


def test_format_nodes_states_and_causes():
    text = format_nodes(
        [NodeInfo("agent-1", True, True, "maintenance"), NodeInfo("agent-2")]
    )
    lines = text.splitlines()
    assert lines[0].split("\t") == ["agent-1", "offline (cordoned)", "maintenance"]
    assert lines[1].split("\t") == ["agent-2", "online"]


def test_node_info_to_dict_omits_empty_cause():
    assert "offlineCause" not in NodeInfo("a").to_dict()
    assert NodeInfo("a", offline_cause="down").to_dict()["offlineCause"] == "down"


def test_toggle_node_cordon_sends_sorted_query(rsps, client):
    _no_crumb(rsps)
    rsps.add(responses.POST, BASE + "/computer/agent-1/toggleOffline", status=200)
    summary = toggle_node(client, "agent-1", True, "maintenance window")
    assert summary == "Node agent-1 marked cordoned"
    url = rsps.calls[-1].request.url
    assert url.endswith("?offline=true&offlineMessage=maintenance+window")


def test_toggle_node_uncordon(rsps, client):
    _no_crumb(rsps)
    rsps.add(responses.POST, BASE + "/computer/agent-1/toggleOffline", status=200)
    assert toggle_node(client, "agent-1", False) == "Node agent-1 marked online"
    assert rsps.calls[-1].request.url.endswith("?offline=false")


def test_toggle_node_failure(rsps, client):
    _no_crumb(rsps)
    rsps.add(responses.POST, BASE + "/computer/agent-1/toggleOffline", status=500)
    with pytest.raises(JenkinsError, match="toggle failed"):
        toggle_node(client, "agent-1", True)


def test_toggle_node_requires_name(client):
    with pytest.raises(ValueError, match="node name required"):
        toggle_node(client, "   ", True)


def test_delete_node_refuses_built_in(client):
    with pytest.raises(ValueError, match="cannot delete the built-in node"):
        delete_node(client, "built-in")


def test_delete_node_requires_name(client):
    with pytest.raises(ValueError, match="node name required"):
        delete_node(client, "")


def test_delete_node_posts_with_crumb(rsps, client):
    rsps.add(
        responses.GET,
        BASE + "/crumbIssuer/api/json",
        json={"crumb": "abc", "crumbRequestField": "Jenkins-Crumb"},
    )
    rsps.add(responses.POST, BASE + "/computer/agent-1/doDelete", status=200)
    assert delete_node(client, " agent-1 ") == "Deleted node agent-1"
    assert rsps.calls[-1].request.headers["Jenkins-Crumb"] == "abc"


def test_delete_node_failure(rsps, client):
    _no_crumb(rsps)
    rsps.add(responses.POST, BASE + "/computer/agent-1/doDelete", status=404)
    with pytest.raises(JenkinsError, match="delete failed"):
        delete_node(client, "agent-1")