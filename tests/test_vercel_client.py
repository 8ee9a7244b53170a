from unittest.mock import MagicMock

import pytest
import requests

from services.vercel import DeploymentProviderError, VercelClient


def _response(status=200, payload=None, content=b"{}"):
    response = MagicMock()
    response.ok = 200 <= status < 300
    response.status_code = status
    response.content = content
    response.json.return_value = payload if payload is not None else {}
    return response


@pytest.fixture
def client():
    client = VercelClient("tok_123", team_id="team_1")
    client._session = MagicMock()
    return client


def test_token_required():
    with pytest.raises(DeploymentProviderError):
        VercelClient("")


def test_auth_header_is_set():
    client = VercelClient("tok_123")
    assert client._session.headers["Authorization"] == "Bearer tok_123"
    client.close()


def test_list_deployments_query(client):
    client._session.request.return_value = _response(payload={"deployments": [{"uid": "dpl_1"}]})

    assert client.list_deployments("prj_1", 50) == [{"uid": "dpl_1"}]

    method, url = client._session.request.call_args.args
    assert (method, url) == ("GET", "https://api.vercel.com/v6/deployments")
    assert client._session.request.call_args.kwargs["params"] == {"limit": 50, "projectId": "prj_1", "teamId": "team_1"}


def test_error_body_message_is_surfaced(client):
    client._session.request.return_value = _response(
        status=403, payload={"error": {"code": "forbidden", "message": "Not authorized"}}
    )
    with pytest.raises(DeploymentProviderError, match="Vercel API Error: 403 - Not authorized") as exc_info:
        client.get_deployment("dpl_1")
    assert exc_info.value.status_code == 403


def test_network_errors_are_wrapped(client):
    client._session.request.side_effect = requests.ConnectionError("refused")
    with pytest.raises(DeploymentProviderError, match="request failed"):
        client.list_projects()


def test_empty_body_on_delete(client):
    client._session.request.return_value = _response(content=b"")
    assert client.delete_deployment("dpl_1") == {}
    assert client._session.request.call_args.args == ("DELETE", "https://api.vercel.com/v13/deployments/dpl_1")


def test_cancel_uses_patch(client):
    client._session.request.return_value = _response()
    client.cancel_deployment("dpl_1")
    assert client._session.request.call_args.args == ("PATCH", "https://api.vercel.com/v12/deployments/dpl_1/cancel")


def test_events_must_be_a_list(client):
    client._session.request.return_value = _response(payload={"unexpected": True})
    assert client.deployment_events("dpl_1") == []
