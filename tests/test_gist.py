# TrackerSync test scripts
from __future__ import annotations

import json

import pytest
import responses

from fakes import item, make_data

from ts_platform.gist import GIST_FILENAME, GistClient
from ts_platform.models import dump_tracker_data, empty_data
from ts_platform.sync import RemoteValidationError, TransportError

API = "https://api.github.com"


def _client() -> GistClient:
    return GistClient(backoff_base=0.0)


def _gist(content: str, **file_kw) -> dict:
    return {"id": "g1", "files": {GIST_FILENAME: {"content": content, **file_kw}}}


@responses.activate
def test_fetch_parses_the_tracker_file_with_github_headers() -> None:
    data = make_data(food_items=[item("a", "Apple")])
    responses.add(responses.GET, f"{API}/gists/g1", json=_gist(json.dumps(dump_tracker_data(data))))

    out = _client().fetch("g1", "tok")

    assert out == data
    headers = responses.calls[0].request.headers
    assert headers["Authorization"] == "Bearer tok"
    assert headers["Accept"] == "application/vnd.github+json"
    assert headers["X-GitHub-Api-Version"] == "2022-11-28"


@responses.activate
def test_fetch_without_the_tracker_file_is_empty_data() -> None:
    responses.add(responses.GET, f"{API}/gists/g1", json={"id": "g1", "files": {"other.txt": {"content": "x"}}})

    assert _client().fetch("g1", "tok") == empty_data()


@responses.activate
def test_fetch_migrates_old_categories() -> None:
    raw = {"foodCategories": [{"id": "c1", "name": "Fruit"}]}
    responses.add(responses.GET, f"{API}/gists/g1", json=_gist(json.dumps(raw)))

    out = _client().fetch("g1", "tok")

    assert out.food_categories[0].sentiment == "neutral"


@pytest.mark.parametrize("content", ["{not json", json.dumps({"entries": [{"id": "e1", "type": "sleep"}]})])
@responses.activate
def test_invalid_remote_payload_is_rejected(content: str) -> None:
    responses.add(responses.GET, f"{API}/gists/g1", json=_gist(content))

    with pytest.raises(RemoteValidationError):
        _client().fetch("g1", "tok")


@responses.activate
def test_truncated_file_is_read_from_raw_url() -> None:
    data = make_data(food_items=[item("big")])
    raw_url = "https://gist.githubusercontent.com/u/g1/raw/tracker-data.json"
    responses.add(responses.GET, f"{API}/gists/g1", json=_gist("{", truncated=True, raw_url=raw_url))
    responses.add(responses.GET, raw_url, body=json.dumps(dump_tracker_data(data)))

    assert _client().fetch("g1", "tok") == data


@responses.activate
def test_http_errors_raise_transport_error_with_status() -> None:
    responses.add(responses.GET, f"{API}/gists/missing", json={"message": "Not Found"}, status=404)

    with pytest.raises(TransportError) as ei:
        _client().fetch("missing", "tok")

    assert ei.value.status_code == 404
    assert len(responses.calls) == 1


@responses.activate
def test_server_errors_are_retried() -> None:
    responses.add(responses.GET, f"{API}/gists/g1", status=502)
    responses.add(responses.GET, f"{API}/gists/g1", json=_gist(""))

    assert _client().fetch("g1", "tok") == empty_data()
    assert len(responses.calls) == 2


@responses.activate
def test_replace_patches_the_tracker_file() -> None:
    responses.add(responses.PATCH, f"{API}/gists/g1", json={"id": "g1"})
    data = make_data(food_items=[item("a")])

    _client().replace("g1", "tok", data)

    body = json.loads(responses.calls[0].request.body)
    assert json.loads(body["files"][GIST_FILENAME]["content"]) == dump_tracker_data(data)


@responses.activate
def test_create_returns_the_new_private_gist_id() -> None:
    responses.add(responses.POST, f"{API}/gists", json={"id": "new-id"}, status=201)

    assert _client().create("tok") == "new-id"
    body = json.loads(responses.calls[0].request.body)
    assert body["public"] is False
    assert GIST_FILENAME in body["files"]


@responses.activate
def test_list_user_gists_summarises_each_gist() -> None:
    responses.add(
        responses.GET,
        f"{API}/gists",
        json=[
            {"id": "a", "description": "Tracker", "files": {GIST_FILENAME: {}}},
            {"id": "b", "description": None, "files": {}},
        ],
    )

    assert _client().list_user_gists("tok") == [
        {"id": "a", "description": "Tracker", "files": [GIST_FILENAME]},
        {"id": "b", "description": "No description", "files": []},
    ]


@responses.activate
def test_validate_token() -> None:
    responses.add(responses.GET, f"{API}/user", json={"login": "me"})
    responses.add(responses.GET, f"{API}/user", json={"message": "Bad credentials"}, status=401)

    client = _client()
    assert client.validate_token("good") is True
    assert client.validate_token("bad") is False
