import json

import pytest
import requests

from second_class import api
from second_class.api import APIClient, APIError


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


def make_client(responses, **kwargs):
    client = APIClient("token", backoff=0, **kwargs)
    sent = []

    def fake_get(url, params=None, headers=None, timeout=None):
        sent.append((url, dict(params or {}), headers))
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client.session.get = fake_get
    return client, sent


def page(records, total):
    return FakeResponse({"success": True, "message": "", "result": {"records": records, "total": total}})


def test_request_unwraps_envelope_and_sends_token():
    client, sent = make_client([FakeResponse({"success": True, "result": [1, 2]})])
    assert client.request("item/scItem/queryById", params={"id": "x"}) == [1, 2]
    url, params, headers = sent[0]
    assert url == api.BASE_URL + "item/scItem/queryById"
    assert params == {"id": "x"}
    assert headers == {"X-Access-Token": "token"}


def test_server_failure_carries_message():
    client, _ = make_client([FakeResponse({"success": False, "message": "时间冲突"})])
    with pytest.raises(APIError) as excinfo:
        client.request("x")
    assert excinfo.value.message == "时间冲突"


@pytest.mark.parametrize(
    "response",
    [FakeResponse(ValueError("not json")), FakeResponse(["no envelope"]), FakeResponse({}, 500)],
)
def test_malformed_responses_are_api_errors(response):
    client, _ = make_client([response])
    with pytest.raises(APIError):
        client.request("x")


def test_fetch_one_retries_then_succeeds():
    client, sent = make_client(
        [
            requests.ConnectionError("down"),
            FakeResponse({"success": False, "message": "busy"}),
            FakeResponse({"success": True, "result": "ok"}),
        ]
    )
    assert client.fetch_one("x") == "ok"
    assert len(sent) == 3


def test_fetch_one_raises_last_error():
    client, sent = make_client(
        [
            FakeResponse({"success": False, "message": "first"}),
            FakeResponse({"success": False, "message": "second"}),
        ],
        retry=2,
    )
    with pytest.raises(APIError, match="second"):
        client.fetch_one("x")
    assert len(sent) == 2


def test_page_search_walks_pages_until_total():
    client, sent = make_client([page([1, 2], 5), page([3, 4], 5), page([5], 5)])
    assert client.page_search("list", {"itemName": "a"}, page_size=2) == [1, 2, 3, 4, 5]
    assert [p["pageNo"] for _, p, _ in sent] == [1, 2, 3]
    assert all(p["pageSize"] == 2 and p["itemName"] == "a" for _, p, _ in sent)


def test_page_search_stops_at_max_results():
    client, sent = make_client([page([1, 2], 10), page([3, 4], 10)])
    assert client.page_search("list", max_results=3, page_size=2) == [1, 2, 3]
    assert len(sent) == 2


def test_page_search_requires_records():
    client, _ = make_client([FakeResponse({"success": True, "result": {"total": 3}})], retry=1)
    with pytest.raises(APIError):
        client.page_search("list")


def test_offline_reads_fixtures(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    client = APIClient(offline=True)
    (client.json_dir / "item_scItem_enrolmentList.json").write_text(
        json.dumps({"records": [{"id": "1"}], "total": 1}), encoding="utf-8"
    )
    assert client.page_search("item/scItem/enrolmentList") == [{"id": "1"}]


def test_page_search_requires_total():
    client, _ = make_client([FakeResponse({"success": True, "result": {"records": [1, 2]}})], retry=1)
    with pytest.raises(APIError, match="total"):
        client.page_search("list")


def test_page_search_rejects_bad_total():
    client, _ = make_client(
        [FakeResponse({"success": True, "result": {"records": [1], "total": "many"}})], retry=1
    )
    with pytest.raises(APIError):
        client.page_search("list")


def test_envelope_without_result_reads_as_none():
    client, _ = make_client([FakeResponse({"success": True})], retry=1)
    assert client.fetch_one("x") is None


def test_page_without_result_is_api_error():
    client, _ = make_client([FakeResponse({"success": True})], retry=1)
    with pytest.raises(APIError):
        client.page_search("list")
