import dataclasses
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus

import pytest
from werkzeug.wrappers import Request

from goods_service.handler import (
    Handler,
    error_response,
    get_id,
    get_pagination_params,
    get_project_id,
    json_response,
)
from goods_service.models import Good, NotFoundError, PriorityItem, PriorityResponse

CREATED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeService:
    goods: dict = field(default_factory=dict)
    error: Exception | None = None
    removed: int = 0
    list_args: tuple | None = None

    def _check(self):
        if self.error is not None:
            raise self.error

    def add(self, good):
        self.goods[(good.id, good.project_id)] = good
        return good

    def create_good(self, good):
        self._check()
        number = len(self.goods) + 1
        return self.add(dataclasses.replace(good, id=number, priority=number, created_at=CREATED))

    def update_good(self, good):
        self._check()
        key = (good.id, good.project_id)
        if key not in self.goods:
            raise NotFoundError()
        return self.add(dataclasses.replace(self.goods[key], name=good.name, description=good.description))

    def get_good(self, good_id, project_id):
        self._check()
        try:
            return self.goods[(good_id, project_id)]
        except KeyError:
            raise NotFoundError() from None

    def delete_good(self, good_id, project_id):
        self._check()
        try:
            return self.goods.pop((good_id, project_id))
        except KeyError:
            raise NotFoundError() from None

    def reprioritize_good(self, good_id, project_id, new_priority):
        self._check()
        if (good_id, project_id) not in self.goods:
            raise NotFoundError()
        return PriorityResponse([PriorityItem(id=good_id, priority=new_priority)])

    def list_goods(self, limit, offset):
        self._check()
        self.list_args = (limit, offset)
        return list(self.goods.values())[offset : offset + limit]

    def get_total_count(self):
        self._check()
        return len(self.goods)

    def get_removed_count(self):
        self._check()
        return self.removed


def make_request(method="GET", query=None, body=None):
    return Request.from_values(method=method, query_string=query or {}, data=body)


def body_of(response):
    return json.loads(response.get_data())


@pytest.fixture
def service():
    return FakeService()


@pytest.fixture
def handler(service):
    return Handler(service)


def test_get_project_id_parses_positive_value():
    assert get_project_id(make_request(query={"projectId": "7"})) == 7
    assert get_project_id(make_request(query={"projectId": "+7"})) == 7


def test_get_id_reads_project_id_parameter():
    request = make_request(query={"id": "3", "projectId": "9"})
    assert get_id(request) == get_project_id(request)


@pytest.mark.parametrize("raw", ["", "abc", "0", "-2", " 7", "1_0", "1.5", "99999999999999999999"])
def test_get_project_id_rejects_bad_values(raw):
    with pytest.raises(ValueError):
        get_project_id(make_request(query={"projectId": raw}))


def test_get_id_missing_parameter():
    with pytest.raises(ValueError, match="projectId is required"):
        get_id(make_request())


@pytest.mark.parametrize(
    "query, expected",
    [
        ({}, (10, 0)),
        ({"limit": "25", "offset": "5"}, (25, 5)),
        ({"limit": "500"}, (100, 0)),
        ({"limit": "-1", "offset": "-4"}, (10, 0)),
        ({"limit": "x", "offset": "y"}, (10, 0)),
        ({"limit": "0"}, (10, 0)),
    ],
)
def test_pagination_params(query, expected):
    assert get_pagination_params(make_request(query=query)) == expected


def test_json_response_is_compact_and_escapes_html():
    response = json_response(HTTPStatus.OK, {"name": "<a&b>"})
    assert response.headers["Content-Type"] == "application/json"
    assert response.get_data() == b'{"name":"\\u003ca\\u0026b\\u003e"}'
    assert body_of(response) == {"name": "<a&b>"}


def test_error_response_shape():
    response = error_response(HTTPStatus.BAD_REQUEST, 4, "Invalid project ID")
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert body_of(response) == {"code": 4, "message": "Invalid project ID", "details": {}}


def test_create_good_returns_stored_good(handler, service):
    request = make_request("POST", {"projectId": "2"}, json.dumps({"name": "pen", "description": "blue"}))
    response = handler.create_good(request)
    assert response.status_code == HTTPStatus.CREATED
    data = body_of(response)
    assert data["projectId"] == 2
    assert data["name"] == "pen"
    assert Good.from_dict(data) == service.goods[(data["id"], 2)]


def test_create_good_accepts_null_body(handler):
    response = handler.create_good(make_request("POST", {"projectId": "1"}, "null"))
    assert response.status_code == HTTPStatus.CREATED
    assert body_of(response)["name"] == ""


def test_create_good_requires_project_id(handler):
    response = handler.create_good(make_request("POST", {}, "{}"))
    assert body_of(response)["message"] == "Invalid project ID"


@pytest.mark.parametrize("payload", ["", "[1]", '{"name": 5}', "{bad"])
def test_create_good_rejects_bad_payload(handler, payload):
    response = handler.create_good(make_request("POST", {"projectId": "1"}, payload))
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert body_of(response)["message"] == "Invalid request payload"


def test_create_good_service_failure(handler, service):
    service.error = RuntimeError("boom")
    response = handler.create_good(make_request("POST", {"projectId": "1"}, "{}"))
    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert body_of(response)["code"] == 5


def test_update_good_changes_name(handler, service):
    service.add(Good(id=4, project_id=4, name="old", created_at=CREATED))
    response = handler.update_good(make_request("PATCH", {"projectId": "4"}, '{"name": "new"}'))
    assert response.status_code == HTTPStatus.OK
    assert body_of(response)["name"] == "new"
    assert service.goods[(4, 4)].name == "new"


def test_update_good_not_found(handler):
    response = handler.update_good(make_request("PATCH", {"projectId": "4"}, '{"name": "new"}'))
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert body_of(response)["message"] == "errors.common.notFound"


def test_update_good_invalid_id(handler):
    response = handler.update_good(make_request("PATCH", {}, "{}"))
    assert body_of(response)["message"] == "Invalid good ID"


def test_update_good_other_failure(handler, service):
    service.error = RuntimeError("down")
    response = handler.update_good(make_request("PATCH", {"projectId": "4"}, "{}"))
    assert body_of(response)["code"] == 5


def test_get_good_round_trips(handler, service):
    good = service.add(Good(id=3, project_id=3, name="cup", priority=2, created_at=CREATED))
    response = handler.get_good(make_request(query={"projectId": "3"}))
    assert response.status_code == HTTPStatus.OK
    assert Good.from_dict(body_of(response)) == good


def test_get_good_missing(handler):
    response = handler.get_good(make_request(query={"projectId": "3"}))
    assert body_of(response)["code"] == 3


def test_delete_good(handler, service):
    service.add(Good(id=2, project_id=2))
    response = handler.delete_good(make_request("DELETE", {"projectId": "2"}))
    assert body_of(response) == {"id": 2, "campaignId": 2, "removed": True}
    assert (2, 2) not in service.goods


def test_delete_good_not_found(handler):
    response = handler.delete_good(make_request("DELETE", {"projectId": "2"}))
    assert body_of(response)["message"] == "errors.common.notFound"


def test_delete_good_other_failure_uses_code_four(handler, service):
    service.error = RuntimeError("down")
    response = handler.delete_good(make_request("DELETE", {"projectId": "2"}))
    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR
    assert body_of(response)["code"] == 4


def test_reprioritize_good(handler, service):
    service.add(Good(id=5, project_id=5))
    response = handler.reprioritize_good(make_request("PATCH", {"projectId": "5"}, '{"NEWPRIORITY": 2}'))
    assert response.status_code == HTTPStatus.OK
    assert body_of(response) == {"priorities": [{"id": 5, "priority": 2}]}


@pytest.mark.parametrize("payload", ['{"newPriority": 0}', "{}", "null"])
def test_reprioritize_requires_positive_priority(handler, payload):
    response = handler.reprioritize_good(make_request("PATCH", {"projectId": "5"}, payload))
    assert body_of(response)["message"] == "Priority must be greater than 0"


@pytest.mark.parametrize("payload", ['{"newPriority": 1.5}', '{"newPriority": true}', "[]"])
def test_reprioritize_rejects_bad_payload(handler, payload):
    response = handler.reprioritize_good(make_request("PATCH", {"projectId": "5"}, payload))
    assert body_of(response)["message"] == "Invalid request payload"


def test_reprioritize_not_found(handler):
    response = handler.reprioritize_good(make_request("PATCH", {"projectId": "5"}, '{"newPriority": 1}'))
    assert body_of(response)["code"] == 3


def test_list_goods(handler, service):
    service.add(Good(id=1, project_id=1, created_at=CREATED))
    service.add(Good(id=2, project_id=2, created_at=CREATED))
    service.removed = 4
    response = handler.list_goods(make_request(query={"limit": "1", "offset": "1"}))
    data = body_of(response)
    assert data["meta"] == {"total": 2, "removed": 4, "limit": 1, "offset": 1}
    assert [Good.from_dict(item) for item in data["goods"]] == [service.goods[(2, 2)]]
    assert service.list_args == (1, 1)


def test_list_goods_empty_is_null(handler):
    data = body_of(handler.list_goods(make_request()))
    assert data["goods"] is None
    assert data["meta"]["limit"] == 10


def test_list_goods_failure(handler, service):
    service.error = RuntimeError("down")
    response = handler.list_goods(make_request())
    assert response.status_code == HTTPStatus.INTERNAL_SERVER_ERROR