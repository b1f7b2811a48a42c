from __future__ import annotations

from uuid import uuid4


async def _seed(client, resource_id: str, values: dict[str, int], resource: str = "post") -> None:
    for key, value in values.items():
        response = await client.post(
            "/metrics",
            json={"resource": resource, "resourceId": resource_id, "key": key, "value": value},
        )
        assert response.status_code == 201


async def test_list_returns_paginated_envelope(client) -> None:
    resource_id = str(uuid4())
    await _seed(client, resource_id, {"a": 1, "b": 2, "c": 3, "d": 4, "e": 5})

    response = await client.get("/metrics", params={"limit": 2, "page": 2, "order[value]": "asc"})
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 5
    assert body["limit"] == 2
    assert body["page"] == 2
    assert [item["value"] for item in body["items"]] == [3, 4]


async def test_list_defaults_and_clamps_pagination(client_factory) -> None:
    client = await client_factory(metrics_pagination_limit=3, metrics_max_pagination_limit=4)
    await _seed(client, str(uuid4()), {f"k{idx}": idx for idx in range(6)})

    default_page = (await client.get("/metrics")).json()
    assert default_page["limit"] == 3
    assert default_page["page"] == 1
    assert len(default_page["items"]) == 3

    clamped = (await client.get("/metrics", params={"limit": 500, "page": 0})).json()
    assert clamped["limit"] == 4
    assert clamped["page"] == 1
    assert len(clamped["items"]) == 4

    invalid = await client.get("/metrics", params={"limit": "ten"})
    assert invalid.status_code == 400


async def test_list_count_flag_disables_total(client) -> None:
    await _seed(client, str(uuid4()), {"views": 1})

    with_total = (await client.get("/metrics")).json()
    assert with_total["total"] == 1

    without_total = (await client.get("/metrics", params={"count": "false"})).json()
    assert without_total["total"] is None
    assert len(without_total["items"]) == 1


async def test_list_filters_by_mapped_fields(client_factory) -> None:
    client = await client_factory(metrics_allowed_types=["post", "user"])
    post_id = str(uuid4())
    user_id = str(uuid4())
    await _seed(client, post_id, {"views": 10, "likes": 2})
    await _seed(client, user_id, {"views": 7}, resource="user")

    by_resource_id = (await client.get("/metrics", params={"resourceId": post_id})).json()
    assert {item["key"] for item in by_resource_id["items"]} == {"views", "likes"}

    by_key = (await client.get("/metrics", params={"key": "views", "order[value]": "desc"})).json()
    assert [item["value"] for item in by_key["items"]] == [10, 7]

    by_resources = await client.get("/metrics", params=[("resource", "post"), ("resource", "user")])
    assert by_resources.json()["total"] == 3

    by_value = (await client.get("/metrics", params={"value[gte]": 7, "resource": "user"})).json()
    assert [item["resourceId"] for item in by_value["items"]] == [user_id]


async def test_list_rejects_disallowed_resource_filter(client) -> None:
    response = await client.get("/metrics", params={"resource": "comment"})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert "comment" in detail
    assert "post" in detail


async def test_list_rejects_disallowed_value_among_many(client) -> None:
    response = await client.get("/metrics", params={"resource[in]": "post,Post"})
    assert response.status_code == 400
    assert "'Post'" in response.json()["detail"]


async def test_list_caps_values_per_filter_field(client) -> None:
    params = [("resourceId", str(uuid4())) for _ in range(51)]
    response = await client.get("/metrics", params=params)
    assert response.status_code == 400
    assert response.json()["detail"] == "too many filter values for field 'resourceId' (max: 50, got: 51)"

    at_cap = await client.get("/metrics", params=params[:50])
    assert at_cap.status_code == 200


async def test_list_rejects_bad_filter_and_order_input(client) -> None:
    for params in (
        {"order[name]": "asc"},
        {"order[value]": "up"},
        {"value[between]": "1"},
        {"resourceId": "not-a-uuid"},
    ):
        response = await client.get("/metrics", params=params)
        assert response.status_code == 400, params


async def test_list_cap_counts_every_operator_on_a_field(client) -> None:
    params = [("resourceId", str(uuid4())) for _ in range(50)]
    params += [("resourceId[ne]", str(uuid4())) for _ in range(50)]
    response = await client.get("/metrics", params=params)
    assert response.status_code == 400
    assert response.json()["detail"] == "too many filter values for field 'resourceId' (max: 50, got: 100)"

    split_at_cap = await client.get("/metrics", params=params[:25] + params[50:75])
    assert split_at_cap.status_code == 200


async def test_list_rejects_out_of_range_integer_filter(client) -> None:
    for params in ({"value": "1180591620717411303424"}, {"value[lt]": str(-(2**63))}):
        response = await client.get("/metrics", params=params)
        assert response.status_code == 400, params
        assert "out of range" in response.json()["detail"]
