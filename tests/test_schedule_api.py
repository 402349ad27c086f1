import uuid

import pytest

from content_scheduler.models import ScheduledContent


def _course_payload(course, **overrides):
    payload = {
        "contentType": "course",
        "contentId": str(course.id),
        "scheduledFor": "2026-02-08T14:30:00",
        "timezone": "America/New_York",
    }
    payload.update(overrides)
    return payload


def _create(client, headers, payload):
    resp = client.post("/schedule", json=payload, headers=headers)
    assert resp.status_code == 201, resp.json()
    return resp.json()


def test_health(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_list_requires_authentication(client):
    resp = client.get("/schedule")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_authentication_is_checked_before_validation(client):
    resp = client.post("/schedule", json={"contentType": "nope"})
    assert resp.status_code == 401


def test_bad_session_token(client):
    resp = client.get("/schedule", headers={"Authorization": "Bearer not-a-session"})
    assert resp.status_code == 401


def test_instructor_schedules_course_in_local_time(client, auth_headers, instructor, course):
    data = _create(client, auth_headers(instructor), _course_payload(course))

    assert data["contentType"] == "course"
    assert data["contentId"] == str(course.id)
    assert data["scheduledFor"].startswith("2026-02-08T19:30:00")
    assert data["scheduledForLocal"] == "2026-02-08T14:30:00"
    assert data["timezone"] == "America/New_York"
    assert data["status"] == "pending"
    assert data["autoPublish"] is True
    assert data["publishAction"] == {}
    assert data["createdBy"] == str(instructor.id)


def test_defaults_to_utc(client, auth_headers, instructor, course):
    payload = _course_payload(course, scheduledFor="2026-03-01T09:00:00")
    del payload["timezone"]

    data = _create(client, auth_headers(instructor), payload)
    assert data["timezone"] == "UTC"
    assert data["scheduledFor"].startswith("2026-03-01T09:00:00")


def test_instant_with_offset_is_kept(client, auth_headers, instructor, course):
    data = _create(
        client,
        auth_headers(instructor),
        _course_payload(course, scheduledFor="2026-02-08T19:30:00Z", timezone="Asia/Tokyo"),
    )
    assert data["scheduledFor"].startswith("2026-02-08T19:30:00")
    assert data["scheduledForLocal"] == "2026-02-09T04:30:00"


def test_non_owner_is_forbidden(client, auth_headers, stranger, course):
    resp = client.post("/schedule", json=_course_payload(course), headers=auth_headers(stranger))

    assert resp.status_code == 403
    assert resp.json() == {"error": "You don't have permission to schedule this course"}


def test_unknown_course_is_forbidden_without_echoing_the_id(client, auth_headers, instructor):
    content_id = str(uuid.uuid4())
    resp = client.post(
        "/schedule",
        json={"contentType": "course", "contentId": content_id, "scheduledFor": "2026-02-08T14:30:00Z"},
        headers=auth_headers(instructor),
    )
    assert resp.status_code == 403
    assert resp.json()["error"] == "Course not found"
    assert content_id not in resp.text


def test_lesson_and_announcement_owners(client, auth_headers, instructor, lesson, announcement):
    headers = auth_headers(instructor)
    for content_type, content in (("lesson", lesson), ("announcement", announcement)):
        resp = client.post(
            "/schedule",
            json={"contentType": content_type, "contentId": str(content.id), "scheduledFor": "2026-05-01T10:00:00Z"},
            headers=headers,
        )
        assert resp.status_code == 201, resp.json()


def test_admin_only_content_types(client, auth_headers, admin, instructor):
    payload = {
        "contentType": "post",
        "contentId": str(uuid.uuid4()),
        "scheduledFor": "2026-05-01T10:00:00Z",
        "publishAction": {"sendNotification": True},
    }

    resp = client.post("/schedule", json=payload, headers=auth_headers(instructor))
    assert resp.status_code == 403
    assert resp.json()["error"] == "Only admins can schedule this content type"

    resp = client.post("/schedule", json=payload, headers=auth_headers(admin))
    assert resp.status_code == 201
    assert resp.json()["publishAction"] == {"sendNotification": True}


def test_invalid_content_type(client, auth_headers, admin):
    resp = client.post(
        "/schedule",
        json={"contentType": "podcast", "contentId": str(uuid.uuid4()), "scheduledFor": "2026-05-01T10:00:00Z"},
        headers=auth_headers(admin),
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert [d["field"] for d in body["details"]] == ["contentType"]


def test_invalid_scheduled_for(client, auth_headers, instructor, course):
    resp = client.post(
        "/schedule", json=_course_payload(course, scheduledFor="next tuesday"), headers=auth_headers(instructor)
    )
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["scheduledFor"]


def test_invalid_timezone(client, auth_headers, instructor, course):
    resp = client.post(
        "/schedule", json=_course_payload(course, timezone="America/FakeCity"), headers=auth_headers(instructor)
    )
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["timezone"]


def test_invalid_content_id(client, auth_headers, instructor, course):
    resp = client.post(
        "/schedule", json=_course_payload(course, contentId="123"), headers=auth_headers(instructor)
    )
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["contentId"]


def test_second_pending_schedule_conflicts(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    _create(client, headers, _course_payload(course))

    resp = client.post("/schedule", json=_course_payload(course, scheduledFor="2026-04-01T08:00:00"), headers=headers)
    assert resp.status_code == 409
    assert resp.json() == {"error": "Content is already scheduled"}


def test_cancelled_schedule_does_not_block_a_new_one(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    first = _create(client, headers, _course_payload(course))
    assert client.delete(f"/schedule/{first['id']}", headers=headers).status_code == 200

    second = _create(client, headers, _course_payload(course, scheduledFor="2026-04-01T08:00:00"))
    assert second["id"] != first["id"]


def test_list_filters_and_pagination(client, auth_headers, admin, stranger):
    headers = auth_headers(admin)
    for i, content_type in enumerate(["post", "post", "email"]):
        _create(
            client,
            headers,
            {
                "contentType": content_type,
                "contentId": str(uuid.uuid4()),
                "scheduledFor": f"2026-05-0{i + 1}T10:00:00Z",
            },
        )

    # any signed-in user may list
    resp = client.get("/schedule", headers=auth_headers(stranger))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 3
    assert body["limit"] == 50
    assert body["offset"] == 0
    times = [s["scheduledFor"] for s in body["schedules"]]
    assert times == sorted(times)

    resp = client.get("/schedule", params={"contentType": "post", "limit": 1, "offset": 1}, headers=headers)
    body = resp.json()
    assert body["total"] == 2
    assert len(body["schedules"]) == 1
    assert body["schedules"][0]["scheduledFor"].startswith("2026-05-02")

    resp = client.get("/schedule", params={"status": "cancelled"}, headers=headers)
    assert resp.json()["total"] == 0


def test_list_rejects_bad_filters(client, auth_headers, admin):
    headers = auth_headers(admin)
    assert client.get("/schedule", params={"contentType": "podcast"}, headers=headers).status_code == 400
    assert client.get("/schedule", params={"status": "failed"}, headers=headers).status_code == 400
    assert client.get("/schedule", params={"limit": 0}, headers=headers).status_code == 400


def test_get_schedule(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    resp = client.get(f"/schedule/{created['id']}", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["id"] == created["id"]


def test_get_missing_schedule(client, auth_headers, instructor):
    headers = auth_headers(instructor)
    missing = str(uuid.uuid4())

    resp = client.get(f"/schedule/{missing}", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Schedule not found"}

    resp = client.get("/schedule/not-a-uuid", headers=headers)
    assert resp.status_code == 404
    assert resp.json() == {"error": "Schedule not found"}


def test_reschedule_pending(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    resp = client.patch(
        f"/schedule/{created['id']}",
        json={"scheduledFor": "2026-06-15T12:00:00", "autoPublish": False},
        headers=headers,
    )
    assert resp.status_code == 200
    data = resp.json()
    # June is EDT
    assert data["scheduledFor"].startswith("2026-06-15T16:00:00")
    assert data["timezone"] == "America/New_York"
    assert data["autoPublish"] is False

    history = client.get(f"/schedule/{created['id']}/history", headers=headers).json()
    assert [h["action"] for h in history] == ["scheduled", "rescheduled"]
    assert history[1]["previousScheduledFor"].startswith("2026-02-08T19:30:00")
    assert history[1]["newScheduledFor"].startswith("2026-06-15T16:00:00")


def test_changing_timezone_reinterprets_naive_time(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    resp = client.patch(
        f"/schedule/{created['id']}",
        json={"scheduledFor": "2026-02-08T14:30:00", "timezone": "America/Los_Angeles"},
        headers=headers,
    )
    assert resp.status_code == 200
    assert resp.json()["scheduledFor"].startswith("2026-02-08T22:30:00")


def test_patch_rejects_bad_shape(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))
    url = f"/schedule/{created['id']}"

    assert client.patch(url, json={"status": "published"}, headers=headers).status_code == 400
    assert client.patch(url, json={"contentType": "lesson"}, headers=headers).status_code == 400
    assert client.patch(url, json={"timezone": "NotATimezone"}, headers=headers).status_code == 400
    assert client.patch(url, json={"scheduledFor": None}, headers=headers).status_code == 400


def test_patch_missing_schedule(client, auth_headers, instructor):
    resp = client.patch(f"/schedule/{uuid.uuid4()}", json={"autoPublish": False}, headers=auth_headers(instructor))
    assert resp.status_code == 404


def test_cancel_via_patch(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    resp = client.patch(f"/schedule/{created['id']}", json={"status": "cancelled"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["status"] == "cancelled"


def test_cancelled_schedule_is_immutable(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))
    url = f"/schedule/{created['id']}"
    client.delete(url, headers=headers)

    resp = client.patch(url, json={"scheduledFor": "2026-09-01T10:00:00"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Can only update pending schedules"}

    record = client.get(url, headers=headers).json()
    assert record["status"] == "cancelled"
    assert record["scheduledFor"] == created["scheduledFor"]


def test_published_schedule_is_immutable(client, auth_headers, db_session, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    record = db_session.get(ScheduledContent, uuid.UUID(created["id"]))
    record.status = "published"
    db_session.commit()

    url = f"/schedule/{created['id']}"
    resp = client.patch(url, json={"status": "cancelled"}, headers=headers)
    assert resp.status_code == 400
    resp = client.delete(url, headers=headers)
    assert resp.status_code == 400
    assert resp.json() == {"error": "Can only delete pending schedules"}
    assert client.get(url, headers=headers).json()["status"] == "published"


def test_delete_is_a_soft_cancel(client, auth_headers, db_session, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))
    url = f"/schedule/{created['id']}"

    resp = client.delete(url, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Schedule cancelled successfully"}

    db_session.expire_all()
    record = db_session.get(ScheduledContent, uuid.UUID(created["id"]))
    assert record is not None
    assert record.status == "cancelled"

    resp = client.delete(url, headers=headers)
    assert resp.status_code == 400

    history = client.get(f"{url}/history", headers=headers).json()
    assert [h["action"] for h in history] == ["scheduled", "cancelled"]


def test_only_creator_or_admin_may_modify(client, auth_headers, instructor, stranger, admin, course):
    created = _create(client, auth_headers(instructor), _course_payload(course))
    url = f"/schedule/{created['id']}"

    resp = client.patch(url, json={"autoPublish": False}, headers=auth_headers(stranger))
    assert resp.status_code == 403
    assert client.delete(url, headers=auth_headers(stranger)).status_code == 403

    assert client.delete(url, headers=auth_headers(admin)).status_code == 200


def test_timezones_endpoint(client, auth_headers, instructor):
    resp = client.get("/schedule/timezones", headers=auth_headers(instructor))
    assert resp.status_code == 200
    zones = {z["value"]: z for z in resp.json()}
    assert zones["UTC"]["offset"] == "+00:00"
    assert zones["Asia/Tokyo"]["offset"] == "+09:00"


def test_datastore_failure_is_a_generic_500(client, auth_headers, db_engine, instructor):
    headers = auth_headers(instructor)
    ScheduledContent.__table__.drop(db_engine)

    resp = client.get("/schedule", headers=headers)
    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch scheduled content"}


def _post_payload(**overrides):
    payload = {"contentType": "post", "contentId": str(uuid.uuid4())}
    payload.update(overrides)
    return payload


@pytest.mark.parametrize(
    "scheduled_for, tz",
    [
        # local rendering would fall past year 9999
        ("9999-12-31T20:00:00Z", "Asia/Tokyo"),
        # UTC conversion would fall past year 9999
        ("9999-12-31T23:00:00", "America/Los_Angeles"),
        # UTC conversion would fall before year 1
        ("0001-01-01T05:00:00", "Asia/Tokyo"),
    ],
)
def test_out_of_range_instant_is_rejected_before_insert(client, auth_headers, admin, scheduled_for, tz):
    headers = auth_headers(admin)
    payload = _post_payload(scheduledFor=scheduled_for, timezone=tz)

    resp = client.post("/schedule", json=payload, headers=headers)
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["scheduledFor"]

    listing = client.get("/schedule", headers=headers)
    assert listing.status_code == 200
    assert listing.json()["total"] == 0

    # nothing was left behind to conflict with
    retry = _post_payload(contentId=payload["contentId"], scheduledFor="2026-05-01T10:00:00Z")
    resp = client.post("/schedule", json=retry, headers=headers)
    assert resp.status_code == 201


def test_instant_near_the_upper_bound_is_accepted(client, auth_headers, admin):
    data = _create(client, auth_headers(admin), _post_payload(scheduledFor="9999-12-31T10:00:00Z", timezone="Asia/Tokyo"))
    assert data["scheduledForLocal"] == "9999-12-31T19:00:00"


def test_out_of_range_reschedule_is_rejected(client, auth_headers, admin):
    headers = auth_headers(admin)
    created = _create(client, headers, _post_payload(scheduledFor="2026-05-01T10:00:00Z"))
    url = f"/schedule/{created['id']}"

    resp = client.patch(url, json={"scheduledFor": "9999-12-31T23:00:00", "timezone": "America/Los_Angeles"}, headers=headers)
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["scheduledFor"]
    assert client.get(url, headers=headers).json()["scheduledFor"] == created["scheduledFor"]


def test_timezone_change_that_cannot_render_the_stored_instant(client, auth_headers, admin):
    headers = auth_headers(admin)
    created = _create(client, headers, _post_payload(scheduledFor="9999-12-31T20:00:00Z"))
    url = f"/schedule/{created['id']}"

    resp = client.patch(url, json={"timezone": "Asia/Tokyo"}, headers=headers)
    assert resp.status_code == 400
    record = client.get(url, headers=headers).json()
    assert record["timezone"] == "UTC"
    assert client.get("/schedule", headers=headers).status_code == 200


def test_malformed_json_without_session_is_unauthorized(client):
    resp = client.post("/schedule", content="{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


def test_malformed_json_with_stale_session_is_unauthorized(client):
    resp = client.patch(
        f"/schedule/{uuid.uuid4()}",
        content="{not json",
        headers={"Content-Type": "application/json", "Authorization": "Bearer no-such-session"},
    )
    assert resp.status_code == 401


def test_malformed_json_with_session_reports_the_body(client, auth_headers, instructor):
    headers = {**auth_headers(instructor), "Content-Type": "application/json"}
    resp = client.post("/schedule", content="{not json", headers=headers)

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert [d["field"] for d in body["details"]] == ["body"]


def test_malformed_json_on_open_route_is_a_400(client):
    resp = client.post("/auth/login", content="{not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["body"]


def test_patch_rejects_null_status(client, auth_headers, instructor, course):
    headers = auth_headers(instructor)
    created = _create(client, headers, _course_payload(course))

    resp = client.patch(f"/schedule/{created['id']}", json={"status": None}, headers=headers)
    assert resp.status_code == 400
    assert [d["field"] for d in resp.json()["details"]] == ["status"]
