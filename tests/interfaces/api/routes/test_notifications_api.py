"""Tests for the notification REST endpoints."""

from __future__ import annotations

from campus_notify.application.use_cases.notifications import emit_notification
from campus_notify.domain.entities import NotificationType


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _emit(db_session, user, title: str):
    return emit_notification(
        db_session,
        user_id=user.id,
        notification_type=NotificationType.GENERIC,
        title=title,
        message=f"{title} mensaje",
    )


def test_requires_authentication(client):
    response = client.get("/notifications/")

    assert response.status_code == 401


def test_rejects_invalid_token(client):
    response = client.get("/notifications/", headers=_auth("not-a-token"))

    assert response.status_code == 401
    assert response.json()["detail"] == "Credenciales inválidas"


def test_inactive_user_is_rejected(client, make_user, token_for):
    user = make_user(is_active=False)

    response = client.get("/notifications/", headers=_auth(token_for(user)))

    assert response.status_code == 400
    assert response.json()["detail"] == "Usuario inactivo"


def test_list_returns_newest_first_with_counters(client, db_session, make_user, token_for):
    user = make_user()
    other = make_user("bruno")
    first = _emit(db_session, user, "Primero")
    second = _emit(db_session, user, "Segundo")
    _emit(db_session, other, "Ajeno")

    response = client.get("/notifications/", headers=_auth(token_for(user)))

    assert response.status_code == 200
    body = response.json()
    assert [item["id"] for item in body["notifications"]] == [second.id, first.id]
    assert body["unread_count"] == 2
    assert body["total"] == 2
    assert body["limit"] == 20
    assert body["offset"] == 0


def test_list_caps_page_size(client, make_user, token_for):
    user = make_user()

    response = client.get("/notifications/?limit=1000", headers=_auth(token_for(user)))

    assert response.status_code == 200
    assert response.json()["limit"] == 100


def test_mark_read_is_idempotent(client, db_session, make_user, token_for):
    user = make_user()
    notification = _emit(db_session, user, "Logro")
    headers = _auth(token_for(user))

    first = client.put(f"/notifications/{notification.id}/read", headers=headers)
    second = client.put(f"/notifications/{notification.id}/read", headers=headers)
    count = client.get("/notifications/unread-count", headers=headers)

    assert first.json() == {"id": notification.id, "read": True, "changed": True}
    assert second.json() == {"id": notification.id, "read": True, "changed": False}
    assert count.json() == {"unread_count": 0}


def test_mark_read_of_foreign_notification_is_not_found(
    client, db_session, make_user, token_for
):
    owner = make_user()
    intruder = make_user("bruno")
    notification = _emit(db_session, owner, "Privado")

    response = client.put(
        f"/notifications/{notification.id}/read", headers=_auth(token_for(intruder))
    )

    assert response.status_code == 404
    assert response.json()["detail"] == "Notificación no encontrada"


def test_read_all_zeroes_unread_count(client, db_session, make_user, token_for):
    user = make_user()
    for title in ("Uno", "Dos", "Tres"):
        _emit(db_session, user, title)
    headers = _auth(token_for(user))

    response = client.put("/notifications/read-all", headers=headers)

    assert response.json() == {"updated": 3}
    assert client.get("/notifications/unread-count", headers=headers).json() == {
        "unread_count": 0
    }
    unread_page = client.get("/notifications/?unread_only=true", headers=headers).json()
    assert unread_page["notifications"] == []


def test_delete_notification(client, db_session, make_user, token_for):
    user = make_user()
    notification = _emit(db_session, user, "Temporal")
    headers = _auth(token_for(user))

    deleted = client.delete(f"/notifications/{notification.id}", headers=headers)
    missing = client.delete(f"/notifications/{notification.id}", headers=headers)

    assert deleted.status_code == 204
    assert missing.status_code == 404


def test_health_reports_connected_users(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "connected_users": 0}


def test_identifiers_beyond_storage_range_are_rejected(client, make_user, token_for):
    user = make_user()
    headers = _auth(token_for(user))

    mark = client.put(f"/notifications/{2**70}/read", headers=headers)
    delete = client.delete(f"/notifications/{2**70}", headers=headers)
    page = client.get(f"/notifications/?offset={2**70}", headers=headers)

    assert mark.status_code == 422
    assert delete.status_code == 422
    assert page.status_code == 422
