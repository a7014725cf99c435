# tests/v1/test_users.py
"""Tests for the user directory and notifications."""

from datetime import UTC, datetime, timedelta

from fastapi import status

from chirp.models import Follow, Notification, NotificationType


def test_list_users_excludes_caller(
    client, test_user, other_user, auth_token, user_factory, db_session
) -> None:
    carol = user_factory("carol", bio="hi there")
    db_session.add(Follow(follower_id=test_user.id, following_id=carol.id))
    db_session.commit()

    response = client.get("/api/user", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    users = {user["id"]: user for user in response.json()}
    assert set(users) == {other_user.id, carol.id}
    assert users[carol.id]["isFollowing"] is True
    assert users[carol.id]["bio"] == "hi there"
    assert users[other_user.id]["isFollowing"] is False
    assert "email" not in users[carol.id]


def _notify(db_session, recipient, actor, minutes: int, read: bool = False) -> Notification:
    notification = Notification(
        user_id=recipient.id,
        type=NotificationType.FOLLOW,
        related_user_id=actor.id,
        content=f"{actor.username} started following you",
        read=read,
        created_at=datetime(2024, 3, 1, tzinfo=UTC) + timedelta(minutes=minutes),
    )
    db_session.add(notification)
    db_session.commit()
    return notification


def test_list_notifications_newest_first(
    client, test_user, other_user, auth_token, user_factory, db_session
) -> None:
    carol = user_factory("carol")
    older = _notify(db_session, test_user, other_user, minutes=1)
    newer = _notify(db_session, test_user, carol, minutes=5)
    _notify(db_session, other_user, test_user, minutes=3)

    response = client.get("/api/user/notifications", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert [item["id"] for item in body] == [newer.id, older.id]
    assert body[0]["type"] == "FOLLOW"
    assert body[0]["read"] is False
    assert body[0]["postId"] is None
    assert body[0]["relatedUser"]["id"] == carol.id
    assert body[0]["relatedUserId"] == carol.id


def test_mark_notifications_read(client, test_user, other_user, auth_token, db_session) -> None:
    _notify(db_session, test_user, other_user, minutes=1)
    _notify(db_session, test_user, other_user, minutes=2, read=True)
    _notify(db_session, test_user, other_user, minutes=3)
    untouched = _notify(db_session, other_user, test_user, minutes=4)

    response = client.post("/api/user/notifications", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True, "updated": 2}
    mine = db_session.query(Notification).filter_by(user_id=test_user.id).all()
    assert all(notification.read for notification in mine)
    db_session.refresh(untouched)
    assert untouched.read is False

    again = client.post("/api/user/notifications", headers=auth_token)
    assert again.json()["updated"] == 0


def test_follow_notification_reaches_recipient(
    client, test_user, other_user, auth_token, other_auth_token
) -> None:
    client.post(f"/api/user/{other_user.id}/follow", headers=auth_token)

    body = client.get("/api/user/notifications", headers=other_auth_token).json()

    assert len(body) == 1
    assert body[0]["content"] == "alice started following you"
    assert body[0]["relatedUser"]["handler"] == "alice"
    assert client.get("/api/user/notifications", headers=auth_token).json() == []
