# tests/v1/test_profile_update.py
"""Tests for editing the caller's profile."""

from fastapi import status

from chirp.core.settings import settings
from chirp.models import User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x01" * 32


def test_edit_username_and_bio(client, test_user, auth_token, db_session) -> None:
    response = client.post(
        "/api/user/edit", data={"username": "Alice B", "bio": "Hello there"}, headers=auth_token
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["username"] == "Alice B"
    assert body["bio"] == "Hello there"
    assert body["handler"] == "alice"
    db_session.refresh(test_user)
    assert test_user.username == "Alice B"


def test_edit_without_fields_changes_nothing(client, test_user, auth_token, storage) -> None:
    response = client.post("/api/user/edit", headers=auth_token)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["username"] == "alice"
    assert storage.uploads == []


def test_edit_rejects_long_username(client, test_user, auth_token, db_session) -> None:
    response = client.post("/api/user/edit", data={"username": "x" * 16}, headers=auth_token)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Username must be at most 15 characters"}
    db_session.refresh(test_user)
    assert test_user.username == "alice"


def test_edit_uploads_avatar_and_banner(client, test_user, auth_token, storage, db_session) -> None:
    response = client.post(
        "/api/user/edit",
        files={
            "avatar": ("me.png", PNG_BYTES, "image/png"),
            "banner": ("wide.png", PNG_BYTES, "image/png"),
        },
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_200_OK
    folders = {folder for folder, _ in storage.uploads}
    assert folders == {settings.storage_profile_folder}
    avatar, banner = (stored for _, stored in storage.uploads)
    body = response.json()
    assert body["avatar"] == avatar.url
    assert body["banner"] == banner.url
    db_session.refresh(test_user)
    assert test_user.avatar_storage_id == avatar.storage_id
    assert test_user.banner_storage_id == banner.storage_id
    assert storage.destroyed == []


def test_replacing_avatar_destroys_previous_image(
    client, user_factory, auth_headers, storage, db_session
) -> None:
    user = user_factory(
        "erin", avatar="https://media.test/old.png", avatar_storage_id="social_media_profile/old"
    )

    response = client.post(
        "/api/user/edit",
        files={"avatar": ("new.png", PNG_BYTES, "image/png")},
        headers=auth_headers(user),
    )

    assert response.status_code == status.HTTP_200_OK
    _, stored = storage.uploads[0]
    assert response.json()["avatar"] == stored.url
    assert storage.destroyed == ["social_media_profile/old"]


def test_failed_cleanup_of_previous_avatar_is_not_an_error(
    client, user_factory, auth_headers, storage, db_session
) -> None:
    user = user_factory(
        "frank", avatar="https://media.test/old.png", avatar_storage_id="social_media_profile/old"
    )
    storage.fail_destroy = True

    response = client.post(
        "/api/user/edit",
        files={"avatar": ("new.png", PNG_BYTES, "image/png")},
        headers=auth_headers(user),
    )

    assert response.status_code == status.HTTP_200_OK
    user_id = user.id
    refreshed = db_session.get(User, user_id)
    assert refreshed.avatar_storage_id == storage.uploads[0][1].storage_id


def test_upload_failure_leaves_profile_unchanged(
    client, test_user, auth_token, storage, db_session
) -> None:
    storage.fail_upload = True

    response = client.post(
        "/api/user/edit",
        data={"bio": "new bio"},
        files={"avatar": ("me.png", PNG_BYTES, "image/png")},
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Failed to upload image"}
    db_session.refresh(test_user)
    assert test_user.bio is None
    assert test_user.avatar is None


def test_invalid_banner_discards_uploaded_avatar(
    client, test_user, auth_token, storage, db_session
) -> None:
    response = client.post(
        "/api/user/edit",
        files={
            "avatar": ("me.png", PNG_BYTES, "image/png"),
            "banner": ("banner.txt", b"not an image", "text/plain"),
        },
        headers=auth_token,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"message": "Only image uploads are allowed"}
    _, avatar = storage.uploads[0]
    assert storage.destroyed == [avatar.storage_id]
    db_session.refresh(test_user)
    assert test_user.avatar is None


def test_profile_images_upload_outside_transaction(
    client, user_factory, auth_headers, storage, db_session
) -> None:
    user = user_factory(
        "gina", avatar="https://media.test/old.png", avatar_storage_id="social_media_profile/old"
    )
    open_transactions: list[bool] = []
    storage.on_call = lambda: open_transactions.append(db_session.in_transaction())

    response = client.post(
        "/api/user/edit",
        data={"bio": "fresh"},
        files={"avatar": ("new.png", PNG_BYTES, "image/png")},
        headers=auth_headers(user),
    )

    assert response.status_code == status.HTTP_200_OK
    # One upload, then the release of the replaced avatar.
    assert open_transactions == [False, False]
    assert storage.destroyed == ["social_media_profile/old"]
    assert response.json()["bio"] == "fresh"
