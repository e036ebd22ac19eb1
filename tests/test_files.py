"""Tests for upload, detail, download and delete of files."""

from pathlib import Path

from drive.models.file import FileMeta
from drive.models.folder import Folder

CONTENT = b"This is a test file for download."


def _upload(test_client, filename="a.txt", content=CONTENT, folder_id=None):
    data = {"folder_id": str(folder_id)} if folder_id is not None else {}
    return test_client.post(
        "/upload",
        files={"file": (filename, content, "text/plain")},
        data=data,
    )


def _only_file(db_session):
    db_session.expire_all()
    return db_session.query(FileMeta).one()


def test_upload_form_renders(logged_in_client):
    response = logged_in_client.get("/upload-form")

    assert response.status_code == 200
    assert 'enctype="multipart/form-data"' in response.text


def test_upload_file_success(logged_in_client, db_session, user, settings):
    response = _upload(logged_in_client, "test-upload.txt")

    assert response.status_code == 200
    assert "File uploaded successfully!" in response.text

    uploaded = _only_file(db_session)
    assert uploaded.filename == "test-upload.txt"
    assert uploaded.user_id == user.id
    assert uploaded.folder_id is None
    assert uploaded.mimetype == "text/plain"
    assert uploaded.size == len(CONTENT)
    assert uploaded.storage_backend == "local"

    # locator is <upload_dir>/<key> and the key keeps the extension
    assert uploaded.filepath == f"{settings.upload_dir}/{uploaded.storage_key}"
    assert uploaded.storage_key.endswith(".txt")
    assert Path(uploaded.filepath).read_bytes() == CONTENT


def test_upload_into_folder(logged_in_client, db_session, user):
    folder = Folder(name="F", user_id=user.id)
    db_session.add(folder)
    db_session.commit()

    response = _upload(logged_in_client, folder_id=folder.id)

    assert response.status_code == 200
    assert _only_file(db_session).folder_id == folder.id

    listing = logged_in_client.get(f"/folders/{folder.id}")
    assert "a.txt" in listing.text


def test_upload_without_file(logged_in_client, db_session):
    response = logged_in_client.post("/upload", data={"folder_id": ""})

    assert response.status_code == 400
    assert "No file uploaded." in response.text
    assert db_session.query(FileMeta).count() == 0


def test_upload_into_foreign_folder_stores_nothing(
    other_client, db_session, user, settings
):
    folder = Folder(name="Mine", user_id=user.id)
    db_session.add(folder)
    db_session.commit()

    response = _upload(other_client, folder_id=folder.id)

    assert response.status_code == 403
    assert db_session.query(FileMeta).count() == 0
    assert list(Path(settings.upload_dir).iterdir()) == []


def test_upload_with_malformed_folder_id(logged_in_client, db_session):
    response = logged_in_client.post(
        "/upload",
        files={"file": ("a.txt", CONTENT, "text/plain")},
        data={"folder_id": "abc"},
    )

    assert response.status_code == 400
    assert db_session.query(FileMeta).count() == 0


def test_get_file_details(logged_in_client, db_session):
    _upload(logged_in_client, "test-file.txt")
    file = _only_file(db_session)

    response = logged_in_client.get(f"/files/{file.id}")

    assert response.status_code == 200
    assert "test-file.txt" in response.text


def test_download_round_trip(logged_in_client, db_session):
    _upload(logged_in_client, "test-download.txt")
    file = _only_file(db_session)

    response = logged_in_client.get(f"/download/{file.id}")

    assert response.status_code == 200
    assert "text/plain" in response.headers["content-type"]
    assert "test-download.txt" in response.headers["content-disposition"]
    assert response.content == CONTENT


def test_download_with_missing_blob(logged_in_client, db_session):
    _upload(logged_in_client)
    file = _only_file(db_session)
    Path(file.filepath).unlink()

    response = logged_in_client.get(f"/download/{file.id}")

    assert response.status_code == 404


def test_other_user_cannot_reach_file(logged_in_client, other_client, db_session):
    _upload(logged_in_client)
    file = _only_file(db_session)

    for response in (
        other_client.get(f"/files/{file.id}"),
        other_client.get(f"/download/{file.id}"),
        other_client.delete(f"/files/{file.id}"),
    ):
        assert response.status_code in (403, 404)
        assert CONTENT not in response.content

    # still there for its owner
    assert logged_in_client.get(f"/download/{file.id}").content == CONTENT


def test_missing_file_is_not_found(logged_in_client):
    assert logged_in_client.get("/files/999").status_code == 404
    assert logged_in_client.get("/download/999").status_code == 404
    assert logged_in_client.delete("/files/999").status_code == 404


def test_delete_file(logged_in_client, db_session):
    _upload(logged_in_client)
    file = _only_file(db_session)
    blob_path = Path(file.filepath)

    response = logged_in_client.delete(f"/files/{file.id}")

    assert response.status_code == 302
    assert response.headers["location"] == "/folders"
    assert not blob_path.exists()
    assert logged_in_client.get(f"/files/{file.id}").status_code == 404


def test_delete_file_replay_is_not_found(logged_in_client, db_session):
    _upload(logged_in_client)
    file = _only_file(db_session)

    first = logged_in_client.post(f"/files/{file.id}?_method=DELETE")
    second = logged_in_client.post(f"/files/{file.id}?_method=DELETE")

    assert first.status_code == 302
    assert second.status_code == 404


def test_delete_file_when_blob_already_gone(logged_in_client, db_session):
    _upload(logged_in_client)
    file = _only_file(db_session)
    Path(file.filepath).unlink()

    response = logged_in_client.delete(f"/files/{file.id}")

    assert response.status_code == 302
    db_session.expire_all()
    assert db_session.query(FileMeta).count() == 0


def test_delete_folder_removes_file_rows_and_blobs(logged_in_client, db_session, user):
    folder = Folder(name="F", user_id=user.id)
    db_session.add(folder)
    db_session.commit()
    child = Folder(name="Inner", user_id=user.id, parent_id=folder.id)
    db_session.add(child)
    db_session.commit()

    _upload(logged_in_client, "top.txt", folder_id=folder.id)
    _upload(logged_in_client, "deep.txt", folder_id=child.id)
    db_session.expire_all()
    blobs = [Path(row.filepath) for row in db_session.query(FileMeta).all()]
    assert all(path.exists() for path in blobs)

    response = logged_in_client.delete(f"/folders/{folder.id}")

    assert response.status_code == 302
    assert logged_in_client.get(f"/folders/{folder.id}").status_code == 404
    db_session.expire_all()
    assert db_session.query(FileMeta).count() == 0
    assert not any(path.exists() for path in blobs)
