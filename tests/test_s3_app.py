"""End-to-end file flow with the S3 blob store (moto)."""

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws

from drive.core.config import Settings
from drive.main import create_app
from drive.models.file import FileMeta
from drive.models.folder import Folder

pytestmark = pytest.mark.s3

_BUCKET = "drive-app-test"
_REGION = "us-east-1"
CONTENT = b"bytes kept in the bucket"


@pytest.fixture
def s3(monkeypatch):
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    with mock_aws():
        client = boto3.client("s3", region_name=_REGION)
        client.create_bucket(Bucket=_BUCKET)
        yield client


@pytest.fixture
def s3_app(s3, tmp_path):
    settings = Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'drive.db'}",
        session_secret="test-secret",
        storage_backend="s3",
        upload_dir=str(tmp_path / "uploads"),
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
        aws_region=_REGION,
        aws_s3_bucket_name=_BUCKET,
    )
    return create_app(settings)


@pytest.fixture
def s3_client_app(s3_app):
    with TestClient(s3_app, follow_redirects=False) as test_client:
        response = test_client.post("/register", data={"email": "s3@example.com", "password": "pw"})
        assert response.status_code == 302
        yield test_client


@pytest.fixture
def db_session(s3_app):
    session = s3_app.state.database.session()
    yield session
    session.close()


def _upload(test_client, filename="remote.txt", folder_id=None):
    data = {"folder_id": str(folder_id)} if folder_id is not None else {}
    response = test_client.post(
        "/upload", files={"file": (filename, CONTENT, "text/plain")}, data=data
    )
    assert response.status_code == 200
    assert "File uploaded successfully!" in response.text


def test_download_redirects_to_object_url(s3_client_app, db_session, s3):
    _upload(s3_client_app)
    file = db_session.query(FileMeta).one()

    assert file.storage_backend == "s3"
    assert file.filepath == f"https://{_BUCKET}.s3.{_REGION}.amazonaws.com/{file.storage_key}"
    assert file.mimetype == "text/plain"

    response = s3_client_app.get(f"/download/{file.id}")

    assert response.status_code == 302
    assert response.headers["location"] == file.filepath
    # what the redirect points at holds the uploaded bytes
    obj = s3.get_object(Bucket=_BUCKET, Key=file.storage_key)
    assert obj["Body"].read() == CONTENT


def test_delete_file_removes_object(s3_client_app, db_session, s3):
    _upload(s3_client_app)
    file = db_session.query(FileMeta).one()

    response = s3_client_app.delete(f"/files/{file.id}")

    assert response.status_code == 302
    assert s3.list_objects_v2(Bucket=_BUCKET).get("KeyCount", 0) == 0
    assert s3_client_app.delete(f"/files/{file.id}").status_code == 404


def test_delete_folder_removes_nested_objects(s3_client_app, db_session, s3):
    s3_client_app.post("/create-folder", data={"name": "Top"})
    top = db_session.query(Folder).filter(Folder.name == "Top").one()
    s3_client_app.post("/create-folder", data={"name": "Inner", "parent_id": str(top.id)})
    inner = db_session.query(Folder).filter(Folder.name == "Inner").one()

    _upload(s3_client_app, "one.txt", folder_id=top.id)
    _upload(s3_client_app, "two.txt", folder_id=inner.id)
    assert s3.list_objects_v2(Bucket=_BUCKET)["KeyCount"] == 2

    response = s3_client_app.delete(f"/folders/{top.id}")

    assert response.status_code == 302
    assert s3.list_objects_v2(Bucket=_BUCKET).get("KeyCount", 0) == 0
    db_session.expire_all()
    assert db_session.query(FileMeta).count() == 0
