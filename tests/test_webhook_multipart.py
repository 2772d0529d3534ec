import json
from pathlib import Path

from webhook_receiver.services.classification import classify


def _obj(name: str, body: bytes = b"0123456789") -> tuple[str, tuple[str, bytes, str]]:
    return ("files", (name, body, "application/octet-stream"))


def test_result_field_with_obj_meshes(client):
    response = client.post(
        "/webhook",
        data={"result": '{"uuid":"x","status":"completed"}'},
        files=[_obj("a.obj"), _obj("b.obj")],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Files and data received successfully"
    assert body["summary"] == {
        "totalFiles": 2,
        "objFiles": 2,
        "jsonFiles": 0,
        "otherFiles": 0,
        "hasJsonMetadata": True,
    }
    assert body["jsonData"]["uuid"] == "x"
    assert body["formFields"] == {"result": '{"uuid":"x","status":"completed"}'}
    assert [f["originalName"] for f in body["filesByType"]["obj"]] == ["a.obj", "b.obj"]


def test_files_without_metadata(client):
    response = client.post(
        "/webhook",
        data={"event": "test"},
        files=[
            ("files", ("hello.txt", b"hello world", "text/plain")),
            ("files", ("another.txt", b"another file", "text/plain")),
        ],
    )

    assert response.status_code == 200
    body = response.json()
    assert body["summary"]["totalFiles"] == 2
    assert body["summary"]["hasJsonMetadata"] is False
    assert body["jsonData"] is None
    assert body["metadataFile"] is None
    assert body["formFields"]["event"] == "test"
    assert body["uploadDir"] is not None


def test_listed_files_exist_with_reported_size(client):
    response = client.post(
        "/webhook",
        files=[_obj("mesh.obj", b"v 0 0 0\n"), ("doc", ("notes.md", b"# notes", "text/markdown"))],
    )

    body = response.json()
    upload_dir = Path(body["uploadDir"]).resolve()
    assert upload_dir.is_dir()
    for item in body["files"]:
        stored = Path(item["path"])
        assert not stored.is_absolute()
        assert stored.resolve().parent == upload_dir
        assert stored.stat().st_size == item["size"]
        assert stored.name == item["storedName"]


def test_reserved_field_metadata_is_persisted(client):
    payload = {"uuid": "abc", "result": {"frames": [0, 3, 6]}, "error": None}
    response = client.post("/webhook", data={"metadata": json.dumps(payload)})

    assert response.status_code == 200
    body = response.json()
    assert body["jsonData"] == payload
    assert body["summary"]["totalFiles"] == 0
    assert body["summary"]["hasJsonMetadata"] is True
    metadata_file = body["metadataFile"]
    assert metadata_file["filename"].endswith("-metadata.json")
    assert json.loads(Path(metadata_file["path"]).read_text(encoding="utf-8")) == payload
    assert Path(metadata_file["path"]).parent == Path(body["uploadDir"])


def test_json_file_overrides_field_metadata(client):
    response = client.post(
        "/webhook",
        data={"result": '{"source": "field"}'},
        files=[("report", ("report.json", b'{"source": "file"}', "application/json"))],
    )

    body = response.json()
    assert response.status_code == 200
    assert body["jsonData"] == {"source": "file"}
    assert body["summary"]["jsonFiles"] == 1
    persisted = json.loads(Path(body["metadataFile"]["path"]).read_text(encoding="utf-8"))
    assert persisted == {"source": "file"}


def test_broken_json_file_keeps_field_metadata(client):
    response = client.post(
        "/webhook",
        data={"data": "[1, 2]"},
        files=[("report", ("broken.json", b"{not json", "application/json"))],
    )

    body = response.json()
    assert response.status_code == 200
    assert body["jsonData"] == [1, 2]
    assert body["summary"]["jsonFiles"] == 1


def test_auto_detected_field_metadata(client):
    response = client.post(
        "/webhook",
        data={"note": "plain", "payload": '{"id": 7}'},
        files=[_obj("a.obj")],
    )

    assert response.json()["jsonData"] == {"id": 7}


def test_repeated_fields_are_listed(client):
    response = client.post("/webhook", data={"tag": ["a", "b"]}, files=[_obj("a.obj")])

    assert response.json()["formFields"] == {"tag": ["a", "b"]}


def test_classification_partition(client):
    response = client.post(
        "/webhook",
        files=[
            ("f", ("mesh.obj", b"v", "text/plain")),
            ("f", ("blob.bin", b"\x00", "application/octet-stream")),
            ("f", ("meta.json", b"{}", "text/plain")),
            ("f", ("typed", b"[]", "application/json")),
            ("f", ("image.png", b"\x89PNG", "image/png")),
        ],
    )

    body = response.json()
    groups = body["filesByType"]
    assert [f["originalName"] for f in groups["obj"]] == ["mesh.obj", "blob.bin"]
    assert [f["originalName"] for f in groups["json"]] == ["meta.json", "typed"]
    assert [f["originalName"] for f in groups["other"]] == ["image.png"]

    summary = body["summary"]
    assert summary["objFiles"] + summary["jsonFiles"] + summary["otherFiles"] == summary["totalFiles"] == 5
    for item in body["files"]:
        memberships = [name for name, members in groups.items() if item in members]
        assert memberships == [classify(item["originalName"], item["mimeType"])]


def test_unsafe_filename_is_sanitized(client):
    response = client.post("/webhook", files=[("f", ("../../secret file.txt", b"payload", "text/plain"))])

    item = response.json()["files"][0]
    assert item["originalName"] == "../../secret file.txt"
    assert item["storedName"].endswith("-.._.._secret_file.txt")
    assert "/" not in item["storedName"]
    assert Path(item["path"]).read_bytes() == b"payload"


def test_no_files_and_no_json_is_rejected(client, settings):
    response = client.post("/webhook", data={"event": "missing-files"})

    assert response.status_code == 400
    assert response.json() == {"error": "At least one file or JSON data is required."}
    assert not settings.uploads_root.exists()


def test_unparseable_reserved_field_is_rejected_without_files(client):
    response = client.post("/webhook", data={"json": "{oops", "other": "[nope"})

    assert response.status_code == 400
    assert "error" in response.json()


def test_empty_request_is_rejected(client):
    response = client.post("/webhook")

    assert response.status_code == 400
    assert "error" in response.json()


def test_nan_field_is_not_adopted(client):
    response = client.post("/webhook", data={"result": '{"score": NaN}'}, files=[_obj("a.obj")])

    body = response.json()
    assert response.status_code == 200
    assert body["jsonData"] is None
    assert body["metadataFile"] is None
    assert body["summary"]["hasJsonMetadata"] is False


def test_nan_json_file_keeps_field_metadata(client):
    response = client.post(
        "/webhook",
        data={"result": '{"score": 1}'},
        files=[("report", ("report.json", b'{"score": NaN}', "application/json"))],
    )

    body = response.json()
    assert body["jsonData"] == {"score": 1}
    assert json.loads(Path(body["metadataFile"]["path"]).read_text(encoding="utf-8")) == {"score": 1}


def test_deeply_nested_field_is_skipped(client):
    response = client.post(
        "/webhook",
        data={"result": "[" * 100000 + "]" * 100000},
        files=[_obj("a.obj")],
    )

    assert response.status_code == 200
    assert response.json()["jsonData"] is None
