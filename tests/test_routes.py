"""Integration tests for the HTTP surface via FastAPI TestClient."""
from unittest.mock import AsyncMock, MagicMock

from upload_receiver.config import AppConfig
from upload_receiver.main import create_app


def _upload(client, name="hello.txt", content=b"hello", **kwargs):
    return client.post("/upload", files={"file": (name, content, "text/plain")}, **kwargs)


class TestUpload:
    def test_file_and_text_field(self, api_client, uploads_dir):
        response = api_client.post(
            "/upload",
            files={"file": ("report.txt", b"abc", "text/plain")},
            data={"note": "hi"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["message"] == "Files saved successfully."
        assert body["fields"] == {"note": ["hi"]}
        assert body["directory"] == str(uploads_dir.resolve())
        assert len(body["files"]) == 1
        stored = body["files"][0]
        assert stored["field"] == "file"
        assert stored["originalName"] == "report.txt"
        assert stored["size"] == 3
        assert stored["savedAs"].endswith("-report.txt")
        assert (uploads_dir / stored["savedAs"]).read_bytes() == b"abc"

    def test_text_only_submission(self, api_client):
        response = api_client.post("/upload", files={"note": (None, b"hi")})

        assert response.status_code == 400
        body = response.json()
        assert body["ok"] is True
        assert body["files"] == []
        assert body["fields"] == {"note": ["hi"]}
        assert "No files detected" in body["message"]

    def test_multiple_files_and_repeated_fields(self, api_client):
        response = api_client.post(
            "/upload",
            files=[
                ("file", ("a.txt", b"A", "text/plain")),
                ("file", ("b.txt", b"BB", "text/plain")),
                ("tag", (None, b"one")),
                ("tag", (None, b"two")),
            ],
        )
        assert response.status_code == 200
        body = response.json()
        assert [f["originalName"] for f in body["files"]] == ["a.txt", "b.txt"]
        assert body["fields"] == {"tag": ["one", "two"]}

    def test_malformed_multipart_body(self, api_client):
        response = api_client.post(
            "/upload",
            content=b"not really multipart",
            headers={"content-type": "multipart/form-data"},
        )
        assert response.status_code == 400

    def test_disk_failure_returns_500(self, app, api_client):
        app.state.store.save_upload = AsyncMock(side_effect=OSError("disk full"))

        response = _upload(api_client)

        assert response.status_code == 500
        body = response.json()
        assert body["ok"] is False
        assert "disk full" in body["message"]

    def test_disk_failure_still_refreshes_listing(self, app, api_client):
        app.state.store.save_upload = AsyncMock(side_effect=OSError("disk full"))
        app.state.debouncer.trigger = MagicMock()

        response = _upload(api_client)

        assert response.status_code == 500
        app.state.debouncer.trigger.assert_called_once()

    def test_empty_submission_does_not_refresh(self, app, api_client):
        app.state.debouncer.trigger = MagicMock()

        response = api_client.post("/upload", files={"note": (None, b"hi")})

        assert response.status_code == 400
        app.state.debouncer.trigger.assert_not_called()


class TestDownload:
    def test_round_trip(self, api_client):
        saved_as = _upload(api_client, content=b"hello").json()["files"][0]["savedAs"]

        response = api_client.get(f"/uploads/{saved_as}")

        assert response.status_code == 200
        assert response.content == b"hello"
        assert response.headers["content-type"].startswith("text/plain")

    def test_content_type_is_inferred(self, api_client, uploads_dir):
        (uploads_dir / "picture.png").write_bytes(b"\x89PNG")
        response = api_client.get("/uploads/picture.png")
        assert response.headers["content-type"] == "image/png"

    def test_path_traversal_is_rejected(self, api_client):
        response = api_client.get("/uploads/..%2F..%2Fetc%2Fpasswd")
        assert response.status_code == 400
        assert "Invalid filename" in response.text

    def test_unsafe_character_is_rejected(self, api_client):
        response = api_client.get("/uploads/bad%20name.txt")
        assert response.status_code == 400

    def test_missing_file(self, api_client):
        response = api_client.get("/uploads/does-not-exist.txt")
        assert response.status_code == 404


class TestIndexPage:
    def test_renders_form_and_empty_listing(self, api_client):
        response = api_client.get("/")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert 'enctype="multipart/form-data"' in response.text
        assert "No files uploaded yet." in response.text
        assert "new EventSource('/events')" in response.text

    def test_lists_uploaded_files(self, api_client):
        saved_as = _upload(api_client, name="notes.txt").json()["files"][0]["savedAs"]
        response = api_client.get("/")
        assert f'href="/uploads/{saved_as}"' in response.text
        assert "No files uploaded yet." not in response.text


class TestCors:
    def test_preflight_short_circuits(self, api_client):
        response = api_client.options(
            "/upload",
            headers={"Origin": "http://app.local", "Access-Control-Request-Method": "POST"},
        )
        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["access-control-allow-origin"] == "*"

    def test_options_on_any_path(self, api_client):
        response = api_client.options("/whatever/else")
        assert response.status_code == 204
        assert response.headers["access-control-allow-methods"] == "GET, POST, OPTIONS"

    def test_headers_on_every_response(self, api_client):
        for response in (
            api_client.get("/"),
            api_client.get("/health"),
            api_client.get("/missing"),
            api_client.get("/uploads/..%2Fx"),
            api_client.post("/upload", files={"note": (None, b"x")}),
        ):
            assert response.headers["access-control-allow-origin"] == "*"


class TestFallback:
    def test_unknown_path(self, api_client):
        response = api_client.get("/nope")
        assert response.status_code == 404
        assert response.text == "Not found"

    def test_wrong_method_is_not_found(self, api_client):
        response = api_client.get("/upload")
        assert response.status_code == 404
        assert response.text == "Not found"

    def test_health(self, api_client):
        assert api_client.get("/health").json() == {"status": "ok"}


def test_apps_do_not_share_subscribers(config, tmp_path):
    other_config = AppConfig(storage={"uploads_dir": tmp_path / "other"}, events={"watch": False})
    first = create_app(config)
    second = create_app(other_config)
    assert first.state.notifier is not second.state.notifier
    assert first.state.store.directory != second.state.store.directory
