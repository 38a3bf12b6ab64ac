"""
Bin Tracker — Bin Endpoint Tests
=================================

What:  HTTP-level tests for the bin routes, error handlers and router misses.
How:   HTTPX AsyncClient over ASGITransport with BinService backed by the
       in-memory stores (see conftest.py).
"""

from unittest.mock import patch

import pytest


async def _json_bin(client, bin_id):
    response = await client.get(f"/api/bin/{bin_id}")
    return response.status_code, response.json()


class TestJsonRead:

    @pytest.mark.asyncio
    async def test_unknown_bin_is_not_found(self, test_client):
        response = await test_client.get("/api/bin/NOPE")

        assert response.status_code == 404
        assert response.json() == {
            "status": "not_found",
            "bin_id": "NOPE",
            "message": "Bin not registered yet",
        }

    @pytest.mark.asyncio
    async def test_format_json_alias(self, test_client):
        await test_client.post("/bin/B1", json={"case_code": "C1"})
        response = await test_client.get("/bin/B1", params={"format": "json"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")
        body = response.json()
        assert body["status"] == "ok"
        assert body["case_code"] == "C1"

    @pytest.mark.asyncio
    async def test_format_json_unknown_bin(self, test_client):
        response = await test_client.get("/bin/NOPE?format=json")
        assert response.status_code == 404
        assert response.json()["status"] == "not_found"


class TestMetadataUpsert:

    @pytest.mark.asyncio
    async def test_create_then_read(self, test_client):
        response = await test_client.post("/bin/B1", json={"case_code": "C1"})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["bin"]["bin_id"] == "B1"
        assert body["bin"]["case_code"] == "C1"

        status, view = await _json_bin(test_client, "B1")
        assert status == 200
        assert view["case_code"] == "C1"
        assert view["notes"] is None
        assert view["bin_type"] is None
        assert view["photo_url"] is None
        assert isinstance(view["updated_at"], int)

    @pytest.mark.asyncio
    async def test_empty_string_overwrites(self, test_client):
        await test_client.post("/bin/B1", json={"notes": "x"})
        await test_client.post("/bin/B1", json={"notes": ""})

        _, view = await _json_bin(test_client, "B1")
        assert view["notes"] == ""

    @pytest.mark.asyncio
    async def test_omitted_field_preserved(self, test_client):
        await test_client.post("/bin/B1", json={"notes": "y"})
        await test_client.post("/bin/B1", json={"bin_type": "plastic"})

        _, view = await _json_bin(test_client, "B1")
        assert view["bin_type"] == "plastic"
        assert view["notes"] == "y"

    @pytest.mark.asyncio
    async def test_photo_key_in_body_ignored(self, test_client):
        response = await test_client.post("/bin/B1", json={"photo_key": "bins/evil.img"})
        assert response.status_code == 200
        assert response.json()["bin"]["photo_key"] is None

    @pytest.mark.asyncio
    async def test_updated_at_monotonic(self, test_client):
        first = (await test_client.post("/bin/B1", json={"notes": "a"})).json()["bin"]["updated_at"]
        second = (await test_client.post("/bin/B1", json={"notes": "b"})).json()["bin"]["updated_at"]
        third = (
            await test_client.post("/bin/B1/photo", content=b"img", headers={"content-type": "image/jpeg"})
        ).json()["bin"]["updated_at"]

        assert first <= second <= third

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [b"not json", b"", b"[1, 2]", b'"text"', b'{"notes": {"a": 1}}', b'{"case_code": ["a"]}'],
    )
    async def test_bad_body_rejected_without_mutation(self, test_client, row_store, body):
        await test_client.post("/bin/B1", json={"notes": "keep"})
        writes_before = row_store.writes

        response = await test_client.post(
            "/bin/B1", content=body, headers={"content-type": "application/json"}
        )

        assert response.status_code == 400
        payload = response.json()
        assert payload["error"] == "bad_request"
        assert "case_code/bin_type/notes" in payload["message"]
        assert row_store.writes == writes_before

        _, view = await _json_bin(test_client, "B1")
        assert view["notes"] == "keep"

    @pytest.mark.asyncio
    async def test_numbers_stored_as_text(self, test_client):
        response = await test_client.post("/bin/B1", json={"case_code": 7, "notes": 1.5})

        assert response.status_code == 200
        _, view = await _json_bin(test_client, "B1")
        assert view["case_code"] == "7"
        assert view["notes"] == "1.5"

    @pytest.mark.asyncio
    async def test_bad_body_reason(self, test_client):
        invalid = await test_client.post("/bin/B1", content=b"{oops")
        not_object = await test_client.post("/bin/B1", content=b"[1, 2]")
        bad_field = await test_client.post("/bin/B1", json={"notes": ["a"]})

        assert invalid.json()["details"]["reason"] == "invalid_json"
        assert not_object.json()["details"]["reason"] == "not_an_object"
        assert bad_field.json()["details"] == {"reason": "invalid_fields", "fields": ["notes"]}

    @pytest.mark.asyncio
    async def test_bad_body_on_unknown_bin_creates_nothing(self, test_client, row_store):
        response = await test_client.post("/bin/NEW", content=b"{oops")
        assert response.status_code == 400
        assert row_store.rows == {}


class TestPhotos:

    @pytest.mark.asyncio
    async def test_upload_then_download(self, test_client, sample_image_bytes):
        response = await test_client.post(
            "/bin/B1/photo",
            content=sample_image_bytes,
            headers={"content-type": "image/png"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["bin_id"] == "B1"
        assert body["photo_url"] == "/bin/B1/photo"
        assert body["photo_key"].startswith("bins/B1/")
        assert body["bin"]["photo_key"] == body["photo_key"]

        _, view = await _json_bin(test_client, "B1")
        assert view["photo_url"] == "/bin/B1/photo"

        photo = await test_client.get(view["photo_url"])
        assert photo.status_code == 200
        assert photo.content == sample_image_bytes
        assert photo.headers["content-type"] == "image/png"

    @pytest.mark.asyncio
    async def test_upload_without_content_type(self, test_client, blob_store):
        response = await test_client.post("/bin/B1/photo", content=b"raw-bytes")
        key = response.json()["photo_key"]
        assert blob_store.blobs[key][1] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_photo_id_is_url_quoted(self, test_client):
        response = await test_client.post(
            "/bin/A%201/photo", content=b"img", headers={"content-type": "image/jpeg"}
        )
        body = response.json()
        assert body["bin_id"] == "A 1"
        assert body["photo_url"] == "/bin/A%201/photo"

        photo = await test_client.get(body["photo_url"])
        assert photo.status_code == 200
        assert photo.content == b"img"

    @pytest.mark.asyncio
    async def test_no_photo_unknown_bin(self, test_client):
        response = await test_client.get("/bin/NOPE/photo")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_no_photo_existing_bin(self, test_client):
        await test_client.post("/bin/B1", json={"notes": "x"})
        response = await test_client.get("/bin/B1/photo")
        assert response.status_code == 404
        assert response.json()["message"] == "No photo for this bin"

    @pytest.mark.asyncio
    async def test_blob_missing(self, test_client, blob_store):
        upload = await test_client.post("/bin/B1/photo", content=b"img")
        del blob_store.blobs[upload.json()["photo_key"]]

        response = await test_client.get("/bin/B1/photo")
        assert response.status_code == 404
        assert response.json()["message"] == "Photo object not found"

    @pytest.mark.asyncio
    async def test_default_content_type_and_cache_control(self, test_client, row_store, blob_store):
        await blob_store.put("bins/B1/1.img", b"img", None, cache_control="public, max-age=3600")
        await row_store.insert(
            "B1",
            {"case_code": None, "bin_type": None, "notes": None, "photo_key": "bins/B1/1.img"},
            1,
        )

        response = await test_client.get("/bin/B1/photo")

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/jpeg"
        assert response.headers["cache-control"] == "public, max-age=3600"

    @pytest.mark.asyncio
    async def test_oversized_declared_length_rejected(self, test_client, blob_store):
        with patch("bintracker.services.bin_service.settings") as mock_settings:
            mock_settings.max_upload_size = 8
            response = await test_client.post("/bin/B1/photo", content=b"0123456789")

        assert response.status_code == 400
        assert response.json()["error"] == "bad_request"
        assert blob_store.blobs == {}

    @pytest.mark.asyncio
    async def test_oversized_chunked_upload_rejected(self, test_client, row_store, blob_store):
        async def chunks():
            yield b"01234"
            yield b"56789"

        with patch("bintracker.services.bin_service.settings") as mock_settings:
            mock_settings.max_upload_size = 8
            response = await test_client.post("/bin/B1/photo", content=chunks())

        assert response.status_code == 400
        assert response.json()["details"]["size"] == 10
        assert blob_store.blobs == {}
        assert row_store.rows == {}

    @pytest.mark.asyncio
    async def test_chunked_upload_within_limit(self, test_client):
        async def chunks():
            yield b"abc"
            yield b"def"

        response = await test_client.post("/bin/B1/photo", content=chunks())
        assert response.status_code == 200

        photo = await test_client.get("/bin/B1/photo")
        assert photo.content == b"abcdef"

    @pytest.mark.asyncio
    async def test_photo_url_keeps_unreserved_marks(self, test_client):
        response = await test_client.post("/bin/a(1)!/photo", content=b"img")
        body = response.json()

        assert body["photo_url"] == "/bin/a(1)!/photo"
        assert body["photo_key"].startswith("bins/a(1)!/")


class TestHtmlRead:

    @pytest.mark.asyncio
    async def test_unknown_bin_page(self, test_client):
        response = await test_client.get("/bin/NOPE")

        assert response.status_code == 404
        assert response.headers["content-type"].startswith("text/html")
        assert "This bin is not registered yet." in response.text

    @pytest.mark.asyncio
    async def test_page_without_photo(self, test_client):
        await test_client.post("/bin/B1", json={"case_code": "C9", "bin_type": "crate"})
        response = await test_client.get("/bin/B1")

        assert response.status_code == 200
        assert "Bin B1 – Case C9" in response.text
        assert "crate" in response.text
        assert "<strong>Notes:</strong> -" in response.text
        assert "No photo uploaded yet." in response.text
        assert "<img" not in response.text

    @pytest.mark.asyncio
    async def test_page_with_photo(self, test_client):
        await test_client.post("/bin/B1/photo", content=b"img")
        response = await test_client.get("/bin/B1?format=html")

        assert response.status_code == 200
        assert '<img src="/bin/B1/photo"' in response.text
        assert "No photo uploaded yet." not in response.text

    @pytest.mark.asyncio
    async def test_values_are_escaped(self, test_client):
        await test_client.post("/bin/B1", json={"notes": "<script>alert(1)</script>"})
        response = await test_client.get("/bin/B1")

        assert "<script>" not in response.text
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in response.text


class TestRouting:

    @pytest.mark.asyncio
    async def test_liveness(self, test_client):
        response = await test_client.get("/")
        assert response.status_code == 200
        assert response.text == "Smart Bin Worker online"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/nope", "/bin", "/api/bin", "/bin/B1/other"])
    async def test_unknown_path_is_plain_404(self, test_client, path):
        response = await test_client.get(path)
        assert response.status_code == 404
        assert response.text == "Not found"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "method, path",
        [
            ("POST", "/api/bin/B1"),
            ("PUT", "/bin/B1"),
            ("DELETE", "/bin/B1"),
            ("DELETE", "/bin/B1/photo"),
        ],
    )
    async def test_wrong_method_is_plain_405(self, test_client, method, path):
        response = await test_client.request(method, path)
        assert response.status_code == 405
        assert response.text == "Method not allowed"

    @pytest.mark.asyncio
    async def test_trailing_slash_routes_like_bare_path(self, test_client):
        upload = await test_client.post(
            "/bin/B1/photo/", content=b"img", headers={"content-type": "image/png"}
        )
        assert upload.status_code == 200
        assert upload.json()["bin_id"] == "B1"

        page = await test_client.get("/bin/B1/")
        assert page.status_code == 200
        assert '<img src="/bin/B1/photo"' in page.text

        api = await test_client.get("/api/bin/B1/")
        assert api.status_code == 200
        assert api.json()["photo_url"] == "/bin/B1/photo"

        photo = await test_client.get("/bin/B1/photo/")
        assert photo.status_code == 200
        assert photo.content == b"img"

    @pytest.mark.asyncio
    async def test_trailing_slash_on_root_and_unknown_paths(self, test_client):
        assert (await test_client.get("/")).text == "Smart Bin Worker online"
        missing = await test_client.get("/bin/")
        assert missing.status_code == 404
        assert missing.text == "Not found"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/api/bin/B1", headers={"X-Request-ID": "abc123"})
        assert response.headers["x-request-id"] == "abc123"

    @pytest.mark.asyncio
    async def test_store_fault_is_500(self, test_client, row_store):
        with patch.object(row_store, "get", side_effect=RuntimeError("database down")):
            response = await test_client.get("/api/bin/B1")

        assert response.status_code == 500
        assert response.json()["error"] == "internal_server_error"
