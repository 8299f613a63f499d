"""Tests for the Supabase storage client."""

from unittest.mock import MagicMock

import pytest
import requests

from redline.api.base import get_http_session
from redline.api.storage import SupabaseStorage
from redline.core.exceptions import StorageUnavailable
from redline.core.models import AnnotationRecord


def response(status=200, json_data=None, content=b""):
    r = MagicMock()
    r.status_code = status
    r.json.return_value = json_data
    r.content = content
    r.text = ""
    return r


def storage(*responses, token="jwt"):
    http = MagicMock()
    http.request.side_effect = list(responses)
    return SupabaseStorage("https://proj.supabase.co/", "anon", access_token=token, session=http), http


class TestHttpSession:
    def test_post_not_retried(self):
        s = get_http_session()
        retry = s.get_adapter("https://example.com").max_retries
        assert "POST" not in retry.allowed_methods
        assert "GET" in retry.allowed_methods

    def test_retry_policy_applies_to_both_schemes(self):
        s = get_http_session(total=2)
        for url in ("http://example.com", "https://example.com"):
            retry = s.get_adapter(url).max_retries
            assert retry.total == 2
            assert 503 in retry.status_forcelist
            assert 404 not in retry.status_forcelist


class TestUser:
    def test_no_token_means_no_user(self):
        client, http = storage(token=None)
        assert client.get_current_user() is None
        http.request.assert_not_called()

    def test_current_user(self):
        client, http = storage(response(json_data={"id": "u1"}))
        assert client.get_current_user() == {"id": "u1"}
        method, url = http.request.call_args[0]
        assert (method, url) == ("GET", "https://proj.supabase.co/auth/v1/user")
        headers = http.request.call_args[1]["headers"]
        assert headers["Authorization"] == "Bearer jwt"
        assert headers["apikey"] == "anon"

    def test_user_lookup_failure(self):
        client, _ = storage(response(status=401))
        assert client.get_current_user() is None


class TestDocuments:
    def test_load_by_id(self):
        client, http = storage(
            response(json_data=[{"id": "d1", "file_path": "u1/file.pdf"}]),
            response(content=b"%PDF-1.7"),
        )
        assert client.load_document_bytes("d1") == b"%PDF-1.7"
        url = http.request.call_args_list[1][0][1]
        assert url == "https://proj.supabase.co/storage/v1/object/documents/u1/file.pdf"

    def test_load_by_url(self):
        client, http = storage(response(content=b"%PDF"))
        assert client.load_document_bytes("https://cdn.example.com/a.pdf") == b"%PDF"
        assert http.request.call_args[0][1] == "https://cdn.example.com/a.pdf"

    def test_missing_document(self):
        client, _ = storage(response(json_data=[]))
        with pytest.raises(StorageUnavailable):
            client.load_document_bytes("nope")

    def test_delete_removes_file_and_row(self):
        client, http = storage(
            response(json_data=[{"id": "d1", "file_path": "u1/file.pdf"}]),
            response(),
            response(status=204),
        )
        client.delete_document("d1")
        calls = http.request.call_args_list
        assert calls[1][0][0] == "DELETE"
        assert calls[1][1]["json"] == {"prefixes": ["u1/file.pdf"]}
        assert calls[2][1]["params"] == {"id": "eq.d1"}

    def test_delete_failure_raises(self):
        client, _ = storage(
            response(json_data=[{"id": "d1", "file_path": "x.pdf"}]),
            response(status=500),
        )
        with pytest.raises(StorageUnavailable) as exc:
            client.delete_document("d1")
        assert exc.value.status_code == 500


class TestAnnotations:
    def test_list_annotations(self):
        rows = [{"id": "a1", "document_id": "d1", "user_id": "u1", "page_number": 2, "type": "pen", "data": {"imageData": "x"}}]
        client, http = storage(response(json_data=rows))
        records = client.list_annotations("d1")
        assert records[0].page_number == 2
        assert records[0].data == {"imageData": "x"}
        params = http.request.call_args[1]["params"]
        assert params["order"] == "created_at.asc"
        assert params["document_id"] == "eq.d1"

    def test_list_on_outage_is_empty(self):
        http = MagicMock()
        http.request.side_effect = requests.ConnectionError("down")
        client = SupabaseStorage("https://proj.supabase.co", "anon", session=http)
        assert client.list_annotations("d1") == []

    def test_save_annotation(self):
        client, http = storage(response(status=201, json_data=[{"id": "a9", "created_at": "2024-01-01"}]))
        record = AnnotationRecord(document_id="d1", user_id="u1", page_number=1, type="pen", data={"k": 1})
        saved = client.save_annotation(record)
        assert saved.id == "a9"
        assert http.request.call_args[0][0] == "POST"
        assert http.request.call_args[1]["json"][0]["page_number"] == 1

    def test_save_failure_raises(self):
        client, _ = storage(response(status=503))
        record = AnnotationRecord(document_id="d1", user_id="u1", page_number=1, type="pen")
        with pytest.raises(StorageUnavailable):
            client.save_annotation(record)
