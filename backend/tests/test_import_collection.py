"""
FlashVault — Collection Import Client Tests
=============================================

What we test:
    ✅ Legacy normalisation (aliases, statuses, shipping, blanks)
    ✅ Chunking and per-chunk accounting against a mock server
    ✅ A failed chunk counts all of its records as failed
    ✅ File loading and the command-line entry point
"""

import json

import httpx
import pytest

from flashvault.scripts.import_collection import (
    BULK_PATH,
    ImportClient,
    chunked,
    load_records,
    main,
    normalize_record,
)


def _legacy(n=0, **overrides):
    light = {
        "model": f"Light {n}",
        "manufacturer": "Sofrin",
        "battery_type": "18650",
        "emitters": [{"type": "SST-40", "count": 1}],
        "status": "Active",
        "shipping_status": "In Transit",
        "ip_rating": "",
        "notes": "",
    }
    light.update(overrides)
    return light


class TestNormalize:

    def test_manufacturer_alias_and_key(self):
        record = normalize_record(_legacy())
        assert record["manufacturer_name"] == "Sofirn"
        assert "manufacturer" not in record

    def test_legacy_status_folded(self):
        assert normalize_record(_legacy(status="Gifted"))["status"] == "Sold"
        assert normalize_record(_legacy(status="Storage"))["status"] == "Owned"

    def test_in_transit_becomes_shipped_for_owned(self):
        assert normalize_record(_legacy())["shipping_status"] == "Shipped"

    def test_shipping_dropped_when_not_owned(self):
        assert normalize_record(_legacy(status="Wanted"))["shipping_status"] is None

    def test_blank_ip_rating_and_notes_become_null(self):
        record = normalize_record(_legacy())
        assert record["ip_rating"] is None
        assert record["notes"] is None

    def test_emitters_pass_through(self):
        assert normalize_record(_legacy())["emitters"] == [{"type": "SST-40", "count": 1}]


def test_chunked_sizes():
    assert [len(c) for c in chunked(list(range(23)), 10)] == [10, 10, 3]


def test_chunked_rejects_zero():
    with pytest.raises(ValueError):
        list(chunked([1], 0))


class TestImportClient:

    def _server(self, calls, fail_chunk=None):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == BULK_PATH
            assert request.headers["authorization"] == "Bearer secret"
            batch = json.loads(request.content)["flashlights"]
            calls.append(batch)
            if fail_chunk is not None and len(calls) == fail_chunk:
                return httpx.Response(500, json={"error": "server_error"})
            failed = [r for r in batch if r["model"].endswith("7")]
            ok = [r for r in batch if r not in failed]
            return httpx.Response(200, json={
                "message": "Bulk import completed",
                "summary": {"total": len(batch), "successful": len(ok), "failed": len(failed)},
                "results": {
                    "successful": [],
                    "failed": [
                        {"model": r["model"], "manufacturer": r["manufacturer_name"], "error": "boom"}
                        for r in failed
                    ],
                },
            })
        return httpx.MockTransport(handler)

    def test_posts_in_chunks_and_sums_results(self):
        calls = []
        client = ImportClient("http://api.test/", "secret", chunk_size=10, transport=self._server(calls))

        summary = client.run([_legacy(n) for n in range(23)])

        assert [len(c) for c in calls] == [10, 10, 3]
        assert (summary.successful, summary.failed, summary.total) == (21, 2, 23)
        assert summary.failures == ["Sofirn Light 7: boom", "Sofirn Light 17: boom"]

    def test_failed_chunk_counts_every_record(self):
        calls = []
        client = ImportClient("http://api.test", "secret", chunk_size=5, transport=self._server(calls, fail_chunk=1))

        summary = client.run([_legacy(n) for n in range(8)])

        assert len(calls) == 2
        # chunk 1 (5 records) failed whole; chunk 2 has "Light 7" rejected
        assert (summary.successful, summary.failed) == (2, 6)


class TestFilesAndCli:

    def test_load_list_and_envelope(self, tmp_path):
        as_list = tmp_path / "list.json"
        as_list.write_text(json.dumps([_legacy()]))
        as_envelope = tmp_path / "envelope.json"
        as_envelope.write_text(json.dumps({"flashlights": [_legacy(), _legacy(1)]}))

        assert len(load_records(as_list)) == 1
        assert len(load_records(as_envelope)) == 2

    def test_load_rejects_other_shapes(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"lights": []}))
        with pytest.raises(ValueError):
            load_records(path)

    def test_dry_run_prints_normalised_records(self, tmp_path, capsys):
        path = tmp_path / "lights.json"
        path.write_text(json.dumps([_legacy()]))

        assert main([str(path), "--dry-run"]) == 0

        printed = json.loads(capsys.readouterr().out)
        assert printed[0]["manufacturer_name"] == "Sofirn"

    def test_missing_token(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AUTH_TOKEN", raising=False)
        path = tmp_path / "lights.json"
        path.write_text(json.dumps([_legacy()]))

        assert main([str(path)]) == 2
