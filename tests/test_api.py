"""Tests for the FastAPI application.

WHY: The API is how the web front end submits clip jobs and fetches the
results. Validation must reject bad style tokens before a job exists, the
job lifecycle must be observable through polling, and a failed job must
report a machine-readable error kind.

HOW: Uses FastAPI's TestClient (synchronous, no real server). Two app
flavours:
  - client: the background runner is patched out, so jobs stay PENDING
    and the read endpoints can be tested in isolation
  - a live app built with fake provider factories, where the background
    task runs the real pipeline before the POST returns

RULES:
- Every test gets a fresh JobStore (job_store fixture)
- No test talks to Gemini; provider factories always return fakes
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from captionkit.models import Word
from shortify.api.models import TranscriptionResult
from shortify.errors import ProviderResponseError
from shortify.formatters import write_outputs
from shortify.server.app import create_app
from shortify.server.jobs import JobStatus, JobStore

TRANSCRIPT = " ".join("w{}".format(i) for i in range(200))

CLIP_OPTIONS = {"clip_count": 2, "min_clip_sec": 30, "max_clip_sec": 60}


# ---------------------------------------------------------------------------
# Fixtures and helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def client(job_store):
    """TestClient whose background runner does nothing."""
    with patch("shortify.server.app._run_job_sync", new=lambda *args, **kwargs: None):
        yield TestClient(create_app(store=job_store))


@pytest.fixture
def live_app(job_store, make_analyzer, make_transcriber):
    """Factory: live_app(analyzer=None, transcriber=None) -> TestClient."""

    def build(analyzer=None, transcriber=None):
        analyzer = analyzer if analyzer is not None else make_analyzer()
        transcriber = transcriber or make_transcriber(
            TranscriptionResult(text=TRANSCRIPT, duration_sec=600.0)
        )
        app = create_app(
            store=job_store,
            transcriber_factory=lambda options: transcriber,
            analyzer_factory=lambda options: analyzer,
        )
        return TestClient(app)

    return build


def _transcript_job(**extra):
    body = {"transcript": TRANSCRIPT, "duration_sec": 600, "clips": dict(CLIP_OPTIONS)}
    body.update(extra)
    return body


def _submit(client: TestClient, body: dict) -> str:
    resp = client.post("/jobs", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()["id"]


# ---------------------------------------------------------------------------
# POST /jobs validation
# ---------------------------------------------------------------------------


class TestCreateJob:
    """POST /jobs validates input before creating a job."""

    def test_transcript_job_created(self, client):
        resp = client.post("/jobs", json=_transcript_job())
        assert resp.status_code == 201
        data = resp.json()
        assert data["status"] == "pending"
        assert data["source"] == "transcript"
        assert len(data["id"]) == 32

    def test_media_url_job_created(self, client):
        resp = client.post("/jobs", json={"media_url": "https://cdn.test/talk.mp4"})
        assert resp.status_code == 201
        assert resp.json()["source"] == "https://cdn.test/talk.mp4"

    def test_config_stored(self, client, job_store):
        job_id = _submit(client, _transcript_job(captions={"style_preset": "neon"}))
        config = job_store.get_job(job_id).config
        assert config["captions"]["style_preset"] == "neon"
        assert config["clips"]["clip_count"] == 2

    def test_missing_input(self, client):
        resp = client.post("/jobs", json={})
        assert resp.status_code == 400
        assert "media_url or transcript" in resp.json()["detail"]

    def test_transcript_requires_duration(self, client):
        resp = client.post("/jobs", json={"transcript": "hello"})
        assert resp.status_code == 400
        assert "duration_sec" in resp.json()["detail"]

    @pytest.mark.parametrize("captions", [
        {"style_preset": "comic"},
        {"animation": "spin"},
        {"position": "middle"},
        {"style_overrides": {"fontFamily": "Inter"}},
        {"segment_preset": "square"},
    ])
    def test_bad_caption_options_rejected(self, client, job_store, captions):
        resp = client.post("/jobs", json=_transcript_job(captions=captions))
        assert resp.status_code == 400
        assert job_store.list_jobs() == []

    def test_bad_clip_bounds_rejected(self, client):
        body = _transcript_job(clips={"min_clip_sec": 60, "max_clip_sec": 30})
        assert client.post("/jobs", json=body).status_code == 400

    def test_schema_violation_is_422(self, client):
        body = _transcript_job(clips={"clip_count": -1})
        assert client.post("/jobs", json=body).status_code == 422

    def test_unknown_output_format_is_422(self, client):
        body = _transcript_job(output_formats=["vtt"])
        assert client.post("/jobs", json=body).status_code == 422

    def test_store_full_is_429(self):
        store = JobStore(max_jobs=1)
        with patch("shortify.server.app._run_job_sync", new=lambda *a, **kw: None):
            client = TestClient(create_app(store=store))
            _submit(client, _transcript_job())
            resp = client.post("/jobs", json=_transcript_job())
        assert resp.status_code == 429
        for job in store.list_jobs():
            store.delete_job(job.id)


# ---------------------------------------------------------------------------
# Job endpoints with a pending job
# ---------------------------------------------------------------------------


class TestPendingJobEndpoints:

    def test_get_job(self, client):
        job_id = _submit(client, _transcript_job())
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "pending"
        assert data["error"] is None
        assert data["output_files"] is None

    def test_get_missing_job(self, client):
        assert client.get("/jobs/nope").status_code == 404

    def test_list_jobs(self, client):
        first = _submit(client, _transcript_job())
        second = _submit(client, _transcript_job())
        ids = [j["id"] for j in client.get("/jobs").json()]
        assert set(ids) == {first, second}

    @pytest.mark.parametrize("suffix", ["clips", "captions", "files"])
    def test_results_conflict_until_completed(self, client, suffix):
        job_id = _submit(client, _transcript_job())
        resp = client.get("/jobs/{}/{}".format(job_id, suffix))
        assert resp.status_code == 409
        assert "pending" in resp.json()["detail"]

    def test_download_rejects_path_traversal(self, client):
        job_id = _submit(client, _transcript_job())
        resp = client.get("/jobs/{}/files/..secret".format(job_id))
        assert resp.status_code == 400

    def test_cancel(self, client, job_store):
        job_id = _submit(client, _transcript_job())
        resp = client.post("/jobs/{}/cancel".format(job_id))
        assert resp.status_code == 200
        assert resp.json()["status"] == "cancelled"
        assert job_store.is_cancelled(job_id)

    def test_cancel_twice_conflicts(self, client):
        job_id = _submit(client, _transcript_job())
        client.post("/jobs/{}/cancel".format(job_id))
        assert client.post("/jobs/{}/cancel".format(job_id)).status_code == 409

    def test_delete(self, client):
        job_id = _submit(client, _transcript_job())
        assert client.delete("/jobs/{}".format(job_id)).status_code == 204
        assert client.get("/jobs/{}".format(job_id)).status_code == 404
        assert client.delete("/jobs/{}".format(job_id)).status_code == 404


# ---------------------------------------------------------------------------
# Full job lifecycle
# ---------------------------------------------------------------------------


class TestJobLifecycle:
    """The background task runs the pipeline before the POST returns."""

    def test_transcript_job_completes(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job())
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "completed"
        assert data["timing_source"] == "heuristic"
        assert data["output_files"] == [
            "shortify-clips.json",
            "shortify-clip-1.srt",
            "shortify-clip-2.srt",
            "shortify-captions.srt",
        ]

    def test_clips_endpoint(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job())
        data = client.get("/jobs/{}/clips".format(job_id)).json()
        assert data["duration_sec"] == 600.0
        assert [c["id"] for c in data["clips"]] == ["clip_1", "clip_2"]
        assert [c["type"] for c in data["clips"]] == ["hook", "conclusion"]
        assert data["clips"][0]["startSec"] == 0.0
        assert data["clips"][0]["endSec"] == 30.0
        assert data["clips"][0]["captions"]

    def test_captions_endpoint(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job(captions={"style_preset": "youtube"}))
        data = client.get("/jobs/{}/captions".format(job_id)).json()
        assert data["timing_source"] == "heuristic"
        assert all(c["style"]["position"] == "bottom" for c in data["captions"])

    def test_files_and_download(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job(output_formats=["clips_json"]))
        files = client.get("/jobs/{}/files".format(job_id)).json()["files"]
        assert [f["filename"] for f in files] == ["shortify-clips.json"]
        assert files[0]["media_type"] == "application/json"

        resp = client.get("/jobs/{}/files/shortify-clips.json".format(job_id))
        assert resp.status_code == 200
        assert "attachment" in resp.headers["content-disposition"]
        assert json.loads(resp.content)["version"] == "1.0.0"

    def test_download_unknown_file(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job())
        assert client.get("/jobs/{}/files/other.json".format(job_id)).status_code == 404

    def test_media_url_job_with_word_timings(self, live_app, make_transcriber):
        words = tuple(Word("w{}".format(i), i * 2.0, i * 2.0 + 1.5) for i in range(300))
        transcriber = make_transcriber(TranscriptionResult(
            text=TRANSCRIPT, duration_sec=600.0, words=words,
        ))
        client = live_app(transcriber=transcriber)
        job_id = _submit(client, {"media_url": "https://cdn.test/talk.mp4",
                                  "clips": CLIP_OPTIONS})
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "completed"
        assert data["timing_source"] == "asr"
        assert transcriber.calls == ["https://cdn.test/talk.mp4"]

    def test_empty_transcript_fails(self, live_app):
        client = live_app()
        job_id = _submit(client, _transcript_job(transcript="   "))
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "failed"
        assert data["error_kind"] == "empty_transcript"

    def test_bad_word_timing_fails(self, live_app):
        client = live_app()
        words = [{"text": "a", "start": 1.0, "end": 2.0}, {"text": "b", "start": 0.5, "end": 0.8}]
        job_id = _submit(client, _transcript_job(words=words))
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["error_kind"] == "invalid_timing"

    def test_no_highlights_without_fallback(self, live_app, make_analyzer):
        client = live_app(analyzer=make_analyzer(highlights=[]))
        clips = dict(CLIP_OPTIONS, fallback=False)
        job_id = _submit(client, _transcript_job(clips=clips))
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "failed"
        assert data["error_kind"] == "no_highlights"

    def test_provider_error_fails_job(self, live_app, make_analyzer):
        analyzer = make_analyzer(failures=[ProviderResponseError("garbled")])
        client = live_app(analyzer=analyzer)
        job_id = _submit(client, _transcript_job())
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "failed"
        assert data["error_kind"] == "provider_response"
        assert "garbled" in data["error"]

    def test_cancelled_job_stays_cancelled(self, job_store, make_analyzer):
        analyzer = make_analyzer()

        def cancel_then_analyze(options):
            # the job is cancelled while providers are being set up
            for job in job_store.list_jobs():
                job_store.cancel_job(job.id)
            return analyzer

        app = create_app(store=job_store, analyzer_factory=cancel_then_analyze)
        client = TestClient(app)
        job_id = _submit(client, _transcript_job())
        job = job_store.get_job(job_id)
        assert job.status == JobStatus.CANCELLED
        assert job.output_files == ()
        assert analyzer.calls == []

    def test_job_deleted_during_export_leaves_no_directory(
        self, live_app, job_store, monkeypatch
    ):
        seen = []

        def delete_then_write(result, output_dir, stem, formats=None):
            for job in job_store.list_jobs():
                job_store.delete_job(job.id)
            seen.append(output_dir)
            return write_outputs(result, output_dir, stem, formats)

        monkeypatch.setattr("shortify.server.app.write_outputs", delete_then_write)
        client = live_app()
        job_id = _submit(client, _transcript_job())
        assert job_store.get_job(job_id) is None
        assert len(seen) == 1
        assert not seen[0].exists()

    def test_malformed_word_timing_fails_as_bad_input(self, live_app):
        client = live_app()
        words = [{"text": "a", "start": [0], "end": 1.0}]
        job_id = _submit(client, _transcript_job(words=words))
        data = client.get("/jobs/{}".format(job_id)).json()
        assert data["status"] == "failed"
        assert data["error_kind"] == "invalid_timing"


# ---------------------------------------------------------------------------
# POST /captions
# ---------------------------------------------------------------------------


class TestCaptionsEndpoint:

    def test_heuristic_captions(self, client):
        resp = client.post("/captions", json={
            "transcript": "Welcome to today's discussion about AI and the future of work.",
            "duration_sec": 10,
            "captions": {"max_segment_words": 3},
        })
        assert resp.status_code == 200
        data = resp.json()
        assert data["timing_source"] == "heuristic"
        assert len(data["captions"]) == 4
        assert data["captions"][0]["text"] == "Welcome to today's"
        assert data["captions"][0]["style"]["animation"] == "bounce"

    def test_provider_words(self, client):
        resp = client.post("/captions", json={
            "transcript": "",
            "duration_sec": 2,
            "words": [{"text": "hi", "start": 0, "end": 0.5},
                      {"text": "there", "start": 0.6, "end": 1.0}],
        })
        data = resp.json()
        assert data["timing_source"] == "asr"
        assert data["captions"][0]["words"][1] == {"text": "there", "startSec": 0.6, "endSec": 1.0}

    def test_sentence_breaks_option(self, client):
        resp = client.post("/captions", json={
            "transcript": "Hi there. How are you?",
            "duration_sec": 4,
            "captions": {"split_on_sentence_end": True},
        })
        assert resp.status_code == 200
        assert [c["text"] for c in resp.json()["captions"]] == ["Hi there.", "How are you?"]

    def test_unknown_style_is_400(self, client):
        resp = client.post("/captions", json={
            "transcript": "hi", "duration_sec": 1, "captions": {"animation": "spin"},
        })
        assert resp.status_code == 400
        assert "animation" in resp.json()["detail"]

    @pytest.mark.parametrize("body", [
        {"transcript": "  ", "duration_sec": 5},
        {"transcript": "hi", "duration_sec": 0},
        {"transcript": "", "duration_sec": 5,
         "words": [{"text": "a", "start": 1, "end": 0.5}]},
        {"transcript": "", "duration_sec": 5,
         "words": [{"text": "hi", "start": [0], "end": 1}]},
        {"transcript": "", "duration_sec": 5,
         "words": [{"text": "hi", "start": "soon", "end": 1}]},
    ])
    def test_bad_input_is_422(self, client, body):
        assert client.post("/captions", json=body).status_code == 422

    @pytest.mark.parametrize("duration", ["NaN", "Infinity"])
    def test_non_finite_duration_is_422(self, client, duration):
        resp = client.post(
            "/captions",
            content='{"transcript": "hello world", "duration_sec": ' + duration + "}",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 422
        assert "finite" in resp.json()["detail"]


# ---------------------------------------------------------------------------
# Metadata endpoints
# ---------------------------------------------------------------------------


class TestMetadataEndpoints:

    def test_styles(self, client):
        data = client.get("/styles").json()
        assert "tiktok" in data["presets"]
        assert "karaoke" in data["animations"]
        assert "bottom-left" in data["positions"]

    def test_formats(self, client):
        data = client.get("/formats").json()
        assert [f["key"] for f in data] == ["clips_json", "srt_captions"]
        assert data[0]["suffix"] == "-clips.json"

    def test_health(self, client):
        data = client.get("/health").json()
        assert data == {"status": "ok", "version": "0.1.0"}

    def test_openapi_docs(self, client):
        assert client.get("/openapi.json").json()["info"]["title"] == "Shortify API"
