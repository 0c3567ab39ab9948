"""FastAPI application with clip job routes and OpenAPI docs.

WHY: The web front end and automation tools need an HTTP API to submit a
video (or a ready transcript), poll the job, and fetch the resulting clip
windows, captions and export files. FastAPI provides OpenAPI docs, request
validation and background task support.

HOW: create_app() builds the app around an injected JobStore and two
provider factories. POST /jobs validates the options, creates a job and runs
the pipeline in the background; the other routes read job snapshots. POST
/captions runs caption generation synchronously for a transcript.

RULES:
- All endpoints have OpenAPI descriptions and use the ErrorResponse schema
- Style tokens and segment settings are validated before a job is created
  (400), so bad input never reaches the background runner
- Background jobs use FastAPI BackgroundTasks with a sync asyncio.run wrapper
- No module-level app or store: uvicorn runs create_app as a factory
- Providers come from the factories; tests inject fakes
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack, asynccontextmanager
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import Response

import shortify
from captionkit import list_style_tokens, segment_config, timing_source
from captionkit.errors import UnknownStyleTokenError
from shortify.api.base import ContentAnalyzer, Transcriber
from shortify.config import API_HOST, API_PORT, CLEANUP_INTERVAL_SECONDS, has_api_key
from shortify.core.pipeline import PipelineOptions, build_captions, run_pipeline
from shortify.core.scorer import ScorerConfig
from shortify.core.windower import WindowerConfig
from shortify.errors import JobCancelledError, error_kind
from shortify.formatters import FORMATTERS, write_outputs
from shortify.server.jobs import Job, JobStatus, JobStore, JobStoreFullError
from shortify.server.models import (
    CaptionOptions,
    CaptionsRequest,
    CaptionsResponse,
    ClipOptions,
    ClipsResponse,
    ErrorResponse,
    FileInfo,
    FileListResponse,
    FormatInfo,
    HealthResponse,
    JobCreatedResponse,
    JobRequest,
    JobResponse,
    StylesResponse,
)

logger = logging.getLogger(__name__)

TranscriberFactory = Callable[[PipelineOptions], Transcriber]
AnalyzerFactory = Callable[[PipelineOptions], Optional[ContentAnalyzer]]

_OUTPUT_STEM = "shortify"

_SEGMENT_FIELDS = (
    "max_segment_chars",
    "max_segment_words",
    "max_segment_duration_sec",
    "min_gap_sec",
    "split_on_sentence_end",
)


# ---------------------------------------------------------------------------
# Default providers
# ---------------------------------------------------------------------------


def default_transcriber_factory(options: PipelineOptions) -> Transcriber:
    from shortify.api.client import GeminiClient
    return GeminiClient()


def default_analyzer_factory(options: PipelineOptions) -> Optional[ContentAnalyzer]:
    """Gemini when an API key is configured, else None (heuristic spans)."""
    if not has_api_key():
        return None
    from shortify.api.client import GeminiClient
    return GeminiClient(
        clip_count=options.windower.max_clip_count,
        min_clip_sec=options.windower.min_clip_sec,
        max_clip_sec=options.windower.max_clip_sec,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def pipeline_options(
    captions: Optional[Dict[str, Any]] = None,
    clips: Optional[Dict[str, Any]] = None,
) -> PipelineOptions:
    """Build PipelineOptions from the request option dicts stored on a job.

    Raises:
        UnknownStyleTokenError: Bad preset/animation/position/override.
        ValueError: Bad segment preset or setting, or bad clip bounds.
    """
    cap = CaptionOptions(**(captions or {}))
    clp = ClipOptions(**(clips or {}))

    overrides = {k: getattr(cap, k) for k in _SEGMENT_FIELDS if getattr(cap, k) is not None}
    options = PipelineOptions(
        segment_preset=cap.segment_preset,
        segment_overrides=overrides or None,
        style_preset=cap.style_preset,
        animation=cap.animation,
        position=cap.position,
        style_overrides=cap.style_overrides,
        scorer=ScorerConfig(
            fallback=clp.fallback,
            fallback_span_count=clp.fallback_span_count,
        ),
        windower=WindowerConfig(
            min_clip_sec=clp.min_clip_sec,
            max_clip_sec=clp.max_clip_sec,
            max_clip_count=clp.clip_count,
            min_gap_between_clips_sec=clp.min_gap_between_clips_sec,
        ),
        optimal_windows=clp.optimal,
    )

    # Fail fast on every token and setting
    options.resolve_style()
    segment_config(options.segment_preset, options.segment_overrides)
    options.windower.validate()
    return options


def _job_to_response(job: Job) -> JobResponse:
    return JobResponse(
        id=job.id,
        status=job.status.value,
        source=job.source,
        created_at=job.created_at,
        updated_at=job.updated_at,
        config=job.config,
        error=job.error,
        error_kind=job.error_kind,
        timing_source=job.timing_source,
        output_files=list(job.output_files) if job.output_files else None,
    )


def _infer_media_type(filename: str) -> str:
    ext = Path(filename).suffix.lower()
    mapping = {
        ".json": "application/json",
        ".srt": "application/x-subrip",
    }
    return mapping.get(ext, "application/octet-stream")


async def _run_job(
    job_id: str,
    store: JobStore,
    transcriber_factory: TranscriberFactory,
    analyzer_factory: AnalyzerFactory,
) -> None:
    """Run the pipeline for a job and record the outcome on the store.

    RULES:
    - Stage changes are written to the store as they happen
    - JobCancelledError leaves the job cancelled (not failed)
    - Any other exception marks the job failed with error_kind
    """
    job = store.get_job(job_id)
    if job is None:
        return
    config = job.config

    try:
        options = pipeline_options(config.get("captions"), config.get("clips"))
        async with AsyncExitStack() as stack:
            transcriber = None
            if config.get("media_url"):
                transcriber = await stack.enter_async_context(
                    transcriber_factory(options)
                )
            analyzer = analyzer_factory(options)
            if analyzer is not None:
                analyzer = await stack.enter_async_context(analyzer)

            result = await run_pipeline(
                transcriber,
                analyzer,
                options,
                media_url=config.get("media_url"),
                transcript=config.get("transcript"),
                duration_sec=config.get("duration_sec"),
                words=config.get("words"),
                is_cancelled=lambda: store.is_cancelled(job_id),
                on_stage=lambda stage: store.update_job(job_id, status=JobStatus(stage)),
            )

        if store.is_cancelled(job_id):
            raise JobCancelledError("Job cancelled before export")

        files = write_outputs(result, job.output_dir, _OUTPUT_STEM, config.get("output_formats"))
        if store.get_job(job_id) is None:
            # Deleted while writing; the store already dropped its directory.
            JobStore.cleanup_output_dir(job.output_dir)
            raise JobCancelledError("Job deleted during export")
        store.update_job(
            job_id,
            status=JobStatus.COMPLETED,
            timing_source=result.timing_source,
            output_files=files,
            result=result.to_dict(),
        )
        logger.info("Job %s completed with %d clips", job_id, len(result.clips))

    except JobCancelledError:
        logger.info("Job %s cancelled", job_id)
    except Exception as exc:
        logger.exception("Pipeline failed for job %s", job_id)
        store.update_job(
            job_id,
            status=JobStatus.FAILED,
            error=str(exc),
            error_kind=error_kind(exc),
        )


def _run_job_sync(
    job_id: str,
    store: JobStore,
    transcriber_factory: TranscriberFactory,
    analyzer_factory: AnalyzerFactory,
) -> None:
    """Synchronous wrapper: FastAPI BackgroundTasks run plain callables."""
    asyncio.run(_run_job(job_id, store, transcriber_factory, analyzer_factory))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(
    store: Optional[JobStore] = None,
    transcriber_factory: Optional[TranscriberFactory] = None,
    analyzer_factory: Optional[AnalyzerFactory] = None,
    cleanup_interval_s: float = CLEANUP_INTERVAL_SECONDS,
) -> FastAPI:
    """Build the FastAPI app around a job store and provider factories."""
    job_store = store if store is not None else JobStore()
    make_transcriber = transcriber_factory or default_transcriber_factory
    make_analyzer = analyzer_factory or default_analyzer_factory

    async def _periodic_cleanup() -> None:
        while True:
            await asyncio.sleep(cleanup_interval_s)
            removed = job_store.cleanup_expired()
            if removed:
                logger.info("Cleanup removed %d expired jobs", removed)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Start periodic cleanup on startup, cancel on shutdown."""
        task = asyncio.create_task(_periodic_cleanup())
        yield
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    app = FastAPI(
        lifespan=lifespan,
        title="Shortify API",
        description=(
            "Turn long-form videos into captioned short clips. Submit a media "
            "URL or transcript, poll the job, then fetch clip windows, caption "
            "segments and export files."
        ),
        version=shortify.__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.job_store = job_store

    def _get_job_or_404(job_id: str) -> Job:
        job = job_store.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
        return job

    def _require_completed(job: Job) -> None:
        if job.status != JobStatus.COMPLETED:
            raise HTTPException(
                status_code=409,
                detail="Job is not completed (current status: {}).".format(job.status.value),
            )

    # -----------------------------------------------------------------------
    # Endpoints: Jobs
    # -----------------------------------------------------------------------

    @app.post(
        "/jobs",
        response_model=JobCreatedResponse,
        status_code=201,
        tags=["jobs"],
        summary="Submit a clip job",
        description=(
            "Submit a media URL, or an inline transcript with its duration. "
            "Returns a job ID immediately; the pipeline runs in the background. "
            "Poll GET /jobs/{id} for status updates."
        ),
        responses={
            400: {"model": ErrorResponse, "description": "Invalid input or options"},
            429: {"model": ErrorResponse, "description": "Too many concurrent jobs"},
        },
    )
    async def create_job(
        request: JobRequest,
        background_tasks: BackgroundTasks,
    ) -> JobCreatedResponse:
        if not request.media_url and request.transcript is None:
            raise HTTPException(
                status_code=400,
                detail="Either media_url or transcript is required",
            )
        if not request.media_url and request.duration_sec is None:
            raise HTTPException(
                status_code=400,
                detail="duration_sec is required with an inline transcript",
            )

        config = request.model_dump(mode="json")
        try:
            pipeline_options(config["captions"], config["clips"])
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        source = request.media_url or "transcript"
        try:
            job = job_store.create_job(source=source, config=config)
        except JobStoreFullError as exc:
            raise HTTPException(status_code=429, detail=str(exc))

        background_tasks.add_task(
            _run_job_sync, job.id, job_store, make_transcriber, make_analyzer
        )

        return JobCreatedResponse(id=job.id, status=job.status.value, source=job.source)

    @app.get(
        "/jobs",
        response_model=List[JobResponse],
        tags=["jobs"],
        summary="List jobs",
        description="All jobs currently held by the store, oldest first.",
    )
    async def list_jobs() -> List[JobResponse]:
        return [_job_to_response(job) for job in job_store.list_jobs()]

    @app.get(
        "/jobs/{job_id}",
        response_model=JobResponse,
        tags=["jobs"],
        summary="Get job status",
        description=(
            "Current status (pipeline stage), error kind when failed, and the "
            "caption timing source once known."
        ),
        responses={404: {"model": ErrorResponse, "description": "Job not found"}},
    )
    async def get_job(job_id: str) -> JobResponse:
        return _job_to_response(_get_job_or_404(job_id))

    @app.get(
        "/jobs/{job_id}/clips",
        response_model=ClipsResponse,
        tags=["jobs"],
        summary="Get clip windows",
        description="Clip windows with their styled captions. Available once completed.",
        responses={
            404: {"model": ErrorResponse, "description": "Job not found"},
            409: {"model": ErrorResponse, "description": "Job not yet completed"},
        },
    )
    async def get_clips(job_id: str) -> ClipsResponse:
        job = _get_job_or_404(job_id)
        _require_completed(job)
        result = job.result or {}
        return ClipsResponse(
            job_id=job.id,
            duration_sec=result.get("durationSec", 0.0),
            timing_source=result.get("timingSource", ""),
            clips=result.get("clips", []),
        )

    @app.get(
        "/jobs/{job_id}/captions",
        response_model=CaptionsResponse,
        tags=["jobs"],
        summary="Get full-timeline captions",
        description="All caption segments of the source video. Available once completed.",
        responses={
            404: {"model": ErrorResponse, "description": "Job not found"},
            409: {"model": ErrorResponse, "description": "Job not yet completed"},
        },
    )
    async def get_captions(job_id: str) -> CaptionsResponse:
        job = _get_job_or_404(job_id)
        _require_completed(job)
        result = job.result or {}
        return CaptionsResponse(
            timing_source=result.get("timingSource", ""),
            duration_sec=result.get("durationSec", 0.0),
            captions=result.get("captions", []),
        )

    @app.get(
        "/jobs/{job_id}/files",
        response_model=FileListResponse,
        tags=["jobs"],
        summary="List export files for a completed job",
        description="Metadata for every export file. Use the filenames to download.",
        responses={
            404: {"model": ErrorResponse, "description": "Job not found"},
            409: {"model": ErrorResponse, "description": "Job not yet completed"},
        },
    )
    async def list_job_files(job_id: str) -> FileListResponse:
        job = _get_job_or_404(job_id)
        _require_completed(job)

        files = []
        for fname in job.output_files:
            fpath = job.output_dir / fname
            if fpath.exists():
                files.append(FileInfo(
                    filename=fname,
                    media_type=_infer_media_type(fname),
                    size=fpath.stat().st_size,
                ))
        return FileListResponse(job_id=job.id, files=files)

    @app.get(
        "/jobs/{job_id}/files/{filename}",
        tags=["jobs"],
        summary="Download a single export file",
        description="The filename must be one of the job's output_files.",
        responses={
            400: {"model": ErrorResponse, "description": "Invalid filename"},
            404: {"model": ErrorResponse, "description": "Job or file not found"},
            409: {"model": ErrorResponse, "description": "Job not yet completed"},
        },
    )
    async def download_job_file(job_id: str, filename: str) -> Response:
        if "/" in filename or "\\" in filename or ".." in filename:
            raise HTTPException(status_code=400, detail="Invalid filename")

        job = _get_job_or_404(job_id)
        _require_completed(job)

        if filename not in job.output_files:
            raise HTTPException(
                status_code=404,
                detail="File '{}' not found in job output files.".format(filename),
            )
        fpath = job.output_dir / filename
        if not fpath.exists():
            raise HTTPException(
                status_code=404,
                detail="File '{}' not found on disk.".format(filename),
            )

        return Response(
            content=fpath.read_bytes(),
            media_type=_infer_media_type(filename),
            headers={"Content-Disposition": 'attachment; filename="{}"'.format(filename)},
        )

    @app.post(
        "/jobs/{job_id}/cancel",
        response_model=JobResponse,
        tags=["jobs"],
        summary="Cancel a running job",
        description=(
            "Marks the job cancelled. The pipeline stops before its next stage; "
            "its results are discarded."
        ),
        responses={
            404: {"model": ErrorResponse, "description": "Job not found"},
            409: {"model": ErrorResponse, "description": "Job already finished"},
        },
    )
    async def cancel_job(job_id: str) -> JobResponse:
        job = _get_job_or_404(job_id)
        if job.status.is_terminal:
            raise HTTPException(
                status_code=409,
                detail="Job already finished (status: {}).".format(job.status.value),
            )
        job = job_store.cancel_job(job_id) or job
        return _job_to_response(job)

    @app.delete(
        "/jobs/{job_id}",
        status_code=204,
        tags=["jobs"],
        summary="Delete a job",
        description="Delete a job and all its export files. A running job stops at its next stage.",
        responses={404: {"model": ErrorResponse, "description": "Job not found"}},
    )
    async def delete_job(job_id: str) -> Response:
        if not job_store.delete_job(job_id):
            raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
        return Response(status_code=204)

    # -----------------------------------------------------------------------
    # Endpoints: Captions and styles
    # -----------------------------------------------------------------------

    @app.post(
        "/captions",
        response_model=CaptionsResponse,
        tags=["captions"],
        summary="Generate captions for a transcript",
        description=(
            "Synchronous caption segmentation. Uses the given word timings when "
            "present, otherwise distributes the duration over the words."
        ),
        responses={
            400: {"model": ErrorResponse, "description": "Unknown style token or setting"},
            422: {"model": ErrorResponse, "description": "Empty transcript or bad timing"},
        },
    )
    async def generate_captions(request: CaptionsRequest) -> CaptionsResponse:
        try:
            options = pipeline_options(request.captions.model_dump())
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))

        try:
            captions = build_captions(
                request.transcript, request.duration_sec, request.words, options
            )
        except UnknownStyleTokenError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

        return CaptionsResponse(
            timing_source=timing_source(request.words),
            duration_sec=request.duration_sec,
            captions=[c.to_dict() for c in captions],
        )

    @app.get(
        "/styles",
        response_model=StylesResponse,
        tags=["captions"],
        summary="List caption style tokens",
        description="Supported style presets, animations and positions.",
    )
    async def list_styles() -> StylesResponse:
        return StylesResponse(**list_style_tokens())

    # -----------------------------------------------------------------------
    # Endpoints: Formats and health
    # -----------------------------------------------------------------------

    @app.get(
        "/formats",
        response_model=List[FormatInfo],
        tags=["formats"],
        summary="List available export formats",
        description="All export formats with their identifiers, names and suffixes.",
    )
    async def list_formats() -> List[FormatInfo]:
        return [
            FormatInfo(key=key, name=cls().name, suffix=cls.suffix)
            for key, cls in sorted(FORMATTERS.items())
        ]

    @app.get(
        "/health",
        response_model=HealthResponse,
        tags=["health"],
        summary="Health check",
        description="Liveness and readiness check for load balancers and orchestrators.",
    )
    async def health_check() -> HealthResponse:
        return HealthResponse(status="ok", version=shortify.__version__)

    return app


def run_api():
    """Entry point for the shortify-api console script."""
    import uvicorn
    uvicorn.run(
        "shortify.server.app:create_app",
        factory=True,
        host=API_HOST,
        port=API_PORT,
    )
