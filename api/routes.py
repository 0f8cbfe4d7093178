"""
api/routes.py — FastAPI route definitions
==========================================
All HTTP endpoints are defined here and wired into the app via
`app.include_router(router)` in `api/app.py`.  The `SessionRegistry`
lives on `app.state.registry`, created by `create_app`.

Endpoint summary
----------------
    GET    /health                    — Liveness probe
    POST   /sessions                  — Start a scan session → handle
    POST   /sessions/{handle}/samples — Ingest a batch of samples
    GET    /sessions/{handle}         — Poll state, progress & results
    DELETE /sessions/{handle}         — Cancel and forget the session
    GET    /docs                      — Auto-generated Swagger UI (FastAPI built-in)
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from api.schemas import (
    FailureData,
    HeartRateData,
    IngestResponse,
    OxygenationData,
    QualityData,
    SampleBatch,
    SessionCreated,
    SessionRequest,
    StatusResponse,
)
from config import API_TITLE
from engine.registry import SessionRegistry
from engine.results import SessionStatus
from engine.session import OUT_OF_ORDER_ISSUE
from utils.logger import get_logger

logger = get_logger("api.routes")

router = APIRouter()

# ── Disclaimer string injected into every response ──────────────────────────
DISCLAIMER = (
    "⚠️ This is a WELLNESS ESTIMATION tool — NOT a medical device. "
    "Heart rate, rhythm irregularity and SpO2 values are ESTIMATES "
    "derived from consumer camera, microphone or accelerometer signals. "
    "They have NOT been validated for clinical use. "
    "Do NOT make medical decisions based on these readings. "
    "Consult a qualified healthcare professional for diagnosis or treatment."
)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def _unknown(handle: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Unknown session '{handle}'.")


def _status_response(s: SessionStatus) -> StatusResponse:
    return StatusResponse(
        disclaimer=DISCLAIMER,
        state=s.state.value,
        active_modality=s.active_modality.value if s.active_modality else None,
        progress_pct=s.progress_pct,
        elapsed_s=s.elapsed_s,
        heart_rate=HeartRateData.from_estimate(s.heart_rate),
        oxygenation=OxygenationData.from_estimate(s.oxygenation),
        failure=FailureData.from_failure(s.failure),
        alerts=s.alerts,
        modality_history=[m.value for m in s.modality_history],
        track_results={
            m.value: HeartRateData.from_estimate(e) for m, e in s.track_results.items()
        },
    )


# ── Health ────────────────────────────────────────────────────────────────────

@router.get("/health")
async def health(registry: SessionRegistry = Depends(get_registry)):
    """Simple liveness check."""
    return {
        "status": "ok",
        "service": API_TITLE,
        "active_sessions": len(registry),
        "disclaimer": DISCLAIMER,
    }


# ── Sessions ──────────────────────────────────────────────────────────────────

@router.post("/sessions", status_code=status.HTTP_201_CREATED)
async def start_session(
    body: SessionRequest = SessionRequest(),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionCreated:
    """
    Start a scan.  The session starts in `Acquiring` and its timeout
    clock starts now.

    Body (JSON, all optional):
        modality        : "optical" | "acoustic" | "motion"   (default "optical")
        timeout_s       : float                                (default 20)
        allow_fallback  : bool                                 (default true)
        min_window_s / max_window_s / fallback_order / recency_half_life /
        combine_tolerance_bpm
    """
    try:
        options = body.to_options()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    handle = registry.start_session(options)
    return SessionCreated(
        disclaimer=DISCLAIMER,
        handle=handle,
        state=registry.poll(handle).state.value,
        active_modality=options.modality.value,
    )


@router.post("/sessions/{handle}/samples")
def ingest_samples(
    handle: str,
    batch: SampleBatch,
    registry: SessionRegistry = Depends(get_registry),
) -> IngestResponse:
    """
    Feed samples in timestamp order.  The response reflects the state
    after the last sample; the preliminary BPM is the latest one produced
    within the batch.

    `accepted` counts samples that reached the session's windows.
    Samples arriving once the scan is Completed or Failed are counted in
    `ignored`; out-of-order samples are in neither and flagged in
    `quality.issues`.
    """
    try:
        results = registry.ingest_many(handle, batch.to_samples())
        snapshot = registry.poll(handle) if not results else None
    except KeyError:
        raise _unknown(handle)

    if snapshot is not None:
        return IngestResponse(
            disclaimer=DISCLAIMER,
            accepted=0,
            state=snapshot.state.value,
            active_modality=snapshot.active_modality.value if snapshot.active_modality else None,
            failure=FailureData.from_failure(snapshot.failure),
        )

    ignored = sum(1 for r in results if r.quality is None)
    accepted = sum(
        1 for r in results
        if r.quality is not None and OUT_OF_ORDER_ISSUE not in r.quality.issues
    )
    preliminary = next((r.preliminary for r in reversed(results) if r.preliminary), None)
    switched = next((r.switched_to for r in reversed(results) if r.switched_to), None)
    last = results[-1]
    dropped = len(results) - accepted - ignored
    if dropped:
        logger.warning("Session %s: %d of %d samples dropped out of order.", handle, dropped, len(results))
    if ignored:
        logger.info("Session %s: %d samples arrived after the scan ended.", handle, ignored)

    return IngestResponse(
        disclaimer=DISCLAIMER,
        accepted=accepted,
        ignored=ignored,
        state=last.state.value,
        active_modality=last.active_modality.value if last.active_modality else None,
        quality=QualityData.from_assessment(last.quality),
        preliminary=HeartRateData.from_estimate(preliminary),
        switched_to=switched.value if switched else None,
        failure=FailureData.from_failure(last.failure),
    )


@router.get("/sessions/{handle}")
async def poll_session(
    handle: str,
    registry: SessionRegistry = Depends(get_registry),
) -> StatusResponse:
    """Current state, progress and, once `Completed`, the final estimates."""
    try:
        return _status_response(registry.poll(handle))
    except KeyError:
        raise _unknown(handle)


@router.delete("/sessions/{handle}")
async def cancel_session(
    handle: str,
    registry: SessionRegistry = Depends(get_registry),
):
    """Cancel the scan, release its buffers and forget the handle."""
    try:
        registry.cancel(handle)
    except KeyError:
        raise _unknown(handle)
    return {"status": "ok", "state": "Idle", "message": "Session cancelled."}
