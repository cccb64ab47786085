"""
REST API routes for the voice notes backend.

Organized into logical groups:
- Transcription: chunked transcription of uploaded audio, optional refinement
- Notes: CRUD operations for notes
- Sync: two-way sync with the S3 bucket
"""

from flask import Blueprint, jsonify, request
from openai import OpenAIError

from .asr import supports_single_request, transcribe_bytes
from .config import Config
from .errors import (
    AudioDecodeError,
    CorruptLocalData,
    CorruptRemoteData,
    InvalidChunkConfig,
    NotFound,
    PipelineBusy,
    RemoteUnavailable,
    SegmentTranscriptionFailed,
    SyncNotConfigured,
    TranscriptionRequestFailed,
)
from .services.container import get_services

bp = Blueprint("api", __name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _truthy(value) -> bool:
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


# ============================================================================
# TRANSCRIPTION ENDPOINTS
# ============================================================================


@bp.post("/transcribe")
def transcribe():
    """
    Transcribe uploaded audio of any length.

    Accepts:
        - multipart/form-data with 'file' field
        - raw audio bytes in request body
    Browser recordings that cannot be decoded locally (webm, mp4, mp3)
    are sent to the API whole, as one segment.

    Form/query fields:
        - language: ISO-639-1 hint (default: TRANSCRIBE_LANGUAGE)
        - refine: "true" to clean the text with the chat model

    Returns:
        JSON: {"text": str, "segments": int, "refined": bool}
    """
    svc = get_services()

    if "file" in request.files:
        upload = request.files["file"]
        data = upload.read()
        content_type = upload.mimetype
    else:
        data = request.get_data()
        content_type = request.mimetype

    if not data:
        return _json_error("No audio data provided", 400)

    language = request.values.get("language") or Config.TRANSCRIBE_LANGUAGE
    refine = _truthy(request.values.get("refine"))

    segment_count = {"total": 0}

    def _track(progress) -> None:
        segment_count["total"] = max(segment_count["total"], progress.total)

    remove_observer = svc.pipeline.add_observer(_track)
    try:
        text = svc.pipeline.run(data, language=language)
    except PipelineBusy as e:
        return _json_error(str(e), 409)
    except AudioDecodeError as e:
        if not supports_single_request(content_type, len(data)):
            return _json_error(str(e), 400)
        # Browser recordings (webm/mp4) go to the API in one request
        try:
            text = transcribe_bytes(
                data,
                content_type=content_type,
                language=language,
                transcriber=svc.pipeline.transcriber,
            )
        except (RemoteUnavailable, TranscriptionRequestFailed) as err:
            return _json_error(str(err), 502)
        except ValueError as err:
            return _json_error(str(err), 400)
        segment_count["total"] = 1
    except InvalidChunkConfig as e:
        return _json_error(str(e), 400)
    except SegmentTranscriptionFailed as e:
        return jsonify(
            {
                "error": str(e),
                "segment_index": e.segment_index,
                "segment_count": e.segment_count,
            }
        ), 502
    finally:
        remove_observer()

    if refine and text:
        try:
            text = svc.refiner.refine(text, language=language)
        except (OpenAIError, ValueError) as e:
            return _json_error(f"Refinement failed: {e}", 502)

    return jsonify({"text": text, "segments": segment_count["total"], "refined": refine})


@bp.post("/refine")
def refine_text():
    """
    Refine a transcript with the chat model.

    Body:
        JSON: {"text": str, "language": str (optional)}
    """
    svc = get_services()
    data = request.get_json(silent=True) or {}
    text = data.get("text")
    if not text or not str(text).strip():
        return _json_error("No text provided", 400)

    try:
        refined = svc.refiner.refine(text, language=data.get("language"))
    except (OpenAIError, ValueError) as e:
        return _json_error(f"Refinement failed: {e}", 502)
    return jsonify({"text": refined})


# ============================================================================
# NOTE ENDPOINTS
# ============================================================================


@bp.get("/notes")
def list_notes():
    """
    List notes, newest update first.

    Query params:
        - sync: "true" when the notes view just became visible (syncs first)

    Returns:
        JSON: {"notes": [...], "total": int}
    """
    svc = get_services()
    if _truthy(request.args.get("sync")):
        svc.trigger.on_notes_view_visible()

    try:
        notes = svc.storage.list_notes()
    except CorruptLocalData as e:
        return _json_error(str(e), 500)

    return jsonify(
        {
            "notes": [note.model_dump(by_alias=True) for note in notes],
            "total": len(notes),
        }
    )


@bp.get("/notes/<note_id>")
def get_note(note_id: str):
    svc = get_services()
    note = svc.storage.get_note(note_id)
    if not note:
        return _json_error("Note not found", 404)
    return jsonify(note.model_dump(by_alias=True))


@bp.post("/notes")
def create_note():
    """
    Save a new note.

    Body:
        JSON: {"title": str, "content": str}
    """
    svc = get_services()
    data = request.get_json(silent=True)
    if not data:
        return _json_error("No data provided", 400)

    try:
        record = svc.storage.create_note(data.get("title", ""), data.get("content", ""))
    except ValueError as e:
        return _json_error(str(e), 400)

    return jsonify(record.model_dump(by_alias=True)), 201


@bp.put("/notes/<note_id>")
def update_note(note_id: str):
    """
    Update an existing note.

    Body:
        JSON: {"title": str (optional), "content": str (optional)}
    """
    svc = get_services()
    data = request.get_json(silent=True)
    if not data:
        return _json_error("No data provided", 400)

    note = svc.storage.get_note(note_id)
    if not note:
        return _json_error("Note not found", 404)

    try:
        record = svc.storage.update_note(
            note_id,
            data.get("title", note.title),
            data.get("content", note.content),
        )
    except ValueError as e:
        return _json_error(str(e), 400)

    if record is None:
        return _json_error("Note not found", 404)
    return jsonify(record.model_dump(by_alias=True))


@bp.delete("/notes/<note_id>")
def delete_note(note_id: str):
    svc = get_services()
    if not svc.storage.delete_note(note_id):
        return _json_error("Note not found", 404)
    return jsonify({"success": True, "message": f"Note {note_id} deleted successfully"})


# ============================================================================
# SYNC ENDPOINTS
# ============================================================================


@bp.post("/sync")
def sync_notes():
    """
    Run one two-way sync pass with the bucket.

    Body (optional):
        JSON: {"show_notifications": bool}

    Returns:
        JSON: SyncSummary
    """
    svc = get_services()
    data = request.get_json(silent=True) or {}
    show = bool(data.get("show_notifications", True))

    try:
        summary = svc.sync.sync(show_notifications=show)
    except SyncNotConfigured as e:
        return _json_error(str(e), 400)
    except CorruptRemoteData as e:
        return _json_error(str(e), 502)
    except (RemoteUnavailable, NotFound) as e:
        return _json_error(f"S3 sync failed: {e}", 502)
    except CorruptLocalData as e:
        return _json_error(str(e), 500)

    return jsonify(summary.to_dict())


@bp.get("/sync/status")
def sync_status():
    svc = get_services()
    return jsonify(
        {
            "configured": svc.sync.configured,
            "state": svc.sync.state.value,
            "last_sync_at": svc.storage.get_last_sync(),
        }
    )


# ============================================================================
# UTILITY ENDPOINTS
# ============================================================================


@bp.get("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})
