import logging
import uuid
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from formflow.config import get_settings
from formflow.errors import FormflowError, UnknownPathError
from formflow.models import FieldPath, SelectedFile
from formflow.registration import REGISTRATION_FORM
from formflow.review import build_review
from formflow.schema_builder import build_defaults, build_form_validator
from formflow.session_store import SessionStore
from formflow.submission import HttpSubmissionClient, MockRegistrationService, Submitter
from formflow.wizard import WizardController, public_value

app = FastAPI(title="Formflow Registration Service")
logger = logging.getLogger(__name__)

settings = get_settings()
FORM = REGISTRATION_FORM
FORM_VALIDATOR = build_form_validator(FORM)

if settings.submit_url:
    logger.info("Submissions will be posted to %s", settings.submit_url)
else:
    logger.warning("FORMFLOW_SUBMIT_URL not configured; using the mock registration service.")

_sessions = SessionStore(ttl_seconds=settings.session_ttl, max_sessions=settings.max_sessions)


class FieldUpdate(BaseModel):
    path: FieldPath
    value: Any = None


def build_submitter() -> Submitter:
    if settings.submit_url:
        return HttpSubmissionClient(settings.submit_url, timeout=settings.submit_timeout)
    return MockRegistrationService(delay=settings.mock_delay, success_rate=settings.mock_success_rate)


def _session(session_id: str) -> WizardController:
    controller = _sessions.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return controller


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (UnknownPathError, IndexError)):
        logger.warning("Unknown path: %s", exc)
        return HTTPException(status_code=404, detail=str(exc))
    logger.warning("Rejected wizard action: %s", exc)
    return HTTPException(status_code=409, detail=str(exc))


def _session_payload(session_id: str, controller: WizardController, **extra: Any) -> Dict[str, Any]:
    payload = {"session_id": session_id, **controller.snapshot()}
    payload.update(extra)
    return payload


@app.get("/health")
async def health():
    return {"ok": True, "service": "formflow"}


@app.get("/form")
async def form_definition():
    payload = FORM.model_dump()
    payload["step_labels"] = FORM.step_labels
    payload["total_steps"] = FORM.total_steps
    return payload


@app.get("/defaults")
async def defaults():
    return build_defaults(FORM)


@app.post("/validate")
async def validate_record(record: Dict[str, Any]):
    result = FORM_VALIDATOR(record)
    logger.info("Validated record with %d failures", len(result.failures))
    return {"ok": result.ok, "errors": result.errors(), "failures": result.model_dump()["failures"]}


@app.post("/sessions", status_code=201)
async def create_session():
    session_id = uuid.uuid4().hex
    controller = WizardController(FORM, build_submitter(), policy=settings.disabled_policy)
    _sessions.add(session_id, controller)
    logger.info("Created wizard session %s", session_id)
    return _session_payload(session_id, controller)


@app.get("/sessions/{session_id}")
async def get_session(session_id: str):
    return _session_payload(session_id, _session(session_id))


@app.delete("/sessions/{session_id}")
async def delete_session(session_id: str):
    _session(session_id)
    _sessions.pop(session_id)
    return {"deleted": True}


@app.get("/sessions/{session_id}/steps/{step_id}/fields")
async def step_fields(session_id: str, step_id: str):
    controller = _session(session_id)
    try:
        states = controller.step_field_states(step_id)
    except FormflowError as exc:
        raise _http_error(exc) from exc
    fields = []
    for state in states:
        entry = state.model_dump(exclude={"value"})
        entry["value"] = public_value(state.value)
        fields.append(entry)
    return {"fields": fields}


@app.put("/sessions/{session_id}/fields")
async def set_field(session_id: str, update: FieldUpdate):
    controller = _session(session_id)
    try:
        controller.set_field_value(update.path, update.value)
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller)


@app.post("/sessions/{session_id}/files")
async def choose_file(
    session_id: str,
    step: str = Form(...),
    field: str = Form(...),
    section: Optional[str] = Form(None),
    index: Optional[int] = Form(None),
    file: UploadFile = File(...),
):
    controller = _session(session_id)
    contents = await file.read()
    selected = SelectedFile(
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=contents,
    )
    path = FieldPath(step=step, section=section, index=index, field=field)
    try:
        preview = await controller.choose_file(path, selected)
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller, file_name=selected.filename, preview=preview)


@app.post("/sessions/{session_id}/steps/{step_id}/items", status_code=201)
async def append_item(session_id: str, step_id: str):
    controller = _session(session_id)
    try:
        index = controller.append_item(step_id)
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller, index=index)


@app.delete("/sessions/{session_id}/steps/{step_id}/items/{index}")
async def remove_item(session_id: str, step_id: str, index: int):
    controller = _session(session_id)
    try:
        removed = controller.remove_item(step_id, index)
    except (FormflowError, IndexError) as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller, removed=removed)


@app.post("/sessions/{session_id}/advance")
async def advance(session_id: str):
    controller = _session(session_id)
    try:
        result = controller.advance()
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller, ok=result.ok)


@app.post("/sessions/{session_id}/retreat")
async def retreat(session_id: str):
    controller = _session(session_id)
    try:
        controller.retreat()
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller)


@app.post("/sessions/{session_id}/reset")
async def reset(session_id: str):
    controller = _session(session_id)
    try:
        controller.reset()
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller)


@app.post("/sessions/{session_id}/submit")
async def submit(session_id: str):
    controller = _session(session_id)
    try:
        result = await controller.submit()
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(
        session_id,
        controller,
        result=result.model_dump() if result is not None else None,
    )


@app.post("/sessions/{session_id}/register-new")
async def register_new(session_id: str):
    controller = _session(session_id)
    try:
        controller.register_new()
    except FormflowError as exc:
        raise _http_error(exc) from exc
    return _session_payload(session_id, controller)


@app.get("/sessions/{session_id}/review")
async def review(session_id: str):
    controller = _session(session_id)
    return build_review(FORM, controller.record).model_dump()


@app.get("/dev/sessions")
def list_sessions():
    if not settings.enable_dev_routes:
        raise HTTPException(status_code=404, detail="Not found")
    return {
        "sessions": [
            {"session_id": session_id, "phase": controller.phase.value, "step_index": controller.step_index}
            for session_id, controller in _sessions.items()
        ]
    }
