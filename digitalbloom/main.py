import base64
import logging
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlencode

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from pydantic import ValidationError

from .config import get_settings
from .editor import EDITABLE_FIELDS, EXPORT_FILES, ResultEditor
from .errors import GenerationError, InvalidTransition
from .schemas import (
    STYLE_OPTIONS,
    BusinessProfile,
    ContentSuggestions,
    ImageSlot,
    ProfileDraft,
    SiteGenerationResult,
    SuggestionRequest,
    WizardStep,
)
from .wizard import WizardSession, session_store, wizard_controller

_settings = get_settings()

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("digitalbloom")

SUGGEST_NEEDS_NAME_AND_TYPE = "Please fill in Business Name and Type first."
SUGGEST_FAILED = "Could not get AI suggestions. Please try again."
ARCHIVE_FILENAME = "site.zip"

app = FastAPI(title="DigitalBloom AI Website Generator", version="0.1.0")

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def _session(request: Request) -> WizardSession:
    return session_store.get_or_create(request.cookies.get(_settings.session_cookie))


def _peek(request: Request) -> WizardSession:
    """Existing session for read-only pages, or a blank one that is not stored."""
    return session_store.get(request.cookies.get(_settings.session_cookie)) or WizardSession(id="")


def _remember(response: Response, session: WizardSession) -> Response:
    if not session.id:
        return response
    response.set_cookie(_settings.session_cookie, session.id, httponly=True, samesite="lax")
    return response


def _require_editor(session: WizardSession) -> ResultEditor:
    if session.state.step != WizardStep.RESULT or session.editor is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No generated website in this session.")
    return session.editor


async def profile_form(
    businessName: str = Form(default=""),
    businessType: str = Form(default=""),
    businessDescription: str = Form(default=""),
    targetAudience: str = Form(default=""),
    services: str = Form(default=""),
    style: str = Form(default=STYLE_OPTIONS[0]),
    colorScheme: str = Form(default="Blue & White"),
) -> ProfileDraft:
    return ProfileDraft(
        businessName=businessName,
        businessType=businessType,
        businessDescription=businessDescription,
        targetAudience=targetAudience,
        services=services,
        style=style,
        colorScheme=colorScheme,
    )


def _render_questionnaire(
    request: Request,
    session: WizardSession,
    *,
    suggestion_error: Optional[str] = None,
    status_code: int = status.HTTP_200_OK,
) -> Response:
    response = templates.TemplateResponse(
        request,
        "questionnaire.html",
        {
            "profile": session.state.profile or ProfileDraft(),
            "error": session.state.error,
            "suggestion_error": suggestion_error,
            "style_options": STYLE_OPTIONS,
        },
        status_code=status_code,
    )
    return _remember(response, session)


@app.get("/", response_class=HTMLResponse)
async def index(request: Request, tab: str = "preview", missing: Optional[str] = None) -> Response:
    session = _peek(request)
    state = session.state

    if state.step == WizardStep.GENERATING:
        response = templates.TemplateResponse(request, "generating.html", {"profile": state.profile})
        return _remember(response, session)

    if state.step == WizardStep.RESULT and session.editor is not None:
        editor = session.editor
        response = templates.TemplateResponse(
            request,
            "result.html",
            {
                "tab": tab if tab in EDITABLE_FIELDS or tab == "images" else "preview",
                "editor": editor,
                "images": editor.images(),
                "result": state.result,
                "missing_image": missing,
                "downloads": list(EXPORT_FILES) + [ARCHIVE_FILENAME],
            },
        )
        return _remember(response, session)

    return _render_questionnaire(request, session)


@app.post("/suggest", response_class=HTMLResponse)
async def suggest(request: Request, draft: ProfileDraft = Depends(profile_form)) -> Response:
    session = _session(request)
    suggestion_error: Optional[str] = None

    if not draft.name.strip() or not draft.type.strip():
        suggestion_error = SUGGEST_NEEDS_NAME_AND_TYPE
    else:
        try:
            suggestions = await wizard_controller.service.suggest_content(draft.name, draft.type)
            draft = draft.with_suggestions(suggestions)
        except GenerationError as exc:
            logger.warning("Suggestion request failed session=%s: %s", session.id, exc)
            suggestion_error = SUGGEST_FAILED

    try:
        wizard_controller.keep_draft(session, draft, error=session.state.error)
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _render_questionnaire(request, session, suggestion_error=suggestion_error)


@app.post("/generate", response_class=HTMLResponse)
async def generate(request: Request, draft: ProfileDraft = Depends(profile_form)) -> Response:
    session = _session(request)

    try:
        profile = BusinessProfile.model_validate(draft.model_dump())
    except ValidationError:
        missing = ", ".join(draft.missing_fields())
        try:
            wizard_controller.keep_draft(session, draft, error=f"Please fill in all required fields: {missing}.")
        except InvalidTransition as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return _render_questionnaire(request, session, status_code=status.HTTP_400_BAD_REQUEST)

    try:
        state = await wizard_controller.submit(session, profile)
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    if state.step == WizardStep.RESULT:
        return _remember(RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER), session)
    return _render_questionnaire(request, session, status_code=status.HTTP_502_BAD_GATEWAY)


@app.post("/restart", response_class=HTMLResponse)
async def restart(request: Request) -> Response:
    session = _session(request)
    try:
        wizard_controller.reset(session)
    except InvalidTransition as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return _remember(RedirectResponse(url="/", status_code=status.HTTP_303_SEE_OTHER), session)


@app.get("/preview", response_class=HTMLResponse)
async def preview(request: Request) -> HTMLResponse:
    editor = _require_editor(_peek(request))
    # generated scripts run in an opaque origin, away from the session cookie
    return HTMLResponse(
        content=editor.preview_document(),
        headers={"Content-Security-Policy": "sandbox allow-scripts allow-forms allow-popups"},
    )


@app.post("/edit/{field}", response_class=HTMLResponse)
async def edit_code(request: Request, field: str, content: str = Form(default="")) -> Response:
    session = _peek(request)
    editor = _require_editor(session)
    if field not in EDITABLE_FIELDS:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown code field: {field}")

    # browsers submit textarea contents with CRLF line endings
    editor.update(field, content.replace("\r\n", "\n"))
    return _remember(RedirectResponse(url=f"/?tab={field}", status_code=status.HTTP_303_SEE_OTHER), session)


@app.post("/images/{image_id}", response_class=HTMLResponse)
async def replace_image(request: Request, image_id: str, file: UploadFile = File(...)) -> Response:
    session = _peek(request)
    editor = _require_editor(session)

    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Uploaded file is not an image: {content_type or 'unknown type'}",
        )
    contents = await file.read()
    new_src = f"data:{content_type};base64,{base64.b64encode(contents).decode('ascii')}"

    query = {"tab": "images"}
    if not editor.replace_image(image_id, new_src):
        query["missing"] = image_id
    return _remember(RedirectResponse(url=f"/?{urlencode(query)}", status_code=status.HTTP_303_SEE_OTHER), session)


@app.get("/download/{filename}")
async def download(request: Request, filename: str) -> Response:
    editor = _require_editor(_peek(request))
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if filename == ARCHIVE_FILENAME:
        return Response(content=editor.export_archive(), media_type="application/zip", headers=headers)
    try:
        artifact = editor.export(filename)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown export: {filename}") from exc
    return Response(content=artifact.content, media_type=artifact.media_type, headers=headers)


@app.post("/api/suggestions", response_model=ContentSuggestions)
async def api_suggestions(payload: SuggestionRequest) -> ContentSuggestions:
    try:
        return await wizard_controller.service.suggest_content(payload.name, payload.type)
    except GenerationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to generate suggestions: {exc}",
        ) from exc


@app.post("/api/sites", response_model=SiteGenerationResult)
async def api_generate_site(payload: BusinessProfile) -> SiteGenerationResult:
    try:
        return await wizard_controller.service.generate_site(payload)
    except GenerationError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to generate website code: {exc}",
        ) from exc


@app.get("/api/images", response_model=List[ImageSlot])
async def api_images(request: Request) -> List[ImageSlot]:
    return _require_editor(_peek(request)).images()


@app.get("/health")
async def health() -> dict:
    outcome = {
        "status": "ok",
        "gemini": "configured" if _settings.gemini_api_key else "missing-key",
    }
    logger.info("Health check result: %s", outcome)
    return outcome
