import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Optional
from uuid import uuid4

from .config import get_settings
from .editor import ResultEditor
from .errors import GenerationError, InvalidTransition
from .generation import GenerationService, generation_service
from .schemas import BusinessProfile, ProfileDraft, SiteGenerationResult, WizardState, WizardStep

logger = logging.getLogger(__name__)

GENERATION_ERROR_TEMPLATE = "An error occurred while generating the website: {reason}. Please try again."
INCOMPLETE_CODE_REASON = "Received incomplete code from AI"
UNEXPECTED_ERROR_REASON = "Unexpected error"


@dataclass
class WizardSession:
    id: str
    state: WizardState = field(default_factory=WizardState)
    editor: Optional[ResultEditor] = None
    last_seen: float = 0.0


class WizardController:
    """
    questionnaire -> generating -> result, with
    generating -> questionnaire on any failure and result -> questionnaire on restart.

    Transitions are pure functions over WizardState; `submit` is the only
    method that touches a session or the generation service.
    """

    def __init__(self, service: Optional[GenerationService] = None) -> None:
        self.service = service or generation_service

    def start(self, state: WizardState, profile: BusinessProfile) -> WizardState:
        if state.step != WizardStep.QUESTIONNAIRE:
            raise InvalidTransition(f"Cannot start a generation from step '{state.step.value}'")
        return WizardState(step=WizardStep.GENERATING, profile=profile)

    def succeed(self, state: WizardState, result: SiteGenerationResult) -> WizardState:
        if state.step != WizardStep.GENERATING:
            raise InvalidTransition(f"No generation in progress (step '{state.step.value}')")
        return WizardState(step=WizardStep.RESULT, profile=state.profile, result=result)

    def fail(self, state: WizardState, reason: str) -> WizardState:
        if state.step != WizardStep.GENERATING:
            raise InvalidTransition(f"No generation in progress (step '{state.step.value}')")
        return WizardState(
            step=WizardStep.QUESTIONNAIRE,
            profile=state.profile,
            error=GENERATION_ERROR_TEMPLATE.format(reason=reason.rstrip(".")),
        )

    def restart(self, state: WizardState) -> WizardState:
        if state.step == WizardStep.GENERATING:
            raise InvalidTransition("Cannot start over while a generation is in progress")
        # keep the profile so the questionnaire is pre-filled
        return WizardState(step=WizardStep.QUESTIONNAIRE, profile=state.profile)

    async def submit(self, session: WizardSession, profile: BusinessProfile) -> WizardState:
        generating = self.start(session.state, profile)
        session.state = generating
        session.editor = None

        try:
            result = await self.service.generate_site(profile)
        except GenerationError as exc:
            logger.error("Site generation failed session=%s: %s", session.id, exc)
            session.state = self.fail(generating, str(exc))
            return session.state
        except Exception:
            logger.exception("Unexpected error during site generation session=%s", session.id)
            session.state = self.fail(generating, UNEXPECTED_ERROR_REASON)
            return session.state

        if not result.site.markup or not result.site.styles:
            logger.error("Site generation returned incomplete code session=%s", session.id)
            session.state = self.fail(generating, INCOMPLETE_CODE_REASON)
            return session.state

        session.state = self.succeed(generating, result)
        session.editor = ResultEditor(result.site)
        return session.state

    def reset(self, session: WizardSession) -> WizardState:
        session.state = self.restart(session.state)
        session.editor = None
        return session.state

    def keep_draft(self, session: WizardSession, draft: ProfileDraft, *, error: Optional[str] = None) -> WizardState:
        """Store questionnaire input without leaving the questionnaire."""
        if session.state.step != WizardStep.QUESTIONNAIRE:
            raise InvalidTransition(f"Questionnaire is not active (step '{session.state.step.value}')")
        session.state = session.state.model_copy(update={"profile": draft, "error": error})
        return session.state


class SessionStore:
    """
    In-memory wizard sessions keyed by cookie value (not a database).

    Sessions are kept in least-recently-used order. A session idle for longer
    than `ttl` seconds is dropped, and the least recently used ones are
    evicted once more than `max_sessions` are held.
    """

    def __init__(
        self,
        max_sessions: int = 200,
        ttl: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max_sessions
        self.ttl = ttl
        self._clock = clock
        self._sessions: "OrderedDict[str, WizardSession]" = OrderedDict()
        self._lock = Lock()

    def _touch(self, session: WizardSession, now: float) -> WizardSession:
        session.last_seen = now
        self._sessions.move_to_end(session.id)
        return session

    def _prune(self, now: float) -> None:
        while self._sessions:
            oldest = next(iter(self._sessions.values()))
            expired = now - oldest.last_seen > self.ttl
            if not expired and len(self._sessions) <= self.max_sessions:
                break
            self._sessions.popitem(last=False)
            logger.info("Wizard session evicted id=%s expired=%s", oldest.id, expired)

    def get_or_create(self, session_id: Optional[str]) -> WizardSession:
        with self._lock:
            now = self._clock()
            self._prune(now)
            if session_id and session_id in self._sessions:
                return self._touch(self._sessions[session_id], now)
            session = WizardSession(id=str(uuid4()), last_seen=now)
            self._sessions[session.id] = session
            self._prune(now)
            logger.info("Wizard session created id=%s", session.id)
            return session

    def get(self, session_id: Optional[str]) -> Optional[WizardSession]:
        """Look up a session without creating one."""
        if not session_id:
            return None
        with self._lock:
            now = self._clock()
            self._prune(now)
            session = self._sessions.get(session_id)
            if session is None:
                return None
            return self._touch(session, now)

    def __len__(self) -> int:
        return len(self._sessions)


wizard_controller = WizardController()
session_store = SessionStore(
    max_sessions=get_settings().max_sessions,
    ttl=get_settings().session_ttl_seconds,
)
