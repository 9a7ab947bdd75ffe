"""Per-user session context: working memory, in-flight actions and free-tier quota.

The context is passed explicitly to whoever needs it. It is created with
``init`` when a user signs in and cleared with ``teardown`` on sign-out. The
tree and deck modules never see it.
"""

import os
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from dotenv import load_dotenv

from flashcards.deck import FlashcardDeck
from mindmap.gestures import GestureTracker
from mindmap.model import HierarchyDocument
from mindmap.view import InteractiveTreeView

load_dotenv()

FREE_ATTEMPTS = int(os.getenv("FREE_ATTEMPTS", "3"))
PRO_PLAN = "pro"
FREE_PLAN = "free"


class SessionNotFoundError(KeyError):
    pass


class ActionInProgressError(RuntimeError):
    """A generation for the same action is already running in this session."""


class QuotaExceededError(RuntimeError):
    """Free plan used up its attempts."""


class SessionContext:
    def __init__(self, session_id: str):
        self.session_id = session_id
        self.active = False
        self.user_id: Optional[str] = None
        self.email: Optional[str] = None
        self.plan = FREE_PLAN
        self.attempts = 0
        self._reset_working_memory()

    def _reset_working_memory(self):
        self.summary: Optional[str] = None
        self.summary_title: Optional[str] = None
        self.concept_map: Optional[HierarchyDocument] = None
        self.document: Optional[HierarchyDocument] = None
        self.view: Optional[InteractiveTreeView] = None
        self.gestures: Optional[GestureTracker] = None
        self.deck: Optional[FlashcardDeck] = None
        self.in_flight = set()

    def init(self, user_id: str, email: Optional[str] = None, plan: str = FREE_PLAN, attempts: int = 0):
        self.user_id = user_id
        self.email = email
        self.plan = plan or FREE_PLAN
        self.attempts = attempts or 0
        self._reset_working_memory()
        self.active = True
        return self

    def teardown(self):
        self._reset_working_memory()
        self.user_id = None
        self.email = None
        self.plan = FREE_PLAN
        self.attempts = 0
        self.active = False

    @property
    def is_pro(self) -> bool:
        return self.plan == PRO_PLAN

    @property
    def attempts_left(self) -> Optional[int]:
        if self.is_pro:
            return None
        return max(0, FREE_ATTEMPTS - self.attempts)

    def check_quota(self):
        if not self.is_pro and self.attempts >= FREE_ATTEMPTS:
            raise QuotaExceededError(
                f"You have used your {FREE_ATTEMPTS} free summaries. Upgrade to Pro to keep going."
            )

    @contextmanager
    def begin(self, action: str) -> Iterator[None]:
        """Gate re-entrant triggers of the same generation action."""
        if action in self.in_flight:
            raise ActionInProgressError(f"A '{action}' generation is already in progress.")
        self.in_flight.add(action)
        try:
            yield
        finally:
            self.in_flight.discard(action)

    # Commits below run only after a generation succeeded.

    def commit_summary(self, summary: str, title: str):
        self.summary = summary
        self.summary_title = title
        self.concept_map = None
        self.document = None
        self.view = None
        self.gestures = None
        self.deck = None

    def commit_document(self, document: HierarchyDocument, orientation: str = "horizontal",
                        camera=None, open_ids=None):
        view = InteractiveTreeView(document, camera=camera, open_ids=open_ids, orientation=orientation)
        self.document = document
        self.view = view
        self.gestures = GestureTracker(view)

    def commit_deck(self, deck: FlashcardDeck):
        self.deck = deck


class SessionRegistry:
    """In-memory session contexts keyed by session id."""

    def __init__(self):
        self._sessions: Dict[str, SessionContext] = {}

    def create(self, user_id: str, email: Optional[str] = None, plan: str = FREE_PLAN,
               attempts: int = 0) -> SessionContext:
        session = SessionContext(str(uuid.uuid4()))
        session.init(user_id, email=email, plan=plan, attempts=attempts)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> SessionContext:
        session = self._sessions.get(session_id)
        if session is None or not session.active:
            raise SessionNotFoundError(session_id)
        return session

    def end(self, session_id: str):
        session = self._sessions.pop(session_id, None)
        if session is None:
            raise SessionNotFoundError(session_id)
        session.teardown()

    def for_user(self, user_id: str):
        return [s for s in self._sessions.values() if s.user_id == user_id]

    def __len__(self) -> int:
        return len(self._sessions)
