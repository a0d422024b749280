"""Interaction state of the admin customers page.

``UsersPanel`` models what the page does between requests: which page and
search term are shown, whether the points editor is open and what was typed
into it, and the notices raised by the last save. Data access goes through two
callables so the same panel drives the HTTP client, the CLI or a test double.
"""

import enum
import math
from typing import Any, Callable, Dict, List, NamedTuple, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from infra.cache_manager import cache_get, cache_set, publish_change
from schemas import PointsUpdatePayload
from security import CallerIdentity
from services import admin_service

logger = structlog.get_logger("shopdesk.users_panel")

FetchPage = Callable[[int, str], Dict[str, Any]]
SavePoints = Callable[[str, int], Any]


class PanelState(str, enum.Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    SAVING = "saving"


class Notice(NamedTuple):
    level: str
    message: str


class UsersPanel:
    def __init__(
        self,
        fetch_page: FetchPage,
        save_points: SavePoints,
        *,
        page: int = 1,
        query: str = "",
    ):
        self._fetch_page = fetch_page
        self._save_points = save_points
        self.page = max(int(page), 1)
        self.query = (query or "").strip()
        self.state = PanelState.VIEWING
        self.data: Dict[str, Any] = {}
        self.editing_user: Optional[Dict[str, Any]] = None
        self.draft = ""
        self.notices: List[Notice] = []
        self.refresh()

    @classmethod
    def for_service(
        cls,
        identity: CallerIdentity,
        *,
        page_size: int = admin_service.DEFAULT_PAGE_SIZE,
        admin_usernames=(),
        cache_ttl: int = 0,
        **kwargs,
    ) -> "UsersPanel":
        """Build a panel wired straight to the admin service (needs an app context)."""

        def fetch_page(page: int, query: str) -> Dict[str, Any]:
            return admin_service.list_users(
                identity,
                page=page,
                page_size=page_size,
                q=query,
                admin_usernames=admin_usernames,
                cache_get=cache_get,
                cache_set=cache_set,
                cache_ttl=cache_ttl,
            )

        def save_points(user_id: str, points: int) -> Any:
            return admin_service.save_user_points(
                identity,
                user_id,
                points,
                admin_usernames=admin_usernames,
                notify_change_cb=publish_change,
            )

        return cls(fetch_page, save_points, **kwargs)

    @property
    def items(self) -> List[Dict[str, Any]]:
        return list(self.data.get("items") or [])

    @property
    def total_pages(self) -> int:
        page_size = int(self.data.get("page_size") or 0)
        if page_size <= 0:
            return 0
        return math.ceil(int(self.data.get("total") or 0) / page_size)

    def refresh(self) -> None:
        self.data = self._fetch_page(self.page, self.query)

    def search(self, term: str) -> None:
        self.query = (term or "").strip()
        self.page = 1
        self.refresh()

    def change_page(self, page: int) -> None:
        self.page = max(int(page), 1)
        self.refresh()

    def open_edit(self, user: Dict[str, Any]) -> None:
        if self.state is PanelState.SAVING:
            return
        self.editing_user = dict(user)
        self.draft = str(user.get("points", 0))
        self.state = PanelState.EDITING

    def set_draft(self, value: str) -> None:
        if self.state is PanelState.EDITING:
            self.draft = value

    def cancel(self) -> None:
        if self.state is not PanelState.EDITING:
            return
        self.editing_user = None
        self.draft = ""
        self.state = PanelState.VIEWING

    def save(self) -> bool:
        """Submit the draft; return True once the new balance is stored."""
        if self.state is not PanelState.EDITING or self.editing_user is None:
            return False
        try:
            points = PointsUpdatePayload.model_validate({"points": self.draft}).points
        except PydanticValidationError:
            return False

        user_id = self.editing_user["user_id"]
        self.state = PanelState.SAVING
        try:
            self._save_points(user_id, points)
        except Exception as exc:
            message = getattr(exc, "message", None) or str(exc) or "common.error"
            logger.warning("users_panel.save_failed", user_id=user_id, error=message)
            self.notices.append(Notice("error", message))
            self.state = PanelState.EDITING
            return False

        self.notices.append(Notice("success", "common.success"))
        self.editing_user = None
        self.draft = ""
        self.state = PanelState.VIEWING
        self.refresh()
        return True
