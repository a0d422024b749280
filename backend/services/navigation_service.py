"""Admin sidebar sections."""

from typing import Dict, List, NamedTuple, Optional


class NavLink(NamedTuple):
    href: str
    label_key: str
    icon: str


ADMIN_TITLE_KEY = "common.adminTitle"

ADMIN_NAV_LINKS = (
    NavLink("/admin/settings", "common.storeSettings", "settings"),
    NavLink("/admin/products", "common.productManagement", "package"),
    NavLink("/admin/orders", "common.ordersRefunds", "credit-card"),
    NavLink("/admin/refunds", "common.refundRequests", "rotate-ccw"),
    NavLink("/admin/categories", "common.categoriesManage", "tags"),
    NavLink("/admin/users", "common.customers", "users"),
    NavLink("/admin/reviews", "common.reviews", "star"),
    NavLink("/admin/announcement", "announcement.title", "megaphone"),
    NavLink("/admin/data", "common.dataExport", "download"),
    NavLink("/admin/collect", "payment.adminMenu", "qr-code"),
    NavLink("/admin/notifications", "admin.settings.notifications.title", "bell"),
)


def build_navigation(username: Optional[str]) -> Dict[str, object]:
    links: List[Dict[str, str]] = [link._asdict() for link in ADMIN_NAV_LINKS]
    return {
        "title_key": ADMIN_TITLE_KEY,
        "links": links,
        "logged_in_as": username or "",
        "logout": {"label_key": "common.logout", "callback_url": "/"},
    }
