from services.navigation_service import ADMIN_NAV_LINKS


def test_navigation_lists_sections_for_admin(client, admin_headers):
    resp = client.get("/admin/navigation", headers=admin_headers)
    assert resp.status_code == 200
    body = resp.get_json()

    assert body["logged_in_as"] == "root"
    assert body["title_key"] == "common.adminTitle"
    hrefs = [link["href"] for link in body["links"]]
    assert hrefs == [link.href for link in ADMIN_NAV_LINKS]
    customers = next(link for link in body["links"] if link["href"] == "/admin/users")
    assert customers["label_key"] == "common.customers"


def test_navigation_forbidden_for_customer(client, customer_headers):
    resp = client.get("/admin/navigation", headers=customer_headers)
    assert resp.status_code == 403
