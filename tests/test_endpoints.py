"""
Tests for the Airtable proxy, the camp JSON API and the rendered pages.
"""

import pytest
from fastapi.testclient import TestClient

from campfinder.api.endpoints import create_app

from conftest import FakeUpstream, camp_record


class TestAirtableProxy:
    def test_returns_all_pages(self, client, upstream) -> None:
        response = client.get("/api/airtable", params={"table": "Camps"})

        assert response.status_code == 200
        assert [r["id"] for r in response.json()["records"]] == ["recSoccer", "recRobots", "recArt"]
        assert len(upstream.table_requests("Camps")) == 2

    def test_defaults_to_camps(self, client) -> None:
        response = client.get("/api/airtable")
        assert len(response.json()["records"]) == 3

    def test_empty_table_defaults_to_camps(self, client) -> None:
        response = client.get("/api/airtable", params={"table": ""})

        assert response.status_code == 200
        assert len(response.json()["records"]) == 3

    def test_categories_table(self, client) -> None:
        response = client.get("/api/airtable", params={"table": "Categories"})
        assert response.json() == {"records": []}

    def test_table_not_allowed(self, client, upstream) -> None:
        response = client.get("/api/airtable", params={"table": "Feedback"})

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid table name"}
        assert upstream.requests == []

    def test_upstream_status_is_forwarded(self, client, upstream) -> None:
        upstream.fail_status = 429

        response = client.get("/api/airtable", params={"table": "Camps"})

        assert response.status_code == 429
        assert response.json() == {"error": "Airtable API error: 429"}

    def test_missing_configuration_checked_first(self, settings, upstream) -> None:
        settings.airtable_base_id = None
        with TestClient(create_app(settings, transport=upstream.transport)) as unconfigured:
            response = unconfigured.get("/api/airtable", params={"table": "Nope"})

        assert response.status_code == 500
        assert response.json() == {"error": "Server configuration error"}


class TestCampApi:
    def test_list_all(self, client) -> None:
        camps = client.get("/api/camps").json()
        assert [c["id"] for c in camps] == ["recSoccer", "recRobots", "recArt"]

    def test_filters_are_applied(self, client) -> None:
        camps = client.get("/api/camps", params={"city": "Springfield", "age": "5"}).json()
        assert [c["id"] for c in camps] == ["recArt"]

    def test_search_and_after_care(self, client) -> None:
        camps = client.get("/api/camps", params={"q": "swim", "after_care": "true"}).json()
        assert [c["id"] for c in camps] == ["recSoccer"]

    def test_unusable_numbers_are_ignored(self, client) -> None:
        camps = client.get("/api/camps", params={"age": "abc", "max_price": ""}).json()
        assert len(camps) == 3

    def test_missing_cost_passes_price_filter(self, client) -> None:
        camps = client.get("/api/camps", params={"max_price": "300"}).json()
        assert [c["id"] for c in camps] == ["recSoccer", "recArt"]

    def test_status_is_resolved(self, client) -> None:
        camps = {c["id"]: c for c in client.get("/api/camps").json()}

        # Stored "Coming Soon" with an opening date already in the past
        assert camps["recSoccer"]["registration_status"] == "Open Now"
        assert camps["recSoccer"]["registration_date"] == "Feb 2, 2026 at 7am"
        assert camps["recArt"]["registration_status"] == "Not Updated"
        assert camps["recRobots"]["registration_status"] == "Not Updated"
        assert camps["recRobots"]["registration_date"] is None

    def test_camp_detail(self, client) -> None:
        camp = client.get("/api/camps/recRobots").json()
        assert camp["name"] == "Robot Builders"
        assert camp["cost_display"] == "$400/week"

    def test_camp_not_found(self, client) -> None:
        response = client.get("/api/camps/recMissing")
        assert response.status_code == 404
        assert response.json() == {"detail": "Camp not found"}

    def test_cities(self, client) -> None:
        assert client.get("/api/cities").json() == ["Shelbyville", "Springfield"]

    def test_categories_derived_from_camps(self, client) -> None:
        categories = {c["name"]: c["camp_count"] for c in client.get("/api/categories").json()}
        assert categories == {"Sports": 1, "STEM": 1, "Arts & Crafts": 1}

    def test_categories_table_is_preferred(self, settings) -> None:
        upstream = FakeUpstream(categories=[camp_record("recCat", **{"Category Name": "Music", "Camp Count": 7})])
        with TestClient(create_app(settings, transport=upstream.transport)) as test_client:
            categories = test_client.get("/api/categories").json()

        assert [(c["name"], c["camp_count"]) for c in categories] == [("Music", 7)]

    def test_one_upstream_cycle_serves_many_requests(self, client, upstream) -> None:
        client.get("/api/camps")
        client.get("/api/cities")
        client.get("/browse")
        client.get("/camps/recSoccer")

        assert len(upstream.table_requests("Camps")) == 2

    def test_health(self, client) -> None:
        assert client.get("/health").json()["status"] == "healthy"


class TestPages:
    def test_homepage(self, client) -> None:
        response = client.get("/")

        assert response.status_code == 200
        html = response.text
        assert '<span id="total-camps">3</span>' in html
        assert '<span id="age-range">4-14</span>' in html
        assert '<span id="price-range">$250-$400</span>' in html
        assert "Kickoff Soccer Camp" in html
        assert "/browse?category=Arts+%26+Crafts" in html

    def test_homepage_without_data(self, settings) -> None:
        upstream = FakeUpstream()
        upstream.fail_status = 500
        with TestClient(create_app(settings, transport=upstream.transport)) as test_client:
            html = test_client.get("/").text

        assert "Unable to load camps" in html
        assert '<span id="age-range">N/A</span>' in html

    def test_browse_filters_and_count(self, client) -> None:
        html = client.get("/browse", params={"city": "Springfield"}).text

        assert "2 camps found" in html
        assert "Kickoff Soccer Camp" in html
        assert "Robot Builders" not in html
        assert '<option value="Springfield" selected>' in html

    def test_browse_seeded_from_homepage_search(self, client) -> None:
        html = client.get("/browse", params={"q": "robot"}).text

        assert "1 camp found" in html
        assert 'value="robot"' in html

    def test_browse_no_results(self, client) -> None:
        html = client.get("/browse", params={"q": "underwater basket weaving"}).text

        assert "No camps found" in html
        assert 'id="browse-no-results"' in html

    def test_detail_escapes_airtable_text(self, client) -> None:
        html = client.get("/camps/recArt").text

        assert "&lt;b&gt;sculpture&lt;/b&gt;" in html
        assert "<b>sculpture</b>" not in html

    def test_detail_page(self, client) -> None:
        html = client.get("/camps/recSoccer").text

        assert "Kickoff Soccer Camp" in html
        assert "Feb 2, 2026 at 7am" in html
        assert "badge-status-open" in html
        assert "Log in to save favorites" in html
        assert 'class="camp-activity-pill">Swimming<' in html

    def test_every_page_offers_feedback(self, client) -> None:
        for path in ("/", "/browse", "/camps/recSoccer", "/favorites", "/login"):
            html = client.get(path).text
            assert 'id="feedback-form"' in html
            assert f'name="page" value="{path}"' in html

    def test_feedback_from_a_page_reaches_the_feedback_table(self, client, upstream) -> None:
        response = client.post(
            "/api/feedback", json={"rating": 4, "suggestions": "More STEM camps", "page": "/camps/recSoccer"}
        )

        assert response.status_code == 200
        assert upstream.created[0]["fields"]["Page"] == "/camps/recSoccer"

    def test_detail_not_found(self, client) -> None:
        response = client.get("/camps/recMissing")

        assert response.status_code == 404
        assert "We couldn't find that camp" in response.text

    def test_detail_shows_favorite_toggle(self, client, auth_headers) -> None:
        html = client.get("/camps/recSoccer", headers=auth_headers).text
        assert 'action="/favorites/recSoccer/add"' in html

        client.post("/api/favorites/recSoccer", headers=auth_headers)
        html = client.get("/camps/recSoccer", headers=auth_headers).text
        assert 'action="/favorites/recSoccer/remove"' in html


class TestFavoritesPage:
    def test_logged_out(self, client) -> None:
        html = client.get("/favorites").text
        assert 'id="favorites-login-prompt"' in html

    def test_empty(self, client, auth_headers) -> None:
        html = client.get("/favorites", headers=auth_headers).text
        assert 'id="favorites-empty-state"' in html

    def test_saved_and_unavailable(self, client, auth_headers) -> None:
        client.post("/api/favorites/recRobots", headers=auth_headers)
        client.post("/api/favorites/recGone", headers=auth_headers)

        html = client.get("/favorites", headers=auth_headers).text

        assert "Robot Builders" in html
        assert "Camp no longer available" in html
        assert 'action="/favorites/recGone/remove"' in html


class TestFavoriteForms:
    def test_logged_out_redirects_to_login(self, client) -> None:
        response = client.post("/favorites/recSoccer/add", follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/login?redirectTo=%2Fcamps%2FrecSoccer"

    def test_add_then_back_to_referer(self, client, auth_headers) -> None:
        headers = dict(auth_headers, Referer="http://testserver/browse?city=Springfield")
        response = client.post("/favorites/recSoccer/add", headers=headers, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == "/browse?city=Springfield"
        assert client.get("/api/favorites", headers=auth_headers).json()["camp_ids"] == ["recSoccer"]

    def test_remove(self, client, auth_headers) -> None:
        client.post("/api/favorites/recSoccer", headers=auth_headers)
        client.post("/favorites/recSoccer/remove", headers=auth_headers, follow_redirects=False)

        assert client.get("/api/favorites", headers=auth_headers).json()["camp_ids"] == []

    def test_foreign_referer_is_ignored(self, client, auth_headers) -> None:
        headers = dict(auth_headers, Referer="https://evil.example.com/")
        response = client.post("/favorites/recSoccer/add", headers=headers, follow_redirects=False)
        assert response.headers["location"] == "/camps/recSoccer"

    def test_same_origin_referer_with_double_slash_is_ignored(self, client, auth_headers) -> None:
        headers = dict(auth_headers, Referer="http://testserver//evil.example.com/")
        response = client.post("/favorites/recSoccer/add", headers=headers, follow_redirects=False)
        assert response.headers["location"] == "/camps/recSoccer"

    def test_unknown_action(self, client, auth_headers) -> None:
        response = client.post("/favorites/recSoccer/star", headers=auth_headers, follow_redirects=False)
        assert response.status_code == 404


class TestAuthPages:
    def test_login_lists_providers(self, client) -> None:
        html = client.get("/login", params={"redirectTo": "/favorites"}).text

        assert "https://proj.supabase.co/auth/v1/authorize?provider=google" in html
        assert "Continue with Facebook" in html

    def test_callback_only_redirects_locally(self, client) -> None:
        html = client.get("/auth/callback", params={"redirectTo": "https://evil.example.com"}).text

        assert 'window.location.replace("/")' in html
        assert "evil.example.com" not in html

    @pytest.mark.parametrize("target", ["/\\evil.example", "//evil.example", "/\t/evil.example", "/\\/evil.example"])
    def test_callback_rejects_paths_browsers_read_as_hosts(self, client, target) -> None:
        html = client.get("/auth/callback", params={"redirectTo": target}).text

        assert 'window.location.replace("/")' in html
        assert "evil.example" not in html

    def test_callback_keeps_local_target(self, client) -> None:
        html = client.get("/auth/callback", params={"redirectTo": "/browse?city=Springfield"}).text
        assert 'window.location.replace("/browse?city=Springfield")' in html

    def test_logout_clears_cookie(self, client) -> None:
        response = client.get("/logout", follow_redirects=False)

        assert response.status_code == 303
        assert "access_token=" in response.headers["set-cookie"]
