"""
Tests for the HTML fragments that are easiest to check in isolation.
"""

from datetime import date

import pytest

from campfinder.models.camp import AuthenticatedUser, Camp, Category
from campfinder.render import (
    local_path,
    login_href,
    oauth_authorize_urls,
    render_auth_callback,
    render_auth_links,
    render_camp_card,
    render_camp_detail,
    render_category_card,
    render_feedback_widget,
    short_description,
)

TODAY = date(2026, 3, 1)


class TestCampCard:
    def test_details_and_badges(self) -> None:
        camp = Camp(
            id="rec1", name="Kickoff Soccer", primary_category="Sports", age_min=6, age_max=12,
            cost_per_week=250, city="Springfield", has_after_care=True,
            registration_status="Coming Soon", registration_opens_date="2026-06-01",
        )

        html = render_camp_card(camp, today=TODAY)

        assert "badge-status-coming-soon" in html
        assert '<span class="detail-value">6-12</span>' in html
        assert '<span class="detail-value">$250</span>' in html
        assert '<span class="detail-value">Jun 1, 2026</span>' in html
        assert "After Care Available" in html
        assert 'href="/camps/rec1"' in html

    def test_missing_values_are_omitted(self) -> None:
        html = render_camp_card(Camp(id="rec2", name="Mystery Camp"), today=TODAY)

        assert "Ages:" not in html
        assert "Cost:" not in html
        assert "Registration:" not in html
        assert "badge-status-not-updated" in html
        assert ">General<" in html

    def test_cost_display_preferred(self) -> None:
        camp = Camp(id="rec3", name="Robots", cost_per_week=400, cost_display="$400/week")
        assert "$400/week" in render_camp_card(camp, today=TODAY)

    def test_saved_card_has_remove_form(self) -> None:
        html = render_camp_card(Camp(id="rec4", name="Saved"), is_saved=True, today=TODAY)
        assert 'action="/favorites/rec4/remove"' in html

    def test_text_is_escaped(self) -> None:
        camp = Camp(id="rec5", name="<script>alert(1)</script>", city='"Quoted"')
        html = render_camp_card(camp, today=TODAY)

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&quot;Quoted&quot;" in html


def test_short_description_truncates() -> None:
    camp = Camp(id="rec1", name="Long", description="x" * 200)
    assert short_description(camp) == "x" * 120 + "..."


def test_short_description_prefers_short_field() -> None:
    camp = Camp(id="rec1", name="Both", description="Long text", short_description="Short")
    assert short_description(camp) == "Short"


def test_category_card_uses_icon_map() -> None:
    html = render_category_card(Category(name="Music", camp_count=3))
    assert "🎵" in html
    assert "3 camps" in html
    assert 'href="/browse?category=Music"' in html


def test_category_card_default_icon() -> None:
    assert "🏕️" in render_category_card(Category(name="Robotics"))


class TestAuthLinks:
    def test_logged_out_links_back(self) -> None:
        html = render_auth_links(None, "/browse")
        assert 'href="/login?redirectTo=%2Fbrowse"' in html

    def test_logged_out_on_home(self) -> None:
        assert 'href="/login"' in render_auth_links(None, "/")

    def test_logged_in_shows_email(self) -> None:
        html = render_auth_links(AuthenticatedUser(sub="u", email="a&b@example.com"))
        assert "a&amp;b@example.com" in html
        assert 'href="/logout"' in html


def test_login_href() -> None:
    assert login_href() == "/login"
    assert login_href("/camps/rec1") == "/login?redirectTo=%2Fcamps%2Frec1"


class TestOAuth:
    def test_urls_per_provider(self) -> None:
        urls = oauth_authorize_urls("https://proj.supabase.co/", "https://camps.example.com", "/favorites")

        assert set(urls) == {"google", "facebook"}
        assert urls["google"].startswith("https://proj.supabase.co/auth/v1/authorize?provider=google&redirect_to=")
        assert "redirectTo%3D%252Ffavorites" in urls["google"]

    def test_no_supabase(self) -> None:
        assert oauth_authorize_urls(None, "https://camps.example.com", None) == {}

    def test_callback_script_escapes_target(self) -> None:
        html = render_auth_callback("/browse?q=</script>", "access_token")

        assert "</script>\"" not in html
        assert "\\u003c/script>" in html
        assert 'document.cookie = "access_token="' in html


class TestFeedbackWidget:
    def test_rating_choices_and_page(self) -> None:
        html = render_feedback_widget("/camps/rec1")

        for rating in range(1, 6):
            assert f'name="rating" value="{rating}"' in html
        assert 'name="suggestions"' in html
        assert 'name="page" value="/camps/rec1"' in html
        assert 'fetch("/api/feedback"' in html

    def test_page_value_is_escaped(self) -> None:
        html = render_feedback_widget('/browse?q="><script>')
        assert 'value="/browse?q=&quot;&gt;&lt;script&gt;"' in html

    def test_included_in_camp_detail(self) -> None:
        html = render_camp_detail(Camp(id="rec1", name="Camp"))
        assert 'id="feedback-button"' in html
        assert 'name="page" value="/camps/rec1"' in html


class TestLocalPath:
    @pytest.mark.parametrize("target", ["/", "/browse?city=Springfield", "/camps/rec1#top"])
    def test_local_paths_are_kept(self, target) -> None:
        assert local_path(target) == target

    @pytest.mark.parametrize("target", [
        None, "", "browse", "https://evil.example", "//evil.example",
        "/\\evil.example", "/\t/evil.example", "/\n/evil.example", "javascript:alert(1)",
    ])
    def test_other_targets_fall_back(self, target) -> None:
        assert local_path(target) == "/"

    def test_callback_with_backslash_target(self) -> None:
        html = render_auth_callback("/\\evil.example", "access_token")

        assert 'window.location.replace("/")' in html
        assert "evil.example" not in html
