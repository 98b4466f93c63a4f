"""
HTML rendering for the public pages.

Every value that comes from Airtable or the request is escaped here; callers
pass plain models and strings.
"""
import json
from datetime import date
from html import escape
from typing import Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote, urlencode, urlsplit

from campfinder.config import OAUTH_PROVIDERS
from campfinder.filters import results_count_text
from campfinder.models.camp import AuthenticatedUser, Camp, Category, FilterSpec
from campfinder.registration import (
    compute_registration_status, format_registration_date, status_badge_class
)

SITE_NAME = "CampFinder"

CATEGORY_ICONS = {
    "Sports": "⚽",
    "Arts & Crafts": "🎨",
    "STEM": "🧪",
    "Nature & Outdoor": "🌲",
    "Farm & Animals": "🐄",
    "Music": "🎵",
    "Academic": "📚",
    "General/Mixed": "⭐",
}
DEFAULT_CATEGORY_ICON = "🏕️"

SHORT_DESCRIPTION_LENGTH = 120


def _e(value) -> str:
    return escape("" if value is None else str(value))


def login_href(redirect_to: Optional[str] = None) -> str:
    if not redirect_to:
        return "/login"
    return f"/login?{urlencode({'redirectTo': redirect_to})}"


def render_auth_links(user: Optional[AuthenticatedUser], current_path: str = "/") -> str:
    if user is not None:
        return (
            f'<span class="nav-auth-email">{_e(user.email or "Signed in")}</span>'
            '<a href="/logout" class="auth-logout nav-auth-link">Log out</a>'
        )
    redirect = current_path if current_path not in ("/", "/login") else None
    return f'<a href="{_e(login_href(redirect))}">Log in</a>'


def render_feedback_widget(current_path: str = "/") -> str:
    """
    Feedback button and form shown on every page. The form posts JSON to
    /api/feedback and reports the result inline.
    """
    ratings = "".join(
        f'<label class="rating-btn"><input type="radio" name="rating" value="{n}" required /> {n}</label>'
        for n in range(1, 6)
    )
    return f"""
    <details id="feedback-widget" class="feedback-widget">
        <summary id="feedback-button">Feedback</summary>
        <form id="feedback-form">
            <p>How useful is this site?</p>
            <div class="feedback-rating">{ratings}</div>
            <textarea id="feedback-suggestions" name="suggestions" rows="3" placeholder="Suggestions (optional)"></textarea>
            <input type="hidden" name="page" value="{_e(current_path)}" />
            <button type="submit" id="feedback-submit">Submit Feedback</button>
            <p id="feedback-success" hidden>Thanks for your feedback!</p>
            <p id="feedback-error" hidden></p>
        </form>
    </details>
    <script>
        (function () {{
            var form = document.getElementById("feedback-form");
            var success = document.getElementById("feedback-success");
            var error = document.getElementById("feedback-error");
            var submit = document.getElementById("feedback-submit");
            form.addEventListener("submit", function (event) {{
                event.preventDefault();
                var rating = form.querySelector("input[name=rating]:checked");
                success.hidden = true;
                error.hidden = true;
                if (!rating) {{
                    error.textContent = "Please select a rating";
                    error.hidden = false;
                    return;
                }}
                submit.disabled = true;
                fetch("/api/feedback", {{
                    method: "POST",
                    headers: {{"Content-Type": "application/json"}},
                    body: JSON.stringify({{
                        rating: Number(rating.value),
                        suggestions: form.elements.suggestions.value,
                        page: form.elements.page.value
                    }})
                }}).then(function (response) {{
                    if (!response.ok) {{
                        throw new Error("Feedback failed: " + response.status);
                    }}
                    form.reset();
                    success.hidden = false;
                }}).catch(function () {{
                    error.textContent = "Failed to submit feedback. Please try again later.";
                    error.hidden = false;
                }}).then(function () {{
                    submit.disabled = false;
                }});
            }});
        }})();
    </script>"""


def render_page(title: str, body: str, user: Optional[AuthenticatedUser] = None, current_path: str = "/") -> str:
    """
    Wrap page content in the shared layout
    """
    page_title = f"{title} | {SITE_NAME}" if title else SITE_NAME
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{_e(page_title)}</title>
</head>
<body>
    <nav class="site-nav">
        <a href="/" class="nav-logo">{SITE_NAME}</a>
        <a href="/browse">Browse Camps</a>
        <a href="/favorites">My Favorites</a>
        <div id="nav-auth">{render_auth_links(user, current_path)}</div>
    </nav>
    <main>
{body}
    </main>
{render_feedback_widget(current_path)}
    <footer class="site-footer">
        <p>&copy; {date.today().year} {SITE_NAME}</p>
    </footer>
</body>
</html>"""


def short_description(camp: Camp) -> str:
    if camp.short_description:
        return camp.short_description
    if camp.description:
        return camp.description[:SHORT_DESCRIPTION_LENGTH] + "..."
    return ""


def render_status_badge(camp: Camp, today: Optional[date] = None) -> str:
    status = compute_registration_status(camp, today)
    return f'<span class="badge {status_badge_class(status)}">{_e(status.value)}</span>'


def render_camp_card(camp: Camp, is_saved: bool = False, today: Optional[date] = None) -> str:
    details = [
        ("Ages", camp.age_text),
        ("Cost", camp.cost_text),
        ("Location", camp.city),
    ]
    registration = format_registration_date(camp.registration_opens_date, camp.registration_opens_time)
    if registration:
        details.append(("Registration", registration))

    details_html = "".join(
        f"""
            <div class="camp-detail-item">
                <span class="detail-label">{label}:</span>
                <span class="detail-value">{_e(value)}</span>
            </div>"""
        for label, value in details if value
    )
    after_care = '<div class="badge">✓ After Care Available</div>' if camp.has_after_care else ""
    saved = f"""
        <form method="post" action="/favorites/{quote(camp.id)}/remove" class="camp-card-remove">
            <button type="submit" class="btn-secondary">Remove from favorites</button>
        </form>""" if is_saved else ""

    return f"""
    <div class="camp-card" data-camp-id="{_e(camp.id)}">
        <div class="camp-card-top">
            <span class="camp-category">{_e(camp.primary_category or "General")}</span>
            {render_status_badge(camp, today)}
        </div>
        <h3 class="camp-name">{_e(camp.name)}</h3>
        <p class="camp-short-desc">{_e(short_description(camp))}</p>
        <div class="camp-details">{details_html}
        </div>
        {after_care}
        <a href="/camps/{quote(camp.id)}" class="btn-view-details">View Details</a>{saved}
    </div>"""


def render_unavailable_card(camp_id: str) -> str:
    return f"""
    <div class="camp-card camp-card-unavailable">
        <div class="camp-card-unavailable-content">
            <h3 class="camp-name">Camp no longer available</h3>
            <p>This camp has been removed from our listings.</p>
            <form method="post" action="/favorites/{quote(camp_id)}/remove">
                <button type="submit" class="btn-remove-unavailable btn-secondary">Remove from favorites</button>
            </form>
        </div>
    </div>"""


def render_category_card(category: Category) -> str:
    icon = category.icon or CATEGORY_ICONS.get(category.name, DEFAULT_CATEGORY_ICON)
    href = f"/browse?{urlencode({'category': category.name})}"
    return f"""
    <a class="category-card" href="{_e(href)}">
        <div class="category-icon">{_e(icon)}</div>
        <h3 class="category-name">{_e(category.name)}</h3>
        <p class="category-count">{category.camp_count} camps</p>
    </a>"""


def render_homepage(
    stats: Dict[str, object],
    categories: Sequence[Category],
    featured: Sequence[Camp],
    user: Optional[AuthenticatedUser] = None,
) -> str:
    categories_html = "".join(render_category_card(category) for category in categories)
    featured_html = "".join(render_camp_card(camp) for camp in featured)
    if not featured:
        featured_html = '<p class="loading">Unable to load camps. Please refresh the page.</p>'

    body = f"""
    <section class="hero">
        <h1>Find the perfect summer camp</h1>
        <form method="get" action="/browse" class="homepage-search">
            <input type="search" id="homepage-search" name="q" placeholder="Search camps, activities, cities" />
            <label><input type="checkbox" id="homepage-aftercare" name="after_care" value="true" /> After care</label>
            <button type="submit" id="homepage-search-btn">Search</button>
        </form>
        <div class="stats">
            <div class="stat"><span id="total-camps">{_e(stats["total_camps"])}</span> camps</div>
            <div class="stat">Ages <span id="age-range">{_e(stats["age_range"])}</span></div>
            <div class="stat"><span id="price-range">{_e(stats["price_range"])}</span> per week</div>
        </div>
    </section>
    <section>
        <h2>Browse by category</h2>
        <div id="categories-grid" class="categories-grid">{categories_html}
        </div>
    </section>
    <section>
        <h2>Featured camps</h2>
        <div id="featured-camps" class="camps-grid">{featured_html}
        </div>
    </section>"""
    return render_page("", body, user, "/")


def _options(values: Iterable[str], selected: Optional[str], all_label: str) -> str:
    options = [f'<option value="all">{_e(all_label)}</option>']
    for value in values:
        marker = " selected" if value == selected else ""
        options.append(f'<option value="{_e(value)}"{marker}>{_e(value)}</option>')
    return "".join(options)


def render_browse_page(
    camps: Sequence[Camp],
    spec: FilterSpec,
    cities: Sequence[str],
    categories: Sequence[str],
    user: Optional[AuthenticatedUser] = None,
) -> str:
    age_value = "" if spec.age is None else str(spec.age)
    price_value = "" if spec.max_price is None else f"{spec.max_price:g}"
    checked = " checked" if spec.after_care else ""
    cards = "".join(render_camp_card(camp) for camp in camps)
    no_results = "" if camps else """
        <div id="browse-no-results" class="no-results">
            <p>No camps match your filters.</p>
            <a href="/browse" class="btn-secondary">Clear filters</a>
        </div>"""

    body = f"""
    <h1>Browse Camps</h1>
    <form method="get" action="/browse" class="browse-filters">
        <input type="search" id="browse-search" name="q" value="{_e(spec.search_query)}" placeholder="Search" />
        <input type="number" id="browse-age" name="age" min="0" value="{_e(age_value)}" placeholder="Age" />
        <input type="number" id="browse-max-price" name="max_price" min="0" value="{_e(price_value)}" placeholder="Max price per week" />
        <select id="browse-city" name="city">{_options(cities, spec.city, "All cities")}</select>
        <select id="browse-category" name="category">{_options(categories, spec.category, "All categories")}</select>
        <label><input type="checkbox" id="browse-aftercare" name="after_care" value="true"{checked} /> After care</label>
        <button type="submit">Apply</button>
        <a href="/browse" id="browse-clear">Clear all</a>
    </form>
    <p id="browse-results-count">{results_count_text(len(camps))}</p>
    <div id="browse-results" class="camps-grid">{cards}
    </div>{no_results}"""
    return render_page("Browse Camps", body, user, "/browse")


def _section(title: str, content: str) -> str:
    return f"""
    <section class="camp-detail-section">
        <h2>{title}</h2>
        {content}
    </section>"""


def render_camp_detail(
    camp: Camp,
    is_saved: bool = False,
    user: Optional[AuthenticatedUser] = None,
    today: Optional[date] = None,
) -> str:
    """
    Full detail page for one camp
    """
    path = f"/camps/{quote(camp.id)}"
    location = None
    if camp.city:
        location = f"{camp.location_name}, {camp.city}" if camp.location_name else camp.city

    meta = [
        ("Ages", camp.age_text),
        ("Cost", camp.cost_text),
        ("Location", location),
        ("Registration", format_registration_date(camp.registration_opens_date, camp.registration_opens_time)),
    ]
    meta_html = "".join(
        f"""
            <div class="camp-detail-meta-item">
                <span class="detail-label">{label}:</span>
                <span class="detail-value">{_e(value)}</span>
            </div>"""
        for label, value in meta if value
    )

    actions: List[str] = []
    if camp.link:
        actions.append(
            f'<a href="{_e(camp.link)}" target="_blank" rel="noopener noreferrer" class="btn-primary">Visit Camp Website</a>'
        )
    if user is None:
        actions.append(f'<a href="{_e(login_href(path))}" class="btn-secondary">Log in to save favorites</a>')
    elif is_saved:
        actions.append(f"""<form method="post" action="/favorites/{quote(camp.id)}/remove">
                <button type="submit" class="btn-favorite-toggle btn-favorite-remove">Remove from Favorites</button>
            </form>""")
    else:
        actions.append(f"""<form method="post" action="/favorites/{quote(camp.id)}/add">
                <button type="submit" class="btn-favorite-toggle btn-favorite-add">Add to Favorites</button>
            </form>""")

    description = (camp.description or "").strip() or (camp.short_description or "").strip()
    sections: List[str] = []
    if description:
        sections.append(_section("About this camp", f'<p class="camp-detail-description">{_e(description)}</p>'))

    notes = [
        ("Address", camp.address),
        ("Schedule Notes", camp.schedule_notes),
        ("Registration Notes", camp.registration_notes),
        ("Extended Care Notes", camp.extended_care_notes),
    ]
    notes_html = "".join(
        f"""
            <div class="camp-detail-note-item">
                <span class="detail-label">{label}:</span>
                <span class="detail-value">{_e(value)}</span>
            </div>"""
        for label, value in notes if value
    )
    if notes_html:
        sections.append(_section("Notes", f'<div class="camp-detail-notes">{notes_html}</div>'))

    schedule = [("Dates", camp.session_dates), ("Weeks Offered", camp.weeks_offered)]
    schedule_html = "".join(
        f'<p><span class="detail-label">{label}:</span> <span class="detail-value">{_e(value)}</span></p>'
        for label, value in schedule if value
    )
    if schedule_html:
        sections.append(_section("Schedule", f'<div class="camp-detail-schedule">{schedule_html}</div>'))

    if camp.activities:
        pills = "".join(f'<span class="camp-activity-pill">{_e(activity)}</span>' for activity in camp.activities)
        sections.append(_section("Activities", f'<div class="camp-detail-activities">{pills}</div>'))

    after_care = '<div class="badge">✓ After care available</div>' if camp.has_after_care else ""
    body = f"""
    <article id="camp-detail">
        <header class="camp-detail-header">
            <div class="camp-detail-header-top">
                <div>
                    <span class="camp-category">{_e(camp.primary_category or "General")}</span>
                    {render_status_badge(camp, today)}
                </div>
                <h1 class="camp-detail-title">{_e(camp.name or "Camp")}</h1>
            </div>
            {after_care}
            <div class="camp-detail-meta">{meta_html}
            </div>
            <div class="camp-detail-actions">
                {"".join(actions)}
            </div>
        </header>
        {"".join(sections)}
    </article>"""
    return render_page(camp.name or "Camp", body, user, path)


def render_camp_not_found(message: str, user: Optional[AuthenticatedUser] = None) -> str:
    body = f"""
    <div id="camp-detail-error">
        <h1>We couldn't find that camp</h1>
        <p>{_e(message)}</p>
        <a href="/browse" class="btn-secondary">Back to Browse</a>
    </div>"""
    return render_page("Camp not found", body, user)


def render_favorites_page(
    user: Optional[AuthenticatedUser],
    saved_ids: Sequence[str],
    camps_by_id: Dict[str, Camp],
) -> str:
    if user is None:
        body = f"""
    <div id="favorites-login-prompt">
        <h1>My Favorites</h1>
        <p>Log in to see the camps you've saved.</p>
        <a href="{_e(login_href('/favorites'))}" class="btn-primary">Log in</a>
    </div>"""
    elif not saved_ids:
        body = """
    <div id="favorites-empty-state">
        <h1>My Favorites</h1>
        <p>You haven't saved any camps yet.</p>
        <a href="/browse" class="btn-primary">Browse Camps</a>
    </div>"""
    else:
        cards = "".join(
            render_camp_card(camps_by_id[camp_id], is_saved=True) if camp_id in camps_by_id
            else render_unavailable_card(camp_id)
            for camp_id in saved_ids
        )
        body = f"""
    <h1>My Favorites</h1>
    <div id="favorites-grid-wrap">
        <div id="favorites-results" class="camps-grid">{cards}
        </div>
    </div>"""
    return render_page("My Favorites", body, user, "/favorites")


def render_login_page(authorize_urls: Dict[str, str]) -> str:
    if not authorize_urls:
        links = "<p>Sign-in is not available right now.</p>"
    else:
        links = "".join(
            f'<a href="{_e(url)}" class="btn-primary btn-oauth-{provider}">Continue with {provider.title()}</a>'
            for provider, url in authorize_urls.items()
        )
    body = f"""
    <div class="auth-page">
        <h1>Log in</h1>
        <div class="auth-providers">{links}</div>
    </div>"""
    return render_page("Log in", body, None, "/login")


def local_path(target: Optional[str], fallback: str = "/") -> str:
    """
    Return ``target`` when it is a path on this site, otherwise ``fallback``.

    Browsers read a backslash as a slash and drop tabs and newlines, so
    "/\\evil.example" would leave the site; such targets are rejected.
    """
    if not target or not target.startswith("/"):
        return fallback
    if any(ch == "\\" or ord(ch) < 0x20 or ord(ch) == 0x7f for ch in target):
        return fallback
    parts = urlsplit(target)
    if parts.scheme or parts.netloc or target.startswith("//"):
        return fallback
    return target


def render_auth_callback(redirect_to: str, cookie_name: str) -> str:
    """
    Supabase returns the session in the URL fragment, which only the browser
    can read; store the access token in a cookie and move on.
    """
    target = local_path(redirect_to)
    body = f"""
    <p>Signing you in...</p>
    <script>
        (function () {{
            var params = new URLSearchParams(window.location.hash.slice(1));
            var token = params.get("access_token");
            if (token) {{
                var maxAge = params.get("expires_in") || 3600;
                document.cookie = "{cookie_name}=" + encodeURIComponent(token) + "; path=/; max-age=" + maxAge + "; samesite=lax";
            }}
            window.location.replace({_js_string(target)});
        }})();
    </script>"""
    return render_page("Signing in", body, None, "/auth/callback")


def oauth_authorize_urls(supabase_url: Optional[str], site_url: str, redirect_to: Optional[str]) -> Dict[str, str]:
    if not supabase_url:
        return {}
    callback = f"{site_url.rstrip('/')}/auth/callback"
    if redirect_to:
        callback = f"{callback}?{urlencode({'redirectTo': redirect_to})}"
    base = f"{supabase_url.rstrip('/')}/auth/v1/authorize"
    return {
        provider: f"{base}?{urlencode({'provider': provider, 'redirect_to': callback})}"
        for provider in OAUTH_PROVIDERS
    }


def _js_string(value: str) -> str:
    return json.dumps(value).replace("<", "\\u003c")
