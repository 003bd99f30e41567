"""Server-rendered HTML pages.

Every dynamic value is HTML-escaped before it is placed in a page.
"""

from __future__ import annotations

from html import escape

from fastapi.responses import HTMLResponse

PROVIDER_LABELS = {
    "google": "Google",
    "microsoft": "Microsoft",
}


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(title)} - Goal Tracker</title>
</head>
<body>
    <main>
{body}
    </main>
</body>
</html>
"""


def render_login(
    providers: list[str],
    alert: str | None = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render the login page with an optional alert message."""
    alert_html = ""
    if alert:
        alert_html = f'        <div class="alert" role="alert">{escape(alert)}</div>\n'

    sso_html = "".join(
        f'        <a class="sso" href="/{escape(name)}/login">'
        f"Sign in with {escape(PROVIDER_LABELS.get(name, name.title()))}</a>\n"
        for name in providers
    )

    body = f"""        <h1>Log in</h1>
{alert_html}        <form method="post" action="/login">
            <label for="username">Username</label>
            <input id="username" name="username" type="text" autocomplete="username">
            <label for="password">Password</label>
            <input id="password" name="password" type="password" autocomplete="current-password">
            <button type="submit">Log in</button>
        </form>
{sso_html}"""
    return HTMLResponse(content=_layout("Log in", body), status_code=status_code)


def render_home(username: str | None) -> HTMLResponse:
    """Render the home page, greeting the user if logged in."""
    if username:
        body = (
            f"        <h1>Welcome, {escape(username)}</h1>\n"
            '        <a href="/logout">Log out</a>\n'
        )
    else:
        body = '        <h1>Goal Tracker</h1>\n        <a href="/login">Log in</a>\n'
    return HTMLResponse(content=_layout("Home", body))


def render_error(message: str, status_code: int = 500) -> HTMLResponse:
    """Render the generic error page."""
    body = (
        "        <h1>Something went wrong</h1>\n"
        f"        <p>{escape(message)}</p>\n"
        '        <a href="/login">Back to login</a>\n'
    )
    return HTMLResponse(content=_layout("Error", body), status_code=status_code)
