"""Remember who voted from this browser, via a plain cookie.

The cookie only pre-fills the form and shows the "already voted" badge.
It is not an authentication mechanism.
"""

from http.cookies import CookieError, SimpleCookie


def read_voter_name(cookie_header: str | None, cookie_name: str) -> str:
    """Return the voter name stored in the Cookie header, or "" if there is none."""
    if not cookie_header:
        return ""
    cookie = SimpleCookie()
    try:
        cookie.load(cookie_header)
    except CookieError:
        return ""
    morsel = cookie.get(cookie_name)
    return morsel.value.strip() if morsel else ""


def voter_cookie(name: str, cookie_name: str, max_age: int) -> str:
    """Build a Set-Cookie header value remembering the voter name."""
    cookie = SimpleCookie()
    cookie[cookie_name] = name
    cookie[cookie_name]["path"] = "/"
    cookie[cookie_name]["max-age"] = max_age
    cookie[cookie_name]["samesite"] = "Lax"
    return cookie[cookie_name].OutputString()
