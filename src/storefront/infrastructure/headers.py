from __future__ import annotations


def make_headers(api_key: str, count: bool = False) -> dict[str, str]:
    """Return the headers required by the Supabase PostgREST API.

    The anon key is sent both as apikey and as the bearer token. With
    count=True PostgREST reports the exact row total in Content-Range.
    """
    headers = {
        "Accept": "application/json",
        "apikey": api_key,
        "Authorization": f"Bearer {api_key}",
    }
    if count:
        headers["Prefer"] = "count=exact"
    return headers
