from typing import Any, Dict, Optional

import requests

from embedded_content.lib.exceptions import EmbedProviderResponseError
from embedded_content.lib.outgoing_http import EmbedProviderSession, fetch_from_provider


def get_oembed_data(
    endpoint: str,
    url: str,
    session: Optional[requests.Session] = None,
    maxwidth: Optional[int] = None,
    maxheight: Optional[int] = None,
) -> Dict[str, Any]:
    """Fetch the oEmbed JSON document the provider's `endpoint` has for `url`."""
    if session is None:
        session = EmbedProviderSession()

    params: Dict[str, Any] = {"url": url, "format": "json"}
    if maxwidth is not None:
        params["maxwidth"] = maxwidth
    if maxheight is not None:
        params["maxheight"] = maxheight

    response = fetch_from_provider(session, url, endpoint, params=params)
    try:
        data = response.json()
    except requests.exceptions.JSONDecodeError:
        raise EmbedProviderResponseError(url, "The oEmbed endpoint returned invalid JSON")

    if not isinstance(data, dict):
        raise EmbedProviderResponseError(url, "The oEmbed endpoint returned a non-object")
    return data
