import logging

import httpx

logger = logging.getLogger(__name__)

GEO_FIELDS = ("query", "city", "country", "lat", "lon")


async def lookup_geo(client: httpx.AsyncClient, url: str) -> dict:
    """Resolve this machine's public IP to an approximate location.

    Returns the ip-api.com style payload trimmed to ``GEO_FIELDS``, or an
    empty dict when the lookup fails; the server fills in the defaults.
    """
    try:
        r = await client.get(url)
        r.raise_for_status()
        data = r.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"[GEO] lookup via {url} failed: {e}")
        return {}
    if data.get("status") == "fail":
        logger.warning(f"[GEO] lookup via {url} refused: {data.get('message')}")
        return {}
    geo = {k: data[k] for k in GEO_FIELDS if data.get(k) is not None}
    logger.info(f"[GEO] resolved {geo.get('query')} -> {geo.get('city')}, {geo.get('country')}")
    return geo
