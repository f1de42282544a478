import logging

import httpx

logger = logging.getLogger(__name__)


class TerminalRelay:
    """Client for the terminal server's ``/session`` and ``/query`` endpoints.

    Every call is attempted exactly once. Transport and HTTP errors are
    raised to the caller as ``httpx.HTTPError``.
    """

    def __init__(self, client: httpx.AsyncClient, visitor_id: str):
        self.client = client
        self.visitor_id = visitor_id

    async def report_session(self, fp_hash: str, geo: dict, user_agent: str) -> dict:
        r = await self.client.post("/session", json={
            "visitor_id": self.visitor_id,
            "fpHash": fp_hash,
            "geo": geo,
            "userAgent": user_agent,
        })
        r.raise_for_status()
        logger.info(f"Session reported: visitor_id={self.visitor_id}")
        return r.json()

    async def query(self, prompt: str) -> str:
        r = await self.client.post("/query", json={"visitor_id": self.visitor_id, "prompt": prompt})
        r.raise_for_status()
        return r.json()["answer"]
