import asyncio
import logging
from dataclasses import replace

import click
import httpx

from osint_lab.client.fingerprint import fingerprint_hash, user_agent
from osint_lab.client.geolocation import lookup_geo
from osint_lab.client.identity import ensure_visitor_id
from osint_lab.client.relay import TerminalRelay
from osint_lab.client.terminal import Screen, TerminalUI
from osint_lab.config import ClientSettings

logger = logging.getLogger(__name__)


async def report_session(relay, client, settings):
    fp_hash = fingerprint_hash()
    geo = await lookup_geo(client, settings.geo_api_url)
    try:
        await relay.report_session(fp_hash, geo, user_agent())
    except httpx.HTTPError as e:
        logger.warning(f"Session report failed: {e}")


async def read_keys(ui):
    loop = asyncio.get_running_loop()
    while True:
        try:
            key = await loop.run_in_executor(None, click.getchar)
        except (KeyboardInterrupt, EOFError):
            return
        ui.handle_key(key)


async def run_terminal(settings):
    visitor_id = ensure_visitor_id(settings.state_file)
    async with httpx.AsyncClient(base_url=settings.server_url, timeout=None) as client:
        relay = TerminalRelay(client, visitor_id)
        await report_session(relay, client, settings)
        ui = TerminalUI(Screen(), relay.query, delay=settings.type_delay)
        ui.start()
        await read_keys(ui)
        await ui.close()
    click.echo()


@click.command("osint-lab")
@click.option("--server", "server_url", default=None, help="Terminal server base URL.")
@click.option("--delay", type=float, default=None, help="Seconds between typed characters.")
@click.option("-v", "--verbose", is_flag=True, help="Log client activity to stderr.")
def main(server_url, delay, verbose):
    """Open the OSINT lab terminal against a running server."""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format='%(asctime)s %(levelname)s %(message)s')
    settings = ClientSettings.from_env()
    overrides = {}
    if server_url:
        overrides["server_url"] = server_url.rstrip("/")
    if delay is not None:
        overrides["type_delay"] = delay
    if overrides:
        settings = replace(settings, **overrides)
    asyncio.run(run_terminal(settings))


if __name__ == "__main__":
    main()
