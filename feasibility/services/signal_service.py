import asyncio
import os
import logging
from datetime import datetime, timezone

import httpx
from dotenv import load_dotenv

from feasibility.models.request import NOT_SPECIFIED
from feasibility.models.signals import ExternalSignals, IndicatorPoint

load_dotenv()
logger = logging.getLogger(__name__)

FIRECRAWL_SEARCH_URL = "https://api.firecrawl.dev/v1/search"
WORLD_BANK_URL = "https://api.worldbank.org/v2/country/IND/indicator/{indicator}"

POPULATION = "SP.POP.TOTL"
URBAN_SHARE = "SP.URB.TOTL.IN.ZS"
GDP_PER_CAPITA = "NY.GDP.PCAP.CD"
INDICATORS = (POPULATION, URBAN_SHARE, GDP_PER_CAPITA)

SEARCH_LIMIT = 5
SNIPPET_CHARS = 500


class SignalService:
    """Best-effort grounding data for factor discovery.

    Every source is optional: a missing key, a timeout or a bad payload
    produces an empty contribution and a warning, never an exception.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.firecrawl_api_key = os.getenv("FIRECRAWL_API_KEY")
        self.timeout = float(os.getenv("SIGNAL_TIMEOUT_SECONDS", "5"))
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def fetch_signals(self, business_idea: str, location: str) -> ExternalSignals:
        async with self._client() as client:
            results = await asyncio.gather(
                self._search_web(client, business_idea, location),
                *(self._fetch_indicator(client, code) for code in INDICATORS),
                return_exceptions=True,
            )

        web, *series = results
        if isinstance(web, BaseException):
            logger.warning(f"Web search failed: {web}")
            web = ("", [])

        indicators: dict[str, list[IndicatorPoint]] = {}
        for code, points in zip(INDICATORS, series):
            if isinstance(points, BaseException):
                logger.warning(f"World Bank indicator {code} failed: {points}")
                continue
            indicators[code] = points

        snippets, sources = web
        growth = population_growth(indicators.get(POPULATION, []))
        signals = ExternalSignals(
            web_search_results=snippets,
            macro_statistics=macro_digest(indicators, growth, location),
            indicators=[p for points in indicators.values() for p in points[:1]],
            population_growth_percent=growth,
            sources=sources,
        )
        logger.info(
            f"Signals fetched: {len(sources)} web results, "
            f"{len(indicators)}/{len(INDICATORS)} indicators"
        )
        return signals

    async def _search_web(
        self, client: httpx.AsyncClient, business_idea: str, location: str,
    ) -> tuple[str, list[dict]]:
        if not self.firecrawl_api_key:
            logger.info("FIRECRAWL_API_KEY not set, skipping web search")
            return "", []

        query = f"{business_idea} market size competition {location} India {_current_year()}"
        resp = await client.post(
            FIRECRAWL_SEARCH_URL,
            headers={"Authorization": f"Bearer {self.firecrawl_api_key}"},
            json={"query": query, "limit": SEARCH_LIMIT, "scrapeOptions": {"formats": ["markdown"]}},
        )
        resp.raise_for_status()
        body = resp.json()
        if not body.get("success") or not isinstance(body.get("data"), list):
            return "", []

        snippets = []
        sources = []
        for i, item in enumerate(body["data"][:SEARCH_LIMIT], start=1):
            title = item.get("title") or "Untitled"
            url = item.get("url") or ""
            content = (item.get("markdown") or item.get("description") or "")[:SNIPPET_CHARS]
            snippets.append(f"[{i}] {title}\nSource: {url}\n{content}")
            sources.append({"title": title, "url": url})
        return "\n\n".join(snippets), sources

    async def _fetch_indicator(self, client: httpx.AsyncClient, code: str) -> list[IndicatorPoint]:
        resp = await client.get(
            WORLD_BANK_URL.format(indicator=code),
            params={"format": "json", "date": f"{_current_year() - 5}:{_current_year()}", "per_page": 5},
        )
        resp.raise_for_status()
        return parse_indicator(code, resp.json())


def parse_indicator(code: str, payload) -> list[IndicatorPoint]:
    """World Bank responses are ``[meta, [rows...]]`` sorted newest first; null rows are skipped."""
    if not isinstance(payload, list) or len(payload) < 2 or not isinstance(payload[1], list):
        return []
    points = []
    for row in payload[1]:
        if not isinstance(row, dict) or row.get("value") is None:
            continue
        points.append(IndicatorPoint(indicator=code, date=str(row.get("date", "")), value=float(row["value"])))
    return sorted(points, key=lambda p: p.date, reverse=True)


def population_growth(points: list[IndicatorPoint]) -> float | None:
    if len(points) < 2 or points[1].value <= 0:
        return None
    latest, previous = points[0], points[1]
    return round((latest.value - previous.value) / previous.value * 100, 2)


def macro_digest(indicators: dict[str, list[IndicatorPoint]], growth: float | None, location: str) -> str:
    lines = []
    population = indicators.get(POPULATION)
    if population:
        lines.append(f"India Total Population ({population[0].date}): {population[0].value / 1e9:.2f} billion")
    if growth is not None:
        lines.append(f"Annual Population Growth: {growth:.2f}%")
    urban = indicators.get(URBAN_SHARE)
    if urban:
        lines.append(f"Urban Population: {urban[0].value:.1f}%")
    gdp = indicators.get(GDP_PER_CAPITA)
    if gdp:
        lines.append(f"GDP Per Capita: ${round(gdp[0].value)}")
    if lines and location and location != NOT_SPECIFIED:
        lines.append(f'Note: for city-level population of "{location}", use census estimates.')
    return "\n".join(lines)


def _current_year() -> int:
    return datetime.now(timezone.utc).year
