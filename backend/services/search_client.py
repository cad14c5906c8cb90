"""Full-text program search against the Typesense directory index."""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from config import CATEGORY_FACETS, SEARCH_LIMIT, SEARCH_TIMEOUT, TYPESENSE_HOST, TYPESENSE_SEARCH_KEY
from models.program import ProgramRecord
from services.privacy_resolver import Channel

logger = logging.getLogger(__name__)


class ProgramSearchClient:
    """Searches the program catalog; any failure is an empty result set."""

    def __init__(
        self,
        host: str = TYPESENSE_HOST,
        api_key: str = TYPESENSE_SEARCH_KEY,
        timeout: float = SEARCH_TIMEOUT,
    ):
        """
        Initialize the search client.

        Args:
            host: Typesense base URL
            api_key: Search-only API key (same one the website ships)
            timeout: Per-search timeout in seconds
        """
        self.search_url = f"{host.rstrip('/')}/collections/programs/documents/search"
        self.api_key = api_key
        self.timeout = timeout
        logger.info(f"Initialized ProgramSearchClient for {host}")

    @staticmethod
    def facet_for(category: Optional[str]) -> Optional[str]:
        """Map an intent category onto the catalog's category facet; None means no filter."""
        if not category:
            return None
        return CATEGORY_FACETS.get(category)

    def build_params(self, query: str, category: Optional[str], limit: int) -> Dict[str, str]:
        params = {
            "q": query,
            "query_by": "name,keywords,description",
            "per_page": str(limit),
            "num_typos": "2",
            "typo_tokens_threshold": "1",
        }
        facet = self.facet_for(category)
        if facet:
            params["filter_by"] = f"category:={facet}"
        return params

    async def search(
        self,
        query: str,
        category: Optional[str],
        channel: Channel,
        limit: int = SEARCH_LIMIT,
    ) -> List[ProgramRecord]:
        """
        Search programs.

        Args:
            query: Search keywords
            category: Intent category, mapped onto a facet filter
            channel: Channel for the request, so Tor sessions search over Tor
            limit: Maximum number of programs

        Returns:
            Matching programs, or [] on empty query, timeout, or any error
        """
        if not query or not query.strip():
            logger.warning("Empty search query, returning no programs")
            return []

        headers = {"X-TYPESENSE-API-KEY": self.api_key} if self.api_key else {}
        try:
            response = await asyncio.wait_for(
                channel.client.get(
                    self.search_url,
                    params=self.build_params(query, category, limit),
                    headers=headers,
                    timeout=self.timeout,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Program search timed out after {self.timeout}s")
            return []
        except httpx.HTTPError as e:
            logger.error(f"Program search failed: {type(e).__name__}")
            return []

        if response.status_code != 200:
            logger.error(f"Program search returned status {response.status_code}")
            return []

        try:
            hits = response.json().get("hits") or []
        except (ValueError, AttributeError):
            logger.error("Program search returned an undecodable body")
            return []

        programs = [p for p in (self._to_program(hit) for hit in hits) if p is not None]
        logger.info(f"Program search returned {len(programs)} programs (category={category})")
        return programs[:limit]

    @staticmethod
    def _to_program(hit: Any) -> Optional[ProgramRecord]:
        doc = hit.get("document") if isinstance(hit, dict) else None
        if not isinstance(doc, dict):
            return None
        program_id, name = doc.get("id"), doc.get("name")
        if not isinstance(program_id, str) or not isinstance(name, str):
            return None

        area = doc.get("area")
        if isinstance(area, list):
            areas = [a for a in area if isinstance(a, str)]
        else:
            areas = [area] if isinstance(area, str) else []

        return ProgramRecord(
            id=program_id,
            name=name,
            category=doc.get("category") or "",
            description=doc.get("description"),
            phone=doc.get("phone"),
            website=doc.get("link"),
            areas=areas,
        )
