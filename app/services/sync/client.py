"""
Client for the upstream tournament competition center.

Wraps a single ``httpx.AsyncClient`` bound to the upstream base URL. Each
endpoint method only shapes query parameters; the raw JSON payload is
returned untouched so the orchestrator can normalize envelopes itself.

Every request/response pair is logged. Transport and HTTP status errors are
raised to the caller unchanged: there is no retry, backoff or circuit
breaker, a failure simply aborts the current sync step.
"""
import time
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.core.logging import get_logger
from app.core import metrics

logger = get_logger(__name__)

DEFAULT_HEADERS = {
    "Accept": "*/*",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
    "User-Agent": "naraka-tournament-api/1.0",
}

# Upstream "model_type" selects the game mode (1 = trios)
MODEL_TYPE = 1


class UpstreamClient:
    """
    Upstream tournament API client.

    Usage:
        client = UpstreamClient()
        payload = await client.fetch_competitions()
        await client.close()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Upstream base URL (defaults to settings)
            timeout: Request timeout in seconds (defaults to settings)
            transport: Optional httpx transport, used by tests
        """
        self.base_url = base_url or settings.UPSTREAM_BASE_URL
        self.timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=DEFAULT_HEADERS,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET ``path`` and return the decoded JSON body.

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            httpx.RequestError: On transport failures
        """
        client = self._get_client()
        logger.info(
            f"API Request: GET {path}",
            extra={"method": "GET", "url": path, "base_url": self.base_url, "params": params}
        )

        started = time.perf_counter()
        try:
            response = await client.get(path, params=params)
        except httpx.RequestError as e:
            metrics.record_upstream_request(path, "transport_error", time.perf_counter() - started)
            logger.error(
                f"API Error: GET {path} failed: {e}",
                extra={"url": path, "params": params, "error": str(e)}
            )
            raise

        elapsed = time.perf_counter() - started
        if response.is_error:
            metrics.record_upstream_request(path, "http_error", elapsed)
            logger.error(
                f"API Error: GET {path} returned {response.status_code}",
                extra={
                    "url": path,
                    "params": params,
                    "status": response.status_code,
                    "status_text": response.reason_phrase,
                    "body": response.text,
                }
            )
            response.raise_for_status()

        metrics.record_upstream_request(path, "success", elapsed)
        payload = response.json()
        logger.info(
            f"API Response: GET {path} {response.status_code}",
            extra={"url": path, "params": params, "status": response.status_code, "body": payload}
        )
        return payload

    # Endpoint Methods

    async def fetch_competitions(self) -> Any:
        """Competition list (all competitions, not only the league)."""
        return await self.get(
            "/nbpl/competition/list",
            params={"only_nbpl": 0, "type": 1, "model_type": MODEL_TYPE}
        )

    async def fetch_stages(self, competition_id: str, stage_type: int, rank_type: int) -> Any:
        """Stages of one bracket variant of a competition."""
        return await self.get(
            "/nbpl/competition/stage/list",
            params={
                "competition_uuid": competition_id,
                "type": stage_type,
                "rank_type": rank_type,
                "model_type": MODEL_TYPE,
                "is_all": 1,
            }
        )

    async def fetch_teams(self, competition_id: str) -> Any:
        """Teams registered in a competition."""
        return await self.get(
            "/nbpl/competition/team/list",
            params={"competition_id": competition_id}
        )

    async def fetch_team_players(self, competition_id: str, team_id: str) -> Any:
        """Player roster of one team."""
        return await self.get(
            "/nbpl/competition/team/player/list",
            params={"competition_id": competition_id, "team_id": team_id}
        )

    async def fetch_stage_scores(
        self,
        stage_id: str,
        competition_id: str,
        stage_type: int,
        rank_type: int
    ) -> Any:
        """Full score table (rank_list) of a stage."""
        return await self.get(
            "/nbpl/rank/score",
            params={
                "stage_uuid": stage_id,
                "competition_uuid": competition_id,
                "type": stage_type,
                "rank_type": rank_type,
                "model_type": MODEL_TYPE,
                "is_all": 1,
            }
        )

    async def fetch_hero_stats(self, competition_id: str, stage_id: str) -> Any:
        """Aggregate hero statistics of a stage."""
        return await self.get(
            "/nbpl/rank/hero",
            params={"competition_uuid": competition_id, "stage_uuid": stage_id, "model_type": MODEL_TYPE}
        )

    async def fetch_weapon_stats(self, competition_id: str, stage_id: str) -> Any:
        """Aggregate weapon statistics of a stage."""
        return await self.get(
            "/nbpl/rank/weapon",
            params={"competition_uuid": competition_id, "stage_uuid": stage_id, "model_type": MODEL_TYPE}
        )
