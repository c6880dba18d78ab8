"""HTTP client for the OpenRouteService matrix and directions APIs."""

from __future__ import annotations

import logging
import time
from typing import Sequence

import httpx

from ...config import settings
from ...models.domain import Outlet, StartLocation
from .errors import ProviderUnavailableError

logger = logging.getLogger(__name__)


class ORSClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ors_base_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.ors_api_key
        if not self.api_key:
            raise ProviderUnavailableError("OpenRouteService API key is not configured (BEATROUTE_ORS_API_KEY).")
        self.profile = profile or settings.ors_profile
        self.timeout = timeout if timeout is not None else settings.ors_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.ors_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.ors_backoff_seconds
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            headers={"Authorization": self.api_key, "Content-Type": "application/json"},
            transport=self._transport,
        )

    def _post(self, path: str, payload: dict) -> dict:
        """POST with bounded retries; every terminal failure becomes ProviderUnavailableError."""
        url = f"{self.base_url}{path}"
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.post(url, json=payload)
                    response.raise_for_status()
                    return response.json()
                except httpx.HTTPStatusError as e:
                    status_code = e.response.status_code
                    # Auth and request errors will not succeed on retry.
                    if status_code in (400, 401, 403, 404, 413):
                        raise ProviderUnavailableError(
                            f"OpenRouteService rejected the request ({status_code}): {e.response.text[:200]}"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailableError(
                            f"OpenRouteService request failed with status {status_code}"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OpenRouteService request timed out after {attempt} attempt(s): {e}")
                        raise ProviderUnavailableError(f"OpenRouteService request timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"ORS timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailableError(
                            f"Failed to connect to OpenRouteService at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"ORS network error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise ProviderUnavailableError(f"OpenRouteService returned a non-JSON body: {e}") from e
        finally:
            client.close()

    def matrix(self, coordinates: Sequence[tuple[float, float]]) -> dict:
        """Distance (metres) and duration (seconds) matrices for (lat, lon) coordinates."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for an ORS matrix.")

        start_time = time.time()
        data = self._post(
            f"/v2/matrix/{self.profile}",
            {
                "locations": [[lon, lat] for lat, lon in coordinates],
                "metrics": ["distance", "duration"],
            },
        )
        if "distances" not in data or "durations" not in data:
            raise ProviderUnavailableError("OpenRouteService matrix response missing distances/durations.")
        logger.info(f"Fetched {len(coordinates)}x{len(coordinates)} ORS matrix in {time.time() - start_time:.2f}s")
        return {"distances": data["distances"], "durations": data["durations"]}

    def directions(self, coordinates: Sequence[tuple[float, float]]) -> list[tuple[float, float]]:
        """Road geometry through (lat, lon) waypoints in visiting order, as (lat, lon) points."""
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required for ORS directions.")

        data = self._post(
            f"/v2/directions/{self.profile}/geojson",
            {"coordinates": [[lon, lat] for lat, lon in coordinates]},
        )
        try:
            line = data["features"][0]["geometry"]["coordinates"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderUnavailableError("OpenRouteService directions response has no route geometry.") from e
        return [(point[1], point[0]) for point in line]


def build_coordinate_list(start: StartLocation, outlets: Sequence[Outlet]) -> list[tuple[float, float]]:
    """[start, *outlets] as (lat, lon) tuples; matrix index i maps to outlets[i - 1]."""
    return [start.coordinate, *(outlet.coordinate for outlet in outlets)]


def check_health(client: ORSClient | None = None) -> bool:
    """Probe ORS with a minimal two-point matrix request."""
    try:
        ors = client or ORSClient()
        table = ors.matrix([(52.517037, 13.388860), (52.496891, 13.385983)])
        return isinstance(table.get("durations"), list)
    except (ProviderUnavailableError, ValueError):
        return False
