"""Apify REST API client: start an actor run, wait for it, read its dataset."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

import httpx

logger = logging.getLogger(__name__)

APIFY_BASE_URL = "https://api.apify.com/v2"

TERMINAL_STATUSES = {"SUCCEEDED", "FAILED", "ABORTED", "TIMED-OUT", "TIMING-OUT", "ABORTING"}
MAX_WAIT_PER_REQUEST = 60  # Apify caps waitForFinish at 60s


class ApifyError(RuntimeError):
    """Apify unreachable or returned an unexpected response."""


class ApifyAuthError(ApifyError):
    """Token missing, invalid or lacking permissions."""


class ApifyRunError(ApifyError):
    """The actor run finished in a non-success state (or never finished)."""

    def __init__(self, message: str, run_id: str | None = None, status: str | None = None):
        super().__init__(message)
        self.run_id = run_id
        self.status = status


class ApifyClient:
    """Async client for the subset of the Apify API the research backend needs."""

    def __init__(
        self,
        token: str,
        base_url: str = APIFY_BASE_URL,
        timeout: float = 30,
        run_timeout: float = 300,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.run_timeout = run_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
                # waitForFinish requests hold the connection open for up to a minute
                timeout=httpx.Timeout(self.timeout, read=self.timeout + MAX_WAIT_PER_REQUEST),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        client = await self._get_client()
        try:
            r = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise ApifyError(f"Apify request timed out: {path}") from e
        except httpx.HTTPError as e:
            raise ApifyError(f"Apify unreachable: {e}") from e

        if r.status_code in (401, 403):
            raise ApifyAuthError(f"Apify authentication failed (HTTP {r.status_code})")
        if r.status_code >= 400:
            raise ApifyError(f"Apify HTTP {r.status_code} for {path}: {_error_message(r)}")
        try:
            return r.json()
        except ValueError as e:
            raise ApifyError(f"Apify returned non-JSON for {path}") from e

    # --- Runs ---

    async def start_run(self, actor_id: str, run_input: dict[str, Any], wait_secs: int = 0) -> dict:
        path = f"/acts/{actor_path(actor_id)}/runs"
        params = {"waitForFinish": min(wait_secs, MAX_WAIT_PER_REQUEST)} if wait_secs else None
        body = await self._request("POST", path, json=run_input, params=params)
        run = body.get("data") if isinstance(body, dict) else None
        if not isinstance(run, dict) or not run.get("id"):
            raise ApifyError(f"Apify did not return a run for actor {actor_id}")
        logger.info("Apify run %s started for %s", run["id"], actor_id)
        return run

    async def get_run(self, run_id: str, wait_secs: int = 0) -> dict:
        params = {"waitForFinish": min(wait_secs, MAX_WAIT_PER_REQUEST)} if wait_secs else None
        body = await self._request("GET", f"/actor-runs/{run_id}", params=params)
        run = body.get("data") if isinstance(body, dict) else None
        if not isinstance(run, dict):
            raise ApifyError(f"Apify returned no data for run {run_id}")
        return run

    async def run_actor(self, actor_id: str, run_input: dict[str, Any]) -> dict:
        """Start a run and block until it reaches a terminal status.

        Raises ApifyRunError if the run fails or outlives ``run_timeout``.
        """
        start = time.monotonic()
        run = await self.start_run(actor_id, run_input, wait_secs=MAX_WAIT_PER_REQUEST)
        run_id = run["id"]

        while run.get("status") not in TERMINAL_STATUSES:
            remaining = self.run_timeout - (time.monotonic() - start)
            if remaining <= 0:
                raise ApifyRunError(
                    f"Actor {actor_id} run {run_id} did not finish within {self.run_timeout:.0f}s",
                    run_id=run_id, status=run.get("status"),
                )
            run = await self.get_run(run_id, wait_secs=int(min(remaining, MAX_WAIT_PER_REQUEST)))
            if run.get("status") not in TERMINAL_STATUSES:
                # Server returned early; avoid a hot loop
                await asyncio.sleep(1)

        status = run.get("status")
        if status != "SUCCEEDED":
            message = run.get("statusMessage") or "no details"
            raise ApifyRunError(
                f"Actor {actor_id} run {run_id} {status}: {message}",
                run_id=run_id, status=status,
            )
        logger.info(
            "Apify run %s for %s succeeded in %.1fs",
            run_id, actor_id, time.monotonic() - start,
        )
        return run

    # --- Datasets ---

    async def list_items(self, dataset_id: str) -> list[dict]:
        body = await self._request(
            "GET", f"/datasets/{dataset_id}/items",
            params={"clean": "true", "format": "json"},
        )
        if isinstance(body, dict):  # some proxies wrap as {"data": {"items": [...]}}
            body = (body.get("data") or {}).get("items", [])
        if not isinstance(body, list):
            raise ApifyError(f"Unexpected dataset payload for {dataset_id}")
        return body

    async def call(self, actor_id: str, run_input: dict[str, Any]) -> tuple[dict, list[dict]]:
        """Run an actor to completion and return (run, dataset items)."""
        run = await self.run_actor(actor_id, run_input)
        dataset_id = run.get("defaultDatasetId")
        if not dataset_id:
            return run, []
        return run, await self.list_items(dataset_id)


def actor_path(actor_id: str) -> str:
    """``username/actor-name`` is addressed as ``username~actor-name`` in URLs."""
    return actor_id.strip().replace("/", "~")


def _error_message(r: httpx.Response) -> str:
    try:
        err = r.json().get("error") or {}
        return err.get("message") or r.text[:200]
    except (ValueError, AttributeError):
        return r.text[:200]
