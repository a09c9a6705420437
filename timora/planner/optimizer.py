"""
Optional remote plan optimizer.

The optimizer is a pure request/response collaborator. Whatever it returns is
validated against the RuleSet before use; on transport errors, unreadable
payloads or rule violations the deterministic generator's plan is used.

Usage:
    async with RemoteOptimizerClient(url) as client:
        plan = await plan_with_fallback(request, client=client)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from timora.core.errors import RuleViolation
from timora.planner.generator import generate
from timora.planner.models import Plan, PlanRequest
from timora.planner.rules import DEFAULT_RULES, RuleSet
from timora.planner.schemas import plan_from_payload
from timora.planner.validator import ensure_compliant


@dataclass
class PlanOutcome:
    """Plan plus where it came from."""

    plan: Plan
    source: str  # "remote" or "local"
    fallback_reason: str | None = None


class RemoteOptimizerClient:
    """HTTP client for a remote plan optimizer."""

    def __init__(
        self,
        api_url: str,
        api_key: str | None = None,
        timeout_seconds: float = 20.0,
        retry_attempts: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.retry_attempts = max(1, retry_attempts)
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def __aenter__(self) -> "RemoteOptimizerClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def request_plan(self, request: PlanRequest, rules: RuleSet = DEFAULT_RULES) -> dict[str, Any]:
        """
        Ask the optimizer for a plan.

        Returns:
            The raw "plan" object from the response

        Raises:
            httpx.HTTPError: When every attempt failed at the transport level
            RuleViolation: When the response carries no plan
        """
        body = {"request": request.to_dict(), "rules": rules.describe()}

        for attempt in range(self.retry_attempts - 1):
            try:
                return await self._post_plan(body)

            except httpx.HTTPStatusError as e:
                if e.response.status_code < 500:
                    raise
                logger.warning(
                    f"Optimizer server error {e.response.status_code} on attempt "
                    f"{attempt + 1}/{self.retry_attempts}"
                )

            except (httpx.TimeoutException, httpx.RequestError) as e:
                logger.warning(f"Optimizer request error on attempt {attempt + 1}/{self.retry_attempts}: {e}")

            await asyncio.sleep(2**attempt)

        # Last attempt; its error propagates
        return await self._post_plan(body)

    async def _post_plan(self, body: dict[str, Any]) -> dict[str, Any]:
        response = await self.client.post(self.api_url, json=body)
        if 400 <= response.status_code < 500:
            logger.error(f"Optimizer rejected request: {response.status_code}")
        response.raise_for_status()
        data = response.json()
        plan = data.get("plan") if isinstance(data, dict) else None
        if not plan:
            raise RuleViolation(["optimizer returned no plan"])
        return plan


async def plan_with_fallback(
    request: PlanRequest,
    rules: RuleSet = DEFAULT_RULES,
    client: RemoteOptimizerClient | None = None,
) -> PlanOutcome:
    """
    Prefer a validated remote plan, fall back to the local generator.

    Never raises for optimizer problems; the reason is kept on the outcome.
    """
    if client is None:
        return PlanOutcome(plan=generate(request, rules), source="local")

    try:
        raw = await client.request_plan(request, rules)
        plan = ensure_compliant(plan_from_payload(raw, request, rules), rules)
        logger.info("Using remote optimizer plan")
        return PlanOutcome(plan=plan, source="remote")
    except RuleViolation as e:
        reason = str(e)
        logger.warning(f"Remote plan rejected, using local generator: {reason}")
    except (httpx.HTTPError, ValueError) as e:
        reason = f"optimizer unavailable: {e}"
        logger.warning(f"Remote optimizer failed, using local generator: {e}")

    return PlanOutcome(plan=generate(request, rules), source="local", fallback_reason=reason)
