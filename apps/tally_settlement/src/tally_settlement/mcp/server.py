"""MCP server exposing tally_settlement API capabilities."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, Protocol

import httpx
from fastmcp import FastMCP

from tally_settlement.core.settings import get_settings

SplitModeName = Literal["equal", "ratio", "fixed"]
ParamValue = str | int | float | bool | None
ParamsMapping = Mapping[str, ParamValue]


class APIRequester(Protocol):
    """Requester abstraction to simplify HTTP boundary testing."""

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
    ) -> object: ...


@dataclass(slots=True, frozen=True)
class HTTPAPIRequester:
    """HTTP client wrapper for tally_settlement API."""

    base_url: str
    timeout_seconds: float

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: ParamsMapping | None = None,
        json_body: Mapping[str, object] | None = None,
    ) -> object:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
        ) as client:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=dict(json_body) if json_body else None,
            )

        if response.is_success:
            return _parse_json_response(response)
        raise RuntimeError(_build_api_error(response))


def _parse_json_response(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise RuntimeError(
            f"API returned a non-JSON response with status {response.status_code}."
        ) from exc


def _build_api_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return f"API request failed with status {response.status_code}: {text}"
        return f"API request failed with status {response.status_code}."

    if isinstance(payload, Mapping):
        error_code = payload.get("code")
        error_message = payload.get("message")
        details = payload.get("details")
        if isinstance(error_code, str) and isinstance(error_message, str):
            if details is None:
                return f"API error {error_code}: {error_message}"
            return f"API error {error_code}: {error_message} | details={details}"

    return f"API request failed with status {response.status_code}: {payload}"


def _normalize_base_url(value: str) -> str:
    return value.rstrip("/")


def create_mcp_server(
    *,
    api_base_url: str | None = None,
    timeout_seconds: float | None = None,
    requester: APIRequester | None = None,
) -> FastMCP:
    """Create MCP server with curated tools mapped to REST endpoints."""

    settings = get_settings()
    resolved_base_url = _normalize_base_url(api_base_url or settings.mcp_api_base_url)
    resolved_timeout = (
        settings.mcp_api_timeout_seconds if timeout_seconds is None else timeout_seconds
    )
    if resolved_timeout <= 0:
        raise ValueError("MCP API timeout must be greater than zero.")

    mcp = FastMCP(name="Tally Settlement")
    api_requester: APIRequester = requester or HTTPAPIRequester(
        base_url=resolved_base_url,
        timeout_seconds=resolved_timeout,
    )

    async def send_command(settlement_id: str, command: dict[str, object]) -> object:
        return await api_requester.request(
            "POST",
            f"/v1/settlements/{settlement_id}/payment-commands",
            json_body={"command": command},
        )

    @mcp.tool
    async def list_settlements() -> object:
        """List settlements with their PENDING/COMPLETED status."""

        return await api_requester.request("GET", "/v1/settlements")

    @mcp.tool
    async def get_settlement(settlement_id: str) -> object:
        """Return payments, balances and transfers of one settlement."""

        return await api_requester.request("GET", f"/v1/settlements/{settlement_id}")

    @mcp.tool
    async def add_payment(
        settlement_id: str,
        payer: str,
        targets: list[str],
        amount: str,
        label: str,
        split_mode: SplitModeName = "equal",
        weights: list[str] | None = None,
    ) -> object:
        """Add a payment and recompute the settlement."""

        command: dict[str, object] = {
            "action": "add",
            "payer": payer,
            "targets": targets,
            "amount": amount,
            "label": label,
            "split_mode": split_mode,
        }
        if weights is not None:
            command["weights"] = weights
        return await send_command(settlement_id, command)

    @mcp.tool
    async def update_payment(
        settlement_id: str,
        payment_id: int,
        payer: str | None = None,
        targets: list[str] | None = None,
        amount: str | None = None,
        label: str | None = None,
        split_mode: SplitModeName | None = None,
        weights: list[str] | None = None,
    ) -> object:
        """Edit one payment using partial updates, then recompute."""

        command: dict[str, object] = {"action": "update", "payment_id": payment_id}
        if payer is not None:
            command["payer"] = payer
        if targets is not None:
            command["targets"] = targets
        if amount is not None:
            command["amount"] = amount
        if label is not None:
            command["label"] = label
        if split_mode is not None:
            command["split_mode"] = split_mode
        if weights is not None:
            command["weights"] = weights
        return await send_command(settlement_id, command)

    @mcp.tool
    async def delete_payment(settlement_id: str, payment_id: int) -> object:
        """Delete one payment and recompute the settlement."""

        return await send_command(
            settlement_id, {"action": "delete", "payment_id": payment_id}
        )

    @mcp.tool
    async def recompute_settlement(settlement_id: str) -> object:
        """Recompute balances and transfers from stored payments."""

        return await api_requester.request(
            "POST", f"/v1/settlements/{settlement_id}/recompute"
        )

    @mcp.tool
    async def complete_settlement(settlement_id: str) -> object:
        """Mark a settlement completed; it can no longer be edited."""

        return await api_requester.request(
            "POST", f"/v1/settlements/{settlement_id}/complete"
        )

    @mcp.tool
    async def get_transfer_graph(settlement_id: str) -> object:
        """Return transfers as graph nodes and links."""

        return await api_requester.request(
            "GET", f"/v1/settlements/{settlement_id}/transfer-graph"
        )

    return mcp


def main() -> None:
    """Run the MCP server over stdio."""
    create_mcp_server().run()
