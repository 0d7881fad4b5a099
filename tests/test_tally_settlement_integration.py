from __future__ import annotations

import json
from pathlib import Path

from fastapi.testclient import TestClient
from typer.testing import CliRunner

from tally_settlement.api.app import create_app
from tally_settlement.api.schemas.settlements import SettleRequest
from tally_settlement.cli import app
from tally_settlement.domain.services.settlement_engine import compute_settlement


def _golden_dataset_path() -> Path:
    return (
        Path(__file__).resolve().parent.parent
        / "apps"
        / "tally_settlement"
        / "tests"
        / "fixtures"
        / "golden"
        / "group_trip_dataset.json"
    )


def _parse_cli_summary(output: str) -> dict[str, object]:
    balances: dict[str, str] = {}
    transfers: list[dict[str, str]] = []
    skipped: list[int] = []
    section = ""
    for line in (line.strip() for line in output.splitlines()):
        if line in {"Balances", "Transfers"}:
            section = line
        elif line.startswith("Skipped payments: "):
            skipped = [
                int(value)
                for value in line.removeprefix("Skipped payments: ").split(", ")
            ]
        elif section == "Balances" and line.startswith("- "):
            participant_id, balance = line.removeprefix("- ").split(": ")
            balances[participant_id] = balance
        elif section == "Transfers" and line.startswith("- ") and "->" in line:
            route, amount = line.removeprefix("- ").split(": ")
            sender, receiver = route.split(" -> ")
            transfers.append({"from": sender, "to": receiver, "amount": amount})
    return {
        "balances": balances,
        "transfers": transfers,
        "skipped_payment_ids": skipped,
    }


def _parse_api_summary(body: dict[str, object]) -> dict[str, object]:
    balances = body["balances"]
    assert isinstance(balances, list)
    return {
        "balances": {item["participant_id"]: item["balance"] for item in balances},
        "transfers": body["transfers"],
        "skipped_payment_ids": body["skipped_payment_ids"],
    }


def test_cli_and_api_settlements_are_equivalent(tmp_path: Path) -> None:
    fixture = json.loads(_golden_dataset_path().read_text(encoding="utf-8"))
    request_payload = fixture["request"]
    expected = fixture["expected"]

    input_file = tmp_path / "input.json"
    input_file.write_text(json.dumps(request_payload), encoding="utf-8")

    cli_result = CliRunner().invoke(app, ["settle", "--input", str(input_file)])
    assert cli_result.exit_code == 0

    with TestClient(create_app()) as client:
        api_response = client.post("/v1/settle", json=request_payload)
    assert api_response.status_code == 200

    cli_summary = _parse_cli_summary(cli_result.stdout)
    api_summary = _parse_api_summary(api_response.json())

    assert cli_summary == api_summary
    assert cli_summary == expected

    request = SettleRequest.model_validate(request_payload)
    computation = compute_settlement(request.participants, request.to_payments())
    assert len(computation.transfers) == len(request.participants) - 1
