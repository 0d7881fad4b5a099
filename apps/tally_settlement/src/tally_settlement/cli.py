"""CLI bootstrap for tally-settlement."""

import json
from decimal import Decimal, InvalidOperation
from pathlib import Path

import typer

from tally_settlement.api.schemas.settlements import SettleRequest
from tally_settlement.core.settings import get_settings
from tally_settlement.domain.money import format_balance, format_money
from tally_settlement.domain.services.settlement_engine import compute_settlement

app = typer.Typer(help="CLI for settling shared group expenses.")
INPUT_FILE_OPTION = typer.Option(..., exists=True, dir_okay=False)
TOLERANCE_OPTION = typer.Option(
    None, help="Balances within this amount of zero are treated as settled."
)


@app.command("healthcheck")
def healthcheck() -> None:
    """Verify that the CLI entrypoint is available."""
    typer.echo("tally-settlement is ready")


@app.command("settle")
def settle(
    input: Path = INPUT_FILE_OPTION,
    tolerance: str | None = TOLERANCE_OPTION,
) -> None:
    """Compute balances and transfers from a JSON file."""
    payload = json.loads(input.read_text(encoding="utf-8"))
    request = SettleRequest.model_validate(payload)
    resolved_tolerance = _resolve_tolerance(tolerance)
    computation = compute_settlement(
        request.participants,
        request.to_payments(),
        tolerance=resolved_tolerance,
    )

    typer.echo("Balances")
    for participant_id, balance in computation.balances.items():
        typer.echo(f"- {participant_id}: {format_balance(balance)}")

    typer.echo("Transfers")
    if computation.is_settled:
        typer.echo("- Nothing to settle")
    for transfer in computation.transfers:
        typer.echo(
            f"- {transfer.sender} -> {transfer.receiver}: "
            f"{format_money(transfer.amount)}"
        )

    skipped = [
        str(item.payment_id)
        for item in computation.anomalies
        if item.kind.skips_payment
    ]
    if skipped:
        typer.echo(f"Skipped payments: {', '.join(skipped)}")


def _resolve_tolerance(value: str | None) -> Decimal:
    if value is None:
        return get_settings().settlement_tolerance
    try:
        tolerance = Decimal(value)
    except InvalidOperation as exc:
        raise typer.BadParameter(
            "must be a decimal number", param_hint="--tolerance"
        ) from exc
    if not tolerance.is_finite() or tolerance <= 0:
        raise typer.BadParameter(
            "must be greater than zero", param_hint="--tolerance"
        )
    return tolerance


def main() -> None:
    """Run the tally-settlement CLI application."""
    app()


if __name__ == "__main__":
    main()
