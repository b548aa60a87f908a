#!/usr/bin/env python3
"""
Epoch Points CLI

Offline inspection of the points program.

Usage:
    epochpoints schedule [--config FILE]
    epochpoints summary <state_file> --epoch N [--user ADDRESS]
    epochpoints claimable <state_file> <user> <epoch> [--current-epoch N] --now T --end-time T [--config FILE]

State files are JSON snapshots produced by RewardProgram.to_dict().
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from epochpoints.claims import claims_open, compute_entitlement, within_window
from epochpoints.config import ProgramConfig, load_config
from epochpoints.constants import REWARD_DECIMALS
from epochpoints.exceptions import PointsError
from epochpoints.ledger import EpochPointsLedger, RewardScheduleRegistry


def format_amount(amount: int) -> str:
    """Render base units with REWARD_DECIMALS fractional digits."""
    whole, frac = divmod(amount, 10**REWARD_DECIMALS)
    return f"{whole:,}.{frac:0{REWARD_DECIMALS}d}"


def load_state(state_file: str) -> Tuple[Dict[str, Any], EpochPointsLedger, RewardScheduleRegistry]:
    try:
        data = json.loads(Path(state_file).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read state file {state_file}: {e}")
    try:
        ledger = EpochPointsLedger.from_dict(data.get("ledger", {}))
        schedule = RewardScheduleRegistry.from_dict(data.get("schedule", {}))
    except (KeyError, TypeError, ValueError, PointsError) as e:
        raise click.ClickException(f"Malformed state file {state_file}: {e}")
    return data, ledger, schedule


@click.group()
@click.version_option(version="1.0.0", prog_name="epochpoints")
def cli():
    """Epoch Points Command Line Interface

    Inspect reward schedules and saved ledger snapshots.
    """
    pass


@cli.command("schedule")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Program config (TOML)")
def schedule_cmd(config_path: Optional[str]):
    """Print the historical reward schedule seeded at initialization."""
    config = load_config(config_path)

    click.echo(click.style("Historical reward schedule", fg="green", bold=True))
    for epoch, amount in enumerate(config.schedule.historical, start=1):
        marker = "" if amount else click.style("  (no rewards)", dim=True)
        click.echo(f"  epoch {epoch:>3}  {format_amount(amount):>24}{marker}")
    click.echo()
    click.echo(f"Claims open from epoch {config.claims.open_epoch}, "
               f"window {config.claims.window_days} days, "
               f"launch swap through epoch {config.claims.cutover_epoch}")


@cli.command("summary")
@click.argument("state_file", type=click.Path(exists=True))
@click.option("--epoch", "-e", type=int, required=True, help="Epoch number")
@click.option("--user", "-u", default=None, help="Show one user's position")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def summary_cmd(state_file: str, epoch: int, user: Optional[str], as_json: bool):
    """Show supply and reward pool of an epoch, optionally for one user."""
    _, ledger, schedule = load_state(state_file)

    result: Dict[str, Any] = {
        "epoch": epoch,
        "supply": ledger.epoch_supply(epoch),
        "rewardPool": schedule.reward_for(epoch),
    }
    if user:
        result["user"] = user
        result["balance"] = ledger.user_balance(user, epoch)
        result["claimed"] = ledger.user_claimed(user, epoch)

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.echo(f"Epoch:       {epoch}")
    click.echo(f"Supply:      {result['supply']:,} points")
    click.echo(f"Reward pool: {format_amount(result['rewardPool'])}")
    if user:
        click.echo(f"User:        {user}")
        click.echo(f"Balance:     {result['balance']:,} points")
        click.echo(f"Claimed:     {result['claimed']:,} points")


@cli.command("claimable")
@click.argument("state_file", type=click.Path(exists=True))
@click.argument("user")
@click.argument("epoch", type=int)
@click.option("--current-epoch", type=int, default=None,
              help="Current epoch (defaults to the snapshot's currentEpoch)")
@click.option("--now", type=int, required=True, help="Evaluation timestamp (unix seconds)")
@click.option("--end-time", type=int, required=True, help="End timestamp of EPOCH")
@click.option("--config", "-c", "config_path", type=click.Path(), help="Program config (TOML)")
def claimable_cmd(state_file: str, user: str, epoch: int, current_epoch: Optional[int],
                  now: int, end_time: int, config_path: Optional[str]):
    """Compute what USER could claim for EPOCH at time --now."""
    data, ledger, schedule = load_state(state_file)
    config: ProgramConfig = load_config(config_path)
    current = current_epoch if current_epoch is not None else int(data.get("currentEpoch", 0))

    if not claims_open(epoch, current, config.claims.open_epoch):
        click.echo(f"Epoch {epoch} is not claimable (current epoch {current})")
        click.echo(format_amount(0))
        return
    if not within_window(end_time, now, config.claims.window_seconds):
        click.echo(click.style(f"Claim window for epoch {epoch} has expired", fg="yellow"))
        click.echo(format_amount(0))
        return

    supply = ledger.epoch_supply(epoch)
    amount = 0
    if supply:
        try:
            amount = compute_entitlement(
                schedule.reward_for(epoch),
                ledger.user_balance(user, epoch),
                ledger.user_claimed(user, epoch),
                supply,
            )
        except PointsError as e:
            raise click.ClickException(str(e))
    click.echo(format_amount(amount))


if __name__ == "__main__":
    cli()
