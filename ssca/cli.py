"""
SSCA CLI - scenario sweeps, estimates and playbook management from the terminal
"""

import asyncio

import click
from rich.console import Console
from rich.table import Table

from ssca.config import get_config
from ssca.scenario import (
    BaselineSource,
    OptimizationResult,
    PlaybackController,
    PlaybackState,
    PlaybookStore,
    ScenarioParameters,
    estimate as estimate_impact,
    synthesize_front,
)
from ssca.scenario.constants import SCENARIO_PRESETS
from ssca.services import DataSourceClient, HealthClient, OptimizerClient, PlaybookClient
from ssca.utils import BackendUnavailableError, get_logger, setup_logging

console = Console()
logger = get_logger(__name__)


def _client_kwargs() -> dict:
    config = get_config()
    return {"base_url": config.api_base_url, "timeout": config.request_timeout}


def _estimate_table(est, title: str = "Heuristic Estimate") -> Table:
    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Baseline emissions", f"{est.baseline_emissions:,.0f} kg ({est.baseline_source})")
    table.add_row("Emission reduction", f"{est.emission_reduction_pct:.0f}%")
    table.add_row("Optimized emissions", f"{est.optimized_emissions:,.0f} kg")
    table.add_row("Cost change", f"{est.cost_change_pct:+.2f}%")
    return table


def _pareto_table(points) -> Table:
    table = Table(title="Pareto Analysis (Emissions by Solution)")
    table.add_column("#", style="dim")
    table.add_column("Solution", style="cyan")
    table.add_column("Cost", justify="right")
    table.add_column("Emissions", justify="right")
    table.add_column("Cumulative", justify="right", style="yellow")
    colors = {"baseline": "red", "optimized": "green", "alternative": "blue"}
    for rank, point in enumerate(points, start=1):
        table.add_row(
            str(rank),
            f"[{colors[point.kind]}]{point.label}[/{colors[point.kind]}]",
            f"{point.cost:,}",
            f"{point.emissions:,}",
            f"{point.cumulative_pct}%",
        )
    return table


# ═══════════════════════════════════════════════════════════════════
# MAIN CLI GROUP
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version="0.1.0")
@click.option("--log-level", default=None, help="Override SSCA_LOG_LEVEL")
def main(log_level):
    """
    SSCA - Sustainable Supply Chain Assistant

    Explore modal-shift and renewable-energy what-if scenarios with instant
    heuristic feedback and asynchronous optimizer reconciliation.
    """
    config = get_config()
    setup_logging(log_level or config.log_level, config.log_file)


# ═══════════════════════════════════════════════════════════════════
# OFFLINE COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.option("--modal", "modal_shift", default=30.0, show_default=True, help="Modal shift %")
@click.option("--renewable", default=50.0, show_default=True, help="Renewable increase %")
@click.option("--preset", type=click.Choice(list(SCENARIO_PRESETS)), help="Use a planner preset")
@click.option("--forecast", "forecast", multiple=True, type=float, help="Forecast emission value (repeatable)")
@click.option("--supplier", "suppliers", multiple=True, type=float, help="Supplier emissions (repeatable)")
def estimate(modal_shift, renewable, preset, forecast, suppliers):
    """Heuristic emissions/cost estimate for lever values"""
    params = ScenarioParameters(modal_shift, renewable)
    if preset:
        params.apply_preset(preset)
    source = BaselineSource.from_series(
        forecast, suppliers, fallback=get_config().fallback_baseline_emissions,
    )
    est = estimate_impact(params, source)
    state = params.snapshot()
    console.print(
        f"\n[bold blue]Scenario:[/bold blue] {state.modal_shift_current:.0f}% modal, "
        f"+{state.renewable_current:.0f}% renew"
    )
    console.print(_estimate_table(est))
    if est.is_degraded:
        console.print("[yellow]No forecast or supplier data: fallback baseline in use[/yellow]")


@main.command()
@click.option("--baseline-emissions", type=float, default=None)
@click.option("--optimized-emissions", type=float, default=None)
@click.option("--baseline-cost", type=float, default=None)
@click.option("--optimized-cost", type=float, default=None)
def pareto(baseline_emissions, optimized_emissions, baseline_cost, optimized_cost):
    """Synthetic Pareto front from baseline/optimized figures"""
    raw = {
        "baseline_emissions": baseline_emissions,
        "optimized_emissions": optimized_emissions,
        "baseline_cost": baseline_cost,
        "optimized_cost": optimized_cost,
    }
    result = OptimizationResult.from_payload({k: v for k, v in raw.items() if v is not None})
    console.print(_pareto_table(synthesize_front(result=result)))


# ═══════════════════════════════════════════════════════════════════
# BACKEND COMMANDS
# ═══════════════════════════════════════════════════════════════════

async def _load_baseline_source() -> BaselineSource:
    config = get_config()
    async with DataSourceClient(**_client_kwargs()) as data:
        try:
            forecast = await data.get_forecast(config.facility_id, config.forecast_horizon_days)
        except BackendUnavailableError as exc:
            logger.warning("Forecast unavailable: %s", exc)
            forecast = []
        try:
            suppliers = await data.get_supplier_emissions()
        except BackendUnavailableError as exc:
            logger.warning("Supplier data unavailable: %s", exc)
            suppliers = []
    return BaselineSource.from_series(forecast, suppliers, fallback=config.fallback_baseline_emissions)


async def _run_sweep(modal_shift: float, renewable: float, offline: bool, jump: bool) -> PlaybackController:
    config = get_config()
    params = ScenarioParameters(modal_shift, renewable)
    source = BaselineSource(fallback=config.fallback_baseline_emissions) if offline else await _load_baseline_source()
    optimizer = None if offline else OptimizerClient(**_client_kwargs())

    done = asyncio.Event()
    controller = PlaybackController(
        params,
        optimizer=optimizer,
        baseline_source=source,
        period_s=config.tick_period_s,
        step=config.tick_step,
        optimize_every=config.optimize_every,
    )
    controller.state_changed.subscribe(
        lambda old, new: done.set() if new is PlaybackState.COMPLETED else None
    )
    controller.estimate_updated.subscribe(
        lambda est: console.print(
            f"  t={controller.t:>3}  modal={params.snapshot().modal_shift_current:>5.0f}%  "
            f"renew={params.snapshot().renewable_current:>5.0f}%  "
            f"reduction~{est.emission_reduction_pct:.0f}%  cost~{est.cost_change_pct:+.2f}%"
        )
    )
    controller.notice.subscribe(lambda msg: console.print(f"[yellow]! {msg}[/yellow]"))

    try:
        with controller:
            if jump:
                controller.jump()
            else:
                controller.play()
            await done.wait()
            await controller.drain()
    finally:
        if optimizer is not None:
            await optimizer.aclose()
    return controller


@main.command()
@click.option("--modal", "modal_shift", default=30.0, show_default=True, help="Target modal shift %")
@click.option("--renewable", default=50.0, show_default=True, help="Target renewable increase %")
@click.option("--offline", is_flag=True, help="Heuristic only, no backend calls")
@click.option("--jump", is_flag=True, help="Skip straight to the target state")
def simulate(modal_shift, renewable, offline, jump):
    """Sweep the levers to their targets and reconcile with the optimizer"""
    console.print(f"\n[bold blue]Sweeping to[/bold blue] {modal_shift:.0f}% modal, +{renewable:.0f}% renew")
    controller = asyncio.run(_run_sweep(modal_shift, renewable, offline, jump))

    rec = controller.reconciliation
    console.print(_estimate_table(rec.estimate))
    if rec.source == "optimizer":
        console.print(
            f"[green]✓ Optimizer result applied[/green] (request {rec.sequence}): "
            f"reduction {rec.emission_reduction_pct:.0f}% "
            f"(heuristic gap {rec.emission_gap_pct:+.2f} pts), "
            f"cost {rec.cost_change_pct:+.2f}% (gap {rec.cost_gap_pct:+.2f} pts)"
        )
        if rec.result.is_partial:
            console.print(f"[yellow]Defaults substituted for: {', '.join(rec.result.defaulted_fields)}[/yellow]")
        console.print(_pareto_table(controller.pareto))
    else:
        console.print("[yellow]Showing heuristic figures; no current optimizer result[/yellow]")


@main.command()
def health():
    """Check backend connectivity"""

    async def _check():
        async with HealthClient(base_url=get_config().api_base_url, timeout=get_config().health_timeout) as client:
            return await client.get_health()

    status = asyncio.run(_check())
    state = status.get("status", "unknown")
    color = "green" if state == "healthy" else "red"
    console.print(f"Backend status: [{color}]{state}[/{color}]")


# ═══════════════════════════════════════════════════════════════════
# PLAYBOOK COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.group()
def playbook():
    """Saved scenario playbook"""
    pass


@playbook.command("list")
def playbook_list():
    """List saved scenarios"""

    async def _list():
        async with PlaybookClient(**_client_kwargs()) as client:
            return await PlaybookStore(client).list()

    listing = asyncio.run(_list())
    if not listing.success:
        console.print(f"[yellow]Playbook unavailable: {listing.error}[/yellow]")
        return
    if not listing.scenarios:
        console.print("No saved scenarios.")
        return

    table = Table(title="Scenario Playbook")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Summary")
    table.add_column("Created")
    for s in listing.scenarios:
        created = s.created_at.strftime("%Y-%m-%d %H:%M") if s.created_at else ""
        table.add_row(s.id, s.name, s.summary(), created)
    console.print(table)


@playbook.command("save")
@click.option("--modal", "modal_shift", default=30.0, show_default=True)
@click.option("--renewable", default=50.0, show_default=True)
@click.option("--name", default=None)
@click.option("--description", default=None)
def playbook_save(modal_shift, renewable, name, description):
    """Save a scenario to the playbook"""

    params = ScenarioParameters(modal_shift, renewable)
    params.rename(name, description)

    async def _save():
        async with PlaybookClient(**_client_kwargs()) as client:
            return await PlaybookStore(client).save(params)

    saved = asyncio.run(_save())
    if saved is None:
        console.print("[red]✗ Failed to save scenario[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Saved '{saved.name}' as {saved.id}[/green]")


@playbook.command("delete")
@click.argument("scenario_id")
@click.confirmation_option(prompt="Delete this scenario?")
def playbook_delete(scenario_id):
    """Delete a saved scenario"""

    async def _delete():
        async with PlaybookClient(**_client_kwargs()) as client:
            return await PlaybookStore(client).delete(scenario_id)

    if not asyncio.run(_delete()):
        console.print("[red]✗ Failed to delete scenario[/red]")
        raise SystemExit(1)
    console.print(f"[green]✓ Deleted {scenario_id}[/green]")


if __name__ == "__main__":
    main()
