"""
Mealwise - CLI Entry Point.

Usage:
    mealwise suggest --inventory pantry.json     Recipes for what you have
    mealwise plan --inventory pantry.json        Weekly meal plan
    mealwise signal RECIPE_ID --type cooked      Record an interaction
    mealwise health                              Check configuration
    mealwise --help                              Show help

Pass --library FILE to run against an in-memory library seeded from a JSON
file instead of Supabase.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.spinner import Spinner
from rich.table import Table

app = typer.Typer(
    name="mealwise",
    help="Mealwise - recipe reuse and weekly meal planning.",
    add_completion=False,
)
console = Console()

LIBRARY_OPTION = typer.Option(None, "--library", help="JSON recipe library (in-memory stores)")
PROFILE_OPTION = typer.Option(None, "--profile", help="JSON user context")
LOG_PROMPTS_OPTION = typer.Option(False, "--log-prompts", "-l", help="Log generation prompts to prompt_logs/")


def _load_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]❌ Could not read {path}: {e}[/red]")
        raise typer.Exit(1)


def _load_inventory(path: Path):
    from mealwise.models import InventoryItem

    rows = _load_json(path)
    return [InventoryItem(name=r) if isinstance(r, str) else InventoryItem.model_validate(r) for r in rows]


def _load_user(path: Path | None):
    from mealwise.models import UserContext

    if path is None:
        return UserContext()
    return UserContext.model_validate(_load_json(path))


def _build_service(library: Path | None, log_prompts: bool):
    from mealwise.config import configure_logging, get_settings
    from mealwise.errors import ConfigurationError
    from mealwise.llm.prompt_logger import enable_prompt_logging
    from mealwise.services import build_recipe_service

    configure_logging()
    if log_prompts:
        enable_prompt_logging(True)

    try:
        return build_recipe_service(get_settings(), library_file=library)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e}[/red]")
        console.print("[dim]Pass --library FILE to run without Supabase.[/dim]")
        raise typer.Exit(1)


def _recipe_table(recipes, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Title", style="bold")
    table.add_column("Match", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Tags", style="dim")
    table.add_column("Id", style="dim")
    for r in recipes:
        minutes = (r.prep_time or 0) + (r.cook_time or 0)
        table.add_row(r.title, f"{r.match_score}%", f"{minutes} min", ", ".join(r.tags), r.id)
    return table


async def _with_drain(service, coro):
    try:
        return await coro
    finally:
        await service.background.drain()


@app.command()
def suggest(
    inventory: Path = typer.Option(..., "--inventory", "-i", help="JSON list of inventory items"),
    library: Optional[Path] = LIBRARY_OPTION,
    profile: Optional[Path] = PROFILE_OPTION,
    meal_type: str = typer.Option("any", "--meal-type", "-m", help="breakfast, lunch, dinner, snack or any"),
    servings: int = typer.Option(2, "--servings", min=1),
    max_time: int = typer.Option(45, "--max-time", min=1, help="Max prep + cook minutes"),
    must_include: Optional[str] = typer.Option(None, "--must-include"),
    cravings: Optional[str] = typer.Option(None, "--cravings"),
    user_id: Optional[str] = typer.Option(None, "--user-id"),
    log_prompts: bool = LOG_PROMPTS_OPTION,
) -> None:
    """Suggest recipes for what's on hand, reusing the library when it fits."""
    from mealwise.errors import GenerationError
    from mealwise.models import RecipePreferences
    from mealwise.recipes.constants import MEAL_TYPES

    if meal_type.lower() not in MEAL_TYPES:
        console.print(f"[red]❌ Unknown meal type: {meal_type}[/red]")
        raise typer.Exit(1)

    service = _build_service(library, log_prompts)
    prefs = RecipePreferences(
        servings=servings,
        max_time_minutes=max_time,
        meal_type=meal_type,
        cravings=cravings,
        must_include_ingredient=must_include,
    )

    try:
        with Live(Spinner("dots", text="Finding recipes..."), console=console, transient=True):
            result = asyncio.run(
                _with_drain(
                    service,
                    service.generate_recipes_from_inventory(
                        _load_inventory(inventory), _load_user(profile), prefs, user_id
                    ),
                )
            )
    except GenerationError as e:
        console.print(f"\n[red]❌ Generation failed: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold]Mode:[/bold] {result.mode}")
    if result.telemetry.gate_reason:
        console.print(f"[dim]Library miss: {result.telemetry.gate_reason}[/dim]")
    if not result.recipes:
        console.print("[yellow]No recipes produced.[/yellow]")
        return
    console.print(_recipe_table(result.recipes, "Recipes"))


@app.command()
def plan(
    inventory: Path = typer.Option(..., "--inventory", "-i", help="JSON list of inventory items"),
    library: Optional[Path] = LIBRARY_OPTION,
    profile: Optional[Path] = PROFILE_OPTION,
    days: int = typer.Option(7, "--days", min=1, max=7),
    user_id: Optional[str] = typer.Option(None, "--user-id"),
    log_prompts: bool = LOG_PROMPTS_OPTION,
) -> None:
    """Build a breakfast/lunch/dinner plan for the week."""
    service = _build_service(library, log_prompts)

    with Live(Spinner("dots", text="Planning the week..."), console=console, transient=True):
        week = asyncio.run(
            _with_drain(
                service,
                service.generate_weekly_meal_plan(
                    _load_inventory(inventory), _load_user(profile), user_id, days
                ),
            )
        )

    table = Table(title="Meal Plan")
    table.add_column("Day", style="bold")
    for slot in ("Breakfast", "Lunch", "Dinner"):
        table.add_column(slot)
    for day in week:
        cells = [m.title if m else "[dim]-[/dim]" for m in (day.breakfast, day.lunch, day.dinner)]
        table.add_row(day.day, *cells)
    console.print(table)


@app.command()
def signal(
    recipe_id: str = typer.Argument(..., help="Library recipe id"),
    signal_type: str = typer.Option(..., "--type", "-t", help="cooked, skipped, thumbs_up, thumbs_down, repeated, edited"),
    user_id: str = typer.Option(..., "--user-id"),
    library: Optional[Path] = LIBRARY_OPTION,
) -> None:
    """Record an interaction and update the user's taste profile."""
    from mealwise.models import InteractionSignal, SignalType

    try:
        kind = SignalType(signal_type.lower())
    except ValueError:
        console.print(f"[red]❌ Unknown signal type: {signal_type}[/red]")
        raise typer.Exit(1)

    service = _build_service(library, False)
    applied = asyncio.run(
        _with_drain(
            service,
            service.apply_interaction_signal(
                InteractionSignal(user_id=user_id, recipe_id=recipe_id, signal_type=kind)
            ),
        )
    )

    if applied:
        console.print(f"✅ Recorded {kind.value} for {recipe_id}")
    else:
        console.print(f"⚠️  Recipe {recipe_id} not found; nothing recorded")


@app.command()
def health() -> None:
    """Check configuration."""
    from mealwise.config import get_settings

    console.print("\n[bold]Mealwise Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Check your .env file.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.mealwise_env}")
    console.print(f"   Log level: {settings.log_level}")

    if settings.has_generation:
        console.print(f"✅ Generation enabled ({settings.generation_model})")
    else:
        console.print("ℹ️  OpenAI API key not set; library reuse only")

    if settings.has_supabase:
        console.print("✅ Supabase configured")
    else:
        console.print("ℹ️  Supabase not configured; use --library FILE")

    console.print(
        f"   Reuse gate: score >= {settings.reuse_score_threshold}, "
        f"missing <= {settings.reuse_max_missing}"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from mealwise import __version__

    console.print(f"Mealwise version {__version__}")


if __name__ == "__main__":
    app()
