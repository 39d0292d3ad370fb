"""
CLI for ProductShot Studio.

Runs one studio session from the terminal: upload product photos, generate a
batch in one style, optionally improve the first success, and save results.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from productshot import __version__, progress
from productshot.catalog import IMPROVEMENT_EXAMPLES, get_style, list_styles
from productshot.config import GLOBAL_CONFIG_FILE, TEXT_PROVIDERS, Config
from productshot.errors import ProductShotError
from productshot.images import load_source_image, save_result
from productshot.studio import Studio

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    # SDK request logs drown out the session at DEBUG
    for noisy in ("httpx", "httpcore", "anthropic"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _load_config() -> Config:
    cfg = Config.load()
    issues = cfg.validate()
    if issues:
        console.print("[red]Configuration issues:[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        sys.exit(1)
    return cfg


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging and provider usage")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """ProductShot Studio - AI product photography from a single photo."""
    ctx.obj = {"verbose": verbose}
    _configure_logging(verbose)


@main.command()
def styles():
    """List the available photography styles."""
    table = Table(title="Photography Styles")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Description")

    for style in list_styles():
        table.add_row(style.id, style.name, style.description)

    console.print(table)


async def _run_generate(
    cfg: Config,
    images: list[Path],
    style_id: str,
    out_dir: Path,
    improve: Optional[str],
    suggest: bool,
    verbose: bool = False,
) -> list[Path]:
    style = get_style(style_id)
    sources = [load_source_image(path) for path in images]

    progress.print_header([source.name for source in sources], style.name)

    async with Studio.from_config(cfg) as studio:
        studio.subscribe(progress.ProgressPrinter())

        studio.add_source_images(sources)
        await studio.wait_idle()

        batch = studio.start_batch(style)
        await studio.wait_idle()

        if suggest:
            progress.print_suggestions(await studio.fetch_suggestions())

        if improve:
            if studio.can_improve:
                studio.improve(improve)
                await studio.wait_idle()
            else:
                console.print("[yellow]No completed image to improve; skipping --improve.[/yellow]")

        saved = []
        for index, item_id in enumerate(batch.item_ids):
            item = studio.session.find_result(item_id)
            if item is not None and item.payload is not None:
                saved.append(save_result(item, out_dir, index=index))

        if verbose and studio.providers is not None:
            progress.print_provider_stats(studio.providers.stats.to_dict())

    progress.print_result(saved, len(batch.item_ids))
    return saved


@main.command()
@click.argument("images", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--style", "-s", "style_id", required=True, help="Style ID (see 'productshot styles')")
@click.option("--out", "-o", "out_dir", type=click.Path(file_okay=False, path_type=Path), default=Path("productshot-output"), help="Directory for generated images")
@click.option("--improve", "-i", help="Edit instruction applied to the first successful image")
@click.option("--suggest", is_flag=True, help="Print improvement ideas for the product")
@click.pass_context
def generate(ctx: click.Context, images: tuple, style_id: str, out_dir: Path, improve: Optional[str], suggest: bool):
    """Generate four styled images of the product in IMAGES.

    The first image is the one that gets restyled; further images are kept as
    alternates, up to the configured limit.
    """
    try:
        get_style(style_id)
    except KeyError as e:
        raise click.BadParameter(str(e.args[0]), param_hint="--style")

    cfg = _load_config()

    try:
        saved = asyncio.run(_run_generate(
            cfg, list(images), style_id, out_dir, improve, suggest, verbose=ctx.obj["verbose"],
        ))
    except (ProductShotError, ValueError) as e:
        progress.print_error(str(e))
        sys.exit(1)

    for path in saved:
        click.echo(str(path))

    if not saved:
        sys.exit(1)


@main.command()
@click.option("--google", "google_key", help="Google API key")
@click.option("--anthropic", "anthropic_key", help="Anthropic API key")
@click.option("--text-provider", type=click.Choice(TEXT_PROVIDERS), help="Preferred provider for analysis and prompts")
@click.option("--show", is_flag=True, help="Show configuration after saving")
def config(google_key: str, anthropic_key: str, text_provider: str, show: bool):
    """View or edit configuration."""
    cfg = Config.load()

    changed = False
    if google_key:
        cfg.api_keys.google = google_key
        changed = True
    if anthropic_key:
        cfg.api_keys.anthropic = anthropic_key
        changed = True
    if text_provider:
        cfg.defaults.text_provider = text_provider
        changed = True

    if changed:
        cfg.save()
        console.print(f"[green]Configuration saved to {GLOBAL_CONFIG_FILE}[/green]")
        if not show:
            return

    console.print(Panel.fit(
        f"[bold]Configuration[/bold]\n\n"
        f"Config file: {GLOBAL_CONFIG_FILE}\n\n"
        f"[bold]API Keys[/bold]\n"
        f"  Google: {'[green]configured[/green]' if cfg.api_keys.google else '[red]missing[/red]'}\n"
        f"  Anthropic: {'[green]configured[/green]' if cfg.api_keys.anthropic else '[yellow]missing[/yellow]'}\n\n"
        f"[bold]Defaults[/bold]\n"
        f"  Text provider: {cfg.defaults.text_provider}\n"
        f"  Text model: {cfg.defaults.text_model}\n"
        f"  Image model: {cfg.defaults.image_model}\n"
        f"  Aspect ratio: {cfg.defaults.aspect_ratio}\n"
        f"  Max source images: {cfg.defaults.max_source_images}",
        title="ProductShot Studio Config",
    ))

    issues = cfg.validate()
    if issues:
        console.print("\n[red]Issues:[/red]")
        for issue in issues:
            console.print(f"  - {issue}")


@main.command()
def examples():
    """Show example improvement instructions."""
    for example in IMPROVEMENT_EXAMPLES:
        console.print(f"  • {example}")


if __name__ == "__main__":
    main()
