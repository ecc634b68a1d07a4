# cli.py
import argparse
import logging
import sys
from typing import Optional, List

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from app.config import Settings, get_settings
from app.database import ProductStore

console = Console()

ROUTES = [
    ("GET", "/", "List products"),
    ("GET", "/product/{id}", "Product detail"),
    ("GET", "/search?q=", "Search name and description"),
    ("POST", "/product/{id}/update", "Update product fields"),
    ("GET", "/product/{id}/delete", "Delete product"),
    ("GET", "/add-product", "New product form"),
    ("POST", "/add-product", "Create product"),
    ("GET", "/debug/exec?cmd=", "Run an allow-listed command"),
    ("GET", "/debug/fetch?url=", "Fetch an allow-listed URL"),
]


def setup_logging(level: str):
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def show_routes(settings: Settings):
    table = Table(
        title="Routes",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
    )
    table.add_column("Method", style="bold", width=6)
    table.add_column("Path", width=24)
    table.add_column("Purpose")
    for method, path, purpose in ROUTES:
        if path.startswith("/debug") and not settings.debug_endpoints:
            purpose = f"[dim]{purpose} (disabled)[/dim]"
        table.add_row(method, path, purpose)
    console.print(table)


def _apply_overrides(args: argparse.Namespace) -> Settings:
    overrides = {}
    if getattr(args, "host", None):
        overrides["host"] = args.host
    if getattr(args, "port", None):
        overrides["port"] = args.port
    if getattr(args, "db", None):
        overrides["db_path"] = args.db
    if getattr(args, "debug_endpoints", False):
        overrides["debug_endpoints"] = True
    base = get_settings()
    return base.model_copy(update=overrides) if overrides else base


def cmd_serve(settings: Settings):
    import uvicorn
    from app.main import create_app

    setup_logging(settings.log_level)
    console.print(Panel.fit(
        f"[bold green]catalog-store[/bold green] on http://{settings.host}:{settings.port}\n"
        f"[dim]database: {settings.db_path}[/dim]",
        border_style="blue",
    ))
    show_routes(settings)
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


def cmd_seed(settings: Settings):
    setup_logging(settings.log_level)
    store = ProductStore(settings.db_path)
    store.reset()
    products = store.list_products()
    table = Table(title="Seeded products", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Price", justify="right")
    table.add_column("Active")
    for p in products:
        table.add_row(str(p.id), p.name, f"${p.price:.2f}", "yes" if p.is_active else "no")
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="catalog-store", description="Catalog store server")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the web server")
    serve.add_argument("--host", help="Bind address")
    serve.add_argument("--port", type=int, help="Bind port")
    serve.add_argument("--db", help="SQLite database file")
    serve.add_argument("--debug-endpoints", action="store_true", help="Enable /debug/* routes")

    seed = subparsers.add_parser("seed", help="Recreate the products table with seed rows")
    seed.add_argument("--db", help="SQLite database file")
    return parser


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)
    settings = _apply_overrides(args)
    if args.command == "serve":
        cmd_serve(settings)
    elif args.command == "seed":
        cmd_seed(settings)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        console.print("\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
