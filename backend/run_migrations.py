#!/usr/bin/env python3
"""
Database migration runner for Supabase.

Applies the SQL files in migrations/ to the Supabase PostgreSQL database
in filename order, recording each one with a checksum.

Usage:
    uv run python run_migrations.py                    # Apply pending migrations
    uv run python run_migrations.py --status           # Show migration status
    uv run python run_migrations.py --dry-run          # Show what would run
    uv run python run_migrations.py --force 001 --yes  # Re-apply a migration

Configuration:
    Set SUPABASE_DB_URL in your .env file to the project's Postgres URI
    (Supabase Dashboard > Settings > Database > Connection string > URI).
"""

import argparse
import hashlib
import sys
from pathlib import Path
from typing import NamedTuple, Optional

import psycopg2
from psycopg2 import sql
from rich.console import Console
from rich.table import Table

from shared.config import get_settings

console = Console()

MIGRATIONS_DIR = Path(__file__).parent / "migrations"
MIGRATIONS_TABLE = "_migrations"


class Migration(NamedTuple):
    name: str
    path: Path
    checksum: str


def checksum_of(content: str) -> str:
    return hashlib.sha256(content.encode()).hexdigest()[:16]


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[Migration]:
    """List the migration files in a directory, sorted by name."""
    if not directory.exists():
        return []
    return [
        Migration(path.name, path, checksum_of(path.read_text()))
        for path in sorted(directory.glob("*.sql"))
    ]


def split_pending(
    migrations: list[Migration],
    applied: dict[str, dict],
) -> tuple[list[Migration], list[Migration]]:
    """
    Split migrations into those not yet applied and those whose file
    changed after it was applied.
    """
    pending: list[Migration] = []
    changed: list[Migration] = []
    for migration in migrations:
        record = applied.get(migration.name)
        if record is None:
            pending.append(migration)
        elif record["checksum"] != migration.checksum:
            changed.append(migration)
    return pending, changed


def get_db_connection():
    """Get a connection to the Supabase PostgreSQL database."""
    settings = get_settings()

    if not settings.supabase_db_url:
        console.print("[red]Error:[/red] SUPABASE_DB_URL is not set.")
        console.print("Set it in your .env file to the database connection URI.")
        sys.exit(1)

    try:
        return psycopg2.connect(settings.supabase_db_url)
    except psycopg2.Error as e:
        console.print(f"[red]Database connection failed:[/red] {e}")
        sys.exit(1)


def ensure_migrations_table(conn) -> None:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL("""
                CREATE TABLE IF NOT EXISTS {} (
                    id SERIAL PRIMARY KEY,
                    name VARCHAR(255) NOT NULL UNIQUE,
                    checksum VARCHAR(64) NOT NULL,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                );
            """).format(sql.Identifier(MIGRATIONS_TABLE))
        )
    conn.commit()


def get_applied_migrations(conn) -> dict[str, dict]:
    with conn.cursor() as cur:
        cur.execute(
            sql.SQL("SELECT name, checksum, applied_at FROM {} ORDER BY name").format(
                sql.Identifier(MIGRATIONS_TABLE)
            )
        )
        return {
            name: {"checksum": checksum, "applied_at": applied_at}
            for name, checksum, applied_at in cur.fetchall()
        }


def apply_migration(conn, migration: Migration, dry_run: bool = False) -> None:
    """Run one migration and record it, in a single transaction."""
    if dry_run:
        console.print(f"[cyan]Would run:[/cyan] {migration.name}")
        return

    console.print(f"[blue]Running:[/blue] {migration.name}...")
    try:
        with conn.cursor() as cur:
            cur.execute(migration.path.read_text())
            cur.execute(
                sql.SQL(
                    "INSERT INTO {} (name, checksum) VALUES (%s, %s) "
                    "ON CONFLICT (name) DO UPDATE SET checksum = EXCLUDED.checksum, applied_at = NOW()"
                ).format(sql.Identifier(MIGRATIONS_TABLE)),
                (migration.name, migration.checksum),
            )
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        console.print(f"[red]✗[/red] {migration.name} failed: {e}")
        raise

    console.print(f"[green]✓[/green] {migration.name} applied")


def show_status(conn) -> None:
    applied = get_applied_migrations(conn)
    migrations = discover_migrations()
    pending, changed = split_pending(migrations, applied)
    changed_names = {m.name for m in changed}

    if not applied and not pending:
        console.print("[dim]No migrations found.[/dim]")
        return

    table = Table(title="Migration Status")
    table.add_column("Migration", style="cyan")
    table.add_column("Status")
    table.add_column("Applied At")
    table.add_column("Checksum")

    for name, info in applied.items():
        status = "[yellow]Changed[/yellow]" if name in changed_names else "[green]Applied[/green]"
        applied_at = info["applied_at"].strftime("%Y-%m-%d %H:%M:%S") if info["applied_at"] else ""
        table.add_row(name, status, applied_at, info["checksum"])

    for migration in pending:
        table.add_row(migration.name, "[yellow]Pending[/yellow]", "", migration.checksum)

    console.print(table)


def find_migration(prefix: str) -> Optional[Migration]:
    matches = [m for m in discover_migrations() if m.name.startswith(prefix)]
    if not matches:
        console.print(f"[red]Error:[/red] No migration found matching '{prefix}'")
        return None
    if len(matches) > 1:
        console.print(f"[red]Error:[/red] Multiple migrations match '{prefix}':")
        for m in matches:
            console.print(f"  - {m.name}")
        return None
    return matches[0]


def run_pending(conn, dry_run: bool) -> None:
    pending, changed = split_pending(discover_migrations(), get_applied_migrations(conn))

    for migration in changed:
        console.print(f"[yellow]Warning:[/yellow] {migration.name} has changed since it was applied")

    if not pending:
        console.print("[green]All migrations are up to date![/green]")
        return

    console.print(f"Found {len(pending)} pending migration(s):")
    for migration in pending:
        console.print(f"  - {migration.name}")
    console.print()

    for migration in pending:
        apply_migration(conn, migration, dry_run=dry_run)


def main():
    parser = argparse.ArgumentParser(
        description="Run database migrations for Supabase",
    )
    parser.add_argument("--status", action="store_true", help="Show migration status")
    parser.add_argument("--dry-run", action="store_true", help="Show pending migrations without running them")
    parser.add_argument("--force", metavar="PREFIX", help="Re-apply the migration matching PREFIX (e.g. '001')")
    parser.add_argument("--yes", action="store_true", help="Do not ask before a forced re-run")
    args = parser.parse_args()

    console.print("[bold]Mirrorcut Database Migrations[/bold]")
    console.print()

    conn = get_db_connection()
    try:
        ensure_migrations_table(conn)
        if args.status:
            show_status(conn)
        elif args.force:
            migration = find_migration(args.force)
            if migration is None:
                sys.exit(1)
            if not args.yes and input(f"Re-apply {migration.name}? [y/N] ").lower() != "y":
                console.print("Aborted.")
                return
            apply_migration(conn, migration)
        else:
            run_pending(conn, dry_run=args.dry_run)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
