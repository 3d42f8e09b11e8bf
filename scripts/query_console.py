#!/usr/bin/env python3
"""
RepoQL Interactive Query Console

Try filter/sort/search strings against a small demo schema and see the
SQL they compile to and the rows they return.
"""

import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from repoql.core.query.select_query import QueryBuildError, get_sql_string
from repoql.core.relations.config import JoinType, RelationConfig
from repoql.db import Base, get_engine, get_session_factory
from repoql.repository import Repository


console = Console()


# -----------------------------
# Demo Schema
# -----------------------------


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(50))


class UserPicture(Base):
    __tablename__ = "user_pictures"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    path: Mapped[str] = mapped_column(String(200))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class User(Base):
    __tablename__ = "users"
    __hidden__ = frozenset({"password"})

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(200))
    status: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password: Mapped[str] = mapped_column(String(100))
    pic_id: Mapped[int | None] = mapped_column(ForeignKey("user_pictures.id"), nullable=True)
    role_id: Mapped[int | None] = mapped_column(ForeignKey("roles.id"), nullable=True)


class UserRepository(Repository[User]):
    model = User
    searchable = ("name", "email")
    filterable = frozenset({"id", "name", "status"})
    sortable = frozenset({"id", "name"})
    relations = {
        "profile": RelationConfig(
            chain={"users.pic_id": "user_pictures.id"},
            select=["user_pictures.path AS photo"],
            filterable=["photo"],
            sortable=["photo"],
            soft_delete=["user_pictures"],
        ),
        "role": RelationConfig(
            chain={"users.role_id": "roles.id"},
            select=["roles.title AS role"],
            filterable=["role"],
            sortable=["role"],
            join_type=JoinType.LEFT,
        ),
    }


def seed(session) -> None:
    """Insert demo rows."""
    session.add_all([
        Role(id=1, title="admin"),
        Role(id=2, title="editor"),
        UserPicture(id=1, path="/img/ada.png"),
        UserPicture(id=2, path="/img/alan.png"),
        UserPicture(id=3, path="/img/old.png", deleted_at=datetime(2024, 1, 1)),
        User(id=1, name="Ada", email="ada@example.com", status="active",
             password="x", pic_id=1, role_id=1),
        User(id=2, name="Alan", email="alan@example.com", status="active",
             password="x", pic_id=2, role_id=2),
        User(id=3, name="Grace", email="grace@example.com", status=None,
             password="x", pic_id=3),
        User(id=4, name="Linus", email="linus@example.com", status="banned",
             password="x"),
    ])
    session.commit()


# -----------------------------
# Display Functions
# -----------------------------


def show_header():
    """Display the application header."""
    header = Text()
    header.append("RepoQL", style="bold bright_cyan")
    header.append(" - Query String Console", style="dim")

    console.print()
    console.print(Panel(
        header,
        box=box.DOUBLE,
        border_style="bright_blue",
        padding=(0, 2),
    ))
    console.print()


def show_help():
    """Display help information."""
    help_text = Text()
    help_text.append("Available Commands:\n", style="bold cyan")
    for command, description in (
        ("filter <raw>", "Apply a filter string"),
        ("sort <raw>  ", "Apply a sort string"),
        ("search <term>", "Search name and email"),
        ("join <name> ", "Join a relation (profile, role)"),
        ("sql         ", "Show the SQL built so far"),
        ("run         ", "Execute and start a new query"),
        ("reset       ", "Discard the current query"),
        ("exit        ", "Exit the application"),
    ):
        help_text.append(f"  {command} ", style="green")
        help_text.append(f"- {description}\n")

    help_text.append("\nExamples:\n", style="bold cyan")
    help_text.append("  filter status:is_not-null@profile.photo:like_a\n", style="white")
    help_text.append("  filter id:between_2,4@role.role:not_equal_admin\n", style="white")
    help_text.append("  sort profile.photo:desc@id:asc\n", style="white")

    console.print(Panel(
        help_text,
        title="[bold]Help[/bold]",
        border_style="dim",
    ))


def show_sql(sql_text: str):
    """Display the generated SQL."""
    formatted_sql = sql_text.replace(" FROM ", "\nFROM ")
    formatted_sql = formatted_sql.replace(" JOIN ", "\n  JOIN ")
    formatted_sql = formatted_sql.replace(" WHERE ", "\nWHERE ")
    formatted_sql = formatted_sql.replace(" ORDER BY ", "\nORDER BY ")
    formatted_sql = formatted_sql.replace(" AND ", "\n  AND ")

    syntax = Syntax(formatted_sql, "sql", theme="monokai", line_numbers=False)
    console.print(Panel(
        syntax,
        title="[bold yellow]Generated SQL[/bold yellow]",
        border_style="yellow",
    ))


def show_results(rows: list[dict]):
    """Display query results in a table."""
    if not rows:
        console.print("[dim]No results found.[/dim]")
        return

    table = Table(
        title=f"[bold cyan]Results ({len(rows)} rows)[/bold cyan]",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta",
    )

    for col in rows[0]:
        table.add_column(str(col), style="cyan")

    for row in rows:
        table.add_row(*[str(v) if v is not None else "NULL" for v in row.values()])

    console.print(table)


def show_error(title: str, message: str):
    """Display an error message."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))


# -----------------------------
# Main Processing
# -----------------------------


def process_command(line: str, repository: UserRepository) -> None:
    """Apply one console command to the repository."""
    command, _, argument = line.partition(" ")
    command = command.lower()

    match command:
        case "filter":
            repository.filter(argument)
        case "sort":
            repository.sort(argument)
        case "search":
            repository.search(argument)
        case "join":
            repository.join(argument)
        case "sql":
            show_sql(get_sql_string(repository.query.statement))
            return
        case "run":
            show_sql(get_sql_string(repository.query.statement))
            show_results(repository.get())
            return
        case "reset":
            repository.reset()
            console.print("[green]✓[/green] Query reset")
            return
        case _:
            show_error("Unknown Command", f"'{command}' - type 'help' for commands")
            return

    console.print(f"[green]✓[/green] {command} applied")


def main():
    """Main entry point."""
    show_header()

    console.print("[dim]Initializing...[/dim]")

    try:
        engine = get_engine()
        Base.metadata.create_all(engine)
        session_factory = get_session_factory(engine)
        db = session_factory()
        seed(db)
        repository = UserRepository(db)
        console.print("[green]✓[/green] Demo schema created and seeded")
    except Exception as e:
        show_error("Initialization Error", str(e))
        console.print("\n[dim]Make sure your .env file is configured correctly.[/dim]")
        sys.exit(1)

    console.print()
    console.print("[dim]Type 'help' for available commands.[/dim]")
    console.print()

    while True:
        try:
            line = Prompt.ask("[bold magenta]repoql[/bold magenta]").strip()

            if not line:
                continue

            if line.lower() in ("exit", "quit", "q"):
                console.print("\n[dim]Goodbye![/dim]\n")
                break

            if line.lower() == "help":
                show_help()
                continue

            process_command(line, repository)

        except KeyboardInterrupt:
            console.print("\n[dim]Goodbye![/dim]\n")
            break
        except QueryBuildError as e:
            show_error("Configuration Error", str(e))
            repository = UserRepository(db)
        except Exception as e:
            show_error("Unexpected Error", str(e))

    db.close()


if __name__ == "__main__":
    main()
