from rich.console import Console
from rich.markup import escape
from rich.theme import Theme

from sqllink.common.errors import LinkError

custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
})

console = Console(theme=custom_theme)


def print_success(message: str) -> None:
    console.print(f"[success]✔ {escape(message)}[/success]")


def print_error(message: str) -> None:
    console.print(f"[error]✘ {escape(message)}[/error]")


def print_link_error(error: LinkError) -> None:
    info = error.to_info()
    print_error(f"{info.error_code.value}: {info.message}")
    if info.sql:
        console.print(f"  [info]SQL:[/info] {escape(info.sql)}", highlight=False)
    if info.remote_message:
        console.print(f"  [info]Remote:[/info] {escape(info.remote_message)}", highlight=False)
