"""CLI helpers for running async operations and formatting output."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

import click

T = TypeVar("T")


def coro(f: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Make an async function synchronous for Click.

    Usage:
        @click.command()
        @coro
        async def my_command():
            await some_async_operation()
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> T:
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def success(message: str) -> None:
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    click.secho(f"✗ {message}", fg="red", err=True)


def info(message: str) -> None:
    click.secho(f"ℹ {message}", fg="blue")
