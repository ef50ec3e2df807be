"""
Utility functions for CLI commands.

This module provides shared utilities for CLI operations.
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import click

from ..config import GatewayConfig
from ..core import Gateway
from ..exceptions import ConfigurationError, GatewayError
from ..observability import get_logger, log_operation, set_correlation_id

T = TypeVar("T")

logger = get_logger(__name__)


def build_config(options: dict[str, Any]) -> GatewayConfig:
    """
    Build the gateway configuration from CLI options and the environment.

    Raises:
        click.ClickException: If the configuration is invalid
    """
    try:
        return GatewayConfig.from_env(
            mongo_uri=options.get("mongo_uri"),
            db_name=options.get("db_name"),
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e


def run_with_gateway(options: dict[str, Any], action: Callable[[Gateway], Awaitable[T]]) -> T:
    """
    Open a gateway, run one async action against it and close it again.

    Each invocation gets its own correlation ID in the log context.

    Raises:
        click.ClickException: If the gateway reports an error
    """
    config = build_config(options)
    command = click.get_current_context().info_name or "cli"

    async def runner() -> T:
        set_correlation_id()
        start_time = time.time()
        success = False
        try:
            async with Gateway(config) as gateway:
                result = await action(gateway)
            success = True
            return result
        finally:
            log_operation(
                logger,
                f"cli.{command}",
                level=logging.INFO if success else logging.ERROR,
                success=success,
                duration_ms=(time.time() - start_time) * 1000,
            )

    try:
        return asyncio.run(runner())
    except GatewayError as e:
        raise click.ClickException(str(e)) from e


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))
