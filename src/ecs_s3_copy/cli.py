# src/ecs_s3_copy/cli.py
"""Command-line interface for the ecs-s3-copy tool."""

import asyncio
import logging
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from ecs_s3_copy.config import MAX_PAGE_SIZE, Config, CopyJobConfig, StoreConfig
from ecs_s3_copy.exceptions import EcsCopyError

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["botocore", "aiobotocore", "aiohttp", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


async def main_async(config: Config) -> None:
    """
    Asynchronously execute the copy pipeline.

    Args:
        config (Config): The application configuration.
    """
    # Lazily import to keep the CLI fast when only parsing arguments
    from ecs_s3_copy.pipeline import CopyBucketPipeline

    pipeline: CopyBucketPipeline = CopyBucketPipeline(config)
    await pipeline.run()


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "-e", "--endpoint", envvar="ECS_ENDPOINT", required=True, help="The ECS endpoint."
)
@click.option(
    "-u", "--user", envvar="ECS_USER", required=True, help="The ECS object user."
)
@click.option(
    "-p",
    "--password",
    envvar="ECS_PASSWORD",
    required=True,
    help="The ECS object user password.",
)
@click.option("-s", "--source", required=True, help="The ECS source bucket.")
@click.option("-t", "--target", required=True, help="The ECS target bucket.")
@click.option("-x", "--sourceprefix", default="", help="The source prefix.")
@click.option("-y", "--targetprefix", default="", help="The target prefix.")
@click.option(
    "-m",
    "--maxkeys",
    type=click.IntRange(1, MAX_PAGE_SIZE),
    default=100,
    help="The number of keys to retrieve simultaneously from the source bucket.",
    show_default=True,
)
@click.option(
    "-q",
    "--query",
    default=None,
    help="The ECS metadata search query to select the objects from the source bucket.",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Also display the objects successfully copied.",
)
@click.option(
    "--region",
    envvar="ECS_REGION",
    default="us-east-1",
    help="The region used to sign requests.",
    show_default=True,
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy the objects of an ECS bucket into another bucket.

    Objects are selected either by listing the source bucket under an
    optional prefix, or with an ECS metadata search query. Every object is
    copied server-side with its metadata replaced, overwriting any existing
    object with the same key in the target bucket.

    Credentials can be passed as options or through the ECS_ENDPOINT,
    ECS_USER and ECS_PASSWORD environment variables.
    """
    setup_logging(kwargs["log_level"])

    try:
        query: Optional[str] = kwargs["query"] or None
        config: Config = Config(
            store=StoreConfig(
                endpoint_url=kwargs["endpoint"],
                access_key_id=kwargs["user"],
                secret_access_key=kwargs["password"],
                region=kwargs["region"],
            ),
            job=CopyJobConfig(
                source_bucket=kwargs["source"],
                target_bucket=kwargs["target"],
                source_prefix=kwargs["sourceprefix"],
                target_prefix=kwargs["targetprefix"],
                query=query,
                page_size=kwargs["maxkeys"],
                verbose=kwargs["verbose"],
            ),
        )

        asyncio.run(main_async(config))
    except EcsCopyError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)


def main() -> None:
    """Console script entry point, loading a `.env` file before parsing."""
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
