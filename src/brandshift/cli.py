"""Command-line front end: restyle one image and print the result.

Run:
    brandshift logo.png --style "neon outlines"
    brandshift logo.png --no-mock --base-url https://studio.example.com --json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import TYPE_CHECKING

from brandshift.config import Config
from brandshift.errors import GENERIC_ERROR_MESSAGE, BrandshiftError, ConfigurationError
from brandshift.providers import create_backend
from brandshift.source import ImageSource
from brandshift.workflow import Phase, TransformWorkflow

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from brandshift.workflow import SessionSnapshot

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="brandshift",
        description="Restyle an image in the brand look through an AI agent.",
    )
    parser.add_argument("image", type=Path, help="PNG, JPG or WEBP image to restyle.")
    parser.add_argument(
        "--style",
        default="",
        help="Optional extra style direction appended to the brand instruction.",
    )
    parser.add_argument(
        "--mock",
        action=argparse.BooleanOptionalAction,
        default=True,
        help=("Run in mock mode (default: enabled). Use --no-mock for real API calls."),
    )
    parser.add_argument(
        "--agent-id",
        default=None,
        help="Agent id override. Usually read from BRANDSHIFT_AGENT_ID.",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Gateway URL override. Usually read from BRANDSHIFT_BASE_URL.",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the final session as JSON."
    )
    parser.add_argument(
        "--retry",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Offer to try again after a failure when running interactively.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    return parser


def build_config_or_exit(args: argparse.Namespace) -> Config:
    """Build Config from parsed args, exiting with a concise actionable error."""
    try:
        return Config(
            agent_id=args.agent_id,
            base_url=args.base_url,
            use_mock=bool(args.mock),
        )
    except ConfigurationError as exc:
        hint = f" Hint: {exc.hint}" if exc.hint else ""
        print(f"Configuration error: {exc}.{hint}", file=sys.stderr)
        raise SystemExit(EXIT_CONFIG) from exc


def print_section(title: str) -> None:
    """Print a named section heading."""
    print(f"\n{title}")
    print("-" * len(title))


def print_kv_rows(rows: list[tuple[str, object]]) -> None:
    """Print compact key/value rows using a uniform bullet style."""
    for key, value in rows:
        lines = str(value).splitlines() or [""]
        print(f"- {key}: {lines[0]}")
        for cont in lines[1:]:
            print(f"  {' ' * len(key)}  {cont}")


def print_progress(snapshot: SessionSnapshot) -> None:
    """Listener that echoes progress messages as phases change."""
    if snapshot.progress_message:
        print(snapshot.progress_message, file=sys.stderr)


def render(snapshot: SessionSnapshot, *, as_json: bool = False) -> None:
    """Print the final session."""
    if as_json:
        print(json.dumps(snapshot.as_dict(), indent=2, ensure_ascii=False))
        return

    if snapshot.phase is Phase.SUCCEEDED:
        print_section("Transformed image")
        print_kv_rows(
            [
                ("Source", f"{snapshot.source_name} ({snapshot.source_size_mb})"),
                ("Image", snapshot.image_url),
            ]
        )
        if snapshot.details is not None and not snapshot.details.is_empty:
            print_section("Transformation details")
            rows: list[tuple[str, object]] = [
                ("Description", snapshot.details.transformation_description),
                ("Style elements", snapshot.details.style_elements_applied),
                ("Color palette", snapshot.details.color_palette_used),
            ]
            print_kv_rows([(k, v) for k, v in rows if v])
        return

    print_section("Transformation failed")
    print_kv_rows([("Error", snapshot.error or GENERIC_ERROR_MESSAGE)])


def render_safely(snapshot: SessionSnapshot, *, as_json: bool = False) -> bool:
    """Render *snapshot*; on a rendering failure log it and show a short notice.

    Returns False when rendering failed.
    """
    try:
        render(snapshot, as_json=as_json)
    except Exception:
        logger.exception("Failed to render session")
        print(
            "Something went wrong while showing the result. Please try again.",
            file=sys.stderr,
        )
        return False
    return True


def _ask_retry() -> bool:
    try:
        answer = input("Try again? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


async def run(
    source: ImageSource,
    *,
    config: Config,
    style_note: str = "",
    as_json: bool = False,
    ask_retry: Callable[[], bool] | None = None,
) -> int:
    """Run one transform (plus manual retries) and return the exit status."""
    backend = create_backend(config)
    workflow = TransformWorkflow(backend, config=config)
    if not as_json:
        workflow.subscribe(print_progress)

    try:
        snapshot = workflow.select_source(source)
        if snapshot.error is not None:
            render_safely(snapshot, as_json=as_json)
            return EXIT_FAILED

        workflow.set_style_note(style_note)
        snapshot = await workflow.transform()
        while snapshot.phase is Phase.FAILED:
            failure = workflow.last_failure
            if failure is not None and failure.hint:
                logger.info("Hint: %s", failure.hint)
            if not render_safely(snapshot, as_json=as_json):
                return EXIT_FAILED
            if ask_retry is None or not snapshot.can_retry or not ask_retry():
                return EXIT_FAILED
            snapshot = await workflow.retry()
    finally:
        close = getattr(backend, "aclose", None)
        if callable(close):
            await close()

    if not render_safely(snapshot, as_json=as_json):
        return EXIT_FAILED
    return EXIT_OK


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = build_config_or_exit(args)
    try:
        source = ImageSource.from_file(args.image)
    except BrandshiftError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILED

    interactive = args.retry and not args.json and sys.stdin.isatty()
    return asyncio.run(
        run(
            source,
            config=config,
            style_note=args.style,
            as_json=args.json,
            ask_retry=_ask_retry if interactive else None,
        )
    )


if __name__ == "__main__":
    sys.exit(main())
