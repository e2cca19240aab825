# run_crawler.py
import argparse
import asyncio
import sys
from pathlib import Path

# Make the repo root importable
repo_root = Path(__file__).resolve().parent
if str(repo_root) not in sys.path:
    sys.path.append(str(repo_root))

from loguru import logger

from services.capture.capture_service import CaptureService
from services.capture.config_loader import get_settings, load_settings


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Capture pages into the local store and search them.")
    parser.add_argument("urls", nargs="*", help="URLs to capture")
    parser.add_argument(
        "--priority",
        default="normal",
        choices=["high", "normal", "low"],
        help="priority for the given URLs (default: normal)",
    )
    parser.add_argument("--search", metavar="QUERY", help="search the local corpus after capturing")
    parser.add_argument("--config", type=Path, help="path to a capture.yaml (default: configs/capture.yaml)")
    return parser.parse_args(argv)


async def main(argv=None) -> None:
    args = parse_args(argv)
    settings = load_settings(args.config) if args.config else get_settings()
    # Drain in the foreground instead of on a background task.
    settings = settings.model_copy(update={"queue": settings.queue.model_copy(update={"auto_start": False})})

    async with CaptureService(settings) as svc:
        for url in args.urls:
            if not await svc.submit_checked(url, args.priority):
                logger.warning(f"Not queued: {url}")

        if len(svc.queue):
            await svc.queue.drain()

        stats = await svc.get_stats()
        print("\n=== CAPTURE SUMMARY ===")
        print(f"Pages stored   : {stats.total_pages}")
        print(f"Unique hosts   : {stats.unique_hosts}")
        print(f"Indexed links  : {stats.total_links}")
        print(f"Content size   : {stats.total_size} MB")

        if args.search:
            hits = await svc.search(args.search)
            print(f"\n=== SEARCH '{args.search}' ({len(hits)} results) ===")
            for hit in hits:
                print(f"[{hit.score:>3}] {hit.title} - {hit.url}")


if __name__ == "__main__":
    asyncio.run(main())
