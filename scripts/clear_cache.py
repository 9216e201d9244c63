import sys
import os
import asyncio
import argparse
import logging

# Setup path to include backend root
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, root_dir)

# Configure logging
logging.basicConfig(level=logging.INFO)

from core.dependencies import get_content_cache


def parse_args():
    parser = argparse.ArgumentParser(description="Remove cached provider artifacts")
    parser.add_argument(
        "--provider",
        help="Only clear one provider tag (e.g. en-meta, zh-meta, tts-word)",
    )
    parser.add_argument(
        "--audio",
        action="store_true",
        help="Also delete synthesized audio clips (words keep dangling URLs until regenerated)",
    )
    return parser.parse_args()


async def main():
    args = parse_args()
    cache = get_content_cache()

    target = args.provider or "all providers"
    print(f"🧹 Clearing cache for: {target}")

    removed = await cache.clear(provider=args.provider, include_blobs=args.audio)

    print(f"✅ Removed {removed} cache entries.")
    if args.audio:
        print("Audio will be re-synthesized on the next request for each word.")


if __name__ == "__main__":
    asyncio.run(main())
