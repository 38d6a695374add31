"""Quickstart -- save a connection profile, open a session and browse.

Demonstrates:
- Building a BrowserContext (in-memory state)
- Saving a local connection profile
- Listing a directory, served from the cache on the second visit
- Remembering a scroll offset
"""

from __future__ import annotations

import asyncio
import tempfile
from pathlib import Path

from remote_browser import BrowserContext, ConnectionProfile, StorageClientType


async def main(root: str) -> None:
    with BrowserContext() as ctx:
        profile_id = ctx.connections.save(
            ConnectionProfile(type=StorageClientType.LOCAL, display_name="Scratch", endpoint=root)
        )

        async with ctx.open_session(profile_id) as session:
            listing = await session.open_directory("/")
            for entry in listing.entries:
                kind = "dir " if entry.is_directory else "file"
                print(f"{kind} {entry.name:<12} {entry.size:>6} bytes")

            session.capture_scroll(120)
            await session.open_directory("/photos")
            again = await session.open_directory("/")
            print(f"Cached listing reused: {again == listing}")
            print(f"Restored scroll offset: {session.restored_scroll()}")

        print(f"History: {[h.path for h in ctx.history.get_history(profile_id)]}")


if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        (Path(tmp) / "photos").mkdir()
        (Path(tmp) / "notes.txt").write_text("Hello, world!")
        asyncio.run(main(tmp))

    print("Done! Temp directory cleaned up automatically.")
