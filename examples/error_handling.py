"""Error handling -- telling "fix your credentials" apart from "try again".

Demonstrates the connection error kinds, the ``retryable`` flag and the
structured ``path``/``backend`` attributes.
"""

from __future__ import annotations

import asyncio
import tempfile

from remote_browser import (
    AuthRejected,
    BrowserContext,
    ConnectionProfile,
    InvalidPath,
    NotFound,
    ProfileNotFound,
    StorageClientType,
    StorageConnectionError,
    create_client,
)


async def main(root: str) -> None:
    profile = ConnectionProfile(type=StorageClientType.LOCAL, display_name="Scratch", endpoint=root, id="demo")
    async with create_client(profile) as client:
        # --- NotFound ---
        try:
            await client.read("/nonexistent.txt")
        except NotFound as exc:
            print(f"NotFound: {exc}")
            print(f"  kind={exc.kind}, retryable={exc.retryable}, backend={exc.backend}")

        # --- InvalidPath (path traversal attempt) ---
        try:
            await client.list("/../etc")
        except InvalidPath as exc:
            print(f"\nInvalidPath: {exc}")

        # --- One handler for every backend failure ---
        for path in ["/missing", "/also-missing.txt"]:
            try:
                await client.stat(path)
            except AuthRejected:
                print("Check the saved credentials.")
            except StorageConnectionError as exc:
                hint = "try again later" if exc.retryable else "nothing to retry"
                print(f"\n{exc.kind} on {exc.path}: {hint}")


if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        asyncio.run(main(tmp))

    # --- KeyError subclasses for unknown ids ---
    with BrowserContext() as ctx:
        try:
            ctx.connections.get("unknown")
        except ProfileNotFound as exc:
            print(f"\nProfileNotFound: {exc}")

    print("\nDone!")
