"""Settings and cache maintenance -- clearing caches keeps preferences.

Demonstrates:
- Persisting state to a JSON file via BrowserConfig.state_path
- Updating settings and subscribing to changes
- clear_caches() reporting a single success/failure status
"""

from __future__ import annotations

import tempfile
from pathlib import Path

from remote_browser import BrowserConfig, BrowserContext, ConnectionProfile, StorageClientType

if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmp:
        config = BrowserConfig(state_path=str(Path(tmp) / "state.json"), history_max_entries=100)

        with BrowserContext(config) as ctx:
            unsubscribe = ctx.settings.subscribe(lambda key, value: print(f"setting {key} -> {value}"))
            ctx.settings.update_setting("theme", "dark")
            ctx.settings.update_setting("usePureBlackBg", True)
            unsubscribe()

            profile_id = ctx.connections.save(
                ConnectionProfile(type=StorageClientType.SSH, display_name="Build box", endpoint="build.local:2222")
            )
            ctx.history.record_visit(profile_id, "/var/log")

            result = ctx.clear_caches()
            print(f"Cache clear: {result.status}")
            print(f"Profiles left: {len(ctx.connections.list())}")

        with BrowserContext(config) as ctx:
            print(f"Settings after restart: {ctx.settings.get_all()}")

    print("Done!")
