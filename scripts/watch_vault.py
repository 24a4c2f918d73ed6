"""Watch the configured vault and stamp notes as they are created or edited."""

from __future__ import annotations

import argparse
import time

from vaultstamp.config import load_settings
from vaultstamp.domain.stamping.runtime import build_stamp_watcher
from vaultstamp.domain.vault.store import VaultDocumentStore
from vaultstamp.infra.logging import configure_logging, get_logger

logger = get_logger("scripts.watch_vault")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--profile", default=None, help="Config profile name.")
    args = parser.parse_args()

    settings = load_settings(args.profile)
    configure_logging(settings.logging)
    store = VaultDocumentStore(
        settings.vault_path, recursive=settings.watcher.recursive
    )
    watcher = build_stamp_watcher(settings, store=store)
    try:
        with watcher:
            logger.info("watch_vault_running", extra={"vault_root": str(store.root)})
            while True:
                time.sleep(1)
    except KeyboardInterrupt:
        logger.info("watch_vault_interrupted")
    finally:
        store.close()


if __name__ == "__main__":
    main()
