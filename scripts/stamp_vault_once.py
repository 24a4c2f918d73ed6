"""Execute a single stamping pass over the configured vault."""

from __future__ import annotations

import argparse
from collections import Counter

from vaultstamp.config import load_settings
from vaultstamp.domain.stamping.handler import build_eligibility_check
from vaultstamp.domain.stamping.runtime import run_stamp_once
from vaultstamp.infra.logging import configure_logging


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--vault",
        default=None,
        help="Vault root to scan (defaults to the profile's vault_root).",
    )
    parser.add_argument("--profile", default=None, help="Config profile name.")
    args = parser.parse_args()

    settings = load_settings(args.profile)
    configure_logging(settings.logging)
    outcomes = run_stamp_once(
        args.vault or settings.vault_path,
        eligibility_check=build_eligibility_check(
            document_extension=settings.stamping.document_extension,
            reserved_prefixes=tuple(settings.stamping.reserved_prefixes),
        ),
    )
    totals = Counter(outcome.status for outcome in outcomes)
    print(
        f"Scanned {len(outcomes)} files: "
        f"{totals['ok']} stamped, {totals['ignored']} ignored, {totals['error']} errors"
    )
    for outcome in outcomes:
        if outcome.status == "error":
            print(f" - {outcome.path}: {outcome.error}")


if __name__ == "__main__":
    main()
