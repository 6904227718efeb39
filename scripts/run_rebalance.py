"""
Run the quota rebalance sweep for one project from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid
from dataclasses import asdict

from app.services.credential_pool import CredentialPoolError
from app.services.indexing_service import get_indexing_service
from db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Retry URLs whose latest submission hit a quota limit.")
    parser.add_argument(
        "--project-id",
        dest="project_id",
        required=True,
        type=uuid.UUID,
        help="Project whose quota_exhausted URLs should be replayed.",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")

    service = get_indexing_service()
    try:
        with SessionLocal() as db:
            summary = service.rebalance(db=db, project_id=args.project_id)
    except CredentialPoolError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 1

    print(json.dumps(asdict(summary), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
