"""
Register a Google service-account key file as a project credential.
"""

from __future__ import annotations

import argparse
import json
import uuid
from pathlib import Path

from sqlalchemy.exc import IntegrityError

from app.repositories import GSCCredentialRepository
from db.session import SessionLocal


def main() -> int:
    parser = argparse.ArgumentParser(description="Connect a service account to a project.")
    parser.add_argument("--project-id", dest="project_id", required=True, type=uuid.UUID)
    parser.add_argument("--key-file", dest="key_file", required=True, type=Path, help="Service account JSON key.")
    parser.add_argument(
        "--site-url",
        dest="site_url",
        required=True,
        help="Verified Search Console property, e.g. sc-domain:example.com",
    )
    args = parser.parse_args()

    key = json.loads(args.key_file.read_text(encoding="utf-8"))
    client_email = key.get("client_email")
    private_key = key.get("private_key")
    if not client_email or not private_key:
        parser.error("Key file must contain client_email and private_key.")

    with SessionLocal() as db:
        try:
            row = GSCCredentialRepository(db).add(
                project_id=args.project_id,
                client_email=client_email,
                private_key=private_key,
                site_url=args.site_url,
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            print(json.dumps({"error": f"{client_email} is already connected to this project."}, indent=2))
            return 1

    print(json.dumps({"credential_id": str(row.id), "client_email": row.client_email}, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
