# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the first admin user.

Run once after the initial migration:
    python bin/seed_admin.py

Public registration never creates admins and ``POST /admin/register`` needs
an admin token, so this script is the only way in on a fresh database.  It
reads FIRST_ADMIN_EMAIL and FIRST_ADMIN_PASSWORD from etc/app.conf and goes
through the same ``CredentialService`` path as the API, so the address is
encrypted and the lookup key is derived exactly as for any other account.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/seed_admin.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from datetime import timedelta                                   # noqa: E402

from auth.service import CredentialService                        # noqa: E402
from core.config import Settings                                  # noqa: E402
from core.errors import Conflict                                  # noqa: E402
from core.security import PasswordHasher, TokenCodec              # noqa: E402
from database import DocumentStore, create_db_engine              # noqa: E402
from models.user import User                                      # noqa: E402


def seed(settings=None, store=None, hasher=None):
    settings = settings or Settings()
    if not settings.first_admin_email or not settings.first_admin_password:
        print("[seed_admin] FIRST_ADMIN_EMAIL or FIRST_ADMIN_PASSWORD not set in etc/app.conf – nothing to do.")
        return False

    if store is None:
        engine = create_db_engine(settings.database_url, settings.db_connect_timeout_seconds)
        store = DocumentStore(engine, User)
    service = CredentialService(
        store,
        hasher or PasswordHasher(),
        TokenCodec(settings.secret_key, timedelta(minutes=settings.access_token_expire_minutes)),
        settings.encryption_key,
    )

    try:
        service.register_admin(settings.first_admin_email, settings.first_admin_password)
    except Conflict:
        print(f"[seed_admin] Admin '{settings.first_admin_email}' already exists – skipping.")
        return False
    print(f"[seed_admin] Admin '{settings.first_admin_email}' created successfully.")
    return True


if __name__ == "__main__":
    seed()
