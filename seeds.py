# seeds.py  (lives in the project ROOT, next to the app/ package)
#
# Run this ONCE to:
#   1. Create the database tables
#   2. Insert the default staff and admin accounts (and a demo customer)
#   3. Print what's in the users table
#
# How to run:
#   python seeds.py
#
# You can re-run it safely, it checks before inserting duplicates.

import sys
import os

# Make sure Python can find the app/ package
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from app.models.database import init_db
from app.core.container import get_store
from app.models.enums import UserRole
from app.models.schemas import UserRecord

STAFF_EMAIL = "staff@rayslaund.com"
ADMIN_EMAIL = "admin@rayslaund.com"

DEFAULT_USERS = [
    UserRecord(
        id="staff-1",
        full_name="Ray Staff",
        email=STAFF_EMAIL,
        password="admin@staff",
        role=UserRole.STAFF,
    ),
    UserRecord(
        id="admin-1",
        full_name="Ray Admin",
        email=ADMIN_EMAIL,
        password="admin@rayslaund",
        role=UserRole.ADMIN,
    ),
    UserRecord(
        id="customer-demo",
        full_name="Demo Customer",
        email="demo@rayslaund.com",
        phone="0700000000",
        password="demo1234",
        role=UserRole.CUSTOMER,
    ),
]


def seed_users(store):
    """Insert the default accounts only if their email isn't taken yet"""
    inserted = 0
    for user in DEFAULT_USERS:
        if not store.find_user_by_email(user.email):
            store.save_user(user)
            inserted += 1
    print(f"✅ Added {inserted} new users (no duplicates).")
    return inserted


def verify(store):
    """Prints a summary of the users table"""
    print("\n👥 Current Users:")
    print(f"{'ID':<16} {'Name':<20} {'Role':<10} {'Email'}")
    print("-" * 70)
    for u in store.get_users():
        print(f"{u.id:<16} {u.full_name:<20} {u.role.value:<10} {u.email}")


if __name__ == "__main__":
    print("🌱 Starting database seed...\n")

    init_db()
    store = get_store()
    seed_users(store)
    verify(store)

    print("\n✅ Done! Your database is ready.")
    print("   Run your app: uvicorn app.main:app --reload")
