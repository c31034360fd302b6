"""Script to create the initial admin user and, optionally, demo accounts."""
import argparse
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from neosafe.database import SessionLocal, engine, Base
from neosafe.models.user import User, UserRole
from neosafe.auth import get_password_hash

import neosafe.models  # noqa: F401

DEMO_ACCOUNTS = [
    ("Demo", "Provider", "provider@neosafe.example.com", UserRole.PROVIDER),
    ("Demo", "User", "user@neosafe.example.com", UserRole.USER),
]


def ensure_user(db, name, last_name, email, password, role):
    """Create a user unless one with the email already exists."""
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        print(f"User already exists: {existing.email} ({existing.role.value})")
        return existing
    user = User(
        name=name,
        last_name=last_name,
        email=email,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=True
    )
    db.add(user)
    db.commit()
    print(f"Created {role.value}: {email}")
    return user


def create_admin(with_demo: bool = False):
    """Create initial admin user if not exists."""
    # Create tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
        if admin:
            print(f"Admin user already exists: {admin.email}")
        else:
            ensure_user(db, "System", "Administrator", "admin@neosafe.example.com", "admin123", UserRole.ADMIN)
            print("Password: admin123")
            print("\nPlease change the password after first login!")

        if with_demo:
            for name, last_name, email, role in DEMO_ACCOUNTS:
                ensure_user(db, name, last_name, email, "demo123", role)
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--demo", action="store_true", help="also create a demo provider and user")
    args = parser.parse_args()
    create_admin(with_demo=args.demo)
