"""
Database setup script.
Creates the images and image_metadata tables.

Usage:
    python setup_db.py           # Create tables (safe, won't drop existing)
    python setup_db.py --drop    # Drop all tables first, then create
    python setup_db.py --check   # Just check the database connection
"""
import sys
from sqlalchemy import text
from app.db.base import Base, engine
from app.models import Image, ImageMetadata  # noqa: F401 - registers tables on Base.metadata


def check_connection():
    """Check the database is reachable."""
    print("Checking database connection...")
    with engine.connect() as conn:
        try:
            conn.execute(text("SELECT 1"))
            print(f"✅ Connected ({engine.dialect.name})")
            return True
        except Exception as e:
            print(f"❌ Database not available: {e}")
            return False


def drop_all_tables():
    """Drop the gallery tables."""
    print("Dropping gallery tables...")
    Base.metadata.drop_all(bind=engine, checkfirst=True)
    print("✅ Tables dropped")


def create_all_tables():
    """Create all tables."""
    print("Creating tables...")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    print("✅ Tables created:")
    for table in Base.metadata.sorted_tables:
        print(f"   - {table.name}")


def main():
    args = sys.argv[1:]

    if not check_connection():
        sys.exit(1)

    if "--check" in args:
        return

    # Drop tables if requested
    if "--drop" in args:
        drop_all_tables()

    create_all_tables()

    print("\n✅ Database setup complete!")
    print("\nNext steps:")
    print("1. Copy env.example to .env and fill in your API keys")
    print("2. Run: uvicorn app.main:app --reload")


if __name__ == "__main__":
    main()
