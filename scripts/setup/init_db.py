# scripts/setup/init_db.py
"""
Initialize database — creates all tables and seeds the 125 flats.
Run once before first launch; re-running only adds flats that are missing.
Usage: python scripts/setup/init_db.py
"""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from society_vms.database import SessionLocal, create_tables, engine
from society_vms.services.flat_service import seed_flats
from society_vms.config import settings
from sqlalchemy import inspect, text


def main():
    print("🗄️  Society VMS DB Initialization")
    print("=" * 40)
    print(f"📡 Database: {settings.DATABASE_URL}")

    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("✅ Database connection OK")
    except Exception as e:
        print(f"❌ Cannot connect to database: {e}")
        print("\nMake sure PostgreSQL is running:")
        print("  sudo systemctl start postgresql")
        sys.exit(1)

    print("\n📋 Creating tables...")
    create_tables()
    tables = sorted(inspect(engine).get_table_names())
    print(f"📊 Tables in database ({len(tables)} total):")
    for t in tables:
        print(f"   ✓ {t}")

    print(f"\n🏢 Seeding flats (wings {settings.WINGS}, "
          f"{settings.FLAT_FLOORS} floors × {settings.FLAT_UNITS_PER_FLOOR} units)...")
    db = SessionLocal()
    try:
        created = seed_flats(db)
    finally:
        db.close()
    print(f"✅ {created} flats created")

    print("\n🎉 Database ready! You can now start the backend:")
    print(f"   uvicorn society_vms.main:app --host {settings.BACKEND_IP} --port {settings.BACKEND_PORT} --reload")


if __name__ == "__main__":
    main()
