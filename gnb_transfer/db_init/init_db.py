"""
Database Initialization Script
Creates tables and seeds the catalog, discount codes, campaigns and site settings
"""

from gnb_transfer.extensions import db


def clear_database():
    """Drop all tables and recreate them"""
    print("🗑️  Dropping all tables...")
    db.drop_all()
    print("✅ Tables dropped successfully")

    print("📋 Creating tables...")
    db.create_all()
    print("✅ Tables created successfully")


def init_database(with_sample_data=True):
    """
    Initialize the database with tables and optionally sample data

    Args:
        with_sample_data (bool): Whether to populate with sample data
    """
    print("🚀 Initializing database...")

    print("📋 Creating tables...")
    db.create_all()
    print("✅ Tables created successfully")

    # Settings and the extra-service catalog are needed even without demo data
    from .sample_data import create_default_settings, create_extra_services
    settings = create_default_settings()
    services = create_extra_services()

    if with_sample_data:
        print("\n📦 Creating sample data...")
        from .sample_data import (
            create_sample_tours,
            create_sample_coupons,
            create_sample_campaigns,
        )

        tours = create_sample_tours()
        coupons = create_sample_coupons()
        campaigns = create_sample_campaigns()

        print(f"\n✅ Database initialized successfully!")
        print(f"   - Tours: {len(tours)}")
        print(f"   - Extra services: {len(services)}")
        print(f"   - Coupons: {len(coupons)}")
        print(f"   - Campaign rules: {len(campaigns)}")
        print(f"   - Settings: {len(settings)}")

        print("\n🏷️  Sample discount codes: WELCOME10, SUMMER25, FLAT20, EXPIRED10")
    else:
        print("✅ Database tables created (no sample data)")

    return True


def reset_database():
    """Complete database reset - drop, create, and populate"""
    print("⚠️  RESETTING DATABASE - This will delete all data!")
    clear_database()
    init_database(with_sample_data=True)
    print("\n✅ Database reset complete!")
