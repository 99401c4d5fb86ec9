#!/usr/bin/env python
"""Initialize database with a sample transporter."""
import sys
import os
from datetime import timedelta

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models import init_db, Transporter
from models.database import SessionLocal
from models.transporter import route_sample
from utils.date_helpers import utc_now


def create_sample_transporter():
    """Create a sample refrigerated truck accepting bookings."""
    db = SessionLocal()
    try:
        existing = db.get(Transporter, "SAMPLE-TRUCK-001")
        if existing:
            print("Sample transporter already exists")
            return

        now = utc_now()
        location = {"address": "Nairobi Depot", "latitude": -1.2921, "longitude": 36.8219}

        transporter = Transporter(
            id="SAMPLE-TRUCK-001",
            user_id="sample-operator",
            display_name="Sample Operator",
            phone_number="+254-700-000000",
            rating=4.5,
            total_trips=120,
            vehicle_type="truck",
            vehicle_registration="KDA 123A",
            vehicle_capacity=8000.0,
            refrigerated=True,
            humidity_control=False,
            current_route=[route_sample(location, now)],
            last_known_location=location,
            accepting_booking=True,
            account_status=True,
            insurance_expiry_date=now + timedelta(days=365),
            driver_license_expiry_date=now + timedelta(days=365),
            id_expiry_date=now + timedelta(days=3650),
        )

        db.add(transporter)
        db.commit()

        print(f"✅ Created sample transporter: {transporter.id}")

    except Exception as e:
        print(f"❌ Error creating sample transporter: {e}")
        db.rollback()
    finally:
        db.close()


def main():
    """Initialize database."""
    print("🗄️  Initializing database...")

    try:
        init_db()
        print("✅ Database tables created")

        create_sample_transporter()

        print("✅ Database initialization complete!")

    except Exception as e:
        print(f"❌ Error initializing database: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
