#!/usr/bin/env python3

import asyncio
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import delete

from flynest.database import SessionLocal, init_models
from flynest.models import Booking, Flight, Passenger, Payment, UserPreference

DEMO_USER_ID = 1

async def create_seed_data():
    await init_models()

    async with SessionLocal() as db:
        try:
            print("🚀 Creating seed data for Flynest...")

            # Clear existing data (in reverse dependency order)
            print("Clearing existing data...")
            for model in (Payment, Passenger, Booking, Flight, UserPreference):
                await db.execute(delete(model))

            today = date.today()

            # 1. Create Flights
            print("Creating flights...")
            flights = [
                Flight(flight_number="6E-204", departure_airport="Delhi", arrival_airport="Mumbai",
                       flight_date=today + timedelta(days=10), price=Decimal("5000.00")),
                Flight(flight_number="AI-865", departure_airport="Mumbai", arrival_airport="Bengaluru",
                       flight_date=today + timedelta(days=2), price=Decimal("4200.00")),
                Flight(flight_number="UK-817", departure_airport="Bengaluru", arrival_airport="Kolkata",
                       flight_date=today + timedelta(days=21), price=Decimal("6100.00")),
            ]
            db.add_all(flights)
            await db.flush()

            # 2. Create Bookings (flight snapshot, amount = price x passengers)
            print("Creating bookings...")
            booking_plan = [
                (flights[0], 2, "pending"),   # paid below, confirmed on first listing
                (flights[1], 1, "pending"),   # too close to departure to cancel
                (flights[2], 1, "confirmed"),
            ]
            bookings = []
            for flight, passenger_count, booking_status in booking_plan:
                booking = Booking(
                    user_id=DEMO_USER_ID,
                    flight_id=flight.id,
                    flight_number=flight.flight_number,
                    departure_city=flight.departure_airport,
                    arrival_city=flight.arrival_airport,
                    flight_date=flight.flight_date,
                    passenger_count=passenger_count,
                    amount=flight.price * passenger_count,
                    status=booking_status,
                )
                db.add(booking)
                bookings.append(booking)
            await db.flush()

            # 3. Create Passengers
            print("Creating passengers...")
            passengers = [
                Passenger(booking_id=bookings[0].id, full_name="Asha Rao", gender="female", age=34, passport_number="P1234567"),
                Passenger(booking_id=bookings[0].id, full_name="Vikram Rao", gender="male", age=36, passport_number="P7654321"),
                Passenger(booking_id=bookings[1].id, full_name="Neha Iyer", gender="female", age=28, passport_number="P2468101"),
            ]
            db.add_all(passengers)

            # 4. Create Payments
            print("Creating payments...")
            payments = [
                Payment(booking_id=bookings[0].id, amount=bookings[0].amount, status="paid", transaction_id="TXN0001"),
                Payment(booking_id=bookings[2].id, amount=bookings[2].amount, status="paid", transaction_id="TXN0002"),
            ]
            db.add_all(payments)

            await db.commit()

            print("✅ Seed data created successfully!")
            print(f"  - {len(flights)} flights")
            print(f"  - {len(bookings)} bookings")
            print(f"  - {len(passengers)} passengers")
            print(f"  - {len(payments)} payments")

        except Exception as e:
            print(f"❌ Error creating seed data: {e}")
            await db.rollback()
            raise

if __name__ == "__main__":
    asyncio.run(create_seed_data())
