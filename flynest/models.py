from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Date, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from flynest.database import Base

# ================================
# Flights
# ================================
class Flight(Base):
    __tablename__ = "flights"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    flight_number = Column(String(20), nullable=False, index=True)
    departure_airport = Column(String(100), nullable=False)
    arrival_airport = Column(String(100), nullable=False)
    flight_date = Column(Date, nullable=False, index=True)
    price = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

# ================================
# Bookings & Passengers
# ================================
class Booking(Base):
    __tablename__ = "bookings"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    # Flight snapshot taken at booking time; not linked to live flight changes
    flight_id = Column(BigInteger, nullable=False)
    flight_number = Column(String(20), nullable=False)
    departure_city = Column(String(100), nullable=False)
    arrival_city = Column(String(100), nullable=False)
    flight_date = Column(Date, nullable=False)
    passenger_count = Column(Integer, nullable=False, default=1)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    updated_by = Column(String(50))
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    passengers = relationship("Passenger", back_populates="booking")
    payments = relationship("Payment", back_populates="booking", passive_deletes=True)

class Passenger(Base):
    __tablename__ = "passengers"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    # No ON DELETE action: a booking with passengers cannot be hard-deleted
    booking_id = Column(BigInteger, ForeignKey("bookings.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    gender = Column(String(20), nullable=False)
    age = Column(Integer, nullable=False)
    passport_number = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    booking = relationship("Booking", back_populates="passengers")

# ================================
# Payments
# ================================
class Payment(Base):
    __tablename__ = "payments"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    booking_id = Column(BigInteger, ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, index=True)  # paid, failed, pending
    transaction_id = Column(String(100))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    booking = relationship("Booking", back_populates="payments")

# ================================
# User Preferences (key-value)
# ================================
class UserPreference(Base):
    __tablename__ = "user_preferences"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_preference_key"),)

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(String(255), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
