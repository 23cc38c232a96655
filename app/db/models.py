from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey,
    UniqueConstraint, Index, SmallInteger
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func  # For server-side default timestamps

from .base_class import Base


# --- Reference data (read-only for the import pipeline) ---

class CategoryOrm(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)

    links = relationship("CategoryRentalLocationRateTypeOrm", back_populates="category")


class RentalLocationOrm(Base):
    __tablename__ = "rental_locations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)


class RateTypeOrm(Base):
    __tablename__ = "rate_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False, index=True)


class SeasonDefinitionOrm(Base):
    __tablename__ = "season_definitions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)

    seasons = relationship(
        "SeasonOrm",
        back_populates="season_definition",
        order_by="SeasonOrm.id",
        cascade="all, delete-orphan",
    )


class SeasonOrm(Base):
    __tablename__ = "seasons"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    season_definition_id = Column(Integer, ForeignKey("season_definitions.id"), nullable=False, index=True)

    season_definition = relationship("SeasonDefinitionOrm", back_populates="seasons")

    __table_args__ = (
        # A season name is only unique inside its own definition.
        UniqueConstraint('season_definition_id', 'name', name='uq_season_definition_name'),
    )


class PriceDefinitionOrm(Base):
    __tablename__ = "price_definitions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    type = Column(SmallInteger, nullable=False)  # 1 = seasonal, 2 = non-seasonal
    season_definition_id = Column(Integer, ForeignKey("season_definitions.id"), nullable=True)

    # Comma-separated ascending unit counts, e.g. "1,2,4,15". Months is fixed to 1.
    units_management_value_days_list = Column(String(255), nullable=True)
    units_management_value_hours_list = Column(String(255), nullable=True)
    units_management_value_minutes_list = Column(String(255), nullable=True)

    season_definition = relationship("SeasonDefinitionOrm")
    prices = relationship("PriceOrm", back_populates="price_definition")


class CategoryRentalLocationRateTypeOrm(Base):
    __tablename__ = "category_rental_location_rate_types"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    rental_location_id = Column(Integer, ForeignKey("rental_locations.id"), nullable=False)
    rate_type_id = Column(Integer, ForeignKey("rate_types.id"), nullable=False)
    price_definition_id = Column(Integer, ForeignKey("price_definitions.id"), nullable=False)

    category = relationship("CategoryOrm", back_populates="links")
    rental_location = relationship("RentalLocationOrm")
    rate_type = relationship("RateTypeOrm")
    price_definition = relationship("PriceDefinitionOrm")

    __table_args__ = (
        UniqueConstraint(
            'category_id', 'rental_location_id', 'rate_type_id',
            name='uq_category_rental_location_rate_type'
        ),
    )


# --- Prices (written by the import pipeline) ---

class PriceOrm(Base):
    __tablename__ = "prices"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    price_definition_id = Column(Integer, ForeignKey("price_definitions.id"), nullable=False)
    season_id = Column(Integer, ForeignKey("seasons.id"), nullable=True)
    time_measurement = Column(String(20), nullable=False)  # days | hours | minutes | months
    units = Column(Integer, nullable=False)

    price = Column(Numeric(10, 2), nullable=False)
    included_km = Column(Integer, nullable=False, default=0)
    extra_km_price = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    price_definition = relationship("PriceDefinitionOrm", back_populates="prices")
    season = relationship("SeasonOrm")

    __table_args__ = (
        UniqueConstraint(
            'price_definition_id', 'season_id', 'time_measurement', 'units',
            name='uq_price_natural_key'
        ),
        Index('idx_price_definition_season', "price_definition_id", "season_id"),
    )
