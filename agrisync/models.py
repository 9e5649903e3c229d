from sqlalchemy import (
    Column, Integer, String, JSON, Float, Date,
    DateTime, Index, func, Text,
)
from agrisync.database import Base


# ── Reference code tables ─────────────────────────────────────────────────────
# Free-text names from the remote API map to short generated codes.
# `source` is 'generated' for rows this service created, anything else was seeded.

class RefProvince(Base):
    __tablename__ = "ref_provinces"

    id               = Column(Integer, primary_key=True)
    province_code    = Column(String(32), nullable=False, unique=True)
    province_name_th = Column(String(255), nullable=False, unique=True)
    source           = Column(String(20), nullable=False, default="seed")


class RefDistrict(Base):
    __tablename__ = "ref_districts"

    id               = Column(Integer, primary_key=True)
    district_code    = Column(String(32), nullable=False, unique=True)
    district_name_th = Column(String(255), nullable=False, unique=True)
    source           = Column(String(20), nullable=False, default="seed")


class RefSubdistrict(Base):
    __tablename__ = "ref_subdistricts"

    id                  = Column(Integer, primary_key=True)
    subdistrict_code    = Column(String(32), nullable=False, unique=True)
    subdistrict_name_th = Column(String(255), nullable=False, unique=True)
    source              = Column(String(20), nullable=False, default="seed")


class RefLandType(Base):
    __tablename__ = "ref_land_types"

    id             = Column(Integer, primary_key=True)
    land_type_code = Column(String(32), nullable=False, unique=True)
    land_type_name = Column(String(255), nullable=False, unique=True)
    source         = Column(String(20), nullable=False, default="seed")


class RefBreed(Base):
    __tablename__ = "ref_breeds"

    id         = Column(Integer, primary_key=True)
    breed_id   = Column(String(32), nullable=False, unique=True)
    breed_name = Column(String(255), nullable=False, unique=True)
    source     = Column(String(20), nullable=False, default="seed")


class RefDurianStage(Base):
    __tablename__ = "ref_durian_stages"

    id            = Column(Integer, primary_key=True)
    stage_id      = Column(String(32), nullable=False, unique=True)
    stage_name_th = Column(String(255), nullable=False, unique=True)
    source        = Column(String(20), nullable=False, default="seed")


class RefNewsGroup(Base):
    __tablename__ = "ref_news_groups"

    id              = Column(Integer, primary_key=True)
    news_group_id   = Column(String(32), nullable=False, unique=True)
    news_group_name = Column(String(255), nullable=False, unique=True)
    source          = Column(String(20), nullable=False, default="seed")


# ── Census tables ─────────────────────────────────────────────────────────────

class Farmer(Base):
    __tablename__ = "farmers"

    id                      = Column(Integer, primary_key=True)
    rec_id                  = Column(String(64), nullable=False)
    farmer_province_code    = Column(String(32), nullable=True)
    farmer_district_code    = Column(String(32), nullable=True)
    farmer_subdistrict_code = Column(String(32), nullable=True)
    farmer_id               = Column(String(64), nullable=True)
    title                   = Column(String(50), nullable=True)
    first_name              = Column(String(255), nullable=True)
    last_name               = Column(String(255), nullable=True)
    gender                  = Column(String(20), nullable=True)
    date_of_birth           = Column(Date, nullable=True)
    id_card                 = Column(String(32), nullable=True)
    id_card_expiry_date     = Column(Date, nullable=True)
    address                 = Column(Text, nullable=True)
    post_code               = Column(String(10), nullable=True)
    email                   = Column(String(255), nullable=True)
    mobile_no               = Column(String(32), nullable=True)
    line_id                 = Column(String(100), nullable=True)
    farmer_regist_number    = Column(String(64), nullable=True)
    farmer_regist_type      = Column(String(64), nullable=True)
    company_id              = Column(String(64), nullable=True)
    created_at              = Column(DateTime(timezone=True), server_default=func.now())
    updated_at              = Column(DateTime(timezone=True), nullable=True)
    fetch_at                = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_farmers_rec_id", "rec_id", unique=True),
    )


class DurianGarden(Base):
    __tablename__ = "durian_gardens"

    id               = Column(Integer, primary_key=True)
    rec_id           = Column(String(64), nullable=False)
    farmer_id        = Column(String(64), nullable=True)
    land_id          = Column(String(64), nullable=True)
    province_code    = Column(String(32), nullable=True)
    district_code    = Column(String(32), nullable=True)
    subdistrict_code = Column(String(32), nullable=True)
    land_type_code   = Column(String(32), nullable=True)
    lat              = Column(Float, nullable=True)
    lon              = Column(Float, nullable=True)
    no_of_rais       = Column(Float, nullable=True)
    no_of_ngan       = Column(Float, nullable=True)
    no_of_wah        = Column(Float, nullable=True)
    kml              = Column(Text, nullable=True)
    geojson          = Column(JSON, nullable=True)
    company_id       = Column(String(64), nullable=True)
    created_at       = Column(DateTime(timezone=True), server_default=func.now())
    updated_at       = Column(DateTime(timezone=True), nullable=True)
    fetch_at         = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_durian_gardens_rec_id", "rec_id", unique=True),
        Index("ix_durian_gardens_land_id", "land_id"),
    )


class Crop(Base):
    __tablename__ = "crops"

    id                       = Column(Integer, primary_key=True)
    crop_id                  = Column(String(64), nullable=False)
    rec_id                   = Column(String(64), nullable=True)   # absent for harvest-only crops
    farmer_id                = Column(String(64), nullable=True)
    land_id                  = Column(String(64), nullable=True)
    crop_year                = Column(Integer, nullable=True)
    crop_name                = Column(String(255), nullable=True)
    breed_id                 = Column(String(32), nullable=True)
    crop_start_date          = Column(Date, nullable=True)
    crop_end_date            = Column(Date, nullable=True)
    total_trees              = Column(Integer, nullable=True)
    forecast_kg              = Column(Float, nullable=True)
    forecast_baht            = Column(Float, nullable=True)
    forecast_worker_cost     = Column(Float, nullable=True)
    forecast_fertilizer_cost = Column(Float, nullable=True)
    forecast_equipment_cost  = Column(Float, nullable=True)
    forecast_petrol_cost     = Column(Float, nullable=True)
    durian_stage_id          = Column(String(32), nullable=True)
    lot_number               = Column(String(100), nullable=True)
    created_at               = Column(DateTime(timezone=True), server_default=func.now())
    updated_at               = Column(DateTime(timezone=True), nullable=True)
    fetch_at                 = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_crops_crop_id", "crop_id", unique=True),
        Index("ix_crops_farmer_land", "farmer_id", "land_id"),
    )


class Community(Base):
    __tablename__ = "communities"

    id                         = Column(Integer, primary_key=True)
    rec_id                     = Column(String(64), nullable=False)
    community_province_code    = Column(String(32), nullable=True)
    community_district_code    = Column(String(32), nullable=True)
    community_subdistrict_code = Column(String(32), nullable=True)
    post_code                  = Column(String(10), nullable=True)
    comm_id                    = Column(String(64), nullable=True)
    comm_name                  = Column(String(255), nullable=True)
    total_members              = Column(Integer, nullable=True)
    no_of_rais                 = Column(Float, nullable=True)
    no_of_trees                = Column(Integer, nullable=True)
    forecast_yield             = Column(Float, nullable=True)
    created_at                 = Column(DateTime(timezone=True), server_default=func.now())
    updated_at                 = Column(DateTime(timezone=True), nullable=True)
    fetch_at                   = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_communities_rec_id", "rec_id", unique=True),
    )


class Merchant(Base):
    __tablename__ = "merchants"

    id                        = Column(Integer, primary_key=True)
    rec_id                    = Column(String(64), nullable=False)
    merchant_province_code    = Column(String(32), nullable=True)
    merchant_district_code    = Column(String(32), nullable=True)
    merchant_subdistrict_code = Column(String(32), nullable=True)
    post_code                 = Column(String(10), nullable=True)
    merchant_id               = Column(String(64), nullable=True)
    merchant_name             = Column(String(255), nullable=True)
    address                   = Column(Text, nullable=True)
    created_at                = Column(DateTime(timezone=True), server_default=func.now())
    updated_at                = Column(DateTime(timezone=True), nullable=True)
    fetch_at                  = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_merchants_rec_id", "rec_id", unique=True),
    )


class Operation(Base):
    __tablename__ = "operations"

    id              = Column(Integer, primary_key=True)
    rec_id          = Column(String(64), nullable=False)
    crop_year       = Column(Integer, nullable=True)
    oper_id         = Column(String(64), nullable=True)
    crop_id         = Column(String(64), nullable=True)
    oper_type       = Column(String(100), nullable=True)
    oper_date       = Column(Date, nullable=True)
    no_of_workers   = Column(Integer, nullable=True)
    worker_cost     = Column(Float, nullable=True)
    fertilizer_cost = Column(Float, nullable=True)
    equipment_cost  = Column(Float, nullable=True)
    company_id      = Column(String(64), nullable=True)
    created_at      = Column(DateTime(timezone=True), server_default=func.now())
    updated_at      = Column(DateTime(timezone=True), nullable=True)
    fetch_at        = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_operations_rec_id", "rec_id", unique=True),
        Index("ix_operations_crop_id", "crop_id"),
    )


class SubstanceUsage(Base):
    __tablename__ = "substance"

    id            = Column(Integer, primary_key=True)
    crop_year     = Column(Integer, nullable=False)
    province_code = Column(String(32), nullable=True)
    oper_month    = Column(Date, nullable=False)         # first day of the month
    substance     = Column(String(255), nullable=False)
    total_records = Column(Integer, nullable=False, default=0)
    created_at    = Column(DateTime(timezone=True), server_default=func.now())
    fetch_at      = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "ix_substance_natural_key",
            "crop_year", "province_code", "oper_month", "substance",
            unique=True,
        ),
    )


class WaterUsage(Base):
    __tablename__ = "water"

    id            = Column(Integer, primary_key=True)
    crop_year     = Column(Integer, nullable=False)
    province_code = Column(String(32), nullable=True)
    oper_month    = Column(Date, nullable=False)         # first day of the month
    total_litre   = Column(Float, nullable=False, default=0)
    created_at    = Column(DateTime(timezone=True), server_default=func.now())
    fetch_at      = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index(
            "ix_water_natural_key",
            "crop_year", "province_code", "oper_month",
            unique=True,
        ),
    )


class News(Base):
    __tablename__ = "news"

    id             = Column(Integer, primary_key=True)
    rec_id         = Column(String(64), nullable=False)
    province_code  = Column(String(32), nullable=True)
    news_id        = Column(String(64), nullable=True)
    announce_date  = Column(Date, nullable=True)
    news_group_id  = Column(String(32), nullable=True)
    news_topic     = Column(String(500), nullable=True)
    news_detail    = Column(Text, nullable=True)
    no_of_like     = Column(Integer, nullable=False, default=0)
    no_of_comments = Column(Integer, nullable=False, default=0)
    company_id     = Column(String(64), nullable=True)
    created_at     = Column(DateTime(timezone=True), server_default=func.now())
    updated_at     = Column(DateTime(timezone=True), nullable=True)
    fetch_at       = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_news_rec_id", "rec_id", unique=True),
    )


class GapCertificate(Base):
    __tablename__ = "gap"

    id              = Column(Integer, primary_key=True)
    gap_cert_number = Column(String(100), nullable=False)
    gap_cert_type   = Column(String(100), nullable=True)
    gap_issued_date = Column(Date, nullable=True)
    gap_expiry_date = Column(Date, nullable=True)
    farmer_id       = Column(String(64), nullable=True)
    land_id         = Column(String(64), nullable=True)
    crop_id         = Column(String(64), nullable=True)
    created_at      = Column(DateTime(timezone=True), server_default=func.now())
    fetch_at        = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_gap_cert_crop", "gap_cert_number", "crop_id", unique=True),
    )


class Price(Base):
    __tablename__ = "price"

    id            = Column(Integer, primary_key=True)
    app_price_id  = Column(String(64), nullable=False)
    province_code = Column(String(32), nullable=True)
    region_code   = Column(String(32), nullable=True)
    breed_id      = Column(String(32), nullable=True)
    price_date    = Column(Date, nullable=True)
    avg_price     = Column(Float, nullable=True)
    data_source   = Column(String(100), nullable=True)
    created_at    = Column(DateTime(timezone=True), server_default=func.now())
    fetch_at      = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_price_app_price_id", "app_price_id", unique=True),
        Index("ix_price_date_breed", "price_date", "breed_id"),
    )
