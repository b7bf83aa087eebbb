"""Mapper functions to convert between domain objects and SQLAlchemy models.

Sessions and taxpayer profiles are stored as their JSON projections, so the
mappers go through the domain codecs rather than copying columns.
"""

import json

from buwis.domain import entities as domain
from buwis.domain.codec import taxpayer_info_from_dict, taxpayer_info_to_dict
from buwis.domain.session import FilingSession
from buwis.database.models import (
    FilingSessionRecord as ORMFilingSession,
    TaxpayerProfileRecord as ORMTaxpayerProfile,
)


def session_to_domain(orm_session: ORMFilingSession) -> FilingSession:
    """Convert a stored session row to a FilingSession."""
    return FilingSession.from_dict(json.loads(orm_session.payload))


def session_to_record(orm_session: ORMFilingSession) -> domain.SessionRecord:
    """Convert a stored session row to its listing entry."""
    return domain.SessionRecord(
        id=orm_session.id,
        user_id=orm_session.user_id,
        year=orm_session.year,
        quarter=domain.QuarterPeriod(orm_session.quarter),
        taxpayer_tin=orm_session.taxpayer_tin,
        invoice_count=orm_session.invoice_count,
        updated_at=orm_session.updated_at,
    )


def apply_session(orm_session: ORMFilingSession, session: FilingSession) -> ORMFilingSession:
    """Copy a FilingSession onto a (new or existing) row."""
    orm_session.id = session.id
    orm_session.user_id = session.metadata.user_id
    orm_session.year = session.metadata.year
    orm_session.quarter = session.metadata.quarter.value
    orm_session.taxpayer_tin = session.metadata.taxpayer.tin
    orm_session.invoice_count = len(session.invoices)
    orm_session.payload = session.to_json()
    return orm_session


def taxpayer_profile_to_domain(orm_profile: ORMTaxpayerProfile) -> domain.TaxpayerInfo:
    """Convert a stored profile row to a TaxpayerInfo."""
    return taxpayer_info_from_dict(json.loads(orm_profile.payload))


def apply_taxpayer_profile(
    orm_profile: ORMTaxpayerProfile, info: domain.TaxpayerInfo
) -> ORMTaxpayerProfile:
    """Copy a TaxpayerInfo onto a (new or existing) row."""
    orm_profile.tin = info.issuer.tin
    orm_profile.name = info.issuer.name
    orm_profile.business_name = info.issuer.business_name
    orm_profile.payload = json.dumps(taxpayer_info_to_dict(info))
    return orm_profile
