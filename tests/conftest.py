import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from admitgroup.domain.models import QuotaRecord, ScoreRecord
from admitgroup.infrastructure.db.models import Base
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository


def make_quota(college_code="10001", group_code="(01)", province="Guangdong", subject_track="physics",
               major_code="080901", major_name="Computer Science", plan_count=5, year=2025,
               college_name="Sample University", **kw):
    return QuotaRecord(
        year=year,
        province=province,
        subject_track=subject_track,
        college_code=college_code,
        college_name=college_name,
        group_code_raw=group_code,
        major_code=major_code,
        major_name=major_name,
        plan_count=plan_count,
        **kw,
    )


def make_score(year, min_score=None, min_rank=None, college_code="10001", group_code=None, alt_label=None,
               province="Guangdong", subject_track="physics", **kw):
    return ScoreRecord(
        year=year,
        province=province,
        subject_track=subject_track,
        college_code=college_code,
        group_code_raw=group_code,
        alt_group_label=alt_label,
        min_score=min_score,
        min_rank=min_rank,
        **kw,
    )


@pytest.fixture
def session():
    engine = create_engine("sqlite://", future=True)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()
        engine.dispose()


@pytest.fixture
def repo(session):
    return AdmissionRepository(session)
