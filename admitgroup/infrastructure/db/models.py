from sqlalchemy import Column, String, ForeignKey, Integer, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class AdmissionGroupModel(Base):
    """
    Canonical admission group, one row per
    (college_code, group_code, province, subject_track).
    """
    __tablename__ = "admission_groups"
    __table_args__ = (
        UniqueConstraint("college_code", "group_code", "province", "subject_track",
                         name="uq_admission_groups_key"),
        Index("ix_admission_groups_province_track", "province", "subject_track"),
    )

    id = Column(String, primary_key=True)
    college_code = Column(String, nullable=False, index=True)
    college_name = Column(String, nullable=True)
    group_code = Column(String, nullable=False)  # normalized, no parentheses
    group_code_raw = Column(String, nullable=True)
    group_name = Column(String, nullable=True)
    province = Column(String, nullable=False)
    subject_track = Column(String, nullable=False)

    quota_records = relationship("QuotaRecordModel", back_populates="group")
    score_records = relationship("ScoreRecordModel", back_populates="group")


class QuotaRecordModel(Base):
    __tablename__ = "quota_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, index=True)
    province = Column(String, nullable=True)
    subject_track = Column(String, nullable=True)
    college_code = Column(String, nullable=True)
    college_name = Column(String, nullable=True)
    group_code_raw = Column(String, nullable=True)
    group_name = Column(String, nullable=True)
    major_code = Column(String, nullable=True)
    major_name = Column(String, nullable=True)
    plan_count = Column(Integer, nullable=False, default=0)
    tuition = Column(Integer, nullable=True)
    group_id = Column(String, ForeignKey("admission_groups.id"), nullable=True, index=True)

    group = relationship("AdmissionGroupModel", back_populates="quota_records")


class ScoreRecordModel(Base):
    """
    Historical cutoff. group_id / match_strategy / unresolved_reason are
    written by the history linker.
    """
    __tablename__ = "score_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    year = Column(Integer, nullable=False, index=True)
    province = Column(String, nullable=True)
    subject_track = Column(String, nullable=True)
    college_code = Column(String, nullable=True, index=True)
    college_name = Column(String, nullable=True)
    major_name = Column(String, nullable=True)
    group_code_raw = Column(String, nullable=True)
    alt_group_label = Column(String, nullable=True)
    min_score = Column(Integer, nullable=True)
    min_rank = Column(Integer, nullable=True)
    avg_score = Column(Integer, nullable=True)
    max_score = Column(Integer, nullable=True)
    max_rank = Column(Integer, nullable=True)
    plan_count = Column(Integer, nullable=True)
    group_id = Column(String, ForeignKey("admission_groups.id"), nullable=True, index=True)
    match_strategy = Column(String, nullable=True)
    unresolved_reason = Column(String, nullable=True)

    group = relationship("AdmissionGroupModel", back_populates="score_records")
