#!/usr/bin/env python3
"""
Loads already-mapped quota and score records into the database.

Expected files (in DATA_DIR): quota_records.json, score_records.json,
each shaped as {"data": [ {...record fields...}, ... ]}.
"""
import json
from dataclasses import MISSING, fields
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from admitgroup.config.config import settings
from admitgroup.config.logger import logger
from admitgroup.domain.models import QuotaRecord, ScoreRecord
from admitgroup.infrastructure.db.models import Base
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository

_SKIP = {"id", "group_id", "match_strategy"}


def _record(cls, item: dict):
    """
    JSON item → frozen record; unknown keys are dropped, missing required
    fields become None so the engine can reject / report them.
    """
    kwargs = {}
    for f in fields(cls):
        if f.name in _SKIP:
            continue
        if f.name in item:
            kwargs[f.name] = item[f.name]
        elif f.default is MISSING:
            kwargs[f.name] = None
    return cls(**kwargs)


def _load(path: Path) -> list[dict]:
    if not path.exists():
        logger.warning("File %s not found, skipping", path)
        return []
    with open(path, encoding="utf-8") as json_file:
        payload = json.load(json_file)
    return payload.get("data", [])


def main():
    # 1) database
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(settings.database_url, echo=settings.db_echo, future=True)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, future=True)
    session = Session()
    repo = AdmissionRepository(session)

    try:
        # 2) JSON → domain records
        quotas = [
            _record(QuotaRecord, item)
            for item in _load(settings.data_dir / "quota_records.json")
        ]
        scores = [
            _record(ScoreRecord, item)
            for item in _load(settings.data_dir / "score_records.json")
        ]

        # 3) save
        repo.add_quota_records_bulk(quotas)
        repo.add_score_records_bulk(scores)
        repo.commit()
        logger.info("Imported %d quota records and %d score records.", len(quotas), len(scores))
    except Exception as exc:
        logger.exception("❌ Import failed: %s", exc)
        session.rollback()
    finally:
        session.close()


if __name__ == "__main__":
    main()
