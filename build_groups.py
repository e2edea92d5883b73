#!/usr/bin/env python3
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from admitgroup.application.use_cases.build_group_relationships import BuildGroupRelationshipsUseCase
from admitgroup.config.config import settings
from admitgroup.config.logger import logger
from admitgroup.infrastructure.db.models import Base
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository


def main() -> None:
    logger.info("=== Group relationships rebuild ===")

    engine = create_engine(settings.database_url, echo=settings.db_echo, future=True)
    Base.metadata.create_all(engine)  # just in case
    Session = sessionmaker(bind=engine, future=True)
    session = Session()

    try:
        repo = AdmissionRepository(session)
        use_case = BuildGroupRelationshipsUseCase(repo=repo)
        report = use_case.execute()
        print(
            f"✅ groups created={report.created} reused={report.reused}; "
            f"rows updated={report.updated} failed={report.failed}; "
            f"history linked={report.linked} unresolved={report.unresolved} "
            f"({report.coverage * 100:.1f}%); quota rejected={report.rejected}"
        )
    except Exception as exc:
        logger.exception("❌ Group build failed: %s", exc)
        sys.exit(1)
    finally:
        session.close()
        logger.info("DB session closed.")


if __name__ == "__main__":
    main()
