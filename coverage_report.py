import matplotlib.pyplot as plt
import pandas as pd
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from admitgroup.config.config import settings
from admitgroup.infrastructure.db.queries.coverage import (
    total_groups,
    quota_link_counts,
    score_link_counts,
    score_coverage_by_year,
    unresolved_reason_counts,
    match_strategy_counts,
)
from admitgroup.infrastructure.db.repositories.admission_repository import AdmissionRepository


def plot_coverage_by_year(rows, show=True, save_path=None):
    """
    Stacked bars: linked / unresolved score records per year.
    """
    if not rows:
        print("No score records to plot.")
        return

    rows = sorted(rows)
    years = [str(y) for y, _, _ in rows]
    linked = [l for _, _, l in rows]
    unresolved = [t - l for _, t, l in rows]

    plt.figure(figsize=(8, 5))
    plt.bar(years, linked, label="linked", edgecolor="black")
    plt.bar(years, unresolved, bottom=linked, label="unresolved", edgecolor="black")
    plt.title("Historical score records linked to admission groups")
    plt.xlabel("Year")
    plt.ylabel("Records")
    plt.legend()
    plt.grid(axis="y")
    if save_path:
        plt.savefig(save_path)
    if show:
        plt.show()
    plt.close()


def coverage_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    year × status counts over score rows, year desc.
    status: "linked", the unresolved reason, or "pending" for rows no build has touched yet.
    """
    if df.empty:
        return pd.DataFrame()
    status = df["unresolved_reason"].where(df["group_id"].isna(), "linked").fillna("pending")
    table = pd.crosstab(df["year"], status.rename("status"))
    return table.sort_index(ascending=False)


def _pct(part: int, total: int) -> float:
    return part / total * 100 if total else 0.0


if __name__ == "__main__":
    engine = create_engine(settings.database_url, echo=settings.db_echo, future=True)
    Session = sessionmaker(bind=engine, future=True)
    session = Session()

    try:
        print("Admission groups:", total_groups(session))

        q_total, q_linked = quota_link_counts(session, year=settings.current_year)
        print(f"Quota records {settings.current_year}: {q_linked} of {q_total} linked "
              f"({_pct(q_linked, q_total):.1f}%)")

        s_total, s_linked = score_link_counts(session)
        print(f"Score records: {s_linked} of {s_total} linked ({_pct(s_linked, s_total):.1f}%)")

        print("\nBy strategy:")
        for strategy, cnt in match_strategy_counts(session).items():
            print(f"  {strategy}: {cnt}")

        print("\nUnresolved by reason:")
        for reason, cnt in unresolved_reason_counts(session).items():
            print(f"  {reason}: {cnt}")

        by_year = score_coverage_by_year(session)
        print("\nBy year:")
        for year, total, linked in by_year:
            print(f"  {year}: {linked}/{total} ({_pct(linked, total):.1f}%)")

        print("\nStatus by year:")
        print(coverage_table(AdmissionRepository(session).get_score_records_df()).to_string())

        plot_coverage_by_year(by_year, show=False, save_path=settings.data_dir / "coverage_by_year.png")
    finally:
        session.close()
