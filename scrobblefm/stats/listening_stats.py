from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import pandas as pd

from scrobblefm.models.scrobbles import SavedRecordSet


@dataclass
class ListeningStats:
    total: int = 0
    first_day: Optional[pd.Timestamp] = None
    last_day: Optional[pd.Timestamp] = None
    total_days: int = 0
    total_weeks: int = 0
    total_months: int = 0
    total_years: int = 0
    daily_counts: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))
    weekly_counts: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))
    monthly_counts: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))
    yearly_counts: pd.Series = field(default_factory=lambda: pd.Series(dtype="int64"))
    average_per_day: float = 0.0
    average_per_week: float = 0.0
    average_per_month: float = 0.0
    average_per_year: float = 0.0
    best_month: Optional[Tuple[str, int]] = None


def records_frame(record_set: SavedRecordSet) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "title": r.title,
                "artist": r.artist,
                "album": r.album,
                "date": r.date,
                "month_year": r.month_year,
                "timestamp_utc": r.timestamp_utc,
            }
            for r in record_set
        ],
        columns=["title", "artist", "album", "date", "month_year", "timestamp_utc"],
    )
    df["date"] = pd.to_datetime(df["date"])
    return df


def best_month(df: pd.DataFrame) -> Optional[Tuple[str, int]]:
    """Busiest "%B-%Y" bucket; ties go to the alphabetically first label."""
    if df.empty:
        return None
    counts = df.groupby("month_year").size().reset_index(name="plays")
    counts = counts.sort_values(["plays", "month_year"], ascending=[False, True])
    top = counts.iloc[0]
    return str(top["month_year"]), int(top["plays"])


def compute_stats(record_set: SavedRecordSet) -> ListeningStats:
    """Bucket counts and per-unit averages over the saved scrobbles.

    Averages divide by the span between the oldest and newest local dates
    (inclusive), not by the number of buckets that contain plays.
    """
    df = records_frame(record_set)
    if df.empty:
        return ListeningStats()

    first_day, last_day = df["date"].min(), df["date"].max()
    total = len(df)

    total_days = (last_day - first_day).days + 1
    total_weeks = math.ceil(total_days / 7)
    total_months = (last_day.year - first_day.year) * 12 + last_day.month - first_day.month + 1
    total_years = last_day.year - first_day.year + 1

    iso = df["date"].dt.isocalendar()
    week_labels = iso["year"].astype(str) + "-W" + iso["week"].astype(str).str.zfill(2)

    daily = df.groupby(df["date"].dt.date).size()
    weekly = df.groupby(week_labels).size()
    monthly = df.groupby(df["date"].dt.strftime("%Y-%m")).size()
    yearly = df.groupby(df["date"].dt.year).size()

    return ListeningStats(
        total=total,
        first_day=first_day,
        last_day=last_day,
        total_days=total_days,
        total_weeks=total_weeks,
        total_months=total_months,
        total_years=total_years,
        daily_counts=daily,
        weekly_counts=weekly,
        monthly_counts=monthly,
        yearly_counts=yearly,
        average_per_day=float(daily.sum() / total_days),
        average_per_week=float(weekly.sum() / total_weeks),
        average_per_month=float(monthly.sum() / total_months),
        average_per_year=float(yearly.sum() / total_years),
        best_month=best_month(df),
    )
