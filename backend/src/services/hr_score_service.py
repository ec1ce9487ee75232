"""
HR Score Service - Mesai ve devamsızlık puanlama
"""
from typing import List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from datetime import datetime, timezone
import logging

from db.mongo import Collections
from models.hr import (
    MONTHLY_TOTAL_MARKER, AbsenceKind, HRReportRow, HRScoreOut,
    ManualScoreEntry, ScoreEntryType, ScoreTotals
)

logger = logging.getLogger(__name__)


class ScoreEntryError(ValueError):
    """Manuel puan girişi reddedildi"""


def calculate_points(entry: ManualScoreEntry, settings: dict) -> float:
    """
    Giriş miktarını İK ayarlarındaki katsayı ile puana çevir.
    Günlük mesai girişlerinde günlük maksimum saatin üstü puanlanmaz.
    """
    overtime = settings.get("mesai_puanlama") or {}
    absence = settings.get("devamsizlik_puanlama") or {}

    if entry.type == ScoreEntryType.OVERTIME:
        hours = entry.amount
        daily_max = overtime.get("daily_max_hours")
        if not entry.monthly and daily_max is not None:
            hours = min(hours, daily_max)
        return hours * overtime.get("points_per_hour", 0)

    if entry.type == ScoreEntryType.ABSENCE_DAY:
        return entry.amount * absence.get("points_per_day", 0)

    return entry.amount * absence.get("points_per_hour", 0)


def calculate_totals(score: dict) -> ScoreTotals:
    mesai = sum(item.get("points", 0) for item in score.get("mesai_kayitlari") or [])
    devamsizlik = sum(item.get("points", 0) for item in score.get("devamsizlik_kayitlari") or [])
    return ScoreTotals(mesai=mesai, devamsizlik=devamsizlik, total=mesai + devamsizlik)


def _is_monthly_total(record: dict) -> bool:
    return MONTHLY_TOTAL_MARKER in (record.get("description") or "")


def recent_periods(count: int = 6, today: Optional[datetime] = None) -> List[tuple[int, int]]:
    """İçinde bulunulan ay dahil son 'count' dönem (yıl, ay), yeniden eskiye"""
    today = today or datetime.now(timezone.utc)
    year, month = today.year, today.month
    periods = []
    for _ in range(count):
        periods.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return periods


class HRScoreService:
    """İK puan kayıtları"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.collection = self.db[Collections.HR_SCORES]

    @staticmethod
    def _period(entry: ManualScoreEntry) -> tuple[datetime, int, int]:
        if entry.monthly:
            entry_date = datetime(entry.year, entry.month, 1, tzinfo=timezone.utc)
        else:
            entry_date = entry.date or datetime.now(timezone.utc)
        return entry_date, entry_date.year, entry_date.month

    async def get_or_create(self, user_id: str, year: int, month: int) -> dict:
        """Dönem kaydını getir, yoksa oluştur (unique index üzerinde atomik upsert)"""
        now = datetime.now(timezone.utc)
        return await self.collection.find_one_and_update(
            {"user_id": user_id, "year": year, "month": month},
            {
                "$setOnInsert": {
                    "mesai_kayitlari": [],
                    "devamsizlik_kayitlari": [],
                    "created_at": now,
                    "updated_at": now,
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )

    async def add_manual_entry(
        self,
        entry: ManualScoreEntry,
        settings: dict,
        created_by: Optional[str] = None
    ) -> HRScoreOut:
        """
        Manuel mesai/devamsızlık kaydı ekle.
        Aynı dönem ve tip için ikinci aylık toplam kaydı reddedilir.
        """
        entry_date, year, month = self._period(entry)
        score = await self.get_or_create(entry.user_id, year, month)

        if entry.type == ScoreEntryType.OVERTIME:
            field = "mesai_kayitlari"
            unit, label = "saat", "fazla mesai"
        elif entry.type == ScoreEntryType.ABSENCE_DAY:
            field = "devamsizlik_kayitlari"
            unit, label = "gün", "devamsızlık"
        else:
            field = "devamsizlik_kayitlari"
            unit, label = "saat", "devamsızlık"

        kind = None
        if field == "devamsizlik_kayitlari":
            kind = AbsenceKind.FULL_DAY if entry.type == ScoreEntryType.ABSENCE_DAY else AbsenceKind.HOURS

        if entry.monthly:
            for record in score.get(field) or []:
                if not _is_monthly_total(record):
                    continue
                if kind is None or record.get("kind") == kind.value:
                    raise ScoreEntryError(
                        f"{month}/{year} dönemi için zaten aylık {label} kaydı bulunmaktadır. "
                        "Önce mevcut kaydı silmeniz gerekiyor."
                    )

        description = entry.description or ""
        if entry.monthly:
            description = f"{MONTHLY_TOTAL_MARKER}: {entry.amount:g} {unit} {label} ({month}/{year})" + (
                f" - {entry.description}" if entry.description else ""
            )

        points = calculate_points(entry, settings)
        if field == "mesai_kayitlari":
            record = {
                "date": entry_date,
                "hours": entry.amount,
                "points": points,
                "description": description,
                "created_by": created_by,
            }
        else:
            record = {
                "date": entry_date,
                "kind": kind.value,
                "amount": entry.amount,
                "points": points,
                "description": description,
                "created_by": created_by,
            }

        await self.collection.update_one(
            {"user_id": entry.user_id, "year": year, "month": month},
            {
                "$push": {field: record},
                "$set": {"updated_at": datetime.now(timezone.utc)},
            }
        )
        logger.info(
            "✅ Manuel puan kaydı eklendi: kullanici=%s tip=%s miktar=%s puan=%s donem=%s/%s",
            entry.user_id, entry.type.value, entry.amount, points, month, year,
        )

        return await self.get_score(entry.user_id, year, month)

    async def get_score(self, user_id: str, year: int, month: int) -> HRScoreOut:
        """Kullanıcının dönem puanları; kayıt yoksa boş döner"""
        score = await self.collection.find_one({"user_id": user_id, "year": year, "month": month})
        if not score:
            return HRScoreOut(user_id=user_id, year=year, month=month)

        return HRScoreOut(
            user_id=user_id,
            year=year,
            month=month,
            mesai_kayitlari=score.get("mesai_kayitlari") or [],
            devamsizlik_kayitlari=score.get("devamsizlik_kayitlari") or [],
            totals=calculate_totals(score),
        )

    async def period_report(self, year: int, month: int) -> List[HRReportRow]:
        """Dönemdeki tüm kullanıcıların toplam puanları (yüksekten düşüğe)"""
        scores = await self.collection.find({"year": year, "month": month}).to_list(length=None)
        user_ids = [score["user_id"] for score in scores]
        users = await self.db[Collections.USERS].find(
            {"id": {"$in": user_ids}}
        ).to_list(length=None)
        names = {user["id"]: f"{user['first_name']} {user['last_name']}" for user in users}

        rows = [
            HRReportRow(
                user_id=score["user_id"],
                full_name=names.get(score["user_id"], "Bilinmeyen"),
                totals=calculate_totals(score),
            )
            for score in scores
        ]
        rows.sort(key=lambda row: row.totals.total, reverse=True)
        return rows

    async def get_scores_for_periods(self, user_id: str, periods: List[tuple[int, int]]) -> List[HRScoreOut]:
        """Kullanıcının verilen dönemlerdeki kayıtlı puanları (yeniden eskiye)"""
        if not periods:
            return []

        scores = await self.collection.find({
            "user_id": user_id,
            "$or": [{"year": year, "month": month} for year, month in periods],
        }).sort([("year", -1), ("month", -1)]).to_list(length=None)

        return [
            HRScoreOut(
                user_id=user_id,
                year=score["year"],
                month=score["month"],
                mesai_kayitlari=score.get("mesai_kayitlari") or [],
                devamsizlik_kayitlari=score.get("devamsizlik_kayitlari") or [],
                totals=calculate_totals(score),
            )
            for score in scores
        ]
