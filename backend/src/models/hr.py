"""
İnsan Kaynakları Modelleri
İK ayarları (tekil kayıt), rol bazlı İK yetkileri, mesai/devamsızlık puanları
"""
from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from datetime import datetime
from enum import Enum


HR_SETTINGS_KEY = "hr"
HR_ACCESS_DENIED_MESSAGE = "İnsan Kaynakları modülüne erişim yetkiniz yok"
MONTHLY_TOTAL_MARKER = "AYLIK_TOPLAM"


class AccessStatus(str, Enum):
    """Modül erişim durumu"""
    ACTIVE = "aktif"
    PASSIVE = "pasif"


class AccessItemType(str, Enum):
    """Modül erişim kaydının sahibi"""
    USER = "user"
    ROLE = "role"


class RoleResolution(str, Enum):
    """Birden fazla rolü olan kullanıcıda İK yetkisinin nasıl seçileceği"""
    FIRST_MATCH = "first_match"
    UNION = "union"


# ============================================================================
# YETKİ KAYDI
# ============================================================================

class HRCapabilities(BaseModel):
    """İK route'larının okuduğu yetki kaydı"""
    can_create_user: bool = False
    can_delete_user: bool = False
    can_score: bool = False
    can_import_excel: bool = False
    can_view_reports: bool = False
    allowed_roles_to_create: List[str] = Field(default_factory=list)
    allowed_roles_to_delete: List[str] = Field(default_factory=list)


class RolePermissionEntry(BaseModel):
    """rolYetkileri elemanı"""
    role_id: str
    permissions: HRCapabilities = Field(default_factory=HRCapabilities)


class ModuleAccessEntry(BaseModel):
    """modulErisimYetkileri elemanı (kullanıcı veya rol bazlı)"""
    user_id: Optional[str] = None
    role_id: Optional[str] = None
    access_status: AccessStatus = AccessStatus.PASSIVE
    granted_at: Optional[datetime] = None


# ============================================================================
# PUANLAMA AYARLARI
# ============================================================================

class OvertimeScoring(BaseModel):
    """Mesai puanlama ayarları"""
    active: bool = True
    points_per_hour: float = 3  # +1 saat mesai = +3 puan
    daily_max_hours: float = 4  # Günlük max 4 saat mesai puanlanır


class AbsenceScoring(BaseModel):
    """Devamsızlık puanlama ayarları"""
    active: bool = True
    points_per_day: float = -5  # 1 gün devamsızlık = -5 puan
    points_per_hour: float = -1  # 1 saat devamsızlık = -1 puan


class HRSettings(BaseModel):
    """İK ayarları (deployment başına tek kayıt)"""
    mesai_puanlama: OvertimeScoring = Field(default_factory=OvertimeScoring)
    devamsizlik_puanlama: AbsenceScoring = Field(default_factory=AbsenceScoring)
    rol_yetkileri: List[RolePermissionEntry] = Field(default_factory=list)
    modul_erisim_yetkileri: List[ModuleAccessEntry] = Field(default_factory=list)
    updated_by: Optional[str] = None
    updated_at: Optional[datetime] = None


class HRSettingsUpdate(BaseModel):
    """İK ayarları güncelleme (gönderilen alanlar olduğu gibi yazılır)"""
    mesai_puanlama: Optional[OvertimeScoring] = None
    devamsizlik_puanlama: Optional[AbsenceScoring] = None
    rol_yetkileri: Optional[List[RolePermissionEntry]] = None
    modul_erisim_yetkileri: Optional[List[ModuleAccessEntry]] = None


class RolePermissionsUpdate(BaseModel):
    """Tek bir rolün İK yetkilerini güncelle"""
    role_id: str
    permissions: HRCapabilities


class ModuleAccessToggle(BaseModel):
    """Kullanıcı/rol İK erişimini aç-kapa"""
    item_id: str
    item_type: AccessItemType


# ============================================================================
# PUANLAR
# ============================================================================

class ScoreEntryType(str, Enum):
    """Manuel puan girişi tipi"""
    OVERTIME = "mesai"
    ABSENCE_DAY = "devamsizlik_gun"
    ABSENCE_HOUR = "devamsizlik_saat"


class AbsenceKind(str, Enum):
    """Devamsızlık kaydı türü"""
    FULL_DAY = "tam_gun"
    HOURS = "saat"


class ManualScoreEntry(BaseModel):
    """Mesai/devamsızlık manuel girişi"""
    user_id: str
    type: ScoreEntryType
    amount: float = Field(..., gt=0)
    date: Optional[datetime] = None
    year: Optional[int] = Field(None, ge=2000, le=2100)
    month: Optional[int] = Field(None, ge=1, le=12)
    monthly: bool = Field(default=False, description="Aylık toplam girişi mi")
    description: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def check_period(self):
        if self.monthly and (self.year is None or self.month is None):
            raise ValueError("Aylık giriş için yıl ve ay gereklidir")
        return self


class OvertimeRecord(BaseModel):
    """Fazla mesai kaydı"""
    date: datetime
    hours: float
    points: float
    description: str = ""
    created_by: Optional[str] = None


class AbsenceRecord(BaseModel):
    """Devamsızlık kaydı"""
    date: datetime
    kind: AbsenceKind
    amount: float
    points: float
    description: str = ""
    created_by: Optional[str] = None


class ScoreTotals(BaseModel):
    """Dönem toplam puanları"""
    mesai: float = 0
    devamsizlik: float = 0
    total: float = 0


class HRScoreOut(BaseModel):
    """Kullanıcının dönem puan kaydı"""
    user_id: str
    year: int
    month: int
    mesai_kayitlari: List[OvertimeRecord] = Field(default_factory=list)
    devamsizlik_kayitlari: List[AbsenceRecord] = Field(default_factory=list)
    totals: ScoreTotals = Field(default_factory=ScoreTotals)


class HRReportRow(BaseModel):
    """Dönem raporu satırı"""
    user_id: str
    full_name: str
    totals: ScoreTotals
