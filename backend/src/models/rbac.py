"""
RBAC (Role-Based Access Control) Models
Roller, modüller, kullanıcılar ve checklist yetki yapıları
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


# Rol adı sistem genelinde tek arama anahtarıdır
ADMIN_ROLE_NAME = "Admin"


class UserStatus(str, Enum):
    """Kullanıcı hesap durumu"""
    ACTIVE = "aktif"
    PASSIVE = "pasif"


class ModulePermissionLevel(str, Enum):
    """Modül kapısında istenen yetki seviyesi"""
    VIEW = "view"  # görebilir
    EDIT = "edit"  # düzenleyebilir


# ============================================================================
# MODÜL
# ============================================================================

class ModuleBase(BaseModel):
    """Modül temel modeli"""
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = None
    route: Optional[str] = None
    active: bool = True


class ModuleCreate(ModuleBase):
    """Modül oluşturma"""
    pass


class ModuleUpdate(BaseModel):
    """Modül güncelleme"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None


class ModuleOut(ModuleBase):
    """Modül çıktısı"""
    id: str
    created_at: datetime
    updated_at: datetime


# ============================================================================
# ROL YETKİLERİ
# ============================================================================

class ModuleGrant(BaseModel):
    """Eski, modül ID'si ile anahtarlanan yetki (moduller)"""
    module_id: str
    can_access: bool = False
    can_edit: bool = False


class ModuleNamePermission(BaseModel):
    """Yeni, modül adı ile anahtarlanan yetki (modulePermissions)"""
    module_name: str
    can_view: bool = False
    can_edit: bool = False


class ChecklistPermission(BaseModel):
    """Başka bir rolün checklistlerini görme/puanlama/onaylama yetkisi"""
    target_role_id: str
    can_view: bool = False
    can_score: bool = False
    can_approve: bool = False


class ChecklistAccess(BaseModel):
    """Checklist yetki sorgusunun sonucu"""
    can_view: bool = False
    can_score: bool = False
    can_approve: bool = False


# ============================================================================
# ROL
# ============================================================================

class RoleBase(BaseModel):
    """Rol temel modeli"""
    name: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    moduller: List[ModuleGrant] = Field(default_factory=list)
    module_permissions: List[ModuleNamePermission] = Field(default_factory=list)
    checklist_yetkileri: List[ChecklistPermission] = Field(default_factory=list)


class RoleCreate(RoleBase):
    """Rol oluşturma"""
    pass


class RoleUpdate(BaseModel):
    """Rol güncelleme"""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = None
    moduller: Optional[List[ModuleGrant]] = None
    module_permissions: Optional[List[ModuleNamePermission]] = None
    checklist_yetkileri: Optional[List[ChecklistPermission]] = None


class RoleOut(RoleBase):
    """Rol çıktısı"""
    id: str
    created_at: datetime
    updated_at: datetime
    user_count: int = Field(default=0, description="Bu role sahip kullanıcı sayısı")


# ============================================================================
# KULLANICI
# ============================================================================

class UserBase(BaseModel):
    """Kullanıcı temel modeli"""
    username: str = Field(..., min_length=3, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    roles: List[str] = Field(default_factory=list, description="Rol ID'leri (sıralı)")
    department_ids: List[str] = Field(default_factory=list)


class UserCreate(UserBase):
    """Kullanıcı oluşturma"""
    password: str = Field(..., min_length=6, max_length=128)


class UserOut(UserBase):
    """Kullanıcı çıktısı (şifre hariç)"""
    id: str
    status: UserStatus = UserStatus.ACTIVE
    role_names: List[str] = Field(default_factory=list)
    selected_machines: List[str] = Field(default_factory=list)
    created_at: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "id": "usr_123",
                "username": "ahmet.yilmaz",
                "first_name": "Ahmet",
                "last_name": "Yılmaz",
                "roles": ["role_ortaci"],
                "role_names": ["Ortacı"],
                "department_ids": ["dept_uretim"],
                "status": "aktif",
                "selected_machines": [],
                "created_at": "2025-01-15T10:00:00Z"
            }
        }


class MyPermissions(BaseModel):
    """Kullanıcının erişebildiği modüller ve rolleri"""
    user: UserOut
    modules: List[ModuleOut] = Field(default_factory=list)
