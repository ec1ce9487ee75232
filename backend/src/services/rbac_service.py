"""
RBAC Service - Yetkilendirme İş Mantığı
Modül erişim kapısı, checklist çapraz rol yetkileri, rol yükleme
"""
from typing import Dict, Iterable, List, Optional, Sequence, Union
from motor.motor_asyncio import AsyncIOMotorDatabase
import logging

from db.mongo import Collections
from models.rbac import ADMIN_ROLE_NAME, ChecklistAccess, ModulePermissionLevel

logger = logging.getLogger(__name__)


def is_admin(roles: Iterable[dict]) -> bool:
    """Rollerden biri tam olarak 'Admin' ise True"""
    return any(role.get("name") == ADMIN_ROLE_NAME for role in roles)


# ============================================================================
# MODÜL ERİŞİM KAPISI
# ============================================================================

def module_access(
    role: dict,
    module: dict,
    permission: ModulePermissionLevel = ModulePermissionLevel.VIEW
) -> bool:
    """
    Rolün bir modüle erişimi var mı?

    Rol yazımları ve 005 migration'ı yetkileri moduller listesine katlar;
    henüz katlanmamış eski kayıtlar için iki liste de kontrol edilir:
      - moduller: modül ID'si ile (can_access / can_edit)
      - module_permissions: modül adı ile (can_view / can_edit)
    """
    for grant in role.get("moduller") or []:
        if grant.get("module_id") != module.get("id"):
            continue
        if permission == ModulePermissionLevel.VIEW and grant.get("can_access"):
            return True
        if permission == ModulePermissionLevel.EDIT and grant.get("can_edit"):
            return True

    for grant in role.get("module_permissions") or []:
        if grant.get("module_name") != module.get("name"):
            continue
        if permission == ModulePermissionLevel.VIEW and grant.get("can_view"):
            return True
        if permission == ModulePermissionLevel.EDIT and grant.get("can_edit"):
            return True

    return False


def fold_module_permissions(
    moduller: Sequence[dict],
    module_permissions: Sequence[dict],
    modules_by_name: Dict[str, dict]
) -> tuple[List[dict], List[str]]:
    """
    Ad bazlı yetkileri ID bazlı moduller listesine katla.
    Aynı modül için ad bazlı kayıt, ID bazlı kaydın yerine geçer.
    Returns: (moduller, bilinmeyen modül adları)
    """
    merged: Dict[str, dict] = {
        grant["module_id"]: {
            "module_id": grant["module_id"],
            "can_access": bool(grant.get("can_access")),
            "can_edit": bool(grant.get("can_edit")),
        }
        for grant in moduller
    }

    unknown: List[str] = []
    for permission in module_permissions:
        module = modules_by_name.get(permission.get("module_name"))
        if module is None:
            unknown.append(permission.get("module_name"))
            continue
        merged[module["id"]] = {
            "module_id": module["id"],
            "can_access": bool(permission.get("can_view")),
            "can_edit": bool(permission.get("can_edit")),
        }

    return list(merged.values()), unknown


def user_module_access(
    roles: Sequence[dict],
    modules: Sequence[dict],
    permission: ModulePermissionLevel = ModulePermissionLevel.VIEW
) -> bool:
    """
    Kullanıcının rollerinden herhangi biri verilen modüllerden herhangi birine
    erişebiliyorsa True. Admin her modüle erişir.
    """
    if is_admin(roles):
        return True

    return any(
        module_access(role, module, permission)
        for role in roles
        for module in modules
    )


# ============================================================================
# CHECKLIST ÇAPRAZ ROL YETKİLERİ
# ============================================================================

def checklist_access(
    viewer_roles: Sequence[dict],
    author_role_ids: Iterable[str]
) -> ChecklistAccess:
    """
    Görüntüleyen kullanıcının rolleri, checklisti dolduran kullanıcının
    rollerinden birine verilmiş yetkilerin en genişini döndürür.

    Hiç kayıt yoksa erişim yoktur; varsayılan "sadece görme" verilmez.
    can_score ve can_approve birbirinden bağımsızdır.
    """
    targets = set(author_role_ids)
    access = ChecklistAccess()

    for role in viewer_roles:
        for grant in role.get("checklist_yetkileri") or []:
            if grant.get("target_role_id") not in targets:
                continue
            access.can_view = access.can_view or bool(grant.get("can_view"))
            access.can_score = access.can_score or bool(grant.get("can_score"))
            access.can_approve = access.can_approve or bool(grant.get("can_approve"))

    return access


def controllable_role_ids(viewer_roles: Sequence[dict]) -> List[str]:
    """Kullanıcının checklistlerini görebildiği hedef rol ID'leri (sıralı, tekil)"""
    result: List[str] = []
    for role in viewer_roles:
        for grant in role.get("checklist_yetkileri") or []:
            target = grant.get("target_role_id")
            if grant.get("can_view") and target and target not in result:
                result.append(target)
    return result


class RBACService:
    """RBAC veritabanı işlemleri"""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def load_roles(self, role_ids: Sequence[str]) -> List[dict]:
        """
        Rol ID'lerini rol dokümanlarına çevir.
        Kullanıcıda saklanan sıra korunur; silinmiş rollere ait ID'ler atlanır.
        """
        if not role_ids:
            return []

        roles = await self.db[Collections.ROLES].find(
            {"id": {"$in": list(role_ids)}}
        ).to_list(length=None)
        by_id: Dict[str, dict] = {role["id"]: role for role in roles}

        ordered = [by_id[role_id] for role_id in role_ids if role_id in by_id]
        if len(ordered) != len(role_ids):
            logger.warning(
                "Kullanıcıda bulunamayan rol referansları var: %s",
                [role_id for role_id in role_ids if role_id not in by_id],
            )
        return ordered

    async def all_role_ids(self) -> List[str]:
        """Mevcut tüm rol ID'leri (önbelleksiz, her çağrıda taze)"""
        roles = await self.db[Collections.ROLES].find({}, {"id": 1}).to_list(length=None)
        return [role["id"] for role in roles]

    async def find_modules_by_name(self, names: Sequence[str]) -> List[dict]:
        return await self.db[Collections.MODULES].find(
            {"name": {"$in": list(names)}}
        ).to_list(length=None)

    async def has_module_permission(
        self,
        roles: Sequence[dict],
        module_names: Union[str, Sequence[str]],
        permission: ModulePermissionLevel = ModulePermissionLevel.VIEW
    ) -> bool:
        """Modül adlarına göre erişim kontrolü (bir ad veya ad listesi)"""
        if isinstance(module_names, str):
            module_names = [module_names]

        if is_admin(roles):
            return True

        modules = await self.find_modules_by_name(module_names)
        # Modül kaydı yoksa bile ad bazlı yetki geçerlidir
        known = {module["name"] for module in modules}
        modules += [{"id": None, "name": name} for name in module_names if name not in known]

        return user_module_access(roles, modules, permission)

    async def accessible_modules(
        self,
        roles: Sequence[dict],
        include_inactive: bool = False
    ) -> List[dict]:
        """Kullanıcının görebildiği modüller"""
        query = {} if include_inactive else {"active": True}
        modules = await self.db[Collections.MODULES].find(query).sort("name", 1).to_list(length=None)

        if is_admin(roles):
            return modules

        return [
            module for module in modules
            if any(module_access(role, module) for role in roles)
        ]

    async def get_user_roles(self, user_id: str) -> Optional[List[dict]]:
        """Kullanıcının rol dokümanları; kullanıcı yoksa None"""
        user = await self.db[Collections.USERS].find_one({"id": user_id})
        if not user:
            return None
        return await self.load_roles(user.get("roles", []))
