"""
005 - Modül yetkilerini birleştir

Ad bazlı module_permissions kayıtları ID bazlı moduller listesine katlanır.
İki liste aynı modül için farklı değer veriyorsa daha geniş olan kazanır ve
fark elle incelenmek üzere module_grant_divergences koleksiyonuna yazılır.
Sonrasında module_permissions boşaltılır ve moduller tek kaynak olur.
Eski listeler moduller_before_unify ve module_permissions_before_unify
alanlarında saklanır.
"""
from motor.motor_asyncio import AsyncIOMotorDatabase
from datetime import datetime, timezone
from typing import Dict, List
import logging

from db.mongo import Collections
from migrations.base import Migration

logger = logging.getLogger(__name__)


def unify_role_grants(role: dict, modules_by_name: Dict[str, dict]) -> tuple[List[dict], List[dict]]:
    """
    Rolün birleşik moduller listesini ve farkları döndür.
    Farklar: {module_id, module_name, moduller, module_permissions, reason}
    """
    merged: Dict[str, dict] = {}
    for grant in role.get("moduller") or []:
        merged[grant["module_id"]] = {
            "module_id": grant["module_id"],
            "can_access": bool(grant.get("can_access")),
            "can_edit": bool(grant.get("can_edit")),
        }

    divergences: List[dict] = []
    for permission in role.get("module_permissions") or []:
        name = permission.get("module_name")
        module = modules_by_name.get(name)
        if module is None:
            divergences.append({
                "module_id": None,
                "module_name": name,
                "moduller": None,
                "module_permissions": {"can_view": bool(permission.get("can_view")), "can_edit": bool(permission.get("can_edit"))},
                "reason": "unknown_module",
            })
            continue

        by_name = {"can_access": bool(permission.get("can_view")), "can_edit": bool(permission.get("can_edit"))}
        by_id = merged.get(module["id"])

        if by_id is None:
            merged[module["id"]] = {"module_id": module["id"], **by_name}
            continue

        if by_id["can_access"] != by_name["can_access"] or by_id["can_edit"] != by_name["can_edit"]:
            divergences.append({
                "module_id": module["id"],
                "module_name": name,
                "moduller": {"can_access": by_id["can_access"], "can_edit": by_id["can_edit"]},
                "module_permissions": {"can_view": by_name["can_access"], "can_edit": by_name["can_edit"]},
                "reason": "value_mismatch",
            })
            by_id["can_access"] = by_id["can_access"] or by_name["can_access"]
            by_id["can_edit"] = by_id["can_edit"] or by_name["can_edit"]

    return list(merged.values()), divergences


class UnifyModuleGrants(Migration):
    version = 5
    name = "unify_module_grants"

    async def up(self, db: AsyncIOMotorDatabase) -> None:
        modules = await db[Collections.MODULES].find().to_list(length=None)
        modules_by_name = {module["name"]: module for module in modules}
        roles = await db[Collections.ROLES].find().to_list(length=None)

        now = datetime.now(timezone.utc)
        total_divergences = 0
        for role in roles:
            merged, divergences = unify_role_grants(role, modules_by_name)

            await db[Collections.ROLES].update_one(
                {"id": role["id"]},
                {"$set": {
                    "moduller_before_unify": role.get("moduller") or [],
                    "module_permissions_before_unify": role.get("module_permissions") or [],
                    "moduller": merged,
                    "module_permissions": [],
                    "updated_at": now,
                }}
            )

            for divergence in divergences:
                await db[Collections.MODULE_GRANT_DIVERGENCES].insert_one({
                    "role_id": role["id"],
                    "role_name": role["name"],
                    **divergence,
                    "migration_version": self.version,
                    "recorded_at": now,
                })
            total_divergences += len(divergences)

        logger.info("  ✅ %d rolün modül yetkileri birleştirildi, %d fark kaydedildi", len(roles), total_divergences)

    async def down(self, db: AsyncIOMotorDatabase) -> None:
        roles = await db[Collections.ROLES].find(
            {"moduller_before_unify": {"$exists": True}}
        ).to_list(length=None)

        for role in roles:
            await db[Collections.ROLES].update_one(
                {"id": role["id"]},
                {
                    "$set": {
                        "moduller": role["moduller_before_unify"],
                        "module_permissions": role.get("module_permissions_before_unify") or [],
                        "updated_at": datetime.now(timezone.utc),
                    },
                    "$unset": {"moduller_before_unify": "", "module_permissions_before_unify": ""},
                }
            )

        await db[Collections.MODULE_GRANT_DIVERGENCES].delete_many({"migration_version": self.version})
        logger.info("  ↩️ %d rolün modül yetkileri geri yüklendi", len(roles))
