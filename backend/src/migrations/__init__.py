"""
Sürümlü veri migration'ları
"""
from migrations.base import Migration, MigrationError
from migrations.m001_standard_modules import StandardModules
from migrations.m002_default_roles import DefaultRoles
from migrations.m003_checklist_permissions import ChecklistPermissions
from migrations.m004_hr_settings import HRSettingsSetup
from migrations.m005_unify_module_grants import UnifyModuleGrants

ALL_MIGRATIONS = [
    StandardModules(),
    DefaultRoles(),
    ChecklistPermissions(),
    HRSettingsSetup(),
    UnifyModuleGrants(),
]

__all__ = ["ALL_MIGRATIONS", "Migration", "MigrationError"]
