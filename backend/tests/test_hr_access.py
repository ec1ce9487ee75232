import pytest

from models.hr import HR_ACCESS_DENIED_MESSAGE, HRCapabilities, HRSettings, RoleResolution
from services.hr_access import HRAccessService, HRSettingsService, resolve_hr_access


def role(role_id, name=None):
    return {"id": role_id, "name": name or role_id, "checklist_yetkileri": []}


def settings_with(*entries, overrides=()):
    return {
        "rol_yetkileri": [{"role_id": role_id, "permissions": perms} for role_id, perms in entries],
        "modul_erisim_yetkileri": list(overrides),
    }


ADMIN = role("r-admin", "Admin")
USTA = role("r-usta", "Usta")
ORTACI = role("r-ortaci", "Ortacı")


@pytest.mark.parametrize("settings", [None, {}, settings_with()])
def test_admin_gets_everything_even_without_settings(settings):
    capabilities = resolve_hr_access(
        [USTA, ADMIN], settings, "u1", all_role_ids=["r-admin", "r-usta", "r-ortaci"]
    )

    assert capabilities.can_create_user
    assert capabilities.can_delete_user
    assert capabilities.can_score
    assert capabilities.can_import_excel
    assert capabilities.can_view_reports
    assert capabilities.allowed_roles_to_create == ["r-admin", "r-usta", "r-ortaci"]
    assert capabilities.allowed_roles_to_delete == ["r-admin", "r-usta", "r-ortaci"]


def test_admin_match_is_exact_name():
    lookalike = role("r-x", "admin")
    assert resolve_hr_access([lookalike], settings_with(), "u1") is None


@pytest.mark.parametrize("roles", [[], [USTA], [ADMIN]])
def test_manual_entry_listing_is_read_only_for_any_caller(roles):
    capabilities = resolve_hr_access(roles, None, "u1", manual_entry_listing=True)

    assert capabilities == HRCapabilities()


def test_role_without_entry_is_denied():
    settings = settings_with(("r-ortaci", {"can_score": True}))
    assert resolve_hr_access([USTA], settings, "u1") is None


def test_entry_without_score_or_reports_is_denied():
    settings = settings_with(("r-usta", {"can_create_user": True, "can_delete_user": True}))
    assert resolve_hr_access([USTA], settings, "u1") is None


def test_role_scan_picks_first_qualifying_role():
    settings = settings_with(
        ("r-ortaci", {"can_create_user": True}),
        ("r-usta", {"can_score": True, "allowed_roles_to_create": ["r-ortaci"]}),
    )

    capabilities = resolve_hr_access([ORTACI, USTA], settings, "u1")

    assert capabilities.can_score
    assert not capabilities.can_create_user
    assert capabilities.allowed_roles_to_create == ["r-ortaci"]


def test_role_scan_stops_at_first_match():
    settings = settings_with(
        ("r-ortaci", {"can_view_reports": True}),
        ("r-usta", {"can_score": True, "can_create_user": True}),
    )

    capabilities = resolve_hr_access([ORTACI, USTA], settings, "u1")

    assert capabilities.can_view_reports
    assert not capabilities.can_score


def test_user_override_returns_first_role_entry_verbatim():
    settings = settings_with(
        ("r-ortaci", {"can_create_user": True}),
        ("r-usta", {"can_score": True}),
        overrides=[{"user_id": "u1", "access_status": "aktif"}],
    )

    capabilities = resolve_hr_access([ORTACI, USTA], settings, "u1")

    # Override yolu ilk rolün kaydını can_score/can_view_reports aramadan verir
    assert capabilities.can_create_user
    assert not capabilities.can_score


def test_passive_override_is_ignored():
    settings = settings_with(
        ("r-ortaci", {"can_create_user": True}),
        overrides=[{"user_id": "u1", "access_status": "pasif"}],
    )

    assert resolve_hr_access([ORTACI], settings, "u1") is None


def test_override_falls_back_to_scan_when_first_role_has_no_entry():
    settings = settings_with(
        ("r-usta", {"can_score": True}),
        overrides=[{"user_id": "u1", "access_status": "aktif"}],
    )

    capabilities = resolve_hr_access([ORTACI, USTA], settings, "u1")

    assert capabilities.can_score


def test_union_resolution_merges_all_roles():
    settings = settings_with(
        ("r-ortaci", {"can_view_reports": True, "allowed_roles_to_delete": ["a"]}),
        ("r-usta", {"can_score": True, "allowed_roles_to_delete": ["a", "b"]}),
    )

    capabilities = resolve_hr_access(
        [ORTACI, USTA], settings, "u1", resolution=RoleResolution.UNION
    )

    assert capabilities.can_view_reports
    assert capabilities.can_score
    assert capabilities.allowed_roles_to_delete == ["a", "b"]


def test_union_resolution_still_denies_without_entries():
    assert resolve_hr_access([USTA], settings_with(), "u1", resolution=RoleResolution.UNION) is None


async def test_settings_singleton_is_created_once(db):
    service = HRSettingsService(db)

    first = await service.get_settings()
    second = await service.get_settings()

    assert first["key"] == "hr"
    assert HRSettings(**second).mesai_puanlama.points_per_hour == 3
    assert await db["hr_settings"].count_documents({}) == 1


async def test_set_role_permissions_replaces_existing_entry(db):
    service = HRSettingsService(db)

    await service.set_role_permissions("r-usta", HRCapabilities(can_score=True), updated_by="u1")
    updated = await service.set_role_permissions("r-usta", HRCapabilities(can_view_reports=True))

    entries = updated["rol_yetkileri"]
    assert len(entries) == 1
    assert entries[0]["permissions"]["can_view_reports"]
    assert not entries[0]["permissions"]["can_score"]


async def test_toggle_module_access_flips_status(db):
    service = HRSettingsService(db)

    created = await service.toggle_module_access("u1", "user")
    assert created["modul_erisim_yetkileri"][0]["access_status"] == "aktif"

    toggled = await service.toggle_module_access("u1", "user")
    assert toggled["modul_erisim_yetkileri"][0]["access_status"] == "pasif"


async def test_service_resolves_admin_with_all_role_ids(seeded_db, role_ids):
    admin = {"id": "u-admin"}
    roles = [await seeded_db["roles"].find_one({"name": "Admin"})]

    capabilities = await HRAccessService(seeded_db).resolve_for_user(admin, roles)

    assert sorted(capabilities.allowed_roles_to_create) == sorted(role_ids.values())


def test_denial_message_is_fixed():
    assert HR_ACCESS_DENIED_MESSAGE == "İnsan Kaynakları modülüne erişim yetkiniz yok"
