from models.rbac import ModulePermissionLevel
from services.rbac_service import (
    RBACService, checklist_access, controllable_role_ids, module_access, user_module_access
)


MODULE = {"id": "m-hr", "name": "İnsan Kaynakları"}


def test_module_reachable_through_name_keyed_grant_only():
    role = {
        "name": "Usta",
        "moduller": [],
        "module_permissions": [{"module_name": "İnsan Kaynakları", "can_view": True, "can_edit": False}],
    }

    assert module_access(role, MODULE)
    assert not module_access(role, MODULE, ModulePermissionLevel.EDIT)


def test_module_reachable_through_id_keyed_grant_only():
    role = {
        "name": "Usta",
        "moduller": [{"module_id": "m-hr", "can_access": True, "can_edit": True}],
        "module_permissions": [],
    }

    assert module_access(role, MODULE)
    assert module_access(role, MODULE, ModulePermissionLevel.EDIT)


def test_module_not_reachable_without_grants():
    role = {
        "name": "Usta",
        "moduller": [{"module_id": "m-other", "can_access": True}],
        "module_permissions": [{"module_name": "İnsan Kaynakları", "can_view": False}],
    }

    assert not module_access(role, MODULE)


def test_admin_reaches_every_module():
    assert user_module_access([{"name": "Admin"}], [MODULE], ModulePermissionLevel.EDIT)


def test_any_role_is_enough():
    roles = [
        {"name": "Ortacı"},
        {"name": "Usta", "module_permissions": [{"module_name": "İnsan Kaynakları", "can_view": True}]},
    ]
    assert user_module_access(roles, [MODULE])


ORTACI = {
    "id": "r-ortaci",
    "name": "Ortacı",
    "checklist_yetkileri": [
        {"target_role_id": "r-paketlemeci", "can_view": True, "can_score": True, "can_approve": False}
    ],
}


def test_ortaci_sees_and_scores_paketlemeci_without_approval():
    access = checklist_access([ORTACI], ["r-paketlemeci"])

    assert access.can_view
    assert access.can_score
    assert not access.can_approve


def test_ortaci_has_no_access_to_usta():
    access = checklist_access([ORTACI], ["r-usta"])

    assert not access.can_view
    assert not access.can_score
    assert not access.can_approve


def test_no_grants_means_no_default_view():
    access = checklist_access([{"id": "r-x", "name": "Usta", "checklist_yetkileri": []}], ["r-usta"])
    assert not access.can_view


def test_checklist_access_combines_all_viewer_roles():
    approver = {
        "id": "r-kk",
        "name": "Kalite Kontrol",
        "checklist_yetkileri": [
            {"target_role_id": "r-paketlemeci", "can_view": True, "can_score": False, "can_approve": True}
        ],
    }

    access = checklist_access([ORTACI, approver], ["r-paketlemeci"])

    assert access.can_view and access.can_score and access.can_approve


def test_admin_name_gives_no_checklist_shortcut():
    access = checklist_access([{"id": "r-admin", "name": "Admin", "checklist_yetkileri": []}], ["r-usta"])
    assert not access.can_view


def test_controllable_roles_are_unique_and_viewable():
    roles = [
        ORTACI,
        {
            "name": "Usta",
            "checklist_yetkileri": [
                {"target_role_id": "r-paketlemeci", "can_view": True},
                {"target_role_id": "r-ortaci", "can_view": False, "can_approve": True},
            ],
        },
    ]

    assert controllable_role_ids(roles) == ["r-paketlemeci"]


async def test_load_roles_keeps_user_order_and_skips_missing(seeded_db, role_ids):
    rbac = RBACService(seeded_db)

    roles = await rbac.load_roles([role_ids["Usta"], "deleted-role", role_ids["Ortacı"]])

    assert [role["name"] for role in roles] == ["Usta", "Ortacı"]


async def test_has_module_permission_by_name(seeded_db):
    rbac = RBACService(seeded_db)
    ortaci = await seeded_db["roles"].find_one({"name": "Ortacı"})

    assert await rbac.has_module_permission([ortaci], "Dashboard")
    assert not await rbac.has_module_permission([ortaci], "Rol Yönetimi")
    assert not await rbac.has_module_permission([ortaci], "Dashboard", ModulePermissionLevel.EDIT)


async def test_accessible_modules_hides_inactive(seeded_db):
    rbac = RBACService(seeded_db)
    ortaci = await seeded_db["roles"].find_one({"name": "Ortacı"})
    await seeded_db["modules"].update_one({"name": "Yaptım"}, {"$set": {"active": False}})

    names = [module["name"] for module in await rbac.accessible_modules([ortaci])]

    assert "Dashboard" in names
    assert "Yaptım" not in names
    assert "Rol Yönetimi" not in names


async def test_get_user_roles_returns_none_for_unknown_user(seeded_db):
    assert await RBACService(seeded_db).get_user_roles("missing") is None
