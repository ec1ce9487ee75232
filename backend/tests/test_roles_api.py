import pytest


@pytest.fixture
async def admin(make_user):
    return await make_user("admin", ["Admin"])


async def test_login_and_me(client, make_user):
    await make_user("ortaci", ["Ortacı"], password="gizli123")

    response = await client.post("/api/v1/auth/login", json={"username": "ortaci", "password": "gizli123"})
    assert response.status_code == 200
    token = response.json()["access_token"]
    assert response.json()["user"]["role_names"] == ["Ortacı"]

    me = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    module_names = {module["name"] for module in me.json()["modules"]}
    assert "Dashboard" in module_names
    assert "Rol Yönetimi" not in module_names


async def test_login_rejects_wrong_password(client, make_user):
    await make_user("ortaci", ["Ortacı"], password="gizli123")

    response = await client.post("/api/v1/auth/login", json={"username": "ortaci", "password": "yanlis"})

    assert response.status_code == 400


async def test_invalid_token_is_unauthorized(client):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer bozuk"})
    assert response.status_code == 401


async def test_role_management_requires_module_grant(client, make_user, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])

    response = await client.get("/api/v1/roles", headers=auth_headers(ortaci))

    assert response.status_code == 403


async def test_role_crud(client, admin, role_ids, auth_headers):
    headers = auth_headers(admin)
    payload = {
        "name": "Bakımcı",
        "module_permissions": [{"module_name": "Dashboard", "can_view": True}],
        "checklist_yetkileri": [{"target_role_id": role_ids["Usta"], "can_view": True, "can_approve": True}],
    }

    created = await client.post("/api/v1/roles", json=payload, headers=headers)
    assert created.status_code == 201
    role = created.json()
    # Onay yetkisi puanlama yetkisini açmaz
    assert role["checklist_yetkileri"][0]["can_score"] is False
    assert role["module_permissions"] == []
    assert len(role["moduller"]) == 1
    assert role["moduller"][0]["can_access"] is True

    duplicate = await client.post("/api/v1/roles", json=payload, headers=headers)
    assert duplicate.status_code == 400

    updated = await client.put(f"/api/v1/roles/{role['id']}", json={"description": "Bakım ekibi"}, headers=headers)
    assert updated.status_code == 200
    assert updated.json()["description"] == "Bakım ekibi"
    assert updated.json()["checklist_yetkileri"] == role["checklist_yetkileri"]

    deleted = await client.delete(f"/api/v1/roles/{role['id']}", headers=headers)
    assert deleted.status_code == 200

    missing = await client.get(f"/api/v1/roles/{role['id']}", headers=headers)
    assert missing.status_code == 404


async def test_role_with_unknown_checklist_target_is_rejected(client, admin, auth_headers):
    payload = {"name": "Hatalı", "checklist_yetkileri": [{"target_role_id": "yok", "can_view": True}]}

    response = await client.post("/api/v1/roles", json=payload, headers=auth_headers(admin))

    assert response.status_code == 400


async def test_role_in_use_cannot_be_deleted(client, admin, make_user, role_ids, auth_headers):
    await make_user("usta", ["Usta"])

    response = await client.delete(f"/api/v1/roles/{role_ids['Usta']}", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["detail"].startswith("Bu rol 1 kullanıcı tarafından kullanılıyor")


async def test_my_permissions_for_any_user(client, make_user, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])

    response = await client.get("/api/v1/roles/my-permissions", headers=auth_headers(ortaci))

    assert response.status_code == 200
    assert [role["name"] for role in response.json()] == ["Ortacı"]


async def test_module_rename_moves_name_keyed_grants(client, seeded_db, admin, make_user, auth_headers):
    module = await seeded_db["modules"].find_one({"name": "Yaptım"})
    # Birleştirme öncesinden kalmış, sadece ad bazlı yetkisi olan rol
    await seeded_db["roles"].insert_one({
        "id": "r-eski",
        "name": "Eski Rol",
        "moduller": [],
        "module_permissions": [{"module_name": "Yaptım", "can_view": True, "can_edit": False}],
        "checklist_yetkileri": [],
    })

    renamed = await client.patch(
        f"/api/v1/modules/{module['id']}", json={"name": "Yaptıklarım"}, headers=auth_headers(admin)
    )
    assert renamed.status_code == 200

    legacy = await seeded_db["roles"].find_one({"id": "r-eski"})
    names = {grant["module_name"] for grant in legacy["module_permissions"]}
    assert names == {"Yaptıklarım"}

    ortaci = await make_user("ortaci", ["Ortacı"])
    accessible = await client.get("/api/v1/modules/accessible", headers=auth_headers(ortaci))
    assert "Yaptıklarım" in {m["name"] for m in accessible.json()}


async def test_module_admin_endpoints(client, admin, make_user, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])

    forbidden = await client.post("/api/v1/modules", json={"name": "Bakım"}, headers=auth_headers(ortaci))
    assert forbidden.status_code == 403

    created = await client.post("/api/v1/modules", json={"name": "Bakım"}, headers=auth_headers(admin))
    assert created.status_code == 201

    toggled = await client.post(f"/api/v1/modules/{created.json()['id']}/toggle", headers=auth_headers(admin))
    assert toggled.json()["active"] is False


async def test_checklist_access_between_seeded_roles(client, make_user, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])
    paketlemeci = await make_user("paketlemeci", ["Paketlemeci"])
    usta = await make_user("usta", ["Usta"])
    kalite = await make_user("kalite", ["Kalite Kontrol"])

    response = await client.get(f"/api/v1/checklists/access/{paketlemeci['id']}", headers=auth_headers(ortaci))
    assert response.json() == {"can_view": True, "can_score": True, "can_approve": True}

    response = await client.get(f"/api/v1/checklists/access/{usta['id']}", headers=auth_headers(ortaci))
    assert response.json() == {"can_view": False, "can_score": False, "can_approve": False}

    response = await client.get(f"/api/v1/checklists/access/{usta['id']}", headers=auth_headers(kalite))
    assert response.json() == {"can_view": True, "can_score": False, "can_approve": True}

    missing = await client.get("/api/v1/checklists/access/yok", headers=auth_headers(ortaci))
    assert missing.status_code == 404


async def test_controllable_roles(client, make_user, auth_headers):
    usta = await make_user("usta", ["Usta"])

    response = await client.get("/api/v1/checklists/controllable-roles", headers=auth_headers(usta))

    assert {role["name"] for role in response.json()} == {"Ortacı", "Paketlemeci"}


async def test_health(client):
    response = await client.get("/health")
    assert response.json()["status"] == "healthy"


async def test_initial_admin_is_created_once(seeded_db, role_ids):
    from main import ensure_initial_admin

    await ensure_initial_admin(seeded_db)
    await ensure_initial_admin(seeded_db)

    admins = await seeded_db["users"].find({"username": "admin"}).to_list(length=None)
    assert len(admins) == 1
    assert admins[0]["roles"] == [role_ids["Admin"]]


async def test_revoking_module_grant_through_role_update(client, seeded_db, admin, make_user, role_ids, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])
    before = await client.get("/api/v1/modules/accessible", headers=auth_headers(ortaci))
    assert "Dashboard" in {m["name"] for m in before.json()}

    response = await client.put(
        f"/api/v1/roles/{role_ids['Ortacı']}", json={"module_permissions": []}, headers=auth_headers(admin)
    )
    assert response.status_code == 200
    assert response.json()["moduller"] == []

    after = await client.get("/api/v1/modules/accessible", headers=auth_headers(ortaci))
    assert after.json() == []


async def test_role_update_keeps_only_sent_module_grants(client, admin, make_user, role_ids, auth_headers):
    ortaci = await make_user("ortaci", ["Ortacı"])

    response = await client.put(
        f"/api/v1/roles/{role_ids['Ortacı']}",
        json={"module_permissions": [{"module_name": "Dashboard", "can_view": True}]},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["module_permissions"] == []
    accessible = await client.get("/api/v1/modules/accessible", headers=auth_headers(ortaci))
    assert [m["name"] for m in accessible.json()] == ["Dashboard"]


async def test_role_write_rejects_unknown_module_name(client, admin, auth_headers):
    payload = {"name": "Hatalı", "module_permissions": [{"module_name": "Olmayan Modül", "can_view": True}]}

    response = await client.post("/api/v1/roles", json=payload, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "Geçersiz modül: Olmayan Modül"
